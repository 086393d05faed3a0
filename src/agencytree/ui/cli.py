from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from agencytree.app import build_hierarchy_view, sync_firm_hierarchy, upload_hierarchy_file
from agencytree.config import configure_logging, get_view_config
from agencytree.domain.hierarchy import (
    BuildOptions,
    ViewState,
    count_by_kind,
    summarize_graph,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

    from agencytree.app import SyncResult
    from agencytree.domain.hierarchy import VisibleSet
    from agencytree.domain.model import HierarchyGraph, UploadJob

log = logging.getLogger(__name__)


def _positive_int(value: str) -> int:
    parsed = int(value)
    if parsed < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value}")
    return parsed


def _non_negative_int(value: str) -> int:
    parsed = int(value)
    if parsed < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value}")
    return parsed


def _add_fetch_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--account",
        type=str,
        help="SureLC account (EQUITA, QUILITY or GENERAL; defaults to SURELC_ACCOUNT)",
    )
    parser.add_argument(
        "--firm-id",
        type=str,
        help="Agency (GA) id whose hierarchy to build (defaults to config)",
    )
    parser.add_argument(
        "--since",
        type=str,
        help="Only include relations changed after this timestamp (defaults to config)",
    )
    parser.add_argument(
        "--page-size",
        type=_positive_int,
        default=None,
        help="Number of relations to request per page (defaults to config)",
    )
    parser.add_argument(
        "--enrich",
        action="store_true",
        help="Fetch producer names one by one (staggered) before building",
    )
    parser.add_argument(
        "--details",
        action="store_true",
        help="Fetch licenses, appointments and contracts per producer (staggered)",
    )
    parser.add_argument(
        "--orphans-to-synthetic-root",
        action="store_true",
        help="Attach producers without an upline to the firm's synthetic root",
    )


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Build SureLC agency hierarchies")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command", required=True)

    sync = subparsers.add_parser("sync", help="Fetch relations and summarise the hierarchy")
    _add_fetch_arguments(sync)

    view = subparsers.add_parser("view", help="Print the visible part of the hierarchy")
    _add_fetch_arguments(view)
    view.add_argument("--expand-all", action="store_true", help="Expand every node")
    view.add_argument(
        "--expand",
        action="append",
        default=[],
        metavar="NODE_ID",
        help="Expand a single node (repeatable)",
    )
    view.add_argument(
        "--depth-limit",
        type=_non_negative_int,
        help="Do not descend below this depth",
    )
    view.add_argument("--scope", type=str, help="Start the outline at this node id")
    view.add_argument(
        "--page",
        type=_non_negative_int,
        default=0,
        help="Child page shown for nodes with many children (default: %(default)s)",
    )
    view.add_argument(
        "--page-size-children",
        type=_positive_int,
        default=None,
        help="Children shown per page (defaults to config)",
    )
    view.add_argument(
        "--show-all-children",
        action="store_true",
        help="Disable child pagination",
    )
    view.add_argument("--highlight", type=str, help="Highlight the path to this node id")

    upload = subparsers.add_parser("upload", help="Upload a hierarchy file and follow the job")
    upload.add_argument("path", type=Path, help="CSV or Excel file to upload")
    upload.add_argument("--account", type=str, help="SureLC account used for the upload")
    upload.add_argument(
        "--poll-interval",
        type=float,
        default=None,
        help="Seconds between status checks (defaults to config)",
    )

    return parser.parse_args(list(argv))


def _sync(args: argparse.Namespace) -> SyncResult:
    options = BuildOptions(attach_orphans_to_synthetic_root=args.orphans_to_synthetic_root)
    return sync_firm_hierarchy(
        account=args.account,
        firm_id=args.firm_id,
        since=args.since,
        page_size=args.page_size,
        enrich=args.enrich,
        details=args.details,
        options=options,
    )


def _log_summary(result: SyncResult) -> None:
    graph = result.graph
    summary = summarize_graph(graph)
    log.info(
        "Hierarchy: producers=%s, roots=%s, synthetic_roots=%s, synthetic_attachments=%s, "
        "duplicate_groups=%s, max_depth=%s",
        summary.producers,
        summary.roots,
        summary.synthetic_roots,
        summary.synthetic_attachments,
        summary.duplicate_groups,
        summary.max_depth,
    )
    log.info("Status counts: %s", count_by_kind(graph))
    for issue, count in graph.issues.counts().items():
        if count:
            log.info("Issue %s: %s producers", issue, count)
    if result.details:
        complete = sum(1 for detail in result.details.values() if detail.complete)
        log.info(
            "Producer detail: %s complete, %s partial, %s unavailable",
            complete,
            len(result.details) - complete - len(result.detail_failures),
            len(result.detail_failures),
        )


def format_outline(graph: HierarchyGraph, visible: VisibleSet) -> list[str]:
    lines: list[str] = []
    for item in visible.nodes:
        node = graph.get(item.id)
        if node is None:
            continue
        marker = "-" if item.expanded and item.has_children else "+" if item.has_children else " "
        parts = [f"{'  ' * item.depth}{marker} {node.name} ({node.id})"]
        if node.status is not None:
            parts.append(f"[{node.status}]")
        if node.metrics.descendant_count:
            parts.append(f"{node.metrics.descendant_count} below")
        if node.has_duplicate_npn:
            parts.append(f"duplicate NPN x{node.duplicate_group_size}")
        if item.child_page_count > 1:
            parts.append(f"page {item.child_page + 1}/{item.child_page_count}")
        if graph.issues.needs_review(node.id):
            parts.append("!")
        if item.highlighted:
            parts.append("*")
        lines.append(" ".join(parts))
    return lines


def _view(args: argparse.Namespace) -> None:
    graph = _sync(args).graph
    page_size = args.page_size_children or get_view_config().children_page_size
    view = build_hierarchy_view(
        graph,
        ViewState(
            expanded_ids=frozenset(args.expand),
            depth_limit=args.depth_limit,
            child_page_index=args.page,
            children_page_size=page_size,
            show_all_children=args.show_all_children,
        ),
    )
    if args.expand_all:
        view.expand_all()
    if args.scope:
        view.set_scope(args.scope)
    if args.highlight:
        view.highlight_path_to(args.highlight)

    for line in format_outline(graph, view.visible):
        print(line)  # noqa: T201


def _log_upload_progress(job: UploadJob) -> None:
    processed = job.progress.get("processedRecords")
    total = job.progress.get("totalRecords")
    log.info("Upload job %s: %s (%s/%s records)", job.id, job.status, processed, total)


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        configure_logging()
        log.exception("CLI validation error")
        sys.exit(2)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else logging.INFO)

    try:
        if parsed_args.command == "sync":
            _log_summary(_sync(parsed_args))
        elif parsed_args.command == "view":
            _view(parsed_args)
        elif parsed_args.command == "upload":
            job = upload_hierarchy_file(
                parsed_args.path,
                account=parsed_args.account,
                poll_interval=parsed_args.poll_interval,
                on_progress=_log_upload_progress,
            )
            log.info("Upload job %s finished with status %s", job.id, job.status)
        else:
            raise ValueError(f"Unsupported command: {parsed_args.command}")  # noqa: TRY301
    except ValueError:
        log.exception("Validation error")
        sys.exit(2)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    log.info("Closed by user (Ctrl+C)")
    sys.exit(0)


def run() -> None:
    load_dotenv()
    signal(SIGINT, sigint_handler)
    main()


if __name__ == "__main__":
    run()
