"""Domain model for producer hierarchies."""

from __future__ import annotations

from .enums import RelationStatus, UplineSource, UploadStatus
from .graph import BranchSummary, HierarchyGraph, HierarchyIssues, HierarchyNode, NodeMetrics
from .records import DETAIL_SECTIONS, ProducerDetail, ProducerLabel, RelationRecord
from .upload import FileValidationResult, UploadFile, UploadJob

__all__ = [
    "DETAIL_SECTIONS",
    "BranchSummary",
    "FileValidationResult",
    "HierarchyGraph",
    "HierarchyIssues",
    "HierarchyNode",
    "NodeMetrics",
    "ProducerDetail",
    "ProducerLabel",
    "RelationRecord",
    "RelationStatus",
    "UplineSource",
    "UploadFile",
    "UploadJob",
    "UploadStatus",
]
