"""Validators for emitted span trees."""

from .trace_tree_validator import TreeIssue, TreeValidationResult, validate_span_records

__all__ = [
    "TreeIssue",
    "TreeValidationResult",
    "validate_span_records",
]
