"""Reconciliation between the local mirror and the remote tracker."""

from .file_mapper import (
    ParsedIssueFilename,
    generate_comment_filename,
    generate_issue_filename,
    generate_original_filename,
    is_comment_filename,
    is_issue_filename,
    parse_comment_filename,
    parse_issue_filename,
)
from .local_id import generate_local_id
from .references import apply_mapping, rewrite_text
from .summary import change_lines

__all__ = [
    "ParsedIssueFilename",
    "apply_mapping",
    "change_lines",
    "generate_comment_filename",
    "generate_issue_filename",
    "generate_local_id",
    "generate_original_filename",
    "is_comment_filename",
    "is_issue_filename",
    "parse_comment_filename",
    "parse_issue_filename",
    "rewrite_text",
]
