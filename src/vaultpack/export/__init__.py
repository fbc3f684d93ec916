"""Link-graph traversal, filtering and placement for exports."""

from .filters import should_exclude
from .headers import build_header_map, compute_export_paths, sanitize_header_path
from .links import extract_canvas_links, extract_linked_targets, extract_links
from .traversal import FilteredFile, TraversalResult, traverse
from .writer import ExportSummary, PlannedFile, plan_export, write_export

__all__ = [
    "ExportSummary",
    "FilteredFile",
    "PlannedFile",
    "TraversalResult",
    "build_header_map",
    "compute_export_paths",
    "extract_canvas_links",
    "extract_linked_targets",
    "extract_links",
    "plan_export",
    "sanitize_header_path",
    "should_exclude",
    "traverse",
    "write_export",
]
