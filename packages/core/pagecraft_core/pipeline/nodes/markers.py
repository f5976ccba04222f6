"""Markers node: footnote and citation extraction over the fetched tree."""

from collections.abc import Callable
from typing import Any

from pagecraft_core.markers.engine import apply_markers
from pagecraft_core.pipeline.context import BuildContext


def create_markers_node(context: BuildContext) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Create the node that tags markers in place before unified extraction."""

    def markers_node(state: dict[str, Any]) -> dict[str, Any]:
        blocks = state.get("blocks", [])
        report = apply_markers(
            blocks,
            context.config,
            entries=context.bibliography,
            comments=state.get("comments", {}),
        )
        errors = list(state.get("errors", []))
        errors.extend(f"markers in block {block_id}" for block_id in report.failed_block_ids)
        return {
            **state,
            "blocks": blocks,
            "marker_report": report,
            "errors": errors,
            "current_step": "markers",
        }

    return markers_node
