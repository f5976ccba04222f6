"""Persist node: write recomputed kinds to the cache."""

from collections.abc import Callable
from typing import Any

from pagecraft_core.pipeline.context import BuildContext
from pagecraft_core.pipeline.nodes.cache_check import state_key
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)


def create_persist_node(context: BuildContext) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Create the node that writes every recomputed kind of a page.

    Write failures are logged by the cache and recorded as errors; the page
    still counts as built.
    """

    def persist_node(state: dict[str, Any]) -> dict[str, Any]:
        page = state["page"]
        errors = list(state.get("errors", []))

        for kind in state.get("recomputed", []):
            payload = state.get(state_key(kind))
            if payload is None:
                continue
            if not context.cache.put(page.page_id, kind, payload, page.last_updated):
                errors.append(f"cache write of {kind.value}")

        logger.debug(
            f"Persisted {len(state.get('recomputed', []))} artifact kinds for {page.page_id}"
        )

        return {
            **state,
            "errors": errors,
            "current_step": "persist",
        }

    return persist_node
