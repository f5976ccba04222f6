"""Cache nodes: decide what can be reused and load it."""

from collections.abc import Callable
from typing import Any

from pagecraft_core.cache.build_cache import MISS as CACHE_MISS
from pagecraft_core.cache.build_cache import CacheKind
from pagecraft_core.config import PipelineConfig
from pagecraft_core.pipeline.context import BuildContext
from pagecraft_core.pipeline.state import FULL_HIT, MISS, PARTIAL_HIT
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)

_STATE_KEYS = {
    CacheKind.BLOCKS: "blocks",
    CacheKind.FOOTNOTES: "footnotes",
    CacheKind.CITATIONS: "citations",
    CacheKind.INTERLINKED_CONTENT: "interlinked_content",
    CacheKind.HEADINGS: "headings",
}


def state_key(kind: CacheKind) -> str:
    """Name of the page state field holding a kind's payload."""
    return _STATE_KEYS[kind]


def required_kinds(config: PipelineConfig) -> list[CacheKind]:
    """Kinds a page build must produce under this configuration."""
    kinds = [CacheKind.BLOCKS]
    if config.footnotes.enabled:
        kinds.append(CacheKind.FOOTNOTES)
    if config.citations.enabled:
        kinds.append(CacheKind.CITATIONS)
    if config.extract_interlinked_content:
        kinds.append(CacheKind.INTERLINKED_CONTENT)
    kinds.append(CacheKind.HEADINGS)
    return kinds


def create_cache_check_node(context: BuildContext) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Create the node that classifies a page as full hit, partial hit or miss."""

    def cache_check_node(state: dict[str, Any]) -> dict[str, Any]:
        page = state["page"]
        required = required_kinds(context.config)
        valid = context.cache.valid_kinds(
            page, context.last_build_time, context.registry, tuple(required)
        )
        stale = [kind for kind in required if kind not in valid]

        if not stale:
            decision = FULL_HIT
        elif CacheKind.BLOCKS in valid:
            decision = PARTIAL_HIT
        else:
            decision = MISS
            stale = required

        logger.debug(
            f"Cache decision for {page.page_id}: {decision} "
            f"(stale: {', '.join(kind.value for kind in stale) or 'none'})"
        )
        return {
            **state,
            "decision": decision,
            "stale_kinds": stale,
            "current_step": "cache_check",
        }

    return cache_check_node


def create_load_cached_node(context: BuildContext) -> Callable[[dict[str, Any]], dict[str, Any]]:
    """Create the node that loads every reusable kind from the cache.

    A kind whose file turns out to be unreadable becomes stale; if the blocks
    themselves are unreadable the page is rebuilt from the source.
    """

    def load_cached_node(state: dict[str, Any]) -> dict[str, Any]:
        page = state["page"]
        stale = list(state.get("stale_kinds", []))
        loaded: dict[str, Any] = {}

        for kind in required_kinds(context.config):
            if kind in stale:
                continue
            payload = context.cache.get(page.page_id, kind)
            if payload is CACHE_MISS:
                logger.warning(f"Cached {kind.value} for {page.page_id} is unusable")
                stale.append(kind)
                continue
            loaded[state_key(kind)] = payload

        decision = state.get("decision", FULL_HIT)
        if CacheKind.BLOCKS in stale:
            decision = MISS
            stale = required_kinds(context.config)
            loaded = {}
        elif stale:
            decision = PARTIAL_HIT

        return {
            **state,
            **loaded,
            "decision": decision,
            "stale_kinds": stale,
            "current_step": "load_cached",
        }

    return load_cached_node


def route_after_cache_check(state: dict[str, Any]) -> str:
    return "fetch" if state.get("decision") == MISS else "load_cached"


def route_after_load(state: dict[str, Any]) -> str:
    decision = state.get("decision")
    if decision == MISS:
        return "fetch"
    if decision == PARTIAL_HIT:
        return "extract"
    return "done"
