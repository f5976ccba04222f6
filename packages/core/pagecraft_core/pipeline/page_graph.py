"""Build the per-page processing graph.

    cache_check ─┬─ miss ──────────────────────────► fetch
                 └─ hit ─► load_cached ─┬─ full ───► END
                                        ├─ partial ► extract
                                        └─ miss ───► fetch
    fetch ► fetch_comments ► markers ► extract ► persist ► END
"""

from langgraph.graph import END, StateGraph

from pagecraft_core.pipeline.context import BuildContext
from pagecraft_core.pipeline.sources import ContentSource
from pagecraft_core.pipeline.state import PageState
from pagecraft_core.utils.logging import get_logger

logger = get_logger(__name__)


def build_page_graph(context: BuildContext, source: ContentSource) -> StateGraph:
    """Build the graph that produces (or reuses) all artifacts of one page.

    Args:
        context: Shared build context
        source: Content source for block trees and comments

    Returns:
        Compiled StateGraph; invoke with ``{"page": post}``
    """
    from pagecraft_core.pipeline.nodes import cache_check, extract, fetch, markers, persist

    graph = StateGraph(PageState)

    graph.add_node("cache_check", cache_check.create_cache_check_node(context))
    graph.add_node("load_cached", cache_check.create_load_cached_node(context))
    graph.add_node("fetch", fetch.create_fetch_node(context, source))
    graph.add_node("fetch_comments", fetch.create_fetch_comments_node(context, source))
    graph.add_node("markers", markers.create_markers_node(context))
    graph.add_node("extract", extract.create_extract_node(context))
    graph.add_node("persist", persist.create_persist_node(context))

    graph.set_entry_point("cache_check")
    graph.add_conditional_edges(
        "cache_check",
        cache_check.route_after_cache_check,
        {"fetch": "fetch", "load_cached": "load_cached"},
    )
    graph.add_conditional_edges(
        "load_cached",
        cache_check.route_after_load,
        {"fetch": "fetch", "extract": "extract", "done": END},
    )
    graph.add_edge("fetch", "fetch_comments")
    graph.add_edge("fetch_comments", "markers")
    graph.add_edge("markers", "extract")
    graph.add_edge("extract", "persist")
    graph.add_edge("persist", END)

    logger.debug(f"Compiled page graph with {len(graph.nodes)} nodes")
    return graph.compile()
