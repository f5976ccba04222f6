"""Nodes of the per-page build graph.

    - cache_check: full hit / partial hit / miss decision, cached payload loading
    - fetch: block tree and block comments from the content source
    - markers: footnote and citation marker extraction
    - extract: unified extraction of stale kinds and headings
    - persist: cache writes of recomputed kinds
"""

from pagecraft_core.pipeline.nodes import cache_check, extract, fetch, markers, persist

__all__ = [
    "cache_check",
    "extract",
    "fetch",
    "markers",
    "persist",
]
