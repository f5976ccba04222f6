"""Build pipeline: capability negotiation, per-page graph and site build."""

from pagecraft_core.pipeline.build import BuildReport, PageBuildResult, build_site
from pagecraft_core.pipeline.capabilities import negotiate_footnotes_config
from pagecraft_core.pipeline.context import BuildContext, create_build_context
from pagecraft_core.pipeline.page_graph import build_page_graph
from pagecraft_core.pipeline.sources import (
    CommentsPermissionError,
    ContentSource,
    JsonDirectorySource,
)

__all__ = [
    "BuildReport",
    "PageBuildResult",
    "build_site",
    "negotiate_footnotes_config",
    "BuildContext",
    "create_build_context",
    "build_page_graph",
    "CommentsPermissionError",
    "ContentSource",
    "JsonDirectorySource",
]
