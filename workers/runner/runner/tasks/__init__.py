"""Build tasks for the runner."""

from runner.tasks.build_content import run_content_build

__all__ = ["run_content_build"]
