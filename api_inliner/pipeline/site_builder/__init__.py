"""Minimal static-site builder hosting the inliner.

This package plays the host build tool: it owns the lifecycle hooks
(``before_run``, ``watch_run``, ``before_emit``, ``after_emit``) and an HTML
stage that copies page templates into the output directory, passing each
page through ``before_emit`` first. It contains no inliner logic.
"""

from .hooks import AsyncHook, BuildHooks, HtmlPage
from .renderer import find_html_templates, write_html_output
from .runner import BuildReport, run_build

__all__ = [
    "AsyncHook",
    "BuildHooks",
    "BuildReport",
    "HtmlPage",
    "find_html_templates",
    "run_build",
    "write_html_output",
]
