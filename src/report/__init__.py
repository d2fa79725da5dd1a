"""Violation reporting for layerguard."""

from report.render import render_json, render_text, summarize
from report.sink import write_report

__all__ = ["render_json", "render_text", "summarize", "write_report"]
