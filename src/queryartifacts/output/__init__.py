"""
Output module - Separates rendering from analysis.

Provides multiple output formats:
- render_text: Terminal output for the CLI
- render_json: Stable camelCase JSON for APIs
- render_markdown: Report export for tickets and chat

Usage:
    from queryartifacts.output import render_text, render_json

    response = service.analyze(request)
    print(render_text(response))
"""

from queryartifacts.output.renderers import (
    OutputFormat,
    render,
    render_json,
    render_markdown,
    render_text,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_text",
    "render_json",
    "render_markdown",
]
