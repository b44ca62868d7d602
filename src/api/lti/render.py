"""
HTML for launches.

A launch is a page holding a hidden form that posts the launch parameters
to the tool as soon as it loads.
"""

from __future__ import annotations

from collections.abc import Mapping
from html import escape
from typing import Any

from starlette.responses import HTMLResponse


def auto_submit_form(action: str, params: Mapping[str, Any], title: str = "") -> str:
    inputs = "".join(
        f'<input type="hidden" name="{escape(str(name))}" value="{escape(str(value))}">'
        for name, value in params.items()
        if value is not None
    )
    return (
        "<!DOCTYPE html><html><head>"
        f"<title>{escape(title)}</title>"
        "</head><body>"
        f'<form id="tool_form" action="{escape(action)}" method="POST" '
        'target="_self" encType="application/x-www-form-urlencoded">'
        f"{inputs}"
        "</form>"
        '<script type="text/javascript">document.getElementById("tool_form").submit();</script>'
        "</body></html>"
    )


def render_launch(launch) -> HTMLResponse:
    """Borderless launch page for a ``Launch``."""
    html = auto_submit_form(launch.resource_url or "", launch.params, launch.link_text or "")
    response = HTMLResponse(content=html)
    response.headers["Cache-Control"] = "no-store"
    return response
