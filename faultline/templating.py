"""
Jinja2 environment for error pages.
"""

from __future__ import annotations

from pathlib import Path

from fastapi.templating import Jinja2Templates

TEMPLATES_DIR = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))


def select_error_template(status_code: int) -> str:
    """Name of the most specific error page: exact status, then status family, then generic."""

    candidates = [
        f"error/{status_code}.html",
        f"error/{status_code // 100}xx.html",
        "error/error.html",
    ]
    return templates.env.select_template(candidates).name
