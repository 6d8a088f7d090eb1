"""Pure rendering functions: reports -> HTML strings.

All renderers follow the same pattern:
  - Input: report model (from schemas) plus display settings
  - Output: str (complete HTML email body)
  - No side effects, no I/O, no Prefect decorators

Used by reporting.py, which hands the HTML to the mail transport.

Public API:
  - email: build_digest_html, build_alert_html, digest_subject, alert_subject
  - date_utils: format_local, coverage_window_label, subject_date_range

Templates live in ``templates/`` next to this package.  Observation cards
are a shared macro in ``templates/_observation.html.j2``; email clients
ignore <style> blocks, so styling is inline.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import jinja2

# Shared Jinja2 environment for all renderers
_TEMPLATE_DIR = Path(__file__).resolve().parent.parent / "templates"
_jinja_env = jinja2.Environment(
    loader=jinja2.FileSystemLoader(str(_TEMPLATE_DIR)),
    autoescape=True,
    undefined=jinja2.StrictUndefined,
)


def render_template(template_name: str, **kwargs: Any) -> str:
    """Render a Jinja2 template by name."""
    return _jinja_env.get_template(template_name).render(**kwargs)
