"""
Template rendering for dashboard definitions.

Public API::

    from visualization_api.services.templates import render_templates
"""

from visualization_api.services.templates.renderer import (
    TemplateError,
    ensure_dashboard_documents,
    render_template,
    render_templates,
)

__all__ = [
    "TemplateError",
    "ensure_dashboard_documents",
    "render_template",
    "render_templates",
]
