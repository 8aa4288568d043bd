"""
Template renderer — Jinja2 templates in strict mode.

Single Responsibility: turn ``(template_body, parameters)`` pairs into
rendered strings.  No I/O, no caching; identical inputs always give
identical output (or the identical failure).

Every variable a template references must be present in its parameters
(``StrictUndefined``), so a typo in the caller's data fails loudly instead
of producing a dashboard with blanks.

Template bodies come from API callers, so they run in Jinja2's immutable
sandbox: no access to private attributes, internals or mutating methods.

Usage::

    from visualization_api.services.templates import render_templates

    rendered = render_templates([('{"title": "{{ host }}"}', {"host": "node-1"})])
"""

from __future__ import annotations

import json
from typing import Any, List, Mapping, Sequence, Tuple

import jinja2
from jinja2.sandbox import ImmutableSandboxedEnvironment

TemplateEntry = Tuple[str, Any]

_environment = ImmutableSandboxedEnvironment(
    undefined=jinja2.StrictUndefined,
    autoescape=False,
    keep_trailing_newline=True,
)


class TemplateError(Exception):
    """A template could not be parsed, rendered or validated."""

    def __init__(self, index: int, cause: str) -> None:
        self.index = index
        self.cause = cause
        super().__init__(f"ErrorMsg: '{cause}', TemplateIndex: '{index}'")


def render_template(index: int, body: str, parameters: Any) -> str:
    """Render one template; ``index`` is only used to label failures."""
    try:
        template = _environment.from_string(body)
    except jinja2.TemplateSyntaxError as exc:
        raise TemplateError(index, f"line {exc.lineno}: {exc.message}") from exc

    if not isinstance(parameters, Mapping):
        raise TemplateError(
            index,
            f"template parameters must be an object, got {type(parameters).__name__}",
        )

    # Any exception here comes from caller-supplied template code or data
    try:
        return template.render(dict(parameters))
    except Exception as exc:
        raise TemplateError(index, str(exc) or type(exc).__name__) from exc


def render_templates(entries: Sequence[TemplateEntry]) -> List[str]:
    """
    Render every entry in order, failing at the first invalid one.

    Raises:
        TemplateError: carrying the failing entry's index and cause.
    """
    return [
        render_template(index, body, parameters)
        for index, (body, parameters) in enumerate(entries)
    ]


def ensure_dashboard_documents(rendered: Sequence[str]) -> None:
    """
    Check that every rendered template is a JSON object.

    Grafana only accepts a dashboard model (a JSON object); anything else
    is rejected here as caller input rather than at upload time.
    """
    for index, body in enumerate(rendered):
        try:
            document = json.loads(body)
        except ValueError as exc:
            raise TemplateError(index, f"rendered template is not valid JSON: {exc}") from exc
        if not isinstance(document, dict):
            raise TemplateError(
                index,
                f"rendered template must be a JSON object, got {type(document).__name__}",
            )
