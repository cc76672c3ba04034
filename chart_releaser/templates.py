"""Default message templates and template rendering against a run context."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import jinja2
import structlog

from .errors import ChartReleaserError

if TYPE_CHECKING:
    from .context import RunContext

log = structlog.get_logger(__name__)


class TemplateError(ChartReleaserError):
    def __init__(self, name: str, cause: Exception) -> None:
        super().__init__(f"template {name}: {cause}")
        self.name = name
        self.cause = cause


DRY_RUN_STAND_IN = "dry-run"

DEFAULT_UPDATE_COMMIT_MESSAGE = (
    "[{{ repository.owner }}/{{ repository.name }}] bump {{ chart.name }} chart "
    "to {{ chart.new_version }} for app {{ app.new_version }}"
)
DEFAULT_BRANCH_NAME = "chartreleaser/{{ chart.name }}/{{ chart.new_version }}"
DEFAULT_PULL_REQUEST_TITLE = (
    "Bump {{ chart.name }} Chart from {{ chart.previous_version }} to {{ chart.new_version }}"
)
DEFAULT_PULL_REQUEST_BODY = """\
Bumps the {{ chart.name }} Helm Chart from {{ chart.previous_version }} to {{ chart.new_version }}.

The application version was updated from {{ app.previous_version }} to {{ app.new_version }}.

---
This pull request was generated by chart-releaser.
"""

CONFIG_HEADER_COMMENT = """\
# Configuration for chart-releaser.
#
# chart-releaser bumps the version of a Helm Chart when a new version of the
# application it deploys is tagged."""

CONFIG_FILE_TEMPLATE = """\
{{ header }}
version: v1
chart:
  name: {{ chart }}
  repo: github.com/{{ github_owner }}/{{ github_repo }}
{%- if path %}
  path: {{ path }}
{%- endif %}
commit:
  author:
    name: {{ author_name }}
    email: {{ author_email }}
"""

VERSION_TEMPLATE = """\
chart-releaser:
  version : {{ version }}
  python  : {{ python }}
  os      : {{ os }}
  arch    : {{ arch }}"""

LATEST_VERSION_TEMPLATE = """\
{{ status }}
  latest    : {{ latest }}
  installed : {{ installed }}"""

_ENVIRONMENT = jinja2.Environment(
    undefined=jinja2.StrictUndefined,
    keep_trailing_newline=True,
    autoescape=False,
)


def render_string(source: str, **values: Any) -> str:
    return _ENVIRONMENT.from_string(source).render(**values)


def template_values(ctx: RunContext) -> dict[str, Any]:
    return {
        "app": ctx.app,
        "author": ctx.author,
        "chart": ctx.chart,
        "git": ctx.git,
        "repository": ctx.repository,
        "release": ctx.release,
        "files": ctx.files,
        "dry_run": ctx.dry_run,
    }


def render_template(ctx: RunContext, name: str, source: str) -> str:
    """Render ``source`` against the context, with dry-run stand-ins on failure."""
    try:
        template = _ENVIRONMENT.from_string(source)
    except jinja2.TemplateSyntaxError as exc:
        ctx.check_dry_run(TemplateError(name, exc))
        log.warning(f"dry-run: failed to parse template '{name}', using stand-in")
        template = _ENVIRONMENT.from_string(DRY_RUN_STAND_IN)

    try:
        return template.render(**template_values(ctx))
    except jinja2.TemplateError as exc:
        ctx.check_dry_run(TemplateError(name, exc))
        log.warning(f"dry-run: failed to execute template '{name}', using stand-in")
        return DRY_RUN_STAND_IN
