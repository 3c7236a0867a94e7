"""Template rendering for node fields.

Node fields such as prompts, endpoints and request bodies may reference
upstream results by variable name: ``{{ summary.text }}`` renders the
``text`` entry stored under ``summary`` in the run context. Rendering runs in
Jinja's sandbox since templates are user-authored.
"""
import json
import logging

from jinja2 import ChainableUndefined, TemplateError
from jinja2.sandbox import SandboxedEnvironment
from markupsafe import Markup

logger = logging.getLogger(__name__)


def _json_filter(value, indent=2):
    # Markup keeps quotes intact even if autoescaping is ever switched on
    return Markup(json.dumps(value, indent=indent, default=str))


# missing variables and missing paths under them (`{{ prior.data.id }}`) render empty
_env = SandboxedEnvironment(autoescape=False, keep_trailing_newline=True, undefined=ChainableUndefined)
_env.filters["json"] = _json_filter


class TemplateRenderError(ValueError):
    pass


def render_template(template: str, context: dict) -> str:
    """Render template against context; the context keys are the variables.

    Unknown variables, and attribute or item lookups under them, render as
    empty strings.

    Raises:
        TemplateRenderError: the template does not parse or fails to render.
    """
    if not template:
        return template
    try:
        return _env.from_string(template).render(dict(context))
    except TemplateError as e:
        logger.info("template render failed: %s", e)
        raise TemplateRenderError(str(e)) from e
