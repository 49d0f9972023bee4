"""Jinja2 rendering of rule templates against a ParameterSet."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from jinja2 import Environment, StrictUndefined, Undefined

from .models import ConverterOptions, ErrorKind, ParameterSet, PSPConversionError

logger = logging.getLogger(__name__)

RENDER_PREFIX = "Could not render rules template: "


def items_join(delimiter: str, items: Iterable[Any]) -> str:
    """Quote each item and join them with *delimiter*.

    ``join(", ", ["a", "b"])`` renders ``"a", "b"``, ready to drop into a
    rule condition such as ``container.image in (...)``.
    """
    return delimiter.join(f'"{item}"' for item in items)


def create_environment(options: ConverterOptions | None = None) -> Environment:
    """Build the Jinja2 environment used for rule templates.

    Line statements are bound to a token no template will contain, since
    rule text freely uses characters Jinja2 could read as shorthand.
    """
    opts = options or ConverterOptions()
    env = Environment(
        line_statement_prefix=opts.line_statement_prefix,
        undefined=StrictUndefined if opts.strict_undefined else Undefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    env.globals["join"] = items_join
    return env


def render_rules(
    params: ParameterSet,
    template_text: str,
    options: ConverterOptions | None = None,
) -> str:
    """Render *template_text* with every parameter available by name."""
    env = create_environment(options)
    try:
        rendered = env.from_string(template_text).render(params.to_dict())
    except Exception as exc:
        raise PSPConversionError(RENDER_PREFIX + str(exc), ErrorKind.template) from exc
    logger.debug("[psp.render] policy=%s chars=%d", params.policy_name, len(rendered))
    return rendered
