"""
Dynamic page expansion.

A content file named ``[param].md`` is a template for many pages: its
``param`` frontmatter field holds a list (or an expression producing one) and
one Page is generated per distinct value, with ``[param]`` in the URL
replaced by that value.
"""

import logging
from collections.abc import Mapping as MappingABC
from typing import Any, Dict, List

from jinja2 import Environment

from .errors import ConfigurationError, FrontmatterError
from .models import Expanded, Expression, NotFound, Ordinary, Page, PageTemplate, freeze_mapping
from .template_env import (contains_expression, evaluate_expression, resolve_fields, resolve_value,
                           strip_delimiters, to_render_error)

logger = logging.getLogger('Quire.expander')

SCALAR_TYPES = (str, int, float, bool)


def value_to_segment(value: Any) -> str:
    """String form of a bracket value as it appears in the URL."""
    if isinstance(value, bool):
        return 'true' if value else 'false'
    return str(value)


def dedupe(values: List[Any]) -> List[Any]:
    """Drop repeated values, keeping the first occurrence's position."""
    seen = set()
    result = []
    for value in values:
        key = (type(value), value)
        if key in seen:
            continue
        seen.add(key)
        result.append(value)
    return result


class PageExpander:
    """Turns PageTemplates into Pages.

    ``env`` is the eager environment (no registry functions). Registry
    dependent expressions are left unresolved for the render pass.
    """

    def __init__(self, env: Environment):
        self.env = env

    def _resolve(self, template: PageTemplate, fields: Dict[str, Any]) -> Dict[str, Any]:
        return resolve_fields(self.env, fields, {}, template.rel_path, defer_registry=True)

    def resolve_static(self, template: PageTemplate) -> Page:
        """The single Page of an ordinary or not-found template."""
        if template.is_dynamic:
            raise ValueError(f"{template.rel_path} is a dynamic template")
        fields = self._resolve(template, dict(template.frontmatter))
        kind = NotFound() if template.is_not_found else Ordinary()
        return Page(template.url_stem, freeze_mapping(fields), kind, template)

    def bracket_values(self, template: PageTemplate, query_env: Environment) -> List[Any]:
        """Evaluate the bracket field to the list of distinct values to expand."""
        param = template.param
        if param not in template.frontmatter:
            raise ConfigurationError(
                f"dynamic page '[{param}]' has no '{param}' frontmatter field to expand over",
                template.rel_path,
            )

        raw = template.frontmatter[param]
        literals = {key: value for key, value in template.frontmatter.items()
                    if key != param and not contains_expression(value)}
        if isinstance(raw, (Expression, str)):
            text = strip_delimiters(raw.text if isinstance(raw, Expression) else raw)
            try:
                values = evaluate_expression(query_env, text, literals)
            except Exception as e:
                raise to_render_error(e, template.rel_path, expression=text) from e
        elif isinstance(raw, list):
            try:
                values = resolve_value(self.env, raw, literals)
            except Exception as e:
                raise to_render_error(e, template.rel_path) from e
        else:
            values = raw

        if isinstance(values, (str, bytes, MappingABC)) or not hasattr(values, '__iter__'):
            raise ConfigurationError(
                f"'{param}' must be a list of values to expand over, got {type(values).__name__}",
                template.rel_path,
            )
        values = list(values)

        for value in values:
            if not isinstance(value, SCALAR_TYPES):
                raise ConfigurationError(
                    f"'{param}' values must be strings, numbers or booleans, got {value!r}",
                    template.rel_path,
                )
            segment = value_to_segment(value)
            if not segment.strip():
                raise ConfigurationError(f"'{param}' contains an empty value", template.rel_path)
            if '/' in segment:
                raise ConfigurationError(
                    f"'{param}' value {segment!r} contains '/' and can't be used in a URL",
                    template.rel_path,
                )

        distinct = dedupe(values)
        if len(distinct) != len(values):
            logger.debug(f"{template.rel_path}: dropped {len(values) - len(distinct)} duplicate value(s)")
        return distinct

    def expand_dynamic(self, template: PageTemplate, query_env: Environment) -> List[Page]:
        """One Page per distinct bracket value."""
        values = self.bracket_values(template, query_env)
        placeholder = f"[{template.param}]"
        pages = []
        for index, value in enumerate(values):
            fields = dict(template.frontmatter)
            fields[template.param] = value
            fields = self._resolve(template, fields)
            url = template.url_stem.replace(placeholder, value_to_segment(value))
            page = Page(url, freeze_mapping(fields), Expanded(template.param, value, index), template)
            require_title(page)
            pages.append(page)

        logger.debug(f"Expanded {template.rel_path} into {len(pages)} page(s)")
        return pages


def require_title(page: Page) -> None:
    """Every page must end up with a title once its fields are resolved."""
    if 'title' not in page.frontmatter:
        raise FrontmatterError(
            f"page {page.url} is missing required frontmatter field 'title'",
            page.source_path,
        )
