"""
Snippets: reusable template fragments stored under ``_/macros/``.

Each snippet file's frontmatter declares its parameters and their defaults,
and its body is the template. In a page a snippet is called like a function,
optionally with a block that the snippet reads through ``caller()``::

    {% call card(title="Hello") %}Body text{% endcall %}
"""

import os
from dataclasses import dataclass
from typing import Any, Mapping

from jinja2 import Environment

from .errors import ConfigurationError
from .frontmatter import read_source, split_frontmatter
from .models import Expression, SourceEntry, freeze_mapping
from .template_env import to_render_error

RESERVED_NAMES = frozenset({
    'caller', 'page', 'pages', 'tags', 'site', 'seo', 'url', 'base',
    'path_class', 'content', 'prev_page', 'next_page', 'readtime', 'cache_bust', 'help',
})


@dataclass(frozen=True)
class SnippetDefinition:
    name: str
    params: Mapping[str, Any]
    body: str
    source_path: str
    body_line: int = 1


def _literal(value: Any) -> Any:
    if isinstance(value, Expression):
        return value.text
    if isinstance(value, list):
        return [_literal(item) for item in value]
    if isinstance(value, dict):
        return {key: _literal(item) for key, item in value.items()}
    return value


def load_snippet(entry: SourceEntry) -> SnippetDefinition:
    name = os.path.splitext(os.path.basename(entry.rel_path))[0]
    if not name.isidentifier():
        raise ConfigurationError(f"snippet name '{name}' is not a valid identifier", entry.rel_path)
    if name in RESERVED_NAMES:
        raise ConfigurationError(f"snippet name '{name}' is reserved", entry.rel_path)

    fields, body, body_line = split_frontmatter(read_source(entry), entry.rel_path)
    for param in fields:
        if not param.isidentifier():
            raise ConfigurationError(
                f"snippet parameter '{param}' is not a valid identifier", entry.rel_path
            )
    params = {key: _literal(value) for key, value in fields.items()}
    return SnippetDefinition(name, freeze_mapping(params), body, entry.rel_path, body_line)


class Snippet:
    """A snippet bound to a template environment, callable from templates."""

    def __init__(self, definition: SnippetDefinition, env: Environment):
        self.definition = definition
        self.name = definition.name
        try:
            self.template = env.from_string(definition.body)
        except Exception as e:
            raise to_render_error(e, definition.source_path, definition.body_line) from e

    def _bind(self, args, kwargs):
        params = list(self.definition.params)
        if len(args) > len(params):
            raise TypeError(
                f"snippet '{self.name}' takes {len(params)} argument(s) but {len(args)} were given"
            )
        bound = dict(zip(params, args))
        for key, value in kwargs.items():
            if key not in self.definition.params:
                raise TypeError(f"snippet '{self.name}' got an unexpected argument '{key}'")
            if key in bound:
                raise TypeError(f"snippet '{self.name}' got multiple values for argument '{key}'")
            bound[key] = value
        return bound

    def __call__(self, *args, caller=None, **kwargs):
        scope = dict(self.definition.params)
        scope.update(self._bind(args, kwargs))

        block = caller() if caller is not None else ''
        scope['caller'] = lambda: block

        try:
            return self.template.render(scope)
        except Exception as e:
            raise to_render_error(e, self.definition.source_path, self.definition.body_line) from e

    def __repr__(self):
        return f"<Snippet {self.name}({', '.join(self.definition.params)})>"
