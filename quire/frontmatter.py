"""
Frontmatter parsing: split a content file into its YAML header and body,
and mark template-bearing values as Expressions.
"""

import os
import re
from typing import Any, Dict, Tuple

import yaml

from .discovery import bracket_name, derive_url, is_not_found
from .errors import ConfigurationError, FrontmatterError
from .models import Expression, PageTemplate, SourceEntry, freeze_mapping

FRONTMATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?)^---[ \t]*(?:\r?\n|\Z)', re.DOTALL | re.MULTILINE)
OPENING_RE = re.compile(r'\A---[ \t]*\r?\n')
REGISTRY_CALL_RE = re.compile(r'\b(?:pages|tags|prev_page|next_page)\s*\(')

TEMPLATE_MARKERS = ('{{', '{%')


def is_template_text(value: str) -> bool:
    return any(marker in value for marker in TEMPLATE_MARKERS)


def make_expression(text: str) -> Expression:
    return Expression(text, needs_registry=bool(REGISTRY_CALL_RE.search(text)))


def mark_expressions(value: Any) -> Any:
    """Recursively turn template-bearing strings into Expression values."""
    if isinstance(value, str):
        return make_expression(value) if is_template_text(value) else value
    if isinstance(value, list):
        return [mark_expressions(item) for item in value]
    if isinstance(value, dict):
        return {key: mark_expressions(item) for key, item in value.items()}
    return value


def split_frontmatter(text: str, path: str = None) -> Tuple[Dict[str, Any], str, int]:
    """Split raw file text into (fields, body, first body line).

    A file without a leading ``---`` line has no frontmatter and its whole
    text is the body.
    """
    if text.startswith('\ufeff'):
        text = text[1:]

    match = FRONTMATTER_RE.match(text)
    if not match:
        if OPENING_RE.match(text):
            raise FrontmatterError("frontmatter header is not closed with '---'", path)
        return {}, text, 1

    header = match.group(1)
    body = text[match.end():]
    body_line = text.count('\n', 0, match.end()) + 1

    try:
        fields = yaml.safe_load(header) if header.strip() else {}
    except yaml.YAMLError as e:
        raise FrontmatterError(f"invalid YAML in frontmatter: {e}", path) from e

    if fields is None:
        fields = {}
    if not isinstance(fields, dict):
        raise FrontmatterError("frontmatter must be a mapping of field names to values", path)
    for key in fields:
        if not isinstance(key, str):
            raise FrontmatterError(f"frontmatter field names must be strings, got {key!r}", path)

    return {key: mark_expressions(value) for key, value in fields.items()}, body, body_line


def read_source(entry: SourceEntry) -> str:
    try:
        with open(entry.path, 'r', encoding='utf-8') as f:
            return f.read()
    except UnicodeDecodeError as e:
        raise FrontmatterError(f"file is not valid UTF-8: {e}", entry.rel_path) from e
    except (IOError, OSError) as e:
        raise FrontmatterError(f"could not read file: {e}", entry.rel_path) from e


def parse_template(entry: SourceEntry) -> PageTemplate:
    """Parse one content file into a PageTemplate."""
    fields, body, body_line = split_frontmatter(read_source(entry), entry.rel_path)

    stem = os.path.splitext(os.path.basename(entry.rel_path))[0]
    not_found = is_not_found(entry.rel_path)
    param = None if not_found else bracket_name(stem)

    if param is not None:
        if not param.isidentifier():
            raise ConfigurationError(
                f"bracket name '[{param}]' must be a valid identifier", entry.rel_path
            )
    elif 'title' not in fields:
        raise FrontmatterError("missing required frontmatter field 'title'", entry.rel_path)

    return PageTemplate(
        source=entry,
        url_stem=derive_url(entry.rel_path),
        frontmatter=freeze_mapping(fields),
        body=body,
        body_line=body_line,
        param=param,
        is_not_found=not_found,
    )
