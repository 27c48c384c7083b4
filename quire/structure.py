"""
Loading of the structural directory ``_``: header, nav, footer, the optional
content wrapper, theme stylesheet, root layout override and snippets.
"""

import logging
from dataclasses import dataclass
from importlib import resources
from typing import Dict, Iterable, Optional, Tuple

from .discovery import STRUCTURAL_DIR
from .errors import ConfigurationError
from .models import SourceEntry
from .snippets import SnippetDefinition, load_snippet

logger = logging.getLogger('Quire.structure')

HEADER = f'{STRUCTURAL_DIR}/header.md'
NAV = f'{STRUCTURAL_DIR}/nav.md'
FOOTER = f'{STRUCTURAL_DIR}/footer.md'
CONTENT_WRAPPER = f'{STRUCTURAL_DIR}/content.md'
THEME = f'{STRUCTURAL_DIR}/theme.css'
ROOT_LAYOUT = f'{STRUCTURAL_DIR}/root.html'
MACROS_DIR = f'{STRUCTURAL_DIR}/macros/'

REQUIRED_FILES = (HEADER, NAV, FOOTER)
DEFAULT_CONTENT_WRAPPER = '{{ content }}'
PACKAGED_ROOT_LAYOUT = 'root.html'


@dataclass(frozen=True)
class StructuralSet:
    header: str
    nav: str
    footer: str
    content_wrapper: str = DEFAULT_CONTENT_WRAPPER
    content_wrapper_path: str = CONTENT_WRAPPER
    theme_css: Optional[str] = None
    root_layout: str = ''
    root_layout_path: str = ROOT_LAYOUT
    snippets: Tuple[SnippetDefinition, ...] = ()


def packaged_root_layout() -> str:
    return resources.files('quire').joinpath('templates', PACKAGED_ROOT_LAYOUT).read_text(encoding='utf-8')


def _read_text(entry: SourceEntry) -> str:
    try:
        with open(entry.path, 'r', encoding='utf-8') as f:
            return f.read()
    except (IOError, OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"could not read structural file: {e}", entry.rel_path) from e


def load_structural_set(entries: Iterable[SourceEntry]) -> StructuralSet:
    """Build the StructuralSet from the discovered ``_`` entries."""
    files: Dict[str, SourceEntry] = {entry.rel_path: entry for entry in entries}

    missing = [path for path in REQUIRED_FILES if path not in files]
    if missing:
        raise ConfigurationError(
            f"missing required structural file(s): {', '.join(missing)}"
        )

    snippets = []
    for rel_path, entry in sorted(files.items()):
        if rel_path.startswith(MACROS_DIR) and rel_path.endswith('.md'):
            if '/' in rel_path[len(MACROS_DIR):]:
                raise ConfigurationError("snippets can't be nested in subdirectories", rel_path)
            snippets.append(load_snippet(entry))
        elif rel_path not in (HEADER, NAV, FOOTER, CONTENT_WRAPPER, THEME, ROOT_LAYOUT):
            logger.debug(f"Ignoring unrecognised structural file {rel_path}")

    if CONTENT_WRAPPER in files:
        content_wrapper = _read_text(files[CONTENT_WRAPPER])
    else:
        content_wrapper = DEFAULT_CONTENT_WRAPPER

    if ROOT_LAYOUT in files:
        root_layout, root_layout_path = _read_text(files[ROOT_LAYOUT]), ROOT_LAYOUT
    else:
        root_layout, root_layout_path = packaged_root_layout(), f'quire/templates/{PACKAGED_ROOT_LAYOUT}'

    return StructuralSet(
        header=_read_text(files[HEADER]),
        nav=_read_text(files[NAV]),
        footer=_read_text(files[FOOTER]),
        content_wrapper=content_wrapper,
        theme_css=_read_text(files[THEME]) if THEME in files else None,
        root_layout=root_layout,
        root_layout_path=root_layout_path,
        snippets=tuple(snippets),
    )
