"""
Content discovery: walk the site tree, classify every entry and derive the
URL each content file maps to.
"""

import logging
import os
import re
from typing import Iterable, List, Optional, Tuple

from .errors import ConfigurationError
from .models import NOT_FOUND_URL, SourceEntry, SourceKind

logger = logging.getLogger('Quire.discovery')

STRUCTURAL_DIR = '_'
CONTENT_SUFFIX = '.md'
NOT_FOUND_STEM = '[404]'
CONFIG_FILES = ('config.toml', 'config.yml', 'config.yaml', 'config.json')

BRACKET_RE = re.compile(r'^\[([^\[\]/]*)\]$')


def bracket_name(stem: str) -> Optional[str]:
    """Return the parameter name of a ``[param]`` stem, or None."""
    match = BRACKET_RE.match(stem)
    if not match:
        return None
    return match.group(1)


def is_not_found(rel_path: str) -> bool:
    return os.path.basename(rel_path) == NOT_FOUND_STEM + CONTENT_SUFFIX


def derive_url(rel_path: str) -> str:
    """Map a content file's path relative to the site root to its URL.

    ``index.md`` collapses to its directory with a trailing slash, any other
    file keeps its stem without one. Bracket stems are kept verbatim so the
    expander can substitute them later.
    """
    rel_path = rel_path.replace(os.sep, '/').strip('/')
    if rel_path.endswith(CONTENT_SUFFIX):
        rel_path = rel_path[:-len(CONTENT_SUFFIX)]

    if is_not_found(rel_path + CONTENT_SUFFIX):
        return NOT_FOUND_URL

    parts = [part for part in rel_path.split('/') if part]
    if parts and parts[-1] == 'index':
        parts = parts[:-1]
        return '/' + '/'.join(parts) + '/' if parts else '/'
    return '/' + '/'.join(parts)


def _classify(rel_path: str) -> SourceKind:
    top = rel_path.split('/', 1)[0]
    if top == STRUCTURAL_DIR:
        return SourceKind.STRUCTURAL
    if rel_path.endswith(CONTENT_SUFFIX):
        return SourceKind.CONTENT
    return SourceKind.ASSET


def discover(site_dir: str, exclude: Iterable[str] = ()) -> List[SourceEntry]:
    """Walk ``site_dir`` in sorted order and classify every entry.

    Dot-files and dot-directories, the root configuration files and any
    directory listed in ``exclude`` (e.g. an output directory nested inside
    the site) are skipped.
    """
    site_dir = os.path.abspath(site_dir)
    if not os.path.isdir(site_dir):
        raise ConfigurationError("site directory does not exist", site_dir)

    excluded = {os.path.abspath(path) for path in exclude}
    entries: List[SourceEntry] = []

    for current, dirs, files in os.walk(site_dir):
        rel_dir = os.path.relpath(current, site_dir).replace(os.sep, '/')
        rel_dir = '' if rel_dir == '.' else rel_dir

        kept = []
        for name in sorted(dirs):
            full = os.path.join(current, name)
            if name.startswith('.') or full in excluded:
                logger.debug(f"Skipping directory {full}")
                continue
            rel = f"{rel_dir}/{name}" if rel_dir else name
            if bracket_name(name) is not None:
                raise ConfigurationError(
                    "bracket-named directories are not supported; "
                    "only file names may carry a [param]", rel
                )
            entries.append(SourceEntry(full, rel, SourceKind.DIRECTORY))
            kept.append(name)
        dirs[:] = kept

        for name in sorted(files):
            if name.startswith('.'):
                continue
            if not rel_dir and name in CONFIG_FILES:
                continue
            rel = f"{rel_dir}/{name}" if rel_dir else name
            entries.append(SourceEntry(os.path.join(current, name), rel, _classify(rel)))

    logger.debug(f"Discovered {len(entries)} entries in {site_dir}")
    return entries


def split_entries(entries: Iterable[SourceEntry]) -> Tuple[List[SourceEntry], List[SourceEntry], List[SourceEntry]]:
    """Split discovered entries into (content, structural, asset) lists."""
    content, structural, assets = [], [], []
    for entry in entries:
        if entry.kind is SourceKind.CONTENT:
            content.append(entry)
        elif entry.kind is SourceKind.STRUCTURAL:
            structural.append(entry)
        elif entry.kind is SourceKind.ASSET:
            assets.append(entry)
    return content, structural, assets
