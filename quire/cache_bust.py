"""
Content-hashed asset URLs.

``cache_bust(path="/theme.css")`` in a template returns
``/theme.<hash>.css``, where the hash is the first eight hex digits of the
file's sha256, and records the pair so the writer emits the hashed copy.
"""

import hashlib
import os
import posixpath
import threading
from typing import Dict, Mapping, Optional, Tuple

from .errors import OutputError

HASH_LENGTH = 8


def content_hash(content: bytes) -> str:
    return hashlib.sha256(content).hexdigest()[:HASH_LENGTH]


def hashed_path(path: str, digest: str) -> str:
    """Insert ``digest`` before the file extension of ``path``."""
    directory, filename = posixpath.split(path)
    stem, ext = posixpath.splitext(filename)
    if not stem:
        stem, ext = filename, ''
    return posixpath.join(directory, f"{stem}.{digest}{ext}")


def normalize_asset_path(path: str) -> str:
    if not isinstance(path, str) or not path.strip():
        raise OutputError("cache_bust() needs a non-empty path")
    normalized = posixpath.normpath('/' + path.strip().lstrip('/'))
    if normalized == '/':
        raise OutputError(f"cache_bust() path {path!r} does not name a file")
    return normalized


class CacheBuster:
    """Registry of original asset path to hashed path, shared by render threads."""

    def __init__(self, site_dir: str, generated: Optional[Mapping[str, bytes]] = None):
        self.site_dir = os.path.abspath(site_dir)
        self._generated = {normalize_asset_path(path): content for path, content in (generated or {}).items()}
        self._lock = threading.Lock()
        self._entries: Dict[str, Tuple[str, bytes]] = {}

    def _read(self, path: str) -> bytes:
        if path in self._generated:
            return self._generated[path]

        full_path = os.path.abspath(os.path.join(self.site_dir, path.lstrip('/')))
        # Security: refuse paths that resolve outside the site directory
        if os.path.commonpath([self.site_dir, full_path]) != self.site_dir:
            raise OutputError(f"cache_bust() path {path!r} is outside the site directory")
        try:
            with open(full_path, 'rb') as f:
                return f.read()
        except (IOError, OSError) as e:
            raise OutputError(f"cache_bust() cannot read {path!r}: {e}") from e

    def __call__(self, path: str = None) -> str:
        path = normalize_asset_path(path)
        with self._lock:
            entry = self._entries.get(path)
            if entry is None:
                content = self._read(path)
                entry = (hashed_path(path, content_hash(content)), content)
                self._entries[path] = entry
        return entry[0]

    def entries(self) -> Dict[str, Tuple[str, bytes]]:
        """Snapshot of original path to (hashed path, content), sorted by path."""
        with self._lock:
            return dict(sorted(self._entries.items()))
