"""
Output writing.

Everything a build produces is collected in a SiteOutput first. The writer
then lays it out in a temporary directory next to the output directory and
swaps that into place, so a failed build never leaves a half-written site.
"""

import logging
import os
import shutil
import tempfile
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from .diagnostics import Diagnostics
from .errors import CollisionError, OutputError
from .minify import minify_html_content
from .models import NOT_FOUND_FILENAME, RenderedPage, SourceEntry

logger = logging.getLogger('Quire.writer')


def url_to_output_path(url: str, not_found: bool = False) -> str:
    """Output file, relative to the output directory, for a page URL."""
    if not_found:
        return NOT_FOUND_FILENAME
    cleaned = url.strip('/')
    return f"{cleaned}/index.html" if cleaned else 'index.html'


@dataclass
class SiteOutput:
    """Every artifact of a successful build, not yet on disk."""
    pages: List[RenderedPage] = field(default_factory=list)
    documents: Dict[str, str] = field(default_factory=dict)
    stylesheets: Dict[str, str] = field(default_factory=dict)
    assets: List[SourceEntry] = field(default_factory=list)
    cache_busted: Dict[str, Tuple[str, bytes]] = field(default_factory=dict)


# A planned file is either content to write or a source file to copy.
Planned = Tuple[str, Union[bytes, SourceEntry]]


class OutputWriter:
    def __init__(self, output_dir: str, minify: bool = False, diagnostics: Optional[Diagnostics] = None):
        self.output_dir = os.path.abspath(output_dir)
        self.minify = minify
        self.diagnostics = diagnostics
        self.pages_written = 0
        self.assets_copied = 0

    def plan(self, output: SiteOutput) -> Dict[str, Planned]:
        """Map every output path to its origin and content, rejecting collisions."""
        planned: Dict[str, Planned] = {}

        def add(rel_path: str, origin: str, content: Union[bytes, SourceEntry]):
            existing = planned.get(rel_path)
            if existing is not None:
                raise CollisionError(rel_path, existing[0], origin)
            planned[rel_path] = (origin, content)

        for rendered in output.pages:
            page = rendered.page
            html = rendered.html
            if self.minify:
                html = minify_html_content(html, self.diagnostics, page.source_path)
            add(url_to_output_path(page.url, page.is_not_found), page.source_path, html.encode('utf-8'))

        for rel_path, text in output.documents.items():
            add(rel_path, rel_path, text.encode('utf-8'))

        for asset in output.assets:
            add(asset.rel_path, asset.rel_path, asset)

        for url, css in output.stylesheets.items():
            if url in output.cache_busted:
                continue
            add(url.lstrip('/'), f"generated {url}", css.encode('utf-8'))

        for url, (hashed, content) in output.cache_busted.items():
            add(hashed.lstrip('/'), f"cache_bust({url})", content)

        return planned

    def write(self, output: SiteOutput) -> None:
        """Write a complete build and swap it into place."""
        planned = self.plan(output)

        parent = os.path.dirname(self.output_dir)
        try:
            os.makedirs(parent, exist_ok=True)
            temp_dir = tempfile.mkdtemp(prefix='.quire-build-', dir=parent)
        except (IOError, OSError) as e:
            raise OutputError(f"cannot create build directory next to {self.output_dir}: {e}") from e

        try:
            os.chmod(temp_dir, 0o755)
            for rel_path in sorted(planned):
                self._write_file(temp_dir, rel_path, planned[rel_path][1])
            self._swap(temp_dir)
        except (IOError, OSError) as e:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise OutputError(f"failed to write output: {e}") from e
        except BaseException:
            shutil.rmtree(temp_dir, ignore_errors=True)
            raise

        self.pages_written = len(output.pages)
        self.assets_copied = len(output.assets)
        logger.debug(f"Wrote {len(planned)} files to {self.output_dir}")

    def _write_file(self, root: str, rel_path: str, content: Union[bytes, SourceEntry]) -> None:
        target = os.path.join(root, *rel_path.split('/'))
        os.makedirs(os.path.dirname(target), exist_ok=True)
        if isinstance(content, SourceEntry):
            shutil.copy2(content.path, target)
        else:
            with open(target, 'wb') as f:
                f.write(content)

    def _swap(self, temp_dir: str) -> None:
        if not os.path.exists(self.output_dir):
            os.rename(temp_dir, self.output_dir)
            return
        if not os.path.isdir(self.output_dir):
            raise OutputError("output path exists and is not a directory", self.output_dir)

        backup = tempfile.mkdtemp(prefix='.quire-old-', dir=os.path.dirname(self.output_dir))
        os.rmdir(backup)
        os.rename(self.output_dir, backup)
        try:
            os.rename(temp_dir, self.output_dir)
        except OSError:
            os.rename(backup, self.output_dir)
            raise
        shutil.rmtree(backup, ignore_errors=True)
