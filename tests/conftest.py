"""Test configuration and fixtures for Quire tests."""

import os
import shutil
import sys
import tempfile
from pathlib import Path

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from helpers import STRUCTURE, make_config
from quire.core import Quire


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    temp_dir = tempfile.mkdtemp()
    yield temp_dir
    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def output_dir(temp_dir):
    """Path for build output; not created up front."""
    return os.path.join(temp_dir, 'output')


@pytest.fixture
def make_site(temp_dir):
    """Factory writing a site tree from a {relative path: content} mapping.

    The required structural files are added unless ``structure=False``.
    """
    def _make(files, structure=True, name='site'):
        site_dir = Path(temp_dir) / name
        site_dir.mkdir(parents=True, exist_ok=True)
        contents = dict(STRUCTURE) if structure else {}
        contents.update(files)
        for rel_path, content in contents.items():
            path = site_dir / rel_path
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                path.write_bytes(content)
            else:
                path.write_text(content, encoding='utf-8')
        return str(site_dir)
    return _make


@pytest.fixture
def build_site(output_dir):
    """Build a site directory and return the Quire instance."""
    def _build(site_dir, config=None, output=None, **kwargs):
        generator = Quire(site_dir, output or output_dir, config=config or make_config(), **kwargs)
        generator.build()
        return generator
    return _build
