"""Tests for content discovery and URL derivation."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire.discovery import bracket_name, derive_url, discover, split_entries
from quire.errors import ConfigurationError
from quire.models import SourceKind


class TestDeriveUrl:
    """Test cases for derive_url."""

    @pytest.mark.parametrize('rel_path, expected', [
        ('index.md', '/'),
        ('about.md', '/about'),
        ('blog/index.md', '/blog/'),
        ('blog/post-a.md', '/blog/post-a'),
        ('docs/guide/install.md', '/docs/guide/install'),
        ('tags/[tag].md', '/tags/[tag]'),
        ('[404].md', '/404'),
    ])
    def test_derive_url(self, rel_path, expected):
        assert derive_url(rel_path) == expected

    def test_derive_url_is_pure(self):
        """Same path, same URL, regardless of call order."""
        first = derive_url('blog/post-a.md')
        derive_url('index.md')
        assert derive_url('blog/post-a.md') == first

    def test_index_only_collapses_as_full_stem(self):
        assert derive_url('blog/reindex.md') == '/blog/reindex'


class TestBracketName:
    """Test cases for bracket stem detection."""

    def test_simple_bracket(self):
        assert bracket_name('[tag]') == 'tag'

    def test_plain_stem(self):
        assert bracket_name('tag') is None

    def test_double_bracket_is_not_dynamic(self):
        assert bracket_name('[a][b]') is None

    def test_partial_bracket_is_not_dynamic(self):
        assert bracket_name('post-[id]') is None


class TestDiscover:
    """Test cases for walking the site tree."""

    def test_classifies_entries(self, make_site):
        site_dir = make_site({
            'index.md': '---\ntitle: Home\n---\n',
            'blog/post.md': '---\ntitle: Post\n---\n',
            'css/site.css': 'body {}',
            'config.toml': '[site]\n',
            '.hidden': 'secret',
            '.git/HEAD': 'ref',
        })

        content, structural, assets = split_entries(discover(site_dir))

        assert [entry.rel_path for entry in content] == ['index.md', 'blog/post.md']
        assert [entry.rel_path for entry in structural] == ['_/footer.md', '_/header.md', '_/nav.md']
        assert [entry.rel_path for entry in assets] == ['css/site.css']

    def test_directories_are_reported(self, make_site):
        site_dir = make_site({'blog/post.md': '---\ntitle: Post\n---\n'})
        directories = [entry.rel_path for entry in discover(site_dir) if entry.kind is SourceKind.DIRECTORY]
        assert 'blog' in directories
        assert '_' in directories

    def test_discovery_is_sorted(self, make_site):
        site_dir = make_site({
            'b.md': '---\ntitle: B\n---\n',
            'a.md': '---\ntitle: A\n---\n',
            'c/a.md': '---\ntitle: CA\n---\n',
        })
        first = [entry.rel_path for entry in discover(site_dir)]
        second = [entry.rel_path for entry in discover(site_dir)]
        assert first == second
        content = [path for path in first if path.endswith('.md') and not path.startswith('_')]
        assert content == ['a.md', 'b.md', 'c/a.md']

    def test_config_only_ignored_at_root(self, make_site):
        site_dir = make_site({'data/config.toml': 'x = 1'})
        _, _, assets = split_entries(discover(site_dir))
        assert [entry.rel_path for entry in assets] == ['data/config.toml']

    def test_bracket_directory_is_fatal(self, make_site):
        site_dir = make_site({'[lang]/index.md': '---\ntitle: Lang\n---\n'})
        with pytest.raises(ConfigurationError, match='bracket'):
            discover(site_dir)

    def test_excluded_directory_is_skipped(self, make_site):
        site_dir = make_site({'output/index.html': '<html></html>', 'index.md': '---\ntitle: Home\n---\n'})
        entries = discover(site_dir, exclude=[os.path.join(site_dir, 'output')])
        assert not any(entry.rel_path.startswith('output') for entry in entries)

    def test_missing_site_directory(self, temp_dir):
        with pytest.raises(ConfigurationError):
            discover(os.path.join(temp_dir, 'missing'))
