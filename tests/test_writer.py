"""Tests for output writing and cache busting."""

import hashlib
import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from helpers import make_page, read_output
from quire.cache_bust import CacheBuster, content_hash, hashed_path, normalize_asset_path
from quire.errors import CollisionError, OutputError
from quire.models import NotFound, RenderedPage, SourceEntry, SourceKind
from quire.writer import OutputWriter, SiteOutput, url_to_output_path


class TestOutputPaths:
    """Test cases for URL to file mapping."""

    @pytest.mark.parametrize('url, expected', [
        ('/', 'index.html'),
        ('/about', 'about/index.html'),
        ('/blog/', 'blog/index.html'),
        ('/blog/post-a', 'blog/post-a/index.html'),
    ])
    def test_url_to_output_path(self, url, expected):
        assert url_to_output_path(url) == expected

    def test_not_found_page(self):
        assert url_to_output_path('/404', not_found=True) == '404.html'


class TestCacheBust:
    """Test cases for content-hashed asset paths."""

    def test_hashed_path(self):
        assert hashed_path('/css/theme.css', 'abcd1234') == '/css/theme.abcd1234.css'
        assert hashed_path('/LICENSE', 'abcd1234') == '/LICENSE.abcd1234'
        assert hashed_path('/.env', 'abcd1234') == '/.env.abcd1234'

    def test_content_hash(self):
        assert content_hash(b'abc') == hashlib.sha256(b'abc').hexdigest()[:8]

    @pytest.mark.parametrize('path, expected', [
        ('theme.css', '/theme.css'),
        ('/css/../theme.css', '/theme.css'),
        (' /a.js ', '/a.js'),
    ])
    def test_normalize_asset_path(self, path, expected):
        assert normalize_asset_path(path) == expected

    @pytest.mark.parametrize('path', ['', '/', None])
    def test_invalid_asset_path(self, path):
        with pytest.raises(OutputError):
            normalize_asset_path(path)

    def test_site_file(self, temp_dir):
        with open(os.path.join(temp_dir, 'app.js'), 'wb') as f:
            f.write(b'let x = 1;')
        buster = CacheBuster(temp_dir)

        hashed = buster('/app.js')
        assert hashed == f"/app.{content_hash(b'let x = 1;')}.js"
        assert buster('app.js') == hashed
        assert buster.entries() == {'/app.js': (hashed, b'let x = 1;')}

    def test_generated_content_wins(self, temp_dir):
        buster = CacheBuster(temp_dir, {'/theme.css': b'body{}'})
        assert buster('/theme.css') == f"/theme.{content_hash(b'body{}')}.css"

    def test_path_outside_site(self, temp_dir):
        site_dir = os.path.join(temp_dir, 'site')
        os.makedirs(site_dir)
        buster = CacheBuster(site_dir)
        # normalisation keeps the path inside the site root
        with pytest.raises(OutputError, match='cannot read'):
            buster('/../secret.txt')

    def test_missing_file(self, temp_dir):
        with pytest.raises(OutputError, match='cannot read'):
            CacheBuster(temp_dir)('/nope.css')


def rendered(url, html, **kwargs):
    return RenderedPage(make_page(url, title=url, **kwargs), html)


class TestOutputWriter:
    """Test cases for OutputWriter."""

    def test_write_layout(self, temp_dir, output_dir):
        asset_path = os.path.join(temp_dir, 'logo.png')
        with open(asset_path, 'wb') as f:
            f.write(b'\x89PNG')
        output = SiteOutput(
            pages=[
                rendered('/', '<p>home</p>'),
                rendered('/about', '<p>about</p>'),
                RenderedPage(make_page('/404', rel_path='[404].md', kind=NotFound(), title='x'), '<p>404</p>'),
            ],
            documents={'sitemap.xml': '<urlset/>'},
            stylesheets={'/highlight.css': '.highlight {}'},
            assets=[SourceEntry(asset_path, 'img/logo.png', SourceKind.ASSET)],
        )
        writer = OutputWriter(output_dir)
        writer.write(output)

        assert read_output(output_dir, 'index.html') == '<p>home</p>'
        assert read_output(output_dir, 'about/index.html') == '<p>about</p>'
        assert read_output(output_dir, '404.html') == '<p>404</p>'
        assert read_output(output_dir, 'sitemap.xml') == '<urlset/>'
        assert read_output(output_dir, 'highlight.css') == '.highlight {}'
        with open(os.path.join(output_dir, 'img', 'logo.png'), 'rb') as f:
            assert f.read() == b'\x89PNG'
        assert writer.pages_written == 3
        assert writer.assets_copied == 1

    def test_cache_busted_stylesheet_replaces_plain_one(self, output_dir):
        output = SiteOutput(
            stylesheets={'/theme.css': 'body{}'},
            cache_busted={'/theme.css': ('/theme.0123abcd.css', b'body{}')},
        )
        OutputWriter(output_dir).write(output)
        assert os.listdir(output_dir) == ['theme.0123abcd.css']

    def test_collision_between_page_and_document(self, output_dir):
        output = SiteOutput(
            pages=[rendered('/sitemap.xml', '<p>x</p>')],
            documents={'sitemap.xml/index.html': '<p>y</p>'},
        )
        with pytest.raises(CollisionError) as excinfo:
            OutputWriter(output_dir).write(output)
        assert excinfo.value.first_source == 'sitemap.xml.md'
        assert not os.path.exists(output_dir)

    def test_replaces_previous_output(self, output_dir):
        OutputWriter(output_dir).write(SiteOutput(pages=[rendered('/old', 'old')]))
        OutputWriter(output_dir).write(SiteOutput(pages=[rendered('/new', 'new')]))

        assert not os.path.exists(os.path.join(output_dir, 'old'))
        assert read_output(output_dir, 'new/index.html') == 'new'
        parent = os.path.dirname(output_dir)
        assert [name for name in os.listdir(parent) if name.startswith('.quire-')] == []

    def test_output_path_is_a_file(self, output_dir):
        with open(output_dir, 'w') as f:
            f.write('not a directory')
        with pytest.raises(OutputError, match='not a directory'):
            OutputWriter(output_dir).write(SiteOutput(pages=[rendered('/', 'x')]))
        parent = os.path.dirname(output_dir)
        assert [name for name in os.listdir(parent) if name.startswith('.quire-')] == []

    def test_minify(self, output_dir):
        html = '<html>\n  <body>\n    <p>  Hello  </p>\n  </body>\n</html>\n'
        OutputWriter(output_dir, minify=True).write(SiteOutput(pages=[rendered('/', html)]))
        minified = read_output(output_dir, 'index.html')
        assert len(minified) < len(html)
        assert 'Hello' in minified
