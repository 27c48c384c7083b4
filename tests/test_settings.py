"""Tests for configuration loading and validation."""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from quire.config import SiteConfig
from quire.errors import ConfigurationError
from quire.settings import QuireSettings


def write_file(directory, name, content):
    path = os.path.join(directory, name)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)
    return path


class TestQuireSettings:
    """Test cases for QuireSettings."""

    def test_defaults_without_config_file(self, temp_dir):
        """Test that defaults apply when the site has no config file."""
        settings = QuireSettings(temp_dir).load_settings()
        assert settings['build']['minify'] is True
        assert settings['site']['language'] == 'en-us'
        assert settings['feeds'] == []

    def test_load_toml(self, temp_dir):
        """Test loading a TOML config with nested tables."""
        write_file(temp_dir, 'config.toml', (
            '[site]\ntitle = "My Site"\nurl = "https://example.com/"\n\n'
            '[build.syntax_highlighting]\ntheme = "monokai"\n'
        ))
        loader = QuireSettings(temp_dir)
        config = loader.site_config()

        assert loader.config_file_path.endswith('config.toml')
        assert config.site.title == 'My Site'
        assert config.site.url == 'https://example.com'
        assert config.build.highlight_theme == 'monokai'
        assert config.build.highlighting is True

    def test_load_yaml(self, temp_dir):
        """Test loading a YAML config."""
        write_file(temp_dir, 'config.yml', 'site:\n  title: YAML Site\nbuild:\n  minify: false\n')
        config = QuireSettings(temp_dir).site_config()
        assert config.site.title == 'YAML Site'
        assert config.build.minify is False

    def test_load_json(self, temp_dir):
        """Test loading a JSON config."""
        write_file(temp_dir, 'config.json', '{"site": {"author": "Ada"}}')
        config = QuireSettings(temp_dir).site_config()
        assert config.site.author == 'Ada'

    def test_toml_preferred_over_yaml(self, temp_dir):
        """Test that config.toml wins when several config files exist."""
        write_file(temp_dir, 'config.toml', '[site]\ntitle = "TOML"\n')
        write_file(temp_dir, 'config.yaml', 'site:\n  title: YAML\n')
        assert QuireSettings(temp_dir).site_config().site.title == 'TOML'

    @pytest.mark.parametrize('name, content, message', [
        ('config.toml', '[site\ntitle = 1', 'Invalid TOML'),
        ('config.yml', 'site: [unclosed', 'Invalid YAML'),
        ('config.json', '{"site": ', 'Invalid JSON'),
    ])
    def test_invalid_files(self, temp_dir, name, content, message):
        """Test that malformed config files raise ConfigurationError."""
        path = write_file(temp_dir, name, content)
        with pytest.raises(ConfigurationError, match=message) as excinfo:
            QuireSettings(temp_dir).load_settings()
        assert excinfo.value.path == path

    def test_non_mapping_config(self, temp_dir):
        """Test that a YAML list is rejected."""
        write_file(temp_dir, 'config.yml', '- one\n- two\n')
        with pytest.raises(ConfigurationError, match='mapping'):
            QuireSettings(temp_dir).load_settings()

    def test_validation_error_names_config_file(self, temp_dir):
        """Test that validation errors point at the config file."""
        path = write_file(temp_dir, 'config.toml', '[build]\nreading_speed = 0\n')
        with pytest.raises(ConfigurationError, match='reading_speed') as excinfo:
            QuireSettings(temp_dir).site_config()
        assert excinfo.value.path == path

    def test_merge_with_args(self, temp_dir):
        """Test that command-line arguments override file settings."""
        write_file(temp_dir, 'config.toml', '[site]\nurl = "https://file.example"\n')
        config = QuireSettings(temp_dir).site_config({
            'site_url': 'https://cli.example',
            'minify': False,
            'workers': 2,
            'verbose': None,
        })
        assert config.site.url == 'https://cli.example'
        assert config.build.minify is False
        assert config.build.workers == 2

    def test_create_sample_config_is_loadable(self, temp_dir):
        """Test that the sample config parses and validates."""
        loader = QuireSettings(temp_dir)
        path = loader.create_sample_config('Sample "Quoted" Site')
        assert os.path.basename(path) == 'config.toml'

        config = QuireSettings(temp_dir).site_config()
        assert config.site.title == 'Sample "Quoted" Site'
        assert [feed.name for feed in config.feeds] == ['blog']
        assert config.feeds[0].outputs == ('blog.xml', 'blog.atom')


class TestSiteConfig:
    """Test cases for SiteConfig validation."""

    def test_empty_config(self):
        config = SiteConfig.from_dict({})
        assert config.site.title is None
        assert config.build.minify is True
        assert config.build.reading_speed == 200
        assert config.feeds == ()

    def test_feed_defaults(self):
        config = SiteConfig.from_dict({'feeds': [{'name': 'blog', 'source': 'blog/', 'output_rss': '/rss.xml'}]})
        feed = config.feeds[0]
        assert feed.source == '/blog'
        assert feed.output_rss == 'rss.xml'
        assert feed.limit == 20

    @pytest.mark.parametrize('data, message', [
        ({'site': 'nope'}, "'site' must be a table"),
        ({'site': {'title': 5}}, "'site.title' must be a string"),
        ({'build': {'minify': 'yes'}}, "'build.minify'"),
        ({'build': {'workers': 0}}, "'build.workers'"),
        ({'feeds': {'name': 'x'}}, "'feeds' must be a list"),
        ({'feeds': [{'source': '/blog', 'output_rss': 'a.xml'}]}, 'name'),
        ({'feeds': [{'name': 'blog', 'source': '/blog'}]}, 'output_rss and/or output_atom'),
        ({'feeds': [{'name': 'blog', 'source': '/blog', 'output_rss': '../a.xml'}]}, 'inside the output'),
        ({'feeds': [{'name': 'blog', 'source': '/blog', 'output_rss': 'a.xml', 'limit': -1}]}, 'limit'),
    ])
    def test_invalid_values(self, data, message):
        with pytest.raises(ConfigurationError, match=message):
            SiteConfig.from_dict(data)

    def test_feeds_require_site_url(self):
        config = SiteConfig.from_dict({
            'site': {'title': 'T'},
            'feeds': [{'name': 'blog', 'source': '/blog', 'output_rss': 'blog.xml'}],
        })
        with pytest.raises(ConfigurationError, match='site.url is required'):
            config.require_site_url_for_feeds()

    def test_feeds_require_a_title(self):
        config = SiteConfig.from_dict({
            'site': {'url': 'https://example.com'},
            'feeds': [{'name': 'blog', 'source': '/blog', 'output_rss': 'blog.xml'}],
        })
        with pytest.raises(ConfigurationError, match='no title'):
            config.require_site_url_for_feeds()
