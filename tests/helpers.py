"""Shared helpers for Quire tests."""

import os

from quire.config import SiteConfig
from quire.models import NotFound, Ordinary, Page, PageTemplate, SourceEntry, SourceKind, freeze_mapping

STRUCTURE = {
    '_/header.md': '# Site Header\n',
    '_/nav.md': '[Home](/)\n',
    '_/footer.md': 'Footer text\n',
}


def make_config(site=None, build=None, feeds=None):
    """SiteConfig for tests: no minification and no highlighting unless asked."""
    build_section = {'minify': False, 'syntax_highlighting': {'enabled': False}}
    build_section.update(build or {})
    return SiteConfig.from_dict({
        'site': site or {'title': 'Test Site'},
        'build': build_section,
        'feeds': feeds or [],
    })


def read_output(output_dir, rel_path):
    with open(os.path.join(output_dir, *rel_path.split('/')), encoding='utf-8') as f:
        return f.read()


def make_template(rel_path, url_stem, param=None, body='', not_found=False, **fields):
    return PageTemplate(
        source=SourceEntry('/site/' + rel_path, rel_path, SourceKind.CONTENT),
        url_stem=url_stem,
        frontmatter=freeze_mapping(fields),
        body=body,
        param=param,
        is_not_found=not_found,
    )


def make_page(url, rel_path=None, kind=None, **fields):
    """A Page built directly, without going through the file system."""
    rel_path = rel_path or (url.strip('/') or 'index') + '.md'
    kind = kind or Ordinary()
    template = make_template(rel_path, url, not_found=isinstance(kind, NotFound), **fields)
    return Page(url, freeze_mapping(fields), kind, template)
