"""
Page rendering.

Once the registry is frozen every page goes through the same steps:
resolve its registry-dependent fields, render the body template, convert
the result from markdown, wrap it in the content wrapper (also markdown),
and finally place it in the root layout together with the pre-rendered
header, nav and footer.
"""

import functools
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict

from jinja2 import Environment, Template

from .config import SiteConfig
from .diagnostics import Diagnostics
from .errors import RenderError
from .markdown import MarkdownRenderer
from .models import Page, RenderedPage, freeze_mapping
from .registry import PageRegistry, page_view
from .seo import base_url, build_seo_context, path_class
from .structure import FOOTER, HEADER, NAV, StructuralSet
from .template_env import resolve_fields, to_render_error

logger = logging.getLogger('Quire.renderer')


@dataclass(frozen=True)
class BuildContext:
    """Everything rendering reads; shared, read-only, across render threads."""
    config: SiteConfig
    registry: PageRegistry
    structure: StructuralSet
    env: Environment
    markdown: MarkdownRenderer
    diagnostics: Diagnostics
    highlight_css: bool = False


class PageRenderer:
    def __init__(self, context: BuildContext):
        self.context = context
        self.env = context.env
        self._lock = threading.Lock()
        self._bodies: Dict[str, Template] = {}

        structure = context.structure
        self.content_wrapper = self._compile(structure.content_wrapper, structure.content_wrapper_path)
        self.root_layout = self._compile(structure.root_layout, structure.root_layout_path)

        self.header = self._render_structural(structure.header, HEADER)
        self.nav = self._render_structural(structure.nav, NAV)
        self.footer = self._render_structural(structure.footer, FOOTER)

    def _compile(self, source: str, path: str, first_line: int = 1) -> Template:
        try:
            return self.env.from_string(source)
        except Exception as e:
            raise to_render_error(e, path, first_line) from e

    def _render(self, template: Template, scope: Dict[str, Any], path: str, first_line: int = 1) -> str:
        try:
            return template.render(scope)
        except Exception as e:
            raise to_render_error(e, path, first_line) from e

    def _render_structural(self, source: str, path: str) -> str:
        text = self._render(self._compile(source, path), {}, path)
        return self.context.markdown.render(text, path)

    def _body_template(self, page: Page) -> Template:
        key = page.source_path
        with self._lock:
            template = self._bodies.get(key)
        if template is None:
            template = self._compile(page.template.body, key, page.template.body_line)
            with self._lock:
                self._bodies.setdefault(key, template)
        return template

    def page_scope(self, page: Page) -> Dict[str, Any]:
        """Scope shared by every template of ``page``, before field resolution."""
        registry = self.context.registry
        return {
            'url': page.url,
            'path_class': path_class(page.url, page.is_not_found),
            'base': '/' if page.is_not_found else base_url(page.url),
            'prev_page': functools.partial(registry.previous_view, page),
            'next_page': functools.partial(registry.next_view, page),
        }

    def resolve(self, page: Page) -> Page:
        """Second pass: evaluate every field still holding an expression."""
        scope = self.page_scope(page)
        scope['page'] = self.context.registry.view(page)
        fields = resolve_fields(self.env, page.frontmatter, scope, page.source_path)
        return replace(page, frontmatter=freeze_mapping(fields))

    def render(self, page: Page) -> RenderedPage:
        context = self.context
        site = context.config.site
        resolved = self.resolve(page)

        scope = dict(resolved.frontmatter)
        scope.update(self.page_scope(resolved))
        scope['page'] = page_view(resolved)

        body = self._render(self._body_template(page), scope, page.source_path, page.template.body_line)
        body_html = context.markdown.render(body, page.source_path)

        seo = build_seo_context(resolved.frontmatter, page.url, site, context.diagnostics, page.source_path)
        scope['seo'] = seo

        try:
            wrapper_scope = dict(scope, content=body_html)
            wrapped = self._render(self.content_wrapper, wrapper_scope, context.structure.content_wrapper_path)
            main_html = context.markdown.render(wrapped, context.structure.content_wrapper_path)

            root_scope = dict(
                scope,
                title=seo['og_title'],
                content=main_html,
                header=self.header,
                nav=self.nav,
                footer=self.footer,
                theme_css=context.structure.theme_css is not None,
                highlight_css=context.highlight_css,
            )
            document = self._render(self.root_layout, root_scope, context.structure.root_layout_path)
        except RenderError as e:
            raise RenderError(f"{e.message} (while rendering {page.source_path} as {page.url})",
                              path=e.path, line=e.line, expression=e.expression) from e

        logger.debug(f"Rendered {page.url} from {page.source_path}")
        return RenderedPage(resolved, document)
