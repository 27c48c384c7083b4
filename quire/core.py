"""
The build orchestrator and its logging setup.

Quire.build runs the stages in order: discover the site tree, parse every
content file, load the structural set, expand dynamic pages, freeze the
registry, render every page and generate feeds and the sitemap. Parsing and
rendering use a thread pool once a stage has enough files. Nothing reaches
the output directory until every stage has succeeded.
"""

import logging
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from typing import Callable, Iterable, List, Optional, Sequence, TypeVar

from .cache_bust import CacheBuster
from .config import SiteConfig
from .diagnostics import Diagnostics
from .discovery import discover, split_entries
from .expander import PageExpander
from .feeds import generate_feeds
from .frontmatter import parse_template
from .highlight import CodeHighlighter
from .markdown import MarkdownRenderer
from .minify import minify_css_content
from .models import PageTemplate, RenderedPage, SourceEntry
from .registry import PageRegistry
from .renderer import BuildContext, PageRenderer
from .settings import QuireSettings
from .sitemap import generate_sitemap
from .structure import StructuralSet, load_structural_set
from .template_env import create_environment
from .writer import OutputWriter, SiteOutput

T = TypeVar('T')
R = TypeVar('R')

# Pooling only pays off above this many files
PARALLEL_THRESHOLD = 12

THEME_CSS = '/theme.css'
HIGHLIGHT_CSS = '/highlight.css'


class InfoFilter(logging.Filter):
    """Filter to allow only selected INFO messages to be shown in the console."""
    def filter(self, record):
        if record.levelno >= logging.WARNING:
            return True
        allowed_messages = [
            "Site build completed in",
            "Total pages generated:",
            "Total feeds generated:",
            "Total assets copied:",
            "Generating feed",
            "Generating XML sitemap",
            "Skipping XML sitemap",
            "Building 404 page",
            "Build finished with",
        ]
        return any(msg in record.getMessage() for msg in allowed_messages)


def setup_logging(verbose: bool = False, log_dir: Optional[str] = None) -> logging.Logger:
    """Set up console and file logging for command-line use."""
    logger = logging.getLogger('Quire')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    if not logger.handlers:
        # Console handler with filter
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        if not verbose:
            console_handler.addFilter(InfoFilter())
        console_handler.setFormatter(logging.Formatter('%(message)s'))
        logger.addHandler(console_handler)

        # File handler for all logs
        logs_dir = log_dir or os.path.join(os.getcwd(), 'logs')
        os.makedirs(logs_dir, exist_ok=True)
        log_filename = datetime.now().strftime('quire_%Y-%m-%d_%H-%M-%S.log')
        file_handler = logging.FileHandler(os.path.join(logs_dir, log_filename))
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        logger.addHandler(file_handler)
        logger.setLevel(logging.DEBUG)

    return logger


class Quire:
    """Builds a site directory into an output directory.

    A build is all-or-nothing: the first error aborts it and the previous
    contents of the output directory are left untouched.
    """

    def __init__(self, site_dir: str = '.', output_dir: str = 'output',
                 config: Optional[SiteConfig] = None, workers: Optional[int] = None,
                 exclude: Iterable[str] = ()):
        self.site_dir = os.path.abspath(site_dir)
        self.output_dir = os.path.abspath(output_dir)
        self.config = config if config is not None else QuireSettings(self.site_dir).site_config()
        self.workers = workers or self.config.build.workers or os.cpu_count() or 1
        self.exclude = [self.output_dir] + [os.path.abspath(path) for path in exclude]

        self.logger = logging.getLogger('Quire')
        self.diagnostics = Diagnostics()
        self.pages_generated = 0
        self.feeds_generated = 0
        self.assets_copied = 0

    def _map(self, func: Callable[[T], R], items: Sequence[T], what: str) -> List[R]:
        """Apply ``func`` to every item, pooled for large workloads, keeping order."""
        total = len(items)
        if total >= PARALLEL_THRESHOLD and self.workers > 1:
            self.logger.debug(f"Using {self.workers} worker threads for {total} {what}")
            return self._map_with_pool(func, items)
        self.logger.debug(f"Using single-threaded processing for {total} {what}")
        return [func(item) for item in items]

    def _map_with_pool(self, func: Callable[[T], R], items: Sequence[T]) -> List[R]:
        results: List[Optional[R]] = [None] * len(items)
        with ThreadPoolExecutor(max_workers=self.workers) as executor:
            futures = {executor.submit(func, item): index for index, item in enumerate(items)}
            try:
                for future in as_completed(futures):
                    results[futures[future]] = future.result()
            except BaseException:
                for future in futures:
                    future.cancel()
                raise
        return results

    def parse_templates(self, entries: Sequence[SourceEntry]) -> List[PageTemplate]:
        return self._map(parse_template, entries, 'content files')

    def stylesheets(self, structure: StructuralSet, highlighter: Optional[CodeHighlighter]) -> dict:
        """Generated stylesheets, minified when minification is on."""
        sheets = {}
        if structure.theme_css is not None:
            sheets[THEME_CSS] = structure.theme_css
        if highlighter is not None:
            sheets[HIGHLIGHT_CSS] = highlighter.stylesheet()
        if self.config.build.minify:
            sheets = {url: minify_css_content(css, self.diagnostics, url) for url, css in sheets.items()}
        return sheets

    def build_registry(self, templates: Sequence[PageTemplate], structure: StructuralSet,
                       cache_buster: CacheBuster) -> PageRegistry:
        """Expand templates into pages and freeze them into the registry."""
        eager_env = create_environment(self.config, structure.snippets, cache_buster)
        expander = PageExpander(eager_env)

        static_pages = [expander.resolve_static(t) for t in templates if not t.is_dynamic]
        provisional = PageRegistry(static_pages)

        query_env = create_environment(self.config, structure.snippets, cache_buster, provisional)
        dynamic_pages = []
        for template in templates:
            if template.is_dynamic:
                dynamic_pages.extend(expander.expand_dynamic(template, query_env))

        registry = PageRegistry(static_pages + dynamic_pages)
        self.logger.debug(
            f"Registry frozen with {len(registry)} pages ({len(dynamic_pages)} from dynamic templates)"
        )
        return registry

    def render_pages(self, renderer: PageRenderer, registry: PageRegistry) -> List[RenderedPage]:
        if registry.not_found is not None:
            self.logger.info("Building 404 page")
        return self._map(renderer.render, registry.all_pages, 'pages')

    def build(self) -> SiteOutput:
        """Main build process."""
        start_time = time.time()
        self.logger.info("Starting site build...")
        config = self.config
        config.require_site_url_for_feeds()

        content, structural, assets = split_entries(discover(self.site_dir, self.exclude))
        structure = load_structural_set(structural)

        highlighter = None
        if config.build.highlighting:
            highlighter = CodeHighlighter(config.build.highlight_theme, self.diagnostics)
        stylesheets = self.stylesheets(structure, highlighter)
        cache_buster = CacheBuster(
            self.site_dir, {url: css.encode('utf-8') for url, css in stylesheets.items()}
        )

        templates = self.parse_templates(content)
        registry = self.build_registry(templates, structure, cache_buster)

        context = BuildContext(
            config=config,
            registry=registry,
            structure=structure,
            env=create_environment(config, structure.snippets, cache_buster, registry),
            markdown=MarkdownRenderer(highlighter),
            diagnostics=self.diagnostics,
            highlight_css=HIGHLIGHT_CSS in stylesheets,
        )
        rendered = self.render_pages(PageRenderer(context), registry)

        resolved = registry.with_frontmatter({item.page.url: item.page for item in rendered})
        documents = generate_feeds(resolved, config, self.diagnostics)
        sitemap = generate_sitemap(resolved, config.site, self.diagnostics)
        if sitemap is not None:
            documents['sitemap.xml'] = sitemap

        output = SiteOutput(
            pages=rendered,
            documents=documents,
            stylesheets=stylesheets,
            assets=assets,
            cache_busted=cache_buster.entries(),
        )
        OutputWriter(self.output_dir, config.build.minify, self.diagnostics).write(output)

        self.pages_generated = len(rendered)
        self.feeds_generated = sum(len(feed.outputs) for feed in config.feeds)
        self.assets_copied = len(assets)

        total_time = time.time() - start_time
        self.logger.info(f"Site build completed in {total_time:.6f} seconds.")
        self.logger.info(f"Total pages generated: {self.pages_generated}")
        self.logger.info(f"Total feeds generated: {self.feeds_generated}")
        self.logger.info(f"Total assets copied: {self.assets_copied}")
        if len(self.diagnostics):
            self.logger.info(f"Build finished with {len(self.diagnostics)} warning(s):")
            self.diagnostics.report(self.logger)
        return output
