#!/usr/bin/env python3
"""
Command-line interface for Quire - static site generator.
"""

import argparse
import os
import sys
from typing import List, Optional

from . import __version__
from .core import Quire, setup_logging
from .errors import ConfigurationError, QuireError
from .settings import QuireSettings

STARTER_FILES = {
    '_/header.md': """# {{ site.title }}
""",
    '_/nav.md': """- [Home](/)
- [Blog](/blog/)
{% for tag in tags() %}- [#{{ tag }}](/tags/{{ tag }})
{% endfor %}""",
    '_/footer.md': """Built with Quire.
""",
    '_/content.md': """{{ content }}

{% if date is defined %}*Published {{ date | datefmt("%B %d, %Y") }} · {{ readtime(content) }} min read*{% endif %}
""",
    '_/theme.css': """body {
    font-family: system-ui, sans-serif;
    line-height: 1.6;
    max-width: 42rem;
    margin: 0 auto;
    padding: 1rem;
}

.card {
    border: 1px solid #ddd;
    border-radius: 6px;
    padding: 1rem;
}
""",
    '_/macros/card.md': """---
title: Untitled
---
<div class="card">

**{{ title }}**

{{ caller() }}

</div>
""",
    'index.md': """---
title: Home
---

Welcome to your new Quire site.

{% call card(title="Getting started") %}
Edit `index.md`, add posts under `blog/` and run `quire` to rebuild.
{% endcall %}

## Latest posts

{% for post in pages(within="/blog", sort_by="date", reverse=true) %}
- [{{ post.title }}]({{ post.url }})
{% endfor %}
""",
    'blog/index.md': """---
title: Blog
---

{% for post in pages(within="/blog", sort_by="date", reverse=true) %}
- [{{ post.title }}]({{ post.url }}) {{ post.date | datefmt("%Y-%m-%d") }}
{% endfor %}
""",
    'blog/hello-world.md': """---
title: Hello, world
date: 2025-01-01
description: The first post on this site.
tags: [welcome, quire]
order: 1
---

This is your first post. Code blocks are highlighted:

```python
def hello():
    print("Hello from Quire")
```

{% if next_page() %}Next: [{{ next_page().title }}]({{ next_page().url }}){% endif %}
""",
    'blog/second-post.md': """---
title: A second post
date: 2025-01-02
description: Another post, to show navigation.
tags: [quire]
order: 2
---

{% if prev_page() %}Previous: [{{ prev_page().title }}]({{ prev_page().url }}){% endif %}
""",
    'tags/[tag].md': """---
title: "Posts tagged {{ tag }}"
tag: "{{ tags() }}"
---

{% for post in pages(tag=tag) %}
- [{{ post.title }}]({{ post.url }})
{% endfor %}
""",
    '[404].md': """---
title: Page not found
---

Sorry, that page doesn't exist. [Go home](/).
""",
}


def create_starter_structure(name: str) -> str:
    """Create a starter site in directory ``name``; refuses a non-empty directory."""
    site_dir = os.path.abspath(name)
    if os.path.exists(site_dir):
        if not os.path.isdir(site_dir):
            raise ConfigurationError("exists and is not a directory", name)
        if os.listdir(site_dir):
            raise ConfigurationError("directory is not empty; refusing to initialise a site here", name)

    for rel_path, content in STARTER_FILES.items():
        file_path = os.path.join(site_dir, *rel_path.split('/'))
        os.makedirs(os.path.dirname(file_path), exist_ok=True)
        with open(file_path, 'w', encoding='utf-8') as f:
            f.write(content)
        print(f"Created {rel_path}")

    config_path = QuireSettings(site_dir).create_sample_config(site_title=os.path.basename(site_dir))
    print(f"Created {os.path.relpath(config_path, site_dir)}")

    print("\n✅ Starter site created successfully!")
    print("\nNext steps:")
    print(f"1. Edit the configuration file ({os.path.join(name, 'config.toml')})")
    print("2. Customize the header, nav and footer in the '_/' directory")
    print("3. Add your content as Markdown files")
    print(f"4. Run 'quire {name}' to build your site")
    return site_dir


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='quire', description='Quire - Static Site Generator')
    parser.add_argument('site', nargs='?', default='.',
                        help='Site directory to build (default: current directory)')
    parser.add_argument('--output', type=str, default='output',
                        help='Output directory for generated site (default: output)')
    parser.add_argument('--no-minify', action='store_true',
                        help='Disable HTML and CSS minification')
    parser.add_argument('--site-url', type=str,
                        help='Site URL for feeds, sitemap and canonical links')
    parser.add_argument('--workers', type=int,
                        help='Number of worker threads')
    parser.add_argument('--init', type=str, metavar='NAME',
                        help='Create a starter site in directory NAME')
    parser.add_argument('--verbose', action='store_true',
                        help='Show debug output on the console')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    # Handle init command
    if args.init:
        try:
            create_starter_structure(args.init)
        except (QuireError, OSError) as e:
            print(f"Error: {e}", file=sys.stderr)
            sys.exit(1)
        return

    logs_dir = os.path.join(os.getcwd(), 'logs')
    setup_logging(verbose=args.verbose, log_dir=logs_dir)

    output_dir = os.path.expanduser(args.output)
    args_dict = {
        'site_url': args.site_url,
        'minify': False if args.no_minify else None,
        'workers': args.workers,
    }

    try:
        config = QuireSettings(args.site).site_config(args_dict)
        generator = Quire(args.site, output_dir, config=config, exclude=[logs_dir])
        generator.build()
    except QuireError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
