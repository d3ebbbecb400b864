#!/usr/bin/env python3
"""
HTML Renderer - Converts post markdown to HTML and renders site pages.

Markdown is converted with the markdown2 library; page layouts are Jinja2
templates loaded from the site templates directory.
"""

import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

import markdown2
from jinja2 import Environment, FileSystemLoader, select_autoescape

from post_parser import slugify

logger = logging.getLogger(__name__)

MARKDOWN_EXTRAS = [
    'fenced-code-blocks',  # ``` code blocks
    'tables',              # markdown tables
    'strike',              # ~~strikethrough~~
    'task-list',           # - [ ] task lists
    'header-ids',          # ids on headers for linking
    'footnotes',           # [^1] footnotes
    'smarty-pants',        # smart quotes and dashes
    'toc',                 # table of contents html
]

POST_URL_TAG_RE = re.compile(r'\{%-?\s*post_url\s+([^\s%]+)\s*-?%\}')
LINK_TAG_RE = re.compile(r'\{%-?\s*link\s+([^\s%]+)\s*-?%\}')
RAW_TAG_RE = re.compile(r'\{%-?\s*(?:end)?raw\s*-?%\}')


def replace_liquid_links(markdown_text: str, resolver: Callable[[str], Optional[str]]) -> str:
    """
    Rewrite Jekyll link tags so the markdown renders outside Jekyll.

    ``{% post_url name %}`` and ``{% link path %}`` are replaced with the URL
    returned by ``resolver``; unresolved names become ``#``. ``{% raw %}``
    and ``{% endraw %}`` markers are dropped.
    """
    def substitute(match):
        url = resolver(match.group(1))
        if url is None:
            logger.warning(f"Unresolved link tag: {match.group(0)}")
            return '#'
        return url

    text = POST_URL_TAG_RE.sub(substitute, markdown_text)
    text = LINK_TAG_RE.sub(substitute, text)
    return RAW_TAG_RE.sub('', text)


def convert_markdown_to_html(markdown_text: str) -> Tuple[str, str]:
    """
    Convert markdown text to HTML using markdown2.

    Returns:
        (body_html, toc_html); toc_html is empty when the text has no headers
    """
    html = markdown2.markdown(markdown_text, extras=MARKDOWN_EXTRAS)
    toc_html = getattr(html, 'toc_html', None) or ''
    return str(html), toc_html


def format_date(value: Optional[datetime], fmt: str = '%B %d, %Y') -> str:
    if value is None:
        return ''
    return value.strftime(fmt)


def format_atom_date(value: datetime) -> str:
    """RFC 3339 timestamp for feeds; naive datetimes are read as local time."""
    return value.astimezone().isoformat(timespec='seconds')


class HtmlRenderer:
    """Renders site pages from Jinja2 templates."""

    def __init__(self, templates_dir: str, site_config: Dict[str, Any]):
        self.site = site_config
        self.env = Environment(
            loader=FileSystemLoader(templates_dir),
            autoescape=select_autoescape(['html', 'xml']),
            trim_blocks=True,
            lstrip_blocks=True,
        )
        self.env.filters['date_format'] = format_date
        self.env.filters['atom_date'] = format_atom_date
        self.env.filters['site_url'] = self.site_url
        self.env.filters['slug'] = slugify
        self.env.globals['site'] = self.site

    def site_url(self, path: str, absolute: bool = False) -> str:
        """Prefix a site-relative path with the configured base URL."""
        base = self.site.get('base_url', '').rstrip('/')
        if absolute or base:
            return f"{base}{path}"
        return path

    def _render(self, template_name: str, **context) -> str:
        template = self.env.get_template(template_name)
        return template.render(**context)

    def render_post(self, post, body_html: str, toc_html: str = '',
                    navigation: Optional[Dict[str, Any]] = None) -> str:
        return self._render('post.html', post=post, body=body_html, toc=toc_html,
                            navigation=navigation, page_title=post.title)

    def render_index(self, posts: List, series: List, categories: Dict[str, List],
                     tags: Dict[str, List]) -> str:
        return self._render('index.html', posts=posts, series=series, categories=categories,
                            tags=tags, page_title=self.site.get('title', ''))

    def render_series(self, series) -> str:
        return self._render('series.html', series=series, page_title=series.name)

    def render_taxonomy(self, kind: str, name: str, posts: List) -> str:
        return self._render('taxonomy.html', kind=kind, name=name, posts=posts,
                            page_title=f"{kind.title()}: {name}")

    def render_feed(self, posts: List, updated: datetime) -> str:
        limit = self.site.get('feed_limit', 20)
        return self._render('feed.xml', posts=posts[:limit], updated=updated)
