#!/usr/bin/env python3
"""
Python Mastery - Static Site Generator

This script renders the posts directory into a self-contained HTML preview
site: one page per post at its permalink, an index, series pages, category
and tag pages, an Atom feed and a posts.json data file.

Usage:
    python build_site.py [--output OUTPUT_DIR] [--root ROOT] [--force]

Example:
    python build_site.py --output .publish/docs --root .
"""

import argparse
import json
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from html_renderer import HtmlRenderer, convert_markdown_to_html, replace_liquid_links
from post_linter import PostLinter
from post_parser import Post, PostParser, slugify
from publish_config import DEFAULT_CONFIG_PATH, load_config
from series_mapper import SeriesMapper

logger = logging.getLogger(__name__)


class BuildError(Exception):
    """Raised when the site cannot be built from the current posts."""


def output_path_for(output_dir: Path, url: str) -> Path:
    """Map a permalink to a file under the output directory."""
    relative = url.lstrip('/')
    if not relative or relative.endswith('/'):
        relative += 'index.html'
    return output_dir / relative


def group_by_term(posts: List[Post], field: str) -> Dict[str, Tuple[str, List[Post]]]:
    """
    Group posts by category or tag, keyed by the term's page slug.

    Spellings that share a slug (``Docker`` and ``docker``) share one group;
    the first spelling seen names it.
    """
    groups: Dict[str, Tuple[str, List[Post]]] = {}
    for post in posts:
        for term in getattr(post, field):
            key = slugify(term)
            name, items = groups.setdefault(key, (term, []))
            if post not in items:
                items.append(post)
    return groups


class SiteBuilder:
    """Builds the static HTML site from parsed posts."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else load_config(config_path)
        self.site = self.config['site']
        self.posts: List[Post] = []
        self.written: List[Path] = []

    def _make_resolver(self, root_directory: str):
        by_stem = {Path(p.file_path).stem: p.url for p in self.posts}
        posts_dir = self.config['posts_directory'].strip('/')

        def resolve(name: str) -> Optional[str]:
            stem = Path(name).stem
            if stem in by_stem:
                return by_stem[stem]
            if name.startswith(posts_dir + '/'):
                return None
            if (Path(root_directory) / name).exists():
                return '/' + name.lstrip('/')
            return None

        return resolve

    def _write(self, path: Path, content: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            f.write(content)
        self.written.append(path)

    def build(self, root_directory: str = '.', output_dir: Optional[Path] = None,
              force: bool = False) -> Dict[str, Any]:
        """Build the site and return build statistics."""
        output_dir = Path(output_dir or self.site['output_dir'])
        self.written = []

        print(f"📂 Loading posts from {Path(root_directory) / self.config['posts_directory']}")
        parser = PostParser(config=self.config)
        self.posts = parser.parse_all_posts(root_directory)

        print("🔍 Validating posts...")
        linter = PostLinter(config=self.config)
        errors = [issue for issue in linter.lint_directory(root_directory) if issue.is_error]
        if errors and not force:
            print("\n❌ Validation errors found:")
            for error in errors:
                print(f"   - {error}")
            raise BuildError(f"{len(errors)} lint errors; fix them or build with --force")

        if not self.posts:
            raise BuildError("No valid posts found")
        print(f"   ✓ {len(self.posts)} posts validated")

        templates_dir = self.site['templates_dir']
        if not Path(templates_dir).exists():
            raise BuildError(f"Templates directory not found: {templates_dir}")
        renderer = HtmlRenderer(templates_dir, self.site)
        series_mapper = SeriesMapper(self.posts)
        resolver = self._make_resolver(root_directory)

        print("🔧 Building site...")
        for post in self.posts:
            markdown_text = replace_liquid_links(post.content, resolver)
            body_html, toc_html = convert_markdown_to_html(markdown_text)
            html = renderer.render_post(post, body_html, toc_html, series_mapper.navigation_for(post))
            self._write(output_path_for(output_dir, post.url), html)

        newest_first = sorted(self.posts, key=lambda p: (p.date or datetime.min, p.file_path), reverse=True)

        categories = group_by_term(newest_first, 'categories')
        tags = group_by_term(newest_first, 'tags')

        all_series = series_mapper.get_all_series()
        for series in all_series:
            self._write(output_dir / 'series' / f"{series.key}.html", renderer.render_series(series))
        for key, (name, items) in categories.items():
            self._write(output_dir / 'categories' / f"{key}.html",
                        renderer.render_taxonomy('category', name, items))
        for key, (name, items) in tags.items():
            self._write(output_dir / 'tags' / f"{key}.html",
                        renderer.render_taxonomy('tag', name, items))

        self._write(output_dir / 'index.html',
                    renderer.render_index(newest_first, all_series, dict(categories.values()), dict(tags.values())))

        updated = newest_first[0].date or datetime.now()
        self._write(output_dir / 'feed.xml', renderer.render_feed(newest_first, updated))

        posts_json = json.dumps([p.to_dict() for p in newest_first], indent=2, ensure_ascii=False)
        self._write(output_dir / 'posts.json', posts_json + '\n')

        stats = {
            'output_dir': str(output_dir),
            'posts': len(self.posts),
            'series': len(all_series),
            'categories': len(categories),
            'tags': len(tags),
            'files_written': len(self.written),
            'lint_errors': len(errors),
        }

        print("✅ Site built successfully!")
        print(f"   📁 Output: {output_dir}")
        print(f"   📊 {stats['posts']} posts")
        print(f"   📚 {stats['series']} series")
        print("\n📈 Statistics:")
        print("   Categories:")
        for name, items in sorted(categories.values()):
            print(f"      {name}: {len(items)}")
        print(f"   Tags: {stats['tags']}")

        return stats


def main(argv=None):
    parser = argparse.ArgumentParser(
        description='Build the Python Mastery static site'
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--root', '-r',
        type=str,
        default='.',
        help='Repository root containing the posts directory (default: .)'
    )
    parser.add_argument(
        '--output', '-o',
        type=Path,
        help='Output directory for the built site (overrides config setting)'
    )
    parser.add_argument(
        '--force',
        action='store_true',
        help='Build even when lint errors are found'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    print("🚀 Python Mastery Site Builder")
    print("=" * 40)

    try:
        builder = SiteBuilder(args.config)
        builder.build(args.root, args.output, force=args.force)
    except BuildError as e:
        print(f"\n❌ Build failed: {e}")
        sys.exit(1)
    except ValueError as e:
        print(f"Error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.error("Build interrupted by user")
        sys.exit(130)


if __name__ == '__main__':
    main()
