#!/usr/bin/env python3
"""
Post Parser - Extracts and parses YAML front matter from blog post files.

This module provides functionality to:
- Discover post files in the posts directory
- Parse YAML front matter from markdown files
- Derive dates, slugs, series membership and permalinks
- Report on parsed posts by category, tag and year
"""

import json
import logging
import re
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import frontmatter
import yaml

from publish_config import DEFAULT_CONFIG_PATH, load_config

logger = logging.getLogger(__name__)

POST_FILENAME_RE = re.compile(r'^(\d{4})-(\d{2})-(\d{2})-(.+)\.(md|markdown)$')

# "Python Mastery Part 3: Docker", "Docker Deep Dive (Part 2)"
SERIES_TITLE_RE = re.compile(r'^(?P<series>.*?)[\s\-:|,(\[]*\bpart\s+(?P<part>\d+)\b', re.IGNORECASE)

FRONT_MATTER_RE = re.compile(r'\A---[ \t]*\r?\n(.*?\r?\n)?(?:---|\.\.\.)[ \t]*(?:\r?\n|\Z)', re.DOTALL)

DATE_FORMATS = (
    '%Y-%m-%d %H:%M:%S %z',
    '%Y-%m-%d %H:%M %z',
    '%Y-%m-%d %H:%M:%S',
    '%Y-%m-%d %H:%M',
    '%Y-%m-%dT%H:%M:%S%z',
    '%Y-%m-%dT%H:%M:%S',
    '%Y-%m-%d',
)

SKIPPED_FILES = ['readme.md', 'contributing.md', 'license.md']


def slugify(text: str) -> str:
    """Convert text to a URL-friendly slug."""
    text = str(text).lower()
    text = re.sub(r'[^a-z0-9\s_-]', '', text)
    text = re.sub(r'[\s_]+', '-', text)
    text = re.sub(r'-+', '-', text)
    return text.strip('-')


def parse_filename(file_name: str) -> Tuple[Optional[date], Optional[str]]:
    """Split ``YYYY-MM-DD-slug.md`` into its date and slug."""
    match = POST_FILENAME_RE.match(file_name)
    if not match:
        return None, None
    year, month, day, slug = match.group(1, 2, 3, 4)
    try:
        return date(int(year), int(month), int(day)), slug
    except ValueError:
        return None, slug


def parse_post_date(value: Any) -> Optional[datetime]:
    """Parse a front matter date into a naive wall-clock datetime."""
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=None)
        except ValueError:
            continue
    return None


def split_terms(value: Any) -> List[str]:
    """Normalize a categories/tags value into a list of strings."""
    if value is None:
        return []
    if isinstance(value, str):
        separator = ',' if ',' in value else None
        return [t.strip() for t in value.split(separator) if t.strip()]
    if isinstance(value, (list, tuple)):
        return [str(t).strip() for t in value
                if isinstance(t, (str, int, float)) and str(t).strip()]
    return []


def split_front_matter(text: str) -> Tuple[Optional[str], str, int]:
    """Return (front matter text, body, 1-based line number where the body starts)."""
    match = FRONT_MATTER_RE.match(text)
    if not match:
        return None, text, 1
    block = match.group(0)
    return match.group(1) or '', text[len(block):], block.count('\n') + 1


class Post:
    """Represents a single blog post with metadata and content."""

    def __init__(self, file_path: str, frontmatter_data: Dict[str, Any], content: str,
                 permalink: str = '/:year/:month/:day/:title.html'):
        self.file_path = file_path
        self.metadata = frontmatter_data
        self.content = content
        self.permalink = permalink
        self.file_name = Path(file_path).name
        self.filename_date, self.slug = parse_filename(self.file_name)
        if self.slug is None:
            self.slug = slugify(Path(file_path).stem)

    @property
    def title(self) -> str:
        """Get the post title."""
        title = self.metadata.get('title')
        if title:
            return str(title).strip()
        if self.slug:
            return self.slug.replace('-', ' ').title()
        return 'Untitled Post'

    @property
    def date(self) -> Optional[datetime]:
        """Get the publication date, preferring front matter over the filename."""
        parsed = parse_post_date(self.metadata.get('date'))
        if parsed:
            return parsed
        if self.filename_date:
            return datetime(self.filename_date.year, self.filename_date.month, self.filename_date.day)
        return None

    @property
    def categories(self) -> List[str]:
        """Get the post categories."""
        value = self.metadata.get('categories')
        if value is None:
            value = self.metadata.get('category')
        return split_terms(value)

    @property
    def tags(self) -> List[str]:
        """Get the post tags."""
        return split_terms(self.metadata.get('tags'))

    @property
    def series(self) -> Optional[str]:
        """Get the series name from front matter or from a "Part N" title."""
        explicit = self.metadata.get('series')
        if explicit:
            return str(explicit).strip()
        match = SERIES_TITLE_RE.match(self.title)
        if match:
            name = match.group('series').strip(' -:|,([')
            return name or None
        return None

    @property
    def part(self) -> Optional[int]:
        """Get the part number within the series; None for posts outside a series."""
        if self.series is None:
            return None
        explicit = self.metadata.get('part')
        if explicit is not None:
            try:
                return int(explicit)
            except (TypeError, ValueError):
                return None
        match = SERIES_TITLE_RE.match(self.title)
        return int(match.group('part')) if match else None

    @property
    def url(self) -> str:
        """Build the permalink for the post."""
        post_date = self.date or datetime(1970, 1, 1)
        url = self.permalink
        url = url.replace(':categories', '/'.join(slugify(c) for c in self.categories))
        url = url.replace(':year', f"{post_date.year:04d}")
        url = url.replace(':month', f"{post_date.month:02d}")
        url = url.replace(':day', f"{post_date.day:02d}")
        url = url.replace(':title', self.slug)
        url = re.sub(r'/{2,}', '/', url)
        return url if url.startswith('/') else '/' + url

    @property
    def excerpt(self) -> str:
        """First paragraph of the body with markdown syntax stripped."""
        in_fence = False
        paragraph: List[str] = []
        for line in self.content.splitlines():
            stripped = line.strip()
            if stripped.startswith(('```', '~~~')):
                in_fence = not in_fence
                continue
            if in_fence or stripped.startswith(('#', '<!--', '|', '>')):
                if paragraph:
                    break
                continue
            if not stripped:
                if paragraph:
                    break
                continue
            paragraph.append(stripped)
        text = ' '.join(paragraph)
        text = re.sub(r'!?\[([^\]]*)\]\([^)]*\)', r'\1', text)
        text = re.sub(r'[*_`]', '', text)
        return text[:200].rstrip() + ('...' if len(text) > 200 else '')

    def to_dict(self) -> Dict[str, Any]:
        """Convert post to dictionary representation."""
        post_date = self.date
        return {
            'file_path': self.file_path,
            'slug': self.slug,
            'title': self.title,
            'date': post_date.isoformat() if post_date else None,
            'categories': self.categories,
            'tags': self.tags,
            'series': self.series,
            'part': self.part,
            'url': self.url,
            'excerpt': self.excerpt,
        }

    def __repr__(self) -> str:
        return f"Post({self.file_name!r})"


class PostParser:
    """Main parser class for discovering and parsing blog posts."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, config: Optional[Dict[str, Any]] = None):
        """Initialize the post parser with configuration."""
        self.config = config if config is not None else load_config(config_path)
        self.posts: List[Post] = []
        self.errors: List[str] = []
        self.warnings: List[str] = []

    def discover_post_files(self, root_directory: str = '.') -> List[str]:
        """Discover all post markdown files in the posts directory."""
        posts_dir = Path(root_directory) / self.config['posts_directory']
        if not posts_dir.exists():
            self.warnings.append(f"Posts directory not found: {posts_dir}")
            return []

        post_files = []
        for pattern in ('*.md', '*.markdown'):
            for md_file in posts_dir.rglob(pattern):
                if md_file.name.lower() in SKIPPED_FILES or md_file.name.startswith(('_', '.')):
                    continue
                post_files.append(str(md_file))

        post_files.sort()
        logger.info(f"Discovered {len(post_files)} potential post files")
        return post_files

    def parse_post_file(self, file_path: str) -> Optional[Post]:
        """Parse a single post file and return a Post object."""
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                post = frontmatter.load(f)

            if not post.metadata:
                self.warnings.append(f"No front matter found in {file_path}")
                return None

            missing_fields = [field for field in self.config['required_frontmatter_fields']
                              if post.metadata.get(field) in (None, '', [])]
            if missing_fields:
                self.errors.append(f"Missing required fields in {file_path}: {missing_fields}")
                return None

            return Post(file_path, post.metadata, post.content,
                        permalink=self.config['site']['permalink'])

        except yaml.YAMLError as e:
            self.errors.append(f"YAML parsing error in {file_path}: {e}")
            return None
        except Exception as e:
            self.errors.append(f"Error parsing {file_path}: {e}")
            return None

    def parse_posts_parallel(self, file_paths: List[str], max_workers: int = 4) -> List[Post]:
        """Parse multiple post files in parallel."""
        posts = []

        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_path = {
                executor.submit(self.parse_post_file, path): path
                for path in file_paths
            }

            for future in as_completed(future_to_path):
                path = future_to_path[future]
                try:
                    post = future.result()
                    if post:
                        posts.append(post)
                except Exception as e:
                    self.errors.append(f"Error processing {path}: {e}")

        posts.sort(key=lambda p: (p.date or datetime.min, p.file_path))
        return posts

    def parse_all_posts(self, root_directory: str = '.') -> List[Post]:
        """Discover and parse all post files."""
        logger.info("Starting post discovery and parsing...")

        post_files = self.discover_post_files(root_directory)
        if not post_files:
            self.warnings.append("No post files discovered")
            return []

        self.posts = self.parse_posts_parallel(post_files)

        logger.info(f"Successfully parsed {len(self.posts)} posts")
        logger.info(f"Encountered {len(self.errors)} errors and {len(self.warnings)} warnings")

        return self.posts

    def get_posts_by_category(self, category: str) -> List[Post]:
        """Get all posts filed under a category (case-insensitive)."""
        wanted = category.lower()
        return [p for p in self.posts if wanted in (c.lower() for c in p.categories)]

    def get_posts_by_tag(self, tag: str) -> List[Post]:
        """Get all posts carrying a tag (case-insensitive)."""
        wanted = tag.lower()
        return [p for p in self.posts if wanted in (t.lower() for t in p.tags)]

    def get_post_by_slug(self, slug: str) -> Optional[Post]:
        for post in self.posts:
            if post.slug == slug:
                return post
        return None

    def get_parsing_report(self) -> Dict[str, Any]:
        """Generate a comprehensive parsing report."""
        category_counts = defaultdict(int)
        tag_counts = defaultdict(int)
        year_counts = defaultdict(int)

        for post in self.posts:
            for category in post.categories:
                category_counts[category] += 1
            for tag in post.tags:
                tag_counts[tag] += 1
            if post.date:
                year_counts[str(post.date.year)] += 1

        return {
            'total_posts': len(self.posts),
            'category_breakdown': dict(category_counts),
            'tag_breakdown': dict(tag_counts),
            'year_breakdown': dict(year_counts),
            'errors': self.errors,
            'warnings': self.warnings,
        }


def main():
    """Main function for testing the post parser."""
    logging.basicConfig(level=logging.INFO)

    parser = PostParser()
    parser.parse_all_posts()

    report = parser.get_parsing_report()
    print(json.dumps(report, indent=2))


if __name__ == '__main__':
    main()
