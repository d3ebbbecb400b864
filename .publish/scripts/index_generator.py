#!/usr/bin/env python3
"""
Index Generator - Generates the series index markdown from post metadata.

This module provides functionality to:
- Parse all posts using PostParser
- Categorize posts using CategoryMapper
- Group numbered posts into series using SeriesMapper
- Generate statistics and organize content
- Render the index using Jinja2 templates
"""

import logging
import os
from collections import defaultdict
from datetime import datetime
from typing import Any, Dict, List, Optional

from jinja2 import Environment, FileSystemLoader

from category_mapper import CategoryMapper
from post_parser import PostParser
from publish_config import DEFAULT_CONFIG_PATH, load_config
from series_mapper import SeriesMapper
from toc_generator import slugify_heading

logger = logging.getLogger(__name__)


class IndexGenerator:
    """Generates the index markdown file from post metadata using Jinja2 templates."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, config: Optional[Dict[str, Any]] = None):
        """Initialize the index generator with configuration."""
        self.config = config if config is not None else load_config(config_path)
        self.parser = PostParser(config=self.config)
        self.mapper = CategoryMapper(self.config['taxonomy_file'])
        self.posts: List[Dict[str, Any]] = []
        self.series: List[Dict[str, Any]] = []
        self.categorized_posts: Dict[str, List[Dict[str, Any]]] = defaultdict(list)
        self.statistics: Dict[str, Any] = {}

    def load_and_process_posts(self, root_directory: str = '.') -> None:
        """Load all posts and process them for index generation."""
        logger.info("Loading and processing posts...")

        raw_posts = self.parser.parse_all_posts(root_directory)

        self.posts = []
        for post in raw_posts:
            post_dict = post.to_dict()
            post_dict['category'] = self.mapper.categorize_post(post_dict)
            post_dict['relative_path'] = os.path.relpath(post.file_path, root_directory).replace(os.sep, '/')
            post_dict['source_url'] = self._generate_source_url(post_dict['relative_path'])
            post_dict['display_date'] = post.date.strftime('%Y-%m-%d') if post.date else ''
            self.posts.append(post_dict)

        by_path = {p['file_path']: p for p in self.posts}
        self.series = []
        for series in SeriesMapper(raw_posts).get_all_series():
            self.series.append({
                'name': series.name,
                'key': series.key,
                'posts': [by_path[p.file_path] for p in series.posts],
                'missing_parts': series.missing_parts,
            })

        self._organize_by_categories()
        self._generate_statistics()

        logger.info(f"Processed {len(self.posts)} posts in {len(self.categorized_posts)} categories")

    def _organize_by_categories(self) -> None:
        """Organize posts by their categories."""
        self.categorized_posts = defaultdict(list)
        for post in self.posts:
            self.categorized_posts[post['category']].append(post)

        settings = self.config['generation_settings']
        sort_key = settings.get('sort_posts_by', 'date')
        reverse = bool(settings.get('newest_first', True)) if sort_key == 'date' else False
        for category in self.categorized_posts:
            self.categorized_posts[category].sort(
                key=lambda x: str(x.get(sort_key) or '').lower(),
                reverse=reverse
            )

    def _generate_statistics(self) -> None:
        """Generate statistics for the index."""
        category_counts = defaultdict(int)
        tag_usage = defaultdict(int)
        year_counts = defaultdict(int)

        for post in self.posts:
            category_counts[post['category']] += 1
            for tag in post['tags']:
                tag_usage[tag.lower()] += 1
            if post['display_date']:
                year_counts[post['display_date'][:4]] += 1

        top_tags = sorted(tag_usage.items(), key=lambda x: (-x[1], x[0]))[:10]

        self.statistics = {
            'total_posts': len(self.posts),
            'total_series': len(self.series),
            'category_counts': dict(category_counts),
            'year_counts': dict(sorted(year_counts.items())),
            'top_tags': top_tags,
            'generation_timestamp': datetime.now().isoformat(),
            'categories_with_posts': len(self.categorized_posts),
            'total_categories_available': len(self.mapper.get_all_categories()),
        }

    def _generate_source_url(self, relative_path: str) -> str:
        """Link to the post source, on the repository host when configured."""
        base_url = self.config['generation_settings'].get('repository_url', '').rstrip('/')
        if not base_url:
            return relative_path
        return f"{base_url}/blob/main/{relative_path}"

    def _categories_with_posts(self) -> List[Dict[str, Any]]:
        categories = []
        for category_info in self.mapper.get_all_categories():
            name = category_info['name']
            if name in self.categorized_posts:
                category_info['posts'] = self.categorized_posts[name]
                category_info['count'] = len(self.categorized_posts[name])
                # INDEX.md is read on GitHub, so anchors follow its heading slugs
                category_info['anchor'] = slugify_heading(f"{category_info['emoji']} {name}", 'github')
                categories.append(category_info)
        return categories

    def _prepare_template_context(self) -> Dict[str, Any]:
        """Prepare the context data for template rendering."""
        return {
            'title': self.config['site'].get('title', 'Python Mastery'),
            'description': self.config['site'].get('description', ''),
            'categories': self._categories_with_posts(),
            'series': self.series,
            'statistics': self.statistics,
            'generation_settings': self.config.get('generation_settings', {}),
            'timestamp': datetime.now().strftime('%Y-%m-%d %H:%M:%S'),
            'total_posts': self.statistics['total_posts'],
        }

    def generate_index(self, output_path: Optional[str] = None) -> str:
        """Generate the index content and write it to ``output_path``."""
        if not output_path:
            output_path = self.config.get('output_file', 'INDEX.md')

        template_path = self.config.get('template', '')
        if not template_path or not os.path.exists(template_path):
            logger.warning(f"Template file {template_path} not found. Using built-in template.")
            content = self._generate_with_builtin_template()
        else:
            try:
                env = Environment(
                    loader=FileSystemLoader(os.path.dirname(template_path) or '.'),
                    trim_blocks=True,
                    lstrip_blocks=True
                )
                template = env.get_template(os.path.basename(template_path))
                content = template.render(**self._prepare_template_context())
            except Exception as e:
                logger.error(f"Error generating index with template: {e}")
                logger.info("Falling back to built-in template")
                content = self._generate_with_builtin_template()

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write(content)

        logger.info(f"Generated index at {output_path}")
        return content

    def _generate_with_builtin_template(self) -> str:
        """Generate the index using a built-in layout."""
        title = self.config['site'].get('title', 'Python Mastery')
        stats = self.statistics
        parts = [f"# {title}\n\n"]

        description = self.config['site'].get('description')
        if description:
            parts.append(f"{description}\n\n")

        if self.config['generation_settings'].get('show_statistics', True):
            parts.append("## 📊 Statistics\n\n")
            parts.append(f"- **Total Posts**: {stats['total_posts']}\n")
            parts.append(f"- **Series**: {stats['total_series']}\n")
            parts.append(f"- **Categories**: {stats['categories_with_posts']}\n\n")

        categories = self._categories_with_posts()

        parts.append("## 📚 Table of Contents\n\n")
        if self.series:
            parts.append("- [Series](#series)\n")
        for category in categories:
            parts.append(f"- [{category['emoji']} {category['name']}](#{category['anchor']}) "
                         f"({category['count']} posts)\n")
        parts.append("\n")

        if self.series:
            parts.append("## Series\n\n")
            for series in self.series:
                parts.append(f"### {series['name']}\n\n")
                for post in series['posts']:
                    label = f"Part {post['part']}: " if post['part'] else ''
                    parts.append(f"1. {label}[{post['title']}]({post['source_url']})\n")
                parts.append("\n")

        for category in categories:
            parts.append(f"## {category['emoji']} {category['name']}\n\n")
            if category['description']:
                parts.append(f"*{category['description']}*\n\n")
            for post in category['posts']:
                tags = ', '.join(post['tags'][:3])
                parts.append(f"- **[{post['title']}]({post['source_url']})** - {post['display_date']}"
                             + (f" *{tags}*" if tags else '') + "\n")
            parts.append("\n")

        parts.append("---\n\n")
        parts.append(f"*Generated automatically from {stats['total_posts']} posts*\n")
        return ''.join(parts)

    def get_generation_report(self) -> Dict[str, Any]:
        """Report about the index generation process."""
        return {
            'generation_timestamp': datetime.now().isoformat(),
            'total_posts_processed': len(self.posts),
            'categories_used': list(self.categorized_posts.keys()),
            'series': [{'name': s['name'], 'posts': len(s['posts']), 'missing_parts': s['missing_parts']}
                       for s in self.series],
            'statistics': self.statistics,
            'parsing_report': self.parser.get_parsing_report(),
            'template_used': self.config.get('template', 'built-in'),
            'output_file': self.config.get('output_file', 'INDEX.md'),
            'validation_results': self.mapper.validate_post_categories(self.posts),
        }
