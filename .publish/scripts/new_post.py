#!/usr/bin/env python3
"""
Create a new post skeleton that follows the naming and front matter conventions.

Usage:
    python new_post.py "Python Mastery Part 7: Profiling" --categories python --tags profiling,performance

The post is written to ``<posts_directory>/YYYY-MM-DD-<slug>.md`` with
``title``, ``date``, ``categories`` and ``tags`` front matter and an empty
table of contents block ready for update_toc.py.
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import frontmatter

from post_parser import slugify, split_terms
from publish_config import DEFAULT_CONFIG_PATH, load_config, setup_logging

logger = logging.getLogger(__name__)


def create_post(root_directory: str, title: str, categories: List[str], tags: List[str],
                config: Dict[str, Any], series: Optional[str] = None, part: Optional[int] = None,
                post_date: Optional[datetime] = None) -> Path:
    """Write a new post file and return its path."""
    slug = slugify(title)
    if not slug:
        raise ValueError(f"Cannot build a file name from title '{title}'")

    post_date = (post_date or datetime.now()).replace(microsecond=0)
    posts_dir = Path(root_directory) / config['posts_directory']
    post_path = posts_dir / f"{post_date.strftime('%Y-%m-%d')}-{slug}.md"
    if post_path.exists():
        raise FileExistsError(f"Post already exists: {post_path}")

    metadata: Dict[str, Any] = {
        'title': title,
        'date': post_date,
        'categories': categories,
        'tags': tags,
    }
    if series:
        metadata['series'] = series
    if part is not None:
        metadata['part'] = part

    toc = config['toc']
    body = f"{toc['start_marker']}\n{toc['end_marker']}\n\n## Introduction\n"

    posts_dir.mkdir(parents=True, exist_ok=True)
    with open(post_path, 'w', encoding='utf-8') as f:
        f.write(frontmatter.dumps(frontmatter.Post(body, **metadata)) + '\n')

    logger.info(f"Created {post_path}")
    return post_path


def main(argv=None):
    parser = argparse.ArgumentParser(description='Create a new blog post skeleton')
    parser.add_argument('title', help='Post title')
    parser.add_argument('--categories', default='', help='Comma-separated categories')
    parser.add_argument('--tags', default='', help='Comma-separated tags')
    parser.add_argument('--series', help='Series name')
    parser.add_argument('--part', type=int, help='Part number within the series')
    parser.add_argument('--date', help='Publication date (YYYY-MM-DD), default: now')
    parser.add_argument('--root', '-r', default='.', help='Repository root (default: .)')
    parser.add_argument('--config', '-c', default=DEFAULT_CONFIG_PATH, help='Path to configuration file')
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    post_date = None
    if args.date:
        try:
            post_date = datetime.strptime(args.date, '%Y-%m-%d')
        except ValueError:
            parser.error(f"Invalid --date '{args.date}', expected YYYY-MM-DD")

    try:
        post_path = create_post(
            args.root,
            args.title,
            split_terms(args.categories),
            split_terms(args.tags),
            load_config(args.config),
            series=args.series,
            part=args.part,
            post_date=post_date,
        )
    except (FileExistsError, ValueError) as e:
        logger.error(str(e))
        sys.exit(1)

    print(f"📝 Created {post_path}")


if __name__ == '__main__':
    main()
