#!/usr/bin/env python3
"""
Publish Config - Loads the JSON configuration shared by the publishing scripts.

Every script accepts a ``--config`` path. Values found in the file are merged
over ``DEFAULT_CONFIG`` so a partial config only needs the keys it changes.
"""

import copy
import json
import logging
import os
import sys
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = '.publish/data/config.json'

DEFAULT_CONFIG: Dict[str, Any] = {
    'posts_directory': '_posts',
    'required_frontmatter_fields': ['title', 'date', 'categories', 'tags'],
    'taxonomy_file': '.publish/data/taxonomy.json',
    'output_file': 'INDEX.md',
    'template': '.publish/templates/INDEX.jinja2',
    'generation_settings': {
        'sort_posts_by': 'date',
        'newest_first': True,
        'show_statistics': True,
        'repository_url': '',
    },
    'site': {
        'title': 'Python Mastery',
        'description': '',
        'base_url': '',
        'author': '',
        'output_dir': '.publish/docs',
        'templates_dir': '.publish/templates/site',
        'permalink': '/:year/:month/:day/:title.html',
        'feed_limit': 20,
    },
    'lint': {
        'require_fence_language': True,
        'max_title_length': 120,
        'disabled_rules': [],
        'check_series': True,
    },
    'toc': {
        'min_level': 2,
        'max_level': 3,
        'anchor_style': 'kramdown',
        'start_marker': '<!-- toc -->',
        'end_marker': '<!-- tocstop -->',
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> Dict[str, Any]:
    """Load configuration from JSON file, falling back to defaults."""
    if not config_path or not os.path.exists(config_path):
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return copy.deepcopy(DEFAULT_CONFIG)

    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file {config_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a JSON object")

    logger.debug(f"Loaded config from {config_path}")
    return _merge(DEFAULT_CONFIG, data)


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Setup logging configuration for the command-line scripts."""
    level = logging.DEBUG if verbose else logging.INFO
    format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s' if verbose else '%(levelname)s: %(message)s'

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )
    if quiet:
        logging.getLogger().setLevel(logging.ERROR)
