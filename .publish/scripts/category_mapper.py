#!/usr/bin/env python3
"""
Category Mapper - Maps free-form post categories onto the topic taxonomy.

Authors write categories by hand (``Docker``, ``ci-cd``, ``k8s``), so every
topic in ``taxonomy.json`` lists aliases and keywords. A category resolves
through its aliases first, then through keywords; posts whose categories
resolve nowhere are matched by keywords in their title and tags, and land
in the ``general`` topic when nothing matches.
"""

import json
import logging
import re
from collections import Counter
from typing import Any, Dict, Iterable, List, Optional

logger = logging.getLogger(__name__)

FALLBACK_KEY = 'general'


def canonical(text: str) -> str:
    """Lowercase and drop everything but letters and digits."""
    return re.sub(r'[^a-z0-9]', '', str(text).lower())


class CategoryMapper:
    """Resolves categories and posts to taxonomy topics."""

    def __init__(self, taxonomy_path: str = '.publish/data/taxonomy.json'):
        with open(taxonomy_path, 'r', encoding='utf-8') as f:
            taxonomy = json.load(f)
        if 'categories' not in taxonomy:
            raise ValueError(f"Taxonomy file {taxonomy_path} is missing a 'categories' section")

        self.topics: Dict[str, Dict[str, Any]] = taxonomy['categories']
        self.aliases: Dict[str, str] = {}
        self.keyword_patterns: Dict[str, List[re.Pattern]] = {}

        for key, topic in self.topics.items():
            for alias in [key, topic['name']] + topic.get('aliases', []):
                self.aliases.setdefault(canonical(alias), key)
            self.keyword_patterns[key] = [
                re.compile(r'(?<![a-z0-9])' + re.escape(keyword.lower()))
                for keyword in topic.get('keywords', [])
            ]
        logger.debug(f"Loaded {len(self.topics)} topics from {taxonomy_path}")

    @property
    def fallback_name(self) -> str:
        fallback = self.topics.get(FALLBACK_KEY)
        return fallback['name'] if fallback else 'General'

    def _name(self, key: Optional[str]) -> str:
        return self.topics[key]['name'] if key else self.fallback_name

    def _match_keywords(self, texts: Iterable[str]) -> Optional[str]:
        """Topic whose keywords occur most often in the texts; ties go to taxonomy order."""
        text = ' '.join(str(t).lower() for t in texts)
        scores = Counter()
        for key, patterns in self.keyword_patterns.items():
            hits = sum(1 for pattern in patterns if pattern.search(text))
            if hits:
                scores[key] = hits
        if not scores:
            return None
        return max(scores, key=scores.get)

    def resolve(self, category: str) -> Optional[str]:
        """Topic key for a single category, or None."""
        if not category:
            return None
        key = self.aliases.get(canonical(category))
        if key is not None:
            return key
        return self._match_keywords([category])

    def normalize_category_name(self, category: str) -> str:
        """Display name of the topic a category belongs to."""
        key = self.resolve(category)
        if key is None:
            logger.debug(f"Could not normalize category: {category}")
        return self._name(key)

    def categorize_post(self, post_data: Dict[str, Any]) -> str:
        """Topic display name for a post dict with ``categories``, ``title`` and ``tags``."""
        for category in post_data.get('categories') or []:
            key = self.resolve(category)
            if key is not None and key != FALLBACK_KEY:
                return self._name(key)

        key = self._match_keywords([post_data.get('title') or ''] + list(post_data.get('tags') or []))
        if key is None:
            logger.debug(f"Could not categorize post: {post_data.get('title', 'Unknown')}")
        return self._name(key)

    def _topic_info(self, key: str) -> Dict[str, Any]:
        topic = self.topics[key]
        return {
            'key': key,
            'name': topic['name'],
            'emoji': topic.get('emoji', '📁'),
            'description': topic.get('description', ''),
            'keywords': topic.get('keywords', []),
            'order': topic.get('order', 999),
        }

    def get_category_info(self, category_name: str) -> Dict[str, Any]:
        for key, topic in self.topics.items():
            if topic['name'] == category_name:
                return self._topic_info(key)
        return {}

    def get_all_categories(self) -> List[Dict[str, Any]]:
        """All topics in display order."""
        return sorted((self._topic_info(key) for key in self.topics),
                      key=lambda info: (info['order'], info['name']))

    def validate_post_categories(self, posts: List[Dict[str, Any]]) -> Dict[str, Any]:
        """Count how posts resolve and warn about categories that only reach the fallback."""
        distribution = Counter()
        warnings = []
        fallback_only = 0

        for post in posts:
            name = self.categorize_post(post)
            distribution[name] += 1
            if name == self.fallback_name and post.get('categories'):
                fallback_only += 1
                warnings.append(f"Could not categorize post '{post.get('title', 'Unknown')}' "
                                f"with categories {post.get('categories')}")

        return {
            'total_posts': len(posts),
            'categorized_posts': len(posts) - fallback_only,
            'uncategorized_posts': fallback_only,
            'category_distribution': dict(distribution),
            'validation_warnings': warnings,
        }
