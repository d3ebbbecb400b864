#!/usr/bin/env python3
"""
Series Mapper - Groups numbered posts ("Part N") into ordered series.

Series membership comes from the ``series``/``part`` front matter fields or
from titles such as "Python Mastery Part 3: Docker". The mapper provides
previous/next navigation and checks that each series is numbered cleanly.
"""

import logging
from collections import OrderedDict
from datetime import datetime
from typing import Any, Dict, List, Optional

from lint_issue import ERROR, WARNING, LintIssue
from post_parser import Post, slugify

logger = logging.getLogger(__name__)


class Series:
    """An ordered group of posts sharing a series name."""

    def __init__(self, name: str):
        self.name = name
        self.key = slugify(name)
        self.posts: List[Post] = []

    def add(self, post: Post) -> None:
        self.posts.append(post)
        self.posts.sort(key=lambda p: (p.part if p.part is not None else 10 ** 6,
                                       p.date or datetime.min, p.file_path))

    @property
    def parts(self) -> List[int]:
        return [p.part for p in self.posts if p.part is not None]

    @property
    def missing_parts(self) -> List[int]:
        present = set(self.parts)
        if not present:
            return []
        return [n for n in range(1, max(present) + 1) if n not in present]

    @property
    def first_date(self) -> datetime:
        dates = [p.date for p in self.posts if p.date]
        return min(dates) if dates else datetime.max

    def _index(self, post: Post) -> int:
        for i, candidate in enumerate(self.posts):
            if candidate is post or candidate.file_path == post.file_path:
                return i
        raise ValueError(f"{post.file_path} is not part of series '{self.name}'")

    def previous(self, post: Post) -> Optional[Post]:
        index = self._index(post)
        return self.posts[index - 1] if index > 0 else None

    def next(self, post: Post) -> Optional[Post]:
        index = self._index(post)
        return self.posts[index + 1] if index + 1 < len(self.posts) else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'key': self.key,
            'posts': [{'title': p.title, 'url': p.url, 'part': p.part} for p in self.posts],
            'missing_parts': self.missing_parts,
        }

    def __len__(self) -> int:
        return len(self.posts)


class SeriesMapper:
    """Builds series from a list of posts."""

    def __init__(self, posts: List[Post]):
        self.series: Dict[str, Series] = OrderedDict()
        for post in posts:
            name = post.series
            if not name:
                continue
            key = slugify(name)
            if key not in self.series:
                self.series[key] = Series(name)
            self.series[key].add(post)
        logger.debug(f"Grouped posts into {len(self.series)} series")

    def get_series(self, name_or_key: str) -> Optional[Series]:
        return self.series.get(slugify(name_or_key))

    def get_all_series(self) -> List[Series]:
        """All series ordered by the date of their earliest post."""
        return sorted(self.series.values(), key=lambda s: (s.first_date, s.name))

    def series_for(self, post: Post) -> Optional[Series]:
        if not post.series:
            return None
        return self.series.get(slugify(post.series))

    def navigation_for(self, post: Post) -> Optional[Dict[str, Any]]:
        """Previous/next links for a post, or None if it is not in a series."""
        series = self.series_for(post)
        if series is None:
            return None
        return {
            'series': series,
            'part': post.part,
            'total': len(series),
            'previous': series.previous(post),
            'next': series.next(post),
        }

    def validate(self) -> List[LintIssue]:
        """Check part numbering and dating of every series."""
        issues = []
        for series in self.get_all_series():
            seen: Dict[int, Post] = {}
            for post in series.posts:
                if post.part is None:
                    continue
                if post.part in seen:
                    issues.append(LintIssue(
                        post.file_path, 'series-duplicate-part',
                        f"Part {post.part} of '{series.name}' is also used by {seen[post.part].file_name}",
                        severity=ERROR,
                    ))
                else:
                    seen[post.part] = post

            for missing in series.missing_parts:
                issues.append(LintIssue(
                    series.posts[-1].file_path, 'series-missing-part',
                    f"Series '{series.name}' has no part {missing}",
                    severity=WARNING,
                ))

            numbered = [p for p in series.posts if p.part is not None and p.date]
            for earlier, later in zip(numbered, numbered[1:]):
                if later.part != earlier.part and later.date < earlier.date:
                    issues.append(LintIssue(
                        later.file_path, 'series-date-order',
                        f"Part {later.part} of '{series.name}' is dated before part {earlier.part}",
                        severity=WARNING,
                    ))
        return issues
