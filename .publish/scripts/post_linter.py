#!/usr/bin/env python3
"""
Post Linter - Content checks for blog post markdown files.

This module validates:
- File naming (``YYYY-MM-DD-slug.md``)
- Front matter presence, YAML syntax, required fields and value types
- Fenced code blocks (closed, annotated with a language)
- Heading structure
- Internal links, anchors and ``{% post_url %}`` references
- Series numbering across posts
"""

import fnmatch
import logging
import os
import re
from collections import defaultdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Set

import frontmatter
import yaml

from category_mapper import CategoryMapper
from lint_issue import ERROR, WARNING, LintIssue
from post_parser import POST_FILENAME_RE, Post, PostParser, parse_filename, parse_post_date, split_front_matter
from publish_config import DEFAULT_CONFIG_PATH, load_config
from series_mapper import SeriesMapper
from toc_generator import extract_headings, fenced_line_numbers, scan_fences

logger = logging.getLogger(__name__)

INLINE_CODE_RE = re.compile(r'(`+)(.+?)\1')
INLINE_LINK_RE = re.compile(r'!?\[(?:[^\[\]]|\[[^\]]*\])*\]\(\s*(<[^>]*>|[^)\s]+)(?:\s+["\'(][^)]*)?\)')
REFERENCE_DEF_RE = re.compile(r'^ {0,3}\[(?!\^)[^\]]+\]:\s*(<[^>]*>|\S+)')
HTML_HREF_RE = re.compile(r'\b(?:href|src)\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
POST_URL_RE = re.compile(r'\{%-?\s*post_url\s+([^\s%]+)\s*-?%\}')
LINK_TAG_RE = re.compile(r'\{%-?\s*link\s+([^\s%]+)\s*-?%\}')
EXTERNAL_RE = re.compile(r'^(?:[a-zA-Z][a-zA-Z0-9+.\-]*:|//)')
HTML_ID_RE = re.compile(r'\bid\s*=\s*["\']([^"\']+)["\']', re.IGNORECASE)
ATTR_ID_RE = re.compile(r'\{:?\s*#([A-Za-z][\w\-:.]*)\s*\}')

TERM_FIELDS = ('categories', 'category', 'tags')


class _TextTimestampLoader(yaml.SafeLoader):
    """SafeLoader that leaves timestamps as plain strings."""


_TextTimestampLoader.add_constructor('tag:yaml.org,2002:timestamp', yaml.SafeLoader.construct_yaml_str)


class PostIndex:
    """Lookup table of posts by file stem and by permalink, with their anchors."""

    def __init__(self, file_paths: List[str], permalink: str, anchor_style: str):
        self.by_stem: Dict[str, Dict[str, Any]] = {}
        self.by_url: Dict[str, Dict[str, Any]] = {}
        self.by_path: Dict[str, Dict[str, Any]] = {}

        for file_path in file_paths:
            try:
                with open(file_path, 'r', encoding='utf-8') as f:
                    text = f.read()
            except (OSError, UnicodeDecodeError) as e:
                logger.warning(f"Cannot index {file_path}: {e}")
                continue

            try:
                post = frontmatter.loads(text)
                metadata, content = post.metadata, post.content
            except Exception:
                metadata, content = {}, split_front_matter(text)[1]

            entry = {
                'path': os.path.abspath(file_path),
                'post': Post(file_path, metadata, content, permalink=permalink),
                'anchors': collect_anchors(content, anchor_style),
            }
            self.by_stem[Path(file_path).stem] = entry
            self.by_path[entry['path']] = entry
            url = entry['post'].url
            self.by_url[url] = entry
            if url.endswith('.html'):
                self.by_url[url[:-len('.html')]] = entry
                self.by_url[url[:-len('.html')] + '/'] = entry

    def find_post_url(self, name: str) -> Optional[Dict[str, Any]]:
        """Resolve a ``post_url`` argument, which may include a subdirectory."""
        stem = name.rsplit('/', 1)[-1]
        for suffix in ('.md', '.markdown'):
            if stem.endswith(suffix):
                stem = stem[:-len(suffix)]
        return self.by_stem.get(stem)


def collect_anchors(content: str, anchor_style: str) -> Set[str]:
    """Anchors a rendered post exposes: headings plus explicit ids."""
    anchors = {h['anchor'] for h in extract_headings(content, style=anchor_style)}
    anchors.update(HTML_ID_RE.findall(content))
    anchors.update(ATTR_ID_RE.findall(content))
    return anchors


class PostLinter:
    """Runs content checks over post files and collects issues."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else load_config(config_path)
        self.lint_settings = self.config['lint']
        self.anchor_style = self.config['toc']['anchor_style']
        self.permalink = self.config['site']['permalink']
        self.issues: List[LintIssue] = []
        self.files_checked = 0
        self._mapper: Optional[CategoryMapper] = None
        self._mapper_loaded = False

    @property
    def mapper(self) -> Optional[CategoryMapper]:
        if not self._mapper_loaded:
            self._mapper_loaded = True
            taxonomy_file = self.config.get('taxonomy_file')
            if taxonomy_file and os.path.exists(taxonomy_file):
                self._mapper = CategoryMapper(taxonomy_file)
            else:
                logger.warning(f"Taxonomy file not found: {taxonomy_file}, skipping category checks")
        return self._mapper

    def _enabled(self, rule: str) -> bool:
        return not any(fnmatch.fnmatch(rule, pattern) for pattern in self.lint_settings['disabled_rules'])

    def lint_file(self, file_path: str, index: Optional[PostIndex] = None,
                  site_root: Optional[str] = None) -> List[LintIssue]:
        """Lint a single post and return its issues."""
        issues: List[LintIssue] = []
        path = str(file_path)

        if index is None:
            parent = Path(path).parent
            siblings = [str(p) for pattern in ('*.md', '*.markdown') for p in parent.glob(pattern)]
            index = PostIndex(siblings, self.permalink, self.anchor_style)
        if site_root is None:
            site_root = str(Path(path).parent.parent)

        try:
            with open(path, 'r', encoding='utf-8') as f:
                text = f.read()
        except (OSError, UnicodeDecodeError) as e:
            return [LintIssue(path, 'file-unreadable', f"Cannot read file: {e}")]

        issues.extend(self._check_filename(path))

        front_matter, body, body_start = split_front_matter(text)
        metadata: Dict[str, Any] = {}
        if front_matter is None:
            issues.append(LintIssue(path, 'front-matter-missing',
                                    "File does not start with a '---' front matter block", line=1))
        else:
            metadata_or_issue = self._load_front_matter(path, front_matter)
            if isinstance(metadata_or_issue, LintIssue):
                issues.append(metadata_or_issue)
            else:
                metadata = metadata_or_issue
                issues.extend(self._check_front_matter(path, metadata, front_matter.splitlines()))

        issues.extend(self._check_body(path, body, body_start - 1, index, site_root))

        self.files_checked += 1
        return [issue for issue in issues if self._enabled(issue.rule)]

    def _check_filename(self, path: str) -> List[LintIssue]:
        name = Path(path).name
        if not POST_FILENAME_RE.match(name):
            return [LintIssue(path, 'filename-convention',
                              f"File name '{name}' does not follow YYYY-MM-DD-title.md")]
        file_date, slug = parse_filename(name)
        if file_date is None:
            return [LintIssue(path, 'filename-convention', f"File name '{name}' contains an invalid date")]
        if slug != slug.lower() or ' ' in slug:
            return [LintIssue(path, 'filename-convention',
                              f"Slug '{slug}' should be lowercase without spaces", severity=WARNING)]
        return []

    def _load_front_matter(self, path: str, front_matter: str):
        try:
            metadata = frontmatter.YAMLHandler().load(front_matter)
        except yaml.YAMLError as e:
            mark = getattr(e, 'problem_mark', None)
            line = mark.line + 2 if mark is not None else 1
            problem = getattr(e, 'problem', None) or str(e)
            return LintIssue(path, 'front-matter-invalid', f"Invalid YAML front matter: {problem}", line=line)
        except ValueError:
            # Timestamps that are not calendar dates (2024-02-30); the date check reports them
            metadata = yaml.load(front_matter, Loader=_TextTimestampLoader)

        if metadata is None:
            return {}
        if not isinstance(metadata, dict):
            return LintIssue(path, 'front-matter-invalid',
                             f"Front matter must be a mapping, got {type(metadata).__name__}", line=1)
        return metadata

    def _check_front_matter(self, path: str, metadata: Dict[str, Any],
                            fm_lines: List[str]) -> List[LintIssue]:
        issues = []

        def key_line(key: str) -> int:
            for i, line in enumerate(fm_lines):
                if re.match(rf'^{re.escape(key)}\s*:', line):
                    return i + 2
            return 1

        for field in self.config['required_frontmatter_fields']:
            value = metadata.get(field)
            if value is None or (isinstance(value, (str, list)) and not value):
                issues.append(LintIssue(path, 'front-matter-required',
                                        f"Missing required front matter field '{field}'",
                                        line=key_line(field)))

        if 'date' in metadata and metadata['date'] is not None:
            parsed = parse_post_date(metadata['date'])
            if parsed is None:
                issues.append(LintIssue(path, 'front-matter-date',
                                        f"Cannot parse date '{metadata['date']}'", line=key_line('date')))
            else:
                file_date, _ = parse_filename(Path(path).name)
                if file_date and parsed.date() != file_date:
                    issues.append(LintIssue(
                        path, 'front-matter-date-mismatch',
                        f"Front matter date {parsed.date().isoformat()} differs from "
                        f"file name date {file_date.isoformat()}",
                        severity=WARNING, line=key_line('date')))

        for field in TERM_FIELDS:
            if field not in metadata or metadata[field] is None:
                continue
            value = metadata[field]
            valid = isinstance(value, str) or (
                isinstance(value, list) and all(isinstance(v, (str, int, float)) for v in value))
            if not valid:
                issues.append(LintIssue(path, 'front-matter-type',
                                        f"'{field}' must be a string or a list of strings",
                                        line=key_line(field)))

        title = metadata.get('title')
        if title is not None and not isinstance(title, str):
            issues.append(LintIssue(path, 'front-matter-type', "'title' must be a string", line=key_line('title')))
        elif title and len(title) > self.lint_settings['max_title_length']:
            issues.append(LintIssue(
                path, 'title-length',
                f"Title is {len(title)} characters (max {self.lint_settings['max_title_length']})",
                severity=WARNING, line=key_line('title')))

        if self.mapper is not None:
            post = Post(path, metadata, '')
            for category in post.categories:
                if self.mapper.normalize_category_name(category) == self.mapper.fallback_name:
                    issues.append(LintIssue(
                        path, 'unknown-category', f"Category '{category}' is not in the taxonomy",
                        severity=WARNING, line=key_line('categories')))

        return issues

    def _check_body(self, path: str, body: str, offset: int, index: PostIndex,
                    site_root: str) -> List[LintIssue]:
        issues = []
        lines = body.splitlines()
        fences = scan_fences(lines)

        for fence in fences:
            if fence['end'] is None:
                issues.append(LintIssue(path, 'fence-unclosed',
                                        f"Code fence '{fence['char'] * fence['length']}' is never closed",
                                        line=fence['start'] + offset))
            elif not fence['info'] and self.lint_settings['require_fence_language']:
                issues.append(LintIssue(path, 'fence-language', "Code fence has no language annotation",
                                        severity=WARNING, line=fence['start'] + offset))

        headings = extract_headings(body, style=self.anchor_style, line_offset=offset)
        previous_level = None
        for heading in headings:
            if previous_level is not None and heading['level'] > previous_level + 1:
                issues.append(LintIssue(
                    path, 'heading-level-skip',
                    f"Heading '{heading['text']}' jumps from h{previous_level} to h{heading['level']}",
                    severity=WARNING, line=heading['line']))
            previous_level = heading['level']

        own_anchors = collect_anchors(body, self.anchor_style)
        fenced = fenced_line_numbers(fences, len(lines))
        for number, line in enumerate(lines, start=1):
            if number in fenced:
                continue
            issues.extend(self._check_line_links(path, line, number + offset, own_anchors, index, site_root))

        return issues

    def _check_line_links(self, path: str, line: str, line_number: int, own_anchors: Set[str],
                          index: PostIndex, site_root: str) -> List[LintIssue]:
        issues = []
        line = INLINE_CODE_RE.sub('', line)

        for name in POST_URL_RE.findall(line):
            if index.find_post_url(name) is None:
                issues.append(LintIssue(path, 'broken-post-url', f"post_url '{name}' matches no post",
                                        line=line_number))

        for target in LINK_TAG_RE.findall(line):
            if not os.path.exists(os.path.join(site_root, target)):
                issues.append(LintIssue(path, 'broken-link', f"link tag target '{target}' does not exist",
                                        line=line_number))

        targets = INLINE_LINK_RE.findall(line) + REFERENCE_DEF_RE.findall(line) + HTML_HREF_RE.findall(line)
        for target in targets:
            target = target.strip('<>')
            if not target or target.startswith('{') or '{{' in target or EXTERNAL_RE.match(target):
                continue
            issues.extend(self._check_target(path, target, line_number, own_anchors, index, site_root))

        return issues

    def _check_target(self, path: str, target: str, line_number: int, own_anchors: Set[str],
                      index: PostIndex, site_root: str) -> List[LintIssue]:
        target_path, _, anchor = target.partition('#')
        target_path = target_path.split('?', 1)[0]

        if not target_path:
            if anchor and anchor not in own_anchors:
                return [LintIssue(path, 'broken-anchor', f"Anchor '#{anchor}' matches no heading",
                                  line=line_number)]
            return []

        entry = None
        if target_path.startswith('/'):
            entry = index.by_url.get(target_path)
            if entry is None:
                resolved = os.path.join(site_root, target_path.lstrip('/'))
                if not os.path.exists(resolved):
                    return [LintIssue(path, 'broken-link', f"Link target '{target_path}' matches no post or file",
                                      line=line_number)]
        else:
            resolved = os.path.abspath(os.path.join(os.path.dirname(path), target_path))
            if not os.path.exists(resolved):
                return [LintIssue(path, 'broken-link', f"Link target '{target_path}' does not exist",
                                  line=line_number)]
            entry = index.by_path.get(resolved)

        if anchor and entry is not None and anchor not in entry['anchors']:
            return [LintIssue(path, 'broken-anchor',
                              f"Anchor '#{anchor}' matches no heading in {Path(entry['path']).name}",
                              line=line_number)]
        return []

    def lint_directory(self, root_directory: str = '.') -> List[LintIssue]:
        """Lint every post under the posts directory, including series checks."""
        self.issues = []
        self.files_checked = 0

        parser = PostParser(config=self.config)
        post_files = parser.discover_post_files(root_directory)
        if not post_files:
            logger.warning("No post files found to lint")
            return self.issues

        index = PostIndex(post_files, self.permalink, self.anchor_style)
        for post_file in post_files:
            self.issues.extend(self.lint_file(post_file, index=index, site_root=root_directory))

        if self.lint_settings['check_series']:
            posts = parser.parse_posts_parallel(post_files)
            series_issues = SeriesMapper(posts).validate()
            self.issues.extend(i for i in series_issues if self._enabled(i.rule))

        self.issues.sort(key=lambda i: (i.path, i.line or 0, i.rule))
        logger.info(f"Linted {self.files_checked} posts: "
                    f"{sum(1 for i in self.issues if i.is_error)} errors, "
                    f"{sum(1 for i in self.issues if not i.is_error)} warnings")
        return self.issues

    def get_lint_report(self) -> Dict[str, Any]:
        """Summarize the issues from the last run."""
        rule_counts = defaultdict(int)
        for issue in self.issues:
            rule_counts[issue.rule] += 1

        errors = [i for i in self.issues if i.severity == ERROR]
        return {
            'files_checked': self.files_checked,
            'total_issues': len(self.issues),
            'errors': len(errors),
            'warnings': len(self.issues) - len(errors),
            'rule_breakdown': dict(rule_counts),
            'issues': [i.to_dict() for i in self.issues],
        }
