#!/usr/bin/env python3
"""
TOC Generator - Builds tables of contents for post bodies.

This module provides functionality to:
- Locate fenced code blocks so headings and links inside them are ignored
- Extract ATX and setext headings with kramdown or GitHub style anchors
- Render a nested markdown bullet list of headings
- Refresh the block between the TOC markers of each post in place

Features:
- Safe operation with dry-run mode by default
- Idempotent - can be run multiple times safely
- Only updates files containing both TOC markers
"""

import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from post_parser import PostParser, split_front_matter
from publish_config import DEFAULT_CONFIG_PATH, load_config

logger = logging.getLogger(__name__)

FENCE_RE = re.compile(r'^( {0,3})(`{3,}|~{3,})(.*)$')
ATX_HEADING_RE = re.compile(r'^ {0,3}(#{1,6})(?:[ \t]+(.*?))?(?:[ \t]+#+)?[ \t]*$')
SETEXT_RE = re.compile(r'^ {0,3}(=+|-+)[ \t]*$')
EXPLICIT_ID_RE = re.compile(r'\s*\{:?\s*#([A-Za-z][\w\-:.]*)\s*\}\s*$')
NOT_PARAGRAPH_RE = re.compile(r'^\s*([-*+>|]|\d+[.)]\s|#|<)')


def scan_fences(lines: List[str]) -> List[Dict[str, Any]]:
    """
    Find fenced code blocks.

    Returns one dict per fence with 1-based ``start``/``end`` line numbers,
    the fence ``char``, its ``length`` and the ``info`` string. ``end`` is
    None when the fence is never closed.
    """
    fences = []
    current = None
    for number, line in enumerate(lines, start=1):
        match = FENCE_RE.match(line)
        if current is None:
            if not match:
                continue
            marker, info = match.group(2), match.group(3).strip()
            if marker[0] == '`' and '`' in info:
                continue
            current = {'start': number, 'end': None, 'char': marker[0],
                       'length': len(marker), 'info': info}
            fences.append(current)
        elif match:
            marker, rest = match.group(2), match.group(3).strip()
            if marker[0] == current['char'] and len(marker) >= current['length'] and not rest:
                current['end'] = number
                current = None
    return fences


def fenced_line_numbers(fences: List[Dict[str, Any]], total_lines: int) -> set:
    """Line numbers covered by fences, delimiters included."""
    covered = set()
    for fence in fences:
        end = fence['end'] if fence['end'] is not None else total_lines
        covered.update(range(fence['start'], end + 1))
    return covered


def strip_inline_markup(text: str) -> str:
    """Reduce heading markdown to its plain text."""
    text = re.sub(r'!\[([^\]]*)\]\([^)]*\)', r'\1', text)
    text = re.sub(r'\[([^\]]*)\]\([^)]*\)', r'\1', text)
    text = re.sub(r'\[([^\]]*)\]\[[^\]]*\]', r'\1', text)
    text = re.sub(r'<[^>]+>', '', text)
    text = re.sub(r'`([^`]*)`', r'\1', text)
    text = re.sub(r'(\*\*|__)(.+?)\1', r'\2', text)
    text = re.sub(r'(?<!\w)([*_])(.+?)\1(?!\w)', r'\2', text)
    text = re.sub(r'~~(.+?)~~', r'\1', text)
    return text.strip()


def slugify_heading(text: str, style: str = 'kramdown') -> str:
    """Generate the anchor a renderer assigns to a heading."""
    if style == 'github':
        slug = text.strip().lower()
        slug = re.sub(r'[^\w\- ]', '', slug)
        return slug.replace(' ', '-')

    slug = re.sub(r'^[^a-zA-Z]+', '', text)
    slug = re.sub(r'[^a-zA-Z0-9 \-]', '', slug)
    slug = slug.replace(' ', '-').lower()
    return slug or 'section'


def extract_headings(markdown: str, style: str = 'kramdown', line_offset: int = 0) -> List[Dict[str, Any]]:
    """Extract headings outside code fences, with unique anchors."""
    lines = markdown.splitlines()
    skip = fenced_line_numbers(scan_fences(lines), len(lines))
    used: Dict[str, int] = {}
    headings = []

    for index, line in enumerate(lines):
        number = index + 1
        if number in skip:
            continue

        level, raw = None, None
        atx = ATX_HEADING_RE.match(line)
        if atx:
            level, raw = len(atx.group(1)), atx.group(2) or ''
        elif index > 0 and SETEXT_RE.match(line) and (number - 1) not in skip:
            previous = lines[index - 1]
            if previous.strip() and not NOT_PARAGRAPH_RE.match(previous) \
                    and not SETEXT_RE.match(previous):
                level = 1 if line.strip()[0] == '=' else 2
                raw = previous.strip()
                number -= 1
                if headings and headings[-1]['line'] == number + line_offset:
                    continue

        if level is None:
            continue

        explicit = EXPLICIT_ID_RE.search(raw)
        if explicit:
            raw = raw[:explicit.start()]
        text = strip_inline_markup(raw)

        if explicit:
            anchor = explicit.group(1)
        else:
            base = slugify_heading(text, style)
            anchor = base
            if base in used:
                used[base] += 1
                anchor = f"{base}-{used[base]}"
        used.setdefault(anchor, 0)

        headings.append({'level': level, 'text': text, 'anchor': anchor, 'line': number + line_offset})

    return headings


def render_toc(headings: List[Dict[str, Any]], min_level: int = 2, max_level: int = 3) -> str:
    """Render headings as a nested markdown list."""
    selected = [h for h in headings if min_level <= h['level'] <= max_level]
    if not selected:
        return ''

    base = min(h['level'] for h in selected)
    lines = []
    for heading in selected:
        text = heading['text'].replace('[', r'\[').replace(']', r'\]')
        indent = '  ' * (heading['level'] - base)
        lines.append(f"{indent}- [{text}](#{heading['anchor']})")
    return '\n'.join(lines)


def _find_unfenced(content: str, marker: str, start: int, fenced: set) -> int:
    position = content.find(marker, start)
    while position != -1 and content.count('\n', 0, position) + 1 in fenced:
        position = content.find(marker, position + len(marker))
    return position


def replace_between_markers(content: str, replacement: str, start_marker: str,
                            end_marker: str) -> Optional[str]:
    """
    Replace the text between two marker lines; None if either marker is missing.

    Markers inside code fences are examples, not the TOC block, and are skipped.
    """
    lines = content.splitlines()
    fenced = fenced_line_numbers(scan_fences(lines), len(lines))
    start = _find_unfenced(content, start_marker, 0, fenced)
    if start == -1:
        return None
    end = _find_unfenced(content, end_marker, start + len(start_marker), fenced)
    if end == -1:
        return None

    block = f"{start_marker}\n{replacement}\n{end_marker}" if replacement else f"{start_marker}\n{end_marker}"
    return content[:start] + block + content[end + len(end_marker):]


class TocUpdater:
    """Refreshes the table of contents block in post markdown files."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, config: Optional[Dict[str, Any]] = None):
        self.config = config if config is not None else load_config(config_path)
        self.toc_settings = self.config['toc']

        self.stats = {
            'total_posts': 0,
            'posts_with_markers': 0,
            'posts_updated': 0,
            'posts_skipped': 0,
            'errors': 0,
        }
        self.operations: List[Dict[str, Any]] = []

    def build_toc(self, body: str) -> str:
        headings = extract_headings(body, style=self.toc_settings['anchor_style'])
        return render_toc(headings, self.toc_settings['min_level'], self.toc_settings['max_level'])

    def update_post_file(self, post_path: Path, dry_run: bool = True) -> Tuple[bool, str]:
        """
        Update a single post file with a fresh table of contents.

        Args:
            post_path: Path to post markdown file
            dry_run: If True, don't actually modify the file

        Returns:
            (was_updated: bool, message: str)
        """
        try:
            with open(post_path, 'r', encoding='utf-8') as f:
                content = f.read()

            _, body, _ = split_front_matter(content)
            head = content[:len(content) - len(body)]

            toc = self.build_toc(body)
            new_body = replace_between_markers(body, toc, self.toc_settings['start_marker'],
                                               self.toc_settings['end_marker'])
            if new_body is None:
                return False, "No TOC markers found"

            if new_body == body:
                return False, "TOC already up to date"

            if not dry_run:
                with open(post_path, 'w', encoding='utf-8') as f:
                    f.write(head + new_body)

            entries = toc.count('\n') + 1 if toc else 0
            return True, f"Updated TOC with {entries} entries"

        except Exception as e:
            logger.error(f"Error processing {post_path}: {e}")
            return False, f"Error: {e}"

    def process_posts(self, root_directory: str = '.', dry_run: bool = True,
                      post_filter: Optional[str] = None) -> Dict[str, Any]:
        """
        Refresh the TOC of every post.

        Args:
            root_directory: Repository root containing the posts directory
            dry_run: If True, only analyze without modifying files
            post_filter: Optional substring a post path must contain

        Returns:
            Dict: Processing results and statistics
        """
        logger.info(f"Starting {'DRY RUN' if dry_run else 'LIVE'} TOC processing")

        self.stats = {key: 0 for key in self.stats}
        self.operations = []

        parser = PostParser(config=self.config)
        post_files = [Path(p) for p in parser.discover_post_files(root_directory)]
        if post_filter:
            post_files = [p for p in post_files if post_filter in str(p)]

        self.stats['total_posts'] = len(post_files)
        if not post_files:
            logger.warning("No post files found to process")
            return {'stats': self.stats, 'operations': self.operations, 'dry_run': dry_run}

        for post_file in post_files:
            was_updated, message = self.update_post_file(post_file, dry_run)
            self.operations.append({
                'post': post_file.name,
                'was_updated': was_updated,
                'message': message,
                'file_path': str(post_file),
            })

            if message != "No TOC markers found" and not message.startswith("Error:"):
                self.stats['posts_with_markers'] += 1

            if was_updated:
                self.stats['posts_updated'] += 1
                if dry_run:
                    logger.info(f"Would update: {post_file.name} - {message}")
                else:
                    logger.info(f"Updated: {post_file.name} - {message}")
            else:
                self.stats['posts_skipped'] += 1
                if message.startswith("Error:"):
                    self.stats['errors'] += 1
                    logger.error(f"Error: {post_file.name} - {message}")
                else:
                    logger.debug(f"Skipped: {post_file.name} - {message}")

        return {'stats': self.stats, 'operations': self.operations, 'dry_run': dry_run}

    def print_summary_report(self, results: Dict[str, Any]) -> None:
        """Print a summary report of the processing operation."""
        stats = results['stats']
        operations = results['operations']
        dry_run = results['dry_run']

        print("\n" + "=" * 80)
        print("TABLE OF CONTENTS UPDATE REPORT")
        print("=" * 80)
        print(f"Mode: {'DRY RUN (Preview Only)' if dry_run else 'LIVE UPDATE'}")
        print(f"Timestamp: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print()
        print("SUMMARY:")
        print(f"  Total posts processed: {stats['total_posts']}")
        print(f"  Posts with TOC markers: {stats['posts_with_markers']}")
        print(f"  Posts updated: {stats['posts_updated']}")
        print(f"  Posts skipped: {stats['posts_skipped']}")
        print(f"  Errors encountered: {stats['errors']}")

        updated_ops = [op for op in operations if op['was_updated']]
        if updated_ops:
            print(f"\nUPDATED POSTS ({len(updated_ops)}):")
            for op in updated_ops[:20]:
                print(f"  {op['post']} - {op['message']}")
            if len(updated_ops) > 20:
                print(f"  ... and {len(updated_ops) - 20} more")

        error_ops = [op for op in operations if op['message'].startswith("Error:")]
        if error_ops:
            print(f"\nERRORS ({len(error_ops)}):")
            for op in error_ops[:10]:
                print(f"  {op['post']} - {op['message']}")

        print("\n" + "=" * 80)
        if dry_run and stats['posts_updated'] > 0:
            print("To write the changes, run the command with --live")
        elif not dry_run and stats['posts_updated'] > 0:
            print("TOC update completed!")
        else:
            print("No posts needed updates.")
