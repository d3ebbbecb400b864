#!/usr/bin/env python3
"""
Post Lint Script - Content validation for the posts directory.

This script checks every post for:
- File naming and front matter
- Unclosed or unannotated code fences
- Broken internal links, anchors and post_url references
- Series numbering

Usage:
    python lint_posts.py [options]
"""

import argparse
import json
import logging
import sys

from post_linter import PostLinter
from publish_config import DEFAULT_CONFIG_PATH, setup_logging

logger = logging.getLogger(__name__)


def print_report(report, issues) -> None:
    print("\n" + "=" * 60)
    print("POST LINT REPORT")
    print("=" * 60)

    for issue in issues:
        marker = "❌" if issue.is_error else "⚠️ "
        print(f"{marker} {issue}")

    print(f"\nFiles checked: {report['files_checked']}")
    print(f"Errors: {report['errors']}")
    print(f"Warnings: {report['warnings']}")
    if report['rule_breakdown']:
        print("\nBy rule:")
        for rule, count in sorted(report['rule_breakdown'].items()):
            print(f"  {rule}: {count}")


def main(argv=None):
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description='Lint blog post markdown files',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        'files',
        nargs='*',
        help='Specific post files to lint (default: the whole posts directory)'
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help='Path to configuration file'
    )
    parser.add_argument(
        '--root', '-r',
        type=str,
        default='.',
        help='Repository root containing the posts directory'
    )
    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Output lint report to JSON file'
    )
    parser.add_argument(
        '--strict',
        action='store_true',
        help='Treat warnings as failures'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Only print the summary'
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        linter = PostLinter(args.config)
        if args.files:
            for file_path in args.files:
                linter.issues.extend(linter.lint_file(file_path))
        else:
            linter.lint_directory(args.root)

        report = linter.get_lint_report()

        if args.output:
            with open(args.output, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2)
            logger.info(f"Lint report saved to {args.output}")

        print_report(report, [] if args.quiet else linter.issues)

        failed = report['errors'] > 0 or (args.strict and report['warnings'] > 0)
        if failed:
            print("\n❌ Lint failed")
            sys.exit(1)
        print("\n✅ Lint passed")

    except KeyboardInterrupt:
        logger.error("Lint interrupted by user")
        sys.exit(130)
    except (OSError, ValueError) as e:
        logger.error(f"Lint failed: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
