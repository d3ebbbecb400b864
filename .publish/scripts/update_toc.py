#!/usr/bin/env python3
"""
Table of Contents Updater

Regenerates the table of contents between the ``<!-- toc -->`` and
``<!-- tocstop -->`` markers of each post. Posts without markers are left
untouched. Runs in dry-run mode unless ``--live`` is given.

Usage:
    python3 update_toc.py [options]
"""

import argparse
import logging
import sys

from publish_config import DEFAULT_CONFIG_PATH, setup_logging
from toc_generator import TocUpdater

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main function with command-line interface."""
    parser = argparse.ArgumentParser(
        description='Update the table of contents in post markdown files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                              # Preview all changes
  %(prog)s --live                       # Update all posts
  %(prog)s --post docker-part-1         # Process matching posts only
  %(prog)s --verbose                    # Enable verbose logging
        """
    )
    parser.add_argument(
        '--config', '-c',
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--root', '-r',
        default='.',
        help='Repository root containing the posts directory (default: .)'
    )
    parser.add_argument(
        '--post',
        type=str,
        help='Only process posts whose path contains this text'
    )
    parser.add_argument(
        '--live',
        action='store_true',
        help='Write the updated files (default is a dry run)'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--quiet', '-q',
        action='store_true',
        help='Suppress all output except errors'
    )

    args = parser.parse_args(argv)
    setup_logging(args.verbose, args.quiet)

    try:
        updater = TocUpdater(args.config)
        results = updater.process_posts(args.root, dry_run=not args.live, post_filter=args.post)

        if not args.quiet:
            updater.print_summary_report(results)

        if results['stats']['errors'] > 0:
            sys.exit(1)

    except KeyboardInterrupt:
        logger.error("Processing interrupted by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Processing failed: {e}")
        if args.verbose:
            logger.exception("Full error details:")
        sys.exit(1)


if __name__ == '__main__':
    main()
