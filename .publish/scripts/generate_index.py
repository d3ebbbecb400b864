#!/usr/bin/env python3
"""
CLI script to generate the series index (INDEX.md) from post metadata.

This script provides a command-line interface for generating the index
markdown file from post front matter. It can be run locally or as part of
CI/CD pipelines.

Usage:
    python generate_index.py [options]

Examples:
    python generate_index.py                      # Generate with default settings
    python generate_index.py --output INDEX.md    # Custom output file
    python generate_index.py --verbose            # Verbose output
    python generate_index.py --report             # Generate detailed report
"""

import argparse
import json
import logging
import os
import sys

from index_generator import IndexGenerator
from publish_config import DEFAULT_CONFIG_PATH, setup_logging

logger = logging.getLogger(__name__)


def main(argv=None):
    """Main CLI function."""
    parser = argparse.ArgumentParser(
        description='Generate the series index from post metadata',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s                               Generate INDEX.md with default settings
  %(prog)s --output docs/INDEX.md        Generate to custom location
  %(prog)s --report --output report.json Generate detailed JSON report
  %(prog)s --validate-only               Only check categorization
        """
    )
    parser.add_argument(
        '--config', '-c',
        type=str,
        default=DEFAULT_CONFIG_PATH,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Output file path (overrides config setting)'
    )
    parser.add_argument(
        '--root', '-r',
        type=str,
        default='.',
        help='Repository root containing the posts directory (default: .)'
    )
    parser.add_argument(
        '--report',
        action='store_true',
        help='Generate detailed JSON report instead of the index'
    )
    parser.add_argument(
        '--validate-only',
        action='store_true',
        help='Only validate post categorization without generating the index'
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
        generator = IndexGenerator(args.config)

        logger.info(f"Processing posts from root directory: {args.root}")
        generator.load_and_process_posts(args.root)

        if args.validate_only:
            validation = generator.get_generation_report()['validation_results']

            logger.info("Validation Results:")
            logger.info(f"  Total posts: {validation['total_posts']}")
            logger.info(f"  Properly categorized: {validation['categorized_posts']}")
            logger.info(f"  Fallback categorized: {validation['uncategorized_posts']}")
            for warning in validation['validation_warnings']:
                logger.warning(f"  {warning}")
            return

        if args.report:
            report = generator.get_generation_report()
            output_file = args.output or 'generation_report.json'
            with open(output_file, 'w', encoding='utf-8') as f:
                json.dump(report, f, indent=2, default=str)

            if not args.quiet:
                print("\n" + "=" * 50)
                print("GENERATION REPORT SUMMARY")
                print("=" * 50)
                print(f"Total posts processed: {report['total_posts_processed']}")
                print(f"Categories used: {len(report['categories_used'])}")
                print(f"Series: {len(report['series'])}")
                print(f"Template: {report['template_used']}")
                print(f"\n✅ Report saved to: {output_file}")
            return

        generator.generate_index(args.output)
        final_output = args.output or generator.config.get('output_file', 'INDEX.md')

        if not args.quiet:
            report = generator.get_generation_report()
            print("\n" + "=" * 50)
            print("INDEX GENERATION COMPLETED")
            print("=" * 50)
            print(f"📄 Output file: {final_output}")
            print(f"📊 Total posts: {report['total_posts_processed']}")
            print(f"📁 Categories: {len(report['categories_used'])}")
            print(f"📚 Series: {len(report['series'])}")
            if os.path.exists(final_output):
                print(f"📏 File size: {os.path.getsize(final_output):,} bytes")
            errors = report['parsing_report']['errors']
            if errors:
                print(f"⚠️  Posts skipped with errors: {len(errors)}")
            print("\n✅ Index generation successful!")

    except KeyboardInterrupt:
        logger.error("Operation cancelled by user")
        sys.exit(130)
    except Exception as e:
        logger.error(f"Index generation failed: {e}")
        if args.verbose:
            logger.exception("Full error details:")
        sys.exit(1)


if __name__ == '__main__':
    main()
