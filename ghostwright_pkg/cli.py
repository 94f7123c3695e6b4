#!/usr/bin/env python3
"""
Command-line interface for Ghostwright.
"""

import os
import sys
import argparse
from typing import List, Optional
from . import __version__
from .content import create_content_source, write_snapshot
from .core import Ghostwright
from .settings import GhostwrightSettings


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Ghostwright - static site builder for Ghost')
    parser.add_argument('--source', type=str, choices=['file', 'graphql', 'ghost'],
                        help='Where to read content from')
    parser.add_argument('--content-file', type=str,
                        help='Content snapshot (JSON or YAML) for the file source')
    parser.add_argument('--graphql-url', type=str,
                        help='GraphQL endpoint for the graphql source')
    parser.add_argument('--ghost-api-url', type=str,
                        help='Ghost site URL for the ghost source')
    parser.add_argument('--ghost-content-api-key', type=str,
                        help='Ghost Content API key')
    parser.add_argument('--output', type=str,
                        help='Output directory for generated site')
    parser.add_argument('--templates', type=str,
                        help='Templates directory')
    parser.add_argument('--assets', type=str,
                        help='Assets directory to copy to output')
    parser.add_argument('--posts-per-page', type=int,
                        help='Number of posts per listing page')
    parser.add_argument('--site-title', type=str, help='Site title for metadata')
    parser.add_argument('--site-url', type=str,
                        help='Site URL for sitemaps')
    parser.add_argument('--robots', type=str, choices=['public', 'private'],
                        help='Robots.txt configuration')
    parser.add_argument('--develop', action='store_true',
                        help='Development build: no minification')
    parser.add_argument('--snapshot', type=str, metavar='PATH',
                        help='Fetch content and write it to PATH instead of building')
    parser.add_argument('--init', type=str, choices=['yml', 'yaml', 'json'],
                        help='Create a sample configuration file')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    settings_loader = GhostwrightSettings()

    # Handle init command
    if args.init:
        config_path = settings_loader.create_sample_config(args.init)
        print(f"Created sample configuration file: {config_path}")
        return 0

    try:
        settings_loader.load_settings()

        args_dict = {k: v for k, v in vars(args).items() if v is not None}
        if args_dict.pop('develop', False):
            args_dict['production'] = False
        final_settings = settings_loader.merge_with_args(args_dict)

        source = create_content_source(final_settings)

        if args.snapshot:
            try:
                result = source.query()
                result.raise_for_errors()
                write_snapshot(result, args.snapshot)
            finally:
                source.close()
            print(f"Wrote content snapshot: {args.snapshot}")
            return 0

        output_dir = os.path.expanduser(final_settings['output'])

        generator = Ghostwright(
            source,
            templates_dir=final_settings['templates'],
            output_dir=output_dir,
            posts_per_page=final_settings['posts_per_page'],
            site_url=final_settings['site_url'],
            site_title=final_settings['site_title'],
            assets_dir=final_settings['assets'],
            production=final_settings['production'],
            show_progress=sys.stderr.isatty()
        )

        try:
            succeeded = generator.build(robots=final_settings['robots'])
        finally:
            generator.cleanup()

        if not succeeded:
            print(f"Error: {len(generator.failed_routes)} route(s) failed to render", file=sys.stderr)
            return 1

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())
