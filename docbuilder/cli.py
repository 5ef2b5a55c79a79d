"""
Command line entry point.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from rich.markup import escape

from .assemblers import MarkdownAssembler, PdfAssembler, SiteAssembler
from .config import BuildConfig, ConfigError, load_config, save_config, set_config_value
from .log import announce, console, init_logger
from .structurizr import DslExporter

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='docbuilder',
                                     description='Build Markdown, PDF or docsify documentation from a Markdown/Mermaid tree')
    parser.add_argument('--config', type=Path, help='Configuration file (default: ./.docbuilder)')
    parser.add_argument('--log-level', help='DEBUG, INFO, WARNING or ERROR (default: $LOG_LEVEL or WARNING)')
    commands = parser.add_subparsers(dest='command', required=True)

    def add_build_command(name, help_text):
        command = commands.add_parser(name, help=help_text)
        command.add_argument('--root', help='Override the source folder')
        command.add_argument('--dist', help='Override the destination folder')
        command.add_argument('--embed-mermaid', action='store_true',
                             help='Keep Mermaid diagrams as code blocks instead of rendering them')
        return command

    md = add_build_command('md', 'Build a Markdown bundle')
    md.add_argument('--split', action='store_true', help='Write one Markdown file per folder')
    add_build_command('pdf', 'Build a PDF')
    site = add_build_command('site', 'Build a docsify site')
    site.add_argument('--clean', action='store_true', help='Empty the destination and clear the build cache first')
    dsl = commands.add_parser('dsl', help='Export Mermaid diagrams from the Structurizr workspace')
    dsl.add_argument('--root', help='Override the source folder')
    dsl.add_argument('--workspace', help='Override the workspace file name inside <root>/_dsl')

    config = commands.add_parser('config', help='Show or change the configuration')
    actions = config.add_subparsers(dest='action', required=True)
    actions.add_parser('list', help='Print the current configuration')
    setter = actions.add_parser('set', help='Change one setting')
    setter.add_argument('key')
    setter.add_argument('value')
    actions.add_parser('reset', help='Restore the default configuration')
    return parser


def _apply_overrides(config: BuildConfig, args: argparse.Namespace) -> BuildConfig:
    changes = {}
    if getattr(args, 'root', None):
        changes['root_folder'] = args.root
    if getattr(args, 'dist', None):
        changes['dist_folder'] = args.dist
    if getattr(args, 'embed_mermaid', False):
        changes['embed_mermaid_diagrams'] = True
    if getattr(args, 'workspace', None):
        changes['workspace_dsl'] = args.workspace
    if getattr(args, 'split', False):
        changes['generate_complete_md_file'] = False
    return config.replace(**changes) if changes else config


def _print_config(config: BuildConfig):
    for key, value in config.to_mapping().items():
        if isinstance(value, bool):
            shown = 'Yes' if value else 'No'
        else:
            shown = escape(str(value)) if str(value).strip() else '[red]Not set[/red]'
        console.print(f"{key:<40} : {shown}", highlight=False)


def run_config(args: argparse.Namespace, config: BuildConfig) -> int:
    if args.action == 'list':
        _print_config(config)
        return 0
    if args.action == 'reset':
        path = save_config(BuildConfig(), args.config)
        announce(f"Configuration reset in {path}")
        return 0

    try:
        updated = set_config_value(config, args.key, args.value)
    except KeyError:
        logger.error(f"Unknown configuration key {args.key}")
        return 1
    except ValueError as error:
        logger.error(str(error))
        return 1
    path = save_config(updated, args.config)
    announce(f"Updated {args.key} in {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    init_logger(args.log_level)

    try:
        config = load_config(args.config)
    except ConfigError as error:
        logger.error(str(error))
        return 1

    if args.command == 'config':
        return run_config(args, config)

    config = _apply_overrides(config, args)
    if args.command == 'dsl':
        return 0 if DslExporter().export(config) else 1
    if args.command == 'md':
        assembler = MarkdownAssembler()
    elif args.command == 'pdf':
        assembler = PdfAssembler()
    else:
        assembler = SiteAssembler(clean=args.clean)
    return 0 if assembler.build(config) else 1


if __name__ == '__main__':
    sys.exit(main())
