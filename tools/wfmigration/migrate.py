#!/usr/bin/env python3
"""
Workflow Migration Tool

Migrates a legacy Windows Workflow Foundation project to the ActivityFlow
engine: XOML workflows become ActivityFlow classes and legacy activities
are rewritten in place.

Usage:
    wf-migrate <WorkflowProjectFolder> [<WorkflowConfigFile>] [<ActivityProjectFolder>]
"""

import argparse
import logging
import sys
import traceback
from pathlib import Path

from activity_migrator import ActivityMigrator
from workflow_migrator import WorkflowMigrator


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Migrate legacy workflows and activities to ActivityFlow'
    )
    parser.add_argument('workflow_folder', help='Workflow project folder')
    parser.add_argument('workflow_config', nargs='?', default=None,
                        help='Config file registering the workflows (optional)')
    parser.add_argument('activity_folder', nargs='?', default=None,
                        help='Activity project folder (default: workflow project folder)')
    parser.add_argument('-t', '--template-dir', default=None,
                        help='Template directory (default: ./templates)')
    parser.add_argument('--strict', action='store_true',
                        help='Fail on If branches without a condition')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    return parser


def run(args) -> bool:
    """Run both migrations, reporting failures like the code generator does"""
    try:
        WorkflowMigrator(
            args.workflow_folder,
            args.workflow_config,
            strict_conditions=args.strict,
            template_dir=args.template_dir,
        ).migrate()
        ActivityMigrator(args.activity_folder or args.workflow_folder).migrate()
        return True

    except Exception as e:
        print(f"Error migrating workflows: {e}", file=sys.stderr)
        traceback.print_exc()
        return False


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s %(name)s: %(message)s',
    )

    # Check input folders exist
    for folder in (args.workflow_folder, args.activity_folder):
        if folder and not Path(folder).is_dir():
            print(f"Error: folder not found: {folder}", file=sys.stderr)
            return 1
    if args.workflow_config and not Path(args.workflow_config).is_file():
        print(f"Error: workflow config not found: {args.workflow_config}", file=sys.stderr)
        return 1

    return 0 if run(args) else 1


if __name__ == '__main__':
    sys.exit(main())
