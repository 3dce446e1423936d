#!/usr/bin/env python3
"""
linsim - command line entry point

Boots the filesystem (which seeds the root and the shared directories
on first run) and runs one administrative command:

    linsim [--config PATH] seed
    linsim [--config PATH] tree [--user ID] [--node ID]
    linsim [--config PATH] provision-home USER_ID USERNAME

Version: 1.0.0
"""

import argparse
import json
import sys
from typing import Optional, List

from linsim.core.bootloader import Bootloader
from linsim.exceptions import FileSystemException


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='linsim',
        description="Shared virtual Linux filesystem"
    )
    parser.add_argument(
        '--config',
        metavar='PATH',
        help="JSON configuration file (defaults plus LINSIM_* environment when omitted)"
    )

    commands = parser.add_subparsers(dest='command', required=True)

    commands.add_parser('seed', help="Create the root and the shared system directories")

    tree = commands.add_parser('tree', help="Print a subtree as JSON")
    tree.add_argument('--user', type=int, default=None, help="Acting user id (anonymous when omitted)")
    tree.add_argument('--node', type=int, default=None, help="Start node id (the root when omitted)")

    home = commands.add_parser('provision-home', help="Create /home/<USERNAME> for a user")
    home.add_argument('user_id', type=int)
    home.add_argument('username')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for linsim.

    Returns:
        Process exit status
    """
    args = build_parser().parse_args(argv)

    bootloader = Bootloader(args.config)
    result = bootloader.boot()

    if not result.success:
        print(f"Boot failed at stage {result.stage.name}", file=sys.stderr)
        print(f"Error: {result.message}", file=sys.stderr)
        return 1

    engine = bootloader.get_engine()

    try:
        if args.command == 'seed':
            root = engine.store.find_root()
            print(f"Filesystem seeded (root id {root.id})")

        elif args.command == 'tree':
            tree = engine.get_tree(args.user, args.node)
            print(json.dumps(tree.to_dict(), indent=2))

        elif args.command == 'provision-home':
            node = engine.provision_home(args.user_id, args.username)
            if node is None:
                print("Home directory root is missing; nothing provisioned", file=sys.stderr)
                return 1
            print(json.dumps(node.to_dict(), indent=2))

    except FileSystemException as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    finally:
        bootloader.shutdown()

    return 0


if __name__ == '__main__':
    sys.exit(main())
