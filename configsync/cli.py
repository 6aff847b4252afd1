#!/usr/bin/env python3
"""
configsync CLI

Command-line interface for reading, editing, converting and watching
configuration files.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, List, Optional

from .errors import ConfigSyncError, error_response
from .models import ConfigChanged, ConfigReloadFailed
from .service import ConfigService

logger = logging.getLogger(__name__)


class ConfigSyncCLI:
    """CLI front end over a ConfigService."""

    def __init__(self, service: Optional[ConfigService] = None, out=None):
        self.service = service or ConfigService()
        self.out = out or sys.stdout

    def _print(self, value: Any) -> None:
        self.out.write(json.dumps(value, indent=2, ensure_ascii=False) + "\n")
        self.out.flush()

    async def cmd_get(self, args) -> int:
        """Print a value (or the whole document) as JSON."""
        await self.service.load_config(args.file)
        missing = object()
        value = self.service.get_config(args.path, default=missing)
        if value is missing:
            print(f"Path not found: {args.path}", file=sys.stderr)
            return 1
        self._print(value)
        return 0

    async def cmd_set(self, args) -> int:
        """Set a value and save the file."""
        await self.service.load_config(args.file)

        value: Any = args.value
        if args.json:
            try:
                value = json.loads(args.value)
            except json.JSONDecodeError as e:
                print(f"Invalid JSON value: {e}", file=sys.stderr)
                return 2

        self.service.set_config(args.path, value)
        target = await self.service.save_config(args.output)
        print(f"✅ Saved {target}", file=sys.stderr)
        return 0

    async def cmd_convert(self, args) -> int:
        """Load one file and save it in the format of another."""
        await self.service.load_config(args.source)
        target = await self.service.save_config(args.destination)
        print(f"✅ Converted {args.source} -> {target}", file=sys.stderr)
        return 0

    async def cmd_watch(self, args) -> int:
        """Print the document every time the file changes."""
        await self.service.load_config(args.file)
        self._print(self.service.get_config(args.path))

        def on_event(event) -> None:
            if isinstance(event, ConfigChanged):
                self._print(self.service.get_config(args.path))
            elif isinstance(event, ConfigReloadFailed):
                print(f"❌ Reload failed: {event.error}", file=sys.stderr)

        self.service.subscribe(on_event)
        self.service.watch_config(args.file)
        print(f"Watching {args.file} (Ctrl+C to stop)", file=sys.stderr)

        try:
            while True:
                await asyncio.sleep(3600)
        finally:
            self.service.close()

    async def run(self, args) -> int:
        handler = getattr(self, f"cmd_{args.command}")
        logger.debug(f"Running {args.command} command")
        try:
            return await handler(args)
        except ConfigSyncError as e:
            error = error_response(e)
            print(f"❌ {error['message']}", file=sys.stderr)
            if "suggestion" in error:
                print(f"  → {error['suggestion']}", file=sys.stderr)
            return 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="configsync",
        description="Read, edit, convert and watch JSON/INI/XML/CSV configuration files"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", required=True)

    get_parser = subparsers.add_parser("get", help="Print a value as JSON")
    get_parser.add_argument("file", help="Configuration file")
    get_parser.add_argument("path", nargs="?", help="Path expression, e.g. server.port (default: whole document)")

    set_parser = subparsers.add_parser("set", help="Set a value and save")
    set_parser.add_argument("file", help="Configuration file")
    set_parser.add_argument("path", help="Path expression, e.g. users[0].name")
    set_parser.add_argument("value", help="New value (a string unless --json is given)")
    set_parser.add_argument("--json", action="store_true", help="Parse VALUE as JSON")
    set_parser.add_argument("-o", "--output", help="Write to this file instead of FILE")

    convert_parser = subparsers.add_parser("convert", help="Convert between formats")
    convert_parser.add_argument("source", help="File to read")
    convert_parser.add_argument("destination", help="File to write; its extension picks the format")

    watch_parser = subparsers.add_parser("watch", help="Print the document whenever the file changes")
    watch_parser.add_argument("file", help="Configuration file")
    watch_parser.add_argument("path", nargs="?", help="Only print this path")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    cli = ConfigSyncCLI()
    try:
        return asyncio.run(cli.run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
