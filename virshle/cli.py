"""CLI entry points for virshle."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from virshle.config import parse_env
from virshle.constants import CRUNCH_UNDEFINE_FLAGS, VERSION, VIRSH_COMMANDS
from virshle.exceptions import VirshleError
from virshle.files import EphemeralFile, any_to_toml, any_to_xml
from virshle.models import CommandResult, SerializationFormat, Settings
from virshle.utils import Logger, pipe, raw, simple


class Context:
    """Settings and logger shared by every command handler."""

    def __init__(self, settings: Settings, logger: Logger) -> None:
        self.settings = settings
        self.logger = logger

    def virsh(self, group: str, command: str, *args: str) -> List[str]:
        cmd = [self.settings.virsh]
        if self.settings.libvirt_uri:
            cmd += ["-c", self.settings.libvirt_uri]
        return cmd + [VIRSH_COMMANDS[group][command], *args]


def _report(result: CommandResult) -> int:
    if result.success:
        print(result.stdout, end="", flush=True)
        return 0
    print(result.stderr, end="", file=sys.stderr, flush=True)
    return 1


def dump(ctx: Context, args: argparse.Namespace, extra: List[str]) -> int:
    """Print the definition of a domain or network in a structured format."""
    result = pipe(ctx.virsh(args.group, "dump", args.name, *extra), ctx.logger)
    if not result.success:
        return _report(result)
    fmt = SerializationFormat(args.format)
    source = EphemeralFile(raw=result.stdout).read()
    with source.convert(fmt, ctx.settings.work_dir, ctx.logger) as converted:
        print(converted.raw, end="", flush=True)
    return 0


def from_file(ctx: Context, args: argparse.Namespace, extra: List[str]) -> int:
    """Convert a user file to XML and hand it to ``virsh define|create``."""
    with any_to_xml(args.path, ctx.settings.work_dir, ctx.logger) as xml:
        result = raw(ctx.virsh(args.group, args.command, str(xml.path), *extra), ctx.logger)
    return 0 if result.success else 1


def validate(ctx: Context, args: argparse.Namespace, extra: List[str]) -> int:
    with any_to_xml(args.path, ctx.settings.work_dir, ctx.logger) as xml:
        result = raw([ctx.settings.validator, str(xml.path), *extra], ctx.logger)
    return 0 if result.success else 1


def passthrough(ctx: Context, args: argparse.Namespace, extra: List[str]) -> int:
    """Commands that need no conversion at all (list, info, leases...)."""
    positional = [args.name] if getattr(args, "name", None) else []
    result = raw(ctx.virsh(args.group, args.command, *positional, *extra), ctx.logger)
    return 0 if result.success else 1


def edit(ctx: Context, args: argparse.Namespace, extra: List[str]) -> int:
    """Dump as TOML, open it in the editor, then define the edited version."""
    dumped = pipe(ctx.virsh(args.group, "dump", args.name), ctx.logger)
    if not dumped.success:
        return _report(dumped)
    with any_to_toml(dumped.stdout, ctx.settings.work_dir, ctx.logger) as toml:
        edited = simple([ctx.settings.editor, str(toml.path)], ctx.logger)
        if not edited.success:
            ctx.logger.log("ERROR", f"{ctx.settings.editor} exited with an error; {args.name} left unchanged")
            return 1
        with any_to_xml(toml.path, ctx.settings.work_dir, ctx.logger) as xml:
            defined = pipe(ctx.virsh(args.group, "define", str(xml.path), *extra), ctx.logger)
    return _report(defined)


def crunch(ctx: Context, args: argparse.Namespace, extra: List[str]) -> int:
    """Hard delete a domain: stop it, then undefine it with all its storage."""
    destroyed = pipe(ctx.virsh(args.group, "destroy", args.name), ctx.logger)
    if destroyed.success:
        print(destroyed.stdout, end="", flush=True)
    else:
        ctx.logger.log("WARN", destroyed.stderr.strip() or f"Could not destroy {args.name}")
        stopped = pipe(ctx.virsh(args.group, "shutdown", args.name), ctx.logger)
        if not stopped.success:
            ctx.logger.log("WARN", stopped.stderr.strip() or f"Could not shut down {args.name}")
    undefined = pipe(
        ctx.virsh(args.group, "undefine", args.name, *CRUNCH_UNDEFINE_FLAGS, *extra),
        ctx.logger,
    )
    return _report(undefined)


def _add_command(subparsers, name: str, help_text: str, handler, target: Optional[str] = None):
    parser = subparsers.add_parser(name, help=help_text)
    if target == "name":
        parser.add_argument("name", help="Name of the domain or network")
    elif target == "path":
        parser.add_argument("path", type=Path, help="TOML, YAML, JSON or XML definition file")
    parser.set_defaults(handler=handler)
    return parser


def _add_dump(subparsers, help_text: str) -> None:
    parser = _add_command(subparsers, "dump", help_text, dump, "name")
    parser.add_argument(
        "-f",
        "--format",
        choices=[fmt.value for fmt in SerializationFormat if fmt is not SerializationFormat.UNKNOWN],
        default=SerializationFormat.TOML.value,
        help="Output format (default: toml)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="virshle", description="libvirt TOML/YAML wrapper")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (up to -vvvv)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {VERSION}")
    groups = parser.add_subparsers(dest="group", required=True)

    vm = groups.add_parser("vm", help="virtual machines(domains) manipulation commands")
    commands = vm.add_subparsers(dest="command", required=True)
    _add_dump(commands, "dump the definition of a domain(vm) to stdout")
    _add_command(commands, "define", "define (but don't start) a domain(vm) from a file", from_file, "path")
    _add_command(commands, "create", "create a domain(vm) from a file", from_file, "path")
    _add_command(commands, "validate", "validate the domain file definition", validate, "path")
    _add_command(commands, "list", "list domains(vms)", passthrough)
    _add_command(commands, "edit", "edit a domain(vm) configuration", edit, "name")
    _add_command(commands, "crunch", "hard delete the vm (hypervisor definition and storage)", crunch, "name")

    net = groups.add_parser("net", help="virtual network manipulation commands")
    commands = net.add_subparsers(dest="command", required=True)
    _add_dump(commands, "dump the definition of a network to stdout")
    _add_command(commands, "define", "define (but don't start) a network from a file", from_file, "path")
    _add_command(commands, "create", "create a network from a file", from_file, "path")
    _add_command(commands, "remove", "remove a network", passthrough, "name")
    _add_command(commands, "leases", "get host addresses on a network (dhcp leases)", passthrough, "name")
    _add_command(commands, "info", "get basic informations about a network", passthrough, "name")
    _add_command(commands, "list", "list networks", passthrough)
    _add_command(commands, "edit", "edit a network configuration", edit, "name")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args, extra = parser.parse_known_args(argv)

    try:
        settings = parse_env(verbosity=args.verbose)
    except VirshleError as exc:
        Logger().log("ERROR", str(exc))
        return 1

    logger = Logger(settings.verbosity)
    ctx = Context(settings, logger)
    try:
        return args.handler(ctx, args, extra)
    except (VirshleError, OSError) as exc:
        logger.log("ERROR", str(exc))
        return 1
    except Exception as exc:
        logger.log("ERROR", f"Unexpected error: {exc}")
        import traceback

        traceback.print_exc()
        return 1
