from __future__ import annotations

import argparse
import sys
from pathlib import Path

from artifact_merge import MergeError, SchemaError

from t3_mono import __version__
from t3_mono.catalog import Catalog, load_catalog
from t3_mono.errors import ScaffoldError
from t3_mono.prompts import prompt_selection
from t3_mono.scaffolding import CreateOptions, add_extension, create_project
from t3_mono.scaffolding.base import DEFAULT_AUTH_PROVIDER

_SHORT_FLAGS = {"ai": "-a", "ui": "-u", "restate": "-r", "cmd": "-c"}


def _eprint(*args: object) -> None:
    print(*args, file=sys.stderr)


def _print_steps(steps: list[str]) -> None:
    print("\nNext steps:")
    for step in steps:
        print(f"  {step}")


def _cmd_create(args: argparse.Namespace, catalog: Catalog) -> int:
    auth_provider = str(args.auth)
    extensions = tuple(args.extensions or ())
    if args.interactive:
        selection = prompt_selection(catalog, auth_provider=auth_provider, extensions=extensions)
        auth_provider = selection.auth_provider
        extensions = selection.extensions

    options = CreateOptions(
        target=Path(args.name),
        auth_provider=auth_provider,
        extensions=extensions,
        git=not args.no_git,
        allow_existing=args.name == ".",
    )
    result = create_project(options, catalog)

    print(f"Created {result.project_name} in {result.project_root}")
    print(f"  auth: {catalog.auth_provider(result.auth_provider).label}")
    if result.extensions:
        labels = ", ".join(catalog.extension(e).label for e in result.extensions)
        print(f"  extensions: {labels}")
    if result.git_initialized is False:
        _eprint("WARNING: git is not available or `git init` failed; repository not initialized.")

    steps: list[str] = []
    if args.name != ".":
        steps.append(f"cd {args.name}")
    steps.extend(["npm install", "cp .env.example .env", "npx prisma db push", "npm run dev"])
    steps.extend(result.next_steps)
    _print_steps(steps)
    return 0


def _cmd_add(args: argparse.Namespace, catalog: Catalog) -> int:
    project_root = (args.project_root or Path.cwd()).resolve()
    result = add_extension(str(args.extension), project_root, catalog)
    unit = catalog.extension(result.unit_id)

    print(f"Added {unit.label} to {project_root} ({len(result.files)} files written)")
    if unit.schema is not None and not result.schema_applied:
        print("  prisma/schema.prisma already contains this extension's models; left unchanged")
    _print_steps(["npm install", *result.next_steps])
    return 0


def build_parser(catalog: Catalog) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="t3-mono",
        description="Create a T3 stack project with optional extensions.",
        epilog="Use `t3-mono add <extension>` to add an extension to an existing project.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("name", nargs="?", default=".", help="Project directory (default: current directory).")
    for extension_id, unit in catalog.extensions.items():
        flags = [f"--{extension_id}"]
        short = _SHORT_FLAGS.get(extension_id)
        if short is not None:
            flags.insert(0, short)
        help_text = unit.summary or unit.label
        if unit.requires_auth is not None:
            help_text += f" (requires --auth {unit.requires_auth})"
        parser.add_argument(
            *flags,
            dest="extensions",
            action="append_const",
            const=extension_id,
            help=help_text,
        )
    parser.add_argument("-i", "--interactive", action="store_true", help="Prompt for auth and extensions.")
    parser.add_argument("--no-git", action="store_true", help="Skip git initialization.")
    parser.add_argument(
        "--auth",
        choices=list(catalog.auth_providers),
        default=DEFAULT_AUTH_PROVIDER,
        help=f"Auth provider (default: {DEFAULT_AUTH_PROVIDER}).",
    )
    parser.set_defaults(func=_cmd_create)
    return parser


def build_add_parser(catalog: Catalog) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="t3-mono add",
        description="Add an extension to an existing t3-mono project.",
    )
    parser.add_argument("extension", choices=list(catalog.extensions))
    parser.add_argument(
        "--project-root",
        type=Path,
        help="Project directory containing package.json (default: current directory).",
    )
    parser.set_defaults(func=_cmd_add)
    return parser


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else list(argv)
    try:
        catalog = load_catalog()
    except ScaffoldError as exc:
        _eprint(f"ERROR: {exc}")
        return 2

    if argv[:1] == ["add"]:
        args = build_add_parser(catalog).parse_args(argv[1:])
    else:
        args = build_parser(catalog).parse_args(argv)

    try:
        return int(args.func(args, catalog))
    except (ScaffoldError, MergeError, SchemaError) as exc:
        _eprint(f"ERROR: {exc}")
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
