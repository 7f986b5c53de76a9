"""Shared utilities for all CLI command modules.

Provides the Rich consoles, the lazily opened PasswordStore and the
error reporting every command uses.
"""

from __future__ import annotations

import os
from typing import Iterable, NoReturn

import click
from rich.console import Console
from rich.markup import escape

from ..config import load_config
from ..errors import PartialRotationError, PassManagerError
from ..store import PasswordStore
from ..tempfiles import SecureTempRegistry

console = Console(highlight=False, emoji=False, soft_wrap=True)
err_console = Console(stderr=True, highlight=False, emoji=False, soft_wrap=True)


def get_store(ctx: click.Context) -> PasswordStore:
    """Return the store for this invocation, opening it on first use.

    The temp registry is entered as a resource of the root context, so
    its files are wiped when the command finishes, fails or is killed.
    Tests inject a ready store through ``obj``.
    """
    root = ctx.find_root()
    if isinstance(root.obj, PasswordStore):
        return root.obj
    try:
        config = load_config()
        os.umask(config.umask)
        registry = root.with_resource(SecureTempRegistry(config.tmp_dir))
        root.obj = PasswordStore(config, registry)
    except PassManagerError as exc:
        fail(exc)
    return root.obj


def fail(exc: PassManagerError) -> NoReturn:
    """Print a store error on stderr and exit with status 1."""
    err_console.print(f"[bold red]Error:[/] {escape(str(exc))}")
    if isinstance(exc, PartialRotationError):
        if exc.done:
            err_console.print(f"  [yellow]rotated:[/] {' '.join(exc.done)}")
        if exc.remaining:
            err_console.print(f"  [yellow]remaining:[/] {' '.join(exc.remaining)}")
    raise SystemExit(1)


def ok(message: str) -> None:
    console.print(f"[green]{escape(message)}[/]")


def print_tree(lines: Iterable[str]) -> None:
    for line in lines:
        console.print(line, markup=False)
