"""Entry management: rm, mv, cp."""

from __future__ import annotations

import sys

import click

from ..errors import PassManagerError
from ._common import fail, get_store, ok


def stdin_is_tty() -> bool:
    return sys.stdin.isatty()


def register_entry_commands(main: click.Group) -> None:
    """Register rm, mv and cp."""

    @main.command("rm")
    @click.option("-f", "--force", is_flag=True, help="Do not ask for confirmation.")
    @click.argument("path")
    @click.pass_context
    def rm(ctx: click.Context, force: bool, path: str):
        """Delete PATH from the store."""
        store = get_store(ctx)
        try:
            store.resolve(path)
        except PassManagerError as exc:
            fail(exc)
        if not force and stdin_is_tty():
            click.confirm(f"Do you really want to delete {path}?", abort=True)
        try:
            store.delete(path)
        except PassManagerError as exc:
            fail(exc)
        ok(f"deleted {path} from password store")

    def transfer(ctx: click.Context, old: str, new: str, force: bool, move: bool) -> None:
        if old == new:
            raise click.UsageError("old-path and new-path cannot be the same")
        store = get_store(ctx)
        try:
            if move:
                store.move(old, new, force=force)
            else:
                store.copy(old, new, force=force)
        except PassManagerError as exc:
            fail(exc)
        ok(f"{'moved' if move else 'copied'} password {old} to {new}")

    @main.command("mv")
    @click.option("-f", "--force", is_flag=True, help="Replace NEW if it exists.")
    @click.argument("old")
    @click.argument("new")
    @click.pass_context
    def mv(ctx: click.Context, force: bool, old: str, new: str):
        """Rename OLD to NEW, re-encrypting into a new record."""
        transfer(ctx, old, new, force, move=True)

    @main.command("cp")
    @click.option("-f", "--force", is_flag=True, help="Replace NEW if it exists.")
    @click.argument("old")
    @click.argument("new")
    @click.pass_context
    def cp(ctx: click.Context, force: bool, old: str, new: str):
        """Copy OLD to NEW as an independent record."""
        transfer(ctx, old, new, force, move=False)
