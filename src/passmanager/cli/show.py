"""Read-only commands: show, find, path."""

from __future__ import annotations

from typing import Optional

import click

from ..errors import PassManagerError
from ._common import console, fail, get_store, ok, print_tree


def register_show_commands(main: click.Group) -> None:
    """Register show, find and path."""

    @main.command("show")
    @click.option(
        "-c", "--clip", "clip_line",
        is_flag=False, flag_value="1", default=None, metavar="[LINE]",
        help="Copy line LINE (default 1) to the clipboard instead of printing.",
    )
    @click.argument("path", required=False)
    @click.pass_context
    def show(ctx: click.Context, clip_line: Optional[str], path: Optional[str]):
        """Show a password, or the whole store as a tree.

        Examples:

            passmanager

            passmanager show email/work

            passmanager show -c email/work
        """
        if clip_line is not None and path is None and not clip_line.isdigit():
            path, clip_line = clip_line, "1"
        if clip_line is not None and not clip_line.isdigit():
            raise click.BadParameter(f"clip location '{clip_line}' is not a number", param_hint="--clip")

        store = get_store(ctx)
        try:
            if path is None:
                lines = store.tree()
                console.print("Password Store", markup=False)
                print_tree(lines)
                return
            if clip_line is None:
                click.echo(store.show(path).encode("utf-8", "surrogateescape"), nl=False)
                return
            store.clip(path, int(clip_line))
        except PassManagerError as exc:
            fail(exc)
        ok(f"Copied {path} to clipboard. Will clear in {store.config.clip_time} seconds.")

    @main.command("find")
    @click.argument("terms", nargs=-1, required=True)
    @click.pass_context
    def find(ctx: click.Context, terms: tuple[str, ...]):
        """List paths containing any of TERMS (literal match)."""
        store = get_store(ctx)
        try:
            lines = store.find(terms)
        except PassManagerError as exc:
            fail(exc)
        print_tree(lines)

    @main.command("path")
    @click.argument("record_id", metavar="ID")
    @click.pass_context
    def path_cmd(ctx: click.Context, record_id: str):
        """Show the path behind a record ID (decodes git log messages)."""
        store = get_store(ctx)
        try:
            path = store.path_of(record_id)
        except PassManagerError as exc:
            fail(exc)
        if path is not None:
            click.echo(path)
