"""Commands that produce secret content: generate, edit."""

from __future__ import annotations

from typing import Optional

import click

from ..errors import PassManagerError
from ._common import fail, get_store, ok


def register_generate_commands(main: click.Group) -> None:
    """Register generate and edit."""

    @main.command("generate")
    @click.option("-n", "--no-symbols", is_flag=True, help="Letters and digits only.")
    @click.option("-i", "--in-place", "inplace", is_flag=True, help="Replace only the first line.")
    @click.option("-f", "--force", is_flag=True, help="Overwrite the whole entry.")
    @click.argument("path")
    @click.argument("length", type=click.IntRange(min=1), required=False)
    @click.pass_context
    def generate(
        ctx: click.Context,
        no_symbols: bool,
        inplace: bool,
        force: bool,
        path: str,
        length: Optional[int],
    ):
        """Generate a new password of LENGTH characters for PATH.

        An existing PATH needs -i (keep the metadata lines) or -f
        (replace everything).

        Examples:

            passmanager generate email/work

            passmanager generate -n -i email/work 32
        """
        if inplace and force:
            raise click.UsageError("-i and -f cannot be used together")
        store = get_store(ctx)
        try:
            store.generate(path, length=length, symbols=not no_symbols, inplace=inplace, force=force)
        except PassManagerError as exc:
            fail(exc)
        ok(f"generated password for {path}")

    @main.command("edit")
    @click.argument("path")
    @click.pass_context
    def edit(ctx: click.Context, path: str):
        """Edit PATH, or create it pre-filled with a random password."""
        store = get_store(ctx)
        try:
            _, created = store.edit(path)
        except PassManagerError as exc:
            fail(exc)
        ok(f"{'added' if created else 'edited'} {path}")
