"""Store creation and recipient rotation."""

from __future__ import annotations

import click

from ..errors import PassManagerError
from ._common import console, fail, get_store, ok


def register_init_commands(main: click.Group) -> None:
    """Register the init command."""

    @main.command("init")
    @click.option("-f", "--force", is_flag=True, help="Re-encrypt an existing store for new keys.")
    @click.argument("recipients", nargs=-1, required=True, metavar="GPG-ID...")
    @click.pass_context
    def init(ctx: click.Context, force: bool, recipients: tuple[str, ...]):
        """Create a password store encrypted for GPG-IDs.

        With -f, re-encrypt every password of an existing store for a
        new set of keys. An interrupted rotation is finished by running
        the same command again.

        Examples:

            passmanager init alice@example.com

            passmanager init -f alice@example.com 0xDEADBEEF
        """
        store = get_store(ctx)
        try:
            result = store.init(recipients, force=force)
        except PassManagerError as exc:
            fail(exc)

        if result.created:
            ok("password store successfully created")
            return
        if result.resumed:
            console.print("[yellow]resumed interrupted rotation[/]")
        ok(f"passwords re-encrypted with keys: {' '.join(result.recipients.members)}")
