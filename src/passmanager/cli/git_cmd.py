"""git passthrough."""

from __future__ import annotations

import click

from ..errors import PassManagerError
from ._common import fail, get_store


def register_git_commands(main: click.Group) -> None:
    """Register the git command."""

    @main.command(
        "git",
        context_settings={"ignore_unknown_options": True, "allow_interspersed_args": False},
    )
    @click.argument("args", nargs=-1, type=click.UNPROCESSED)
    @click.pass_context
    def git(ctx: click.Context, args: tuple[str, ...]):
        """Run a git command inside the store directory.

        Example:

            passmanager git log --oneline
        """
        store = get_store(ctx)
        try:
            status = store.git(args)
        except PassManagerError as exc:
            fail(exc)
        ctx.exit(status)
