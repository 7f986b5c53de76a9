"""
passmanager CLI: the password store command line.

Commands live in small modules and are registered on the main group via
``register_*_commands`` functions. The group resolves the historical
aliases (``ls``, ``rm``, ``mv`` ...) and treats anything that is not a
command as a path to show.

Entry point: passmanager.cli:main
"""

from __future__ import annotations

import logging

import click

from .. import __version__

ALIASES = {
    "ls": "show",
    "list": "show",
    "search": "find",
    "remove": "rm",
    "delete": "rm",
    "rename": "mv",
    "copy": "cp",
}


class AliasedGroup(click.Group):
    """Group with command aliases and ``show`` as the fallback command."""

    def get_command(self, ctx: click.Context, cmd_name: str):
        return super().get_command(ctx, ALIASES.get(cmd_name, cmd_name))

    def resolve_command(self, ctx: click.Context, args):
        if args and self.get_command(ctx, args[0]) is None:
            args = ["show", *args]
        return super().resolve_command(ctx, args)


@click.group(
    cls=AliasedGroup,
    invoke_without_command=True,
    context_settings={"ignore_unknown_options": True},
)
@click.version_option(version=__version__, prog_name="passmanager")
@click.option("-v", "--verbose", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """passmanager: GPG password store with an encrypted index.

    Secret files are named by random IDs; only the encrypted index knows
    which path is which. Run without a command to list the store.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )
    if ctx.invoked_subcommand is None:
        ctx.invoke(main.get_command(ctx, "show"))


# ---------------------------------------------------------------------------
# Register all commands from modular files
# ---------------------------------------------------------------------------

from .init_cmd import register_init_commands
from .show import register_show_commands
from .generate import register_generate_commands
from .entries import register_entry_commands
from .git_cmd import register_git_commands

register_init_commands(main)
register_show_commands(main)
register_generate_commands(main)
register_entry_commands(main)
register_git_commands(main)
