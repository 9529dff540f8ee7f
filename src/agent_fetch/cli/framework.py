"""Custom Click Group for agent-fetch.

``agent-fetch <url> ...`` is shorthand for ``agent-fetch web <url> ...``:
any first argument that is not a known command or a help/version flag is
routed to the hidden default ``web`` command. Subcommand modules other than
``web`` are imported lazily.
"""

from __future__ import annotations

import importlib

import click
from click import Context

DEFAULT_COMMAND = "web"

# Mapping of command name -> (module_path, attribute_name, short_help)
_LAZY_COMMANDS: dict[str, tuple[str, str, str]] = {
    "doctor": (
        "agent_fetch.cli.commands.doctor",
        "doctor",
        "Run environment checks (browser/runtime) and print remediation guidance.",
    ),
}

# First arguments that stay with the group itself
_GROUP_ARGS = {"--help", "-h", "--version"}


class AgentFetchGroup(click.Group):
    """Group that routes bare URLs to the default ``web`` command.

    This allows:
        agent-fetch https://example.com                 # web (default)
        agent-fetch --mode static https://example.com   # options before URL
        agent-fetch web --format jsonl URL1 URL2        # explicit
        agent-fetch doctor --json                       # subcommand
    """

    def list_commands(self, ctx: Context) -> list[str]:
        names = set(_LAZY_COMMANDS.keys())
        names.update(super().list_commands(ctx))
        return sorted(names)

    def get_command(self, ctx: Context, cmd_name: str) -> click.Command | None:
        cmd = super().get_command(ctx, cmd_name)
        if cmd is not None:
            return cmd

        spec = _LAZY_COMMANDS.get(cmd_name)
        if spec is None:
            return None

        module_path, attr_name, _help = spec
        mod = importlib.import_module(module_path)
        cmd = getattr(mod, attr_name)
        self.add_command(cmd, cmd_name)
        return cmd

    def parse_args(self, ctx: Context, args: list[str]) -> list[str]:
        if args and args[0].strip():
            known_commands = set(_LAZY_COMMANDS.keys()) | set(self.commands.keys())
            first = args[0]
            if first not in known_commands and first not in _GROUP_ARGS:
                args = [DEFAULT_COMMAND, *args]
        return super().parse_args(ctx, args)

    def format_help(self, ctx: Context, formatter: click.HelpFormatter) -> None:
        super().format_help(ctx, formatter)

        web = self.commands.get(DEFAULT_COMMAND)
        if web is None:
            return
        opts = []
        with click.Context(web, info_name=DEFAULT_COMMAND, parent=ctx) as web_ctx:
            for param in web.get_params(web_ctx):
                rv = param.get_help_record(web_ctx)
                if rv is not None:
                    opts.append(rv)
        if opts:
            with formatter.section("Default web options"):
                formatter.write_text(
                    "`agent-fetch <url>` is shorthand for `agent-fetch web <url>`."
                )
                formatter.write_dl(opts)

    def format_commands(self, ctx: Context, formatter: click.HelpFormatter) -> None:
        # Use stored help text for lazy commands so --help never imports them
        commands = []
        for name in self.list_commands(ctx):
            if name in _LAZY_COMMANDS and name not in self.commands:
                commands.append((name, _LAZY_COMMANDS[name][2]))
                continue
            cmd = self.get_command(ctx, name)
            if cmd is None or cmd.hidden:
                continue
            commands.append((name, cmd.get_short_help_str(limit=formatter.width)))
        if commands:
            with formatter.section("Commands"):
                formatter.write_dl(commands)
