"""flowaudit CLI - main entry point and command registration hub."""
# ruff: noqa: E402 - commands imported after cli group definition

from pathlib import Path

import click
from rich.table import Table

from flowaudit import __version__
from flowaudit.config_runtime import load_runtime_config
from flowaudit.pipeline.ui import console
from flowaudit.utils.logging import configure_file_logging


class VerboseGroup(click.Group):
    """Help output grouped by category, rendered through the shared console."""

    COMMAND_CATEGORIES = {
        "ANALYSIS": {
            "title": "ANALYSIS",
            "description": "Dependency graph and reachability analysis of workflow documents",
            "commands": ["analyze", "graph"],
            "command_meta": {
                "analyze": {
                    "use_when": "Need the full report with rescored security findings",
                },
                "graph": {
                    "use_when": "Need job edges, cycles and critical paths only",
                },
            },
        },
    }

    def format_commands(self, ctx, formatter):
        """Suppress the default listing; format_help prints categorized commands."""
        pass

    def format_help(self, ctx, formatter):
        super().format_help(ctx, formatter)

        registered = {
            name: cmd
            for name, cmd in self.commands.items()
            if not name.startswith("_") and not getattr(cmd, "hidden", False)
        }

        console.print()
        console.rule("[bold]COMMANDS[/bold]")

        for category_data in self.COMMAND_CATEGORIES.values():
            console.print(f"\n[bold cyan]{category_data['title']}[/bold cyan]")
            console.print(f"[dim]{category_data['description']}[/dim]")

            table = Table(show_header=False, box=None, padding=(0, 2, 0, 0))
            table.add_column("Command", style="cmd", width=12)
            table.add_column("Description", style="white")
            table.add_column("When", style="dim", width=48)

            for cmd_name in category_data["commands"]:
                if cmd_name not in registered:
                    continue
                cmd = registered[cmd_name]

                first_line = (cmd.help or "").split("\n")[0].strip()
                period_idx = first_line.find(".")
                short_help = first_line[:period_idx] if period_idx > 0 else first_line

                cmd_meta = category_data.get("command_meta", {}).get(cmd_name, {})
                hint = f"USE: {cmd_meta['use_when']}" if "use_when" in cmd_meta else ""

                table.add_row(cmd_name, short_help, hint)

            console.print(table)

        console.print()
        console.rule()
        console.print("For detailed options: [cmd]flowaudit <command> --help[/cmd]")


@click.group(cls=VerboseGroup)
@click.version_option(version=__version__, prog_name="flowaudit")
@click.help_option("-h", "--help")
@click.option("--log-to-file", is_flag=True, help="Also write a rotating log file under the state directory")
def cli(log_to_file):
    """flowaudit - CI/CD workflow dependency and reachability analysis

    Reconstructs job dependency graphs from workflow YAML and rescores
    security findings by whether and how the flagged code can execute.
    """
    if log_to_file:
        configure_file_logging(Path(load_runtime_config()["paths"]["state_dir"]))


from flowaudit.commands.analyze import analyze
from flowaudit.commands.graph import graph

cli.add_command(analyze)
cli.add_command(graph)


def main():
    """Main entry point for console script."""
    cli()


if __name__ == "__main__":
    main()
