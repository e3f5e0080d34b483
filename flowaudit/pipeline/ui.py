"""Central UI handler for flowaudit.

Single source of truth for Rich console styling. Import this instead of
instantiating Console() in every command file.

Usage:
    from flowaudit.pipeline.ui import console, print_header, print_error

    console.print("[success]All checks passed[/success]")
    print_header("ANALYSIS RESULTS")
"""

import sys

from rich.console import Console
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

FLOWAUDIT_THEME = Theme({
    "info": "bold cyan",
    "warning": "bold yellow",
    "error": "bold red",
    "success": "bold green",
    "high": "bold red",
    "medium": "bold yellow",
    "low": "cyan",
    "informational": "dim white",
    "cmd": "bold magenta",
    "path": "bold cyan",
    "dim": "dim white",
})

console = Console(
    theme=FLOWAUDIT_THEME,
    force_terminal=sys.stdout.isatty()
)

SEVERITY_STYLES = {
    "error": "error",
    "warning": "warning",
    "info": "info",
}


def severity_style(severity: str) -> str:
    """Theme style name for a severity string."""
    return SEVERITY_STYLES.get(severity, "dim")


def print_header(title: str) -> None:
    """Print a styled section header with horizontal rules."""
    console.rule(f"[bold]{title}[/bold]")


def print_error(msg: str) -> None:
    """Print an error message in red."""
    console.print(f"[error]ERROR:[/error] {msg}")


def print_warning(msg: str) -> None:
    """Print a warning message in yellow."""
    console.print(f"[warning]WARNING:[/warning] {msg}")


def print_success(msg: str) -> None:
    """Print a success message in green."""
    console.print(f"[success]OK:[/success] {msg}")


def print_status_panel(status: str, message: str, detail: str, level: str = "info") -> None:
    """Print a status panel with colored border.

    Args:
        status: Status label (e.g., "ERRORS", "CLEAN")
        message: Main message line
        detail: Additional detail line
        level: One of "error", "warning", "success", "info"
    """
    style_map = {
        "error": ("bold red", "red"),
        "warning": ("bold yellow", "yellow"),
        "success": ("bold green", "green"),
        "info": ("bold cyan", "cyan"),
    }
    text_style, border_style = style_map.get(level, ("white", "white"))

    panel = Panel(
        Text.assemble(
            (f"STATUS: [{status}]\n", text_style),
            (f"{message}\n", border_style),
            (detail, border_style)
        ),
        border_style=border_style,
        expand=False
    )
    console.print(panel)
