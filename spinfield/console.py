"""Console output for the spin field engine.

Usage:
    from spinfield.console import console

    with console.spinner("Running sweeps..."):
        simulation.step(100)

    console.success("Done", detail="100 sweeps")
    console.warn("Something odd")
    console.error("Failed", detail=str(err))
    console.info("Device: cuda")
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Optional

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.text import Text


class Console:
    """Minimal logging interface with rich output."""

    __slots__ = ("_console",)

    def __init__(self, *, quiet: bool = False) -> None:
        self._console = RichConsole(quiet=quiet)

    @property
    def quiet(self) -> bool:
        return bool(self._console.quiet)

    @quiet.setter
    def quiet(self, value: bool) -> None:
        self._console.quiet = bool(value)

    @contextmanager
    def spinner(self, message: str):
        """Show a spinner while work is in progress."""
        with self._console.status(f"[bold cyan]{message}", spinner="dots"):
            yield

    def success(self, message: str, *, detail: Optional[str] = None, title: Optional[str] = None) -> None:
        """Green success message."""
        text = Text(message, style="bold green")
        if detail:
            text.append(f"\n{detail}", style="dim")
        if title:
            self._console.print(Panel(text, title=f"[cyan]{title}[/cyan]", border_style="green"))
        else:
            self._console.print(f"[bold green]✓[/bold green] {message}" + (f" [dim]{detail}[/dim]" if detail else ""))

    def warn(self, message: str, *, detail: Optional[str] = None) -> None:
        """Yellow warning message."""
        self._console.print(f"[yellow]⚠[/yellow] {message}" + (f" [dim]{detail}[/dim]" if detail else ""))

    def error(self, message: str, *, detail: Optional[str] = None) -> None:
        """Red error message."""
        self._console.print(f"[bold red]✗[/bold red] {message}" + (f" [dim]{detail}[/dim]" if detail else ""))

    def info(self, message: str, *, detail: Optional[str] = None) -> None:
        """Blue info message."""
        self._console.print(f"[blue]•[/blue] {message}" + (f" [dim]{detail}[/dim]" if detail else ""))

    def header(self, title: str, **fields: str) -> None:
        """Show a panel with key-value fields."""
        lines = [f"[bold]{k}:[/bold] {v}" for k, v in fields.items()]
        self._console.print(Panel("\n".join(lines), title=f"[cyan]{title}[/cyan]", border_style="blue"))


console = Console()
