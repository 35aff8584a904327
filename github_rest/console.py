"""Rich console with the project's theme."""

from __future__ import annotations

from typing import Any

from rich.console import Console as RichConsole
from rich.markup import escape
from rich.theme import Theme

_default_theme = Theme(
    {
        "accent": "bold rgb(255,149,0)",
        "muted": "dim",
        "title": "bold rgb(120,200,255)",
        "label": "bold rgb(160,160,160)",
        "value": "rgb(240,240,240)",
        "info": "rgb(120,200,255)",
        "success": "bold rgb(104,255,203)",
        "warning": "bold rgb(255,213,128)",
        "danger": "bold rgb(255,128,128)",
        "frame": "rgb(112,141,242)",
    }
)


class Console(RichConsole):
    """Rich console pre-configured with a custom theme."""

    def __init__(self, *args: Any, **kwargs: Any) -> None:  # noqa: D401 - mirror rich API
        theme = kwargs.pop("theme", None) or _default_theme
        super().__init__(*args, theme=theme, **kwargs)
        self._verbose = False

    def set_verbose(self, verbose: bool) -> None:
        """Enable or disable verbose output."""
        self._verbose = verbose

    def is_verbose(self) -> bool:
        return self._verbose

    def print_error(self, error: Exception | str, context: str = "") -> None:
        """Print error message with consistent formatting.

        Args:
            error: Exception instance or error message string
            context: Optional context prefix (e.g., "Request failed:")
        """
        if context:
            self.print(f"[danger]{context}[/] {escape(str(error))}", highlight=False)
        else:
            self.print(f"[danger]Error:[/] {escape(str(error))}", highlight=False)


__all__ = ["Console"]
