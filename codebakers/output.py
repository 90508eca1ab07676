"""
Rich Output Utilities
=====================

Terminal output for the CodeBakers CLI using the Rich library: a themed
console, status lines, command result rendering and logging setup.
"""

import logging
import os
import sys
from dataclasses import dataclass

from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.panel import Panel
from rich.theme import Theme

from codebakers.responses import CommandResult


# =============================================================================
# Color Scheme & Theme
# =============================================================================

@dataclass(frozen=True)
class BakeryColors:
    """CodeBakers palette, hex for truecolor terminals."""
    ink: str = "#E6E6E6"       # primary text
    dim: str = "#9AA4B2"       # muted text
    crust: str = "#D97706"     # warm accent
    glaze: str = "#38BDF8"     # cool accent
    ok: str = "#22C55E"
    warn: str = "#FBBF24"
    err: str = "#EF4444"


def bakery_theme(colors: BakeryColors = BakeryColors()) -> Theme:
    """
    Rich Theme for the CodeBakers CLI.

    Style names are semantic:
      console.print("...", style="cb.ok")
    """
    return Theme(
        {
            "cb.accent": f"bold {colors.crust}",
            "cb.border": f"{colors.glaze}",
            "cb.muted": f"{colors.dim}",
            "cb.text": f"{colors.ink}",
            "cb.number": f"bold {colors.crust}",

            "cb.ok": f"bold {colors.ok}",
            "cb.warn": f"bold {colors.warn}",
            "cb.err": f"bold {colors.err}",
            "cb.info": f"{colors.glaze}",
        }
    )


# =============================================================================
# Unicode / ASCII Fallbacks
# =============================================================================

def _can_use_unicode() -> bool:
    """Check if stdout can encode the icons we use."""
    if os.name != "nt":
        return True
    try:
        "✓✗•".encode(sys.stdout.encoding or "utf-8")
        return True
    except (UnicodeEncodeError, LookupError, AttributeError):
        return False


_UNICODE_ICONS = {
    "check": "✓",
    "cross": "✗",
    "warning": "⚠",
    "info": "ℹ",
    "bar_filled": "█",
    "bar_empty": "░",
}

_ASCII_ICONS = {
    "check": "[OK]",
    "cross": "[X]",
    "warning": "[!]",
    "info": "[i]",
    "bar_filled": "#",
    "bar_empty": "-",
}

_ICONS = _UNICODE_ICONS if _can_use_unicode() else _ASCII_ICONS


def icon(name: str) -> str:
    """Get an icon by name, using ASCII fallback if needed."""
    return _ICONS.get(name, "")


# =============================================================================
# Global Console Instance
# =============================================================================

console = Console(theme=bakery_theme())
err_console = Console(theme=bakery_theme(), stderr=True)


def print_error(message: str) -> None:
    err_console.print(f"[cb.err]{icon('cross')} {message}[/]")


def print_warning(message: str) -> None:
    console.print(f"[cb.warn]{icon('warning')} {message}[/]")


def print_info(message: str) -> None:
    console.print(f"[cb.info]{icon('info')} {message}[/]")


def print_progress_bar(progress: int, title: str = "Progress") -> None:
    """Print an inline bar for a 0-100 percentage."""
    if progress >= 100:
        color = "cb.ok"
    elif progress >= 50:
        color = "cb.warn"
    else:
        color = "cb.info"

    bar_width = 30
    filled = int(bar_width * progress / 100)
    bar = f"[{color}]{icon('bar_filled') * filled}[/][cb.muted]{icon('bar_empty') * (bar_width - filled)}[/]"
    console.print(f"{title}: {bar} [cb.number]{progress}%[/]")


# =============================================================================
# Command Results
# =============================================================================

def print_result(result: CommandResult) -> None:
    """Render a command's markdown summary, boxed in red when it failed."""
    if result.is_error:
        err_console.print(Panel(
            Markdown(result.text),
            title=f"[cb.err]{result.command} failed[/]",
            border_style="cb.err",
            padding=(1, 2),
        ))
        return
    console.print(Markdown(result.text))


# =============================================================================
# Logging
# =============================================================================

def setup_rich_logging(level: int = logging.INFO) -> None:
    """
    Configure Python logging to use Rich.

    Usage:
        setup_rich_logging(config.log_level_value)
        logging.getLogger(__name__).info("Scoping complete")
    """
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(
            console=err_console,
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )],
    )
