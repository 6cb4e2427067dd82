"""CLI utilities for Pitchline.

This module provides the Rich console, the loudness chart renderer and the
live recording view.
"""

import os
import sys
from contextlib import contextmanager
from typing import List, Optional, Sequence

import numpy as np
from loguru import logger
from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from pitchline.core.processing import format_time

# Create themed console for consistent output
_theme = Theme(
    {
        "info": "cyan",
        "success": "green",
        "warning": "yellow",
        "error": "bold red",
        "debug": "dim white",
        "chart": "bold white",
    }
)

console = Console(theme=_theme)

_BLOCKS = " ▁▂▃▄▅▆▇█"


def configure_logging(verbose: bool) -> None:
    """Send loguru output to stderr, DEBUG when verbose and WARNING otherwise."""
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


def downsample(samples: Sequence[float], width: int) -> List[float]:
    """Reduce ``samples`` to at most ``width`` columns, keeping each bucket's peak."""
    if width <= 0 or not samples:
        return []
    if len(samples) <= width:
        return [float(v) for v in samples]
    buckets = np.array_split(np.asarray(samples, dtype=float), width)
    return [float(bucket.max()) for bucket in buckets]


def render_chart(samples: Sequence[float], width: int = 60, height: int = 8) -> str:
    """Render normalized samples (0-100) as a block-character chart.

    The y axis is labelled every 25 units.  Columns run oldest to newest from
    the left; a window longer than ``width`` is squeezed by bucket peaks.

    Returns:
        Chart as a multi-line string, ``height + 1`` lines including the baseline
    """
    columns = downsample(samples, width)
    eighths = [int(round(max(0.0, min(100.0, v)) / 100 * height * 8)) for v in columns]

    lines = []
    for row in range(height - 1, -1, -1):
        top_value = (row + 1) * 100 / height
        label = f"{top_value:>3.0f}" if top_value % 25 == 0 else "   "
        cells = "".join(_BLOCKS[max(0, min(8, e - row * 8))] for e in eighths)
        lines.append(f"{label} ┤{cells.ljust(width)}")
    lines.append(f"  0 └{'─' * width}")
    return "\n".join(lines)


def make_recording_view(
    samples: Sequence[float],
    elapsed_ms: float,
    limit_ms: float,
    current: Optional[float],
    recording: bool,
    width: int = 60,
) -> Panel:
    """Build the live recording screen: chart, elapsed time and controls."""
    chart = Text(render_chart(samples, width=width), style="chart")

    times = Table.grid(expand=True)
    times.add_column(justify="left")
    times.add_column(justify="center")
    times.add_column(justify="right")
    level = f"{current:.0f}" if current is not None else "--"
    times.add_row(
        f"[bold]{format_time(elapsed_ms)}[/bold]",
        f"level {level}",
        format_time(limit_ms),
    )

    if recording:
        controls = "[bold red]● REC[/bold red]  [dim]Ctrl+C to pause[/dim]"
    else:
        controls = "[dim]⏸ paused[/dim]"

    return Panel(
        Group(chart, times, Text.from_markup(controls)),
        title="[bold]Recordings[/bold]",
        border_style="red" if recording else "dim",
        expand=False,
    )


def make_device_table(devices: List[dict]) -> Table:
    """Build a Rich Table from the device list returned by PyAudioBackend.list_input_devices().

    Args:
        devices: List of dicts with keys: id, name, driver, channels, rate, is_default

    Returns:
        Configured Rich Table ready to print.
    """
    table = Table(show_header=True, header_style="bold", show_lines=False, expand=False)
    table.add_column("ID", style="cyan", width=4, justify="right")
    table.add_column("Name", min_width=30)
    table.add_column("Driver", style="dim", width=8)
    table.add_column("Ch", justify="right", style="dim", width=4)
    table.add_column("Rate", justify="right", style="dim", width=12)
    table.add_column("", width=9)

    for d in devices:
        default_mark = "[bold green]DEFAULT[/bold green]" if d.get("is_default") else ""
        table.add_row(
            str(d["id"]),
            d["name"],
            d.get("driver", "").upper(),
            str(d.get("channels", "")),
            f"{d.get('rate', '')} Hz",
            default_mark,
        )
    return table


@contextmanager
def suppress_stderr():
    """Context manager to suppress stderr output from libraries like ALSA, JACK.

    Used to hide debug/warning messages from audio subsystems that pollute
    terminal output.
    """
    original_stderr_fd = os.dup(2)
    null_fd = os.open(os.devnull, os.O_WRONLY)
    try:
        os.dup2(null_fd, 2)
        yield
    finally:
        os.dup2(original_stderr_fd, 2)
        os.close(original_stderr_fd)
        os.close(null_fd)


__all__ = [
    "console",
    "configure_logging",
    "downsample",
    "make_device_table",
    "make_recording_view",
    "render_chart",
    "suppress_stderr",
]
