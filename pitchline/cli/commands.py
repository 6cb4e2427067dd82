"""CLI commands for Pitchline.

This module provides all command-line interface commands using Typer.
"""

import asyncio
import signal
import sys
from typing import Optional

import typer
from rich.live import Live
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from pitchline.cli.utils import (
    configure_logging,
    console,
    make_device_table,
    make_recording_view,
    suppress_stderr,
)
from pitchline.core import (
    AppConfig,
    ControllerEvent,
    EventKind,
    PyAudioBackend,
    RecordingController,
    RecordingSummary,
    format_time,
    get_profile,
)
from pitchline.core.config import DEFAULT_PROFILE

app = typer.Typer(help="Record the microphone and chart its loudness live")

app_config = AppConfig()

# Redraw cadence of the live view, independent of the sampling tick
VIEW_REFRESH_S = 0.1

# Answers offered once a session stops
CHOICES = ["accept", "discard", "again"]


def _print_event(event: ControllerEvent) -> None:
    """Show controller events that the user should know about."""
    if event.kind is EventKind.ACQUISITION_FAILED:
        console.print(f"[error]✗ {event.message}[/error]")
    elif event.kind is EventKind.FINALIZATION_FAILED:
        console.print(f"[warning]⚠ {event.message}[/warning]")
    elif event.kind is EventKind.STOPPED and event.message == "deadline":
        console.print("[info]⏹ Time limit reached[/info]")


def _view(controller: RecordingController) -> Panel:
    return make_recording_view(
        controller.snapshot(),
        controller.elapsed_ms,
        controller.time_limit_ms,
        controller.current_value,
        controller.is_recording,
    )


async def _record_until_stopped(controller: RecordingController) -> bool:
    """Run one session with a live view until Ctrl+C or the time limit.

    Returns:
        ``False`` if the session could not be started
    """
    stop_requested = asyncio.Event()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, stop_requested.set)
        handler_installed = True
    except (NotImplementedError, RuntimeError):
        # Windows event loops, or not running in the main thread
        handler_installed = False

    try:
        if not await controller.toggle():
            return False

        with Live(_view(controller), console=console, refresh_per_second=10) as live:
            while controller.is_recording and not stop_requested.is_set():
                try:
                    await asyncio.wait_for(stop_requested.wait(), timeout=VIEW_REFRESH_S)
                except asyncio.TimeoutError:
                    pass
                live.update(_view(controller))
            await controller.stop()
            live.update(_view(controller))
        return True
    finally:
        if handler_installed:
            loop.remove_signal_handler(signal.SIGINT)


async def _run_session(controller: RecordingController, accept: Optional[bool]):
    """Record, then accept, discard or record again.

    Recording again starts a fresh session, like pressing record after pause.

    Returns:
        Tuple of (started, summary); summary is ``None`` when discarded
    """
    async with controller:
        while True:
            if not await _record_until_stopped(controller):
                return False, None

            if accept is None:
                choice = Prompt.ask(
                    "💾 Keep this recording?",
                    choices=CHOICES,
                    default="accept",
                    console=console,
                )
            else:
                choice = "accept" if accept else "discard"

            if choice == "accept":
                return True, await controller.accept()
            if choice == "discard":
                await controller.discard()
                return True, None


def _make_summary_panel(summary: RecordingSummary) -> Panel:
    info_grid = Table.grid(padding=(0, 1))
    info_grid.add_column(style="dim", justify="right")
    info_grid.add_column()
    info_grid.add_row("Duration:", format_time(summary.elapsed_ms))
    info_grid.add_row("Samples:", str(len(summary.samples)))
    info_grid.add_row("Peak level:", f"{summary.peak:.1f}")
    info_grid.add_row("Mean level:", f"{summary.mean:.1f}")
    return Panel(info_grid, title="[bold]🎙 Recording Accepted[/bold]", border_style="green")


@app.command()
def record(
    duration: Optional[int] = typer.Option(
        None, help="Time limit in seconds. Defaults to the configured limit (60s)."
    ),
    device_id: Optional[int] = typer.Option(
        app_config.get("device_id"), help="Audio device ID to use. Leave empty for the system default."
    ),
    profile: str = typer.Option(
        str(app_config.get("profile", DEFAULT_PROFILE)), help="Recording profile: high or low"
    ),
    accept: Optional[bool] = typer.Option(
        None,
        "--accept/--discard",
        help="Keep or drop the recording when it stops instead of asking.",
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug output from audio libraries"
    ),
):
    """Record the microphone with a live loudness chart.

    Ctrl+C pauses the session; then accept it, discard it or record again.
    """
    configure_logging(verbose)

    try:
        recording_profile = get_profile(profile)
        timing = app_config.timing()
    except ValueError as e:
        console.print(f"[error]✗ {e}[/error]")
        sys.exit(1)

    if duration is not None:
        if duration <= 0:
            console.print("[error]✗ Duration must be positive[/error]")
            sys.exit(1)
        timing["time_limit_ms"] = duration * 1000

    controller = RecordingController(
        PyAudioBackend(device_id=device_id),
        profile=recording_profile,
        **timing,
    )
    controller.subscribe(_print_event)

    try:
        started, summary = asyncio.run(_run_session(controller, accept))
    except Exception as e:
        console.print(f"[error]✗ Error during recording: {e}[/error]")
        sys.exit(1)

    if not started:
        sys.exit(1)
    if summary is None:
        console.print("[warning]🗑 Recording discarded[/warning]")
    else:
        console.print(_make_summary_panel(summary))


@app.command()
def list_devices(
    driver: Optional[str] = typer.Option(
        None, help="Filter by driver type: pulse, alsa, jack, usb, default"
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Show debug output from audio libraries"
    ),
):
    """List all available input audio devices."""
    configure_logging(verbose)
    try:
        if verbose:
            devices = PyAudioBackend.list_input_devices(driver_filter=driver)
        else:
            with suppress_stderr():
                devices = PyAudioBackend.list_input_devices(driver_filter=driver)
    except Exception as e:
        console.print(f"[error]✗ Error listing devices: {e}[/error]")
        sys.exit(1)

    if not devices:
        console.print(
            "[warning]No input devices found"
            + (f" for driver: {driver}" if driver else "")
            + "[/warning]"
        )
        return

    title = "Available Input Devices"
    if driver:
        title += f" (filtered by: {driver})"
    console.print(Panel(make_device_table(devices), title=f"[bold]{title}[/bold]"))
