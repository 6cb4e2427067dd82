"""Utility tests for Pitchline."""

from rich.console import Console

from pitchline.cli.utils import console, downsample, make_recording_view, render_chart


def test_console_available():
    """Test that console is available."""
    assert console is not None
    assert hasattr(console, 'print')


def test_downsample_keeps_short_series():
    assert downsample([1, 2, 3], 10) == [1.0, 2.0, 3.0]
    assert downsample([], 10) == []


def test_downsample_keeps_bucket_peaks():
    samples = [0.0] * 600
    samples[123] = 90.0
    columns = downsample(samples, 60)

    assert len(columns) == 60
    assert columns[12] == 90.0
    assert max(columns) == 90.0


def test_render_chart_shape_and_labels():
    chart = render_chart([0, 50, 100], width=10, height=8)
    lines = chart.splitlines()

    assert len(lines) == 9
    assert lines[0].startswith("100 ┤")
    assert lines[2].startswith(" 75 ┤")
    assert lines[-1].startswith("  0 └")
    # a full-scale column reaches the top row, silence stays blank
    assert lines[0][5:8] == "  █"
    assert lines[-2][5:8] == " ██"


def test_render_chart_empty():
    lines = render_chart([], width=4, height=4).splitlines()
    assert lines[0] == "100 ┤    "


def test_recording_view_shows_times():
    view = make_recording_view([10, 20], elapsed_ms=12500, limit_ms=60000, current=20, recording=True)
    out = Console(width=100, record=True)
    out.print(view)
    text = out.export_text()

    assert "00:12" in text
    assert "01:00" in text
    assert "level 20" in text
    assert "REC" in text
