"""Unit tests for FFmpegMetricsAggregator."""

import pytest

from ffdrive.tools.ffmpeg_metrics import FFmpegMetricsAggregator
from ffdrive.tools.ffmpeg_progress import ProgressEvent


class TestFFmpegMetricsAggregator:
    """Tests for metric aggregation."""

    def test_empty_summary(self) -> None:
        summary = FFmpegMetricsAggregator().summarize()
        assert summary.sample_count == 0
        assert summary.avg_fps is None
        assert summary.avg_bitrate_kbps is None

    def test_averages_and_peaks(self) -> None:
        aggregator = FFmpegMetricsAggregator()
        aggregator.add_sample(
            ProgressEvent(frames=10, current_fps=20.0, current_kbps=100.0)
        )
        aggregator.add_sample(
            ProgressEvent(
                frames=40,
                current_fps=40.0,
                current_kbps=300.0,
                out_time_seconds=2.0,
            )
        )

        summary = aggregator.summarize()

        assert summary.sample_count == 2
        assert summary.avg_fps == pytest.approx(30.0)
        assert summary.peak_fps == 40.0
        assert summary.avg_bitrate_kbps == 200
        assert summary.total_frames == 40
        assert summary.final_time_seconds == 2.0

    def test_zero_values_ignored(self) -> None:
        aggregator = FFmpegMetricsAggregator()
        aggregator.add_sample(ProgressEvent(current_fps=0.0, current_kbps=0.0))
        summary = aggregator.summarize()
        assert summary.sample_count == 1
        assert summary.avg_fps is None

    def test_reset(self) -> None:
        aggregator = FFmpegMetricsAggregator()
        aggregator.add_sample(ProgressEvent(frames=5, current_fps=10.0))
        aggregator.reset()
        assert aggregator.summarize().sample_count == 0
        assert aggregator.last_frame is None

    def test_speed_and_size(self) -> None:
        aggregator = FFmpegMetricsAggregator()
        aggregator.add_sample(ProgressEvent(speed=1.5, target_size=100))
        aggregator.add_sample(ProgressEvent(speed=2.5, target_size=250))

        summary = aggregator.summarize()

        assert summary.avg_speed == pytest.approx(2.0)
        assert summary.final_size_kb == 250
