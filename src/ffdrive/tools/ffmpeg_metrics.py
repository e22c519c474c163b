"""Per-run throughput summary built from progress events.

The driver feeds every ProgressEvent of a run into an aggregator and
attaches the summary to the RunResult. Only running totals are kept, so
memory stays constant however long the transcode runs.
"""

from dataclasses import dataclass

from ffdrive.tools.ffmpeg_progress import ProgressEvent


@dataclass(frozen=True)
class FFmpegMetricsSummary:
    """Throughput figures of one run.

    Attributes:
        avg_fps: Mean of the non-zero fps values reported.
        peak_fps: Highest fps value reported.
        avg_bitrate_kbps: Mean of the non-zero bitrates, rounded.
        avg_speed: Mean encoding speed relative to real time.
        total_frames: Frame counter of the last stats line.
        final_size_kb: Output size of the last stats line.
        final_time_seconds: Output position of the last stats line.
        sample_count: Number of stats lines seen.
    """

    avg_fps: float | None = None
    peak_fps: float | None = None
    avg_bitrate_kbps: int | None = None
    avg_speed: float | None = None
    total_frames: int | None = None
    final_size_kb: int | None = None
    final_time_seconds: float | None = None
    sample_count: int = 0


class _Mean:
    """Running mean and maximum of positive samples."""

    def __init__(self) -> None:
        self.total = 0.0
        self.count = 0
        self.peak: float | None = None

    def add(self, value: float | None) -> None:
        # ffmpeg reports 0 (or N/A) until the encoder has produced output
        if value is None or value <= 0:
            return
        self.total += value
        self.count += 1
        self.peak = value if self.peak is None else max(self.peak, value)

    @property
    def mean(self) -> float | None:
        return self.total / self.count if self.count else None


class FFmpegMetricsAggregator:
    """Accumulates progress events into an FFmpegMetricsSummary."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._fps = _Mean()
        self._kbps = _Mean()
        self._speed = _Mean()
        self.last_frame: int | None = None
        self.last_size: int | None = None
        self.last_time: float | None = None
        self.sample_count = 0

    def add_sample(self, progress: ProgressEvent) -> None:
        self.sample_count += 1
        self._fps.add(progress.current_fps)
        self._kbps.add(progress.current_kbps)
        self._speed.add(progress.speed)
        if progress.frames is not None:
            self.last_frame = progress.frames
        if progress.target_size is not None:
            self.last_size = progress.target_size
        if progress.out_time_seconds is not None:
            self.last_time = progress.out_time_seconds

    def summarize(self) -> FFmpegMetricsSummary:
        kbps = self._kbps.mean
        return FFmpegMetricsSummary(
            avg_fps=self._fps.mean,
            peak_fps=self._fps.peak,
            avg_bitrate_kbps=round(kbps) if kbps is not None else None,
            avg_speed=self._speed.mean,
            total_frames=self.last_frame,
            final_size_kb=self.last_size,
            final_time_seconds=self.last_time,
            sample_count=self.sample_count,
        )
