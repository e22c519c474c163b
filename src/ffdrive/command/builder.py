"""FfmpegCommand: the ffmpeg command builder and runner.

A command owns its inputs, outputs and global option groups. Setter
methods write to the current input or current output and return the
command so calls can be chained:

    result = (
        FfmpegCommand("in.avi")
        .audio_codec("aac")
        .video_codec("libx264")
        .size("640x?")
        .save("out.mp4")
    )

get_args() linearizes everything in the order ffmpeg's positional option
parser requires; run() hands the command line to a ProcessDriver.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import IO, Any

from ffdrive.command import audio, custom, inputs, outputs, video, videosize
from ffdrive.command.models import Input, Output, validate_source, validate_target
from ffdrive.command.presets import PresetFunc, resolve_preset
from ffdrive.config import get_config
from ffdrive.core.arguments import ArgumentList
from ffdrive.core.filters import FilterLike, flatten_filters, join_filter_chain
from ffdrive.core.timemark import timemark_to_seconds
from ffdrive.exceptions import ConfigurationError, SpawnError, TimemarkError
from ffdrive.executor.interface import RunCallbacks, RunResult
from ffdrive.executor.process import ProcessDriver
from ffdrive.tools import capabilities
from ffdrive.tools.detection import require_tool
from ffdrive.tools.models import CodecInfo, EncoderInfo, FilterInfo, FormatInfo

logger = logging.getLogger(__name__)


@dataclass
class CommandOptions:
    """Run settings of a command, shared by the command and its clones.

    Unset constructor arguments fall back to ffdrive configuration
    (FFDRIVE_* environment variables and the config file).
    """

    niceness: int = 0
    stdout_lines: int = 100
    timeout: float | None = None
    presets_dir: Path | None = None
    merge_output: bool = False
    cwd: Path | None = None
    env: dict[str, str] = field(default_factory=dict)
    check_capabilities: bool = False
    ffmpeg_path: Path | None = None


class FfmpegCommand:
    """Builder and runner for one ffmpeg invocation.

    Args:
        source: Optional first input (path or readable binary stream).
        logger: Logger for run-level messages. Shared with clones.
        niceness: Process priority (-20 to 20, ignored on Windows).
        stdout_lines: Diagnostic lines kept for error reports; 0 keeps all.
        timeout: Run timeout in seconds.
        presets_dir: Directory holding YAML presets.
        merge_output: Redirect ffmpeg stderr into stdout.
        cwd: Working directory for ffmpeg.
        env: Variables added to ffmpeg's environment.
        check_capabilities: Verify formats and codecs before spawning.
        ffmpeg_path: Explicit ffmpeg executable.

    Raises:
        ConfigurationError: If an argument is invalid.
    """

    def __init__(
        self,
        source: str | Path | IO[bytes] | None = None,
        *,
        logger: logging.Logger | None = None,
        niceness: int | None = None,
        stdout_lines: int | None = None,
        timeout: float | None = None,
        presets_dir: str | Path | None = None,
        merge_output: bool | None = None,
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        check_capabilities: bool | None = None,
        ffmpeg_path: str | Path | None = None,
    ) -> None:
        config = get_config()
        process = config.process

        def pick(value: Any, default: Any) -> Any:
            return default if value is None else value

        self.options = CommandOptions(
            niceness=pick(niceness, process.niceness),
            stdout_lines=pick(stdout_lines, process.stdout_lines),
            timeout=pick(timeout, process.timeout),
            presets_dir=Path(presets_dir) if presets_dir else config.presets.directory,
            merge_output=pick(merge_output, process.merge_output),
            cwd=Path(cwd) if cwd else process.cwd,
            env={**process.env, **(env or {})},
            check_capabilities=pick(check_capabilities, process.check_capabilities),
            ffmpeg_path=Path(ffmpeg_path) if ffmpeg_path else None,
        )
        if self.options.stdout_lines < 0:
            raise ConfigurationError("stdout_lines must be >= 0")
        if self.options.timeout is not None and self.options.timeout <= 0:
            raise ConfigurationError("timeout must be positive")
        self.logger = logger or logging.getLogger(__name__)

        self._inputs: list[Input] = []
        self._current_input: int | None = None
        # Target-less default output, filled by the first output() call
        self._outputs: list[Output] = [Output()]
        self._current_output = 0
        self._global_options = ArgumentList()
        self._complex_filters = ArgumentList()
        self._driver: ProcessDriver | None = None

        if source is not None:
            self.input(source)

    # ------------------------------------------------------------------
    # Entities
    # ------------------------------------------------------------------

    @property
    def inputs(self) -> list[Input]:
        return list(self._inputs)

    @property
    def outputs(self) -> list[Output]:
        return list(self._outputs)

    @property
    def current_input(self) -> Input:
        """Input affected by input-directed setters.

        Raises:
            ConfigurationError: If no input has been added.
        """
        if self._current_input is None:
            raise ConfigurationError("No input specified")
        return self._inputs[self._current_input]

    @property
    def current_output(self) -> Output:
        """Output affected by output-directed setters."""
        return self._outputs[self._current_output]

    def input(self, source: str | Path | IO[bytes]) -> FfmpegCommand:
        """Add an input and make it the current input.

        Raises:
            ConfigurationError: If the source is invalid or a second stream
                input is added.
        """
        source = validate_source(source)
        new_input = Input(source)
        if new_input.is_stream and any(i.is_stream for i in self._inputs):
            raise ConfigurationError("Only one input stream is supported")
        self._inputs.append(new_input)
        self._current_input = len(self._inputs) - 1
        return self

    def output(
        self,
        target: str | Path | IO[bytes],
        pipe_options: dict[str, Any] | None = None,
    ) -> FfmpegCommand:
        """Add an output and make it the current output.

        The first call fills the default output so settings applied before
        it are kept.

        Raises:
            ConfigurationError: If the target is invalid or a second stream
                output is added.
        """
        target = validate_target(target)
        is_stream = not isinstance(target, (str, os.PathLike))
        if is_stream and any(o.is_stream for o in self._outputs):
            raise ConfigurationError("Only one output stream is supported")

        if self.current_output.target is None:
            new_output = self.current_output
        else:
            new_output = Output()
            self._outputs.append(new_output)
            self._current_output = len(self._outputs) - 1
        new_output.target = target
        new_output.pipe_options = dict(pipe_options or {})
        return self

    # ------------------------------------------------------------------
    # Input options
    # ------------------------------------------------------------------

    def input_format(self, fmt: str) -> FfmpegCommand:
        inputs.set_input_format(self.current_input, fmt)
        return self

    def input_fps(self, fps: float) -> FfmpegCommand:
        inputs.set_input_fps(self.current_input, fps)
        return self

    def native(self) -> FfmpegCommand:
        inputs.set_native(self.current_input)
        return self

    def seek_input(self, seek: str | float) -> FfmpegCommand:
        inputs.set_seek_input(self.current_input, seek)
        return self

    def loop(self, duration: str | float | None = None) -> FfmpegCommand:
        """Loop the current input, optionally limiting the output duration."""
        inputs.set_loop(self.current_input)
        if duration is not None:
            self.duration(duration)
        return self

    def input_options(self, *options: object) -> FfmpegCommand:
        """Add custom options to the current input.

        A single "-flag value" string (or each such string of a single
        list) is split in two; several arguments are added verbatim.
        """
        custom.add_custom_options(self.current_input.options, options)
        return self

    # ------------------------------------------------------------------
    # Output options
    # ------------------------------------------------------------------

    def seek(self, seek: str | float) -> FfmpegCommand:
        outputs.set_seek(self.current_output, seek)
        return self

    def duration(self, duration: str | float) -> FfmpegCommand:
        outputs.set_duration(self.current_output, duration)
        return self

    def format(self, fmt: str) -> FfmpegCommand:
        outputs.set_format(self.current_output, fmt)
        return self

    def map(self, spec: str) -> FfmpegCommand:
        outputs.add_map(self.current_output, spec)
        return self

    def flvmeta(self) -> FfmpegCommand:
        outputs.enable_flvmeta(self.current_output)
        return self

    def output_options(self, *options: object) -> FfmpegCommand:
        """Add custom options to the current output (same rules as input_options)."""
        custom.add_custom_options(self.current_output.options, options)
        return self

    def global_options(self, *options: object) -> FfmpegCommand:
        """Add options placed before all inputs (e.g. "-hide_banner")."""
        custom.add_custom_options(self._global_options, options)
        return self

    def complex_filter(
        self,
        spec: FilterLike | list[FilterLike],
        map_: str | list[str] | None = None,
    ) -> FfmpegCommand:
        """Set the complex filtergraph, replacing any previous one.

        Args:
            spec: Filtergraph string, or filters joined with ";".
            map_: Graph output label(s) to include in the output.
        """
        tokens = custom.complex_filter_tokens(spec, map_)
        self._complex_filters.clear()
        self._complex_filters.add(tokens)
        return self

    # ------------------------------------------------------------------
    # Audio
    # ------------------------------------------------------------------

    def no_audio(self) -> FfmpegCommand:
        audio.disable_audio(self.current_output)
        return self

    def audio_codec(self, codec: str) -> FfmpegCommand:
        audio.set_audio_codec(self.current_output, codec)
        return self

    def audio_bitrate(self, bitrate: str | int | float) -> FfmpegCommand:
        audio.set_audio_bitrate(self.current_output, bitrate)
        return self

    def audio_channels(self, channels: int) -> FfmpegCommand:
        audio.set_audio_channels(self.current_output, channels)
        return self

    def audio_frequency(self, frequency: int) -> FfmpegCommand:
        audio.set_audio_frequency(self.current_output, frequency)
        return self

    def audio_quality(self, quality: float) -> FfmpegCommand:
        audio.set_audio_quality(self.current_output, quality)
        return self

    def audio_filters(self, *filters: Any) -> FfmpegCommand:
        """Append audio filters, given as varargs or a single list."""
        audio.add_audio_filters(self.current_output, flatten_filters(filters))
        return self

    # ------------------------------------------------------------------
    # Video
    # ------------------------------------------------------------------

    def no_video(self) -> FfmpegCommand:
        video.disable_video(self.current_output)
        return self

    def video_codec(self, codec: str) -> FfmpegCommand:
        video.set_video_codec(self.current_output, codec)
        return self

    def video_bitrate(
        self, bitrate: str | int | float, constant: bool = False
    ) -> FfmpegCommand:
        video.set_video_bitrate(self.current_output, bitrate, constant)
        return self

    def video_filters(self, *filters: Any) -> FfmpegCommand:
        """Append video filters, given as varargs or a single list."""
        video.add_video_filters(self.current_output, flatten_filters(filters))
        return self

    def fps(self, fps: float) -> FfmpegCommand:
        video.set_fps(self.current_output, fps)
        return self

    def frames(self, frames: int) -> FfmpegCommand:
        video.set_frames(self.current_output, frames)
        return self

    # ------------------------------------------------------------------
    # Video size
    # ------------------------------------------------------------------

    def keep_pixel_aspect(self) -> FfmpegCommand:
        videosize.keep_pixel_aspect(self.current_output)
        return self

    def size(self, size: str) -> FfmpegCommand:
        videosize.set_size(self.current_output, size)
        return self

    def aspect(self, aspect: str | float) -> FfmpegCommand:
        videosize.set_aspect(self.current_output, aspect)
        return self

    def autopad(
        self, pad: bool | str = True, color: str = videosize.DEFAULT_PAD_COLOR
    ) -> FfmpegCommand:
        videosize.set_autopad(self.current_output, pad, color)
        return self

    # ------------------------------------------------------------------
    # Presets
    # ------------------------------------------------------------------

    def preset(self, preset: str | PresetFunc) -> FfmpegCommand:
        """Apply a preset by name or a callable taking this command.

        Raises:
            PresetError: If a named preset is unknown or invalid.
        """
        if callable(preset):
            preset(self)
        else:
            resolve_preset(preset, self.options.presets_dir)(self)
        return self

    # ------------------------------------------------------------------
    # Assembly
    # ------------------------------------------------------------------

    def get_args(self) -> list[str]:
        """Linearize the command into ffmpeg arguments (without the binary).

        Order: global options (then -y when writing files), each input's
        options followed by -i, the complex filtergraph, then for each
        output its audio, audio filter, video, video filter, generic and
        map options followed by its target.
        """
        args = self._global_options.get()
        if any(o.is_file for o in self._outputs):
            args.append("-y")

        for input_ in self._inputs:
            args.extend(input_.options.get())
            args.extend(["-i", input_.origin])

        args.extend(self._complex_filters.get())

        for output in self._outputs:
            args.extend(output.audio.get())
            if output.audio_filters:
                args.extend(["-filter:a", join_filter_chain(output.audio_filters)])
            args.extend(output.video.get())
            video_filters = output.video_filters.get() + output.size_filters.get()
            if video_filters:
                args.extend(["-filter:v", join_filter_chain(video_filters)])
            args.extend(output.options.get())
            args.extend(output.maps.get())
            token = output.target_token
            if token is not None:
                args.append(token)
        return args

    def build_command_line(self) -> list[str]:
        """Return the full command line, including the ffmpeg executable.

        With a non-zero niceness on POSIX systems the command is run
        through nice.

        Raises:
            SpawnError: If ffmpeg cannot be found.
        """
        ffmpeg = require_tool("ffmpeg", self.options.ffmpeg_path)
        return self._prefix([str(ffmpeg)]) + self.get_args()

    def _prefix(self, executable: list[str]) -> list[str]:
        if self.options.niceness and os.name != "nt":
            return ["nice", "-n", str(self.options.niceness), *executable]
        return executable

    def clone(self) -> FfmpegCommand:
        """Copy this command.

        The clone shares options and logger with this command; inputs,
        outputs and option groups are copied so later changes to either
        command do not affect the other.
        """
        clone = FfmpegCommand.__new__(FfmpegCommand)
        clone.options = self.options
        clone.logger = self.logger
        clone._inputs = [i.clone() for i in self._inputs]
        clone._current_input = self._current_input
        clone._outputs = [o.clone() for o in self._outputs]
        clone._current_output = self._current_output
        clone._global_options = self._global_options.clone()
        clone._complex_filters = self._complex_filters.clone()
        clone._driver = None
        return clone

    def requirements(self) -> list[tuple[str, str]]:
        """Formats and codecs this command asks ffmpeg for."""
        required: list[tuple[str, str]] = []
        for input_ in self._inputs:
            fmt = input_.options.find("-f", 1)
            if fmt:
                required.append(("input format", fmt[0]))
        for output in self._outputs:
            fmt = output.options.find("-f", 1)
            if fmt:
                required.append(("output format", fmt[0]))
            codec = output.audio.find("-acodec", 1)
            if codec:
                required.append(("audio codec", codec[0]))
            codec = output.video.find("-vcodec", 1)
            if codec:
                required.append(("video codec", codec[0]))
        return required

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------

    def run(
        self, callbacks: RunCallbacks | None = None, *, check: bool = False
    ) -> RunResult:
        """Run ffmpeg and block until it finishes.

        Args:
            callbacks: Hooks for start, codec data, progress, diagnostic
                lines and the terminal outcome.
            check: Raise the terminal error instead of only returning it.

        Returns:
            RunResult of the run.

        Raises:
            ConfigurationError: If the command cannot run as configured
                (no output, already running, unavailable codec when
                capability checks are enabled).
            FfdriveError: The terminal error, when check is True.
        """
        if self._driver is not None and not self._driver.state.is_terminal:
            raise ConfigurationError("This command is already running")
        if all(o.target is None for o in self._outputs):
            raise ConfigurationError("No output specified")

        stream_input = next((i for i in self._inputs if i.is_stream), None)
        stream_output = next((o for o in self._outputs if o.is_stream), None)
        if stream_output is not None and self.options.merge_output:
            raise ConfigurationError(
                "merge_output cannot be used with a stream output"
            )

        spawn_error: SpawnError | None = None
        try:
            ffmpeg = require_tool("ffmpeg", self.options.ffmpeg_path)
        except SpawnError as e:
            # The driver reports the failed launch through the callbacks
            spawn_error = e
            argv = [str(self.options.ffmpeg_path or "ffmpeg"), *self.get_args()]
        else:
            if self.options.check_capabilities:
                capabilities.check_capabilities(
                    self.requirements(), capabilities.get_capabilities(ffmpeg)
                )
            argv = self._prefix([str(ffmpeg)]) + self.get_args()

        driver = ProcessDriver(
            argv,
            callbacks,
            stdout_lines=self.options.stdout_lines,
            timeout=self.options.timeout,
            merge_output=self.options.merge_output,
            cwd=self.options.cwd,
            env=self.options.env or None,
            input_stream=stream_input.source if stream_input else None,  # type: ignore[arg-type]
            output_stream=stream_output.target if stream_output else None,  # type: ignore[arg-type]
            close_output_stream=bool(
                stream_output and stream_output.pipe_options.get("end")
            ),
            duration_seconds=self._output_duration(),
            flvmeta_targets=[
                o.target_token  # type: ignore[misc]
                for o in self._outputs
                if o.flags.get("flvmeta") and o.is_file
            ],
            run_logger=self.logger,
            spawn_error=spawn_error,
        )
        self._driver = driver
        result = driver.run()
        if check and result.error is not None:
            raise result.error
        return result

    def save(
        self,
        target: str | Path,
        callbacks: RunCallbacks | None = None,
        *,
        check: bool = False,
    ) -> RunResult:
        """Add a file output and run."""
        return self.output(target).run(callbacks, check=check)

    def pipe(
        self,
        stream: IO[bytes],
        pipe_options: dict[str, Any] | None = None,
        callbacks: RunCallbacks | None = None,
        *,
        check: bool = False,
    ) -> RunResult:
        """Add a stream output and run, writing ffmpeg's stdout to stream."""
        return self.output(stream, pipe_options).run(callbacks, check=check)

    def kill(self, sig: int | None = None) -> bool:
        """Cancel the running ffmpeg process. Safe from any thread.

        Returns:
            True if a run was cancelled.
        """
        driver = self._driver
        if driver is None:
            return False
        return driver.cancel(sig)

    def renice(self, niceness: int = 0) -> FfmpegCommand:
        """Change ffmpeg's priority, for the running process and later runs."""
        if isinstance(niceness, bool) or not -20 <= int(niceness) <= 20:
            raise ConfigurationError(
                f"niceness must be between -20 and 20, got {niceness}"
            )
        self.options.niceness = int(niceness)
        driver = self._driver
        if driver is not None and not driver.state.is_terminal:
            driver.renice(self.options.niceness)
        return self

    def _output_duration(self) -> float | None:
        """Duration from the first output's -t option, if parseable."""
        for output in self._outputs:
            value = output.options.find("-t", 1)
            if value:
                try:
                    return timemark_to_seconds(value[0])
                except TimemarkError:
                    return None
        return None

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    def _ffmpeg_for_queries(self) -> Path:
        return require_tool("ffmpeg", self.options.ffmpeg_path)

    def available_filters(self) -> dict[str, FilterInfo]:
        return capabilities.available_filters(self._ffmpeg_for_queries())

    def available_codecs(self) -> dict[str, CodecInfo]:
        return capabilities.available_codecs(self._ffmpeg_for_queries())

    def available_formats(self) -> dict[str, FormatInfo]:
        return capabilities.available_formats(self._ffmpeg_for_queries())

    def available_encoders(self) -> dict[str, EncoderInfo]:
        return capabilities.available_encoders(self._ffmpeg_for_queries())
