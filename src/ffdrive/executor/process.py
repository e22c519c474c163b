"""FFmpeg process driver.

Spawns one ffmpeg child, reads its pipes on background threads and
dispatches complete lines, in order, on the calling thread. Each
diagnostic line goes to a bounded LinesRing and to a DiagnosticsParser;
the events the parser recognizes are forwarded to the caller's
RunCallbacks. The run ends in exactly one terminal state.
"""

from __future__ import annotations

import codecs
import logging
import os
import queue
import signal
import subprocess  # nosec B404 - subprocess is required for FFmpeg invocation
import threading
import time
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import IO, Any

from ffdrive.core.ring import LineSplitter, LinesRing
from ffdrive.core.subprocess_utils import run_command
from ffdrive.exceptions import (
    ConfigurationError,
    FfdriveError,
    ProcessError,
    ProcessTimeoutError,
    RunCancelledError,
    SpawnError,
    StreamError,
)
from ffdrive.executor.interface import RunCallbacks, RunResult, RunState
from ffdrive.logging.context import run_context
from ffdrive.tools.detection import find_flvtool
from ffdrive.tools.diagnostics import CodecData, DiagnosticsParser
from ffdrive.tools.ffmpeg_metrics import FFmpegMetricsAggregator

logger = logging.getLogger(__name__)

# Size of each read from the child's pipes
CHUNK_SIZE = 65536

# How often the dispatch loop wakes up to check deadline and cancellation
POLL_INTERVAL = 0.1

# Time allowed for reader threads to finish after the child is gone
READER_JOIN_TIMEOUT = 2.0

# SIGKILL does not exist on Windows
DEFAULT_KILL_SIGNAL = getattr(signal, "SIGKILL", signal.SIGTERM)

STDOUT = "stdout"
STDERR = "stderr"


def _signal_name(sig: int) -> str:
    try:
        return signal.Signals(sig).name
    except ValueError:
        return str(sig)


class ProcessDriver:
    """Drive a single ffmpeg run.

    A driver runs once. run() blocks until the child exits, times out or
    is cancelled; cancel() and renice() may be called from any thread
    while run() is in progress.

    Args:
        argv: Full command line, executable first.
        callbacks: Caller hooks. None runs without notifications.
        stdout_lines: Lines retained per stream for error reports
            (0 = unlimited).
        timeout: Wall-clock limit in seconds, armed at spawn.
        merge_output: Redirect stderr into stdout and parse every line as
            diagnostics.
        cwd: Working directory for the child.
        env: Variables added to the inherited environment.
        input_stream: Readable binary file object copied to the child's
            stdin.
        output_stream: Writable binary file object receiving the child's
            raw stdout.
        close_output_stream: Close output_stream once the run is over.
        duration_seconds: Known output duration for progress percentages.
        flvmeta_targets: FLV files whose metadata is updated after success.
        kill_signal: Signal used by cancel() and on timeout.
        run_logger: Logger for run-level messages. Defaults to this
            module's logger.
        spawn_error: Launch failure found before spawning, such as an
            ffmpeg that cannot be located. The run ends FAILED with it and
            no child is started.
    """

    def __init__(
        self,
        argv: Sequence[str | Path],
        callbacks: RunCallbacks | None = None,
        *,
        stdout_lines: int = 100,
        timeout: float | None = None,
        merge_output: bool = False,
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
        input_stream: IO[bytes] | None = None,
        output_stream: IO[bytes] | None = None,
        close_output_stream: bool = False,
        duration_seconds: float | None = None,
        flvmeta_targets: Sequence[str | Path] = (),
        kill_signal: int = DEFAULT_KILL_SIGNAL,
        run_logger: logging.Logger | None = None,
        spawn_error: SpawnError | None = None,
    ) -> None:
        if not argv:
            raise ConfigurationError("argv must not be empty")
        if timeout is not None and timeout <= 0:
            raise ConfigurationError(f"timeout must be positive, got {timeout}")
        self.argv = [str(arg) for arg in argv]
        self.callbacks = callbacks or RunCallbacks()
        self.timeout = timeout
        self.merge_output = merge_output
        self.cwd = cwd
        self.env = env
        self.input_stream = input_stream
        self.output_stream = output_stream
        self.close_output_stream = close_output_stream
        self.flvmeta_targets = list(flvmeta_targets)
        self.kill_signal = kill_signal
        self._logger = run_logger or logger
        self._spawn_error = spawn_error

        self._stdout_ring = LinesRing(stdout_lines)
        self._stderr_ring = LinesRing(stdout_lines)
        self._parser = DiagnosticsParser(duration_seconds)
        self._metrics = FFmpegMetricsAggregator()

        self._lock = threading.Lock()
        self._state = RunState.IDLE
        self._process: subprocess.Popen[bytes] | None = None
        self._cancel_event = threading.Event()
        self._cancel_signal = kill_signal
        self._lines: queue.Queue[tuple[str, str | None]] = queue.Queue()
        self._threads: list[threading.Thread] = []
        self._start_time = 0.0
        self._stream_error: StreamError | None = None

    @property
    def state(self) -> RunState:
        with self._lock:
            return self._state

    @property
    def pid(self) -> int | None:
        """Process id of the running child, if any."""
        process = self._process
        return process.pid if process is not None else None

    @property
    def codec_data(self) -> CodecData | None:
        return self._parser.codec_data

    def run(self) -> RunResult:
        """Spawn ffmpeg and drive it to a terminal state.

        Returns:
            RunResult describing the outcome. Errors are reported through
            the result and the on_error/on_cancel callbacks, not raised.

        Raises:
            ConfigurationError: If this driver has already been run.
        """
        with self._lock:
            if self._state is not RunState.IDLE:
                raise ConfigurationError("A ProcessDriver can only run once")
            self._state = RunState.SPAWNING

        with run_context(uuid.uuid4().hex[:8], self._describe_target()):
            try:
                return self._run()
            finally:
                self._stdout_ring.close()
                self._stderr_ring.close()

    def cancel(self, sig: int | None = None) -> bool:
        """Kill the child and end the run in CANCELLED.

        Safe to call from any thread. A cancel requested before the child
        is spawned takes effect as soon as it starts.

        Args:
            sig: Signal to send. Defaults to the driver's kill_signal.

        Returns:
            True if the cancellation was accepted, False if the run had
            already reached a terminal state.
        """
        with self._lock:
            if self._state.is_terminal:
                return False
            if sig is not None:
                self._cancel_signal = sig
            self._cancel_event.set()
            process = self._process
        if process is not None:
            self._send_signal(process, self._cancel_signal)
        return True

    def renice(self, niceness: int) -> None:
        """Change the priority of the running child.

        Ignored with a warning on Windows or when no child is running.
        """
        if os.name == "nt":
            self._logger.warning("Process niceness is not supported on Windows")
            return
        pid = self.pid
        if pid is None or self.state is not RunState.RUNNING:
            self._logger.warning("Cannot renice: ffmpeg is not running")
            return
        _stdout, stderr, rc = run_command(
            ["renice", "-n", str(niceness), "-p", str(pid)], timeout=10
        )
        if rc != 0:
            self._logger.warning("renice failed (exit %d): %s", rc, stderr.strip())
        else:
            self._logger.info("Changed ffmpeg (pid %d) niceness to %d", pid, niceness)

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def _run(self) -> RunResult:
        self._logger.debug("Spawning %s", " ".join(self.argv))
        self._start_time = time.monotonic()
        if self._spawn_error is not None:
            return self._finish(RunState.FAILED, self._spawn_error)
        try:
            process = subprocess.Popen(  # nosec B603 - argv built by FfmpegCommand
                self.argv,
                stdin=subprocess.PIPE if self.input_stream else subprocess.DEVNULL,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if self.merge_output else subprocess.PIPE,
                cwd=self.cwd,
                env={**os.environ, **self.env} if self.env else None,
            )
        except OSError as e:
            error = SpawnError(self.argv[0], f"Cannot launch {self.argv[0]}: {e}")
            return self._finish(RunState.FAILED, error)

        with self._lock:
            self._process = process
            self._state = RunState.RUNNING
            cancelled_early = self._cancel_event.is_set()
        if cancelled_early:
            self._send_signal(process, self._cancel_signal)

        self._emit("on_start", list(self.argv))
        self._start_threads(process)

        deadline = (
            self._start_time + self.timeout if self.timeout is not None else None
        )
        timed_out = self._dispatch_until_eof(deadline)

        if not timed_out and not self._cancel_event.is_set():
            timed_out = self._wait_for_exit(process, deadline)

        if self._cancel_event.is_set():
            self._reap(process)
            notice = RunCancelledError(_signal_name(self._cancel_signal))
            return self._finish(RunState.CANCELLED, notice)

        if timed_out:
            self._send_signal(process, self.kill_signal)
            self._reap(process)
            elapsed = time.monotonic() - self._start_time
            self._logger.warning(
                "ffmpeg timed out after %.1f seconds", elapsed
            )
            assert self.timeout is not None
            return self._finish(
                RunState.TIMED_OUT, ProcessTimeoutError(self.timeout, elapsed)
            )

        self._join_threads()
        self._close_pipes(process)
        self._drain()
        self._dispatch_events(self._parser.finish())

        returncode = process.returncode
        if self._stream_error is not None:
            return self._finish(RunState.FAILED, self._stream_error, returncode)

        if returncode != 0:
            diagnostics = self._stdout_ring if self.merge_output else self._stderr_ring
            error = ProcessError(
                returncode if returncode >= 0 else None,
                signal=-returncode if returncode < 0 else None,
                banner=self._parser.error_banner,
                stderr_tail=diagnostics.get(),
            )
            return self._finish(RunState.FAILED, error, returncode)

        post_error = self._update_flv_metadata()
        if post_error is not None:
            return self._finish(RunState.FAILED, post_error, returncode)

        return self._finish(RunState.SUCCEEDED, None, returncode)

    def _dispatch_until_eof(self, deadline: float | None) -> bool:
        """Dispatch queued lines until every reader hit EOF.

        Returns:
            True if the deadline expired first.
        """
        open_readers = len(self._threads) - (1 if self.input_stream else 0)
        while open_readers > 0:
            if self._cancel_event.is_set():
                return False
            wait = POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return True
                wait = min(wait, remaining)
            try:
                source, line = self._lines.get(timeout=wait)
            except queue.Empty:
                continue
            if line is None:
                open_readers -= 1
            else:
                self._dispatch_line(source, line)
        return False

    def _wait_for_exit(
        self, process: subprocess.Popen[bytes], deadline: float | None
    ) -> bool:
        """Wait for the child after its pipes closed; True on timeout."""
        while True:
            if self._cancel_event.is_set():
                return False
            wait = POLL_INTERVAL
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return True
                wait = min(wait, remaining)
            try:
                process.wait(timeout=wait)
                return False
            except subprocess.TimeoutExpired:
                continue

    def _dispatch_line(self, source: str, line: str) -> None:
        if source == STDOUT and not self.merge_output:
            self._stdout_ring.append(line)
            return

        ring = self._stdout_ring if self.merge_output else self._stderr_ring
        ring.append(line)
        self._emit("on_stderr", line)
        self._dispatch_events(self._parser.feed(line))

    def _dispatch_events(self, events: list[Any]) -> None:
        for event in events:
            if isinstance(event, CodecData):
                self._emit("on_codec_data", event)
            else:
                self._metrics.add_sample(event)
                self._emit("on_progress", event)

    def _drain(self) -> None:
        """Dispatch lines left in the queue after the readers stopped."""
        while True:
            try:
                source, line = self._lines.get_nowait()
            except queue.Empty:
                return
            if line is not None:
                self._dispatch_line(source, line)

    def _finish(
        self,
        state: RunState,
        error: FfdriveError | None,
        returncode: int | None = None,
    ) -> RunResult:
        with self._lock:
            self._state = state

        stdout = self._stdout_ring.get()
        stderr = self._stderr_ring.get()
        elapsed = time.monotonic() - self._start_time if self._start_time else 0.0
        result = RunResult(
            state=state,
            argv=tuple(self.argv),
            returncode=returncode,
            stdout=stdout,
            stderr=stderr,
            error=error,
            codec_data=self._parser.codec_data,
            metrics=self._metrics.summarize(),
            elapsed=elapsed,
        )

        if state is RunState.SUCCEEDED:
            self._logger.info("ffmpeg finished in %.1fs", elapsed)
            self._emit("on_end", stdout, stderr)
        elif state is RunState.CANCELLED:
            self._logger.info("ffmpeg run cancelled")
            self._emit("on_cancel", error)
        else:
            self._logger.error("ffmpeg run %s: %s", state.value, error)
            self._emit("on_error", error, stdout, stderr)
        return result

    def _emit(self, name: str, *args: Any) -> None:
        callback = getattr(self.callbacks, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            self._logger.warning("%s callback raised: %s", name, e, exc_info=True)

    # ------------------------------------------------------------------
    # Pipes and signals
    # ------------------------------------------------------------------

    def _start_threads(self, process: subprocess.Popen[bytes]) -> None:
        if self.input_stream is not None:
            assert process.stdin is not None
            self._threads.append(
                threading.Thread(
                    target=self._write_stdin,
                    args=(process.stdin,),
                    name="ffdrive-stdin",
                    daemon=True,
                )
            )

        assert process.stdout is not None
        if self.output_stream is not None and not self.merge_output:
            target: Any = self._copy_stdout
        else:
            target = self._read_lines
        self._threads.append(
            threading.Thread(
                target=target,
                args=(STDOUT, process.stdout),
                name="ffdrive-stdout",
                daemon=True,
            )
        )

        if not self.merge_output:
            assert process.stderr is not None
            self._threads.append(
                threading.Thread(
                    target=self._read_lines,
                    args=(STDERR, process.stderr),
                    name="ffdrive-stderr",
                    daemon=True,
                )
            )

        for thread in self._threads:
            thread.start()

    def _read_lines(self, source: str, pipe: IO[bytes]) -> None:
        """Read a pipe, split it into lines and queue them."""
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        splitter = LineSplitter()
        try:
            while chunk := pipe.read1(CHUNK_SIZE):  # type: ignore[attr-defined]
                for line in splitter.feed(decoder.decode(chunk)):
                    self._lines.put((source, line))
            for line in splitter.feed(decoder.decode(b"", final=True)):
                self._lines.put((source, line))
            for line in splitter.flush():
                self._lines.put((source, line))
        except (ValueError, OSError) as e:
            # Pipe closed or process terminated
            logger.debug("%s reader stopped: %s", source, e)
        finally:
            self._lines.put((source, None))

    def _copy_stdout(self, source: str, pipe: IO[bytes]) -> None:
        """Copy raw stdout to the caller's output stream.

        A failing output stream ends the run: the child is killed and the
        rest of its output is read and discarded so the pipe never fills.
        """
        sink = self.output_stream
        try:
            while chunk := pipe.read1(CHUNK_SIZE):  # type: ignore[attr-defined]
                if sink is None:
                    continue
                try:
                    sink.write(chunk)
                except Exception as e:
                    self._fail_output_stream(e)
                    sink = None
            if sink is not None:
                try:
                    sink.flush()
                    if self.close_output_stream:
                        sink.close()
                except Exception as e:
                    self._fail_output_stream(e)
        except (ValueError, OSError) as e:
            # Pipe closed or process terminated
            logger.debug("%s reader stopped: %s", source, e)
        finally:
            self._lines.put((source, None))

    def _fail_output_stream(self, error: Exception) -> None:
        self._logger.warning("Output stream write failed: %s", error)
        self._stream_error = StreamError(
            f"Writing to the output stream failed: {error}"
        )
        process = self._process
        if process is not None:
            self._send_signal(process, self.kill_signal)

    def _write_stdin(self, stdin: IO[bytes]) -> None:
        """Copy the caller's input stream to the child's stdin."""
        assert self.input_stream is not None
        try:
            while chunk := self.input_stream.read(CHUNK_SIZE):
                stdin.write(chunk)
        except BrokenPipeError:
            logger.debug("ffmpeg closed its stdin before the input stream ended")
        except (ValueError, OSError) as e:
            logger.warning("Input stream copy failed: %s", e)
        finally:
            try:
                stdin.close()
            except OSError as e:
                logger.debug("Closing ffmpeg stdin failed: %s", e)

    def _send_signal(self, process: subprocess.Popen[bytes], sig: int) -> None:
        if process.poll() is not None:
            return
        try:
            process.send_signal(sig)
        except ProcessLookupError:
            logger.debug("ffmpeg already exited before %s", _signal_name(sig))

    def _reap(self, process: subprocess.Popen[bytes]) -> None:
        """Wait for a killed child and stop the reader threads."""
        try:
            process.wait(timeout=READER_JOIN_TIMEOUT)
        except subprocess.TimeoutExpired:
            logger.error(
                "ffmpeg (pid %d) did not exit after being signalled", process.pid
            )
        self._join_threads()
        self._close_pipes(process)

    def _join_threads(self) -> None:
        for thread in self._threads:
            thread.join(timeout=READER_JOIN_TIMEOUT)
            if thread.is_alive():
                logger.error(
                    "%s thread failed to terminate. Thread will be abandoned.",
                    thread.name,
                )

    def _close_pipes(self, process: subprocess.Popen[bytes]) -> None:
        # A pipe still being read by an abandoned thread would block close()
        if any(thread.is_alive() for thread in self._threads):
            return
        for pipe in (process.stdout, process.stderr):
            if pipe is not None:
                try:
                    pipe.close()
                except OSError as e:
                    logger.debug("Closing pipe failed: %s", e)

    # ------------------------------------------------------------------
    # Post-processing
    # ------------------------------------------------------------------

    def _update_flv_metadata(self) -> FfdriveError | None:
        """Run flvmeta (or flvtool2) -U on flagged outputs."""
        if not self.flvmeta_targets:
            return None
        tool = find_flvtool()
        if tool is None:
            return SpawnError(
                "flvmeta", "Cannot find flvmeta or flvtool2 to update FLV metadata"
            )
        for target in self.flvmeta_targets:
            self._logger.debug("Updating FLV metadata of %s with %s", target, tool)
            try:
                _stdout, stderr, rc = run_command(
                    [tool, "-U", target], cwd=self.cwd
                )
            except SpawnError as e:
                return e
            except subprocess.TimeoutExpired as e:
                return ProcessTimeoutError(float(e.timeout), float(e.timeout))
            if rc != 0:
                return ProcessError(rc, stderr_tail=stderr.strip(), tool=tool.name)
        return None

    def _describe_target(self) -> str | None:
        if self.output_stream is not None:
            return "pipe:1"
        return self.argv[-1] if len(self.argv) > 1 else None
