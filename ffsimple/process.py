"""Supervised ffmpeg execution.

:func:`run_ffmpeg` spawns one ffmpeg process, pipes caller-supplied streams
in and out of it, parses its stderr as it arrives and either returns (exit
status 0) or raises exactly one :class:`~ffsimple.errors.FFmpegError`.
"""

import collections
import contextlib
import logging
import shlex
import shutil
import subprocess
import threading
from typing import BinaryIO, Callable

from ffsimple.diagnostics import LineSplitter, parse_duration, parse_error, parse_progress
from ffsimple.errors import (
    FFmpegCancelledError,
    FFmpegError,
    FFmpegPipeError,
    FFmpegRuntimeError,
    FFmpegSpawnError,
)
from ffsimple.ffutil import build_args, find_binary
from ffsimple.models import Invocation, ProgressSnapshot, StreamHandle

logger = logging.getLogger(__name__)

DIAGNOSTIC_TAIL_LINES = 50
DEFAULT_GRACE_PERIOD = 5.0
_READ_SIZE = 64 * 1024


class CancelToken:
    """Thread-safe cancellation signal shared between a caller and runs.

    Callbacks registered with :meth:`add_callback` run once, in the thread
    that calls :meth:`cancel`.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._cancelled = False
        self._callbacks: list[Callable[[], None]] = []

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        with self._lock:
            if self._cancelled:
                return
            self._cancelled = True
            callbacks, self._callbacks = self._callbacks, []
        for cb in callbacks:
            cb()

    def add_callback(self, cb: Callable[[], None]) -> Callable[[], None]:
        """Register ``cb``; returns a function that unregisters it.

        If the token is already cancelled, ``cb`` runs immediately.
        """
        with self._lock:
            if not self._cancelled:
                self._callbacks.append(cb)
                return lambda: self._remove(cb)
        cb()
        return lambda: None

    def _remove(self, cb: Callable[[], None]) -> None:
        with self._lock:
            if cb in self._callbacks:
                self._callbacks.remove(cb)


class _Run:
    """State owned by a single ffmpeg invocation."""

    def __init__(
        self,
        invocation: Invocation,
        on_progress: Callable[[ProgressSnapshot], None] | None,
        on_line: Callable[[str], None] | None,
        grace_period: float,
    ):
        self.invocation = invocation
        self.on_progress = on_progress
        self.on_line = on_line
        self.grace_period = grace_period
        self.duration: float | None = None
        self.tail: collections.deque[str] = collections.deque(maxlen=DIAGNOSTIC_TAIL_LINES)
        self.pipe_errors: list[FFmpegPipeError] = []
        self.cancelled = threading.Event()
        self.proc: subprocess.Popen | None = None
        self._kill_timer: threading.Timer | None = None

    # -- diagnostics -------------------------------------------------------

    def handle_line(self, line: str) -> None:
        self.tail.append(line)
        if self.on_line:
            self.on_line(line)

        if self.duration is None:
            self.duration = parse_duration(line)

        progress = parse_progress(line, self.duration)
        if progress is not None and self.on_progress:
            self.on_progress(progress)

    def drain_stderr(self) -> None:
        stderr = self.proc.stderr
        splitter = LineSplitter()
        for chunk in iter(lambda: stderr.read1(_READ_SIZE), b""):
            for line in splitter.feed(chunk):
                self.handle_line(line)
        for line in splitter.flush():
            self.handle_line(line)
        stderr.close()

    # -- stream piping -----------------------------------------------------

    def copy_in(self, source: BinaryIO) -> None:
        stdin = self.proc.stdin
        try:
            shutil.copyfileobj(source, stdin, _READ_SIZE)
        except BrokenPipeError:
            # ffmpeg closed stdin early; its exit status decides the outcome
            logger.debug("ffmpeg stopped reading stdin before the input stream ended")
        except Exception as e:
            self.pipe_errors.append(FFmpegPipeError(f"Failed to pipe input stream into ffmpeg: {e}", e))
            self.proc.kill()
        finally:
            with contextlib.suppress(BrokenPipeError):
                stdin.close()

    def copy_out(self, sink: BinaryIO) -> None:
        try:
            shutil.copyfileobj(self.proc.stdout, sink, _READ_SIZE)
            if hasattr(sink, "flush"):
                sink.flush()
        except Exception as e:
            self.pipe_errors.append(FFmpegPipeError(f"Failed to pipe ffmpeg output into stream: {e}", e))
            self.proc.kill()
        finally:
            self.proc.stdout.close()

    # -- cancellation ------------------------------------------------------

    def terminate(self) -> None:
        if self.cancelled.is_set() or self.proc.poll() is not None:
            return
        self.cancelled.set()
        logger.info(f"Terminating ffmpeg (pid {self.proc.pid})")
        self.proc.terminate()
        self._kill_timer = threading.Timer(self.grace_period, self._kill)
        self._kill_timer.daemon = True
        self._kill_timer.start()

    def _kill(self) -> None:
        if self.proc.poll() is None:
            logger.warning(f"ffmpeg (pid {self.proc.pid}) ignored SIGTERM, killing it")
            self.proc.kill()

    def stop_timers(self) -> None:
        if self._kill_timer is not None:
            self._kill_timer.cancel()

    # -- outcome -----------------------------------------------------------

    def failure(self, returncode: int) -> FFmpegError | None:
        if self.cancelled.is_set():
            return FFmpegCancelledError("ffmpeg was cancelled")
        if self.pipe_errors:
            return self.pipe_errors[0]
        if returncode != 0:
            return FFmpegRuntimeError(
                _failure_message(returncode, list(self.tail)),
                returncode=returncode,
                tail=list(self.tail),
            )
        return None


def _failure_message(returncode: int, tail: list[str]) -> str:
    errors = [e for e in (parse_error(line) for line in tail) if e]
    message = f"ffmpeg exited with code {returncode}"
    if errors:
        message += f": {errors[-1]}"
    if tail:
        message += "\n" + "\n".join(tail)
    return message


def _report(
    exc: FFmpegError, on_error: Callable[[FFmpegError], None] | None
) -> FFmpegError:
    logger.error(str(exc).splitlines()[0])
    if on_error:
        on_error(exc)
    return exc


def run_ffmpeg(
    invocation: Invocation,
    on_progress: Callable[[ProgressSnapshot], None] | None = None,
    on_line: Callable[[str], None] | None = None,
    on_done: Callable[[], None] | None = None,
    on_error: Callable[[FFmpegError], None] | None = None,
    cancel: CancelToken | None = None,
    timeout: float | None = None,
    grace_period: float = DEFAULT_GRACE_PERIOD,
) -> None:
    """Run ffmpeg for ``invocation`` and block until it settles.

    Args:
        invocation: Inputs, output and options for this run.
        on_progress: Called with every stats line parsed from stderr.
        on_line: Called with every raw stderr line.
        on_done: Called once on success, before returning.
        on_error: Called once with the failure, before it is raised.
        cancel: Token that terminates the process when cancelled.
        timeout: Seconds after which the run is cancelled.
        grace_period: Seconds between SIGTERM and SIGKILL on cancellation.

    An exception raised by ``on_progress`` or ``on_line`` stops the run: ffmpeg
    is killed and the exception propagates unchanged, without ``on_error``.

    Raises:
        ValueError: The invocation cannot be turned into a command line.
        FFmpegError: Exactly one subclass describing why the run failed.
    """
    args = build_args(invocation)

    try:
        binary = find_binary("ffmpeg")
    except FFmpegError as e:
        raise _report(e, on_error)

    if cancel is not None and cancel.cancelled:
        raise _report(FFmpegCancelledError("ffmpeg was cancelled before it started"), on_error)

    stdin_stream = next(
        (s.stream for s in invocation.inputs if isinstance(s, StreamHandle)), None
    )
    stdout_stream = (
        invocation.output.stream if isinstance(invocation.output, StreamHandle) else None
    )

    cmd = [binary, *args]
    logger.debug(f"Running: {shlex.join(cmd)}")

    run = _Run(invocation, on_progress, on_line, grace_period)
    try:
        run.proc = subprocess.Popen(
            cmd,
            stdin=subprocess.PIPE if stdin_stream is not None else subprocess.DEVNULL,
            stdout=subprocess.PIPE if stdout_stream is not None else subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            cwd=invocation.cwd,
        )
    except OSError as e:
        raise _report(FFmpegSpawnError(f"Could not start {binary}: {e}"), on_error) from e

    feeder = drainer = None
    if stdin_stream is not None:
        feeder = threading.Thread(target=run.copy_in, args=(stdin_stream,), daemon=True)
        feeder.start()
    if stdout_stream is not None:
        drainer = threading.Thread(target=run.copy_out, args=(stdout_stream,), daemon=True)
        drainer.start()

    unregister = cancel.add_callback(run.terminate) if cancel is not None else None
    deadline = None
    if timeout is not None:
        deadline = threading.Timer(timeout, run.terminate)
        deadline.daemon = True
        deadline.start()

    try:
        run.drain_stderr()
        returncode = run.proc.wait()
    finally:
        if unregister is not None:
            unregister()
        if deadline is not None:
            deadline.cancel()
        if run.proc.poll() is None:
            # a handler raised while ffmpeg was still running
            run.proc.kill()
            run.proc.wait()
        run.stop_timers()
        run.proc.stderr.close()
        if drainer is not None:
            drainer.join()
        if feeder is not None:
            # ffmpeg is gone; a source that never yields another byte must not block us
            feeder.join(grace_period)
            if feeder.is_alive():
                logger.debug("Input stream still blocked after ffmpeg exited, leaving its copier behind")

    exc = run.failure(returncode)
    if exc is not None:
        raise _report(exc, on_error)

    if on_done:
        on_done()
