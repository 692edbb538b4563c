"""Background GPU telemetry sampler."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from types import TracebackType

from llmsweep.telemetry.log import TelemetryLog
from llmsweep.telemetry.sources import GPUQuery
from llmsweep.utils.logger import Logger


class TelemetrySampler:
    """Thread that appends one GPU sample to a TelemetryLog every interval.

    The sampler is independent of the benchmark loop: it never waits on the
    orchestrator, and a failed query only skips that tick. Use it as a
    context manager so it is stopped on every exit path::

        with TelemetrySampler(query, log, interval_seconds=1.0):
            run_matrix()
    """

    def __init__(
        self,
        query: GPUQuery,
        log: TelemetryLog,
        interval_seconds: float = 1.0,
        clock: Callable[[], float] = time.time,
        join_timeout: float = 10.0,
    ) -> None:
        """Create a sampler thread (not yet started).

        Args:
            query: GPU monitoring capability.
            log: Append-only destination; this sampler is its only writer.
            interval_seconds: Tick period. Must be positive.
            clock: Wall-clock source for sample timestamps. Must be the same
                clock used to stamp run windows.
            join_timeout: How long stop() waits for an in-flight query.
        """
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be greater than zero")

        self.query = query
        self.log = log
        self.interval_seconds = interval_seconds
        self._clock = clock
        self._join_timeout = join_timeout
        self._stop_event = threading.Event()
        self._write_lock = threading.Lock()
        self._thread: threading.Thread | None = None
        self._logger = Logger.get("telemetry.sampler")
        self.samples_written = 0
        self.ticks_skipped = 0

    @property
    def is_running(self) -> bool:
        """True while the sampling thread is alive."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start sampling. Calling start() twice is a no-op."""
        if self._thread is not None:
            return
        self._stop_event.clear()
        # Daemon so a wedged query can never keep the interpreter alive.
        self._thread = threading.Thread(
            target=self._run, name="llmsweep-telemetry", daemon=True
        )
        self._thread.start()
        self._logger.info(
            f"Telemetry sampler started ({self.query.name}, "
            f"every {self.interval_seconds}s -> {self.log.path})"
        )

    def stop(self) -> None:
        """Stop sampling; no sample is written once this returns.

        The query source is released by the sampling thread as it exits. A
        thread stuck in a query past ``join_timeout`` is left to finish on
        its own and closes the source then.
        """
        if self._thread is None:
            return
        with self._write_lock:
            self._stop_event.set()
        self._thread.join(timeout=self._join_timeout)
        if self._thread.is_alive():
            self._logger.warning(
                f"Telemetry thread did not exit within {self._join_timeout}s; "
                "query source will be closed when it returns"
            )
        self._thread = None
        self._logger.info(
            f"Telemetry sampler stopped ({self.samples_written} samples, "
            f"{self.ticks_skipped} ticks skipped)"
        )

    def __enter__(self) -> TelemetrySampler:
        self.start()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.stop()

    def _run(self) -> None:
        try:
            # The first tick happens immediately, so every session has a baseline.
            while True:
                tick_start = time.monotonic()
                self._tick()
                remaining = self.interval_seconds - (time.monotonic() - tick_start)
                if self._stop_event.wait(max(remaining, 0.0)):
                    return
        finally:
            self.query.close()

    def _tick(self) -> None:
        try:
            snapshot = self.query.query()
            with self._write_lock:
                if self._stop_event.is_set():
                    return
                self.log.append(snapshot.at(self._clock()))
        except Exception as e:
            # Any failure costs one sample, never the session.
            self.ticks_skipped += 1
            self._logger.debug(f"Telemetry tick skipped: {e}")
            return
        self.samples_written += 1
