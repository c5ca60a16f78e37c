"""
Live Flow Monitor
=================

Periodic flow analysis of a live source.

This monitor:
    - Pulls one frame pair from its source every `interval_seconds`
    - Runs the estimator in a worker thread (the event loop stays free)
    - Keeps the latest report plus a bounded history
    - Skips a cycle when capture fails and retries on the next tick

Cancellation:
    stop() prevents any further invocation. An estimate already in
    flight is allowed to finish; each call is short and bounded.
"""

import asyncio
import logging
from collections import deque
from typing import Deque, List, Optional, Protocol, Tuple

from riverflow.errors import FlowEstimationError
from riverflow.flow.estimator import FlowEstimator
from riverflow.models.output import FlowReport
from riverflow.observability.visualization import FlowVisualizer
from riverflow.stream.frame import Frame


logger = logging.getLogger(__name__)


class FramePairSource(Protocol):
    """
    Protocol for live frame-pair providers.

    Implementations return None when no pair could be captured.
    """

    def read_pair(self) -> Optional[Tuple[Frame, Frame]]:
        ...


class LiveMonitorMetrics:
    """Metrics for LiveFlowMonitor observability."""

    __slots__ = (
        "cycles",
        "reports",
        "skipped_cycles",
        "estimation_errors",
        "unexpected_errors",
        "last_report_time",
    )

    def __init__(self) -> None:
        self.cycles: int = 0
        self.reports: int = 0
        self.skipped_cycles: int = 0
        self.estimation_errors: int = 0
        self.unexpected_errors: int = 0
        self.last_report_time: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "cycles": self.cycles,
            "reports": self.reports,
            "skipped_cycles": self.skipped_cycles,
            "estimation_errors": self.estimation_errors,
            "unexpected_errors": self.unexpected_errors,
            "last_report_time": self.last_report_time,
        }


class LiveFlowMonitor:
    """
    Timer-driven flow analysis of a live frame source.

    Example:
        monitor = LiveFlowMonitor(source, GridFlowEstimator(), interval_seconds=5.0)

        task = monitor.start()
        ...
        await monitor.stop()
        print(monitor.latest.summary.average_speed)
    """

    def __init__(
        self,
        source: FramePairSource,
        estimator: FlowEstimator,
        interval_seconds: float = 5.0,
        history_size: int = 20,
        visualizer: Optional[FlowVisualizer] = None,
        include_vectors: bool = True,
    ) -> None:
        """
        Initialize live monitor.

        Args:
            source: Frame-pair provider, polled once per tick
            estimator: Estimator used for every cycle
            interval_seconds: Seconds between cycles (> 0)
            history_size: Number of reports kept (>= 1)
            visualizer: Optional overlay generator
            include_vectors: Whether reports carry every cell

        Raises:
            ValueError: If interval_seconds or history_size is invalid
        """
        if interval_seconds <= 0:
            raise ValueError(f"interval_seconds must be > 0, got {interval_seconds}")
        if history_size < 1:
            raise ValueError(f"history_size must be >= 1, got {history_size}")

        self.source = source
        self.estimator = estimator
        self.interval_seconds = interval_seconds
        self.visualizer = visualizer
        self.include_vectors = include_vectors

        self._history: Deque[FlowReport] = deque(maxlen=history_size)
        self._stop_event: asyncio.Event = asyncio.Event()
        self._task: Optional[asyncio.Task] = None
        self._running: bool = False

        self.metrics = LiveMonitorMetrics()

        logger.info(
            f"LiveFlowMonitor initialized: interval={interval_seconds}s, "
            f"history={history_size}"
        )

    @property
    def running(self) -> bool:
        """Whether the periodic loop is active."""
        return self._running

    @property
    def latest(self) -> Optional[FlowReport]:
        """Most recent report, if any."""
        return self._history[-1] if self._history else None

    @property
    def history(self) -> List[FlowReport]:
        """Recent reports, oldest first."""
        return list(self._history)

    def analyze_once(self) -> Optional[FlowReport]:
        """
        Run a single capture + estimate cycle.

        Returns:
            The new report, or None if the cycle was skipped
        """
        self.metrics.cycles += 1

        try:
            pair = self.source.read_pair()
        except Exception as e:
            logger.warning(f"Frame capture failed, skipping cycle: {e}")
            self.metrics.skipped_cycles += 1
            return None

        if pair is None:
            logger.warning("No frame pair available, skipping cycle")
            self.metrics.skipped_cycles += 1
            return None

        previous, current = pair
        try:
            return self._report(previous, current)
        except FlowEstimationError as e:
            logger.error(f"Flow estimation failed: {e}")
            self.metrics.estimation_errors += 1
        except Exception as e:
            # Keep the timer alive; the next tick retries with a fresh pair
            logger.error(f"Unexpected live analysis failure: {e}", exc_info=True)
            self.metrics.unexpected_errors += 1
        return None

    def _report(self, previous: Frame, current: Frame) -> FlowReport:
        estimate = self.estimator.analyze(previous, current)

        overlay = None
        if self.visualizer is not None and self.visualizer.is_enabled:
            overlay = self.visualizer.render_png_b64(current, estimate.field)

        report = FlowReport.from_estimate(
            estimate,
            previous=previous,
            current=current,
            include_vectors=self.include_vectors,
            overlay_png=overlay,
        )

        self._history.append(report)
        self.metrics.reports += 1
        self.metrics.last_report_time = report.timestamp

        logger.info(
            f"Live flow: avg={report.summary.average_speed:.3f} m/s, "
            f"dir={report.summary.dominant_direction.value}"
        )
        return report

    async def run(self) -> None:
        """
        Run cycles until stop() is called.

        A cycle runs immediately on entry, then once per interval.
        """
        self._running = True
        logger.info("Live flow monitor started")

        try:
            while not self._stop_event.is_set():
                await asyncio.to_thread(self.analyze_once)

                try:
                    await asyncio.wait_for(
                        self._stop_event.wait(),
                        timeout=self.interval_seconds,
                    )
                except asyncio.TimeoutError:
                    pass
        finally:
            self._running = False
            self._stop_event.clear()
            logger.info("Live flow monitor stopped")

    def start(self) -> asyncio.Task:
        """
        Schedule run() on the current event loop.

        Returns the existing task if the monitor is already running.
        """
        if self._task is not None and not self._task.done():
            return self._task

        self._stop_event.clear()
        self._task = asyncio.create_task(self.run(), name="live_flow_monitor")
        return self._task

    async def stop(self) -> None:
        """
        Prevent further cycles and wait for the loop to exit.
        """
        self._stop_event.set()

        if self._task is not None:
            await self._task
            self._task = None

    def metrics_dict(self) -> dict:
        """Metrics plus run state, for the HTTP layer."""
        return {
            "running": self._running,
            "interval_seconds": self.interval_seconds,
            "history_size": len(self._history),
            **self.metrics.to_dict(),
        }
