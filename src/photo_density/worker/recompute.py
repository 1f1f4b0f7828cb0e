"""
Heatmap Recompute Worker
========================

Debounced, cancellable background recomputation of heatmap data.

Recomputation is driven by explicit commands instead of implicit change
notification. Each RecomputeCommand carries a complete snapshot of its
inputs (point snapshot version, points, region, spread). The worker:

    - Debounces: a submission waits `debounce_ms` before computing, and
      any newer submission during that window supersedes it
    - Cancels: a new submission cancels the pending/in-flight task and
      sets its CancellationToken so the builder stops early
    - Publishes only current results into a single-slot channel; a
      superseded computation is discarded even when its executor
      thread finishes after the cancellation

Grid building is CPU-bound and runs in a single-thread executor so the
event loop stays responsive and at most one computation occupies a CPU.

Example:
    worker = HeatmapWorker(HeatmapPipeline(GridBuilder(), Normalizer()))
    worker.submit(RecomputeCommand(1, points, region, spread=50))
    await worker.wait_idle()
    heatmap = worker.slot.latest.heatmap
"""

import asyncio
import logging
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from photo_density.grid.builder import GridBuilder
from photo_density.grid.cancellation import CancellationToken, ComputationCancelled
from photo_density.grid.normalizer import Normalizer
from photo_density.models.grid import HeatmapData
from photo_density.models.location import PhotoLocation, Region


logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class RecomputeCommand:
    """
    Immutable request to recompute heatmap data.

    Attributes:
        snapshot_version: Version of the point snapshot
        points: The point snapshot itself
        region: Viewport region (None = degenerate viewport)
        spread: Spread control value
    """

    snapshot_version: int
    points: Tuple[PhotoLocation, ...]
    region: Optional[Region]
    spread: float


@dataclass(frozen=True, eq=False)
class HeatmapResult:
    """
    Published outcome of a completed recomputation.

    Attributes:
        generation: Worker submission counter value of the command
        command: The command that produced this result
        heatmap: Grid + normalization scale
        elapsed_ms: Wall time spent computing
    """

    generation: int
    command: RecomputeCommand
    heatmap: HeatmapData
    elapsed_ms: float


class HeatmapPipeline:
    """Grid building followed by normalization."""

    def __init__(self, builder: GridBuilder, normalizer: Normalizer) -> None:
        self.builder = builder
        self.normalizer = normalizer

    def compute(
        self,
        command: RecomputeCommand,
        cancel_token: Optional[CancellationToken] = None,
    ) -> HeatmapData:
        """
        Build and normalize a grid for a command.

        Raises:
            ComputationCancelled: If cancel_token was cancelled
        """
        grid = self.builder.build(
            command.points,
            command.region,
            command.spread,
            cancel_token=cancel_token,
        )
        if grid.is_empty:
            return HeatmapData.empty()

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        return HeatmapData(grid=grid, scale=self.normalizer.scale_for(grid))


class LatestResultSlot:
    """
    Single-slot channel holding the most recent published result.

    Publishing never blocks. Readers either poll `latest` or wait for a
    result newer than a generation they already saw.
    """

    def __init__(self) -> None:
        self._latest: Optional[HeatmapResult] = None
        self._changed = asyncio.Event()

    @property
    def latest(self) -> Optional[HeatmapResult]:
        return self._latest

    def publish(self, result: HeatmapResult) -> bool:
        """
        Store a result, replacing the previous one.

        Returns:
            False if the result is older than the stored one (ignored)
        """
        if self._latest is not None and result.generation <= self._latest.generation:
            return False

        self._latest = result
        changed, self._changed = self._changed, asyncio.Event()
        changed.set()
        return True

    async def wait_for_newer(
        self,
        generation: int,
        timeout: Optional[float] = None,
    ) -> Optional[HeatmapResult]:
        """
        Wait until a result with a generation above `generation` exists.

        Returns:
            The result, or None on timeout
        """
        async def _wait() -> HeatmapResult:
            while self._latest is None or self._latest.generation <= generation:
                await self._changed.wait()
            return self._latest

        try:
            if timeout is not None:
                return await asyncio.wait_for(_wait(), timeout=timeout)
            return await _wait()
        except asyncio.TimeoutError:
            return None


class HeatmapWorker:
    """
    Debounced, cancellable recompute worker.

    Must be used from a running event loop.

    Attributes:
        pipeline: Computation to run for each command
        debounce_ms: Quiet period before a submission starts computing
        slot: Channel receiving current results
    """

    def __init__(
        self,
        pipeline: HeatmapPipeline,
        debounce_ms: float = 200.0,
        slot: Optional[LatestResultSlot] = None,
        on_publish: Optional[Callable[[HeatmapResult], None]] = None,
    ) -> None:
        """
        Initialize recompute worker.

        Args:
            pipeline: Grid + normalization pipeline
            debounce_ms: Debounce window in milliseconds (0 = none)
            slot: Result channel (a new one is created if omitted)
            on_publish: Optional callback invoked for each published result
        """
        if debounce_ms < 0:
            raise ValueError("debounce_ms must be non-negative")

        self.pipeline = pipeline
        self.debounce_ms = debounce_ms
        self.slot = slot if slot is not None else LatestResultSlot()
        self._on_publish = on_publish

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="heatmap")
        self._generation: int = 0
        self._task: Optional[asyncio.Task] = None
        self._token: Optional[CancellationToken] = None

        # Metrics
        self._submitted: int = 0
        self._published: int = 0
        self._cancelled: int = 0
        self._discarded: int = 0
        self._errors: int = 0

        logger.info(f"HeatmapWorker initialized: debounce={debounce_ms}ms")

    @property
    def generation(self) -> int:
        """Generation of the most recent submission."""
        return self._generation

    @property
    def busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def submit(self, command: RecomputeCommand) -> int:
        """
        Submit a recompute command, superseding any previous one.

        Returns:
            Generation number assigned to the command
        """
        self._cancel_current()

        self._generation += 1
        generation = self._generation
        token = CancellationToken()

        self._token = token
        self._task = asyncio.get_running_loop().create_task(
            self._run(generation, command, token),
            name=f"heatmap_recompute_{generation}",
        )
        self._submitted += 1

        logger.debug(
            f"Recompute {generation} submitted: snapshot=v{command.snapshot_version}, "
            f"points={len(command.points)}, spread={command.spread}"
        )
        return generation

    def _cancel_current(self) -> None:
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
            self._cancelled += 1

    async def _run(
        self,
        generation: int,
        command: RecomputeCommand,
        token: CancellationToken,
    ) -> None:
        if self.debounce_ms > 0:
            await asyncio.sleep(self.debounce_ms / 1000.0)

        start_time = time.time()
        loop = asyncio.get_running_loop()
        try:
            heatmap = await loop.run_in_executor(
                self._executor,
                self.pipeline.compute,
                command,
                token,
            )
        except ComputationCancelled:
            logger.debug(f"Recompute {generation} stopped by cancellation token")
            return
        except asyncio.CancelledError:
            logger.debug(f"Recompute {generation} cancelled")
            raise
        except Exception as e:
            self._errors += 1
            logger.error(f"Recompute {generation} failed: {e}")
            return

        if token.cancelled or generation != self._generation:
            self._discarded += 1
            logger.debug(f"Recompute {generation} superseded, result discarded")
            return

        elapsed_ms = (time.time() - start_time) * 1000
        result = HeatmapResult(
            generation=generation,
            command=command,
            heatmap=heatmap,
            elapsed_ms=elapsed_ms,
        )

        if self.slot.publish(result):
            self._published += 1
            logger.info(
                f"Heatmap {generation} published in {elapsed_ms:.1f}ms: "
                f"has_data={heatmap.has_data}, scale={heatmap.scale:.4f}"
            )
            if self._on_publish is not None:
                try:
                    self._on_publish(result)
                except Exception as e:
                    self._errors += 1
                    logger.error(f"Publish callback for heatmap {generation} failed: {e}")

    async def wait_idle(self) -> None:
        """Wait until no submission is pending or computing."""
        while self._task is not None and not self._task.done():
            task = self._task
            await asyncio.gather(task, return_exceptions=True)

    async def stop(self) -> None:
        """Cancel outstanding work and release the executor."""
        self._cancel_current()
        await self.wait_idle()
        self._executor.shutdown(wait=False)
        logger.info("HeatmapWorker stopped")

    def metrics(self) -> dict:
        """Worker metrics for observability."""
        return {
            "generation": self._generation,
            "busy": self.busy,
            "submitted": self._submitted,
            "published": self._published,
            "cancelled": self._cancelled,
            "discarded": self._discarded,
            "errors": self._errors,
        }
