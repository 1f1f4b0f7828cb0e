"""
Worker Module
=============

Background recomputation of heatmap data.

Components:
    - RecomputeCommand: Immutable recompute request
    - HeatmapPipeline: Grid building + normalization
    - LatestResultSlot: Single-slot latest-result channel
    - HeatmapWorker: Debounced, cancellable executor-backed worker
"""

from photo_density.worker.recompute import (
    HeatmapPipeline,
    HeatmapResult,
    HeatmapWorker,
    LatestResultSlot,
    RecomputeCommand,
)

__all__ = [
    "HeatmapPipeline",
    "HeatmapResult",
    "HeatmapWorker",
    "LatestResultSlot",
    "RecomputeCommand",
]
