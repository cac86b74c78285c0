"""
Mastery: per-fact boundary level tracking.

- MasteryStore: per-user map of UserFactMastery records
- BoundaryTracker: hysteresis-based promotion/demotion state machine
"""
from zenjin.mastery.boundary_tracker import BoundaryTracker
from zenjin.mastery.mastery_store import MasteryStore

__all__ = ["BoundaryTracker", "MasteryStore"]
