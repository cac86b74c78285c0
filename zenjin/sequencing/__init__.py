"""
Sequencing: per-path stitch queues and spaced-repetition repositioning.
"""
from zenjin.sequencing.reposition_engine import RepositionEngine
from zenjin.sequencing.stitch_queue import StitchQueue, UserQueues

__all__ = ["RepositionEngine", "StitchQueue", "UserQueues"]
