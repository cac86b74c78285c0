"""
Stitch Repositioning Algorithm.

Spaced repetition over a path's stitch queue: after a stitch is attempted it
is pushed ``skip`` places back. Accuracy and speed drive the skip:

    ratio       = correct / total
    speedFactor = clamp(expected_ms / avg_ms, 0.5, 1.5)
    skip        = round(BASE_SKIP * ratio^2 * speedFactor)
    skip        = clamp(skip, MIN_SKIP, queue_length - 1)

Squaring the ratio makes the curve convex: near-perfect passes are pushed far
back, partial passes come round again almost immediately.
"""
from __future__ import annotations

import math

from loguru import logger

from config import EngineTuning
from zenjin.core.errors import InvalidInput, InvariantViolation, NoProgressData
from zenjin.core.interfaces import Clock, utc_now
from zenjin.core.models import RepositionResult, StitchPerformance, StitchProgress
from zenjin.sequencing.stitch_queue import UserQueues


class RepositionEngine:
    """Computes skip numbers and reorders stitch queues."""

    def __init__(self, tuning: EngineTuning | None = None, clock: Clock = utc_now):
        self.tuning = tuning or EngineTuning()
        self._clock = clock

    def speed_factor(self, average_response_time_ms: float) -> float:
        factor = self.tuning.expected_response_ms / average_response_time_ms
        return min(self.tuning.speed_factor_max, max(self.tuning.speed_factor_min, factor))

    def calculate_skip(self, performance: StitchPerformance, queue_length: int) -> int:
        """
        Forward displacement for a stitch after a pass.

        Args:
            performance: Aggregated pass performance
            queue_length: Number of stitches in the path queue

        Returns:
            Skip in [min_skip, queue_length - 1]; 0 for a single-stitch queue

        Raises:
            InvalidPerformance: malformed performance
            InvalidInput: non-positive queue length
        """
        performance.validate()
        if queue_length < 1:
            raise InvalidInput(f"queue_length must be positive, got {queue_length}")

        max_skip = queue_length - 1
        if max_skip < self.tuning.min_skip:
            return 0

        ratio = performance.accuracy
        raw = self.tuning.base_skip * ratio**2 * self.speed_factor(performance.average_response_time_ms)
        # Round half up so equal inputs never round differently.
        skip = math.floor(raw + 0.5)
        return min(max_skip, max(self.tuning.min_skip, skip))

    def reposition(
        self,
        queues: UserQueues,
        path_id: str,
        stitch_id: str,
        performance: StitchPerformance,
    ) -> RepositionResult:
        """
        Move a just-attempted stitch back in its path queue.

        Raises:
            InvalidPerformance: malformed performance
            PathNotFound: the user has no queue for ``path_id``
            StitchNotFound: the stitch is not in that queue
            InvariantViolation: the shift left the queue inconsistent
        """
        performance.validate()
        queue = queues.queue(path_id)
        previous_position = queue.position_of(stitch_id)

        skip = self.calculate_skip(performance, len(queue))
        new_position = min(previous_position + skip, len(queue) - 1)

        queue.move(previous_position, new_position)
        if queue.position_of(stitch_id) != new_position:
            raise InvariantViolation(
                f"Stitch {stitch_id!r} landed at {queue.position_of(stitch_id)}, expected {new_position}"
            )

        result = RepositionResult(
            stitch_id=stitch_id,
            path_id=path_id,
            previous_position=previous_position,
            new_position=new_position,
            skip_number=skip,
            timestamp=self._clock(),
        )
        queues.record(result, self.tuning.history_limit)

        logger.debug(
            f"Repositioned {stitch_id} in {path_id}: {previous_position} -> {new_position} "
            f"(skip={skip}, accuracy={performance.accuracy:.2f})"
        )
        return result

    def get_history(
        self,
        queues: UserQueues,
        path_id: str,
        stitch_id: str,
        limit: int | None = None,
    ) -> list[RepositionResult]:
        """Repositioning history for a stitch, newest first."""
        queue = queues.queue(path_id)
        queue.position_of(stitch_id)
        entries = queues.history(path_id, stitch_id)
        return entries[:limit] if limit is not None else entries

    # ------------------------------------------------------------------
    # Stitch progress
    # ------------------------------------------------------------------

    def get_progress(self, queues: UserQueues, path_id: str, stitch_id: str) -> StitchProgress:
        """
        Cumulative progress of a user through one stitch.

        Raises:
            PathNotFound, StitchNotFound
            NoProgressData: the stitch was never completed
        """
        queues.queue(path_id).position_of(stitch_id)
        progress = queues.progress(path_id, stitch_id)
        if progress is None:
            raise NoProgressData(queues.user_id, stitch_id)
        return progress

    def update_progress(
        self,
        queues: UserQueues,
        path_id: str,
        stitch_id: str,
        performance: StitchPerformance,
    ) -> StitchProgress:
        """
        Fold one completed pass into the stitch's running totals.

        mastery_level is the cumulative correct / total over every pass.
        """
        performance.validate()
        queues.queue(path_id).position_of(stitch_id)
        progress = queues.progress(path_id, stitch_id) or StitchProgress(
            user_id=queues.user_id, path_id=path_id, stitch_id=stitch_id
        )
        progress.completion_count += 1
        progress.correct_count += performance.correct_count
        progress.total_count += performance.total_count
        progress.mastery_level = progress.correct_count / progress.total_count
        progress.last_attempt_at = performance.completed_at or self._clock()
        queues.put_progress(progress)

        logger.debug(
            f"Progress for {queues.user_id}/{stitch_id}: pass #{progress.completion_count}, "
            f"mastery={progress.mastery_level:.2f}"
        )
        return StitchProgress(**vars(progress))
