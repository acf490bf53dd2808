"""
Candidate start times on a fixed grid within open windows.
"""

from typing import List, Sequence, Tuple

from .exceptions import InvalidConfiguration


class SlotGenerator:
    """
    Proposes candidate start points, as minutes after midnight.

    Whether a booking of a given length fits is decided by the resolver, which
    knows the requested duration.
    """

    def candidates_for_windows(
        self,
        windows: Sequence[Tuple[int, int]],
        granularity_minutes: int,
    ) -> List[int]:
        """
        Step through each window from its start by ``granularity_minutes``.

        Args:
            windows: Disjoint (start, end) minute-of-day pairs
            granularity_minutes: Grid spacing in minutes

        Returns:
            Ascending candidate points, each lying before its window's end
        """
        if granularity_minutes <= 0:
            raise InvalidConfiguration(
                f"slot_granularity_minutes must be greater than zero, got {granularity_minutes}"
            )

        candidates: List[int] = []
        for start, end in sorted(windows):
            point = start
            while point < end:
                candidates.append(point)
                point += granularity_minutes

        return candidates
