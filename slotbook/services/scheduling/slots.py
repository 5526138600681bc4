from typing import Iterable, Union

from slotbook.services.scheduling.clock import Interval
from slotbook.services.scheduling.resolver import WorkingWindow


def generate_candidates(
    window: Union[WorkingWindow, Iterable[Interval]],
    duration_minutes: int,
    granularity_minutes: int,
) -> list[int]:
    """Candidate start minutes stepping by ``granularity_minutes`` from each window start.

    Window starts are not rounded to the grid. A candidate is kept while the
    service duration still ends at or before the window end.
    """
    if duration_minutes <= 0:
        raise ValueError("duration_minutes must be positive")
    if granularity_minutes <= 0:
        raise ValueError("granularity_minutes must be positive")

    intervals = window.intervals if isinstance(window, WorkingWindow) else window

    candidates = []
    for interval in sorted(intervals):
        candidate = interval.start
        while candidate + duration_minutes <= interval.end:
            candidates.append(candidate)
            candidate += granularity_minutes

    return candidates
