"""
Display ordering for a node's course options.

Runs only after allocation is final and never feeds back into it. Options the
student is taking now come first, completed ones last; ties are shuffled with a
seeded generator so the list looks varied but stays stable for the same seed.
"""
import random
from enum import Enum
from typing import Dict, List, Sequence

from app.models.requirement_types import CourseOption, CourseTakingStatus


class SortStrategy(str, Enum):
    PRIORITY = "priority"
    NONE = "none"


# Between IN_PROGRESS (always first) and COMPLETED (always last)
DISPLAY_STATUS_WEIGHT: Dict[CourseTakingStatus, int] = {
    CourseTakingStatus.IN_PROGRESS: 0,
    CourseTakingStatus.SAVED: 1,
    CourseTakingStatus.PLANNED: 2,
    CourseTakingStatus.NOT_ON_SCHEDULE: 3,
    CourseTakingStatus.COMPLETED: 4,
}


def display_seed(requirement_id: str, node_id: str) -> str:
    return f"{requirement_id}-{node_id}"


def order_options_for_display(
    options: Sequence[CourseOption],
    seed: str,
    strategy: SortStrategy = SortStrategy.PRIORITY,
) -> List[CourseOption]:
    if strategy == SortStrategy.NONE:
        return list(options)

    rng = random.Random(seed)
    tie_breakers = {option.option_id: rng.random() for option in options}

    def sort_key(option: CourseOption):
        status = option.user_state.status
        return (
            status != CourseTakingStatus.IN_PROGRESS,
            status == CourseTakingStatus.COMPLETED,
            not option.user_state.is_available,
            DISPLAY_STATUS_WEIGHT[status],
            tie_breakers[option.option_id],
        )

    return sorted(options, key=sort_key)
