"""
Course Allocation - Greedily assigns a student's courses to a CourseSet node's quota.

Candidates are walked in priority order (completed first, then in progress, planned
and saved; earlier semesters first within a status). A course is counted here while
the quota has room and no mutually exclusive requirement has already claimed it.
This is a single deterministic pass per requirement, not a global optimisation:
requirements processed earlier get first pick.

Claims are tracked in a ClaimLedger that is passed in and returned, never mutated,
so repeated runs over the same inputs produce the same result.
"""
import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from app.models.requirement_types import (
    Allocation,
    CourseKey,
    CourseOption,
    CourseSetNodeState,
    CourseTakingStatus,
    NotCountedReason,
    NotCountedReasonType,
    UserCourseRecord,
)
from app.services.course_state import find_matching_record
from app.services.semester import UNSPECIFIED_SEMESTER, semester_sort_key

logger = logging.getLogger(__name__)

# Lower value = allocated first
STATUS_PRIORITY: Dict[CourseTakingStatus, int] = {
    CourseTakingStatus.COMPLETED: 0,
    CourseTakingStatus.IN_PROGRESS: 1,
    CourseTakingStatus.PLANNED: 2,
    CourseTakingStatus.SAVED: 3,
    CourseTakingStatus.NOT_ON_SCHEDULE: 4,
}


@dataclass(frozen=True)
class ClaimLedger:
    """Which requirements have counted each course record, in claim order."""
    claims: Dict[CourseKey, Tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[UserCourseRecord]) -> "ClaimLedger":
        """Seed the ledger from the claims already stored on the student's records."""
        claims: Dict[CourseKey, Tuple[str, ...]] = {}
        for record in records:
            existing = list(claims.get(record.key, ()))
            for requirement_id in record.used_in_requirements:
                if requirement_id not in existing:
                    existing.append(requirement_id)
            claims[record.key] = tuple(existing)
        return cls(claims=claims)

    def claimed_by(self, key: CourseKey) -> Tuple[str, ...]:
        return self.claims.get(key, ())

    def claim(self, key: CourseKey, requirement_id: str) -> "ClaimLedger":
        """Return a ledger with the claim added; claiming twice is a no-op."""
        current = self.claimed_by(key)
        if requirement_id in current:
            return self
        claims = dict(self.claims)
        claims[key] = current + (requirement_id,)
        return ClaimLedger(claims=claims)

    def conflicting_claim(
        self,
        key: CourseKey,
        requirement_id: str,
        conflicts_with: Sequence[str],
    ) -> Optional[str]:
        """First requirement in the conflict set that already claimed this course, if any."""
        for claimer in self.claimed_by(key):
            if claimer == requirement_id:
                continue
            if claimer in conflicts_with:
                return claimer
        return None


def _is_allocation_candidate(option: CourseOption) -> bool:
    return option.user_state.is_scheduled or option.user_state.status == CourseTakingStatus.SAVED


def _priority_key(option: CourseOption) -> Tuple[int, Tuple[int, int]]:
    state = option.user_state
    if state.is_scheduled:
        semester_key = semester_sort_key(state.semester or UNSPECIFIED_SEMESTER)
    else:
        semester_key = (0, 0)
    return (STATUS_PRIORITY[state.status], semester_key)


def sort_by_allocation_priority(options: Sequence[CourseOption]) -> List[CourseOption]:
    """Stable sort, so equal-priority options keep catalog order."""
    return sorted(options, key=_priority_key)


def allocate_course_set(
    options: Sequence[CourseOption],
    pick: int,
    requirement_id: str,
    conflicts_with: Sequence[str],
    records: Sequence[UserCourseRecord],
    ledger: ClaimLedger,
) -> Tuple[CourseSetNodeState, List[CourseOption], ClaimLedger]:
    """
    Allocate candidate options to one CourseSet node.

    Args:
        options: Options with user state computed, in catalog order
        pick: Number of courses the node needs
        requirement_id: Requirement owning the node
        conflicts_with: Requirements that may not share a course with this one
        records: The student's course records
        ledger: Claims made so far in this computation

    Returns:
        (node_state, options with allocation set in their original order, updated ledger)
    """
    state = CourseSetNodeState()
    allocations: Dict[int, Allocation] = {}
    used_count = 0

    candidates = [(index, option) for index, option in enumerate(options) if _is_allocation_candidate(option)]
    for index, option in sorted(candidates, key=lambda pair: _priority_key(pair[1])):
        record = find_matching_record(option.course, records)
        if record is None:
            # Status was derived from a record, so this only happens with inconsistent inputs
            logger.warning(f"No record found for scheduled option {option.option_id}, skipping")
            continue

        status = option.user_state.status
        conflicting_requirement = ledger.conflicting_claim(record.key, requirement_id, conflicts_with)
        has_room = used_count < pick

        if has_room and conflicting_requirement is None:
            ledger = ledger.claim(record.key, requirement_id)
            used_count += 1
            if status == CourseTakingStatus.COMPLETED:
                state.fulfilled_count += 1
            state.bucket_for(status, used=True).append(option.option_id)
            allocations[index] = Allocation(is_counted_here=True)
            continue

        reasons: List[NotCountedReason] = []
        if not has_room:
            reasons.append(NotCountedReason(NotCountedReasonType.OVER_LIMIT))
        if conflicting_requirement is not None:
            reasons.append(NotCountedReason(
                NotCountedReasonType.ALREADY_COUNTED_ELSEWHERE,
                requirement_id=conflicting_requirement,
            ))
        state.bucket_for(status, used=False).append(option.option_id)
        allocations[index] = Allocation(is_counted_here=False, reasons=tuple(reasons))

    not_on_schedule = Allocation(
        is_counted_here=False,
        reasons=(NotCountedReason(NotCountedReasonType.NOT_ON_SCHEDULE),),
    )
    allocated_options: List[CourseOption] = []
    for index, option in enumerate(options):
        allocation = allocations.get(index)
        if allocation is None:
            if option.user_state.status == CourseTakingStatus.NOT_ON_SCHEDULE:
                state.not_on_schedule_option_ids.append(option.option_id)
            allocation = not_on_schedule
        allocated_options.append(replace(option, allocation=allocation))

    state.is_fulfilled = state.fulfilled_count >= pick
    logger.debug(
        f"Requirement {requirement_id}: counted {used_count} option(s), "
        f"{state.fulfilled_count}/{pick} completed"
    )
    return state, allocated_options, ledger
