"""
Course State Classifier - Works out where a candidate course sits on the student's
schedule (completed, in progress, planned, saved, or absent) and whether it is
offered in the selected semester.
"""
from typing import List, Optional, Tuple

from app.models.requirement_types import (
    Course,
    CourseTakingStatus,
    CourseUserState,
    UserCourseRecord,
)
from app.services.semester import UNSPECIFIED_SEMESTER, is_prior_semester


def find_matching_record(
    course: Course,
    records: List[UserCourseRecord],
) -> Optional[UserCourseRecord]:
    """
    Find the student's record for a course option.

    The course id must match. If the option is a per-topic snapshot, the record's
    group identifier must match it exactly; otherwise any group on the record is accepted.
    """
    for record in records:
        if record.course_id != course.id:
            continue
        if course.group_identifier:
            if record.group_identifier == course.group_identifier:
                return record
            continue
        return record
    return None


def classify_status(
    record: Optional[UserCourseRecord],
    selected_semester: str,
) -> Tuple[CourseTakingStatus, bool]:
    """Return (status, is_scheduled) for a matched record (or None)."""
    if record is None:
        return CourseTakingStatus.NOT_ON_SCHEDULE, False
    if not record.is_scheduled:
        return CourseTakingStatus.SAVED, False
    if record.semester == UNSPECIFIED_SEMESTER:
        return CourseTakingStatus.COMPLETED, True
    if record.semester == selected_semester:
        return CourseTakingStatus.IN_PROGRESS, True
    if is_prior_semester(record.semester, selected_semester):
        return CourseTakingStatus.COMPLETED, True
    return CourseTakingStatus.PLANNED, True


def get_course_status(
    course: Course,
    records: List[UserCourseRecord],
    selected_semester: str,
) -> Tuple[CourseTakingStatus, bool]:
    return classify_status(find_matching_record(course, records), selected_semester)


def is_available_in_semester(course: Course, semester: str) -> bool:
    return any(semester in group.offered_semesters for group in course.enrollment_groups)


def is_available_in_location(course: Course) -> bool:
    # Any group taught away from the home campus makes the course unavailable
    return not any(group.location_conflicts for group in course.enrollment_groups)


def build_user_state(
    course: Course,
    records: List[UserCourseRecord],
    selected_semester: str,
) -> CourseUserState:
    record = find_matching_record(course, records)
    status, is_scheduled = classify_status(record, selected_semester)
    is_semester_available = is_available_in_semester(course, selected_semester)
    is_location_available = is_available_in_location(course)

    state = CourseUserState(
        status=status,
        is_scheduled=is_scheduled,
        is_available=is_semester_available and is_location_available,
        is_semester_available=is_semester_available,
        is_location_available=is_location_available,
    )
    if is_scheduled and record is not None:
        state.credit = record.credit or 0
        state.semester = record.semester
        state.sections = list(record.sections)
    return state
