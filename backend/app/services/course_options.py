"""
Course Option Builder - Expands a CourseSet node's course ids into candidate options.
Topic courses become one option per (allowed) enrollment group so that two topics of
the same course number can count separately.
"""
import logging
from dataclasses import replace
from typing import Dict, List

from app.models.requirement_types import Course, CourseOption, CourseSetNode, CourseUserState
from app.services.fulfillment_errors import IntegrityError

logger = logging.getLogger(__name__)


def get_course_option_id(course: Course) -> str:
    """course id, or course id + group identifier for per-topic snapshots."""
    if course.group_identifier:
        return f"{course.id}_{course.group_identifier}"
    return course.id


def split_course_by_topics(course: Course, node: CourseSetNode) -> List[Course]:
    """
    Build one single-group snapshot per enrollment group of a topic course.
    If the node carries a note for this course naming group identifiers, only
    those groups are kept. Group identifiers must be
    non-empty and unique within the course.
    """
    seen = set()
    for group in course.enrollment_groups:
        if not group.identifier or group.identifier in seen:
            raise IntegrityError(
                f"Topic course {course.id} has a missing or repeated group identifier {group.identifier!r}",
                entity="course",
                entity_id=course.id,
                node_id=node.node_id,
            )
        seen.add(group.identifier)

    groups = course.enrollment_groups
    note = node.note_for(course.id)
    if note is not None and note.group_identifiers is not None:
        allowed = set(note.group_identifiers)
        groups = [g for g in groups if g.identifier in allowed]

    return [
        replace(
            course,
            enrollment_groups=[group],
            has_topic=group.has_topic,
            topic=group.topic,
            group_identifier=group.identifier,
        )
        for group in groups
    ]


def expand_node_courses(node: CourseSetNode, courses_by_id: Dict[str, Course]) -> List[Course]:
    """Resolve the node's course ids to course snapshots, in node order."""
    expanded: List[Course] = []
    seen = set()
    for course_id in node.course_ids:
        if course_id in seen:
            continue
        seen.add(course_id)

        course = courses_by_id.get(course_id)
        if course is None:
            logger.debug(f"Course {course_id} in node {node.node_id} not found in catalog, skipping")
            continue

        if course.is_topic_based:
            expanded.extend(split_course_by_topics(course, node))
        else:
            expanded.append(course)
    return expanded


def build_course_options(
    node: CourseSetNode,
    courses_by_id: Dict[str, Course],
    user_state_for,
) -> List[CourseOption]:
    """
    Build the CourseOptions of a CourseSet node.

    Args:
        node: The CourseSet node
        courses_by_id: Catalog courses already fetched for the requirement
        user_state_for: Callable(Course) -> CourseUserState

    Returns:
        Options in node order; allocation is left unset for the arbiter.
    """
    options: List[CourseOption] = []
    for course in expand_node_courses(node, courses_by_id):
        user_state: CourseUserState = user_state_for(course)
        options.append(CourseOption(
            option_id=get_course_option_id(course),
            course=course,
            user_state=user_state,
        ))
    return options
