"""
Requirement Builder - Resolves one requirement's node tree for a student.

CourseSet nodes are expanded into options, classified and allocated in declaration
order, GROUP nodes are then derived from their children, and the per-node numbers
are rolled up into a RequirementSummary.
"""
import logging
from typing import Callable, Dict, List, Sequence, Tuple

from app.models.requirement_types import (
    Course,
    CourseSetNode,
    CourseSetNodeState,
    GroupNode,
    RequirementDefinition,
    RequirementResult,
    RequirementSummary,
    ResolvedCourseSetNode,
    ResolvedGroupNode,
    ResolvedNode,
    UserCourseRecord,
)
from app.services.course_allocation import ClaimLedger, allocate_course_set
from app.services.course_options import build_course_options
from app.services.course_state import build_user_state
from app.services.node_tree import propagate_group_states, validate_requirement_tree
from app.services.option_display import SortStrategy, display_seed, order_options_for_display

logger = logging.getLogger(__name__)

PROGRESS_VERSION = "1.0.0"

FetchCourses = Callable[[Sequence[str]], List[Course]]


def collect_course_ids(definition: RequirementDefinition) -> List[str]:
    """All course ids referenced by the requirement's CourseSet nodes, first occurrence order."""
    course_ids: List[str] = []
    seen = set()
    for node in definition.nodes.values():
        match node:
            case CourseSetNode(course_ids=node_course_ids):
                for course_id in node_course_ids:
                    if course_id not in seen:
                        seen.add(course_id)
                        course_ids.append(course_id)
            case GroupNode():
                pass
    return course_ids


def summarize_requirement(
    definition: RequirementDefinition,
    nodes: Dict[str, ResolvedNode],
) -> RequirementSummary:
    summary = RequirementSummary()
    for resolved in nodes.values():
        match resolved:
            case ResolvedCourseSetNode(node=node, state=state):
                summary.completed_count += len(state.completed_used_option_ids)
                summary.in_progress_count += len(state.in_progress_used_option_ids)
                summary.planned_count += len(state.planned_used_option_ids)
                summary.saved_count += len(state.saved_used_option_ids)
                summary.fulfilled_units += state.fulfilled_count
                summary.required_units += node.pick
            case ResolvedGroupNode():
                pass
    summary.is_fulfilled = nodes[definition.root_node_id].state.is_fulfilled
    return summary


def build_requirement(
    definition: RequirementDefinition,
    records: Sequence[UserCourseRecord],
    selected_semester: str,
    ledger: ClaimLedger,
    fetch_courses: FetchCourses,
    sort_strategy: SortStrategy = SortStrategy.PRIORITY,
) -> Tuple[RequirementResult, ClaimLedger]:
    """
    Resolve every node of one requirement.

    Args:
        definition: Requirement tree
        records: The student's course records
        selected_semester: Semester the student is looking at, e.g. "FA24"
        ledger: Claims made by requirements processed earlier
        fetch_courses: Catalog lookup, called once for the whole requirement
        sort_strategy: Display ordering for options

    Returns:
        (RequirementResult, ledger including this requirement's claims)

    Raises:
        IntegrityError: If the tree references a missing node or contains a cycle
    """
    validate_requirement_tree(definition)

    course_ids = collect_course_ids(definition)
    courses_by_id: Dict[str, Course] = {}
    if course_ids:
        courses_by_id = {course.id: course for course in fetch_courses(course_ids)}
    logger.debug(
        f"Requirement {definition.id}: {len(courses_by_id)}/{len(course_ids)} courses found in catalog"
    )

    records = list(records)

    def user_state_for(course: Course):
        return build_user_state(course, records, selected_semester)

    course_set_states: Dict[str, CourseSetNodeState] = {}
    resolved: Dict[str, ResolvedNode] = {}

    for node_id, node in definition.nodes.items():
        match node:
            case CourseSetNode():
                options = build_course_options(node, courses_by_id, user_state_for)
                state, options, ledger = allocate_course_set(
                    options,
                    pick=node.pick,
                    requirement_id=definition.id,
                    conflicts_with=definition.conflicts_with,
                    records=records,
                    ledger=ledger,
                )
                course_set_states[node_id] = state
                options = order_options_for_display(
                    options, display_seed(definition.id, node_id), sort_strategy
                )
                resolved[node_id] = ResolvedCourseSetNode(node=node, state=state, options=options)
            case GroupNode():
                # Filled in once every CourseSet is resolved
                pass

    group_states = propagate_group_states(definition, course_set_states)
    nodes: Dict[str, ResolvedNode] = {}
    for node_id, node in definition.nodes.items():
        match node:
            case GroupNode():
                nodes[node_id] = ResolvedGroupNode(node=node, state=group_states[node_id])
            case CourseSetNode():
                nodes[node_id] = resolved[node_id]

    summary = summarize_requirement(definition, nodes)
    logger.info(
        f"Requirement {definition.id} resolved: fulfilled={summary.is_fulfilled} "
        f"({summary.fulfilled_units}/{summary.required_units} units)"
    )

    result = RequirementResult(
        semester=selected_semester,
        requirement=definition,
        nodes=nodes,
        summary=summary,
        progress_version=PROGRESS_VERSION,
    )
    return result, ledger
