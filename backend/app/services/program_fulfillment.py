"""
Program Fulfillment - Entry point of the requirement fulfillment engine.

Picks the requirement set that applies to the student, resolves each requirement
in an explicit processing order (earlier requirements get first claim on shared
courses), and rolls the results up into a program summary. Every call is a pure
computation over the fetched snapshots; nothing is written back.
"""
import logging
from typing import List, Optional, Sequence

from app.models.requirement_types import (
    ProgramDefinition,
    ProgramFulfillmentResult,
    ProgramSummary,
    ProgramType,
    RequirementDefinition,
    RequirementResult,
    UserContext,
    UserProfile,
)
from app.services.course_allocation import ClaimLedger
from app.services.fulfillment_errors import NotFoundError, ValidationError
from app.services.option_display import SortStrategy
from app.services.requirement_builder import build_requirement
from app.services.semester import validate_semester

logger = logging.getLogger(__name__)


def is_user_program(program: ProgramDefinition, user: UserProfile) -> bool:
    """True if the student is enrolled in this college, major or minor."""
    if program.type == ProgramType.COLLEGE:
        return user.college_id == program.id
    if program.type == ProgramType.MAJOR:
        return any(major.program_id == program.id for major in user.majors)
    if program.type == ProgramType.MINOR:
        return any(minor.program_id == program.id for minor in user.minors)
    return False


def get_user_concentrations(program: ProgramDefinition, user: UserProfile) -> List[str]:
    memberships = user.majors if program.type == ProgramType.MAJOR else (
        user.minors if program.type == ProgramType.MINOR else []
    )
    for membership in memberships:
        if membership.program_id == program.id:
            return list(membership.concentration_names)
    return []


def get_user_context(program: ProgramDefinition, user: UserProfile) -> UserContext:
    """Build the appliesTo block describing the student in this program's terms."""
    context = UserContext(year=user.year, college_id=user.college_id)
    if program.type == ProgramType.MAJOR:
        major = next((m for m in user.majors if m.program_id == program.id), None)
        if major is not None:
            context.major_id = major.program_id
            context.concentration_names = list(major.concentration_names)
    elif program.type == ProgramType.MINOR:
        minor = next((m for m in user.minors if m.program_id == program.id), None)
        if minor is not None:
            context.concentration_names = list(minor.concentration_names)
    elif program.type == ProgramType.COLLEGE and user.majors:
        context.major_id = user.majors[0].program_id
    return context


def select_requirement_ids(program: ProgramDefinition, user: UserProfile) -> List[str]:
    """
    Choose the requirement set that applies to the student.

    A dimension (year, college, major) is checked only if the program depends on it
    and the set names a value for it. Concentration is checked only for the
    student's own program. The first fully matching set wins; if none match the
    first declared set is used.
    """
    if not program.requirement_sets:
        return []

    own_program = is_user_program(program, user)

    for requirement_set in program.requirement_sets:
        if program.year_dependent and requirement_set.entry_year is not None:
            if requirement_set.entry_year != user.year:
                continue

        if program.college_dependent and requirement_set.college_id is not None:
            if requirement_set.college_id != user.college_id:
                continue

        if program.major_dependent and requirement_set.major_id is not None:
            if not any(major.program_id == requirement_set.major_id for major in user.majors):
                continue

        if (
            program.concentration_dependent
            and own_program
            and requirement_set.concentration_names is not None
        ):
            user_concentrations = get_user_concentrations(program, user)
            if not any(name in user_concentrations for name in requirement_set.concentration_names):
                continue

        return list(requirement_set.requirement_ids)

    logger.info(f"No requirement set of program {program.id} matched user {user.id}, using the first set")
    return list(program.requirement_sets[0].requirement_ids)


def resolve_processing_order(
    selected_ids: Sequence[str],
    requirement_order: Optional[Sequence[str]] = None,
) -> List[str]:
    """Declaration order by default; a caller-supplied order must be a permutation of it."""
    if requirement_order is None:
        return list(dict.fromkeys(selected_ids))
    order = list(requirement_order)
    if len(order) != len(set(order)) or set(order) != set(selected_ids):
        raise ValidationError(
            "requirement_order must list each selected requirement exactly once: "
            f"expected {sorted(set(selected_ids))}, got {order}"
        )
    return order


def _order_requirements(
    definitions: Sequence[RequirementDefinition],
    order: Sequence[str],
) -> List[RequirementDefinition]:
    by_id = {definition.id: definition for definition in definitions}
    missing = [requirement_id for requirement_id in order if requirement_id not in by_id]
    if missing:
        raise NotFoundError(
            f"Requirements not found: {', '.join(missing)}",
            entity="requirement",
            entity_id=missing[0],
        )
    return [by_id[requirement_id] for requirement_id in order]


def summarize_program(
    program: ProgramDefinition,
    user: UserProfile,
    requirements: Sequence[RequirementResult],
) -> ProgramSummary:
    return ProgramSummary(
        is_user_program=is_user_program(program, user),
        is_fulfilled=all(r.summary.is_fulfilled for r in requirements),
        completed_count=sum(r.summary.completed_count for r in requirements),
        required_count=sum(r.summary.required_units for r in requirements),
    )


def evaluate_program(
    program: ProgramDefinition,
    user: UserProfile,
    requirements: Sequence[RequirementDefinition],
    selected_semester: str,
    fetch_courses,
    sort_strategy: SortStrategy = SortStrategy.PRIORITY,
) -> ProgramFulfillmentResult:
    """
    Resolve already-fetched, already-ordered requirements for one student.

    The claim ledger starts from the claims stored on the student's records and is
    threaded through the requirements in order; the records themselves are not modified.
    """
    ledger = ClaimLedger.from_records(user.courses)
    results: List[RequirementResult] = []
    for definition in requirements:
        result, ledger = build_requirement(
            definition,
            user.courses,
            selected_semester,
            ledger,
            fetch_courses,
            sort_strategy,
        )
        results.append(result)

    return ProgramFulfillmentResult(
        semester=selected_semester,
        program=program,
        summary=summarize_program(program, user, results),
        applies_to=get_user_context(program, user),
        processing_order=[definition.id for definition in requirements],
        requirements=results,
    )


def compute_program_fulfillment(
    program_id: str,
    user_id: str,
    selected_semester: str,
    source,
    requirement_order: Optional[Sequence[str]] = None,
    sort_strategy: SortStrategy = SortStrategy.PRIORITY,
) -> ProgramFulfillmentResult:
    """
    Compute a student's progress through a program.

    Args:
        program_id: Program to evaluate
        user_id: Student to evaluate
        selected_semester: Semester token such as "FA24"
        source: Data source with fetch_courses, fetch_user, fetch_program, fetch_requirements
        requirement_order: Optional explicit processing order of the selected requirements
        sort_strategy: Display ordering for options

    Returns:
        ProgramFulfillmentResult

    Raises:
        ValidationError: Malformed semester or requirement_order
        NotFoundError: Program, user or a requirement does not exist
        IntegrityError: A requirement tree is corrupt
    """
    validate_semester(selected_semester)

    program = source.fetch_program(program_id)
    user = source.fetch_user(user_id)

    selected_ids = select_requirement_ids(program, user)
    order = resolve_processing_order(selected_ids, requirement_order)
    definitions = source.fetch_requirements(order) if order else []
    requirements = _order_requirements(definitions, order)

    logger.info(
        f"Computing fulfillment of program {program.id} for user {user.id} "
        f"in {selected_semester}: {len(requirements)} requirement(s)"
    )
    result = evaluate_program(
        program,
        user,
        requirements,
        selected_semester,
        source.fetch_courses,
        sort_strategy,
    )
    logger.info(
        f"Program {program.id} for user {user.id}: fulfilled={result.summary.is_fulfilled} "
        f"({result.summary.completed_count}/{result.summary.required_count})"
    )
    return result
