"""
Shared fixtures: small builders for catalog courses, user records and requirement
trees, plus an in-memory data source standing in for Supabase.
"""
from typing import Dict, List, Optional, Sequence

import pytest

from app.models.requirement_types import (
    Course,
    CourseNote,
    CourseSetNode,
    EnrollmentGroup,
    GroupNode,
    ProgramDefinition,
    ProgramType,
    RequirementDefinition,
    RequirementSet,
    UserCourseRecord,
    UserProfile,
    UserProgramMembership,
)
from app.services.fulfillment_errors import NotFoundError


def course(course_id: str, semesters: Sequence[str] = ("FA24",), location_conflicts: bool = False) -> Course:
    return Course(
        id=course_id,
        subject=course_id.rstrip("0123456789"),
        number=course_id.lstrip("ABCDEFGHIJKLMNOPQRSTUVWXYZ"),
        title=f"{course_id} title",
        enrollment_groups=[EnrollmentGroup(
            identifier="LEC-001",
            offered_semesters=list(semesters),
            location_conflicts=location_conflicts,
        )],
    )


def topic_course(course_id: str, topics: Sequence[str], semesters: Sequence[str] = ("FA24",)) -> Course:
    return Course(
        id=course_id,
        title=f"{course_id} topics",
        enrollment_groups=[
            EnrollmentGroup(identifier=t, has_topic=True, topic=t, offered_semesters=list(semesters))
            for t in topics
        ],
    )


def record(
    course_id: str,
    semester: str = "unspecified",
    scheduled: bool = True,
    group: Optional[str] = None,
    used_in: Sequence[str] = (),
) -> UserCourseRecord:
    return UserCourseRecord(
        course_id=course_id,
        group_identifier=group,
        is_scheduled=scheduled,
        semester=semester,
        credit=3,
        used_in_requirements=list(used_in),
    )


def course_set(node_id: str, course_ids: Sequence[str], pick: int, notes: Sequence[CourseNote] = ()) -> CourseSetNode:
    return CourseSetNode(node_id=node_id, pick=pick, course_ids=list(course_ids), course_notes=list(notes))


def group(node_id: str, children: Sequence[str], pick: int) -> GroupNode:
    return GroupNode(node_id=node_id, pick=pick, children=list(children))


def requirement(requirement_id: str, nodes: Sequence, root: Optional[str] = None, conflicts: Sequence[str] = ()) -> RequirementDefinition:
    return RequirementDefinition(
        id=requirement_id,
        root_node_id=root or nodes[0].node_id,
        nodes={n.node_id: n for n in nodes},
        conflicts_with=list(conflicts),
        name=f"Requirement {requirement_id}",
    )


class InMemorySource:
    """Data source with the same interface as SupabaseCatalogSource."""

    def __init__(
        self,
        courses: Sequence[Course] = (),
        users: Sequence[UserProfile] = (),
        programs: Sequence[ProgramDefinition] = (),
        requirements: Sequence[RequirementDefinition] = (),
    ):
        self.courses: Dict[str, Course] = {c.id: c for c in courses}
        self.users = {u.id: u for u in users}
        self.programs = {p.id: p for p in programs}
        self.requirements = {r.id: r for r in requirements}
        self.course_fetches: List[List[str]] = []

    def fetch_courses(self, ids: Sequence[str]) -> List[Course]:
        self.course_fetches.append(list(ids))
        return [self.courses[i] for i in ids if i in self.courses]

    def fetch_user(self, user_id: str) -> UserProfile:
        if user_id not in self.users:
            raise NotFoundError("User not found", entity="user", entity_id=user_id)
        return self.users[user_id]

    def fetch_program(self, program_id: str) -> ProgramDefinition:
        if program_id not in self.programs:
            raise NotFoundError("Program not found", entity="program", entity_id=program_id)
        return self.programs[program_id]

    def fetch_requirements(self, ids: Sequence[str]) -> List[RequirementDefinition]:
        # Reverse to make sure callers do not rely on the store's ordering
        return [self.requirements[i] for i in reversed(list(ids)) if i in self.requirements]


@pytest.fixture
def make_course():
    return course


@pytest.fixture
def make_topic_course():
    return topic_course


@pytest.fixture
def make_record():
    return record


@pytest.fixture
def make_course_set():
    return course_set


@pytest.fixture
def make_group():
    return group


@pytest.fixture
def make_requirement():
    return requirement


@pytest.fixture
def cs_major_source():
    """A CS major with a core requirement and an elective requirement that may not share courses."""
    courses = [course(c, semesters=("FA24", "SP25")) for c in ("CS1110", "CS2110", "CS3110", "CS4820", "MATH1910")]
    core = requirement("core", [
        group("core-root", ["intro", "math"], pick=2),
        course_set("intro", ["CS1110", "CS2110"], pick=2),
        course_set("math", ["MATH1910"], pick=1),
    ], conflicts=["elective"])
    elective = requirement("elective", [
        course_set("elective-root", ["CS2110", "CS3110", "CS4820"], pick=2),
    ], conflicts=["core"])
    program = ProgramDefinition(
        id="cs",
        type=ProgramType.MAJOR,
        name="Computer Science",
        requirement_sets=[RequirementSet(requirement_ids=["core", "elective"])],
    )
    user = UserProfile(
        id="u1",
        year="2023",
        college_id="engr",
        majors=[UserProgramMembership(program_id="cs", name="Computer Science")],
        courses=[
            record("CS1110", "FA23"),
            record("CS2110", "SP24"),
            record("MATH1910", "unspecified"),
            record("CS3110", "FA24"),
            record("CS4820", "SP25"),
        ],
    )
    return InMemorySource(courses=courses, users=[user], programs=[program], requirements=[core, elective])


@pytest.fixture
def make_source():
    return InMemorySource
