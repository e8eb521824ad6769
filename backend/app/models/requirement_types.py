"""
Type definitions for the requirement fulfillment engine.
Covers catalog courses, a student's course records, requirement trees and the
computed (never persisted) allocation results.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, Union

from app.services.fulfillment_errors import IntegrityError


class CourseTakingStatus(str, Enum):
    """Where a course sits on the student's schedule relative to the selected semester."""
    COMPLETED = "COMPLETED"
    IN_PROGRESS = "IN_PROGRESS"
    PLANNED = "PLANNED"
    SAVED = "SAVED"
    NOT_ON_SCHEDULE = "NOT_ON_SCHEDULE"


class NotCountedReasonType(str, Enum):
    """Why an option was not counted toward a node."""
    NOT_ON_SCHEDULE = "NOT_ON_SCHEDULE"
    OVER_LIMIT = "OVER_LIMIT"
    ALREADY_COUNTED_ELSEWHERE = "ALREADY_COUNTED_ELSEWHERE"


class ProgramType(str, Enum):
    MAJOR = "major"
    MINOR = "minor"
    COLLEGE = "college"


# Key identifying a course claim: (course_id, group_identifier)
CourseKey = Tuple[str, Optional[str]]


def _require(data: Dict[str, Any], key: str, entity: str) -> Any:
    if key not in data or data[key] is None:
        raise IntegrityError(f"{entity} document is missing '{key}'", entity=entity)
    return data[key]


def _pick_count(data: Dict[str, Any], node_id: str) -> int:
    rule = data.get("rule") or {}
    pick = rule.get("pick", data.get("pick"))
    if not isinstance(pick, int) or isinstance(pick, bool) or pick < 0:
        raise IntegrityError(
            f"Node {node_id} has an invalid pick count: {pick!r}",
            entity="node",
            node_id=node_id,
        )
    return pick


# ============================================================================
# Catalog
# ============================================================================

@dataclass
class EnrollmentGroup:
    """One offering of a course; topic courses have one group per topic."""
    identifier: str
    has_topic: bool = False
    topic: Optional[str] = None
    offered_semesters: List[str] = field(default_factory=list)  # e.g. ["FA24", "SP25"]
    location_conflicts: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EnrollmentGroup":
        return cls(
            identifier=str(data.get("grpIdentifier") or data.get("identifier") or ""),
            has_topic=bool(data.get("hasTopic", False)),
            topic=data.get("topic"),
            offered_semesters=list(data.get("grpSmst") or data.get("offeredSemesters") or []),
            location_conflicts=bool(data.get("locationConflicts", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "grpIdentifier": self.identifier,
            "hasTopic": self.has_topic,
            "topic": self.topic,
            "grpSmst": self.offered_semesters,
            "locationConflicts": self.location_conflicts,
        }


@dataclass
class Course:
    """
    A catalog course. Per-group snapshots built for topic courses carry a single
    enrollment group and set has_topic, topic and group_identifier.
    """
    id: str
    subject: str = ""
    number: str = ""
    title: str = ""
    enrollment_groups: List[EnrollmentGroup] = field(default_factory=list)
    has_topic: bool = False
    topic: Optional[str] = None
    group_identifier: Optional[str] = None

    @property
    def is_topic_based(self) -> bool:
        return any(group.has_topic for group in self.enrollment_groups)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Course":
        course_id = _require(data, "_id" if "_id" in data else "id", "course")
        return cls(
            id=str(course_id),
            subject=data.get("sbj") or data.get("subject") or "",
            number=str(data.get("nbr") or data.get("number") or ""),
            title=data.get("tts") or data.get("ttl") or data.get("title") or "",
            enrollment_groups=[
                EnrollmentGroup.from_dict(g)
                for g in (data.get("enrollGroups") or data.get("enrollmentGroups") or [])
            ],
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "_id": self.id,
            "sbj": self.subject,
            "nbr": self.number,
            "title": self.title,
            "enrollGroups": [group.to_dict() for group in self.enrollment_groups],
        }
        if self.group_identifier is not None:
            result["courseHasTopic"] = self.has_topic
            result["topic"] = self.topic
            result["grpIdentifier"] = self.group_identifier
        return result


# ============================================================================
# Student
# ============================================================================

@dataclass
class UserCourseRecord:
    """A student's claim on a course: taken, planned or merely saved."""
    course_id: str
    group_identifier: Optional[str] = None
    is_scheduled: bool = False       # False means saved only
    semester: str = "unspecified"    # "FA24" etc, or "unspecified"
    credit: float = 0
    sections: List[str] = field(default_factory=list)
    used_in_requirements: List[str] = field(default_factory=list)

    @property
    def key(self) -> CourseKey:
        return (self.course_id, self.group_identifier)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserCourseRecord":
        course_id = _require(data, "_id" if "_id" in data else "courseId", "user course")
        return cls(
            course_id=str(course_id),
            group_identifier=data.get("grpIdentifier") or None,
            is_scheduled=bool(data.get("isScheduled", False)),
            semester=data.get("semester") or "unspecified",
            credit=data.get("credit") or 0,
            sections=list(data.get("sections") or []),
            used_in_requirements=list(data.get("usedInRequirements") or []),
        )


@dataclass
class UserProgramMembership:
    """A major or minor the student is enrolled in."""
    program_id: str
    name: str = ""
    concentration_names: List[str] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], id_key: str) -> "UserProgramMembership":
        return cls(
            program_id=str(_require(data, id_key, "user program")),
            name=data.get("name", ""),
            concentration_names=list(data.get("concentrationNames") or []),
        )


@dataclass
class UserProfile:
    id: str
    year: Optional[str] = None
    college_id: Optional[str] = None
    majors: List[UserProgramMembership] = field(default_factory=list)
    minors: List[UserProgramMembership] = field(default_factory=list)
    courses: List[UserCourseRecord] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserProfile":
        college = data.get("college") or {}
        return cls(
            id=str(_require(data, "_id" if "_id" in data else "id", "user")),
            year=data.get("year"),
            college_id=college.get("collegeId") if isinstance(college, dict) else college,
            majors=[UserProgramMembership.from_dict(m, "majorId") for m in data.get("majors") or []],
            minors=[UserProgramMembership.from_dict(m, "minorId") for m in data.get("minors") or []],
            courses=[UserCourseRecord.from_dict(c) for c in data.get("courses") or []],
        )


# ============================================================================
# Requirement definitions
# ============================================================================

@dataclass
class CourseNote:
    """Per-course note on a CourseSet node; may restrict which enrollment groups count."""
    course_id: str
    group_identifiers: Optional[List[str]] = None
    note: Optional[str] = None
    recommended_by_department: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CourseNote":
        groups = data.get("grpIdentifierArray")
        return cls(
            course_id=str(_require(data, "courseId", "course note")),
            group_identifiers=list(groups) if groups is not None else None,
            note=data.get("noteForRequirement"),
            recommended_by_department=bool(data.get("recommendedByDepartment", False)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "courseId": self.course_id,
            "grpIdentifierArray": self.group_identifiers,
            "noteForRequirement": self.note,
            "recommendedByDepartment": self.recommended_by_department,
        }


@dataclass
class GroupNode:
    """Fulfilled when at least `pick` of its children are fulfilled."""
    node_id: str
    pick: int
    children: List[str] = field(default_factory=list)
    title: str = ""


@dataclass
class CourseSetNode:
    """Fulfilled when at least `pick` completed courses are counted here."""
    node_id: str
    pick: int
    course_ids: List[str] = field(default_factory=list)
    course_notes: List[CourseNote] = field(default_factory=list)
    title: str = ""

    def note_for(self, course_id: str) -> Optional[CourseNote]:
        for note in self.course_notes:
            if note.course_id == course_id:
                return note
        return None


RequirementNode = Union[GroupNode, CourseSetNode]


def node_from_dict(data: Dict[str, Any]) -> RequirementNode:
    node_id = str(_require(data, "nodeId", "node"))
    node_type = data.get("type")
    title = data.get("title", "")
    if node_type == "GROUP":
        return GroupNode(
            node_id=node_id,
            pick=_pick_count(data, node_id),
            children=[str(c) for c in data.get("children") or []],
            title=title,
        )
    if node_type == "COURSE_SET":
        return CourseSetNode(
            node_id=node_id,
            pick=_pick_count(data, node_id),
            course_ids=[str(c) for c in data.get("options") or data.get("courseIds") or []],
            course_notes=[CourseNote.from_dict(n) for n in data.get("courseNotes") or []],
            title=title,
        )
    raise IntegrityError(f"Node {node_id} has unknown type {node_type!r}", entity="node", node_id=node_id)


@dataclass
class RequirementDefinition:
    id: str
    root_node_id: str
    nodes: Dict[str, RequirementNode] = field(default_factory=dict)  # declaration order
    conflicts_with: List[str] = field(default_factory=list)
    name: str = ""
    description: List[str] = field(default_factory=list)
    ui_type: str = "LIST"
    program_id: Optional[str] = None
    concentration_name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequirementDefinition":
        requirement_id = str(_require(data, "_id" if "_id" in data else "id", "requirement"))
        nodes: Dict[str, RequirementNode] = {}
        for raw in data.get("nodesData") or data.get("nodes") or []:
            node = node_from_dict(raw)
            if node.node_id in nodes:
                raise IntegrityError(
                    f"Requirement {requirement_id} declares node {node.node_id} twice",
                    entity="requirement",
                    requirement_id=requirement_id,
                    node_id=node.node_id,
                )
            nodes[node.node_id] = node
        description = data.get("description") or []
        return cls(
            id=requirement_id,
            root_node_id=str(_require(data, "rootNodeId", "requirement")),
            nodes=nodes,
            conflicts_with=[str(r) for r in data.get("conflictsWith") or []],
            name=data.get("name", ""),
            description=[description] if isinstance(description, str) else list(description),
            ui_type=data.get("uiType", "LIST"),
            program_id=data.get("programId"),
            concentration_name=data.get("concentrationName"),
        )

    def to_info_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "description": self.description,
            "uiType": self.ui_type,
            "programId": self.program_id,
            "concentrationName": self.concentration_name,
            "conflictsWith": self.conflicts_with,
        }


@dataclass
class RequirementSet:
    """A requirement list gated by who it applies to; None means any value."""
    requirement_ids: List[str] = field(default_factory=list)
    entry_year: Optional[str] = None
    college_id: Optional[str] = None
    major_id: Optional[str] = None
    concentration_names: Optional[List[str]] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RequirementSet":
        applies_to = data.get("appliesTo") or {}
        concentrations = applies_to.get("concentrationNames")
        return cls(
            requirement_ids=[str(r) for r in data.get("requirementIds") or []],
            entry_year=applies_to.get("entryYear"),
            college_id=applies_to.get("collegeId"),
            major_id=applies_to.get("majorId"),
            concentration_names=list(concentrations) if concentrations is not None else None,
        )


@dataclass
class ProgramDefinition:
    id: str
    type: ProgramType
    name: str = ""
    description: Optional[str] = None
    year_dependent: bool = False
    college_dependent: bool = False
    major_dependent: bool = False
    concentration_dependent: bool = False
    requirement_sets: List[RequirementSet] = field(default_factory=list)
    colleges: List[Dict[str, Any]] = field(default_factory=list)  # majors/minors only
    majors: List[Dict[str, Any]] = field(default_factory=list)    # colleges only

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProgramDefinition":
        program_id = str(_require(data, "_id" if "_id" in data else "id", "program"))
        try:
            program_type = ProgramType(data.get("type"))
        except ValueError as e:
            raise IntegrityError(
                f"Program {program_id} has unknown type {data.get('type')!r}",
                entity="program",
                entity_id=program_id,
            ) from e
        return cls(
            id=program_id,
            type=program_type,
            name=data.get("name", ""),
            description=data.get("description"),
            year_dependent=bool(data.get("yearDependent", False)),
            college_dependent=bool(data.get("collegeDependent", False)),
            major_dependent=bool(data.get("majorDependent", False)),
            concentration_dependent=bool(data.get("concentrationDependent", False)),
            requirement_sets=[RequirementSet.from_dict(s) for s in data.get("requirementSets") or []],
            colleges=list(data.get("colleges") or []),
            majors=list(data.get("majors") or []),
        )

    def to_info_dict(self) -> Dict[str, Any]:
        info: Dict[str, Any] = {
            "_id": self.id,
            "name": self.name,
            "type": self.type.value,
            "description": self.description,
        }
        if self.type == ProgramType.COLLEGE:
            info["majors"] = self.majors
        else:
            info["colleges"] = self.colleges
        return info


# ============================================================================
# Computed results
# ============================================================================

@dataclass
class CourseUserState:
    status: CourseTakingStatus
    is_scheduled: bool
    is_available: bool
    is_semester_available: bool
    is_location_available: bool
    credit: Optional[float] = None       # scheduled only
    semester: Optional[str] = None       # scheduled only
    sections: Optional[List[str]] = None  # scheduled only

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "isScheduled": self.is_scheduled,
            "status": self.status.value,
            "isAvailable": self.is_available,
            "isSemesterAvailable": self.is_semester_available,
            "isLocationAvailable": self.is_location_available,
        }
        if self.is_scheduled:
            result["credit"] = self.credit
            result["semester"] = self.semester
            result["sections"] = self.sections or []
        return result


@dataclass(frozen=True)
class NotCountedReason:
    reason: NotCountedReasonType
    requirement_id: Optional[str] = None  # ALREADY_COUNTED_ELSEWHERE only

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"reason": self.reason.value}
        if self.requirement_id is not None:
            result["requirementId"] = self.requirement_id
        return result


@dataclass(frozen=True)
class Allocation:
    is_counted_here: bool
    reasons: Tuple[NotCountedReason, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        if self.is_counted_here:
            return {"isCountedHere": True}
        return {
            "isCountedHere": False,
            "notCountedReasons": [r.to_dict() for r in self.reasons],
        }


@dataclass
class CourseOption:
    """A candidate allocation unit: one course, or one topic group of a course."""
    option_id: str
    course: Course
    user_state: CourseUserState
    allocation: Allocation = field(default_factory=lambda: Allocation(is_counted_here=False))
    type: str = "COURSE"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "optionId": self.option_id,
            "type": self.type,
            "course": self.course.to_dict(),
            "userState": self.user_state.to_dict(),
            "allocation": self.allocation.to_dict(),
        }


@dataclass
class CourseSetNodeState:
    is_fulfilled: bool = False
    fulfilled_count: int = 0
    completed_used_option_ids: List[str] = field(default_factory=list)
    completed_not_used_option_ids: List[str] = field(default_factory=list)
    in_progress_used_option_ids: List[str] = field(default_factory=list)
    in_progress_not_used_option_ids: List[str] = field(default_factory=list)
    planned_used_option_ids: List[str] = field(default_factory=list)
    planned_not_used_option_ids: List[str] = field(default_factory=list)
    saved_used_option_ids: List[str] = field(default_factory=list)
    saved_not_used_option_ids: List[str] = field(default_factory=list)
    not_on_schedule_option_ids: List[str] = field(default_factory=list)

    def bucket_for(self, status: CourseTakingStatus, used: bool) -> List[str]:
        if status == CourseTakingStatus.COMPLETED:
            return self.completed_used_option_ids if used else self.completed_not_used_option_ids
        if status == CourseTakingStatus.IN_PROGRESS:
            return self.in_progress_used_option_ids if used else self.in_progress_not_used_option_ids
        if status == CourseTakingStatus.PLANNED:
            return self.planned_used_option_ids if used else self.planned_not_used_option_ids
        if status == CourseTakingStatus.SAVED:
            return self.saved_used_option_ids if used else self.saved_not_used_option_ids
        return self.not_on_schedule_option_ids

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isFulfilled": self.is_fulfilled,
            "fulfilledCount": self.fulfilled_count,
            "completedUsedOptionIds": self.completed_used_option_ids,
            "completedNotUsedOptionIds": self.completed_not_used_option_ids,
            "inProgressUsedOptionIds": self.in_progress_used_option_ids,
            "inProgressNotUsedOptionIds": self.in_progress_not_used_option_ids,
            "plannedUsedOptionIds": self.planned_used_option_ids,
            "plannedNotUsedOptionIds": self.planned_not_used_option_ids,
            "savedUsedOptionIds": self.saved_used_option_ids,
            "savedNotUsedOptionIds": self.saved_not_used_option_ids,
            "notOnScheduleOptionIds": self.not_on_schedule_option_ids,
        }


@dataclass
class GroupNodeState:
    is_fulfilled: bool = False
    fulfilled_count: int = 0
    counted_child_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isFulfilled": self.is_fulfilled,
            "fulfilledCount": self.fulfilled_count,
            "countedChildIds": self.counted_child_ids,
        }


@dataclass
class ResolvedCourseSetNode:
    node: CourseSetNode
    state: CourseSetNodeState
    options: List[CourseOption] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node.node_id,
            "type": "COURSE_SET",
            "title": self.node.title,
            "rule": {"pick": self.node.pick},
            "courseNotes": [n.to_dict() for n in self.node.course_notes],
            "options": [o.to_dict() for o in self.options],
            "nodeState": self.state.to_dict(),
        }


@dataclass
class ResolvedGroupNode:
    node: GroupNode
    state: GroupNodeState

    def to_dict(self) -> Dict[str, Any]:
        return {
            "nodeId": self.node.node_id,
            "type": "GROUP",
            "title": self.node.title,
            "rule": {"pick": self.node.pick},
            "children": self.node.children,
            "nodeState": self.state.to_dict(),
        }


ResolvedNode = Union[ResolvedGroupNode, ResolvedCourseSetNode]


@dataclass
class RequirementSummary:
    is_fulfilled: bool = False
    fulfilled_units: int = 0
    required_units: int = 0
    completed_count: int = 0
    in_progress_count: int = 0
    planned_count: int = 0
    saved_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isFulfilled": self.is_fulfilled,
            "fulfilledUnits": self.fulfilled_units,
            "requiredUnits": self.required_units,
            "completedCount": self.completed_count,
            "inProgressCount": self.in_progress_count,
            "plannedCount": self.planned_count,
            "savedCount": self.saved_count,
        }


@dataclass
class RequirementResult:
    semester: str
    requirement: RequirementDefinition
    nodes: Dict[str, ResolvedNode]
    summary: RequirementSummary
    progress_version: str = "1.0.0"

    @property
    def root_node(self) -> ResolvedNode:
        return self.nodes[self.requirement.root_node_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "semester": self.semester,
            "requirementInfo": self.requirement.to_info_dict(),
            "rootNodeId": self.requirement.root_node_id,
            "nodesById": {node_id: node.to_dict() for node_id, node in self.nodes.items()},
            "summary": self.summary.to_dict(),
            "progressVersion": self.progress_version,
        }


@dataclass
class ProgramSummary:
    is_user_program: bool
    is_fulfilled: bool
    completed_count: int
    required_count: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "isUserProgram": self.is_user_program,
            "isFulfilled": self.is_fulfilled,
            "completedCount": self.completed_count,
            "requiredCount": self.required_count,
        }


@dataclass
class UserContext:
    """The student attributes a requirement set was matched against."""
    year: Optional[str] = None
    college_id: Optional[str] = None
    major_id: Optional[str] = None
    concentration_names: Optional[List[str]] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "year": self.year,
            "collegeId": self.college_id,
            "majorId": self.major_id,
            "concentrationNames": self.concentration_names,
        }


@dataclass
class ProgramFulfillmentResult:
    semester: str
    program: ProgramDefinition
    summary: ProgramSummary
    applies_to: UserContext
    processing_order: List[str]
    requirements: List[RequirementResult] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "semester": self.semester,
            "programInfo": self.program.to_info_dict(),
            "summary": self.summary.to_dict(),
            "appliesTo": self.applies_to.to_dict(),
            "processingOrder": self.processing_order,
            "requirementsList": [r.to_dict() for r in self.requirements],
        }
