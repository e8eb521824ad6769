"""
Models package for the degree progress backend.
Contains data models and type definitions.
"""
from app.models.requirement_types import (
    Allocation,
    Course,
    CourseNote,
    CourseOption,
    CourseSetNode,
    CourseSetNodeState,
    CourseTakingStatus,
    CourseUserState,
    EnrollmentGroup,
    GroupNode,
    GroupNodeState,
    NotCountedReason,
    NotCountedReasonType,
    ProgramDefinition,
    ProgramFulfillmentResult,
    ProgramSummary,
    ProgramType,
    RequirementDefinition,
    RequirementNode,
    RequirementResult,
    RequirementSet,
    RequirementSummary,
    ResolvedCourseSetNode,
    ResolvedGroupNode,
    UserContext,
    UserCourseRecord,
    UserProfile,
    UserProgramMembership,
)

__all__ = [
    "Allocation",
    "Course",
    "CourseNote",
    "CourseOption",
    "CourseSetNode",
    "CourseSetNodeState",
    "CourseTakingStatus",
    "CourseUserState",
    "EnrollmentGroup",
    "GroupNode",
    "GroupNodeState",
    "NotCountedReason",
    "NotCountedReasonType",
    "ProgramDefinition",
    "ProgramFulfillmentResult",
    "ProgramSummary",
    "ProgramType",
    "RequirementDefinition",
    "RequirementNode",
    "RequirementResult",
    "RequirementSet",
    "RequirementSummary",
    "ResolvedCourseSetNode",
    "ResolvedGroupNode",
    "UserContext",
    "UserCourseRecord",
    "UserProfile",
    "UserProgramMembership",
]
