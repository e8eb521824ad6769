"""
Catalog Store - Reads the snapshots the fulfillment engine works on.

Catalog courses, student profiles, programs and requirement trees live in Supabase
tables whose `document` column holds the stored JSON. Course lookups are batched:
the engine asks once per requirement.
"""
import logging
from typing import Any, Callable, Dict, List, Sequence, TypeVar

from app.models.requirement_types import (
    Course,
    ProgramDefinition,
    RequirementDefinition,
    UserProfile,
)
from app.services.fulfillment_errors import IntegrityError, NotFoundError
from app.services.supabase_client import in_filter, select_rows

logger = logging.getLogger(__name__)

T = TypeVar("T")

COURSES_TABLE = "courses"
USERS_TABLE = "app_users"
PROGRAMS_TABLE = "programs"
REQUIREMENTS_TABLE = "requirements"


def _parse_row(row: Dict[str, Any], parser: Callable[[Dict[str, Any]], T], table: str) -> T:
    document = row.get("document")
    if not isinstance(document, dict):
        raise IntegrityError(f"Row {row.get('id')} in {table} has no document", entity=table, entity_id=row.get("id"))
    document = {"_id": row.get("id"), **document}
    return parser(document)


class SupabaseCatalogSource:
    """Data source for compute_program_fulfillment backed by Supabase tables."""

    def fetch_courses(self, course_ids: Sequence[str]) -> List[Course]:
        """Unknown ids are simply absent from the result."""
        ids = list(dict.fromkeys(course_ids))
        if not ids:
            return []
        rows = select_rows(COURSES_TABLE, {"id": in_filter(ids)}, columns="id,document")
        courses = [_parse_row(row, Course.from_dict, COURSES_TABLE) for row in rows]
        if len(courses) < len(ids):
            logger.debug(f"{len(ids) - len(courses)} of {len(ids)} requested courses not in catalog")
        return courses

    def fetch_user(self, user_id: str) -> UserProfile:
        rows = select_rows(USERS_TABLE, {"id": f"eq.{user_id}"}, columns="id,document")
        if not rows:
            raise NotFoundError("User not found", entity="user", entity_id=user_id)
        return _parse_row(rows[0], UserProfile.from_dict, USERS_TABLE)

    def fetch_program(self, program_id: str) -> ProgramDefinition:
        rows = select_rows(PROGRAMS_TABLE, {"id": f"eq.{program_id}"}, columns="id,document")
        if not rows:
            raise NotFoundError("Program not found", entity="program", entity_id=program_id)
        return _parse_row(rows[0], ProgramDefinition.from_dict, PROGRAMS_TABLE)

    def fetch_requirements(self, requirement_ids: Sequence[str]) -> List[RequirementDefinition]:
        ids = list(dict.fromkeys(requirement_ids))
        if not ids:
            return []
        rows = select_rows(REQUIREMENTS_TABLE, {"id": in_filter(ids)}, columns="id,document")
        return [_parse_row(row, RequirementDefinition.from_dict, REQUIREMENTS_TABLE) for row in rows]
