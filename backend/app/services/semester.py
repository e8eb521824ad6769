"""
Semester token helpers.
Tokens look like "FA24": a two-letter season followed by a two-digit year.
"""
import re
from typing import Tuple

from app.services.fulfillment_errors import IntegrityError, ValidationError

UNSPECIFIED_SEMESTER = "unspecified"

# Season order within one calendar year
SEASON_ORDER = ("WI", "SP", "SU", "FA")

SEMESTER_PATTERN = re.compile(r"^(WI|SP|SU|FA)(\d{2})$")


def is_valid_semester(token: str) -> bool:
    return isinstance(token, str) and SEMESTER_PATTERN.match(token) is not None


def validate_semester(token: str) -> str:
    """Return the token unchanged, or raise ValidationError if it is malformed."""
    if not is_valid_semester(token):
        raise ValidationError(
            f"Invalid semester '{token}': expected a season (WI, SP, SU, FA) followed by two digits"
        )
    return token


def semester_sort_key(token: str) -> Tuple[int, int]:
    """
    Sort key for semester tokens. "unspecified" sorts before every real term.
    Two-digit years compare numerically; there is no century handling.
    A malformed stored token is corrupt data and raises IntegrityError.
    """
    if token == UNSPECIFIED_SEMESTER:
        return (-1, -1)
    match = SEMESTER_PATTERN.match(token) if isinstance(token, str) else None
    if match is None:
        raise IntegrityError(f"Malformed semester token {token!r}", entity="semester", entity_id=str(token))
    season, year = match.groups()
    return (int(year), SEASON_ORDER.index(season))


def compare_semesters(semester_a: str, semester_b: str) -> int:
    """Negative if a is earlier than b, zero if equal, positive if later."""
    key_a = semester_sort_key(semester_a)
    key_b = semester_sort_key(semester_b)
    if key_a == key_b:
        return 0
    return -1 if key_a < key_b else 1


def is_prior_semester(semester: str, selected_semester: str) -> bool:
    """True if `semester` is strictly before `selected_semester`, or unspecified."""
    if semester == UNSPECIFIED_SEMESTER:
        return True
    return compare_semesters(semester, selected_semester) < 0
