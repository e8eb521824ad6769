"""
Unit tests for the course state classifier: record matching, taking status and
availability.
"""
from dataclasses import replace

import pytest

from app.models.requirement_types import CourseTakingStatus
from app.services.course_state import (
    build_user_state,
    find_matching_record,
    get_course_status,
    is_available_in_location,
    is_available_in_semester,
)
from app.services.fulfillment_errors import IntegrityError


SELECTED = "FA24"


class TestCourseStatus:
    """Tests for the status table."""

    def test_not_on_schedule(self, make_course):
        status, scheduled = get_course_status(make_course("COMS9999"), [], SELECTED)
        assert status == CourseTakingStatus.NOT_ON_SCHEDULE
        assert scheduled is False

    def test_saved(self, make_course, make_record):
        records = [make_record("INFO4210", "SP25", scheduled=False)]
        status, scheduled = get_course_status(make_course("INFO4210"), records, SELECTED)
        assert status == CourseTakingStatus.SAVED
        assert scheduled is False

    def test_in_progress(self, make_course, make_record):
        records = [make_record("INFO2950", "FA24")]
        status, scheduled = get_course_status(make_course("INFO2950"), records, SELECTED)
        assert status == CourseTakingStatus.IN_PROGRESS
        assert scheduled is True

    def test_prior_semester_is_completed(self, make_course, make_record):
        """Selected FA24, record SP24."""
        records = [make_record("CS1110", "SP24")]
        status, scheduled = get_course_status(make_course("CS1110"), records, SELECTED)
        assert status == CourseTakingStatus.COMPLETED
        assert scheduled is True

    def test_later_semester_is_planned(self, make_course, make_record):
        records = [make_record("CS3110", "SP25")]
        status, scheduled = get_course_status(make_course("CS3110"), records, SELECTED)
        assert status == CourseTakingStatus.PLANNED
        assert scheduled is True

    @pytest.mark.parametrize("selected", ["WI00", "FA24", "FA99"])
    def test_unspecified_is_completed_for_any_semester(self, make_course, make_record, selected):
        records = [make_record("CS1112", "unspecified")]
        status, scheduled = get_course_status(make_course("CS1112"), records, selected)
        assert status == CourseTakingStatus.COMPLETED
        assert scheduled is True

    def test_malformed_record_semester_is_corrupt_data(self, make_course, make_record):
        records = [make_record("CS1110", "Fall24")]
        with pytest.raises(IntegrityError):
            get_course_status(make_course("CS1110"), records, SELECTED)


class TestRecordMatching:
    """Tests for matching records to per-topic options."""

    def _topic_snapshot(self, make_topic_course, topic):
        course = make_topic_course("COMS3998", [topic])
        return replace(course, group_identifier=topic, has_topic=True, topic=topic)

    def test_topic_option_requires_same_group(self, make_topic_course, make_record):
        option_course = self._topic_snapshot(make_topic_course, "AI")
        records = [make_record("COMS3998", "SP24", group="AI")]
        status, _ = get_course_status(option_course, records, SELECTED)
        assert status == CourseTakingStatus.COMPLETED

    def test_topic_option_rejects_other_group(self, make_topic_course, make_record):
        option_course = self._topic_snapshot(make_topic_course, "AI")
        records = [make_record("COMS3998", "FA24", group="Robotics")]
        status, scheduled = get_course_status(option_course, records, SELECTED)
        assert status == CourseTakingStatus.NOT_ON_SCHEDULE
        assert scheduled is False

    def test_topic_option_rejects_record_without_group(self, make_topic_course, make_record):
        option_course = self._topic_snapshot(make_topic_course, "AI")
        assert find_matching_record(option_course, [make_record("COMS3998", "SP24")]) is None

    def test_whole_course_option_matches_on_id(self, make_course, make_record):
        records = [make_record("CS2800", "SP24", group="LEC-002")]
        assert find_matching_record(make_course("CS2800"), records) is records[0]

    def test_first_matching_record_wins(self, make_course, make_record):
        records = [make_record("CS2800", "SP24"), make_record("CS2800", "SP25")]
        assert find_matching_record(make_course("CS2800"), records) is records[0]


class TestAvailability:
    """Tests for semester and location availability."""

    def test_offered_in_selected_semester(self, make_course):
        assert is_available_in_semester(make_course("CS1110", semesters=["FA24"]), "FA24")
        assert not is_available_in_semester(make_course("CS1110", semesters=["SP24"]), "FA24")

    def test_location_conflict(self, make_course):
        assert is_available_in_location(make_course("CS1110"))
        assert not is_available_in_location(make_course("CS1110", location_conflicts=True))

    def test_user_state_combines_availability(self, make_course, make_record):
        course = make_course("CS1110", semesters=["FA24"], location_conflicts=True)
        state = build_user_state(course, [], SELECTED)
        assert state.is_semester_available is True
        assert state.is_location_available is False
        assert state.is_available is False

    def test_scheduled_state_carries_record_details(self, make_course, make_record):
        state = build_user_state(make_course("CS1110"), [make_record("CS1110", "SP24")], SELECTED)
        assert state.credit == 3
        assert state.semester == "SP24"
        assert state.to_dict()["sections"] == []

    def test_unscheduled_state_omits_record_details(self, make_course, make_record):
        state = build_user_state(make_course("CS1110"), [make_record("CS1110", scheduled=False)], SELECTED)
        assert state.semester is None
        assert "semester" not in state.to_dict()
