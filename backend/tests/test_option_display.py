"""
Unit tests for display ordering of course options.
"""
from app.models.requirement_types import Course, CourseOption, CourseTakingStatus, CourseUserState
from app.services.option_display import SortStrategy, display_seed, order_options_for_display


def _option(option_id, status, available=True):
    return CourseOption(
        option_id=option_id,
        course=Course(id=option_id),
        user_state=CourseUserState(
            status=status,
            is_scheduled=status in (
                CourseTakingStatus.COMPLETED, CourseTakingStatus.IN_PROGRESS, CourseTakingStatus.PLANNED
            ),
            is_available=available,
            is_semester_available=available,
            is_location_available=True,
        ),
    )


class TestDisplayOrder:
    """Tests for order_options_for_display."""

    def test_in_progress_first_completed_last(self):
        options = [
            _option("DONE", CourseTakingStatus.COMPLETED),
            _option("PLAN", CourseTakingStatus.PLANNED),
            _option("NOW", CourseTakingStatus.IN_PROGRESS),
            _option("SAVE", CourseTakingStatus.SAVED),
            _option("NONE", CourseTakingStatus.NOT_ON_SCHEDULE),
        ]
        ordered = [o.option_id for o in order_options_for_display(options, "seed")]
        assert ordered == ["NOW", "SAVE", "PLAN", "NONE", "DONE"]

    def test_unavailable_after_available(self):
        options = [
            _option("OFF", CourseTakingStatus.SAVED, available=False),
            _option("ON", CourseTakingStatus.NOT_ON_SCHEDULE),
        ]
        ordered = [o.option_id for o in order_options_for_display(options, "seed")]
        assert ordered == ["ON", "OFF"]

    def test_same_seed_gives_same_order(self):
        options = [_option(f"C{i}", CourseTakingStatus.NOT_ON_SCHEDULE) for i in range(12)]
        first = order_options_for_display(options, display_seed("req", "node"))
        second = order_options_for_display(list(options), display_seed("req", "node"))
        assert [o.option_id for o in first] == [o.option_id for o in second]

    def test_none_strategy_keeps_input_order(self):
        options = [
            _option("DONE", CourseTakingStatus.COMPLETED),
            _option("NOW", CourseTakingStatus.IN_PROGRESS),
        ]
        ordered = order_options_for_display(options, "seed", SortStrategy.NONE)
        assert [o.option_id for o in ordered] == ["DONE", "NOW"]

    def test_ordering_keeps_every_option(self):
        options = [_option(f"C{i}", CourseTakingStatus.SAVED) for i in range(5)]
        ordered = order_options_for_display(options, "seed")
        assert sorted(o.option_id for o in ordered) == [f"C{i}" for i in range(5)]

    def test_seed_format(self):
        assert display_seed("core", "intro") == "core-intro"
