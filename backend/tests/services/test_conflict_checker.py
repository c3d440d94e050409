from datetime import timedelta
from unittest.mock import MagicMock

import pytest

from availability_engine.core.enums import LessonStatus
from availability_engine.core.exceptions import RepositoryException, UpstreamUnavailableException
from availability_engine.domain.types import WeekWindow
from availability_engine.repositories.booking_repository import BookingRepository
from availability_engine.services.conflict_checker import ConflictChecker
from tests._utils.seed import STUDENT_ID, TUTOR_ID, add_group_class, add_lesson, utc


@pytest.fixture
def checker(db, clock):
    return ConflictChecker(db, clock=clock)


class TestFindConflicts:
    @pytest.fixture
    def lesson(self, db):
        # Occupies 10:00 until 11:00 with its buffer
        return add_lesson(db, utc(2030, 1, 7, 10), 50)

    @pytest.mark.parametrize(
        "start, minutes",
        [
            (utc(2030, 1, 7, 11, 0), 50),
            (utc(2030, 1, 7, 9, 0), 50),
            (utc(2030, 1, 7, 9, 30), 25),
            (utc(2030, 1, 8, 10, 0), 50),
        ],
    )
    def test_free_windows(self, checker, lesson, start, minutes):
        assert checker.find_conflicts(TUTOR_ID, start, start + timedelta(minutes=minutes)) == []

    @pytest.mark.parametrize(
        "start, minutes",
        [
            (utc(2030, 1, 7, 10, 30), 50),
            (utc(2030, 1, 7, 10, 55), 25),
            (utc(2030, 1, 7, 9, 15), 50),
            (utc(2030, 1, 7, 8, 0), 240),
        ],
    )
    def test_colliding_windows(self, checker, lesson, start, minutes):
        conflicts = checker.find_conflicts(TUTOR_ID, start, start + timedelta(minutes=minutes))
        assert [interval.source_id for interval in conflicts] == [lesson.id]

    def test_excluded_lesson_never_conflicts(self, checker, lesson):
        start = utc(2030, 1, 7, 10, 30)
        assert checker.find_conflicts(TUTOR_ID, start, start + timedelta(minutes=50), exclude_lesson_id=lesson.id) == []

    def test_cancelled_lessons_do_not_occupy(self, checker, db):
        add_lesson(db, utc(2030, 1, 7, 10), 50, status=LessonStatus.CANCELLED)
        start = utc(2030, 1, 7, 10)
        assert checker.find_conflicts(TUTOR_ID, start, start + timedelta(minutes=50)) == []

    def test_group_classes_conflict(self, checker, db):
        group_class = add_group_class(db, utc(2030, 1, 9, 15), 60)
        start = utc(2030, 1, 9, 15, 30)
        conflicts = checker.find_conflicts(TUTOR_ID, start, start + timedelta(minutes=25))
        assert [(interval.source, interval.source_id) for interval in conflicts] == [("class", group_class.id)]


def test_booked_set_for_tutor(checker, db):
    add_lesson(db, utc(2030, 1, 7, 10), 25)
    window = WeekWindow(start=utc(2030, 1, 6), end=utc(2030, 1, 13))

    assert checker.build_booked_set_for_tutor(TUTOR_ID, window) == {"1-10:00", "2030-01-07-10:00"}


def test_booked_set_rollover_day_has_date_keys_only(checker, db):
    add_lesson(db, utc(2030, 1, 13, 10), 25)
    window = WeekWindow(start=utc(2030, 1, 6), end=utc(2030, 1, 13))

    assert checker.build_booked_set_for_tutor(TUTOR_ID, window) == {"2030-01-13-10:00"}


class TestStudentBusySet:
    def test_only_upcoming_scheduled_bookings(self, checker, db):
        add_lesson(db, utc(2030, 1, 7, 10), 25)
        # Started before "now" (Saturday noon)
        add_lesson(db, utc(2030, 1, 5, 11, 30), 50)
        add_lesson(db, utc(2030, 1, 8, 10), 25, status=LessonStatus.PENDING_RESCHEDULE)
        add_lesson(db, utc(2030, 1, 9, 10), 25, status=LessonStatus.CANCELLED)
        add_lesson(db, utc(2030, 1, 10, 10), 25, student_id="student-2")
        add_group_class(db, utc(2030, 1, 11, 15), 25, tutor_id="tutor-2", attendees=[STUDENT_ID])

        busy = checker.build_student_busy_set(STUDENT_ID)

        assert busy == {"2030-01-07-10:00", "2030-01-11-15:00"}

    def test_busy_set_has_date_keys_only(self, checker, db):
        add_lesson(db, utc(2030, 1, 7, 10), 50)

        busy = checker.build_student_busy_set(STUDENT_ID)

        assert busy == {"2030-01-07-10:00", "2030-01-07-10:30"}
        assert not any(key.startswith("1-") for key in busy)

    def test_lookahead_limits_window(self, checker, db):
        add_lesson(db, utc(2030, 6, 3, 10), 25)
        assert checker.build_student_busy_set(STUDENT_ID) == set()

    def test_excluded_lesson(self, checker, db):
        lesson = add_lesson(db, utc(2030, 1, 7, 10), 25)
        assert checker.build_student_busy_set(STUDENT_ID, exclude_lesson_id=lesson.id) == set()


def test_booking_source_failure_is_unavailable(db, clock):
    repository = MagicMock(spec=BookingRepository)
    repository.get_bookings_for_tutor.side_effect = RepositoryException("read failed")
    checker = ConflictChecker(db, repository=repository, clock=clock)
    start = utc(2030, 1, 7, 10)

    with pytest.raises(UpstreamUnavailableException):
        checker.find_conflicts(TUTOR_ID, start, start + timedelta(minutes=50))
