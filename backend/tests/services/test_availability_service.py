from datetime import date
from unittest.mock import MagicMock

import pytest

from availability_engine.core.enums import BlockType
from availability_engine.core.exceptions import (
    RepositoryException,
    UpstreamUnavailableException,
    ValidationException,
)
from availability_engine.domain.types import AvailabilityBlock
from availability_engine.repositories import RepositoryFactory
from availability_engine.repositories.availability_repository import AvailabilityRepository
from availability_engine.services.availability_service import AvailabilityService
from availability_engine.utils.weekday import week_dates
from tests._utils.seed import STUDENT_ID, TUTOR_ID, add_lesson, utc

MONDAY = date(2030, 1, 7)
TUESDAY = date(2030, 1, 8)
WEEK_START = date(2030, 1, 6)

WEEKLY_MONDAY = AvailabilityBlock(id="weekly-mon", day=1, start_time="09:00", end_time="17:00")


def store(db, *blocks):
    RepositoryFactory.create_availability_repository(db).save_availability(TUTOR_ID, list(blocks))
    db.commit()


def labels(slots):
    return [slot.label for slot in slots]


@pytest.fixture
def service(db, clock):
    return AvailabilityService(db, clock=clock)


class TestGetBlocks:
    def test_drops_class_and_stale_ranges(self, service, db):
        recent = AvailabilityBlock(id="2030-01-01-recent", day=2, start_time="09:00", end_time="10:00")
        store(
            db,
            WEEKLY_MONDAY,
            AvailabilityBlock(id="class-1", day=3, start_time="15:00", end_time="16:00", type=BlockType.CLASS),
            AvailabilityBlock(id="2029-12-20-stale", day=4, start_time="09:00", end_time="10:00"),
            AvailabilityBlock(
                id="old-range",
                day=6,
                start_time="09:00",
                end_time="10:00",
                absolute_start=utc(2029, 11, 3),
                absolute_end=utc(2029, 12, 1),
            ),
            recent,
        )

        # An old id prefix alone does not make a block stale
        assert [block.id for block in service.get_blocks(TUTOR_ID)] == [
            "weekly-mon",
            "2029-12-20-stale",
            "2030-01-01-recent",
        ]

    def test_store_failure_is_unavailable(self, db, clock):
        repository = MagicMock(spec=AvailabilityRepository)
        repository.get_availability.side_effect = RepositoryException("read failed")
        service = AvailabilityService(db, repository=repository, clock=clock)

        with pytest.raises(UpstreamUnavailableException) as exc_info:
            service.get_blocks(TUTOR_ID)
        assert exc_info.value.code == "STORE_UNAVAILABLE"


class TestSaveWeek:
    def test_merges_by_date(self, service, db):
        store(
            db,
            WEEKLY_MONDAY,
            AvailabilityBlock(id="2030-01-08-old", day=2, start_time="09:00", end_time="10:00"),
            AvailabilityBlock(id="2030-01-09-keep", day=3, start_time="09:00", end_time="10:00"),
        )
        new = AvailabilityBlock(id="2030-01-08-new", day=2, start_time="13:00", end_time="15:00")

        merged = service.save_week(TUTOR_ID, [new])

        assert [block.id for block in merged] == ["weekly-mon", "2030-01-09-keep", "2030-01-08-new"]
        assert [block.id for block in service.get_blocks(TUTOR_ID)] == [block.id for block in merged]

    def test_replace_dates_clear_emptied_days(self, service, db):
        store(db, WEEKLY_MONDAY, AvailabilityBlock(id="2030-01-09-gone", day=3, start_time="09:00", end_time="10:00"))

        merged = service.save_week(TUTOR_ID, [], replace_dates=[date(2030, 1, 9)])
        assert [block.id for block in merged] == ["weekly-mon"]

    def test_absolute_blocks_are_matched_by_local_date(self, service, db):
        store(
            db,
            AvailabilityBlock(
                id="pinned",
                day=2,
                start_time="09:00",
                end_time="10:00",
                absolute_start=utc(2030, 1, 8),
                absolute_end=utc(2030, 1, 8),
            ),
        )
        new = AvailabilityBlock(id="2030-01-08-new", day=2, start_time="11:00", end_time="12:00")

        assert [block.id for block in service.save_week(TUTOR_ID, [new])] == ["2030-01-08-new"]

    def test_same_id_replaces_recurring_block(self, service, db):
        store(db, WEEKLY_MONDAY)
        edited = AvailabilityBlock(id="weekly-mon", day=1, start_time="10:00", end_time="12:00")

        merged = service.save_week(TUTOR_ID, [edited])
        assert merged == [edited]

    def test_invalid_block_writes_nothing(self, service, db):
        store(db, WEEKLY_MONDAY)
        bad = AvailabilityBlock(id="bad", day=2, start_time="12:00", end_time="11:00")

        with pytest.raises(ValidationException):
            service.save_week(TUTOR_ID, [AvailabilityBlock(id="ok", day=3, start_time="09:00", end_time="10:00"), bad])
        assert [block.id for block in service.get_blocks(TUTOR_ID)] == ["weekly-mon"]

    def test_filtered_blocks_survive_a_save(self, service, db):
        legacy = AvailabilityBlock(id="class-1", day=3, start_time="15:00", end_time="16:00", type=BlockType.CLASS)
        old_range = AvailabilityBlock(
            id="old-range",
            day=6,
            start_time="09:00",
            end_time="10:00",
            absolute_start=utc(2029, 11, 3),
            absolute_end=utc(2029, 12, 1),
        )
        store(db, WEEKLY_MONDAY, legacy, old_range)
        new = AvailabilityBlock(id="2030-01-08-new", day=2, start_time="13:00", end_time="15:00")

        merged = service.save_week(TUTOR_ID, [new])

        assert [block.id for block in merged] == ["weekly-mon", "class-1", "old-range", "2030-01-08-new"]
        stored = RepositoryFactory.create_availability_repository(db).get_availability(TUTOR_ID)
        assert [block.id for block in stored] == [block.id for block in merged]
        assert [block.id for block in service.get_blocks(TUTOR_ID)] == ["weekly-mon", "2030-01-08-new"]

    def test_store_failure_is_unavailable(self, db, clock):
        repository = MagicMock(spec=AvailabilityRepository)
        repository.get_availability.return_value = []
        repository.save_availability.side_effect = RepositoryException("write failed")
        service = AvailabilityService(db, repository=repository, clock=clock)

        with pytest.raises(UpstreamUnavailableException):
            service.save_week(TUTOR_ID, [WEEKLY_MONDAY])


def test_save_selection_replaces_displayed_week(service, db):
    store(
        db,
        WEEKLY_MONDAY,
        AvailabilityBlock(id="2030-01-10-old", day=4, start_time="09:00", end_time="10:00"),
        AvailabilityBlock(id="2030-01-15-next-week", day=2, start_time="09:00", end_time="10:00"),
    )

    merged = service.save_selection(TUTOR_ID, {(2, 18), (2, 19), (2, 20)}, week_dates(WEEK_START))

    assert [block.id for block in merged][:2] == ["weekly-mon", "2030-01-15-next-week"]
    pinned = merged[2]
    assert pinned.id.startswith("2030-01-08-")
    assert (pinned.day, pinned.start_time, pinned.end_time) == (2, "09:00", "10:30")
    assert labels(service.compute_slots_for_date(TUTOR_ID, TUESDAY)) == ["09:00", "09:30", "10:00"]


class TestComputeSlots:
    def test_booked_lesson_removes_its_slot(self, service, db):
        store(db, WEEKLY_MONDAY)
        add_lesson(db, utc(2030, 1, 7, 10), 25)

        slots = labels(service.compute_slots_for_date(TUTOR_ID, MONDAY))
        assert "10:00" not in slots
        assert "09:30" in slots
        assert "10:30" in slots
        assert len(slots) == 15

    def test_duration_needs_consecutive_free_time(self, service, db):
        store(db, WEEKLY_MONDAY)
        add_lesson(db, utc(2030, 1, 7, 10), 25)

        slots = labels(service.compute_slots_for_date(TUTOR_ID, MONDAY, duration=50))
        assert "09:00" in slots
        assert "09:30" not in slots
        assert "10:30" in slots

    def test_include_unbookable_returns_full_day(self, service, db):
        store(db, WEEKLY_MONDAY)
        add_lesson(db, utc(2030, 1, 7, 10), 25)

        slots = service.compute_slots_for_date(TUTOR_ID, MONDAY, include_unbookable=True)
        assert len(slots) == 48
        ten = slots[20]
        assert (ten.available, ten.booked, ten.bookable) == (True, True, False)
        assert slots[0].available is False

    def test_viewer_timezone(self, db, ny_clock):
        service = AvailabilityService(db, clock=ny_clock)
        store(db, WEEKLY_MONDAY)
        # 15:00 UTC is 10:00 in New York
        add_lesson(db, utc(2030, 1, 7, 15), 25)

        slots = labels(service.compute_slots_for_date(TUTOR_ID, MONDAY))
        assert "10:00" not in slots
        assert "15:00" in slots

    def test_week_slots(self, service, db):
        store(db, WEEKLY_MONDAY)
        add_lesson(db, utc(2030, 1, 7, 10), 50)

        week = service.compute_week_slots(TUTOR_ID, WEEK_START)

        assert list(week) == [date(2030, 1, 6 + i) for i in range(7)]
        assert len(week[MONDAY]) == 14
        assert all(not slots for day, slots in week.items() if day != MONDAY)


class TestIsBookable:
    @pytest.mark.parametrize(
        "start, duration, expected",
        [
            (utc(2030, 1, 7, 9, 0), 50, True),
            (utc(2030, 1, 7, 9, 30), 50, False),
            (utc(2030, 1, 7, 9, 30), 25, True),
            (utc(2030, 1, 7, 10, 0), 25, False),
            (utc(2030, 1, 7, 8, 0), 25, False),
            (utc(2030, 1, 7, 11, 0), 50, True),
        ],
    )
    def test_bookable(self, service, db, start, duration, expected):
        store(db, WEEKLY_MONDAY)
        add_lesson(db, utc(2030, 1, 7, 10), 50)

        assert service.is_bookable(TUTOR_ID, start, duration) is expected

    def test_moving_lesson_ignores_itself(self, service, db):
        store(db, WEEKLY_MONDAY)
        lesson = add_lesson(db, utc(2030, 1, 7, 10), 50)

        assert service.is_bookable(TUTOR_ID, utc(2030, 1, 7, 10, 30), 50) is False
        assert service.is_bookable(TUTOR_ID, utc(2030, 1, 7, 10, 30), 50, exclude_lesson_id=lesson.id) is True


class TestWeekBoundaries:
    WEEKLY_SUNDAY = AvailabilityBlock(id="weekly-sun", day=0, start_time="09:00", end_time="17:00")

    def test_next_week_lesson_does_not_mark_displayed_weekday(self, service, db):
        store(db, self.WEEKLY_SUNDAY)
        add_lesson(db, utc(2030, 1, 13, 10), 25)

        week = service.compute_week_slots(TUTOR_ID, WEEK_START)
        single = service.compute_slots_for_date(TUTOR_ID, WEEK_START)

        assert "10:00" in labels(week[WEEK_START])
        assert labels(week[WEEK_START]) == labels(single)

    def test_next_week_lesson_still_blocks_saturday_rollover(self, service, db):
        store(db, AvailabilityBlock(id="weekly-sat", day=6, start_time="23:00", end_time="24:00"))
        add_lesson(db, utc(2030, 1, 13, 0), 25)

        week = service.compute_week_slots(TUTOR_ID, WEEK_START, duration=50)

        # 23:30 plus 50 minutes runs into the Sunday midnight lesson
        assert labels(week[date(2030, 1, 12)]) == ["23:00"]

    def test_displayed_sunday_does_not_block_saturday_rollover(self, service, db):
        store(db, AvailabilityBlock(id="weekly-sat", day=6, start_time="23:00", end_time="24:00"))
        add_lesson(db, utc(2030, 1, 6, 0), 25)

        week = service.compute_week_slots(TUTOR_ID, WEEK_START, duration=50)

        assert labels(week[date(2030, 1, 12)]) == ["23:00", "23:30"]


class TestMutualSlots:
    def test_student_bookings_are_excluded(self, service, db):
        store(db, WEEKLY_MONDAY)
        add_lesson(db, utc(2030, 1, 7, 10), 25)
        add_lesson(db, utc(2030, 1, 7, 14), 25, tutor_id="tutor-2")

        slots = labels(service.compute_mutual_slots(TUTOR_ID, STUDENT_ID, MONDAY))

        assert "10:00" not in slots
        assert "14:00" not in slots
        assert "13:30" in slots
        assert len(slots) == 14

    def test_lesson_being_moved_is_ignored(self, service, db):
        store(db, WEEKLY_MONDAY)
        lesson = add_lesson(db, utc(2030, 1, 7, 10), 25)

        slots = labels(service.compute_mutual_slots(TUTOR_ID, STUDENT_ID, MONDAY, exclude_lesson_id=lesson.id))
        assert "10:00" in slots
        assert len(slots) == 16
