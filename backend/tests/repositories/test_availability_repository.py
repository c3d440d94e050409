from unittest.mock import MagicMock

import pytest
from sqlalchemy.exc import OperationalError

from availability_engine.core.enums import BlockType
from availability_engine.core.exceptions import RepositoryException
from availability_engine.domain.types import AvailabilityBlock
from availability_engine.repositories import RepositoryFactory
from availability_engine.repositories.availability_repository import AvailabilityRepository
from tests._utils.seed import TUTOR_ID, utc


@pytest.fixture
def repository(db):
    return RepositoryFactory.create_availability_repository(db)


def test_empty_tutor_has_no_blocks(repository):
    assert repository.get_availability(TUTOR_ID) == []


def test_round_trip_preserves_order_and_fields(repository, db):
    blocks = [
        AvailabilityBlock(id="weekly-mon", day=1, start_time="09:00", end_time="17:00"),
        AvailabilityBlock(
            id="2030-01-08-abc",
            day=2,
            start_time="18:00",
            end_time="24:00",
            absolute_start=utc(2030, 1, 8),
            absolute_end=utc(2030, 1, 8),
        ),
        AvailabilityBlock(id="lunch", day=1, start_time="12:00", end_time="13:00", type=BlockType.BREAK),
    ]

    assert repository.save_availability(TUTOR_ID, blocks) == 3
    db.commit()
    db.expire_all()

    stored = repository.get_availability(TUTOR_ID)
    assert stored == blocks
    assert stored[1].absolute_start.tzinfo is not None
    assert stored[2].type is BlockType.BREAK


def test_save_replaces_whole_list(repository, db):
    repository.save_availability(TUTOR_ID, [AvailabilityBlock(id="a", day=1, start_time="09:00", end_time="10:00")])
    repository.save_availability(
        TUTOR_ID,
        [
            AvailabilityBlock(id="a", day=3, start_time="11:00", end_time="12:00"),
            AvailabilityBlock(id="b", day=4, start_time="11:00", end_time="12:00"),
        ],
    )
    db.commit()

    assert [(b.id, b.day) for b in repository.get_availability(TUTOR_ID)] == [("a", 3), ("b", 4)]


def test_tutors_are_isolated(repository, db):
    repository.save_availability(TUTOR_ID, [AvailabilityBlock(id="a", day=1, start_time="09:00", end_time="10:00")])
    repository.save_availability("tutor-2", [])
    db.commit()

    assert len(repository.get_availability(TUTOR_ID)) == 1
    assert repository.get_availability("tutor-2") == []


def test_store_errors_raise_repository_exception():
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT", {}, Exception("gone"))
    repository = AvailabilityRepository(session)

    with pytest.raises(RepositoryException):
        repository.get_availability(TUTOR_ID)
    with pytest.raises(RepositoryException):
        repository.save_availability(TUTOR_ID, [])
