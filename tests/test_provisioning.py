import itertools

import pytest

from dorm_admin.errors import StoreError, StoreTimeout, ValidationError
from dorm_admin.provisioning import (CancelToken, RoomTemplate, build_template,
                                     check_duplicates, provision_rooms)
from dorm_admin.records import AdditionalFee, PropertyConfig, Room, RoomType
from dorm_admin.repository import load_rooms
from dorm_admin.room_ranges import parse_room_number_ranges
from dorm_admin.store import MemoryDocumentStore


class FlakyStore(MemoryDocumentStore):
    """Raises on the listed write attempts (1-based)."""

    def __init__(self, fail_on=(), error=StoreError):
        super().__init__()
        self.fail_on = set(fail_on)
        self.error = error
        self.writes = 0

    def set_document(self, path, data, merge=False):
        self.writes += 1
        if self.writes in self.fail_on:
            raise self.error(f"write {self.writes} rejected")
        super().set_document(path, data, merge)


def template():
    return RoomTemplate(property_id='dorm1', floor=2, room_type_id='air')


def sequential_ids():
    counter = itertools.count(1)
    return lambda: f"room{next(counter)}"


def occupied(number):
    return Room(id=f"r{number}", property_id='dorm1', number=number, floor=1,
                room_type_id='air', status='occupied')


def test_internal_duplicates_rejected_before_snapshot():
    def snapshot():
        raise AssertionError("store should not be consulted")
        yield

    with pytest.raises(ValidationError, match="repeated"):
        check_duplicates(parse_room_number_ranges("101,101"), snapshot())


def test_empty_batch_rejected():
    with pytest.raises(ValidationError):
        check_duplicates(parse_room_number_ranges("abc"), [])


def test_occupied_rooms_rejected():
    with pytest.raises(ValidationError, match="102"):
        check_duplicates(["101", "102"], [occupied("102")])


def test_available_rooms_with_same_number_are_allowed():
    existing = [occupied("101").with_changes(status='available')]
    check_duplicates(["101"], existing)


def test_all_rooms_created_in_order():
    store = MemoryDocumentStore()
    progress = []
    first = []
    result = provision_rooms(store, ["101", "102", "103"], template(),
                             on_progress=lambda cur, total: progress.append((cur, total)),
                             on_created=first.append, id_factory=sequential_ids())

    assert result.succeeded
    assert result.summary() == "Created 3 room(s)"
    assert progress == [(1, 3), (2, 3), (3, 3)]
    assert [r.number for r in first] == ["101"]
    rooms = load_rooms(store, 'dorm1')
    assert sorted(r.number for r in rooms) == ["101", "102", "103"]
    assert all(r.floor == 2 and r.created_at for r in rooms)


def test_partial_failure_keeps_created_rooms():
    store = FlakyStore(fail_on={2})
    first = []
    result = provision_rooms(store, ["101", "102", "103"], template(),
                             on_created=first.append, id_factory=sequential_ids())

    assert not result.succeeded
    assert result.failed_count == 1
    assert result.summary() == "Failed to create 1 room(s)"
    assert result.failures[0].number == "102"
    assert "rejected" in result.failures[0].reason
    assert first == []
    assert sorted(r.number for r in load_rooms(store, 'dorm1')) == ["101", "103"]


def test_timeout_aborts_remaining_rooms():
    store = FlakyStore(fail_on={2}, error=StoreTimeout)
    progress = []
    result = provision_rooms(store, ["101", "102", "103"], template(),
                             on_progress=lambda cur, total: progress.append(cur),
                             id_factory=sequential_ids())

    assert result.aborted
    assert store.writes == 2
    assert result.failed_count == 1
    assert result.failures[0].number == "102"
    assert result.summary().startswith("Failed to create 1 room(s)")
    assert progress == [1]
    assert [r.number for r in load_rooms(store, 'dorm1')] == ["101"]


def test_cancel_token_stops_before_next_write():
    store = MemoryDocumentStore()
    token = CancelToken()
    result = provision_rooms(store, ["101", "102", "103"], template(),
                             on_progress=lambda cur, total: cur == 2 and token.cancel(),
                             cancel_token=token, id_factory=sequential_ids())

    assert result.cancelled
    assert not result.succeeded
    assert len(result.created) == 2
    assert len(load_rooms(store, 'dorm1')) == 2


def test_cancel_token_deadline():
    now = [0.0]
    token = CancelToken(timeout=5, clock=lambda: now[0])
    assert not token.cancelled
    now[0] = 5.0
    assert token.expired and token.cancelled


def config():
    return PropertyConfig(total_floors=3, initial_meter_reading=7.0,
                          additional_fees=(AdditionalFee('wifi', 'Wi-Fi', 200.0),))


TYPES = [RoomType('fan', 'Fan', 3000.0), RoomType('air', 'Air', 4500.0, True)]


def test_build_template_defaults_meter_reading_from_config():
    tpl = build_template('dorm1', config(), TYPES, floor='2', room_type_id='air',
                         additional_service_ids=['wifi'])
    assert tpl.floor == 2
    assert tpl.initial_meter_reading == 7.0
    assert tpl.additional_service_ids == frozenset({'wifi'})


def test_build_template_unparseable_reading_falls_back_to_zero():
    tpl = build_template('dorm1', config(), TYPES, floor=1, room_type_id='fan',
                         initial_meter_reading='n/a')
    assert tpl.initial_meter_reading == 0.0


@pytest.mark.parametrize("kwargs", [
    {'floor': 4},
    {'floor': 'top'},
    {'room_type_id': 'suite'},
    {'status': 'reserved'},
    {'initial_meter_reading': -1},
    {'additional_service_ids': ['parking']},
])
def test_build_template_rejects(kwargs):
    args = {'floor': 1, 'room_type_id': 'fan'}
    args.update(kwargs)
    with pytest.raises(ValidationError):
        build_template('dorm1', config(), TYPES, **args)


def test_build_template_needs_room_types():
    with pytest.raises(ValidationError, match="room type"):
        build_template('dorm1', config(), [], floor=1, room_type_id='')


class RejectThenTimeoutStore(MemoryDocumentStore):
    def __init__(self):
        super().__init__()
        self.writes = 0

    def set_document(self, path, data, merge=False):
        self.writes += 1
        if self.writes == 1:
            raise StoreError("write rejected")
        if self.writes == 2:
            raise StoreTimeout("timed out")
        super().set_document(path, data, merge)


def test_summary_keeps_failure_count_when_aborted():
    store = RejectThenTimeoutStore()
    result = provision_rooms(store, ["101", "102", "103"], template(), id_factory=sequential_ids())

    assert result.aborted == "timed out"
    assert [f.number for f in result.failures] == ["101", "102"]
    assert result.summary() == "Failed to create 2 room(s); stopped after 2 of 3: timed out"
    assert load_rooms(store, 'dorm1') == []
