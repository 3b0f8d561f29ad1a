# provisioning.py
"""Batch room creation from a range expression.

Rooms are written one at a time. There is no transaction around the batch:
if some writes fail the rooms that were written stay in the store and the
result reports how many failed (with the reason for each).
"""
import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from .errors import StoreError, StoreTimeout, ValidationError
from .records import ROOM_STATUSES, PropertyConfig, Room, RoomType, utc_now_iso
from .repository import save_room
from .room_ranges import find_duplicates
from .store import new_document_id

logger = logging.getLogger(__name__)


class CancelToken:
    """Cancelled explicitly or once its deadline (seconds from creation) passes."""

    def __init__(self, timeout: Optional[float] = None, clock=time.monotonic):
        self._clock = clock
        self._deadline = clock() + timeout if timeout is not None else None
        self._cancelled = False

    def cancel(self):
        self._cancelled = True

    @property
    def expired(self) -> bool:
        return self._deadline is not None and self._clock() >= self._deadline

    @property
    def cancelled(self) -> bool:
        return self._cancelled or self.expired


@dataclass(frozen=True)
class RoomTemplate:
    """Everything a new room gets apart from its number and id."""
    property_id: str
    floor: int
    room_type_id: str
    status: str = 'available'
    initial_meter_reading: float = 0.0
    additional_service_ids: frozenset = frozenset()

    def build(self, number: str, room_id: str, now: str) -> Room:
        return Room(
            id=room_id,
            property_id=self.property_id,
            number=number,
            floor=self.floor,
            room_type_id=self.room_type_id,
            status=self.status,
            initial_meter_reading=self.initial_meter_reading,
            additional_service_ids=self.additional_service_ids,
            created_at=now,
            updated_at=now,
        )


@dataclass
class RoomFailure:
    number: str
    reason: str


@dataclass
class BatchResult:
    total: int
    created: List[Room] = field(default_factory=list)
    failures: List[RoomFailure] = field(default_factory=list)
    cancelled: bool = False
    aborted: Optional[str] = None

    @property
    def completed(self) -> int:
        return len(self.created) + len(self.failures)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def succeeded(self) -> bool:
        return not self.failures and not self.cancelled and not self.aborted \
            and len(self.created) == self.total

    def summary(self) -> str:
        if self.failures:
            message = f"Failed to create {self.failed_count} room(s)"
            if self.aborted:
                message += f"; stopped after {self.completed} of {self.total}: {self.aborted}"
            return message
        if self.aborted:
            return f"Stopped after {self.completed} of {self.total} rooms: {self.aborted}"
        if self.cancelled:
            return f"Cancelled after creating {len(self.created)} of {self.total} rooms"
        return f"Created {len(self.created)} room(s)"

    def to_dict(self) -> dict:
        return {
            'message': self.summary(),
            'total': self.total,
            'created_count': len(self.created),
            'failed_count': self.failed_count,
            'failures': [{'number': f.number, 'reason': f.reason} for f in self.failures],
            'cancelled': self.cancelled,
            'aborted': self.aborted,
        }


def build_template(property_id: str, config: PropertyConfig, room_types: List[RoomType],
                   floor, room_type_id: str, status: str = 'available',
                   initial_meter_reading=None, additional_service_ids=()) -> RoomTemplate:
    """Validate the shared room fields of a provisioning form."""
    if not room_types:
        raise ValidationError('Please add a room type first')
    if room_type_id not in {t.id for t in room_types}:
        raise ValidationError('Please choose a valid room type')
    try:
        floor = int(floor)
    except (TypeError, ValueError):
        raise ValidationError('Floor must be a number')
    if not 1 <= floor <= config.total_floors:
        raise ValidationError(f"Floor must be between 1 and {config.total_floors}")
    if status not in ROOM_STATUSES:
        raise ValidationError(f"Invalid room status: {status}")

    if initial_meter_reading is None or initial_meter_reading == '':
        reading = config.initial_meter_reading
    else:
        try:
            reading = float(initial_meter_reading)
        except (TypeError, ValueError):
            reading = 0.0
    if reading < 0:
        raise ValidationError('Initial meter reading cannot be negative')

    services = frozenset(additional_service_ids or ())
    unknown = services - config.fee_ids()
    if unknown:
        raise ValidationError(f"Unknown additional services: {', '.join(sorted(unknown))}")

    return RoomTemplate(
        property_id=property_id,
        floor=floor,
        room_type_id=room_type_id,
        status=status,
        initial_meter_reading=reading,
        additional_service_ids=services,
    )


def occupied_numbers(existing_rooms: Iterable[Room]) -> set:
    return {room.number for room in existing_rooms if room.is_occupied}


def check_batch(numbers: List[str]):
    if not numbers:
        raise ValidationError('Please enter valid room numbers')
    repeated = find_duplicates(numbers)
    if repeated:
        raise ValidationError(
            f"Room numbers repeated in this batch: {', '.join(repeated)}")


def check_occupied(numbers: List[str], existing_rooms: Iterable[Room]):
    """``existing_rooms`` is a snapshot; rooms occupied after it was taken are not seen."""
    occupied = occupied_numbers(existing_rooms)
    taken = [n for n in numbers if n in occupied]
    if taken:
        raise ValidationError(
            f"Room numbers already occupied: {', '.join(taken)}")


def check_duplicates(numbers: List[str], existing_rooms: Iterable[Room]):
    check_batch(numbers)
    check_occupied(numbers, existing_rooms)


def provision_rooms(store, numbers: List[str], template: RoomTemplate,
                    on_progress: Optional[Callable[[int, int], None]] = None,
                    on_created: Optional[Callable[[Room], None]] = None,
                    cancel_token: Optional[CancelToken] = None,
                    id_factory=new_document_id) -> BatchResult:
    result = BatchResult(total=len(numbers))

    for number in numbers:
        if cancel_token is not None and cancel_token.cancelled:
            result.cancelled = True
            logger.warning("Provisioning for %s cancelled at %d/%d",
                           template.property_id, result.completed, result.total)
            break

        now = utc_now_iso()
        room = template.build(number, id_factory(), now)
        try:
            save_room(store, room)
        except StoreTimeout as e:
            result.failures.append(RoomFailure(number, e.message))
            result.aborted = e.message
            logger.error("Provisioning for %s aborted on room %s: %s",
                         template.property_id, number, e.message)
            break
        except StoreError as e:
            result.failures.append(RoomFailure(number, e.message))
            logger.error("Could not create room %s in %s: %s",
                         number, template.property_id, e.message)
        else:
            result.created.append(room)

        if on_progress is not None:
            on_progress(result.completed, result.total)
        logger.info("Provisioning %s: %d/%d", template.property_id, result.completed, result.total)

    if result.succeeded and on_created is not None and result.created:
        on_created(result.created[0])
    return result
