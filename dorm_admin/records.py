# records.py
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Optional, Tuple

ROOM_STATUSES = ('available', 'occupied', 'maintenance')


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Record:
    """Immutable value; edits go through with_changes and replace the whole value."""

    def with_changes(self, **changes):
        return replace(self, **changes)


@dataclass(frozen=True)
class AdditionalFee(Record):
    id: str
    name: str
    amount: float = 0.0

    @classmethod
    def from_document(cls, doc: dict):
        return cls(id=str(doc.get('id', '')), name=doc.get('name', ''),
                   amount=float(doc.get('amount') or 0))

    def to_document(self) -> dict:
        return {'id': self.id, 'name': self.name, 'amount': self.amount}

    to_dict = to_document


@dataclass(frozen=True)
class PropertyConfig(Record):
    total_floors: int = 1
    initial_meter_reading: float = 0.0
    additional_fees: Tuple[AdditionalFee, ...] = ()

    @classmethod
    def from_document(cls, doc: Optional[dict]):
        doc = doc or {}
        items = (doc.get('additionalFees') or {}).get('items') or []
        return cls(
            total_floors=int(doc.get('totalFloors') or 1),
            initial_meter_reading=float(doc.get('initialMeterReading') or 0),
            additional_fees=tuple(AdditionalFee.from_document(i) for i in items),
        )

    def to_document(self) -> dict:
        return {
            'totalFloors': self.total_floors,
            'initialMeterReading': self.initial_meter_reading,
            'additionalFees': {'items': [f.to_document() for f in self.additional_fees]},
        }

    def fee_ids(self):
        return {f.id for f in self.additional_fees}

    def to_dict(self) -> dict:
        return {
            'total_floors': self.total_floors,
            'initial_meter_reading': self.initial_meter_reading,
            'additional_fees': [f.to_dict() for f in self.additional_fees],
        }


@dataclass(frozen=True)
class RoomType(Record):
    id: str
    name: str
    base_price: float = 0.0
    is_default: bool = False

    @classmethod
    def from_document(cls, doc_id: str, doc: dict):
        return cls(
            id=doc_id,
            name=doc.get('name', ''),
            base_price=float(doc.get('basePrice') or 0),
            is_default=bool(doc.get('isDefault', False)),
        )

    def to_document(self) -> dict:
        return {'name': self.name, 'basePrice': self.base_price, 'isDefault': self.is_default}

    def to_dict(self) -> dict:
        return {'id': self.id, 'name': self.name, 'base_price': self.base_price,
                'is_default': self.is_default}


@dataclass(frozen=True)
class Room(Record):
    id: str
    property_id: str
    number: str
    floor: int
    room_type_id: str
    status: str = 'available'
    initial_meter_reading: float = 0.0
    additional_service_ids: frozenset = field(default_factory=frozenset)
    created_at: str = ''
    updated_at: str = ''

    @property
    def is_occupied(self) -> bool:
        return self.status == 'occupied'

    @classmethod
    def from_document(cls, doc_id: str, doc: dict):
        return cls(
            id=doc_id,
            property_id=doc.get('dormitoryId') or doc.get('propertyId', ''),
            number=str(doc.get('number', '')),
            floor=int(doc.get('floor') or 1),
            room_type_id=doc.get('roomType', ''),
            status=doc.get('status', 'available'),
            initial_meter_reading=float(doc.get('initialMeterReading') or 0),
            additional_service_ids=frozenset(doc.get('additionalServices') or ()),
            created_at=doc.get('createdAt', ''),
            updated_at=doc.get('updatedAt', ''),
        )

    def to_document(self) -> dict:
        return {
            'id': self.id,
            'propertyId': self.property_id,
            'number': self.number,
            'floor': self.floor,
            'roomType': self.room_type_id,
            'status': self.status,
            'initialMeterReading': self.initial_meter_reading,
            'additionalServices': sorted(self.additional_service_ids),
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'property_id': self.property_id,
            'number': self.number,
            'floor': self.floor,
            'room_type_id': self.room_type_id,
            'status': self.status,
            'initial_meter_reading': self.initial_meter_reading,
            'additional_service_ids': sorted(self.additional_service_ids),
            'created_at': self.created_at,
            'updated_at': self.updated_at,
        }


@dataclass(frozen=True)
class PaymentProfile(Record):
    property_id: str
    account_name: str = ''
    account_number: str = ''
    is_active: bool = False
    qr_code_url: Optional[str] = None
    updated_at: str = ''

    @classmethod
    def from_document(cls, doc: dict):
        return cls(
            property_id=doc.get('dormitoryId') or doc.get('propertyId', ''),
            account_name=doc.get('accountName', ''),
            account_number=doc.get('accountNumber', ''),
            is_active=bool(doc.get('isActive', False)),
            qr_code_url=doc.get('qrCodeUrl'),
            updated_at=doc.get('updatedAt', ''),
        )

    def to_document(self) -> dict:
        doc = {
            'propertyId': self.property_id,
            'accountName': self.account_name,
            'accountNumber': self.account_number,
            'isActive': self.is_active,
            'updatedAt': self.updated_at,
        }
        if self.qr_code_url:
            doc['qrCodeUrl'] = self.qr_code_url
        return doc

    def to_dict(self) -> dict:
        return {
            'property_id': self.property_id,
            'account_name': self.account_name,
            'account_number': self.account_number,
            'is_active': self.is_active,
            'qr_code_url': self.qr_code_url,
            'updated_at': self.updated_at,
        }
