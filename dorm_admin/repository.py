# repository.py
from typing import List, Optional

from .errors import NotFoundError
from .records import PaymentProfile, PropertyConfig, Room, RoomType


def property_path(property_id: str) -> str:
    return f"properties/{property_id}"


def rooms_path(property_id: str) -> str:
    return f"{property_path(property_id)}/rooms"


def room_types_path(property_id: str) -> str:
    return f"{property_path(property_id)}/roomTypes"


def promptpay_path(property_id: str) -> str:
    return f"{property_path(property_id)}/settings/promptpay"


# --- Properties ---
def list_properties(store) -> List[dict]:
    return [
        {'id': doc_id, 'name': doc.get('name', ''),
         'config': PropertyConfig.from_document(doc.get('config')).to_dict()}
        for doc_id, doc in store.query_collection('properties')
    ]


def get_property(store, property_id: str) -> dict:
    doc = store.get_document(property_path(property_id))
    if doc is None:
        raise NotFoundError('Property not found')
    return doc


def load_property_config(store, property_id: str) -> PropertyConfig:
    return PropertyConfig.from_document(get_property(store, property_id).get('config'))


def save_property(store, property_id: str, name: str, config: PropertyConfig):
    store.set_document(property_path(property_id),
                       {'name': name, 'config': config.to_document()}, merge=True)


# --- Room types ---
def load_room_types(store, property_id: str) -> List[RoomType]:
    return [RoomType.from_document(doc_id, doc)
            for doc_id, doc in store.query_collection(room_types_path(property_id))]


def default_room_type(room_types: List[RoomType]) -> Optional[RoomType]:
    for room_type in room_types:
        if room_type.is_default:
            return room_type
    return room_types[0] if room_types else None


def save_room_type(store, property_id: str, room_type: RoomType):
    store.set_document(f"{room_types_path(property_id)}/{room_type.id}", room_type.to_document())


# --- Rooms ---
def load_rooms(store, property_id: str) -> List[Room]:
    return [Room.from_document(doc_id, doc)
            for doc_id, doc in store.query_collection(rooms_path(property_id))]


def get_room(store, property_id: str, room_id: str) -> Room:
    doc = store.get_document(f"{rooms_path(property_id)}/{room_id}")
    if doc is None:
        raise NotFoundError('Room not found')
    return Room.from_document(room_id, doc)


def save_room(store, room: Room) -> Room:
    store.set_document(f"{rooms_path(room.property_id)}/{room.id}", room.to_document())
    return room


# --- PromptPay ---
def load_payment_profile(store, property_id: str) -> Optional[PaymentProfile]:
    doc = store.get_document(promptpay_path(property_id))
    if doc is None:
        return None
    return PaymentProfile.from_document(doc).with_changes(property_id=property_id)


def save_payment_profile(store, profile: PaymentProfile):
    store.set_document(promptpay_path(profile.property_id), profile.to_document())
