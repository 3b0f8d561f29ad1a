# rooms.py
from itertools import islice

from flask import Blueprint, current_app, jsonify, request

from . import repository
from .errors import ValidationError, text_field
from .provisioning import (CancelToken, build_template, check_batch, check_occupied,
                           occupied_numbers, provision_rooms)
from .records import ROOM_STATUSES, AdditionalFee, PropertyConfig, RoomType, utc_now_iso
from .room_ranges import find_duplicates, iter_room_numbers
from .store import get_store, new_document_id

rooms_bp = Blueprint('rooms', __name__, url_prefix='/api/properties')


def _json_body():
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError('Expected a JSON object')
    return data


def _parse_numbers(expression: str):
    limit = current_app.config['ROOM_BATCH_LIMIT']
    numbers = list(islice(iter_room_numbers(expression), limit + 1))
    if len(numbers) > limit:
        raise ValidationError(f"At most {limit} rooms can be created at once")
    return numbers


def _id_list(data, key):
    ids = data.get(key) or []
    if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
        raise ValidationError(f"{key} must be a list of ids")
    return ids


# --- Properties ---
@rooms_bp.route('', methods=['GET'])
def list_properties():
    return jsonify(repository.list_properties(get_store()))


@rooms_bp.route('/<property_id>', methods=['GET'])
def get_property(property_id):
    doc = repository.get_property(get_store(), property_id)
    config = PropertyConfig.from_document(doc.get('config'))
    return jsonify({'id': property_id, 'name': doc.get('name', ''), 'config': config.to_dict()})


@rooms_bp.route('/<property_id>', methods=['PUT'])
def save_property(property_id):
    data = _json_body()
    name = text_field(data, 'name')
    if not name:
        raise ValidationError('Property name is required')

    cfg = data.get('config') or {}
    try:
        total_floors = int(cfg.get('total_floors', 1))
        reading = float(cfg.get('initial_meter_reading', 0) or 0)
        fees = tuple(
            AdditionalFee(id=str(item.get('id') or new_document_id()),
                          name=text_field(item, 'name'),
                          amount=float(item.get('amount') or 0))
            for item in cfg.get('additional_fees', [])
        )
    except (TypeError, ValueError, AttributeError):
        raise ValidationError('Invalid property configuration')
    if total_floors < 1:
        raise ValidationError('A property needs at least one floor')
    if reading < 0:
        raise ValidationError('Initial meter reading cannot be negative')
    if any(not fee.name for fee in fees):
        raise ValidationError('Every additional fee needs a name')

    config = PropertyConfig(total_floors=total_floors, initial_meter_reading=reading,
                            additional_fees=fees)
    repository.save_property(get_store(), property_id, name, config)
    current_app.logger.info("Saved property %s", property_id)
    return jsonify({'id': property_id, 'name': name, 'config': config.to_dict()})


# --- Room types ---
@rooms_bp.route('/<property_id>/room-types', methods=['GET'])
def list_room_types(property_id):
    room_types = repository.load_room_types(get_store(), property_id)
    default = repository.default_room_type(room_types)
    return jsonify({
        'room_types': [t.to_dict() for t in room_types],
        'default_id': default.id if default else None,
    })


def _room_type_from(data, room_type_id):
    name = text_field(data, 'name')
    if not name:
        raise ValidationError('Room type name is required')
    try:
        base_price = float(data.get('base_price', 0) or 0)
    except (TypeError, ValueError):
        raise ValidationError('Base price must be a number')
    if base_price < 0:
        raise ValidationError('Base price cannot be negative')
    return RoomType(id=room_type_id, name=name, base_price=base_price,
                    is_default=bool(data.get('is_default', False)))


@rooms_bp.route('/<property_id>/room-types', methods=['POST'])
def create_room_type(property_id):
    store = get_store()
    repository.get_property(store, property_id)
    room_type = _room_type_from(_json_body(), new_document_id())
    repository.save_room_type(store, property_id, room_type)
    return jsonify(room_type.to_dict()), 201


@rooms_bp.route('/<property_id>/room-types/<type_id>', methods=['PUT'])
def update_room_type(property_id, type_id):
    store = get_store()
    if type_id not in {t.id for t in repository.load_room_types(store, property_id)}:
        return jsonify({'error': 'Room type not found'}), 404
    room_type = _room_type_from(_json_body(), type_id)
    repository.save_room_type(store, property_id, room_type)
    return jsonify(room_type.to_dict())


# --- Rooms ---
@rooms_bp.route('/<property_id>/rooms', methods=['GET'])
def list_rooms(property_id):
    rooms = repository.load_rooms(get_store(), property_id)
    return jsonify([room.to_dict() for room in rooms])


@rooms_bp.route('/<property_id>/rooms/<room_id>', methods=['GET'])
def get_room(property_id, room_id):
    return jsonify(repository.get_room(get_store(), property_id, room_id).to_dict())


@rooms_bp.route('/<property_id>/rooms/preview', methods=['POST'])
def preview_rooms(property_id):
    data = _json_body()
    numbers = _parse_numbers(text_field(data, 'numbers'))
    occupied = occupied_numbers(repository.load_rooms(get_store(), property_id))
    return jsonify({
        'numbers': numbers,
        'repeated': find_duplicates(numbers),
        'occupied': [n for n in numbers if n in occupied],
    })


@rooms_bp.route('/<property_id>/rooms', methods=['POST'])
def create_rooms(property_id):
    data = _json_body()
    expression = text_field(data, 'numbers')
    if not expression:
        raise ValidationError('Please fill in the room numbers')

    numbers = _parse_numbers(expression)
    check_batch(numbers)

    store = get_store()
    config = repository.load_property_config(store, property_id)
    room_types = repository.load_room_types(store, property_id)
    default = repository.default_room_type(room_types)
    template = build_template(
        property_id, config, room_types,
        floor=data.get('floor', 1),
        room_type_id=text_field(data, 'room_type_id') or (default.id if default else ''),
        status=text_field(data, 'status', 'available'),
        initial_meter_reading=data.get('initial_meter_reading'),
        additional_service_ids=_id_list(data, 'additional_service_ids'),
    )

    # one snapshot per request; the check-then-write race is accepted
    check_occupied(numbers, repository.load_rooms(store, property_id))

    created = {}
    result = provision_rooms(
        store, numbers, template,
        on_created=lambda room: created.setdefault('room', room),
        cancel_token=CancelToken(timeout=current_app.config['PROVISIONING_DEADLINE']),
    )
    body = result.to_dict()
    if result.succeeded:
        body['room'] = created['room'].to_dict()
        current_app.logger.info("%s in property %s", body['message'], property_id)
        return jsonify(body), 201

    current_app.logger.error("Batch for property %s: %s", property_id, body['message'])
    return jsonify(body), 207


@rooms_bp.route('/<property_id>/rooms/<room_id>', methods=['PUT'])
def update_room(property_id, room_id):
    store = get_store()
    room = repository.get_room(store, property_id, room_id)
    data = _json_body()

    changes = {}
    if 'number' in data:
        number = text_field(data, 'number')
        if not number:
            raise ValidationError('Please fill in the room number')
        changes['number'] = number
    if 'room_type_id' in data:
        room_type_id = text_field(data, 'room_type_id')
        if room_type_id not in {t.id for t in repository.load_room_types(store, property_id)}:
            raise ValidationError('Please choose a valid room type')
        changes['room_type_id'] = room_type_id
    if 'floor' in data:
        total_floors = repository.load_property_config(store, property_id).total_floors
        try:
            floor = int(data['floor'])
        except (TypeError, ValueError):
            raise ValidationError('Floor must be a number')
        if not 1 <= floor <= total_floors:
            raise ValidationError(f"Floor must be between 1 and {total_floors}")
        changes['floor'] = floor
    if 'status' in data:
        status = text_field(data, 'status')
        if status not in ROOM_STATUSES:
            raise ValidationError(f"Invalid room status: {status}")
        changes['status'] = status

    room = repository.save_room(store, room.with_changes(updated_at=utc_now_iso(), **changes))
    return jsonify(room.to_dict())
