import logging

from flask import Blueprint, request, jsonify
from sqlalchemy.exc import IntegrityError

from auth import staff_required, admin_required
from availability_service import available_rooms
from booking_service import parse_stay
from errors import ApiError, NotFoundError, ValidationError, field_error
from extensions import db
from models import (Room, RoomType, RoomStatus, Cleanliness, Booking,
                    ACTIVE_BOOKING_STATUSES)
from validators import (get_json_body, parse_decimal, parse_enum, parse_int, parse_text,
                        raise_if_errors)

logger = logging.getLogger(__name__)

room_bp = Blueprint('rooms', __name__, url_prefix='/api/rooms')


def _get_room_or_404(room_id):
    room = db.session.get(Room, room_id)
    if room is None:
        raise NotFoundError('Room not found')
    return room


def _parse_features(value, errors):
    if value is None:
        return None
    if isinstance(value, str):
        return [f.strip() for f in value.split(',') if f.strip()]
    if isinstance(value, list) and all(isinstance(f, str) for f in value):
        return value
    errors.append(field_error('features', 'features must be a list of strings'))
    return None


def _apply_room_fields(room, data, creating):
    errors = []
    fields = {}
    if creating or 'roomNumber' in data:
        fields['room_number'] = parse_text(data.get('roomNumber'), 'roomNumber', errors)
    if creating or 'type' in data:
        fields['type'] = parse_enum(RoomType, data.get('type'), 'type', errors)
    if creating or 'price' in data:
        fields['price'] = parse_decimal(data.get('price'), 'price', errors, minimum=0)
    if 'floor' in data:
        fields['floor'] = parse_int(data.get('floor'), 'floor', errors, required=False)
    if 'capacity' in data:
        fields['capacity'] = parse_int(data.get('capacity'), 'capacity', errors, required=False)
    if 'description' in data:
        fields['description'] = data.get('description')
    if 'imageUrl' in data:
        fields['image_url'] = data.get('imageUrl')
    if 'status' in data:
        fields['status'] = parse_enum(RoomStatus, data.get('status'), 'status', errors)
    if 'cleanliness' in data:
        fields['cleanliness'] = parse_enum(Cleanliness, data.get('cleanliness'), 'cleanliness', errors)
    if 'features' in data:
        fields['features'] = _parse_features(data.get('features'), errors)
    raise_if_errors(errors)

    for name, value in fields.items():
        if value is not None or name in ('description', 'image_url', 'floor'):
            setattr(room, name, value)

    with db.session.no_autoflush:
        duplicate = Room.query.filter(Room.room_number == room.room_number)
        if room.id is not None:
            duplicate = duplicate.filter(Room.id != room.id)
        if duplicate.first():
            raise ValidationError('Room number already exists')


@room_bp.route('', methods=['GET'])
def list_rooms():
    """Public room list with optional type/status/price filters"""
    errors = []
    query = Room.query
    room_type = parse_enum(RoomType, request.args.get('type'), 'type', errors, required=False)
    status = parse_enum(RoomStatus, request.args.get('status'), 'status', errors, required=False)
    min_price = parse_decimal(request.args.get('minPrice'), 'minPrice', errors, required=False)
    max_price = parse_decimal(request.args.get('maxPrice'), 'maxPrice', errors, required=False)
    raise_if_errors(errors)

    if room_type:
        query = query.filter(Room.type == room_type)
    if status:
        query = query.filter(Room.status == status)
    if min_price is not None:
        query = query.filter(Room.price >= min_price)
    if max_price is not None:
        query = query.filter(Room.price <= max_price)

    rooms = query.order_by(Room.room_number).all()
    return jsonify([room.to_dict() for room in rooms])


@room_bp.route('/available', methods=['GET'])
def list_available_rooms():
    errors = []
    start, end = parse_stay(request.args, errors)
    room_type = parse_enum(RoomType, request.args.get('type'), 'type', errors, required=False)
    raise_if_errors(errors)
    rooms = available_rooms(start, end, room_type)
    return jsonify([room.to_dict() for room in rooms])


@room_bp.route('/<int:room_id>', methods=['GET'])
def get_room(room_id):
    return jsonify(_get_room_or_404(room_id).to_dict())


@room_bp.route('', methods=['POST'])
@staff_required
def create_room():
    data = get_json_body()
    room = Room(status=RoomStatus.AVAILABLE, cleanliness=Cleanliness.CLEAN, features=[])
    _apply_room_fields(room, data, creating=True)
    try:
        db.session.add(room)
        db.session.commit()
    except (ApiError, IntegrityError):
        raise
    except Exception:
        db.session.rollback()
        logger.exception("[ROOMS] Failed to create room")
        return jsonify({'error': 'Failed to create room'}), 500

    logger.info(f"[ROOMS] Created room {room.room_number}")
    return jsonify({'message': 'Room created successfully', 'room': room.to_dict()}), 201


@room_bp.route('/<int:room_id>', methods=['PUT'])
@staff_required
def update_room(room_id):
    room = _get_room_or_404(room_id)
    _apply_room_fields(room, get_json_body(), creating=False)
    try:
        db.session.commit()
    except IntegrityError:
        raise
    except Exception:
        db.session.rollback()
        logger.exception(f"[ROOMS] Failed to update room {room_id}")
        return jsonify({'error': 'Failed to update room'}), 500
    return jsonify({'message': 'Room updated successfully', 'room': room.to_dict()})


@room_bp.route('/<int:room_id>', methods=['DELETE'])
@admin_required
def delete_room(room_id):
    room = _get_room_or_404(room_id)
    active = Booking.query.filter(
        Booking.room_id == room.id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
    ).first()
    if active:
        raise ValidationError('Cannot delete room with active bookings')

    # Past bookings keep the room row alive
    if room.bookings.first() is not None:
        raise ValidationError('Cannot delete room with booking history; mark it OUT_OF_ORDER instead')

    db.session.delete(room)
    db.session.commit()
    logger.info(f"[ROOMS] Deleted room {room.room_number}")
    return jsonify({'message': 'Room deleted successfully'})
