"""
Room availability: overlap checks, next free date and free-room counts.

Date ranges are half-open: a stay ending on the 10th does not clash with one
starting on the 10th.
"""
from extensions import db
from models import Booking, Room, RoomType, ACTIVE_BOOKING_STATUSES

# How many times next_available_date moves the range forward before giving up
MAX_ATTEMPTS = 60


def overlapping_bookings(room_id, start, end, exclude_id=None):
    """PENDING/CONFIRMED bookings of the room that intersect [start, end)"""
    query = Booking.query.filter(
        Booking.room_id == room_id,
        Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        Booking.start_date < end,
        Booking.end_date > start,
    )
    if exclude_id is not None:
        query = query.filter(Booking.id != exclude_id)
    return query.order_by(Booking.start_date).all()


def is_available(room_id, start, end):
    return not overlapping_bookings(room_id, start, end)


def next_available_date(room_id, start, end, max_attempts=MAX_ATTEMPTS):
    """
    First start date from ``start`` onwards where a stay of the same length fits.

    Jumps to the latest end date among the clashing bookings each round, so the
    answer is best-effort rather than the earliest possible gap. Returns None
    when nothing fits within ``max_attempts`` jumps.
    """
    length = end - start
    candidate = start
    for _ in range(max_attempts):
        conflicts = overlapping_bookings(room_id, candidate, candidate + length)
        if not conflicts:
            return candidate
        candidate = max(b.end_date for b in conflicts)
    return None


def check_availability(room_id, start, end):
    if is_available(room_id, start, end):
        return {'available': True, 'nextAvailable': None}
    next_date = next_available_date(room_id, start, end)
    return {
        'available': False,
        'nextAvailable': next_date.isoformat() if next_date else None,
    }


def available_rooms(start, end, room_type=None):
    """In-service rooms with no active booking in [start, end)"""
    query = Room.query
    if room_type is not None:
        query = query.filter(Room.type == room_type)
    return [
        room for room in query.order_by(Room.room_number).all()
        if room.in_service and is_available(room.id, start, end)
    ]


def count_available_rooms(room_type, today):
    """Rooms of the type minus active bookings occupying one of them today, never below zero"""
    if not isinstance(room_type, RoomType):
        room_type = RoomType(room_type)
    total = Room.query.filter(Room.type == room_type).count()
    occupied = (
        db.session.query(Booking.room_id)
        .join(Room, Booking.room_id == Room.id)
        .filter(
            Room.type == room_type,
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
            Booking.start_date <= today,
            Booking.end_date > today,
        )
        .distinct()
        .count()
    )
    return max(total - occupied, 0)
