import logging

from flask import Blueprint, request, jsonify
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError

from auth import staff_required, admin_required
from availability_service import check_availability
from booking_service import booking_service, parse_stay
from errors import ApiError, ForbiddenError, NotFoundError
from extensions import db
from hotel_time import hotel_today
from models import Booking, BookingStatus, Deal, PaymentStatus, Rate, Room, Role
from validators import get_json_body, parse_date, parse_enum, parse_int, raise_if_errors

logger = logging.getLogger(__name__)

booking_bp = Blueprint('bookings', __name__, url_prefix='/api/bookings')


def get_booking_or_404(booking_id):
    booking = db.session.get(Booking, booking_id)
    if booking is None:
        raise NotFoundError('Booking not found')
    return booking


def check_booking_access(booking):
    """Regular users only reach their own bookings"""
    if current_user.role == Role.USER and booking.user_id != current_user.id:
        raise ForbiddenError('Access denied')


def parse_status_change(data):
    errors = []
    status = parse_enum(BookingStatus, data.get('status'), 'status', errors)
    payment_status = parse_enum(PaymentStatus, data.get('paymentStatus'), 'paymentStatus',
                                errors, required=False)
    early_checkout = parse_date(data.get('earlyCheckoutDate'), 'earlyCheckoutDate', errors,
                                required=False)
    raise_if_errors(errors)
    return status, payment_status, early_checkout


@booking_bp.route('', methods=['GET'])
@login_required
def list_bookings():
    errors = []
    status = parse_enum(BookingStatus, request.args.get('status'), 'status', errors, required=False)
    room_id = parse_int(request.args.get('roomId'), 'roomId', errors, required=False)
    user_id = parse_int(request.args.get('userId'), 'userId', errors, required=False)
    start = parse_date(request.args.get('startDate'), 'startDate', errors, required=False)
    end = parse_date(request.args.get('endDate'), 'endDate', errors, required=False)
    raise_if_errors(errors)

    query = Booking.query
    if current_user.role == Role.USER:
        query = query.filter(Booking.user_id == current_user.id)
    elif user_id is not None:
        query = query.filter(Booking.user_id == user_id)
    if status:
        query = query.filter(Booking.status == status)
    if room_id is not None:
        query = query.filter(Booking.room_id == room_id)
    if start:
        query = query.filter(Booking.start_date >= start)
    if end:
        query = query.filter(Booking.start_date <= end)

    bookings = query.order_by(Booking.created_at.desc(), Booking.id.desc()).all()
    return jsonify([b.to_dict() for b in bookings])


@booking_bp.route('/availability', methods=['GET'])
def availability():
    """Whether a room is free for a stay, with the next free start date if not"""
    errors = []
    room_id = parse_int(request.args.get('roomId'), 'roomId', errors)
    start, end = parse_stay(request.args, errors)
    raise_if_errors(errors)
    if db.session.get(Room, room_id) is None:
        raise NotFoundError('Room not found')
    return jsonify(check_availability(room_id, start, end))


@booking_bp.route('/quote', methods=['GET'])
def price_quote():
    """Price a prospective stay, with the deal applied when eligible"""
    errors = []
    room_id = parse_int(request.args.get('roomId'), 'roomId', errors)
    start, end = parse_stay(request.args, errors)
    deal_id = parse_int(request.args.get('dealId'), 'dealId', errors, required=False)
    rate_id = parse_int(request.args.get('rateId'), 'rateId', errors, required=False)
    raise_if_errors(errors)

    room = db.session.get(Room, room_id)
    if room is None:
        raise NotFoundError('Room not found')
    rate = db.session.get(Rate, rate_id) if rate_id is not None else None
    if rate is not None and rate.room_id != room.id:
        rate = None
    deal = db.session.get(Deal, deal_id) if deal_id is not None else None

    priced = booking_service.price_stay(room, start, end, rate=rate, deal=deal, today=hotel_today())
    return jsonify({
        'roomId': room.id,
        'nights': priced['nights'],
        'baseRate': float(priced['baseRate']),
        'nightlyRate': float(priced['nightlyRate']),
        'discount': priced['discount'],
        'dealId': priced['deal'].id if priced['deal'] else None,
        'totalPrice': float(priced['totalPrice']),
    })


@booking_bp.route('/calendar', methods=['GET'])
@staff_required
def front_desk_calendar():
    """Rooms with the bookings that touch the [from, to) window, for the front desk"""
    errors = []
    start, end = parse_stay(request.args, errors, start_field='from', end_field='to')
    raise_if_errors(errors)

    bookings = Booking.query.filter(
        Booking.start_date < end,
        Booking.end_date > start,
        Booking.status != BookingStatus.CANCELLED,
    ).order_by(Booking.start_date).all()

    by_room = {}
    for booking in bookings:
        by_room.setdefault(booking.room_id, []).append(booking)

    rooms = Room.query.order_by(Room.room_number).all()
    return jsonify({
        'from': start.isoformat(),
        'to': end.isoformat(),
        'rooms': [{
            'room': room.to_summary(),
            'bookings': [{
                'id': b.id,
                'guestName': b.customer_full_name,
                'startDate': b.start_date.isoformat(),
                'endDate': b.end_date.isoformat(),
                'status': b.status.value,
                'paymentStatus': b.payment_status.value,
            } for b in by_room.get(room.id, [])],
        } for room in rooms],
    })


@booking_bp.route('/<int:booking_id>', methods=['GET'])
@login_required
def get_booking(booking_id):
    booking = get_booking_or_404(booking_id)
    check_booking_access(booking)
    return jsonify(booking.to_dict())


@booking_bp.route('', methods=['POST'])
@login_required
def create_booking():
    try:
        booking = booking_service.create_booking(get_json_body(), user=current_user)
    except (ApiError, IntegrityError):
        raise
    except Exception:
        logger.exception("[BOOKING] Failed to create booking")
        return jsonify({'error': 'Failed to create booking'}), 500
    return jsonify({'message': 'Booking created successfully', 'booking': booking.to_dict()}), 201


@booking_bp.route('/<int:booking_id>/status', methods=['PATCH'])
@staff_required
def update_booking_status(booking_id):
    booking = get_booking_or_404(booking_id)
    status, payment_status, early_checkout = parse_status_change(get_json_body())
    booking, refund = booking_service.transition(
        booking, status, payment_status=payment_status, early_checkout_date=early_checkout)

    response = {'message': 'Booking status updated successfully', 'booking': booking.to_dict()}
    if refund is not None:
        response['refund'] = refund
    return jsonify(response)


@booking_bp.route('/<int:booking_id>/cancel', methods=['PATCH'])
@login_required
def cancel_booking(booking_id):
    booking = get_booking_or_404(booking_id)
    check_booking_access(booking)
    booking, refund = booking_service.cancel(booking)
    return jsonify({
        'message': 'Booking cancelled successfully',
        'booking': booking.to_dict(),
        'refund': refund,
    })


@booking_bp.route('/<int:booking_id>/refund', methods=['GET'])
@login_required
def get_refund(booking_id):
    """The refund stored when the booking was cancelled or checked out early"""
    booking = get_booking_or_404(booking_id)
    check_booking_access(booking)
    if booking.refund_record is None:
        raise NotFoundError('No refund recorded for this booking')
    return jsonify({'bookingId': booking.id, 'status': booking.status.value,
                    'refund': booking.refund_record})


@booking_bp.route('/<int:booking_id>/refund/preview', methods=['GET'])
@staff_required
def preview_refund(booking_id):
    booking = get_booking_or_404(booking_id)
    errors = []
    early_checkout = parse_date(request.args.get('earlyCheckoutDate'), 'earlyCheckoutDate',
                                errors, required=False)
    raise_if_errors(errors)
    return jsonify({'bookingId': booking.id,
                    'refund': booking_service.preview_refund(booking, early_checkout)})


@booking_bp.route('/<int:booking_id>', methods=['DELETE'])
@admin_required
def delete_booking(booking_id):
    booking = get_booking_or_404(booking_id)
    booking_service.delete_booking(booking)
    return jsonify({'message': 'Booking deleted successfully'})
