from flask import Blueprint, request, jsonify

from auth import staff_required
from models import Booking, BookingStatus
from validators import parse_enum, raise_if_errors

refund_bp = Blueprint('refunds', __name__, url_prefix='/api/refunds')


@refund_bp.route('', methods=['GET'])
@staff_required
def list_refunds():
    """Every stored refund outcome, newest first"""
    errors = []
    status = parse_enum(BookingStatus, request.args.get('status'), 'status', errors, required=False)
    raise_if_errors(errors)

    query = Booking.query.filter(Booking.refund_amount.isnot(None))
    if status:
        query = query.filter(Booking.status == status)
    if request.args.get('refundable') is not None:
        query = query.filter(Booking.refund_refundable == (request.args.get('refundable') == 'true'))

    bookings = query.order_by(Booking.refunded_at.desc(), Booking.id.desc()).all()
    return jsonify([{
        'bookingId': b.id,
        'guestName': b.customer_full_name,
        'roomNumber': b.room.room_number if b.room else None,
        'status': b.status.value,
        'paymentStatus': b.payment_status.value,
        'finalPrice': float(b.final_price),
        'refundedAt': b.refunded_at.isoformat() if b.refunded_at else None,
        'refund': b.refund_record,
    } for b in bookings])
