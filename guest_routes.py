import logging

from flask import Blueprint, jsonify
from flask_login import current_user, login_required

from auth import staff_required
from booking_routes import parse_status_change
from booking_service import booking_service
from errors import NotFoundError
from extensions import db
from models import Booking, Guest, Role
from validators import get_json_body

logger = logging.getLogger(__name__)

guest_bp = Blueprint('guests', __name__, url_prefix='/api/guests')


@guest_bp.route('', methods=['GET'])
@login_required
def list_guests():
    """Staff see every guest, users only the guests of their own bookings"""
    query = Guest.query.join(Booking, Guest.booking_id == Booking.id)
    if current_user.role == Role.USER:
        query = query.filter(Booking.user_id == current_user.id)
    guests = query.order_by(Guest.created_at.desc(), Guest.id.desc()).all()
    return jsonify([guest.to_dict() for guest in guests])


@guest_bp.route('/<int:guest_id>/status', methods=['PATCH'])
@staff_required
def update_guest_status(guest_id):
    """Front desk status change: confirm, cancel or check out (possibly early)"""
    guest = db.session.get(Guest, guest_id)
    if guest is None:
        raise NotFoundError('Guest not found')

    status, payment_status, early_checkout = parse_status_change(get_json_body())
    booking, refund = booking_service.transition(
        guest.booking, status, payment_status=payment_status, early_checkout_date=early_checkout)

    logger.info(f"[GUESTS] Guest #{guest.id} now {booking.status.value}")
    response = {'message': 'Guest status updated successfully', 'guest': guest.to_dict()}
    if refund is not None:
        response['refund'] = refund
    return jsonify(response)
