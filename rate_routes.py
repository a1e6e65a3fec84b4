import logging

from flask import Blueprint, jsonify
from flask_login import login_required

from auth import staff_required, admin_required
from availability_service import count_available_rooms
from errors import NotFoundError, ValidationError, field_error
from extensions import db
from hotel_time import hotel_today
from models import Deal, Rate, RefundPolicy, Room
from pricing_service import deal_applies, rate_deal_price
from validators import get_json_body, parse_decimal, parse_enum, parse_int, raise_if_errors

logger = logging.getLogger(__name__)

rate_bp = Blueprint('rates', __name__, url_prefix='/api/rates')


def rate_to_dict(rate, today, availability_cache=None):
    cache = availability_cache if availability_cache is not None else {}
    room_type = rate.room.type
    if room_type not in cache:
        cache[room_type] = count_available_rooms(room_type, today)
    return rate.to_dict(deal_price=rate_deal_price(rate, today), available_rooms=cache[room_type])


def _get_rate_or_404(rate_id):
    rate = db.session.get(Rate, rate_id)
    if rate is None:
        raise NotFoundError('Rate not found')
    return rate


def _apply_rate_fields(rate, data, creating, today):
    errors = []
    if creating or 'roomId' in data:
        room_id = parse_int(data.get('roomId'), 'roomId', errors)
        if room_id is not None:
            room = db.session.get(Room, room_id)
            if room is None:
                errors.append(field_error('roomId', 'Room not found'))
            else:
                rate.room = room
    if creating or 'policy' in data:
        policy = parse_enum(RefundPolicy, data.get('policy'), 'policy', errors)
        if policy is not None:
            rate.policy = policy
    if creating or 'rate' in data:
        amount = parse_decimal(data.get('rate'), 'rate', errors, minimum=0)
        if amount is not None:
            rate.rate = amount
    if 'dealId' in data:
        deal_id = parse_int(data.get('dealId'), 'dealId', errors, required=False)
        rate.deal = db.session.get(Deal, deal_id) if deal_id is not None else None
        if deal_id is not None and rate.deal is None:
            errors.append(field_error('dealId', 'Deal not found'))
    raise_if_errors(errors)

    if rate.deal is not None and not deal_applies(rate.deal, rate.room.type, today):
        raise ValidationError('Validation error', [
            field_error('dealId', 'Deal is not active for this room type')])

    with db.session.no_autoflush:
        duplicate = Rate.query.filter(Rate.room_id == rate.room.id, Rate.policy == rate.policy)
        if rate.id is not None:
            duplicate = duplicate.filter(Rate.id != rate.id)
        if duplicate.first():
            raise ValidationError('This room already has a rate for that policy')


@rate_bp.route('', methods=['GET'])
@login_required
def list_rates():
    today = hotel_today()
    cache = {}
    rates = Rate.query.order_by(Rate.room_id, Rate.id).all()
    return jsonify([rate_to_dict(rate, today, cache) for rate in rates])


@rate_bp.route('', methods=['POST'])
@staff_required
def create_rate():
    today = hotel_today()
    rate = Rate()
    _apply_rate_fields(rate, get_json_body(), creating=True, today=today)
    db.session.add(rate)
    db.session.commit()
    logger.info(f"[RATES] Created {rate.policy.value} rate for room {rate.room.room_number}")
    return jsonify(rate_to_dict(rate, today)), 201


@rate_bp.route('/<int:rate_id>', methods=['PUT'])
@staff_required
def update_rate(rate_id):
    today = hotel_today()
    rate = _get_rate_or_404(rate_id)
    _apply_rate_fields(rate, get_json_body(), creating=False, today=today)
    db.session.commit()
    return jsonify(rate_to_dict(rate, today))


@rate_bp.route('/<int:rate_id>', methods=['DELETE'])
@admin_required
def delete_rate(rate_id):
    rate = _get_rate_or_404(rate_id)
    db.session.delete(rate)
    db.session.commit()
    return jsonify({'message': 'Rate deleted'})
