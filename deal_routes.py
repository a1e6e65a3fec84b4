import logging

from flask import Blueprint, jsonify

from auth import staff_required, admin_required
from errors import NotFoundError, field_error
from extensions import db
from models import Deal, DealStatus, DEAL_ROOM_TYPES
from validators import get_json_body, parse_date, parse_enum, parse_int, parse_text, raise_if_errors

logger = logging.getLogger(__name__)

deal_bp = Blueprint('deals', __name__, url_prefix='/api/deals')


def _get_deal_or_404(deal_id):
    deal = db.session.get(Deal, deal_id)
    if deal is None:
        raise NotFoundError('Deal not found')
    return deal


def _apply_deal_fields(deal, data, creating):
    errors = []
    fields = {}
    if creating or 'name' in data:
        fields['name'] = parse_text(data.get('name'), 'name', errors)
    if creating or 'discount' in data:
        discount = parse_int(data.get('discount'), 'discount', errors)
        if discount is not None and not 0 <= discount <= 100:
            errors.append(field_error('discount', 'Discount must be between 0 and 100'))
        fields['discount'] = discount
    if creating or 'roomType' in data:
        room_type = str(data.get('roomType') or '').upper()
        if room_type not in DEAL_ROOM_TYPES:
            errors.append(field_error('roomType', f"roomType must be one of {', '.join(DEAL_ROOM_TYPES)}"))
        fields['room_type'] = room_type
    if 'status' in data:
        fields['status'] = parse_enum(DealStatus, data.get('status'), 'status', errors)
    if 'endDate' in data:
        fields['end_date'] = parse_date(data.get('endDate'), 'endDate', errors, required=False)
    raise_if_errors(errors)

    for name, value in fields.items():
        setattr(deal, name, value)


@deal_bp.route('', methods=['GET'])
def list_deals():
    deals = Deal.query.order_by(Deal.created_at.desc(), Deal.id.desc()).all()
    return jsonify([deal.to_dict() for deal in deals])


@deal_bp.route('/<int:deal_id>', methods=['GET'])
def get_deal(deal_id):
    return jsonify(_get_deal_or_404(deal_id).to_dict())


@deal_bp.route('', methods=['POST'])
@staff_required
def create_deal():
    deal = Deal(status=DealStatus.ONGOING)
    _apply_deal_fields(deal, get_json_body(), creating=True)
    db.session.add(deal)
    db.session.commit()
    logger.info(f"[DEALS] Created deal {deal.name} ({deal.discount}% on {deal.room_type})")
    return jsonify(deal.to_dict()), 201


@deal_bp.route('/<int:deal_id>', methods=['PUT'])
@staff_required
def update_deal(deal_id):
    deal = _get_deal_or_404(deal_id)
    _apply_deal_fields(deal, get_json_body(), creating=False)
    db.session.commit()
    return jsonify(deal.to_dict())


@deal_bp.route('/<int:deal_id>', methods=['DELETE'])
@admin_required
def delete_deal(deal_id):
    deal = _get_deal_or_404(deal_id)
    # Existing bookings keep their already-computed prices
    for rate in deal.rates:
        rate.deal_id = None
    for booking in deal.bookings:
        booking.deal_id = None
    db.session.delete(deal)
    db.session.commit()
    logger.info(f"[DEALS] Deleted deal #{deal_id}")
    return jsonify({'message': 'Deal deleted'})
