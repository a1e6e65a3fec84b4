import logging

from flask import Blueprint, jsonify

from auth import staff_required
from errors import field_error
from extensions import db
from hotel_time import is_valid_timezone
from models import HotelSettings
from validators import get_json_body, parse_email, parse_text, raise_if_errors

logger = logging.getLogger(__name__)

settings_bp = Blueprint('settings', __name__, url_prefix='/api/settings')

# JSON key -> column
TEXT_FIELDS = {
    'name': 'name',
    'address': 'address',
    'phone': 'phone',
    'currency': 'currency',
}


@settings_bp.route('/hotel/public', methods=['GET'])
def public_hotel_settings():
    return jsonify(HotelSettings.get().to_public_dict())


@settings_bp.route('/hotel', methods=['GET'])
@staff_required
def get_hotel_settings():
    return jsonify(HotelSettings.get().to_dict())


@settings_bp.route('/hotel', methods=['PUT'])
@staff_required
def update_hotel_settings():
    data = get_json_body()
    settings = HotelSettings.get()
    errors = []
    updates = {}

    for key, column in TEXT_FIELDS.items():
        if key in data:
            updates[column] = parse_text(data.get(key), key, errors, required=(key == 'name')) or ''
    if 'contactEmail' in data:
        updates['contact_email'] = parse_email(data.get('contactEmail'), 'contactEmail', errors,
                                               required=False) or ''
    if 'timezone' in data:
        timezone = data.get('timezone') or None
        if timezone is not None and not is_valid_timezone(timezone):
            errors.append(field_error('timezone', 'Unknown timezone'))
        updates['timezone'] = timezone
    raise_if_errors(errors)

    for column, value in updates.items():
        setattr(settings, column, value)
    db.session.commit()
    logger.info(f"[SETTINGS] Hotel settings updated: {', '.join(sorted(updates))}")
    return jsonify({'message': 'Settings updated successfully', 'settings': settings.to_dict()})
