import logging
from datetime import datetime

import pytz
from flask import current_app

from models import HotelSettings

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = 'Europe/Belgrade'


def hotel_timezone():
    """Timezone from hotel settings, falling back to the HOTEL_TIMEZONE config value"""
    settings = HotelSettings.query.order_by(HotelSettings.id).first()
    name = settings.timezone if settings and settings.timezone else None
    name = name or current_app.config.get('HOTEL_TIMEZONE') or DEFAULT_TIMEZONE
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError:
        logger.warning(f"[TIME] Unknown timezone {name!r}, using {DEFAULT_TIMEZONE}")
        return pytz.timezone(DEFAULT_TIMEZONE)


def hotel_now():
    return pytz.utc.localize(datetime.utcnow()).astimezone(hotel_timezone())


def hotel_today():
    """The current calendar date at the hotel"""
    return hotel_now().date()


def is_valid_timezone(name):
    return name in pytz.all_timezones_set
