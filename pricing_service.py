"""
Pricing for stays: night counting, deal eligibility and discounted totals.

All money is handled as Decimal and rounded to cents only at the end.
"""
import math
from datetime import timedelta
from decimal import Decimal, ROUND_HALF_UP

from models import DealStatus, DEAL_ALL_ROOM_TYPES

CENTS = Decimal('0.01')


def to_decimal(value):
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def to_money(value):
    return to_decimal(value).quantize(CENTS, rounding=ROUND_HALF_UP)


def count_nights(start, end):
    """Whole nights between two dates (or datetimes), rounded up"""
    return math.ceil((end - start) / timedelta(days=1))


def deal_applies(deal, room_type, today=None):
    """An ONGOING deal applies to ALL room types or to its exact type, until its end date"""
    if deal is None or deal.status != DealStatus.ONGOING:
        return False
    type_value = getattr(room_type, 'value', room_type)
    if deal.room_type not in (DEAL_ALL_ROOM_TYPES, type_value):
        return False
    if today is not None and deal.end_date is not None and deal.end_date < today:
        return False
    return True


def discounted_rate(rate, discount=None):
    rate = to_decimal(rate)
    if not discount:
        return rate
    return rate - rate * to_decimal(discount) / Decimal(100)


def calculate_total(rate, nights, discount=None):
    """
    Total price for ``nights`` nights at ``rate`` with an optional percentage discount.

    >>> calculate_total(100, 3, 10)
    Decimal('270.00')
    """
    if nights < 1:
        raise ValueError('A stay must be at least one night')
    return to_money(discounted_rate(rate, discount) * nights)


def quote(rate, start, end, deal=None, room_type=None, today=None):
    """Price a stay, applying ``deal`` only when it is eligible for ``room_type``"""
    nights = count_nights(start, end)
    applied = deal if deal_applies(deal, room_type, today) else None
    discount = applied.discount if applied else 0
    total = calculate_total(rate, nights, discount)
    return {
        'nights': nights,
        'baseRate': to_money(rate),
        'nightlyRate': to_money(discounted_rate(rate, discount)),
        'discount': discount,
        'deal': applied,
        'totalPrice': total,
    }


def rate_deal_price(rate, today=None):
    """Nightly price of a Rate row after its linked deal, or None without an eligible deal"""
    if rate.deal is None or rate.room is None:
        return None
    if not deal_applies(rate.deal, rate.room.type, today):
        return None
    return to_money(discounted_rate(rate.rate, rate.deal.discount))
