import unittest
from datetime import date, datetime
from decimal import Decimal
from types import SimpleNamespace

from models import DealStatus, RoomType
from pricing_service import calculate_total, count_nights, deal_applies, quote, to_money


def make_deal(discount=10, room_type='ALL', status=DealStatus.ONGOING, end_date=None):
    return SimpleNamespace(id=1, discount=discount, room_type=room_type, status=status,
                           end_date=end_date)


class TestCalculateTotal(unittest.TestCase):

    def test_discounted_total(self):
        self.assertEqual(calculate_total(100, 3, 10), Decimal('270.00'))

    def test_no_discount(self):
        self.assertEqual(calculate_total('80.00', 2), Decimal('160.00'))

    def test_rounds_to_cents(self):
        self.assertEqual(calculate_total('99.99', 3, 15), Decimal('254.97'))

    def test_zero_nights_rejected(self):
        with self.assertRaises(ValueError):
            calculate_total(100, 0)

    def test_to_money_rounds_half_up(self):
        self.assertEqual(to_money('2.005'), Decimal('2.01'))


class TestCountNights(unittest.TestCase):

    def test_whole_days(self):
        self.assertEqual(count_nights(date(2030, 5, 1), date(2030, 5, 4)), 3)

    def test_partial_day_rounds_up(self):
        self.assertEqual(count_nights(datetime(2030, 5, 1, 14), datetime(2030, 5, 3, 11)), 2)


class TestDealApplies(unittest.TestCase):

    def test_all_room_types(self):
        self.assertTrue(deal_applies(make_deal(), RoomType.SUITE, date(2030, 1, 1)))

    def test_matching_room_type(self):
        self.assertTrue(deal_applies(make_deal(room_type='SUITE'), RoomType.SUITE))

    def test_other_room_type(self):
        self.assertFalse(deal_applies(make_deal(room_type='SUITE'), RoomType.SINGLE))

    def test_inactive_deal(self):
        self.assertFalse(deal_applies(make_deal(status=DealStatus.INACTIVE), RoomType.SINGLE))

    def test_expired_deal(self):
        deal = make_deal(end_date=date(2030, 1, 1))
        self.assertFalse(deal_applies(deal, RoomType.SINGLE, date(2030, 1, 2)))
        self.assertTrue(deal_applies(deal, RoomType.SINGLE, date(2030, 1, 1)))


class TestQuote(unittest.TestCase):

    def test_quote_with_eligible_deal(self):
        result = quote(100, date(2030, 1, 1), date(2030, 1, 4), make_deal(), RoomType.DOUBLE)
        self.assertEqual(result['nights'], 3)
        self.assertEqual(result['discount'], 10)
        self.assertEqual(result['nightlyRate'], Decimal('90.00'))
        self.assertEqual(result['totalPrice'], Decimal('270.00'))

    def test_ineligible_deal_is_ignored(self):
        deal = make_deal(room_type='SUITE')
        result = quote(100, date(2030, 1, 1), date(2030, 1, 4), deal, RoomType.DOUBLE)
        self.assertIsNone(result['deal'])
        self.assertEqual(result['totalPrice'], Decimal('300.00'))
