import unittest
from datetime import date, timedelta

from models import RefundPolicy
from refund_service import refund_service

TODAY = date(2030, 3, 1)


class TestCancellationRefund(unittest.TestCase):

    def cancel(self, policy, days_ahead, price=500):
        return refund_service.calculate_cancellation(
            policy, TODAY + timedelta(days=days_ahead), TODAY, price)

    def test_strict_far_enough_ahead(self):
        result = self.cancel(RefundPolicy.STRICT, 10)
        self.assertTrue(result['refundable'])
        self.assertEqual(result['refundAmount'], 500.0)
        self.assertEqual(result['daysUntilCheckIn'], 10)
        self.assertEqual(result['policy'], 'STRICT')

    def test_strict_too_late(self):
        result = self.cancel(RefundPolicy.STRICT, 3)
        self.assertFalse(result['refundable'])
        self.assertEqual(result['refundAmount'], 0.0)

    def test_strict_boundary_is_refundable(self):
        self.assertTrue(self.cancel(RefundPolicy.STRICT, 7)['refundable'])
        self.assertFalse(self.cancel(RefundPolicy.STRICT, 6)['refundable'])

    def test_flexible_always_refunds(self):
        result = self.cancel(RefundPolicy.FLEXIBLE, 0)
        self.assertTrue(result['refundable'])
        self.assertEqual(result['refundAmount'], 500.0)

    def test_non_refundable(self):
        result = self.cancel(RefundPolicy.NON_REFUNDABLE, 60)
        self.assertFalse(result['refundable'])
        self.assertEqual(result['refundAmount'], 0.0)

    def test_missing_policy_is_non_refundable(self):
        result = self.cancel(None, 60)
        self.assertFalse(result['refundable'])
        self.assertEqual(result['policy'], 'NON_REFUNDABLE')

    def test_unknown_policy_string_is_non_refundable(self):
        self.assertFalse(self.cancel('MYSTERY', 60)['refundable'])

    def test_policy_string_is_accepted(self):
        self.assertTrue(self.cancel('flexible', 1)['refundable'])


class TestEarlyCheckoutRefund(unittest.TestCase):

    check_in = date(2030, 3, 1)
    check_out = date(2030, 3, 11)

    def test_estimate(self):
        estimate = refund_service.estimate_early_checkout(
            500, self.check_in, self.check_out, date(2030, 3, 7))
        self.assertEqual(estimate, {
            'totalNights': 10,
            'unusedNights': 4,
            'pricePerNight': 50.0,
            'estimatedRefund': 200.0,
        })

    def test_flexible_refunds_unused_nights(self):
        result = refund_service.calculate_early_checkout(
            RefundPolicy.FLEXIBLE, self.check_in, self.check_out, date(2030, 3, 7),
            date(2030, 3, 7), 500)
        self.assertTrue(result['refundable'])
        self.assertEqual(result['refundAmount'], 200.0)
        self.assertEqual(result['unusedNights'], 4)

    def test_non_refundable_keeps_everything(self):
        result = refund_service.calculate_early_checkout(
            RefundPolicy.NON_REFUNDABLE, self.check_in, self.check_out, date(2030, 3, 7),
            date(2030, 3, 7), 500)
        self.assertFalse(result['refundable'])
        self.assertEqual(result['refundAmount'], 0.0)

    def test_strict_gate_uses_days_until_check_in(self):
        # Already in-house, so check-in is never 7 days away
        result = refund_service.calculate_early_checkout(
            RefundPolicy.STRICT, self.check_in, self.check_out, date(2030, 3, 7),
            date(2030, 3, 7), 500)
        self.assertFalse(result['refundable'])

    def test_no_unused_nights(self):
        result = refund_service.calculate_early_checkout(
            RefundPolicy.FLEXIBLE, self.check_in, self.check_out, self.check_out,
            self.check_out, 500)
        self.assertFalse(result['refundable'])
        self.assertEqual(result['unusedNights'], 0)
