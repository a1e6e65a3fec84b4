"""
Refund policy engine

Works out whether a cancelled or early-checked-out booking earns a refund
and how much, from the cancellation policy of the room's rate:

- NON_REFUNDABLE: never refunded
- FLEXIBLE: always refunded
- STRICT: refunded only when check-in is at least 7 days away

Cancellations refund the full price; early check-outs refund the unused
nights at the booking's average nightly price. A missing policy is treated
as NON_REFUNDABLE.
"""
import logging
from decimal import Decimal

from models import RefundPolicy
from pricing_service import to_decimal, to_money

logger = logging.getLogger(__name__)

ZERO = Decimal('0.00')


class RefundPolicyService:
    """Pure refund calculations; persisting the result is up to the caller"""

    STRICT_MIN_DAYS = 7

    def resolve_policy(self, policy):
        if policy is None or isinstance(policy, RefundPolicy):
            return policy
        try:
            return RefundPolicy(str(policy).upper())
        except ValueError:
            logger.warning(f"[REFUND] Unknown policy {policy!r}, treating as non-refundable")
            return None

    def _gate(self, policy, days_until_check_in):
        """Returns (refundable, reason prefix) for a resolved policy"""
        if policy is None:
            return False, 'No rate policy found for this room; treated as non-refundable'
        if policy == RefundPolicy.NON_REFUNDABLE:
            return False, 'Non-refundable rate'
        if policy == RefundPolicy.FLEXIBLE:
            return True, 'Flexible rate'
        if days_until_check_in >= self.STRICT_MIN_DAYS:
            return True, (f'Strict rate: {days_until_check_in} days before check-in '
                          f'(at least {self.STRICT_MIN_DAYS} required)')
        return False, (f'Strict rate: only {days_until_check_in} days before check-in '
                       f'(at least {self.STRICT_MIN_DAYS} required)')

    def calculate_cancellation(self, policy, check_in, today, original_price):
        """Refund for cancelling a booking outright on ``today``"""
        resolved = self.resolve_policy(policy)
        days_until_check_in = (check_in - today).days
        refundable, prefix = self._gate(resolved, days_until_check_in)
        amount = to_money(original_price) if refundable else ZERO

        if refundable:
            reason = f'{prefix}: full refund of {amount:.2f}.'
        else:
            reason = f'{prefix}: no refund on cancellation.'

        logger.info(f"[REFUND] Cancellation policy={self._name(resolved)} "
                    f"days_until_check_in={days_until_check_in} amount={amount}")
        return {
            'refundable': refundable,
            'refundAmount': float(amount),
            'policy': self._name(resolved),
            'daysUntilCheckIn': days_until_check_in,
            'reason': reason,
        }

    def estimate_early_checkout(self, original_price, check_in, check_out, actual_checkout):
        """Unused nights and their prorated value, before any policy is applied"""
        total_nights = (check_out - check_in).days
        unused_nights = max((check_out - actual_checkout).days, 0)
        if total_nights > 0:
            price_per_night = to_decimal(original_price) / total_nights
        else:
            price_per_night = ZERO
        return {
            'totalNights': total_nights,
            'unusedNights': unused_nights,
            'pricePerNight': float(to_money(price_per_night)),
            'estimatedRefund': float(to_money(price_per_night * unused_nights)),
        }

    def calculate_early_checkout(self, policy, check_in, check_out, actual_checkout, today,
                                 original_price):
        """Refund for leaving on ``actual_checkout`` instead of ``check_out``"""
        resolved = self.resolve_policy(policy)
        estimate = self.estimate_early_checkout(original_price, check_in, check_out, actual_checkout)
        unused_nights = estimate['unusedNights']
        refundable, prefix = self._gate(resolved, (check_in - today).days)

        if refundable and unused_nights > 0:
            amount = to_money(estimate['estimatedRefund'])
            reason = (f'{prefix}: {unused_nights} unused night(s) at '
                      f'{estimate["pricePerNight"]:.2f} refunded ({amount:.2f}).')
        else:
            refundable = False
            amount = ZERO
            if unused_nights == 0:
                reason = f'{prefix}: no unused nights to refund.'
            else:
                reason = f'{prefix}: {unused_nights} unused night(s) are not refunded.'

        logger.info(f"[REFUND] Early checkout policy={self._name(resolved)} "
                    f"unused_nights={unused_nights} amount={amount}")
        return {
            'refundable': refundable,
            'refundAmount': float(amount),
            'policy': self._name(resolved),
            'unusedNights': unused_nights,
            'reason': reason,
        }

    @staticmethod
    def _name(policy):
        return (policy or RefundPolicy.NON_REFUNDABLE).value


refund_service = RefundPolicyService()
