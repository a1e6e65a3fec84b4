"""
Booking lifecycle

Creates bookings (availability check, pricing, guest record) and moves them
through their states:

    PENDING   -> CONFIRMED | CANCELLED
    CONFIRMED -> COMPLETED | CANCELLED

Cancelling runs the refund engine in cancellation mode; completing before the
booked end date is an early checkout and runs it in early-checkout mode. The
refund outcome is stored on the booking once and never recomputed.
"""
import logging

from sqlalchemy.exc import IntegrityError

from availability_service import overlapping_bookings, next_available_date
from errors import ApiError, ConflictError, NotFoundError, TransitionError, ValidationError
from extensions import db
from hotel_time import hotel_today
from models import (Booking, BookingStatus, Cleanliness, Deal, Guest, PaymentStatus,
                    PaymentType, Rate, Room, RoomStatus)
from pricing_service import quote, to_money
from refund_service import refund_service
from validators import (parse_date, parse_email, parse_enum, parse_int, parse_text,
                        raise_if_errors)

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}

INITIAL_STATUS = BookingStatus.PENDING


def can_transition(current, new):
    return new in ALLOWED_TRANSITIONS[current]


def parse_stay(data, errors, start_field='startDate', end_field='endDate'):
    start = parse_date(data.get(start_field), start_field, errors)
    end = parse_date(data.get(end_field), end_field, errors)
    if start and end and end <= start:
        errors.append({'field': end_field, 'msg': 'End date must be after start date'})
    return start, end


class BookingService:

    def resolve_policy(self, booking):
        """Policy of the booking's rate, else of the room's first rate, else None"""
        if booking.rate is not None:
            return booking.rate.policy
        rate = Rate.query.filter_by(room_id=booking.room_id).order_by(Rate.id).first()
        if rate is None:
            logger.warning(f"[BOOKING] No rate found for room {booking.room_id}, "
                           f"booking #{booking.id} falls back to non-refundable")
            return None
        return rate.policy

    def price_stay(self, room, start, end, rate=None, deal=None, today=None):
        """Quote for a stay in ``room``; the rate's own deal is used when none is given"""
        base_rate = rate.rate if rate is not None else room.price
        if deal is None and rate is not None:
            deal = rate.deal
        return quote(base_rate, start, end, deal=deal, room_type=room.type, today=today)

    def _lookup_rate_and_deal(self, room, rate_id, deal_id):
        rate = None
        if rate_id is not None:
            rate = db.session.get(Rate, rate_id)
            if rate is None or rate.room_id != room.id:
                raise ValidationError('Validation error', [
                    {'field': 'rateId', 'msg': 'Rate does not belong to this room'}])
        deal = None
        if deal_id is not None:
            deal = db.session.get(Deal, deal_id)
            if deal is None:
                raise NotFoundError('Deal not found')
        return rate, deal

    def create_booking(self, data, user=None, today=None):
        """Validate, check availability, price and insert a booking with its guest"""
        errors = []
        room_id = parse_int(data.get('roomId'), 'roomId', errors)
        start, end = parse_stay(data, errors)
        first_name = parse_text(data.get('customerFirstName'), 'customerFirstName', errors)
        last_name = parse_text(data.get('customerLastName'), 'customerLastName', errors)
        email = parse_email(data.get('customerEmail'), 'customerEmail', errors)
        payment_type = parse_enum(PaymentType, data.get('paymentType'), 'paymentType', errors)
        deal_id = parse_int(data.get('dealId'), 'dealId', errors, required=False)
        rate_id = parse_int(data.get('rateId'), 'rateId', errors, required=False)
        raise_if_errors(errors)

        today = today or hotel_today()
        if start < today:
            raise ValidationError('Start date cannot be in the past')

        try:
            # Row lock on the room serialises concurrent creates for it
            room = db.session.get(Room, room_id, with_for_update=True)
            if room is None:
                raise NotFoundError('Room not found')
            if not room.in_service:
                raise ValidationError('Room is not available')

            rate, deal = self._lookup_rate_and_deal(room, rate_id, deal_id)

            if overlapping_bookings(room.id, start, end):
                next_date = next_available_date(room.id, start, end)
                logger.info(f"[BOOKING] Room {room.room_number} taken for {start} - {end}, "
                            f"next available {next_date}")
                raise ConflictError(next_available=next_date.isoformat() if next_date else None)

            priced = self.price_stay(room, start, end, rate=rate, deal=deal, today=today)
            if deal is not None and priced['deal'] is None:
                logger.info(f"[BOOKING] Deal #{deal.id} does not apply to room {room.room_number}")

            booking = Booking(
                user_id=user.id if user is not None else None,
                room_id=room.id,
                rate_id=rate.id if rate is not None else None,
                deal_id=priced['deal'].id if priced['deal'] is not None else None,
                customer_first_name=first_name,
                customer_last_name=last_name,
                customer_email=email,
                start_date=start,
                end_date=end,
                status=INITIAL_STATUS,
                payment_type=payment_type,
                payment_status=PaymentStatus.PENDING,
                base_rate=priced['baseRate'],
                final_price=priced['totalPrice'],
            )
            booking.guest = Guest()
            db.session.add(booking)
            db.session.commit()
        except (ApiError, IntegrityError):
            db.session.rollback()
            raise

        logger.info(f"[BOOKING] Created booking #{booking.id} room={room.room_number} "
                    f"{start} - {end} total={booking.final_price}")
        return booking

    def transition(self, booking, new_status, payment_status=None, early_checkout_date=None,
                   today=None):
        """
        Move ``booking`` to ``new_status`` and apply the side effects.

        Returns ``(booking, refund)`` where ``refund`` is the refund record of the
        booking (freshly computed on cancellation / early checkout, stored
        otherwise) or None.
        """
        today = today or hotel_today()
        current = booking.status
        refund = None

        try:
            if new_status == current:
                refund = booking.refund_record
            elif not can_transition(current, new_status):
                raise TransitionError(
                    f'Cannot change booking status from {current.value} to {new_status.value}')
            elif new_status == BookingStatus.CONFIRMED:
                self._confirm(booking, today)
            elif new_status == BookingStatus.CANCELLED:
                refund = self._cancel(booking, today)
            elif new_status == BookingStatus.COMPLETED:
                refund = self._complete(booking, early_checkout_date, today)

            self._update_payment_status(booking, payment_status, refund, new_status != current)
            db.session.commit()
        except ApiError:
            db.session.rollback()
            raise

        logger.info(f"[BOOKING] Booking #{booking.id} {current.value} -> {booking.status.value} "
                    f"payment={booking.payment_status.value}")
        return booking, refund

    def cancel(self, booking, today=None):
        if booking.status == BookingStatus.CANCELLED:
            raise TransitionError('Booking is already cancelled')
        if booking.status == BookingStatus.COMPLETED:
            raise TransitionError('Cannot cancel completed booking')
        return self.transition(booking, BookingStatus.CANCELLED, today=today)

    def preview_refund(self, booking, early_checkout_date=None, today=None):
        """What cancelling or checking out now would refund, without saving anything"""
        if booking.status in (BookingStatus.CANCELLED, BookingStatus.COMPLETED):
            # Settled bookings only ever report what was stored
            return booking.refund_record

        today = today or hotel_today()
        policy = self.resolve_policy(booking)
        in_house = (early_checkout_date or today) >= booking.start_date
        if booking.status == BookingStatus.CONFIRMED and in_house:
            if today >= booking.end_date:
                return None
            actual = self._actual_checkout(booking, early_checkout_date, today)
            if actual >= booking.end_date:
                return None
            return refund_service.calculate_early_checkout(
                policy, booking.start_date, booking.end_date, actual, today, booking.final_price)
        return refund_service.calculate_cancellation(
            policy, booking.start_date, today, booking.final_price)

    def delete_booking(self, booking, today=None):
        today = today or hotel_today()
        booking_id = booking.id
        if self._in_house(booking, today):
            self._release_room(booking)
        db.session.delete(booking)
        db.session.commit()
        logger.info(f"[BOOKING] Deleted booking #{booking_id} and its guest record")

    # Transition side effects

    def _confirm(self, booking, today):
        booking.status = BookingStatus.CONFIRMED
        if self._in_house(booking, today) and booking.room.status == RoomStatus.AVAILABLE:
            booking.room.status = RoomStatus.OCCUPIED

    def _cancel(self, booking, today):
        refund = refund_service.calculate_cancellation(
            self.resolve_policy(booking), booking.start_date, today, booking.final_price)
        in_house = self._in_house(booking, today)
        booking.status = BookingStatus.CANCELLED
        booking.store_refund(refund)
        if in_house:
            self._release_room(booking)
        return refund

    def _complete(self, booking, early_checkout_date, today):
        refund = None
        if today < booking.end_date:
            actual = self._actual_checkout(booking, early_checkout_date, today)
            if actual < booking.end_date:
                refund = refund_service.calculate_early_checkout(
                    self.resolve_policy(booking), booking.start_date, booking.end_date, actual,
                    today, booking.final_price)
                booking.store_refund(refund)
        else:
            # The stay is over, so this is a plain checkout on the booked end date
            if early_checkout_date is not None:
                logger.info(f"[BOOKING] Ignoring early check-out date {early_checkout_date} for "
                            f"booking #{booking.id}, its stay ended {booking.end_date}")
            actual = booking.end_date
        booking.status = BookingStatus.COMPLETED
        booking.actual_checkout_date = actual
        self._release_room(booking)
        booking.room.cleanliness = Cleanliness.DIRTY
        return refund

    def _actual_checkout(self, booking, early_checkout_date, today):
        actual = early_checkout_date or today
        if actual < booking.start_date:
            raise ValidationError('Check-out date cannot be before the start date')
        if early_checkout_date is not None and early_checkout_date > booking.end_date:
            raise ValidationError('Early check-out date cannot be after the booked end date')
        return actual

    @staticmethod
    def _in_house(booking, today):
        """A confirmed booking whose stay covers today holds its room physically"""
        return (booking.status == BookingStatus.CONFIRMED
                and booking.start_date <= today < booking.end_date)

    def _release_room(self, booking):
        if booking.room.status == RoomStatus.OCCUPIED:
            booking.room.status = RoomStatus.AVAILABLE

    def _update_payment_status(self, booking, payment_status, refund, changed):
        if payment_status is not None:
            booking.payment_status = payment_status
            return
        if not changed or not refund or not refund['refundable']:
            return
        if booking.payment_status != PaymentStatus.PAID:
            return
        if to_money(refund['refundAmount']) >= to_money(booking.final_price):
            booking.payment_status = PaymentStatus.REFUNDED
        else:
            booking.payment_status = PaymentStatus.PARTIALLY_REFUNDED


booking_service = BookingService()
