import unittest
from datetime import timedelta
from decimal import Decimal

from flask import g
from flask.testing import FlaskClient

from app import app
from auth import create_token
from extensions import db
from models import (User, Role, Room, RoomType, RoomStatus, Rate, RefundPolicy, Booking,
                    BookingStatus, PaymentType, PaymentStatus, Guest)


class _FreshUserClient(FlaskClient):
    """Drop Flask-Login's cached user so each request re-reads its own token

    The test app context stays pushed across requests, so ``g`` is shared and
    would otherwise keep the user loaded by the first request.
    """

    def open(self, *args, **kwargs):
        g.pop('_login_user', None)
        return super().open(*args, **kwargs)


class ApiTestCase(unittest.TestCase):
    """Fresh schema per test, with helpers to build rooms, rates and bookings"""

    def setUp(self):
        app.config['TESTING'] = True
        self.app = app
        self.ctx = app.app_context()
        self.ctx.push()
        db.drop_all()
        db.create_all()
        app.test_client_class = _FreshUserClient
        self.client = app.test_client()

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.ctx.pop()

    def make_user(self, username='guest_user', role=Role.USER, password='secret123'):
        user = User(username=username, role=role)
        user.set_password(password)
        db.session.add(user)
        db.session.commit()
        return user

    def auth_headers(self, user):
        return {'Authorization': f'Bearer {create_token(user)}'}

    def make_room(self, number='101', room_type=RoomType.DOUBLE, price='100.00',
                  status=RoomStatus.AVAILABLE):
        room = Room(room_number=number, type=room_type, price=Decimal(price), status=status)
        db.session.add(room)
        db.session.commit()
        return room

    def make_rate(self, room, policy=RefundPolicy.FLEXIBLE, rate=None, deal=None):
        row = Rate(room=room, policy=policy, rate=Decimal(rate) if rate else room.price, deal=deal)
        db.session.add(row)
        db.session.commit()
        return row

    def make_booking(self, room, start, nights, status=BookingStatus.PENDING, user=None,
                     rate=None, total=None, payment_status=PaymentStatus.PENDING):
        nightly = rate.rate if rate is not None else room.price
        booking = Booking(
            user=user,
            room=room,
            rate=rate,
            customer_first_name='Ana',
            customer_last_name='Petrovic',
            customer_email='ana@example.com',
            start_date=start,
            end_date=start + timedelta(days=nights),
            status=status,
            payment_type=PaymentType.CARD,
            payment_status=payment_status,
            base_rate=nightly,
            final_price=Decimal(total) if total is not None else nightly * nights,
        )
        booking.guest = Guest()
        db.session.add(booking)
        db.session.commit()
        return booking
