"""
Initialize database with sample data for the hotel booking system
"""
import logging
from datetime import timedelta
from decimal import Decimal

from extensions import db
from hotel_time import hotel_today
from models import (User, Role, Room, RoomType, RoomStatus, Rate, RefundPolicy, Deal,
                    DealStatus, Booking, BookingStatus, PaymentType, PaymentStatus, Guest,
                    HotelSettings, DEAL_ALL_ROOM_TYPES)
from pricing_service import quote

logger = logging.getLogger(__name__)

SAMPLE_PASSWORD = 'password123'

USERS = [
    ('admin', Role.ADMIN),
    ('manager', Role.MANAGER),
    ('john_doe', Role.USER),
    ('jane_smith', Role.USER),
]

ROOMS = [
    ('101', 1, RoomType.SINGLE, '80.00', RoomStatus.AVAILABLE),
    ('102', 1, RoomType.SINGLE, '80.00', RoomStatus.AVAILABLE),
    ('201', 2, RoomType.DOUBLE, '120.00', RoomStatus.AVAILABLE),
    ('202', 2, RoomType.DOUBLE, '120.00', RoomStatus.OCCUPIED),
    ('301', 3, RoomType.SUITE, '200.00', RoomStatus.AVAILABLE),
    ('302', 3, RoomType.SUITE, '200.00', RoomStatus.MAINTENANCE),
    ('401', 4, RoomType.DELUXE, '300.00', RoomStatus.AVAILABLE),
    ('402', 4, RoomType.DELUXE, '300.00', RoomStatus.OUT_OF_ORDER),
    ('501', 5, RoomType.SINGLE, '90.00', RoomStatus.AVAILABLE),
    ('502', 5, RoomType.DOUBLE, '140.00', RoomStatus.AVAILABLE),
]

CAPACITY = {RoomType.SINGLE: 1, RoomType.DOUBLE: 2, RoomType.DELUXE: 2, RoomType.SUITE: 4}

# Nightly rate as a share of the room's list price
POLICY_MARKUP = {
    RefundPolicy.FLEXIBLE: Decimal('1.00'),
    RefundPolicy.STRICT: Decimal('0.90'),
    RefundPolicy.NON_REFUNDABLE: Decimal('0.80'),
}


def _seed_users():
    users = {}
    for username, role in USERS:
        user = User.query.filter_by(username=username).first()
        if user is None:
            user = User(username=username, role=role)
            user.set_password(SAMPLE_PASSWORD)
            db.session.add(user)
            logger.info(f"[SEED] Created {role.value} user {username}")
        users[username] = user
    db.session.flush()
    return users


def _seed_rooms():
    rooms = {}
    for number, floor, room_type, price, status in ROOMS:
        room = Room.query.filter_by(room_number=number).first()
        if room is None:
            room = Room(
                room_number=number,
                floor=floor,
                type=room_type,
                price=Decimal(price),
                capacity=CAPACITY[room_type],
                description=f'{room_type.value.title()} room on floor {floor}',
                status=status,
                features=['wifi', 'tv'] if room_type == RoomType.SINGLE else ['wifi', 'tv', 'minibar'],
            )
            db.session.add(room)
        rooms[number] = room
    db.session.flush()
    return rooms


def _seed_deals(today):
    deals = {}
    for name, discount, room_type in (('Early Bird', 10, DEAL_ALL_ROOM_TYPES),
                                      ('Suite Escape', 20, RoomType.SUITE.value)):
        deal = Deal.query.filter_by(name=name).first()
        if deal is None:
            deal = Deal(name=name, discount=discount, room_type=room_type,
                        status=DealStatus.ONGOING, end_date=today + timedelta(days=90))
            db.session.add(deal)
        deals[name] = deal
    db.session.flush()
    return deals


def _seed_rates(rooms, deals):
    for room in rooms.values():
        for policy, markup in POLICY_MARKUP.items():
            if room.rates.filter_by(policy=policy).first() is not None:
                continue
            deal = deals['Suite Escape'] if room.type == RoomType.SUITE else None
            db.session.add(Rate(room=room, policy=policy,
                                rate=(room.price * markup).quantize(Decimal('0.01')), deal=deal))
    db.session.flush()


def _seed_bookings(users, rooms, today):
    if Booking.query.first() is not None:
        return

    samples = [
        # (user, room, offset, nights, status, payment status, policy)
        ('john_doe', '101', 1, 3, BookingStatus.CONFIRMED, PaymentStatus.PAID, RefundPolicy.FLEXIBLE),
        ('jane_smith', '201', 7, 5, BookingStatus.PENDING, PaymentStatus.PENDING, RefundPolicy.STRICT),
        ('john_doe', '301', 30, 2, BookingStatus.CONFIRMED, PaymentStatus.PAID, RefundPolicy.STRICT),
        ('jane_smith', '401', -2, 1, BookingStatus.COMPLETED, PaymentStatus.PAID, RefundPolicy.NON_REFUNDABLE),
        ('john_doe', '501', 14, 2, BookingStatus.CANCELLED, PaymentStatus.PENDING, RefundPolicy.FLEXIBLE),
        ('jane_smith', '202', 0, 3, BookingStatus.CONFIRMED, PaymentStatus.PAID, RefundPolicy.FLEXIBLE),
    ]
    for username, number, offset, nights, status, payment_status, policy in samples:
        user, room = users[username], rooms[number]
        rate = room.rates.filter_by(policy=policy).first()
        start = today + timedelta(days=offset)
        end = start + timedelta(days=nights)
        priced = quote(rate.rate, start, end, rate.deal, room.type, today)
        booking = Booking(
            user=user,
            room=room,
            rate=rate,
            deal=priced['deal'],
            customer_first_name=username.split('_')[0].title(),
            customer_last_name=username.split('_')[-1].title(),
            customer_email=f'{username}@example.com',
            start_date=start,
            end_date=end,
            status=status,
            payment_type=PaymentType.CARD,
            payment_status=payment_status,
            base_rate=priced['baseRate'],
            final_price=priced['totalPrice'],
        )
        if status == BookingStatus.COMPLETED:
            booking.actual_checkout_date = end
        if status == BookingStatus.CANCELLED:
            booking.store_refund({
                'refundable': True,
                'refundAmount': priced['totalPrice'],
                'policy': policy.value,
                'reason': 'FLEXIBLE policy: full refund',
                'daysUntilCheckIn': offset,
            })
        booking.guest = Guest()
        db.session.add(booking)


def create_initial_data():
    """Create initial data for the application; safe to run more than once"""
    try:
        today = hotel_today()
        HotelSettings.get()
        users = _seed_users()
        rooms = _seed_rooms()
        deals = _seed_deals(today)
        _seed_rates(rooms, deals)
        _seed_bookings(users, rooms, today)
        db.session.commit()
    except Exception:
        db.session.rollback()
        logger.exception("[SEED] Database initialization failed")
        raise

    logger.info("[SEED] Database initialization complete")
    logger.info(f"[SEED] Login with admin / manager / john_doe / jane_smith, password {SAMPLE_PASSWORD}")
