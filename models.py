import enum
from datetime import datetime

from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash

from extensions import db


def _money(value):
    return float(value) if value is not None else None


def _iso(value):
    return value.isoformat() if value else None


# ============================================
# ENUMERATIONS
# ============================================

class Role(str, enum.Enum):
    USER = 'USER'
    MANAGER = 'MANAGER'
    ADMIN = 'ADMIN'


class RoomType(str, enum.Enum):
    SINGLE = 'SINGLE'
    DOUBLE = 'DOUBLE'
    DELUXE = 'DELUXE'
    SUITE = 'SUITE'


class RoomStatus(str, enum.Enum):
    AVAILABLE = 'AVAILABLE'
    OCCUPIED = 'OCCUPIED'
    MAINTENANCE = 'MAINTENANCE'
    OUT_OF_ORDER = 'OUT_OF_ORDER'


class Cleanliness(str, enum.Enum):
    CLEAN = 'CLEAN'
    DIRTY = 'DIRTY'
    INSPECTED = 'INSPECTED'


class BookingStatus(str, enum.Enum):
    PENDING = 'PENDING'
    CONFIRMED = 'CONFIRMED'
    CANCELLED = 'CANCELLED'
    COMPLETED = 'COMPLETED'


class PaymentType(str, enum.Enum):
    CARD = 'CARD'
    CASH = 'CASH'
    PAYPAL = 'PAYPAL'


class PaymentStatus(str, enum.Enum):
    PENDING = 'PENDING'
    PAID = 'PAID'
    REFUNDED = 'REFUNDED'
    PARTIALLY_REFUNDED = 'PARTIALLY_REFUNDED'


class RefundPolicy(str, enum.Enum):
    NON_REFUNDABLE = 'NON_REFUNDABLE'
    FLEXIBLE = 'FLEXIBLE'
    STRICT = 'STRICT'


class DealStatus(str, enum.Enum):
    ONGOING = 'ONGOING'
    INACTIVE = 'INACTIVE'
    FULL = 'FULL'


# Deals may target every room type at once
DEAL_ALL_ROOM_TYPES = 'ALL'
DEAL_ROOM_TYPES = [t.value for t in RoomType] + [DEAL_ALL_ROOM_TYPES]

# Bookings in these states hold their room for their date range
ACTIVE_BOOKING_STATUSES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)


def _enum_column(enum_cls, **kwargs):
    return db.Column(db.Enum(enum_cls, native_enum=False, length=20), **kwargs)


# ============================================
# USERS
# ============================================

class User(UserMixin, db.Model):
    __tablename__ = 'user'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    email = db.Column(db.String(120))
    role = _enum_column(Role, nullable=False, default=Role.USER)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    bookings = db.relationship('Booking', backref='user', lazy='dynamic')

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    @property
    def is_staff(self):
        return self.role in (Role.ADMIN, Role.MANAGER)

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role.value,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<User {self.username}>'


# ============================================
# ROOMS
# ============================================

class Room(db.Model):
    """Individual room records"""
    __tablename__ = 'room'

    id = db.Column(db.Integer, primary_key=True)
    room_number = db.Column(db.String(10), nullable=False, unique=True)
    floor = db.Column(db.Integer)
    type = _enum_column(RoomType, nullable=False)
    price = db.Column(db.Numeric(10, 2), nullable=False)
    capacity = db.Column(db.Integer, default=2)
    description = db.Column(db.Text)
    image_url = db.Column(db.String(255))  # reference only, files live elsewhere
    status = _enum_column(RoomStatus, nullable=False, default=RoomStatus.AVAILABLE)
    cleanliness = _enum_column(Cleanliness, nullable=False, default=Cleanliness.CLEAN)
    features = db.Column(db.JSON, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    bookings = db.relationship('Booking', backref='room', lazy='dynamic')
    rates = db.relationship('Rate', backref='room', lazy='dynamic', cascade='all, delete-orphan')

    @property
    def in_service(self):
        return self.status not in (RoomStatus.MAINTENANCE, RoomStatus.OUT_OF_ORDER)

    def to_summary(self):
        return {
            'id': self.id,
            'roomNumber': self.room_number,
            'type': self.type.value,
            'price': _money(self.price),
            'status': self.status.value,
        }

    def to_dict(self):
        data = self.to_summary()
        data.update({
            'floor': self.floor,
            'capacity': self.capacity,
            'description': self.description,
            'imageUrl': self.image_url,
            'cleanliness': self.cleanliness.value,
            'features': list(self.features or []),
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
        })
        return data

    def __repr__(self):
        return f'<Room {self.room_number}>'


# ============================================
# DEALS & RATES
# ============================================

class Deal(db.Model):
    """Percentage discount scoped to one room type or ALL"""
    __tablename__ = 'deal'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)
    discount = db.Column(db.Integer, nullable=False)  # percent, 0-100
    room_type = db.Column(db.String(20), nullable=False, default=DEAL_ALL_ROOM_TYPES)
    status = _enum_column(DealStatus, nullable=False, default=DealStatus.ONGOING)
    end_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    rates = db.relationship('Rate', backref='deal', lazy='dynamic')
    bookings = db.relationship('Booking', backref='deal', lazy='dynamic')

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'discount': self.discount,
            'roomType': self.room_type,
            'status': self.status.value,
            'endDate': _iso(self.end_date),
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Deal {self.name} {self.discount}%>'


class Rate(db.Model):
    """A (room, cancellation policy) pair with its nightly rate"""
    __tablename__ = 'rate'

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey('room.id', ondelete='CASCADE'), nullable=False)
    policy = _enum_column(RefundPolicy, nullable=False)
    rate = db.Column(db.Numeric(10, 2), nullable=False)
    deal_id = db.Column(db.Integer, db.ForeignKey('deal.id', ondelete='SET NULL'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    __table_args__ = (db.UniqueConstraint('room_id', 'policy', name='_room_policy_uc'),)

    def to_dict(self, deal_price=None, available_rooms=None):
        return {
            'id': self.id,
            'roomId': self.room_id,
            'policy': self.policy.value,
            'rate': _money(self.rate),
            'dealId': self.deal_id,
            'deal': self.deal.to_dict() if self.deal else None,
            'dealPrice': _money(deal_price),
            'availableRooms': available_rooms,
            'room': self.room.to_summary() if self.room else None,
            'createdAt': _iso(self.created_at),
        }

    def __repr__(self):
        return f'<Rate room={self.room_id} {self.policy.value}>'


# ============================================
# BOOKINGS & GUESTS
# ============================================

class Booking(db.Model):
    __tablename__ = 'booking'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('user.id'))
    room_id = db.Column(db.Integer, db.ForeignKey('room.id'), nullable=False)
    rate_id = db.Column(db.Integer, db.ForeignKey('rate.id', ondelete='SET NULL'))
    deal_id = db.Column(db.Integer, db.ForeignKey('deal.id', ondelete='SET NULL'))

    # Customer identity
    customer_first_name = db.Column(db.String(100), nullable=False)
    customer_last_name = db.Column(db.String(100), nullable=False)
    customer_email = db.Column(db.String(120), nullable=False)

    # Stay, end date exclusive
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    actual_checkout_date = db.Column(db.Date)

    status = _enum_column(BookingStatus, nullable=False, default=BookingStatus.PENDING)
    payment_type = _enum_column(PaymentType, nullable=False)
    payment_status = _enum_column(PaymentStatus, nullable=False, default=PaymentStatus.PENDING)

    # Pricing
    base_rate = db.Column(db.Numeric(10, 2), nullable=False)
    final_price = db.Column(db.Numeric(10, 2), nullable=False)

    # Refund outcome, written once when the booking is cancelled or checked out early
    refund_amount = db.Column(db.Numeric(10, 2))
    refund_refundable = db.Column(db.Boolean)
    refund_policy = db.Column(db.String(20))
    refund_reason = db.Column(db.Text)
    refund_days_until_check_in = db.Column(db.Integer)
    refund_unused_nights = db.Column(db.Integer)
    refunded_at = db.Column(db.DateTime)

    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    rate = db.relationship('Rate', backref=db.backref('bookings', lazy='dynamic'))
    guest = db.relationship('Guest', back_populates='booking', uselist=False,
                            cascade='all, delete-orphan')

    __table_args__ = (db.CheckConstraint('end_date > start_date', name='_booking_dates_ck'),)

    @property
    def nights(self):
        return (self.end_date - self.start_date).days

    @property
    def customer_full_name(self):
        return f'{self.customer_first_name} {self.customer_last_name}'

    @property
    def refund_record(self):
        """Stored refund breakdown, or None when no refund was ever computed"""
        if self.refund_amount is None:
            return None
        record = {
            'refundable': bool(self.refund_refundable),
            'refundAmount': _money(self.refund_amount),
            'policy': self.refund_policy,
            'reason': self.refund_reason,
        }
        if self.refund_unused_nights is not None:
            record['unusedNights'] = self.refund_unused_nights
        else:
            record['daysUntilCheckIn'] = self.refund_days_until_check_in
        return record

    def store_refund(self, result):
        self.refund_amount = result['refundAmount']
        self.refund_refundable = result['refundable']
        self.refund_policy = result['policy']
        self.refund_reason = result['reason']
        self.refund_days_until_check_in = result.get('daysUntilCheckIn')
        self.refund_unused_nights = result.get('unusedNights')
        self.refunded_at = datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'roomId': self.room_id,
            'rateId': self.rate_id,
            'dealId': self.deal_id,
            'customerFirstName': self.customer_first_name,
            'customerLastName': self.customer_last_name,
            'customerEmail': self.customer_email,
            'startDate': _iso(self.start_date),
            'endDate': _iso(self.end_date),
            'actualCheckoutDate': _iso(self.actual_checkout_date),
            'nights': self.nights,
            'status': self.status.value,
            'paymentType': self.payment_type.value,
            'paymentStatus': self.payment_status.value,
            'baseRate': _money(self.base_rate),
            'finalPrice': _money(self.final_price),
            'refundAmount': _money(self.refund_amount),
            'refund': self.refund_record,
            'createdAt': _iso(self.created_at),
            'updatedAt': _iso(self.updated_at),
            'room': self.room.to_summary() if self.room else None,
            'user': {
                'id': self.user.id,
                'username': self.user.username,
                'role': self.user.role.value,
            } if self.user else None,
        }

    def __repr__(self):
        return f'<Booking {self.id}>'


class Guest(db.Model):
    """Guest-facing view of a booking; every field reads through to it"""
    __tablename__ = 'guest'

    id = db.Column(db.Integer, primary_key=True)
    booking_id = db.Column(db.Integer, db.ForeignKey('booking.id', ondelete='CASCADE'),
                           nullable=False, unique=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    booking = db.relationship('Booking', back_populates='guest')

    @property
    def full_name(self):
        return self.booking.customer_full_name

    @property
    def email(self):
        return self.booking.customer_email

    @property
    def status(self):
        return self.booking.status

    @property
    def payment_status(self):
        return self.booking.payment_status

    @property
    def final_price(self):
        return self.booking.final_price

    def to_dict(self):
        booking = self.booking
        return {
            'id': self.id,
            'bookingId': self.booking_id,
            'fullName': self.full_name,
            'email': self.email,
            'status': self.status.value,
            'paymentStatus': self.payment_status.value,
            'finalPrice': _money(self.final_price),
            'createdAt': _iso(self.created_at),
            'booking': {
                'startDate': _iso(booking.start_date),
                'endDate': _iso(booking.end_date),
                'room': {
                    'roomNumber': booking.room.room_number,
                    'type': booking.room.type.value,
                } if booking.room else None,
            },
        }

    def __repr__(self):
        return f'<Guest {self.id} booking={self.booking_id}>'


# ============================================
# HOTEL SETTINGS
# ============================================

class HotelSettings(db.Model):
    """Singleton row with hotel-wide settings"""
    __tablename__ = 'hotel_settings'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), default='Grand Hotel')
    address = db.Column(db.String(255), default='')
    contact_email = db.Column(db.String(120), default='')
    phone = db.Column(db.String(40), default='')
    currency = db.Column(db.String(20), default='USD ($)')
    timezone = db.Column(db.String(64))
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    @classmethod
    def get(cls):
        """Return the settings row, creating it with defaults on first use"""
        settings = cls.query.order_by(cls.id).first()
        if settings is None:
            settings = cls()
            db.session.add(settings)
            db.session.commit()
        return settings

    def to_public_dict(self):
        return {
            'name': self.name,
            'address': self.address,
            'contactEmail': self.contact_email,
            'phone': self.phone,
        }

    def to_dict(self):
        data = self.to_public_dict()
        data.update({
            'id': self.id,
            'currency': self.currency,
            'timezone': self.timezone,
            'updatedAt': _iso(self.updated_at),
        })
        return data

    def __repr__(self):
        return f'<HotelSettings {self.name}>'
