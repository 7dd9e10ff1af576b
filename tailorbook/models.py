from datetime import datetime

from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db
from .records import (OrderRecord, OrderStatus, OutfitItem, PaymentMode, PaymentRecord, new_id,
                      parse_enum)


class ProviderAccount(db.Model):
    """Identity-provider credential, kept apart from the user profile document."""

    __tablename__ = 'provider_accounts'

    uid = db.Column(db.String(32), primary_key=True, default=new_id)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    password_updated_at = db.Column(db.DateTime)

    def set_password(self, raw: str) -> None:
        self.password_hash = generate_password_hash(raw)
        self.password_updated_at = datetime.utcnow()

    def check_password(self, raw: str) -> bool:
        return check_password_hash(self.password_hash, raw)


class User(db.Model):
    __tablename__ = 'users'

    id = db.Column(db.String(32), primary_key=True)
    name = db.Column(db.String(255))
    email = db.Column(db.String(255), unique=True, nullable=False)
    phone = db.Column(db.String(20), index=True)
    pin = db.Column(db.String(10))
    is_phone_verified = db.Column(db.Boolean, default=False, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_login_at = db.Column(db.DateTime)

    company = db.relationship('Company', back_populates='owner', uselist=False, lazy=True)


class UserSession(db.Model):
    __tablename__ = 'user_sessions'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False)
    session_token = db.Column(db.String(64), unique=True, nullable=False)
    user_agent = db.Column(db.String(255))
    ip_address = db.Column(db.String(64))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    last_seen_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    revoked_at = db.Column(db.DateTime)

    user = db.relationship('User', backref=db.backref('sessions', lazy=True))
    draft = db.relationship('OrderDraft', back_populates='session', uselist=False,
                            cascade='all, delete-orphan', lazy=True)


class OrderDraft(db.Model):
    __tablename__ = 'order_drafts'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.Integer, db.ForeignKey('user_sessions.id'), unique=True, nullable=False)
    state = db.Column(db.JSON, nullable=False, default=dict)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    session = db.relationship('UserSession', back_populates='draft')


class Company(db.Model):
    __tablename__ = 'companies'

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(32), db.ForeignKey('users.id'), unique=True, nullable=False)
    name = db.Column(db.String(255), nullable=False)
    address = db.Column(db.Text)
    phone = db.Column(db.String(20))
    gstin = db.Column(db.String(20))
    bill_terms = db.Column(db.Text)
    bill_signature = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    owner = db.relationship('User', back_populates='company')


class Customer(db.Model):
    __tablename__ = 'customers'

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False, index=True)
    display_id = db.Column(db.String(20))
    name = db.Column(db.String(255), nullable=False)
    mobile = db.Column(db.String(20), nullable=False)
    location = db.Column(db.String(255))
    total_orders = db.Column(db.Integer, default=0, nullable=False)
    total_spent = db.Column(db.Float, default=0, nullable=False)
    last_order_date = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    orders = db.relationship('Order', back_populates='customer', lazy=True)


class Order(db.Model):
    __tablename__ = 'orders'

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False, index=True)
    bill_no = db.Column(db.String(20), nullable=False, index=True)
    customer_id = db.Column(db.String(32), db.ForeignKey('customers.id'))
    customer_name = db.Column(db.String(255))
    customer_mobile = db.Column(db.String(20))
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(16))
    items = db.Column(db.JSON, nullable=False, default=list)
    advance = db.Column(db.Float, default=0, nullable=False)
    status = db.Column(db.String(20), default=OrderStatus.PENDING.value, nullable=False)
    notes = db.Column(db.Text)
    urgency = db.Column(db.String(20), default='Normal')
    delivery_date = db.Column(db.Date)
    trial_date = db.Column(db.Date)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    customer = db.relationship('Customer', back_populates='orders', lazy=True)
    payments = db.relationship('Payment', back_populates='order', lazy=True,
                               cascade='all, delete-orphan', order_by='Payment.created_at')

    @property
    def status_enum(self) -> OrderStatus:
        return parse_enum(OrderStatus, self.status, 'order status', default=OrderStatus.PENDING)

    @property
    def outfits(self) -> list:
        return [OutfitItem.from_document(doc) for doc in (self.items or [])]

    def set_outfits(self, outfits) -> None:
        # Reassign so the JSON column is flagged dirty.
        self.items = [item.to_document() for item in outfits]

    def to_record(self) -> OrderRecord:
        return OrderRecord(
            id=self.id,
            items=self.outfits,
            advance=float(self.advance or 0),
            status=self.status_enum,
            bill_no=self.bill_no,
            customer_id=self.customer_id,
        )

    def payment_records(self) -> list:
        return [payment.to_record() for payment in self.payments]


class Payment(db.Model):
    __tablename__ = 'payments'

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False, index=True)
    order_id = db.Column(db.String(32), db.ForeignKey('orders.id'), index=True)
    customer_id = db.Column(db.String(32), db.ForeignKey('customers.id'))
    bill_no = db.Column(db.String(20))
    amount = db.Column(db.Float, nullable=False)
    mode = db.Column(db.String(10), default=PaymentMode.CASH.value, nullable=False)
    type = db.Column(db.String(20))
    date = db.Column(db.Date, nullable=False)
    time = db.Column(db.String(16))
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    order = db.relationship('Order', back_populates='payments')

    def to_record(self) -> PaymentRecord:
        return PaymentRecord(
            id=self.id,
            order_id=self.order_id,
            amount=float(self.amount or 0),
            mode=parse_enum(PaymentMode, self.mode, 'payment mode', default=PaymentMode.CASH),
            customer_id=self.customer_id,
            date=self.date.isoformat() if self.date else None,
            type=self.type,
        )


class Outfit(db.Model):
    __tablename__ = 'outfits'

    id = db.Column(db.String(32), primary_key=True, default=new_id)
    owner_id = db.Column(db.String(32), db.ForeignKey('users.id'), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)
    category = db.Column(db.String(60))
    base_price = db.Column(db.Float, default=0)
    image = db.Column(db.Text)
    is_visible = db.Column(db.Boolean, default=True, nullable=False)
    sort_order = db.Column(db.Integer, default=0, nullable=False)
    categories = db.Column(db.JSON, nullable=False, default=list)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)


class Otp(db.Model):
    __tablename__ = 'otps'

    id = db.Column(db.Integer, primary_key=True)
    token = db.Column(db.String(64), unique=True, nullable=False)
    phone = db.Column(db.String(20), nullable=False)
    otp = db.Column(db.String(10), nullable=False)
    user_id = db.Column(db.String(32), db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime)
    verified_at = db.Column(db.DateTime)
    consumed_at = db.Column(db.DateTime)


class AuditLog(db.Model):
    __tablename__ = 'audit_log'

    id = db.Column(db.Integer, primary_key=True)
    ts = db.Column(db.DateTime, default=datetime.utcnow)
    user = db.Column(db.String(80))
    action = db.Column(db.String(120))
    resource_type = db.Column(db.String(64))
    resource_id = db.Column(db.String(32))
    before_state = db.Column(db.Text)
    after_state = db.Column(db.Text)
    ip_address = db.Column(db.String(64))
    user_agent = db.Column(db.String(255))
