from datetime import datetime

import click
from sqlalchemy import and_

from .auth.bridge import signup
from .auth.otp import latest_otp
from .errors import ServiceError
from .extensions import db
from .models import Order, Payment
from .records import ADVANCE_TYPE, PaymentMode


def register_cli(app):
    @app.cli.command('seed-user')
    @click.option('--email', required=True)
    @click.option('--phone', required=True)
    @click.option('--pin', required=True)
    @click.option('--name', default='Owner')
    def seed_user(email, phone, pin, name):
        """Create a boutique owner account that can sign in with phone + PIN."""
        try:
            user = signup(email, pin, name, phone)
        except ServiceError as exc:
            db.session.rollback()
            raise click.ClickException(exc.message)
        click.echo(f'User {user.email} created ({user.id}).')

    @app.cli.command('otp-latest')
    @click.argument('phone')
    def otp_latest(phone):
        """Print the most recent OTP for manual verification fallback."""
        record = latest_otp(phone)
        if not record:
            click.echo('No OTP records found.')
            return

        expires = record.expires_at.isoformat() if record.expires_at else 'unknown'
        click.echo(f'Latest OTP: {record.otp}')
        click.echo(f'Token: {record.token}')
        click.echo(f'Expires at: {expires}')
        if record.expires_at:
            remaining = (record.expires_at - datetime.utcnow()).total_seconds() / 60
            if remaining > 0:
                click.echo(f'Remaining: ~{remaining:.0f} minute(s)')
            else:
                click.echo('Status: expired')

    @app.cli.command('backfill-advance-payments')
    @click.option('--dry-run', is_flag=True, default=False)
    def backfill_advance_payments(dry_run):
        """Write the missing Advance payment row for orders that only carry ``advance``."""
        orders = (Order.query
                  .outerjoin(Payment, and_(Payment.order_id == Order.id, Payment.type == ADVANCE_TYPE))
                  .filter(Order.advance > 0, Payment.id.is_(None))
                  .all())
        for order in orders:
            click.echo(f'{order.bill_no}: advance {float(order.advance):.2f}')
            if dry_run:
                continue
            db.session.add(Payment(
                owner_id=order.owner_id,
                order_id=order.id,
                customer_id=order.customer_id,
                bill_no=order.bill_no,
                amount=float(order.advance),
                mode=PaymentMode.CASH.value,
                type=ADVANCE_TYPE,
                date=order.date,
                time=order.time,
                created_at=order.created_at or datetime.utcnow(),
            ))
        if not dry_run:
            db.session.commit()
        click.echo(f'{len(orders)} order(s) {"need" if dry_run else "given"} an Advance payment.')
