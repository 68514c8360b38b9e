import json

import click

from schoolpay.extensions import db
from schoolpay.models import School
from schoolpay.services import PaymentService, SubscriptionService


def register_cli(app):
    """Management commands: ``flask --app wsgi <command>``"""

    @app.cli.command("init-db")
    def init_db():
        """Create all database tables."""
        db.create_all()
        click.echo("Database initialized")

    @app.cli.command("create-school")
    @click.argument("name")
    @click.option("--email", default=None)
    def create_school(name, email):
        """Register a school and start its trial subscription."""
        school = School(name=name, email=email)
        db.session.add(school)
        db.session.commit()

        trial = SubscriptionService(
            trial_duration_days=app.config.get("TRIAL_DURATION_DAYS", 30)
        ).start_trial(school)
        click.echo(f"School {school.id} created; trial ends {trial.end_date.isoformat()}")

    @app.cli.command("fail-payment")
    @click.argument("reference")
    @click.option("--reason", default=None)
    def fail_payment(reference, reason):
        """Mark a pending payment as failed."""
        if PaymentService().fail_payment(reference, reason):
            click.echo(f"Payment {reference} marked failed")
        else:
            click.echo(f"Payment {reference} is not pending; unchanged")

    @app.cli.command("audit-payments")
    def audit_payments():
        """List completed payments that never reached a subscription."""
        payments = SubscriptionService().find_unreconciled_payments()
        click.echo(json.dumps(payments, indent=2))
        if payments:
            raise SystemExit(1)

    @app.cli.command("expire-subscriptions")
    def expire_subscriptions():
        """Persist expiry for subscriptions whose window has closed."""
        count = SubscriptionService().expire_lapsed_subscriptions()
        click.echo(f"Expired {count} subscription(s)")
