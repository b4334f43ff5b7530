# aquaroom/cli.py
import click
from werkzeug.security import generate_password_hash

from .extensions import db
from .model import User
from .services.inventory_alerts import generate_alerts


@click.command("create-admin")
@click.option("--email", required=True)
@click.option("--password", required=True)
@click.option("--name", required=True)
def create_admin(email, password, name):
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo("Email already exists"); return
    u = User(email=email, name=name.strip(), password_hash=generate_password_hash(password), role="admin")
    db.session.add(u); db.session.commit()
    click.echo(f"Admin created: {u.id} {u.email}")


@click.command("scan-stock")
def scan_stock():
    """Regenerate inventory alerts from current stock levels."""
    result = generate_alerts()
    click.echo(f"Checked {result['products_checked']} products, {result['alerts_created']} new alerts")


def register_cli(app):
    app.cli.add_command(create_admin)
    app.cli.add_command(scan_stock)
