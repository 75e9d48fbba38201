import click
from flask import Flask, jsonify
from flask_sqlalchemy import SQLAlchemy
from config import config

db = SQLAlchemy()


def create_app(config_name='default'):
    """Application factory: creates and configures the Flask app."""
    app = Flask(__name__)
    app.config.from_object(config[config_name])

    # ── Logging ───────────────────────────────────────────────────
    from pdv.utils.logging import setup_logging
    setup_logging(app)

    # ── Extensions ────────────────────────────────────────────────
    db.init_app(app)

    from pdv.billing.terminal import TerminalRegistry
    app.extensions['pdv_terminals'] = TerminalRegistry(app.config['PERMANENT_SESSION_LIFETIME'])

    # ── Blueprints ────────────────────────────────────────────────
    from pdv.auth import auth as auth_blueprint
    app.register_blueprint(auth_blueprint, url_prefix='/auth')

    from pdv.catalog import catalog as catalog_blueprint
    app.register_blueprint(catalog_blueprint, url_prefix='/catalog')

    from pdv.billing import billing as billing_blueprint
    app.register_blueprint(billing_blueprint, url_prefix='/billing')

    from pdv.registers import registers as registers_blueprint
    app.register_blueprint(registers_blueprint, url_prefix='/registers')

    from pdv.reporting import reporting as reporting_blueprint
    app.register_blueprint(reporting_blueprint, url_prefix='/reporting')

    # ── Error Handlers ────────────────────────────────────────────
    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({'error': 'Access denied', 'code': 'forbidden'}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({'error': 'Not found', 'code': 'not_found'}), 404

    @app.errorhandler(500)
    def internal_error(e):
        return jsonify({'error': 'Server error', 'code': 'server_error'}), 500

    # ── CLI Commands ──────────────────────────────────────────────
    register_commands(app)

    return app


def register_commands(app):
    """Register custom Flask CLI commands."""

    @app.cli.command('init-db')
    def init_db():
        """Create all database tables and seed the sale sequence for this year."""
        from datetime import date
        from pdv.billing.models import SaleSequence

        db.create_all()
        click.echo('✅  Database tables created.')

        year = date.today().year
        if not db.session.get(SaleSequence, year):
            db.session.add(SaleSequence(year=year, last_seq=0))
            db.session.commit()
            click.echo(f'✅  Sale sequence seeded for {year} (starts at 0).')
        else:
            click.echo(f'ℹ️   Sale sequence for {year} already exists.')

    @app.cli.command('show-sequences')
    def show_sequences():
        """Show current sale sequence counters (diagnostic)."""
        from pdv.billing.models import SaleSequence
        rows = SaleSequence.query.order_by(SaleSequence.year.desc()).all()
        if not rows:
            click.echo('No sequence rows found. Run flask init-db first.')
            return
        click.echo(f'{"Year":<8} {"Last Seq":<12} {"Next Sale"}')
        click.echo('─' * 35)
        for row in rows:
            next_sale = f'{row.year}-{row.last_seq + 1:04d}'
            click.echo(f'{row.year:<8} {row.last_seq:<12} {next_sale}')

    @app.cli.command('seed-admin')
    @click.option('--name',     prompt='Full name',  help='Admin full name')
    @click.option('--username', prompt='Username',   help='Admin username')
    @click.option('--password', prompt=True, hide_input=True,
                  confirmation_prompt=True, help='Admin password')
    def seed_admin(name, username, password):
        """Create the initial admin user."""
        _create_user(name, username, password, 'admin')

    @app.cli.command('seed-cashier')
    @click.option('--name',     prompt='Full name',  help='Cashier full name')
    @click.option('--username', prompt='Username',   help='Cashier username')
    @click.option('--password', prompt=True, hide_input=True,
                  confirmation_prompt=True, help='Cashier password')
    def seed_cashier(name, username, password):
        """Create a cashier (PDV operator) user."""
        _create_user(name, username, password, 'cashier')

    @app.cli.command('seed-demo')
    def seed_demo():
        """Populate database with demo users, products and open registers."""
        from decimal import Decimal
        from pdv.auth.models import User, RoleEnum
        from pdv.catalog.models import Product
        from pdv.registers.models import CashRegister

        click.echo("🌱 Seeding demo data...")
        db.create_all()

        if not User.query.filter_by(username='admin').first():
            u = User(name='Admin User', username='admin', role=RoleEnum.admin)
            u.set_password('demo123')
            db.session.add(u)
        if not User.query.filter_by(username='caixa1').first():
            u = User(name='Operador Caixa', username='caixa1', role=RoleEnum.cashier)
            u.set_password('123')
            db.session.add(u)
        db.session.commit()
        click.echo("✅ Users created (admin/demo123, caixa1/123).")

        demo_products = [
            # code, name, category, weighable, unit_price, price_per_gram
            ('ACAI-KG', 'Açaí no peso',      'acai',       True,  None,             Decimal('0.04499')),
            ('SORV-KG', 'Sorvete no peso',   'sorvetes',   True,  None,             Decimal('0.05990')),
            ('ACAI300', 'Açaí 300ml',        'acai',       False, Decimal('12.90'), None),
            ('ACAI500', 'Açaí 500ml',        'acai',       False, Decimal('18.90'), None),
            ('MILK400', 'Milkshake 400ml',   'milkshake',  False, Decimal('16.00'), None),
            ('AGUA500', 'Água mineral 500ml', 'bebidas',   False, Decimal('3.50'),  None),
            ('REFR350', 'Refrigerante lata', 'bebidas',    False, Decimal('6.00'),  None),
            ('GRAN-UN', 'Granola extra',     'complementos', False, Decimal('2.00'), None),
        ]
        operator = User.query.filter_by(username='caixa1').first()
        for store in app.config['POS_STORES']:
            if Product.query.filter_by(store=store).count() == 0:
                for code, name, category, weighable, unit_price, ppg in demo_products:
                    db.session.add(Product(
                        store=store, code=code, name=name, category=category,
                        is_weighable=weighable, unit_price=unit_price, price_per_gram=ppg,
                    ))
                click.echo(f"✅ Products seeded for {store}.")

            open_register = CashRegister.query.filter_by(store=store, closed_at=None).first()
            if not open_register:
                db.session.add(CashRegister(
                    store=store, operator_id=operator.id if operator else None,
                    opening_amount=Decimal('100.00'), sales_total=0,
                ))
                click.echo(f"✅ Cash register opened for {store}.")
        db.session.commit()

        click.echo("✅ Demo seed complete.")


def _create_user(name, username, password, role):
    from pdv.auth.models import User, RoleEnum

    if User.query.filter_by(username=username).first():
        click.echo(f'⚠️  User "{username}" already exists.')
        return

    user = User(name=name, username=username, role=RoleEnum(role))
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    click.echo(f'✅  {role.capitalize()} user "{username}" created successfully.')
