# backend/storeledger/__init__.py
import logging

from flask import Flask

from .config import Config
from .extensions import db, migrate


def create_app(test_config: dict | None = None) -> Flask:
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(Config)
    # Overrides must land before the engine is bound in db.init_app
    if test_config:
        app.config.update(test_config)

    app.logger.setLevel(getattr(logging, str(app.config["LOG_LEVEL"]).upper(), logging.INFO))

    # Initialize extensions
    db.init_app(app)
    migrate.init_app(app, db)

    # Import models so Alembic can discover metadata reliably
    from . import models  # noqa: F401

    # Register blueprints
    from .routes.system import system_bp
    from .routes.products import products_bp
    from .routes.logs import logs_bp
    from .routes.sales import sales_bp
    from .routes.debts import debts_bp
    from .routes.customers import customers_bp
    from .routes.orders import orders_bp
    from .routes.promotions import promotions_bp
    from .routes.bundles import bundles_bp
    from .routes.shop import shop_bp

    app.register_blueprint(system_bp)
    app.register_blueprint(products_bp)
    app.register_blueprint(logs_bp)
    app.register_blueprint(sales_bp)
    app.register_blueprint(debts_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(promotions_bp)
    app.register_blueprint(bundles_bp)
    app.register_blueprint(shop_bp)

    # Register CLI commands
    from .cli import register_commands
    register_commands(app)

    return app
