"""Application factory for RentLedger."""
from __future__ import annotations

from flask import Flask

from .config import Config
from .extensions import db
from .logging_service import log_manager


def create_app(config_class: type[Config] = Config) -> Flask:
    """Create and configure the Flask application."""
    app = Flask(__name__)
    app.config.from_object(config_class)

    db.init_app(app)
    log_manager.init_app(app)

    from .index import bp as index_bp
    from .leasing import bp as leasing_bp
    from .payments import bp as payments_bp
    from .settings import bp as settings_bp
    from .logging import bp as logging_bp

    with app.app_context():
        db.create_all()

    app.register_blueprint(index_bp)
    app.register_blueprint(leasing_bp, url_prefix="/leases")
    app.register_blueprint(payments_bp, url_prefix="/payments")
    app.register_blueprint(settings_bp, url_prefix="/settings")
    app.register_blueprint(logging_bp, url_prefix="/logs")

    for component in ("Dashboard", "Leases", "Payments", "Settings"):
        log_manager.register_component(component)

    return app
