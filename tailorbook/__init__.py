import logging

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.exceptions import HTTPException

from .auth import auth_bp
from .auth.provider import ProviderError
from .catalog.routes import catalog_bp
from .cli import register_cli
from .company.routes import company_bp
from .config import Config
from .customers.routes import customers_bp
from .errors import ServiceError
from .extensions import db, migrate
from .orders.routes import orders_bp
from .payments.routes import payments_bp
from .reports.routes import reports_bp
from .utils.mail import init_mail_settings

logger = logging.getLogger(__name__)


def register_errors(app: Flask) -> None:
    @app.errorhandler(ServiceError)
    def service_error(exc):
        db.session.rollback()
        return jsonify(exc.to_dict()), exc.status_code

    @app.errorhandler(ProviderError)
    def provider_error(exc):
        db.session.rollback()
        return jsonify({"error": exc.message, "code": exc.code}), 401

    @app.errorhandler(SQLAlchemyError)
    def database_error(exc):
        db.session.rollback()
        logger.exception("Database error")
        detail = getattr(exc, "orig", None) or exc
        return jsonify({"error": f"Database error: {detail}"}), 500

    @app.errorhandler(HTTPException)
    def http_error(exc):
        return jsonify({"error": exc.description}), exc.code


def create_app(config_object=None) -> Flask:
    app = Flask(__name__)
    cfg = config_object or Config
    app.config.from_object(cfg)

    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger("tailorbook").setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    migrate.init_app(app, db)
    init_mail_settings(app)
    register_errors(app)
    register_cli(app)

    app.register_blueprint(auth_bp)
    app.register_blueprint(company_bp)
    app.register_blueprint(customers_bp)
    app.register_blueprint(orders_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(catalog_bp)
    app.register_blueprint(reports_bp)

    @app.get("/api/ping")
    def ping():
        return jsonify({
            "status": "ok",
            "product": app.config.get("PRODUCT_NAME"),
            "version": app.config.get("APP_VERSION"),
        })

    if app.config.get("AUTO_CREATE_SCHEMA"):
        with app.app_context():
            db.create_all()

    return app
