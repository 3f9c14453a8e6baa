from flask import Flask
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address

# Import blueprints
from Controllers.errorController import error_bp
from Routes.orderRoutes import order_routes
from Routes.paymentRoutes import payment_routes
from Routes.adminRoutes import admin_routes

from Services.orderService import OrderService
from Services.paymentService import PaymentService
from Utils.cli import register_token_command
from Utils.config import load_config
from Utils.db import init_db
from Utils.logger import setup_logging


def create_app(overrides=None):
    """
    Build the order & payment service.

    ``overrides`` is merged over the environment-derived configuration; tests
    use it to swap in their own database connection and disable file logging.
    """
    config = load_config()
    config.update(overrides or {})

    # ----------------------------
    # Flask app configuration
    # ----------------------------
    app = Flask(__name__)
    app.config.update(config)
    app.secret_key = config["SECRET_KEY"]

    # ----------------------------
    # Logging Configuration
    # ----------------------------
    setup_logging(app)

    # ----------------------------
    # Database
    # ----------------------------
    if app.config["MONGODB_CONNECT"]:
        init_db(app.config["MONGODB_URI"])

    # ----------------------------
    # Core services
    # ----------------------------
    app.extensions["order_service"] = OrderService(
        bulk_workers=app.config["BULK_UPDATE_WORKERS"]
    )
    app.extensions["payment_service"] = PaymentService(
        webhook_secret=app.config["PAYMENT_WEBHOOK_SECRET"]
    )
    if not app.config["PAYMENT_WEBHOOK_SECRET"]:
        app.logger.warning("⚠️ PAYMENT_WEBHOOK_SECRET not set: payment webhook accepts unsigned callbacks")

    # ----------------------------
    # Rate Limiter
    # ----------------------------
    Limiter(
        get_remote_address,
        app=app,
        default_limits=[
            app.config["LIMIT_DEFAULT_HOURLY"],
            app.config["LIMIT_DEFAULT_SECONDLY"]
        ],
    )

    # ----------------------------
    # Register blueprints
    # ----------------------------
    app.register_blueprint(error_bp)
    app.register_blueprint(order_routes)
    app.register_blueprint(payment_routes)
    app.register_blueprint(admin_routes)

    # ----------------------------
    # CLI
    # ----------------------------
    register_token_command(app)

    return app


# ----------------------------
# Run the app
# ----------------------------
if __name__ == '__main__':
    app = create_app()
    port = app.config["PORT"]
    app.logger.info(f"App running on port {port}...")
    app.run(host='0.0.0.0', port=port, debug=False)
