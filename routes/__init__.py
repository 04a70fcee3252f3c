"""
Flask route blueprints for the Batch Delivery Portal.

This module contains all route handlers organized by functionality:
- delivery_orders: Batch roster and delivery order creation
- tickets: Support ticket creation
- api: Health check

Each blueprint is registered with the Flask app in create_app().
"""

from .delivery_orders import delivery_orders_bp
from .tickets import tickets_bp
from .api import api_bp

__all__ = [
    "delivery_orders_bp",
    "tickets_bp",
    "api_bp",
]


def register_blueprints(app):
    """
    Register all blueprints with the Flask app.

    Args:
        app: Flask application instance
    """
    app.register_blueprint(delivery_orders_bp)
    app.register_blueprint(tickets_bp)
    app.register_blueprint(api_bp)
