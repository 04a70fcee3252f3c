"""
Batch Delivery Portal - Flask Application Entry Point.

This is a slim app factory that:
1. Loads configuration and sets up logging
2. Builds the backend API client (fail-fast if no backend URL)
3. Builds the query cache and preference store
4. Builds the services on top of them
5. Registers route blueprints and JSON error handlers

ARCHITECTURE:
    Main Thread
    ├── Service construction
    └── Cleanup on shutdown (query cache workers)

    Request Threads (Flask)
    └── Read through QueryCache, write through PortalAPIClient

    QueryCache Workers (background)
    └── Stale-while-revalidate refreshes

ONE cache and ONE API client per application, passed explicitly to every
service. Nothing is held in module globals.
"""

from __future__ import annotations

import atexit
import logging
import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from flask import Flask
from werkzeug.exceptions import HTTPException

from logging_config import setup_logging, get_logger
from core.api_client import PortalAPIClient
from core.exceptions import PortalError
from services.query_cache import QueryCache
from services.preference_store import PreferenceStore
from services.batch_service import BatchService, StaleTimes
from services.delivery_order_service import OrderCreationWorkflow
from services.ticket_service import TicketService
from routes import register_blueprints
from routes.common import error_response


# Module logger (configured after setup_logging)
logger = get_logger(__name__)


def _get_base_path() -> Path:
    """
    Get the base path for the application.

    In a frozen bundle: Returns the directory containing the executable
    In development: Returns the directory containing app.py
    """
    if getattr(sys, 'frozen', False):
        return Path(sys.executable).parent
    else:
        return Path(__file__).parent


def create_app(
    config_object: str = "config.Config",
    api_client: Optional[PortalAPIClient] = None,
    overrides: Optional[Dict[str, Any]] = None
) -> Flask:
    """
    Application factory - creates and configures Flask app.

    Args:
        config_object: Import path of the config class
        api_client: Pre-built backend client (tests pass a mock)
        overrides: Config values applied after config_object

    Returns:
        Configured Flask application

    Raises:
        ValueError: If no backend URL is configured and no client was given,
            or PREFERENCE_SCOPE is invalid
    """
    # Use override=True so .env file always takes precedence over shell environment
    env_file = _get_base_path() / '.env'
    if env_file.exists():
        load_dotenv(env_file, override=True)
    else:
        load_dotenv(override=True)

    app = Flask(__name__)
    app.config.from_object(config_object)
    if overrides:
        app.config.update(overrides)

    # Configure logging
    log_level = logging.DEBUG if app.config.get("DEBUG") else logging.INFO
    enable_file_logging = app.config.get("ENVIRONMENT") == "production"

    root_logger = setup_logging(
        log_level=log_level,
        enable_file_logging=enable_file_logging
    )

    # Set Flask's logger to use our configured logger
    app.logger.handlers = root_logger.handlers
    app.logger.setLevel(log_level)

    logger.info(f"Starting Batch Delivery Portal in {app.config.get('ENVIRONMENT')} mode")

    # =========================================================================
    # CORE INITIALIZATION (FAIL-FAST)
    # =========================================================================

    if api_client is None:
        try:
            api_client = PortalAPIClient(
                base_url=app.config.get("PORTAL_API_BASE_URL", ""),
                token=app.config.get("PORTAL_API_TOKEN") or None,
                timeout_seconds=app.config.get("PORTAL_API_TIMEOUT", 15.0),
                logger=get_logger("core.api_client"),
            )
        except ValueError as e:
            logger.error(f"FATAL: Cannot start application - {e}")
            raise

    app.config["API_CLIENT"] = api_client

    # =========================================================================
    # CACHE AND PREFERENCES
    # =========================================================================

    query_cache = QueryCache(
        default_stale_time=0.0,
        max_workers=app.config.get("QUERY_CACHE_WORKERS", 4),
    )
    app.config["QUERY_CACHE"] = query_cache

    preference_store = PreferenceStore(Path(app.config["PREFERENCES_PATH"]))
    app.config["PREFERENCE_STORE"] = preference_store

    # =========================================================================
    # SERVICES INITIALIZATION
    # =========================================================================

    stale_times = StaleTimes(
        courses=app.config.get("COURSES_STALE_TIME"),
        students=app.config.get("STUDENTS_STALE_TIME", 0.0),
        delivery_settings=app.config.get("SETTINGS_STALE_TIME", 0.0),
        student_orders=app.config.get("ORDERS_STALE_TIME", 300.0),
    )
    batch_service = BatchService(api_client, query_cache, stale_times)
    app.config["BATCH_SERVICE"] = batch_service

    order_workflow = OrderCreationWorkflow(
        api_client,
        query_cache,
        batch_service,
        preference_store,
        preference_scope=app.config.get("PREFERENCE_SCOPE", "shared"),
    )
    app.config["ORDER_WORKFLOW"] = order_workflow
    logger.info(f"Order workflow initialized (preference scope: {order_workflow.preference_scope})")

    app.config["TICKET_SERVICE"] = TicketService(api_client, query_cache)

    # =========================================================================
    # CLEANUP REGISTRATION
    # =========================================================================

    def cleanup():
        """Cleanup on application shutdown."""
        logger.info("Shutting down...")
        query_cache.shutdown(wait=False)
        logger.info("Shutdown complete")

    atexit.register(cleanup)

    # =========================================================================
    # REGISTER BLUEPRINTS
    # =========================================================================

    register_blueprints(app)

    # =========================================================================
    # ERROR HANDLERS
    # =========================================================================

    @app.errorhandler(PortalError)
    def handle_portal_error(e: PortalError):
        logger.warning(f"Unhandled portal error: {e}")
        return error_response(e, "Error")

    @app.errorhandler(HTTPException)
    def handle_http_error(e: HTTPException):
        return {"error": e.name, "message": e.description}, e.code

    @app.errorhandler(500)
    def handle_server_error(e):
        logger.error(f"500 error: {e}", exc_info=True)
        return {"error": "Internal Server Error",
                "message": "An unexpected error occurred. Please try again."}, 500

    logger.info("Application initialized successfully")
    return app


if __name__ == "__main__":
    app = create_app()
    debug_mode = os.environ.get("FLASK_DEBUG", "1") == "1"
    app.run(debug=debug_mode)
