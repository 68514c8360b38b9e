# schoolpay/error_handlers.py
import logging

from flask import jsonify, request
from werkzeug.exceptions import HTTPException

from .errors import AppError

logger = logging.getLogger(__name__)


def register_error_handlers(app):
    """Register all error handlers for the application"""

    @app.errorhandler(AppError)
    def handle_app_error(error):
        if error.status_code >= 500:
            logger.error(f"{error.code}: {error.message} - Path: {request.path}")
        else:
            logger.warning(f"{error.code}: {error.message} - Path: {request.path}")
        response = jsonify(error.to_dict())
        response.status_code = error.status_code
        return response

    @app.errorhandler(HTTPException)
    def handle_http_exception(e):
        """
        Handles known HTTP errors (404, 403, 405, etc.)
        """
        logger.info(f"{e.code} {e.name}: {request.method} {request.path}")
        return jsonify({
            "status": "error",
            "error": e.name,
            "message": e.description,
            "path": request.path,
        }), e.code

    @app.errorhandler(Exception)
    def handle_exception(e):
        """
        Handles all unexpected server errors.
        Prevents stack trace leakage.
        """
        logger.exception(f"Unhandled exception - Path: {request.path}")
        return jsonify({
            "status": "error",
            "error": "internal_error",
            "message": "An internal server error occurred. Please try again later.",
            "path": request.path,
        }), 500
