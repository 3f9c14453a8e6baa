from flask import Blueprint, current_app, request, jsonify
from mongoengine.errors import ValidationError as DocumentValidationError
from werkzeug.exceptions import HTTPException

from Utils.appError import AppError

error_bp = Blueprint('errors', __name__)


def _fail(message, status_code):
    status = "fail" if str(status_code).startswith("4") else "error"
    return jsonify({"success": False, "status": status, "message": message}), status_code


@error_bp.app_errorhandler(AppError)
def handle_app_error(err):
    """Handles custom AppError exceptions raised by controllers and services."""
    if err.status_code >= 500:
        current_app.logger.error(f"AppError {err.status_code} at {request.path}: {err}")
    else:
        current_app.logger.warning(f"AppError {err.status_code} at {request.path}: {err}")
    return _fail(str(err), err.status_code)


@error_bp.app_errorhandler(DocumentValidationError)
def handle_document_validation_error(err):
    current_app.logger.warning(f"Document validation failed at {request.path}: {err}")
    return _fail(f"Invalid data: {err}", 400)


@error_bp.app_errorhandler(404)
def not_found_error(e):
    current_app.logger.warning(
        f"404 Not Found: {e} | URL: {request.url} | Method: {request.method} | IP: {request.remote_addr}"
    )
    return _fail("Resource not found", 404)


@error_bp.app_errorhandler(429)
def ratelimit_handler(e):
    return _fail("Rate limit exceeded. Please slow down.", 429)


@error_bp.app_errorhandler(HTTPException)
def handle_http_exception(e):
    return _fail(e.description or e.name, e.code or 500)


@error_bp.app_errorhandler(Exception)
def handle_unexpected_error(e):
    # This includes traceback automatically
    current_app.logger.exception(
        f"Unexpected Application Error: {e} | URL: {request.url} | Method: {request.method} | IP: {request.remote_addr}"
    )
    return _fail("Something went wrong on the server.", 500)
