"""
Team Diagnostics Report Service
Blueprint registry.

Shared helpers:
    - register_error_handlers: maps the service exception hierarchy onto
      JSON error responses for one blueprint
    - json_body: request body as a dict (400 when it is not a JSON object)
"""

import logging

from flask import request

from team_reports.core.exceptions import (
    EmptySelectionError,
    GenerationFailedError,
    InvalidRequestError,
    NotFoundError,
    PersistenceFailedError,
)
from team_reports.utils.errors import E, api_error

logger = logging.getLogger(__name__)


def json_body() -> dict:
    """Parsed JSON object body.

    Raises:
        InvalidRequestError: Body missing, unparsable, or not an object.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidRequestError("Request body must be a JSON object")
    return data


def register_error_handlers(bp):
    """Attach one handler per service exception type to ``bp``."""

    @bp.errorhandler(EmptySelectionError)
    def _handle_empty_selection(error: EmptySelectionError):
        return api_error(E.EMPTY_SELECTION, error.message)

    @bp.errorhandler(InvalidRequestError)
    def _handle_invalid(error: InvalidRequestError):
        return api_error(E.VALIDATION_INVALID, error.message, details=error.details)

    @bp.errorhandler(NotFoundError)
    def _handle_not_found(error: NotFoundError):
        return api_error(E.NOT_FOUND, error.message)

    @bp.errorhandler(GenerationFailedError)
    def _handle_generation_failed(error: GenerationFailedError):
        logger.warning("Report generation failed endpoint=%s: %s", request.endpoint, error.upstream)
        return api_error(E.GENERATION_FAILED, error.message, details=error.upstream)

    @bp.errorhandler(PersistenceFailedError)
    def _handle_persistence_failed(error: PersistenceFailedError):
        return api_error(E.PERSISTENCE_FAILED, error.message, details=error.details)

    return bp
