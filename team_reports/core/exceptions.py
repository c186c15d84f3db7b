"""
Service-wide exception hierarchy.

Services raise these; blueprints register one handler per type and map them
to HTTP status codes (see ``team_reports.blueprints.register_error_handlers``).

Usage:
    from team_reports.core.exceptions import NotFoundError, EmptySelectionError

    raise NotFoundError(resource="Team", resource_id="org-1-team-4")
    raise EmptySelectionError()
"""


class ReportServiceError(Exception):
    """Base class for every error surfaced at the API boundary.

    Args:
        message: Human-readable explanation, always safe to return to clients.
        details: Optional diagnostic context (string or field-level dict).
    """

    def __init__(self, message: str, details: str | dict | None = None) -> None:
        self.message = message
        self.details = details
        super().__init__(message)


class InvalidRequestError(ReportServiceError):
    """Required identity or snapshot fields are missing or malformed.

    Client-correctable: the caller fixes the payload and resubmits.
    """


class EmptySelectionError(InvalidRequestError):
    """An explicitly empty module selection was supplied.

    Never silently replaced with the default catalog; only an omitted
    selection falls back to "all modules".
    """

    def __init__(self, message: str = "At least one module must be selected") -> None:
        super().__init__(message)


class NotFoundError(ReportServiceError):
    """A requested organization, team or report does not exist.

    Args:
        resource: Entity name (e.g. "Team").
        resource_id: The identifier that was looked up.
    """

    def __init__(self, resource: str, resource_id: str | int | None = None) -> None:
        self.resource = resource
        self.resource_id = resource_id
        msg = f"{resource}"
        if resource_id is not None:
            msg += f" {resource_id}"
        msg += " not found"
        super().__init__(msg)


class GenerationFailedError(ReportServiceError):
    """The upstream text-generation call failed or timed out.

    ``upstream`` keeps the provider's own message for diagnostics. No retry
    happens at this layer.
    """

    def __init__(self, message: str = "Failed to generate report", upstream: str | None = None) -> None:
        self.upstream = upstream
        super().__init__(message, details=upstream)


class PersistenceFailedError(ReportServiceError):
    """Saving a generated report failed.

    When raised after a successful generation the markdown is still handed
    back to the caller; only the save is reported as failed.
    """
