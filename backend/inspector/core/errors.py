"""Error taxonomy surfaced at the HTTP boundary.

Each class carries the status code and ``kind`` the exception handler in
``inspector.main`` renders. Pagination input never raises: it is clamped.
"""


class InspectorError(Exception):
    """Base class for errors that map to a structured HTTP failure."""

    status_code: int = 500
    kind: str = "internal_error"
    default_message: str = "Internal error"

    def __init__(self, message: str | None = None, detail: str | None = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message)


class NotReadyError(InspectorError):
    """The catalog has not been published (yet, or ever)."""

    status_code = 503
    kind = "not_ready"
    default_message = "Tables not initialized yet"


class InvalidRelationError(InspectorError):
    """The requested name is not an allow-listed relation."""

    status_code = 400
    kind = "invalid_relation"
    default_message = "Invalid table name"

    def __init__(self, relation: str):
        self.relation = relation
        super().__init__()


class BackendError(InspectorError):
    """A backend call failed; ``error_type`` names the driver exception class."""

    status_code = 500
    kind = "backend_error"
    default_message = "Database query failed"

    def __init__(self, error_type: str, message: str, *, backend: str, operation: str):
        self.error_type = error_type
        self.backend = backend
        self.operation = operation
        super().__init__(detail=message)


class BackendConnectionError(BackendError):
    """The backend could not be reached or refused the credentials."""

    kind = "connection_error"
