class SchemaError(Exception):
    """Raised when a Form or Question is malformed."""

    def __init__(self, violations: list[str]):
        self.violations = violations
        super().__init__("; ".join(violations))


class AnswerValidationError(Exception):
    """Raised when an answer set fails required or format checks."""

    def __init__(self, violations: list):
        self.violations = violations
        super().__init__("; ".join(v.message for v in violations))


class GateError(Exception):
    """Raised when an answer write is attempted while the form is not open."""

    def __init__(self, state=None, message: str | None = None):
        self.state = state
        super().__init__(message or (state.reason if state is not None else "Form is read-only"))


class NotFound(Exception):
    """Raised when an operation references an id that does not exist."""


class AdapterError(Exception):
    """Raised when the persistence backend fails."""


class ConflictError(AdapterError):
    """Raised when a write is rejected because the stored record changed."""


class ActionInFlightError(Exception):
    """Raised when save/submit is invoked while the previous call is still running."""
