"""Error kinds raised by the submission and hint engine.

Each specific kind carries a stable ``code`` and an HTTP-equivalent
``status`` so a web layer can map it to a distinct response. Anything that
is not a ``PortalError`` is an unexpected failure.
"""


class PortalError(Exception):
    code = "error"
    status = 400

    def __init__(self, message: str, **context):
        super().__init__(message)
        self.message = message
        self.context = context

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, "status": self.status}


class NotFound(PortalError):
    """Assignment, problem or child missing, or not owned by the caller."""
    code = "not_found"
    status = 404


class AlreadyTerminal(PortalError):
    """The question accepts no more answers, or the hint was already bought."""
    code = "already_completed"
    status = 400

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["questionComplete"] = True
        return data


class ConfigurationInvalid(PortalError):
    """Authoring data makes the question ungradable."""
    code = "configuration_invalid"
    status = 422


class InsufficientFunds(PortalError):
    code = "insufficient_funds"
    status = 400


class HintNotAvailable(PortalError):
    """Hint purchase refused; ``reason`` says why."""
    code = "hint_not_available"
    status = 400

    @property
    def reason(self) -> str:
        return self.message


class TransactionConflict(PortalError):
    """A concurrent write touched the same rows; safe to try again."""
    code = "conflict"
    status = 409
    retriable = True


def error_response(exc: BaseException) -> dict:
    """Map any exception to a response body for the caller."""
    if isinstance(exc, PortalError):
        return exc.to_dict()
    return {"error": "Unexpected error", "code": "unexpected", "status": 500}
