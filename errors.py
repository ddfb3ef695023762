"""Domain errors raised by the services and rendered by the API layer."""


class HaladorError(Exception):
    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    @property
    def kind(self) -> str:
        return type(self).__name__


class ValidationError(HaladorError):
    """Bad input shape or range."""
    status_code = 400


class AuthenticationError(HaladorError):
    status_code = 401


class GateError(HaladorError):
    """Driver subscription is not active."""
    status_code = 402


class AuthorizationError(HaladorError):
    """Actor lacks rights over the target entity."""
    status_code = 403


class NotFoundError(HaladorError):
    status_code = 404


class StateError(HaladorError):
    """Operation invalid for the entity's current state."""
    status_code = 409


class CapacityError(HaladorError):
    status_code = 409


class DuplicateError(HaladorError):
    status_code = 409


class PublishTimeoutError(HaladorError):
    """The write did not finish in time; its outcome is unknown."""
    status_code = 504
