class CustomBaseError(Exception):
    """Base class for all custom exceptions - controls logging behavior in @Logger.io"""

    def __init__(self, message: str, status_code: int) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(message)


class DomainError(CustomBaseError):
    def __init__(self, message: str, status_code: int = 400) -> None:
        super().__init__(message, status_code)


class InvalidStatusTransitionError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class ConflictError(CustomBaseError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 409)


class EventDecodeError(CustomBaseError):
    """Raised when a consumed message cannot be turned into a booking reference"""

    def __init__(self, message: str) -> None:
        super().__init__(message, 422)
