class AppError(Exception):
    def __init__(self, message: str, status_code: int):
        """
        Custom exception class for application errors.

        Args:
            message (str): The error message.
            status_code (int): The HTTP status code associated with the error.
        """
        super().__init__(message)

        self.status_code = status_code
        self.status = "fail" if str(status_code).startswith("4") else "error"
        self.is_operational = True


class AuthMissingError(AppError):
    def __init__(self, message: str = "Authorization token missing"):
        super().__init__(message, 401)


class AuthInvalidError(AppError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message, 401)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Access denied"):
        super().__init__(message, 403)


class NotFoundError(AppError):
    def __init__(self, message: str = "Resource not found"):
        super().__init__(message, 404)


class ValidationError(AppError):
    def __init__(self, message: str):
        super().__init__(message, 400)


class InvalidStateError(AppError):
    """Raised when an operation's precondition on the current status is not met."""
    def __init__(self, message: str):
        super().__init__(message, 400)
