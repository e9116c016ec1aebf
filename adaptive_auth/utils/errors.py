"""Error taxonomy raised by the services and rendered by the API."""
from fastapi import HTTPException
from starlette import status


class InvalidInputError(HTTPException):
    def __init__(self, detail: str = "Invalid input"):
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


class NotFoundError(HTTPException):
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class SessionExpiredError(HTTPException):
    def __init__(self, detail: str = "Session expired"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class UnauthorizedError(HTTPException):
    def __init__(self, detail: str = "Unauthorized"):
        super().__init__(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail)


class OperationNotPermittedError(HTTPException):
    def __init__(self, detail: str = "Operation not permitted for this session"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InternalError(HTTPException):
    def __init__(self, detail: str = "Internal error"):
        super().__init__(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=detail)


class InvariantViolation(RuntimeError):
    """Internally produced data broke an invariant. Never handled as a request error."""
