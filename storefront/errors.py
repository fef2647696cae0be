from fastapi import HTTPException, status


class ApiError(HTTPException):
    """HTTPException carrying a machine-readable error code for the response envelope."""

    def __init__(self, status_code: int, message: str, code: str = None, headers: dict = None):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.code = code or f"ERROR_{status_code}"


def bad_request(message: str, code: str) -> ApiError:
    return ApiError(status.HTTP_400_BAD_REQUEST, message, code)


def not_found(message: str, code: str) -> ApiError:
    return ApiError(status.HTTP_404_NOT_FOUND, message, code)


def forbidden(message: str = "Unauthorized", code: str = "UNAUTHORIZED") -> ApiError:
    return ApiError(status.HTTP_403_FORBIDDEN, message, code)


def unauthenticated(message: str, code: str) -> ApiError:
    return ApiError(
        status.HTTP_401_UNAUTHORIZED, message, code, headers={"WWW-Authenticate": "Bearer"}
    )


def conflict(message: str, code: str) -> ApiError:
    return ApiError(status.HTTP_409_CONFLICT, message, code)
