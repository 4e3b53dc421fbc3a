from fastapi import HTTPException, status

from patchouli.domain.errors import ErrorKind, OperationError

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.UNAUTHENTICATED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.FORBIDDEN: status.HTTP_403_FORBIDDEN,
    ErrorKind.BANNED: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.INVALID_TRANSITION: status.HTTP_409_CONFLICT,
    ErrorKind.VALIDATION_ERROR: status.HTTP_422_UNPROCESSABLE_ENTITY,
    ErrorKind.EXTERNAL_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.TIMEOUT: status.HTTP_504_GATEWAY_TIMEOUT,
}


def error_body(error: OperationError) -> dict[str, object]:
    return {
        "kind": error.kind.value,
        "code": error.code,
        "message": error.message,
        "field": error.field,
        "retryable": error.retryable,
    }


def raise_for_errors(errors: list[OperationError]) -> None:
    """Raise an HTTPException for the first error, if any."""
    if not errors:
        return
    first = errors[0]
    headers = {"WWW-Authenticate": "Bearer"} if first.kind == ErrorKind.UNAUTHENTICATED else None
    raise HTTPException(
        status_code=STATUS_BY_KIND[first.kind],
        detail=error_body(first),
        headers=headers,
    )
