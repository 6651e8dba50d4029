"""Turn failed core results into HTTP errors; the detail is always the result message."""
from fastapi import HTTPException, status

from tutor_market.services.results import ErrorKind, OperationResult

STATUS_BY_ERROR: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.ALREADY_COMPLETED: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_RELEASED: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_REGISTERED: status.HTTP_409_CONFLICT,
    ErrorKind.DISPUTED: status.HTTP_409_CONFLICT,
    ErrorKind.INVALID_STATE: status.HTTP_409_CONFLICT,
}


def raise_for_result(result: OperationResult) -> None:
    if result.success:
        return
    code = STATUS_BY_ERROR.get(result.error, status.HTTP_400_BAD_REQUEST)
    raise HTTPException(status_code=code, detail=result.message)
