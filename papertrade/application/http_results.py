from typing import Any, Dict, Type

from fastapi import HTTPException, Response, status

from papertrade.commons.results import (
    Conflict,
    DependencyFailure,
    NoChange,
    NotFound,
    Ok,
    OperationResult,
    Rejected,
)

FAILURE_STATUS: Dict[Type, int] = {
    Rejected: status.HTTP_400_BAD_REQUEST,
    NotFound: status.HTTP_404_NOT_FOUND,
    Conflict: status.HTTP_406_NOT_ACCEPTABLE,
    DependencyFailure: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def unwrap(result: OperationResult, response: Response) -> Any:
    """
    Turn an operation result into a FastAPI return value.

    Ok passes its value through, NoChange answers 304 with no body and every
    failure is raised as an HTTPException carrying the reason.
    """
    if isinstance(result, Ok):
        return result.value

    if isinstance(result, NoChange):
        response.status_code = status.HTTP_304_NOT_MODIFIED
        return None

    code = FAILURE_STATUS.get(type(result))
    if code is None:
        raise TypeError(f"Unexpected operation result {result!r}")
    raise HTTPException(status_code=code, detail=result.reason)
