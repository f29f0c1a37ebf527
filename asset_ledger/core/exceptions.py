from fastapi import HTTPException

from asset_ledger.constants.error_codes import ErrorCode


class AppException(HTTPException):
    def __init__(
        self,
        status_code: int,
        message: str,
        error_code: ErrorCode,
        details: dict | None = None,
    ):
        super().__init__(status_code=status_code, detail=message)
        self.error_code = error_code
        self.details = details

    @property
    def message(self) -> str:
        return self.detail


# -------------------------
# LEDGER TAXONOMY
# -------------------------
class InvalidArgumentError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.VALIDATION_ERROR,
        details: dict | None = None,
    ):
        super().__init__(400, message, error_code, details)


class NotFoundError(AppException):
    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.NOT_FOUND,
        details: dict | None = None,
    ):
        super().__init__(404, message, error_code, details)


class ConflictError(AppException):
    """Business-state violation. Callers must not retry automatically."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.CONFLICT,
        details: dict | None = None,
    ):
        super().__init__(409, message, error_code, details)


class InternalError(AppException):
    def __init__(
        self,
        message: str = "Internal store failure",
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict | None = None,
    ):
        super().__init__(500, message, error_code, details)
