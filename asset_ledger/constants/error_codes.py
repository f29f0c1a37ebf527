# asset_ledger/constants/error_codes.py

from enum import Enum


class ErrorCode(str, Enum):
    # ---- generic ----
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    CONFLICT = "CONFLICT"
    INTERNAL_ERROR = "INTERNAL_ERROR"
    DEADLINE_EXCEEDED = "DEADLINE_EXCEEDED"

    # ---- assets ----
    ASSET_NOT_FOUND = "ASSET_NOT_FOUND"
    ASSET_RECORD_NOT_FOUND = "ASSET_RECORD_NOT_FOUND"
    CATEGORY_INVALID = "CATEGORY_INVALID"
    CODE_CONFLICT = "CODE_CONFLICT"

    # ---- ledger ----
    LEND_NOT_FOUND = "LEND_NOT_FOUND"
    RETURN_NOT_FOUND = "RETURN_NOT_FOUND"
    DISPOSAL_NOT_FOUND = "DISPOSAL_NOT_FOUND"
    INSUFFICIENT_STOCK = "INSUFFICIENT_STOCK"
    OVER_RETURN = "OVER_RETURN"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
