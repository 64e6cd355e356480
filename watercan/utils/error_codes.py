# watercan/utils/error_codes.py
from watercan.core import exceptions

ERROR_CODES = {
    "VALIDATION_ERROR": "VALIDATION_ERROR",
    "UNAUTHORIZED": "UNAUTHORIZED",
    "FORBIDDEN": "FORBIDDEN",
    "NOT_FOUND": "NOT_FOUND",
    "CONFLICT": "CONFLICT",
    "SERVER_ERROR": "SERVER_ERROR",
    "SERVICE_UNAVAILABLE": "SERVICE_UNAVAILABLE",
}

HTTP_STATUS_TO_ERROR_CODE = {
    400: ERROR_CODES["VALIDATION_ERROR"],
    401: ERROR_CODES["UNAUTHORIZED"],
    403: ERROR_CODES["FORBIDDEN"],
    404: ERROR_CODES["NOT_FOUND"],
    409: ERROR_CODES["CONFLICT"],
    422: ERROR_CODES["VALIDATION_ERROR"],
    500: ERROR_CODES["SERVER_ERROR"],
    503: ERROR_CODES["SERVICE_UNAVAILABLE"],
}

CATEGORY_TO_HTTP_STATUS = {
    exceptions.VALIDATION: 400,
    exceptions.NOT_FOUND: 404,
    exceptions.BUSINESS_RULE: 400,
    exceptions.ACCESS: 403,
    exceptions.STORE: 503,
}

# Exceptions whose status differs from their category's
HTTP_STATUS_OVERRIDES = {
    exceptions.NotAuthenticated: 401,
    exceptions.CustomerExists: 409,
    exceptions.ConcurrentUpdate: 409,
}


def http_status_for(error: exceptions.LedgerError) -> int:
    for error_type, status in HTTP_STATUS_OVERRIDES.items():
        if isinstance(error, error_type):
            return status
    return CATEGORY_TO_HTTP_STATUS.get(error.category, 500)
