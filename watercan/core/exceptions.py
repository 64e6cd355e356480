# watercan/core/exceptions.py
"""
Error taxonomy for the ledger core.

Every rejection raised by a service is a LedgerError carrying a category
and a stable code, so the HTTP layer can pick a status without inspecting
messages.
"""

VALIDATION = "validation"
NOT_FOUND = "not_found"
BUSINESS_RULE = "business_rule"
ACCESS = "access"
STORE = "store"


class LedgerError(Exception):
    category = STORE
    code = "LEDGER_ERROR"
    default_message = "The operation could not be completed"

    def __init__(self, message: str = None, details: dict = None):
        self.message = message or self.default_message
        self.details = details
        super().__init__(self.message)


# --- Validation ---

class ValidationFailed(LedgerError):
    category = VALIDATION
    code = "VALIDATION_ERROR"
    default_message = "Invalid request"


class InvalidAmount(ValidationFailed):
    code = "INVALID_AMOUNT"
    default_message = "Valid amount is required"


class InvalidKind(ValidationFailed):
    code = "INVALID_KIND"
    default_message = "Transaction type must be credit or debit"


class InvalidQuantity(ValidationFailed):
    code = "INVALID_QUANTITY"
    default_message = "Valid quantity is required"


class InvalidOperation(ValidationFailed):
    code = "INVALID_OPERATION"
    default_message = "Operation must be add or remove"


class InvalidStatus(ValidationFailed):
    code = "INVALID_STATUS"
    default_message = "Unknown order status"


class InvalidProfile(ValidationFailed):
    code = "INVALID_PROFILE"
    default_message = "Invalid customer profile"


# --- Not found ---

class NotFound(LedgerError):
    category = NOT_FOUND
    code = "NOT_FOUND"
    default_message = "Record not found"


class CustomerNotFound(NotFound):
    code = "CUSTOMER_NOT_FOUND"
    default_message = "Customer not found"


class OrderNotFound(NotFound):
    code = "ORDER_NOT_FOUND"
    default_message = "Order not found"


class NoInventoryRecord(NotFound):
    code = "NO_INVENTORY_RECORD"
    default_message = "No inventory record found"


# --- Business rules ---

class BusinessRuleViolation(LedgerError):
    category = BUSINESS_RULE
    code = "BUSINESS_RULE_VIOLATION"
    default_message = "The operation violates a business rule"


class InsufficientBalance(BusinessRuleViolation):
    code = "INSUFFICIENT_BALANCE"
    default_message = "Insufficient balance for this transaction"


class InsufficientStock(BusinessRuleViolation):
    code = "INSUFFICIENT_STOCK"
    default_message = "Not enough cans available"


class InvalidTransition(BusinessRuleViolation):
    code = "INVALID_TRANSITION"
    default_message = "Order status cannot change this way"


class ExcessiveReturn(BusinessRuleViolation, InvalidQuantity):
    """A can-return larger than what the customer holds."""
    category = BUSINESS_RULE
    code = "INVALID_QUANTITY"
    default_message = "Customer does not hold that many cans"


class CustomerExists(BusinessRuleViolation):
    code = "CUSTOMER_EXISTS"
    default_message = "Customer already exists"


# --- Access ---

class NotAuthenticated(LedgerError):
    category = ACCESS
    code = "UNAUTHORIZED"
    default_message = "Authentication required"


class AccessDenied(LedgerError):
    category = ACCESS
    code = "FORBIDDEN"
    default_message = "Permission denied"


class RoleLookupError(LedgerError):
    """A role-resolution strategy could not reach its source."""
    category = ACCESS
    code = "ROLE_LOOKUP_FAILED"
    default_message = "Role lookup failed"


# --- Store ---

class StoreError(LedgerError):
    category = STORE
    code = "STORE_UNAVAILABLE"
    default_message = "The operation failed and no changes were saved"


class ConcurrentUpdate(StoreError):
    code = "CONCURRENT_UPDATE"
    default_message = "The record was changed by another request; no changes were saved"
