# Overview: Error taxonomy shared by fulfillment services, routes, and CLI.

"""
Every pipeline failure is a FulfillmentError subclass. Callers branch on
``outcome``:

- "rejected":     nothing happened and retrying the same request cannot succeed
- "retry":        nothing happened; the whole operation may be retried
- "already_done": the requested effect was applied by an earlier call
"""

from __future__ import annotations


OUTCOME_REJECTED = "rejected"
OUTCOME_RETRY = "retry"
OUTCOME_ALREADY_DONE = "already_done"


class FulfillmentError(Exception):
    """Base class for fulfillment engine errors."""

    status_code = 400
    code = "fulfillment_error"
    outcome = OUTCOME_REJECTED

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "outcome": self.outcome,
            "details": self.details,
        }


class ValidationError(FulfillmentError):
    """400-level input problem."""

    code = "validation_error"


class NotFoundError(FulfillmentError):
    status_code = 404
    code = "not_found"


class OrderNotFoundError(NotFoundError):
    code = "order_not_found"


class ProductNotFoundError(NotFoundError):
    code = "product_not_found"


class TransactionNotFoundError(NotFoundError):
    code = "transaction_not_found"


class SaleNotFoundError(NotFoundError):
    code = "sale_not_found"


class InsufficientStockError(FulfillmentError):
    status_code = 409
    code = "insufficient_stock"


class SizeNotFoundError(FulfillmentError):
    status_code = 409
    code = "size_not_found"


class IncompleteTransactionDataError(FulfillmentError):
    """Ledger row is missing fields required to compensate it."""

    status_code = 422
    code = "incomplete_transaction_data"


class AlreadyProcessedError(FulfillmentError):
    status_code = 409
    code = "already_processed"
    outcome = OUTCOME_ALREADY_DONE


class AlreadyRevertedError(AlreadyProcessedError):
    code = "already_reverted"


class TransientStoreError(FulfillmentError):
    """Write conflicts or lock timeouts outlasted the retry limit."""

    status_code = 503
    code = "transient_store_error"
    outcome = OUTCOME_RETRY
