"""
Typed Exception Hierarchy for the Rental Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers of the schedule engine (HTTP handlers, scripts, the persistence
service) must distinguish "the agreement is malformed" from "someone else
updated these rows first" without parsing messages. Every error therefore
has:
  1. A TYPED exception class (catch by type, not message)
  2. A CODE class attribute (machine-readable, API-safe)
  3. Structured DATA attributes (not just a message string)

Example:
    try:
        service.record_payment(agreement_id, amount, payment_date, actor_id)
    except InvalidAmountError as e:
        return {"error": e.code, "amount": str(e.amount)}, 400
    except ConcurrentModificationError as e:
        return {"error": e.code}, 409

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from RentalKernelError:

    RentalKernelError (base)
    |
    +-- AgreementError
    |   +-- InvalidAgreementError
    |   +-- AgreementNotFoundError
    |
    +-- ScheduleError
    |   +-- GenerationLimitExceeded   (also a RuntimeWarning -- soft)
    |   +-- ScheduleAlreadyExistsError
    |   +-- ScheduleNotFoundError
    |
    +-- PaymentError
    |   +-- InvalidAmountError
    |
    +-- LateFeeError
    |   +-- InvalidLateFeePolicyError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentModificationError
    |
    +-- ConfigurationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                       | When Raised
-------------|----------------------------|--------------------------------------
Agreement    | INVALID_AGREEMENT          | Missing/contradictory dates or fields
             | AGREEMENT_NOT_FOUND        | Agreement ID doesn't exist
-------------|----------------------------|--------------------------------------
Schedule     | GENERATION_LIMIT_EXCEEDED  | Period safety bound hit (warning)
             | SCHEDULE_ALREADY_EXISTS    | Agreement already has schedules
             | SCHEDULE_NOT_FOUND         | Schedule ID doesn't exist
-------------|----------------------------|--------------------------------------
Payment      | INVALID_AMOUNT             | Payment amount not > 0 / not money
-------------|----------------------------|--------------------------------------
Late fee     | INVALID_LATE_FEE_POLICY    | Unknown fee type or negative values
-------------|----------------------------|--------------------------------------
Concurrency  | CONCURRENT_MODIFICATION    | Schedule rows changed under us
-------------|----------------------------|--------------------------------------
Config       | CONFIGURATION_ERROR        | Invalid YAML configuration

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation errors (INVALID_*) are never retried; surface them as 4xx.
2. ConcurrentModificationError is safe to retry ONCE for the whole
   allocate-and-persist operation (the service does this itself).
3. GenerationLimitExceeded is a warning: the generator issues it through
   ``warnings.warn`` and still returns the partial schedule.
"""


class RentalKernelError(Exception):
    """
    Base exception for all rental kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "RENTAL_KERNEL_ERROR"


# Agreement-related exceptions


class AgreementError(RentalKernelError):
    """Base exception for rental agreement errors."""

    code: str = "AGREEMENT_ERROR"


class InvalidAgreementError(AgreementError):
    """Agreement data cannot produce a schedule (missing or contradictory)."""

    code: str = "INVALID_AGREEMENT"

    def __init__(self, reason: str, agreement_id: str | None = None):
        self.reason = reason
        self.agreement_id = agreement_id
        prefix = f"Invalid agreement {agreement_id}" if agreement_id else "Invalid agreement"
        super().__init__(f"{prefix}: {reason}")


class AgreementNotFoundError(AgreementError):
    """Rental agreement with given ID was not found."""

    code: str = "AGREEMENT_NOT_FOUND"

    def __init__(self, agreement_id: str):
        self.agreement_id = agreement_id
        super().__init__(f"Rental agreement not found: {agreement_id}")


# Schedule-related exceptions


class ScheduleError(RentalKernelError):
    """Base exception for payment schedule errors."""

    code: str = "SCHEDULE_ERROR"


class GenerationLimitExceeded(ScheduleError, RuntimeWarning):
    """
    Schedule generation stopped at the period safety bound.

    Soft condition: issued with ``warnings.warn`` and logged at WARNING.
    The partial schedule generated so far is still returned.
    """

    code: str = "GENERATION_LIMIT_EXCEEDED"

    def __init__(self, limit: int, contract_number: str | None = None):
        self.limit = limit
        self.contract_number = contract_number
        super().__init__(
            f"Payment schedule generation exceeded {limit} periods"
            + (f" for contract {contract_number}" if contract_number else "")
        )


class ScheduleAlreadyExistsError(ScheduleError):
    """Schedules were already generated for this agreement."""

    code: str = "SCHEDULE_ALREADY_EXISTS"

    def __init__(self, agreement_id: str):
        self.agreement_id = agreement_id
        super().__init__(
            f"Payment schedules already exist for rental agreement {agreement_id}"
        )


class ScheduleNotFoundError(ScheduleError):
    """Payment schedule with given ID was not found."""

    code: str = "SCHEDULE_NOT_FOUND"

    def __init__(self, schedule_id: str):
        self.schedule_id = schedule_id
        super().__init__(f"Payment schedule not found: {schedule_id}")


# Payment-related exceptions


class PaymentError(RentalKernelError):
    """Base exception for payment errors."""

    code: str = "PAYMENT_ERROR"


class InvalidAmountError(PaymentError):
    """Payment amount is not a positive monetary value."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: object, reason: str = "amount must be greater than zero"):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid payment amount {amount!r}: {reason}")


# Late-fee exceptions


class LateFeeError(RentalKernelError):
    """Base exception for late fee errors."""

    code: str = "LATE_FEE_ERROR"


class InvalidLateFeePolicyError(LateFeeError):
    """Late fee options are not usable."""

    code: str = "INVALID_LATE_FEE_POLICY"

    def __init__(self, field: str, value: object, reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"Invalid late fee option {field}={value!r}: {reason}")


# Concurrency-related exceptions


class ConcurrencyError(RentalKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentModificationError(ConcurrencyError):
    """Schedule rows were modified by another transaction."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(
            f"Concurrent modification on {entity_type} {entity_id}: "
            "rows were modified by another transaction"
        )


# Configuration exceptions


class ConfigurationError(RentalKernelError):
    """Configuration could not be loaded or validated."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"Invalid configuration ({source}): {reason}")
