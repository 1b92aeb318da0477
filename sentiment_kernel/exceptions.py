"""
Typed Exception Hierarchy for the Sentiment Batch Engine.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

The worker loop decides what to do with a failure by its TYPE: a unit error
is absorbed and counted, a setup error fails the whole job, a validation
error never creates a job at all.  Parsing message strings for that decision
would be fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from SentimentBatchError:

    SentimentBatchError (base)
    |
    +-- ValidationError
    +-- ConfigurationError
    |
    +-- JobError
    |   +-- JobNotFoundError
    |   +-- InvalidTransitionError
    |   +-- ProgressRejectedError
    |   +-- HandlerNotRegisteredError
    |
    +-- ExecutionError
        +-- SetupError
        +-- UnitError
            +-- DataUnavailableError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category   | Code                    | When Raised
-----------|-------------------------|-------------------------------------------
Submission | VALIDATION_ERROR        | Malformed submission, no job created
Config     | CONFIGURATION_ERROR     | Invalid config at load time (weights etc.)
-----------|-------------------------|-------------------------------------------
Job        | JOB_NOT_FOUND           | Unknown job id
           | INVALID_TRANSITION      | Status edge not in the allowed set
           | PROGRESS_REJECTED       | Progress for a non-RUNNING job, a rewind,
           |                         | or processed + failed > total
           | HANDLER_NOT_REGISTERED  | No handler for the job type
-----------|-------------------------|-------------------------------------------
Execution  | SETUP_ERROR             | Handler cannot start (job -> FAILED)
           | UNIT_ERROR              | One unit failed (counted, loop continues)
           | DATA_UNAVAILABLE        | Market data missing for one date

===============================================================================
PROPAGATION POLICY
===============================================================================

- UnitError never propagates past a handler's per-unit loop.
- SetupError (and HandlerNotRegisteredError) always propagates to the
  worker loop, which performs the FAILED transition and writes exactly one
  ERROR job log with the raw message.
- ValidationError is raised by the submission gateway before any row is
  written.
"""


class SentimentBatchError(Exception):
    """
    Base exception for all sentiment batch engine errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "SENTIMENT_BATCH_ERROR"


# Submission / configuration


class ValidationError(SentimentBatchError):
    """Malformed job submission; rejected before a job is created."""

    code: str = "VALIDATION_ERROR"

    def __init__(self, message: str, field: str | None = None):
        self.field = field
        super().__init__(message)


class ConfigurationError(SentimentBatchError):
    """Invalid configuration, rejected at load time."""

    code: str = "CONFIGURATION_ERROR"

    def __init__(self, message: str, key: str | None = None):
        self.key = key
        super().__init__(message)


# Job lifecycle


class JobError(SentimentBatchError):
    """Base exception for job store errors."""

    code: str = "JOB_ERROR"


class JobNotFoundError(JobError):
    """Job with given ID was not found."""

    code: str = "JOB_NOT_FOUND"

    def __init__(self, job_id: str):
        self.job_id = job_id
        super().__init__(f"Batch job not found: {job_id}")


class InvalidTransitionError(JobError):
    """Requested status change is not permitted from the current status."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, job_id: str, current_status: str, requested_status: str):
        self.job_id = job_id
        self.current_status = current_status
        self.requested_status = requested_status
        super().__init__(
            f"Cannot transition job {job_id} from {current_status} "
            f"to {requested_status}"
        )


class ProgressRejectedError(JobError):
    """A progress report was refused by the job store."""

    code: str = "PROGRESS_REJECTED"

    def __init__(self, job_id: str, reason: str):
        self.job_id = job_id
        self.reason = reason
        super().__init__(f"Progress rejected for job {job_id}: {reason}")


class HandlerNotRegisteredError(JobError):
    """No handler is registered for the requested job type."""

    code: str = "HANDLER_NOT_REGISTERED"

    def __init__(self, job_type: str, available: tuple[str, ...] = ()):
        self.job_type = job_type
        self.available = available
        super().__init__(
            f"No handler registered for job type '{job_type}'. "
            f"Available: {list(available)}"
        )


# Execution


class ExecutionError(SentimentBatchError):
    """Base exception for handler execution errors."""

    code: str = "EXECUTION_ERROR"


class SetupError(ExecutionError):
    """The handler cannot start at all; the job fails before any unit runs."""

    code: str = "SETUP_ERROR"

    def __init__(self, message: str, parameter: str | None = None):
        self.parameter = parameter
        super().__init__(message)


class UnitError(ExecutionError):
    """One unit of work failed; absorbed and counted by the handler."""

    code: str = "UNIT_ERROR"

    def __init__(self, unit: str, message: str):
        self.unit = unit
        super().__init__(message)


class DataUnavailableError(UnitError):
    """The market-data source has no usable signals for a date."""

    code: str = "DATA_UNAVAILABLE"

    def __init__(self, unit: str, detail: str = "market data unavailable"):
        self.detail = detail
        super().__init__(unit, f"{detail} for {unit}")
