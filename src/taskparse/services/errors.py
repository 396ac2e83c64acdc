"""Exception hierarchy for the interpretation pipeline."""


class TaskParseError(Exception):
    """Base class for all taskparse errors."""


class InvalidInputError(TaskParseError):
    """Raw input rejected before interpretation (e.g. oversized)."""


class InferenceError(TaskParseError):
    """The inference service did not yield a usable intent."""


class InferenceTimeoutError(InferenceError):
    """The inference call exceeded its deadline."""

    def __init__(self, timeout: float):
        super().__init__(f"Inference request timed out after {timeout:g}s")
        self.timeout = timeout


class InferenceTransportError(InferenceError):
    """Network, connection or HTTP status failure talking to the service."""


class InferenceSchemaError(InferenceError):
    """The service answered, but not with a valid intent object."""


class ServiceUnavailableError(InferenceError):
    """The health probe found no inference service."""
