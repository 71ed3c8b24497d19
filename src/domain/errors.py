"""Generation errors.

Gateway failures end up in ``SessionState.error``. Missing context and empty
edits are raised to the caller and never touch the session state.
"""


class GenerationError(Exception):
    """Base class for generation errors."""


class GatewayError(GenerationError):
    """The schema gateway rejected the request or returned no usable output."""


class MissingContextError(GenerationError):
    """Examples were requested before any data source was submitted."""

    def __init__(self, message: str = "No previous generation to regenerate examples for.") -> None:
        super().__init__(message)


class EmptySchemaError(GenerationError):
    """An edited schema was blank."""

    def __init__(self, message: str = "Schema cannot be empty.") -> None:
        super().__init__(message)
