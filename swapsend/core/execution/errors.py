"""
Exceptions raised by the execution layer.

Adapters (chain client, signer, relay client) raise these; the submitter
catches them at each step and reduces them to a Failed state.
"""

from typing import Any, Optional


class ExecutionError(Exception):
    """Base exception for execution errors."""
    pass


class InvalidRequestError(ExecutionError, ValueError):
    """A transaction request is malformed (bad value, wrong sender, ...)."""
    pass


class SigningError(ExecutionError):
    """A transaction or bundle could not be signed."""
    pass


class RpcError(ExecutionError):
    """Base class for JSON-RPC failures."""

    def __init__(self, method: str, message: str):
        super().__init__(f"{method}: {message}")
        self.method = method
        self.message = message


class RpcTransportError(RpcError):
    """The endpoint could not be reached or answered with garbage."""
    pass


class RpcResponseError(RpcError):
    """The endpoint answered with a JSON-RPC error object."""

    def __init__(
        self,
        method: str,
        message: str,
        code: Optional[int] = None,
        data: Any = None,
    ):
        super().__init__(method, message)
        self.code = code
        self.data = data


class SubmissionCancelled(ExecutionError):
    """The caller cancelled an in-flight submission."""

    def __init__(self, reason: Optional[str] = None):
        super().__init__(reason or "Submission cancelled")
        self.reason = reason


class InvalidTransitionError(ExecutionError):
    """A transaction state transition is not allowed."""

    def __init__(self, from_state: Any, to_state: Any):
        super().__init__(f"Invalid transition from {from_state.value} to {to_state.value}")
        self.from_state = from_state
        self.to_state = to_state
