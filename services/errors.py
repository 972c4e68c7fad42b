"""Typed failures raised by the relay layers and translated by the orchestrator."""

from __future__ import annotations

from typing import Optional


class RelayError(Exception):
    """Base class for recoverable turn failures.

    `user_message` is the single chunk streamed back to the browser when the
    failure ends a turn; the exception text is kept for logs.
    """

    user_message = "An error occurred while processing your request."


class EmptyTurn(RelayError):
    user_message = "Please type a message, attach a file, or share a video URL."


class UnsupportedSource(RelayError):
    user_message = "That link or attachment can't be processed. Please try a different one."


class UpstreamUnavailable(RelayError):
    user_message = "The service is temporarily unavailable. Please try again in a moment."

    def __init__(self, message: str, *, backend: Optional[str] = None) -> None:
        super().__init__(message)
        self.backend = backend


class RunFailed(RelayError):
    user_message = "The assistant could not complete your request. Please try again."

    def __init__(self, status: str, *, run_id: Optional[str] = None) -> None:
        super().__init__(f"Run {run_id or '?'} ended with status '{status}'")
        self.status = status
        self.run_id = run_id


class Timeout(RelayError):
    """A remote job did not reach a terminal state before its ceiling."""

    user_message = "The assistant took too long to respond. Please try again."

    def __init__(self, message: str, *, elapsed: float = 0.0, last_status: Optional[str] = None) -> None:
        super().__init__(message)
        self.elapsed = elapsed
        self.last_status = last_status


class InvalidSession(RelayError):
    user_message = "Your conversation has expired. Please start a new one."
