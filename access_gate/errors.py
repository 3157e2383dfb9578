"""Exception types shared by the access request workflow."""

from __future__ import annotations

from typing import Optional


SUBMIT_FAILED_MESSAGE = "Your request could not be sent. Please try again."


class AccessGateError(Exception):
    """Base class for errors raised by the access gate package."""


class RemoteStoreError(AccessGateError):
    """The remote request store could not complete an operation."""


class RequestNotFound(RemoteStoreError):
    """No access request exists for the given code."""

    def __init__(self, code: str) -> None:
        super().__init__(f"No access request found for code {code}")
        self.code = code


class SubmitError(AccessGateError):
    """A new access request could not be submitted.

    The message is meant to be shown to the user as-is.
    """

    def __init__(self, message: str = SUBMIT_FAILED_MESSAGE) -> None:
        super().__init__(message)
        self.message = message


class SubmitInProgress(SubmitError):
    """Raised when a submission is attempted while another one is in flight."""

    def __init__(self) -> None:
        super().__init__("A request is already being sent.")


class PollError(AccessGateError):
    """Reading the status of an access request failed during polling."""

    def __init__(self, code: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(f"Could not check status for code {code}: {cause}")
        self.code = code
        self.cause = cause
