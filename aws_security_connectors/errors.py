"""Error taxonomy for member onboarding and CSPM synchronisation."""
from __future__ import annotations

import copy
from typing import Optional


class ConnectorError(Exception):
    """Base error carrying a step context and an optional underlying cause.

    ``str(error)`` renders the whole chain, outer context first and the root
    cause last, e.g. ``"error setting up master account: error creating member
    account: <botocore message>"``.
    """

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.message = message
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"

    def wrap(self, context: str) -> "ConnectorError":
        """Return a copy of this error, of the same class, with *context* on top."""

        wrapped = copy.copy(self)
        wrapped.args = (context,)
        wrapped.message = context
        wrapped.cause = self
        return wrapped

    def root_cause(self) -> BaseException:
        """Return the innermost error of the chain."""

        error: BaseException = self
        while isinstance(error, ConnectorError) and error.cause is not None:
            error = error.cause
        return error


class ConfigurationError(ConnectorError):
    """Invalid or incomplete run settings."""


# AWS side


class ResourceLocatorError(ConnectorError):
    """The singleton service resource (detector or graph) could not be resolved."""


class ResourceListError(ResourceLocatorError):
    """Listing detectors or graphs failed."""


class AmbiguousResourceError(ResourceLocatorError):
    """Zero or several detectors/graphs were found where exactly one is expected."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        *,
        count: int = 0,
        resource: str = "",
    ) -> None:
        super().__init__(message, cause)
        self.count = count
        self.resource = resource


class MembershipQueryError(ConnectorError):
    """Looking up the existing membership on the master side failed."""


class EnrollmentError(ConnectorError):
    """Creating the member account on the master side failed."""


class InvitationError(ConnectorError):
    """Sending the invitation failed after the member record was created."""


class AcceptanceError(ConnectorError):
    """Accepting the invitation on the member side failed."""


class InvitationListError(AcceptanceError):
    """Listing pending invitations on the member side failed."""


class InvitationNotFoundError(AcceptanceError):
    """No pending invitation from the master account is visible to the member."""


class MasterAccountError(ConnectorError):
    """The master account ID could not be resolved."""


# CSPM side


class TransportError(ConnectorError):
    """The CSPM API could not be reached or answered with an error status."""

    def __init__(
        self,
        message: str,
        cause: Optional[BaseException] = None,
        *,
        status_code: Optional[int] = None,
    ) -> None:
        super().__init__(message, cause)
        self.status_code = status_code


class ListError(ConnectorError):
    """Listing CSPM cloud accounts failed."""


class DecodeError(ConnectorError):
    """A CSPM response body was not the expected JSON document."""


class FetchError(ConnectorError):
    """Fetching an existing CSPM cloud account failed."""


class CreateError(ConnectorError):
    """Creating a CSPM cloud account failed."""


class UpdateError(ConnectorError):
    """Updating a CSPM cloud account failed."""


__all__ = [
    "AcceptanceError",
    "AmbiguousResourceError",
    "ConfigurationError",
    "ConnectorError",
    "CreateError",
    "DecodeError",
    "EnrollmentError",
    "FetchError",
    "InvitationError",
    "InvitationListError",
    "InvitationNotFoundError",
    "ListError",
    "MasterAccountError",
    "MembershipQueryError",
    "ResourceListError",
    "ResourceLocatorError",
    "TransportError",
    "UpdateError",
]
