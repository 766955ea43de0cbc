"""Membership reconciliation shared by the AWS security service connectors.

Every connector links a member account to the master account in the same
way: resolve the master-side resource (if the service has one), check
whether the member is already connected, create and invite the member from
the master account, then accept the invitation from the member account.
Subclasses only describe how each step maps to their service API.
"""
from __future__ import annotations

import enum
import logging
from typing import Any, Callable, ClassVar, List, Mapping, Optional

from ..errors import (
    AcceptanceError,
    AmbiguousResourceError,
    ConnectorError,
    EnrollmentError,
    InvitationError,
    InvitationListError,
    InvitationNotFoundError,
    MembershipQueryError,
    ResourceListError,
)
from ..models import Invitation, MemberAccount, UnitStatus
from ..utils import AWS_ERRORS, safe_paginate

LOGGER = logging.getLogger(__name__)


def locate_single_resource(
    client: Any,
    method_name: str,
    result_key: str,
    resource: str,
    extract: Optional[Callable[[Any], str]] = None,
) -> str:
    """Return the only detector/graph listed by *client*.

    Raises :class:`ResourceListError` when the listing fails and
    :class:`AmbiguousResourceError` when it does not hold exactly one entry.
    """

    try:
        items = list(safe_paginate(client, method_name, result_key))
    except AWS_ERRORS as exc:
        raise ResourceListError(f"error listing {resource}", exc) from exc

    if len(items) != 1:
        raise AmbiguousResourceError(
            f"{len(items)} {resource} found instead of one",
            count=len(items),
            resource=resource,
        )
    return extract(items[0]) if extract else items[0]


def is_member_connected(
    members: List[Mapping[str, Any]], status_key: str, terminal_status: str
) -> bool:
    """Return ``True`` when *members* is a single record in *terminal_status*.

    The lookup is filtered to one account, so we expect either nothing (not
    yet a member) or one record in some relationship status.
    """

    return len(members) == 1 and members[0].get(status_key) == terminal_status


def find_invitation(client: Any, master_account_id: str, token_key: str) -> Invitation:
    """Return the first pending invitation sent by *master_account_id*."""

    try:
        invitations = list(safe_paginate(client, "list_invitations", "Invitations"))
    except AWS_ERRORS as exc:
        raise InvitationListError("error retrieving list of invitations", exc) from exc

    for invitation in invitations:
        if invitation.get("AccountId") == master_account_id and invitation.get(token_key):
            return Invitation(account_id=master_account_id, token=invitation[token_key])
    raise InvitationNotFoundError("can't find invitation from master account")


class ReconcileState(enum.Enum):
    UNRESOLVED = "Unresolved"
    CHECKED = "Checked"
    ALREADY_CONNECTED = "AlreadyConnected"
    ENROLLED = "Enrolled"
    ACCEPTED = "Accepted"


class MembershipReconciler:
    """Drive one member account to a connected state in one region.

    ``master`` and ``member`` are boto3 clients (or anything exposing the same
    methods) for the master account and for the member account respectively.
    """

    service_name: ClassVar[str] = ""
    title: ClassVar[str] = ""
    terminal_status: ClassVar[str] = "Enabled"
    status_key: ClassVar[str] = "RelationshipStatus"
    # Name of the master-side resource, e.g. "detectorID"; None when the
    # service has no per-account resource.
    master_resource: ClassVar[Optional[str]] = None
    sends_invitation: ClassVar[bool] = True
    invitation_token_key: ClassVar[str] = "InvitationId"

    def __init__(self, master: Any, member: Any) -> None:
        self.master = master
        self.member = member
        self.state = ReconcileState.UNRESOLVED

    def add_member(self, account_id: str, email: str, master_account_id: str) -> UnitStatus:
        """Make sure *account_id* is a connected member of the master account.

        Returns ``"ALREADY_CONNECTED"`` when nothing had to be done and
        ``"CONNECTED"`` after a full create, invite and accept sequence.
        """

        account = MemberAccount(account_id=account_id, email=email)
        self.state = ReconcileState.UNRESOLVED

        resource_id: Optional[str] = None
        if self.master_resource:
            try:
                resource_id = self.locate_master_resource()
            except ConnectorError as exc:
                raise exc.wrap(f"can't get {self.master_resource} of master account") from exc

        try:
            connected = self.is_connected(resource_id, account.account_id)
        except ConnectorError as exc:
            raise exc.wrap("error retrieving information about existing member account") from exc
        self.state = ReconcileState.CHECKED

        if connected:
            self.state = ReconcileState.ALREADY_CONNECTED
            LOGGER.info("%s: account %s is already connected", self.title, account_id)
            return "ALREADY_CONNECTED"

        try:
            self.enroll(resource_id, account)
        except ConnectorError as exc:
            raise exc.wrap("error setting up master account") from exc
        self.state = ReconcileState.ENROLLED

        try:
            self.accept(master_account_id)
        except ConnectorError as exc:
            raise exc.wrap("error accepting invitation in member account") from exc
        self.state = ReconcileState.ACCEPTED

        LOGGER.info("%s: account %s connected", self.title, account_id)
        return "CONNECTED"

    # Steps shared by all services

    def is_connected(self, resource_id: Optional[str], account_id: str) -> bool:
        try:
            members = self.get_members(resource_id, account_id)
        except AWS_ERRORS as exc:
            raise MembershipQueryError("error getting existing members", exc) from exc
        return is_member_connected(members, self.status_key, self.terminal_status)

    def enroll(self, resource_id: Optional[str], account: MemberAccount) -> None:
        LOGGER.debug("%s: creating member %s", self.title, account.account_id)
        try:
            response = self.create_members(resource_id, account)
        except AWS_ERRORS as exc:
            raise EnrollmentError("error creating member account", exc) from exc
        self._log_unprocessed(response, "CreateMembers")

        if not self.sends_invitation:
            return

        LOGGER.debug("%s: inviting member %s", self.title, account.account_id)
        try:
            response = self.invite_members(resource_id, account)
        except AWS_ERRORS as exc:
            raise InvitationError("error sending invitation", exc) from exc
        self._log_unprocessed(response, "InviteMembers")

    def accept(self, master_account_id: str) -> None:
        invitation = find_invitation(self.member, master_account_id, self.invitation_token_key)
        LOGGER.debug("%s: accepting invitation from %s", self.title, master_account_id)
        try:
            self.accept_invitation(invitation, master_account_id)
        except AWS_ERRORS as exc:
            raise AcceptanceError("error accepting invitation", exc) from exc

    # Service specific API calls

    def locate_master_resource(self) -> str:
        raise NotImplementedError

    def get_members(self, resource_id: Optional[str], account_id: str) -> List[Mapping[str, Any]]:
        raise NotImplementedError

    def create_members(self, resource_id: Optional[str], account: MemberAccount) -> Mapping[str, Any]:
        raise NotImplementedError

    def invite_members(self, resource_id: Optional[str], account: MemberAccount) -> Mapping[str, Any]:
        raise NotImplementedError

    def accept_invitation(self, invitation: Invitation, master_account_id: str) -> None:
        raise NotImplementedError

    def _log_unprocessed(self, response: Optional[Mapping[str, Any]], operation: str) -> None:
        # Already existing members are reported here; the next step decides.
        for entry in (response or {}).get("UnprocessedAccounts", []):
            LOGGER.warning(
                "%s: %s did not process account %s: %s",
                self.title,
                operation,
                entry.get("AccountId"),
                entry.get("Result") or entry.get("Reason"),
            )


__all__ = [
    "MembershipReconciler",
    "ReconcileState",
    "find_invitation",
    "is_member_connected",
    "locate_single_resource",
]
