"""Connector adding member accounts to the Amazon GuardDuty master."""
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ..errors import ResourceLocatorError
from ..models import Invitation, MemberAccount
from . import register_service
from ._membership import MembershipReconciler, locate_single_resource


def get_detector_id(client: Any) -> str:
    """Return the single GuardDuty detector of the account *client* belongs to."""

    return locate_single_resource(client, "list_detectors", "DetectorIds", "detectors")


@register_service("guardduty")
class GuardDutyInviter(MembershipReconciler):
    """Invite and accept a member account into GuardDuty for one region.

    Detectors are per account, so the master detector is used to manage
    members while the member's own detector is needed to accept.
    https://docs.aws.amazon.com/guardduty/latest/ug/guardduty_accounts.html
    """

    service_name = "guardduty"
    title = "AWS GuardDuty"
    terminal_status = "Enabled"
    status_key = "RelationshipStatus"
    master_resource = "detectorID"

    def locate_master_resource(self) -> str:
        return get_detector_id(self.master)

    def get_members(self, resource_id: Optional[str], account_id: str) -> List[Mapping[str, Any]]:
        response = self.master.get_members(DetectorId=resource_id, AccountIds=[account_id])
        return response.get("Members", [])

    def create_members(self, resource_id: Optional[str], account: MemberAccount) -> Mapping[str, Any]:
        return self.master.create_members(
            DetectorId=resource_id,
            AccountDetails=[{"AccountId": account.account_id, "Email": account.email}],
        )

    def invite_members(self, resource_id: Optional[str], account: MemberAccount) -> Mapping[str, Any]:
        return self.master.invite_members(
            DetectorId=resource_id,
            AccountIds=[account.account_id],
            DisableEmailNotification=True,
        )

    def accept_invitation(self, invitation: Invitation, master_account_id: str) -> None:
        try:
            detector_id = get_detector_id(self.member)
        except ResourceLocatorError as exc:
            raise exc.wrap("can't get detectorID to accept invitation") from exc

        self.member.accept_administrator_invitation(
            DetectorId=detector_id,
            AdministratorId=master_account_id,
            InvitationId=invitation.token,
        )


__all__ = ["GuardDutyInviter", "get_detector_id"]
