"""Connector adding member accounts to the AWS Security Hub master."""
from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

from ..models import Invitation, MemberAccount
from . import register_service
from ._membership import MembershipReconciler


@register_service("securityhub")
class SecurityHubInviter(MembershipReconciler):
    """Invite and accept a member account into Security Hub for one region.

    Security Hub has no detector or graph: members hang off the account
    itself, and accepting needs only the invitation and the master ID.
    https://docs.aws.amazon.com/securityhub/latest/userguide/securityhub-accounts.html
    """

    service_name = "securityhub"
    title = "AWS Security Hub"
    terminal_status = "Associated"
    status_key = "MemberStatus"

    def get_members(self, resource_id: Optional[str], account_id: str) -> List[Mapping[str, Any]]:
        response = self.master.get_members(AccountIds=[account_id])
        return response.get("Members", [])

    def create_members(self, resource_id: Optional[str], account: MemberAccount) -> Mapping[str, Any]:
        details: Dict[str, str] = {"AccountId": account.account_id}
        if account.email:
            details["Email"] = account.email
        return self.master.create_members(AccountDetails=[details])

    def invite_members(self, resource_id: Optional[str], account: MemberAccount) -> Mapping[str, Any]:
        return self.master.invite_members(AccountIds=[account.account_id])

    def accept_invitation(self, invitation: Invitation, master_account_id: str) -> None:
        self.member.accept_administrator_invitation(
            AdministratorId=master_account_id,
            InvitationId=invitation.token,
        )


__all__ = ["SecurityHubInviter"]
