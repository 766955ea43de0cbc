"""Connector adding member accounts to the Amazon Detective behavior graph."""
from __future__ import annotations

from typing import Any, List, Mapping, Optional

from ..models import Invitation, MemberAccount
from . import register_service
from ._membership import MembershipReconciler, locate_single_resource


def get_graph_arn(client: Any) -> str:
    """Return the ARN of the single behavior graph owned by the master account."""

    return locate_single_resource(
        client, "list_graphs", "GraphList", "graphs", extract=lambda graph: graph["Arn"]
    )


@register_service("detective")
class DetectiveInviter(MembershipReconciler):
    """Invite and accept a member account into Detective for one region.

    ``CreateMembers`` sends the invitation itself, and the invitation is
    accepted with the graph ARN it refers to.
    https://docs.aws.amazon.com/detective/latest/adminguide/accounts.html
    """

    service_name = "detective"
    title = "AWS Detective"
    terminal_status = "Enabled"
    status_key = "Status"
    master_resource = "graphARN"
    sends_invitation = False
    invitation_token_key = "GraphArn"

    def locate_master_resource(self) -> str:
        return get_graph_arn(self.master)

    def get_members(self, resource_id: Optional[str], account_id: str) -> List[Mapping[str, Any]]:
        response = self.master.get_members(GraphArn=resource_id, AccountIds=[account_id])
        return response.get("MemberDetails", [])

    def create_members(self, resource_id: Optional[str], account: MemberAccount) -> Mapping[str, Any]:
        return self.master.create_members(
            GraphArn=resource_id,
            Accounts=[{"AccountId": account.account_id, "EmailAddress": account.email}],
            DisableEmailNotification=True,
        )

    def accept_invitation(self, invitation: Invitation, master_account_id: str) -> None:
        self.member.accept_invitation(GraphArn=invitation.token)


__all__ = ["DetectiveInviter", "get_graph_arn"]
