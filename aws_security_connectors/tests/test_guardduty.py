"""Tests for the GuardDuty membership connector."""

from __future__ import annotations

import pytest

from conftest import MASTER_ACCOUNT_ID, MEMBER_ACCOUNT_ID, MEMBER_EMAIL, client_error

from aws_security_connectors.errors import (
    AcceptanceError,
    AmbiguousResourceError,
    EnrollmentError,
    InvitationError,
    InvitationListError,
    InvitationNotFoundError,
    MembershipQueryError,
    ResourceListError,
)
from aws_security_connectors.services._membership import ReconcileState
from aws_security_connectors.services.guardduty import GuardDutyInviter


DETECTOR = {"DetectorIds": ["mock_detector"]}
NO_DETECTOR = {"DetectorIds": []}
ENABLED = {"Members": [{"AccountId": MEMBER_ACCOUNT_ID, "RelationshipStatus": "Enabled"}]}
INVITED = {"Members": [{"AccountId": MEMBER_ACCOUNT_ID, "RelationshipStatus": "Invited"}]}
NO_MEMBERS = {"Members": []}
INVITATIONS = {
    "Invitations": [{"AccountId": MASTER_ACCOUNT_ID, "InvitationId": "mock_invitation"}]
}


def _mock_err(operation: str) -> str:
    return f"An error occurred (AccessDeniedException) when calling the {operation} operation: mock err"


def test_member_already_enabled_makes_no_changes(aws) -> None:
    """An enabled member short-circuits after the membership lookup."""

    inviter = GuardDutyInviter(
        aws.master(list_detectors=DETECTOR, get_members=ENABLED), aws.member()
    )

    assert inviter.add_member(MEMBER_ACCOUNT_ID, MEMBER_EMAIL, MASTER_ACCOUNT_ID) == "ALREADY_CONNECTED"
    assert aws.names() == ["list_detectors", "get_members"]
    assert aws.kwargs("get_members") == {
        "DetectorId": "mock_detector",
        "AccountIds": [MEMBER_ACCOUNT_ID],
    }
    assert inviter.state is ReconcileState.ALREADY_CONNECTED


def test_invites_and_accepts_new_member(aws) -> None:
    """A missing member is created, invited and accepted, in that order."""

    inviter = GuardDutyInviter(
        aws.master(list_detectors=DETECTOR, get_members=NO_MEMBERS, create_members={}, invite_members={}),
        aws.member(
            list_invitations=INVITATIONS,
            list_detectors={"DetectorIds": ["member_detector"]},
            accept_administrator_invitation={},
        ),
    )

    assert inviter.add_member(MEMBER_ACCOUNT_ID, MEMBER_EMAIL, MASTER_ACCOUNT_ID) == "CONNECTED"
    assert aws.names() == [
        "list_detectors",
        "get_members",
        "create_members",
        "invite_members",
        "list_invitations",
        "list_detectors",
        "accept_administrator_invitation",
    ]
    assert aws.kwargs("create_members") == {
        "DetectorId": "mock_detector",
        "AccountDetails": [{"AccountId": MEMBER_ACCOUNT_ID, "Email": MEMBER_EMAIL}],
    }
    assert aws.kwargs("invite_members")["DisableEmailNotification"] is True
    assert aws.kwargs("accept_administrator_invitation") == {
        "DetectorId": "member_detector",
        "AdministratorId": MASTER_ACCOUNT_ID,
        "InvitationId": "mock_invitation",
    }
    assert inviter.state is ReconcileState.ACCEPTED


def test_unprocessed_accounts_are_not_fatal(aws) -> None:
    """Accounts reported as unprocessed on creation do not stop the run."""

    unprocessed = {"UnprocessedAccounts": [{"AccountId": MEMBER_ACCOUNT_ID, "Result": "already a member"}]}
    inviter = GuardDutyInviter(
        aws.master(
            list_detectors=DETECTOR,
            get_members=INVITED,
            create_members=unprocessed,
            invite_members={},
        ),
        aws.member(
            list_invitations=INVITATIONS,
            list_detectors=DETECTOR,
            accept_administrator_invitation={},
        ),
    )

    assert inviter.add_member(MEMBER_ACCOUNT_ID, MEMBER_EMAIL, MASTER_ACCOUNT_ID) == "CONNECTED"


@pytest.mark.parametrize(
    "master, member, error_type, message",
    [
        pytest.param(
            {"list_detectors": client_error("ListDetectors")},
            {},
            ResourceListError,
            "can't get detectorID of master account: error listing detectors: " + _mock_err("ListDetectors"),
            id="error listing master detectors",
        ),
        pytest.param(
            {"list_detectors": NO_DETECTOR},
            {},
            AmbiguousResourceError,
            "can't get detectorID of master account: 0 detectors found instead of one",
            id="no master detector",
        ),
        pytest.param(
            {"list_detectors": {"DetectorIds": ["a", "b"]}},
            {},
            AmbiguousResourceError,
            "can't get detectorID of master account: 2 detectors found instead of one",
            id="several master detectors",
        ),
        pytest.param(
            {"list_detectors": DETECTOR, "get_members": client_error("GetMembers")},
            {},
            MembershipQueryError,
            "error retrieving information about existing member account: error getting existing members: "
            + _mock_err("GetMembers"),
            id="problem checking existing members",
        ),
        pytest.param(
            {"list_detectors": DETECTOR, "get_members": NO_MEMBERS, "create_members": client_error("CreateMembers")},
            {},
            EnrollmentError,
            "error setting up master account: error creating member account: " + _mock_err("CreateMembers"),
            id="problem creating member account",
        ),
        pytest.param(
            {
                "list_detectors": DETECTOR,
                "get_members": NO_MEMBERS,
                "create_members": {},
                "invite_members": client_error("InviteMembers"),
            },
            {},
            InvitationError,
            "error setting up master account: error sending invitation: " + _mock_err("InviteMembers"),
            id="problem inviting member account",
        ),
        pytest.param(
            {"list_detectors": DETECTOR, "get_members": INVITED, "create_members": {}, "invite_members": {}},
            {"list_invitations": client_error("ListInvitations")},
            InvitationListError,
            "error accepting invitation in member account: error retrieving list of invitations: "
            + _mock_err("ListInvitations"),
            id="problem listing invitations",
        ),
        pytest.param(
            {"list_detectors": DETECTOR, "get_members": INVITED, "create_members": {}, "invite_members": {}},
            {"list_invitations": {"Invitations": []}},
            InvitationNotFoundError,
            "error accepting invitation in member account: can't find invitation from master account",
            id="invitation not found",
        ),
        pytest.param(
            {"list_detectors": DETECTOR, "get_members": INVITED, "create_members": {}, "invite_members": {}},
            {"list_invitations": INVITATIONS, "list_detectors": client_error("ListDetectors")},
            ResourceListError,
            "error accepting invitation in member account: can't get detectorID to accept invitation: "
            "error listing detectors: " + _mock_err("ListDetectors"),
            id="error listing member detectors",
        ),
        pytest.param(
            {"list_detectors": DETECTOR, "get_members": INVITED, "create_members": {}, "invite_members": {}},
            {"list_invitations": INVITATIONS, "list_detectors": NO_DETECTOR},
            AmbiguousResourceError,
            "error accepting invitation in member account: can't get detectorID to accept invitation: "
            "0 detectors found instead of one",
            id="no member detector",
        ),
        pytest.param(
            {"list_detectors": DETECTOR, "get_members": INVITED, "create_members": {}, "invite_members": {}},
            {
                "list_invitations": INVITATIONS,
                "list_detectors": DETECTOR,
                "accept_administrator_invitation": client_error("AcceptAdministratorInvitation"),
            },
            AcceptanceError,
            "error accepting invitation in member account: error accepting invitation: "
            + _mock_err("AcceptAdministratorInvitation"),
            id="problem accepting invitation",
        ),
    ],
)
def test_add_member_failures(aws, master, member, error_type, message) -> None:
    """Each failing step is reported with its context and nothing after it runs."""

    inviter = GuardDutyInviter(aws.master(**master), aws.member(**member))

    with pytest.raises(error_type) as excinfo:
        inviter.add_member(MEMBER_ACCOUNT_ID, MEMBER_EMAIL, MASTER_ACCOUNT_ID)

    assert str(excinfo.value) == message


def test_empty_detector_list_error_carries_count(aws) -> None:
    """The locator error exposes the number of detectors it saw."""

    inviter = GuardDutyInviter(aws.master(list_detectors=NO_DETECTOR), aws.member())

    with pytest.raises(AmbiguousResourceError) as excinfo:
        inviter.add_member(MEMBER_ACCOUNT_ID, MEMBER_EMAIL, MASTER_ACCOUNT_ID)

    assert excinfo.value.count == 0
    assert excinfo.value.resource == "detectors"
    assert aws.names() == ["list_detectors"]


def test_second_run_is_a_no_op(aws) -> None:
    """Once enabled, running again issues no create, invite or accept calls."""

    master = aws.master(list_detectors=DETECTOR, get_members=ENABLED)
    inviter = GuardDutyInviter(master, aws.member())

    inviter.add_member(MEMBER_ACCOUNT_ID, MEMBER_EMAIL, MASTER_ACCOUNT_ID)
    inviter.add_member(MEMBER_ACCOUNT_ID, MEMBER_EMAIL, MASTER_ACCOUNT_ID)

    assert aws.names() == ["list_detectors", "get_members"] * 2
    assert aws.names("member") == []
