"""Add AWS accounts to Prisma Cloud and to the security services of a master account."""

from __future__ import annotations

from .config import Settings
from .core import ConnectResults, connect_account
from .errors import ConnectorError
from .models import CloudAccount, MemberAccount, UnitResult
from .prisma import PrismaClient, PrismaConnector
from .services import SERVICE_RECONCILERS
from .services.detective import DetectiveInviter
from .services.guardduty import GuardDutyInviter
from .services.securityhub import SecurityHubInviter
from .sessions import SessionProvider

__all__ = [
    "CloudAccount",
    "ConnectResults",
    "ConnectorError",
    "DetectiveInviter",
    "GuardDutyInviter",
    "MemberAccount",
    "PrismaClient",
    "PrismaConnector",
    "SERVICE_RECONCILERS",
    "SecurityHubInviter",
    "SessionProvider",
    "Settings",
    "UnitResult",
    "connect_account",
]
