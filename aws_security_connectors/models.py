"""Data models exchanged with AWS security services and the CSPM API."""
from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Literal, Mapping, Optional

from .errors import DecodeError


def api_field(payload: Mapping[str, Any], key: str) -> Any:
    """Return ``payload[key]`` matching the key case-insensitively, or ``None``."""

    wanted = key.lower()
    for name, value in payload.items():
        if str(name).lower() == wanted:
            return value
    return None


@dataclass(frozen=True)
class MemberAccount:
    """The AWS account being onboarded."""

    account_id: str
    email: str = ""


@dataclass(frozen=True)
class Invitation:
    """A pending invitation as seen from the member account.

    ``token`` is whatever the service needs to accept it: the invitation ID
    for GuardDuty and Security Hub, the graph ARN for Detective.
    """

    account_id: str
    token: Optional[str]


@dataclass
class CloudAccount:
    """AWS cloud account record as stored by the CSPM platform."""

    account_id: str
    name: str = ""
    enabled: bool = False
    external_id: str = ""
    role_arn: str = ""

    _API_FIELDS = (
        ("name", "name"),
        ("enabled", "enabled"),
        ("external_id", "externalId"),
        ("role_arn", "roleArn"),
        ("account_id", "accountId"),
    )

    @classmethod
    def from_api(cls, payload: Mapping[str, Any]) -> "CloudAccount":
        """Build a record from an API document, matching keys case-insensitively.

        Missing keys fall back to empty values; unknown keys are ignored.
        Raises :class:`DecodeError` when a field holds a value of the wrong type.
        """

        values: Dict[str, Any] = {}
        for attr, key in cls._API_FIELDS:
            value = api_field(payload, key)
            expected = bool if attr == "enabled" else str
            if value is None:
                values[attr] = expected()
            elif isinstance(value, expected):
                values[attr] = value
            else:
                raise DecodeError(
                    f"field {key}: expected a {expected.__name__}, got {type(value).__name__}"
                )
        return cls(**values)

    def to_api(self) -> Dict[str, Any]:
        """Return the JSON document sent to the CSPM API."""

        return {key: getattr(self, attr) for attr, key in self._API_FIELDS}


UnitStatus = Literal["ALREADY_CONNECTED", "CONNECTED", "FAILED"]


@dataclass
class UnitResult:
    """Outcome of one service in one region (or of the CSPM synchronisation)."""

    service: str
    region: str
    status: UnitStatus
    details: str = ""

    def as_dict(self) -> Dict[str, str]:
        return asdict(self)


__all__ = ["CloudAccount", "Invitation", "MemberAccount", "UnitResult", "UnitStatus", "api_field"]
