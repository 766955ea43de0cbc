"""Run settings and their environment variable bindings."""
from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .errors import ConfigurationError
from .prisma import DEFAULT_API_URL
from .services import SERVICE_ORDER

DEFAULT_REGION_EXCEPTIONS = ("ap-east-1", "me-south-1")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_ACCOUNT_ID_RE = re.compile(r"^\d{12}$")


def env_flag(name: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    """Return ``True`` when the environment variable *name* holds a truthy value."""

    environ = os.environ if environ is None else environ
    return environ.get(name, "").strip().lower() in _TRUE_VALUES


def env_list(name: str, default: List[str], environ: Optional[Mapping[str, str]] = None) -> List[str]:
    """Return the comma separated values of *name*, or *default* when unset."""

    environ = os.environ if environ is None else environ
    raw = environ.get(name)
    if raw is None:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    """Everything a single run needs to know."""

    account_id: str
    account_email: str = ""
    role_name: str = ""
    region_exceptions: List[str] = field(default_factory=lambda: list(DEFAULT_REGION_EXCEPTIONS))
    regions: List[str] = field(default_factory=list)
    guardduty: bool = False
    securityhub: bool = False
    detective: bool = False
    account_name: str = ""
    external_id: str = ""
    prisma_role_name: str = ""
    api_url: str = DEFAULT_API_URL
    api_key: str = ""
    api_password: str = ""
    profile: Optional[str] = None
    max_workers: int = 1
    debug: bool = False

    @property
    def services(self) -> List[str]:
        """Enabled AWS services, in reconciliation order."""

        return [name for name in SERVICE_ORDER if getattr(self, name)]

    @property
    def prisma_enabled(self) -> bool:
        return bool(self.api_key and self.api_password)

    def validate(self) -> None:
        if not self.account_id:
            raise ConfigurationError("AWS account ID is required")
        if not _ACCOUNT_ID_RE.match(self.account_id):
            raise ConfigurationError(f"'{self.account_id}' is not a 12 digit AWS account ID")
        if self.max_workers < 1:
            raise ConfigurationError("number of workers must be at least 1")
        if not self.services and not self.prisma_enabled:
            raise ConfigurationError(
                "Nothing to do: enable at least one AWS service or provide Prisma API credentials"
            )


__all__ = ["DEFAULT_REGION_EXCEPTIONS", "Settings", "env_flag", "env_list"]
