"""Master and member account sessions used by the service connectors."""
from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

import boto3
from botocore.credentials import DeferredRefreshableCredentials, create_assume_role_refresher
from botocore.session import get_session

from .utils import AWS_ERRORS, build_role_arn, get_account_id

LOGGER = logging.getLogger(__name__)

ROLE_SESSION_NAME = "AWSSecurityConnectors"


class LazyClient:
    """Client proxy that builds the real boto3 client on first use.

    Member-side clients need an assumed role; deferring the client creation
    means no role is assumed for members that are already connected.
    """

    def __init__(self, factory: Callable[[], Any]) -> None:
        self._factory = factory
        self._client: Optional[Any] = None
        self._lock = threading.Lock()

    def _resolve(self) -> Any:
        with self._lock:
            if self._client is None:
                self._client = self._factory()
            return self._client

    def __getattr__(self, name: str) -> Any:
        return getattr(self._resolve(), name)


class SessionProvider:
    """Build boto3 clients for the master account and the member account.

    The master side uses *base_session* as is. The member side assumes
    ``arn:aws:iam::<member>:role/<role_name>`` on the first member-side API
    call and refreshes the temporary credentials before they expire.
    """

    def __init__(
        self,
        base_session: boto3.session.Session,
        member_account_id: str,
        role_name: str,
    ) -> None:
        self.base_session = base_session
        self.member_role_arn = build_role_arn(member_account_id, role_name)
        self._member_session: Optional[boto3.session.Session] = None
        self._lock = threading.Lock()
        self._client_lock = threading.RLock()
        self._assume_error: Optional[BaseException] = None

    def master_account_id(self) -> str:
        return get_account_id(self.base_session)

    def regions(
        self, exceptions: Iterable[str] = (), override: Optional[Iterable[str]] = None
    ) -> List[str]:
        """Return the regions to work on, skipping *exceptions*."""

        if override:
            candidates = list(override)
        else:
            candidates = self.base_session.get_available_regions("ec2", partition_name="aws")
        skipped = set(exceptions)
        regions = []
        for region in candidates:
            if region in skipped:
                LOGGER.debug("Skipping region %s", region)
                continue
            regions.append(region)
        return regions

    def master_client(self, service: str, region: str) -> Any:
        # boto3 sessions are not thread-safe, client creation is serialized.
        with self._client_lock:
            return self.base_session.client(service, region_name=region)

    def member_client(self, service: str, region: str) -> LazyClient:
        def factory() -> Any:
            session = self.member_session()
            with self._client_lock:
                return session.client(service, region_name=region)

        return LazyClient(factory)

    def member_session(self) -> boto3.session.Session:
        """Return the session for the member role.

        The role is assumed on the first member-side API call and assumed
        again whenever the temporary credentials are about to expire.
        """

        with self._lock:
            if self._member_session is None:
                botocore_session = get_session()
                botocore_session._credentials = DeferredRefreshableCredentials(
                    refresh_using=self._fetch_member_credentials,
                    method="assume-role",
                )
                self._member_session = boto3.Session(botocore_session=botocore_session)
            return self._member_session

    def _fetch_member_credentials(self) -> Dict[str, Any]:
        # A role that could not be assumed once is not retried for every unit.
        if self._assume_error is not None:
            raise self._assume_error

        LOGGER.debug("Assuming role %s", self.member_role_arn)
        with self._client_lock:
            sts = self.base_session.client("sts")
        refresh = create_assume_role_refresher(
            sts, {"RoleArn": self.member_role_arn, "RoleSessionName": ROLE_SESSION_NAME}
        )
        try:
            return refresh()
        except AWS_ERRORS as exc:
            self._assume_error = exc
            raise


__all__ = ["LazyClient", "ROLE_SESSION_NAME", "SessionProvider"]
