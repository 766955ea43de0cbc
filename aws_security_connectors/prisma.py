"""Prisma Cloud connector registering AWS accounts as cloud accounts."""
from __future__ import annotations

import json
import logging
from typing import Any, Optional, Protocol

import requests

from .errors import (
    ConnectorError,
    CreateError,
    DecodeError,
    FetchError,
    ListError,
    TransportError,
    UpdateError,
)
from .models import CloudAccount, api_field
from .utils import build_role_arn

LOGGER = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.eu.prismacloud.io"
DEFAULT_TIMEOUT = 30


class APICaller(Protocol):
    def call(self, method: str, path: str, body: Optional[bytes] = None) -> bytes:
        ...


class PrismaClient:
    """Minimal Prisma Cloud REST client.

    Logs in with an access key and secret on first use and sends the
    returned token with every following request.
    """

    def __init__(
        self,
        api_key: str,
        api_password: str,
        api_url: str = DEFAULT_API_URL,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key
        self.api_password = api_password
        self.api_url = api_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self._token: Optional[str] = None

    def login(self) -> str:
        """Exchange the API credentials for a session token."""

        payload = json.dumps({"username": self.api_key, "password": self.api_password})
        body = self._request("POST", "/login", payload.encode("utf-8"), authenticated=False)
        try:
            token = json.loads(body)["token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise TransportError("error reading login response", exc) from exc
        self._token = token
        return token

    def call(self, method: str, path: str, body: Optional[bytes] = None) -> bytes:
        """Send an authenticated request and return the raw response body."""

        if self._token is None:
            self.login()
        return self._request(method, path, body, authenticated=True)

    def _request(self, method: str, path: str, body: Optional[bytes], *, authenticated: bool) -> bytes:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if authenticated and self._token:
            headers["x-redlock-auth"] = self._token

        url = f"{self.api_url}{path}"
        try:
            response = self.session.request(
                method, url, data=body, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise TransportError(f"{method} {path} failed", exc) from exc

        if not response.ok:
            raise TransportError(
                f"{method} {path} returned {response.status_code}: {response.text.strip()}",
                status_code=response.status_code,
            )
        return response.content


class PrismaConnector:
    """Keep the Prisma cloud account for an AWS account in the desired state."""

    def __init__(self, api: APICaller) -> None:
        self.api = api

    def add_aws_account(
        self, account_id: str, name: str, external_id: str, role_name: str
    ) -> str:
        """Add an AWS account to Prisma, or update the existing one if it differs.

        Returns ``"CREATED"``, ``"UPDATED"`` or ``"UNCHANGED"``.
        """

        try:
            exists = self.aws_account_exists(account_id)
        except ConnectorError as exc:
            raise exc.wrap("error checking for existing account") from exc

        desired = CloudAccount(
            account_id=account_id,
            name=name,
            enabled=True,
            external_id=external_id,
            role_arn=build_role_arn(account_id, role_name),
        )

        if exists:
            LOGGER.info("Account %s already exists in Prisma", account_id)
            try:
                return self.update_existing_aws_account(desired)
            except ConnectorError as exc:
                raise exc.wrap("error updating existing account") from exc

        try:
            self.create_new_aws_account(desired)
        except ConnectorError as exc:
            raise exc.wrap("error creating new account") from exc
        return "CREATED"

    def aws_account_exists(self, account_id: str) -> bool:
        # https://pan.dev/prisma-cloud/api/cspm/get-cloud-accounts/
        try:
            raw = self.api.call("GET", "/cloud")
        except ConnectorError as exc:
            raise ListError("error retrieving list of accounts", exc) from exc

        accounts = _decode(raw, list, "error unmarshalling accounts information")
        return any(
            isinstance(account, dict) and api_field(account, "accountId") == account_id
            for account in accounts
        )

    def update_existing_aws_account(self, desired: CloudAccount) -> str:
        """Update the stored account when it differs from *desired*.

        An empty desired name keeps the stored one, names are never blanked.
        """

        # https://pan.dev/prisma-cloud/api/cspm/get-cloud-account/
        path = f"/cloud/aws/{desired.account_id}"
        try:
            raw = self.api.call("GET", path)
        except ConnectorError as exc:
            raise FetchError("error retrieving existing account details", exc) from exc

        document = _decode(raw, dict, "error unmarshalling account details")
        try:
            existing = CloudAccount.from_api(document)
        except DecodeError as exc:
            raise DecodeError("error unmarshalling account details", exc) from exc
        if not desired.name:
            desired.name = existing.name

        if existing == desired:
            LOGGER.info("Prisma account already up to date, doing nothing")
            return "UNCHANGED"

        LOGGER.debug("Existing Prisma account details: %s", existing)
        LOGGER.debug("Desired Prisma account details: %s", desired)
        # https://pan.dev/prisma-cloud/api/cspm/update-aws-cloud-account/
        try:
            self.api.call("PUT", path, _encode(desired))
        except ConnectorError as exc:
            raise UpdateError("error sending API request", exc) from exc

        LOGGER.info("Prisma account information updated")
        return "UPDATED"

    def create_new_aws_account(self, desired: CloudAccount) -> None:
        """Create *desired*, named after the account ID when no name was given."""

        if not desired.name:
            desired.name = desired.account_id
        LOGGER.debug("New Prisma account details: %s", desired)

        # https://pan.dev/prisma-cloud/api/cspm/add-aws-cloud-account/
        try:
            self.api.call("POST", "/cloud/aws/", _encode(desired))
        except ConnectorError as exc:
            raise CreateError("error sending API request", exc) from exc

        LOGGER.info("Prisma account created")


def _encode(account: CloudAccount) -> bytes:
    return json.dumps(account.to_api()).encode("utf-8")


def _decode(raw: bytes, expected: type, context: str) -> Any:
    try:
        document = json.loads(raw)
    except ValueError as exc:
        raise DecodeError(context, exc) from exc
    if not isinstance(document, expected):
        raise DecodeError(f"{context}: expected a JSON {'array' if expected is list else 'object'}")
    return document


__all__ = ["APICaller", "DEFAULT_API_URL", "PrismaClient", "PrismaConnector"]
