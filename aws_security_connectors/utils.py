"""Shared helpers for AWS service connectors."""
from __future__ import annotations

from typing import Any, Iterator

import boto3
from botocore.exceptions import BotoCoreError, ClientError, OperationNotPageableError

from .errors import MasterAccountError

# Errors raised by boto3 clients for remote failures, missing credentials,
# unreachable endpoints and rejected parameters.
AWS_ERRORS = (ClientError, BotoCoreError)


def safe_paginate(client: Any, method_name: str, result_key: str, **kwargs) -> Iterator[dict]:
    """Iterate through paginated boto3 results while handling pagination gaps."""

    try:
        paginator = client.get_paginator(method_name)
    except OperationNotPageableError:
        response = getattr(client, method_name)(**kwargs)
        for item in response.get(result_key, []):
            yield item
        return

    for page in paginator.paginate(**kwargs):
        for item in page.get(result_key, []):
            yield item


def build_role_arn(account_id: str, role_name: str) -> str:
    """Return the IAM role ARN for *role_name* in *account_id*."""

    return f"arn:aws:iam::{account_id}:role/{role_name}"


def get_account_id(session: boto3.session.Session) -> str:
    """Return the account ID the credentials of *session* belong to."""

    try:
        identity = session.client("sts").get_caller_identity()
    except AWS_ERRORS as exc:
        raise MasterAccountError("problem retrieving account id", exc) from exc
    return identity["Account"]


__all__ = ["AWS_ERRORS", "build_role_arn", "get_account_id", "safe_paginate"]
