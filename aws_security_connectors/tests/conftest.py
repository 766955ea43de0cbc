"""Shared fakes for connector tests."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import pytest
from botocore.exceptions import ClientError, OperationNotPageableError


PROJECT_ROOT = Path(__file__).resolve().parents[2]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


MASTER_ACCOUNT_ID = "665544332211"
MEMBER_ACCOUNT_ID = "112233445566"
MEMBER_EMAIL = "email@example.com"


def client_error(operation: str, message: str = "mock err") -> ClientError:
    return ClientError({"Error": {"Code": "AccessDeniedException", "Message": message}}, operation)


class FakeClient:
    """boto3 client stand-in answering from a table of canned responses.

    Values in *responses* are either a response dict or an exception to
    raise. Every call is appended to the shared *calls* log as
    ``(side, method, kwargs)``; calling a method with no canned response
    fails the test.
    """

    def __init__(self, side: str, calls: List[Tuple[str, str, Dict[str, Any]]], **responses: Any) -> None:
        self._side = side
        self._calls = calls
        self._responses = responses

    def get_paginator(self, method_name: str) -> Any:
        raise OperationNotPageableError(operation_name=method_name)

    def __getattr__(self, name: str) -> Callable[..., Any]:
        if name.startswith("_"):
            raise AttributeError(name)

        def method(**kwargs: Any) -> Any:
            self._calls.append((self._side, name, kwargs))
            if name not in self._responses:
                pytest.fail(f"unexpected {self._side} call {name}({kwargs})")
            response = self._responses[name]
            if isinstance(response, Exception):
                raise response
            return response

        return method


class FakeAWS:
    """Pair of master/member fake clients sharing one call log."""

    def __init__(self) -> None:
        self.calls: List[Tuple[str, str, Dict[str, Any]]] = []

    def master(self, **responses: Any) -> FakeClient:
        return FakeClient("master", self.calls, **responses)

    def member(self, **responses: Any) -> FakeClient:
        return FakeClient("member", self.calls, **responses)

    def names(self, side: Optional[str] = None) -> List[str]:
        return [name for call_side, name, _ in self.calls if side is None or call_side == side]

    def kwargs(self, name: str) -> Dict[str, Any]:
        for _, call_name, kwargs in self.calls:
            if call_name == name:
                return kwargs
        raise AssertionError(f"{name} was not called")


@pytest.fixture
def aws() -> FakeAWS:
    return FakeAWS()
