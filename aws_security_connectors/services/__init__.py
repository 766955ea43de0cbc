"""Service-specific membership connectors and registry helpers."""
from __future__ import annotations

import importlib
import pkgutil
from types import MappingProxyType
from typing import TYPE_CHECKING, Callable, Dict, Iterator, Mapping, Type

if TYPE_CHECKING:  # pragma: no cover
    from ._membership import MembershipReconciler

ReconcilerFactory = Type["MembershipReconciler"]

# Order in which services are reconciled within a region.
SERVICE_ORDER = ("guardduty", "securityhub", "detective")


class ServiceRegistry:
    """Registry that stores available membership reconcilers."""

    def __init__(self) -> None:
        self._reconcilers: Dict[str, ReconcilerFactory] = {}

    @staticmethod
    def _normalize(name: str) -> str:
        if not name:
            raise ValueError("Service name must be a non-empty string")
        return name.strip().lower()

    def register(self, name: str) -> Callable[[ReconcilerFactory], ReconcilerFactory]:
        """Return a decorator that registers *name* for the wrapped reconciler."""

        normalized = self._normalize(name)

        def decorator(cls: ReconcilerFactory) -> ReconcilerFactory:
            if normalized in self._reconcilers and self._reconcilers[normalized] is not cls:
                raise ValueError(f"Service '{name}' is already registered")
            self._reconcilers[normalized] = cls
            return cls

        return decorator

    def __contains__(self, name: object) -> bool:
        if not isinstance(name, str):
            return False
        return self._normalize(name) in self._reconcilers

    def __getitem__(self, name: str) -> ReconcilerFactory:
        return self._reconcilers[self._normalize(name)]

    def keys(self) -> Iterator[str]:
        return iter(self._reconcilers)

    def as_mapping(self) -> Mapping[str, ReconcilerFactory]:
        return MappingProxyType(self._reconcilers)


SERVICE_REGISTRY = ServiceRegistry()
register_service = SERVICE_REGISTRY.register


def get_service_reconcilers() -> Mapping[str, ReconcilerFactory]:
    """Return a read-only mapping of registered reconcilers."""

    return SERVICE_REGISTRY.as_mapping()


def _import_service_modules() -> None:
    """Import modules that register reconcilers via decorators."""

    package_name = __name__
    package_paths = getattr(__spec__, "submodule_search_locations", None)
    if not package_paths:
        return

    for module_info in pkgutil.iter_modules(package_paths):
        module_name = module_info.name
        if module_name.startswith("_"):
            continue
        importlib.import_module(f"{package_name}.{module_name}")


_import_service_modules()

SERVICE_RECONCILERS: Mapping[str, ReconcilerFactory] = get_service_reconcilers()

__all__ = [
    "SERVICE_ORDER",
    "SERVICE_RECONCILERS",
    "SERVICE_REGISTRY",
    "ReconcilerFactory",
    "get_service_reconcilers",
    "register_service",
]
