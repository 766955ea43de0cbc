"""Core orchestration for adding an account to the security tools."""
from __future__ import annotations

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence, Tuple

from .config import Settings
from .errors import ConnectorError
from .models import UnitResult
from .prisma import PrismaConnector
from .services import SERVICE_ORDER, SERVICE_RECONCILERS
from .sessions import SessionProvider

LOGGER = logging.getLogger(__name__)

PRISMA_SERVICE = "prisma"


@dataclass
class ConnectResults:
    """Outcomes and errors collected over a whole run."""

    results: List[UnitResult] = field(default_factory=list)
    errors: List[ConnectorError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.errors

    def record(self, result: UnitResult, error: Optional[ConnectorError] = None) -> None:
        self.results.append(result)
        if error is not None:
            self.errors.append(error)

    def summary(self) -> str:
        """Return every error on its own line, outer context first."""

        return "\n".join(f"* {error}" for error in self.errors)


def _result_sort_key(result: UnitResult) -> Tuple[int, str, int]:
    if result.service == PRISMA_SERVICE:
        return (0, "", 0)
    service_rank = SERVICE_ORDER.index(result.service) if result.service in SERVICE_ORDER else len(SERVICE_ORDER)
    return (1, result.region, service_rank)


def sync_prisma_account(settings: Settings, connector: PrismaConnector, results: ConnectResults) -> None:
    """Create or update the Prisma cloud account, recording the outcome."""

    try:
        outcome = connector.add_aws_account(
            settings.account_id,
            settings.account_name,
            settings.external_id,
            settings.prisma_role_name,
        )
    except ConnectorError as exc:
        error = exc.wrap("problem adding account to Prisma")
        results.record(UnitResult(PRISMA_SERVICE, "", "FAILED", str(error)), error)
        return
    results.record(UnitResult(PRISMA_SERVICE, "", "CONNECTED", outcome))


def connect_region(
    settings: Settings,
    sessions: SessionProvider,
    region: str,
    master_account_id: str,
) -> List[Tuple[UnitResult, Optional[ConnectorError]]]:
    """Run every enabled service reconciler for *region*.

    A failing service does not stop the others; each outcome is returned
    together with its error, if any.
    """

    outcomes: List[Tuple[UnitResult, Optional[ConnectorError]]] = []
    for service in settings.services:
        reconciler_cls = SERVICE_RECONCILERS[service]
        reconciler = reconciler_cls(
            sessions.master_client(service, region),
            sessions.member_client(service, region),
        )
        try:
            status = reconciler.add_member(
                settings.account_id, settings.account_email, master_account_id
            )
        except ConnectorError as exc:
            error = exc.wrap(f"problem adding member account to {reconciler.title} in {region}")
            LOGGER.debug("%s", error)
            outcomes.append((UnitResult(service, region, "FAILED", str(error)), error))
            continue
        outcomes.append((UnitResult(service, region, status), None))
    return outcomes


def connect_account(
    settings: Settings,
    sessions: SessionProvider,
    prisma: Optional[PrismaConnector] = None,
) -> ConnectResults:
    """Add the account to Prisma and to every enabled AWS security service.

    Errors are collected rather than raised. Only a failure to resolve the
    master account ID stops the AWS services part of the run.
    """

    results = ConnectResults()
    LOGGER.info("Starting account %s adding to cloud security tools", settings.account_id)

    if prisma is not None:
        sync_prisma_account(settings, prisma, results)

    if not settings.services:
        return _sorted(results)

    try:
        master_account_id = sessions.master_account_id()
    except ConnectorError as exc:
        results.errors.append(
            exc.wrap("problem retrieving master account ID, aborting AWS services adding")
        )
        return _sorted(results)
    LOGGER.info("Master account ID: %s", master_account_id)

    regions = sessions.regions(settings.region_exceptions, settings.regions or None)
    if settings.max_workers > 1 and len(regions) > 1:
        with ThreadPoolExecutor(max_workers=settings.max_workers) as executor:
            per_region = list(
                executor.map(
                    lambda region: connect_region(settings, sessions, region, master_account_id),
                    regions,
                )
            )
    else:
        per_region = [
            connect_region(settings, sessions, region, master_account_id) for region in regions
        ]

    for outcomes in per_region:
        for result, error in outcomes:
            results.record(result, error)
    return _sorted(results)


def _sorted(results: ConnectResults) -> ConnectResults:
    results.results.sort(key=_result_sort_key)
    return results


def export_results_to_json(results: Iterable[UnitResult], path: str) -> str:
    """Write *results* as a JSON array to *path*."""

    with open(path, "w", encoding="utf-8") as fh:
        json.dump([result.as_dict() for result in results], fh, indent=2)
    return path


def export_results_to_excel(results: Iterable[UnitResult], path: str) -> str:
    """Write *results* to an Excel workbook located at *path*."""

    headers = ("Service", "Region", "Status", "Details")
    rows = ((result.service, result.region, result.status, result.details) for result in results)
    return _export_rows_to_excel(rows, headers, path, sheet_title="Results")


def _export_rows_to_excel(
    rows: Iterable[Sequence[object]],
    headers: Sequence[str],
    path: str,
    *,
    sheet_title: str,
) -> str:
    """Write ``rows`` with ``headers`` to an Excel sheet using :mod:`openpyxl`."""

    try:
        from openpyxl import Workbook
        from openpyxl.utils import get_column_letter
    except ImportError as exc:  # pragma: no cover - dependency missing during tests
        raise RuntimeError(
            "The 'openpyxl' package is required to export results to Excel. "
            "Install it with 'pip install aws-security-connectors[excel]'."
        ) from exc

    workbook = Workbook()
    sheet = workbook.active
    sheet.title = sheet_title

    sheet.append(list(headers))
    column_widths = [len(header) for header in headers]

    for row in rows:
        values = list(row)
        sheet.append(values)
        for idx, value in enumerate(values):
            column_widths[idx] = max(column_widths[idx], len(str(value)))

    for idx, width in enumerate(column_widths, start=1):
        sheet.column_dimensions[get_column_letter(idx)].width = min(width + 2, 80)

    workbook.save(path)
    return path


__all__ = [
    "ConnectResults",
    "PRISMA_SERVICE",
    "connect_account",
    "connect_region",
    "export_results_to_excel",
    "export_results_to_json",
    "sync_prisma_account",
]
