"""Command line interface for the AWS security connectors."""
from __future__ import annotations

import argparse
import logging
import os
import sys
from typing import List, Mapping, Optional

import boto3
from botocore.exceptions import ProfileNotFound

from .config import DEFAULT_REGION_EXCEPTIONS, Settings, env_flag, env_list
from .core import connect_account, export_results_to_excel, export_results_to_json
from .errors import ConfigurationError
from .prisma import DEFAULT_API_URL, PrismaClient, PrismaConnector
from .sessions import SessionProvider

LOGGER = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_USAGE = 1
EXIT_FAILED = 3


def parse_args(
    argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None
) -> argparse.Namespace:
    """Return parsed command line arguments, falling back to the environment."""

    env = os.environ if environ is None else environ
    parser = argparse.ArgumentParser(
        description="Add an AWS account to Prisma Cloud and to GuardDuty, Security Hub "
        "and Detective of the master account."
    )

    aws = parser.add_argument_group("AWS security services parameters")
    aws.add_argument(
        "--account-id",
        default=env.get("AWS_ACCOUNT_ID"),
        help="ID of AWS account to add (env: AWS_ACCOUNT_ID)",
    )
    aws.add_argument(
        "--account-email",
        default=env.get("AWS_ACCOUNT_EMAIL", ""),
        help="Member account email for invitation sending (env: AWS_ACCOUNT_EMAIL)",
    )
    aws.add_argument(
        "--role-name",
        default=env.get("AWS_ROLE_NAME", ""),
        help="Member account role to assume for invitation accepting (env: AWS_ROLE_NAME)",
    )
    aws.add_argument(
        "--region-exceptions",
        nargs="*",
        default=env_list("AWS_REGION_EXCEPTIONS", list(DEFAULT_REGION_EXCEPTIONS), env),
        help="Regions to skip (env: AWS_REGION_EXCEPTIONS, comma separated)",
    )
    aws.add_argument(
        "--regions",
        nargs="*",
        default=env_list("AWS_REGIONS", [], env),
        help="Work only on these regions instead of every region of the partition",
    )
    aws.add_argument(
        "--guardduty",
        action="store_true",
        default=env_flag("AWS_GUARDDUTY", env),
        help="Connect GuardDuty (env: AWS_GUARDDUTY)",
    )
    aws.add_argument(
        "--security-hub",
        dest="securityhub",
        action="store_true",
        default=env_flag("AWS_SECURITY_HUB", env),
        help="Connect Security Hub (env: AWS_SECURITY_HUB)",
    )
    aws.add_argument(
        "--detective",
        action="store_true",
        default=env_flag("AWS_DETECTIVE", env),
        help="Connect Detective (env: AWS_DETECTIVE)",
    )
    aws.add_argument("--profile", default=env.get("AWS_PROFILE"), help="AWS CLI profile to use")
    aws.add_argument(
        "--workers",
        type=int,
        default=env.get("AWS_WORKERS", "1"),
        help="Number of regions processed in parallel (env: AWS_WORKERS)",
    )

    prisma = parser.add_argument_group("Prisma parameters")
    prisma.add_argument(
        "--prisma-account-name",
        default=env.get("PRISMA_ACCOUNT_NAME", ""),
        help="Name for AWS connection (env: PRISMA_ACCOUNT_NAME)",
    )
    prisma.add_argument(
        "--prisma-external-id",
        default=env.get("PRISMA_EXTERNAL_ID", ""),
        help="UUID used in the trust policy of the Prisma role (env: PRISMA_EXTERNAL_ID)",
    )
    prisma.add_argument(
        "--prisma-role-name",
        default=env.get("PRISMA_ROLE_NAME", ""),
        help="Name of AWS role created for Prisma (env: PRISMA_ROLE_NAME)",
    )
    prisma.add_argument(
        "--prisma-api-url",
        default=env.get("PRISMA_API_URL", DEFAULT_API_URL),
        help="Prisma API URL (env: PRISMA_API_URL)",
    )
    prisma.add_argument(
        "--prisma-api-key", default=env.get("PRISMA_API_KEY", ""), help="Prisma API key (env: PRISMA_API_KEY)"
    )
    prisma.add_argument(
        "--prisma-api-password",
        default=env.get("PRISMA_API_PASSWORD", ""),
        help="Prisma API password (env: PRISMA_API_PASSWORD)",
    )

    parser.add_argument("--json", dest="json_path", help="Optional path to export results as JSON")
    parser.add_argument(
        "--excel",
        dest="excel_path",
        help="Optional path to export results as an Excel workbook (.xlsx)",
    )
    parser.add_argument(
        "--debug", action="store_true", default=env_flag("DEBUG", env), help="debug mode (env: DEBUG)"
    )
    return parser.parse_args(argv)


def settings_from_args(args: argparse.Namespace) -> Settings:
    return Settings(
        account_id=args.account_id or "",
        account_email=args.account_email,
        role_name=args.role_name,
        region_exceptions=list(args.region_exceptions),
        regions=list(args.regions),
        guardduty=args.guardduty,
        securityhub=args.securityhub,
        detective=args.detective,
        account_name=args.prisma_account_name,
        external_id=args.prisma_external_id,
        prisma_role_name=args.prisma_role_name,
        api_url=args.prisma_api_url,
        api_key=args.prisma_api_key,
        api_password=args.prisma_api_password,
        profile=args.profile,
        max_workers=args.workers,
        debug=args.debug,
    )


def configure_logging(debug: bool = False) -> None:
    """Send log records to stderr, with caller information in debug mode."""

    if debug:
        fmt = "%(asctime)s %(levelname)s %(name)s:%(lineno)d %(message)s"
    else:
        fmt = "%(asctime)s %(levelname)s %(message)s"
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=fmt, force=True)
    for noisy in ("boto3", "botocore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.DEBUG if debug else logging.WARNING)


def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry point used by ``python -m aws_security_connectors``."""

    try:
        args = parse_args(argv)
    except SystemExit as exc:
        # argparse already printed the usage or the help text.
        return EXIT_OK if exc.code in (None, 0) else EXIT_USAGE
    configure_logging(args.debug)

    settings = settings_from_args(args)
    try:
        settings.validate()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE

    try:
        session = boto3.Session(profile_name=settings.profile)
    except ProfileNotFound as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_USAGE
    sessions = SessionProvider(session, settings.account_id, settings.role_name)

    prisma = None
    if settings.prisma_enabled:
        LOGGER.info("Creating Prisma connection to %s", settings.api_url)
        prisma = PrismaConnector(
            PrismaClient(settings.api_key, settings.api_password, settings.api_url)
        )

    results = connect_account(settings, sessions, prisma)

    if args.json_path:
        export_results_to_json(results.results, args.json_path)
        LOGGER.info("Results exported to %s", args.json_path)

    if args.excel_path:
        try:
            path = export_results_to_excel(results.results, args.excel_path)
        except RuntimeError as exc:
            LOGGER.error("Failed to export Excel report: %s", exc)
        else:
            LOGGER.info("Excel report written to %s", path)

    if not results.ok:
        LOGGER.error(
            "Problem(s) with adding member account to security tools:\n%s", results.summary()
        )
        return EXIT_FAILED

    LOGGER.info("Done without errors")
    return EXIT_OK


__all__ = ["configure_logging", "main", "parse_args", "settings_from_args"]
