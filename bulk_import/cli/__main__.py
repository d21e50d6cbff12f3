from __future__ import annotations

import argparse
import asyncio
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from bulk_import.config.loader import DEFAULT_CONFIG_PATH, ConfigError, apply_env_overrides, load_config
from bulk_import.excel.template import save_template
from bulk_import.logging.error_log import ErrorLogBuffer
from bulk_import.logging.init import enable_debug, log_summary, setup_logging
from bulk_import.models.config_models import ImportConfig
from bulk_import.models.import_result import PipelineSnapshot
from bulk_import.models.pipeline_state import CompletionStatus, PipelineState
from bulk_import.schema.registry import parse_entity_type
from bulk_import.services.orchestrator import ImportOrchestrator
from bulk_import.services.submitter import BatchSubmitter, HttpBatchSubmitter, LocalBatchSubmitter
from bulk_import.services.summary import format_server_errors, render_summary_line

"""CLI entrypoint.

Commands:
- template <party|product>: write the upload template
- preview <party|product> FILE: load a file, show the first rows and their errors
- import <party|product> FILE: validate the whole file and submit the valid rows

Exit codes: 0 success, 2 partial/failed upload or no valid rows,
1 fatal (config, unreadable file, bad arguments).
"""

EXIT_SUCCESS = 0
EXIT_PARTIAL_FAILURE = 2
EXIT_FATAL = 1

ENTITY_CHOICES = ("party", "product")


class _ArgumentParser(argparse.ArgumentParser):
    """argparse exits with 2 on bad usage, which would collide with the partial-failure code."""

    def error(self, message: str) -> None:  # type: ignore[override]
        raise _UsageError(message)


class _UsageError(Exception):
    pass


def _load_env_file(path: Path, override: bool = True) -> None:
    """Load .env using python-dotenv.

    override=True: values from .env win over variables already in the
    environment.
    """
    if path.exists():
        load_dotenv(dotenv_path=path, override=override)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = _ArgumentParser(prog="bulk_import", description="Spreadsheet bulk import for CRM parties and products")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default: {DEFAULT_CONFIG_PATH})")
    sub = p.add_subparsers(dest="command", required=True)

    t = sub.add_parser("template", help="Write the upload template")
    t.add_argument("entity", choices=ENTITY_CHOICES)
    t.add_argument("--org-name", default=None, help="Organization name used in the file name")
    t.add_argument("--out", type=Path, default=Path("."), help="Output directory")

    pv = sub.add_parser("preview", help="Show the first rows of a file and their validation errors")
    pv.add_argument("entity", choices=ENTITY_CHOICES)
    pv.add_argument("file", type=Path)

    im = sub.add_parser("import", help="Validate a file and submit its valid rows")
    im.add_argument("entity", choices=ENTITY_CHOICES)
    im.add_argument("file", type=Path)
    im.add_argument("--dry-run", action="store_true", help="Validate and transform only; nothing is sent")
    return p.parse_args(argv)


def _orchestrator(
    entity: str, cfg: ImportConfig, submitter: BatchSubmitter, error_log: ErrorLogBuffer | None = None
) -> ImportOrchestrator:
    return ImportOrchestrator(
        entity,
        cfg.organization.id,
        submitter,
        organization_name=cfg.organization.name,
        preview_rows=cfg.preview_rows,
        fallback=cfg.fallback_location,
        null_sentinels=cfg.null_sentinels,
        error_log=error_log,
    )


def _flush_error_log(logger, error_log: ErrorLogBuffer) -> None:
    path = error_log.flush()
    if path is not None:
        logger.info(f"error log: {path}")


def _cmd_template(logger, args: argparse.Namespace, cfg: ImportConfig) -> int:
    org_name = args.org_name or cfg.organization.name
    try:
        path = save_template(parse_entity_type(args.entity), args.out, org_name)
    except OSError as e:
        logger.error(f"template: {e}")
        return EXIT_FATAL
    logger.info(f"template written: {path}")
    return EXIT_SUCCESS


def _cmd_preview(logger, args: argparse.Namespace, cfg: ImportConfig) -> int:
    try:
        data = args.file.read_bytes()
    except OSError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL
    orchestrator = _orchestrator(args.entity, cfg, LocalBatchSubmitter())
    snap = asyncio.run(orchestrator.select_file(args.file.name, data))
    if snap.state is PipelineState.IDLE:
        logger.error(f"file: {snap.message}")
        return EXIT_FATAL

    logger.info(snap.message)
    for row in snap.preview:
        cells = " | ".join("" if v is None else str(v) for v in row.values.values())
        logger.info(f"S.No {row.s_no} (row {row.row_number}): {cells}")
        if row.errors:
            logger.warning(f"row {row.row_number}: {'; '.join(row.errors)}")
    return EXIT_SUCCESS


async def _run_import(orchestrator: ImportOrchestrator, name: str, data: bytes) -> PipelineSnapshot:
    snap = await orchestrator.select_file(name, data)
    if snap.state is not PipelineState.PREVIEWING:
        return snap
    return await orchestrator.confirm_upload()


def _cmd_import(logger, args: argparse.Namespace, cfg: ImportConfig) -> int:
    if not cfg.organization.id:
        logger.error("config: organization id is required (organization.id or CRM_ORGANIZATION_ID)")
        return EXIT_FATAL
    dry_run = args.dry_run or os.getenv("CRM_DRY_RUN") == "1"
    submitter: BatchSubmitter
    if dry_run:
        logger.info("dry run: payloads are not sent")
        submitter = LocalBatchSubmitter()
    elif not cfg.api.base_url:
        logger.error("config: api base url is required (api.base_url or CRM_API_BASE_URL)")
        return EXIT_FATAL
    else:
        submitter = HttpBatchSubmitter(cfg.api.base_url, cfg.api.token, cfg.api.timeout_seconds)

    try:
        data = args.file.read_bytes()
    except OSError as e:
        logger.error(f"file: {e}")
        return EXIT_FATAL

    error_log = ErrorLogBuffer()
    orchestrator = _orchestrator(args.entity, cfg, submitter, error_log)
    snap = asyncio.run(_run_import(orchestrator, args.file.name, data))

    if snap.state is PipelineState.IDLE:
        logger.error(f"file: {snap.message}")
        _flush_error_log(logger, error_log)
        return EXIT_FATAL

    for line in format_server_errors(
        [f"row {e.row_number}: {'; '.join(e.messages)}" for e in snap.row_errors], cfg.error_display_limit
    ):
        logger.warning(line)

    if snap.state is PipelineState.COMPLETED and snap.status is CompletionStatus.SUCCESS:
        logger.info(snap.message)
    else:
        logger.warning(snap.message)
    if snap.result is not None:
        for line in format_server_errors(snap.result.errors, cfg.error_display_limit):
            logger.warning(f"server: {line}")

    # log_summary adds the "SUMMARY " label itself
    log_summary(render_summary_line(snap)[len("SUMMARY "):])
    _flush_error_log(logger, error_log)

    if snap.status is CompletionStatus.SUCCESS:
        return EXIT_SUCCESS
    return EXIT_PARTIAL_FAILURE


def main(argv: list[str] | None = None) -> int:
    logger = setup_logging()

    # only read sys.argv when argv is None; an empty list means "no arguments"
    if argv is None:
        argv = sys.argv[1:]
    try:
        args = _parse_args(argv)
    except _UsageError as e:
        logger.error(f"args: {e}")
        return EXIT_FATAL

    # .env wins over the inherited environment
    _load_env_file(Path(".env"), override=True)
    if args.debug:
        enable_debug(logger)
        logger.debug("debug mode enabled")

    # the default config file is optional; an explicit --config must exist
    try:
        cfg = apply_env_overrides(load_config(args.config, required=args.config is not None))
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    if args.command == "template":
        return _cmd_template(logger, args, cfg)
    if args.command == "preview":
        return _cmd_preview(logger, args, cfg)
    return _cmd_import(logger, args, cfg)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
