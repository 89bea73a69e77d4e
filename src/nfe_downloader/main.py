"""
Application entry point — wires dependencies and runs one batch.

Composition root: creates concrete adapters, injects them into the per-key
pipeline and the batch processor. This is the only place where concrete
classes are instantiated; everything else depends on ports.

Responsibilities:
  1. Parse command-line overrides
  2. Load and validate settings (fatal on error)
  3. Configure structlog
  4. Read the access key list (fatal on error)
  5. Wire CredentialGate + per-key pipeline into a BatchProcessor
  6. Run the batch and map the outcome to an exit code

Exit codes: 0 when the batch finished (even with per-key errors), 1 on any
fatal error (settings, key list, output directory, credential).
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Sequence
from functools import partial
from pathlib import Path

import structlog
from railway import LoggingExecutionContext
from railway.result import Result

from nfe_downloader import __version__
from nfe_downloader.adapters.certificate import Pkcs12CredentialProvider
from nfe_downloader.adapters.key_file import TextFileKeySource
from nfe_downloader.adapters.storage import FileSystemDocumentStore
from nfe_downloader.batch import BatchProcessor
from nfe_downloader.config import DEFAULT_SETTINGS_FILE, AppSettings, load_settings
from nfe_downloader.credential_gate import CredentialGate
from nfe_downloader.domain.access_key import AccessKeyCodec
from nfe_downloader.domain.models import BatchResult
from nfe_downloader.pipeline import process_key
from nfe_downloader.synthesizer import DocumentSynthesizer


def configure_structlog(log_level: str = "INFO") -> None:
    """Configure structlog for human-readable console output."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.set_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, log_level.upper(), logging.INFO)
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def _positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"must be >= 1, got {value}")
    return value


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="nfe-downloader",
        description="Build NF-e documents for a list of access keys.",
    )
    parser.add_argument(
        "--settings",
        type=Path,
        default=DEFAULT_SETTINGS_FILE,
        help=f"settings file (default: {DEFAULT_SETTINGS_FILE})",
    )
    parser.add_argument("--keys", type=Path, help="access key list, overrides keys_file")
    parser.add_argument("--output", type=Path, help="output directory, overrides output_dir")
    parser.add_argument("--workers", type=_positive_int, help="worker threads, overrides workers")
    return parser.parse_args(argv)


def apply_overrides(settings: AppSettings, args: argparse.Namespace) -> AppSettings:
    """Command-line values win over the settings file."""
    overrides = {
        name: value
        for name, value in (
            ("keys_file", args.keys),
            ("output_dir", args.output),
            ("workers", args.workers),
        )
        if value is not None
    }
    return settings.model_copy(update=overrides) if overrides else settings


def build_processor(
    settings: AppSettings,
    store: FileSystemDocumentStore,
) -> BatchProcessor:
    """Wire the credential gate and the per-key pipeline into a BatchProcessor."""
    gate = CredentialGate(Pkcs12CredentialProvider())
    credential_check = partial(
        gate.validate,
        settings.certificate.path,
        settings.certificate.password.get_secret_value(),
    )
    key_pipeline = partial(
        process_key,
        codec=AccessKeyCodec(verify_check_digit=settings.verify_check_digit),
        uf=settings.run.uf,
        environment=settings.run.environment,
        synthesizer=DocumentSynthesizer(),
        store=store,
    )
    return BatchProcessor(
        credential_check=credential_check,
        key_pipeline=key_pipeline,
        workers=settings.workers,
        prepare=store.prepare,
    )


def run(settings: AppSettings) -> Result[BatchResult]:
    """
    Read keys and run one batch.

    The output directory is created by the batch once the credential check
    has passed, so a rejected certificate leaves no artifacts.
    """
    store = FileSystemDocumentStore(settings.output_dir)
    processor = build_processor(settings, store)
    ctx = LoggingExecutionContext(operation="NFeBatch")

    return (
        TextFileKeySource(settings.keys_file)
        .read()
        .flat_map(lambda selection: ctx.execute(lambda: processor.run(selection)))
    )


def main(argv: Sequence[str] | None = None) -> int:
    """Run the downloader and return the process exit code."""
    args = parse_args(argv)

    loaded = load_settings(args.settings)
    if loaded.is_failure():
        print(f"FATAL: Configuration error — {loaded.error().message}", file=sys.stderr)  # noqa: T201
        return 1

    settings = apply_overrides(loaded.value(), args)
    configure_structlog(settings.log_level)
    log = structlog.get_logger()

    log.info(
        "app.starting",
        version=__version__,
        uf=settings.run.uf,
        environment=settings.run.environment.label,
        keys_file=str(settings.keys_file),
        output_dir=str(settings.output_dir),
        workers=settings.workers,
    )

    outcome = run(settings)
    if outcome.is_failure():
        log.error("app.fatal_error", code=outcome.error().code.value, error=outcome.error().message)
        return 1

    summary = outcome.value()
    log.info(
        "app.finished",
        success=summary.success_count,
        errors=summary.error_count,
        filtered=summary.filtered_count,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
