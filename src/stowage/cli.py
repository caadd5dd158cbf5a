"""CLI entrypoint for Stowage."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

import fire  # type: ignore[import-untyped]

from stowage.app import Application
from stowage.config import ConfigError, load_config
from stowage.errors import TransferFailed, UploadPipelineError
from stowage.logging_setup import configure_logging
from stowage.models.upload import UploadRequest


def setup_logging(level: str = "INFO", owner_id: str | None = None) -> None:
    """Configure logging for CLI."""
    configure_logging(log_level=level, owner_id=owner_id)


def _print_progress(percent: float) -> None:
    print(f"  {percent:5.1f}%", file=sys.stderr)


class Stowage:
    """Stowage CLI - media upload pipeline."""

    def upload(
        self,
        config: str,
        file: str,
        owner: str,
        name: str | None = None,
        container: str | None = None,
        compress: bool = True,
        attempts: int | None = None,
        progress: bool = False,
        log_level: str = "INFO",
    ) -> None:
        """Upload one image and print its access URL.

        Args:
            config: Path to YAML config file
            file: Local image path
            owner: Owner id the object is attributed to
            name: Declared file name (defaults to the local file name)
            container: Target container (defaults to upload.default_container)
            compress: Downscale and re-encode before upload
            attempts: Max upload attempts (defaults to retry.max_attempts)
            progress: Print progress percentages to stderr
            log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        """
        setup_logging(log_level, owner_id=owner)

        async def _run() -> None:
            async with Application.from_path(Path(config)) as app:
                request = UploadRequest(
                    local_path=Path(file),
                    owner_id=owner,
                    container=container,
                    declared_file_name=name or Path(file).name,
                    compression_enabled=compress,
                    max_attempts=attempts or app.config.retry.max_attempts,
                    progress_sink=_print_progress if progress else None,
                )
                result = await app.upload(request)
                print(f"✓ Uploaded {result.container}/{result.path} ({result.byte_size} bytes)")
                print(f"  Compressed: {result.was_compressed}")
                print(f"  URL: {result.access_reference}")

        try:
            asyncio.run(_run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        except TransferFailed as e:
            print(f"✗ {e.message}. Please try the upload again.", file=sys.stderr)
            sys.exit(1)
        except UploadPipelineError as e:
            print(f"✗ {e.message}", file=sys.stderr)
            sys.exit(1)

    def usage(self, config: str, owner: str, log_level: str = "WARNING") -> None:
        """Print storage usage for an owner.

        Args:
            config: Path to YAML config file
            owner: Owner id
            log_level: Logging level
        """
        setup_logging(log_level, owner_id=owner)

        async def _run() -> None:
            async with Application.from_path(Path(config)) as app:
                summary = await app.usage(owner)
                print(summary.message)
                print(f"  Objects: {summary.object_count}")

        try:
            asyncio.run(_run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

    def backfill(self, config: str, owner: str, log_level: str = "INFO") -> None:
        """Fill in missing byte sizes for an owner's stored objects.

        Args:
            config: Path to YAML config file
            owner: Owner id
            log_level: Logging level
        """
        setup_logging(log_level, owner_id=owner)

        async def _run() -> int:
            async with Application.from_path(Path(config)) as app:
                report = await app.backfill(owner)
            print(f"Updated: {report.updated}")
            for error in report.errors:
                print(f"  ✗ {error}", file=sys.stderr)
            return 0 if report.success else 1

        try:
            code = asyncio.run(_run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        if code:
            sys.exit(code)

    def delete(self, config: str, *object_ids: str, log_level: str = "INFO") -> None:
        """Delete objects and their ledger rows.

        Args:
            config: Path to YAML config file
            object_ids: Ledger object ids to delete
            log_level: Logging level
        """
        setup_logging(log_level)

        async def _run() -> int:
            async with Application.from_path(Path(config)) as app:
                report = await app.delete(list(object_ids))
            print(f"Deleted: {report.succeeded}, failed: {report.failed}")
            for error in report.errors:
                print(f"  ✗ {error}", file=sys.stderr)
            return 1 if report.failed else 0

        try:
            code = asyncio.run(_run())
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)
        if code:
            sys.exit(code)

    def validate(self, config: str) -> None:
        """Validate config file without running.

        Args:
            config: Path to YAML config file
        """
        config_path = Path(config)
        try:
            cfg = load_config(config_path)
        except ConfigError as e:
            print(f"✗ Config invalid: {e}", file=sys.stderr)
            sys.exit(1)

        print(f"✓ Config valid: {config_path}")
        print(f"  Storage backend: {cfg.storage.backend}")
        print(f"  Ledger backend: {cfg.ledger.backend}")
        print(f"  Max file size: {cfg.validation.max_bytes} bytes")
        print(f"  Quota: {cfg.quota.max_total_bytes} bytes")
        print(f"  Encoder: {cfg.upload.encoder}")


def main() -> None:
    """Main CLI entrypoint."""
    # Strip --help/-h when it's the only arg so Fire shows its commands list
    if len(sys.argv) == 2 and sys.argv[1] in ("--help", "-h"):
        sys.argv.pop()
    fire.Fire(Stowage)


if __name__ == "__main__":
    main()
