import argparse
import logging
import logging.handlers
import signal
import sys
from pathlib import Path

from . import config
from .core import SyncApp
from .exceptions import ConfigError, ContentfulSyncError, ScanError
from .imaging.watermark import Watermarker
from .remote.contentful import ContentfulClient
from .settings import load_settings, resolve_log_dir


def setup_logging(log_dir: Path, verbose: bool):
    """Sets up logging to both console and an hourly-rotated file."""
    log_level = logging.DEBUG if verbose else logging.INFO

    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / config.LOG_FILE_NAME

    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=[
            logging.handlers.TimedRotatingFileHandler(
                log_file,
                when=config.LOG_ROTATE_WHEN,
                backupCount=config.LOG_BACKUP_COUNT,
                encoding='utf-8',
            ),
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Silence chatty libraries
    logging.getLogger("PIL").setLevel(logging.WARNING)
    logging.getLogger("watchdog").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Keep a folder of $-prefixed JPEGs in sync with Contentful assets")

    p.add_argument("root", type=Path, nargs="?", default=None,
                   help="Asset directory to watch (default: $ASSET_DIRECTORY)")
    p.add_argument("--access-token", default=None, help="Contentful management token")
    p.add_argument("--space-id", default=None, help="Contentful space id")
    p.add_argument("--environment", default=None, help=f"Contentful environment (default: {config.DEFAULT_ENVIRONMENT})")
    p.add_argument("--locale", default=None, help=f"Field locale (default: {config.DEFAULT_LOCALE})")
    p.add_argument("--watermark", type=Path, default=None, help="PNG overlaid on published copies")
    p.add_argument("--log-dir", type=Path, default=None, help="Directory for log files (default: ./logs)")
    p.add_argument("--workers", type=int, default=None,
                   help=f"Parallel pipelines and scan workers (default: {config.DEFAULT_MAX_WORKERS})")

    p.add_argument("--once", action="store_true", help="Scan and reconcile, then exit without watching")
    p.add_argument("--dry-run", action="store_true", help="Log reconciliation actions without executing them")
    p.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    log_dir = resolve_log_dir(args)
    setup_logging(log_dir, args.verbose)

    try:
        settings = load_settings(args)
    except ConfigError as e:
        logging.error(str(e))
        sys.exit(1)

    logging.info("=== Contentful Sync Started ===")
    logging.info(f"Assets: {settings.asset_directory}")
    logging.info(f"Space:  {settings.space_id} ({settings.environment})")

    client = ContentfulClient(
        space_id=settings.space_id,
        access_token=settings.access_token,
        environment=settings.environment,
        locale=settings.locale,
    )
    watermarker = Watermarker(settings.asset_directory, settings.watermark_path)
    app = SyncApp(settings.asset_directory, client, watermarker, max_workers=settings.max_workers)

    try:
        app.start(dry_run=args.dry_run)
    except ScanError:
        logging.exception("Initial scan failed.")
        app.close()
        sys.exit(1)
    except ContentfulSyncError:
        logging.exception("Startup reconciliation failed.")
        app.close()
        sys.exit(1)

    if args.once or args.dry_run:
        app.close()
        logging.info("=== Contentful Sync Finished ===")
        return

    def _shutdown(signum, frame):
        logging.info(f"Received signal {signum}, shutting down...")
        app.stop()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    try:
        app.run()
    except Exception:
        logging.exception("Fatal error in watch loop.")
        sys.exit(1)

    logging.info("=== Contentful Sync Stopped ===")


if __name__ == "__main__":
    main()
