"""
Runtime settings, resolved from CLI arguments with environment fallbacks.
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from . import config
from .exceptions import ConfigError


@dataclass(frozen=True)
class SyncSettings:
    asset_directory: Path
    access_token: str
    space_id: str
    environment: str = config.DEFAULT_ENVIRONMENT
    locale: str = config.DEFAULT_LOCALE
    watermark_path: Optional[Path] = None
    max_workers: int = config.DEFAULT_MAX_WORKERS


def _pick(cli_value, environ: Mapping[str, str], key: str, default=None):
    if cli_value not in (None, ''):
        return cli_value
    return environ.get(key) or default


def load_settings(args, environ: Mapping[str, str] = os.environ) -> SyncSettings:
    """
    Builds settings from parsed arguments (argparse.Namespace or similar).
    CLI values win over environment variables.
    """
    root = _pick(args.root, environ, 'ASSET_DIRECTORY')
    token = _pick(args.access_token, environ, 'CONTENTFUL_ACCESS_TOKEN')
    space = _pick(args.space_id, environ, 'CONTENTFUL_SPACE_ID')

    missing = [name for name, value in (
        ('asset directory (ROOT / ASSET_DIRECTORY)', root),
        ('access token (--access-token / CONTENTFUL_ACCESS_TOKEN)', token),
        ('space id (--space-id / CONTENTFUL_SPACE_ID)', space),
    ) if not value]
    if missing:
        raise ConfigError("Missing settings: " + ", ".join(missing))

    root = Path(root).expanduser().resolve()
    if not root.is_dir():
        raise ConfigError(f"Asset directory {root} does not exist")

    watermark = _pick(args.watermark, environ, 'WATERMARK_PATH')

    workers = args.workers if args.workers is not None else config.DEFAULT_MAX_WORKERS
    if workers < 1:
        raise ConfigError("--workers must be at least 1")

    return SyncSettings(
        asset_directory=root,
        access_token=token,
        space_id=space,
        environment=_pick(args.environment, environ, 'CONTENTFUL_ENVIRONMENT', config.DEFAULT_ENVIRONMENT),
        locale=_pick(args.locale, environ, 'CONTENTFUL_LOCALE', config.DEFAULT_LOCALE),
        watermark_path=Path(watermark) if watermark else None,
        max_workers=workers,
    )


def resolve_log_dir(args, environ: Mapping[str, str] = os.environ) -> Path:
    """
    Log directory from --log-dir, then SYNC_LOG_DIR, then ./logs.
    Kept apart from load_settings so logging is up before settings are checked.
    """
    return Path(_pick(args.log_dir, environ, 'SYNC_LOG_DIR', config.DEFAULT_LOG_DIR))
