"""
upload_config -- single public entrypoint for bulk upload configuration.

Responsibility:
    ``get_upload_settings()`` is the only way services obtain configuration.
    YAML loading is internal; callers receive a frozen ``UploadSettings``.

Failure modes:
    - ``FileNotFoundError`` -- the named settings file does not exist.
    - ``ValueError`` / ``KeyError`` -- the file fails schema parsing.
"""

from __future__ import annotations

import os
from pathlib import Path

from upload_config.loader import load_yaml_file, parse_settings
from upload_config.schema import ObjectTypeConfig, SupportedColumnsDef, UploadSettings
from upload_kernel.logging_config import get_logger

logger = get_logger("config")

CONFIG_ENV_VAR = "BULK_UPLOAD_CONFIG"

_DEFAULT_CONFIG_FILE = Path(__file__).parent / "sets" / "default.yaml"

__all__ = [
    "CONFIG_ENV_VAR",
    "ObjectTypeConfig",
    "SupportedColumnsDef",
    "UploadSettings",
    "get_upload_settings",
]


def get_upload_settings(config_path: Path | str | None = None) -> UploadSettings:
    """
    Load and parse the bulk upload settings.

    Resolution order: ``config_path`` argument, then the ``BULK_UPLOAD_CONFIG``
    environment variable, then the packaged ``sets/default.yaml``.
    """
    path = Path(config_path or os.environ.get(CONFIG_ENV_VAR) or _DEFAULT_CONFIG_FILE)
    settings = parse_settings(load_yaml_file(path))
    logger.info(
        "upload_settings_loaded",
        extra={
            "config_path": str(path),
            "object_types": sorted(settings.object_types),
            "write_batch_size": settings.write_batch_size,
            "max_rows": settings.max_rows,
        },
    )
    return settings
