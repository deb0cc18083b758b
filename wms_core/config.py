"""Central configuration. Loads the project .env once, then reads WMS_* variables."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv

from wms_core.models.warehouse import GridOrientation

# .env at the project root; real environment variables win
_env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(_env_path, override=False)


@dataclass
class Settings:
    log_level: str = "INFO"
    lock_timeout: float = 10.0
    grid_orientation: GridOrientation = GridOrientation.TOP_DOWN
    audit_bucket: Optional[str] = None
    audit_prefix: str = "wms-audit"
    region_name: str = "us-east-1"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        timeout = env.get("WMS_LOCK_TIMEOUT")
        try:
            lock_timeout = float(timeout) if timeout else cls.lock_timeout
        except ValueError:
            raise ValueError(f"WMS_LOCK_TIMEOUT must be a number: {timeout!r}") from None
        if lock_timeout <= 0:
            raise ValueError("WMS_LOCK_TIMEOUT must be positive")

        return cls(
            log_level=env.get("WMS_LOG_LEVEL", cls.log_level).upper(),
            lock_timeout=lock_timeout,
            grid_orientation=GridOrientation(
                env.get("WMS_GRID_ORIENTATION", cls.grid_orientation.value)
            ),
            audit_bucket=env.get("WMS_AUDIT_BUCKET") or None,
            audit_prefix=env.get("WMS_AUDIT_PREFIX", cls.audit_prefix),
            region_name=env.get("AWS_DEFAULT_REGION", cls.region_name),
        )


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
