from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional
import os
import sys

from shopkeep.domain.errors import ValidationError


@dataclass(frozen=True)
class AppPaths:
    base_dir: Path
    db_path: Path
    logs_dir: Path


@dataclass(frozen=True)
class AppSettings:
    shop_name: str = "Shopkeep"
    currency: str = "Rs."
    low_stock_threshold: int = 5
    api_url: Optional[str] = None
    api_timeout: float = 10.0

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "AppSettings":
        env = os.environ if env is None else env
        defaults = cls()
        try:
            threshold = int(env.get("SHOPKEEP_LOW_STOCK_THRESHOLD", defaults.low_stock_threshold))
            timeout = float(env.get("SHOPKEEP_API_TIMEOUT", defaults.api_timeout))
        except ValueError as e:
            raise ValidationError(f"Invalid numeric setting: {e}") from e
        if threshold < 0:
            raise ValidationError("SHOPKEEP_LOW_STOCK_THRESHOLD must be >= 0.")
        return cls(
            shop_name=env.get("SHOPKEEP_SHOP_NAME", defaults.shop_name),
            currency=env.get("SHOPKEEP_CURRENCY", defaults.currency),
            low_stock_threshold=threshold,
            api_url=env.get("SHOPKEEP_API_URL") or None,
            api_timeout=timeout,
        )


def _windows_appdata() -> Path:
    return Path(os.environ.get("APPDATA", str(Path.home() / "AppData" / "Roaming")))


def _mac_app_support() -> Path:
    return Path.home() / "Library" / "Application Support"


def get_app_paths(app_name: str = "Shopkeep") -> AppPaths:
    if sys.platform.startswith("win"):
        base = _windows_appdata() / app_name
    elif sys.platform == "darwin":
        base = _mac_app_support() / app_name
    else:
        base = Path.home() / f".{app_name.lower()}"

    logs = base / "logs"
    db = base / "shop.db"

    base.mkdir(parents=True, exist_ok=True)
    logs.mkdir(parents=True, exist_ok=True)

    return AppPaths(base_dir=base, db_path=db, logs_dir=logs)
