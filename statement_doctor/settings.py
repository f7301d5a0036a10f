"""
Ingestion settings.

Resolution order: built-in defaults, then a JSON config file, then
environment variables. The config file defaults to ``statement-doctor.json``
in the working directory and is skipped when absent.
"""

from __future__ import annotations

import json
import os
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Mapping

from statement_doctor.dates import DATE_ORDERS, DEFAULT_DATE_ORDER

DEFAULT_CONFIG_NAME = "statement-doctor.json"
DATE_ORDER_ENV = "STATEMENT_DOCTOR_DATE_ORDER"
SAMPLE_SIZE_ENV = "STATEMENT_DOCTOR_SAMPLE_SIZE"


@dataclass(frozen=True)
class IngestSettings:
    date_order: str = DEFAULT_DATE_ORDER
    sample_size: int = 10
    date_threshold: float = 0.7
    amount_threshold: float = 0.8
    description_threshold: float = 0.6

    def __post_init__(self) -> None:
        if self.date_order not in DATE_ORDERS:
            raise ValueError(f"date_order must be one of {DATE_ORDERS}, got {self.date_order!r}")
        if not isinstance(self.sample_size, int) or self.sample_size < 1:
            raise ValueError(f"sample_size must be a positive integer, got {self.sample_size!r}")
        for name in ("date_threshold", "amount_threshold", "description_threshold"):
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or not 0 < value <= 1:
                raise ValueError(f"{name} must be in (0, 1], got {value!r}")

    @property
    def thresholds(self) -> dict[str, float]:
        return {
            "date": self.date_threshold,
            "amount": self.amount_threshold,
            "description": self.description_threshold,
        }

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)


def _read_config(path: Path) -> dict[str, Any]:
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except Exception as exc:
        raise ValueError(f"Could not read config {path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise ValueError(f"Config root must be a JSON object: {path}")
    known = set(IngestSettings.__dataclass_fields__)
    unknown = sorted(set(payload) - known)
    if unknown:
        raise ValueError(f"Unknown config keys in {path}: {', '.join(unknown)}")
    return payload


def load_settings(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> IngestSettings:
    env = os.environ if env is None else env
    settings = IngestSettings()

    config_path = Path(path) if path is not None else Path.cwd() / DEFAULT_CONFIG_NAME
    if path is not None and not config_path.exists():
        raise ValueError(f"Config not found: {config_path}")
    if config_path.exists():
        settings = replace(settings, **_read_config(config_path))

    if env.get(DATE_ORDER_ENV):
        settings = replace(settings, date_order=env[DATE_ORDER_ENV].strip().lower())
    if env.get(SAMPLE_SIZE_ENV):
        try:
            sample_size = int(env[SAMPLE_SIZE_ENV])
        except ValueError as exc:
            raise ValueError(f"{SAMPLE_SIZE_ENV} must be an integer") from exc
        settings = replace(settings, sample_size=sample_size)
    return settings


def write_default_config(path: str | Path) -> Path:
    config_path = Path(path)
    if config_path.exists():
        raise FileExistsError(f"Refusing to overwrite existing config: {config_path}")
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(json.dumps(IngestSettings().as_dict(), indent=2) + "\n", encoding="utf-8")
    return config_path
