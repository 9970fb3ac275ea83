from __future__ import annotations

import json
import logging
import os
from decimal import Decimal
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

log = logging.getLogger(__name__)

ROOT_DIR = Path(__file__).resolve().parents[2]


def data_dir() -> Path:
    """INVOICING_DATA_DIR, else data/ at the project root."""
    env = os.environ.get("INVOICING_DATA_DIR")
    return Path(env) if env else ROOT_DIR / "data"


def settings_path(base: Optional[os.PathLike | str] = None) -> Path:
    return Path(base or data_dir()) / "settings.json"


class FinancialPrefs(BaseModel):
    tax_rate: Decimal = Field(default=Decimal("14"), ge=0, le=100)
    vat_rate: Decimal = Field(default=Decimal("14"), ge=0, le=100)
    currency: str = "EGP"


class NumberingPrefs(BaseModel):
    invoice_prefix: str = "INV-"
    invoice_seq: int = Field(default=1, ge=1)


class DraftPrefs(BaseModel):
    max_drafts: int = Field(default=4, ge=1, le=4)
    debounce_seconds: float = Field(default=2.0, ge=0)


class AppSettings(BaseModel):
    financial: FinancialPrefs = Field(default_factory=FinancialPrefs)
    numbering: NumberingPrefs = Field(default_factory=NumberingPrefs)
    drafts: DraftPrefs = Field(default_factory=DraftPrefs)

    model_config = ConfigDict(extra="ignore")


def load_settings(base: Optional[os.PathLike | str] = None) -> AppSettings:
    p = settings_path(base)
    if not p.exists():
        return AppSettings()
    try:
        return AppSettings.model_validate(json.loads(p.read_text(encoding="utf-8")))
    except (json.JSONDecodeError, ValidationError) as e:
        log.warning("Invalid settings %s (%s), using defaults", p, e)
        return AppSettings()


def save_settings(settings: AppSettings, base: Optional[os.PathLike | str] = None) -> None:
    p = settings_path(base)
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(json.dumps(settings.model_dump(mode="json"), ensure_ascii=False, indent=2), encoding="utf-8")
