"""Runtime configuration read from the environment."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel

DEFAULT_HOME = Path.home() / ".study_scheduler"


def _get_bool(env_name: str, default: bool = False) -> bool:
    val = os.getenv(env_name)
    if val is None:
        return default
    return str(val).strip().lower() not in {"0", "false", "no", "off", ""}


class Settings(BaseModel):
    data_dir: Path = DEFAULT_HOME
    # "local" is a JSON key-value file, "sqlite" the relational store
    backend: Literal["local", "sqlite"] = "local"
    debug: bool = False

    @property
    def db_path(self) -> str:
        return str(self.data_dir / "scheduler.db")

    @property
    def local_store_path(self) -> str:
        return str(self.data_dir / "local_storage.json")


def load_settings() -> Settings:
    return Settings(
        data_dir=Path(os.getenv("STUDY_SCHEDULER_HOME", str(DEFAULT_HOME))).expanduser(),
        backend=os.getenv("STUDY_SCHEDULER_BACKEND", "local").strip().lower(),
        debug=_get_bool("STUDY_SCHEDULER_DEBUG", False),
    )
