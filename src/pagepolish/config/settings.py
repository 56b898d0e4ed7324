"""Runtime settings for the editing engine."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from pagepolish.domains.context.value_objects import SnapshotLimits
from pagepolish.domains.history.services import MAX_RECORDS
from pagepolish.domains.session.value_objects import FAST_BUDGET_SECONDS, SUBMIT_BUDGET_SECONDS
from pagepolish.storage.kv_store import DEFAULT_STORE_DIR

_ENV_LOADED = False


@dataclass(frozen=True)
class EngineSettings:
    """Holds engine-wide limits, budgets and the storage location."""

    excerpt_depth: int = 3
    excerpt_max_chars: int = 5000
    max_matching_rules: int = 20
    history_cap: int = MAX_RECORDS
    fast_timeout: float = FAST_BUDGET_SECONDS
    submit_timeout: float = SUBMIT_BUDGET_SECONDS
    store_dir: Optional[Path] = None
    in_memory_store: bool = False

    def __post_init__(self) -> None:
        if self.history_cap <= 0:
            raise ValueError("history_cap must be positive")
        if self.fast_timeout <= 0 or self.submit_timeout <= 0:
            raise ValueError("timeouts must be positive")

    @property
    def snapshot_limits(self) -> SnapshotLimits:
        return SnapshotLimits(
            max_depth=self.excerpt_depth,
            max_markup_chars=self.excerpt_max_chars,
            max_rules=self.max_matching_rules,
        )

    @property
    def resolved_store_dir(self) -> Path:
        return self.store_dir or DEFAULT_STORE_DIR

    def with_overrides(
        self,
        *,
        store_dir: Optional[Path] = None,
        in_memory_store: Optional[bool] = None,
        fast_timeout: Optional[float] = None,
        submit_timeout: Optional[float] = None,
        history_cap: Optional[int] = None,
    ) -> "EngineSettings":
        """Return a copy with the provided overrides applied."""

        cfg = self
        if store_dir is not None:
            cfg = replace(cfg, store_dir=Path(store_dir))
        if in_memory_store is not None:
            cfg = replace(cfg, in_memory_store=in_memory_store)
        if fast_timeout is not None:
            cfg = replace(cfg, fast_timeout=fast_timeout)
        if submit_timeout is not None:
            cfg = replace(cfg, submit_timeout=submit_timeout)
        if history_cap is not None:
            cfg = replace(cfg, history_cap=history_cap)
        return cfg


def load_engine_settings() -> EngineSettings:
    """Load settings from ``POLISH_*`` environment variables."""

    _ensure_env_loaded()
    settings = EngineSettings()
    store_dir = os.getenv("POLISH_STORE_DIR", "").strip()
    submit_timeout = os.getenv("POLISH_SUBMIT_TIMEOUT", "").strip()
    fast_timeout = os.getenv("POLISH_FAST_TIMEOUT", "").strip()
    history_cap = os.getenv("POLISH_HISTORY_CAP", "").strip()
    return settings.with_overrides(
        store_dir=Path(store_dir).expanduser() if store_dir else None,
        in_memory_store=os.getenv("POLISH_IN_MEMORY_STORE", "").lower() in ("1", "true", "yes") or None,
        submit_timeout=float(submit_timeout) if submit_timeout else None,
        fast_timeout=float(fast_timeout) if fast_timeout else None,
        history_cap=int(history_cap) if history_cap else None,
    )


def _ensure_env_loaded() -> None:
    global _ENV_LOADED
    if _ENV_LOADED:
        return
    _ENV_LOADED = True
    dotenv_path = Path.cwd() / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path)
    else:
        load_dotenv()
