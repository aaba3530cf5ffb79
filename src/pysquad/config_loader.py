"""Persist and load squad profiles, with environment overrides."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Optional

from pysquad.config import ShortlistCriteria, SquadConfig
from pysquad.errors import InvalidConfiguration

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Invalid float for %s: %s; using default %s", name, raw, default)
        return default


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    text = raw.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    logger.warning("Invalid flag for %s: %s; using default %s", name, raw, default)
    return default


def apply_env_overrides(config: SquadConfig) -> SquadConfig:
    """Apply ``PYSQUAD_BUDGET``, ``PYSQUAD_SOLVER_TIME_LIMIT`` and ``PYSQUAD_FALLBACK``."""

    budget = _env_float("PYSQUAD_BUDGET", config.budget)
    time_limit = _env_float("PYSQUAD_SOLVER_TIME_LIMIT", config.solver_time_limit)
    fallback = _env_bool("PYSQUAD_FALLBACK", config.fallback_enabled)
    try:
        return replace(config, budget=budget, solver_time_limit=time_limit, fallback_enabled=fallback)
    except InvalidConfiguration as exc:
        logger.warning("Ignoring environment overrides: %s", exc)
        return config


@dataclass
class SquadProfile:
    squad: SquadConfig = field(default_factory=SquadConfig)
    shortlist: ShortlistCriteria = field(default_factory=ShortlistCriteria)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SquadProfile":
        shortlist = data.get("shortlist", {})
        try:
            criteria = ShortlistCriteria(**shortlist)
        except TypeError as exc:
            raise InvalidConfiguration(f"Invalid shortlist settings: {exc}") from exc
        return cls(squad=SquadConfig.from_dict(data.get("squad", {})), shortlist=criteria)

    @classmethod
    def load(cls, path: Path, *, env: bool = True) -> "SquadProfile":
        data = json.loads(path.read_text(encoding="utf-8"))
        profile = cls.from_dict(data)
        if env:
            profile.squad = apply_env_overrides(profile.squad)
        return profile

    @classmethod
    def default(cls, *, env: bool = True) -> "SquadProfile":
        profile = cls()
        if env:
            profile.squad = apply_env_overrides(profile.squad)
        return profile

    def to_dict(self) -> Dict[str, Any]:
        return {"squad": self.squad.to_dict(), "shortlist": asdict(self.shortlist)}

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")


def load_profile(path: Optional[Path]) -> SquadProfile:
    if path is None:
        return SquadProfile.default()
    return SquadProfile.load(path)
