# engine/config.py: Environment-driven engine settings.
"""Settings are read from the process environment after ``load_dotenv()``.

Recognized variables (all optional):

  FINDIAG_SPEC_FAMILY        default spec pack family      (``fpa``)
  FINDIAG_SPEC_VERSION       default spec pack version     (``v2.9.0``)
  FINDIAG_SCORE_BANDS        ``2:50,3:80,4:95`` style score → level bands
  FINDIAG_CRITICAL_MULTIPLIER  priority multiplier for critical questions
  FINDIAG_PAIN_POINT_BOOST   context modifier for matching pain points
  FINDIAG_FOCUS_LIMIT        size of the "focus next" list
  FINDIAG_LOG_LEVEL          root log level for the CLI
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

from schemas.taxonomy import ALL_MATURITY_LEVELS, DEFAULT_SCORE_THRESHOLDS

DEFAULT_SPEC_FAMILY = "fpa"
DEFAULT_SPEC_VERSION = "v2.9.0"
DEFAULT_CRITICAL_MULTIPLIER = 2.0
DEFAULT_PAIN_POINT_BOOST = 1.25
DEFAULT_FOCUS_LIMIT = 3


@dataclass(frozen=True)
class EngineSettings:
    spec_family: str = DEFAULT_SPEC_FAMILY
    spec_version: str = DEFAULT_SPEC_VERSION
    score_thresholds: dict[int, float] = field(
        default_factory=lambda: dict(DEFAULT_SCORE_THRESHOLDS)
    )
    critical_multiplier: float = DEFAULT_CRITICAL_MULTIPLIER
    pain_point_boost: float = DEFAULT_PAIN_POINT_BOOST
    focus_limit: int = DEFAULT_FOCUS_LIMIT
    log_level: str = "WARNING"


def parse_score_bands(raw: str) -> dict[int, float]:
    """Parse ``"2:50,3:80,4:95"`` into ``{2: 50.0, 3: 80.0, 4: 95.0}``.

    Bands must be monotonic: a higher level never needs a lower score.
    """
    bands: dict[int, float] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        level_s, sep, score_s = part.partition(":")
        if not sep:
            raise ValueError(f"Malformed score band {part!r}; expected LEVEL:SCORE")
        level = int(level_s)
        if level not in ALL_MATURITY_LEVELS or level == 1:
            raise ValueError(f"Score band level must be 2..4, got {level}")
        bands[level] = float(score_s)

    ordered = [bands[lvl] for lvl in sorted(bands)]
    if ordered != sorted(ordered):
        raise ValueError(f"Score bands are not monotonic: {raw!r}")
    return bands


def load_settings(dotenv_path: str | None = None) -> EngineSettings:
    """Settings from the environment; a .env file never overrides real variables."""
    load_dotenv(dotenv_path)
    env = os.environ

    bands_raw = env.get("FINDIAG_SCORE_BANDS")
    return EngineSettings(
        spec_family=env.get("FINDIAG_SPEC_FAMILY", DEFAULT_SPEC_FAMILY),
        spec_version=env.get("FINDIAG_SPEC_VERSION", DEFAULT_SPEC_VERSION),
        score_thresholds=(
            parse_score_bands(bands_raw) if bands_raw else dict(DEFAULT_SCORE_THRESHOLDS)
        ),
        critical_multiplier=float(
            env.get("FINDIAG_CRITICAL_MULTIPLIER", DEFAULT_CRITICAL_MULTIPLIER)
        ),
        pain_point_boost=float(env.get("FINDIAG_PAIN_POINT_BOOST", DEFAULT_PAIN_POINT_BOOST)),
        focus_limit=int(env.get("FINDIAG_FOCUS_LIMIT", DEFAULT_FOCUS_LIMIT)),
        log_level=env.get("FINDIAG_LOG_LEVEL", "WARNING").upper(),
    )
