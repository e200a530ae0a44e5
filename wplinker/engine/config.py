"""Configuration helpers for the linking engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict

import yaml


@dataclass(frozen=True)
class EngineConfig:
    """Typed wrapper around the engine configuration dictionary."""

    raw: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.raw.get(key, default)

    def boost(self, name: str) -> float:
        boosts = self.raw.get("boosts", {})
        return float(boosts.get(name, 1.0))


DEFAULTS: Dict[str, Any] = {
    "max_links": 5,
    "min_token_length": 3,
    "relevance_floor": 0.001,
    "anchor_max_chars": 50,
    "anchor_window": [3, 6],
    "anchor_fallback_words": 6,
    "min_anchor_word_length": 4,
    "position_cutoffs": [0.33, 0.66],
    "link_class": "wp-opt-internal",
    "read_more_prefix": "Read more:",
    "boosts": {
        "keyword": 1.5,
        "category": 1.3,
        "tag": 1.2,
    },
}


def load_config(path: str | Path | None = None) -> EngineConfig:
    """Load engine tuning from a YAML file layered over ``DEFAULTS``.

    A missing file leaves the defaults in place. A file whose top level is
    not a mapping raises ``ValueError``.
    """

    data: Dict[str, Any] = DEFAULTS.copy()
    data["boosts"] = dict(DEFAULTS["boosts"])
    data["anchor_window"] = list(DEFAULTS["anchor_window"])
    data["position_cutoffs"] = list(DEFAULTS["position_cutoffs"])

    if path is not None and Path(path).exists():
        with Path(path).open("r", encoding="utf-8") as stream:
            user = yaml.safe_load(stream) or {}
        if not isinstance(user, dict):
            raise ValueError(f"Engine config {path} must be a mapping")
        merge_into(data, user)

    return EngineConfig(data)


def merge_into(base: Dict[str, Any], override: Dict[str, Any]) -> None:
    """Recursively merge override into base dict."""

    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            merge_into(base[key], value)
        else:
            base[key] = value
