"""
Run configuration for the export direction pipeline.

Values come from the dataclass defaults, then ``TRADE_ANALYST_*`` environment
variables (a local ``.env`` file is honoured), then explicit overrides such as
command-line flags.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

import dotenv

FLOWS = ("Export", "Import", "Re-export", "Re-import")
FEATURE_KINDS = ("percent", "nominal")
MISSING_POLICIES = ("median", "drop")

ENV_PREFIX = "TRADE_ANALYST_"


@dataclass(frozen=True)
class PipelineConfig:
    flow: str = "Export"
    reference_year: int = 2011
    target_year: int = 2012
    test_size: float = 0.2
    random_state: int = 42
    drop_recent: Optional[int] = None
    feature_kind: str = "percent"
    missing_policy: str = "median"
    n_estimators: int = 200
    country: Optional[str] = None
    exclude_uncategorized: bool = True
    top_n: int = 10

    def validate(self) -> "PipelineConfig":
        if self.flow not in FLOWS:
            raise ValueError(f"flow must be one of {', '.join(FLOWS)}; got {self.flow!r}")
        if self.target_year != self.reference_year + 1:
            raise ValueError("target_year must be the year after reference_year.")
        if not 0.0 < self.test_size < 1.0:
            raise ValueError("test_size must lie strictly between 0 and 1.")
        if self.drop_recent is not None and self.drop_recent < 0:
            raise ValueError("drop_recent must be non-negative when provided.")
        if self.feature_kind not in FEATURE_KINDS:
            raise ValueError(f"feature_kind must be one of {', '.join(FEATURE_KINDS)}")
        if self.missing_policy not in MISSING_POLICIES:
            raise ValueError(f"missing_policy must be one of {', '.join(MISSING_POLICIES)}")
        if self.n_estimators <= 0:
            raise ValueError("n_estimators must be a positive integer.")
        if self.top_n <= 0:
            raise ValueError("top_n must be a positive integer.")
        return self

    def with_overrides(self, **overrides: Any) -> "PipelineConfig":
        """Return a copy with every non-``None`` override applied."""
        applied = {key: value for key, value in overrides.items() if value is not None}
        return replace(self, **applied).validate()

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        load_dotenv: bool = True,
    ) -> "PipelineConfig":
        if environ is None:
            if load_dotenv:
                dotenv.load_dotenv(dotenv.find_dotenv(usecwd=True))
            environ = os.environ

        values: Dict[str, Any] = {}
        for field in fields(cls):
            raw = environ.get(ENV_PREFIX + field.name.upper())
            if raw is None or raw.strip() == "":
                continue
            values[field.name] = _coerce(field.name, raw.strip(), field.default)
        return cls(**values).validate()


def _coerce(name: str, raw: str, default: Any) -> Any:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in {"1", "true", "yes", "on"}:
            return True
        if lowered in {"0", "false", "no", "off"}:
            return False
        raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean; got {raw!r}")
    try:
        if isinstance(default, int) or name == "drop_recent":
            return int(raw)
        if isinstance(default, float):
            return float(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name.upper()} is not numeric: {raw!r}") from exc
    return raw
