import os
import tomllib
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, Mapping, Optional

from .exceptions import ConfigError
from .fields import PrimeField


ENV_PREFIX = "ZKC_"


@dataclass(frozen=True)
class CompilerConfig:
    curve: str = "bn128"
    comparison_bits: Optional[int] = None
    max_unroll: int = 1_000_000
    max_inline_depth: int = 256

    @property
    def field(self) -> PrimeField:
        return PrimeField.for_curve(self.curve)

    def safe_comparison_bits(self) -> int:
        """Bit width used for field comparisons, strictly below the field size."""
        limit = self.field.bits
        if self.comparison_bits is None:
            return limit - 1
        if not 0 < self.comparison_bits < limit:
            raise ConfigError(
                f"comparison_bits must be in 1..{limit - 1} for curve {self.curve}, "
                f"got {self.comparison_bits}"
            )
        return self.comparison_bits

    def merged(self, overrides: Mapping[str, Any]) -> "CompilerConfig":
        known = {f.name: f for f in fields(self)}
        values: Dict[str, Any] = {}
        for key, raw in overrides.items():
            if raw is None:
                continue
            if key not in known:
                raise ConfigError(f"Unknown configuration key '{key}'")
            values[key] = _coerce(key, raw)
        config = replace(self, **values)
        config.safe_comparison_bits()
        return config

    @classmethod
    def from_env(
        cls, environ: Optional[Mapping[str, str]] = None, base: Optional["CompilerConfig"] = None
    ) -> "CompilerConfig":
        environ = os.environ if environ is None else environ
        base = base or cls()
        overrides = {}
        for f in fields(cls):
            value = environ.get(ENV_PREFIX + f.name.upper())
            if value is not None and value != "":
                overrides[f.name] = value
        return base.merged(overrides)


def _coerce(key: str, raw: Any) -> Any:
    if key == "curve":
        return str(raw)
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"Configuration key '{key}' expects an integer, got {raw!r}")


def load_config(path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None) -> CompilerConfig:
    """Defaults, then `zkc.toml` ([compiler] table), then ZKC_* environment variables."""
    config = CompilerConfig()
    if path is not None:
        if not os.path.isfile(path):
            raise ConfigError(f"Configuration file not found: {path}")
        with open(path, "rb") as f:
            try:
                manifest = tomllib.load(f)
            except tomllib.TOMLDecodeError as e:
                raise ConfigError(f"Invalid configuration file {path}: {e}")
        table = manifest.get("compiler", {})
        if not isinstance(table, dict):
            raise ConfigError("[compiler] must be a table")
        config = config.merged(table)
    return CompilerConfig.from_env(environ, base=config)
