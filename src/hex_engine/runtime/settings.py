"""Engine defaults loaded from ``HEX_ENGINE_*`` environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from hex_engine.codecs.text import normalize_encoding
from hex_engine.errors import InvalidSpec
from hex_engine.view.spec import WIDTHS, ByteOrder, Mode, ViewSpec

from .telemetry import ENV_PREFIX


def _env(environ: Mapping[str, str], name: str) -> Optional[str]:
    return environ.get(f"{ENV_PREFIX}{name}")


def _env_flag(environ: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _env(environ, name)
    if raw is None:
        return default
    return raw.lower() in {"1", "true", "yes", "on"}


def _env_int(environ: Mapping[str, str], name: str, default: int) -> int:
    raw = _env(environ, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True, slots=True)
class EngineSettings:
    default_mode: Mode = Mode.HEX
    default_width: int = 1
    default_order: ByteOrder = "little"
    default_signed: bool = False
    encoding: str = "ascii"
    placeholder: str = "."
    arch: str = "x86_64"
    undo_limit: int = 0
    row_bytes: int = 16

    def __post_init__(self) -> None:
        if self.default_width not in WIDTHS:
            raise ValueError(f"default_width must be one of {WIDTHS}")
        if self.default_order not in ("little", "big"):
            raise ValueError("default_order must be 'little' or 'big'")
        if len(self.placeholder) != 1:
            raise ValueError("placeholder must be a single character")
        if self.undo_limit < 0:
            raise ValueError("undo_limit cannot be negative")
        if self.row_bytes <= 0 or self.row_bytes % max(WIDTHS):
            raise ValueError(f"row_bytes must be a positive multiple of {max(WIDTHS)}")
        try:
            encoding = normalize_encoding(self.encoding)
        except InvalidSpec as exc:
            raise ValueError(str(exc)) from exc
        object.__setattr__(self, "encoding", encoding)

    def default_spec(self) -> ViewSpec:
        return ViewSpec(
            mode=self.default_mode,
            width=self.default_width,
            order=self.default_order,
            signed=self.default_signed,
            encoding=self.encoding,
        )

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        env = os.environ if environ is None else environ
        defaults = cls()
        mode = _env(env, "DEFAULT_MODE")
        order = (_env(env, "DEFAULT_ORDER") or defaults.default_order).lower()
        return cls(
            default_mode=Mode.parse(mode) if mode else defaults.default_mode,
            default_width=_env_int(env, "DEFAULT_WIDTH", defaults.default_width),
            default_order=order,  # type: ignore[arg-type]
            default_signed=_env_flag(env, "DEFAULT_SIGNED", defaults.default_signed),
            encoding=_env(env, "ENCODING") or defaults.encoding,
            placeholder=_env(env, "PLACEHOLDER") or defaults.placeholder,
            arch=(_env(env, "ARCH") or defaults.arch).lower(),
            undo_limit=_env_int(env, "UNDO_LIMIT", defaults.undo_limit),
            row_bytes=_env_int(env, "ROW_BYTES", defaults.row_bytes),
        )


__all__ = ["EngineSettings"]
