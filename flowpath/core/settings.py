#!/usr/bin/env python3
"""
Runtime configuration.

Defaults live on `Settings`. `resolve_settings()` overlays environment
variables (FLOWPATH_TILE_SIZE=16) and then command-line arguments
(--tile_size=16 or --tile-size=16), the same way the viewer picks its mode.
"""

import logging
import os
import sys
from dataclasses import dataclass, fields, replace
from typing import Any, Dict, List, Mapping, Optional

from flowpath.core.tile_field import UNREACHED
from flowpath.core.types import WALL

logger = logging.getLogger(__name__)

ENV_PREFIX = "FLOWPATH_"


@dataclass(frozen=True)
class Settings:
    map_size: int = 256
    tile_size: int = 32
    wall_cost: int = WALL
    wall_weight: Optional[int] = None
    sentinel: int = UNREACHED
    steps_per_frame: int = 32
    cell_px: int = 8
    agent_retention: float = 0.8
    agent_steer: float = 0.2
    agent_jitter: float = 0.5
    agent_batch: int = 250

    def __post_init__(self) -> None:
        if self.tile_size < 2:
            raise ValueError(f"tile_size must be at least 2, got {self.tile_size}")
        if self.map_size < 1:
            raise ValueError(f"map_size must be positive, got {self.map_size}")
        if not 1 <= self.wall_cost <= 255:
            raise ValueError(f"wall_cost must be within 1..255, got {self.wall_cost}")
        if self.steps_per_frame < 1:
            raise ValueError(f"steps_per_frame must be positive, got {self.steps_per_frame}")

    def search_kwargs(self) -> Dict[str, Any]:
        return {
            "wall_cost": self.wall_cost,
            "wall_weight": self.wall_weight,
        }

    def stitch_kwargs(self) -> Dict[str, Any]:
        kw = self.search_kwargs()
        kw.update(tile_size=self.tile_size, sentinel=self.sentinel)
        return kw


def _convert(name: str, raw: str) -> Any:
    if name == "wall_weight":
        if raw.lower() in ("", "none", "off"):
            return None
        return int(raw)
    default = getattr(Settings, name)
    if isinstance(default, float):
        return float(raw)
    return int(raw)


def resolve_settings(argv: Optional[List[str]] = None,
                     environ: Optional[Mapping[str, str]] = None,
                     base: Optional[Settings] = None) -> Settings:
    argv = sys.argv[1:] if argv is None else argv
    environ = os.environ if environ is None else environ
    names = {f.name for f in fields(Settings)}

    overrides: Dict[str, Any] = {}
    for name in names:
        key = ENV_PREFIX + name.upper()
        if key in environ:
            try:
                overrides[name] = _convert(name, environ[key])
            except ValueError:
                raise ValueError(f"{key}={environ[key]!r} is not a valid value") from None

    for arg in argv:
        if not arg.startswith("--") or "=" not in arg:
            continue
        name, raw = arg[2:].split("=", 1)
        name = name.replace("-", "_")
        if name not in names:
            logger.debug("ignoring unknown argument %s", arg)
            continue
        try:
            overrides[name] = _convert(name, raw)
        except ValueError:
            raise ValueError(f"{arg!r} is not a valid value") from None

    return replace(base or Settings(), **overrides)
