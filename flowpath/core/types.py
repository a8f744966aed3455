#!/usr/bin/env python3
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple, Optional, Dict, Any

Cell = Tuple[int, int]  # (row, col)

WALL = 255            # cost value of an impassable cell
ORTHOGONAL = 10       # octile edge costs
DIAGONAL = 14
NO_MOVE = 4           # direction code of "stand still"


class SearchState(str, Enum):
    INITIAL = "initial"
    EXPANDING = "expanding"
    DONE = "done"
    UNREACHABLE = "unreachable"


class FieldState(str, Enum):
    CREATED = "created"
    INTEGRATING = "integrating"
    FLOWING = "flowing"
    READY = "ready"


class StitchState(str, Enum):
    SEARCHING = "searching"
    ROUTE_TO_TILES = "route_to_tiles"
    COMPUTING_TILE_FIELDS = "computing_tile_fields"
    COMPOSED = "composed"
    UNREACHABLE = "unreachable"


def direction_code(dr: int, dc: int) -> int:
    """Encode a relative offset in {-1, 0, 1}^2 as one of the 9 direction codes."""
    return (dc + 1) + 3 * (dr + 1)


def direction_offset(code: int) -> Cell:
    """Inverse of direction_code: (dr, dc) for a code in 0..8."""
    return code // 3 - 1, code % 3 - 1


@dataclass
class StepResult:
    status: str                   # one of the SearchState values
    opened: List[Cell] = field(default_factory=list)
    closed: List[Cell] = field(default_factory=list)
    current: Optional[Cell] = None
    path: Optional[List[Cell]] = None
    metrics: Dict[str, Any] = field(default_factory=dict)
