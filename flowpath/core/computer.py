#!/usr/bin/env python3
"""
Driver for every path request in flight.

Each request snapshots the live cost grid when it begins, so the map can be
edited while earlier requests are still computing. Nothing here runs on its
own: the caller decides how many step() calls to make per frame.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from flowpath.core.astar import AStarSearch
from flowpath.core.grid import Grid
from flowpath.core.settings import Settings
from flowpath.core.stitcher import ComposedField, HierarchicalStitcher
from flowpath.core.types import Cell, StitchState

logger = logging.getLogger(__name__)


@dataclass
class PathComputer:
    settings: Settings = field(default_factory=Settings)
    searches: List[AStarSearch] = field(default_factory=list)
    full_paths: List[HierarchicalStitcher] = field(default_factory=list)

    def begin_search(self, start: Cell, goal: Cell, cost: Grid[int]) -> AStarSearch:
        search = AStarSearch(start, goal, cost, **self.settings.search_kwargs())
        self.searches.append(search)
        return search

    def begin_full_path(self, start: Cell, goal: Cell, cost: Grid[int]) -> HierarchicalStitcher:
        full = HierarchicalStitcher(start, goal, cost, **self.settings.stitch_kwargs())
        self.full_paths.append(full)
        logger.debug("full path %s -> %s queued (%s)", start, goal, full.tiling)
        return full

    def step(self) -> bool:
        """One step of every unfinished computation. True while any is still running."""
        busy = False
        for search in self.searches:
            if not search.finished:
                search.step()
                busy = busy or not search.finished
        for full in self.full_paths:
            if not full.finished:
                full.step()
                busy = busy or not full.finished
        return busy

    def run_all(self, max_rounds: Optional[int] = None) -> None:
        rounds = 0
        while self.step():
            rounds += 1
            if max_rounds is not None and rounds >= max_rounds:
                break

    @property
    def pending(self) -> int:
        return (sum(1 for s in self.searches if not s.finished)
                + sum(1 for f in self.full_paths if not f.finished))

    def composed(self) -> Optional[ComposedField]:
        """The first finished hierarchical result, if any."""
        for full in self.full_paths:
            if full.state is StitchState.COMPOSED:
                return full.result
        return None

    def all_searches(self) -> Iterator[AStarSearch]:
        """Flat searches, plus the coarse searches of full paths still searching."""
        yield from self.searches
        for full in self.full_paths:
            if full.state is StitchState.SEARCHING:
                yield full.search

    def clear(self) -> None:
        self.searches.clear()
        self.full_paths.clear()
