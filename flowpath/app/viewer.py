#!/usr/bin/env python3
"""
Flow Field Viewer — paint a map, request paths, watch fields stitch together

- Mouse:
    [LEFT]       -> paint walls (3x3 brush)
    [RIGHT]      -> erase walls
    [MIDDLE]     -> reset the map
- Keyboard:
    [S]          -> start = cell under the cursor
    [T]          -> target = cell under the cursor, begin a full path
    [F]          -> flat A* search from start to the cursor (overlay only)
    [SPACE]      -> live compute on/off
    [N]          -> single step
    [C]          -> compute everything to completion
    [+]/[-]      -> steps per frame
    [A]          -> drop a batch of agents at the cursor (Ctrl+A: one agent)
    [DELETE]     -> remove agents
    [X]          -> clear all path requests
    [R]          -> reset the map
    [Q]/[ESC]    -> quit

Settings: FLOWPATH_* environment variables or --name=value arguments
(see flowpath.core.settings).
"""

# --- bootstrap import path so `from flowpath...` works when run as a script ---
import sys
from pathlib import Path
_REPO_ROOT = Path(__file__).resolve().parents[2]
if str(_REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(_REPO_ROOT))
# -------------------------------------------------------------------------------

import logging
import random
from typing import List, Tuple, Optional

import pygame

from flowpath.core.agent import Agent
from flowpath.core.computer import PathComputer
from flowpath.core.grid import Grid
from flowpath.core.settings import Settings, resolve_settings
from flowpath.core.stitcher import ComposedField
from flowpath.core.types import Cell, NO_MOVE, SearchState, StitchState, direction_offset

logger = logging.getLogger(__name__)

# ---------- Config ----------
PANEL_W = 360            # right band: metrics + buttons
GRID_MARGIN = 16
WINDOW_DEFAULT = (1280, 820)
FONT_NAME = None  # default pygame font

# Colors
WHITE       = (255,255,255)
BLACK       = (  0,  0,  0)
BLUE        = ( 70,130,180)
RED         = (220, 50, 47)
FLOOR_GRAY  = (200,200,200)
WALL_DARK   = ( 30, 30, 36)
NEON_CYAN_A = (0,150,255,110)
NEON_MAG_A  = (255,0,120,90)
NEON_MINT   = (0,255,200)
FRONTIER    = (255,210,0)
TILE_EDGE   = (255,255,255,60)
AGENT_COLOR = (255, 90, 40)

CARD_BG     = (24,28,36,220)
CARD_HI     = (255,255,255,18)
TEXT_LIGHT  = (230,235,240)
ACCENT_GOLD = (255,210,0)


def integration_color(v: int, lo: int, hi: int) -> Tuple[int, int, int]:
    """Blue near the target, red far away."""
    t = (v - lo) / max(1, hi - lo)
    t = min(1.0, max(0.0, t)) ** 0.5
    return int(40 + 200 * t), int(90 * (1 - t) + 40), int(220 * (1 - t) + 30)


# ---------- Simple UI Button ----------
class UIButton:
    def __init__(self, label: str, rect: pygame.Rect, callback, *, togglable: bool = False):
        self.label = label
        self.rect = rect
        self.callback = callback
        self.hover = False
        self.togglable = togglable
        self.active = False  # highlight state

    def set_active(self, value: bool):
        self.active = bool(value)

    def draw(self, screen: pygame.Surface, font: pygame.font.Font):
        base = pygame.Surface(self.rect.size, pygame.SRCALPHA)
        bg_idle   = (36, 40, 48, 220)
        bg_hover  = (46, 50, 60, 230)
        bg_active = (58, 86, 160, 235)
        border_active = (120, 170, 255, 255)

        if self.active and self.togglable:
            bg = bg_active
        elif self.hover:
            bg = bg_hover
        else:
            bg = bg_idle

        pygame.draw.rect(base, bg, base.get_rect(), border_radius=10)
        screen.blit(base, self.rect.topleft)

        if self.active and self.togglable:
            pygame.draw.rect(screen, border_active, self.rect, width=2, border_radius=10)

        text = font.render(self.label, True, (235,238,242))
        screen.blit(text, text.get_rect(center=self.rect.center))

    def handle_mouse(self, event: pygame.event.Event) -> bool:
        if event.type == pygame.MOUSEMOTION:
            self.hover = self.rect.collidepoint(event.pos)
        elif event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self.callback()
                return True
        return False


# ---------- Viewer ----------
class Viewer:
    def __init__(self, settings: Settings):
        pygame.init()

        self.settings = settings
        size = settings.map_size
        self.cost: Grid[int] = Grid.new(1, size, size)
        self.computer = PathComputer(settings)
        self.agents: List[Agent] = []
        self.start: Cell = (0, 0)
        self.cursor: Optional[Cell] = None

        self.font_small = pygame.font.Font(FONT_NAME, 14)
        self.font = pygame.font.Font(FONT_NAME, 18)
        self.font_big = pygame.font.Font(FONT_NAME, 22)

        self.screen = pygame.display.set_mode(WINDOW_DEFAULT, pygame.RESIZABLE)
        pygame.display.set_caption("Flow fields — hierarchical stitching")

        self._buttons: list[UIButton] = []
        self._map_surface: Optional[pygame.Surface] = None
        self._field_surface: Optional[pygame.Surface] = None
        self._field_key: Optional[Tuple[int, int]] = None
        self._layout(*WINDOW_DEFAULT)

        self.live = True
        self.clock = pygame.time.Clock()
        self.steps_per_frame = settings.steps_per_frame
        self.state = "Idle"

    # ---------- layout ----------
    def _layout(self, win_w: int, win_h: int):
        """Compute integer cell size that fits the window; grid on the left, panel on the right."""
        avail_w = max(1, win_w - PANEL_W - 2 * GRID_MARGIN)
        avail_h = max(1, win_h - 2 * GRID_MARGIN)
        n = self.settings.map_size
        self.cell_size = max(1, min(avail_w // n, avail_h // n))
        self._grid_origin = (GRID_MARGIN, GRID_MARGIN)
        self._right_band = pygame.Rect(win_w - PANEL_W, 0, PANEL_W, win_h)
        self._map_surface = None
        self._field_surface = None
        self._build_buttons()

    def _cell_at(self, px: Tuple[int, int]) -> Optional[Cell]:
        ox, oy = self._grid_origin
        col = (px[0] - ox) // self.cell_size
        row = (px[1] - oy) // self.cell_size
        if self.cost.in_bounds((row, col)):
            return row, col
        return None

    # ---------- loop ----------
    def run(self):
        while True:
            self._handle_events()
            self._paint()
            if self.live:
                for _ in range(self.steps_per_frame):
                    if not self.computer.step():
                        break
            self._tick_agents()
            self._update_state()
            self._draw()
            self.clock.tick(60)

    def _tick_agents(self):
        composed = self.computer.composed()
        for agent in self.agents:
            if composed is not None:
                agent.follow(composed)
            agent.advance()

    def _update_state(self):
        if not self.computer.full_paths and not self.computer.searches:
            self.state = "Idle"
        elif self.computer.pending:
            self.state = "Computing" if self.live else "Paused"
        elif any(f.state is StitchState.UNREACHABLE for f in self.computer.full_paths):
            self.state = "No path"
        else:
            self.state = "Done"

    # ---------- input ----------
    def _handle_events(self):
        for e in pygame.event.get():
            if e.type == pygame.QUIT:
                pygame.quit(); sys.exit(0)
            elif e.type == pygame.KEYDOWN:
                self._handle_key(e)
            elif e.type == pygame.VIDEORESIZE:
                self.screen = pygame.display.set_mode((e.w, e.h), pygame.RESIZABLE)
                self._layout(e.w, e.h)
            elif e.type in (pygame.MOUSEMOTION, pygame.MOUSEBUTTONDOWN):
                if any(b.handle_mouse(e) for b in self._buttons):
                    continue
                if e.type == pygame.MOUSEMOTION:
                    self.cursor = self._cell_at(e.pos)
                elif e.button == 2:
                    self._reset_map()

    def _handle_key(self, e: pygame.event.Event):
        if e.key in (pygame.K_ESCAPE, pygame.K_q):
            pygame.quit(); sys.exit(0)
        elif e.key == pygame.K_SPACE:
            self._toggle_live()
        elif e.key == pygame.K_n:
            self.computer.step()
        elif e.key == pygame.K_c:
            self.computer.run_all()
        elif e.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
            self._bump_speed(2.0)
        elif e.key in (pygame.K_MINUS, pygame.K_UNDERSCORE, pygame.K_KP_MINUS):
            self._bump_speed(0.5)
        elif e.key == pygame.K_r:
            self._reset_map()
        elif e.key == pygame.K_x:
            self.computer.clear()
        elif e.key == pygame.K_DELETE:
            self.agents.clear()
        elif self.cursor is None:
            return
        elif e.key == pygame.K_s:
            self.start = self.cursor
        elif e.key == pygame.K_t:
            self._begin_full_path(self.cursor)
        elif e.key == pygame.K_f:
            self.computer.begin_search(self.start, self.cursor, self.cost)
        elif e.key == pygame.K_a:
            self._spawn_agents(self.cursor, single=bool(e.mod & pygame.KMOD_CTRL))

    def _paint(self):
        if self.cursor is None:
            return
        left, _, right = pygame.mouse.get_pressed()
        if not (left or right):
            return
        value = self.settings.wall_cost if left else 1
        for c in self.cost.grow(self.cursor):
            self.cost.set(c, value)
        self._map_surface = None

    def _begin_full_path(self, goal: Cell):
        # one hierarchical result at a time: agents follow the first composed field
        self.computer.full_paths.clear()
        self._field_surface = None
        self.computer.begin_full_path(self.start, goal, self.cost)

    def _spawn_agents(self, cell: Cell, single: bool):
        px = self.settings.cell_px
        center = pygame.math.Vector2(cell[1] * px, cell[0] * px)
        s = self.settings
        spread = [(0.0, 0.0)] if single else [
            (random.uniform(-10 * px, 10 * px), random.uniform(-10 * px, 10 * px))
            for _ in range(s.agent_batch)
        ]
        for dx, dy in spread:
            self.agents.append(Agent(center + (dx, dy), cell_px=px,
                                     retention=s.agent_retention, steer=s.agent_steer,
                                     jitter=s.agent_jitter))

    def _reset_map(self):
        self.cost.fill(1)
        self._map_surface = None

    def _toggle_live(self):
        self.live = not self.live
        self._refresh_active_states()

    def _bump_speed(self, factor: float):
        self.steps_per_frame = int(max(1, min(4096, self.steps_per_frame * factor)))

    # ---------- drawing ----------
    def _draw(self):
        self._draw_backdrop()
        self._draw_map()
        self._draw_fields()
        self._draw_searches()
        self._draw_agents()
        self._draw_metrics_and_buttons()
        pygame.display.flip()

    def _draw_backdrop(self):
        w, h = self.screen.get_size()
        top = (24, 26, 32); bot = (36, 40, 48)
        for y in range(0, h, 4):
            t = y / max(1, h-1)
            c = (
                int(top[0] + (bot[0]-top[0]) * t),
                int(top[1] + (bot[1]-top[1]) * t),
                int(top[2] + (bot[2]-top[2]) * t),
            )
            pygame.draw.rect(self.screen, c, (0, y, w, 4))

    def _scaled(self, surf: pygame.Surface) -> pygame.Surface:
        n = self.settings.map_size * self.cell_size
        return pygame.transform.scale(surf, (n, n))

    def _draw_map(self):
        if self._map_surface is None:
            n = self.settings.map_size
            raw = pygame.Surface((n, n))
            pixels = pygame.PixelArray(raw)
            for (row, col), v in zip(self.cost.positions(), self.cost.cells):
                pixels[col, row] = WALL_DARK if v >= self.settings.wall_cost else FLOOR_GRAY
            del pixels
            self._map_surface = self._scaled(raw)
        self.screen.blit(self._map_surface, self._grid_origin)

    def _field_version(self, composed: ComposedField) -> Tuple[int, int]:
        full = self.computer.full_paths[0]
        return id(composed), full.tile_steps

    def _draw_fields(self):
        if not self.computer.full_paths:
            return
        full = self.computer.full_paths[0]
        if full.state not in (StitchState.COMPUTING_TILE_FIELDS, StitchState.COMPOSED):
            return
        composed = full.composed
        key = self._field_version(composed)
        if self._field_surface is None or key != self._field_key:
            self._field_surface = self._render_fields(composed)
            self._field_key = key
        self.screen.blit(self._field_surface, self._grid_origin)

        cs = self.cell_size
        ox, oy = self._grid_origin
        for cells in composed.frontiers().values():
            for row, col in cells:
                pygame.draw.rect(self.screen, FRONTIER, (ox + col*cs, oy + row*cs, cs, cs))

        if full.state is StitchState.COMPOSED and cs >= 6:
            self._draw_arrows(composed)

    def _render_fields(self, composed: ComposedField) -> pygame.Surface:
        n = self.settings.map_size
        raw = pygame.Surface((n, n), pygame.SRCALPHA)
        rng = composed.integration_range()
        tiling = composed.tiling
        if rng is not None:
            lo, hi = rng
            pixels = pygame.PixelArray(raw)
            for zone, tile in composed:
                for local, v in zip(tile.integration.positions(), tile.integration.cells):
                    if v >= composed.sentinel:
                        continue
                    row, col = tiling.to_global(zone, local)
                    if row < n and col < n:
                        pixels[col, row] = integration_color(v, lo, hi) + (170,)
            del pixels
        surf = self._scaled(raw)
        # tile borders
        cs = self.cell_size
        for zone, _ in composed:
            r0, c0 = tiling.origin(zone)
            size = tiling.tile_size * cs
            pygame.draw.rect(surf, TILE_EDGE, (c0*cs, r0*cs, size, size), 1)
        return surf

    def _draw_arrows(self, composed: ComposedField):
        cs = self.cell_size
        ox, oy = self._grid_origin
        for row in range(self.settings.map_size):
            for col in range(self.settings.map_size):
                code = composed.direction_at((row, col))
                if code == NO_MOVE:
                    continue
                dr, dc = direction_offset(code)
                cx = ox + col*cs + cs//2
                cy = oy + row*cs + cs//2
                pygame.draw.line(self.screen, BLACK, (cx, cy),
                                 (cx + dc * cs//2, cy + dr * cs//2), 1)

    def _draw_searches(self):
        cs = self.cell_size
        ox, oy = self._grid_origin
        closed_fill = pygame.Surface((cs, cs), pygame.SRCALPHA); closed_fill.fill(NEON_MAG_A)
        open_fill = pygame.Surface((cs, cs), pygame.SRCALPHA); open_fill.fill(NEON_CYAN_A)
        for search in self.computer.all_searches():
            if search.state is SearchState.EXPANDING:
                for (row, col) in search.closed_cells():
                    self.screen.blit(closed_fill, (ox + col*cs, oy + row*cs))
                for (row, col) in search.open_cells():
                    self.screen.blit(open_fill, (ox + col*cs, oy + row*cs))
        paths = [s.path for s in self.computer.searches if s.path]
        paths += [f.search.path for f in self.computer.full_paths if f.search.path]
        for path in paths:
            if len(path) < 2:
                continue
            pts = [(ox + col*cs + cs//2, oy + row*cs + cs//2) for (row, col) in path]
            pygame.draw.lines(self.screen, NEON_MINT, False, pts, 2)

        self._draw_badge(self.start, BLUE, "S")
        for f in self.computer.full_paths:
            self._draw_badge(f.goal, RED, "T")

    def _draw_badge(self, cell: Cell, color: Tuple[int,int,int], label: str):
        cs = self.cell_size
        ox, oy = self._grid_origin
        row, col = cell
        cx = ox + col*cs + cs//2
        cy = oy + row*cs + cs//2
        pygame.draw.circle(self.screen, color, (cx,cy), max(6, cs))
        txt = self.font_small.render(label, True, WHITE)
        self.screen.blit(txt, txt.get_rect(center=(cx,cy)))

    def _draw_agents(self):
        ox, oy = self._grid_origin
        scale = self.cell_size / self.settings.cell_px
        for agent in self.agents:
            x = ox + int(agent.pos.x * scale)
            y = oy + int(agent.pos.y * scale)
            pygame.draw.rect(self.screen, AGENT_COLOR, (x - 1, y - 1, 3, 3))

    # ---------- buttons + metrics ----------
    def _build_buttons(self):
        self._buttons.clear()
        rb = self._right_band
        x = rb.x + 16
        y = rb.y + 300  # leaves space for metrics card above
        w = max(160, rb.width - 32)
        h = 38
        gap = 10

        def add(label, cb, *, togglable=False, store_as: str | None = None):
            rect = pygame.Rect(x, y, w, h)
            btn = UIButton(label, rect, cb, togglable=togglable)
            self._buttons.append(btn)
            if store_as:
                setattr(self, store_as, btn)

        add("Live compute", self._toggle_live, togglable=True, store_as="btn_live"); y += h + gap
        add("Step Once", self.computer.step); y += h + gap
        add("Compute All", self.computer.run_all); y += h + gap

        minus_rect = pygame.Rect(x, y, (w-8)//2, h)
        plus_rect  = pygame.Rect(x + (w-8)//2 + 8, y, (w-8)//2, h)
        self._buttons.append(UIButton("Speed −", minus_rect, lambda: self._bump_speed(0.5)))
        self._buttons.append(UIButton("Speed +", plus_rect,  lambda: self._bump_speed(2.0)))
        y += h + gap

        add("Clear Paths", self.computer.clear); y += h + gap
        add("Clear Agents", self.agents.clear); y += h + gap
        add("Reset Map", self._reset_map)

        self._refresh_active_states()

    def _refresh_active_states(self):
        if hasattr(self, "btn_live"):
            self.btn_live.set_active(getattr(self, "live", True))

    def _draw_metrics_and_buttons(self):
        rb = self._right_band

        card_h = 280
        card = pygame.Surface((rb.width - 20, card_h), pygame.SRCALPHA)
        pygame.draw.rect(card, CARD_BG, card.get_rect(), border_radius=14)
        hi = pygame.Surface((card.get_width(), 24), pygame.SRCALPHA)
        pygame.draw.rect(hi, CARD_HI, hi.get_rect(), border_radius=14)
        card.blit(hi, (0,0))
        self.screen.blit(card, (rb.x + 10, rb.y + 10))

        x0 = rb.x + 24
        y0 = rb.y + 18

        def line(text, big=False, color=TEXT_LIGHT):
            nonlocal y0
            f = self.font_big if big else self.font
            surf = f.render(text, True, color)
            self.screen.blit(surf, (x0, y0))
            y0 += surf.get_height() + 6

        line("Metrics", big=True, color=ACCENT_GOLD)
        line(f"State: {self.state}")
        if self.computer.full_paths:
            full = self.computer.full_paths[0]
            search = full.search
            line(f"Phase: {full.state.value}")
            line(f"Popped: {search.popped_count}   Open: {search.open_count}")
            line(f"Path Len: {len(search.path or [])}   Cost: {search.total_cost}")
            line(f"Tiles: {len(full.visited)}   Tile steps: {full.tile_steps}")
            if full.flow_queue is not None:
                line(f"Flow pass: {full.flowed}/{len(full.visited)} tiles")
            rng = full.composed.integration_range()
            if rng is not None:
                line(f"Integration: {rng[0]} .. {rng[1]}")
        line("-" * 26)
        line(f"Start: {self.start}   Cursor: {self.cursor}")
        line(f"Agents: {len(self.agents)}")
        line(f"Speed: {self.steps_per_frame} steps/frame")

        for b in self._buttons:
            b.draw(self.screen, self.font)


# ---------- main ----------
def main(settings: Optional[Settings] = None):
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")
    try:
        settings = settings or resolve_settings()
    except ValueError as ex:
        logger.error("Bad settings: %s", ex)
        sys.exit(1)
    Viewer(settings).run()

if __name__ == "__main__":
    main()
