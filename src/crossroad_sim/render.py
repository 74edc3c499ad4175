"""Pygame rendering of the intersection, its signals and entities."""

import pygame

from crossroad_sim.config import (
    BACKGROUND_COLOR,
    BIKE_LANE_COLOR,
    LINE_COLOR,
    PAVEMENT_COLOR,
    ROAD_COLOR,
    SIGNAL_GREEN,
    SIGNAL_OFF,
    SIGNAL_RED,
    SIGNAL_YELLOW,
    TEXT_COLOR,
)
from crossroad_sim.core import (
    DIRECTIONS,
    MOVEMENTS,
    LightMap,
    LightState,
    RoadDirection,
    Vehicle,
)
from crossroad_sim.geometry import WorldGeometry, approach_heading, lane_point
from crossroad_sim.sim import IntersectionSimulation

SPRITE_COLORS = {
    "red": (220, 60, 60),
    "blue": (70, 110, 230),
    "green": (60, 180, 90),
    "yellow": (235, 210, 60),
    "purple": (150, 80, 200),
    "pink": (240, 130, 190),
    "turquoise": (60, 200, 200),
    "black": (30, 30, 30),
    "orange": (240, 140, 40),
}


def _sprite_color(sprite: str) -> tuple[int, int, int]:
    for name, color in SPRITE_COLORS.items():
        if name in sprite:
            return color
    return TEXT_COLOR


def _rect(r) -> pygame.Rect:
    return pygame.Rect(int(r.x), int(r.y), int(r.width), int(r.height))


def draw_world(surface: pygame.Surface, geometry: WorldGeometry) -> None:
    """Draw pavements, bike lanes, roads, stop lines and crossings."""
    surface.fill(BACKGROUND_COLOR)
    for rect in geometry.pavements.values():
        pygame.draw.rect(surface, PAVEMENT_COLOR, _rect(rect))
    for rect in geometry.bike_lanes.values():
        pygame.draw.rect(surface, BIKE_LANE_COLOR, _rect(rect))

    cx, cy = geometry.center
    half = geometry.half_road
    width, height = geometry.canvas_width, geometry.canvas_height
    pygame.draw.rect(surface, ROAD_COLOR, pygame.Rect(0, int(cy - half), int(width), int(2 * half)))
    pygame.draw.rect(surface, ROAD_COLOR, pygame.Rect(int(cx - half), 0, int(2 * half), int(height)))

    d = geometry.stop_line_distance
    pygame.draw.line(surface, LINE_COLOR, (0, cy), (cx - d, cy), 2)
    pygame.draw.line(surface, LINE_COLOR, (cx + d, cy), (width, cy), 2)
    pygame.draw.line(surface, LINE_COLOR, (cx, 0), (cx, cy - d), 2)
    pygame.draw.line(surface, LINE_COLOR, (cx, cy + d), (cx, height), 2)

    # Stop lines span the incoming half of each road
    pygame.draw.line(surface, LINE_COLOR, (cx - half, cy - d), (cx, cy - d), 3)
    pygame.draw.line(surface, LINE_COLOR, (cx, cy + d), (cx + half, cy + d), 3)
    pygame.draw.line(surface, LINE_COLOR, (cx - d, cy), (cx - d, cy + half), 3)
    pygame.draw.line(surface, LINE_COLOR, (cx + d, cy - half), (cx + d, cy), 3)

    for stripes in geometry.zebra_crossings.values():
        for stripe in stripes:
            pygame.draw.rect(surface, LINE_COLOR, _rect(stripe))


def _signal_color(state: LightState, blink_on: bool) -> tuple[int, int, int]:
    if state == LightState.GREEN:
        return SIGNAL_GREEN
    if state == LightState.YELLOW:
        return SIGNAL_YELLOW
    if state == LightState.CONDITIONAL:
        return SIGNAL_GREEN if blink_on else SIGNAL_OFF
    return SIGNAL_RED


def draw_lights(
    surface: pygame.Surface, geometry: WorldGeometry, lights: LightMap, blink_on: bool
) -> None:
    """Draw one signal head per movement, just before each stop line."""
    lane_count = geometry.lane_count
    for road in DIRECTIONS:
        heading = approach_heading(road)
        along = -geometry.stop_line_distance + 12
        for i, movement in enumerate(MOVEMENTS):
            lane = min(i * lane_count // len(MOVEMENTS), lane_count - 1)
            x, y = lane_point(heading, lane, geometry, along)
            color = _signal_color(lights[road][movement], blink_on)
            pygame.draw.circle(surface, color, (int(x), int(y)), 5)


def draw_pedestrian_lights(
    surface: pygame.Surface, geometry: WorldGeometry, green: bool
) -> None:
    cx, cy = geometry.center
    edge = geometry.half_road + geometry.pavement_width / 2
    color = SIGNAL_GREEN if green else SIGNAL_RED
    for x, y in (
        (cx - edge, cy - edge),
        (cx + edge, cy - edge),
        (cx - edge, cy + edge),
        (cx + edge, cy + edge),
    ):
        pygame.draw.rect(surface, color, pygame.Rect(int(x) - 4, int(y) - 4, 8, 8))


def _vehicle_rect(vehicle: Vehicle) -> pygame.Rect:
    if vehicle.current_road in (RoadDirection.NORTH, RoadDirection.SOUTH):
        w, h = vehicle.width, vehicle.height
    else:
        w, h = vehicle.height, vehicle.width
    return pygame.Rect(int(vehicle.x - w / 2), int(vehicle.y - h / 2), int(w), int(h))


def draw_entities(surface: pygame.Surface, simulation: IntersectionSimulation) -> None:
    for vehicle in simulation.vehicles.values():
        pygame.draw.rect(surface, _sprite_color(vehicle.sprite), _vehicle_rect(vehicle), border_radius=4)
    for pedestrian in simulation.pedestrians.values():
        pygame.draw.circle(
            surface,
            _sprite_color(pedestrian.sprite),
            (int(pedestrian.x), int(pedestrian.y)),
            int(pedestrian.width / 2),
        )
    for bicycle in simulation.bicycles.values():
        rect = pygame.Rect(
            int(bicycle.x - bicycle.width / 2),
            int(bicycle.y - bicycle.height / 2),
            int(bicycle.width),
            int(bicycle.height),
        )
        pygame.draw.rect(surface, _sprite_color(bicycle.sprite), rect, width=2)


def draw_hud(
    surface: pygame.Surface,
    font: pygame.font.Font,
    simulation: IntersectionSimulation,
    lines: list[str],
) -> None:
    """Render aggregate counts plus caller-supplied status lines."""
    rows = [
        f"Algorithm: {simulation.controller.name}  phase {simulation.controller_state.current_phase}",
        "Queued: "
        + " ".join(f"{road.value[0].upper()}={simulation.road_counts[road]}" for road in DIRECTIONS),
        "Waiting on foot: "
        + " ".join(f"{path.value[0].upper()}={simulation.waiting_counts[path]}" for path in DIRECTIONS),
        f"Departed: {simulation.metrics.departed_count}  mean wait {simulation.metrics.mean_wait:.0f} ticks",
        *lines,
    ]
    for i, row in enumerate(rows):
        text = font.render(row, True, TEXT_COLOR)
        surface.blit(text, (10, 10 + i * 18))


def draw_frame(
    surface: pygame.Surface,
    font: pygame.font.Font,
    simulation: IntersectionSimulation,
    hud_lines: list[str],
) -> None:
    """Draw a complete frame of the simulation."""
    geometry = simulation.geometry
    draw_world(surface, geometry)
    draw_lights(surface, geometry, simulation.lights, simulation.blink_on)
    draw_pedestrian_lights(surface, geometry, simulation.pedestrian_green)
    draw_entities(surface, simulation)
    draw_hud(surface, font, simulation, hud_lines)
