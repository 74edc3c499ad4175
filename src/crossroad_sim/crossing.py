"""Pedestrian and bicycle movement across the four crossings.

A crossing path is named after the road it crosses. Pedestrians and
cyclists on the ``north`` and ``south`` paths travel along x, those on
``west`` and ``east`` along y. ``direction`` is +1 when travelling
towards growing coordinates.
"""

import math
import random
from collections.abc import Iterable

from crossroad_sim.config import (
    BICYCLE_YIELD_RADIUS,
    CROSSER_REMOVAL_MARGIN,
    CROSSING_EXIT_MARGIN,
    CROSSING_STOP_MARGIN,
    SPEED_JITTER,
    SimulationConfig,
)
from crossroad_sim.core import (
    BICYCLE_SPRITES,
    DIRECTIONS,
    PEDESTRIAN_SPRITES,
    Bicycle,
    BicycleState,
    CrossingEntity,
    Pedestrian,
    PedestrianState,
    RoadDirection,
)
from crossroad_sim.geometry import WorldGeometry

# Pavement/bike-lane strip that carries each crossing path
_PATH_STRIPS = {
    RoadDirection.NORTH: "top",
    RoadDirection.SOUTH: "bottom",
    RoadDirection.WEST: "left",
    RoadDirection.EAST: "right",
}


def crossing_axis(path: RoadDirection) -> str:
    """Coordinate that changes while moving along ``path``."""
    if path in (RoadDirection.NORTH, RoadDirection.SOUTH):
        return "x"
    return "y"


def _axis_center(path: RoadDirection, geometry: WorldGeometry) -> float:
    cx, cy = geometry.center
    return cx if crossing_axis(path) == "x" else cy


def stop_position(entity: CrossingEntity, geometry: WorldGeometry) -> float:
    """Coordinate of the kerb where the entity waits for a green light."""
    edge = geometry.half_road + CROSSING_STOP_MARGIN
    return _axis_center(entity.path, geometry) - entity.direction * edge


def cross_target(entity: CrossingEntity, geometry: WorldGeometry) -> float:
    """Coordinate of the far kerb where crossing ends."""
    edge = geometry.half_road + CROSSING_EXIT_MARGIN
    return _axis_center(entity.path, geometry) + entity.direction * edge


def _edge_start(path: RoadDirection, direction: int, geometry: WorldGeometry) -> float:
    limit = geometry.canvas_width if crossing_axis(path) == "x" else geometry.canvas_height
    return 0.0 if direction == 1 else float(limit)


def spawn_pedestrian(
    entity_id: str,
    path: RoadDirection,
    geometry: WorldGeometry,
    config: SimulationConfig,
    rng: random.Random,
) -> Pedestrian:
    """Create a pedestrian at a canvas edge of the pavement carrying ``path``.

    The lateral position is drawn across the walking part of the pavement,
    keeping clear of the bike lane and the kerb.
    """
    direction = 1 if rng.random() > 0.5 else -1
    strip = geometry.pavements[_PATH_STRIPS[path]]
    bike = geometry.bike_lane_width
    margin = CROSSING_STOP_MARGIN

    # The bike lane is on the outer side of each pavement
    if path == RoadDirection.NORTH:
        low, high = strip.y + bike + margin, strip.y + strip.height - margin
    elif path == RoadDirection.SOUTH:
        low, high = strip.y + margin, strip.y + strip.height - bike - margin
    elif path == RoadDirection.WEST:
        low, high = strip.x + bike + margin, strip.x + strip.width - margin
    else:
        low, high = strip.x + margin, strip.x + strip.width - bike - margin
    lateral = low + rng.random() * (high - low)

    along = _edge_start(path, direction, geometry)
    x, y = (along, lateral) if crossing_axis(path) == "x" else (lateral, along)
    return Pedestrian(
        entity_id,
        x,
        y,
        size=config.pedestrian_size,
        speed=config.pedestrian_speed + rng.random() * SPEED_JITTER,
        path=path,
        direction=direction,
        sprite=rng.choice(PEDESTRIAN_SPRITES),
    )


def spawn_bicycle(
    entity_id: str,
    path: RoadDirection,
    geometry: WorldGeometry,
    config: SimulationConfig,
    rng: random.Random,
) -> Bicycle:
    """Create a bicycle at a canvas edge in the middle of the bike lane of ``path``."""
    direction = 1 if rng.random() > 0.5 else -1
    lane = geometry.bike_lanes[_PATH_STRIPS[path]]
    along = _edge_start(path, direction, geometry)
    if crossing_axis(path) == "x":
        x, y = along, lane.y + lane.height / 2
    else:
        x, y = lane.x + lane.width / 2, along
    return Bicycle(
        entity_id,
        x,
        y,
        size=config.bicycle_size,
        speed=config.bicycle_speed + rng.random() * SPEED_JITTER,
        path=path,
        direction=direction,
        sprite=rng.choice(BICYCLE_SPRITES),
    )


def _advance_crosser(
    entity: CrossingEntity,
    geometry: WorldGeometry,
    green: bool,
    travel_state,
    waiting_state,
    crossing_state,
) -> None:
    axis = crossing_axis(entity.path)
    position = getattr(entity, axis)
    stop = stop_position(entity, geometry)
    target = cross_target(entity, geometry)
    step = entity.direction * entity.speed

    if entity.state == travel_state:
        if entity.direction == 1:
            reached = position < stop <= position + entity.speed
        else:
            reached = position - entity.speed <= stop < position
        if reached:
            setattr(entity, axis, stop)
            entity.state = crossing_state if green else waiting_state
        else:
            setattr(entity, axis, position + step)
        return

    if entity.state == waiting_state:
        if green:
            entity.state = crossing_state
        return

    if entity.direction == 1:
        done = position + entity.speed >= target
    else:
        done = position - entity.speed <= target
    if done:
        setattr(entity, axis, target)
        entity.state = travel_state
    else:
        setattr(entity, axis, position + step)


def advance_pedestrian(pedestrian: Pedestrian, geometry: WorldGeometry, green: bool) -> None:
    """Move a pedestrian one tick: walk, wait at the kerb, cross on green."""
    _advance_crosser(
        pedestrian,
        geometry,
        green,
        PedestrianState.WALKING,
        PedestrianState.WAITING,
        PedestrianState.CROSSING,
    )


def blocked_by_pedestrian(
    bicycle: Bicycle,
    pedestrians: Iterable[Pedestrian],
    radius: float = BICYCLE_YIELD_RADIUS,
) -> bool:
    """True if a pedestrian within ``radius`` is ahead of the bicycle on its axis."""
    axis = crossing_axis(bicycle.path)
    own = getattr(bicycle, axis)
    for p in pedestrians:
        if math.hypot(p.x - bicycle.x, p.y - bicycle.y) > radius:
            continue
        if (getattr(p, axis) - own) * bicycle.direction > 0:
            return True
    return False


def advance_bicycle(
    bicycle: Bicycle,
    pedestrians: Iterable[Pedestrian],
    geometry: WorldGeometry,
    green: bool,
    yield_radius: float = BICYCLE_YIELD_RADIUS,
) -> None:
    """Move a bicycle one tick; it holds while a pedestrian is close ahead."""
    if blocked_by_pedestrian(bicycle, pedestrians, yield_radius):
        return
    _advance_crosser(
        bicycle,
        geometry,
        green,
        BicycleState.RIDING,
        BicycleState.WAITING,
        BicycleState.CROSSING,
    )


def should_remove_crosser(
    entity: CrossingEntity,
    geometry: WorldGeometry,
    margin: float = CROSSER_REMOVAL_MARGIN,
) -> bool:
    """True once the entity is beyond the canvas by more than ``margin``."""
    return (
        entity.x < -margin
        or entity.x > geometry.canvas_width + margin
        or entity.y < -margin
        or entity.y > geometry.canvas_height + margin
    )


def waiting_counts(entities: Iterable[CrossingEntity]) -> dict[RoadDirection, int]:
    """Number of entities waiting at each crossing path."""
    counts = {path: 0 for path in DIRECTIONS}
    for entity in entities:
        if entity.state.value == "waiting":
            counts[entity.path] += 1
    return counts
