"""Intersection layout and direction helpers.

Every spatial decision in the engine is expressed relative to
``WorldGeometry.center`` and the distances derived from the lane count,
so the same code serves one, two or three lanes per direction.
"""

from dataclasses import dataclass, field
from typing import NamedTuple

from crossroad_sim.config import STOP_LINE_SETBACK, SimulationConfig
from crossroad_sim.core import MovementType, RoadDirection


class Rect(NamedTuple):
    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class WorldGeometry:
    """Static description of the intersection for a given lane count."""

    canvas_width: float
    canvas_height: float
    center: tuple[float, float]
    lane_count: int
    lane_width: float
    road_width: float
    stop_line_distance: float
    pavement_width: float
    bike_lane_width: float
    pavements: dict[str, Rect] = field(default_factory=dict)
    bike_lanes: dict[str, Rect] = field(default_factory=dict)
    zebra_crossings: dict[str, list[Rect]] = field(default_factory=dict)

    @property
    def half_road(self) -> float:
        return self.road_width / 2

    @property
    def capture_radius(self) -> float:
        """Half-size of the box around the center where turns are started."""
        return self.half_road + self.lane_width

    @property
    def danger_zone(self) -> float:
        """Distance from the center inside which a vehicle occupies the junction."""
        return self.stop_line_distance


def generate_world_geometry(
    canvas_width: float,
    canvas_height: float,
    lane_count: int,
    lane_width: float,
    zebra_width: float,
    zebra_gap: float,
    zebra_length: float,
    zebra_margin: float,
) -> WorldGeometry:
    """Derive the layout constants and crossing stripes for ``lane_count`` lanes.

    Args:
        canvas_width: Canvas width in pixels
        canvas_height: Canvas height in pixels
        lane_count: Lanes per travel direction
        lane_width: Width of one lane in pixels
        zebra_width: Width of one crossing stripe
        zebra_gap: Gap between stripes
        zebra_length: Length of a stripe across the pavement
        zebra_margin: Offset of the stripes from the stop line

    Returns:
        Immutable geometry value
    """
    cx = canvas_width / 2
    cy = canvas_height / 2
    road_width = lane_count * lane_width * 2
    half = road_width / 2
    stop_line_distance = half + STOP_LINE_SETBACK
    pavement_width = zebra_length + 10
    bike_lane_width = pavement_width / 3

    pavements = {
        "top": Rect(0, cy - half - pavement_width, canvas_width, pavement_width),
        "bottom": Rect(0, cy + half, canvas_width, pavement_width),
        "left": Rect(cx - half - pavement_width, 0, pavement_width, canvas_height),
        "right": Rect(cx + half, 0, pavement_width, canvas_height),
    }
    bike_lanes = {
        "top": Rect(0, cy - half - pavement_width, canvas_width, bike_lane_width),
        "bottom": Rect(
            0, cy + half + pavement_width - bike_lane_width, canvas_width, bike_lane_width
        ),
        "left": Rect(cx - half - pavement_width, 0, bike_lane_width, canvas_height),
        "right": Rect(
            cx + half + pavement_width - bike_lane_width, 0, bike_lane_width, canvas_height
        ),
    }

    # Stripes are centred across the road on each crossing
    stripe_count = max(int((road_width - 8) // (zebra_width + zebra_gap)), 0)
    stripes_span = stripe_count * zebra_width + max(stripe_count - 1, 0) * zebra_gap
    offset = (road_width - stripes_span) / 2
    crossings: dict[str, list[Rect]] = {"north": [], "south": [], "west": [], "east": []}
    for i in range(stripe_count):
        along = -half + offset + i * (zebra_width + zebra_gap)
        crossings["north"].append(
            Rect(cx + along, cy - stop_line_distance + zebra_margin, zebra_width, zebra_length)
        )
        crossings["south"].append(
            Rect(
                cx + along,
                cy + stop_line_distance - zebra_length - zebra_margin,
                zebra_width,
                zebra_length,
            )
        )
        crossings["west"].append(
            Rect(cx - stop_line_distance + zebra_margin, cy + along, zebra_length, zebra_width)
        )
        crossings["east"].append(
            Rect(
                cx + stop_line_distance - zebra_length - zebra_margin,
                cy + along,
                zebra_length,
                zebra_width,
            )
        )

    return WorldGeometry(
        canvas_width=canvas_width,
        canvas_height=canvas_height,
        center=(cx, cy),
        lane_count=lane_count,
        lane_width=lane_width,
        road_width=road_width,
        stop_line_distance=stop_line_distance,
        pavement_width=pavement_width,
        bike_lane_width=bike_lane_width,
        pavements=pavements,
        bike_lanes=bike_lanes,
        zebra_crossings=crossings,
    )


def geometry_for_config(config: SimulationConfig) -> WorldGeometry:
    """Build the geometry matching a simulation config."""
    return generate_world_geometry(
        config.canvas_width,
        config.canvas_height,
        config.lane_count,
        config.lane_width,
        config.zebra_width,
        config.zebra_gap,
        config.zebra_length,
        config.zebra_margin,
    )


# Clockwise order used for turn arithmetic
_CLOCKWISE = [
    RoadDirection.NORTH,
    RoadDirection.EAST,
    RoadDirection.SOUTH,
    RoadDirection.WEST,
]

_HEADING_VECTORS = {
    RoadDirection.NORTH: (0.0, -1.0),
    RoadDirection.SOUTH: (0.0, 1.0),
    RoadDirection.EAST: (1.0, 0.0),
    RoadDirection.WEST: (-1.0, 0.0),
}


def opposite_direction(d: RoadDirection) -> RoadDirection:
    """Return the opposing road."""
    idx = _CLOCKWISE.index(d)
    return _CLOCKWISE[(idx + 2) % 4]


def exit_road(start: RoadDirection, movement: MovementType) -> RoadDirection:
    """Road a vehicle leaves by after performing ``movement`` from ``start``.

    Args:
        start: Approach road
        movement: Maneuver

    Returns:
        Destination road
    """
    idx = _CLOCKWISE.index(start)
    if movement == MovementType.RIGHT:
        return _CLOCKWISE[(idx - 1) % 4]
    if movement == MovementType.LEFT:
        return _CLOCKWISE[(idx + 1) % 4]
    return _CLOCKWISE[(idx + 2) % 4]


def movement_type(start: RoadDirection, end: RoadDirection) -> MovementType:
    """Classify the maneuver from ``start`` to ``end``.

    Raises:
        ValueError: if ``start`` and ``end`` are the same road
    """
    if start == end:
        raise ValueError(f"no movement leads from {start.value} back to itself")
    for movement in (MovementType.RIGHT, MovementType.LEFT, MovementType.STRAIGHT):
        if exit_road(start, movement) == end:
            return movement
    raise ValueError(f"unreachable road pair {start.value}->{end.value}")


def heading_vector(heading: RoadDirection) -> tuple[float, float]:
    """Unit screen-space vector for travel towards ``heading`` (y grows downwards)."""
    return _HEADING_VECTORS[heading]


def approach_heading(start: RoadDirection) -> RoadDirection:
    """Heading of a vehicle still on its approach from ``start``."""
    return opposite_direction(start)


def lane_offset(lane: int, lane_width: float) -> float:
    """Distance from the road axis to the middle of ``lane`` (0 = innermost)."""
    return (lane + 0.5) * lane_width


def lane_point(
    heading: RoadDirection, lane: int, geometry: WorldGeometry, along: float
) -> tuple[float, float]:
    """Point in ``lane`` of traffic heading ``heading``.

    ``along`` is the signed distance from the center measured along the
    heading, so negative values lie before the center.
    """
    cx, cy = geometry.center
    off = lane_offset(lane, geometry.lane_width)
    if heading == RoadDirection.NORTH:
        return cx + off, cy - along
    if heading == RoadDirection.SOUTH:
        return cx - off, cy + along
    if heading == RoadDirection.EAST:
        return cx + along, cy + off
    return cx - along, cy - off


def progress_along(
    x: float, y: float, heading: RoadDirection, geometry: WorldGeometry
) -> float:
    """Signed distance of ``(x, y)`` from the center measured along ``heading``."""
    cx, cy = geometry.center
    hx, hy = heading_vector(heading)
    return (x - cx) * hx + (y - cy) * hy


def spawn_position(
    road: RoadDirection, lane: int, geometry: WorldGeometry
) -> tuple[float, float, RoadDirection]:
    """Canvas-edge spawn point of ``lane`` on ``road``.

    Returns:
        ``(x, y, heading)`` where heading points into the intersection
    """
    cx, cy = geometry.center
    off = lane_offset(lane, geometry.lane_width)
    if road == RoadDirection.SOUTH:
        return cx + off, geometry.canvas_height, RoadDirection.NORTH
    if road == RoadDirection.NORTH:
        return cx - off, 0.0, RoadDirection.SOUTH
    if road == RoadDirection.EAST:
        return geometry.canvas_width, cy - off, RoadDirection.WEST
    return 0.0, cy + off, RoadDirection.EAST
