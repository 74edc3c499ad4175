"""Vehicle movement and conflict resolution.

Each tick a vehicle is advanced against the shared light map and a
snapshot of its siblings taken before any vehicle moved. Decisions are
made in this order:

1. follow-distance gating against the vehicle ahead in the same lane
2. stop-line gating from the light of the vehicle's movement
3. turning once inside the capture box around the center
4. straight movement along the current heading
"""

import math
from collections.abc import Iterable, Mapping

from crossroad_sim.config import (
    CONFLICTING_ROADS,
    FOLLOW_DISTANCE,
    STOP_LINE_BUFFER,
    VEHICLE_REMOVAL_MARGIN,
)
from crossroad_sim.core import (
    LightMap,
    LightState,
    MovementType,
    RoadDirection,
    Vehicle,
    VehicleState,
)
from crossroad_sim.geometry import (
    WorldGeometry,
    approach_heading,
    heading_vector,
    lane_offset,
    progress_along,
)


def select_lane(movement: MovementType, lane_count: int) -> int:
    """Lane used for ``movement``: right outermost, left innermost, straight middle."""
    if movement == MovementType.RIGHT:
        return lane_count - 1
    if movement == MovementType.LEFT:
        return 0
    return lane_count // 2


def conflict_pairs(pairs: Mapping[str, str] = CONFLICTING_ROADS) -> dict[RoadDirection, RoadDirection]:
    """Convert the configured road-name pairing into enum form."""
    return {RoadDirection(road): RoadDirection(other) for road, other in pairs.items()}


def stop_line_gap(vehicle: Vehicle, geometry: WorldGeometry) -> float:
    """Distance from the vehicle's front to its stop line.

    Measured along the approach heading, so it stays meaningful after the
    vehicle turned; negative once the front is past the line.
    """
    heading = approach_heading(vehicle.start_road)
    along = progress_along(vehicle.x, vehicle.y, heading, geometry)
    return -geometry.stop_line_distance - (along + vehicle.height / 2)


def at_stop_line(vehicle: Vehicle, geometry: WorldGeometry, buffer: float) -> bool:
    """True when the next step would bring the vehicle within ``buffer`` of the line."""
    gap = stop_line_gap(vehicle, geometry)
    return 0.0 <= gap < vehicle.speed + buffer


def in_capture_box(vehicle: Vehicle, geometry: WorldGeometry) -> bool:
    cx, cy = geometry.center
    radius = geometry.capture_radius
    return abs(vehicle.x - cx) < radius and abs(vehicle.y - cy) < radius


def leader_too_close(
    vehicle: Vehicle,
    siblings: Iterable[Vehicle],
    geometry: WorldGeometry,
    follow_distance: float = FOLLOW_DISTANCE,
) -> bool:
    """Whether a vehicle ahead in the same lane is within following distance.

    ``siblings`` is in insertion order. Two vehicles at the same point
    (spawned before the first one moved) are ordered by it: the earlier
    one counts as ahead of the later one.
    """
    hx, hy = heading_vector(vehicle.current_road)
    half_lane = geometry.lane_width / 2
    seen_self = False
    for other in siblings:
        if other.id == vehicle.id:
            seen_self = True
            continue
        if other.current_road != vehicle.current_road:
            continue
        dx = other.x - vehicle.x
        dy = other.y - vehicle.y
        ahead = dx * hx + dy * hy
        lateral = abs(dx * hy - dy * hx)
        if lateral >= half_lane or ahead < 0 or (ahead == 0 and seen_self):
            continue
        if ahead < (vehicle.height + other.height) / 2 + follow_distance:
            return True
    return False


def conditional_conflict(
    vehicle: Vehicle,
    siblings: Iterable[Vehicle],
    geometry: WorldGeometry,
    lights: LightMap,
    pairs: Mapping[RoadDirection, RoadDirection],
) -> bool:
    """Whether a conditional movement must keep yielding.

    The paired road's straight flow only matters while its own straight
    light lets it move; then any straight-moving vehicle from that road
    inside the danger zone blocks the conditional movement.
    """
    conflict_road = pairs[vehicle.start_road]
    if lights[conflict_road].straight in (LightState.RED, LightState.YELLOW):
        return False
    cx, cy = geometry.center
    for other in siblings:
        if other.id == vehicle.id:
            continue
        if other.start_road != conflict_road or other.movement_type != MovementType.STRAIGHT:
            continue
        if math.hypot(other.x - cx, other.y - cy) <= geometry.danger_zone:
            return True
    return False


def must_stop(
    vehicle: Vehicle,
    siblings: Iterable[Vehicle],
    geometry: WorldGeometry,
    lights: LightMap,
    pairs: Mapping[RoadDirection, RoadDirection],
    buffer: float = STOP_LINE_BUFFER,
) -> bool:
    """Apply the right-of-way rule of the vehicle's light at its stop line."""
    if vehicle.exited_approach or not at_stop_line(vehicle, geometry, buffer):
        return False
    light = lights.light_for(vehicle.start_road, vehicle.movement_type)
    if light == LightState.GREEN:
        return False
    if light == LightState.CONDITIONAL:
        return conditional_conflict(vehicle, siblings, geometry, lights, pairs)
    return True


def turn_target(vehicle: Vehicle, geometry: WorldGeometry) -> tuple[float, float]:
    """Point where the vehicle joins its lane on the destination road.

    The target shares one coordinate with the vehicle, so the vehicle
    keeps moving along its current axis until it meets the new lane.
    """
    cx, cy = geometry.center
    off = lane_offset(vehicle.lane, geometry.lane_width)
    target = vehicle.target_road
    if target == RoadDirection.NORTH:
        return cx + off, vehicle.y
    if target == RoadDirection.SOUTH:
        return cx - off, vehicle.y
    if target == RoadDirection.EAST:
        return vehicle.x, cy + off
    return vehicle.x, cy - off


def _turn(vehicle: Vehicle, geometry: WorldGeometry) -> None:
    tx, ty = turn_target(vehicle, geometry)
    dx = tx - vehicle.x
    dy = ty - vehicle.y
    distance = math.hypot(dx, dy)
    if distance <= vehicle.speed:
        vehicle.x = tx
        vehicle.y = ty
        vehicle.current_road = vehicle.target_road
        vehicle.route = []
        vehicle.state = VehicleState.MOVING
    else:
        vehicle.x += dx / distance * vehicle.speed
        vehicle.y += dy / distance * vehicle.speed


def _move_straight(vehicle: Vehicle) -> None:
    hx, hy = heading_vector(vehicle.current_road)
    vehicle.x += hx * vehicle.speed
    vehicle.y += hy * vehicle.speed


def advance_vehicle(
    vehicle: Vehicle,
    siblings: Iterable[Vehicle],
    geometry: WorldGeometry,
    lights: LightMap,
    follow_distance: float = FOLLOW_DISTANCE,
    stop_buffer: float = STOP_LINE_BUFFER,
    pairs: Mapping[RoadDirection, RoadDirection] | None = None,
    hold_at_stop_line: bool = False,
) -> bool:
    """Advance ``vehicle`` by one tick, mutating it in place.

    Args:
        vehicle: Vehicle to move
        siblings: Pre-tick snapshot of all live vehicles
        geometry: Intersection layout
        lights: Light map active for this tick
        follow_distance: Minimum bumper gap to the vehicle ahead
        stop_buffer: Clearance kept before the stop line
        pairs: Conditional-light pairing, road -> road it yields to
        hold_at_stop_line: Treat every light as red at the stop line
            (discrete replay, where departures are granted explicitly)

    Returns:
        True if the vehicle crossed its stop line during this tick
    """
    siblings = list(siblings)
    if pairs is None:
        pairs = conflict_pairs()

    # A turning vehicle has committed to the junction and is not gated
    if vehicle.state != VehicleState.TURNING:
        if leader_too_close(vehicle, siblings, geometry, follow_distance):
            vehicle.state = VehicleState.WAITING
            vehicle.wait_ticks += 1
            return False
        if hold_at_stop_line:
            blocked = not vehicle.exited_approach and at_stop_line(
                vehicle, geometry, stop_buffer
            )
        else:
            blocked = must_stop(vehicle, siblings, geometry, lights, pairs, stop_buffer)
        if blocked:
            vehicle.state = VehicleState.WAITING
            vehicle.wait_ticks += 1
            return False
        if vehicle.state == VehicleState.WAITING:
            vehicle.state = VehicleState.MOVING

    if (
        vehicle.state == VehicleState.MOVING
        and vehicle.route
        and in_capture_box(vehicle, geometry)
    ):
        vehicle.state = VehicleState.TURNING
        vehicle.target_road = vehicle.route[0]

    if vehicle.state == VehicleState.TURNING:
        _turn(vehicle, geometry)
    else:
        _move_straight(vehicle)

    if not vehicle.exited_approach and stop_line_gap(vehicle, geometry) < 0:
        vehicle.exited_approach = True
        return True
    return False


def should_remove_vehicle(
    vehicle: Vehicle,
    canvas_width: float,
    canvas_height: float,
    margin: float = VEHICLE_REMOVAL_MARGIN,
) -> bool:
    """True once a vehicle that finished its route is beyond the canvas margin."""
    if vehicle.route:
        return False
    return (
        vehicle.x < -margin
        or vehicle.x > canvas_width + margin
        or vehicle.y < -margin
        or vehicle.y > canvas_height + margin
    )
