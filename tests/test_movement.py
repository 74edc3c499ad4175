"""Unit tests for vehicle movement and conflict resolution."""

import pytest

from crossroad_sim.core import MovementType, RoadDirection, VehicleState
from crossroad_sim.movement import (
    advance_vehicle,
    at_stop_line,
    conditional_conflict,
    conflict_pairs,
    in_capture_box,
    leader_too_close,
    must_stop,
    select_lane,
    should_remove_vehicle,
    stop_line_gap,
)

PAIRS = conflict_pairs()


class TestLaneSelection:
    """Tests for lane choice by movement."""

    @pytest.mark.parametrize(
        "lanes,expected",
        [(1, (0, 0, 0)), (2, (0, 1, 1)), (3, (0, 1, 2))],
    )
    def test_lanes(self, lanes, expected):
        """Verify left is innermost, right outermost and straight in the middle."""
        got = tuple(
            select_lane(m, lanes)
            for m in (MovementType.LEFT, MovementType.STRAIGHT, MovementType.RIGHT)
        )
        assert got == expected

    def test_conflict_pairs(self):
        """Verify the default pairing is symmetric north/west and south/east."""
        assert PAIRS[RoadDirection.NORTH] == RoadDirection.WEST
        assert PAIRS[RoadDirection.WEST] == RoadDirection.NORTH
        assert PAIRS[RoadDirection.SOUTH] == RoadDirection.EAST
        assert PAIRS[RoadDirection.EAST] == RoadDirection.SOUTH


class TestStopLine:
    """Tests for stop-line gating."""

    def test_gap_measured_to_front_bumper(self, make_vehicle, geometry):
        """Verify the gap is the distance from the front to the line."""
        vehicle = make_vehicle("v", RoadDirection.SOUTH, RoadDirection.NORTH, gap=50.0)
        assert stop_line_gap(vehicle, geometry) == pytest.approx(50.0)

    def test_at_stop_line_window(self, make_vehicle, geometry):
        """Verify only vehicles within speed + buffer of the line count as stopped."""
        near = make_vehicle("a", RoadDirection.EAST, RoadDirection.WEST, gap=3.0)
        far = make_vehicle("b", RoadDirection.EAST, RoadDirection.WEST, gap=30.0)
        past = make_vehicle("c", RoadDirection.EAST, RoadDirection.WEST, gap=-5.0)
        assert at_stop_line(near, geometry, 4.0)
        assert not at_stop_line(far, geometry, 4.0)
        assert not at_stop_line(past, geometry, 4.0)

    def test_red_stops_vehicle(self, south_to_north, geometry, red_lights):
        """Verify a red light holds the vehicle and counts its wait."""
        y = south_to_north.y
        crossed = advance_vehicle(south_to_north, [south_to_north], geometry, red_lights)

        assert crossed is False
        assert south_to_north.y == y
        assert south_to_north.state == VehicleState.WAITING
        assert south_to_north.wait_ticks == 1

    def test_green_lets_vehicle_cross(self, south_to_north, geometry, north_south_green):
        """Verify a green light lets the vehicle pass and reports the crossing once."""
        results = [
            advance_vehicle(south_to_north, [south_to_north], geometry, north_south_green)
            for _ in range(3)
        ]
        assert results == [False, True, False]
        assert south_to_north.exited_approach

    def test_vehicle_resumes_when_light_turns(self, south_to_north, geometry, red_lights, north_south_green):
        """Verify a waiting vehicle moves again on green."""
        advance_vehicle(south_to_north, [south_to_north], geometry, red_lights)
        advance_vehicle(south_to_north, [south_to_north], geometry, north_south_green)
        assert south_to_north.state == VehicleState.MOVING

    def test_hold_ignores_green(self, south_to_north, geometry, north_south_green):
        """Verify discrete holding keeps the vehicle at the line on green."""
        advance_vehicle(
            south_to_north, [south_to_north], geometry, north_south_green, hold_at_stop_line=True
        )
        assert south_to_north.state == VehicleState.WAITING
        assert not south_to_north.exited_approach

    def test_far_vehicle_not_gated(self, make_vehicle, geometry, red_lights):
        """Verify red only matters at the stop line."""
        vehicle = make_vehicle("v", RoadDirection.SOUTH, RoadDirection.NORTH, gap=100.0)
        assert not must_stop(vehicle, [vehicle], geometry, red_lights, PAIRS)


class TestConditionalLight:
    """Tests for the conditional right turn."""

    def test_yields_to_straight_traffic_in_junction(
        self, make_vehicle, geometry, north_south_green
    ):
        """Verify east->north right turn waits for a south straight vehicle nearby."""
        turner = make_vehicle("t", RoadDirection.EAST, RoadDirection.NORTH, gap=2.0)
        oncoming = make_vehicle("o", RoadDirection.SOUTH, RoadDirection.NORTH, gap=-60.0)

        assert conditional_conflict(turner, [turner, oncoming], geometry, north_south_green, PAIRS)
        assert must_stop(turner, [turner, oncoming], geometry, north_south_green, PAIRS)

    def test_proceeds_when_junction_clear(self, make_vehicle, geometry, north_south_green):
        """Verify the conditional turn proceeds when conflicting traffic is far away."""
        turner = make_vehicle("t", RoadDirection.EAST, RoadDirection.NORTH, gap=2.0)
        distant = make_vehicle("o", RoadDirection.SOUTH, RoadDirection.NORTH, gap=200.0)

        assert not must_stop(turner, [turner, distant], geometry, north_south_green, PAIRS)
        advance_vehicle(turner, [turner, distant], geometry, north_south_green)
        assert turner.state == VehicleState.MOVING

    def test_ignores_non_straight_traffic(self, make_vehicle, geometry, north_south_green):
        """Verify only straight movers from the paired road block the turn."""
        turner = make_vehicle("t", RoadDirection.EAST, RoadDirection.NORTH, gap=2.0)
        left = make_vehicle("l", RoadDirection.SOUTH, RoadDirection.WEST, gap=-60.0)
        assert not conditional_conflict(turner, [turner, left], geometry, north_south_green, PAIRS)

    def test_red_cross_flow_never_conflicts(self, make_vehicle, geometry, red_lights):
        """Verify a stopped paired road cannot block the turn."""
        turner = make_vehicle("t", RoadDirection.EAST, RoadDirection.NORTH, gap=2.0)
        oncoming = make_vehicle("o", RoadDirection.SOUTH, RoadDirection.NORTH, gap=-60.0)
        assert not conditional_conflict(turner, [turner, oncoming], geometry, red_lights, PAIRS)


class TestFollowing:
    """Tests for follow-distance gating."""

    def test_close_leader_blocks(self, make_vehicle, geometry):
        """Verify a vehicle too close behind its leader waits."""
        leader = make_vehicle("a", RoadDirection.SOUTH, RoadDirection.NORTH, gap=100.0)
        follower = make_vehicle("b", RoadDirection.SOUTH, RoadDirection.NORTH, gap=151.0)
        assert leader_too_close(follower, [leader, follower], geometry, 12.0)
        assert not leader_too_close(leader, [leader, follower], geometry, 12.0)

    def test_spaced_leader_does_not_block(self, make_vehicle, geometry):
        """Verify enough spacing lets the follower move."""
        leader = make_vehicle("a", RoadDirection.SOUTH, RoadDirection.NORTH, gap=100.0)
        follower = make_vehicle("b", RoadDirection.SOUTH, RoadDirection.NORTH, gap=160.0)
        assert not leader_too_close(follower, [leader, follower], geometry, 12.0)

    def test_same_point_later_vehicle_blocked(self, make_vehicle, geometry):
        """Verify of two overlapping vehicles only the later-added one waits."""
        first = make_vehicle("a", RoadDirection.SOUTH, RoadDirection.NORTH, gap=200.0)
        second = make_vehicle("b", RoadDirection.SOUTH, RoadDirection.NORTH, gap=200.0)
        assert leader_too_close(second, [first, second], geometry, 12.0)
        assert not leader_too_close(first, [first, second], geometry, 12.0)

    def test_other_lane_ignored(self, make_vehicle, geometry):
        """Verify opposing traffic is never a leader."""
        a = make_vehicle("a", RoadDirection.SOUTH, RoadDirection.NORTH, gap=100.0)
        b = make_vehicle("b", RoadDirection.NORTH, RoadDirection.SOUTH, gap=100.0)
        assert not leader_too_close(a, [a, b], geometry, 12.0)

    def test_follower_waits(self, make_vehicle, geometry, north_south_green):
        """Verify a blocked follower does not move this tick."""
        leader = make_vehicle("a", RoadDirection.SOUTH, RoadDirection.NORTH, gap=100.0)
        follower = make_vehicle("b", RoadDirection.SOUTH, RoadDirection.NORTH, gap=145.0)
        y = follower.y
        advance_vehicle(follower, [leader, follower], geometry, north_south_green)
        assert follower.y == y
        assert follower.state == VehicleState.WAITING


class TestTurning:
    """Tests for turns inside the capture box."""

    def test_left_turn_completes(self, make_vehicle, geometry, red_lights):
        """Verify a committed left turn ends in the westbound lane regardless of lights."""
        vehicle = make_vehicle("v", RoadDirection.SOUTH, RoadDirection.WEST, gap=-70.0)
        vehicle.exited_approach = True
        assert in_capture_box(vehicle, geometry)

        advance_vehicle(vehicle, [vehicle], geometry, red_lights)
        assert vehicle.state == VehicleState.TURNING

        for _ in range(100):
            if not vehicle.route:
                break
            advance_vehicle(vehicle, [vehicle], geometry, red_lights)

        assert vehicle.route == []
        assert vehicle.current_road == RoadDirection.WEST
        assert vehicle.state == VehicleState.MOVING
        assert (vehicle.x, vehicle.y) == (620.0, 430.0)

        advance_vehicle(vehicle, [vehicle], geometry, red_lights)
        assert vehicle.x == pytest.approx(618.0)

    def test_straight_snaps_through(self, make_vehicle, geometry, north_south_green):
        """Verify a straight vehicle keeps its lane through the junction."""
        vehicle = make_vehicle("v", RoadDirection.SOUTH, RoadDirection.NORTH, gap=-70.0)
        vehicle.exited_approach = True
        advance_vehicle(vehicle, [vehicle], geometry, north_south_green)
        assert vehicle.route == []
        assert vehicle.x == 620.0

    def test_outside_box_keeps_route(self, make_vehicle, geometry, north_south_green):
        """Verify turns only start inside the capture box."""
        vehicle = make_vehicle("v", RoadDirection.SOUTH, RoadDirection.EAST, gap=50.0)
        advance_vehicle(vehicle, [vehicle], geometry, north_south_green)
        assert vehicle.route == [RoadDirection.EAST]
        assert vehicle.state == VehicleState.MOVING


class TestRemoval:
    """Tests for off-canvas removal."""

    def test_requires_finished_route(self, make_vehicle):
        """Verify vehicles with a pending route are never removed."""
        vehicle = make_vehicle("v", RoadDirection.SOUTH, RoadDirection.NORTH)
        vehicle.x = -500.0
        assert not should_remove_vehicle(vehicle, 1200, 900)

    def test_margin(self, make_vehicle):
        """Verify removal happens only beyond the margin."""
        vehicle = make_vehicle("v", RoadDirection.SOUTH, RoadDirection.NORTH)
        vehicle.route = []
        vehicle.x, vehicle.y = -99.0, 450.0
        assert not should_remove_vehicle(vehicle, 1200, 900)
        vehicle.x = -101.0
        assert should_remove_vehicle(vehicle, 1200, 900)
