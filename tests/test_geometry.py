"""Unit tests for intersection layout and direction helpers."""

import pytest

from crossroad_sim.core import MovementType, RoadDirection
from crossroad_sim.geometry import (
    approach_heading,
    exit_road,
    generate_world_geometry,
    lane_offset,
    lane_point,
    movement_type,
    opposite_direction,
    progress_along,
    spawn_position,
)


class TestWorldGeometry:
    """Tests for derived layout constants."""

    def test_single_lane_layout(self, geometry):
        """Verify constants derived for one lane per direction."""
        assert geometry.center == (600.0, 450.0)
        assert geometry.road_width == 80.0
        assert geometry.half_road == 40.0
        assert geometry.stop_line_distance == 120.0
        assert geometry.pavement_width == 70.0
        assert geometry.bike_lane_width == pytest.approx(70.0 / 3)

    def test_capture_radius_and_danger_zone(self, geometry):
        """Verify capture box and danger zone follow the road size."""
        assert geometry.capture_radius == 80.0
        assert geometry.danger_zone == geometry.stop_line_distance

    def test_road_widens_with_lanes(self):
        """Verify three lanes per direction give a 240px road."""
        geo = generate_world_geometry(1200, 900, 3, 40.0, 8.0, 8.0, 60.0, 10.0)
        assert geo.road_width == 240.0
        assert geo.stop_line_distance == 200.0

    def test_zebra_stripes_on_every_crossing(self, geometry):
        """Verify each crossing gets the same number of stripes."""
        counts = {name: len(stripes) for name, stripes in geometry.zebra_crossings.items()}
        assert set(counts) == {"north", "south", "east", "west"}
        assert len(set(counts.values())) == 1
        assert counts["north"] == 4

    def test_pavements_border_the_road(self, geometry):
        """Verify the top pavement ends where the road starts."""
        top = geometry.pavements["top"]
        assert top.y + top.height == pytest.approx(450.0 - geometry.half_road)


class TestDirections:
    """Tests for turn arithmetic."""

    def test_opposites(self):
        """Verify opposing roads."""
        assert opposite_direction(RoadDirection.NORTH) == RoadDirection.SOUTH
        assert opposite_direction(RoadDirection.EAST) == RoadDirection.WEST

    def test_exits_from_south(self):
        """Verify destinations of a vehicle coming from the south."""
        assert exit_road(RoadDirection.SOUTH, MovementType.RIGHT) == RoadDirection.EAST
        assert exit_road(RoadDirection.SOUTH, MovementType.LEFT) == RoadDirection.WEST
        assert exit_road(RoadDirection.SOUTH, MovementType.STRAIGHT) == RoadDirection.NORTH

    def test_exits_from_north(self):
        """Verify destinations of a vehicle coming from the north."""
        assert exit_road(RoadDirection.NORTH, MovementType.RIGHT) == RoadDirection.WEST
        assert exit_road(RoadDirection.NORTH, MovementType.LEFT) == RoadDirection.EAST

    @pytest.mark.parametrize("start", list(RoadDirection))
    def test_movement_type_inverts_exit_road(self, start):
        """Verify classifying a route recovers the movement that produced it."""
        for movement in MovementType:
            assert movement_type(start, exit_road(start, movement)) == movement

    def test_u_turn_rejected(self):
        """Verify start == end has no movement."""
        with pytest.raises(ValueError):
            movement_type(RoadDirection.WEST, RoadDirection.WEST)

    def test_approach_heading(self):
        """Verify vehicles on an approach head towards the opposite road."""
        assert approach_heading(RoadDirection.SOUTH) == RoadDirection.NORTH


class TestPositions:
    """Tests for lane points and progress."""

    def test_lane_offset(self):
        """Verify lanes are centred in their strip."""
        assert lane_offset(0, 40.0) == 20.0
        assert lane_offset(2, 40.0) == 100.0

    def test_lane_point_northbound(self, geometry):
        """Verify northbound traffic drives right of the center line."""
        assert lane_point(RoadDirection.NORTH, 0, geometry, 50.0) == (620.0, 400.0)

    def test_lane_point_westbound(self, geometry):
        """Verify westbound traffic drives above the center line."""
        assert lane_point(RoadDirection.WEST, 0, geometry, 50.0) == (550.0, 430.0)

    def test_progress_along(self, geometry):
        """Verify progress is signed along the heading."""
        assert progress_along(600.0, 440.0, RoadDirection.NORTH, geometry) == 10.0
        assert progress_along(600.0, 440.0, RoadDirection.SOUTH, geometry) == -10.0

    def test_spawn_positions(self, geometry):
        """Verify spawn points sit on the canvas edge of each approach."""
        assert spawn_position(RoadDirection.SOUTH, 0, geometry) == (620.0, 900, RoadDirection.NORTH)
        assert spawn_position(RoadDirection.NORTH, 0, geometry) == (580.0, 0.0, RoadDirection.SOUTH)
        assert spawn_position(RoadDirection.EAST, 0, geometry) == (1200, 430.0, RoadDirection.WEST)
        assert spawn_position(RoadDirection.WEST, 0, geometry) == (0.0, 470.0, RoadDirection.EAST)
