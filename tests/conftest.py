"""Shared pytest fixtures for intersection simulation tests."""

import random

import pytest

from crossroad_sim.config import SimulationConfig
from crossroad_sim.core import RoadDirection, Vehicle
from crossroad_sim.geometry import (
    approach_heading,
    geometry_for_config,
    lane_point,
    movement_type,
)
from crossroad_sim.movement import select_lane
from crossroad_sim.phases import ALL_RED, PHASES
from crossroad_sim.sim import IntersectionSimulation


@pytest.fixture
def rng():
    """Provide a seeded random number generator for reproducible tests."""
    return random.Random(42)


@pytest.fixture
def config():
    """Provide the default configuration with pedestrians and bicycles off."""
    return SimulationConfig(pedestrians_enabled=False, bicycles_enabled=False)


@pytest.fixture
def geometry(config):
    """Provide the one-lane layout on a 1200x900 canvas, centered at (600, 450)."""
    return geometry_for_config(config)


@pytest.fixture
def simulation(config, geometry, rng):
    """Provide a configured simulation using the fixed-timer controller."""
    return IntersectionSimulation(config=config, geometry=geometry, rng=rng)


@pytest.fixture
def red_lights():
    """Provide a light map with every movement red."""
    return ALL_RED


@pytest.fixture
def north_south_green():
    """Provide the north/south through-green phase (east/west right conditional)."""
    return PHASES[1]


@pytest.fixture
def make_vehicle(geometry):
    """Provide a factory placing a vehicle on its approach lane.

    ``gap`` is the distance of the vehicle's front bumper to its stop line.
    """

    def _make(vehicle_id, start, end, gap=300.0, speed=2.0):
        movement = movement_type(start, end)
        lane = select_lane(movement, geometry.lane_count)
        heading = approach_heading(start)
        along = -geometry.stop_line_distance - gap - 20.0
        x, y = lane_point(heading, lane, geometry, along)
        return Vehicle(
            vehicle_id,
            x,
            y,
            width=20.0,
            height=40.0,
            speed=speed,
            start_road=start,
            target_road=end,
            current_road=heading,
            movement_type=movement,
            lane=lane,
        )

    return _make


@pytest.fixture
def south_to_north(make_vehicle):
    """Provide a straight-through vehicle coming from the south, 2px before its stop line."""
    return make_vehicle("v1", RoadDirection.SOUTH, RoadDirection.NORTH, gap=2.0)
