"""Unit tests for the static phase table."""

import pytest

from crossroad_sim.core import DIRECTIONS, LightState, MovementType, RoadDirection
from crossroad_sim.phases import (
    CLEARANCE_PHASE_INDEX,
    PEDESTRIAN_PHASE_INDEX,
    PHASES,
    lights_for_phase,
    scenario_phase_index,
)

MOVING = (LightState.GREEN, LightState.YELLOW)


class TestPhaseTable:
    """Tests for phase table invariants."""

    def test_table_size(self):
        """Verify sixteen scenario phases plus pedestrian and clearance."""
        assert len(PHASES) == 18

    @pytest.mark.parametrize("index", range(18))
    def test_left_and_straight_never_share_a_road(self, index):
        """Verify no road gets left and straight moving in the same phase."""
        lights = PHASES[index]
        for road in DIRECTIONS:
            left = lights.light_for(road, MovementType.LEFT)
            straight = lights.light_for(road, MovementType.STRAIGHT)
            assert not (left in MOVING and straight in MOVING)

    @pytest.mark.parametrize("index", range(18))
    def test_crossing_axes_never_both_straight(self, index):
        """Verify north/south and east/west straight flows never overlap."""
        lights = PHASES[index]
        ns = lights.light_for(RoadDirection.NORTH, MovementType.STRAIGHT)
        ew = lights.light_for(RoadDirection.EAST, MovementType.STRAIGHT)
        assert not (ns in MOVING and ew in MOVING)

    def test_pedestrian_phases_all_red(self):
        """Verify pedestrian and clearance phases stop every vehicle."""
        for index in (PEDESTRIAN_PHASE_INDEX, CLEARANCE_PHASE_INDEX):
            for road in DIRECTIONS:
                assert set(vars(PHASES[index][road]).values()) == {LightState.RED}

    def test_through_green_gives_conditional_right(self):
        """Verify the cross road may turn right conditionally during through green."""
        lights = PHASES[1]
        assert lights.light_for(RoadDirection.NORTH, MovementType.STRAIGHT) == LightState.GREEN
        assert lights.light_for(RoadDirection.EAST, MovementType.RIGHT) == LightState.CONDITIONAL
        assert lights.light_for(RoadDirection.WEST, MovementType.RIGHT) == LightState.CONDITIONAL

    def test_protected_left(self):
        """Verify scenario 2 gives north/south a protected left."""
        lights = PHASES[9]
        assert lights.light_for(RoadDirection.SOUTH, MovementType.LEFT) == LightState.GREEN
        assert lights.light_for(RoadDirection.EAST, MovementType.LEFT) == LightState.RED


class TestPhaseLookup:
    """Tests for bounds-checked lookups."""

    def test_lookup_in_range(self):
        """Verify lookups return table entries."""
        assert lights_for_phase(5) is PHASES[5]

    @pytest.mark.parametrize("index", [-1, 18, 100])
    def test_lookup_out_of_range_raises(self, index):
        """Verify out-of-table indexes surface as IndexError."""
        with pytest.raises(IndexError):
            lights_for_phase(index)

    def test_scenario_phase_index(self):
        """Verify scenario/sub-phase pairs map onto the table."""
        assert scenario_phase_index(0, 0) == 0
        assert scenario_phase_index(1, 2) == 6
        assert scenario_phase_index(3, 3) == 15

    def test_scenario_phase_index_bounds(self):
        """Verify invalid scenarios and sub-phases raise."""
        with pytest.raises(IndexError):
            scenario_phase_index(4, 0)
        with pytest.raises(IndexError):
            scenario_phase_index(0, 4)
