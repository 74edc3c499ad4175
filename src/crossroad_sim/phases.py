"""Static phase table shared by both light controllers.

Phases 0-15 form four movement scenarios of four sub-phases each
(yellow-in, green, yellow-out, all-red gap):

- scenario 0: north/south straight + right, east/west conditional right
- scenario 1: east/west straight + right, north/south conditional right
- scenario 2: north/south protected left
- scenario 3: east/west protected left

Phase 16 serves pedestrians and phase 17 is the all-red clearance that
lets the last pedestrians leave the crossings. Both keep every vehicle
light red.
"""

from crossroad_sim.config import PHASE_DURATIONS
from crossroad_sim.core import LightMap, LightState, MovementLights

R = LightState.RED
Y = LightState.YELLOW
G = LightState.GREEN
C = LightState.CONDITIONAL

OFF = MovementLights(R, R, R)
COND = MovementLights(R, R, C)
THROUGH_YELLOW = MovementLights(R, Y, Y)
THROUGH_GREEN = MovementLights(R, G, G)
LEFT_YELLOW = MovementLights(Y, R, R)
LEFT_GREEN = MovementLights(G, R, R)

ALL_RED = LightMap(north=OFF, south=OFF, east=OFF, west=OFF)


def _north_south(lights: MovementLights, cross: MovementLights = OFF) -> LightMap:
    return LightMap(north=lights, south=lights, east=cross, west=cross)


def _east_west(lights: MovementLights, cross: MovementLights = OFF) -> LightMap:
    return LightMap(north=cross, south=cross, east=lights, west=lights)


PHASES: list[LightMap] = [
    _north_south(THROUGH_YELLOW),
    _north_south(THROUGH_GREEN, COND),
    _north_south(THROUGH_YELLOW),
    ALL_RED,
    _east_west(THROUGH_YELLOW),
    _east_west(THROUGH_GREEN, COND),
    _east_west(THROUGH_YELLOW),
    ALL_RED,
    _north_south(LEFT_YELLOW),
    _north_south(LEFT_GREEN),
    _north_south(LEFT_YELLOW),
    ALL_RED,
    _east_west(LEFT_YELLOW),
    _east_west(LEFT_GREEN),
    _east_west(LEFT_YELLOW),
    ALL_RED,
    ALL_RED,
    ALL_RED,
]

PHASES_PER_SCENARIO = 4
SCENARIO_COUNT = 4
PEDESTRIAN_PHASE_INDEX = 16
CLEARANCE_PHASE_INDEX = 17
PEDESTRIAN_LIGHTS = ALL_RED

assert len(PHASES) == len(PHASE_DURATIONS)


def lights_for_phase(index: int) -> LightMap:
    """Return the light map of phase ``index``.

    Raises:
        IndexError: if ``index`` is outside the table; this signals a
            controller/table mismatch and is never clamped
    """
    if not 0 <= index < len(PHASES):
        raise IndexError(f"phase index {index} outside table of {len(PHASES)}")
    return PHASES[index]


def scenario_phase_index(scenario: int, sub_phase: int) -> int:
    """Absolute phase index of ``sub_phase`` within ``scenario``."""
    if not 0 <= scenario < SCENARIO_COUNT:
        raise IndexError(f"scenario {scenario} outside 0..{SCENARIO_COUNT - 1}")
    if not 0 <= sub_phase < PHASES_PER_SCENARIO:
        raise IndexError(f"sub-phase {sub_phase} outside 0..{PHASES_PER_SCENARIO - 1}")
    return scenario * PHASES_PER_SCENARIO + sub_phase
