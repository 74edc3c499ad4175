"""Traffic-light control strategies.

A controller is a pure state machine: ``tick`` takes the previous
:class:`ControllerState` (plus an optional demand snapshot) and returns
the next state together with the :class:`LightMap` that is active for
the tick. Controllers keep no per-run data of their own, so one instance
can serve any number of simulations.
"""

import logging
import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field, replace

from crossroad_sim.config import SimulationConfig
from crossroad_sim.core import DIRECTIONS, MOVEMENTS, LightMap, MovementType, RoadDirection
from crossroad_sim.phases import (
    ALL_RED,
    CLEARANCE_PHASE_INDEX,
    PEDESTRIAN_LIGHTS,
    PEDESTRIAN_PHASE_INDEX,
    PHASES,
    SCENARIO_COUNT,
    lights_for_phase,
    scenario_phase_index,
)

log = logging.getLogger(__name__)

# Roads and movements served by each scenario, in phase-table order
SCENARIO_MOVEMENTS: list[tuple[tuple[RoadDirection, ...], tuple[MovementType, ...]]] = [
    (
        (RoadDirection.NORTH, RoadDirection.SOUTH),
        (MovementType.STRAIGHT, MovementType.RIGHT),
    ),
    (
        (RoadDirection.EAST, RoadDirection.WEST),
        (MovementType.STRAIGHT, MovementType.RIGHT),
    ),
    ((RoadDirection.NORTH, RoadDirection.SOUTH), (MovementType.LEFT,)),
    ((RoadDirection.EAST, RoadDirection.WEST), (MovementType.LEFT,)),
]


def movement_key(road: RoadDirection, movement: MovementType) -> str:
    """Key of a movement in a demand snapshot, e.g. ``"north_left"``."""
    return f"{road.value}_{movement.value}"


MOVEMENT_KEYS = tuple(
    movement_key(road, movement) for road in DIRECTIONS for movement in MOVEMENTS
)


def _non_negative_int(value) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value) or value < 0:
        return 0
    return int(value)


@dataclass(frozen=True)
class DemandSnapshot:
    """Queued vehicles per movement and pedestrians waiting, sampled once per tick."""

    movement_counts: Mapping[str, int] = field(default_factory=dict)
    pedestrians_waiting: int = 0

    def count(self, road: RoadDirection, movement: MovementType) -> int:
        return self.movement_counts.get(movement_key(road, movement), 0)

    @property
    def total_queued(self) -> int:
        """Queued vehicles over all twelve movements; unknown keys are ignored."""
        return sum(self.movement_counts.get(key, 0) for key in MOVEMENT_KEYS)

    @classmethod
    def coerce(cls, raw) -> "DemandSnapshot":
        """Turn whatever the caller supplied into a usable snapshot.

        Accepts ``None``, a snapshot, or a mapping using either the
        ``movement_counts``/``pedestrians_waiting`` keys or the
        ``movementCount``/``pedestrianWaiting`` keys of the JSON form.
        Anything malformed counts as zero demand.
        """
        if isinstance(raw, cls):
            counts = raw.movement_counts
            waiting = raw.pedestrians_waiting
        elif isinstance(raw, Mapping):
            counts = raw.get("movement_counts", raw.get("movementCount"))
            waiting = raw.get("pedestrians_waiting", raw.get("pedestrianWaiting"))
        else:
            return cls()

        clean: dict[str, int] = {}
        if isinstance(counts, Mapping):
            for key, value in counts.items():
                if isinstance(key, str):
                    clean[key] = _non_negative_int(value)
        return cls(movement_counts=clean, pedestrians_waiting=_non_negative_int(waiting))


@dataclass(frozen=True)
class IntelligentPayload:
    """State only the demand-responsive controller needs."""

    scenario: int = 0
    phase_in_scenario: int = 0
    skipped: tuple[int, ...] = (0,) * SCENARIO_COUNT
    is_pedestrian: bool = False
    is_clearance: bool = False
    scenarios_since_pedestrian: int = 0
    demand: DemandSnapshot | None = None


@dataclass(frozen=True)
class ControllerState:
    """State owned by a controller; the engine only reads ``lights``.

    ``algorithm`` tags which controller produced the state and
    ``payload`` carries that controller's extra fields, if any.
    """

    algorithm: str
    current_phase: int
    phase_timer: int
    lights: LightMap
    payload: IntelligentPayload | None = None


class LightController(ABC):
    """Abstract base for light phase strategies."""

    name = "abstract"

    def __init__(self, config: SimulationConfig | None = None):
        self.config = config or SimulationConfig()

    @abstractmethod
    def get_initial_state(self) -> ControllerState:
        """State the controller starts from (and returns to on reset)."""

    @abstractmethod
    def tick(
        self, state: ControllerState, demand=None, force: bool = False
    ) -> tuple[ControllerState, LightMap]:
        """Advance one tick.

        Args:
            state: State returned by the previous call
            demand: Optional demand snapshot for this tick
            force: Treat the current phase as having reached its duration
                (manual single-step advancement)

        Returns:
            The next state and the light map active for this tick
        """

    @abstractmethod
    def is_pedestrian_phase(self, state: ControllerState) -> bool:
        """True while pedestrians and cyclists have a green light."""

    @abstractmethod
    def is_clearance_phase(self, state: ControllerState) -> bool:
        """True during the all-red phase that empties the crossings."""

    def advance_phase(
        self, state: ControllerState, demand=None
    ) -> tuple[ControllerState, LightMap]:
        """Jump straight to the next phase boundary."""
        return self.tick(state, demand, force=True)


class FixedTimerController(LightController):
    """Cycles the 18-phase table with a fixed duration per phase."""

    name = "timer"

    def __init__(self, config: SimulationConfig | None = None):
        super().__init__(config)
        self.durations = tuple(self.config.phase_durations)
        if len(self.durations) != len(PHASES):
            raise IndexError(
                f"{len(self.durations)} phase durations for {len(PHASES)} phases"
            )

    @property
    def cycle_length(self) -> int:
        """Ticks in one full cycle of the table."""
        return sum(self.durations)

    def duration_of(self, phase: int) -> int:
        if not 0 <= phase < len(self.durations):
            raise IndexError(f"phase index {phase} outside duration table")
        return self.durations[phase]

    def get_initial_state(self) -> ControllerState:
        return ControllerState(self.name, 0, 0, lights_for_phase(0))

    def tick(
        self, state: ControllerState, demand=None, force: bool = False
    ) -> tuple[ControllerState, LightMap]:
        next_timer = state.phase_timer + 1
        if force or next_timer >= self.duration_of(state.current_phase):
            next_phase = (state.current_phase + 1) % len(PHASES)
            lights = lights_for_phase(next_phase)
            return ControllerState(self.name, next_phase, 0, lights), lights

        lights = lights_for_phase(state.current_phase)
        return replace(state, phase_timer=next_timer, lights=lights), lights

    def is_pedestrian_phase(self, state: ControllerState) -> bool:
        return state.current_phase == PEDESTRIAN_PHASE_INDEX

    def is_clearance_phase(self, state: ControllerState) -> bool:
        return state.current_phase == CLEARANCE_PHASE_INDEX


def score_scenario(scenario: int, demand: DemandSnapshot) -> int:
    """Sum of queued vehicles on the movements ``scenario`` serves."""
    roads, movements = SCENARIO_MOVEMENTS[scenario]
    return sum(demand.count(road, movement) for road in roads for movement in movements)


class DemandResponsiveController(LightController):
    """Chooses the next scenario from queued demand.

    Sub-phase durations never change; demand only decides which scenario
    runs next and whether a pedestrian phase is inserted between
    scenarios. A scenario skipped ``starvation_threshold`` times while
    vehicles were waiting for it takes precedence over busier ones.
    """

    name = "intelligent"

    def __init__(self, config: SimulationConfig | None = None):
        super().__init__(config)
        self.scenario_durations = tuple(self.config.scenario_durations)
        self.pedestrian_duration = self.config.pedestrian_duration
        self.clearance_duration = self.config.clearance_duration
        self.starvation_threshold = self.config.starvation_threshold
        self.pedestrian_gap = self.config.pedestrian_scenario_gap

    def get_initial_state(self) -> ControllerState:
        return ControllerState(
            self.name, 0, 0, lights_for_phase(0), payload=IntelligentPayload()
        )

    def is_pedestrian_phase(self, state: ControllerState) -> bool:
        return self._payload(state).is_pedestrian

    def is_clearance_phase(self, state: ControllerState) -> bool:
        return self._payload(state).is_clearance

    def select_scenario(
        self, skipped: tuple[int, ...], demand: DemandSnapshot
    ) -> tuple[int, tuple[int, ...]]:
        """Pick the next scenario and update the skip counters.

        Starved scenarios with waiting vehicles restrict the candidate set;
        the highest score wins and ties go to the lowest index.

        Returns:
            Chosen scenario index and the new skip counters
        """
        scores = [score_scenario(i, demand) for i in range(SCENARIO_COUNT)]
        starved = [
            i
            for i in range(SCENARIO_COUNT)
            if skipped[i] >= self.starvation_threshold and scores[i] > 0
        ]
        candidates = starved or list(range(SCENARIO_COUNT))

        chosen = candidates[0]
        for i in candidates[1:]:
            if scores[i] > scores[chosen]:
                chosen = i

        new_skipped = tuple(
            0 if i == chosen else (count if scores[i] == 0 else count + 1)
            for i, count in enumerate(skipped)
        )
        if starved:
            log.debug("Starvation override among %s, chose scenario %d", starved, chosen)
        log.debug("Scenario scores %s -> scenario %d, skipped %s", scores, chosen, new_skipped)
        return chosen, new_skipped

    def pedestrians_due(self, demand: DemandSnapshot, scenarios_since: int) -> bool:
        """Whether to insert a pedestrian phase at a scenario boundary.

        Pedestrians must be waiting, and either enough scenarios have run
        since the last pedestrian phase or no vehicle is queued anywhere.
        """
        if demand.pedestrians_waiting <= 0:
            return False
        return scenarios_since >= self.pedestrian_gap or demand.total_queued == 0

    def tick(
        self, state: ControllerState, demand=None, force: bool = False
    ) -> tuple[ControllerState, LightMap]:
        demand = DemandSnapshot.coerce(demand)
        payload = replace(self._payload(state), demand=demand)
        state = replace(state, payload=payload)
        next_timer = state.phase_timer + 1

        if payload.is_clearance:
            if force or next_timer >= self.clearance_duration:
                return self._start_scenario(state, demand, scenarios_since=0)
            return self._hold(state, next_timer)

        if payload.is_pedestrian:
            if force or next_timer >= self.pedestrian_duration:
                log.info("Pedestrian phase over, clearing crossings")
                cleared = replace(
                    state,
                    current_phase=CLEARANCE_PHASE_INDEX,
                    phase_timer=0,
                    lights=ALL_RED,
                    payload=replace(payload, is_pedestrian=False, is_clearance=True),
                )
                return cleared, cleared.lights
            return self._hold(state, next_timer)

        if force or next_timer >= self.scenario_durations[payload.phase_in_scenario]:
            next_sub = payload.phase_in_scenario + 1
            if next_sub < len(self.scenario_durations):
                phase = scenario_phase_index(payload.scenario, next_sub)
                advanced = replace(
                    state,
                    current_phase=phase,
                    phase_timer=0,
                    lights=lights_for_phase(phase),
                    payload=replace(payload, phase_in_scenario=next_sub),
                )
                return advanced, advanced.lights

            scenarios_since = payload.scenarios_since_pedestrian + 1
            if self.pedestrians_due(demand, scenarios_since):
                log.info(
                    "Starting pedestrian phase (%d waiting, %d scenarios since last)",
                    demand.pedestrians_waiting,
                    scenarios_since,
                )
                walking = replace(
                    state,
                    current_phase=PEDESTRIAN_PHASE_INDEX,
                    phase_timer=0,
                    lights=PEDESTRIAN_LIGHTS,
                    payload=replace(
                        payload,
                        is_pedestrian=True,
                        is_clearance=False,
                        scenarios_since_pedestrian=scenarios_since,
                    ),
                )
                return walking, walking.lights
            return self._start_scenario(state, demand, scenarios_since)

        return self._hold(state, next_timer)

    def _start_scenario(
        self, state: ControllerState, demand: DemandSnapshot, scenarios_since: int
    ) -> tuple[ControllerState, LightMap]:
        payload = self._payload(state)
        scenario, skipped = self.select_scenario(payload.skipped, demand)
        phase = scenario_phase_index(scenario, 0)
        started = replace(
            state,
            current_phase=phase,
            phase_timer=0,
            lights=lights_for_phase(phase),
            payload=replace(
                payload,
                scenario=scenario,
                phase_in_scenario=0,
                skipped=skipped,
                is_pedestrian=False,
                is_clearance=False,
                scenarios_since_pedestrian=scenarios_since,
            ),
        )
        return started, started.lights

    @staticmethod
    def _hold(state: ControllerState, next_timer: int) -> tuple[ControllerState, LightMap]:
        held = replace(state, phase_timer=next_timer)
        return held, held.lights

    def _payload(self, state: ControllerState) -> IntelligentPayload:
        if state.payload is None:
            raise ValueError(f"state from {state.algorithm!r} controller has no payload")
        return state.payload


CONTROLLERS: dict[str, type[LightController]] = {
    FixedTimerController.name: FixedTimerController,
    DemandResponsiveController.name: DemandResponsiveController,
}


def controller_for(name: str, config: SimulationConfig | None = None) -> LightController:
    """Instantiate the controller registered under ``name``."""
    try:
        cls = CONTROLLERS[name]
    except KeyError:
        raise ValueError(
            f"unknown light algorithm {name!r}, expected one of {sorted(CONTROLLERS)}"
        ) from None
    return cls(config)
