"""Simulation orchestrator: entity lifecycle and the per-tick pipeline."""

import copy
import itertools
import logging
import random
from dataclasses import dataclass, field

from crossroad_sim.config import SimulationConfig
from crossroad_sim.controllers import (
    ControllerState,
    DemandSnapshot,
    FixedTimerController,
    LightController,
    movement_key,
)
from crossroad_sim.core import (
    CAR_SPRITES,
    DIRECTIONS,
    Bicycle,
    LightMap,
    LightState,
    Pedestrian,
    PedestrianState,
    RoadDirection,
    SimulationMetrics,
    Vehicle,
    VehicleState,
)
from crossroad_sim.crossing import (
    advance_bicycle,
    advance_pedestrian,
    should_remove_crosser,
    spawn_bicycle,
    spawn_pedestrian,
    waiting_counts,
)
from crossroad_sim.geometry import (
    WorldGeometry,
    lane_point,
    movement_type,
    spawn_position,
)
from crossroad_sim.movement import (
    advance_vehicle,
    conflict_pairs,
    select_lane,
    should_remove_vehicle,
)

log = logging.getLogger(__name__)


@dataclass
class TickResult:
    """What happened during one tick."""

    lights: LightMap | None = None
    exited_approach: list[str] = field(default_factory=list)
    released: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)

    @property
    def ran(self) -> bool:
        return self.lights is not None


class IntersectionSimulation:
    """Owns every entity of one intersection and drives it tick by tick.

    A tick runs, in order: the light controller, pedestrians, bicycles,
    every vehicle, the removal sweep, and the aggregate recount. All
    movement decisions within a tick read the sibling positions captured
    before the first entity moved. Entity tables keep insertion order.
    """

    def __init__(
        self,
        config: SimulationConfig | None = None,
        geometry: WorldGeometry | None = None,
        controller: LightController | None = None,
        rng: random.Random | None = None,
        discrete: bool = False,
    ):
        """Initialize the simulation.

        Args:
            config: Simulation configuration; ticks are no-ops while missing
            geometry: Intersection layout; ticks are no-ops while missing
            controller: Light strategy, fixed-timer by default
            rng: Random number generator for spawning and sprites
            discrete: Vehicles only pass their stop line when released by
                :meth:`release_heads`
        """
        self.config = config
        self.geometry = geometry
        self.controller = controller or FixedTimerController(config)
        self.rng = rng or random.Random()
        self.discrete = discrete

        self.vehicles: dict[str, Vehicle] = {}
        self.pedestrians: dict[str, Pedestrian] = {}
        self.bicycles: dict[str, Bicycle] = {}
        self.metrics = SimulationMetrics()
        self._reset_state()

    def _reset_state(self) -> None:
        self.controller_state: ControllerState = self.controller.get_initial_state()
        self.lights: LightMap = self.controller_state.lights
        self.tick_count = 0
        self.blink_on = True
        self._blink_timer = 0
        self._pedestrian_timer = 0
        self._bicycle_timer = 0
        self._pedestrian_ids = itertools.count()
        self._bicycle_ids = itertools.count()
        self.road_counts = {road: 0 for road in DIRECTIONS}
        self.waiting_counts = {path: 0 for path in DIRECTIONS}
        self.demand = DemandSnapshot()

    @property
    def ready(self) -> bool:
        return self.config is not None and self.geometry is not None

    @property
    def pedestrian_green(self) -> bool:
        return self.controller.is_pedestrian_phase(self.controller_state)

    @property
    def clearance(self) -> bool:
        return self.controller.is_clearance_phase(self.controller_state)

    def configure(self, config: SimulationConfig, geometry: WorldGeometry) -> None:
        """Install a (new) configuration and geometry, then reset."""
        self.config = config
        self.geometry = geometry
        self.controller = type(self.controller)(config)
        self.reset()

    def set_controller(self, controller: LightController) -> None:
        """Switch light strategy; the new controller starts from its initial state."""
        log.info("Switching light controller to %s", controller.name)
        self.controller = controller
        self.controller_state = controller.get_initial_state()
        self.lights = self.controller_state.lights

    def reset(self) -> None:
        """Remove every entity and restart the controller."""
        log.info("Resetting simulation")
        self.vehicles.clear()
        self.pedestrians.clear()
        self.bicycles.clear()
        self.metrics = SimulationMetrics()
        self._reset_state()

    def add_vehicle(
        self, vehicle_id: str, start_road: RoadDirection, end_road: RoadDirection
    ) -> Vehicle | None:
        """Spawn a vehicle off the approach of ``start_road`` bound for ``end_road``.

        Returns:
            The new vehicle, or None when the request cannot be honoured
            (no configuration yet, duplicate id, or no such movement)
        """
        if not self.ready:
            log.debug("Ignoring vehicle %s: simulation not configured", vehicle_id)
            return None
        if vehicle_id in self.vehicles:
            log.warning("Ignoring vehicle %s: id already on the road", vehicle_id)
            return None
        try:
            movement = movement_type(start_road, end_road)
        except ValueError as exc:
            log.debug("Ignoring vehicle %s: %s", vehicle_id, exc)
            return None

        lane = select_lane(movement, self.geometry.lane_count)
        x, y, heading = spawn_position(start_road, lane, self.geometry)
        vehicle = Vehicle(
            vehicle_id,
            x,
            y,
            width=self.config.car_width,
            height=self.config.car_height,
            speed=self.config.car_speed,
            start_road=start_road,
            target_road=end_road,
            current_road=heading,
            movement_type=movement,
            lane=lane,
            sprite=self.rng.choice(CAR_SPRITES),
        )
        self.vehicles[vehicle_id] = vehicle
        self._recount()
        return vehicle

    def tick(self, force_phase: bool = False, release: bool = False) -> TickResult:
        """Run one full tick.

        Args:
            force_phase: Advance the controller to its next phase boundary
            release: Grant departures to queue heads facing a green light
                before vehicles move (discrete stepping)

        Returns:
            Summary of the tick; empty while the simulation is unconfigured
        """
        if not self.ready:
            return TickResult()

        self.tick_count += 1
        self._advance_lights(force_phase)
        result = TickResult(lights=self.lights)

        pedestrian_snapshot = [copy.copy(p) for p in self.pedestrians.values()]
        self._step_pedestrians()
        self._step_bicycles(pedestrian_snapshot)

        if release:
            result.released = self.release_heads()
        result.exited_approach = self._step_vehicles()
        result.removed = self._sweep()
        self._recount()
        return result

    def _advance_lights(self, force: bool) -> None:
        self._blink_timer += 1
        if self._blink_timer >= self.config.blink_interval:
            self._blink_timer = 0
            self.blink_on = not self.blink_on
        self.controller_state, self.lights = self.controller.tick(
            self.controller_state, self.demand, force=force
        )

    def _step_pedestrians(self) -> None:
        if self.config.pedestrians_enabled:
            self._pedestrian_timer += 1
            if (
                self._pedestrian_timer >= self.config.pedestrian_spawn_interval
                and not self.clearance
            ):
                self._pedestrian_timer = 0
                self._spawn_crossers(
                    self.pedestrians,
                    self.config.max_pedestrians_per_path,
                    "ped",
                    self._pedestrian_ids,
                    spawn_pedestrian,
                )

        green = self.pedestrian_green
        for pedestrian in self.pedestrians.values():
            advance_pedestrian(pedestrian, self.geometry, green)

    def _step_bicycles(self, pedestrian_snapshot: list[Pedestrian]) -> None:
        if self.config.bicycles_enabled:
            self._bicycle_timer += 1
            if (
                self._bicycle_timer >= self.config.bicycle_spawn_interval
                and not self.clearance
            ):
                self._bicycle_timer = 0
                self._spawn_crossers(
                    self.bicycles,
                    self.config.max_bicycles_per_path,
                    "bike",
                    self._bicycle_ids,
                    spawn_bicycle,
                )

        green = self.pedestrian_green
        for bicycle in self.bicycles.values():
            advance_bicycle(
                bicycle,
                pedestrian_snapshot,
                self.geometry,
                green,
                self.config.bicycle_yield_radius,
            )

    def _spawn_crossers(self, table: dict, cap: int, prefix: str, ids, spawner) -> None:
        for path in DIRECTIONS:
            on_path = sum(1 for entity in table.values() if entity.path == path)
            if on_path >= cap:
                continue
            entity_id = f"{prefix}_{next(ids)}"
            table[entity_id] = spawner(entity_id, path, self.geometry, self.config, self.rng)

    def _step_vehicles(self) -> list[str]:
        snapshot = [copy.copy(v) for v in self.vehicles.values()]
        pairs = conflict_pairs(self.config.conflicting_roads)
        exited = []
        for vehicle in self.vehicles.values():
            crossed = advance_vehicle(
                vehicle,
                snapshot,
                self.geometry,
                self.lights,
                follow_distance=self.config.follow_distance,
                stop_buffer=self.config.stop_line_buffer,
                pairs=pairs,
                hold_at_stop_line=self.discrete,
            )
            if crossed:
                exited.append(vehicle.id)
        return exited

    def _sweep(self) -> list[str]:
        removed = []
        width, height = self.geometry.canvas_width, self.geometry.canvas_height
        for vehicle_id, vehicle in list(self.vehicles.items()):
            if should_remove_vehicle(vehicle, width, height):
                self.metrics.record_departure(vehicle)
                del self.vehicles[vehicle_id]
                removed.append(vehicle_id)
        for table in (self.pedestrians, self.bicycles):
            for entity_id, entity in list(table.items()):
                if should_remove_crosser(entity, self.geometry):
                    del table[entity_id]
                    removed.append(entity_id)
        return removed

    def queued_vehicles(self, road: RoadDirection) -> list[Vehicle]:
        """Vehicles still on the approach of ``road``, in arrival order."""
        return [
            v for v in self.vehicles.values() if v.start_road == road and not v.exited_approach
        ]

    def release_heads(self) -> list[str]:
        """Let the first queued vehicle of each road leave if its light is green.

        A released vehicle is placed on its destination road just outside
        the junction and drives away from there.

        Returns:
            Ids of the released vehicles in arrival order, at most one per road
        """
        heads: dict[RoadDirection, Vehicle] = {}
        for vehicle in self.vehicles.values():
            if not vehicle.exited_approach and vehicle.start_road not in heads:
                heads[vehicle.start_road] = vehicle

        released = []
        for head in heads.values():
            if self.lights.light_for(head.start_road, head.movement_type) != LightState.GREEN:
                continue
            self._dispatch(head)
            released.append(head.id)
        return released

    def _dispatch(self, vehicle: Vehicle) -> None:
        along = self.geometry.stop_line_distance + vehicle.height / 2
        vehicle.x, vehicle.y = lane_point(vehicle.target_road, vehicle.lane, self.geometry, along)
        vehicle.current_road = vehicle.target_road
        vehicle.route = []
        vehicle.state = VehicleState.MOVING
        vehicle.exited_approach = True

    def demand_snapshot(self) -> DemandSnapshot:
        """Queued vehicles per movement and pedestrians waiting, read-only."""
        counts: dict[str, int] = {}
        for vehicle in self.vehicles.values():
            if vehicle.exited_approach:
                continue
            key = movement_key(vehicle.start_road, vehicle.movement_type)
            counts[key] = counts.get(key, 0) + 1
        pedestrians_waiting = sum(
            1 for p in self.pedestrians.values() if p.state == PedestrianState.WAITING
        )
        return DemandSnapshot(movement_counts=counts, pedestrians_waiting=pedestrians_waiting)

    def _recount(self) -> None:
        self.road_counts = {road: len(self.queued_vehicles(road)) for road in DIRECTIONS}
        self.waiting_counts = waiting_counts(self.pedestrians.values())
        self.demand = self.demand_snapshot()
        total_queue = sum(self.road_counts.values())
        if total_queue > self.metrics.max_queue:
            self.metrics.max_queue = total_queue
