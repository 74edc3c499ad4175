"""Core data structures shared by the light controllers and the movement engine."""

from dataclasses import dataclass
from enum import Enum


class RoadDirection(Enum):
    """The four approach roads, also used as travel headings."""

    NORTH = "north"
    SOUTH = "south"
    EAST = "east"
    WEST = "west"


class MovementType(Enum):
    """Vehicle maneuver relative to its approach."""

    LEFT = "left"
    STRAIGHT = "straight"
    RIGHT = "right"


class LightState(Enum):
    """Signal shown to one movement of one road."""

    RED = "red"
    YELLOW = "yellow"
    GREEN = "green"
    CONDITIONAL = "conditional"


class VehicleState(Enum):
    MOVING = "moving"
    WAITING = "waiting"
    TURNING = "turning"


class PedestrianState(Enum):
    WALKING = "walking"
    WAITING = "waiting"
    CROSSING = "crossing"


class BicycleState(Enum):
    RIDING = "riding"
    WAITING = "waiting"
    CROSSING = "crossing"


DIRECTIONS = [
    RoadDirection.NORTH,
    RoadDirection.SOUTH,
    RoadDirection.EAST,
    RoadDirection.WEST,
]

MOVEMENTS = [MovementType.LEFT, MovementType.STRAIGHT, MovementType.RIGHT]

CAR_SPRITES = [
    "red-car",
    "blue-car",
    "green-car",
    "yellow-car",
    "purple-car",
    "pink-car",
    "turquoise-car",
]
PEDESTRIAN_SPRITES = [
    "pedestrian-yellow",
    "pedestrian-purple",
    "pedestrian-red",
    "pedestrian-blue",
]
BICYCLE_SPRITES = ["bike-black", "bike-orange"]


@dataclass(frozen=True)
class MovementLights:
    """Per-movement signals for a single road."""

    left: LightState
    straight: LightState
    right: LightState

    def __getitem__(self, movement: MovementType) -> LightState:
        return getattr(self, movement.value)


@dataclass(frozen=True)
class LightMap:
    """Signals for every road; exactly one is active per tick."""

    north: MovementLights
    south: MovementLights
    east: MovementLights
    west: MovementLights

    def __getitem__(self, road: RoadDirection) -> MovementLights:
        return getattr(self, road.value)

    def light_for(self, road: RoadDirection, movement: MovementType) -> LightState:
        return self[road][movement]


class Vehicle:
    """A car on the intersection.

    ``current_road`` is the heading the car is travelling towards. On the
    approach it is the road opposite ``start_road``; once the turn
    completes it becomes ``target_road``.
    """

    def __init__(
        self,
        vehicle_id: str,
        x: float,
        y: float,
        width: float,
        height: float,
        speed: float,
        start_road: RoadDirection,
        target_road: RoadDirection,
        current_road: RoadDirection,
        movement_type: MovementType,
        lane: int,
        sprite: str = CAR_SPRITES[0],
    ):
        self.id = vehicle_id
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.speed = speed
        self.start_road = start_road
        self.target_road = target_road
        self.current_road = current_road
        self.movement_type = movement_type
        self.lane = lane
        self.sprite = sprite
        self.state = VehicleState.MOVING
        self.route: list[RoadDirection] = [target_road]
        self.exited_approach = False
        self.wait_ticks = 0

    def __repr__(self) -> str:
        return (
            f"Vehicle({self.id!r}, {self.start_road.value}->{self.target_road.value}, "
            f"state={self.state.value}, pos=({self.x:.1f}, {self.y:.1f}))"
        )


class CrossingEntity:
    """Common state of pedestrians and bicycles using a crossing path."""

    def __init__(
        self,
        entity_id: str,
        x: float,
        y: float,
        size: float,
        speed: float,
        path: RoadDirection,
        direction: int,
        sprite: str,
    ):
        if direction not in (1, -1):
            raise ValueError(f"direction must be +1 or -1, got {direction}")
        self.id = entity_id
        self.x = x
        self.y = y
        self.width = size
        self.height = size
        self.speed = speed
        self.path = path
        self.direction = direction
        self.sprite = sprite


class Pedestrian(CrossingEntity):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state = PedestrianState.WALKING


class Bicycle(CrossingEntity):
    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.state = BicycleState.RIDING


class SimulationMetrics:
    """Throughput and waiting statistics for a run.

    Wait is counted in ticks a vehicle spent in the waiting state.
    """

    def __init__(self):
        self.departed_count = 0
        self.total_wait = 0
        self.waits: list[int] = []
        self.max_queue = 0

    def record_departure(self, vehicle: Vehicle) -> None:
        self.departed_count += 1
        self.total_wait += vehicle.wait_ticks
        self.waits.append(vehicle.wait_ticks)

    @property
    def mean_wait(self) -> float:
        """Average wait per departed vehicle."""
        if self.departed_count == 0:
            return 0.0
        return self.total_wait / self.departed_count

    @property
    def p95_wait(self) -> float:
        """95th percentile wait."""
        if not self.waits:
            return 0.0
        sorted_waits = sorted(self.waits)
        idx = int(0.95 * (len(sorted_waits) - 1))
        return float(sorted_waits[idx])
