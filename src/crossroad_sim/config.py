"""Simulation defaults and the configuration object consumed by the core.

All durations are measured in simulation ticks and all distances in
canvas pixels.
"""

import json
import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path

log = logging.getLogger(__name__)

# Display
WINDOW_WIDTH = 1200
WINDOW_HEIGHT = 900
FPS = 60
BACKGROUND_COLOR = (46, 101, 9)
ROAD_COLOR = (68, 64, 64)
PAVEMENT_COLOR = (128, 128, 128)
BIKE_LANE_COLOR = (120, 65, 65)
LINE_COLOR = (240, 240, 240)
TEXT_COLOR = (230, 230, 230)
SIGNAL_RED = (220, 40, 40)
SIGNAL_YELLOW = (240, 200, 40)
SIGNAL_GREEN = (40, 200, 60)
SIGNAL_OFF = (50, 50, 50)

# Geometry
LANE_COUNT = 1
LANE_WIDTH = 40.0
ZEBRA_WIDTH = 8.0
ZEBRA_GAP = 8.0
ZEBRA_LENGTH = 60.0
ZEBRA_MARGIN = 10.0
STOP_LINE_SETBACK = 80.0

# Entities
CAR_WIDTH = 20.0
CAR_HEIGHT = 40.0
CAR_SPEED = 2.0
PEDESTRIAN_SPEED = 0.6
PEDESTRIAN_SIZE = 10.0
BICYCLE_SPEED = 1.2
BICYCLE_SIZE = 14.0
SPEED_JITTER = 0.5

# Spawning
PEDESTRIAN_SPAWN_INTERVAL = 180
MAX_PEDESTRIANS_PER_PATH = 3
BICYCLE_SPAWN_INTERVAL = 300
MAX_BICYCLES_PER_PATH = 2

# Signal timing
PHASE_DURATIONS = (
    80, 320, 160, 80,
    80, 320, 160, 80,
    80, 320, 160, 80,
    80, 320, 160, 80,
    300,
    500,
)
SCENARIO_DURATIONS = (80, 320, 160, 80)
PEDESTRIAN_DURATION = 300
CLEARANCE_DURATION = 500
STARVATION_THRESHOLD = 2
PEDESTRIAN_SCENARIO_GAP = 4
BLINK_INTERVAL = 30

# Movement tolerances
FOLLOW_DISTANCE = 12.0
STOP_LINE_BUFFER = 4.0
CROSSING_STOP_MARGIN = 10.0
CROSSING_EXIT_MARGIN = 4.0
BICYCLE_YIELD_RADIUS = 30.0
VEHICLE_REMOVAL_MARGIN = 100.0
CROSSER_REMOVAL_MARGIN = 20.0

# Conditional-light pairing: road -> road whose straight flow it yields to
CONFLICTING_ROADS = {
    "north": "west",
    "west": "north",
    "south": "east",
    "east": "south",
}

# Continuous scenario playback
COMMAND_INTERVAL = 2.0


class ConfigError(ValueError):
    """Raised when a configuration file cannot be turned into a config."""


@dataclass(frozen=True)
class SimulationConfig:
    """Read-only configuration shared by the controller, engine and driver."""

    lane_count: int = LANE_COUNT
    lane_width: float = LANE_WIDTH
    zebra_width: float = ZEBRA_WIDTH
    zebra_gap: float = ZEBRA_GAP
    zebra_length: float = ZEBRA_LENGTH
    zebra_margin: float = ZEBRA_MARGIN
    canvas_width: int = WINDOW_WIDTH
    canvas_height: int = WINDOW_HEIGHT

    car_width: float = CAR_WIDTH
    car_height: float = CAR_HEIGHT
    car_speed: float = CAR_SPEED
    pedestrian_speed: float = PEDESTRIAN_SPEED
    pedestrian_size: float = PEDESTRIAN_SIZE
    bicycle_speed: float = BICYCLE_SPEED
    bicycle_size: float = BICYCLE_SIZE

    pedestrians_enabled: bool = True
    bicycles_enabled: bool = True
    pedestrian_spawn_interval: int = PEDESTRIAN_SPAWN_INTERVAL
    max_pedestrians_per_path: int = MAX_PEDESTRIANS_PER_PATH
    bicycle_spawn_interval: int = BICYCLE_SPAWN_INTERVAL
    max_bicycles_per_path: int = MAX_BICYCLES_PER_PATH

    phase_durations: tuple[int, ...] = PHASE_DURATIONS
    scenario_durations: tuple[int, ...] = SCENARIO_DURATIONS
    pedestrian_duration: int = PEDESTRIAN_DURATION
    clearance_duration: int = CLEARANCE_DURATION
    starvation_threshold: int = STARVATION_THRESHOLD
    pedestrian_scenario_gap: int = PEDESTRIAN_SCENARIO_GAP
    blink_interval: int = BLINK_INTERVAL

    follow_distance: float = FOLLOW_DISTANCE
    stop_line_buffer: float = STOP_LINE_BUFFER
    bicycle_yield_radius: float = BICYCLE_YIELD_RADIUS
    conflicting_roads: dict[str, str] = field(
        default_factory=lambda: dict(CONFLICTING_ROADS)
    )
    command_interval: float = COMMAND_INTERVAL

    def __post_init__(self):
        if isinstance(self.lane_count, bool) or not isinstance(self.lane_count, int):
            raise ConfigError(f"lane_count must be an integer, got {self.lane_count!r}")
        if self.lane_count < 1:
            raise ConfigError(f"lane_count must be >= 1, got {self.lane_count}")
        if len(self.phase_durations) != len(PHASE_DURATIONS):
            raise ConfigError(
                f"phase_durations needs {len(PHASE_DURATIONS)} entries, "
                f"got {len(self.phase_durations)}"
            )
        if len(self.scenario_durations) != len(SCENARIO_DURATIONS):
            raise ConfigError(
                f"scenario_durations needs {len(SCENARIO_DURATIONS)} entries, "
                f"got {len(self.scenario_durations)}"
            )
        durations = (
            *self.phase_durations,
            *self.scenario_durations,
            self.pedestrian_duration,
            self.clearance_duration,
        )
        if any(d <= 0 for d in durations):
            raise ConfigError("all phase durations must be positive")
        if self.car_speed <= 0 or self.pedestrian_speed <= 0 or self.bicycle_speed <= 0:
            raise ConfigError("speeds must be positive")
        self._check_conflicting_roads()

    def _check_conflicting_roads(self) -> None:
        pairs = self.conflicting_roads
        roads = set(CONFLICTING_ROADS)
        if not isinstance(pairs, Mapping) or set(pairs) != roads:
            raise ConfigError("conflicting_roads must map every road exactly once")
        for road, other in pairs.items():
            if not isinstance(other, str) or other not in roads:
                raise ConfigError(f"conflicting_roads[{road!r}] is not a road: {other!r}")
            if other == road:
                raise ConfigError(f"road {road!r} cannot yield to itself")

    def with_overrides(self, **overrides) -> "SimulationConfig":
        """Return a copy with the given fields replaced; ``None`` values are skipped."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **changes)

    def as_dict(self) -> dict:
        return asdict(self)


def load_config(path: str | Path) -> SimulationConfig:
    """Build a :class:`SimulationConfig` from a JSON file.

    Keys are the dataclass field names. Unknown keys are ignored with a
    warning; lists are accepted for tuple-valued fields.

    Raises:
        ConfigError: if the file is unreadable, not a JSON object, or
            holds values the config rejects
    """
    path = Path(path)
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"cannot read config {path}: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"config {path} must hold a JSON object")

    known = {f.name for f in fields(SimulationConfig)}
    values = {}
    for key, value in raw.items():
        if key not in known:
            log.warning("Ignoring unknown config key %r in %s", key, path)
            continue
        if isinstance(value, list):
            value = tuple(value)
        values[key] = value

    try:
        config = SimulationConfig(**values)
    except TypeError as exc:
        raise ConfigError(f"invalid config {path}: {exc}") from exc
    log.info("Loaded configuration from %s (%d lanes)", path, config.lane_count)
    return config
