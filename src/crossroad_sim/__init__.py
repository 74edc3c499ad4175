"""Four-way intersection simulation with fixed-timer and demand-responsive lights."""

from crossroad_sim.config import ConfigError, SimulationConfig, load_config
from crossroad_sim.controllers import (
    ControllerState,
    DemandResponsiveController,
    DemandSnapshot,
    FixedTimerController,
    LightController,
    controller_for,
)
from crossroad_sim.core import (
    DIRECTIONS,
    Bicycle,
    LightMap,
    LightState,
    MovementLights,
    MovementType,
    Pedestrian,
    RoadDirection,
    SimulationMetrics,
    Vehicle,
    VehicleState,
)
from crossroad_sim.geometry import WorldGeometry, generate_world_geometry, geometry_for_config
from crossroad_sim.scenario import Command, RunLog, ScenarioDriver, load_commands
from crossroad_sim.sim import IntersectionSimulation, TickResult

__all__ = [
    "DIRECTIONS",
    "RoadDirection",
    "MovementType",
    "LightState",
    "MovementLights",
    "LightMap",
    "Vehicle",
    "VehicleState",
    "Pedestrian",
    "Bicycle",
    "SimulationMetrics",
    "ConfigError",
    "SimulationConfig",
    "load_config",
    "WorldGeometry",
    "generate_world_geometry",
    "geometry_for_config",
    "ControllerState",
    "DemandSnapshot",
    "LightController",
    "FixedTimerController",
    "DemandResponsiveController",
    "controller_for",
    "IntersectionSimulation",
    "TickResult",
    "Command",
    "RunLog",
    "ScenarioDriver",
    "load_commands",
]
