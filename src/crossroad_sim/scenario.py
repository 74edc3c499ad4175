"""Scripted scenario playback and the run export."""

import json
import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from pathlib import Path

from crossroad_sim.core import RoadDirection
from crossroad_sim.sim import IntersectionSimulation, TickResult

log = logging.getLogger(__name__)

ADD_VEHICLE = "addVehicle"
STEP = "step"


class CommandError(ValueError):
    """Raised when a command file cannot be read as a command list."""


@dataclass(frozen=True)
class Command:
    """One scenario instruction: spawn a vehicle, or take a step."""

    type: str
    vehicle_id: str | None = None
    start_road: RoadDirection | None = None
    end_road: RoadDirection | None = None


def _road(value) -> RoadDirection | None:
    try:
        return RoadDirection(value)
    except ValueError:
        return None


def parse_command(raw) -> Command | None:
    """Build a command from its JSON form.

    Returns:
        The command, or None for anything unusable (unknown type, missing
        fields, unknown road names); callers skip those
    """
    if not isinstance(raw, dict):
        log.debug("Skipping non-object command %r", raw)
        return None
    kind = raw.get("type")
    if kind == STEP:
        return Command(STEP)
    if kind != ADD_VEHICLE:
        log.debug("Skipping command of unknown type %r", kind)
        return None

    vehicle_id = raw.get("vehicleId")
    start = _road(raw.get("startRoad"))
    end = _road(raw.get("endRoad"))
    if not isinstance(vehicle_id, str) or not vehicle_id or start is None or end is None:
        log.debug("Skipping malformed addVehicle command %r", raw)
        return None
    return Command(ADD_VEHICLE, vehicle_id, start, end)


def parse_commands(raw_commands: Iterable) -> list[Command]:
    commands = []
    for raw in raw_commands:
        command = parse_command(raw)
        if command is not None:
            commands.append(command)
    return commands


def load_commands(path: str | Path) -> list[Command]:
    """Read a command file holding a list or a ``{"commands": [...]}`` object.

    Raises:
        CommandError: if the file is unreadable or has neither shape
    """
    path = Path(path)
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise CommandError(f"cannot read commands from {path}: {exc}") from exc
    if isinstance(data, dict):
        data = data.get("commands")
    if not isinstance(data, list):
        raise CommandError(f"{path} holds no command list")
    commands = parse_commands(data)
    log.info("Loaded %d of %d commands from %s", len(commands), len(data), path)
    return commands


class RunLog:
    """Vehicles that left their approach, one entry per ``step`` command."""

    def __init__(self):
        self.step_statuses: list[list[str]] = []

    def record_step(self, left_vehicles: Iterable[str]) -> None:
        self.step_statuses.append(list(left_vehicles))

    def to_dict(self) -> dict:
        return {
            "stepStatuses": [
                {"leftVehicles": list(left)} for left in self.step_statuses
            ]
        }

    def export(self, path: str | Path) -> None:
        path = Path(path)
        path.write_text(json.dumps(self.to_dict(), indent=2), encoding="utf-8")
        log.info("Wrote %d step statuses to %s", len(self.step_statuses), path)


class ScenarioDriver:
    """Feeds scenario commands to a simulation.

    In discrete mode commands are applied only when :meth:`advance` is
    called and every ``step`` forces a phase boundary, then releases at
    most one vehicle per road whose light is green. In continuous mode
    :meth:`update` ticks the simulation every call and applies the next
    command once ``command_interval`` seconds of wall-clock time passed.
    """

    def __init__(
        self,
        simulation: IntersectionSimulation,
        commands: list[Command],
        discrete: bool = False,
        command_interval: float | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.simulation = simulation
        self.commands = list(commands)
        self.discrete = discrete
        simulation.discrete = discrete
        if command_interval is None:
            config = simulation.config
            command_interval = config.command_interval if config is not None else 0.0
        self.command_interval = command_interval
        self.clock = clock
        self.index = 0
        self.run_log = RunLog()
        self._last_command_time: float | None = None

    @property
    def finished(self) -> bool:
        return self.index >= len(self.commands)

    def reset(self) -> None:
        """Rewind playback and reset the simulation."""
        self.simulation.reset()
        self.index = 0
        self.run_log = RunLog()
        self._last_command_time = None

    def apply(self, command: Command) -> None:
        if command.type == ADD_VEHICLE:
            self.simulation.add_vehicle(
                command.vehicle_id, command.start_road, command.end_road
            )
        elif command.type == STEP:
            if self.discrete:
                result = self.simulation.tick(force_phase=True, release=True)
                self.run_log.record_step(result.released)
            else:
                result = self.simulation.tick()
                self.run_log.record_step(result.exited_approach)

    def advance(self) -> Command | None:
        """Apply the next command, if any."""
        if self.finished:
            return None
        command = self.commands[self.index]
        self.index += 1
        self.apply(command)
        return command

    def update(self) -> TickResult:
        """Run one continuous-mode tick and apply a command when one is due."""
        result = self.simulation.tick()
        now = self.clock()
        if self._last_command_time is None:
            self._last_command_time = now
        elif now - self._last_command_time >= self.command_interval and not self.finished:
            self.advance()
            self._last_command_time = now
        return result

    def run(self) -> RunLog:
        """Apply every remaining command and return the run log."""
        while not self.finished:
            self.advance()
        return self.run_log
