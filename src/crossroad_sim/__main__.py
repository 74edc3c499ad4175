"""Command-line interface and main event loop for the intersection simulation."""

import logging
import random

import click
import pygame

from crossroad_sim.config import (
    FPS,
    ConfigError,
    SimulationConfig,
    load_config,
)
from crossroad_sim.controllers import CONTROLLERS, controller_for
from crossroad_sim.geometry import geometry_for_config
from crossroad_sim.logging_setup import setup_logging
from crossroad_sim.render import draw_frame
from crossroad_sim.scenario import CommandError, ScenarioDriver, load_commands
from crossroad_sim.sim import IntersectionSimulation

log = logging.getLogger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def _build_simulation(
    config_path: str | None, algorithm: str, lanes: int | None, seed: int
) -> IntersectionSimulation:
    try:
        config = load_config(config_path) if config_path else SimulationConfig()
        config = config.with_overrides(lane_count=lanes)
    except ConfigError as exc:
        raise click.BadParameter(str(exc)) from exc
    return IntersectionSimulation(
        config=config,
        geometry=geometry_for_config(config),
        controller=controller_for(algorithm, config),
        rng=random.Random(seed),
    )


def _load_commands(path: str | None):
    if path is None:
        return []
    try:
        return load_commands(path)
    except CommandError as exc:
        raise click.BadParameter(str(exc)) from exc


@click.group()
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default="INFO",
    show_default=True,
    help="Minimum severity written to the log",
)
@click.option("--log-file", default=None, help="Also log to this rotating file")
def main(log_level: str, log_file: str | None) -> None:
    """Four-way intersection simulation with selectable light control."""
    setup_logging(getattr(logging, log_level.upper()), log_file)


@main.command()
@click.option("--config", "config_path", default=None, help="JSON configuration file")
@click.option("--commands", "commands_path", default=None, help="JSON command file to play")
@click.option(
    "--algorithm",
    type=click.Choice(sorted(CONTROLLERS)),
    default="timer",
    show_default=True,
    help="Light control strategy",
)
@click.option("--lanes", type=click.IntRange(min=1), default=None, help="Lanes per direction")
@click.option("--seed", default=0, show_default=True, help="Random seed for reproducibility")
@click.option(
    "--discrete",
    is_flag=True,
    help="Apply one command per S key press instead of on a timer",
)
@click.option("--export", "export_path", default=None, help="Write the run export here on exit")
def run(
    config_path: str | None,
    commands_path: str | None,
    algorithm: str,
    lanes: int | None,
    seed: int,
    discrete: bool,
    export_path: str | None,
) -> None:
    """Open the interactive window.

    SPACE pauses, S applies the next command in discrete mode, R resets
    playback and A switches between the light algorithms. Close the
    window to exit.
    """
    sim = _build_simulation(config_path, algorithm, lanes, seed)
    driver = ScenarioDriver(sim, _load_commands(commands_path), discrete=discrete)

    pygame.init()
    pygame.display.set_caption("Intersection Simulation")
    screen = pygame.display.set_mode((sim.config.canvas_width, sim.config.canvas_height))
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Arial", 16)

    running = True
    paused = False
    while running:
        clock.tick(FPS)

        for event in pygame.event.get():
            if event.type == pygame.QUIT:
                running = False
            elif event.type == pygame.KEYDOWN:
                if event.key == pygame.K_SPACE:
                    paused = not paused
                elif event.key == pygame.K_s and discrete:
                    driver.advance()
                elif event.key == pygame.K_r:
                    driver.reset()
                elif event.key == pygame.K_a:
                    other = "intelligent" if sim.controller.name == "timer" else "timer"
                    sim.set_controller(controller_for(other, sim.config))

        if not paused and not discrete:
            driver.update()

        hud = [f"Command {driver.index}/{len(driver.commands)}"]
        if paused:
            hud.append("PAUSED (Press SPACE to continue)")
        elif discrete:
            hud.append("Press S to apply the next command")
        draw_frame(screen, font, sim, hud)
        pygame.display.flip()

    pygame.quit()

    if export_path:
        driver.run_log.export(export_path)


@main.command()
@click.argument("commands_path", type=click.Path(exists=True, dir_okay=False))
@click.option(
    "--output",
    "output_path",
    default="output.json",
    show_default=True,
    help="Where to write the run export",
)
@click.option("--config", "config_path", default=None, help="JSON configuration file")
@click.option(
    "--algorithm",
    type=click.Choice(sorted(CONTROLLERS)),
    default="timer",
    show_default=True,
    help="Light control strategy",
)
@click.option("--lanes", type=click.IntRange(min=1), default=None, help="Lanes per direction")
@click.option("--seed", default=0, show_default=True, help="Random seed for reproducibility")
def replay(
    commands_path: str,
    output_path: str,
    config_path: str | None,
    algorithm: str,
    lanes: int | None,
    seed: int,
) -> None:
    """Play a command file headlessly in discrete mode and export the result."""
    sim = _build_simulation(config_path, algorithm, lanes, seed)
    driver = ScenarioDriver(sim, _load_commands(commands_path), discrete=True)
    run_log = driver.run()
    run_log.export(output_path)
    left = sum(len(step) for step in run_log.step_statuses)
    click.echo(
        f"{len(run_log.step_statuses)} steps, {left} vehicles left, written to {output_path}"
    )


if __name__ == "__main__":
    main()
