import math
import random

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import seaborn as sns
from tqdm import tqdm

from crossroad_sim.config import FPS, SimulationConfig
from crossroad_sim.controllers import controller_for
from crossroad_sim.core import DIRECTIONS
from crossroad_sim.geometry import geometry_for_config, movement_type, spawn_position
from crossroad_sim.movement import select_lane
from crossroad_sim.sim import IntersectionSimulation

# Configuration
SEEDS = 10                 # Number of distinct runs per configuration (Monte Carlo)
SIM_TICKS = 10 * 60 * FPS  # Ten simulated minutes at the display rate
ALGORITHMS = ["timer", "intelligent"]

# Total incoming veh/hr across all 4 roads, split evenly
TRAFFIC_LEVELS = [
    300, 600, 900, 1200, 1500, 1800
]


def _spawn_clear(sim, road, end_road):
    """True if the spawn point of the lane used for road -> end_road is free."""
    lane = select_lane(movement_type(road, end_road), sim.geometry.lane_count)
    x, y, _ = spawn_position(road, lane, sim.geometry)
    for vehicle in sim.queued_vehicles(road):
        if math.hypot(vehicle.x - x, vehicle.y - y) < 2 * vehicle.height:
            return False
    return True


def run_headless_episode(rate_total, seed):
    """
    Runs one episode per light algorithm on identical arrivals.
    Returns a list of metric rows, one per algorithm.
    """
    config = SimulationConfig()
    geometry = geometry_for_config(config)

    # Bernoulli arrivals per tick and road, shared by both algorithms
    per_tick = rate_total / 4.0 / 3600.0 / FPS
    np_rng = np.random.default_rng(seed)
    arrivals = np_rng.random((SIM_TICKS, len(DIRECTIONS))) < per_tick
    destinations = np_rng.integers(0, 3, size=(SIM_TICKS, len(DIRECTIONS)))

    results = []
    for algorithm in ALGORITHMS:
        sim = IntersectionSimulation(
            config=config,
            geometry=geometry,
            controller=controller_for(algorithm, config),
            rng=random.Random(seed),
        )
        next_id = 0
        for t in range(SIM_TICKS):
            for i, road in enumerate(DIRECTIONS):
                if not arrivals[t, i]:
                    continue
                others = [d for d in DIRECTIONS if d != road]
                end_road = others[destinations[t, i]]
                if _spawn_clear(sim, road, end_road):
                    sim.add_vehicle(f"v{next_id}", road, end_road)
                    next_id += 1
            sim.tick()

        metrics = sim.metrics
        results.append({
            "Traffic_Vol": rate_total,
            "Seed": seed,
            "Algorithm": algorithm,
            "Mean_Wait": metrics.mean_wait / FPS,
            "P95_Wait": metrics.p95_wait / FPS,
            "Throughput": metrics.departed_count,
            "Max_Queue": metrics.max_queue,
        })

    return results


def main():
    print(f"Starting Validation Protocol...")
    print(f"Seeds: {SEEDS} | Traffic Levels: {len(TRAFFIC_LEVELS)} | Ticks: {SIM_TICKS}")

    all_data = []
    total_runs = len(TRAFFIC_LEVELS) * SEEDS

    with tqdm(total=total_runs) as pbar:
        for vol in TRAFFIC_LEVELS:
            for seed in range(SEEDS):
                all_data.extend(run_headless_episode(vol, seed))
                pbar.update(1)

    df = pd.DataFrame(all_data)

    df.to_csv("validation_results.csv", index=False)
    print("Simulation complete. Data saved to validation_results.csv")

    return df


def plot_results(df):
    """
    Generates comparison plots with uncertainty bands (Confidence Intervals).
    """
    sns.set_theme(style="whitegrid")

    # 1. Mean wait vs traffic volume
    plt.figure(figsize=(10, 6))
    sns.lineplot(
        data=df,
        x="Traffic_Vol",
        y="Mean_Wait",
        hue="Algorithm",
        style="Algorithm",
        markers=True,
        dashes=False,
        errorbar=("ci", 95)
    )
    plt.title("Impact of Traffic Volume on Waiting Time (95% CI)")
    plt.ylabel("Mean Wait (s)")
    plt.xlabel("Total Traffic Volume (veh/hr)")
    plt.savefig("validation_wait.png", dpi=300)
    plt.show()

    # 2. Throughput
    plt.figure(figsize=(10, 6))
    sns.lineplot(
        data=df,
        x="Traffic_Vol",
        y="Throughput",
        hue="Algorithm",
        errorbar=("ci", 95)
    )
    plt.title("Vehicles Served per Run")
    plt.ylabel("Departed Vehicles")
    plt.xlabel("Total Traffic Volume (veh/hr)")
    plt.savefig("validation_throughput.png", dpi=300)
    plt.show()


if __name__ == "__main__":
    df = main()
    plot_results(df)
