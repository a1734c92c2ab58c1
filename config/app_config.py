from __future__ import annotations

from dataclasses import dataclass, fields
from pathlib import Path
from typing import Annotated, Literal, Optional

import typer
import yaml


@dataclass
class AppConfig:
    # Vehicle / controller
    vehicle: str = "sim"
    latency: float = 0.1
    speed_scale: float = 0.44704
    ref_v: float = 20.0
    horizon_steps: int = 10
    dt: float = 0.05
    max_wall_time: Optional[float] = None   # solve cap [s], dt when unset
    reference_display: Literal["waypoints", "polynomial"] = "waypoints"
    verbose: bool = False

    # Server
    host: str = "127.0.0.1"
    port: int = 4567
    actuation_delay: float = 0.1

    # Closed-loop simulation
    track: Literal["oval", "figure8", "random"] = "oval"
    sim_time: float = 30.0
    sim_dt: float = 0.1
    seed: int = 0
    plot: bool = True

    def controller_kwargs(self) -> dict:
        return {
            "latency": self.latency,
            "speed_scale": self.speed_scale,
            "reference_display": self.reference_display,
            "verbose": self.verbose,
        }

    def mpc_kwargs(self) -> dict:
        return {
            "horizon_steps": self.horizon_steps,
            "dt": self.dt,
            "ref_v": self.ref_v,
            "max_wall_time": self.max_wall_time,
            "verbose": self.verbose,
        }


def _load_yaml_defaults(path: Path) -> dict:
    """Load a YAML config file and return its contents as a dict."""
    with open(path) as f:
        data = yaml.safe_load(f)
    return data if isinstance(data, dict) else {}


def build_config(cli_values: dict, config: Optional[Path] = None) -> AppConfig:
    """Overlay CLI values on top of optional YAML defaults.

    Unknown YAML keys are rejected so typos don't silently fall back to defaults.
    """
    merged = dict(cli_values)
    if config is not None:
        yaml_defaults = _load_yaml_defaults(config)
        known = {f.name for f in fields(AppConfig)}
        unknown = sorted(set(yaml_defaults) - known)
        if unknown:
            raise typer.BadParameter(f"Unknown config keys: {', '.join(unknown)}")
        # YAML provides defaults; explicitly passed CLI args override
        merged = {**yaml_defaults, **{k: v for k, v in cli_values.items() if v is not None}}
    return AppConfig(**{k: v for k, v in merged.items() if v is not None})


app = typer.Typer(add_completion=False, help="MPC path tracking controller")


@app.command(help="Serve the controller over WebSocket/HTTP")
def serve(
    # ── Network ───────────────────────────────────────────────────
    host: Annotated[Optional[str], typer.Option(help="Bind address")] = None,
    port: Annotated[Optional[int], typer.Option(help="Listen port (simulator default 4567)")] = None,
    actuation_delay: Annotated[Optional[float], typer.Option(help="Seconds to hold each reply, mimicking actuator latency")] = None,

    # ── Controller ────────────────────────────────────────────────
    vehicle: Annotated[Optional[str], typer.Option(help="Vehicle preset: sim or rc")] = None,
    latency: Annotated[Optional[float], typer.Option(help="Actuation latency compensated in the model [s]")] = None,
    speed_scale: Annotated[Optional[float], typer.Option(help="Telemetry speed unit to m/s")] = None,
    ref_v: Annotated[Optional[float], typer.Option(help="Reference speed [m/s]")] = None,
    max_wall_time: Annotated[Optional[float], typer.Option(help="Solver wall-clock cap [s], defaults to dt")] = None,
    reference_display: Annotated[Optional[str], typer.Option(help="waypoints or polynomial")] = None,
    verbose: Annotated[Optional[bool], typer.Option("--verbose/--quiet", help="Print solver diagnostics")] = None,

    # ── Config file ───────────────────────────────────────────────
    config: Annotated[Optional[Path], typer.Option(help="Path to YAML config file")] = None,
):
    import uvicorn

    from backend.server import create_app

    args = build_config({
        "host": host, "port": port, "actuation_delay": actuation_delay,
        "vehicle": vehicle, "latency": latency, "speed_scale": speed_scale,
        "ref_v": ref_v, "max_wall_time": max_wall_time,
        "reference_display": reference_display, "verbose": verbose,
    }, config)
    uvicorn.run(create_app(args), host=args.host, port=args.port)


@app.command(help="Run a closed-loop simulation on a generated track")
def simulate(
    track: Annotated[Optional[str], typer.Option(help="Track shape: oval, figure8, random")] = None,
    sim_time: Annotated[Optional[float], typer.Option(help="Simulated duration [s]")] = None,
    sim_dt: Annotated[Optional[float], typer.Option(help="Control period [s]")] = None,
    seed: Annotated[Optional[int], typer.Option(help="Seed for the random track")] = None,
    vehicle: Annotated[Optional[str], typer.Option(help="Vehicle preset: sim or rc")] = None,
    latency: Annotated[Optional[float], typer.Option(help="Actuation latency [s]")] = None,
    ref_v: Annotated[Optional[float], typer.Option(help="Reference speed [m/s]")] = None,
    max_wall_time: Annotated[Optional[float], typer.Option(help="Solver wall-clock cap [s], defaults to dt")] = None,
    plot: Annotated[Optional[bool], typer.Option("--plot/--no-plot", help="Save plots")] = None,
    verbose: Annotated[Optional[bool], typer.Option("--verbose/--quiet", help="Print solver diagnostics")] = None,
    config: Annotated[Optional[Path], typer.Option(help="Path to YAML config file")] = None,
):
    from main import main as run_main

    args = build_config({
        "track": track, "sim_time": sim_time, "sim_dt": sim_dt, "seed": seed,
        "vehicle": vehicle, "latency": latency, "ref_v": ref_v,
        "max_wall_time": max_wall_time, "plot": plot, "verbose": verbose,
    }, config)
    run_main(args)
