import asyncio
from typing import List, Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from backend.protocol import EVENT_PREFIX, MANUAL_FRAME, encode_event, parse_event
from config import ControllerConfig, MPCConfig, get_vehicle_config
from config.app_config import AppConfig
from controllers import PathTrackingController


class TelemetryRequest(BaseModel):
    waypoints_x: List[float]
    waypoints_y: List[float]
    x: float
    y: float
    psi: float
    speed: float
    steering_angle: float = 0.0
    throttle: float = 0.0


class CommandResponse(BaseModel):
    steering_angle: float = Field(ge=-1.0, le=1.0)
    throttle: float = Field(ge=-1.0, le=1.0)
    predicted_trajectory_x: List[float]
    predicted_trajectory_y: List[float]
    reference_x: List[float]
    reference_y: List[float]
    status: str
    solve_time: float
    error: str = ""


def build_controller(args: AppConfig) -> PathTrackingController:
    return PathTrackingController(
        vehicle_config=get_vehicle_config(args.vehicle),
        mpc_config=MPCConfig(**args.mpc_kwargs()),
        config=ControllerConfig(**args.controller_kwargs()),
    )


def create_app(args: Optional[AppConfig] = None,
               controller: Optional[PathTrackingController] = None) -> FastAPI:
    """
    Build the API around a single controller.

    Cycles are serialized with one lock: the controller carries its previous
    command and warm start from one cycle to the next.
    """
    args = args or AppConfig()
    controller = controller or build_controller(args)
    lock = asyncio.Lock()

    app = FastAPI(title="MPC Path Tracking Controller")

    # Configure CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # For local development
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.controller = controller
    app.state.config = args

    async def run_cycle(record: dict):
        async with lock:
            # The NLP solve blocks; keep it off the event loop
            return await run_in_threadpool(controller.step, record)

    @app.get("/")
    async def root():
        return {"message": "MPC path tracking controller is running"}

    @app.get("/stats")
    async def stats():
        return controller.get_statistics()

    @app.post("/control", response_model=CommandResponse)
    async def control(request: TelemetryRequest):
        command = await run_cycle(request.model_dump())
        return command.to_dict()

    @app.websocket("/")
    async def simulator(ws: WebSocket):
        """Simulator bridge: telemetry events in, steer events out."""
        await ws.accept()
        print("   [Server] Connected")
        try:
            while True:
                frame = await ws.receive_text()
                if len(frame) <= 2 or not frame.startswith(EVENT_PREFIX):
                    continue

                event, payload = parse_event(frame)
                if event is None:
                    # Manual driving
                    await ws.send_text(MANUAL_FRAME)
                    continue
                if event != "telemetry" or not isinstance(payload, dict):
                    continue

                command = await run_cycle(payload)
                if args.actuation_delay > 0:
                    # Mimic the actuator delay the controller compensates for
                    await asyncio.sleep(args.actuation_delay)
                await ws.send_text(encode_event("steer", command.to_simulator_dict()))
        except WebSocketDisconnect:
            print("   [Server] Disconnected")
            return

    return app
