"""
HTTP facade serving the latest snapshot to the dashboard.
"""

import logging
from typing import Protocol

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from dcamonitor.monitor.state import StateStore

logger = logging.getLogger(__name__)


class MonitorControl(Protocol):
    @property
    def is_running(self) -> bool: ...

    async def start(self) -> None: ...


def create_app(store: StateStore, monitor: MonitorControl) -> FastAPI:
    """
    Build the FastAPI application.

    ## Routes
    - `GET /api/state`: full snapshot
    - `GET /api/chart/{token}`: chart points for one tracked token
    - `POST /start`: start the monitor loop if it is not running
    """
    app = FastAPI(title="Jupiter DCA Monitor")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    @app.get("/api/state")
    async def get_state():
        snapshot = store.read().to_json_dict()
        return {
            "status": "success",
            "data": {
                "timestamp": snapshot["timestamp"],
                "summary": snapshot["summary"],
                "positions": snapshot["positions"],
                "chartData": snapshot["chartData"],
            },
        }

    @app.get("/api/chart/{token}")
    async def get_chart(token: str):
        if token not in store.symbols:
            return JSONResponse(status_code=400, content={"error": "Invalid token"})
        points = store.chart_data(token)
        return {
            "status": "success",
            "data": [point.model_dump(by_alias=True) for point in points],
        }

    @app.post("/start")
    async def start_monitor():
        if monitor.is_running:
            return JSONResponse(
                status_code=400, content={"message": "App is already running"}
            )
        try:
            await monitor.start()
        except Exception as e:
            logger.error(f"Error starting DCA monitor: {e}", exc_info=True)
            return JSONResponse(
                status_code=500, content={"message": "Failed to start app"}
            )
        return {"message": "App started successfully"}

    return app
