import logging
from dataclasses import asdict

import uvicorn
from fastapi import FastAPI, HTTPException

from config import load_config
from core.checkpoint import CheckpointCorruption
from core.process import ProcessBusy
from core.triggers import START_ENTRY_POINT
from logger_setup import setup_logger
from reset_service import build_process
from scheduler_service import SchedulerService

logger = logging.getLogger("control_api")


def create_app(config=None, process=None, db=None, scheduler=None):
    """
    HTTP control surface for an external orchestrator: start an invocation,
    read status, reset. Resume triggers are fired by the in-process scheduler.
    """
    if process is None:
        config = config or load_config()
        process, db = build_process(config)
    if scheduler is None and db is not None:
        scheduler = SchedulerService(
            db, {START_ENTRY_POINT: process.start},
            poll_interval=(config or {}).get("poll_interval_seconds", 5)
        )

    app = FastAPI(title="Sharing Reset v1.0.0")

    @app.on_event("startup")
    async def startup_event():
        if scheduler:
            scheduler.start()

    @app.on_event("shutdown")
    async def shutdown_event():
        if scheduler:
            scheduler.stop()
        if db is not None:
            db.close()

    @app.get("/api/status")
    def get_status():
        return process.get_status()

    # Plain def: runs in the threadpool, so a long invocation does not block the loop
    @app.post("/api/start")
    def start():
        try:
            result = process.start()
        except ProcessBusy as e:
            raise HTTPException(status_code=409, detail=str(e))
        except CheckpointCorruption as e:
            raise HTTPException(status_code=409, detail=f"Checkpoint is corrupt: {e}")
        body = asdict(result)
        body["status"] = result.status.name.lower()
        return body

    @app.post("/api/reset")
    def reset():
        try:
            process.reset_process()
        except ProcessBusy as e:
            raise HTTPException(status_code=409, detail=str(e))
        return {"status": "reset"}

    @app.get("/api/history")
    def history(limit: int = 20):
        if db is None:
            return {"runs": []}
        return {"runs": db.recent_runs(limit)}

    return app


if __name__ == "__main__":
    setup_logger(None)
    config = load_config()
    port = config.get("port", 8766)
    logger.info(f"Starting control API on port {port}")
    uvicorn.run(create_app(config), host="127.0.0.1", port=port)
