from __future__ import annotations  # FastAPI server exposing interview coaching sessions

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api.routes import router
from services.sessions import CoachService


logger = logging.getLogger(__name__)


def create_app(service: Optional[CoachService] = None) -> FastAPI:  # Build the app around one coaching service
    app = FastAPI(title="Interview Coach API")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"]
    )
    app.include_router(router)
    if service is None:
        service = CoachService.from_settings()
        logger.info(
            "Coaching service wired with %d predefined questions, providers=%s",
            len(service.bank),
            ",".join(service.evaluator.provider_names),
        )
    app.state.coach_service = service

    @app.get("/healthz")
    def healthz() -> dict:  # Liveness check
        return {"status": "ok"}

    return app


app = create_app()
