from typing import Callable, Optional

from fastapi import FastAPI, Response

from app_controller.api.routes.applications import router as applications_router
from app_controller.core.repository import ApplicationRepository


def create_app(
    repository: ApplicationRepository,
    readiness: Optional[Callable[[], bool]] = None,
) -> FastAPI:
    app = FastAPI(title="Application Platform Controller")
    app.state.repository = repository

    @app.get("/healthz")
    def healthz():
        return {"status": "ok"}

    @app.get("/readyz")
    def readyz(response: Response):
        if readiness is not None and not readiness():
            response.status_code = 503
            return {"status": "not ready"}
        return {"status": "ready"}

    app.include_router(applications_router)
    return app
