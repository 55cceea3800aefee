import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import AccessError, EnrollmentConflict
from app.core.logging import configure_logging

from app.db import registry  # noqa: F401  (registers every table on Base.metadata)

# Import routers
from app.api.access import router as access_router
from app.api.admin_enrollments import router as admin_enrollments_router
from app.api.admin_trials import router as admin_trials_router
from app.api.auth import router as auth_router
from app.api.courses import router as courses_router
from app.api.plans import router as plans_router
from app.api.subscriptions import router as subscriptions_router
from app.api.trials import router as trials_router

logger = logging.getLogger(__name__)

def create_app() -> FastAPI:
    configure_logging()
    app = FastAPI(title=settings.app_name)

    @app.get("/health")
    def health():
        return {"status" : "ok", "env" : settings.app_env}

    @app.exception_handler(AccessError)
    async def access_error_handler(request: Request, exc: AccessError):
        if isinstance(exc, EnrollmentConflict):
            # a process bug (e.g. double-approved payment), not a user-facing denial
            logger.error("Enrollment conflict on %s %s: %s", request.method, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.to_dict()})

    # Include authentication routes
    app.include_router(auth_router)
    # Include access-check and trial routes
    app.include_router(access_router)
    app.include_router(trials_router)
    app.include_router(admin_trials_router)
    # Include plan catalog and purchase activation routes
    app.include_router(plans_router)
    app.include_router(subscriptions_router)
    app.include_router(admin_enrollments_router)
    # Include course content routes
    app.include_router(courses_router)

    return app

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("app.main:app", host=settings.app_host, port=settings.app_port, log_level=settings.log_level)
