# zerohunger/main.py
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from zerohunger.app_logger import get_logger
from zerohunger.core.config import settings
from zerohunger.core.errors import DependencyUnavailable, DonationError
from zerohunger.deps import Services, build_services
from zerohunger.routers import admin as admin_router
from zerohunger.routers import donations as donations_router
from zerohunger.routers import ngo as ngo_router
from zerohunger.routers import restaurant as restaurant_router

log = get_logger("api")

def create_app(services: Optional[Services] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        svc = services or build_services(settings)
        app.state.services = svc
        # indexes first so the first geo query has its 2dsphere index
        await svc.startup()
        log.info("services ready (store=%s)", type(svc.store).__name__)
        yield
        await svc.shutdown()
        if services is None and settings.store_backend == "mongo":
            from zerohunger.db import get_client
            get_client().close()

    app = FastAPI(lifespan=lifespan, title="ZeroHunger API")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DonationError)
    async def _donation_error(request: Request, ex: DonationError):
        log.warning("%s %s -> %s: %s", request.method, request.url.path, ex.code, ex.message)
        headers = {"Retry-After": "5"} if isinstance(ex, DependencyUnavailable) else None
        return JSONResponse({"detail": ex.message, "code": ex.code}, status_code=ex.status_code, headers=headers)

    @app.exception_handler(RequestValidationError)
    async def _validation_error(request: Request, ex: RequestValidationError):
        fields = ", ".join(".".join(str(p) for p in e["loc"][1:]) or "body" for e in ex.errors())
        return JSONResponse(
            {"detail": f"Missing or invalid fields: {fields}", "code": "invalid_input"},
            status_code=400,
        )

    # ---------------- Include routers ----------------
    app.include_router(donations_router.router)     # /api/donations
    app.include_router(ngo_router.router)           # /api/ngo
    app.include_router(restaurant_router.router)    # /api/restaurant
    app.include_router(admin_router.router)         # /api/admin

    @app.get("/health")
    def health():
        return {"ok": True}

    return app

app = create_app()
