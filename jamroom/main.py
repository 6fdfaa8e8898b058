import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from .api.routes import admin, auth, bookings, misc, profile, settings, slots
from .core.errors import BookingEngineError, error_payload
from .db.session import Base, engine, SessionLocal
from .config import get_settings
from .services.settings_service import add_admin_email, ensure_admin_settings
from .services.user_service import ensure_admin_exists

logger = logging.getLogger(__name__)

app = FastAPI(title="JamRoom Booking API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingEngineError)
async def booking_engine_error_handler(request: Request, exc: BookingEngineError) -> JSONResponse:
    if exc.retryable:
        logger.warning("Retryable failure on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=exc.status_code, content=error_payload(exc))


app.include_router(auth.router, prefix="/api/v1")
app.include_router(slots.router, prefix="/api/v1")
app.include_router(bookings.router, prefix="/api/v1")
app.include_router(admin.router, prefix="/api/v1")
app.include_router(settings.router, prefix="/api/v1")
app.include_router(profile.router, prefix="/api/v1")
app.include_router(misc.router, prefix="/api/v1")


@app.on_event("startup")
async def startup_event() -> None:
    Base.metadata.create_all(bind=engine)
    config = get_settings()
    with SessionLocal() as session:
        ensure_admin_settings(session)
        admin_user = ensure_admin_exists(
            session,
            config.default_admin_email,
            config.default_admin_password,
            config.default_admin_name,
        )
        add_admin_email(session, admin_user.email)
        session.commit()
