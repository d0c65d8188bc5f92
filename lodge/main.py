import logging
import threading
from contextlib import asynccontextmanager
from datetime import datetime
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from lodge.config import Settings
from lodge.db import Database
from lodge.routers import auth, rooms, reservations, admin
from lodge.utils.confirmation import ConfirmationCodeGenerator
from lodge.utils.errors import LodgeError
from lodge.utils.notifications import OutboxNotifier


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    "lifespan for opening and closing the database"
    app.state.database.init()
    yield
    app.state.notifier.flush()
    app.state.database.dispose()


def _field_name(location):
    # drop the "body"/"query"/"path" prefix
    parts = [str(part) for part in location[1:]] or [str(part) for part in location]
    return ".".join(parts)


def register_exception_handlers(app: FastAPI):
    @app.exception_handler(LodgeError)
    async def lodge_error_handler(request: Request, exc: LodgeError):
        return JSONResponse(status_code=exc.status_code, content={"message": exc.message})

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"message": str(exc.detail)},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"field": _field_name(error.get("loc", ())), "message": error.get("msg", "")}
            for error in exc.errors()
        ]
        missing = any(error.get("type") == "missing" for error in exc.errors())
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Missing required fields" if missing else "Validation error", "errors": errors},
        )

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception):
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        content = {"message": "Something went wrong!"}
        if app.state.settings.debug:
            content["error"] = str(exc)
        return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)


def create_app(settings: Settings = None, notifier=None) -> FastAPI:
    settings = settings or Settings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))

    app = FastAPI(
        lifespan=lifespan,
        title="Lodge booker",
        description="Room catalog, reservations and admin reporting for a small lodge, based on FastAPI.",
        version="0.1.0",
        license_info={
            "name": "MIT",
            "url": "https://opensource.org/licenses/MIT",
        },
    )

    app.state.settings = settings
    app.state.database = Database(settings.database_url)
    app.state.notifier = notifier or OutboxNotifier()
    app.state.confirmation_codes = ConfirmationCodeGenerator(settings.confirmation_prefix)
    app.state.booking_lock = threading.Lock()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization"],
        max_age=86400,
    )
    register_exception_handlers(app)

    app.include_router(auth.router)
    app.include_router(rooms.router)
    app.include_router(reservations.router)
    app.include_router(admin.router)

    @app.get("/health", tags=["health"])
    def health():
        return {"status": "OK", "timestamp": datetime.now().isoformat()}

    return app


app = create_app()
