from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi_mail import FastMail
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.config import OTP_CLEANUP_DELAY_MS, Settings, get_settings
from app.core.crypto import OtpCipher
from app.core.database import Base, create_db_engine, create_session_factory
from app.core.logger import get_logger
from app.core.mail import OtpMailer, build_mail_config
from app.core.queue import CleanupQueue, create_celery
from app.routers import auth, image, upload
from app.services.gemini import GeminiClient
from app.services.storage import CloudinaryStorage

logger = get_logger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    *,
    session_factory=None,
    cleanup_queue=None,
    mailer=None,
    storage=None,
    generator=None,
) -> FastAPI:
    """Build the API with its collaborators.

    Run with ``uvicorn app.main:create_app --factory``. Anything not passed
    in is constructed from ``settings``.
    """
    settings = settings or get_settings()

    engine = None
    if session_factory is None:
        engine = create_db_engine(settings.database_url)
        session_factory = create_session_factory(engine)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if engine is not None:
            Base.metadata.create_all(bind=engine)
        logger.info("api_starting")
        yield
        if engine is not None:
            engine.dispose()
        logger.info("api_stopped")

    app = FastAPI(title="SINEVA API", lifespan=lifespan)

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.cipher = OtpCipher(settings.otp_secret)
    app.state.cleanup_queue = cleanup_queue or CleanupQueue(create_celery(settings.broker_url))
    app.state.mailer = mailer or OtpMailer(
        FastMail(build_mail_config(settings)),
        valid_minutes=OTP_CLEANUP_DELAY_MS // 60000,
    )
    app.state.storage = storage or CloudinaryStorage(settings)
    app.state.generator = generator or GeminiClient(settings.gemini_api_key)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router)
    app.include_router(image.router)
    app.include_router(upload.router)

    @app.get("/")
    def root():
        return {"status": "running"}

    @app.get("/api")
    def api_root():
        return {"message": "Welcome to the API!"}

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "message": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = {}
        for err in exc.errors():
            loc = err["loc"]
            field = loc[-1] if len(loc) > 1 else loc[0]
            errors[str(field)] = err["msg"]

        return JSONResponse(
            status_code=422,
            content={
                "success": False,
                "message": "Validation error",
                "errors": errors,
            },
        )

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.exception("unhandled_exception", path=request.url.path, method=request.method)
        return JSONResponse(
            status_code=500,
            content={"success": False, "message": "Internal server error"},
        )

    return app
