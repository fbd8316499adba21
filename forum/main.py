import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from forum.cache import cache
from forum.config import settings
from forum.database import Base, build_engine, build_session_factory, get_db, ping
from forum.errors import ForumError, StorageError, ValidationError
from forum.middleware import RequestLogMiddleware
from forum.routers import auth, comments, posts, topics
from forum.schemas import HealthResponse
from forum.seed import seed_defaults

VERSION = "1.0.0"

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper(), format=settings.LOG_FORMAT)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: the engine is the only process-wide state.
    configure_logging()
    engine = build_engine(settings.DATABASE_URL, echo=settings.DEBUG)
    app.state.engine = engine
    app.state.session_factory = build_session_factory(engine)

    if settings.CREATE_TABLES_ON_STARTUP:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
    if settings.SEED_ON_STARTUP:
        async with app.state.session_factory() as session:
            await seed_defaults(session)
            await session.commit()

    await cache.connect()
    logger.info("Forum API started (env=%s)", settings.APP_ENV)
    yield
    # Shutdown
    await cache.disconnect()
    await engine.dispose()


app = FastAPI(
    title="Forum API",
    description="Topics, posts and comments with author-or-moderator editing rights",
    version=VERSION,
    lifespan=lifespan,
)

# Middleware
app.add_middleware(RequestLogMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ALLOW_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type"],
)


# Error rendering
@app.exception_handler(ForumError)
async def forum_error_handler(request: Request, exc: ForumError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "code": exc.code},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=ValidationError.status_code,
        content={
            "detail": "Invalid request",
            "code": ValidationError.code,
            "errors": jsonable_encoder(exc.errors()),
        },
    )


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=StorageError.status_code,
        content={"detail": "Storage failure", "code": StorageError.code},
    )


# Routers
app.include_router(auth.router)
app.include_router(topics.router)
app.include_router(posts.router)
app.include_router(comments.router)


@app.get("/health", response_model=HealthResponse)
async def health(db: AsyncSession = Depends(get_db)):
    await ping(db)
    return {"status": "healthy", "version": VERSION, "cache": cache.stats}
