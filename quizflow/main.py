# /quizflow/main.py

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .core.config import CORS_ALLOW_ORIGINS
from .core.exceptions import PersistenceError
from .core.logging_config import configure_logging
from .db.database import create_all_tables
from .routers import attempts_router, embed_router, journey_router, quiz_router

logger = logging.getLogger(__name__)


# --- Startup ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    create_all_tables()
    logger.info("Quizflow backend %s started", app.version)
    yield


app = FastAPI(
    title="Quizflow Backend API",
    description="Grading and progression engine for multi-session quizzes.",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ALLOW_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error Translation ---
@app.exception_handler(PersistenceError)
async def persistence_error_handler(request: Request, exc: PersistenceError):
    # Driver messages stay in the log; clients get a stable message.
    logger.error("Persistence failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "A database operation failed. Please try again."},
    )


# --- Routers ---
app.include_router(quiz_router.router, prefix="/api/quiz", tags=["Quiz"])
app.include_router(attempts_router.router, prefix="/api/attempts", tags=["Attempts"])
app.include_router(journey_router.router, prefix="/api/journey", tags=["Journey"])
app.include_router(embed_router.router, prefix="/api/embed", tags=["Embed"])


@app.get("/", tags=["Health Check"])
async def read_root():
    return {"status": "Quizflow Backend is running!", "version": app.version}
