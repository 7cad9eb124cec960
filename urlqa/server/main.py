"""FastAPI server entry point"""

import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from urlqa import __version__
from urlqa.config import get_settings
from urlqa.exceptions import GroupNotFoundError, MessageNotFoundError
from urlqa.server.api.dependencies import get_conversation_controller
from urlqa.server.api.routes import chat, groups, health

logger = logging.getLogger(__name__)

_logging_configured = False


def setup_logging(logs_dir: Path) -> Path:
    """Configure logging with file output"""
    global _logging_configured
    log_file = logs_dir / "server.log"
    if _logging_configured:
        return log_file

    logs_dir.mkdir(parents=True, exist_ok=True)
    handlers = [
        logging.StreamHandler(),
        RotatingFileHandler(
            log_file,
            maxBytes=10 * 1024 * 1024,  # 10 MB
            backupCount=5,
            encoding="utf-8",
        ),
    ]

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # SDK transport logs are too chatty at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("google_genai").setLevel(logging.WARNING)

    _logging_configured = True
    return log_file


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan - startup and shutdown"""
    settings = get_settings()
    log_file = setup_logging(Path(settings.log_dir))
    logger.info(f"Starting urlQaGemini server, logs: {log_file}")

    controller = get_conversation_controller()
    if not settings.has_api_key:
        logger.warning("GEMINI_API_KEY is not set, chat is disabled")

    network = controller.network
    if network is not None and settings.connectivity_check_interval > 0:
        await network.check()
        network.start(settings.connectivity_check_interval)

    # Initial suggestions for the seeded active group
    controller.schedule_suggestions()

    logger.info("Server started successfully")

    yield

    logger.info("Shutting down server...")
    if network is not None:
        await network.stop()
    controller.cancel_suggestions()
    logger.info("Server stopped")


app = FastAPI(
    title="urlQaGemini API",
    description="Chat over a knowledge base of URLs and files with Gemini",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log all incoming requests"""
    logger.info(f">>> Incoming request: {request.method} {request.url}")
    response = await call_next(request)
    logger.info(f"<<< Response: {response.status_code}")
    return response


@app.exception_handler(GroupNotFoundError)
@app.exception_handler(MessageNotFoundError)
async def not_found_handler(request: Request, exc: Exception):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


# Register routes
app.include_router(health.router, prefix="/api/v1", tags=["health"])
app.include_router(groups.router, prefix="/api/v1/groups", tags=["groups"])
app.include_router(chat.router, prefix="/api/v1/chat", tags=["chat"])


def main():
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "urlqa.server.main:app",
        host=settings.host,
        port=settings.port,
        reload=False,
        log_level="info",
        access_log=True,
    )


if __name__ == "__main__":
    main()
