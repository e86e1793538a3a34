import logging
import os
import sys
import time
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.requests import Request

from api.chat.chat import router as chat_router
from api.chat.conversations import router as conversations_router
from models import ErrorResponse
from services.chat_service import ChatService
from services.conversation_service import ConversationService
from services.exceptions import (
    ChatBackendError,
    ConflictError,
    NotFoundError,
    PersistenceAfterGenerationError,
    ValidationError,
)
from services.llm_service import LLMService
from utils.mongodb_conn import MongodbConnection

load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger("chat")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting application initialization...")
    start_time = time.time()
    mongodb_conn = MongodbConnection()
    try:
        await mongodb_conn.connect()
        llm_service = LLMService()
    except Exception as e:
        logger.exception(f"❌ Failed to initialize application: {e}")
        mongodb_conn.close_mongo_client()
        raise

    db = mongodb_conn.get_database()
    app.state.mongodb_conn = mongodb_conn
    app.state.conversation_service = ConversationService(db, llm_service)
    app.state.chat_service = ChatService(db, llm_service)
    logger.info(f"✅ Application startup completed in {time.time() - start_time:.2f}s")

    yield

    mongodb_conn.close_mongo_client()
    logger.info("Application shutdown complete")


def error_response(status_code: int, error: str, detail: str, **extra) -> JSONResponse:
    body = ErrorResponse(error=error, detail=detail, **extra)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


def status_for(exc: ChatBackendError) -> int:
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, ConflictError):
        return 409
    return 500


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(PersistenceAfterGenerationError)
    async def partial_failure_handler(request: Request, exc: PersistenceAfterGenerationError):
        logger.error(f"[API] {request.method} {request.url.path}: {exc.message}")
        return error_response(500, exc.title, exc.message, reply=exc.reply)

    @app.exception_handler(ChatBackendError)
    async def backend_error_handler(request: Request, exc: ChatBackendError):
        status_code = status_for(exc)
        if status_code >= 500:
            logger.error(f"[API] {request.method} {request.url.path}: {exc.message}")
        else:
            logger.info(f"[API] {request.method} {request.url.path} -> {status_code}: {exc.message}")
        return error_response(status_code, exc.title, exc.message)

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return error_response(400, "Validation Error", str(exc))

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.exception(f"[API] Unhandled exception on {request.method} {request.url.path}")
        return error_response(500, "Internal Server Error", str(exc))


def create_app() -> FastAPI:
    app = FastAPI(title="StackBot Chat API", lifespan=lifespan)

    origins = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(chat_router)
    app.include_router(conversations_router)
    register_exception_handlers(app)

    @app.get("/health")
    async def health(request: Request):
        mongodb_conn = getattr(request.app.state, "mongodb_conn", None)
        if mongodb_conn is None or not await mongodb_conn.check_connection():
            return {"status": "error", "message": "MongoDB connection failed"}
        return {"status": "ok", "message": "Chat backend is running"}

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.getenv("HOST", "0.0.0.0"), port=int(os.getenv("PORT", 5000)))
