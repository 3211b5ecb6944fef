# src/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.app.config import settings
from src.app.domain.errors import RecipeAIError
from src.app.routers.recipes import ClientDisconnectedError, router as recipes_router

# Logging simples no stdout (bom para dev e containers)
logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)

CLIENT_CLOSED_REQUEST = 499

app = FastAPI(title="Recipes AI API", version="0.3.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(recipes_router)


@app.exception_handler(RecipeAIError)
async def recipe_ai_error_handler(request: Request, exc: RecipeAIError) -> JSONResponse:
    logger.info(
        "Request failed: path=%s error_type=%s status=%d error=%s",
        request.url.path,
        type(exc).__name__,
        exc.status_code,
        exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": exc.message},
    )


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    detail = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": f"{location}: {detail}" if location else detail},
    )


@app.exception_handler(ClientDisconnectedError)
async def client_disconnected_handler(request: Request, exc: ClientDisconnectedError) -> Response:
    return Response(status_code=CLIENT_CLOSED_REQUEST)


@app.get("/health")
def health():
    return {"ok": True}
