from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from .. import __version__
from .log import configure_logging
from .router import BridgeError, get_ollama_client, router
from .settings import get_settings

cfg = get_settings()
configure_logging(cfg.logging.level)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Bridge up, forwarding to Ollama at {}", cfg.ollama.base_url)
    yield
    await get_ollama_client().aclose()
    get_ollama_client.cache_clear()


app = FastAPI(title="Ollama Chat Bridge", version=__version__, lifespan=lifespan)

# Browser UI runs on its own port
app.add_middleware(
    CORSMiddleware,
    allow_origins=cfg.ui.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BridgeError)
async def bridge_error_handler(request: Request, exc: BridgeError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    logger.warning("Rejected {} {}: {}", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=400, content={"error": "Invalid request body"})


# Same routes at the root and under /api, where the browser client used to find them
app.include_router(router)
app.include_router(router, prefix="/api")

if __name__ == "__main__":
    uvicorn.run("ollama_chat.app.main:app",
                host=cfg.server.host,
                port=cfg.server.port,
                log_level=cfg.logging.level.lower())
