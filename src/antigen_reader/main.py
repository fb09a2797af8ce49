"""FastAPI entrypoint for the antigen reader service."""
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .routes import evaluate
from .services.classifier import load_classifier
from .services.exceptions import ModelUnavailable
from .utils.logger import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the classifier once; requests fail with a 500 until it loads."""
    try:
        app.state.classifier = load_classifier(settings.classifier_path)
        logger.info("Successfully loaded model!")
    except ModelUnavailable as exc:
        app.state.classifier = None
        logger.error("Model failed to load: {error}", error=str(exc))
    yield
    app.state.classifier = None


app = FastAPI(title="Antigen Reader API", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(evaluate.router, tags=["evaluate"])


@app.get("/", tags=["system"])
async def root() -> dict[str, str]:
    return {"message": "Server is working."}


@app.get("/health", tags=["system"])
async def healthcheck(request: Request) -> dict:
    """Simple readiness endpoint for orchestration and CI checks."""
    classifier = getattr(request.app.state, "classifier", None)
    return {"status": "ok", "model_loaded": classifier is not None}


def run() -> None:
    logger.info("Server is running at http://{host}:{port}", host=settings.host, port=settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
