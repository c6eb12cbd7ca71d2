import platform

import fastapi
from fastapi import FastAPI
from fastapi.responses import PlainTextResponse

from code_reviewer import __version__
from code_reviewer.webhook import WEBHOOK_PATH
from code_reviewer.webhook import router as webhook_router

app = FastAPI(title="AI Code Reviewer", version=__version__)
app.include_router(webhook_router, tags=["webhook"])


@app.get("/", response_class=PlainTextResponse)
def ping() -> str:
    return "pong"


@app.get("/health")
def health() -> dict:
    """Liveness report; does not touch GitHub or the review service."""

    return {
        "status": "ok",
        "service": "ai-code-reviewer",
        "version": __version__,
        "endpoints": ["/health", WEBHOOK_PATH],
        "runtime": {
            "python": platform.python_version(),
            "fastapi": fastapi.__version__,
        },
    }
