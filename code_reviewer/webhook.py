"""GitHub webhook ingestion."""

from __future__ import annotations

import time
from typing import Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from code_reviewer.dependencies import pipeline_dependency
from code_reviewer.logger import get_logger, log_success, log_with_context
from code_reviewer.services.pipeline import (
    AuthenticationFailure,
    InvalidPayload,
    ReviewPipeline,
)
from code_reviewer.utils.paths import TEMPLATES_DIR

router = APIRouter()
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

logger = get_logger()

WEBHOOK_PATH = "/webhook/github"


@router.get(WEBHOOK_PATH, summary="Webhook status page", response_class=HTMLResponse)
async def webhook_status(request: Request) -> HTMLResponse:
    """Show that the endpoint is up; deliveries must use POST."""

    return templates.TemplateResponse(
        request,
        "webhook_status.html",
        {"webhook_path": WEBHOOK_PATH},
    )


@router.post(WEBHOOK_PATH, summary="Receive GitHub pull request webhooks")
async def receive_webhook(
    request: Request,
    pipeline: ReviewPipeline = Depends(pipeline_dependency),
) -> Dict[str, str]:
    """Verify the delivery signature and run the review before answering."""

    start_time = time.time()
    delivery_id = request.headers.get("X-GitHub-Delivery")
    event = request.headers.get("X-GitHub-Event")
    ctx_logger = log_with_context(logger, delivery_id=delivery_id, event_type=event)
    ctx_logger.info("=== WEBHOOK RECEIVED ===")

    # The signature covers the exact bytes GitHub sent, so read them before any JSON decoding.
    raw_body = await request.body()
    signature = request.headers.get("X-Hub-Signature-256")

    outcome = await pipeline.run(raw_body, signature, event)

    if outcome.error is not None:
        error = outcome.error
        if isinstance(error, AuthenticationFailure):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
        if isinstance(error, InvalidPayload):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(error))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Review failed while {error.stage.value}",
        )

    if outcome.ignored:
        ctx_logger.debug(f"Webhook ignored: {outcome.reason}")
        return {"status": "ignored", "reason": outcome.reason or ""}

    log_success(
        logger,
        f"Webhook processed {event or 'pull_request'} event in {time.time() - start_time:.3f}s",
        delivery_id=delivery_id,
        event_type=event,
    )
    return {"status": "processed", "message": "Webhook processed successfully"}
