"""Webhook endpoints: channel configuration, test sends, and manual triggers."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status

from src.api.dependencies import get_dispatcher
from src.api.models import ErrorResponse, WebhookActionRequest
from src.notifications.dispatcher import NotificationDispatcher
from src.notifications.formatters import available_formats, get_formatter
from src.notifications.schemas import WEBHOOK_EVENT_TYPES

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get(
    "/webhooks",
    summary="Webhook channels, event catalogue, and delivery log",
)
async def get_webhooks(
    log_limit: int | None = Query(default=None, ge=0, le=10_000),
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> dict:
    store = dispatcher.webhook_store
    webhooks = await store.list() if store is not None else []
    logs = await dispatcher.get_logs(log_limit)
    return {
        "webhooks": [w.to_dict() for w in webhooks],
        "event_types": WEBHOOK_EVENT_TYPES,
        "formats": available_formats(),
        "logs": [entry.to_dict() for entry in logs],
    }


@router.post(
    "/webhooks",
    responses={
        400: {"model": ErrorResponse, "description": "Unknown action or missing field"},
        422: {"model": ErrorResponse, "description": "Invalid webhook configuration"},
    },
    summary="Test a channel, trigger an event, or save a channel",
)
async def post_webhook_action(
    request: WebhookActionRequest,
    dispatcher: NotificationDispatcher = Depends(get_dispatcher),
) -> dict:
    action = request.action

    if action == "test":
        if request.webhook is None:
            raise HTTPException(status_code=400, detail="'webhook' is required for test")
        result = await dispatcher.test_channel(request.webhook.to_config())
        logger.info("Webhook tested", webhook_id=request.webhook.id, success=result.success)
        return result.to_dict()

    if action == "trigger":
        if not request.event:
            raise HTTPException(status_code=400, detail="'event' is required for trigger")
        results = await dispatcher.trigger_channels(request.event, request.data)
        return {
            "success": True,
            "results": {cid: r.to_dict() for cid, r in results.items()},
        }

    if action == "save":
        if request.webhook is None:
            raise HTTPException(status_code=400, detail="'webhook' is required for save")
        store = dispatcher.webhook_store
        if store is None:
            raise HTTPException(status_code=400, detail="No webhook store configured")

        try:
            get_formatter(request.webhook.format)
        except KeyError as e:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=e.args[0],
            )

        existing = await store.get(request.webhook.id)
        config = request.webhook.to_config(
            created_at=existing.created_at if existing is not None else None,
        )
        if existing is not None:
            # The UI never sees secrets, so a blank one keeps the stored value
            if config.secret is None:
                config.secret = existing.secret
            config.last_triggered = existing.last_triggered
            config.last_status = existing.last_status

        await store.upsert(config)
        logger.info("Webhook saved", webhook_id=config.id, created=existing is None)
        return {
            "success": True,
            "message": "Webhook configuration saved",
            "webhook": config.to_dict(),
        }

    raise HTTPException(status_code=400, detail=f"Unknown action {action!r}")
