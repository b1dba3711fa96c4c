"""Email endpoints: provider status and test sends."""

import structlog
from fastapi import APIRouter, Depends

from src.api.dependencies import get_email_sender
from src.api.models import EmailTestRequest
from src.notifications.email import EmailSender

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.get("/email/providers", summary="Configured email providers")
async def get_providers(
    sender: EmailSender = Depends(get_email_sender),
) -> dict:
    return {"providers": [p.to_dict() for p in sender.configured_providers()]}


@router.post("/email/test", summary="Send a test email")
async def send_test_email(
    request: EmailTestRequest,
    sender: EmailSender = Depends(get_email_sender),
) -> dict:
    result = await sender.send_test(request.to)
    logger.info("Test email", success=result.success, provider=result.provider)
    return {
        "success": result.success,
        "message": (
            "Email connection test successful"
            if result.success
            else result.error or "Connection test failed"
        ),
        "message_id": result.message_id,
        "provider": result.provider,
    }
