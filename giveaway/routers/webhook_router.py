"""Twitch EventSub webhook endpoint"""

import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse

from giveaway.core.config import Settings
from giveaway.core.dependencies import get_dispatcher, get_settings_dep, get_verifier
from giveaway.schemas.eventsub import (
    HEADER_MESSAGE_ID,
    HEADER_MESSAGE_SIGNATURE,
    HEADER_MESSAGE_TIMESTAMP,
    HEADER_MESSAGE_TYPE,
)
from giveaway.services import MessageDispatcher, SignatureVerifier, Verdict

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhook", tags=["webhooks"])

_REJECT_STATUS = {
    Verdict.MISSING_HEADERS: 400,
    Verdict.BAD_SIGNATURE: 403,
    Verdict.MALFORMED_PAYLOAD: 400,
}


async def _read_body(request: Request, limit: int) -> bytes | None:
    """Read the raw body, or return None as soon as it exceeds *limit* bytes."""
    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > limit:
        return None

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > limit:
            return None
    return bytes(body)


@router.post("/eventsub", response_class=PlainTextResponse)
async def eventsub_webhook(
    request: Request,
    message_id: str | None = Header(None, alias=HEADER_MESSAGE_ID),
    message_timestamp: str | None = Header(None, alias=HEADER_MESSAGE_TIMESTAMP),
    message_signature: str | None = Header(None, alias=HEADER_MESSAGE_SIGNATURE),
    message_type: str | None = Header(None, alias=HEADER_MESSAGE_TYPE),
    verifier: SignatureVerifier = Depends(get_verifier),
    dispatcher: MessageDispatcher = Depends(get_dispatcher),
    settings: Settings = Depends(get_settings_dep),
) -> PlainTextResponse:
    """Receive an EventSub delivery.

    The body is read as raw bytes so the signature is computed over exactly
    what Twitch signed. Processed and dropped notifications both get 200;
    only oversized bodies, authentication and envelope failures are rejected.
    """
    body = await _read_body(request, settings.webhook_max_body_bytes)
    if body is None:
        logger.warning(f"Rejected webhook {message_id or '<no id>'}: body too large")
        return PlainTextResponse("Payload too large", status_code=413)

    result = verifier.verify(
        body=body,
        message_id=message_id,
        timestamp=message_timestamp,
        signature=message_signature,
        message_type=message_type,
    )
    if not result.admitted:
        logger.warning(f"Rejected webhook {message_id or '<no id>'}: {result.detail}")
        return PlainTextResponse(result.detail, status_code=_REJECT_STATUS[result.verdict])

    outcome = dispatcher.dispatch(result.message)  # type: ignore[arg-type]
    logger.debug(f"Webhook {message_id} ({message_type}) -> {outcome.outcome.value}")
    return PlainTextResponse(outcome.body, status_code=200)
