from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from .broadcast import Broadcaster, Sender
from .classifier import Classifier, Vocabulary
from .config import Settings, get_settings
from .db import SessionLocal, init_db
from .errors import StoreError
from .handler import CommandHandler, Replies
from .logging_utils import setup_logging
from .sms import InboundSms, TwilioInbound, twiml_response
from .store import SubscriberStore
from .twilio_client import TwilioSender

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: runs once before the app starts serving requests
    setup_logging(get_settings().log_level)
    init_db()
    yield


app = FastAPI(title="sms-relay", version="0.1.0", lifespan=lifespan)

# --- Admin protection ---

ALLOWED_ADMIN_IPS = {"127.0.0.1", "::1"}


def verify_admin(request: Request, settings: Settings = Depends(get_settings)) -> None:
    """
    Simple protection for /admin endpoints:
    - only allow requests from ALLOWED_ADMIN_IPS
    - require X-Admin-Token header that matches ADMIN_TOKEN env var
    """
    client_host = request.client.host if request.client else None

    if client_host not in ALLOWED_ADMIN_IPS:
        raise HTTPException(status_code=403, detail="Forbidden")

    if not settings.admin_token:
        raise HTTPException(status_code=500, detail="ADMIN_TOKEN not configured")

    if request.headers.get("X-Admin-Token") != settings.admin_token:
        raise HTTPException(status_code=401, detail="Invalid admin token")


# --- Dependencies ---


def get_store() -> SubscriberStore:
    return SubscriberStore(SessionLocal)


def get_sender() -> Sender:
    return TwilioSender.from_settings()


def get_handler(
    store: SubscriberStore = Depends(get_store),
    sender: Sender = Depends(get_sender),
    settings: Settings = Depends(get_settings),
) -> CommandHandler:
    return CommandHandler(
        store=store,
        classifier=Classifier(Vocabulary.from_settings(settings)),
        broadcaster=Broadcaster(store, sender),
        replies=Replies.for_service(settings.service_name),
    )


# --- Routes ---


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}


@app.post("/sms/inbound")
async def sms_inbound(request: Request, handler: CommandHandler = Depends(get_handler)) -> Response:
    """
    Twilio SMS webhook.

    Behaviour:
      - reject a missing or non-string Body / From with 400, before touching the store
      - run the command handler (subscribe, unsubscribe or admin broadcast)
      - answer with TwiML; an empty <Response/> when there is nothing to say
    """
    form = await request.form()
    try:
        inbound = TwilioInbound.model_validate({"Body": form.get("Body"), "From": form.get("From")})
    except ValidationError as exc:
        field = exc.errors()[0]["loc"][0]
        logger.warning("Rejected inbound webhook", extra={"field": field})
        return twiml_response(f"Invalid {field}", status_code=400)

    try:
        reply = await run_in_threadpool(handler.handle, inbound.from_, inbound.body)
    except StoreError:
        logger.exception("Subscriber store failure", extra={"contact": inbound.from_})
        return twiml_response("Something went wrong, please try again later.", status_code=500)

    return twiml_response(reply.text)


@app.post("/test/inbound")
def test_inbound(
    payload: InboundSms, handler: CommandHandler = Depends(get_handler)
) -> JSONResponse:
    """
    Local testing endpoint, same handler as /sms/inbound without Twilio form encoding.

    Accepts JSON:

      { "phone": "+15551234567", "text": "start" }
    """
    try:
        reply = handler.handle(payload.phone, payload.text)
    except StoreError as exc:
        logger.exception("Subscriber store failure", extra={"contact": payload.phone})
        raise HTTPException(status_code=500, detail="Subscriber store unavailable") from exc

    return JSONResponse({"status": "ok", "reply": reply.text})


@app.get("/admin/subscribers")
def admin_subscribers(
    store: SubscriberStore = Depends(get_store),
    _: None = Depends(verify_admin),
) -> JSONResponse:
    """
    Active subscribers, for checking who a broadcast would reach.

    Example:
      GET /admin/subscribers
    """
    subscribers = store.list_active()
    return JSONResponse(
        {
            "active": len(subscribers),
            "subscribers": [
                {"contact": s.contact, "is_admin": s.is_admin} for s in subscribers
            ],
        }
    )
