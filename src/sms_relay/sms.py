from __future__ import annotations

from fastapi import Response
from pydantic import BaseModel, ConfigDict, Field, StrictStr
from twilio.twiml.messaging_response import MessagingResponse


class TwilioInbound(BaseModel):
    """Twilio webhook form fields we act on. Both must be plain strings."""

    model_config = ConfigDict(populate_by_name=True)

    body: StrictStr = Field(alias="Body")
    from_: StrictStr = Field(alias="From")


class InboundSms(BaseModel):
    phone: str
    text: str


def twiml_response(text: str, status_code: int = 200) -> Response:
    """
    Wrap `text` in a TwiML <Message>. An empty text gives a bare <Response/>
    so Twilio sends nothing back.
    """
    twiml = MessagingResponse()
    if text:
        twiml.message(text)
    return Response(content=str(twiml), status_code=status_code, media_type="text/xml")
