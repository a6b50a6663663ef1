from __future__ import annotations

from functools import lru_cache

from requests import RequestException
from twilio.base.exceptions import TwilioException
from twilio.rest import Client

from .config import get_settings
from .errors import DispatchError


@lru_cache
def get_twilio_client() -> Client:
    settings = get_settings()

    if not settings.twilio_account_sid or not settings.twilio_auth_token:
        raise RuntimeError(
            "Twilio credentials are not configured (TWILIO_ACCOUNT_SID / TWILIO_AUTH_TOKEN)"
        )

    return Client(settings.twilio_account_sid, settings.twilio_auth_token)


class TwilioSender:
    """
    Outbound SMS through the Twilio REST API.

    Used by the broadcaster; confirmation replies go back as TwiML instead.
    """

    def __init__(
        self,
        client: Client | None = None,
        from_number: str | None = None,
        messaging_service_sid: str | None = None,
    ) -> None:
        self._client = client
        self.from_number = from_number
        self.messaging_service_sid = messaging_service_sid

    @classmethod
    def from_settings(cls) -> TwilioSender:
        settings = get_settings()
        return cls(
            from_number=settings.twilio_from_number,
            messaging_service_sid=settings.twilio_messaging_service_sid,
        )

    @property
    def client(self) -> Client:
        if self._client is None:
            self._client = get_twilio_client()
        return self._client

    def send(self, to: str, body: str) -> None:
        if self.messaging_service_sid:
            sender_kwargs = {"messaging_service_sid": self.messaging_service_sid}
        elif self.from_number:
            sender_kwargs = {"from_": self.from_number}
        else:
            raise RuntimeError(
                "TWILIO_FROM_NUMBER or TWILIO_MESSAGING_SERVICE_SID is not configured"
            )

        try:
            self.client.messages.create(to=to, body=body, **sender_kwargs)
        except (TwilioException, RequestException) as exc:
            raise DispatchError(to, str(exc)) from exc
