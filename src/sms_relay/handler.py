from __future__ import annotations

import logging
from dataclasses import dataclass

from .broadcast import BroadcastResult, Broadcaster
from .classifier import Classifier, Command, normalise
from .store import SubscriberStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Replies:
    subscribed: str
    unsubscribed: str
    broadcast_sent: str

    @classmethod
    def for_service(cls, service_name: str) -> Replies:
        return cls(
            subscribed=(
                f"Thank you! You will receive updates from {service_name}. "
                "Reply STOP to unsubscribe"
            ),
            unsubscribed=(
                "You have been unsubscribed. "
                f"You will no longer receive updates from {service_name}"
            ),
            broadcast_sent="Sent your message to {count} subscribers.",
        )


@dataclass(frozen=True)
class Reply:
    text: str
    broadcast: BroadcastResult | None = None


NO_REPLY = Reply(text="")


class CommandHandler:
    def __init__(
        self,
        store: SubscriberStore,
        classifier: Classifier,
        broadcaster: Broadcaster,
        replies: Replies,
    ) -> None:
        self.store = store
        self.classifier = classifier
        self.broadcaster = broadcaster
        self.replies = replies

    def handle(self, contact: str, body: str) -> Reply:
        """
        Core business logic for one inbound SMS:
        - "start" words: mark the sender active
        - "stop" words: mark the sender inactive
        - anything else from an admin: broadcast it to all active subscribers
        - anything else from anyone else: no reply
        - an empty or blank message: no reply, whoever sent it

        Store failures propagate as StoreError so nothing is confirmed to the sender.
        The admin flag is never written from here.
        """
        command = self.classifier.classify(body)
        logger.info(
            "Inbound message classified", extra={"contact": contact, "command": command.value}
        )

        if command is Command.SUBSCRIBE:
            self.store.upsert(contact, is_active=True)
            return Reply(text=self.replies.subscribed)

        if command is Command.UNSUBSCRIBE:
            self.store.upsert(contact, is_active=False)
            return Reply(text=self.replies.unsubscribed)

        if not normalise(body):
            logger.info("Ignoring empty message", extra={"contact": contact})
            return NO_REPLY

        subscriber = self.store.get(contact)
        if subscriber is None:
            logger.info("Ignoring message from unknown sender", extra={"contact": contact})
            return NO_REPLY

        if not subscriber.is_admin:
            logger.info("Ignoring message from non-admin subscriber", extra={"contact": contact})
            return NO_REPLY

        result = self.broadcaster.broadcast(body)
        # Only the attempted count is reported back; failures are in the logs.
        return Reply(
            text=self.replies.broadcast_sent.format(count=result.attempted),
            broadcast=result,
        )
