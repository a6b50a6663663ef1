from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Protocol

from .store import SubscriberStore

logger = logging.getLogger(__name__)


class Sender(Protocol):
    def send(self, to: str, body: str) -> None: ...


@dataclass(frozen=True)
class BroadcastResult:
    attempted: int
    succeeded: int
    failed: int


class Broadcaster:
    def __init__(self, store: SubscriberStore, sender: Sender) -> None:
        self.store = store
        self.sender = sender

    def broadcast(self, body: str) -> BroadcastResult:
        """
        Send `body` to every active subscriber and wait for all sends to settle.

        - the active list is read once; later (un)subscribes are not picked up
        - one worker per subscriber, no ordering between sends
        - a failed send is logged and counted, it never stops the others
        - nothing is retried here
        """
        subscribers = self.store.list_active()
        if not subscribers:
            logger.info("Broadcast skipped, no active subscribers")
            return BroadcastResult(attempted=0, succeeded=0, failed=0)

        succeeded = 0
        failed = 0

        with ThreadPoolExecutor(max_workers=len(subscribers)) as executor:
            future_to_contact = {
                executor.submit(self.sender.send, subscriber.contact, body): subscriber.contact
                for subscriber in subscribers
            }

            for future in as_completed(future_to_contact):
                contact = future_to_contact[future]
                try:
                    future.result()
                except Exception as exc:
                    logger.warning(
                        "Broadcast send failed",
                        extra={"contact": contact, "error": str(exc)},
                    )
                    failed += 1
                else:
                    succeeded += 1

        result = BroadcastResult(attempted=len(subscribers), succeeded=succeeded, failed=failed)
        logger.info(
            "Broadcast completed",
            extra={
                "attempted": result.attempted,
                "succeeded": result.succeeded,
                "failed": result.failed,
            },
        )
        return result
