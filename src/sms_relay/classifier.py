from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from .config import Settings


class Command(Enum):
    SUBSCRIBE = "subscribe"
    UNSUBSCRIBE = "unsubscribe"
    # Anything else: a broadcast from an admin, otherwise ignored
    UNCLASSIFIED = "unclassified"


def normalise(text: str) -> str:
    """Trim surrounding whitespace and case-fold."""
    return text.strip().casefold()


@dataclass(frozen=True)
class Vocabulary:
    subscribe: frozenset[str]
    unsubscribe: frozenset[str]

    def __post_init__(self) -> None:
        overlap = self.subscribe & self.unsubscribe
        if overlap:
            raise ValueError(f"Keywords used for both commands: {sorted(overlap)}")

    @classmethod
    def build(cls, subscribe: Iterable[str], unsubscribe: Iterable[str]) -> Vocabulary:
        return cls(
            subscribe=frozenset(normalise(word) for word in subscribe),
            unsubscribe=frozenset(normalise(word) for word in unsubscribe),
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> Vocabulary:
        return cls.build(settings.subscribe_keywords, settings.unsubscribe_keywords)


DEFAULT_VOCABULARY = Vocabulary.build(subscribe=("start",), unsubscribe=("stop",))


class Classifier:
    def __init__(self, vocabulary: Vocabulary = DEFAULT_VOCABULARY) -> None:
        self.vocabulary = vocabulary

    def classify(self, body: str) -> Command:
        # Whole-message match only: "restart" or "start now" are not commands.
        word = normalise(body)
        if word in self.vocabulary.subscribe:
            return Command.SUBSCRIBE
        if word in self.vocabulary.unsubscribe:
            return Command.UNSUBSCRIBE
        return Command.UNCLASSIFIED
