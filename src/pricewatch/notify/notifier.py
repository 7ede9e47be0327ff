"""Abstract notification sender interface."""

from abc import ABC, abstractmethod


class Notifier(ABC):
    """Delivers a single (recipient, subject, body) message.

    Implementations raise on failure; callers decide whether a failure is
    fatal. Nothing is retried here.
    """

    @abstractmethod
    async def send(self, recipient: str, subject: str, body: str) -> None:
        ...
