"""Abstract bidirectional message channel used by the session layer."""

from abc import ABC, abstractmethod
from typing import Any

from booty.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    One client connection carrying MessagePack frames.

    Session and routing code only talk to this interface, so they can be
    exercised with an in-memory connection in tests.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Opaque id, also used as the player id of the human behind it."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        return decode(await self.receive_bytes())
