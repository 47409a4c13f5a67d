"""Shared broadcast utility for sending messages to a room's connections."""

from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

    from booty.messaging.protocol import ConnectionProtocol


async def broadcast_to_connections(
    connections: Iterable[ConnectionProtocol],
    message: dict[str, Any],
    exclude_connection_id: str | None = None,
) -> None:
    """Send a message to every connection, skipping one if excluded.

    Snapshot the iterable via list() so a concurrent disconnect cannot
    mutate it while we yield on send_message.
    """
    for connection in list(connections):
        if connection.connection_id != exclude_connection_id:
            with contextlib.suppress(RuntimeError, OSError):
                await connection.send_message(message)
