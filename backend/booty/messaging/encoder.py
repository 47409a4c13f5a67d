"""
MessagePack wire codec.

Every frame is a single map. Decoding enforces size limits so a hostile
client cannot make the server allocate large buffers.
"""

from typing import Any

import msgpack

MAX_FRAME_BYTES = 256 * 1024
MAX_STR_LEN = 64 * 1024
MAX_BIN_LEN = 64 * 1024
MAX_ARRAY_LEN = 1024
MAX_MAP_LEN = 256
MAX_EXT_LEN = 0  # no extension types on this protocol


class DecodeError(Exception):
    """Frame is not a valid, size-bounded MessagePack map."""


def encode(data: dict[str, Any]) -> bytes:
    return msgpack.packb(data, use_bin_type=True)


def decode(data: bytes) -> dict[str, Any]:
    """
    Decode one frame into a dict.

    Raises DecodeError for oversized frames, malformed data or non-map payloads.
    """
    if len(data) > MAX_FRAME_BYTES:
        raise DecodeError(f"frame too large: {len(data)} bytes (max {MAX_FRAME_BYTES})")
    try:
        result = msgpack.unpackb(
            data,
            raw=False,
            strict_map_key=True,
            max_str_len=MAX_STR_LEN,
            max_bin_len=MAX_BIN_LEN,
            max_array_len=MAX_ARRAY_LEN,
            max_map_len=MAX_MAP_LEN,
            max_ext_len=MAX_EXT_LEN,
        )
    except (msgpack.UnpackException, ValueError) as e:
        raise DecodeError(f"malformed MessagePack frame: {e}") from e

    if not isinstance(result, dict):
        raise DecodeError(f"expected a map, got {type(result).__name__}")
    return result
