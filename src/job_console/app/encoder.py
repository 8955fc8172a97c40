from __future__ import annotations

import asyncio
import base64
import logging
import os
from pathlib import Path
from typing import BinaryIO, Union

from .errors import EncodingError

logger = logging.getLogger(__name__)

BinarySource = Union[bytes, bytearray, str, os.PathLike, BinaryIO]


async def encode(source: BinarySource) -> str:
    """Read binary input off the event loop and return base64 text without a data-URI prefix."""
    raw = await asyncio.to_thread(_read_bytes, source)
    if not raw:
        raise EncodingError("Binary input is empty")
    encoded = base64.b64encode(raw).decode("ascii")
    logger.debug("encode event=done input_bytes=%d output_chars=%d", len(raw), len(encoded))
    return encoded


def _read_bytes(source: BinarySource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, os.PathLike)):
        path = Path(source)
        try:
            return path.read_bytes()
        except OSError as exc:
            raise EncodingError(f"Could not read {path}: {exc.strerror or exc}") from exc
    read = getattr(source, "read", None)
    if read is None:
        raise EncodingError(f"Unsupported binary input type: {type(source).__name__}")
    try:
        data = read()
    except (OSError, ValueError) as exc:
        raise EncodingError(f"Could not read binary input: {exc}") from exc
    if not isinstance(data, (bytes, bytearray)):
        raise EncodingError("Binary input must be opened in binary mode")
    return bytes(data)
