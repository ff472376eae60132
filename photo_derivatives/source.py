"""Source normalization for the derivative pipeline.

Pillow needs random access to the source bytes: probing metadata and
producing two independent resizes from one decode both seek around the
buffer, which a single-pass stream cannot provide. Streams are therefore
drained into one contiguous buffer before any decode.
"""

import inspect
from typing import Any, AsyncIterable, BinaryIO, Iterable, Union

BufferLike = Union[bytes, bytearray, memoryview]
SourceInput = Union[BufferLike, BinaryIO, AsyncIterable[bytes], Iterable[bytes]]


def _to_bytes(chunk: Any) -> bytes:
    if isinstance(chunk, bytes):
        return chunk
    if isinstance(chunk, (bytearray, memoryview)):
        return bytes(chunk)
    raise TypeError(f"Expected bytes chunk, got {type(chunk).__name__}")


async def read_source(source: SourceInput) -> bytes:
    """Return the full source as one bytes buffer.

    Accepted inputs:
        - bytes / bytearray / memoryview (returned as bytes)
        - file-like objects with read(), sync or async
        - async iterators of byte chunks (e.g. httpx aiter_bytes())
        - sync iterables of byte chunks

    Read errors from the underlying stream propagate unchanged.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        return _to_bytes(source)

    if isinstance(source, str):
        raise TypeError("Image source must be bytes or a byte stream, not str")

    read = getattr(source, "read", None)
    if callable(read):
        data = read()
        if inspect.isawaitable(data):
            data = await data
        return _to_bytes(data)

    chunks: list[bytes] = []
    if hasattr(source, "__aiter__"):
        async for chunk in source:
            chunks.append(_to_bytes(chunk))
        return b"".join(chunks)

    if hasattr(source, "__iter__"):
        for chunk in source:
            chunks.append(_to_bytes(chunk))
        return b"".join(chunks)

    raise TypeError(f"Unsupported image source: {type(source).__name__}")
