"""Tests for source normalization (buffer vs stream inputs)."""

import io

import pytest

from photo_derivatives.source import read_source


class _AsyncReader:
    def __init__(self, data: bytes):
        self._data = data

    async def read(self) -> bytes:
        return self._data


class _ChunkStream:
    def __init__(self, chunks):
        self._chunks = list(chunks)

    def __aiter__(self):
        return self._gen()

    async def _gen(self):
        for chunk in self._chunks:
            yield chunk


class _FailingStream:
    def read(self):
        raise IOError("connection reset")


class TestReadSource:
    """All accepted shapes collapse to one bytes buffer."""

    @pytest.mark.asyncio
    async def test_bytes_passthrough(self):
        data = b"\x89PNG..."
        assert await read_source(data) is data

    @pytest.mark.asyncio
    async def test_bytearray_and_memoryview(self):
        assert await read_source(bytearray(b"abc")) == b"abc"
        assert await read_source(memoryview(b"abc")) == b"abc"

    @pytest.mark.asyncio
    async def test_sync_file_like(self):
        assert await read_source(io.BytesIO(b"file-bytes")) == b"file-bytes"

    @pytest.mark.asyncio
    async def test_async_reader(self):
        assert await read_source(_AsyncReader(b"async-bytes")) == b"async-bytes"

    @pytest.mark.asyncio
    async def test_async_chunk_iterator(self):
        stream = _ChunkStream([b"ab", bytearray(b"cd"), b"ef"])
        assert await read_source(stream) == b"abcdef"

    @pytest.mark.asyncio
    async def test_sync_chunk_iterable(self):
        assert await read_source(iter([b"12", b"34"])) == b"1234"

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        assert await read_source(io.BytesIO(b"")) == b""

    @pytest.mark.asyncio
    async def test_str_rejected(self):
        with pytest.raises(TypeError):
            await read_source("not bytes")

    @pytest.mark.asyncio
    async def test_str_chunks_rejected(self):
        with pytest.raises(TypeError):
            await read_source(iter(["a", "b"]))

    @pytest.mark.asyncio
    async def test_read_error_propagates(self):
        with pytest.raises(IOError, match="connection reset"):
            await read_source(_FailingStream())
