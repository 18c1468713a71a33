"""Shared test fixtures for the vcard_stream test suite.

Provides sample vCard content plus two source wrappers used to exercise the
tokenizer's reading layer: one that hands out bytes in fixed-size pieces and
one that replaces a clean end of stream with an injected exception.
"""

import io
import logging
from typing import List, Optional

import pytest

from vcard_stream.tokenizer import Tokenizer


SAMPLE_VCARD = (
    b"BEGIN:VCARD\r\n"
    b"VERSION:2.1\r\n"
    b"N;CHARSET=UTF-8:Doe;John;;;\r\n"
    b"FN;CHARSET=UTF-8:John Doe\r\n"
    b"item1.TEL;TYPE=CELL;TYPE=pref:+1 555 0100\r\n"
    b"NOTE;ENCODING=QUOTED-PRINTABLE:Line one=0D=0A\r\n"
    b"  continued\r\n"
    b"PHOTO;ENCODING=BASE64;TYPE=JPEG:AAAA\r\n"
    b" BBBB\r\n"
    b"\tCCCC\r\n"
    b"END:VCARD\r\n"
    b"BEGIN:VCARD\r\n"
    b"VERSION:3.0\r\n"
    b"FN:Jane Roe\r\n"
    b"END:VCARD\r\n"
)


class ChunkedReader(io.RawIOBase):
    """Binary source that returns at most ``piece`` bytes per read."""

    def __init__(self, data: bytes, piece: int = 1):
        self._data = data
        self._pos = 0
        self._piece = piece

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        if size is None or size < 0:
            size = len(self._data)
        size = min(size, self._piece)
        chunk = self._data[self._pos:self._pos + size]
        self._pos += len(chunk)
        return chunk


class EOFErrorReader(io.RawIOBase):
    """Binary source that raises ``error`` instead of signalling end of stream."""

    def __init__(self, data: bytes, error: Optional[Exception] = None):
        self._inner = io.BytesIO(data)
        self._error = error

    def readable(self) -> bool:
        return True

    def read(self, size: int = -1) -> bytes:
        chunk = self._inner.read(size)
        if not chunk and self._error is not None:
            raise self._error
        return chunk


def collect(tokenizer: Tokenizer) -> List:
    """Drain a tokenizer into a list."""
    tokens = []
    while True:
        token = tokenizer.next_token()
        if token is None:
            return tokens
        tokens.append(token)


@pytest.fixture
def sample_vcard() -> bytes:
    return SAMPLE_VCARD


@pytest.fixture
def sample_vcf(tmp_path):
    """SAMPLE_VCARD written to a .vcf file."""
    path = tmp_path / "contacts.vcf"
    path.write_bytes(SAMPLE_VCARD)
    return path


@pytest.fixture
def chunked_reader():
    return ChunkedReader


@pytest.fixture
def eof_error_reader():
    return EOFErrorReader


@pytest.fixture
def drain():
    return collect


@pytest.fixture(autouse=True)
def reset_vcard_logger():
    """Drop handlers installed by setup_logger so they don't outlive capsys."""
    yield
    logger = logging.getLogger("vcard_stream")
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
