"""
Streaming vCard tokenizer.

This module turns a byte stream in the vCard line-oriented format into a
sequence of structural tokens: property names, parameters and (possibly
folded) value lines. Input is consumed one physical line at a time, so whole
address books never need to be held in memory.

The tokenizer is a pull-based state machine with three modes:

    NAME  -> reads ``NAME[;PARAMS]:`` up to the colon
    PARAM -> splits the pending parameter text, one parameter per call
    VALUE -> reads one physical line of value content per call

Quoted-printable and base64 values are detected through the ENCODING
parameter and tracked as the line's active encoding, but their payloads are
returned as raw bytes. Decoding belongs to downstream consumers.

Dependencies:
    - dataclasses: Standard library for token value types
    - enum: Standard library for mode, encoding and token type enumerations
    - io: Standard library for in-memory byte streams
    - logging: Standard library for logging
    - typing: Standard library for type hints
"""
# pylint: disable=logging-fstring-interpolation

import io
import logging
from dataclasses import dataclass
from enum import Enum
from typing import BinaryIO, Callable, Dict, Iterator, Optional, Tuple, Union

logger = logging.getLogger("vcard_stream")

DEFAULT_CHUNK_SIZE = 4096

# Bytes that mark a folded continuation line
FOLD_WHITESPACE = (0x20, 0x09)


class VCardTokenizeError(ValueError):
    """Base class for malformed input and tokenizer state failures."""


class IncompleteNameError(VCardTokenizeError):
    """A logical line ended before its name/value separator (':')."""

    def __init__(self, name_bytes: bytes = b"") -> None:
        super().__init__("incomplete name, missing a colon")
        self.name_bytes = name_bytes


class UnknownEncodingError(VCardTokenizeError):
    """An ENCODING parameter carried a value the tokenizer does not know."""

    def __init__(self, encoding_name: str) -> None:
        super().__init__(f"unknown encoding: {encoding_name}")
        self.encoding = encoding_name
        self.encoding_name = encoding_name


class TokenizerStateError(VCardTokenizeError):
    """Internal state of the tokenizer is corrupted."""


class TokenType(Enum):
    NAME = "name"
    PARAM = "param"
    VALUE = "value"


class Mode(Enum):
    NAME = "name"
    PARAM = "param"
    VALUE = "value"


class Encoding(Enum):
    RAW = "raw"
    QUOTED_PRINTABLE = "quoted-printable"
    BASE64 = "base64"


ENCODING_NAMES: Dict[bytes, Encoding] = {
    b"7BIT": Encoding.RAW,
    b"8BIT": Encoding.RAW,
    b"QUOTED-PRINTABLE": Encoding.QUOTED_PRINTABLE,
    b"B": Encoding.BASE64,
    b"BASE64": Encoding.BASE64,
}


def lookup_encoding(name: bytes) -> Optional[Encoding]:
    """
    Map an ENCODING parameter value to an Encoding, ignoring case.

    :param name: Raw parameter value bytes
    :return: Matching Encoding or None if the name is unknown
    """
    return ENCODING_NAMES.get(name.upper())


@dataclass(frozen=True)
class NameToken:
    """Property name, without parameters or the ':' separator."""

    name: bytes

    @property
    def type(self) -> TokenType:
        return TokenType.NAME


@dataclass(frozen=True)
class ParamToken:
    """Property parameter. ``value`` is None for a bare parameter name."""

    name: bytes
    value: Optional[bytes] = None

    @property
    def type(self) -> TokenType:
        return TokenType.PARAM


@dataclass(frozen=True)
class ValueToken:
    """
    One physical line of a property value.

    ``value`` keeps its line terminator when the line had one. ``continues``
    is True when the value is folded onto the next physical line.
    """

    value: bytes
    continues: bool = False

    @property
    def type(self) -> TokenType:
        return TokenType.VALUE


Token = Union[NameToken, ParamToken, ValueToken]


class LookaheadReader:
    """
    Buffered reader over a binary stream with a one-byte pushback.

    The source only needs a ``read(size)`` method returning ``b""`` at end of
    stream. How the source splits its bytes into chunks never changes what
    this reader returns.
    """

    def __init__(self, stream: BinaryIO, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize the reader.

        Args:
            stream: Binary stream to read from
            chunk_size: Maximum number of bytes requested per source read
        """
        if chunk_size < 1:
            raise ValueError(f"chunk_size must be positive, got {chunk_size}")
        self.chunk_size = chunk_size
        self._stream = stream
        self._buffer = bytearray()
        self._eof = False
        self._last_byte: Optional[int] = None

    def _fill(self) -> bool:
        """
        Append the next chunk of the source to the buffer.

        Returns:
            False once the source is exhausted
        """
        if self._eof:
            return False
        chunk = self._stream.read(self.chunk_size)
        if not chunk:
            self._eof = True
            return False
        self._buffer.extend(chunk)
        return True

    def read_until(self, delimiter: bytes) -> Tuple[bytes, bool]:
        """
        Read bytes up to and including the delimiter.

        Args:
            delimiter: Single delimiter byte

        Returns:
            Tuple of (data, found). ``found`` is False when the stream ended
            first, in which case data holds whatever was left.
        """
        self._last_byte = None
        start = 0
        while True:
            index = self._buffer.find(delimiter, start)
            if index != -1:
                end = index + len(delimiter)
                data = bytes(self._buffer[:end])
                del self._buffer[:end]
                return data, True
            start = len(self._buffer)
            if not self._fill():
                data = bytes(self._buffer)
                self._buffer.clear()
                return data, False

    def read_byte(self) -> Optional[int]:
        """
        Read a single byte.

        Returns:
            The byte value, or None at end of stream
        """
        if not self._buffer and not self._fill():
            self._last_byte = None
            return None
        value = self._buffer[0]
        del self._buffer[0]
        self._last_byte = value
        return value

    def unread_byte(self) -> None:
        """
        Push the byte returned by the last read_byte() back onto the stream.

        Raises:
            RuntimeError: If the previous operation was not a read_byte()
        """
        if self._last_byte is None:
            raise RuntimeError("unread_byte() must follow a successful read_byte()")
        self._buffer.insert(0, self._last_byte)
        self._last_byte = None


class Tokenizer:
    """
    Pull-based vCard tokenizer.

    Each call to next_token() returns exactly one token, or None once the
    stream holds no more structural content. Iterating over the tokenizer
    yields the same tokens until end of stream.

    A tokenizer owns its reader and is not safe to share between threads.
    After it raises anything, callers must stop pulling tokens from it.
    """

    def __init__(
        self,
        stream: Union[BinaryIO, LookaheadReader],
        keep_fold_whitespace: bool = False,
        chunk_size: int = DEFAULT_CHUNK_SIZE
    ):
        """
        Initialize the tokenizer.

        Args:
            stream: Binary stream, or an existing LookaheadReader to reuse
            keep_fold_whitespace: Keep the space or tab that marks a folded
                line as the first byte of the next value token instead of
                dropping it
            chunk_size: Read size used when wrapping a plain stream
        """
        if isinstance(stream, LookaheadReader):
            self._reader = stream
        else:
            self._reader = LookaheadReader(stream, chunk_size)
        self.keep_fold_whitespace = keep_fold_whitespace
        self.mode = Mode.NAME
        self.encoding = Encoding.RAW
        self._pending_params = b""

        self._mode_handlers: Dict[Mode, Callable[[], Optional[Token]]] = {
            Mode.NAME: self._read_name,
            Mode.PARAM: self._read_param,
            Mode.VALUE: self._read_value,
        }
        self._value_handlers: Dict[Encoding, Callable[[], Optional[Token]]] = {
            Encoding.RAW: self._read_value_raw,
            Encoding.QUOTED_PRINTABLE: self._read_value_quoted_printable,
            Encoding.BASE64: self._read_value_base64,
        }

    @classmethod
    def from_bytes(cls, data: bytes, **kwargs) -> "Tokenizer":
        """Create a tokenizer over an in-memory byte string."""
        return cls(io.BytesIO(data), **kwargs)

    def __iter__(self) -> Iterator[Token]:
        return self

    def __next__(self) -> Token:
        token = self.next_token()
        if token is None:
            raise StopIteration
        return token

    def next_token(self) -> Optional[Token]:
        """
        Advance the state machine by one token.

        Returns:
            The next token, or None at end of stream

        Raises:
            IncompleteNameError: Stream ended inside a property name
            UnknownEncodingError: ENCODING parameter has an unknown value
            TokenizerStateError: Internal mode is corrupted
        """
        handler = self._mode_handlers.get(self.mode)
        if handler is None:
            raise TokenizerStateError(f"unknown parse mode: {self.mode}")
        return handler()

    def _read_name(self) -> Optional[Token]:
        data, found = self._reader.read_until(b":")
        if not found:
            if data:
                logger.debug(f"Stream ended inside property name: {data!r}")
                raise IncompleteNameError(data)
            logger.debug("End of vCard stream")
            return None

        # drop ':' and split off parameters at the first ';'
        data = data[:-1]
        self.encoding = Encoding.RAW
        index = data.find(b";")
        if index == -1:
            self.mode = Mode.VALUE
            self._pending_params = b""
            return NameToken(data)

        self.mode = Mode.PARAM
        self._pending_params = data[index + 1:]
        return NameToken(data[:index])

    def _read_param(self) -> Optional[Token]:
        index = self._pending_params.find(b";")
        if index != -1:
            current = self._pending_params[:index]
            self._pending_params = self._pending_params[index + 1:]
        else:
            current = self._pending_params
            self._pending_params = b""
            self.mode = Mode.VALUE

        index = current.find(b"=")
        if index == -1:
            return ParamToken(current)

        name, value = current[:index], current[index + 1:]
        if name.upper() == b"ENCODING":
            encoding = lookup_encoding(value)
            if encoding is None:
                encoding_name = value.decode("latin-1")
                logger.debug(f"Unknown ENCODING parameter value: {encoding_name}")
                raise UnknownEncodingError(encoding_name)
            logger.debug(f"Value encoding switched to {encoding.value}")
            self.encoding = encoding
        return ParamToken(name, value)

    def _read_value(self) -> Optional[Token]:
        handler = self._value_handlers.get(self.encoding)
        if handler is None:
            raise TokenizerStateError(f"unknown encoding: {self.encoding}")
        return handler()

    def _read_value_raw(self) -> Optional[Token]:
        line, found = self._reader.read_until(b"\n")
        if not found:
            self.mode = Mode.NAME
            if not line:
                logger.debug("End of vCard stream")
                return None
            # last value without a trailing newline
            return ValueToken(line, False)

        following = self._reader.read_byte()
        if following is None:
            self.mode = Mode.NAME
            return ValueToken(line, False)
        if following in FOLD_WHITESPACE:
            if self.keep_fold_whitespace:
                self._reader.unread_byte()
            return ValueToken(line, True)

        self._reader.unread_byte()
        self.mode = Mode.NAME
        return ValueToken(line, False)

    def _read_value_quoted_printable(self) -> Optional[Token]:
        # Payload stays encoded; line structure is the same as raw.
        return self._read_value_raw()

    def _read_value_base64(self) -> Optional[Token]:
        return self._read_value_raw()


def tokenize(data: bytes, **kwargs) -> Iterator[Token]:
    """
    Tokenize an in-memory vCard byte string.

    :param data: vCard content
    :param kwargs: Tokenizer options (keep_fold_whitespace, chunk_size)
    :return: Iterator over tokens
    """
    return iter(Tokenizer.from_bytes(data, **kwargs))
