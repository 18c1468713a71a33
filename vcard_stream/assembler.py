"""
Property assembly on top of the token stream.

Groups ``Name / Param* / Value+`` token runs into Property objects and
unfolds folded values. Payload decoding (quoted-printable, base64, charsets)
is left to vobject through Property.to_content_line().

Dependencies:
    - vobject: Third-party vCard object model used for downstream decoding
    - dataclasses: Standard library for the Property type
    - logging: Standard library for logging
    - typing: Standard library for type hints
"""
# pylint: disable=logging-fstring-interpolation

import logging
from dataclasses import dataclass, field
from typing import Iterable, Iterator, List, Optional, Tuple

import vobject

from vcard_stream.tokenizer import (
    FOLD_WHITESPACE,
    Encoding,
    NameToken,
    ParamToken,
    Token,
    ValueToken,
    lookup_encoding,
)

logger = logging.getLogger("vcard_stream")

# vCard 2.1 allows the encoding as a bare parameter (e.g. "NOTE;QUOTED-PRINTABLE:")
BARE_ENCODING_PARAMS = (b"7BIT", b"8BIT", b"QUOTED-PRINTABLE", b"BASE64")


class AssemblyError(ValueError):
    """Token sequence does not follow the Name, Param*, Value+ order."""


def _text(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def _strip_line_ending(line: bytes) -> bytes:
    if line.endswith(b"\r\n"):
        return line[:-2]
    if line.endswith(b"\n"):
        return line[:-1]
    return line


@dataclass
class Property:
    """
    One logical vCard line.

    ``value`` holds the unfolded raw bytes without the final line terminator.
    ``params`` keeps parameter order and bare parameters (value None).
    """

    name: str
    params: List[Tuple[str, Optional[str]]] = field(default_factory=list)
    value: bytes = b""
    group: Optional[str] = None
    encoding: Encoding = Encoding.RAW

    def param(self, name: str) -> Optional[str]:
        """
        Return the first value of a parameter, ignoring case.

        :param name: Parameter name
        :return: Parameter value, or None if absent or bare
        """
        wanted = name.upper()
        for param_name, param_value in self.params:
            if param_name.upper() == wanted:
                return param_value
        return None

    def has_param(self, name: str) -> bool:
        wanted = name.upper()
        return any(param_name.upper() == wanted for param_name, _ in self.params)

    def to_content_line(self, charset: Optional[str] = None) -> vobject.base.ContentLine:
        """
        Convert to a vobject ContentLine.

        The value is decoded to text with the given charset, else the CHARSET
        parameter, else UTF-8. vobject takes care of quoted-printable.

        :param charset: Optional charset overriding the CHARSET parameter
        :return: vobject ContentLine
        """
        text_charset = charset or self.param("CHARSET") or "utf-8"
        try:
            value = self.value.decode(text_charset, errors="replace")
        except LookupError:
            logger.warning(f"Unknown charset '{text_charset}' on {self.name}, using UTF-8")
            value = _text(self.value)

        params = [
            (param_name,) if param_value is None else (param_name, param_value)
            for param_name, param_value in self.params
        ]
        return vobject.base.ContentLine(self.name, params, value, group=self.group)


class PropertyAssembler:
    """
    Incremental assembler: feed tokens, collect finished properties.
    """

    def __init__(self, keep_fold_whitespace: bool = False):
        """
        Initialize the assembler.

        Args:
            keep_fold_whitespace: Must match the tokenizer setting. When True,
                continuation lines start with the fold whitespace byte, which
                is removed during unfolding.
        """
        self.keep_fold_whitespace = keep_fold_whitespace
        self._reset()

    def _reset(self) -> None:
        self._name: Optional[bytes] = None
        self._params: List[Tuple[bytes, Optional[bytes]]] = []
        self._lines: List[bytes] = []

    def feed(self, token: Token) -> Optional[Property]:
        """
        Consume one token.

        :param token: Token from the tokenizer
        :return: Finished Property when the token completed one, else None
        :raises AssemblyError: If the token arrives out of order
        """
        if isinstance(token, NameToken):
            if self._name is not None:
                raise AssemblyError(
                    f"property {_text(self._name)!r} has no value before "
                    f"{_text(token.name)!r}"
                )
            self._name = token.name
            return None

        if isinstance(token, ParamToken):
            if self._name is None or self._lines:
                raise AssemblyError(f"parameter {_text(token.name)!r} outside a property name")
            self._params.append((token.name, token.value))
            return None

        if isinstance(token, ValueToken):
            if self._name is None:
                raise AssemblyError("value line without a property name")
            self._lines.append(token.value)
            if token.continues:
                return None
            return self._build()

        raise AssemblyError(f"unexpected token: {token!r}")

    def finish(self) -> Optional[Property]:
        """
        Flush a property left open at end of stream.

        :return: The pending Property, or None if nothing was pending
        """
        if self._name is None:
            return None
        if not self._lines:
            logger.debug(f"Property {_text(self._name)!r} ended without a value")
        else:
            logger.debug(f"Folded property {_text(self._name)!r} ended at end of stream")
        return self._build()

    def _unfold(self) -> bytes:
        parts = []
        for index, line in enumerate(self._lines):
            line = _strip_line_ending(line)
            if index > 0 and self.keep_fold_whitespace and line and line[0] in FOLD_WHITESPACE:
                line = line[1:]
            parts.append(line)
        return b"".join(parts)

    def _build(self) -> Property:
        group, _, name = _text(self._name).rpartition(".")

        encoding = Encoding.RAW
        for param_name, param_value in self._params:
            if param_value is not None and param_name.upper() == b"ENCODING":
                encoding = lookup_encoding(param_value) or encoding
            elif param_value is None and param_name.upper() in BARE_ENCODING_PARAMS:
                encoding = lookup_encoding(param_name) or encoding

        prop = Property(
            name=name,
            params=[
                (_text(param_name), None if param_value is None else _text(param_value))
                for param_name, param_value in self._params
            ],
            value=self._unfold(),
            group=group or None,
            encoding=encoding,
        )
        self._reset()
        return prop


def assemble_properties(
    tokens: Iterable[Token],
    keep_fold_whitespace: bool = False
) -> Iterator[Property]:
    """
    Assemble a token stream into properties.

    :param tokens: Tokens in tokenizer order
    :param keep_fold_whitespace: Whether the tokenizer kept fold whitespace
    :return: Iterator over Property objects
    """
    assembler = PropertyAssembler(keep_fold_whitespace=keep_fold_whitespace)
    for token in tokens:
        prop = assembler.feed(token)
        if prop is not None:
            yield prop
    prop = assembler.finish()
    if prop is not None:
        yield prop
