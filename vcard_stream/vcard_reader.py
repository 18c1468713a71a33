"""
vCard file reading built on the streaming tokenizer.

Dependencies:
    - pathlib: Standard library for path handling
    - typing: Standard library for type hints
    - logging: Standard library for logging
    - vcard_stream.tokenizer: Local module for streaming tokenization
    - vcard_stream.assembler: Local module for property assembly
"""

from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List
import logging

from vcard_stream.assembler import Property, assemble_properties
from vcard_stream.tokenizer import DEFAULT_CHUNK_SIZE, Encoding, Token, Tokenizer

logger = logging.getLogger("vcard_stream")


def _check_exists(file_path: Path) -> None:
    if not file_path.exists():
        raise FileNotFoundError(f"Input file not found: {file_path}")


def iter_file_tokens(
    file_path: Path,
    keep_fold_whitespace: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[Token]:
    """
    Stream tokens from a vCard file.

    Args:
        file_path: Path to the .vcf file
        keep_fold_whitespace: Tokenizer fold whitespace setting
        chunk_size: Bytes read from the file at a time

    Returns:
        Iterator over tokens

    Raises:
        FileNotFoundError: If the file doesn't exist
    """
    _check_exists(file_path)
    with open(file_path, 'rb') as f:
        tokenizer = Tokenizer(f, keep_fold_whitespace=keep_fold_whitespace, chunk_size=chunk_size)
        yield from tokenizer


def iter_file_properties(
    file_path: Path,
    keep_fold_whitespace: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> Iterator[Property]:
    """
    Stream assembled properties from a vCard file.

    Args:
        file_path: Path to the .vcf file
        keep_fold_whitespace: Tokenizer fold whitespace setting
        chunk_size: Bytes read from the file at a time

    Returns:
        Iterator over properties
    """
    _check_exists(file_path)
    tokens = iter_file_tokens(file_path, keep_fold_whitespace, chunk_size)
    return assemble_properties(tokens, keep_fold_whitespace=keep_fold_whitespace)


def _is_marker(prop: Property, marker: str) -> bool:
    return (
        prop.name.upper() == marker
        and prop.value.strip().upper() == b"VCARD"
    )


def group_cards(properties: Iterable[Property]) -> List[List[Property]]:
    """
    Split a property stream into cards.

    Cards are delimited by BEGIN:VCARD and END:VCARD, which are not included
    in the returned property lists.

    Args:
        properties: Properties in file order

    Returns:
        List of cards, each a list of properties
    """
    cards = []
    current_card: List[Property] = []
    in_card = False

    for prop in properties:
        if _is_marker(prop, 'BEGIN'):
            if in_card:
                # Nested or unterminated card, keep what we have
                logger.warning(
                    f"BEGIN:VCARD inside card #{len(cards) + 1}, closing the open card"
                )
                cards.append(current_card)
            current_card = []
            in_card = True
        elif _is_marker(prop, 'END'):
            if not in_card:
                logger.warning("END:VCARD without a matching BEGIN:VCARD, skipping")
                continue
            cards.append(current_card)
            current_card = []
            in_card = False
        elif in_card:
            current_card.append(prop)
        else:
            logger.debug(f"Skipping property {prop.name} outside of a vCard")

    if in_card:
        logger.warning(f"Card #{len(cards) + 1} is missing END:VCARD")
        cards.append(current_card)

    return cards


def read_vcard_file(
    file_path: Path,
    keep_fold_whitespace: bool = False,
    chunk_size: int = DEFAULT_CHUNK_SIZE
) -> List[List[Property]]:
    """
    Read all cards of a vCard file.

    Args:
        file_path: Path to the .vcf file
        keep_fold_whitespace: Tokenizer fold whitespace setting
        chunk_size: Bytes read from the file at a time

    Returns:
        List of cards, each a list of properties

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValueError: If the file is malformed
    """
    properties = iter_file_properties(file_path, keep_fold_whitespace, chunk_size)
    try:
        cards = group_cards(properties)
    except ValueError as e:
        logger.error(f"Error reading vCard file {file_path}: {e}")
        raise

    logger.info(f"Read {len(cards)} cards from {file_path}")
    return cards


def summarize_cards(cards: List[List[Property]]) -> Dict[str, Any]:
    """
    Compute summary statistics for a list of cards.

    Args:
        cards: Cards as returned by read_vcard_file

    Returns:
        Dictionary with card, property, encoded and grouped property counts
    """
    properties = [prop for card in cards for prop in card]
    return {
        'total_cards': len(cards),
        'total_properties': len(properties),
        'encoded_properties': sum(
            1 for prop in properties if prop.encoding is not Encoding.RAW
        ),
        'grouped_properties': sum(1 for prop in properties if prop.group),
    }
