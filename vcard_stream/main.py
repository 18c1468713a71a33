#!/usr/bin/env python3
"""
Main entry point for the vCard stream tools.

This module provides the command-line interface that dumps the token stream,
the assembled properties, or the cards of a vCard file.

Dependencies:
    - argparse: Standard library for command-line argument parsing
    - json: Standard library for JSON Lines output
    - sys: Standard library for system-specific parameters
    - pathlib: Standard library for path handling
    - vcard_stream.tokenizer: Local module for streaming tokenization
    - vcard_stream.assembler: Local module for property assembly
    - vcard_stream.vcard_reader: Local module for vCard file reading
    - vcard_stream.logger: Local module for logging configuration
"""
# pylint: disable=logging-fstring-interpolation, broad-except

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from vcard_stream.assembler import Property
from vcard_stream.logger import log_statistics, setup_logger
from vcard_stream.tokenizer import (
    DEFAULT_CHUNK_SIZE,
    NameToken,
    ParamToken,
    Token,
    TokenType,
)
from vcard_stream.vcard_reader import (
    iter_file_properties,
    iter_file_tokens,
    read_vcard_file,
    summarize_cards,
)


def _text(data: bytes) -> str:
    return data.decode('utf-8', errors='backslashreplace')


def token_to_dict(token: Token) -> Dict[str, Any]:
    """
    Convert a token to a JSON-serializable dictionary.

    :param token: Token to convert
    :return: Dictionary with a 'type' key and the token fields
    """
    if isinstance(token, NameToken):
        return {'type': token.type.value, 'name': _text(token.name)}
    if isinstance(token, ParamToken):
        return {
            'type': token.type.value,
            'name': _text(token.name),
            'value': None if token.value is None else _text(token.value),
        }
    return {
        'type': token.type.value,
        'value': _text(token.value),
        'continues': token.continues,
    }


def format_token(token: Token) -> str:
    """
    Format a token as a single text line.

    :param token: Token to format
    :return: Human-readable line
    """
    if isinstance(token, NameToken):
        return f"NAME   {_text(token.name)}"
    if isinstance(token, ParamToken):
        if token.value is None:
            return f"PARAM  {_text(token.name)}"
        return f"PARAM  {_text(token.name)}={_text(token.value)}"
    marker = " +" if token.continues else ""
    return f"VALUE  {_text(token.value)!r}{marker}"


def property_to_dict(prop: Property) -> Dict[str, Any]:
    """
    Convert a property to a JSON-serializable dictionary.

    :param prop: Property to convert
    :return: Dictionary of property fields
    """
    return {
        'group': prop.group,
        'name': prop.name,
        'params': [[name, value] for name, value in prop.params],
        'encoding': prop.encoding.value,
        'value': _text(prop.value),
    }


def format_property(prop: Property) -> str:
    """
    Format a property as a single unfolded text line.

    :param prop: Property to format
    :return: Human-readable line
    """
    name = f"{prop.group}.{prop.name}" if prop.group else prop.name
    params = ''.join(
        f";{param_name}" if param_value is None else f";{param_name}={param_value}"
        for param_name, param_value in prop.params
    )
    return f"{name}{params}: {_text(prop.value)}"


def _dump_tokens(args: argparse.Namespace, input_path: Path) -> Dict[str, Any]:
    counts = {token_type.value: 0 for token_type in TokenType}
    for token in iter_file_tokens(input_path, args.keep_fold_whitespace, args.chunk_size):
        counts[token.type.value] += 1
        if args.format == 'json':
            print(json.dumps(token_to_dict(token), ensure_ascii=False))
        else:
            print(format_token(token))
    return {f"{key}_tokens": value for key, value in counts.items()}


def _dump_properties(args: argparse.Namespace, input_path: Path) -> Dict[str, Any]:
    total = 0
    for prop in iter_file_properties(input_path, args.keep_fold_whitespace, args.chunk_size):
        total += 1
        if args.format == 'json':
            print(json.dumps(property_to_dict(prop), ensure_ascii=False))
        else:
            print(format_property(prop))
    return {'total_properties': total}


def _dump_cards(args: argparse.Namespace, input_path: Path) -> Dict[str, Any]:
    cards = read_vcard_file(input_path, args.keep_fold_whitespace, args.chunk_size)
    for card_num, card in enumerate(cards, 1):
        if args.format == 'json':
            print(json.dumps(
                {'card': card_num, 'properties': [property_to_dict(p) for p in card]},
                ensure_ascii=False
            ))
        else:
            print(f"--- card {card_num} ---")
            for prop in card:
                print(format_property(prop))
    return summarize_cards(cards)


def _create_argument_parser() -> argparse.ArgumentParser:
    """
    Create and configure the argument parser.

    :return: Configured argument parser
    """
    parser = argparse.ArgumentParser(
        description='Dump the token stream, properties or cards of a vCard file',
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        '--input', '-i',
        type=str,
        required=True,
        help='Path to input vCard file (.vcf)'
    )

    parser.add_argument(
        '--mode', '-m',
        choices=['tokens', 'properties', 'cards'],
        default='tokens',
        help='What to print (default: tokens)'
    )

    parser.add_argument(
        '--format', '-f',
        choices=['text', 'json'],
        default='text',
        help='Output format; json prints one object per line (default: text)'
    )

    parser.add_argument(
        '--keep-fold-whitespace',
        action='store_true',
        help='Keep the space/tab of folded lines at the start of the next value token'
    )

    parser.add_argument(
        '--chunk-size',
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f'Bytes read from the file at a time (default: {DEFAULT_CHUNK_SIZE})'
    )

    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        default='WARNING',
        help='Logging level (default: WARNING)'
    )

    parser.add_argument(
        '--log-file',
        type=str,
        default=None,
        help='Optional path to a debug log file'
    )

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main application entry point."""
    parser = _create_argument_parser()
    args = parser.parse_args(argv)

    log_file = Path(args.log_file) if args.log_file else None
    logger = setup_logger(log_level=args.log_level, log_file=log_file)

    if args.chunk_size < 1:
        logger.error("Chunk size must be a positive number of bytes")
        sys.exit(1)

    dumpers = {
        'tokens': _dump_tokens,
        'properties': _dump_properties,
        'cards': _dump_cards,
    }

    try:
        input_path = Path(args.input)
        logger.info(f"Reading {args.mode} from {input_path}")
        stats = dumpers[args.mode](args, input_path)
        log_statistics(logger, stats)
    except FileNotFoundError as e:
        logger.error(f"File not found: {e}")
        sys.exit(1)
    except ValueError as e:
        logger.error(f"Invalid input: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        sys.exit(1)


if __name__ == '__main__':
    main()
