# Copyright (c) 2013-2025, Andrea Zoppi
# All rights reserved.
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright
#    notice, this list of conditions and the following disclaimer in the
#    documentation and/or other materials provided with the distribution.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE
# ARE DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE
# LIABLE FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR
# CONSEQUENTIAL DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF
# SUBSTITUTE GOODS OR SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS
# INTERRUPTION) HOWEVER CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN
# CONTRACT, STRICT LIABILITY, OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE)
# ARISING IN ANY WAY OUT OF THE USE OF THIS SOFTWARE, EVEN IF ADVISED OF THE
# POSSIBILITY OF SUCH DAMAGE.

r"""Base types and classes."""

import enum
import os
from typing import Any
from typing import Mapping
from typing import NamedTuple
from typing import Tuple
from typing import Union

import colorama

try:
    from typing import TypeAlias
except ImportError:  # pragma: no cover
    TypeAlias = Any  # Python < 3.10

AnyPath: TypeAlias = Union[str, os.PathLike]


class RecordFormat(enum.Enum):
    r"""Supported record file formats."""

    SREC = 'srec'
    r"""Motorola S-record."""

    IHEX = 'ihex'
    r"""Intel HEX."""


class RecordCategory(enum.Enum):
    r"""Semantic category of a record type code."""

    HEADER = 'header'
    DATA = 'data'
    LINE_COUNT = 'line_count'
    TERMINATION = 'termination'
    EXTENDED_SEGMENT_ADDRESS = 'extended_segment_address'
    START_SEGMENT_ADDRESS = 'start_segment_address'
    EXTENDED_LINEAR_ADDRESS = 'extended_linear_address'
    START_LINEAR_ADDRESS = 'start_linear_address'
    RESERVED = 'reserved'
    OTHER = 'other'

    def is_data(self) -> bool:

        return self is RecordCategory.DATA

    def is_extension(self) -> bool:
        r"""Tells whether this category changes the address bank.

        Returns:
            bool: This is an *extended address* category.

        Examples:
            >>> from recpatch.base import RecordCategory
            >>> RecordCategory.EXTENDED_LINEAR_ADDRESS.is_extension()
            True
            >>> RecordCategory.START_LINEAR_ADDRESS.is_extension()
            False
        """

        return (self is RecordCategory.EXTENDED_SEGMENT_ADDRESS or
                self is RecordCategory.EXTENDED_LINEAR_ADDRESS)


class ErrorCode(enum.IntEnum):
    r"""Record line error kinds.

    At most one is recorded per record line; the first failing check wins.
    """

    OK = 0
    r"""No error."""

    NOT_STARTING_WITH_START_CODE = 1
    r"""The line does not begin with the format start code."""

    LOWER_THAN_MINIMUM_LENGTH = 2
    r"""The line is shorter than the format minimum."""

    RAW_DATA_NOT_HEX = 3
    r"""Non-hexadecimal characters after the start code."""

    UNKNOWN_RECORD_TYPE = 4
    r"""The record type field cannot be interpreted."""

    LENGTH_MISMATCH = 5
    r"""The declared byte count disagrees with the line length."""

    CHECKSUM_MISMATCH = 6
    r"""The declared checksum disagrees with the computed one."""

    DATA_LINES_COUNT_MISMATCH = 7
    r"""A line count record disagrees with the data records seen so far."""


class RecordFileError(Exception):
    r"""Base class of record file operation errors."""


class NotHexError(ValueError):
    r"""Text is not a valid hexadecimal string."""


class SourceFileMissingError(RecordFileError, FileNotFoundError):
    r"""The record file to operate on does not exist."""


class DestinationUnwritableError(RecordFileError, OSError):
    r"""The output file cannot be written."""


class MalformedDataError(RecordFileError, ValueError):
    r"""Replacement data is not an even-length hexadecimal string."""


class RangeUnavailableError(RecordFileError, ValueError):
    r"""The requested address range is not fully covered by data."""


class FormatLayout(NamedTuple):
    r"""Immutable field layout of a record line format.

    Positions and lengths count characters of the record line, start code
    included.
    Field names listed by :attr:`checksum_fields` and :attr:`field_order` are
    the attribute names of :class:`ParsedRecord`.
    """

    kind: RecordFormat
    start_code: str
    count_position: int
    count_length: int
    type_position: int
    type_length: int
    address_position: int
    checksum_length: int
    ones_complement: bool
    min_length: int
    address_lengths: Mapping[str, int]
    checksum_fields: Tuple[str, ...]
    field_order: Tuple[str, ...]


class ParsedRecord(NamedTuple):
    r"""Fields extracted from a validated record line."""

    tag: str
    count: str
    count_value: int
    address_length: int
    address: str
    address_value: int
    data: str
    checksum: str
    checksum_calc: str

    @property
    def checksum_ok(self) -> bool:
        r"""bool: The declared checksum matches the computed one."""

        return int(self.checksum, 16) == int(self.checksum_calc, 16)

    @property
    def data_size(self) -> int:
        r"""int: Data field length, in bytes."""

        return len(self.data) // 2


TOKEN_COLOR_CODES: Mapping[str, str] = {
    '':         colorama.Style.RESET_ALL,
    '<':        colorama.Style.RESET_ALL,
    '>':        colorama.Style.RESET_ALL,
    'address':  colorama.Fore.RED,
    'after':    colorama.Style.RESET_ALL,
    'begin':    colorama.Fore.YELLOW,
    'checksum': colorama.Fore.MAGENTA,
    'count':    colorama.Fore.BLUE,
    'data':     colorama.Fore.CYAN,
    'dataalt':  colorama.Fore.LIGHTCYAN_EX,
    'tag':      colorama.Fore.GREEN,
}
r"""ANSI color codes for each record token."""


def colorize_tokens(
    tokens: Mapping[str, str],
    altdata: bool = True,
) -> Mapping[str, str]:
    r"""Prepends ANSI color codes to record field tokens.

    Args:
        tokens (dict):
            Mapping of token names to token text, in line order.

        altdata (bool):
            Alternate the ``data`` and ``dataalt`` colors on every byte.

    Returns:
        dict: `tokens` with prepended ANSI color codes, wrapped between the
        ``<`` and ``>`` reset codes.

    Examples:
        >>> from recpatch.base import colorize_tokens
        >>> colorize_tokens({'begin': ':', 'count': '00'})
        {'<': '\x1b[0m', 'begin': '\x1b[33m:', 'count': '\x1b[34m00', '>': '\x1b[0m'}
    """

    codes = TOKEN_COLOR_CODES
    colorized = {'<': codes['<']}

    for key, value in tokens.items():
        if not value:
            continue
        code = codes.get(key, codes[''])

        if key == 'data' and altdata:
            altcode = codes['dataalt']
            pieces = []
            for i in range(0, len(value), 2):
                pieces.append(altcode if i & 2 else code)
                pieces.append(value[i:(i + 2)])
            colorized[key] = ''.join(pieces)
        else:
            colorized[key] = code + value

    colorized['>'] = codes['>']
    return colorized
