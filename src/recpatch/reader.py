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

r"""Record file reader.

The reader scans a record file once, line by line, and rebuilds the
contiguous data blocks described by its *data* records, following the address
bank set by *extended address* records.
"""

import logging
import os
from typing import IO
from typing import Dict
from typing import Iterable
from typing import Iterator
from typing import List
from typing import NamedTuple
from typing import Optional
from typing import Tuple

from .base import AnyPath
from .base import ErrorCode
from .base import FormatLayout
from .base import ParsedRecord
from .base import RecordCategory
from .base import SourceFileMissingError
from .blocks import DataBlock
from .blocks import merge_blocks
from .records import classify
from .records import parse_line
from .records import split_records
from .records import validate_line

logger = logging.getLogger(__name__)

ENCODING: str = 'ascii'
r"""Record file text encoding."""

ENCODING_ERRORS: str = 'surrogateescape'
r"""Encoding error handler; keeps foreign bytes untouched on rewrite."""


class RecordSlot(NamedTuple):
    r"""Record found within a physical line."""

    number: int
    r"""Record line number, counting from 1."""

    begin: int
    r"""Start offset within the physical line."""

    endex: int
    r"""Exclusive end offset within the physical line."""

    text: str
    r"""Record text, without whitespace."""

    error: ErrorCode
    r"""Validation or checksum error."""

    record: Optional[ParsedRecord]
    r"""Parsed fields, if structurally valid."""

    category: Optional[RecordCategory]
    r"""Record category, if structurally valid."""


class ReadResult(NamedTuple):
    r"""Outcome of :func:`read_blocks`."""

    raw_blocks: List[DataBlock]
    blocks: List[DataBlock]
    errors: Dict[int, ErrorCode]
    header: Optional[str]
    data_lines: int
    mtime: int


def open_source(path: AnyPath) -> IO[str]:
    r"""Opens a record file for reading.

    Line terminators are kept as-is.

    Raises:
        SourceFileMissingError: `path` does not exist.
    """

    try:
        return open(path, 'rt', encoding=ENCODING, errors=ENCODING_ERRORS, newline='')
    except FileNotFoundError as exc:
        raise SourceFileMissingError(f'source file missing: {str(path)!r}') from exc


def get_mtime(path: AnyPath) -> int:
    r"""File modification time, in nanoseconds.

    Raises:
        SourceFileMissingError: `path` does not exist.
    """

    try:
        return os.stat(path).st_mtime_ns
    except FileNotFoundError as exc:
        raise SourceFileMissingError(f'source file missing: {str(path)!r}') from exc


def scan_records(
    layout: FormatLayout,
    lines: Iterable[str],
) -> Iterator[Tuple[str, List[RecordSlot]]]:
    r"""Scans physical lines for records.

    Each physical line is split into records by :func:`split_records`; each
    record is validated, and parsed if structurally valid.
    Records are numbered progressively across the whole scan.

    Args:
        layout (:class:`FormatLayout`):
            Record line layout.

        lines (iterable of str):
            Physical text lines.

    Yields:
        tuple: The physical line, and the list of its :class:`RecordSlot`.
    """

    number = 0

    for line in lines:
        slots = []

        for begin, endex, text in split_records(line, layout.start_code):
            number += 1
            record = None
            category = None
            error = validate_line(layout, text)

            if error == ErrorCode.OK:
                record = parse_line(layout, text)
                category = classify(layout, record.tag)
                if not record.checksum_ok:
                    error = ErrorCode.CHECKSUM_MISMATCH

            slots.append(RecordSlot(number, begin, endex, text, error, record, category))

        yield line, slots


def iter_slots(
    layout: FormatLayout,
    lines: Iterable[str],
) -> Iterator[RecordSlot]:
    r"""Iterates over all the records of the scanned lines.

    See Also:
        :func:`scan_records`
    """

    for _, slots in scan_records(layout, lines):
        yield from slots


def update_bank(
    category: RecordCategory,
    data: str,
    bank: int,
) -> int:
    r"""Updates the address bank.

    Args:
        category (:class:`RecordCategory`):
            Record category.

        data (str):
            Record data field.

        bank (int):
            Current address bank.

    Returns:
        int: New address bank; `bank` if unchanged by `category`.

    Examples:
        >>> update_bank(RecordCategory.EXTENDED_LINEAR_ADDRESS, '0010', 0)
        1048576
        >>> update_bank(RecordCategory.EXTENDED_SEGMENT_ADDRESS, '1200', 0)
        73728
        >>> update_bank(RecordCategory.DATA, '1200', 5)
        5
    """

    if category is RecordCategory.EXTENDED_SEGMENT_ADDRESS:
        return int(data + '0', 16)
    if category is RecordCategory.EXTENDED_LINEAR_ADDRESS:
        return int(data + '0000', 16)
    return bank


def iter_data(
    layout: FormatLayout,
    lines: Iterable[str],
) -> Iterator[Tuple[int, ParsedRecord]]:
    r"""Iterates over the valid *data* records.

    Invalid records are skipped; address banks are tracked.

    Yields:
        tuple: Absolute start address, and parsed *data* record.
    """

    bank = 0

    for slot in iter_slots(layout, lines):
        if slot.error != ErrorCode.OK:
            continue

        category = slot.category
        if category.is_extension():
            bank = update_bank(category, slot.record.data, bank)
        elif category.is_data():
            yield bank + slot.record.address_value, slot.record


def read_blocks(
    path: AnyPath,
    layout: FormatLayout,
    load_data: bool = True,
    store_text: bool = True,
) -> ReadResult:
    r"""Reads the data blocks of a record file.

    Invalid records are logged into the error map, by record line number, and
    skipped.
    Each *data* record either extends the open block, if it starts right at
    the end of it, or closes the open block and opens a new one.
    The raw blocks are finally merged into continuous blocks.

    Args:
        path (str):
            Record file path.

        layout (:class:`FormatLayout`):
            Record line layout.

        load_data (bool):
            Load the block data; else only addresses and lines are tracked.

        store_text (bool):
            Store block data as hexadecimal strings, else as bytes.

    Returns:
        :class:`ReadResult`: Blocks, errors, and file statistics.

    Raises:
        SourceFileMissingError: `path` does not exist.
    """

    mtime = get_mtime(path)
    raw_blocks: List[DataBlock] = []
    errors: Dict[int, ErrorCode] = {}
    header = None
    data_lines = 0
    bank = 0
    cursor = -1
    block = None
    pieces: List[str] = []

    def finalize():
        if load_data:
            block.capture(''.join(pieces))
        raw_blocks.append(block)
        logger.debug('block 0x%X-0x%X, lines %d-%d', block.start, block.end,
                     block.file_start_line, block.file_end_line)

    with open_source(path) as stream:
        for slot in iter_slots(layout, stream):
            number = slot.number

            if slot.error != ErrorCode.OK:
                logger.debug('record %d: %s', number, slot.error.name)
                errors[number] = slot.error
                continue

            record = slot.record
            category = slot.category

            if category is RecordCategory.HEADER:
                if header is None:
                    header = record.data

            elif category is RecordCategory.LINE_COUNT:
                if record.address_value != data_lines:
                    logger.debug('record %d: line count %d, expected %d',
                                 number, record.address_value, data_lines)
                    errors[number] = ErrorCode.DATA_LINES_COUNT_MISMATCH

            elif category.is_extension():
                bank = update_bank(category, record.data, bank)

            elif category is RecordCategory.DATA:
                data_lines += 1
                if not record.data:
                    continue
                address = bank + record.address_value

                if address != cursor:
                    if block is not None:
                        block.end = cursor - 1
                        block.file_end_line = number - 1
                        finalize()
                    block = DataBlock(address, file_start_line=number, text=store_text)
                    pieces = []

                if load_data:
                    pieces.append(record.data.upper())
                cursor = address + record.data_size
                block.end = cursor - 1
                block.file_end_line = number

    if block is not None:
        finalize()

    blocks = merge_blocks(raw_blocks)
    if errors:
        logger.warning('%s: %d invalid record lines', path, len(errors))
    logger.info('%s: %d data records, %d raw blocks, %d merged blocks',
                path, data_lines, len(raw_blocks), len(blocks))

    return ReadResult(raw_blocks, blocks, errors, header, data_lines, mtime)
