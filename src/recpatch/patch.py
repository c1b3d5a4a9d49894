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

r"""In-place data patching.

Resident blocks are patched in memory.
Record files are patched by rewriting only the *data* records overlapping the
patched range, each replaced at its own position within its physical line;
everything else is copied verbatim.
"""

import logging
import os
import uuid
from typing import Callable
from typing import IO
from typing import List
from typing import Optional
from typing import Sequence

from .base import AnyPath
from .base import DestinationUnwritableError
from .base import ErrorCode
from .base import FormatLayout
from .base import MalformedDataError
from .base import ParsedRecord
from .base import RangeUnavailableError
from .blocks import DataBlock
from .query import find_block
from .reader import ENCODING
from .reader import ENCODING_ERRORS
from .reader import RecordSlot
from .reader import open_source
from .reader import scan_records
from .reader import update_bank
from .records import build_record
from .utils import is_hex

logger = logging.getLogger(__name__)


def check_patch_data(data: str) -> str:
    r"""Validates patch data.

    Args:
        data (str):
            Hexadecimal string.

    Returns:
        str: Upper-case `data`.

    Raises:
        MalformedDataError: empty, not hexadecimal, or odd length.

    Examples:
        >>> check_patch_data('aa55')
        'AA55'
        >>> check_patch_data('A55')
        Traceback (most recent call last):
            ...
        recpatch.base.MalformedDataError: odd length
    """

    if not data:
        raise MalformedDataError('empty data')
    if not is_hex(data):
        raise MalformedDataError(f'not hexadecimal: {data!r}')
    if len(data) & 1:
        raise MalformedDataError('odd length')
    return data.upper()


def modify_blocks(
    blocks: Sequence[DataBlock],
    start: int,
    data: str,
) -> DataBlock:
    r"""Patches resident blocks.

    Args:
        blocks (list of :class:`DataBlock`):
            Merged blocks, with loaded data.

        start (int):
            Patch start address.

        data (str):
            Hexadecimal replacement data.

    Returns:
        :class:`DataBlock`: The patched block.

    Raises:
        MalformedDataError: invalid `data`.
        RangeUnavailableError: range not within a single block.
    """

    data = check_patch_data(data)
    end = start + len(data) // 2 - 1
    block = find_block(blocks, start, end)
    if block is None or not block.loaded:
        raise RangeUnavailableError(f'range not available: 0x{start:X}-0x{end:X}')

    block.modify(start - block.start, data)
    return block


def splice_record(
    layout: FormatLayout,
    address: int,
    record: ParsedRecord,
    start: int,
    data: str,
) -> Optional[str]:
    r"""Splices patch data into a *data* record.

    Args:
        layout (:class:`FormatLayout`):
            Record line layout.

        address (int):
            Absolute start address of the record.

        record (:class:`ParsedRecord`):
            Parsed *data* record.

        start (int):
            Patch start address.

        data (str):
            Hexadecimal patch data.

    Returns:
        str: Rebuilt record line, or ``None`` if the record does not overlap
        the patch.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> from recpatch.records import make_layout, parse_line
        >>> layout = make_layout(RecordFormat.IHEX)
        >>> record = parse_line(layout, ':040010000011223386')
        >>> splice_record(layout, 0x10, record, 0x12, 'AABBCC')
        ':040010000011AABB76'
    """

    end = start + len(data) // 2 - 1
    record_end = address + record.data_size - 1
    lo = max(address, start)
    hi = min(record_end, end)
    if lo > hi:
        return None

    before = record.data[:((lo - address) * 2)]
    middle = data[((lo - start) * 2):((hi - start + 1) * 2)]
    after = record.data[((hi - address + 1) * 2):]
    return build_record(layout, record._replace(data=(before + middle + after)))


def rewrite_line(
    line: str,
    slots: Sequence[RecordSlot],
    replacements: Sequence[Optional[str]],
) -> str:
    r"""Replaces records within a physical line, by position.

    Text outside the replaced records, sibling records included, is kept.

    Args:
        line (str):
            Physical line.

        slots (list of :class:`RecordSlot`):
            Records of `line`.

        replacements (list of str):
            Replacement text for each slot; ``None`` keeps the record.

    Returns:
        str: Rewritten line.
    """

    pieces = []
    offset = 0

    for slot, replacement in zip(slots, replacements):
        if replacement is not None:
            pieces.append(line[offset:slot.begin])
            pieces.append(replacement)
            offset = slot.endex

    pieces.append(line[offset:])
    return ''.join(pieces)


def replace_file(
    path: AnyPath,
    writer: Callable[[IO[str]], None],
) -> None:
    r"""Atomically replaces a file.

    The new content is written by `writer` into a uniquely named temporary
    file within the same folder and with the same extension, which then takes
    the place of `path`.

    Raises:
        DestinationUnwritableError: the temporary file cannot be written, or
            cannot replace `path`.
    """

    path = os.fspath(path)
    folder, name = os.path.split(os.path.abspath(path))
    temp_path = os.path.join(folder, uuid.uuid4().hex + os.path.splitext(name)[1])

    try:
        with open(temp_path, 'wt', encoding=ENCODING, errors=ENCODING_ERRORS, newline='') as stream:
            writer(stream)
        os.replace(temp_path, path)

    except OSError as exc:
        if os.path.exists(temp_path):
            os.remove(temp_path)
        raise DestinationUnwritableError(f'cannot write: {path!r}') from exc


def modify_file(
    path: AnyPath,
    layout: FormatLayout,
    start: int,
    data: str,
) -> int:
    r"""Patches a record file.

    The whole file is read first, then written anew: each *data* record
    overlapping the patch range is rebuilt with the spliced data and a new
    checksum.
    Invalid records are never touched.

    Args:
        path (str):
            Record file path.

        layout (:class:`FormatLayout`):
            Record line layout.

        start (int):
            Patch start address.

        data (str):
            Hexadecimal replacement data.

    Returns:
        int: Number of rewritten records.

    Raises:
        MalformedDataError: invalid `data`.
        SourceFileMissingError: `path` does not exist.
        DestinationUnwritableError: `path` cannot be replaced.
    """

    data = check_patch_data(data)
    rewritten = 0

    with open_source(path) as source:
        lines = list(source)

    def writer(stream: IO[str]) -> None:
        nonlocal rewritten
        bank = 0

        for line, slots in scan_records(layout, lines):
            replacements: List[Optional[str]] = []

            for slot in slots:
                replacement = None

                if slot.error == ErrorCode.OK:
                    if slot.category.is_extension():
                        bank = update_bank(slot.category, slot.record.data, bank)

                    elif slot.category.is_data():
                        address = bank + slot.record.address_value
                        replacement = splice_record(layout, address, slot.record, start, data)
                        if replacement is not None:
                            logger.debug('record %d: %s -> %s', slot.number, slot.text, replacement)
                            rewritten += 1

                replacements.append(replacement)

            stream.write(rewrite_line(line, slots, replacements))

    replace_file(path, writer)

    logger.info('%s: patched 0x%X bytes at 0x%X, %d records rewritten',
                path, len(data) // 2, start, rewritten)
    return rewritten
