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

r"""Address range queries.

Ranges are always given with inclusive `start` and `end` addresses.
A range is available only when fully contained by a single merged block;
ranges spanning gaps yield no data at all, never partial data.
"""

from typing import Iterator
from typing import List
from typing import Optional
from typing import Sequence
from typing import Tuple

from bytesparse import Memory

from .base import AnyPath
from .base import FormatLayout
from .blocks import DataBlock
from .reader import iter_data
from .reader import open_source
from .utils import hex_to_bytes
from .utils import hexlify


def resolve_end(
    start: int,
    end: Optional[int] = None,
    length: Optional[int] = None,
) -> int:
    r"""Resolves the inclusive end address of a range.

    Exactly one of `end` and `length` must be given.

    Examples:
        >>> resolve_end(0x100, length=0x10)
        271
        >>> resolve_end(0x100, end=0x10F)
        271
    """

    if (end is None) == (length is None):
        raise ValueError('either end or length required')
    if end is None:
        if length <= 0:
            raise ValueError('non-positive length')
        end = start + length - 1
    return end


def find_block(
    blocks: Sequence[DataBlock],
    start: int,
    end: int,
) -> Optional[DataBlock]:
    r"""Finds the block containing an address range.

    Returns:
        :class:`DataBlock`: The containing block, or ``None``.
    """

    for block in blocks:
        if block.contains(start, end):
            return block
    return None


def is_in_range(
    blocks: Sequence[DataBlock],
    start: int,
    end: int,
) -> bool:
    r"""Checks if an address range is fully available.

    Examples:
        >>> blocks = [DataBlock(0x00, 0x0F), DataBlock(0x20, 0x2F)]
        >>> is_in_range(blocks, 0x04, 0x0B)
        True
        >>> is_in_range(blocks, 0x08, 0x27)
        False
    """

    return find_block(blocks, start, end) is not None


def find_gaps(
    blocks: Sequence[DataBlock],
    start: int,
    end: int,
) -> List[Tuple[int, int]]:
    r"""Lists the sub-ranges of a range not covered by any block.

    Returns:
        list: Inclusive ``(start, end)`` address pairs, sorted.

    Examples:
        >>> blocks = [DataBlock(0x00, 0x0F), DataBlock(0x20, 0x2F)]
        >>> [(hex(s), hex(e)) for s, e in find_gaps(blocks, 0x08, 0x37)]
        [('0x10', '0x1f'), ('0x30', '0x37')]
    """

    memory = Memory()
    for block in blocks:
        memory.write(block.start, bytes(block.length))

    gaps = []
    for gap_start, gap_endex in memory.gaps(start, end + 1):
        # unbounded ends when empty
        gap_start = start if gap_start is None else gap_start
        gap_endex = end + 1 if gap_endex is None else gap_endex
        gaps.append((gap_start, gap_endex - 1))
    return gaps


def read_range(
    blocks: Sequence[DataBlock],
    start: int,
    end: int,
) -> str:
    r"""Reads an address range from resident blocks.

    Returns:
        str: Hexadecimal data; empty if the range is not contained by a
        single block, or its data is not loaded.
    """

    block = find_block(blocks, start, end)
    if block is None or not block.loaded:
        return ''
    return block.to_hex(start, end)


def _iter_intersections(
    path: AnyPath,
    layout: FormatLayout,
    start: int,
    end: int,
) -> Iterator[Tuple[int, str]]:

    with open_source(path) as stream:
        for address, record in iter_data(layout, stream):
            record_end = address + record.data_size - 1
            lo = max(address, start)
            hi = min(record_end, end)

            if lo <= hi:
                yield lo, record.data[((lo - address) * 2):((hi - address + 1) * 2)]


def read_range_from_file(
    path: AnyPath,
    layout: FormatLayout,
    start: int,
    end: int,
) -> str:
    r"""Reads an address range by scanning the record file.

    Every valid *data* record intersecting the range contributes its
    intersecting data.
    The result is kept only if the contributions cover the whole range
    exactly once: any gap or overlap discards it.

    Args:
        path (str):
            Record file path.

        layout (:class:`FormatLayout`):
            Record line layout.

        start (int):
            Inclusive start address.

        end (int):
            Inclusive end address.

    Returns:
        str: Hexadecimal data; empty if not available.

    Raises:
        SourceFileMissingError: `path` does not exist.
    """

    if start > end:
        return ''

    memory = Memory()
    total = 0

    for address, data in _iter_intersections(path, layout, start, end):
        chunk = hex_to_bytes(data)
        memory.write(address, chunk)
        total += len(chunk)

    size = end - start + 1
    if total != size or list(memory.intervals()) != [(start, end + 1)]:
        return ''

    return hexlify(memory.to_bytes())
