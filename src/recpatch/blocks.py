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

r"""Contiguous data blocks.

A *block* is a run of contiguous addresses, with inclusive `start` and `end`
addresses, the record lines it was read from, and optionally its data.

The data payload has one representation for the whole life of a block,
selected when the block is created: either an upper-case hexadecimal string
(*text* mode), or a :obj:`bytearray`.
"""

from typing import Iterable
from typing import List
from typing import Optional
from typing import Union

from .utils import hex_to_bytes
from .utils import hexlify

AnyData = Union[str, bytes, bytearray, memoryview]


class DataBlock:
    r"""Contiguous address range with its data.

    Args:
        start (int):
            Inclusive start address.

        end (int):
            Inclusive end address.
            If ``None``, the block is empty (``end == start - 1``).

        file_start_line (int):
            Record line number where the block begins.

        file_end_line (int):
            Record line number where the block ends.

        payload (str or bytes):
            Block data, as hexadecimal string or raw bytes.
            If ``None``, the data is not loaded.

        text (bool):
            Store the payload as hexadecimal string, else as
            :obj:`bytearray`.

    Examples:
        >>> block = DataBlock(0x100, 0x102, 1, 1, 'aabbcc')
        >>> block.length
        3
        >>> block.payload
        'AABBCC'
        >>> DataBlock(0x100, payload=b'\x01\x02', text=False).payload
        bytearray(b'\x01\x02')
    """

    def __init__(
        self,
        start: int,
        end: Optional[int] = None,
        file_start_line: int = 0,
        file_end_line: int = 0,
        payload: Optional[AnyData] = None,
        text: bool = True,
    ):

        start = int(start)
        if start < 0:
            raise ValueError('negative start address')
        if end is None:
            if payload is None:
                end = start - 1
            else:
                size = len(payload) // 2 if isinstance(payload, str) else len(payload)
                end = start + size - 1

        self.start: int = start
        self.end: int = int(end)
        self.file_start_line: int = file_start_line
        self.file_end_line: int = file_end_line
        self.text: bool = text
        self.payload: Optional[Union[str, bytearray]] = None

        if payload is not None:
            self.capture(payload)

    def __repr__(self) -> str:

        return (f'<{type(self).__name__} start=0x{self.start:X} end=0x{self.end:X} '
                f'lines={self.file_start_line}-{self.file_end_line}>')

    def __eq__(self, other: object) -> bool:

        if not isinstance(other, DataBlock):
            return NotImplemented

        return (self.start == other.start and
                self.end == other.end and
                self.file_start_line == other.file_start_line and
                self.file_end_line == other.file_end_line and
                self.payload == other.payload)

    @property
    def length(self) -> int:
        r"""int: Address range length, in bytes."""

        return self.end - self.start + 1

    @property
    def loaded(self) -> bool:
        r"""bool: The block carries its data."""

        return self.payload is not None

    def _convert(self, data: AnyData) -> Union[str, bytearray]:

        if self.text:
            if isinstance(data, str):
                hex_to_bytes(data)  # validation
                return data.upper()
            return hexlify(data)
        else:
            if isinstance(data, str):
                return bytearray(hex_to_bytes(data))
            return bytearray(data)

    def capture(self, payload: AnyData) -> 'DataBlock':
        r"""Captures the block data.

        Args:
            payload (str or bytes):
                Data spanning the whole address range.

        Returns:
            :class:`DataBlock`: *self*.

        Raises:
            ValueError: payload length mismatch.
        """

        payload = self._convert(payload)
        size = len(payload) // 2 if self.text else len(payload)
        if size != self.length:
            raise ValueError('payload length mismatch')

        self.payload = payload
        return self

    def contains(self, start: int, end: int) -> bool:
        r"""Checks if an address range is within the block.

        Examples:
            >>> block = DataBlock(0x10, 0x1F)
            >>> block.contains(0x10, 0x1F)
            True
            >>> block.contains(0x18, 0x20)
            False
        """

        return start <= end and self.start <= start and end <= self.end

    def to_hex(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> str:
        r"""Gets the data as hexadecimal string.

        Args:
            start (int):
                Inclusive start address; block start if ``None``.

            end (int):
                Inclusive end address; block end if ``None``.

        Returns:
            str: Upper-case hexadecimal data.

        Raises:
            ValueError: data not loaded, or range out of the block.
        """

        if self.payload is None:
            raise ValueError('data not loaded')
        begin, endex = self._offsets(start, end)

        if self.text:
            return self.payload[(begin * 2):(endex * 2)]
        return hexlify(self.payload[begin:endex])

    def to_bytes(
        self,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> bytes:
        r"""Gets the data as raw bytes.

        See Also:
            :meth:`to_hex`
        """

        if self.payload is None:
            raise ValueError('data not loaded')
        begin, endex = self._offsets(start, end)

        if self.text:
            return hex_to_bytes(self.payload[(begin * 2):(endex * 2)])
        return bytes(self.payload[begin:endex])

    def _offsets(self, start: Optional[int], end: Optional[int]):

        start = self.start if start is None else start
        end = self.end if end is None else end
        if not self.contains(start, end):
            raise ValueError('range out of block')
        return start - self.start, end - self.start + 1

    def modify(self, offset: int, data: AnyData) -> 'DataBlock':
        r"""Overwrites part of the data.

        The address range of the block never changes.

        Args:
            offset (int):
                Byte offset from the block start.

            data (str or bytes):
                Replacement data.

        Returns:
            :class:`DataBlock`: *self*.

        Raises:
            ValueError: data not loaded, or data out of the block.

        Examples:
            >>> block = DataBlock(0x100, payload='00112233')
            >>> block.modify(1, 'AABB').payload
            '00AABB33'
        """

        if self.payload is None:
            raise ValueError('data not loaded')

        data = self._convert(data)
        size = len(data) // 2 if self.text else len(data)
        if offset < 0 or offset + size > self.length:
            raise ValueError('data out of block')

        if self.text:
            self.payload = (self.payload[:(offset * 2)] + data +
                            self.payload[((offset + size) * 2):])
        else:
            self.payload[offset:(offset + size)] = data
        return self

    def copy(self) -> 'DataBlock':
        r"""Creates a copy with its own payload."""

        block = type(self)(self.start, self.end, self.file_start_line,
                           self.file_end_line, text=self.text)
        if self.payload is not None:
            block.payload = self.payload[:]
        return block


def sorting(block: DataBlock) -> int:
    r"""Block sorting key.

    Python sorting is stable, so blocks with the same start address keep
    their relative order.
    """

    return block.start


def merge_blocks(blocks: Iterable[DataBlock]) -> List[DataBlock]:
    r"""Merges touching blocks.

    Blocks are sorted by start address, then each block is coalesced into the
    running one if it starts right after its end; otherwise the running block
    is closed and a new one begins.
    Overlapping blocks are never coalesced.

    The source blocks are not modified.

    Args:
        blocks (list of :class:`DataBlock`):
            Blocks in any order.

    Returns:
        list of :class:`DataBlock`: Merged blocks, sorted by address.

    Examples:
        >>> blocks = [DataBlock(5, payload='CC'), DataBlock(0, payload='AABB'),
        ...           DataBlock(3, payload='00'), DataBlock(4, payload='11')]
        >>> merged = merge_blocks(blocks)
        >>> [(b.start, b.end, b.payload) for b in merged]
        [(0, 1, 'AABB'), (3, 5, '0011CC')]
    """

    result = []
    running = None

    for block in sorted(blocks, key=sorting):
        if running is not None and block.start == running.end + 1:
            running.end = block.end
            running.file_end_line = block.file_end_line

            if running.payload is None or block.payload is None:
                running.payload = None
            elif running.text:
                running.payload += block.to_hex()
            else:
                running.payload.extend(block.to_bytes())
        else:
            if running is not None:
                result.append(running)
            running = block.copy()

    if running is not None:
        result.append(running)
    return result
