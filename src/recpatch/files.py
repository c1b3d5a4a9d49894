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

r"""Record file objects.

A record file object binds a file path to a record format, and provides the
read, query, patch, and export operations.

Parsed data can be kept resident in memory, in which case queries and patches
operate on the merged blocks; otherwise each query scans the file again, and
patches rewrite the file itself.
"""

import logging
import os
from typing import Dict
from typing import List
from typing import MutableMapping
from typing import Optional
from typing import Sequence
from typing import Tuple
from typing import Type

from .base import AnyPath
from .base import ErrorCode
from .base import RangeUnavailableError
from .base import RecordFormat
from .base import SourceFileMissingError
from .blocks import DataBlock
from .export import DEFAULT_ADDRESS_LENGTH
from .export import DEFAULT_DATALEN
from .export import build_ihex_lines
from .export import build_srec_lines
from .export import write_binary
from .export import write_lines
from .patch import check_patch_data
from .patch import modify_blocks
from .patch import modify_file
from .query import find_block
from .query import find_gaps
from .query import read_range
from .query import read_range_from_file
from .query import resolve_end
from .reader import get_mtime
from .reader import read_blocks
from .records import make_layout
from .utils import hex_to_bytes

logger = logging.getLogger(__name__)

file_types: MutableMapping[str, Type['RecordFile']] = {}
r"""Registered record file types.

This is an ordered mapping, where the first item has top priority."""


class RecordFile:
    r"""Record file object.

    Args:
        path (str):
            Record file path.

        keep_resident (bool):
            Keep the parsed data in memory.
            Otherwise only addresses and lines are kept, and data is read from
            the file on demand.

        store_text (bool):
            Store resident data as hexadecimal strings, else as bytes.
    """

    FORMAT: RecordFormat = None
    r"""Record format."""

    FILE_EXT: Sequence[str] = []
    r"""File extensions typical of the record format."""

    def __init__(
        self,
        path: AnyPath,
        keep_resident: bool = True,
        store_text: bool = True,
    ):

        if self.FORMAT is None:
            raise TypeError('abstract record file type')

        self.path: AnyPath = path
        self.keep_resident: bool = keep_resident
        self.store_text: bool = store_text
        self.layout = make_layout(self.FORMAT)

        self.raw_blocks: List[DataBlock] = []
        self.blocks: List[DataBlock] = []
        self.errors: Dict[int, ErrorCode] = {}
        self.header: Optional[str] = None
        self.data_lines: int = 0
        self._mtime: Optional[int] = None

    def __repr__(self) -> str:

        return f'<{type(self).__name__} path={os.fspath(self.path)!r}>'

    def read(self) -> bool:
        r"""Reads the record file.

        Line errors do not make the reading fail; they are collected into
        :attr:`errors` instead.

        Returns:
            bool: The file exists and was read.
        """

        try:
            result = read_blocks(self.path, self.layout,
                                 load_data=self.keep_resident,
                                 store_text=self.store_text)
        except SourceFileMissingError:
            logger.warning('%s: file not found', self.path)
            return False

        self.raw_blocks = result.raw_blocks
        self.blocks = result.blocks
        self.errors = result.errors
        self.header = result.header
        self.data_lines = result.data_lines
        self._mtime = result.mtime
        return True

    def is_file_changed(self) -> bool:
        r"""Tells whether the file changed since the last :meth:`read`.

        A missing file counts as changed.
        """

        try:
            return get_mtime(self.path) != self._mtime
        except SourceFileMissingError:
            return True

    def _refresh(self) -> None:

        if not self.keep_resident and self.is_file_changed():
            logger.info('%s: changed on disk, reading again', self.path)
            if not self.read():
                raise SourceFileMissingError(f'source file missing: {os.fspath(self.path)!r}')

    def has_errors(self) -> bool:
        r"""bool: Some record lines are invalid."""

        return bool(self.errors)

    def has_data(self) -> bool:
        r"""bool: Some valid *data* records were found."""

        return self.data_lines > 0

    def has_header(self) -> bool:
        r"""bool: A valid *header* record was found."""

        return self.header is not None

    def is_in_range(
        self,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> bool:
        r"""Checks if an address range is fully available.

        Args:
            start (int):
                Inclusive start address.

            end (int):
                Inclusive end address.

            length (int):
                Range length, alternative to `end`.

        Returns:
            bool: The range lies within a single merged block.
        """

        try:
            end = resolve_end(start, end, length)
        except ValueError:
            return False
        self._refresh()
        return find_block(self.blocks, start, end) is not None

    def get_block(
        self,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> Optional[DataBlock]:
        r"""Gets the merged block containing an address range.

        Returns:
            :class:`DataBlock`: The containing block, or ``None``.
        """

        self._refresh()
        return find_block(self.blocks, start, resolve_end(start, end, length))

    def find_gaps(
        self,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> List[Tuple[int, int]]:
        r"""Lists the missing sub-ranges of an address range.

        Returns:
            list: Inclusive ``(start, end)`` pairs not covered by data.
        """

        self._refresh()
        return find_gaps(self.blocks, start, resolve_end(start, end, length))

    def read_range(
        self,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> str:
        r"""Reads an address range from the resident blocks.

        Returns:
            str: Hexadecimal data; empty if not available.
        """

        return read_range(self.blocks, start, resolve_end(start, end, length))

    def read_range_from_file(
        self,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> str:
        r"""Reads an address range by scanning the file.

        Returns:
            str: Hexadecimal data; empty if not available.

        Raises:
            SourceFileMissingError: the file does not exist.
        """

        return read_range_from_file(self.path, self.layout, start,
                                    resolve_end(start, end, length))

    def extract_range(
        self,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> str:
        r"""Extracts an address range.

        Data comes from the resident blocks, if kept; otherwise the file is
        scanned, after reading it again if changed since the last
        :meth:`read`.

        Args:
            start (int):
                Inclusive start address.

            end (int):
                Inclusive end address.

            length (int):
                Range length, alternative to `end`.

        Returns:
            str: Hexadecimal data; empty if not available.

        Raises:
            SourceFileMissingError: the file does not exist.
        """

        end = resolve_end(start, end, length)
        if self.keep_resident:
            return self.read_range(start, end)

        self._refresh()
        return self.read_range_from_file(start, end)

    def extract_bytes(
        self,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> bytes:
        r"""Extracts an address range as raw bytes.

        Returns:
            bytes: Extracted data; empty if not available.

        See Also:
            :meth:`extract_range`
        """

        return hex_to_bytes(self.extract_range(start, end, length))

    def modify(
        self,
        start: int,
        data: str,
    ) -> 'RecordFile':
        r"""Patches data.

        Resident blocks are patched in memory; otherwise the record file is
        rewritten in place, changing only the records involved.

        Args:
            start (int):
                Patch start address.

            data (str):
                Replacement data, as hexadecimal string.

        Returns:
            :class:`RecordFile`: *self*.

        Raises:
            MalformedDataError: `data` is not an even-length hex string.
            RangeUnavailableError: the range is not within a single block.
            SourceFileMissingError: the file does not exist.
            DestinationUnwritableError: the file cannot be rewritten.
        """

        data = check_patch_data(data)
        end = start + len(data) // 2 - 1

        if self.keep_resident:
            modify_blocks(self.blocks, start, data)
        else:
            self._refresh()
            if find_block(self.blocks, start, end) is None:
                raise RangeUnavailableError(f'range not available: 0x{start:X}-0x{end:X}')

            modify_file(self.path, self.layout, start, data)
            self.read()

        return self

    def _extract_for_export(self, start: int, end: int) -> bytes:

        data = self.extract_bytes(start, end)
        if not data:
            raise RangeUnavailableError(f'range not available: 0x{start:X}-0x{end:X}')
        return data

    def export(
        self,
        path: AnyPath,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
        format: Optional[RecordFormat] = None,
        address_length: int = DEFAULT_ADDRESS_LENGTH,
        datalen: int = DEFAULT_DATALEN,
        new_start: Optional[int] = None,
        header_text: Optional[str] = None,
        line_count: bool = True,
    ) -> 'RecordFile':
        r"""Exports an address range to a new record file.

        Args:
            path (str):
                Output file path.

            start (int):
                Inclusive start address.

            end (int):
                Inclusive end address.

            length (int):
                Range length, alternative to `end`.

            format (:class:`RecordFormat`):
                Output record format; that of this file if ``None``.

            address_length (int):
                S-record address field size, in bytes; 2 to 4.

            datalen (int):
                Maximum record data length, in bytes.

            new_start (int):
                Address of the exported data; `start` if ``None``.

            header_text (str):
                S-record header text; the header of this file if ``None``.

            line_count (bool):
                Emit the S-record line count record.

        Returns:
            :class:`RecordFile`: *self*.

        Raises:
            RangeUnavailableError: the range is not available.
            DestinationUnwritableError: `path` cannot be written.
            ValueError: the exported addresses overflow the output format.
        """

        end = resolve_end(start, end, length)
        data = self._extract_for_export(start, end)
        address = start if new_start is None else new_start
        format = self.FORMAT if format is None else format
        layout = make_layout(format)

        if format is RecordFormat.SREC:
            header = self.header if self.FORMAT is RecordFormat.SREC else None
            lines = build_srec_lines(layout, address, data,
                                     header=header,
                                     header_text=header_text,
                                     address_length=address_length,
                                     datalen=datalen,
                                     line_count=line_count)
        else:
            lines = build_ihex_lines(layout, address, data, datalen=datalen)

        write_lines(path, lines)
        return self

    def export_bin(
        self,
        path: AnyPath,
        start: int,
        end: Optional[int] = None,
        length: Optional[int] = None,
    ) -> 'RecordFile':
        r"""Exports an address range to a raw binary file.

        Returns:
            :class:`RecordFile`: *self*.

        Raises:
            RangeUnavailableError: the range is not available.
            DestinationUnwritableError: `path` cannot be written.
        """

        data = self._extract_for_export(start, resolve_end(start, end, length))
        write_binary(path, data)
        return self


class SrecFile(RecordFile):
    r"""Motorola S-record file object."""

    FORMAT = RecordFormat.SREC

    FILE_EXT: Sequence[str] = [
        # https://en.wikipedia.org/wiki/SREC_(file_format)
        '.s19', '.s28', '.s37', '.s',
        '.s1', '.s2', '.s3', '.sx',
        '.srec', '.exo', '.mot', '.mxt',
    ]


class IhexFile(RecordFile):
    r"""Intel HEX file object."""

    FORMAT = RecordFormat.IHEX

    FILE_EXT: Sequence[str] = [
        # https://en.wikipedia.org/wiki/Intel_HEX
        '.hex', '.mcs', '.int', '.ihex', '.ihe', '.ihx',
        '.h80', '.h86', '.a43', '.a90',
        '.obj', '.obl', '.obh', '.rom', '.eep',
    ]


def guess_format_name(file_path: AnyPath) -> str:
    r"""Guesses the record format name.

    The file extension of `file_path` is looked up within the
    :attr:`RecordFile.FILE_EXT` of the formats registered into
    :data:`file_types`; the first match wins.

    Raises:
        ValueError: Cannot guess record file format.

    Examples:
        >>> guess_format_name('simple.hex')
        'ihex'
        >>> guess_format_name('simple.s19')
        'srec'
    """

    file_ext = os.path.splitext(os.fspath(file_path))[1].lower()

    for name, file_type in file_types.items():
        if file_ext in file_type.FILE_EXT:
            return name

    raise ValueError(f'extension not found: {file_ext!r}')


def load(
    path: AnyPath,
    format: Optional[str] = None,
    keep_resident: bool = True,
    store_text: bool = True,
) -> RecordFile:
    r"""Loads a record file.

    Args:
        path (str):
            Record file path.

        format (str):
            Name of the format within :data:`file_types`.
            If ``None``, it is guessed via :func:`guess_format_name`.

        keep_resident (bool):
            Keep parsed data in memory.

        store_text (bool):
            Store resident data as hexadecimal strings.

    Returns:
        :class:`RecordFile`: Read record file object.

    Raises:
        SourceFileMissingError: `path` does not exist.
    """

    if format is None:
        format = guess_format_name(path)
    file = file_types[format](path, keep_resident=keep_resident, store_text=store_text)

    if not file.read():
        raise SourceFileMissingError(f'source file missing: {os.fspath(path)!r}')
    return file
