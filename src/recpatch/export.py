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

r"""Record file export.

An address range is serialized into a brand new record file, either Motorola
S-record or Intel HEX, or dumped as raw binary data.
"""

import logging
import os
from typing import List
from typing import Optional
from typing import Sequence
from typing import Union

from .base import AnyPath
from .base import DestinationUnwritableError
from .base import FormatLayout
from .base import RecordFormat
from .formats.ihex import DATA_MAX as IHEX_DATA_MAX
from .formats.ihex import IhexTag
from .formats.srec import HEADER_DATA_MAX
from .formats.srec import SrecTag
from .records import make_record
from .utils import chop
from .utils import hexlify
from .utils import text_to_hex

logger = logging.getLogger(__name__)

DEFAULT_DATALEN: int = 32
r"""Default record data length, in bytes."""

DEFAULT_ADDRESS_LENGTH: int = 4
r"""Default S-record address field size, in bytes."""

EOL: str = '\r\n'
r"""Record line terminator."""

AnyBytes = Union[bytes, bytearray, memoryview]


def build_srec_lines(
    layout: FormatLayout,
    address: int,
    data: AnyBytes,
    header: Optional[str] = None,
    header_text: Optional[str] = None,
    address_length: int = DEFAULT_ADDRESS_LENGTH,
    datalen: int = DEFAULT_DATALEN,
    line_count: bool = True,
) -> List[str]:
    r"""Serializes data into Motorola S-record lines.

    The output is made of a header record, the data records, an optional
    line count record, and the termination record matching the data records.

    Args:
        layout (:class:`FormatLayout`):
            S-record layout.

        address (int):
            Address of the first data byte.

        data (bytes):
            Data to serialize.

        header (str):
            Header data, as hexadecimal string.

        header_text (str):
            Header text; overrides `header`.

        address_length (int):
            Minimum address field size, in bytes; 2 to 4.
            It is widened as needed to fit the data addresses.

        datalen (int):
            Maximum data length of a record, clamped to the format limits.

        line_count (bool):
            Emit the data line count record.

    Returns:
        list of str: Record lines.

    Raises:
        ValueError: invalid address length, or address overflow.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> from recpatch.records import make_layout
        >>> layout = make_layout(RecordFormat.SREC)
        >>> build_srec_lines(layout, 0x1234, b'\x01\x02\x03', address_length=2, datalen=2)
        ['S0030000FC', 'S10512340102B1', 'S104123603B0', 'S5030002FA', 'S9030000FC']
    """

    if layout.kind is not RecordFormat.SREC:
        raise ValueError('layout kind mismatch')

    address_max = address + max(len(data) - 1, 0)
    tag = SrecTag.fit_data_tag(address_max, address_length)
    datalen = min(max(1, datalen), 0xFF - 1 - tag.address_size)

    if header_text is not None:
        header = text_to_hex(header_text)
    header = (header or '')[:(HEADER_DATA_MAX * 2)]

    lines = [make_record(layout, str(int(SrecTag.HEADER)), 0, header)]
    count = 0

    for chunk in chop(data, datalen):
        lines.append(make_record(layout, str(int(tag)), address, hexlify(chunk)))
        address += len(chunk)
        count += 1

    if line_count:
        count_tag = SrecTag.fit_count_tag(count)
        lines.append(make_record(layout, str(int(count_tag)), count))

    lines.append(make_record(layout, str(int(tag.to_termination())), 0))
    return lines


def build_ihex_lines(
    layout: FormatLayout,
    address: int,
    data: AnyBytes,
    datalen: int = DEFAULT_DATALEN,
) -> List[str]:
    r"""Serializes data into Intel HEX lines.

    An *extended linear address* record sets the initial bank.
    Data records never cross a 64 KiB bank boundary: a record reaching the
    end of the bank is shortened, and a new *extended linear address* record
    opens the following bank.
    The *end of file* record terminates the sequence.

    Args:
        layout (:class:`FormatLayout`):
            Intel HEX layout.

        address (int):
            Address of the first data byte.

        data (bytes):
            Data to serialize.

        datalen (int):
            Maximum data length of a record, clamped to the format limits.

    Returns:
        list of str: Record lines.

    Raises:
        ValueError: address overflow.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> from recpatch.records import make_layout
        >>> layout = make_layout(RecordFormat.IHEX)
        >>> build_ihex_lines(layout, 0x1FFFF, b'\x01\x02')
        [':020000040001F9', ':01FFFF000100', ':020000040002F8', ':0100000002FD', ':00000001FF']
    """

    if layout.kind is not RecordFormat.IHEX:
        raise ValueError('layout kind mismatch')
    if address < 0 or address + len(data) - 1 > 0xFFFFFFFF:
        raise ValueError('address overflow')

    datalen = min(max(1, datalen), IHEX_DATA_MAX)
    ela = IhexTag.EXTENDED_LINEAR_ADDRESS.to_code()
    bank = address >> 16
    lines = [make_record(layout, ela, 0, '%04X' % bank)]
    offset = 0

    while offset < len(data):
        if address >> 16 != bank:
            bank = address >> 16
            lines.append(make_record(layout, ela, 0, '%04X' % bank))

        size = min(datalen, len(data) - offset, 0x10000 - (address & 0xFFFF))
        chunk = data[offset:(offset + size)]
        lines.append(make_record(layout, IhexTag.DATA.to_code(), address & 0xFFFF, hexlify(chunk)))
        offset += size
        address += size

    lines.append(make_record(layout, IhexTag.END_OF_FILE.to_code(), 0))
    return lines


def write_lines(
    path: AnyPath,
    lines: Sequence[str],
    eol: str = EOL,
) -> None:
    r"""Writes record lines to a text file.

    Raises:
        DestinationUnwritableError: `path` cannot be written.
    """

    try:
        with open(path, 'wt', encoding='ascii', newline='') as stream:
            for line in lines:
                stream.write(line)
                stream.write(eol)

    except OSError as exc:
        raise DestinationUnwritableError(f'cannot write: {os.fspath(path)!r}') from exc

    logger.info('%s: %d record lines written', path, len(lines))


def write_binary(
    path: AnyPath,
    data: AnyBytes,
) -> None:
    r"""Writes raw data to a binary file, with no framing.

    Raises:
        DestinationUnwritableError: `path` cannot be written.
    """

    try:
        with open(path, 'wb') as stream:
            stream.write(data)

    except OSError as exc:
        raise DestinationUnwritableError(f'cannot write: {os.fspath(path)!r}') from exc

    logger.info('%s: %d bytes written', path, len(data))
