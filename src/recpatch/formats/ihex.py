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

r"""Intel HEX format.

See Also:
    `<https://en.wikipedia.org/wiki/Intel_HEX>`_
"""

import enum
from types import MappingProxyType
from typing import Mapping

from ..base import FormatLayout
from ..base import RecordCategory
from ..base import RecordFormat

ADDRESS_LENGTHS: Mapping[str, int] = {
    '00': 4,
    '01': 4,
    '02': 4,
    '03': 4,
    '04': 4,
    '05': 4,
}
r"""Address field length (hex digits) by record type code."""

DATA_MAX: int = 0xFF
r"""Maximum data length of a record, in bytes."""


class IhexTag(enum.IntEnum):
    r"""Intel HEX tag."""

    DATA = 0
    r"""Binary data."""

    END_OF_FILE = 1
    r"""End Of File."""

    EXTENDED_SEGMENT_ADDRESS = 2
    r"""Extended Segment Address."""

    START_SEGMENT_ADDRESS = 3
    r"""Start Segment Address."""

    EXTENDED_LINEAR_ADDRESS = 4
    r"""Extended Linear Address."""

    START_LINEAR_ADDRESS = 5
    r"""Start Linear Address."""

    def to_code(self) -> str:
        r"""Record type field text.

        Examples:
            >>> IhexTag.EXTENDED_LINEAR_ADDRESS.to_code()
            '04'
        """

        return '%02X' % int(self)


CATEGORIES: Mapping[str, RecordCategory] = {
    '00': RecordCategory.DATA,
    '01': RecordCategory.TERMINATION,
    '02': RecordCategory.EXTENDED_SEGMENT_ADDRESS,
    '03': RecordCategory.START_SEGMENT_ADDRESS,
    '04': RecordCategory.EXTENDED_LINEAR_ADDRESS,
    '05': RecordCategory.START_LINEAR_ADDRESS,
}

END_OF_FILE_LINE = ':00000001FF'


def make_layout() -> FormatLayout:
    r"""Builds a new Intel HEX layout."""

    return FormatLayout(
        kind=RecordFormat.IHEX,
        start_code=':',
        count_position=1,
        count_length=2,
        type_position=7,
        type_length=2,
        address_position=3,
        checksum_length=2,
        ones_complement=False,
        min_length=11,
        address_lengths=MappingProxyType(dict(ADDRESS_LENGTHS)),
        checksum_fields=('count', 'address', 'tag', 'data'),
        field_order=('count', 'address', 'tag', 'data', 'checksum'),
    )


def count_span(layout: FormatLayout, line: str, size: int) -> str:
    r"""Characters accounted by the *count* field: the *data* field only."""

    begin = layout.type_position + layout.type_length
    return line[begin:(begin + max(size, 0))]


def data_span(layout: FormatLayout, line: str, tag: str, size: int) -> str:
    r"""Characters of the *data* field, after the *type* field."""

    if size <= 0:
        return ''
    begin = layout.type_position + layout.type_length
    return line[begin:(begin + size)]


def classify(tag: str) -> RecordCategory:
    r"""Maps a record type code to its category.

    Examples:
        >>> classify('04')
        <RecordCategory.EXTENDED_LINEAR_ADDRESS: 'extended_linear_address'>
        >>> classify('06')
        <RecordCategory.OTHER: 'other'>
    """

    return CATEGORIES.get(tag, RecordCategory.OTHER)
