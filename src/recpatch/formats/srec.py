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

r"""Motorola S-record format.

See Also:
    `<https://en.wikipedia.org/wiki/SREC_(file_format)>`_
"""

import enum
from types import MappingProxyType
from typing import Mapping

from ..base import FormatLayout
from ..base import RecordCategory
from ..base import RecordFormat

ADDRESS_LENGTHS: Mapping[str, int] = {
    '0': 4,
    '1': 4,
    '2': 6,
    '3': 8,
    '5': 4,
    '6': 6,
    '7': 8,
    '8': 6,
    '9': 4,
}
r"""Address field length (hex digits) by record type code."""

HEADER_DATA_MAX: int = 0xFF - 2 - 1
r"""Maximum header data length, in bytes."""


class SrecTag(enum.IntEnum):
    r"""Motorola S-record tag."""

    HEADER = 0
    r"""Header string. Optional."""

    DATA_16 = 1
    r"""16-bit address data record."""

    DATA_24 = 2
    r"""24-bit address data record."""

    DATA_32 = 3
    r"""32-bit address data record."""

    RESERVED = 4
    r"""Reserved tag."""

    COUNT_16 = 5
    r"""16-bit record count. Optional."""

    COUNT_24 = 6
    r"""24-bit record count. Optional."""

    START_32 = 7
    r"""32-bit start address. Terminates :attr:`DATA_32`."""

    START_24 = 8
    r"""24-bit start address. Terminates :attr:`DATA_24`."""

    START_16 = 9
    r"""16-bit start address. Terminates :attr:`DATA_16`."""

    @classmethod
    def fit_count_tag(cls, count: int) -> 'SrecTag':
        r"""Fits the most compact *count* tag for a record count.

        Raises:
            ValueError: invalid `count`.

        Examples:
            >>> SrecTag.fit_count_tag(0xFFFF)
            <SrecTag.COUNT_16: 5>
            >>> SrecTag.fit_count_tag(0x10000)
            <SrecTag.COUNT_24: 6>
        """

        if count < 0:
            raise ValueError('count overflow')
        if count <= 0xFFFF:
            return cls.COUNT_16
        if count <= 0xFFFFFF:
            return cls.COUNT_24
        raise ValueError('count overflow')

    @classmethod
    def fit_data_tag(
        cls,
        address_max: int,
        address_size: int = 2,
    ) -> 'SrecTag':
        r"""Fits a *data* record tag.

        The returned tag has an address field of at least `address_size`
        bytes, widened as needed to hold `address_max`.

        Args:
            address_max (int):
                Maximum *address* of the involved *data* records.

            address_size (int):
                Minimum address field size, in bytes; 2 to 4.

        Returns:
            :class:`SrecTag`: *Data* record tag.

        Raises:
            ValueError: invalid `address_max` or `address_size`.

        Examples:
            >>> SrecTag.fit_data_tag(0xFFFF)
            <SrecTag.DATA_16: 1>
            >>> SrecTag.fit_data_tag(0xFFFF, 4)
            <SrecTag.DATA_32: 3>
            >>> SrecTag.fit_data_tag(0x123456, 2)
            <SrecTag.DATA_24: 2>
            >>> SrecTag.fit_data_tag(0x100000000)
            Traceback (most recent call last):
                ...
            ValueError: address overflow
        """

        if not 2 <= address_size <= 4:
            raise ValueError('invalid address length')
        if address_max < 0:
            raise ValueError('address overflow')

        for tag in (cls.DATA_16, cls.DATA_24, cls.DATA_32):
            if tag.address_size >= address_size and address_max <= tag.get_address_max():
                return tag
        raise ValueError('address overflow')

    @property
    def address_size(self) -> int:
        r"""int: Address field size, in bytes."""

        return ADDRESS_LENGTHS.get(str(int(self)), 0) // 2

    def get_address_max(self) -> int:
        r"""Calculates the maximum address of the *address* field.

        Examples:
            >>> SrecTag.DATA_24.get_address_max()
            16777215
        """

        return (1 << (self.address_size * 8)) - 1

    def to_termination(self) -> 'SrecTag':
        r"""Termination tag matching a *data* tag.

        Examples:
            >>> SrecTag.DATA_16.to_termination()
            <SrecTag.START_16: 9>
        """

        if not SrecTag.DATA_16 <= self <= SrecTag.DATA_32:
            raise ValueError('not a data tag')
        return SrecTag(10 - int(self))


CATEGORIES: Mapping[str, RecordCategory] = {
    '0': RecordCategory.HEADER,
    '1': RecordCategory.DATA,
    '2': RecordCategory.DATA,
    '3': RecordCategory.DATA,
    '4': RecordCategory.RESERVED,
    '5': RecordCategory.LINE_COUNT,
    '6': RecordCategory.LINE_COUNT,
    '7': RecordCategory.TERMINATION,
    '8': RecordCategory.TERMINATION,
    '9': RecordCategory.TERMINATION,
}


def make_layout() -> FormatLayout:
    r"""Builds a new S-record layout.

    Each call returns an independent value; the address length table is a
    fresh read-only copy.
    """

    return FormatLayout(
        kind=RecordFormat.SREC,
        start_code='S',
        count_position=2,
        count_length=2,
        type_position=1,
        type_length=1,
        address_position=4,
        checksum_length=2,
        ones_complement=True,
        min_length=10,
        address_lengths=MappingProxyType(dict(ADDRESS_LENGTHS)),
        checksum_fields=('count', 'address', 'data'),
        field_order=('tag', 'count', 'address', 'data', 'checksum'),
    )


def count_span(layout: FormatLayout, line: str, size: int) -> str:
    r"""Characters accounted by the *count* field.

    These are all the characters after the *count* field itself:
    *address*, *data*, and *checksum*.
    """

    return line[(layout.count_position + layout.count_length):]


def data_span(layout: FormatLayout, line: str, tag: str, size: int) -> str:
    r"""Characters of the *data* field, between *address* and *checksum*."""

    if size <= 0:
        return ''
    begin = layout.address_position + layout.address_lengths[tag]
    return line[begin:(begin + size)]


def classify(tag: str) -> RecordCategory:
    r"""Maps a record type code to its category.

    Examples:
        >>> classify('2')
        <RecordCategory.DATA: 'data'>
        >>> classify('8')
        <RecordCategory.TERMINATION: 'termination'>
    """

    return CATEGORIES.get(tag, RecordCategory.OTHER)
