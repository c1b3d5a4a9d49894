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

r"""Generic record line engine.

Lines are validated, parsed, and rebuilt according to a
:class:`~recpatch.base.FormatLayout`.
The few behaviors that differ between formats are dispatched by
:attr:`FormatLayout.kind` to the hooks of the matching module within
:mod:`recpatch.formats`.
"""

from types import ModuleType
from typing import Dict
from typing import List
from typing import Mapping
from typing import Tuple

from .base import ErrorCode
from .base import FormatLayout
from .base import ParsedRecord
from .base import RecordCategory
from .base import RecordFormat
from .formats import ihex
from .formats import srec
from .utils import checksum
from .utils import is_hex

FORMAT_HOOKS: Mapping[RecordFormat, ModuleType] = {
    RecordFormat.SREC: srec,
    RecordFormat.IHEX: ihex,
}
r"""Format specific hooks, by record format."""


def make_layout(kind: RecordFormat) -> FormatLayout:
    r"""Builds a new layout for a record format.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> make_layout(RecordFormat.IHEX).start_code
        ':'
    """

    return FORMAT_HOOKS[kind].make_layout()


def _data_size(layout: FormatLayout, line: str, tag: str) -> int:

    address_length = layout.address_lengths[tag]
    return (len(line) - 1 - layout.type_length - layout.count_length
            - address_length - layout.checksum_length)


def _type_field(layout: FormatLayout, line: str) -> str:

    position = layout.type_position
    return line[position:(position + layout.type_length)]


def validate_line(layout: FormatLayout, line: str) -> ErrorCode:
    r"""Validates the structure of a record line.

    Checks are performed in a fixed order; the first failing one determines
    the returned error, and the following ones are not evaluated.
    The checksum is not verified here; see :func:`parse_line`.

    Args:
        layout (:class:`FormatLayout`):
            Record line layout.

        line (str):
            Record line, without whitespace.

    Returns:
        :class:`ErrorCode`: Validation result.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> layout = make_layout(RecordFormat.IHEX)
        >>> validate_line(layout, ':10010000214601360121470136007EFE09D2190040')
        <ErrorCode.OK: 0>
        >>> validate_line(layout, 'S9030000FC')
        <ErrorCode.NOT_STARTING_WITH_START_CODE: 1>
    """

    if not line.startswith(layout.start_code):
        return ErrorCode.NOT_STARTING_WITH_START_CODE

    if len(line) < layout.min_length:
        return ErrorCode.LOWER_THAN_MINIMUM_LENGTH

    if not is_hex(line[len(layout.start_code):]):
        return ErrorCode.RAW_DATA_NOT_HEX

    tag = _type_field(layout, line)
    if not tag.isdigit() or tag not in layout.address_lengths:
        return ErrorCode.UNKNOWN_RECORD_TYPE

    size = _data_size(layout, line, tag)
    span = FORMAT_HOOKS[layout.kind].count_span(layout, line, size)
    position = layout.count_position
    count = int(line[position:(position + layout.count_length)], 16)

    if size < 0 or len(span) & 1 or size & 1 or count != len(span) // 2:
        return ErrorCode.LENGTH_MISMATCH

    return ErrorCode.OK


def parse_line(layout: FormatLayout, line: str) -> ParsedRecord:
    r"""Parses a validated record line.

    The checksum is recomputed over the fields listed by
    :attr:`FormatLayout.checksum_fields`, and returned alongside the declared
    one; comparing them is up to the caller.

    Args:
        layout (:class:`FormatLayout`):
            Record line layout.

        line (str):
            Record line, already validated by :func:`validate_line`.

    Returns:
        :class:`ParsedRecord`: Extracted fields.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> layout = make_layout(RecordFormat.SREC)
        >>> record = parse_line(layout, 'S1060100AABBCCC7')
        >>> record.address_value, record.data
        (256, 'AABBCC')
    """

    hooks = FORMAT_HOOKS[layout.kind]
    tag = _type_field(layout, line)
    address_length = layout.address_lengths[tag]

    position = layout.count_position
    count = line[position:(position + layout.count_length)]

    position = layout.address_position
    address = line[position:(position + address_length)]

    size = _data_size(layout, line, tag)
    data = hooks.data_span(layout, line, tag, size)
    declared = line[(len(line) - layout.checksum_length):]

    fields = {'tag': tag, 'count': count, 'address': address, 'data': data}
    payload = ''.join(fields[name] for name in layout.checksum_fields)
    computed = checksum(payload, layout.ones_complement,
                        size=layout.checksum_length // 2, zero_pad=True)

    return ParsedRecord(
        tag=tag,
        count=count,
        count_value=int(count, 16),
        address_length=address_length,
        address=address,
        address_value=int(address, 16),
        data=data,
        checksum=declared,
        checksum_calc=computed,
    )


def classify(layout: FormatLayout, tag: str) -> RecordCategory:
    r"""Maps a record type code to its semantic category.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> classify(make_layout(RecordFormat.SREC), '0')
        <RecordCategory.HEADER: 'header'>
        >>> classify(make_layout(RecordFormat.IHEX), '00')
        <RecordCategory.DATA: 'data'>
    """

    return FORMAT_HOOKS[layout.kind].classify(tag)


def split_records(
    line: str,
    start_code: str,
) -> List[Tuple[int, int, str]]:
    r"""Splits a physical line into record lines.

    Whitespace is removed, and a new record begins at each start code, so
    that many records can share the same physical line.
    Any text before the first start code makes a record on its own.

    Args:
        line (str):
            Physical text line.

        start_code (str):
            Record start code character.

    Returns:
        list: ``(begin, endex, text)`` tuples, where `begin` and `endex`
        delimit the record within `line`, and `text` is the record without
        whitespace.

    Examples:
        >>> split_records(' :00000001FF :00000001FF\n', ':')
        [(1, 12, ':00000001FF'), (13, 24, ':00000001FF')]
    """

    result = []
    chars = []
    begin = endex = 0

    for index, c in enumerate(line):
        if c.isspace():
            continue
        if c == start_code and chars:
            result.append((begin, endex, ''.join(chars)))
            chars = []
        if not chars:
            begin = index
        chars.append(c)
        endex = index + 1

    if chars:
        result.append((begin, endex, ''.join(chars)))
    return result


def build_record(layout: FormatLayout, record: ParsedRecord) -> str:
    r"""Serializes a record line.

    Fields are emitted in :attr:`FormatLayout.field_order`.
    The *count* field is recomputed from the *address* and *data* fields,
    and the *checksum* over :attr:`FormatLayout.checksum_fields`.

    Args:
        layout (:class:`FormatLayout`):
            Record line layout.

        record (:class:`ParsedRecord`):
            Record fields; only *tag*, *address*, and *data* are taken.

    Returns:
        str: Record line, without line terminator.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> layout = make_layout(RecordFormat.IHEX)
        >>> record = parse_line(layout, ':0100000011EE')
        >>> build_record(layout, record._replace(data='22'))
        ':0100000022DD'
    """

    if layout.kind is RecordFormat.SREC:
        count_value = (len(record.address) + len(record.data) + layout.checksum_length) // 2
    else:
        count_value = len(record.data) // 2

    fields: Dict[str, str] = {
        'tag': record.tag,
        'count': '%0*X' % (layout.count_length, count_value),
        'address': record.address,
        'data': record.data.upper(),
    }
    payload = ''.join(fields[name] for name in layout.checksum_fields)
    fields['checksum'] = checksum(payload, layout.ones_complement,
                                  size=layout.checksum_length // 2, zero_pad=True)

    return layout.start_code + ''.join(fields[name] for name in layout.field_order)


def make_record(
    layout: FormatLayout,
    tag: str,
    address: int,
    data: str = '',
) -> str:
    r"""Creates a record line from its field values.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> make_record(make_layout(RecordFormat.SREC), '9', 0)
        'S9030000FC'
        >>> make_record(make_layout(RecordFormat.IHEX), '01', 0)
        ':00000001FF'
    """

    address_length = layout.address_lengths[tag]
    if address < 0 or address >> (address_length * 4):
        raise ValueError('address overflow')

    record = ParsedRecord(
        tag=tag,
        count='',
        count_value=0,
        address_length=address_length,
        address='%0*X' % (address_length, address),
        address_value=address,
        data=data,
        checksum='',
        checksum_calc='',
    )
    return build_record(layout, record)


def to_tokens(layout: FormatLayout, line: str) -> Mapping[str, str]:
    r"""Splits a record line into its field tokens.

    Lines failing :func:`validate_line` are returned as a single ``after``
    token.

    Examples:
        >>> from recpatch.base import RecordFormat
        >>> to_tokens(make_layout(RecordFormat.SREC), 'S9030000FC')
        {'begin': 'S', 'tag': '9', 'count': '03', 'address': '0000', 'data': '', 'checksum': 'FC'}
    """

    if validate_line(layout, line) != ErrorCode.OK:
        return {'after': line}

    record = parse_line(layout, line)
    tokens = {'begin': layout.start_code}
    for name in layout.field_order:
        tokens[name] = getattr(record, name)
    return tokens
