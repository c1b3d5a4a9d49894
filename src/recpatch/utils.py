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

r"""Generic utility functions."""

import binascii
import re
from typing import Any
from typing import Iterator
from typing import Optional
from typing import Union

from .base import NotHexError

HEX_DIGITS = frozenset('0123456789ABCDEFabcdef')
r"""Valid hexadecimal digit characters."""

INT_REGEX = re.compile(r'^\s*(?P<sign>[+-]?)\s*'
                       r'(?P<prefix>(0x|0b|0o)?)'
                       r'(?P<value>[a-f0-9]+)'
                       r'(?P<suffix>h?)\s*$')

DEFAULT_DELETE: str = ' \t.-:_\r\n'
r"""Byte separators and whitespace removed by :func:`unhexlify`."""


def is_hex(text: str) -> bool:
    r"""Checks for a hexadecimal string.

    Args:
        text (str):
            Text to check.

    Returns:
        bool: All the characters are hexadecimal digits.
        An empty string is considered hexadecimal.

    Examples:
        >>> is_hex('00aaFF')
        True
        >>> is_hex('0x12')
        False
        >>> is_hex('')
        True
    """

    return all(c in HEX_DIGITS for c in text)


def hex_to_int(
    text: str,
    bits: int = 32,
) -> int:
    r"""Converts a hexadecimal string into an unsigned integer.

    Args:
        text (str):
            Hexadecimal digits, without any prefix.

        bits (int):
            Maximum bit size of the result.

    Returns:
        int: Decoded value.

    Raises:
        NotHexError: `text` is empty or not hexadecimal.
        ValueError: integer overflow.

    Examples:
        >>> hex_to_int('FFFF')
        65535
        >>> hex_to_int('100000000')
        Traceback (most recent call last):
            ...
        ValueError: integer overflow
        >>> hex_to_int('XYZ')
        Traceback (most recent call last):
            ...
        recpatch.base.NotHexError: not hexadecimal: 'XYZ'
    """

    if not text or not is_hex(text):
        raise NotHexError(f'not hexadecimal: {text!r}')

    value = int(text, 16)
    if value >> bits:
        raise ValueError('integer overflow')
    return value


def hex_to_int64(text: str) -> int:
    r"""Converts a hexadecimal string into a 64-bit unsigned integer.

    See Also:
        :func:`hex_to_int`
    """

    return hex_to_int(text, bits=64)


def hex_to_bytes(text: str) -> bytes:
    r"""Converts a hexadecimal string into raw bytes.

    Args:
        text (str):
            Hexadecimal string, two digits per byte.

    Returns:
        bytes: Decoded bytes.

    Raises:
        NotHexError: `text` is not hexadecimal.
        ValueError: `text` has odd length.

    Examples:
        >>> hex_to_bytes('AABBcc')
        b'\xaa\xbb\xcc'
        >>> hex_to_bytes('')
        b''
    """

    if not is_hex(text):
        raise NotHexError(f'not hexadecimal: {text!r}')
    if len(text) & 1:
        raise ValueError('odd length')
    return binascii.unhexlify(text)


def text_to_hex(
    text: str,
    encoding: str = 'utf-8',
) -> str:
    r"""Converts text into its upper-case hexadecimal encoding.

    Examples:
        >>> text_to_hex('hello')
        '68656C6C6F'
    """

    return binascii.hexlify(text.encode(encoding)).decode('ascii').upper()


def checksum(
    hex_payload: str,
    ones_complement: bool = True,
    size: int = 1,
    zero_pad: bool = False,
) -> str:
    r"""Computes a record checksum.

    All the byte values of `hex_payload` are summed, then the sum is negated
    by either one's complement (``~sum``) or two's complement (``-sum``).
    Only the low `size` bytes of the result are kept, as hexadecimal digits.

    Args:
        hex_payload (str):
            Hexadecimal string of the checksummed fields.

        ones_complement (bool):
            Use one's complement, else two's complement.

        size (int):
            Checksum size, in bytes.

        zero_pad (bool):
            Left-pad the result with zeros to ``size * 2`` digits.

    Returns:
        str: Upper-case hexadecimal checksum.

    Examples:
        >>> checksum('030000')
        'FC'
        >>> checksum('10010000214601360121470136007EFE09D21901', False)
        '40'
        >>> checksum('', False)
        '0'
        >>> checksum('', False, zero_pad=True)
        '00'
    """

    total = sum(hex_to_bytes(hex_payload))
    value = ~total if ones_complement else -total
    width = size * 2

    if value < 0:
        text = '%0*X' % (width, value & ((1 << (width * 4)) - 1))
    else:
        text = ('%X' % value)[-width:]

    if zero_pad:
        text = text.zfill(width)
    return text


def chop(
    vector: Union[str, bytes],
    window: int,
) -> Iterator[Union[str, bytes]]:
    r"""Chops a vector into windows.

    Args:
        vector (items):
            Vector to chop.

        window (int):
            Window length.

    Yields:
        items: `vector` slices of up to `window` elements.

    Examples:
        >>> list(chop('ABCDEFG', 2))
        ['AB', 'CD', 'EF', 'G']
    """

    window = int(window)
    if window <= 0:
        raise ValueError('non-positive window')

    for i in range(0, len(vector), window):
        yield vector[i:(i + window)]


def hexlify(
    data: Union[bytes, bytearray],
    sep: str = '',
    upper: bool = True,
) -> str:
    r"""Converts raw bytes into a hexadecimal string.

    Examples:
        >>> hexlify(b'\xAA\xBB\xCC')
        'AABBCC'
        >>> hexlify(b'\xAA\xBB\xCC', sep=' ', upper=False)
        'aa bb cc'
    """

    if sep:
        text = sep.join('%02X' % b for b in data)
    else:
        text = binascii.hexlify(data).decode('ascii').upper()

    return text if upper else text.lower()


def unhexlify(
    text: str,
    delete: Optional[str] = DEFAULT_DELETE,
) -> str:
    r"""Normalizes a hexadecimal string.

    Characters within `delete` are removed, then the remaining text is
    validated and converted to upper case.

    Returns:
        str: Upper-case hexadecimal string.

    Raises:
        NotHexError: invalid characters.

    Examples:
        >>> unhexlify('aa bb-cc')
        'AABBCC'
    """

    if delete:
        text = text.translate({ord(c): None for c in delete})
    if not is_hex(text):
        raise NotHexError(f'not hexadecimal: {text!r}')
    return text.upper()


def parse_int(
    value: Union[str, Any],
) -> Optional[int]:
    r"""Parses an integer.

    Args:
        value:
            A generic object to convert to integer.
            Strings (case-insensitive) can be prefixed with ``0x`` or
            postfixed with ``h`` for hexadecimal, prefixed with ``0b`` for
            binary, or with ``0o`` for octal; decimal otherwise.
            A ``None`` value evaluates as ``None``.
            Any other object calls the standard :func:`int`.

    Returns:
        int: None if `value` is ``None``, its integer conversion otherwise.

    Examples:
        >>> parse_int('0x8000')
        32768
        >>> parse_int('8000h')
        32768
        >>> parse_int('-12')
        -12
        >>> parse_int(None) is None
        True
    """

    if value is None:
        return None

    elif isinstance(value, str):
        m = INT_REGEX.match(value.lower())
        if not m:
            raise ValueError(f'invalid syntax: {value!r}')
        g = m.groupdict()
        prefix = g['prefix']
        digits = g['value']
        suffix = g['suffix']

        if prefix and suffix:
            raise ValueError(f'invalid syntax: {value!r}')
        if prefix == '0x' or suffix == 'h':
            i = int(digits, 16)
        elif prefix == '0b':
            i = int(digits, 2)
        elif prefix == '0o':
            i = int(digits, 8)
        else:
            i = int(digits, 10)

        return -i if g['sign'] == '-' else i

    else:
        return int(value)
