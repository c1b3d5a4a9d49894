from typing import Any
from typing import Mapping

import pytest

from recpatch.base import NotHexError
from recpatch.utils import checksum
from recpatch.utils import chop
from recpatch.utils import hex_to_bytes
from recpatch.utils import hex_to_int
from recpatch.utils import hex_to_int64
from recpatch.utils import hexlify
from recpatch.utils import is_hex
from recpatch.utils import parse_int
from recpatch.utils import text_to_hex
from recpatch.utils import unhexlify

PARSE_INT_PASS: Mapping[Any, int] = {
    None: None,

    '123': 123,
    ' 123 ': 123,
    '+123': 123,
    '-123': -123,
    ' - 123 ': -123,

    '0xDEADBEEF': 0xDEADBEEF,
    '0XDEADBEEF': 0xDEADBEEF,
    'DEADBEEFh': 0xDEADBEEF,
    'DEADBEEFH': 0xDEADBEEF,

    '0b101100111000': 0b101100111000,
    '0o1234567': 0o1234567,

    123: 123,
    135.7: 135,
}

PARSE_INT_FAIL = [
    '',
    'x',
    '0x',
    '0xh',
    '0x12h',
    '0b12',
    '0o89',
    '12 34',
]


def test_is_hex():
    assert is_hex('0123456789ABCDEFabcdef') is True
    assert is_hex('') is True
    assert is_hex('0x00') is False
    assert is_hex('GG') is False
    assert is_hex('AA BB') is False


def test_hex_to_int():
    assert hex_to_int('0') == 0
    assert hex_to_int('ff') == 255
    assert hex_to_int('FFFFFFFF') == 0xFFFFFFFF
    assert hex_to_int('00000000FFFF') == 0xFFFF


def test_hex_to_int_overflow():
    with pytest.raises(ValueError, match='integer overflow'):
        hex_to_int('100000000')

    with pytest.raises(ValueError, match='integer overflow'):
        hex_to_int('100', bits=8)


def test_hex_to_int_not_hex():
    for text in ('', 'XYZ', '-1', '0x10', ' 1'):
        with pytest.raises(NotHexError, match='not hexadecimal'):
            hex_to_int(text)


def test_hex_to_int64():
    assert hex_to_int64('FFFFFFFFFFFFFFFF') == 0xFFFFFFFFFFFFFFFF

    with pytest.raises(ValueError, match='integer overflow'):
        hex_to_int64('10000000000000000')

    with pytest.raises(NotHexError):
        hex_to_int64('hello')


def test_hex_to_bytes():
    assert hex_to_bytes('') == b''
    assert hex_to_bytes('00ff7F') == b'\x00\xFF\x7F'


def test_hex_to_bytes_raises():
    with pytest.raises(NotHexError):
        hex_to_bytes('0G')

    with pytest.raises(ValueError, match='odd length'):
        hex_to_bytes('ABC')


def test_checksum_ones_complement():
    assert checksum('030000') == 'FC'
    assert checksum('130000285F245F2212226A000424290008237C') == '2A'
    assert checksum('FF') == '00'
    assert checksum('') == 'FF'


def test_checksum_twos_complement():
    assert checksum('10010000214601360121470136007EFE09D21901', False) == '40'
    assert checksum('00000001', False) == 'FF'
    assert checksum('01', False) == 'FF'
    assert checksum('0100', False, size=2) == 'FFFF'


def test_checksum_zero_sum():
    assert checksum('', False) == '0'
    assert checksum('0000', False) == '0'
    assert checksum('', False, zero_pad=True) == '00'
    assert checksum('', False, size=2, zero_pad=True) == '0000'


def test_checksum_padding():
    assert checksum('FE') == '01'
    assert checksum('FE', zero_pad=True) == '01'
    assert checksum('0100', False, size=2, zero_pad=True) == 'FFFF'


def test_checksum_not_hex():
    with pytest.raises(NotHexError):
        checksum('XY')


def test_text_to_hex():
    assert text_to_hex('') == ''
    assert text_to_hex('hello') == '68656C6C6F'
    assert text_to_hex('è') == 'C3A8'


def test_chop():
    assert list(chop('ABCDEFG', 2)) == ['AB', 'CD', 'EF', 'G']
    assert list(chop(b'ABCDEFG', 7)) == [b'ABCDEFG']
    assert list(chop(b'', 3)) == []


def test_chop_raises():
    with pytest.raises(ValueError, match='non-positive window'):
        list(chop('ABC', 0))


def test_hexlify():
    assert hexlify(b'') == ''
    assert hexlify(b'\xAA\xBB\xCC') == 'AABBCC'
    assert hexlify(b'\xAA\xBB\xCC', upper=False) == 'aabbcc'
    assert hexlify(b'\xAA\xBB\xCC', sep=' ') == 'AA BB CC'
    assert hexlify(b'\xAA\xBB\xCC', sep=':', upper=False) == 'aa:bb:cc'


def test_unhexlify():
    assert unhexlify('aabbcc') == 'AABBCC'
    assert unhexlify('AA BB\tCC') == 'AABBCC'
    assert unhexlify('AA-BB:CC.DD_EE') == 'AABBCCDDEE'
    assert unhexlify('AA/BB', delete='/') == 'AABB'


def test_unhexlify_raises():
    with pytest.raises(NotHexError):
        unhexlify('AA/BB')

    with pytest.raises(NotHexError):
        unhexlify('AA BB', delete=None)


def test_parse_int_pass():
    for value_in, value_out in PARSE_INT_PASS.items():
        assert parse_int(value_in) == value_out


def test_parse_int_fail():
    for value_in in PARSE_INT_FAIL:
        with pytest.raises(ValueError):
            parse_int(value_in)
