import pytest

from recpatch.base import ErrorCode
from recpatch.base import ParsedRecord
from recpatch.base import RecordCategory
from recpatch.base import RecordFormat
from recpatch.base import colorize_tokens
from recpatch.records import build_record
from recpatch.records import classify
from recpatch.records import make_layout
from recpatch.records import make_record
from recpatch.records import parse_line
from recpatch.records import split_records
from recpatch.records import to_tokens
from recpatch.records import validate_line

OK = ErrorCode.OK
NOT_START = ErrorCode.NOT_STARTING_WITH_START_CODE
TOO_SHORT = ErrorCode.LOWER_THAN_MINIMUM_LENGTH
NOT_HEX = ErrorCode.RAW_DATA_NOT_HEX
UNKNOWN = ErrorCode.UNKNOWN_RECORD_TYPE
MISMATCH = ErrorCode.LENGTH_MISMATCH


@pytest.fixture
def srec():
    return make_layout(RecordFormat.SREC)


@pytest.fixture
def ihex():
    return make_layout(RecordFormat.IHEX)


class TestMakeLayout:

    def test_srec(self, srec):
        assert srec.kind is RecordFormat.SREC
        assert srec.start_code == 'S'
        assert (srec.type_position, srec.type_length) == (1, 1)
        assert (srec.count_position, srec.count_length) == (2, 2)
        assert srec.address_position == 4
        assert srec.checksum_length == 2
        assert srec.ones_complement is True
        assert srec.min_length == 10
        assert dict(srec.address_lengths) == {
            '0': 4, '1': 4, '2': 6, '3': 8, '5': 4,
            '6': 6, '7': 8, '8': 6, '9': 4,
        }
        assert srec.checksum_fields == ('count', 'address', 'data')

    def test_ihex(self, ihex):
        assert ihex.kind is RecordFormat.IHEX
        assert ihex.start_code == ':'
        assert (ihex.count_position, ihex.count_length) == (1, 2)
        assert ihex.address_position == 3
        assert (ihex.type_position, ihex.type_length) == (7, 2)
        assert ihex.ones_complement is False
        assert ihex.min_length == 11
        assert set(ihex.address_lengths.values()) == {4}
        assert sorted(ihex.address_lengths) == ['00', '01', '02', '03', '04', '05']
        assert ihex.checksum_fields == ('count', 'address', 'tag', 'data')
        assert ihex.field_order == ('count', 'address', 'tag', 'data', 'checksum')

    def test_immutable(self, srec):
        with pytest.raises(AttributeError):
            srec.start_code = ':'

        with pytest.raises(TypeError):
            srec.address_lengths['4'] = 4

    def test_independent_instances(self):
        layout1 = make_layout(RecordFormat.SREC)
        layout2 = make_layout(RecordFormat.SREC)
        assert layout1 == layout2
        assert layout1 is not layout2
        assert layout1.address_lengths is not layout2.address_lengths


class TestValidateLine:

    def test_srec_ok(self, srec):
        assert validate_line(srec, 'S1130000285F245F2212226A000424290008237C2A') == OK
        assert validate_line(srec, 'S00F000068656C6C6F202020202000003C') == OK
        assert validate_line(srec, 'S9030000FC') == OK
        assert validate_line(srec, 'S70500000000FA') == OK
        assert validate_line(srec, 's1130000285f245f2212226a000424290008237c2a') == NOT_START

    def test_ihex_ok(self, ihex):
        assert validate_line(ihex, ':10010000214601360121470136007EFE09D2190040') == OK
        assert validate_line(ihex, ':10010000214601360121470136007EFE09D2190140') == OK
        assert validate_line(ihex, ':00000001FF') == OK
        assert validate_line(ihex, ':020000040010EA') == OK

    def test_not_starting_with_start_code(self, srec, ihex):
        assert validate_line(srec, '') == NOT_START
        assert validate_line(srec, ':00000001FF') == NOT_START
        assert validate_line(ihex, 'S9030000FC') == NOT_START
        assert validate_line(ihex, 'x:00000001FF') == NOT_START

    def test_lower_than_minimum_length(self, srec, ihex):
        assert validate_line(srec, 'S') == TOO_SHORT
        assert validate_line(srec, 'S9030000F') == TOO_SHORT
        assert validate_line(ihex, ':0000001FF') == TOO_SHORT
        assert validate_line(ihex, ':GG') == TOO_SHORT

    def test_raw_data_not_hex(self, srec, ihex):
        assert validate_line(srec, 'S9030000FG') == NOT_HEX
        assert validate_line(srec, 'SS030000FC') == NOT_HEX
        assert validate_line(ihex, ':00000001F:') == NOT_HEX
        assert validate_line(ihex, ':0000 0001FF') == NOT_HEX

    def test_unknown_record_type(self, srec, ihex):
        assert validate_line(srec, 'S4030000FC') == UNKNOWN
        assert validate_line(srec, 'SA030000FC') == UNKNOWN
        assert validate_line(ihex, ':00000006FA') == UNKNOWN
        assert validate_line(ihex, ':0000000AF6') == UNKNOWN

    def test_length_mismatch(self, srec, ihex):
        assert validate_line(srec, 'S9040000FC') == MISMATCH
        assert validate_line(srec, 'S9020000FC') == MISMATCH
        assert validate_line(srec, 'S9030000FC0') == MISMATCH
        assert validate_line(srec, 'S3030000FC') == MISMATCH
        assert validate_line(srec, 'S1130000285000247C2C0B02900100007C0802A6') == MISMATCH
        assert validate_line(ihex, ':01000001FF') == MISMATCH
        assert validate_line(ihex, ':0000000100FF') == MISMATCH
        assert validate_line(ihex, ':00000001FF0') == MISMATCH

    def test_first_failure_wins(self, srec):
        assert validate_line(srec, 'X') == NOT_START
        assert validate_line(srec, 'SG') == TOO_SHORT
        assert validate_line(srec, 'S4GG0000FC') == NOT_HEX
        assert validate_line(srec, 'S4FF0000FC') == UNKNOWN

    def test_checksum_not_verified(self, srec, ihex):
        assert validate_line(srec, 'S9030000FD') == OK
        assert validate_line(ihex, ':00000001FE') == OK


class TestParseLine:

    def test_srec_data(self, srec):
        record = parse_line(srec, 'S111003848656C6C6F20776F726C642E0A0042')
        assert record == ParsedRecord(
            tag='1',
            count='11',
            count_value=0x11,
            address_length=4,
            address='0038',
            address_value=0x38,
            data='48656C6C6F20776F726C642E0A00',
            checksum='42',
            checksum_calc='42',
        )
        assert record.checksum_ok is True
        assert record.data_size == 14

    def test_srec_header(self, srec):
        record = parse_line(srec, 'S00F000068656C6C6F202020202000003C')
        assert record.tag == '0'
        assert record.address_value == 0
        assert record.data == '68656C6C6F20202020200000'
        assert record.checksum_ok is True

    def test_srec_long_address(self, srec):
        record = parse_line(srec, 'S30900010000112233444B')
        assert record.address_length == 8
        assert record.address == '00010000'
        assert record.address_value == 0x10000
        assert record.data == '11223344'
        assert record.checksum_ok is True

    def test_srec_no_data(self, srec):
        record = parse_line(srec, 'S5030003F9')
        assert record.data == ''
        assert record.address_value == 3
        assert record.checksum_ok is True

    def test_srec_checksum_mismatch(self, srec):
        record = parse_line(srec, 'S9030000FD')
        assert record.checksum == 'FD'
        assert record.checksum_calc == 'FC'
        assert record.checksum_ok is False

    def test_ihex_data(self, ihex):
        record = parse_line(ihex, ':10010000214601360121470136007EFE09D2190140')
        assert record.tag == '00'
        assert record.count == '10'
        assert record.count_value == 16
        assert record.address_length == 4
        assert record.address == '0100'
        assert record.address_value == 0x100
        assert record.data == '214601360121470136007EFE09D21901'
        assert record.checksum == '40'
        assert record.checksum_calc == '40'
        assert record.checksum_ok is True

    def test_ihex_extension(self, ihex):
        record = parse_line(ihex, ':020000040010EA')
        assert record.tag == '04'
        assert record.data == '0010'
        assert record.checksum_ok is True

    def test_ihex_checksum_mismatch(self, ihex):
        record = parse_line(ihex, ':10010000214601360121470136007EFE09D2190040')
        assert record.checksum == '40'
        assert record.checksum_calc == '41'
        assert record.checksum_ok is False

    def test_ihex_lowercase(self, ihex):
        record = parse_line(ihex, ':00000001ff')
        assert record.checksum_calc == 'FF'
        assert record.checksum_ok is True


class TestClassify:

    def test_srec(self, srec):
        expected = {
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
        for tag, category in expected.items():
            assert classify(srec, tag) is category

    def test_ihex(self, ihex):
        expected = {
            '00': RecordCategory.DATA,
            '01': RecordCategory.TERMINATION,
            '02': RecordCategory.EXTENDED_SEGMENT_ADDRESS,
            '03': RecordCategory.START_SEGMENT_ADDRESS,
            '04': RecordCategory.EXTENDED_LINEAR_ADDRESS,
            '05': RecordCategory.START_LINEAR_ADDRESS,
            '06': RecordCategory.OTHER,
            'FF': RecordCategory.OTHER,
        }
        for tag, category in expected.items():
            assert classify(ihex, tag) is category

    def test_is_extension(self):
        assert RecordCategory.EXTENDED_SEGMENT_ADDRESS.is_extension()
        assert RecordCategory.EXTENDED_LINEAR_ADDRESS.is_extension()
        assert not RecordCategory.START_SEGMENT_ADDRESS.is_extension()
        assert not RecordCategory.DATA.is_extension()
        assert RecordCategory.DATA.is_data()
        assert not RecordCategory.HEADER.is_data()


class TestSplitRecords:

    def test_empty(self):
        assert split_records('', 'S') == []
        assert split_records(' \t\r\n', 'S') == []

    def test_single(self):
        assert split_records('S9030000FC\r\n', 'S') == [(0, 10, 'S9030000FC')]

    def test_many(self):
        line = 'S1041002CC1D  S1042000DDFE\n'
        assert split_records(line, 'S') == [
            (0, 12, 'S1041002CC1D'),
            (14, 26, 'S1042000DDFE'),
        ]

    def test_inner_whitespace(self):
        assert split_records(' :0000 0001FF ', ':') == [(1, 13, ':00000001FF')]

    def test_leading_garbage(self):
        assert split_records('xx:00000001FF', ':') == [
            (0, 2, 'xx'),
            (2, 13, ':00000001FF'),
        ]


class TestBuildRecord:

    def test_srec_rebuild(self, srec):
        line = 'S11F00007C0802A6900100049421FFF07C6C1B787C8C23783C6000003863000026'
        record = parse_line(srec, line)
        assert build_record(srec, record) == line

    def test_ihex_rebuild(self, ihex):
        line = ':10010000214601360121470136007EFE09D2190140'
        record = parse_line(ihex, line)
        assert build_record(ihex, record) == line

    def test_fixes_checksum(self, ihex):
        record = parse_line(ihex, ':10010000214601360121470136007EFE09D2190040')
        assert build_record(ihex, record) == ':10010000214601360121470136007EFE09D2190041'

    def test_replaced_data(self, srec):
        record = parse_line(srec, 'S1051000AABB85')
        rebuilt = build_record(srec, record._replace(data='aa'))
        assert rebuilt == 'S1041000AA41'
        assert validate_line(srec, rebuilt) == OK
        assert parse_line(srec, rebuilt).checksum_ok

    def test_make_record_srec(self, srec):
        assert make_record(srec, '1', 0x1000, 'AABB') == 'S1051000AABB85'
        assert make_record(srec, '3', 0x10000, '11223344') == 'S30900010000112233444B'
        assert make_record(srec, '5', 3) == 'S5030003F9'
        assert make_record(srec, '9', 0) == 'S9030000FC'

    def test_make_record_ihex(self, ihex):
        assert make_record(ihex, '04', 0, '0010') == ':020000040010EA'
        assert make_record(ihex, '00', 0, 'AABBCCDD') == ':04000000AABBCCDDEE'
        assert make_record(ihex, '01', 0) == ':00000001FF'

    def test_make_record_overflow(self, srec, ihex):
        with pytest.raises(ValueError, match='address overflow'):
            make_record(srec, '1', 0x10000)

        with pytest.raises(ValueError, match='address overflow'):
            make_record(ihex, '00', -1)


class TestTokens:

    def test_srec(self, srec):
        tokens = to_tokens(srec, 'S1051000AABB85')
        assert list(tokens.items()) == [
            ('begin', 'S'),
            ('tag', '1'),
            ('count', '05'),
            ('address', '1000'),
            ('data', 'AABB'),
            ('checksum', '85'),
        ]

    def test_ihex(self, ihex):
        tokens = to_tokens(ihex, ':020000040010EA')
        assert list(tokens) == ['begin', 'count', 'address', 'tag', 'data', 'checksum']
        assert ''.join(tokens.values()) == ':020000040010EA'

    def test_invalid(self, ihex):
        assert to_tokens(ihex, ':XYZ') == {'after': ':XYZ'}

    def test_colorize(self, ihex):
        tokens = to_tokens(ihex, ':020000040010EA')
        colorized = colorize_tokens(tokens)
        assert list(colorized)[0] == '<'
        assert list(colorized)[-1] == '>'
        assert colorized['begin'].endswith(':')
        assert colorized['checksum'].endswith('EA')
        assert colorized['data'].count('00') == 1
        assert colorized['data'].count('10') == 1

    def test_colorize_plain_data(self):
        colorized = colorize_tokens({'data': 'AABBCC'}, altdata=False)
        assert colorized['data'].endswith('AABBCC')
