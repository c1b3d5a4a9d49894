from pathlib import Path
from typing import cast as _cast

import pytest
from click.core import Command
from click.testing import CliRunner

from recpatch import IhexFile
from recpatch import SrecFile
from recpatch import __version__ as _version
from recpatch import load
from recpatch.__main__ import main as _main
from recpatch.cli import *

main = _cast(Command, main)  # suppress warnings

SREC_HELLO = (
    'S00F000068656C6C6F202020202000003C\r\n'
    'S11F00007C0802A6900100049421FFF07C6C1B787C8C23783C6000003863000026\r\n'
    'S11F001C4BFFFFE5398000007D83637880010014382100107C0803A64E800020E9\r\n'
    'S111003848656C6C6F20776F726C642E0A0042\r\n'
    'S5030003F9\r\n'
    'S9030000FC\r\n'
)

IHEX_GAP = (
    ':10010000214601360121470136007EFE09D2190140\n'
    ':100110002146017E17C20001FF5F16002148011928\n'
    ':10013000194E79234623965778239EDA3F01B2CA97\n'
    ':00000001FF\n'
)


@pytest.fixture
def tmppath(tmpdir):
    return Path(str(tmpdir))


def write_text(path, text):
    with open(str(path), 'wt', newline='') as stream:
        stream.write(text)
    return str(path)


def read_text(path):
    with open(str(path), 'rt', newline='') as stream:
        return stream.read()


def test_main():
    try:
        _main('__main__')
    except SystemExit:
        pass


def test_guess_input_type():
    assert guess_input_type('x.mot') is SrecFile
    assert guess_input_type('x.hex') is IhexFile
    assert guess_input_type('x.txt', 'ihex') is IhexFile

    with pytest.raises(click.BadParameter, match='extension not found'):
        guess_input_type('x.txt')


def test_open_input(tmppath):
    with pytest.raises(click.FileError):
        open_input(str(tmppath / 'missing.hex'))


def test_based_int():
    assert BASED_INT.convert('0x10', None, None) == 16
    assert BASED_INT.convert('10h', None, None) == 16
    assert BASED_INT.convert('-1', None, None) == -1
    assert ADDRESS.convert('0b101', None, None) == 5

    with pytest.raises(click.BadParameter, match='invalid integer'):
        BASED_INT.convert('0xG', None, None)

    with pytest.raises(click.BadParameter, match='invalid address'):
        ADDRESS.convert('-1', None, None)


def test_version():
    runner = CliRunner()
    result = runner.invoke(main, ['--version'])
    assert result.exit_code == 0
    assert result.output.strip() == str(_version)


def test_help():
    runner = CliRunner()
    result = runner.invoke(main, ['--help'])
    assert result.exit_code == 0
    for name in ('info', 'validate', 'read', 'patch', 'export', 'show'):
        assert name in result.output


class TestInfo:

    def test_srec(self, tmppath):
        path = write_text(tmppath / 'hello.srec', SREC_HELLO)
        runner = CliRunner()
        result = runner.invoke(main, ['info', path])
        assert result.exit_code == 0
        assert result.output == (
            "header: 'hello     \\x00\\x00'\n"
            'data records: 3\n'
            'invalid records: 0\n'
            'block: 0x00000000-0x00000045 (70 bytes, lines 2-4)\n'
        )

    def test_ihex(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['info', path])
        assert result.exit_code == 0
        assert result.output == (
            'data records: 3\n'
            'invalid records: 0\n'
            'block: 0x00000100-0x0000011F (32 bytes, lines 1-2)\n'
            'block: 0x00000130-0x0000013F (16 bytes, lines 3-3)\n'
        )

    def test_input_format(self, tmppath):
        path = write_text(tmppath / 'gap.txt', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['info', path])
        assert result.exit_code == 2

        result = runner.invoke(main, ['info', '-i', 'ihex', path])
        assert result.exit_code == 0
        assert 'data records: 3' in result.output

    def test_verbose(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['-vv', 'info', path])
        assert result.exit_code == 0


class TestValidate:

    def test_ok(self, tmppath):
        path = write_text(tmppath / 'hello.srec', SREC_HELLO)
        runner = CliRunner()
        result = runner.invoke(main, ['validate', path])
        assert result.exit_code == 0
        assert result.output == ''

    def test_errors(self, tmppath):
        text = 'S1051000AABB00\nS1051000AABB85\nS5030002FA\nS9030000F\n'
        path = write_text(tmppath / 'bad.srec', text)
        runner = CliRunner()
        result = runner.invoke(main, ['validate', path])
        assert result.exit_code == 1
        assert 'line 1: CHECKSUM_MISMATCH\n' in result.output
        assert 'line 3: DATA_LINES_COUNT_MISMATCH\n' in result.output
        assert 'line 4: LOWER_THAN_MINIMUM_LENGTH\n' in result.output
        assert '3 invalid record lines' in result.output


class TestRead:

    def test_length(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['read', '-s', '0x10E', '-l', '4', path])
        assert result.exit_code == 0
        assert result.output == '19012146\n'

    def test_end(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['read', '-s', '10Eh', '-e', '111h', '-f', 'hex-', path])
        assert result.exit_code == 0
        assert result.output == '19-01-21-46\n'

    def test_from_file(self, tmppath):
        path = write_text(tmppath / 'hello.srec', SREC_HELLO)
        runner = CliRunner()
        result = runner.invoke(main, ['read', '-F', '-s', '0x38', '-l', '5', '-f', 'ascii', path])
        assert result.exit_code == 0
        assert result.output == 'Hello\n'

    def test_unavailable(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        for args in (['-s', '0x11F', '-e', '0x130'], ['-F', '-s', '0x11F', '-e', '0x130']):
            result = runner.invoke(main, ['read'] + args + [path])
            assert result.exit_code == 1
            assert 'range not available' in result.output

    def test_usage(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()

        result = runner.invoke(main, ['read', '-s', '0x100', path])
        assert result.exit_code == 2

        result = runner.invoke(main, ['read', '-s', '0x100', '-e', '0x101', '-l', '2', path])
        assert result.exit_code == 2

        result = runner.invoke(main, ['read', '-s', '0x100', '-l', '0', path])
        assert result.exit_code == 2

        result = runner.invoke(main, ['read', '-e', '0x101', path])
        assert result.exit_code == 2


class TestPatch:

    def test_patch(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['patch', '-s', '0x10F', 'aa bb', path])
        assert result.exit_code == 0
        assert load(path).extract_range(0x10E, 0x111) == '19AABB46'

        lines = read_text(path).splitlines(True)
        original = IHEX_GAP.splitlines(True)
        assert lines[2:] == original[2:]

    def test_not_hex(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['patch', '-s', '0x100', 'XY', path])
        assert result.exit_code == 2
        assert read_text(path) == IHEX_GAP

    def test_unavailable(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['patch', '-s', '0x11F', 'AABB', path])
        assert result.exit_code == 1
        assert 'range not available' in result.output
        assert read_text(path) == IHEX_GAP

    def test_odd_length(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['patch', '-s', '0x100', 'ABC', path])
        assert result.exit_code == 1
        assert 'odd length' in result.output


class TestExport:

    def test_bin(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        out_path = str(tmppath / 'out.bin')
        runner = CliRunner()
        result = runner.invoke(main, ['export', '-s', '0x130', '-l', '4', path, out_path])
        assert result.exit_code == 0
        assert Path(out_path).read_bytes() == b'\x19\x4E\x79\x23'

    def test_srec(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        out_path = str(tmppath / 'out.mot')
        runner = CliRunner()
        args = ['export', '-s', '0x130', '-e', '0x13F', '-r', '0x8000',
                '-w', '8', '-a', '2', '--header', 'gap', path, out_path]
        result = runner.invoke(main, args)
        assert result.exit_code == 0

        lines = read_text(out_path).split('\r\n')
        assert lines[0].startswith('S0')
        assert [line[:2] for line in lines[1:-1]] == ['S1', 'S1', 'S5', 'S9']
        assert lines[-1] == ''

        file = load(out_path)
        assert file.header == '676170'
        assert file.extract_range(0x8000, length=16) == '194E79234623965778239EDA3F01B2CA'

    def test_no_count(self, tmppath):
        path = write_text(tmppath / 'hello.srec', SREC_HELLO)
        out_path = str(tmppath / 'out.srec')
        runner = CliRunner()
        args = ['export', '--no-count', '-s', '0', '-l', '0x46', path, out_path]
        result = runner.invoke(main, args)
        assert result.exit_code == 0

        text = read_text(out_path)
        assert 'S5' not in text
        assert text.startswith('S00F000068656C6C6F202020202000003C\r\n')
        assert load(out_path).extract_range(0, 0x45) == load(path).extract_range(0, 0x45)

    def test_fallback_format(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        out_path = str(tmppath / 'out.dat')
        runner = CliRunner()
        result = runner.invoke(main, ['export', '-s', '0x100', '-l', '2', path, out_path])
        assert result.exit_code == 0
        assert read_text(out_path) == ':020000040000FA\r\n:02010000214696\r\n:00000001FF\r\n'

    def test_output_format(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        out_path = str(tmppath / 'out.dat')
        runner = CliRunner()
        args = ['export', '-o', 'srec', '-s', '0x100', '-l', '2', path, out_path]
        result = runner.invoke(main, args)
        assert result.exit_code == 0
        assert load(out_path, format='srec').extract_range(0x100, 0x101) == '2146'

    def test_unavailable(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        out_path = tmppath / 'out.hex'
        runner = CliRunner()
        result = runner.invoke(main, ['export', '-s', '0x11F', '-l', '2', path, str(out_path)])
        assert result.exit_code == 1
        assert 'range not available' in result.output
        assert not out_path.exists()

    def test_address_overflow(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        out_path = tmppath / 'out.hex'
        runner = CliRunner()
        args = ['export', '-s', '0x100', '-l', '2', '-r', '0xFFFFFFFF', path, str(out_path)]
        result = runner.invoke(main, args)
        assert result.exit_code == 2
        assert 'address overflow' in result.output
        assert not out_path.exists()

    def test_address_length(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        args = ['export', '-a', '5', '-s', '0x100', '-l', '2', path, str(tmppath / 'out.srec')]
        result = runner.invoke(main, args)
        assert result.exit_code == 2


class TestShow:

    def test_no_color(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['show', '--no-color', path])
        assert result.exit_code == 0
        assert result.output == IHEX_GAP

    def test_packed(self, tmppath):
        path = write_text(tmppath / 'packed.srec', 'S1051000AABB85 S9030000FC\n')
        runner = CliRunner()
        result = runner.invoke(main, ['show', '--no-color', path])
        assert result.exit_code == 0
        assert result.output == 'S1051000AABB85\nS9030000FC\n'

    def test_color(self, tmppath):
        path = write_text(tmppath / 'gap.hex', IHEX_GAP)
        runner = CliRunner()
        result = runner.invoke(main, ['show', path])
        assert result.exit_code == 0
        assert '\x1b[' in result.output
        assert result.output.count('\n') == 4
