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

"""
Module that contains the command line app.

Why does this file exist, and why not put this in __main__?

  You might be tempted to import things from __main__ later, but that will cause
  problems: the code will get executed twice:

  - When you run `python -m recpatch` python will execute
    ``__main__.py`` as a script. That means there won't be any
    ``recpatch.__main__`` in ``sys.modules``.
  - When you import __main__ it will get executed again (as a module) because
    there's no ``recpatch.__main__`` in ``sys.modules``.

  Also see (1) from https://click.palletsprojects.com/en/stable/setuptools/#setuptools-integration
"""

import logging
from typing import Callable
from typing import Mapping
from typing import Optional
from typing import Type

import click

from .__init__ import __version__
from .__init__ import file_types
from .base import RecordFileError
from .base import colorize_tokens
from .files import RecordFile
from .files import guess_format_name
from .reader import open_source
from .records import split_records
from .records import to_tokens
from .utils import hex_to_bytes
from .utils import hexlify
from .utils import parse_int
from .utils import unhexlify


class BasedIntParamType(click.ParamType):
    name = 'integer'

    def convert(self, value, param, ctx):
        try:
            return parse_int(value)
        except ValueError:
            self.fail(f'invalid integer: {value!r}', param, ctx)


class AddressParamType(click.ParamType):
    name = 'address'

    def convert(self, value, param, ctx):
        try:
            address = parse_int(value)
            if address < 0:
                raise ValueError()
            return address
        except ValueError:
            self.fail(f'invalid address: {value!r}', param, ctx)


BASED_INT = BasedIntParamType()
ADDRESS = AddressParamType()

FILE_PATH_IN = click.Path(dir_okay=False, readable=True, exists=True)
FILE_PATH_OUT = click.Path(dir_okay=False, writable=True)

FORMAT_CHOICE = click.Choice(list(sorted(file_types.keys())))
OUTPUT_FORMAT_CHOICE = click.Choice(list(sorted(file_types.keys())) + ['bin'])

DATA_FMT_FORMATTERS: Mapping[str, Callable[[bytes], str]] = {
    'hex': lambda b: hexlify(b, upper=False),
    'HEX': lambda b: hexlify(b, upper=True),
    'hex ': lambda b: hexlify(b, sep=' ', upper=False),
    'HEX ': lambda b: hexlify(b, sep=' ', upper=True),
    'hex-': lambda b: hexlify(b, sep='-', upper=False),
    'HEX-': lambda b: hexlify(b, sep='-', upper=True),
    'hex:': lambda b: hexlify(b, sep=':', upper=False),
    'HEX:': lambda b: hexlify(b, sep=':', upper=True),
    'ascii': lambda b: b.decode('ascii', errors='replace'),
}

DATA_FMT_CHOICE = click.Choice(list(DATA_FMT_FORMATTERS.keys()))


# ----------------------------------------------------------------------------

def guess_input_type(
    input_path: str,
    input_format: Optional[str] = None,
) -> Type[RecordFile]:

    if input_format:
        input_type = file_types[input_format]
    else:
        try:
            name = guess_format_name(input_path)
        except ValueError as exc:
            raise click.BadParameter(str(exc), param_hint='INFILE') from exc
        input_type = file_types[name]
    return input_type


def open_input(
    input_path: str,
    input_format: Optional[str] = None,
    keep_resident: bool = True,
) -> RecordFile:

    input_type = guess_input_type(input_path, input_format)
    input_file = input_type(input_path, keep_resident=keep_resident)
    if not input_file.read():
        raise click.FileError(input_path, hint='file not found')
    return input_file


def print_version(ctx, _, value):

    if not value or ctx.resilient_parsing:
        return

    click.echo(str(__version__))
    ctx.exit()


# ============================================================================

@click.group()
@click.option('--version', is_flag=True, is_eager=True, expose_value=False,
              callback=print_version, help="""
    Prints the package version number.
""")
@click.option('-v', '--verbose', count=True, help="""
    Increases logging verbosity; repeat for debug messages.
""")
def main(verbose: int) -> None:
    """
    A set of command line utilities to inspect and patch Motorola S-record
    and Intel HEX files.

    Being built with `Click <https://click.palletsprojects.com/en/stable/>`_,
    all the commands follow POSIX-like syntax rules.
    Addresses accept the ``0x`` prefix or the ``h`` suffix for hexadecimal.
    """

    if verbose:
        level = logging.INFO if verbose == 1 else logging.DEBUG
        logging.basicConfig(level=level, format='%(levelname)s:%(name)s:%(message)s')


# ----------------------------------------------------------------------------

@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
""")
@click.argument('infile', type=FILE_PATH_IN)
def info(
    input_format: Optional[str],
    infile: str,
) -> None:
    r"""Prints the data blocks of a record file.

    ``INFILE`` is the path of the input file.
    """

    file = open_input(infile, input_format)

    if file.has_header():
        header = hex_to_bytes(file.header).decode('ascii', errors='replace')
        click.echo(f'header: {header!r}')
    click.echo(f'data records: {file.data_lines}')
    click.echo(f'invalid records: {len(file.errors)}')

    for block in file.blocks:
        click.echo(f'block: 0x{block.start:08X}-0x{block.end:08X} '
                   f'({block.length} bytes, lines {block.file_start_line}-{block.file_end_line})')


# ----------------------------------------------------------------------------

@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
""")
@click.argument('infile', type=FILE_PATH_IN)
def validate(
    input_format: Optional[str],
    infile: str,
) -> None:
    r"""Validates a record file.

    Each invalid record line is reported with its error.
    The exit status is non-zero if any record line is invalid.

    ``INFILE`` is the path of the input file.
    """

    file = open_input(infile, input_format, keep_resident=False)

    for number, error in sorted(file.errors.items()):
        click.echo(f'line {number}: {error.name}')

    if file.has_errors():
        raise click.ClickException(f'{len(file.errors)} invalid record lines')


# ----------------------------------------------------------------------------

# noinspection PyShadowingBuiltins
@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
""")
@click.option('-s', '--start', type=ADDRESS, required=True, help="""
    Inclusive start address.
""")
@click.option('-e', '--end', type=ADDRESS, help="""
    Inclusive end address.
""")
@click.option('-l', '--length', type=BASED_INT, help="""
    Range length, in bytes; alternative to the end address.
""")
@click.option('-F', '--from-file', 'from_file', is_flag=True, help="""
    Reads the data by scanning the file, instead of keeping it in memory.
""")
@click.option('-f', '--format', 'format', type=DATA_FMT_CHOICE,
              default='HEX', show_default=True, help="""
    Output data format.
""")
@click.argument('infile', type=FILE_PATH_IN)
def read(
    input_format: Optional[str],
    start: int,
    end: Optional[int],
    length: Optional[int],
    from_file: bool,
    format: str,
    infile: str,
) -> None:
    r"""Prints the data of an address range.

    The range must lie within a single contiguous data block.

    ``INFILE`` is the path of the input file.
    """

    if (end is None) == (length is None):
        raise click.UsageError('either end or length required')
    if length is not None and length <= 0:
        raise click.BadParameter('non-positive length', param_hint='--length')

    file = open_input(infile, input_format, keep_resident=not from_file)
    data = file.extract_bytes(start, end=end, length=length)
    if not data:
        raise click.ClickException('range not available')

    formatter = DATA_FMT_FORMATTERS[format]
    click.echo(formatter(data))


# ----------------------------------------------------------------------------

@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
""")
@click.option('-s', '--start', type=ADDRESS, required=True, help="""
    Patch start address.
""")
@click.argument('data', type=str)
@click.argument('infile', type=FILE_PATH_IN)
def patch(
    input_format: Optional[str],
    start: int,
    data: str,
    infile: str,
) -> None:
    r"""Patches data in place.

    Only the records holding the patched range are rewritten, keeping all the
    other lines of the file as they are.

    ``DATA`` is the hexadecimal replacement data; byte separators are allowed.

    ``INFILE`` is the path of the record file to patch.
    """

    try:
        data = unhexlify(data)
    except ValueError:
        raise click.BadParameter(f'not hexadecimal: {data!r}', param_hint='DATA')

    file = open_input(infile, input_format, keep_resident=False)
    try:
        file.modify(start, data)
    except RecordFileError as exc:
        raise click.ClickException(str(exc)) from exc


# ----------------------------------------------------------------------------

@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
""")
@click.option('-o', '--output-format', type=OUTPUT_FORMAT_CHOICE, help="""
    Forces the output file format; ``bin`` for raw binary.
    By default it is guessed from the output file extension, falling back to
    that of the input file.
""")
@click.option('-s', '--start', type=ADDRESS, required=True, help="""
    Inclusive start address.
""")
@click.option('-e', '--end', type=ADDRESS, help="""
    Inclusive end address.
""")
@click.option('-l', '--length', type=BASED_INT, help="""
    Range length, in bytes; alternative to the end address.
""")
@click.option('-w', '--width', type=BASED_INT, default=32, show_default=True, help="""
    Maximum length of the record data field, in bytes.
""")
@click.option('-a', '--address-length', type=click.IntRange(2, 4), default=4,
              show_default=True, help="""
    S-record address field size, in bytes.
""")
@click.option('-r', '--relocate', type=ADDRESS, help="""
    Start address of the exported data.
    By default the data keeps its own addresses.
""")
@click.option('--header', type=str, help="""
    S-record header text.
    By default it is that of the input file.
""")
@click.option('--no-count', 'no_count', is_flag=True, help="""
    Omits the S-record line count record.
""")
@click.argument('infile', type=FILE_PATH_IN)
@click.argument('outfile', type=FILE_PATH_OUT)
def export(
    input_format: Optional[str],
    output_format: Optional[str],
    start: int,
    end: Optional[int],
    length: Optional[int],
    width: int,
    address_length: int,
    relocate: Optional[int],
    header: Optional[str],
    no_count: bool,
    infile: str,
    outfile: str,
) -> None:
    r"""Exports an address range to a new file.

    ``INFILE`` is the path of the input file.

    ``OUTFILE`` is the path of the output file.
    """

    if (end is None) == (length is None):
        raise click.UsageError('either end or length required')
    if length is not None and length <= 0:
        raise click.BadParameter('non-positive length', param_hint='--length')

    file = open_input(infile, input_format)

    if not output_format:
        try:
            output_format = guess_format_name(outfile)
        except ValueError:
            output_format = 'bin' if outfile.lower().endswith('.bin') else None

    try:
        if output_format == 'bin':
            file.export_bin(outfile, start, end=end, length=length)
        else:
            format = file_types[output_format].FORMAT if output_format else None
            file.export(outfile, start, end=end, length=length,
                        format=format,
                        address_length=address_length,
                        datalen=width,
                        new_start=relocate,
                        header_text=header,
                        line_count=not no_count)
    except RecordFileError as exc:
        raise click.ClickException(str(exc)) from exc
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint='--relocate') from exc


# ----------------------------------------------------------------------------

@main.command()
@click.option('-i', '--input-format', type=FORMAT_CHOICE, help="""
    Forces the input file format.
""")
@click.option('--color/--no-color', default=True, show_default=True, help="""
    Colorizes the record fields.
""")
@click.argument('infile', type=FILE_PATH_IN)
def show(
    input_format: Optional[str],
    color: bool,
    infile: str,
) -> None:
    r"""Prints the records of a file, one per line.

    ``INFILE`` is the path of the input file.
    """

    input_type = guess_input_type(infile, input_format)
    layout = input_type(infile).layout

    with open_source(infile) as stream:
        for line in stream:
            for _, _, text in split_records(line, layout.start_code):
                tokens = to_tokens(layout, text)
                if color:
                    tokens = colorize_tokens(tokens)
                click.echo(''.join(tokens.values()), color=color)
