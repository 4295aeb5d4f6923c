import logging

from vcardraw.reader import RawReader
from vcardraw.version import Version
from vcardraw.writer import RawWriter


_handler = logging.StreamHandler()
_handler.setFormatter(logging.Formatter('%(levelname)s: %(message)s'))

logger = logging.getLogger(__name__)
logger.setLevel(logging.DEBUG)
logger.addHandler(_handler)

NEWLINES = {
    'crlf': '\r\n',
    'lf': '\n',
}


def refold_stream(input_stream, output_stream, line_length=75, indent=' ', newline='\r\n', caret=False):
    reader = RawReader(input_stream, caret_decoding=caret)
    writer = RawWriter(output_stream, Version.V2_1, caret_encoding=caret)
    writer.writer.newline = newline
    # the indent is validated against the line length
    writer.writer.indent = ''
    writer.writer.line_length = line_length
    writer.writer.indent = indent

    for raw_line in reader:
        if raw_line.name.upper() == 'BEGIN' and raw_line.value.upper() == 'VCARD':
            reader.version = Version.V2_1

        # the VERSION line itself is written with the version it announces
        writer.version = reader.version
        writer.write_line(raw_line)

    writer.flush()

    return reader.warnings


def main():
    import os
    import glob
    import sys
    import argparse

    parser = argparse.ArgumentParser(description='re-fold the lines of vcard files.')
    parser.add_argument('-i', dest='input_files', action='append', required=True, metavar='INPUT',
                        help='specify input vcard files. supports wildcards.')
    parser.add_argument('-o', dest='output_path', required=True, metavar='OUTPUT',
                        help='specify output path.')
    parser.add_argument('--line-length', dest='line_length', type=int, default=75, metavar='N',
                        help='fold lines longer than N characters. 0 disables folding. (default: 75)')
    parser.add_argument('--indent', dest='indent', default=' ',
                        help='whitespace that starts each folded line. (default: one space)')
    parser.add_argument('--newline', dest='newline', choices=sorted(NEWLINES), default='crlf',
                        help='line terminator to write. (default: crlf)')
    parser.add_argument('--caret', dest='caret', action='store_true',
                        help='use caret encoding (RFC 6868) for parameter values.')
    args = parser.parse_args()

    line_length = args.line_length or None

    if args.indent.strip(' \t'):
        parser.exit(-1, 'the indent must only contain spaces and tabs.')

    if line_length is not None and len(args.indent) >= line_length:
        parser.exit(-1, 'the indent must be shorter than the line length.')

    input_files = set()

    for pathname in args.input_files:
        if glob.has_magic(pathname):
            for p in glob.glob(pathname, recursive=True):
                if os.path.isfile(p):
                    input_files.add(p)
        else:
            if not os.path.exists(pathname):
                parser.exit(-1, f'"{pathname}" does not exist.')

            if not os.path.isfile(pathname):
                parser.exit(-1, f'"{pathname}" is not a file.')

            input_files.add(pathname)

    if not input_files:
        parser.exit(0)

    if len(input_files) >= 2:
        if os.path.exists(args.output_path) and not os.path.isdir(args.output_path):
            parser.exit(-1, 'multiple files specified but the specified output path is not a directory.')

        os.makedirs(args.output_path, exist_ok=True)

    errors = 0

    for input_pathname in sorted(input_files):
        if os.path.isdir(args.output_path):
            output_pathname = os.path.join(args.output_path, os.path.basename(input_pathname))
        else:
            output_pathname = args.output_path

        logger.info('refolding "%s" to "%s"', input_pathname, output_pathname)

        try:
            with open(input_pathname, 'r', encoding='utf-8', newline='') as input_stream, \
                    open(output_pathname, 'w', encoding='utf-8', newline='') as output_stream:
                warnings = refold_stream(input_stream, output_stream, line_length, args.indent,
                                         NEWLINES[args.newline], args.caret)
        except (OSError, ValueError) as exc:
            logger.error(f'"{input_pathname}": {exc}')
            errors += 1
            continue

        if warnings:
            logger.info('%d warning(s) in "%s"', len(warnings), input_pathname)

    sys.exit(errors)


if __name__ == '__main__':
    main()
