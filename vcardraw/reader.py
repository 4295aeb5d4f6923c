import io
import logging

from vcardraw.core import parse_line, scan_line
from vcardraw.errors import CharsetDecodeError, InvalidVersionError, LineSyntaxError, QuotedPrintableDecodeError
from vcardraw.text import NEWLINE_PATTERN, decode_quoted_printable, lookup_charset
from vcardraw.version import Version

logger = logging.getLogger(__name__)


class TextReader:
    def __init__(self, stream, chunk_size=4096):
        self.stream = stream
        self.chunk_size = chunk_size
        self.line_number = 0

        self._buffer = ''
        self._eof = False
        self._next_line = None
        self._peeked = False

    def _read_line(self):
        while True:
            match = NEWLINE_PATTERN.search(self._buffer)

            # a CR at the end of the buffer may be the first half of a CRLF
            if match and (self._eof or match.end() < len(self._buffer)):
                line = self._buffer[:match.start()]
                self._buffer = self._buffer[match.end():]
                return line

            if self._eof:
                if not self._buffer:
                    return None

                line, self._buffer = self._buffer, ''
                return line

            chunk = self.stream.read(self.chunk_size)

            if chunk:
                self._buffer += chunk
            else:
                self._eof = True

    def readline(self):
        if self._peeked:
            line = self._next_line
            self._next_line = None
            self._peeked = False
        else:
            line = self._read_line()

        if line is not None:
            self.line_number += 1

        return line

    def peekline(self):
        if not self._peeked:
            self._next_line = self._read_line()
            self._peeked = True

        return self._next_line

    def close(self):
        self.stream.close()


class LineSpan:
    def __init__(self, start=1, end=1):
        self.start = start
        self.end = end

    def __str__(self):
        return f'{self.start}:{self.end}'

    def __repr__(self):
        return f'LineSpan({self.start}, {self.end})'


class ParseWarning:
    def __init__(self, line_number, message):
        self.line_number = line_number
        self.message = message

    def __str__(self):
        return f'line {self.line_number}: {self.message}'

    def __repr__(self):
        return f'ParseWarning({self.line_number!r}, {self.message!r})'


def _is_fold_marker(char):
    return char in (' ', '\t')


def _is_quoted_printable(line, version, caret_decoding):
    # None until the ":" that ends the parameters has been read
    try:
        _, _, parameters, _ = scan_line(line, version, caret_decoding)
    except LineSyntaxError:
        return None

    return parameters.is_quoted_printable()


class LineUnfolder:
    def __init__(self, reader):
        self.reader = reader
        self.line_span = None

    @property
    def line_number(self):
        return self.reader.line_number

    def readline(self, version=Version.V2_1, caret_decoding=False):
        line = self.reader.readline()

        while line == '':
            line = self.reader.readline()

        if line is None:
            return None

        self.line_span = LineSpan(self.reader.line_number, self.reader.line_number)
        fragments = [line]
        quoted_printable = None

        while True:
            if line.endswith('=') and quoted_printable is None:
                quoted_printable = _is_quoted_printable(''.join(fragments), version, caret_decoding)

            # some producers (Outlook) end quoted-printable lines in "=" and
            # do not indent the line that follows
            if line.endswith('=') and quoted_printable:
                fragments[-1] = line[:-1]
                line = self.reader.readline()

                if line is None:
                    break

                if line and _is_fold_marker(line[0]):
                    line = line[1:]

                fragments.append(line)
                continue

            next_line = self.reader.peekline()

            if not next_line or not _is_fold_marker(next_line[0]):
                break

            line = self.reader.readline()[1:]
            fragments.append(line)

        self.line_span.end = self.reader.line_number

        return ''.join(fragments)


class RawReader:
    def __init__(self, stream, version=Version.V2_1, caret_decoding=False, default_charset='utf-8',
                 decode_quoted_printable=True):
        if isinstance(stream, str):
            stream = io.StringIO(stream)

        if not isinstance(stream, TextReader):
            stream = TextReader(stream)

        self.text_reader = stream
        self.unfolder = LineUnfolder(stream)
        self.version = version
        self.caret_decoding = caret_decoding
        self.default_charset = default_charset
        self.decode_quoted_printable = decode_quoted_printable
        self.warnings = []
        self.line_span = None

    @property
    def default_charset(self):
        return self._default_charset

    @default_charset.setter
    def default_charset(self, charset):
        self._default_charset = lookup_charset(charset)

    @property
    def line_number(self):
        return self.text_reader.line_number

    def nested(self):
        reader = RawReader(self.text_reader, caret_decoding=self.caret_decoding,
                           default_charset=self.default_charset,
                           decode_quoted_printable=self.decode_quoted_printable)
        reader.warnings = self.warnings
        return reader

    def _warn(self, message, line_number=None):
        if line_number is None:
            line_number = self.line_span.start

        warning = ParseWarning(line_number, message)
        self.warnings.append(warning)
        logger.warning('%s', warning)

    def _decode_quoted_printable(self, raw_line):
        charset = self.default_charset
        charset_name = raw_line.parameters.charset

        if charset_name:
            try:
                charset = lookup_charset(charset_name)
            except CharsetDecodeError as exc:
                self._warn(f'{exc} in {raw_line.name} property, decoding with {charset}')

        try:
            raw_line.value = decode_quoted_printable(raw_line.value, charset)
            raw_line.encoded = False
        except QuotedPrintableDecodeError as exc:
            self._warn(f'{exc} in {raw_line.name} property, value left undecoded')

    def read_line(self):
        line = self.unfolder.readline(self.version, self.caret_decoding)

        if line is None:
            return None

        self.line_span = self.unfolder.line_span

        try:
            raw_line = parse_line(line, self.version, self.caret_decoding)
        except LineSyntaxError as exc:
            raise LineSyntaxError(exc.reason, line, self.line_span.start) from None
        except InvalidVersionError as exc:
            exc.line.__line_span__ = self.line_span
            raise InvalidVersionError(exc.version, exc.line, self.line_span.start) from None

        raw_line.__line_span__ = self.line_span

        if raw_line.name.upper() == 'VERSION':
            self.version = Version.from_string(raw_line.value)

        if self.decode_quoted_printable and raw_line.encoded:
            self._decode_quoted_printable(raw_line)

        return raw_line

    def __iter__(self):
        while True:
            try:
                raw_line = self.read_line()
            except LineSyntaxError as exc:
                self._warn(f'skipped line "{exc.line}": {exc.reason}', exc.line_number)
                continue
            except InvalidVersionError as exc:
                self._warn(f'{exc.reason}, assuming {Version.V2_1}', exc.line_number)
                self.version = Version.V2_1
                raw_line = exc.line

            if raw_line is None:
                return

            yield raw_line

    def close(self):
        self.text_reader.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
