import logging

from vcardraw.core import NAME_CHARS, Parameters
from vcardraw.errors import CharsetDecodeError
from vcardraw.text import (
    contains_newlines, encode_quoted_printable, encode_value, escape_parameter_value, lookup_charset, replace_newlines,
)
from vcardraw.version import Version

logger = logging.getLogger(__name__)


def _is_whitespace(char):
    return char in (' ', '\t')


def _is_high_surrogate(char):
    return '\ud800' <= char <= '\udbff'


def _is_low_surrogate(char):
    return '\udc00' <= char <= '\udfff'


def _width(char):
    # length in UTF-16 code units
    return 2 if ord(char) > 0xffff else 1


class FoldedLineWriter:
    def __init__(self, stream, line_length=75, indent=' ', newline='\r\n'):
        self.stream = stream
        self._line_length = None
        self._indent = ''
        self.line_length = line_length
        self.indent = indent
        self.newline = newline

        self._current_length = 0

    @property
    def line_length(self):
        return self._line_length

    @line_length.setter
    def line_length(self, line_length):
        if line_length is not None:
            if line_length <= 0:
                raise ValueError('line length must be greater than 0')

            if len(self._indent) >= line_length:
                raise ValueError('the indent must be shorter than the line length')

        self._line_length = line_length

    @property
    def indent(self):
        return self._indent

    @indent.setter
    def indent(self, indent):
        if self._line_length is not None and len(indent) >= self._line_length:
            raise ValueError('the indent must be shorter than the line length')

        self._indent = indent

    def write(self, text):
        self._write(text, quoted_printable=False)

    def write_quoted_printable(self, text, charset='utf-8'):
        try:
            charset = lookup_charset(charset)
        except CharsetDecodeError as exc:
            logger.warning('%s, encoding quoted-printable text with utf-8', exc)
            charset = 'utf-8'

        self._write(encode_quoted_printable(text, charset), quoted_printable=True)

    def write_encoded(self, text):
        self._write(text, quoted_printable=True)

    def writeln(self, text=''):
        self.write(text)
        self.stream.write(self.newline)
        self._current_length = 0

    def _write(self, text, quoted_printable):
        if self._line_length is None:
            self.stream.write(replace_newlines(text, self.newline))
            return

        # leave room for the "=" that ends each folded quoted-printable line
        max_length = self._line_length - 1 if quoted_printable else self._line_length

        write = self.stream.write
        encoded_position = -1
        start = 0
        index = 0
        end = len(text)

        while index < end:
            char = text[index]

            if encoded_position >= 0:
                encoded_position += 1

                if encoded_position == 3:
                    encoded_position = -1

            if char == '\n':
                write(text[start:index + 1])
                self._current_length = 0
                start = index + 1
                index += 1
                continue

            if char == '\r':
                if index == end - 1 or text[index + 1] != '\n':
                    write(text[start:index + 1])
                    self._current_length = 0
                    start = index + 1
                else:
                    self._current_length += 1

                index += 1
                continue

            if char == '=' and quoted_printable:
                encoded_position = 0

            if self._current_length >= max_length:
                if _is_whitespace(char):
                    while _is_whitespace(char) and index < end - 1:
                        index += 1
                        char = text[index]

                    if index >= end - 1:
                        break

                    if char in ('\r', '\n'):
                        continue

                if encoded_position > 0:
                    index += 3 - encoded_position

                    if index >= end - 1:
                        break

                if _is_low_surrogate(char) and index > start and _is_high_surrogate(text[index - 1]):
                    index += 1

                    if index >= end:
                        break

                write(text[start:index])

                if quoted_printable:
                    write('=')

                write(self.newline)
                write(self._indent)
                self._current_length = len(self._indent) + _width(text[index])
                encoded_position = 0 if quoted_printable and text[index] == '=' else -1
                start = index
                index += 1
                continue

            self._current_length += _width(char)
            index += 1

        write(text[start:])

    def flush(self):
        self.stream.flush()

    def close(self):
        self.stream.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()


def _validate_name(name, kind):
    if not name or not NAME_CHARS.contains_only(name):
        raise ValueError(f'{kind} name "{name}" must be made of letters, digits and hyphens only')


class RawWriter:
    def __init__(self, stream, version, caret_encoding=False, on_parameter_changed=None):
        self.writer = FoldedLineWriter(stream)
        self.version = version
        self.caret_encoding = caret_encoding
        self.on_parameter_changed = on_parameter_changed

    def write_begin(self, component):
        self.write_property('BEGIN', component)

    def write_end(self, component):
        self.write_property('END', component)

    def write_version(self):
        self.write_property('VERSION', str(self.version))

    def write_line(self, raw_line):
        self.write_property(raw_line.name, raw_line.value, raw_line.parameters, raw_line.group, raw_line.encoded)

    def write_property(self, name, value, parameters=None, group=None, encoded=False):
        if group is not None:
            _validate_name(group, 'group')

        _validate_name(name, 'property')

        parameters = Parameters() if parameters is None else parameters.copy()
        value = '' if value is None else value

        # 2.1 has no escape sequence for newlines
        if self.version is Version.V2_1 and contains_newlines(value) and not parameters.is_quoted_printable():
            parameters.set('ENCODING', 'quoted-printable')

        quoted_printable = parameters.is_quoted_printable()

        if not quoted_printable:
            value = encode_value(value, self.version)
        elif not encoded:
            value = replace_newlines(value, '\r\n')
            charset = self._quoted_printable_charset(name, parameters)

        writer = self.writer

        if group is not None:
            writer.write(f'{group}.')

        writer.write(name)

        for parameter_name, parameter_values in parameters.items():
            self._write_parameter(name, parameter_name, parameter_values)

        writer.write(':')

        if not quoted_printable:
            writer.write(value)
        elif encoded:
            writer.write_encoded(value)
        else:
            writer.write_quoted_printable(value, charset)

        writer.writeln()

    def _quoted_printable_charset(self, property_name, parameters):
        charset = parameters.charset

        if charset is None:
            charset = 'UTF-8'
        else:
            try:
                lookup_charset(charset)
            except CharsetDecodeError as exc:
                logger.warning('%s in %s property, encoding with UTF-8', exc, property_name)
                charset = 'UTF-8'

        parameters.set('CHARSET', charset)

        return charset

    def _write_parameter(self, property_name, parameter_name, values):
        def on_change(original, modified):
            self._parameter_changed(property_name, parameter_name, original, modified)

        escaped_values = [escape_parameter_value(value, self.version, self.caret_encoding, on_change)
                          for value in values]
        write = self.writer.write

        if parameter_name is None:
            for value in escaped_values:
                write(f';{value}')
        elif self.version is Version.V2_1:
            if parameter_name.upper() == 'TYPE':
                # e.g. ADR;HOME;WORK:
                for value in escaped_values:
                    write(f';{value.upper()}')
            else:
                for value in escaped_values:
                    write(f';{parameter_name}={value}')
        elif escaped_values:
            write(f';{parameter_name}={",".join(escaped_values)}')

    def _parameter_changed(self, property_name, parameter_name, original, modified):
        if self.on_parameter_changed is not None:
            self.on_parameter_changed(property_name, parameter_name, original, modified)
        else:
            logger.warning('value of %s parameter in %s property changed from "%s" to "%s"',
                           parameter_name, property_name, original, modified)

    def flush(self):
        self.writer.flush()

    def close(self):
        self.writer.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
