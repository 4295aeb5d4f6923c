from vcardraw.errors import InvalidVersionError, LineSyntaxError
from vcardraw.text import CharacterClassSet, decode_value, is_escape_char, unescape_parameter_value
from vcardraw.version import Version

NAME_CHARS = CharacterClassSet('a-zA-Z0-9-')


def _parameter_key(name):
    if not name:
        return None

    return name.upper()


class Parameters:
    def __init__(self, parameters=None):
        self._names = {}
        self._values = {}

        if parameters is None:
            return

        if hasattr(parameters, 'items'):
            parameters = parameters.items()

        for name, values in parameters:
            if isinstance(values, str):
                self.add(name, values)
            else:
                self.extend(name, values)

    def add(self, name, value):
        key = _parameter_key(name)

        if key not in self._values:
            self._names[key] = name or None
            self._values[key] = []

        self._values[key].append(value)

    def extend(self, name, values):
        for value in values:
            self.add(name, value)

    def get(self, name):
        return list(self._values.get(_parameter_key(name), ()))

    def first(self, name, default=None):
        values = self._values.get(_parameter_key(name))
        return values[0] if values else default

    def set(self, name, value):
        key = _parameter_key(name)

        if key in self._values:
            self._values[key] = [value]
        else:
            self.add(name, value)

    def remove(self, name):
        key = _parameter_key(name)
        self._names.pop(key, None)
        return self._values.pop(key, [])

    def names(self):
        return list(self._names.values())

    def items(self):
        for key, values in self._values.items():
            yield self._names[key], list(values)

    def copy(self):
        return Parameters(self)

    @property
    def encoding(self):
        return self.first('ENCODING')

    @property
    def charset(self):
        return self.first('CHARSET')

    def is_quoted_printable(self):
        encoding = self.encoding

        if encoding is not None and encoding.lower() == 'quoted-printable':
            return True

        return any(value.lower() == 'quoted-printable' for value in self.get(None))

    def __contains__(self, name):
        return _parameter_key(name) in self._values

    def __iter__(self):
        return iter(self.names())

    def __len__(self):
        return len(self._values)

    def __bool__(self):
        return bool(self._values)

    def __eq__(self, other):
        if not isinstance(other, Parameters):
            return NotImplemented

        return list(self._values.items()) == list(other._values.items())

    def __repr__(self):
        return f'Parameters({list(self.items())!r})'


class RawLine:
    __line_span__ = None

    def __init__(self, name, value='', parameters=None, group=None, encoded=False):
        self.group = group
        self.name = name
        self.parameters = Parameters() if parameters is None else parameters
        self.value = value
        # the value is still quoted-printable text
        self.encoded = encoded

    def __eq__(self, other):
        if not isinstance(other, RawLine):
            return NotImplemented

        return (self.group, self.name, self.parameters, self.value, self.encoded) == \
            (other.group, other.name, other.parameters, other.value, other.encoded)

    def __repr__(self):
        return f'RawLine(name={self.name!r}, value={self.value!r}, parameters={self.parameters!r}, group={self.group!r})'


def _add_parameter(parameters, name, raw_value, version, caret_decoding):
    if version is Version.V2_1:
        raw_value = raw_value.lstrip()

    value = unescape_parameter_value(raw_value, version, caret_decoding)

    if name is None and not value:
        return

    parameters.add(name, value)


def scan_line(line, version=Version.V2_1, caret_decoding=False):
    # returns (group, name, parameters, value_offset)
    v21 = version is Version.V2_1
    group = None
    name = None
    parameter_name = None
    parameters = Parameters()
    buffer = []
    in_quotes = False
    index = 0
    end = len(line)

    while index < end:
        char = line[index]
        index += 1

        if is_escape_char(char, version, caret_decoding):
            buffer.append(char)

            if index < end:
                buffer.append(line[index])
                index += 1

            continue

        if name is None:
            if char == '.' and group is None:
                group = ''.join(buffer)
                buffer = []
            elif char in ';:':
                name = ''.join(buffer)
                buffer = []

                if char == ':':
                    return group, name, parameters, index
            else:
                buffer.append(char)

            continue

        if in_quotes:
            if char == '"':
                in_quotes = False
            else:
                buffer.append(char)

            continue

        if char in ';:':
            _add_parameter(parameters, parameter_name, ''.join(buffer), version, caret_decoding)
            parameter_name = None
            buffer = []

            if char == ':':
                return group, name, parameters, index
        elif char == ',' and not v21:
            _add_parameter(parameters, parameter_name, ''.join(buffer), version, caret_decoding)
            buffer = []
        elif char == '=' and parameter_name is None:
            parameter_name = ''.join(buffer)
            buffer = []

            if v21:
                parameter_name = parameter_name.rstrip()
        elif char == '"' and not v21:
            in_quotes = True
        else:
            buffer.append(char)

    raise LineSyntaxError('no ":" delimiter found', line)


def parse_line(line, version=Version.V2_1, caret_decoding=False):
    group, name, parameters, offset = scan_line(line, version, caret_decoding)

    if not name:
        raise LineSyntaxError('property name is empty', line)

    if not NAME_CHARS.contains_only(name):
        raise LineSyntaxError(f'property name "{name}" contains invalid characters', line)

    if group is not None and (not group or not NAME_CHARS.contains_only(group)):
        raise LineSyntaxError(f'group name "{group}" contains invalid characters', line)

    value = decode_value(line[offset:].strip(' \t'), version)
    raw_line = RawLine(name, value, parameters, group, parameters.is_quoted_printable())

    if name.upper() == 'VERSION' and Version.from_string(value) is None:
        raise InvalidVersionError(value, raw_line)

    return raw_line
