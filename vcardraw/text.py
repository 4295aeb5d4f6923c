import codecs
import quopri
import re

from vcardraw.errors import CharsetDecodeError, QuotedPrintableDecodeError
from vcardraw.version import Version


class CharacterClassSet:
    def __init__(self, characters):
        self.characters = characters
        self._chars = frozenset(_expand_ranges(characters))

    def __contains__(self, char):
        return char in self._chars

    def __eq__(self, other):
        if not isinstance(other, CharacterClassSet):
            return NotImplemented

        return self._chars == other._chars

    def __hash__(self):
        return hash(self._chars)

    def __str__(self):
        return self.characters

    def __repr__(self):
        return f'CharacterClassSet({self.characters!r})'

    def contains_only(self, string, start=0):
        for char in string[start:]:
            if char not in self._chars:
                return False

        return True

    def contains_any(self, string, start=0):
        for char in string[start:]:
            if char in self._chars:
                return True

        return False

    def remove_from(self, string):
        if not self.contains_any(string):
            return string

        return ''.join(char for char in string if char not in self._chars)


def _expand_ranges(characters):
    index = 0
    end = len(characters)

    while index < end:
        char = characters[index]

        if index + 2 < end and characters[index + 1] == '-':
            first, last = sorted((ord(char), ord(characters[index + 2])))

            for code in range(first, last + 1):
                yield chr(code)

            index += 3
            continue

        yield char
        index += 1


NEWLINE_PATTERN = re.compile(r'\r\n|\r|\n')


def contains_newlines(string):
    return NEWLINE_PATTERN.search(string) is not None


def replace_newlines(string, newline='\n'):
    return NEWLINE_PATTERN.sub(newline, string)


_CONTROL_CHARS = '\x00-\x08\x0b\x0c\x0e-\x1f\x7f'


class _EscapingTable:
    def __init__(self, removed, lossy, escapes, quoted):
        self.removed = CharacterClassSet(removed)
        self.lossy = str.maketrans(lossy)
        self.escapes = str.maketrans(escapes)
        self.quoted = quoted


_QUOTE_TRIGGERS = CharacterClassSet(',;:')

_ESCAPING_V21 = _EscapingTable(
    removed=_CONTROL_CHARS + ',:=[]',
    lossy={'\n': ' '},
    escapes={'\\': '\\\\', ';': '\\;'},
    quoted=False,
)

_ESCAPING_BACKSLASH = _EscapingTable(
    removed=_CONTROL_CHARS,
    lossy={'"': "'"},
    escapes={'\\': '\\\\', '\n': '\\n'},
    quoted=True,
)

_ESCAPING_CARET = _EscapingTable(
    removed=_CONTROL_CHARS,
    lossy={},
    escapes={'\\': '\\\\', '^': '^^', '\n': '^n', '"': "^'"},
    quoted=True,
)

# (version, caret) -> escaping table
_ESCAPING_TABLES = {
    (Version.V2_1, False): _ESCAPING_V21,
    (Version.V2_1, True): _ESCAPING_V21,
    (Version.V3_0, False): _ESCAPING_BACKSLASH,
    (Version.V3_0, True): _ESCAPING_CARET,
    (Version.V4_0, False): _ESCAPING_BACKSLASH,
    (Version.V4_0, True): _ESCAPING_CARET,
}

# escape sequences understood in parameter values, per version
_BACKSLASH_SEQUENCES = {
    Version.V2_1: {'\\': '\\', 'n': '\n', 'N': '\n', ';': ';'},
    Version.V3_0: {'\\': '\\', 'n': '\n', 'N': '\n', '"': '"'},
    Version.V4_0: {'\\': '\\', 'n': '\n', 'N': '\n', '"': '"'},
}

_CARET_SEQUENCES = {'^': '^', 'n': '\n', "'": '"'}


def is_escape_char(char, version, caret=False):
    return char == '\\' or (char == '^' and caret and version is not Version.V2_1)


def escape_parameter_value(value, version, caret=False, on_change=None):
    table = _ESCAPING_TABLES[(version, bool(caret))]
    original = replace_newlines(value)

    modified = table.removed.remove_from(original)
    modified = modified.translate(table.lossy)
    changed = modified != original

    modified = modified.translate(table.escapes)

    if table.quoted and _QUOTE_TRIGGERS.contains_any(modified):
        modified = f'"{modified}"'

    if changed and on_change is not None:
        on_change(value, modified)

    return modified


def unescape_parameter_value(value, version, caret=False):
    caret = caret and version is not Version.V2_1
    backslash_sequences = _BACKSLASH_SEQUENCES[version]
    chars = []
    index = 0
    end = len(value)

    while index < end:
        char = value[index]
        index += 1

        if index < end and is_escape_char(char, version, caret):
            next_char = value[index]
            index += 1

            sequences = backslash_sequences if char == '\\' else _CARET_SEQUENCES

            if next_char in sequences:
                chars.append(sequences[next_char])
            else:
                chars.append(char)
                chars.append(next_char)
        else:
            chars.append(char)

    return ''.join(chars)


def decode_value(value, version):
    if version is Version.V2_1 or '\\' not in value:
        return value

    chars = []
    index = 0
    end = len(value)

    while index < end:
        char = value[index]
        index += 1

        if char == '\\' and index < end:
            next_char = value[index]
            index += 1

            if next_char in 'nN':
                chars.append('\n')
            else:
                chars.append(char)
                chars.append(next_char)
        else:
            chars.append(char)

    return ''.join(chars)


def encode_value(value, version):
    if version is Version.V2_1:
        return value

    return replace_newlines(value, '\\n')


def lookup_charset(name):
    try:
        return codecs.lookup(name).name
    except LookupError:
        raise CharsetDecodeError(name) from None


_QUOTED_PRINTABLE_LITERALS = frozenset(b for b in range(33, 127) if b != ord('=')) | {ord('\t'), ord(' ')}

_INVALID_QUOTED_PRINTABLE_ESCAPE = re.compile(r'=(?![0-9A-Fa-f]{2}|\Z)')


def encode_quoted_printable(text, charset='utf-8'):
    chunks = []

    for byte in text.encode(charset, errors='replace'):
        if byte in _QUOTED_PRINTABLE_LITERALS:
            chunks.append(chr(byte))
        else:
            chunks.append(f'={byte:02X}')

    return ''.join(chunks)


def decode_quoted_printable(text, charset='utf-8'):
    match = _INVALID_QUOTED_PRINTABLE_ESCAPE.search(text)

    if match:
        sequence = text[match.start():match.start() + 3]
        raise QuotedPrintableDecodeError(f'invalid quoted-printable sequence "{sequence}"')

    try:
        data = quopri.decodestring(text.encode('ascii'))
    except UnicodeEncodeError:
        raise QuotedPrintableDecodeError('quoted-printable text contains non-ASCII characters') from None

    try:
        return data.decode(charset)
    except UnicodeDecodeError as exc:
        raise QuotedPrintableDecodeError(f'quoted-printable data is not valid {charset}: {exc.reason}') from None
