import pytest

from vcardraw.core import Parameters, RawLine, parse_line, scan_line
from vcardraw.errors import InvalidVersionError, LineSyntaxError
from vcardraw.version import Version

ADDRESS = ';;123 Main Str;Austin;TX;12345;US'


def test_parameters_case_insensitive():
    """Names are looked up ignoring case and keep their first spelling."""
    parameters = Parameters()
    parameters.add('Type', 'home')
    parameters.add('TYPE', 'work')

    assert parameters.get('type') == ['home', 'work']
    assert parameters.first('tYpE') == 'home'
    assert parameters.names() == ['Type']
    assert 'TYPE' in parameters
    assert len(parameters) == 1


def test_parameters_nameless():
    parameters = Parameters()
    parameters.add(None, 'HOME')
    parameters.add('', 'WORK')

    assert parameters.get(None) == ['HOME', 'WORK']
    assert parameters.names() == [None]


def test_parameters_set_and_remove():
    parameters = Parameters([('ENCODING', ['8bit', 'base64']), ('CHARSET', 'utf-8')])
    parameters.set('encoding', 'quoted-printable')
    parameters.set('LANGUAGE', 'en')

    assert list(parameters.items()) == [
        ('ENCODING', ['quoted-printable']),
        ('CHARSET', ['utf-8']),
        ('LANGUAGE', ['en']),
    ]
    assert parameters.remove('charset') == ['utf-8']
    assert parameters.remove('charset') == []
    assert parameters.charset is None
    assert parameters.first('missing', 'default') == 'default'


def test_parameters_copy():
    parameters = Parameters({'TYPE': ['home']})
    copy = parameters.copy()
    copy.add('TYPE', 'work')
    copy.get('TYPE').append('cell')

    assert parameters.get('TYPE') == ['home']
    assert copy.get('TYPE') == ['home', 'work']
    assert copy != parameters
    assert Parameters({'type': 'home'}) == parameters


def test_parameters_equality_keeps_order():
    one = Parameters([('LANGUAGE', 'en'), ('TYPE', ['home', 'work'])])

    assert one == Parameters([('language', 'en'), ('TYPE', ['home', 'work'])])
    assert one != Parameters([('TYPE', ['home', 'work']), ('LANGUAGE', 'en')])
    assert one != Parameters([('LANGUAGE', 'en'), ('TYPE', ['work', 'home'])])


def test_parameters_encoding():
    parameters = Parameters([('encoding', ['Quoted-Printable', '8bit']), ('CHARSET', 'utf-8')])

    assert parameters.encoding == 'Quoted-Printable'
    assert parameters.charset == 'utf-8'
    assert parameters.is_quoted_printable()
    assert Parameters().encoding is None


@pytest.mark.parametrize('parameters, expected', [
    ({'ENCODING': 'QUOTED-PRINTABLE'}, True),
    ({'encoding': 'quoted-printable'}, True),
    ([(None, ['HOME', 'Quoted-Printable'])], True),
    ({'ENCODING': 'base64'}, False),
    ({'TYPE': 'quoted-printable'}, False),
    ({}, False),
])
def test_parameters_is_quoted_printable(parameters, expected):
    assert Parameters(parameters).is_quoted_printable() is expected


def test_parse_line_basic():
    raw_line = parse_line('NOTE;LANGUAGE=en-us:My vCard', Version.V4_0)

    assert raw_line == RawLine('NOTE', 'My vCard', Parameters({'LANGUAGE': 'en-us'}))
    assert raw_line.group is None


def test_parse_line_group():
    raw_line = parse_line('iteM1.NOTE:This is a note.')

    assert raw_line.group == 'iteM1'
    assert raw_line.name == 'NOTE'
    assert raw_line.value == 'This is a note.'


def test_parse_line_nameless_parameters():
    raw_line = parse_line('ADR;WOrK;;dOM:' + ADDRESS)

    assert raw_line.parameters.get(None) == ['WOrK', 'dOM']
    assert raw_line.value == ADDRESS


def test_parse_line_whitespace_around_equals():
    """Whitespace around "=" is trimmed in 2.1 only."""
    line = 'ADR;TYPE\t= WOrK;TYPE \t=  dOM:' + ADDRESS

    raw_line = parse_line(line, Version.V2_1)
    assert list(raw_line.parameters.items()) == [('TYPE', ['WOrK', 'dOM'])]

    for version in (Version.V3_0, Version.V4_0):
        raw_line = parse_line(line, version)
        assert raw_line.parameters.get('TYPE\t') == [' WOrK']
        assert raw_line.parameters.get('TYPE \t') == ['  dOM']
        assert raw_line.parameters.get('TYPE') == []


def test_parse_line_multi_valued_parameters_v21():
    """Commas and double quotes have no meaning in 2.1 parameters."""
    raw_line = parse_line('ADR;TYPE=dom,"foo,bar\\;baz",work,foo=bar;PREF=1:' + ADDRESS, Version.V2_1)

    assert raw_line.parameters.get('TYPE') == ['dom,"foo,bar;baz",work,foo=bar']
    assert raw_line.parameters.get('PREF') == ['1']
    assert raw_line.value == ADDRESS


@pytest.mark.parametrize('version', [Version.V3_0, Version.V4_0])
def test_parse_line_multi_valued_parameters(version):
    raw_line = parse_line('ADR;TYPE=dom,"foo,bar;baz",work,foo=bar;PREF=1:' + ADDRESS, version)

    assert raw_line.parameters.get('TYPE') == ['dom', 'foo,bar;baz', 'work', 'foo=bar']
    assert raw_line.parameters.get('PREF') == ['1']
    assert raw_line.value == ADDRESS


def test_parse_line_type_list():
    assert parse_line('ADR;TYPE=dom,home,work:x', Version.V3_0).parameters.get('TYPE') == ['dom', 'home', 'work']
    assert parse_line('ADR;TYPE=dom,home,work:x', Version.V2_1).parameters.get('TYPE') == ['dom,home,work']


def test_parse_line_quoted_colon():
    raw_line = parse_line('X-URL;LABEL="http://example.com":value', Version.V4_0)

    assert raw_line.parameters.get('LABEL') == ['http://example.com']
    assert raw_line.value == 'value'


V21_LABEL = ('ADR;LABEL=1\\23 ^^Main^^ St.^nSection\\; 12^NBuilding 20\\nApt 10\\N^\'Austin^\', "TX" 123^45:'
             + ADDRESS)
V21_LABEL_DECODED = '1\\23 ^^Main^^ St.^nSection; 12^NBuilding 20\nApt 10\n^\'Austin^\', "TX" 123^45'

QUOTED_LABEL = ('ADR;LABEL="1\\23 ^^Main^^ St.^nSection; 12^NBuilding 20\\nApt 10\\N^\'Austin^\', \\"TX\\" 123^45":'
                + ADDRESS)


@pytest.mark.parametrize('caret', [False, True])
def test_parse_line_escaping_v21(caret):
    """Caret decoding has no effect on 2.1 lines."""
    raw_line = parse_line(V21_LABEL, Version.V2_1, caret)

    assert raw_line.parameters.get('LABEL') == [V21_LABEL_DECODED]
    assert raw_line.value == ADDRESS


@pytest.mark.parametrize('version', [Version.V3_0, Version.V4_0])
def test_parse_line_escaping(version):
    raw_line = parse_line(QUOTED_LABEL, version)

    assert raw_line.parameters.get('LABEL') == \
        ['1\\23 ^^Main^^ St.^nSection; 12^NBuilding 20\nApt 10\n^\'Austin^\', "TX" 123^45']


@pytest.mark.parametrize('version', [Version.V3_0, Version.V4_0])
def test_parse_line_escaping_caret(version):
    raw_line = parse_line(QUOTED_LABEL, version, caret_decoding=True)

    assert raw_line.parameters.get('LABEL') == \
        ['1\\23 ^Main^ St.\nSection; 12^NBuilding 20\nApt 10\n"Austin", "TX" 123^45']


def test_parse_line_value():
    assert parse_line('NOTE:').value == ''
    assert parse_line('NOTE: Hello world!\t').value == 'Hello world!'
    assert parse_line('NOTE:one\\ntwo', Version.V3_0).value == 'one\ntwo'
    assert parse_line('NOTE:one\\ntwo', Version.V2_1).value == 'one\\ntwo'
    assert parse_line('NOTE:a:b;c').value == 'a:b;c'


@pytest.mark.parametrize('line', [
    'This is not a valid vCard line.',
    ':no name',
    'NO TE:space in name',
    'bad_name:value',
    '.NOTE:empty group',
    'gr_oup.NOTE:invalid group',
    'NOTE;LABEL="unterminated:value',
])
def test_parse_line_syntax_error(line):
    with pytest.raises(LineSyntaxError) as exc_info:
        parse_line(line, Version.V4_0)

    assert exc_info.value.line == line


def test_parse_line_invalid_version():
    with pytest.raises(InvalidVersionError) as exc_info:
        parse_line('VERSION:invalid')

    assert exc_info.value.version == 'invalid'
    assert exc_info.value.line == RawLine('VERSION', 'invalid')


@pytest.mark.parametrize('value', ['2.1', '3.0', '4.0'])
def test_parse_line_version(value):
    assert parse_line(f'verSION:{value}').value == value


def test_parse_line_encoded():
    """Quoted-printable values are returned still encoded."""
    assert parse_line('NOTE;ENCODING=QUOTED-PRINTABLE:one=0D=0Atwo').encoded
    assert parse_line('NOTE;QUOTED-PRINTABLE:one=0D=0Atwo').encoded
    assert not parse_line('NOTE;ENCODING=8BIT:one=0D=0Atwo').encoded


def test_scan_line():
    group, name, parameters, offset = scan_line('item1.ADR;HOME;ENCODING=QUOTED-PRINTABLE:Silicon Alley 5')

    assert group == 'item1'
    assert name == 'ADR'
    assert parameters.get(None) == ['HOME']
    assert parameters.is_quoted_printable()
    assert offset == len('item1.ADR;HOME;ENCODING=QUOTED-PRINTABLE:')


def test_version_from_string():
    assert Version.from_string(' 4.0 ') is Version.V4_0
    assert Version.from_string('5.0') is None
    assert str(Version.V3_0) == '3.0'
