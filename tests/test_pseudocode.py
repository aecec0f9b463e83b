import io

import pytest

from pseudocode import format_command, label_name, translate
from whitespace import LABEL, NUMBER, CommandFactory, LexError, Op, stl

f = CommandFactory()


@pytest.mark.parametrize('command, line', [
    (f.mark('0110'),            'L_0110:'),
    (f.mark(''),                'L_:'),
    (f.push(-12),               '    push -12'),
    (f.dup(),                   '    dup'),
    (f.dup(3),                  '    copy 3'),
    (f.slide(1),                '    slide 1'),
    (f.call(''),                '    call L_'),
    (f.jump_if_zero('1'),       '    jz L_1'),
    (f.jump_if_negative('01'),  '    jn L_01'),
    (f.ret(),                   '    ret'),
    (f.print_char(),            '    printc'),
    (f.read_number(),           '    readn'),
])
def test_format_command(command, line):
    assert format_command(command) == line


def test_every_opcode_has_a_name():
    for op in Op:
        param = 1 if op.param == NUMBER else '1' if op.param == LABEL else None
        assert format_command((op, param)).strip()


def test_label_names_stay_distinct():
    names = {label_name(bits) for bits in ('', '0', '00', '1', '01')}
    assert len(names) == 5


def test_translate():
    out = io.StringIO()
    translate(stl('LSSTL SSSTSSTSSSL TLSS LSLTL'), out)
    assert out.getvalue() == 'L_1:\n    push 72\n    printc\n    jump L_1\n'


def test_translate_does_not_execute():
    # jumps to a label that is never defined; listing it is still fine
    out = io.StringIO()
    translate(stl('LSLTTL LTL'), out)
    assert out.getvalue().splitlines() == ['    jump L_11', '    ret']


def test_translate_propagates_lex_errors():
    with pytest.raises(LexError):
        translate(stl('STT'), io.StringIO())
