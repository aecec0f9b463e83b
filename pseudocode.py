#!/usr/bin/env python3
"""
pseudocode.py — Readable listings of Whitespace programs.

Works straight off the parser's command stream; nothing is executed.
Labels print as L_<bits> (the empty label is L_), marks sit flush left
and every other command is indented:

    L_01:
        push 72
        printc
        jump L_01
"""

import sys

from whitespace import LABEL, NUMBER, Command, Op, Parser

_NAMES = {
    Op.PUSH: 'push',         Op.DUP: 'dup',          Op.COPY: 'copy',
    Op.SWAP: 'swap',         Op.DISCARD: 'discard',  Op.SLIDE: 'slide',
    Op.ADD: 'add',           Op.SUB: 'sub',          Op.MUL: 'mul',
    Op.DIV: 'div',           Op.MOD: 'mod',
    Op.STORE: 'store',       Op.RETRIEVE: 'retrieve',
    Op.MARK: 'mark',         Op.CALL: 'call',        Op.JUMP: 'jump',
    Op.JZ: 'jz',             Op.JN: 'jn',
    Op.RETURN: 'ret',        Op.EXIT: 'exit',
    Op.PRINT_CHAR: 'printc', Op.PRINT_NUM: 'printn',
    Op.READ_CHAR: 'readc',   Op.READ_NUM: 'readn',
}

INDENT = '    '


def label_name(label: str) -> str:
    return f'L_{label}'


def format_command(command: Command) -> str:
    op, param = command
    if op is Op.MARK:
        return f'{label_name(param)}:'
    name = _NAMES[op]
    if op.param == NUMBER:
        return f'{INDENT}{name} {param}'
    if op.param == LABEL:
        return f'{INDENT}{name} {label_name(param)}'
    return INDENT + name


def translate(source, out=None):
    """Write one line per command of ``source`` to ``out`` (stdout by default)."""
    out = sys.stdout if out is None else out
    for command in Parser(source):
        print(format_command(command), file=out)
