#!/usr/bin/env python3
"""
whitespace.py — A Whitespace interpreter.

Only space, tab and line feed mean anything. Every other character is a
comment and is skipped wherever it appears.

Architecture:
  - Tokenizer: reads the character stream into opcode, number and label tokens
  - Parser: checks each opcode's parameter and builds Commands via a factory
  - FlowControl: loads the whole program first (marks register their labels),
    then steps an explicit instruction pointer with a call stack
  - VirtualMachine: operand stack, sparse heap, IO device, one dispatch loop

Instruction set (S = space, T = tab, L = line feed):
  Stack   S   push n (SS)  dup (SLS)  copy n (STS)  swap (SLT)
              discard (SLL)  slide n (STL)
  Arith   TS  add (SS)  sub (ST)  mul (SL)  div (TS)  mod (TT)
  Heap    TT  store (S)  retrieve (T)
  Flow    L   mark l (SS)  call l (ST)  jump l (SL)  jz l (TS)  jn l (TT)
              return (TL)  exit (LL)
  IO      TL  printc (SS)  printn (ST)  readc (TS)  readn (TT)

Numbers are a sign (S = +, T = -) then binary digits (S = 0, T = 1) then L.
Labels are any run of S and T then L, kept as a string of 0/1 characters.
"""

import argparse
import io
import logging
import operator
import re
import sys
from enum import Enum
from typing import NamedTuple

log = logging.getLogger(__name__)

SPACE = ' '
TAB   = '\t'
LF    = '\n'

_SIGNIFICANT = {SPACE: 'S', TAB: 'T', LF: 'L'}
_NOTATION    = {v: k for k, v in _SIGNIFICANT.items()}


# ── Errors ───────────────────────────────────────────────────────────────────

class WhitespaceError(Exception):
    pass


class LexError(WhitespaceError):
    pass


class ParseError(WhitespaceError):
    pass


class DuplicateLabelError(ParseError):
    pass


class ExecutionError(WhitespaceError):
    """Raised while a program runs. ``ip`` is the failing instruction."""
    ip = None


class UndefinedLabelError(ExecutionError):
    pass


class StackUnderflowError(ExecutionError):
    pass


class DivisionByZeroError(ExecutionError):
    pass


class IODeviceError(ExecutionError):
    pass


class NumberFormatError(ExecutionError):
    pass


# ── Instruction table ────────────────────────────────────────────────────────

NUMBER = 'NUMBER'
LABEL  = 'LABEL'


class Op(Enum):
    # (code without separators, parameter kind)
    PUSH       = ('SS',   NUMBER)
    DUP        = ('SLS',  None)
    COPY       = ('STS',  NUMBER)
    SWAP       = ('SLT',  None)
    DISCARD    = ('SLL',  None)
    SLIDE      = ('STL',  NUMBER)
    ADD        = ('TSSS', None)
    SUB        = ('TSST', None)
    MUL        = ('TSSL', None)
    DIV        = ('TSTS', None)
    MOD        = ('TSTT', None)
    STORE      = ('TTS',  None)
    RETRIEVE   = ('TTT',  None)
    MARK       = ('LSS',  LABEL)
    CALL       = ('LST',  LABEL)
    JUMP       = ('LSL',  LABEL)
    JZ         = ('LTS',  LABEL)
    JN         = ('LTT',  LABEL)
    RETURN     = ('LTL',  None)
    EXIT       = ('LLL',  None)
    PRINT_CHAR = ('TLSS', None)
    PRINT_NUM  = ('TLST', None)
    READ_CHAR  = ('TLTS', None)
    READ_NUM   = ('TLTT', None)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def param(self):
        return self.value[1]


_OPCODES  = {op.code: op for op in Op}
_PREFIXES = {op.code[:i] for op in Op for i in range(1, len(op.code))}


def stl(notation: str) -> str:
    """Turn S/T/L notation into real source; anything else is dropped."""
    return ''.join(_NOTATION[c] for c in notation if c in _NOTATION)


# ── Tokenizer ────────────────────────────────────────────────────────────────

class Token(NamedTuple):
    type: object            # an Op, NUMBER or LABEL
    number: int | None = None
    text: str | None = None


class Tokenizer:
    """Lazy token stream over a string or a readable text stream."""

    def __init__(self, source):
        if isinstance(source, str):
            source = io.StringIO(source)
        self._src = source
        self._expect = None     # parameter kind owed by the last opcode
        self._done = False

    def __iter__(self):
        return self

    def __next__(self) -> Token:
        token = self.next()
        if token is None:
            raise StopIteration
        return token

    def _read(self):
        while True:
            ch = self._src.read(1)
            if not ch:
                return None
            if ch in _SIGNIFICANT:
                return _SIGNIFICANT[ch]

    def next(self) -> Token | None:
        if self._done:
            return None
        kind, self._expect = self._expect, None
        if kind == NUMBER:
            return self._number()
        if kind == LABEL:
            return self._label()

        code = ''
        while True:
            c = self._read()
            if c is None:
                if code:
                    raise LexError(f'Source ends inside instruction {code}')
                self._done = True
                return None
            code += c
            op = _OPCODES.get(code)
            if op:
                self._expect = op.param
                return Token(op)
            if code not in _PREFIXES:
                raise LexError(f'Unknown instruction {code}')

    def _bits(self, what: str) -> str:
        bits = []
        while True:
            c = self._read()
            if c is None:
                raise LexError(f'Source ends inside {what}')
            if c == 'L':
                return ''.join(bits)
            bits.append('0' if c == 'S' else '1')

    def _number(self) -> Token:
        sign = self._read()
        if sign is None:
            raise LexError('Source ends inside number')
        if sign == 'L':
            raise LexError('Number has no sign')
        digits = self._bits('number')
        if not digits:
            raise LexError('Number has no digits')
        n = int(digits, 2)
        return Token(NUMBER, number=-n if sign == 'T' else n)

    def _label(self) -> Token:
        return Token(LABEL, text=self._bits('label'))


# ── Commands ─────────────────────────────────────────────────────────────────

class Command(NamedTuple):
    op: Op
    param: int | str | None = None


class CommandFactory:
    """One method per opcode. Holds no state."""

    def push(self, n):         return Command(Op.PUSH, n)
    def discard(self):         return Command(Op.DISCARD)
    def swap(self):            return Command(Op.SWAP)
    def slide(self, n):        return Command(Op.SLIDE, n)

    def dup(self, n=None):
        if n is None:
            return Command(Op.DUP)
        return Command(Op.COPY, n)

    def add(self):             return Command(Op.ADD)
    def sub(self):             return Command(Op.SUB)
    def mul(self):             return Command(Op.MUL)
    def div(self):             return Command(Op.DIV)
    def mod(self):             return Command(Op.MOD)

    def store(self):           return Command(Op.STORE)
    def retrieve(self):        return Command(Op.RETRIEVE)

    def mark(self, label):     return Command(Op.MARK, label)
    def call(self, label):     return Command(Op.CALL, label)
    def jump(self, label):     return Command(Op.JUMP, label)
    def jump_if_zero(self, label):
        return Command(Op.JZ, label)
    def jump_if_negative(self, label):
        return Command(Op.JN, label)
    def ret(self):             return Command(Op.RETURN)
    def exit(self):            return Command(Op.EXIT)

    def print_char(self):      return Command(Op.PRINT_CHAR)
    def print_number(self):    return Command(Op.PRINT_NUM)
    def read_char(self):       return Command(Op.READ_CHAR)
    def read_number(self):     return Command(Op.READ_NUM)


# ── Parser ───────────────────────────────────────────────────────────────────

class Parser:
    """Pulls tokens and yields Commands; ``next()`` returns None at the end."""

    def __init__(self, source=None, factory: CommandFactory | None = None, tokenizer=None):
        if tokenizer is None:
            tokenizer = source if isinstance(source, Tokenizer) else Tokenizer(source)
        self.tokenizer = tokenizer
        f = factory or CommandFactory()
        self._simple = {
            Op.DUP: f.dup,           Op.SWAP: f.swap,       Op.DISCARD: f.discard,
            Op.ADD: f.add,           Op.SUB: f.sub,         Op.MUL: f.mul,
            Op.DIV: f.div,           Op.MOD: f.mod,
            Op.STORE: f.store,       Op.RETRIEVE: f.retrieve,
            Op.RETURN: f.ret,        Op.EXIT: f.exit,
            Op.PRINT_CHAR: f.print_char, Op.PRINT_NUM: f.print_number,
            Op.READ_CHAR: f.read_char,   Op.READ_NUM: f.read_number,
        }
        self._numeric = {Op.PUSH: f.push, Op.COPY: f.dup, Op.SLIDE: f.slide}
        self._labelled = {
            Op.MARK: f.mark, Op.CALL: f.call, Op.JUMP: f.jump,
            Op.JZ: f.jump_if_zero, Op.JN: f.jump_if_negative,
        }

    def __iter__(self):
        return self

    def __next__(self) -> Command:
        command = self.next()
        if command is None:
            raise StopIteration
        return command

    def next(self) -> Command | None:
        token = self.tokenizer.next()
        if token is None:
            return None
        op = token.type
        if not isinstance(op, Op):
            raise ParseError(f'Expected an instruction, got a {op.lower()}')

        if op in self._simple:
            return self._simple[op]()
        param = self.tokenizer.next()
        if op in self._numeric:
            if param is None or param.type != NUMBER:
                raise ParseError(f'{op.name} needs a number')
            return self._numeric[op](param.number)
        if param is None or param.type != LABEL:
            raise ParseError(f'{op.name} needs a label')
        return self._labelled[op](param.text)


# ── Machine state ────────────────────────────────────────────────────────────

class OperandStack:
    def __init__(self):
        self._items: list = []

    def __len__(self):
        return len(self._items)

    def __iter__(self):
        return iter(self._items)

    def _need(self, n):
        if len(self._items) < n:
            raise StackUnderflowError('Stack underflow')

    def push(self, value):
        self._items.append(value)

    def pop(self):
        self._need(1)
        return self._items.pop()

    def peek(self):
        self._need(1)
        return self._items[-1]

    def dup(self, n=0):
        """Copy the item ``n`` places below the top (0 = top) onto the top."""
        if n < 0:
            raise StackUnderflowError(f'Cannot copy item {n}')
        self._need(n + 1)
        self._items.append(self._items[-1 - n])

    def slide(self, n):
        """Drop ``n`` items from under the top, keeping the top."""
        if n < 0:
            raise StackUnderflowError(f'Cannot slide {n} items')
        self._need(n + 1)
        if n:
            del self._items[-1 - n:-1]

    def swap(self):
        self._need(2)
        self._items[-1], self._items[-2] = self._items[-2], self._items[-1]


class HeapMemory:
    # Unset addresses read as 0.
    def __init__(self):
        self._cells: dict = {}

    def __len__(self):
        return len(self._cells)

    def __contains__(self, address):
        return address in self._cells

    def store(self, address, value):
        self._cells[address] = value

    def retrieve(self, address):
        return self._cells.get(address, 0)


_DECIMAL = re.compile(r'[+-]?[0-9]+')


class IODevice:
    """Character input and output for a running program."""

    def __init__(self, input=None, output=None):
        self.input  = sys.stdin if input is None else input
        self.output = sys.stdout if output is None else output

    def _getc(self) -> str:
        try:
            return self.input.read(1)
        except (OSError, UnicodeError) as e:
            raise IODeviceError(f'Read failed: {e}') from e

    def _write(self, s: str):
        try:
            self.output.write(s)
        except (OSError, UnicodeError) as e:
            raise IODeviceError(f'Write failed: {e}') from e

    def read_char(self) -> int:
        """Code point of the next input character, or -1 at end of input."""
        ch = self._getc()
        return ord(ch) if ch else -1

    def read_number(self) -> int:
        """Read one decimal integer, skipping whitespace before it.

        The whitespace character that ends the number is consumed too.
        """
        ch = self._getc()
        while ch and ch.isspace():
            ch = self._getc()
        if not ch:
            raise NumberFormatError('No number left in input')
        text = []
        while ch and not ch.isspace():
            text.append(ch)
            ch = self._getc()
        text = ''.join(text)
        if not _DECIMAL.fullmatch(text):
            raise NumberFormatError(f'Not a number: {text!r}')
        return int(text)

    def print_char(self, c: int):
        try:
            ch = chr(c)
        except (ValueError, OverflowError) as e:
            raise IODeviceError(f'Not a character: {c}') from e
        self._write(ch)

    def print_number(self, n: int):
        self._write(str(n))

    def flush(self):
        try:
            self.output.flush()
        except (OSError, UnicodeError) as e:
            raise IODeviceError(f'Flush failed: {e}') from e


# ── Flow control ─────────────────────────────────────────────────────────────

LOADING = 'loading'
READY   = 'ready'
RUNNING = 'running'
HALTED  = 'halted'


class FlowControl:
    """Instruction sequence, label table, instruction pointer, call stack.

    Every command is added (and every label registered) before the first
    one runs, so jumps may point forwards as well as backwards.
    """

    def __init__(self):
        self.commands: list = []
        self.labels:   dict = {}
        self.call_stack: list = []
        self.ip = 0
        self.state = LOADING
        self._moved = False

    def add(self, command: Command):
        if self.state != LOADING:
            raise WhitespaceError('Program is already loaded')
        if command.op is Op.MARK:
            if command.param in self.labels:
                raise DuplicateLabelError(f'Label {command.param!r} defined twice')
            self.labels[command.param] = len(self.commands)
        self.commands.append(command)

    def finish(self):
        self.state = READY
        log.debug('loaded %d commands, %d labels', len(self.commands), len(self.labels))

    def start(self):
        if self.state == LOADING:
            raise WhitespaceError('Program is still loading')
        self.ip = 0
        self.call_stack.clear()
        self.state = RUNNING

    def next_command(self, execute) -> bool:
        """Run the command at the pointer; False once nothing is left."""
        if self.state != RUNNING:
            return False
        if self.ip >= len(self.commands):
            self.state = HALTED
            log.debug('halted at instruction %d', self.ip)
            return False
        self._moved = False
        execute(self.commands[self.ip])
        if not self._moved:
            self.ip += 1
        return True

    def _target(self, label):
        try:
            return self.labels[label]
        except KeyError:
            raise UndefinedLabelError(f'Undefined label {label!r}') from None

    def jump(self, label):
        self.ip = self._target(label)
        self._moved = True

    def call(self, label):
        target = self._target(label)
        self.call_stack.append(self.ip + 1)
        self.ip = target
        self._moved = True

    def ret(self):
        if not self.call_stack:
            raise StackUnderflowError('Return outside a subroutine')
        self.ip = self.call_stack.pop()
        self._moved = True

    def exit(self):
        self.ip = len(self.commands)
        self._moved = True


# ── Virtual machine ──────────────────────────────────────────────────────────

_ARITH = {
    Op.ADD: operator.add,
    Op.SUB: operator.sub,
    Op.MUL: operator.mul,
    Op.DIV: operator.floordiv,
    Op.MOD: operator.mod,
}


class VirtualMachine:
    def __init__(self, flow: FlowControl, device: IODevice | None = None):
        self.flow   = flow
        self.stack  = OperandStack()
        self.heap   = HeapMemory()
        self.device = device or IODevice()

    def run(self):
        self.flow.start()
        try:
            while self.flow.next_command(self.execute):
                pass
            self.device.flush()
        except ExecutionError as e:
            e.ip = self.flow.ip
            self.flow.state = HALTED
            log.debug('failed at instruction %d: %s', e.ip, e)
            # the first failure is the one reported
            try:
                self.device.flush()
            except IODeviceError as flush_error:
                log.debug('flush after failure: %s', flush_error)
            raise

    def execute(self, command: Command):
        op, arg = command
        s, flow = self.stack, self.flow

        if op is Op.PUSH:
            s.push(arg)
        elif op is Op.DUP:
            s.dup()
        elif op is Op.COPY:
            s.dup(arg)
        elif op is Op.SWAP:
            s.swap()
        elif op is Op.DISCARD:
            s.pop()
        elif op is Op.SLIDE:
            s.slide(arg)

        elif op in _ARITH:
            right = s.pop()
            left  = s.pop()
            if right == 0 and op in (Op.DIV, Op.MOD):
                raise DivisionByZeroError(f'{op.name} by zero')
            s.push(_ARITH[op](left, right))

        elif op is Op.STORE:
            value = s.pop()
            self.heap.store(s.pop(), value)
        elif op is Op.RETRIEVE:
            s.push(self.heap.retrieve(s.pop()))

        elif op is Op.MARK:
            pass
        elif op is Op.CALL:
            flow.call(arg)
        elif op is Op.JUMP:
            flow.jump(arg)
        elif op is Op.JZ:
            if s.pop() == 0:
                flow.jump(arg)
        elif op is Op.JN:
            if s.pop() < 0:
                flow.jump(arg)
        elif op is Op.RETURN:
            flow.ret()
        elif op is Op.EXIT:
            flow.exit()

        elif op is Op.PRINT_CHAR:
            self.device.print_char(s.pop())
        elif op is Op.PRINT_NUM:
            self.device.print_number(s.pop())
        elif op is Op.READ_CHAR:
            c = self.device.read_char()
            self.heap.store(s.pop(), c)
        elif op is Op.READ_NUM:
            n = self.device.read_number()
            self.heap.store(s.pop(), n)

        else:
            raise WhitespaceError(f'Bad instruction: {op}')


# ── Public ───────────────────────────────────────────────────────────────────

def load(source) -> FlowControl:
    """Parse a whole program into a FlowControl ready to run."""
    flow = FlowControl()
    for command in Parser(source):
        flow.add(command)
    flow.finish()
    return flow


def run(flow: FlowControl, device: IODevice | None = None):
    VirtualMachine(flow, device).run()


def interpret(source, stdin: str = '') -> str:
    out = io.StringIO()
    try:
        run(load(source), IODevice(io.StringIO(stdin), out))
    except WhitespaceError as e:
        out.write(f'\n Error: {e}')
    return out.getvalue()


# ── Tests ────────────────────────────────────────────────────────────────────

def run_tests():
    cases = [
        # Arithmetic — push, push, op, printn, exit
        ('SSSTL SSSTSL TSSS TLST LLL',      '', '3'),
        ('SSSTSTL SSSTSL TSST TLST LLL',    '', '3'),
        ('SSSTTL SSSTSL TSSL TLST LLL',     '', '6'),
        ('SSTTTTL SSSTSL TSTS TLST LLL',    '', '-4'),   # -7 div 2 floors
        ('SSTTTTL SSSTSL TSTT TLST LLL',    '', '1'),    # -7 mod 2 floors

        # Stack ops
        ('SSSTTL SLS TSSL TLST LLL',        '', '9'),    # 3 dup *
        ('SSSTL SSSTSL STSSTL TLST TLST TLST LLL', '', '121'),   # copy 1
        ('SSSTL SSSTSL SSSTTL STLSTSL TLST LLL',   '', '3'),     # slide 2
        ('SSSTSSTSSSL SSSTTSTSSTL SLT TLSS TLSS LLL', '', 'Hi'), # swap
        ('SSSTL SSSTSL SLL TLST LLL',       '', '1'),    # discard

        # Heap
        ('SSSTSTSL SSSTSSSSSTL TTS SSSTSTSL TTT TLSS LLL', '', 'A'),
        ('SSSTSTL TTT TLST LLL',            '', '0'),    # unset reads 0

        # Flow control: count 1..3
        ('SSSTL LSSSL SLS TLST SSSTL TSSS SLS SSSTSSL TSST LTSTL LSLSL LSSTL LLL',
         '', '123'),
        ('SSSTTTL LSTSL LLL LSSSL TLST LTL', '', '7'),     # call / return
        ('LSLTL SSSTL TLST LSSTL SSSTSL TLST', '', '2'),   # forward jump
        ('SSTTL LTTSL SSSTL TLST LLL LSSSL SSSTSL TLST', '', '2'),   # jn

        # Input
        ('SSSSL TLTT SSSSL TTT TLST LLL',   '42\n', '42'),
        ('SSSSL TLTS SSSSL TTT TLSS LLL',   'x',    'x'),
        ('SSSSL TLTS SSSSL TTT TLST LLL',   '',     '-1'),

        # Errors
        ('LTL',                             '', StackUnderflowError),
        ('SLS',                             '', StackUnderflowError),
        ('LSLTL',                           '', UndefinedLabelError),
        ('SSSTL SSSSL TSTS',                '', DivisionByZeroError),
        ('SSSTL SSSSL TSTT',                '', DivisionByZeroError),
        ('SSSSL TLTT',                      'abc', NumberFormatError),
        ('SSSSL TLTT',                      '', NumberFormatError),
        ('SSL',                             '', LexError),
        ('SSSL',                            '', LexError),
        ('STT',                             '', LexError),
        ('SS',                              '', LexError),
        ('LSSSL LSSSL',                     '', DuplicateLabelError),
    ]

    passed = 0
    failures = []

    for src, stdin, expected in cases:
        out = io.StringIO()
        try:
            run(load(stl(src)), IODevice(io.StringIO(stdin), out))
            got = out.getvalue()
        except WhitespaceError as e:
            got = type(e)
        if got == expected:
            passed += 1
        else:
            failures.append((src[:60], expected, got))

    print(f'Tests: {passed}/{len(cases)} passed')
    for src, exp, got in failures:
        print(f'  FAIL: {src}')
        print(f'    exp: {exp!r}')
        print(f'    got: {got!r}')
    return passed, len(cases)


# ── Command line ─────────────────────────────────────────────────────────────

def main(argv=None) -> int:
    ap = argparse.ArgumentParser(prog='whitespace', description='Run a Whitespace program.')
    ap.add_argument('program', nargs='?',
                    help="source file, or '-' to read it from standard input")
    ap.add_argument('--pseudo', action='store_true',
                    help='print a pseudo-code listing instead of running')
    ap.add_argument('--encoding', default='utf-8', help='source file encoding')
    ap.add_argument('--test', action='store_true', help='run the built-in test table')
    ap.add_argument('-v', '--verbose', action='store_true', help='log load and run events')
    args = ap.parse_args(argv)

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING,
                        format='%(name)s: %(message)s')

    if args.test:
        p, t = run_tests()
        return 0 if p == t else 1
    if not args.program:
        ap.error('a program file is required')

    try:
        if args.program == '-':
            source = sys.stdin.read()
        else:
            # newline='' keeps a lone CR from turning into LF
            # undecodable bytes can only be comments
            with open(args.program, encoding=args.encoding, errors='replace',
                      newline='') as f:
                source = f.read()
    except (OSError, UnicodeError) as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1

    try:
        if args.pseudo:
            from pseudocode import translate
            translate(source, sys.stdout)
        else:
            run(load(source), IODevice(sys.stdin, sys.stdout))
    except WhitespaceError as e:
        print(f'Error: {e}', file=sys.stderr)
        return 1
    return 0


if __name__ == '__main__':
    sys.exit(main())
