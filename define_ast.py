import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)


class GrammarError(Exception):
    pass

class MalformedGrammarLine(GrammarError):
    def __init__(self, line):
        self.line = line
        super().__init__(f'expect ":" after type name in "{line}".')

class EmptyTypeName(GrammarError):
    def __init__(self, line):
        self.line = line
        super().__init__(f'expect type name before ":" in "{line}".')

class MalformedFieldSpec(GrammarError):
    def __init__(self, line, token):
        self.line = line
        self.token = token
        super().__init__(f'expect "<type> <name>" but got "{token}" in "{line}".')

class EmptyGrammar(GrammarError):
    def __init__(self, base_name):
        self.base_name = base_name
        super().__init__(f'no types to generate for "{base_name}".')


@dataclass(frozen=True)
class FieldSpec:
    type_name: str
    field_name: str

@dataclass(frozen=True)
class TypeDescriptor:
    name: str
    fields: tuple[FieldSpec, ...] = ()

@dataclass(frozen=True)
class GeneratedFile:
    """A generated module and where it belongs; writing it is up to the caller."""
    path: str
    source: str


def parse_field(line, token):
    # exactly one space between type and name, nothing else
    parts = token.split(' ')
    if len(parts) != 2 or not all(parts):
        raise MalformedFieldSpec(line, token)
    return FieldSpec(*parts)

def parse_line(line):
    name, sep, fields = line.partition(':')
    if not sep:
        raise MalformedGrammarLine(line)

    name = name.strip()
    if not name:
        raise EmptyTypeName(line)

    fields = fields.strip()
    if not fields:
        return TypeDescriptor(name)

    return TypeDescriptor(name, tuple(parse_field(line, f) for f in fields.split(', ')))


def visitor_method_name(type_name, base_name):
    return f'visit{type_name}{base_name}'

def define_base(base_name):
    return (
f'''class {base_name}(ABC):
    @abstractmethod
    def accept(self, visitor: Visitor[R]) -> R:
        pass
'''
    )

def define_visitor(base_name, types):
    param = base_name.lower()
    methods = [
f'''
    @abstractmethod
    def {visitor_method_name(t.name, base_name)}(self, {param}: {t.name}) -> R:
        pass
'''
        for t in types
    ]
    return 'class Visitor(ABC, Generic[R]):' + ''.join(methods)

def define_type(base_name, t):
    lines = ['@dataclass(frozen=True)', f'class {t.name}({base_name}):']
    lines.extend(f'    {f.field_name}: {f.type_name}' for f in t.fields)
    if t.fields:
        lines.append('')
    lines.append(
f'''    def accept(self, visitor: Visitor[R]) -> R:
        return visitor.{visitor_method_name(t.name, base_name)}(self)
'''
    )
    return '\n'.join(lines)

def define_ast(base_name, types):
    """Emit the module text for `base_name` and its subtypes, in the order given.

    Every concrete `accept` and its matching `Visitor` method are named by
    `visitor_method_name`, so the two sides cannot drift apart.
    """
    types = list(types)
    if not types:
        raise EmptyGrammar(base_name)

    blocks = [
'''from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Generic, TypeVar

R = TypeVar('R')
''',
        define_base(base_name),
        define_visitor(base_name, types),
    ]
    blocks.extend(define_type(base_name, t) for t in types)

    logger.debug('emitted %s with %d types', base_name, len(types))
    return '\n\n'.join(blocks)


def generate(out_dir, base_name, lines):
    types = []
    for line in lines:
        t = parse_line(line)
        logger.debug('parsed %s with %d fields', t.name, len(t.fields))
        types.append(t)

    return GeneratedFile(
        os.path.join(out_dir, f'{base_name.lower()}.py'),
        define_ast(base_name, types)
    )
