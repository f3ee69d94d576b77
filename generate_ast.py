import argparse
import logging
import os
import sys

import yaml

from define_ast import GrammarError, generate

logger = logging.getLogger(__name__)

GRAMMARS = {
    'Expr': [
        'Assign   : Token name, Expr value',
        'Binary   : Expr left, Token operator, Expr right',
        'Call     : Expr callee, Token paren, list[Expr] arguments',
        'Get      : Expr object_, Token name',
        'Grouping : Expr expression',
        'Literal  : object value',
        'Logical  : Expr left, Token operator, Expr right',
        'Set      : Expr object_, Token name, Expr value',
        'Super    : Token keyword, Token method',
        'This     : Token keyword',
        'Unary    : Token operator, Expr right',
        'Variable : Token name',
    ],
    'Stmt': [
        'Block      : list[Stmt] statements',
        'Expression : Expr expression',
        'Function   : Optional[Token] name, list[Token] params, list[Stmt] body',
        'If         : Expr condition, Stmt then_branch, Optional[Stmt] else_branch',
        'Print      : Expr expression',
        'Return     : Token keyword, Optional[Expr] value',
        'Var        : Token name, Optional[Expr] initializer',
        'While      : Expr condition, Stmt body',
        'Break      : Token keyword',
        'Continue   : Token keyword',
    ],
}


class GrammarFileError(Exception):
    def __init__(self, path, msg):
        self.path = path
        super().__init__(f'{path}: {msg}')


def load_grammars(path):
    """Read base names and their grammar lines from a YAML file.

    Each base name maps either to a list of grammar lines:

        Expr:
          - "Binary : Expr left, Token operator, Expr right"

    or to a mapping from type name to its field list:

        Expr:
          Binary: Expr left, Token operator, Expr right

    Order is kept as written in the file.
    """
    with open(path, encoding='utf8') as fp:
        try:
            data = yaml.safe_load(fp)
        except yaml.YAMLError as e:
            raise GrammarFileError(path, f'invalid YAML: {e}')
        except UnicodeDecodeError as e:
            raise GrammarFileError(path, f'invalid UTF-8 at byte {e.start}.')

    if not isinstance(data, dict) or not data:
        raise GrammarFileError(path, 'expect a mapping of base names to grammar lines.')

    grammars = {}
    targets = {}
    for base_name, types in data.items():
        if isinstance(types, dict):
            for name, fields in types.items():
                if fields is not None and not isinstance(fields, str):
                    raise GrammarFileError(path,
                        f'expect the fields of "{name}" as one comma-separated string.')
            types = [f'{name} : {fields or ""}' for name, fields in types.items()]
        if (not isinstance(base_name, str)
         or not isinstance(types, list)
         or not all(isinstance(t, str) for t in types)):
            raise GrammarFileError(path,
                f'expect "{base_name}" to hold a list of quoted grammar lines.')

        # each base is written to <base.lower()>.py
        other = targets.setdefault(base_name.lower(), base_name)
        if other != base_name:
            raise GrammarFileError(path,
                f'"{other}" and "{base_name}" would both be written to {base_name.lower()}.py.')
        grammars[base_name] = types
    return grammars


class GenerateAst:
    had_error = False

    @staticmethod
    def error(msg):
        print(f'generate_ast: {msg}', file=sys.stderr)
        GenerateAst.had_error = True

    @staticmethod
    def run(out_dir, grammars):
        # generate everything first so a bad grammar leaves no files behind
        try:
            files = [generate(out_dir, name, lines) for name, lines in grammars.items()]
        except GrammarError as e:
            GenerateAst.error(e)
            return

        for f in files:
            try:
                with open(f.path, 'w', encoding='utf8') as fp:
                    fp.write(f.source)
            except OSError as e:
                GenerateAst.error(f'cannot write {f.path}: {e.strerror}.')
                return
            logger.info('wrote %s', f.path)

    @staticmethod
    def main(argv=None):
        parser = argparse.ArgumentParser(
            prog='generate_ast',
            description='Generate visitor-pattern AST classes from a grammar.'
        )
        parser.add_argument('output_dir', help='directory to write <base>.py files into')
        parser.add_argument('-g', '--grammar', metavar='FILE',
            help='YAML file mapping base names to grammar lines (default: the Lox grammar)')
        parser.add_argument('-b', '--base', action='append', metavar='NAME',
            help='only generate this base type; may be repeated')
        parser.add_argument('-v', '--verbose', action='store_true')
        args = parser.parse_args(argv)

        logging.basicConfig(
            level=logging.DEBUG if args.verbose else logging.INFO,
            format='%(levelname)s: %(message)s'
        )
        GenerateAst.had_error = False

        if not os.path.isdir(args.output_dir):
            GenerateAst.error(f'no such directory "{args.output_dir}".')
            return 1

        grammars = GRAMMARS
        if args.grammar is not None:
            try:
                grammars = load_grammars(args.grammar)
            except GrammarFileError as e:
                GenerateAst.error(e)
                return 1
            except OSError as e:
                GenerateAst.error(f'cannot read {args.grammar}: {e.strerror}.')
                return 1

        if args.base:
            for name in args.base:
                if name not in grammars:
                    GenerateAst.error(f'unknown base type "{name}".')
                    return 1
            grammars = {name: grammars[name] for name in args.base}

        GenerateAst.run(args.output_dir, grammars)
        return 1 if GenerateAst.had_error else 0


def main():
    return GenerateAst.main()

if __name__ == '__main__':
    sys.exit(main())
