# adlconv

`adlconv` works with analyses written in ADL, the Analysis Description
Language used in high energy physics. It has two independent halves:

* **Parsing.** `adlconv.parser.Parser` takes a sequence of tokens and builds
  a syntax tree of `adlconv.syntax.Node` objects. It covers info blocks,
  count formats, definitions, tables, objects, regions and histogram lists.
  Expressions, conditions, particle lists and indices are parsed by
  `adlconv.expressions.ExpressionParser`, which `Parser` extends; binary
  operators are resolved by precedence climbing.
* **Code generation.** `adlconv.timber.TimberConverter` takes a sequence of
  `adlconv.commands.AnalysisCommand` objects and produces the matching
  Python script for the TIMBER analysis framework.

A syntax error raises `adlconv.syntax.ParsingError`, which carries the
offending token. An instruction that has no TIMBER form raises
`adlconv.commands.ConversionError`.

The package has no dependencies beyond the standard library.

## Installation

```
pip install .
```

To install the test dependencies as well, use `pip install .[test]`.

## Parsing

Tokens are `adlconv.syntax.Token` values: a `adlconv.syntax.TokenType` kind,
a lexeme, and an optional line and column. `Parser` accepts a list of them
(or a `adlconv.syntax.TokenStream`); reading past the end yields
`TokenType.END` tokens.

```python
from adlconv.parser import Parser
from adlconv.syntax import Token, TokenType

tokens = [
    Token(TokenType.DEF, "def"),
    Token(TokenType.VARNAME, "x"),
    Token(TokenType.ASSIGN, "="),
    Token(TokenType.INTEGER, "3"),
    Token(TokenType.PLUS, "+"),
    Token(TokenType.INTEGER, "4"),
]

parser = Parser(tokens)
root = parser.parse()    # an AstType.INPUT node; also kept as parser.root
print(parser.to_dot())   # Graphviz description of the tree
```

Each `Node` has an `ast_type` (`adlconv.syntax.AstType`), a `parent`, a
`children` list and, for terminals, the `token` it stands for.
`Parser.parse` rewinds the token stream and builds a fresh tree each time.

## Generating a TIMBER script

```python
import sys

from adlconv.commands import AnalysisCommand, Instruction
from adlconv.timber import TimberConverter

commands = [
    AnalysisCommand(Instruction.CREATE_REGION, ["preselection"]),
]

converter = TimberConverter(commands)
converter.write(sys.stdout)    # the full script, with header and footer
text = converter.render()      # the same script as a string
```

`TimberConverter.lines` yields the pieces of the script one at a time: the
import header, the `MET` definition, the text of every command that produces
any, and the closing lines. Each call starts from an empty set of name
mappings.

`TimberConverter.convert_command` converts a single command and keeps the
name mappings it builds in `converter.mappings`. It returns the generated
text, which is empty for commands that only record an expression for later
use.

`AnalysisCommand.argument(index)` returns one argument and raises
`IndexError` when the command has fewer arguments than an instruction needs.

## What it does not do

* There is no lexer: source text must already be split into `Token` values.
* The syntax tree is not turned into `AnalysisCommand` objects; the two
  halves are used separately.
* There is no command-line tool.
* Many particle-property functions (for example `FUNC_DR`, `FUNC_DPHI`,
  `FUNC_IS_TIGHT`) have no TIMBER form and raise `ConversionError`.