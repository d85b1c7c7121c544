"""Recursive-descent parsing of expressions, particle lists and small terminals."""

from __future__ import annotations

from collections.abc import Iterable

from adlconv.syntax import (
    AstType,
    Node,
    ParsingError,
    Token,
    TokenStream,
    TokenType,
    is_numerical,
    make_terminal,
)

T = TokenType

_PRECEDENCE = {
    T.RAISED_TO_POWER: 9,
    T.MULTIPLY: 8,
    T.DIVIDE: 8,
    T.PLUS: 7,
    T.MINUS: 7,
    T.WITHIN: 4,
    T.OUTSIDE: 4,
    T.MAXIMIZE: 3,
    T.MINIMIZE: 3,
    T.LT: 2,
    T.GT: 2,
    T.LE: 2,
    T.GE: 2,
    T.EQ: 2,
    T.NE: 2,
    T.AND: 1,
    T.OR: 1,
}

_EXPRESSION_FUNCTIONS = frozenset({
    T.HSTEP, T.DELTA, T.ANYOF, T.ALLOF, T.SQRT, T.ABS, T.COS, T.SIN, T.TAN,
    T.SINH, T.COSH, T.TANH, T.EXP, T.LOG, T.AVE, T.SUM,
})

_PARTICLE_FUNCTIONS = frozenset({
    T.LETTER_E, T.LETTER_P, T.LETTER_M, T.LETTER_Q,
    T.FLAVOR, T.CONSTITUENTS, T.PDG_ID, T.IDX, T.IS_TAUTAG, T.IS_CTAG, T.IS_BTAG,
    T.DXY, T.EDXY, T.EDZ, T.DZ, T.VERTR, T.VERZ, T.VERY, T.VERX, T.VERT,
    T.GENPART_IDX, T.PHI, T.RAPIDITY, T.ETA, T.ABS_ETA, T.THETA,
    T.PTCONE, T.ETCONE, T.ABS_ISO, T.MINI_ISO, T.IS_TIGHT, T.IS_MEDIUM, T.IS_LOOSE,
    T.PT, T.PZ, T.NBF, T.DR, T.DPHI, T.DETA, T.NUMOF, T.HT, T.FMT2, T.FMTAUTAU,
    T.APLANARITY, T.SPHERICITY,
})

_EVENT_QUANTITIES = frozenset({
    T.MET, T.METSIGNIF, T.ALL, T.NONE, T.TRGM, T.TRGE, T.EVENT_NO, T.RUN_NO,
    T.LB_NO, T.MC_CHANNEL_NUMBER, T.HF_CLASSIFICATION, T.RUNYEAR,
})

# Follow set of a variable list; none of these can start an expression.
_VARIABLE_LIST_END = frozenset({
    T.CLOSE_CURLY_BRACE, T.CLOSE_PAREN, T.COLON, T.OBJ, T.SELECT, T.PRINT, T.HISTO,
    T.REJEC, T.BINS, T.BIN, T.SAVE, T.WEIGHT, T.COUNTS, T.SORT, T.ADLINFO,
    T.COUNTSFORMAT, T.DEF, T.TABLE, T.ALGO, T.COMMA, T.USE,
})

_PARTICLE_STARTS = frozenset({
    T.GEN, T.ELECTRON, T.MUON, T.TAU, T.TRACK, T.LEPTON, T.PHOTON, T.JET, T.BJET,
    T.FJET, T.QGJET, T.NUMET, T.METLV, T.STRING, T.VARNAME, T.MINUS,
})

_CONSTITUENT_PARTICLES = frozenset({T.GEN, T.JET, T.FJET})

_INDEXED_PARTICLES = frozenset({
    T.GEN, T.JET, T.FJET, T.ELECTRON, T.MUON, T.TAU, T.TRACK, T.LEPTON, T.PHOTON,
    T.BJET, T.QGJET, T.NUMET, T.METLV,
})


def get_precedence(token: Token) -> int:
    """Binding strength of a binary operator token; -1 for anything else."""
    return _PRECEDENCE.get(token.kind, -1)


class ExpressionParser:
    """Parses expressions and the small productions shared by all blocks."""

    def __init__(self, tokens: TokenStream | Iterable[Token]) -> None:
        self.tokens = tokens if isinstance(tokens, TokenStream) else TokenStream(tokens)

    # -- expressions -------------------------------------------------------

    def parse_expression(self, parent: Node | None) -> Node:
        """EXPRESSION, resolved by precedence climbing."""
        expression = Node(AstType.EXPRESSION, parent)
        expression.add_child(
            self.precedence_climber(expression, self.parse_expression_helper(expression), 0)
        )
        return expression

    def parse_condition(self, parent: Node | None) -> Node:
        """CONDITION -> EXPRESSION."""
        condition = Node(AstType.CONDITION, parent)
        condition.add_child(
            self.precedence_climber(condition, self.parse_expression_helper(condition), 0)
        )
        return condition

    def precedence_climber(self, parent: Node | None, lhs: Node, min_precedence: int) -> Node:
        """Fold binary operators of at least *min_precedence* onto *lhs*."""
        lookahead = self.tokens.peek(0)
        while get_precedence(lookahead) >= min_precedence:
            op = self.tokens.next()
            op_node = make_terminal(parent, op)
            rhs = self.parse_expression_helper(op_node)
            lookahead = self.tokens.peek(0)
            while get_precedence(lookahead) > get_precedence(op):
                rhs = self.precedence_climber(op_node, rhs, get_precedence(op) + 1)
                lookahead = self.tokens.peek(0)
            op_node.add_child(lhs)
            op_node.add_child(rhs)
            lhs = op_node
        return lhs

    def parse_expression_helper(self, parent: Node | None) -> Node:
        """Parse one operand: literal, name, call, group, interval or unary form."""
        stream = self.tokens
        tok = stream.next()
        node = make_terminal(parent, tok)
        kind = tok.kind

        if kind is T.MINUS:
            negate = Node(AstType.NEGATE, parent)
            negate.add_child(self.parse_expression_helper(negate))
            return negate

        if kind is T.NOT:
            node.add_child(self.parse_expression_helper(node))
            return node

        if kind is T.OPEN_PAREN:
            lhs = self.parse_expression_helper(parent)
            subexpression = self.precedence_climber(parent, lhs, 0)
            stream.expect_and_consume(T.CLOSE_PAREN)
            return subexpression

        if kind is T.OPEN_CURLY_BRACE:
            terminal = Node(AstType.TERMINAL, parent)
            particle_list = Node(AstType.PARTICLE_LIST, terminal)
            self.parse_particle_list(particle_list)
            terminal.add_child(particle_list)
            stream.expect_and_consume(T.CLOSE_CURLY_BRACE)
            terminal.token = stream.next()
            return terminal

        if kind is T.OPEN_SQUARE_BRACE:
            interval = Node(AstType.INTERVAL, parent)
            interval.add_child(self.parse_expression_helper(interval))
            if stream.peek(0).kind is T.COMMA:
                stream.expect_and_consume(T.COMMA)
            interval.add_child(self.parse_expression_helper(interval))
            stream.expect_and_consume(T.CLOSE_SQUARE_BRACE)
            return interval

        if kind in _EXPRESSION_FUNCTIONS:
            stream.expect_and_consume(T.OPEN_PAREN)
            lhs = self.parse_expression_helper(node)
            node.add_child(self.precedence_climber(parent, lhs, 0))
            stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if kind in _PARTICLE_FUNCTIONS:
            stream.expect_and_consume(T.OPEN_PAREN)
            particle_list = Node(AstType.PARTICLE_LIST, node)
            self.parse_particle_list(particle_list)
            node.add_child(particle_list)
            stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if kind is T.FHEMISPHERE:
            stream.expect_and_consume(T.OPEN_PAREN)
            node.add_child(self.parse_id(node))
            stream.expect_and_consume(T.COMMA)
            first = stream.next()
            if first.kind is not T.INTEGER:
                raise ParsingError("FHemisphere requires integer argument in position 2", first)
            node.add_child(make_terminal(node, first))
            stream.expect_and_consume(T.COMMA)
            second = stream.next()
            if second.kind is not T.INTEGER:
                raise ParsingError("FHemisphere requires integer argument in position 3", second)
            node.add_child(make_terminal(node, second))
            stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if kind in (T.FMEGAJETS, T.FMR):
            stream.expect_and_consume(T.OPEN_PAREN)
            node.add_child(self.parse_id(node))
            stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if kind is T.FMTR:
            stream.expect_and_consume(T.OPEN_PAREN)
            node.add_child(self.parse_id(node))
            stream.expect_and_consume(T.COMMA)
            if stream.peek(0).kind is T.MET:
                node.add_child(make_terminal(node, stream.next()))
            else:
                node.add_child(self.parse_id(node))
            stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if kind is T.TTBAR_NNLOREC:
            stream.expect_and_consume(T.OPEN_PAREN)
            for position in range(1, 5):
                argument = stream.next()
                if not is_numerical(argument.kind):
                    raise ParsingError(
                        f"Only numerical arguments are allowed in position {position} of NNLO rec",
                        argument,
                    )
            stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if kind in _EVENT_QUANTITIES:
            return node

        if kind in (T.STRING, T.VARNAME):
            if stream.peek(1).kind is T.OPEN_PAREN:
                func = Node(AstType.USER_FUNCTION, parent)
                node.parent = func
                stream.expect_and_consume(T.OPEN_PAREN)
                lhs = self.parse_expression_helper(node)
                node.add_child(self.precedence_climber(node, lhs, 0))
                stream.expect_and_consume(T.CLOSE_PAREN)
                return func
            return node

        if kind in (T.MIN, T.MAX):
            stream.expect_and_consume(T.OPEN_PAREN)
            self.parse_variable_list(node)
            stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if not is_numerical(kind):
            raise ParsingError("Invalid token used in expression", tok)
        return self.precedence_climber(parent, node, 0)

    # -- lists -------------------------------------------------------------

    def parse_variable_list(self, parent: Node) -> None:
        """Append expressions, optionally comma separated, until the follow set."""
        stream = self.tokens
        while stream.peek(0).kind not in _VARIABLE_LIST_END:
            parent.add_child(self.parse_expression(parent))
            if stream.peek(0).kind is T.COMMA:
                stream.expect_and_consume(T.COMMA)

    def parse_particle_list(self, parent: Node) -> None:
        """Append particles joined by '+', ',' or juxtaposition."""
        stream = self.tokens
        while True:
            parent.add_child(self.parse_particle(parent))
            kind = stream.peek(0).kind
            if kind in (T.PLUS, T.COMMA):
                stream.expect_and_consume(kind)
            elif kind not in _PARTICLE_STARTS:
                return

    def parse_particle(self, parent: Node | None) -> Node:
        """PARTICLE: a typed or named particle with optional index, or its negation."""
        stream = self.tokens
        tok = stream.peek(0)
        kind = tok.kind

        if kind in _CONSTITUENT_PARTICLES and stream.peek(1).kind is T.CONSTITUENTS:
            particle = make_terminal(parent, stream.next())
            constituents = make_terminal(parent, stream.next())
            constituents.add_child(particle)
            return constituents

        if kind in _INDEXED_PARTICLES:
            particle = make_terminal(parent, stream.next())
            particle.add_child(self.parse_index(particle))
            return particle

        if kind is T.MINUS:
            minus = make_terminal(parent, stream.next())
            minus.add_child(self.parse_particle(minus))
            return minus

        particle = self.parse_id(parent)
        particle.add_child(self.parse_index(particle))
        return particle

    def parse_index(self, parent: Node | None) -> Node:
        """INDEX: '_n', '[n]', '[n:m]', '_n:m', or an epsilon node."""
        stream = self.tokens
        tok = stream.peek(0)
        if tok.kind not in (T.UNDERSCORE, T.OPEN_SQUARE_BRACE):
            return Node(AstType.AST_EPSILON, parent)

        stream.next()
        index = Node(AstType.INDEX, parent)
        first = stream.next()
        if first.kind is not T.INTEGER:
            raise ParsingError("Only integers are allowed to be used as indices", first)
        index.add_child(make_terminal(index, first))

        if stream.peek(0).kind is T.COLON:
            stream.expect_and_consume(T.COLON)
            index.add_child(make_terminal(index, stream.next()))

        if tok.kind is T.OPEN_SQUARE_BRACE:
            stream.expect_and_consume(T.CLOSE_SQUARE_BRACE)
        return index

    # -- terminals ---------------------------------------------------------

    def parse_id(self, parent: Node | None) -> Node:
        """ID -> string | varname."""
        tok = self.tokens.next()
        if tok.kind is T.INTEGER:
            raise ParsingError("Invalid ID, integers for ID must be put in quotes.", tok)
        if tok.kind not in (T.STRING, T.VARNAME):
            raise ParsingError(
                "Invalid ID, allowed types are variable-type names and strings", tok
            )
        return make_terminal(parent, tok)

    def parse_description(self, parent: Node) -> Node:
        """DESCRIPTION: one or more strings; all but the last go straight to *parent*."""
        stream = self.tokens
        while True:
            tok = stream.next()
            description = Node(AstType.TERMINAL, parent, tok)
            if tok.kind is not T.STRING:
                raise ParsingError("Excepted string for description", tok)
            if stream.peek(0).kind is not T.STRING:
                return description
            parent.add_child(description)

    def parse_bool(self, parent: Node | None) -> Node:
        """BOOL -> true | false."""
        tok = self.tokens.next()
        if tok.kind not in (T.TRUE, T.FALSE):
            raise ParsingError(
                "Excepted boolean, but token is not interpretable as a boolean", tok
            )
        return make_terminal(parent, tok)