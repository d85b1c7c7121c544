"""Tokens, syntax-tree nodes and the token stream the parser reads from."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto


class TokenType(Enum):
    """Kinds of token produced for analysis description source."""

    END = auto()

    # block keywords
    ADLINFO = auto()
    COUNTSFORMAT = auto()
    DEF = auto()
    TABLE = auto()
    OBJ = auto()
    ALGO = auto()
    HISTOLIST = auto()

    # literals and names
    INTEGER = auto()
    DECIMAL = auto()
    SCIENTIFIC = auto()
    STRING = auto()
    VARNAME = auto()
    TRUE = auto()
    FALSE = auto()

    # punctuation
    ASSIGN = auto()
    COLON = auto()
    COMMA = auto()
    QUESTION = auto()
    UNDERSCORE = auto()
    OPEN_PAREN = auto()
    CLOSE_PAREN = auto()
    OPEN_CURLY_BRACE = auto()
    CLOSE_CURLY_BRACE = auto()
    OPEN_SQUARE_BRACE = auto()
    CLOSE_SQUARE_BRACE = auto()

    # operators
    PLUS = auto()
    MINUS = auto()
    PM = auto()
    MULTIPLY = auto()
    DIVIDE = auto()
    RAISED_TO_POWER = auto()
    LT = auto()
    GT = auto()
    LE = auto()
    GE = auto()
    EQ = auto()
    NE = auto()
    AND = auto()
    OR = auto()
    NOT = auto()
    WITHIN = auto()
    OUTSIDE = auto()
    MAXIMIZE = auto()
    MINIMIZE = auto()

    # table keywords
    TABLETYPE = auto()
    NVARS = auto()
    ERRORS = auto()

    # info block keywords
    SKIP_HISTO = auto()
    SKIP_EFFS = auto()
    PAP_TITLE = auto()
    PAP_EXPERIMENT = auto()
    PAP_ID = auto()
    PAP_PUBLICATION = auto()
    PAP_SQRTS = auto()
    PAP_LUMI = auto()
    PAP_ARXIV = auto()
    PAP_DOI = auto()
    PAP_HEPDATA = auto()
    SYSTEMATIC = auto()
    TRGE = auto()
    TRGM = auto()

    # systematics types
    SYST_WEIGHT_MC = auto()
    SYST_WEIGHT_JVT = auto()
    SYST_WEIGHT_PILEUP = auto()
    SYST_WEIGHT_LEPTON_SF = auto()
    SYST_WEIGHT_BTAG_SF = auto()
    SYST_TTREE = auto()

    # counts
    PROCESS = auto()
    ERR_SYST = auto()
    ERR_STAT = auto()

    # definition and object keywords
    TAKE = auto()
    OME = auto()
    CONSTITUENTS = auto()
    EXTERNAL = auto()
    ADD = auto()
    PARTICLE_KEYWORD = auto()
    UNION = auto()
    COMB = auto()
    ALIAS = auto()

    # particles
    GEN = auto()
    ELECTRON = auto()
    MUON = auto()
    TAU = auto()
    TRACK = auto()
    LEPTON = auto()
    PHOTON = auto()
    JET = auto()
    BJET = auto()
    FJET = auto()
    QGJET = auto()
    NUMET = auto()
    METLV = auto()

    # region commands
    SELECT = auto()
    REJEC = auto()
    BINS = auto()
    BIN = auto()
    SAVE = auto()
    CSV = auto()
    PRINT = auto()
    WEIGHT = auto()
    COUNTS = auto()
    HISTO = auto()
    SORT = auto()
    ASCEND = auto()
    DESCEND = auto()
    USE = auto()

    # actions
    NONE = auto()
    ALL = auto()
    LEP_SF = auto()
    BTAGS_SF = auto()
    XSLUMICORR_SF = auto()
    HLT = auto()
    APPLY_HM = auto()
    APPLY_PTF = auto()

    # functions taking an expression
    HSTEP = auto()
    DELTA = auto()
    ANYOF = auto()
    ALLOF = auto()
    SQRT = auto()
    ABS = auto()
    COS = auto()
    SIN = auto()
    TAN = auto()
    SINH = auto()
    COSH = auto()
    TANH = auto()
    EXP = auto()
    LOG = auto()
    AVE = auto()
    SUM = auto()
    MIN = auto()
    MAX = auto()

    # functions taking a particle list
    LETTER_E = auto()
    LETTER_P = auto()
    LETTER_M = auto()
    LETTER_Q = auto()
    FLAVOR = auto()
    PDG_ID = auto()
    IDX = auto()
    IS_TAUTAG = auto()
    IS_CTAG = auto()
    IS_BTAG = auto()
    DXY = auto()
    EDXY = auto()
    EDZ = auto()
    DZ = auto()
    VERTR = auto()
    VERZ = auto()
    VERY = auto()
    VERX = auto()
    VERT = auto()
    GENPART_IDX = auto()
    PHI = auto()
    RAPIDITY = auto()
    ETA = auto()
    ABS_ETA = auto()
    THETA = auto()
    PTCONE = auto()
    ETCONE = auto()
    ABS_ISO = auto()
    MINI_ISO = auto()
    IS_TIGHT = auto()
    IS_MEDIUM = auto()
    IS_LOOSE = auto()
    PT = auto()
    PZ = auto()
    NBF = auto()
    DR = auto()
    DPHI = auto()
    DETA = auto()
    NUMOF = auto()
    HT = auto()
    FMT2 = auto()
    FMTAUTAU = auto()
    APLANARITY = auto()
    SPHERICITY = auto()

    # special functions
    FHEMISPHERE = auto()
    FMEGAJETS = auto()
    FMR = auto()
    FMTR = auto()
    TTBAR_NNLOREC = auto()

    # event quantities
    MET = auto()
    METSIGNIF = auto()
    EVENT_NO = auto()
    RUN_NO = auto()
    LB_NO = auto()
    MC_CHANNEL_NUMBER = auto()
    HF_CLASSIFICATION = auto()
    RUNYEAR = auto()


class AstType(Enum):
    """Kinds of node in the syntax tree."""

    INPUT = auto()
    INFO = auto()
    COUNT_FORMAT = auto()
    DEFINITION = auto()
    TABLE_DEF = auto()
    OBJECT = auto()
    REGION = auto()
    HISTO_LIST = auto()
    TERMINAL = auto()
    AST_ERROR = auto()
    AST_EPSILON = auto()
    COUNT_PROCESS = auto()
    HISTOLIST_HISTOGRAM = auto()
    VARIABLE_LIST = auto()
    PARTICLE_LIST = auto()
    CONDITION = auto()
    REGION_SELECT = auto()
    REGION_REJECT = auto()
    REGION_USE = auto()
    WEIGHT_CMD = auto()
    BIN_CMD = auto()
    BINS_CMD = auto()
    HISTO_USE = auto()
    HISTOGRAM = auto()
    IF = auto()
    COUNT = auto()
    INDEX = auto()
    HAMHUM = auto()
    OBJECT_SELECT = auto()
    OBJECT_REJECT = auto()
    NEGATE = auto()
    INTERVAL = auto()
    USER_FUNCTION = auto()
    EXPRESSION = auto()


_NUMERICAL = frozenset({TokenType.INTEGER, TokenType.DECIMAL, TokenType.SCIENTIFIC})


def is_numerical(kind: TokenType) -> bool:
    """Return True for integer, decimal and scientific literals."""
    return kind in _NUMERICAL


@dataclass(frozen=True)
class Token:
    """A lexed token with its text and source position."""

    kind: TokenType
    lexeme: str = ""
    line: int = 0
    column: int = 0


class ParsingError(Exception):
    """Raised when the token stream does not match the grammar."""

    def __init__(self, message: str, token: Token | None = None) -> None:
        self.message = message
        self.token = token
        if token is None:
            text = message
        else:
            text = (
                f"{message} (line {token.line}, column {token.column}, "
                f"got {token.kind.name} {token.lexeme!r})"
            )
        super().__init__(text)


@dataclass(eq=False)
class Node:
    """A syntax-tree node; terminals carry the token they stand for."""

    ast_type: AstType
    parent: Node | None = field(default=None, repr=False)
    token: Token | None = None
    children: list[Node] = field(default_factory=list)

    @property
    def has_token(self) -> bool:
        return self.token is not None

    def add_child(self, child: Node) -> None:
        """Append a child node, keeping insertion order."""
        self.children.append(child)


def make_terminal(parent: Node | None, token: Token) -> Node:
    """Create a terminal node holding *token* under *parent*."""
    return Node(AstType.TERMINAL, parent, token)


class TokenStream:
    """A rewindable sequence of tokens with lookahead."""

    def __init__(self, tokens: Iterable[Token]) -> None:
        self._tokens = list(tokens)
        self._position = 0
        last = self._tokens[-1] if self._tokens else None
        self._end = Token(
            TokenType.END,
            "",
            last.line if last else 0,
            last.column if last else 0,
        )

    def reset(self) -> None:
        """Rewind to the first token."""
        self._position = 0

    def peek(self, offset: int = 0) -> Token:
        """Return the token *offset* places ahead without consuming it."""
        index = self._position + offset
        if 0 <= index < len(self._tokens):
            return self._tokens[index]
        return self._end

    def next(self) -> Token:
        """Consume and return the current token; END once exhausted."""
        token = self.peek(0)
        if self._position < len(self._tokens):
            self._position += 1
        return token

    def expect_and_consume(self, kind: TokenType, message: str | None = None) -> Token:
        """Consume the current token, raising ParsingError unless it is *kind*."""
        token = self.next()
        if token.kind is not kind:
            raise ParsingError(message or f"Expected {kind.name}", token)
        return token