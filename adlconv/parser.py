"""Recursive-descent parser building the syntax tree of an analysis description."""

from __future__ import annotations

from collections.abc import Iterable

from adlconv.expressions import ExpressionParser
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

_BLOCK_STARTS = frozenset({
    T.ADLINFO, T.COUNTSFORMAT, T.DEF, T.TABLE, T.OBJ, T.ALGO, T.HISTOLIST,
})

_INITIALIZATION_STARTS = frozenset({
    T.SKIP_HISTO, T.SKIP_EFFS, T.ADLINFO, T.PAP_TITLE, T.PAP_EXPERIMENT, T.PAP_ID,
    T.PAP_PUBLICATION, T.PAP_SQRTS, T.PAP_LUMI, T.PAP_ARXIV, T.PAP_DOI,
    T.PAP_HEPDATA, T.SYSTEMATIC, T.TRGE, T.TRGM,
})

_DESCRIPTION_FIELDS = frozenset({
    T.PAP_TITLE, T.PAP_PUBLICATION, T.PAP_ID, T.PAP_ARXIV, T.PAP_DOI, T.PAP_HEPDATA,
})

_INTEGER_FIELDS = frozenset({T.TRGE, T.TRGM, T.SKIP_HISTO, T.SKIP_EFFS})

_REGION_COMMAND_STARTS = frozenset({
    T.SELECT, T.REJEC, T.BINS, T.BIN, T.SAVE, T.PRINT, T.WEIGHT, T.COUNTS,
    T.HISTO, T.SORT, T.USE,
})

_UNQUALIFIED_PARTICLES = frozenset({
    T.GEN, T.ELECTRON, T.MUON, T.TAU, T.TRACK, T.LEPTON, T.PHOTON, T.JET, T.BJET,
    T.FJET, T.QGJET, T.NUMET, T.METLV,
})

_OBJECT_BASES = frozenset({
    T.ELECTRON, T.MUON, T.TAU, T.GEN, T.PHOTON, T.JET, T.FJET, T.LEPTON,
})

_LEPTONS = frozenset({T.ELECTRON, T.MUON, T.TAU})

_SYST_TYPES = frozenset({
    T.SYST_WEIGHT_MC, T.SYST_WEIGHT_JVT, T.SYST_WEIGHT_PILEUP,
    T.SYST_WEIGHT_LEPTON_SF, T.SYST_WEIGHT_BTAG_SF, T.SYST_TTREE,
})

_CRITERIA_STARTS = frozenset({T.SELECT, T.PRINT, T.HISTO, T.REJEC})

_SIMPLE_SELECTIONS = frozenset({T.NONE, T.ALL, T.LEP_SF, T.BTAGS_SF, T.XSLUMICORR_SF})

_SIMPLE_ACTIONS = frozenset({T.ALL, T.NONE, T.LEP_SF, T.BTAGS_SF})

_NO_PARTICLE_KEYWORD = (
    'Cannot use a particle in a definition without specifying the "particle" keyword'
)


class Parser(ExpressionParser):
    """Parses a whole token stream into a tree rooted at an INPUT node."""

    def __init__(self, tokens: TokenStream | Iterable[Token]) -> None:
        super().__init__(tokens)
        self.root = Node(AstType.INPUT)

    # -- top level ---------------------------------------------------------

    def parse(self) -> Node:
        """Parse from the first token and return the root of a fresh tree."""
        self.tokens.reset()
        self.root = Node(AstType.INPUT)
        self.parse_blocks(self.root)
        return self.root

    def parse_blocks(self, parent: Node) -> None:
        """BLOCKS: any sequence of info, counts, definition, table, object, region or histogram-list blocks."""
        handlers = {
            T.ADLINFO: self.parse_info,
            T.COUNTSFORMAT: self.parse_count_format,
            T.DEF: self.parse_definition,
            T.TABLE: self.parse_table,
            T.OBJ: self.parse_object,
            T.ALGO: self.parse_region,
            T.HISTOLIST: self.parse_histo_list,
        }
        while (kind := self.tokens.peek(0).kind) in _BLOCK_STARTS:
            parent.add_child(handlers[kind](parent))

    # -- blocks ------------------------------------------------------------

    def parse_info(self, parent: Node) -> Node:
        """INFO -> adlinfo ID INITIALIZATIONS."""
        info = Node(AstType.INFO, parent)
        self.tokens.expect_and_consume(T.ADLINFO)
        info.add_child(self.parse_id(info))
        while self.tokens.peek(0).kind in _INITIALIZATION_STARTS:
            info.add_child(self._parse_initialization(info))
        return info

    def parse_count_format(self, parent: Node) -> Node:
        """COUNT_FORMAT -> countsformat ID COUNT_PROCESSES."""
        count = Node(AstType.COUNT_FORMAT, parent)
        self.tokens.expect_and_consume(T.COUNTSFORMAT)
        count.add_child(self.parse_id(count))
        while self.tokens.peek(0).kind is T.PROCESS:
            count.add_child(self._parse_count_process(count))
        return count

    def parse_definition(self, parent: Node) -> Node:
        """DEFINITION -> def ID (= | :) DEF_RVALUE."""
        definition = Node(AstType.DEFINITION, parent)
        self.tokens.expect_and_consume(T.DEF)
        definition.add_child(self.parse_id(definition))
        separator = self.tokens.next()
        if separator.kind not in (T.ASSIGN, T.COLON):
            raise ParsingError(
                "Unknown token for definition assignment, expected '=' or ':'", separator
            )
        definition.add_child(self._parse_def_rvalue(definition))
        return definition

    def parse_object(self, parent: Node) -> Node:
        """OBJECT -> obj ID (take | :) OBJ_RVALUE."""
        obj = Node(AstType.OBJECT, parent)
        self.tokens.expect_and_consume(T.OBJ)
        obj.add_child(self.parse_id(obj))
        tok = self.tokens.next()
        if tok.kind not in (T.COLON, T.TAKE):
            raise ParsingError(
                "Expected symbol for object definition, either ':' or TAKE", tok
            )
        self._parse_obj_rvalue(obj)
        return obj

    def parse_table(self, parent: Node) -> Node:
        """TABLE -> table ID tabletype ID nvars integer errors BOOL BIN_OR_BOX_VALUES."""
        stream = self.tokens
        table = Node(AstType.TABLE_DEF, parent)
        stream.expect_and_consume(T.TABLE)
        table.add_child(self.parse_id(table))
        stream.expect_and_consume(T.TABLETYPE)
        table.add_child(self.parse_id(table))
        stream.expect_and_consume(T.NVARS)
        tok = stream.next()
        if tok.kind is not T.INTEGER:
            raise ParsingError("Only integers are allowed to specify NVars", tok)
        table.add_child(make_terminal(table, tok))
        stream.expect_and_consume(T.ERRORS)
        table.add_child(self.parse_bool(table))
        self._parse_bin_or_box_values(table)
        return table

    def parse_region(self, parent: Node) -> Node:
        """REGION -> algo ID REGION_COMMANDS."""
        region = Node(AstType.REGION, parent)
        self.tokens.expect_and_consume(T.ALGO)
        region.add_child(self.parse_id(region))
        while self.tokens.peek(0).kind in _REGION_COMMAND_STARTS:
            region.add_child(self.parse_region_command(region))
        return region

    def parse_histo_list(self, parent: Node) -> Node:
        """HISTO_LIST -> histolist ID HISTO_ENTRIES."""
        histo_list = Node(AstType.HISTO_LIST, parent)
        self.tokens.expect_and_consume(T.HISTOLIST)
        histo_list.add_child(self.parse_id(histo_list))
        while self.tokens.peek(0).kind is T.HISTO:
            self.tokens.expect_and_consume(T.HISTO)
            histo = Node(AstType.HISTOLIST_HISTOGRAM, histo_list)
            self.parse_histogram(histo)
            histo_list.add_child(histo)
        return histo_list

    # -- info and counts ---------------------------------------------------

    def _parse_initialization(self, parent: Node) -> Node:
        stream = self.tokens
        tok = stream.next()
        kind = tok.kind

        if kind in _INTEGER_FIELDS:
            stream.expect_and_consume(T.ASSIGN)
            value = stream.next()
            if value.kind is not T.INTEGER:
                raise ParsingError("Invalid non-integer assignment", value)
            target = Node(AstType.TERMINAL, parent, tok)
            target.add_child(make_terminal(target, value))
            return target

        if kind in (T.PAP_LUMI, T.PAP_SQRTS):
            value = stream.next()
            if not is_numerical(value.kind):
                raise ParsingError("Non-numerical value given for numerical field", value)
            target = Node(AstType.TERMINAL, parent, tok)
            target.add_child(make_terminal(target, value))
            return target

        if kind is T.PAP_EXPERIMENT:
            experiment = Node(AstType.TERMINAL, parent, tok)
            experiment.add_child(self.parse_id(experiment))
            return experiment

        if kind is T.SYSTEMATIC:
            systematic = Node(AstType.TERMINAL, parent, tok)
            systematic.add_child(self.parse_bool(systematic))
            up = stream.next()
            down = stream.next()
            if up.kind is not T.STRING:
                raise ParsingError("Invalid systematic up identifier, expected string", up)
            if down.kind is not T.STRING:
                raise ParsingError("Invalid systematic down identifier, expected string", down)
            systematic.add_child(make_terminal(systematic, up))
            systematic.add_child(make_terminal(systematic, down))
            systematic.add_child(self._parse_syst_vtype(systematic))
            return systematic

        if kind in _DESCRIPTION_FIELDS:
            target = Node(AstType.TERMINAL, parent, tok)
            target.add_child(self.parse_description(target))
            return target

        raise ParsingError("Invalid token in info block", tok)

    def _parse_syst_vtype(self, parent: Node) -> Node:
        tok = self.tokens.next()
        if tok.kind not in _SYST_TYPES:
            raise ParsingError("Expected a valid systematics type", tok)
        return make_terminal(parent, tok)

    def _parse_count_process(self, parent: Node) -> Node:
        stream = self.tokens
        process = Node(AstType.COUNT_PROCESS, parent)
        stream.expect_and_consume(T.PROCESS)
        process.add_child(self.parse_id(process))
        stream.expect_and_consume(
            T.COMMA, "Invalid end of argument. Needs at least 2 arguments separated by commas"
        )
        process.add_child(self.parse_description(process))
        for _ in range(2):
            if stream.peek(0).kind is not T.COMMA:
                break
            stream.expect_and_consume(T.COMMA)
            process.add_child(self._parse_err_type(process))
        return process

    def _parse_err_type(self, parent: Node) -> Node:
        tok = self.tokens.next()
        if tok.kind not in (T.ERR_SYST, T.ERR_STAT):
            raise ParsingError("Excepted error type 'syst' or 'stat'", tok)
        return make_terminal(parent, tok)

    # -- definitions and objects -------------------------------------------

    def _parse_def_rvalue(self, parent: Node) -> Node:
        stream = self.tokens
        tok = stream.peek(0)
        kind = tok.kind

        if kind is T.OPEN_CURLY_BRACE:
            stream.expect_and_consume(T.OPEN_CURLY_BRACE)
            variable_list = Node(AstType.VARIABLE_LIST, parent)
            self.parse_variable_list(variable_list)
            stream.expect_and_consume(T.CLOSE_CURLY_BRACE)
            return variable_list

        if kind is T.OME:
            ome = make_terminal(parent, tok)
            stream.expect_and_consume(T.OME)
            stream.expect_and_consume(T.OPEN_PAREN)
            ome.add_child(self.parse_description(ome))
            stream.expect_and_consume(T.COMMA)
            stream.expect_and_consume(T.OPEN_CURLY_BRACE)
            self.parse_variable_list(Node(AstType.VARIABLE_LIST, ome))
            stream.expect_and_consume(T.CLOSE_CURLY_BRACE)
            stream.expect_and_consume(T.COMMA)
            index = stream.next()
            if index.kind is not T.INTEGER:
                raise ParsingError("Integer required for indexing", index)
            ome.add_child(make_terminal(ome, index))
            stream.expect_and_consume(T.CLOSE_PAREN)
            return ome

        if kind is T.CONSTITUENTS:
            constituents = make_terminal(parent, tok)
            particle_list = Node(AstType.PARTICLE_LIST, constituents)
            self.parse_particle_list(particle_list)
            constituents.add_child(particle_list)
            return constituents

        if kind is T.EXTERNAL:
            external = make_terminal(parent, tok)
            if stream.peek(0).kind is not T.STRING:
                raise ParsingError(
                    "External functions must be given an explicit code string to run", tok
                )
            external.add_child(self.parse_id(external))
            kind = T.ADD

        if kind in (T.ADD, T.PARTICLE_KEYWORD):
            adder = make_terminal(parent, stream.next())
            particle_list = Node(AstType.PARTICLE_LIST, adder)
            self.parse_particle_list(particle_list)
            adder.add_child(particle_list)
            return adder

        if kind in _UNQUALIFIED_PARTICLES:
            raise ParsingError(_NO_PARTICLE_KEYWORD, tok)

        if kind in (T.STRING, T.VARNAME) and stream.peek(1).kind in (
            T.OPEN_SQUARE_BRACE,
            T.UNDERSCORE,
        ):
            raise ParsingError(_NO_PARTICLE_KEYWORD, tok)

        return self.parse_expression(parent)

    def _parse_obj_rvalue(self, parent: Node) -> None:
        stream = self.tokens
        tok = stream.peek(0)
        kind = tok.kind

        if kind in _OBJECT_BASES:
            parent.add_child(make_terminal(parent, stream.next()))
            self._parse_criteria(parent)
            return

        if kind is T.UNION:
            union = make_terminal(parent, stream.next())
            stream.expect_and_consume(T.OPEN_PAREN)
            first = stream.peek(0)
            separator_message = (
                "Union needs at least two elements comma-separated, "
                "token does not match up with that"
            )
            if first.kind in _LEPTONS:
                union.add_child(self._parse_lepton(union))
                stream.expect_and_consume(T.COMMA, separator_message)
                union.add_child(self._parse_lepton(union))
                if stream.peek(0).kind is T.COMMA:
                    stream.expect_and_consume(T.COMMA)
                    union.add_child(self._parse_lepton(union))
            elif first.kind in (T.STRING, T.VARNAME):
                union.add_child(self.parse_id(union))
                stream.expect_and_consume(T.COMMA, separator_message)
                union.add_child(self.parse_id(union))
            else:
                raise ParsingError(
                    "Invalid type specified in union, union only accepts leptons or variable IDs",
                    first,
                )
            stream.expect_and_consume(T.CLOSE_PAREN)
            parent.add_child(union)
            return

        if kind is T.COMB:
            comb = make_terminal(parent, stream.next())
            parent.add_child(comb)
            stream.expect_and_consume(T.OPEN_PAREN)
            particle_list = Node(AstType.PARTICLE_LIST, comb)
            comb.add_child(particle_list)
            self.parse_particle_list(particle_list)
            stream.expect_and_consume(T.CLOSE_PAREN)
            comb.add_child(self._parse_hamhum(comb))
            self._parse_criteria(comb)
            return

        if kind in (T.STRING, T.VARNAME):
            parent.add_child(self.parse_id(parent))
            self._parse_criteria(parent)
            return

        raise ParsingError("Invalid rvalue for an object definition", tok)

    def _parse_lepton(self, parent: Node) -> Node:
        tok = self.tokens.next()
        if tok.kind not in _LEPTONS:
            raise ParsingError("This token must be a lepton type", tok)
        return make_terminal(parent, tok)

    def _parse_hamhum(self, parent: Node) -> Node:
        hamhum = Node(AstType.HAMHUM, parent)
        self.tokens.expect_and_consume(T.ALIAS)
        hamhum.add_child(self.parse_id(hamhum))
        return hamhum

    def _parse_criteria(self, parent: Node) -> None:
        while self.tokens.peek(0).kind in _CRITERIA_STARTS:
            parent.add_child(self._parse_criterion(parent))

    def _parse_criterion(self, parent: Node) -> Node:
        tok = self.tokens.next()
        if tok.kind in (T.SELECT, T.HISTO):
            node = Node(AstType.OBJECT_SELECT, parent)
            node.add_child(self.parse_action(node))
            return node
        if tok.kind is T.REJEC:
            node = Node(AstType.OBJECT_REJECT, parent, tok)
            node.add_child(self.parse_condition(node))
            return node
        if tok.kind is T.PRINT:
            node = make_terminal(parent, tok)
            self.parse_variable_list(node)
            return node
        raise ParsingError("Invalid token for a criterion", tok)

    # -- regions -----------------------------------------------------------

    def parse_region_command(self, parent: Node) -> Node:
        """REGION_COMMAND: one select, weight, reject, bin, use, save, print, counts, histo or sort."""
        stream = self.tokens
        tok = stream.next()
        kind = tok.kind

        if kind is T.SELECT:
            node = Node(AstType.REGION_SELECT, parent)
            node.add_child(self._parse_region_command_select(parent))
            return node

        if kind is T.WEIGHT:
            node = Node(AstType.WEIGHT_CMD, parent)
            node.add_child(self.parse_id(node))
            following = stream.peek(0)
            if following.kind is T.OPEN_PAREN:
                stream.expect_and_consume(T.OPEN_PAREN)
                node.add_child(self.parse_expression(node))
                stream.expect_and_consume(T.CLOSE_PAREN)
            elif is_numerical(following.kind):
                stream.next()
                node.add_child(make_terminal(node, following))
            else:
                node.add_child(self.parse_id(node))
                stream.expect_and_consume(T.OPEN_PAREN)
                node.add_child(self.parse_expression(node))
                if stream.peek(0).kind is T.COMMA:
                    stream.expect_and_consume(T.COMMA)
                    node.add_child(self.parse_expression(node))
                stream.expect_and_consume(T.CLOSE_PAREN)
            return node

        if kind is T.REJEC:
            node = Node(AstType.REGION_REJECT, parent)
            node.add_child(self.parse_condition(node))
            return node

        if kind is T.BIN:
            node = Node(AstType.BIN_CMD, parent)
            node.add_child(self.parse_condition(node))
            return node

        if kind in (T.USE, T.TAKE):
            node = Node(AstType.REGION_USE, parent)
            node.add_child(self.parse_id(node))
            return node

        if kind is T.BINS:
            node = Node(AstType.BINS_CMD, parent)
            node.add_child(self.parse_expression(node))
            self._parse_bin_or_box_values(node)
            return node

        if kind is T.SAVE:
            save = make_terminal(parent, tok)
            save.add_child(self.parse_id(save))
            if stream.peek(0).kind is T.CSV:
                stream.expect_and_consume(T.CSV)
                self.parse_variable_list(save)
            return save

        if kind is T.PRINT:
            printer = make_terminal(parent, tok)
            self.parse_variable_list(printer)
            return printer

        if kind is T.COUNTS:
            counts = make_terminal(parent, tok)
            counts.add_child(self.parse_id(counts))
            self._parse_counts(counts)
            return counts

        if kind is T.HISTO:
            if stream.peek(0).kind is T.USE:
                stream.expect_and_consume(T.USE)
                histo_use = Node(AstType.HISTO_USE, parent)
                histo_use.add_child(self.parse_id(histo_use))
                return histo_use
            histo = Node(AstType.HISTOGRAM, parent)
            self.parse_histogram(histo)
            return histo

        if kind is T.SORT:
            sort = make_terminal(parent, tok)
            sort.add_child(self.parse_expression(sort))
            order = stream.next()
            if order.kind not in (T.ASCEND, T.DESCEND):
                raise ParsingError(
                    "Token after a sort expression must specify ascending or descending", order
                )
            sort.add_child(make_terminal(sort, order))
            return sort

        raise ParsingError("Unexpected token in region block", tok)

    def _parse_region_command_select(self, parent: Node) -> Node:
        stream = self.tokens
        tok = stream.peek(0)

        if tok.kind in _SIMPLE_SELECTIONS:
            stream.next()
            condition = Node(AstType.CONDITION, parent)
            condition.add_child(make_terminal(condition, tok))
            return condition

        if tok.kind is T.HLT:
            node = make_terminal(parent, tok)
            stream.next()
            node.add_child(self.parse_description(node))
            return node

        if tok.kind is T.APPLY_HM:
            node = make_terminal(parent, tok)
            stream.next()
            stream.expect_and_consume(T.OPEN_PAREN)
            node.add_child(self.parse_id(node))
            stream.expect_and_consume(T.OPEN_PAREN)
            node.add_child(self.parse_expression(node))
            if stream.peek(0).kind is T.COMMA:
                stream.expect_and_consume(T.COMMA)
                node.add_child(self.parse_expression(node))
            stream.expect_and_consume(T.CLOSE_PAREN)
            stream.expect_and_consume(T.EQ)
            value = stream.next()
            if value.kind is not T.INTEGER:
                raise ParsingError("Needs integer type", value)
            node.add_child(make_terminal(node, value))
            return node

        return self._parse_if_or_condition(parent)

    def _parse_if_or_condition(self, parent: Node) -> Node:
        node = Node(AstType.IF, parent)
        node.add_child(self.parse_condition(node))
        if self.tokens.peek(0).kind is T.QUESTION:
            self.tokens.expect_and_consume(T.QUESTION)
            node.add_child(self.parse_action(node))
            self.tokens.expect_and_consume(T.COLON)
            node.add_child(self.parse_action(node))
        return node

    def parse_action(self, parent: Node) -> Node:
        """ACTION: print, a simple keyword, applyptf, applyhm, or a nested condition."""
        stream = self.tokens
        tok = stream.peek(0)
        kind = tok.kind

        if kind is T.PRINT:
            stream.next()
            printer = make_terminal(parent, tok)
            self.parse_variable_list(printer)
            return printer

        if kind in _SIMPLE_ACTIONS:
            stream.next()
            return make_terminal(parent, tok)

        if kind is T.APPLY_PTF:
            stream.next()
            apply_ptf = make_terminal(parent, tok)
            stream.expect_and_consume(T.OPEN_PAREN)
            if stream.peek(1).kind is T.OPEN_SQUARE_BRACE:
                stream.expect_and_consume(T.OPEN_SQUARE_BRACE)
                apply_ptf.add_child(self.parse_expression(apply_ptf))
                if stream.peek(0).kind is T.COMMA:
                    stream.expect_and_consume(T.COMMA)
                    apply_ptf.add_child(self.parse_expression(apply_ptf))
                    if stream.peek(0).kind is T.COMMA:
                        stream.expect_and_consume(T.COMMA)
                        apply_ptf.add_child(self.parse_expression(apply_ptf))
                        stream.expect_and_consume(T.COMMA)
                        apply_ptf.add_child(self.parse_expression(apply_ptf))
                stream.expect_and_consume(T.CLOSE_SQUARE_BRACE)
            stream.expect_and_consume(T.CLOSE_PAREN)
            return apply_ptf

        if kind is T.APPLY_HM:
            stream.next()
            apply_hm = make_terminal(parent, tok)
            stream.expect_and_consume(T.OPEN_PAREN)
            apply_hm.add_child(self.parse_id(apply_hm))
            stream.expect_and_consume(T.OPEN_PAREN)
            apply_hm.add_child(self.parse_expression(apply_hm))
            if stream.peek(0).kind is T.COMMA:
                stream.expect_and_consume(T.COMMA)
                apply_hm.add_child(self.parse_expression(apply_hm))
            stream.expect_and_consume(T.CLOSE_PAREN)
            stream.expect_and_consume(T.EQ)
            value = stream.next()
            if value.kind is not T.INTEGER:
                raise ParsingError(
                    "Only integers are allowed for comparison in applying HM", tok
                )
            stream.expect_and_consume(T.CLOSE_PAREN)
            return apply_hm

        return self._parse_if_or_condition(parent)

    def parse_histogram(self, parent: Node) -> None:
        """HISTOGRAM: ID, DESCRIPTION, then one or two axes followed by their expressions."""
        stream = self.tokens
        parent.add_child(self.parse_id(parent))
        stream.expect_and_consume(T.COMMA)
        parent.add_child(self.parse_description(parent))
        stream.expect_and_consume(T.COMMA)

        self._parse_axis(parent)
        is_2d = stream.peek(1).kind is T.COMMA
        if is_2d:
            self._parse_axis(parent)

        parent.add_child(self.parse_expression(parent))
        if is_2d:
            stream.expect_and_consume(T.COMMA)
            parent.add_child(self.parse_expression(parent))

    def _parse_axis(self, parent: Node) -> None:
        stream = self.tokens
        bins = stream.next()
        if bins.kind is not T.INTEGER:
            raise ParsingError(
                "Only integers are allowed to specify binning quantity on histograms", bins
            )
        parent.add_child(make_terminal(parent, bins))
        stream.expect_and_consume(T.COMMA)
        for bound in ("lower", "upper"):
            value = stream.next()
            if not is_numerical(value.kind):
                raise ParsingError(
                    f"Only numerical types are allowed for the {bound} bound of a histogram",
                    value,
                )
            parent.add_child(make_terminal(parent, value))
            stream.expect_and_consume(T.COMMA)

    def _parse_bin_or_box_values(self, parent: Node) -> None:
        stream = self.tokens
        while True:
            tok = stream.next()
            if not is_numerical(tok.kind):
                raise ParsingError("Needs a numerical value for box argument", tok)
            parent.add_child(make_terminal(parent, tok))
            if not is_numerical(stream.peek(0).kind):
                return

    def _parse_counts(self, parent: Node) -> None:
        stream = self.tokens
        while True:
            count = Node(AstType.COUNT, parent)
            self._parse_count(count)
            parent.add_child(count)
            if stream.peek(0).kind is not T.COMMA:
                return
            stream.expect_and_consume(T.COMMA)

    def _parse_count(self, parent: Node) -> None:
        stream = self.tokens
        while True:
            tok = stream.next()
            if not is_numerical(tok.kind):
                raise ParsingError("A numerical type is needed for counts", tok)
            parent.add_child(make_terminal(parent, tok))
            if stream.peek(0).kind not in (T.PLUS, T.MINUS, T.PM):
                return
            parent.add_child(make_terminal(parent, stream.next()))

    # -- output ------------------------------------------------------------

    def to_dot(self) -> str:
        """Render the current tree as a Graphviz digraph."""
        lines = ["digraph G {"]
        counter = 1

        def visit(node: Node) -> None:
            nonlocal counter
            number = counter
            counter += 1
            if node.token is not None:
                label = node.token.lexeme.replace('"', "")
            else:
                label = f"ID:{node.ast_type.name}"
            lines.append(f'    {number} [label="{label}"]')
            for child in node.children:
                lines.append(f"    {number} -> {counter}")
                visit(child)

        visit(self.root)
        lines.append("}")
        return "\n".join(lines) + "\n"