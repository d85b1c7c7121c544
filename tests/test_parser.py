import pytest

from adlconv.parser import Parser
from adlconv.syntax import AstType, ParsingError, Token, TokenType

T = TokenType


def toks(*items):
    result = []
    for item in items:
        if isinstance(item, tuple):
            result.append(Token(item[0], item[1]))
        else:
            result.append(Token(item, item.name.lower()))
    return result


def parse(*items):
    return Parser(toks(*items)).parse()


def count_nodes(node):
    return 1 + sum(count_nodes(child) for child in node.children)


def test_empty_input_gives_bare_root():
    root = parse()
    assert root.ast_type is AstType.INPUT
    assert root.children == []


def test_definition_with_expression():
    root = parse(T.DEF, (T.VARNAME, "x"), T.ASSIGN, (T.INTEGER, "1"), T.PLUS, (T.INTEGER, "2"))
    (definition,) = root.children
    assert definition.ast_type is AstType.DEFINITION
    name, expression = definition.children
    assert name.token.lexeme == "x"
    assert expression.ast_type is AstType.EXPRESSION
    (plus,) = expression.children
    assert plus.token.kind is T.PLUS
    assert [c.token.lexeme for c in plus.children] == ["1", "2"]


def test_definition_accepts_colon():
    root = parse(T.DEF, (T.VARNAME, "x"), T.COLON, (T.INTEGER, "3"))
    assert root.children[0].children[1].ast_type is AstType.EXPRESSION


def test_definition_bad_separator():
    with pytest.raises(ParsingError):
        parse(T.DEF, (T.VARNAME, "x"), T.COMMA, (T.INTEGER, "3"))


def test_definition_variable_list():
    root = parse(
        T.DEF, (T.VARNAME, "v"), T.ASSIGN, T.OPEN_CURLY_BRACE,
        (T.VARNAME, "a"), T.COMMA, (T.VARNAME, "b"), T.CLOSE_CURLY_BRACE,
    )
    variable_list = root.children[0].children[1]
    assert variable_list.ast_type is AstType.VARIABLE_LIST
    assert [c.ast_type for c in variable_list.children] == [AstType.EXPRESSION] * 2


def test_definition_particle_keyword():
    root = parse(
        T.DEF, (T.VARNAME, "p"), T.ASSIGN, T.PARTICLE_KEYWORD,
        T.ELECTRON, T.OPEN_SQUARE_BRACE, (T.INTEGER, "0"), T.CLOSE_SQUARE_BRACE,
    )
    keyword = root.children[0].children[1]
    assert keyword.token.kind is T.PARTICLE_KEYWORD
    (particle_list,) = keyword.children
    (electron,) = particle_list.children
    assert electron.token.kind is T.ELECTRON
    assert electron.children[0].ast_type is AstType.INDEX


def test_definition_bare_particle_rejected():
    with pytest.raises(ParsingError):
        parse(T.DEF, (T.VARNAME, "p"), T.ASSIGN, T.ELECTRON)


def test_definition_indexed_name_rejected():
    with pytest.raises(ParsingError):
        parse(T.DEF, (T.VARNAME, "p"), T.ASSIGN, (T.VARNAME, "jets"), T.UNDERSCORE, (T.INTEGER, "0"))


def test_object_with_select():
    root = parse(
        T.OBJ, (T.VARNAME, "goodJets"), T.TAKE, T.JET,
        T.SELECT, T.PT, T.OPEN_PAREN, T.JET, T.CLOSE_PAREN, T.GT, (T.INTEGER, "30"),
    )
    obj = root.children[0]
    assert obj.ast_type is AstType.OBJECT
    name, base, select = obj.children
    assert name.token.lexeme == "goodJets"
    assert base.token.kind is T.JET
    assert select.ast_type is AstType.OBJECT_SELECT
    condition_if = select.children[0]
    assert condition_if.ast_type is AstType.IF
    gt = condition_if.children[0].children[0]
    assert gt.token.kind is T.GT
    assert gt.children[0].token.kind is T.PT


def test_object_union_of_leptons():
    root = parse(
        T.OBJ, (T.VARNAME, "leps"), T.COLON, T.UNION, T.OPEN_PAREN,
        T.ELECTRON, T.COMMA, T.MUON, T.COMMA, T.TAU, T.CLOSE_PAREN,
    )
    union = root.children[0].children[1]
    assert union.token.kind is T.UNION
    assert [c.token.kind for c in union.children] == [T.ELECTRON, T.MUON, T.TAU]


def test_object_invalid_rvalue():
    with pytest.raises(ParsingError):
        parse(T.OBJ, (T.VARNAME, "o"), T.TAKE, (T.INTEGER, "4"))


def test_object_bad_separator():
    with pytest.raises(ParsingError):
        parse(T.OBJ, (T.VARNAME, "o"), T.ASSIGN, T.JET)


def test_region_select_all():
    root = parse(T.ALGO, (T.VARNAME, "pre"), T.SELECT, T.ALL)
    region = root.children[0]
    assert region.ast_type is AstType.REGION
    select = region.children[1]
    assert select.ast_type is AstType.REGION_SELECT
    condition = select.children[0]
    assert condition.ast_type is AstType.CONDITION
    assert condition.children[0].token.kind is T.ALL


def test_region_weight_number():
    root = parse(T.ALGO, (T.VARNAME, "r"), T.WEIGHT, (T.VARNAME, "w"), (T.DECIMAL, "0.5"))
    weight = root.children[0].children[1]
    assert weight.ast_type is AstType.WEIGHT_CMD
    assert [c.token.lexeme for c in weight.children] == ["w", "0.5"]


def test_histogram_one_dimensional():
    root = parse(
        T.ALGO, (T.VARNAME, "r"), T.HISTO, (T.VARNAME, "h"), T.COMMA, (T.STRING, '"title"'),
        T.COMMA, (T.INTEGER, "10"), T.COMMA, (T.INTEGER, "0"), T.COMMA, (T.INTEGER, "100"),
        T.COMMA, (T.VARNAME, "x"),
    )
    histo = root.children[0].children[1]
    assert histo.ast_type is AstType.HISTOGRAM
    assert len(histo.children) == 6
    assert histo.children[-1].ast_type is AstType.EXPRESSION


def test_histogram_two_dimensional():
    root = parse(
        T.ALGO, (T.VARNAME, "r"), T.HISTO, (T.VARNAME, "h"), T.COMMA, (T.STRING, '"t"'),
        T.COMMA, (T.INTEGER, "10"), T.COMMA, (T.INTEGER, "0"), T.COMMA, (T.INTEGER, "100"),
        T.COMMA, (T.INTEGER, "5"), T.COMMA, (T.INTEGER, "0"), T.COMMA, (T.INTEGER, "50"),
        T.COMMA, (T.VARNAME, "x"), T.COMMA, (T.VARNAME, "y"),
    )
    histo = root.children[0].children[1]
    assert len(histo.children) == 10
    assert [c.ast_type for c in histo.children[-2:]] == [AstType.EXPRESSION] * 2


def test_histogram_non_integer_bins():
    with pytest.raises(ParsingError):
        parse(
            T.ALGO, (T.VARNAME, "r"), T.HISTO, (T.VARNAME, "h"), T.COMMA, (T.STRING, '"t"'),
            T.COMMA, (T.DECIMAL, "1.5"), T.COMMA,
        )


def test_histo_use_and_sort():
    root = parse(
        T.ALGO, (T.VARNAME, "r"), T.HISTO, T.USE, (T.VARNAME, "hl"),
        T.SORT, (T.VARNAME, "x"), T.ASCEND,
    )
    region = root.children[0]
    histo_use, sort = region.children[1:]
    assert histo_use.ast_type is AstType.HISTO_USE
    assert histo_use.children[0].token.lexeme == "hl"
    assert sort.token.kind is T.SORT
    assert sort.children[1].token.kind is T.ASCEND


def test_sort_requires_direction():
    with pytest.raises(ParsingError):
        parse(T.ALGO, (T.VARNAME, "r"), T.SORT, (T.VARNAME, "x"), T.ALL)


def test_counts_with_several_entries():
    root = parse(
        T.ALGO, (T.VARNAME, "r"), T.COUNTS, (T.VARNAME, "c"),
        (T.INTEGER, "10"), T.PLUS, (T.INTEGER, "2"), T.COMMA, (T.INTEGER, "5"),
    )
    counts = root.children[0].children[1]
    assert counts.token.kind is T.COUNTS
    first, second = counts.children[1:]
    assert [c.token.lexeme for c in first.children] == ["10", "plus", "2"]
    assert [c.token.lexeme for c in second.children] == ["5"]


def test_info_block():
    root = parse(
        T.ADLINFO, (T.VARNAME, "meta"), T.PAP_EXPERIMENT, (T.VARNAME, "CMS"),
        T.PAP_SQRTS, (T.INTEGER, "13"), T.TRGE, T.ASSIGN, (T.INTEGER, "1"),
    )
    info = root.children[0]
    assert info.ast_type is AstType.INFO
    experiment, sqrts, trge = info.children[1:]
    assert experiment.children[0].token.lexeme == "CMS"
    assert sqrts.children[0].token.lexeme == "13"
    assert trge.children[0].token.lexeme == "1"


def test_info_rejects_non_integer_trigger():
    with pytest.raises(ParsingError):
        parse(T.ADLINFO, (T.VARNAME, "m"), T.TRGE, T.ASSIGN, (T.DECIMAL, "1.0"))


def test_systematic_requires_strings():
    with pytest.raises(ParsingError):
        parse(
            T.ADLINFO, (T.VARNAME, "m"), T.SYSTEMATIC, T.TRUE,
            (T.STRING, '"up"'), (T.VARNAME, "down"), T.SYST_TTREE,
        )


def test_table_block():
    root = parse(
        T.TABLE, (T.VARNAME, "eff"), T.TABLETYPE, (T.VARNAME, "efficiency"),
        T.NVARS, (T.INTEGER, "1"), T.ERRORS, T.FALSE,
        (T.DECIMAL, "0.9"), (T.INTEGER, "0"), (T.INTEGER, "10"),
    )
    table = root.children[0]
    assert table.ast_type is AstType.TABLE_DEF
    assert [c.token.kind for c in table.children] == [
        T.VARNAME, T.VARNAME, T.INTEGER, T.FALSE, T.DECIMAL, T.INTEGER, T.INTEGER,
    ]


def test_table_nvars_must_be_integer():
    with pytest.raises(ParsingError):
        parse(T.TABLE, (T.VARNAME, "e"), T.TABLETYPE, (T.VARNAME, "t"), T.NVARS, (T.DECIMAL, "1.5"))


def test_count_format_process():
    root = parse(
        T.COUNTSFORMAT, (T.VARNAME, "bkg"), T.PROCESS, (T.VARNAME, "ttbar"), T.COMMA,
        (T.STRING, '"top pairs"'), T.COMMA, T.ERR_STAT, T.COMMA, T.ERR_SYST,
    )
    process = root.children[0].children[1]
    assert process.ast_type is AstType.COUNT_PROCESS
    assert [c.token.kind for c in process.children] == [
        T.VARNAME, T.STRING, T.ERR_STAT, T.ERR_SYST,
    ]


def test_histo_list_entries():
    entry = [
        T.HISTO, (T.VARNAME, "h"), T.COMMA, (T.STRING, '"t"'), T.COMMA, (T.INTEGER, "10"),
        T.COMMA, (T.INTEGER, "0"), T.COMMA, (T.INTEGER, "1"), T.COMMA, (T.VARNAME, "x"),
    ]
    root = parse(T.HISTOLIST, (T.VARNAME, "hl"), *entry, *entry)
    histo_list = root.children[0]
    assert histo_list.ast_type is AstType.HISTO_LIST
    assert [c.ast_type for c in histo_list.children[1:]] == [AstType.HISTOLIST_HISTOGRAM] * 2


def test_parse_region_command_rejects_unknown():
    parser = Parser(toks(T.NOT))
    with pytest.raises(ParsingError):
        parser.parse_region_command(parser.root)


def test_parse_action_apply_hm():
    parser = Parser(toks(
        T.APPLY_HM, T.OPEN_PAREN, (T.VARNAME, "hm"), T.OPEN_PAREN, (T.VARNAME, "a"),
        T.COMMA, (T.VARNAME, "b"), T.CLOSE_PAREN, T.EQ, (T.INTEGER, "1"), T.CLOSE_PAREN,
    ))
    action = parser.parse_action(parser.root)
    assert action.token.kind is T.APPLY_HM
    assert [c.ast_type for c in action.children] == [
        AstType.TERMINAL, AstType.EXPRESSION, AstType.EXPRESSION,
    ]


def test_parse_is_repeatable():
    parser = Parser(toks(T.DEF, (T.VARNAME, "x"), T.ASSIGN, (T.INTEGER, "1")))
    first = count_nodes(parser.parse())
    second = count_nodes(parser.parse())
    assert first == second
    assert len(parser.root.children) == 1


def test_to_dot_structure():
    parser = Parser(toks(T.DEF, (T.STRING, '"x"'), T.ASSIGN, (T.INTEGER, "1")))
    root = parser.parse()
    dot = parser.to_dot()
    lines = dot.strip().splitlines()
    assert lines[0] == "digraph G {"
    assert lines[-1] == "}"
    assert '    1 [label="ID:INPUT"]' in lines
    assert '[label="x"]' in dot
    edges = [line for line in lines if "->" in line]
    assert len(edges) == count_nodes(root) - 1