import io

import pytest

from adlconv.commands import AnalysisCommand, ConversionError, Instruction
from adlconv.timber import (
    DEFINITIONS,
    POSTSCRIPTUM,
    PRELIMINARY,
    TimberConverter,
)

I = Instruction


def cmd(inst, *args):
    return AnalysisCommand(inst, tuple(args))


def fresh():
    return TimberConverter([])


def test_empty_script_has_preamble_and_postscript():
    text = TimberConverter([]).render()
    assert text == f"{PRELIMINARY}\n{DEFINITIONS}\n{POSTSCRIPTUM}\n"
    assert "a.Define('MET', 'MET_pt')" in text


def test_silent_commands_add_no_lines():
    quiet = TimberConverter([cmd(I.ADD_ALIAS, "x", "y"), cmd(I.BEGIN_EXPRESSION)])
    assert list(quiet.lines()) == list(TimberConverter([]).lines())


def test_write_matches_render():
    conv = TimberConverter([cmd(I.CREATE_REGION, "r"), cmd(I.RUN_REGION)])
    stream = io.StringIO()
    conv.write(stream)
    assert stream.getvalue() == conv.render()
    assert "RUN_REGION\n" in stream.getvalue()


def test_lines_are_repeatable():
    conv = TimberConverter([cmd(I.CREATE_MASK, "m", "Electron"), cmd(I.CREATE_REGION, "r")])
    first = list(conv.lines())
    second = list(conv.lines())
    assert first == second
    text = "\n".join(first)
    assert "m.Add('m', 'create_mask(Electron_pt)')" in text
    assert "_groupsr = [m, ]" in text
    assert text.count("_groupsr = [m, ]") == 1


@pytest.mark.parametrize(
    "inst, op",
    [
        (I.EXPR_ADD, "+"),
        (I.EXPR_SUBTRACT, "-"),
        (I.EXPR_MULTIPLY, "*"),
        (I.EXPR_LE, "<="),
        (I.EXPR_NE, "!="),
        (I.EXPR_AND, "&&"),
        (I.EXPR_OR, "||"),
    ],
)
def test_binary_operators_into_cut(inst, op):
    conv = fresh()
    conv.convert_command(cmd(I.ADD_ALIAS, "x", "x"))
    conv.convert_command(cmd(I.ADD_ALIAS, "y", "y"))
    conv.convert_command(cmd(I.CREATE_REGION, "r"))
    assert conv.convert_command(cmd(inst, "s", "x", "y")) == ""
    out = conv.convert_command(cmd(I.CUT_REGION, "c", "r", "s"))
    assert out == f"r.Add('c', 'x{op}y')"
    assert conv.mappings["c"] == "r"


def test_create_region_lists_existing_definitions():
    conv = fresh()
    conv.convert_command(cmd(I.CREATE_MASK, "m", "Electron"))
    out = conv.convert_command(cmd(I.CREATE_REGION, "r"))
    assert out.startswith("\n_groupsr = [m, ]\n")
    assert "r = CutGroup('r')\n" in out
    assert out.endswith("_groupsr.append(r)\n")


def test_create_mask_text():
    conv = fresh()
    out = conv.convert_command(cmd(I.CREATE_MASK, "m", "Jet"))
    assert out == "\nm = VarGroup('m')\nm.Add('m', 'create_mask(Jet_pt)')"
    assert conv.existing_definitions == ["m"]


def test_apply_mask_btag_only_for_jets():
    conv = fresh()
    conv.convert_command(cmd(I.CREATE_MASK, "m", "Jet"))
    jets = conv.convert_command(cmd(I.APPLY_MASK, "goodjets", "m", "Jet"))
    electrons = conv.convert_command(cmd(I.APPLY_MASK, "goodel", "m", "Electron"))
    assert "m.Add('goodjets_pt', 'apply_mask(m, Jet_pt)')\n" in jets
    assert "_btagDeepFlavB" in jets
    assert "_btagDeepFlavB" not in electrons
    assert len(jets.splitlines()) == 5
    assert len(electrons.splitlines()) == 4
    assert "goodjets" in conv.needs_btag


def test_btag_propagates_through_masked_objects():
    conv = fresh()
    conv.convert_command(cmd(I.APPLY_MASK, "a", "m", "Jet"))
    out = conv.convert_command(cmd(I.APPLY_MASK, "b", "m", "a"))
    assert "apply_mask(m, a_btagDeepFlavB)" in out


def test_particle_sum_and_pt_label():
    conv = fresh()
    conv.convert_command(cmd(I.MAKE_EMPTY_PARTICLE, "e"))
    conv.convert_command(cmd(I.ADD_PART_ELECTRON, "p1", "e"))
    conv.convert_command(cmd(I.ADD_PART_MUON, "p2", "p1"))
    assert conv.mappings["p2"] == "Electron + Muon"
    conv.convert_command(cmd(I.FUNC_PT, "v", "p2"))
    assert conv.mappings["v"] == "Electron_pt+Muon_pt"


def test_particle_indexing():
    conv = fresh()
    conv.convert_command(cmd(I.MAKE_EMPTY_PARTICLE, "e"))
    conv.convert_command(cmd(I.ADD_PART_JET, "one", "e", "0"))
    conv.convert_command(cmd(I.ADD_PART_JET, "two", "e", "0", "2"))
    assert conv.mappings["one"] == "index_get(Jet ,0)"
    assert conv.mappings["two"] == "index_get(Jet ,0,2)"


def test_indexed_particle_keeps_closing_paren_when_labelled():
    conv = fresh()
    conv.convert_command(cmd(I.ADD_PART_JET, "one", "e", "0"))
    conv.convert_command(cmd(I.FUNC_ETA, "v", "one"))
    assert conv.mappings["v"] == "index_get(Jet_eta,0)"


def test_named_particle_uses_its_name():
    conv = fresh()
    conv.convert_command(cmd(I.ADD_PART_NAMED, "p", "goodjets", "e"))
    assert conv.mappings["p"] == "goodjets"
    assert conv.mappings["goodjets"] == "goodjets"


def test_subtraction_leaves_destination_unset():
    conv = fresh()
    conv.convert_command(cmd(I.ADD_PART_JET, "p", "e"))
    conv.convert_command(cmd(I.SUB_PART_MUON, "q", "p"))
    assert conv.mappings["q"] == ""


def test_btag_function():
    conv = fresh()
    conv.convert_command(cmd(I.ADD_PART_JET, "p", "e"))
    conv.convert_command(cmd(I.FUNC_BTAG, "b", "p"))
    assert conv.mappings["b"] == "(Jet_btagDeepFlavB > 0.3040)"


def test_within_and_outside():
    conv = fresh()
    for name in ("x", "lo", "hi"):
        conv.convert_command(cmd(I.ADD_ALIAS, name, name))
    conv.convert_command(cmd(I.EXPR_WITHIN, "w", "x", "lo", "hi"))
    conv.convert_command(cmd(I.EXPR_OUTSIDE, "o", "x", "lo", "hi"))
    assert conv.mappings["w"] == "((x>=lo)&&(x<=hi))"
    assert conv.mappings["o"] == "((x<=lo)||(x>=hi))"


def test_math_and_unary_wrap_operand():
    conv = fresh()
    conv.convert_command(cmd(I.ADD_ALIAS, "x", "x"))
    conv.convert_command(cmd(I.FUNC_SQRT, "s", "x"))
    conv.convert_command(cmd(I.EXPR_NEGATE, "n", "s"))
    conv.convert_command(cmd(I.EXPR_LOGICAL_NOT, "t", "x"))
    assert conv.mappings["s"] == "sqrt(x)"
    assert conv.mappings["n"] == "-(sqrt(x))"
    assert conv.mappings["t"] == "!(x)"


def test_histogram_1d():
    conv = fresh()
    for name in ("10", "0", "100", "v"):
        conv.convert_command(cmd(I.ADD_ALIAS, name, name))
    out = conv.convert_command(cmd(I.HIST_1D, "h", "title", "10", "0", "100", "v"))
    assert out.splitlines()[1:] == [
        "_histogramh = []",
        "_histogramh.append('h')",
        "_histogramh.append('title')",
        "_histogramh.append(10)",
        "_histogramh.append(0)",
        "_histogramh.append(100)",
        "_histogramh.append('v')",
    ]


def test_histogram_2d_has_two_axes():
    conv = fresh()
    out = conv.convert_command(
        cmd(I.HIST_2D, "h", "t", "1", "2", "3", "x", "4", "5", "6", "y")
    )
    assert len(out.splitlines()) == 12
    with pytest.raises(IndexError):
        conv.convert_command(cmd(I.HIST_2D, "h", "t", "1", "2", "3", "x"))


def test_empty_union_registers_definition():
    conv = fresh()
    out = conv.convert_command(cmd(I.MAKE_EMPTY_UNION, "u"))
    assert out.startswith("\nu = VarGroup('u')\n")
    assert "u.Add('u_btagDeepFlavB', 'empty_union()')\n" in out
    assert conv.existing_definitions == ["u"]


def test_union_merge_with_electron():
    conv = fresh()
    conv.convert_command(cmd(I.MAKE_EMPTY_UNION, "u"))
    out = conv.convert_command(cmd(I.ADD_ELECTRON_TO_UNION, "u2", "u"))
    assert "u.Add('u2_pt', 'union_merge(u_pt, Electron_pt)')\n" in out
    assert "btagDeepFlavB" not in out
    assert conv.mappings["u2"] == "u"


def test_histogram_list_flow():
    conv = fresh()
    conv.convert_command(cmd(I.CREATE_REGION, "r"))
    assert conv.convert_command(cmd(I.CREATE_HIST_LIST, "hl")) == "\n_histogram_listhl = []"
    added = conv.convert_command(cmd(I.ADD_HIST_TO_LIST, "hl2", "hl", "h"))
    assert added == "\n_histogram_listhl.append(_histogramh)"
    used = conv.convert_command(cmd(I.USE_HIST_LIST, "hl2", "r"))
    assert "use_histo_list(_histogram_listhl, _histogram_node_r)" in used
    assert used.endswith("\na.SetActiveNode(_old_node)")


@pytest.mark.parametrize("inst", [I.FUNC_DR, I.FUNC_HSTEP, I.FUNC_NAMED, I.FUNC_PZ])
def test_unconvertible_instructions_raise(inst):
    with pytest.raises(ConversionError) as info:
        fresh().convert_command(cmd(inst, "a", "b"))
    assert info.value.feature == inst.name


def test_render_propagates_conversion_error():
    conv = TimberConverter([cmd(I.FUNC_DETA, "a", "b")])
    with pytest.raises(ConversionError):
        conv.render()


def test_energy_placeholder():
    assert fresh().convert_command(cmd(I.FUNC_ENERGY, "a", "b")) == "FUNC_E"


def test_missing_argument_raises_index_error():
    with pytest.raises(IndexError):
        fresh().convert_command(cmd(I.EXPR_ADD, "s", "x"))