"""Conversion of analysis-level commands into a TIMBER analysis script."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Iterator
from typing import TextIO

from adlconv.commands import AnalysisCommand, ConversionError, Instruction

I = Instruction

PRELIMINARY = (
    "from TIMBER.Analyzer import *\n"
    "from TIMBER.Tools.Common import *\n"
    "import ROOT\n"
    "import sys, os\n"
    "from adl_helpers import combine_without_duplicates, use_histo, use_histo_list\n"
    "CompileCpp('adl_cmds.cc')\n"
    "a = analyzer('filename.root')\n"
    "out = ROOT.TFile.Open('adl_out.root','UPDATE')"
)

DEFINITIONS = "\na.Define('MET', 'MET_pt')\n"

POSTSCRIPTUM = "\nout.Close()\n"

BTAG_THRESHOLD = "0.3040"

_BINARY_OPERATORS = {
    I.EXPR_MULTIPLY: "*",
    I.EXPR_DIVIDE: "/",
    I.EXPR_ADD: "+",
    I.EXPR_SUBTRACT: "-",
    I.EXPR_LT: "<",
    I.EXPR_LE: "<=",
    I.EXPR_GT: ">",
    I.EXPR_GE: ">=",
    I.EXPR_EQ: "==",
    I.EXPR_NE: "!=",
    I.EXPR_AMPERSAND: "&",
    I.EXPR_PIPE: "|",
    I.EXPR_AND: "&&",
    I.EXPR_OR: "||",
}

_MATH_FUNCTIONS = {
    I.FUNC_SQRT: "sqrt",
    I.FUNC_ABS: "abs",
    I.FUNC_COS: "cos",
    I.FUNC_SIN: "sin",
    I.FUNC_TAN: "tan",
    I.FUNC_SINH: "sinh",
    I.FUNC_COSH: "cosh",
    I.FUNC_TANH: "tanh",
    I.FUNC_EXP: "exp",
    I.FUNC_LOG: "log",
}

_VECTOR_LABELS = {
    I.FUNC_PT: "_pt",
    I.FUNC_ETA: "_eta",
    I.FUNC_PHI: "_phi",
    I.FUNC_MASS: "_mass",
    I.FUNC_Q: "_charge",
    I.FUNC_FLAVOR: "_partonFlavor",
    I.FUNC_PDG_ID: "_pdgId",
}

_ADDED_PARTICLES = {
    I.ADD_PART_ELECTRON: "Electron",
    I.ADD_PART_MUON: "Muon",
    I.ADD_PART_TAU: "Tau",
    I.ADD_PART_TRACK: "IsoTrack",
    I.ADD_PART_LEPTON: "Lepton",
    I.ADD_PART_PHOTON: "Photon",
    I.ADD_PART_BJET: "BJet",
    I.ADD_PART_QGJET: "QGJet",
    I.ADD_PART_NUMET: "MET",
    I.ADD_PART_GEN: "GenPart",
    I.ADD_PART_JET: "Jet",
    I.ADD_PART_FJET: "FatJet",
}

_SUBTRACTED_PARTICLES = {
    I.ADD_PART_METLV: "METLV",
    I.SUB_PART_ELECTRON: "Electron",
    I.SUB_PART_MUON: "Muon",
    I.SUB_PART_TAU: "Tau",
    I.SUB_PART_TRACK: "IsoTrack",
    I.SUB_PART_LEPTON: "Lepton",
    I.SUB_PART_PHOTON: "Photon",
    I.SUB_PART_BJET: "BJet",
    I.SUB_PART_QGJET: "QGJet",
    I.SUB_PART_NUMET: "MET",
    I.SUB_PART_METLV: "METLV",
    I.SUB_PART_GEN: "GenPart",
    I.SUB_PART_JET: "Jet",
    I.SUB_PART_FJET: "FatJet",
}

_UNION_LEPTONS = {
    I.ADD_ELECTRON_TO_UNION: "Electron",
    I.ADD_MUON_TO_UNION: "Muon",
    I.ADD_TAU_TO_UNION: "Tau",
}

_PLACEHOLDERS = {
    I.RUN_REGION: "RUN_REGION",
    I.ADD_OBJECT: "ADD_OBJECT",
    I.BEGIN_IF: "BEGIN_IF",
    I.END_IF: "END_IF",
    I.FUNC_ENERGY: "FUNC_E",
    I.CREATE_PARTICLE_VARIABLE: "CREATE_PARTICLE_VARIABLE",
}

_NOT_CONVERTIBLE = frozenset({
    I.FUNC_HSTEP, I.FUNC_DELTA, I.FUNC_ANYOF, I.FUNC_ALLOF, I.FUNC_AVE, I.FUNC_SUM,
    I.FUNC_NAMED, I.FUNC_CONSTITUENTS, I.FUNC_IDX, I.FUNC_TAUTAG, I.FUNC_CTAG,
    I.FUNC_DXY, I.FUNC_EDXY, I.FUNC_EDZ, I.FUNC_DZ, I.FUNC_IS_TIGHT, I.FUNC_IS_MEDIUM,
    I.FUNC_IS_LOOSE, I.FUNC_ABS_ETA, I.FUNC_THETA, I.FUNC_PT_CONE, I.FUNC_ET_CONE,
    I.FUNC_ABS_ISO, I.FUNC_MINI_ISO, I.FUNC_PZ, I.FUNC_NBF, I.FUNC_DR, I.FUNC_DPHI,
    I.FUNC_DETA,
})

_VECTOR_FIELDS = ("pt", "eta", "phi", "mass")

_BTAG_SOURCES = frozenset({"Jet", "FatJet"})


class TimberConverter:
    """Turns a sequence of analysis commands into TIMBER Python source."""

    def __init__(self, commands: Iterable[AnalysisCommand]) -> None:
        self.commands = list(commands)
        self._reset()

    def _reset(self) -> None:
        # Looking up an unknown name yields "" and records it, as the
        # generated expressions rely on.
        self.mappings: defaultdict[str, str] = defaultdict(str)
        self.needs_btag: set[str] = set()
        self.existing_definitions: list[str] = []

    # -- output ------------------------------------------------------------

    def lines(self) -> Iterator[str]:
        """Yield every printed piece of the script, converting commands in order."""
        self._reset()
        yield PRELIMINARY
        yield DEFINITIONS
        for command in self.commands:
            text = self.convert_command(command)
            if text:
                yield text
        yield POSTSCRIPTUM

    def render(self) -> str:
        """Return the whole script, each piece ended by a newline."""
        return "".join(f"{piece}\n" for piece in self.lines())

    def write(self, stream: TextIO) -> None:
        """Write the whole script to *stream*."""
        stream.write(self.render())

    # -- helpers -----------------------------------------------------------

    def _tags_for_object(self, command: AnalysisCommand) -> str:
        dest = command.argument(0)
        mask = command.argument(1)
        src = command.argument(2)
        target = self.mappings[mask]
        fields = list(_VECTOR_FIELDS)
        if src in self.needs_btag or src in _BTAG_SOURCES:
            fields.append("btagDeepFlavB")
            self.needs_btag.add(dest)
        return "".join(
            f"{target}.Add('{dest}_{name}', 'apply_mask({mask}, {src}_{name})')\n"
            for name in fields
        )

    @staticmethod
    def _tags_for_empty_union(command: AnalysisCommand) -> str:
        dest = command.argument(0)
        return "".join(
            f"{dest}.Add('{dest}_{name}', 'empty_union()')\n"
            for name in (*_VECTOR_FIELDS, "btagDeepFlavB")
        )

    def _tags_for_union_merge(self, command: AnalysisCommand, adding: str) -> str:
        dest = command.argument(0)
        old_union = command.argument(1)
        target = self.mappings[old_union]
        fields = list(_VECTOR_FIELDS)
        if adding in self.needs_btag or adding in _BTAG_SOURCES:
            fields.append("btagDeepFlavB")
            self.needs_btag.add(dest)
        return "".join(
            f"{target}.Add('{dest}_{name}', "
            f"'union_merge({old_union}_{name}, {adding}_{name})')\n"
            for name in fields
        )

    def _existing_definitions_text(self) -> str:
        return "[" + "".join(f"{name}, " for name in self.existing_definitions) + "]"

    @staticmethod
    def _index_particle(command: AnalysisCommand, is_named: bool, text: str) -> str:
        shift = int(is_named)
        count = command.num_arguments - shift
        if count >= 4:
            return (
                f"index_get({text} ,{command.argument(2 + shift)},"
                f"{command.argument(3 + shift)})"
            )
        if count >= 3:
            return f"index_get({text} ,{command.argument(2 + shift)})"
        return text

    def _add_particle(self, command: AnalysisCommand, name: str) -> None:
        is_named = command.instruction is I.ADD_PART_NAMED
        indexed = self._index_particle(command, is_named, name)
        base = self.mappings[command.argument(1 + int(is_named))]
        joiner = " + " if base else ""
        self.mappings[command.argument(0)] = f"{base}{joiner}{indexed}"

    def _sub_particle(self, command: AnalysisCommand, name: str) -> str:
        # The difference is formed but, as in the reference behaviour, not stored.
        is_named = command.instruction is I.ADD_PART_NAMED
        indexed = self._index_particle(command, is_named, name)
        return f"{self.mappings[command.argument(1 + int(is_named))]} - {indexed}"

    def _append_vector_label(self, command: AnalysisCommand, suffix: str) -> None:
        output = command.argument(0)
        source = self.mappings[command.argument(1)]
        pieces = source.split(" ")
        if source == "" or source.endswith(" "):
            pieces.pop()
        self.mappings[output] = "".join(
            piece if piece and piece[-1] in "+-)" else piece + suffix for piece in pieces
        )

    def _binary(self, command: AnalysisCommand, op: str) -> str:
        return f"{self.mappings[command.argument(1)]}{op}{self.mappings[command.argument(2)]}"

    def _histogram_lines(self, name: str, values: Iterable[str]) -> str:
        return "".join(f"\n_histogram{name}.append({value})" for value in values)

    # -- conversion --------------------------------------------------------

    def convert_command(self, command: AnalysisCommand) -> str:
        """Convert one command, updating the name mappings; "" when nothing is printed."""
        inst = command.instruction
        arg = command.argument
        var = self.mappings

        if inst in _BINARY_OPERATORS:
            var[arg(0)] = self._binary(command, _BINARY_OPERATORS[inst])
            return ""

        if inst in _MATH_FUNCTIONS:
            var[arg(0)] = f"{_MATH_FUNCTIONS[inst]}({var[arg(1)]})"
            return ""

        if inst in _VECTOR_LABELS:
            self._append_vector_label(command, _VECTOR_LABELS[inst])
            return ""

        if inst in _ADDED_PARTICLES:
            self._add_particle(command, _ADDED_PARTICLES[inst])
            return ""

        if inst in _SUBTRACTED_PARTICLES:
            self._sub_particle(command, _SUBTRACTED_PARTICLES[inst])
            return ""

        if inst in _UNION_LEPTONS:
            text = self._tags_for_union_merge(command, _UNION_LEPTONS[inst])
            var[arg(0)] = var[arg(1)]
            return text

        if inst in _PLACEHOLDERS:
            return _PLACEHOLDERS[inst]

        if inst in _NOT_CONVERTIBLE:
            raise ConversionError(inst.name)

        if inst is I.HIST_1D or inst is I.HIST_2D:
            name = arg(0)
            text = f"\n_histogram{name} = []"
            text += f"\n_histogram{name}.append('{name}')"
            text += f"\n_histogram{name}.append('{arg(1)}')"
            text += self._histogram_lines(name, (var[arg(i)] for i in range(2, 5)))
            text += self._histogram_lines(name, [f"'{var[arg(5)]}'"])
            if inst is I.HIST_2D:
                text += self._histogram_lines(name, (var[arg(i)] for i in range(6, 9)))
                text += self._histogram_lines(name, [f"'{var[arg(9)]}'"])
            return text

        if inst is I.USE_HIST or inst is I.USE_HIST_LIST:
            region = arg(1)
            text = "\n_old_node = a.GetActiveNode()"
            text += f"\n_histogram_node_{region} = a.Apply(_groups{var[region]})"
            if inst is I.USE_HIST:
                text += f"\nuse_histo(_histogram{arg(0)}, _histogram_node_{region})"
            else:
                text += (
                    f"\nuse_histo_list(_histogram_list{var[arg(0)]}, "
                    f"_histogram_node_{region})"
                )
            text += "\na.SetActiveNode(_old_node)"
            return text

        if inst is I.CREATE_HIST_LIST:
            text = f"\n_histogram_list{arg(0)} = []"
            var[arg(0)] = arg(0)
            return text

        if inst is I.ADD_HIST_TO_LIST:
            var[arg(0)] = var[arg(1)]
            return f"\n_histogram_list{var[arg(1)]}.append(_histogram{arg(2)})"

        if inst is I.CREATE_REGION:
            name = arg(0)
            text = f"\n_groups{name} = {self._existing_definitions_text()}\n"
            text += f"{name} = CutGroup('{name}')\n"
            text += f"_groups{name}.append({name})\n"
            var[name] = name
            return text

        if inst is I.MERGE_REGIONS:
            first, second = var[arg(1)], var[arg(2)]
            text = (
                f"_groups{second} = combine_without_duplicates("
                f"_groups{first}, _groups{second})\n"
            )
            var[arg(0)] = var[arg(2)]
            return text

        if inst is I.CUT_REGION:
            text = f"{var[arg(1)]}.Add('{arg(0)}', '{var[arg(2)]}')"
            var[arg(0)] = var[arg(1)]
            return text

        if inst is I.ADD_ALIAS:
            if arg(1) not in var:
                var[arg(1)] = arg(1)
            var[arg(0)] = var[arg(1)]
            return ""

        if inst is I.CREATE_MASK:
            name = arg(0)
            text = f"\n{name} = VarGroup('{name}')\n"
            text += f"{name}.Add('{name}', 'create_mask({arg(1)}_pt)')"
            var[name] = name
            self.existing_definitions.append(name)
            return text

        if inst is I.LIMIT_MASK:
            text = f"{var[arg(1)]}.Add('{arg(0)}', 'limit_mask({arg(1)}, {var[arg(2)]})')"
            var[arg(0)] = var[arg(1)]
            return text

        if inst is I.APPLY_MASK:
            text = self._tags_for_object(command)
            var[arg(0)] = arg(0)
            return text

        if inst is I.BEGIN_EXPRESSION:
            return ""

        if inst is I.END_EXPRESSION:
            var[arg(0)] = var[arg(1)]
            return ""

        if inst is I.EXPR_RAISE:
            var[arg(0)] = f"raise_power({var[arg(1)]},{var[arg(2)]})"
            return ""

        if inst is I.EXPR_WITHIN:
            value, low, high = var[arg(1)], var[arg(2)], var[arg(3)]
            var[arg(0)] = f"(({value}>={low})&&({value}<={high}))"
            return ""

        if inst is I.EXPR_OUTSIDE:
            value, low, high = var[arg(1)], var[arg(2)], var[arg(3)]
            var[arg(0)] = f"(({value}<={low})||({value}>={high}))"
            return ""

        if inst is I.EXPR_NEGATE:
            var[arg(0)] = f"-({var[arg(1)]})"
            return ""

        if inst is I.EXPR_LOGICAL_NOT:
            var[arg(0)] = f"!({var[arg(1)]})"
            return ""

        if inst is I.FUNC_BTAG:
            self._append_vector_label(command, "_btagDeepFlavB")
            var[arg(0)] = f"({var[arg(0)]} > {BTAG_THRESHOLD})"
            return ""

        if inst is I.MAKE_EMPTY_PARTICLE:
            var[arg(0)] = ""
            return ""

        if inst is I.ADD_PART_NAMED:
            if arg(1) not in var:
                var[arg(1)] = arg(1)
            self._add_particle(command, var[arg(1)])
            return ""

        if inst is I.SUB_PART_NAMED:
            self._sub_particle(command, arg(1))
            return ""

        if inst is I.MAKE_EMPTY_UNION:
            name = arg(0)
            text = f"\n{name} = VarGroup('{name}')\n"
            var[name] = name
            text += self._tags_for_empty_union(command)
            self.existing_definitions.append(name)
            return text

        if inst is I.ADD_NAMED_TO_UNION:
            text = self._tags_for_union_merge(command, var[arg(2)])
            var[arg(0)] = arg(0)
            return text

        if inst is I.FUNC_SIZE:
            var[arg(0)] = f"size({var[arg(1)]}_pt)"
            return ""

        raise ConversionError(inst.name)