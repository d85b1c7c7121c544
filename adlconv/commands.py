"""Analysis-level instructions and the commands that carry them."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto


class Instruction(Enum):
    """Operations of the intermediate analysis-level instruction list."""

    # histograms
    HIST_1D = auto()
    HIST_2D = auto()
    USE_HIST = auto()
    CREATE_HIST_LIST = auto()
    ADD_HIST_TO_LIST = auto()
    USE_HIST_LIST = auto()

    # regions
    CREATE_REGION = auto()
    MERGE_REGIONS = auto()
    CUT_REGION = auto()
    RUN_REGION = auto()
    ADD_ALIAS = auto()

    # objects and masks
    ADD_OBJECT = auto()
    CREATE_MASK = auto()
    LIMIT_MASK = auto()
    APPLY_MASK = auto()

    # expression structure
    BEGIN_EXPRESSION = auto()
    END_EXPRESSION = auto()
    BEGIN_IF = auto()
    END_IF = auto()

    # operators
    EXPR_RAISE = auto()
    EXPR_MULTIPLY = auto()
    EXPR_DIVIDE = auto()
    EXPR_ADD = auto()
    EXPR_SUBTRACT = auto()
    EXPR_LT = auto()
    EXPR_LE = auto()
    EXPR_GT = auto()
    EXPR_GE = auto()
    EXPR_EQ = auto()
    EXPR_NE = auto()
    EXPR_AMPERSAND = auto()
    EXPR_PIPE = auto()
    EXPR_AND = auto()
    EXPR_OR = auto()
    EXPR_WITHIN = auto()
    EXPR_OUTSIDE = auto()
    EXPR_NEGATE = auto()
    EXPR_LOGICAL_NOT = auto()

    # four-vector attributes
    FUNC_BTAG = auto()
    FUNC_PT = auto()
    FUNC_ETA = auto()
    FUNC_PHI = auto()
    FUNC_MASS = auto()
    FUNC_ENERGY = auto()
    FUNC_Q = auto()

    # particle construction
    MAKE_EMPTY_PARTICLE = auto()
    CREATE_PARTICLE_VARIABLE = auto()
    ADD_PART_ELECTRON = auto()
    ADD_PART_MUON = auto()
    ADD_PART_TAU = auto()
    ADD_PART_TRACK = auto()
    ADD_PART_LEPTON = auto()
    ADD_PART_PHOTON = auto()
    ADD_PART_BJET = auto()
    ADD_PART_QGJET = auto()
    ADD_PART_NUMET = auto()
    ADD_PART_METLV = auto()
    ADD_PART_GEN = auto()
    ADD_PART_JET = auto()
    ADD_PART_FJET = auto()
    ADD_PART_NAMED = auto()
    SUB_PART_ELECTRON = auto()
    SUB_PART_MUON = auto()
    SUB_PART_TAU = auto()
    SUB_PART_TRACK = auto()
    SUB_PART_LEPTON = auto()
    SUB_PART_PHOTON = auto()
    SUB_PART_BJET = auto()
    SUB_PART_QGJET = auto()
    SUB_PART_NUMET = auto()
    SUB_PART_METLV = auto()
    SUB_PART_GEN = auto()
    SUB_PART_JET = auto()
    SUB_PART_FJET = auto()
    SUB_PART_NAMED = auto()

    # numerical functions
    FUNC_HSTEP = auto()
    FUNC_DELTA = auto()
    FUNC_ANYOF = auto()
    FUNC_ALLOF = auto()
    FUNC_SQRT = auto()
    FUNC_ABS = auto()
    FUNC_COS = auto()
    FUNC_SIN = auto()
    FUNC_TAN = auto()
    FUNC_SINH = auto()
    FUNC_COSH = auto()
    FUNC_TANH = auto()
    FUNC_EXP = auto()
    FUNC_LOG = auto()
    FUNC_AVE = auto()
    FUNC_SUM = auto()
    FUNC_NAMED = auto()

    # unions
    MAKE_EMPTY_UNION = auto()
    ADD_NAMED_TO_UNION = auto()
    ADD_ELECTRON_TO_UNION = auto()
    ADD_MUON_TO_UNION = auto()
    ADD_TAU_TO_UNION = auto()

    # particle-list functions
    FUNC_FLAVOR = auto()
    FUNC_CONSTITUENTS = auto()
    FUNC_PDG_ID = auto()
    FUNC_IDX = auto()
    FUNC_TAUTAG = auto()
    FUNC_CTAG = auto()
    FUNC_DXY = auto()
    FUNC_EDXY = auto()
    FUNC_EDZ = auto()
    FUNC_DZ = auto()
    FUNC_IS_TIGHT = auto()
    FUNC_IS_MEDIUM = auto()
    FUNC_IS_LOOSE = auto()
    FUNC_ABS_ETA = auto()
    FUNC_THETA = auto()
    FUNC_PT_CONE = auto()
    FUNC_ET_CONE = auto()
    FUNC_ABS_ISO = auto()
    FUNC_MINI_ISO = auto()
    FUNC_PZ = auto()
    FUNC_NBF = auto()
    FUNC_DR = auto()
    FUNC_DPHI = auto()
    FUNC_DETA = auto()
    FUNC_SIZE = auto()


class ConversionError(Exception):
    """Raised when an instruction has no conversion to the target output."""

    def __init__(self, feature: str) -> None:
        self.feature = feature
        super().__init__(f"Conversion not implemented for {feature}")


@dataclass(frozen=True)
class AnalysisCommand:
    """One instruction together with its string arguments."""

    instruction: Instruction
    arguments: tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        if not isinstance(self.instruction, Instruction):
            raise TypeError(f"Not an instruction: {self.instruction!r}")
        items: Iterable[object] = self.arguments
        object.__setattr__(self, "arguments", tuple(str(item) for item in items))

    @property
    def num_arguments(self) -> int:
        """How many arguments the command carries."""
        return len(self.arguments)

    def argument(self, index: int) -> str:
        """Return the argument at *index*, counting from zero."""
        if not 0 <= index < len(self.arguments):
            raise IndexError(
                f"{self.instruction.name} has no argument {index} "
                f"(it has {len(self.arguments)})"
            )
        return self.arguments[index]