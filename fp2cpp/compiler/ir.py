"""Program model handed to the compiler by the dialect front end.

The front end resolves every declaration and tags built-ins before the tree
reaches this package, so the nodes below carry semantic information (types,
qualifiers, built-in kinds) rather than raw tokens.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any

from fp2cpp.compiler.type_utils import (
    FRAGMENT_PROCESSOR,
    is_child_processor_type,
)


@dataclass(frozen=True)
class Position:
    """Source position of a node.

    ``offset`` is the 0-based byte offset into the dialect source; ``line`` and
    ``column`` are 1-based.
    """

    offset: int = 0
    line: int = 1
    column: int = 1


# Types


@dataclass(frozen=True)
class IRType:
    """Dialect type referenced by name."""

    base: str
    nullable: bool = False

    def __str__(self) -> str:
        if self.nullable:
            return f"{self.base}?"
        return self.base

    @property
    def is_child_processor(self) -> bool:
        return is_child_processor_type(self.base)


CHILD_PROCESSOR = IRType(FRAGMENT_PROCESSOR)
NULLABLE_CHILD_PROCESSOR = IRType(FRAGMENT_PROCESSOR, nullable=True)


# Variables and Parameters


class KeyMode(Enum):
    """How a variable contributes to the processor key."""

    NONE = auto()
    KEY = auto()
    IDENTITY = auto()


@dataclass(frozen=True)
class Layout:
    """Contents of a ``layout(...)`` qualifier."""

    key: KeyMode = KeyMode.NONE
    ctype: str | None = None
    tracked: bool = False
    when: str | None = None


@dataclass
class IRVariable:
    """A top-level variable declaration."""

    name: str
    type: IRType
    is_in: bool = False
    is_uniform: bool = False
    layout: Layout = field(default_factory=Layout)
    init: "IRExpr | None" = None
    position: Position = field(default_factory=Position)

    @property
    def is_child_processor(self) -> bool:
        return self.type.is_child_processor

    @property
    def nullable(self) -> bool:
        return self.type.nullable

    @property
    def is_parameter(self) -> bool:
        """Whether the variable is a constructor parameter of the host class."""
        return self.is_in

    @property
    def is_private(self) -> bool:
        """Whether the variable is a global computed on the host side."""
        return not self.is_in and not self.is_uniform

    @property
    def is_key(self) -> bool:
        return self.layout.key is not KeyMode.NONE


@dataclass
class IRParameter:
    """Function parameter."""

    name: str
    type: IRType
    qualifier: str = ""


# Expressions


@dataclass
class IRExpr:
    """Base for all expressions."""

    result_type: IRType


@dataclass
class IRLiteral(IRExpr):
    """Literal value."""

    value: Any


@dataclass
class IRNull(IRExpr):
    """The ``null`` literal, only compared against nullable children."""


@dataclass
class IRName(IRExpr):
    """Reference to a global, parameter or local variable."""

    name: str


class Builtin(Enum):
    """Built-in color slots of the shader builder."""

    OUT_COLOR = "sk_OutColor"
    IN_COLOR = "sk_InColor"


@dataclass
class IRBuiltin(IRExpr):
    """Reference to ``sk_OutColor`` or ``sk_InColor``."""

    builtin: Builtin


@dataclass
class IRSetting(IRExpr):
    """Capability lookup ``sk_Caps.<name>``."""

    name: str


@dataclass
class IRTransformedCoords(IRExpr):
    """``sk_TransformedCoords2D[index]``."""

    index: int


@dataclass
class IRBinOp(IRExpr):
    """Binary operation."""

    op: str
    left: IRExpr
    right: IRExpr


@dataclass
class IRUnaryOp(IRExpr):
    """Unary operation."""

    op: str
    operand: IRExpr
    postfix: bool = False


@dataclass
class IRCall(IRExpr):
    """Function call. User functions are resolved against the program."""

    func: str
    args: list[IRExpr]


@dataclass
class IRSample(IRExpr):
    """``sample(child[, color][, coords])``."""

    child: str
    color: IRExpr | None = None
    coords: IRExpr | None = None
    position: Position = field(default_factory=Position)


@dataclass
class IRSwizzle(IRExpr):
    """Vector swizzle (e.g., .abgr)."""

    base: IRExpr
    components: str


@dataclass
class IRFieldAccess(IRExpr):
    """Struct or child-processor field access."""

    base: IRExpr
    field: str


@dataclass
class IRSubscript(IRExpr):
    """Array subscript."""

    base: IRExpr
    index: IRExpr


@dataclass
class IRTernary(IRExpr):
    """Ternary conditional."""

    condition: IRExpr
    true_expr: IRExpr
    false_expr: IRExpr


@dataclass
class IRConstruct(IRExpr):
    """Type constructor (e.g., half4(1.0))."""

    args: list[IRExpr]


# Statements


@dataclass
class IRStmt:
    """Base for all statements."""

    pass


@dataclass
class IRDeclare(IRStmt):
    """Local variable declaration."""

    name: str
    type: IRType
    init: IRExpr | None = None


@dataclass
class IRAssign(IRStmt):
    """Assignment."""

    target: IRExpr
    value: IRExpr


@dataclass
class IRAugmentedAssign(IRStmt):
    """Augmented assignment (+=, -=, etc.)."""

    target: IRExpr
    op: str
    value: IRExpr


@dataclass
class IRReturn(IRStmt):
    """Return statement."""

    value: IRExpr | None = None


@dataclass
class IRIf(IRStmt):
    """If statement."""

    condition: IRExpr
    then_body: list[IRStmt] = field(default_factory=list)
    else_body: list[IRStmt] = field(default_factory=list)


@dataclass
class IRFor(IRStmt):
    """For loop."""

    init: IRStmt | None
    condition: IRExpr | None
    update: IRStmt | None
    body: list[IRStmt] = field(default_factory=list)


@dataclass
class IRWhile(IRStmt):
    """While loop."""

    condition: IRExpr
    body: list[IRStmt] = field(default_factory=list)


@dataclass
class IRDoWhile(IRStmt):
    """Do-while loop."""

    condition: IRExpr
    body: list[IRStmt] = field(default_factory=list)


@dataclass
class IRBlock(IRStmt):
    """Nested scope."""

    body: list[IRStmt] = field(default_factory=list)


@dataclass
class IRExprStmt(IRStmt):
    """Expression as statement."""

    expr: IRExpr


@dataclass
class IRBreak(IRStmt):
    """Break statement."""

    pass


@dataclass
class IRContinue(IRStmt):
    """Continue statement."""

    pass


@dataclass
class IRDiscard(IRStmt):
    """Discard statement."""

    pass


# Functions and Sections


@dataclass
class IRFunction:
    """Function definition."""

    name: str
    params: list[IRParameter]
    return_type: IRType
    body: list[IRStmt] = field(default_factory=list)
    position: Position = field(default_factory=Position)

    @property
    def is_main(self) -> bool:
        return self.name == "main"


class SectionKind(Enum):
    """Closed set of ``@section`` kinds understood by the emitters.

    The value is the keyword used in the dialect source.
    """

    HEADER = "header"
    HEADER_END = "headerEnd"
    CLASS = "class"
    CPP = "cpp"
    CPP_END = "cppEnd"
    CONSTRUCTOR = "constructor"
    CONSTRUCTOR_CODE = "constructorCode"
    CONSTRUCTOR_PARAMS = "constructorParams"
    INITIALIZERS = "initializers"
    OPTIMIZATION_FLAGS = "optimizationFlags"
    EMIT_CODE = "emitCode"
    FIELDS = "fields"
    CLONE = "clone"
    MAKE = "make"
    COORD_TRANSFORM = "coordTransform"
    SET_DATA = "setData"
    TEST = "test"

    @property
    def requires_argument(self) -> bool:
        return self in (SectionKind.SET_DATA, SectionKind.TEST)

    @property
    def accepts_argument(self) -> bool:
        return self.requires_argument or self is SectionKind.COORD_TRANSFORM

    @property
    def permits_duplicates(self) -> bool:
        return self is SectionKind.COORD_TRANSFORM

    @classmethod
    def from_keyword(cls, keyword: str) -> "SectionKind":
        return cls(keyword.lstrip("@"))


@dataclass
class Section:
    """User-authored raw text block, e.g. ``@setData(pdman) { ... }``."""

    kind: SectionKind
    body: str
    argument: str = ""
    position: Position = field(default_factory=Position)


# Complete Program


ProgramElement = IRVariable | IRFunction | Section


@dataclass
class Program:
    """A parsed fragment processor.

    Attributes:
        elements: Variables, functions and sections in source order
        preamble: Leading block comment of the source file, copied verbatim
    """

    elements: list[ProgramElement] = field(default_factory=list)
    preamble: str = ""

    def __post_init__(self) -> None:
        mains = [f for f in self.functions if f.is_main]
        if len(mains) != 1:
            raise ValueError(
                f"Program must define exactly one 'main', found {len(mains)}"
            )

    @property
    def variables(self) -> list[IRVariable]:
        return [e for e in self.elements if isinstance(e, IRVariable)]

    @property
    def functions(self) -> list[IRFunction]:
        return [e for e in self.elements if isinstance(e, IRFunction)]

    @property
    def sections(self) -> list[Section]:
        return [e for e in self.elements if isinstance(e, Section)]

    @property
    def main(self) -> IRFunction:
        return next(f for f in self.functions if f.is_main)

    def variable(self, name: str) -> IRVariable | None:
        return next((v for v in self.variables if v.name == name), None)
