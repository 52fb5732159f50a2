"""
Pytest configuration and shared fixtures for compiler tests.

Every scenario fixture builds the Program a front end would produce for a
small dialect source; the source is given in the fixture's docstring. Sample
sites carry the byte offset of their ``sample`` call in that source, which is
what the generated placeholder names are derived from.
"""

from collections.abc import Callable

import pytest

from fp2cpp.compiler import CompileResult, compile_fp
from fp2cpp.compiler.config import CompilerSettings, ShaderCaps
from fp2cpp.compiler.ir import (
    CHILD_PROCESSOR,
    NULLABLE_CHILD_PROCESSOR,
    Builtin,
    IRAssign,
    IRBinOp,
    IRBuiltin,
    IRCall,
    IRConstruct,
    IRDeclare,
    IRExpr,
    IRFieldAccess,
    IRFunction,
    IRIf,
    IRLiteral,
    IRName,
    IRNull,
    IRParameter,
    IRReturn,
    IRSample,
    IRSetting,
    IRStmt,
    IRSwizzle,
    IRTransformedCoords,
    IRType,
    IRVariable,
    KeyMode,
    Layout,
    Position,
    Program,
    Section,
    SectionKind,
)

HALF = IRType("half")
HALF2 = IRType("half2")
HALF4 = IRType("half4")
FLOAT = IRType("float")
FLOAT2 = IRType("float2")
BOOL = IRType("bool")
VOID = IRType("void")


def main_of(*stmts: IRStmt) -> IRFunction:
    return IRFunction("main", [], VOID, list(stmts))


def out_color(value: IRExpr) -> IRAssign:
    """``sk_OutColor = <value>;``"""
    return IRAssign(IRBuiltin(HALF4, Builtin.OUT_COLOR), value)


def in_color() -> IRBuiltin:
    return IRBuiltin(HALF4, Builtin.IN_COLOR)


def splat(value: float) -> IRConstruct:
    """``half4(<value>)``"""
    return IRConstruct(HALF4, [IRLiteral(HALF, value)])


def sample(
    child: str,
    offset: int,
    color: IRExpr | None = None,
    coords: IRExpr | None = None,
) -> IRSample:
    return IRSample(HALF4, child, color, coords, Position(offset, 1, offset + 1))


def child_var(name: str, nullable: bool = False) -> IRVariable:
    type_ = NULLABLE_CHILD_PROCESSOR if nullable else CHILD_PROCESSOR
    return IRVariable(name, type_, is_in=True)


@pytest.fixture
def caps() -> ShaderCaps:
    """Fixture providing the default capability descriptor."""
    return ShaderCaps.default()


@pytest.fixture
def compile_test(caps: ShaderCaps) -> Callable[..., CompileResult]:
    """Fixture compiling a program under the processor name ``Test``."""

    def compile_program(program: Program, **settings: object) -> CompileResult:
        config = CompilerSettings(**settings)  # type: ignore[arg-type]
        return compile_fp(program, "Test", caps, config)

    return compile_program


@pytest.fixture
def with_sections() -> Callable[..., Program]:
    """Fixture building ``<variables> <sections> void main() { sk_OutColor = half4(1); }``."""

    def build(*elements: IRVariable | Section) -> Program:
        return Program([*elements, main_of(out_color(splat(1.0)))])

    return build


@pytest.fixture
def hello_world() -> Program:
    """``/* HEADER */ void main() { sk_OutColor = half4(1); }``"""
    return Program([main_of(out_color(splat(1.0)))], preamble="/* HEADER */")


@pytest.fixture
def input_point() -> Program:
    """``layout(key) in half2 point; void main() { sk_OutColor = half4(point, point); }``"""
    point = IRName(HALF2, "point")
    return Program(
        [
            IRVariable("point", HALF2, is_in=True, layout=Layout(key=KeyMode.KEY)),
            main_of(out_color(IRConstruct(HALF4, [point, point]))),
        ]
    )


@pytest.fixture
def uniform_color() -> Program:
    """``uniform half4 color; void main() { sk_OutColor = color; }``"""
    return Program(
        [
            IRVariable("color", HALF4, is_uniform=True),
            main_of(out_color(IRName(HALF4, "color"))),
        ]
    )


def _in_uniform_color(layout: Layout) -> Program:
    return Program(
        [
            IRVariable("color", HALF4, is_in=True, is_uniform=True, layout=layout),
            main_of(out_color(IRName(HALF4, "color"))),
        ]
    )


@pytest.fixture
def in_uniform_color() -> Program:
    """``in uniform half4 color; void main() { sk_OutColor = color; }``"""
    return _in_uniform_color(Layout())


@pytest.fixture
def in_uniform_ctype() -> Program:
    """``layout(ctype=SkPMColor4f) in uniform half4 color; ...``"""
    return _in_uniform_color(Layout(ctype="SkPMColor4f"))


@pytest.fixture
def tracked_in_uniform() -> Program:
    """``layout(tracked) in uniform half4 color; ...``"""
    return _in_uniform_color(Layout(tracked=True))


@pytest.fixture
def non_inlined_in_uniform() -> Program:
    """``in uniform half2 point; void main() { sk_OutColor = half4(point, point); }``"""
    point = IRName(HALF2, "point")
    return Program(
        [
            IRVariable("point", HALF2, is_in=True, is_uniform=True),
            main_of(out_color(IRConstruct(HALF4, [point, point]))),
        ]
    )


@pytest.fixture
def conditional_in_uniform() -> Program:
    """
    ``layout(key) in bool test;``
    ``layout(ctype=SkPMColor4f, tracked, when=test) in uniform half4 color;``
    ``void main() { if (test) { sk_OutColor = color; } else { sk_OutColor = half4(1); } }``
    """
    return Program(
        [
            IRVariable("test", BOOL, is_in=True, layout=Layout(key=KeyMode.KEY)),
            IRVariable(
                "color",
                HALF4,
                is_in=True,
                is_uniform=True,
                layout=Layout(ctype="SkPMColor4f", tracked=True, when="test"),
            ),
            main_of(
                IRIf(
                    IRName(BOOL, "test"),
                    [out_color(IRName(HALF4, "color"))],
                    [out_color(splat(1.0))],
                )
            ),
        ]
    )


@pytest.fixture
def transformed_coords() -> Program:
    """
    ``void main() {``
    ``sk_OutColor = half4(sk_TransformedCoords2D[0], sk_TransformedCoords2D[0]); }``
    """
    coords = IRTransformedCoords(FLOAT2, 0)
    return Program([main_of(out_color(IRConstruct(HALF4, [coords, coords])))])


@pytest.fixture
def layout_when() -> Program:
    """
    ``layout(when=someExpression(someOtherExpression())) uniform half sometimes;``
    ``void main() {}``
    """
    return Program(
        [
            IRVariable(
                "sometimes",
                HALF,
                is_uniform=True,
                layout=Layout(when="someExpression(someOtherExpression())"),
            ),
            main_of(),
        ]
    )


@pytest.fixture
def child_processors() -> Program:
    """
    ``in fragmentProcessor child1; in fragmentProcessor child2;``
    ``void main() { sk_OutColor = sample(child1) * sample(child2); }``
    """
    return Program(
        [
            child_var("child1"),
            child_var("child2"),
            main_of(
                out_color(IRBinOp(HALF4, "*", sample("child1", 93), sample("child2", 110)))
            ),
        ]
    )


@pytest.fixture
def children_with_input() -> Program:
    """
    ``in fragmentProcessor child1; in fragmentProcessor child2;``
    ``void main() { half4 childIn = sk_InColor;``
    ``half4 childOut1 = sample(child1, childIn);``
    ``half4 childOut2 = sample(child2, childOut1); sk_OutColor = childOut2; }``
    """
    return Program(
        [
            child_var("child1"),
            child_var("child2"),
            main_of(
                IRDeclare("childIn", HALF4, in_color()),
                IRDeclare(
                    "childOut1", HALF4, sample("child1", 128, IRName(HALF4, "childIn"))
                ),
                IRDeclare(
                    "childOut2", HALF4, sample("child2", 174, IRName(HALF4, "childOut1"))
                ),
                out_color(IRName(HALF4, "childOut2")),
            ),
        ]
    )


@pytest.fixture
def child_with_input_expression() -> Program:
    """
    ``in fragmentProcessor child;``
    ``void main() { sk_OutColor = sample(child, sk_InColor * half4(0.5)); }``
    """
    color = IRBinOp(HALF4, "*", in_color(), splat(0.5))
    return Program([child_var("child"), main_of(out_color(sample("child", 64, color)))])


@pytest.fixture
def nested_children() -> Program:
    """
    ``in fragmentProcessor child1; in fragmentProcessor child2; void main() {``
    ``sk_OutColor = sample(child2, sk_InColor * sample(child1, sk_InColor * half4(0.5))); }``
    """
    inner = sample("child1", 121, IRBinOp(HALF4, "*", in_color(), splat(0.5)))
    outer = sample("child2", 93, IRBinOp(HALF4, "*", in_color(), inner))
    return Program([child_var("child1"), child_var("child2"), main_of(out_color(outer))])


@pytest.fixture
def child_and_global() -> Program:
    """
    ``in fragmentProcessor child; bool hasCap = sk_Caps.externalTextureSupport;``
    ``void main() { if (hasCap) { sk_OutColor = sample(child, sk_InColor); }``
    ``else { sk_OutColor = half4(1); } }``
    """
    return Program(
        [
            child_var("child"),
            IRVariable("hasCap", BOOL, init=IRSetting(BOOL, "externalTextureSupport")),
            main_of(
                IRIf(
                    IRName(BOOL, "hasCap"),
                    [out_color(sample("child", 130, in_color()))],
                    [out_color(splat(1.0))],
                )
            ),
        ]
    )


def _preserves_opaque_input() -> IRFieldAccess:
    return IRFieldAccess(BOOL, IRName(CHILD_PROCESSOR, "child"), "preservesOpaqueInput")


@pytest.fixture
def inline_field_access() -> Program:
    """
    ``in fragmentProcessor child; void main() { if (child.preservesOpaqueInput) {``
    ``sk_OutColor = sample(child, sk_InColor); } else { sk_OutColor = half4(1); } }``
    """
    return Program(
        [
            child_var("child"),
            main_of(
                IRIf(
                    _preserves_opaque_input(),
                    [out_color(sample("child", 105, in_color()))],
                    [out_color(splat(1.0))],
                )
            ),
        ]
    )


@pytest.fixture
def field_access() -> Program:
    """
    ``in fragmentProcessor child; bool opaque = child.preservesOpaqueInput;``
    ``void main() { if (opaque) { sk_OutColor = sample(child); }``
    ``else { sk_OutColor = half4(0.5); } }``
    """
    return Program(
        [
            child_var("child"),
            IRVariable("opaque", BOOL, init=_preserves_opaque_input()),
            main_of(
                IRIf(
                    IRName(BOOL, "opaque"),
                    [out_color(sample("child", 126))],
                    [out_color(splat(0.5))],
                )
            ),
        ]
    )


@pytest.fixture
def nullable_child() -> Program:
    """
    ``in fragmentProcessor? child; void main() { if (child != null) {``
    ``sk_OutColor = sample(child); } else { sk_OutColor = half4(0.5); } }``
    """
    is_present = IRBinOp(
        BOOL,
        "!=",
        IRName(NULLABLE_CHILD_PROCESSOR, "child"),
        IRNull(NULLABLE_CHILD_PROCESSOR),
    )
    return Program(
        [
            child_var("child", nullable=True),
            main_of(
                IRIf(is_present, [out_color(sample("child", 93))], [out_color(splat(0.5))])
            ),
        ]
    )


@pytest.fixture
def bad_in() -> Program:
    """``in half4 c; void main() { sk_OutColor = c; }``"""
    return Program(
        [
            IRVariable("c", HALF4, is_in=True, position=Position(0, 1, 1)),
            main_of(out_color(IRName(HALF4, "c"))),
        ]
    )


@pytest.fixture
def sample_coords() -> Program:
    """
    ``in fragmentProcessor child; @coordTransform { SkMatrix() } void main() {``
    ``sk_OutColor = sample(child) + sample(child, sk_TransformedCoords2D[0] / 2); }``
    """
    coords = IRBinOp(FLOAT2, "/", IRTransformedCoords(FLOAT2, 0), IRLiteral(FLOAT, 2))
    return Program(
        [
            child_var("child"),
            Section(SectionKind.COORD_TRANSFORM, " SkMatrix() "),
            main_of(
                out_color(
                    IRBinOp(
                        HALF4,
                        "+",
                        sample("child", 94),
                        sample("child", 110, coords=coords),
                    )
                )
            ),
        ]
    )


@pytest.fixture
def function_flip() -> Program:
    """
    ``in fragmentProcessor? child; half4 flip(half4 c) { return c.abgr; }``
    ``void main() { sk_OutColor = flip(sk_InColor); }``
    """
    flip = IRFunction(
        "flip",
        [IRParameter("c", HALF4)],
        HALF4,
        [IRReturn(IRSwizzle(HALF4, IRName(HALF4, "c"), "abgr"))],
    )
    return Program(
        [
            child_var("child", nullable=True),
            flip,
            main_of(out_color(IRCall(HALF4, "flip", [in_color()]))),
        ]
    )
