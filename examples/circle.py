"""Circle coverage processor.

Modulates the input color by the coverage of a circle. This example shows how
a program is handed to the compiler as a tree: the dialect source below is
what a front end would parse into the ``program`` object.

    layout(key) in bool inverse;
    in uniform float2 center;
    layout(tracked) in uniform half radius;
    @coordTransform { SkMatrix::I() }
    void main() {
        half d = length(sk_TransformedCoords2D[0] - center) - radius;
        half coverage = clamp(0.5 - d, 0.0, 1.0);
        if (inverse) {
            coverage = 1.0 - coverage;
        }
        sk_OutColor = sk_InColor * coverage;
    }

To compile:
    fp2cpp export examples/circle.py out/ --name Circle
"""

from fp2cpp.compiler.ir import (
    Builtin,
    IRAssign,
    IRBinOp,
    IRBuiltin,
    IRCall,
    IRDeclare,
    IRFunction,
    IRIf,
    IRLiteral,
    IRName,
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
HALF4 = IRType("half4")
FLOAT2 = IRType("float2")
BOOL = IRType("bool")
VOID = IRType("void")


def half(value: float) -> IRLiteral:
    return IRLiteral(HALF, value)


distance = IRBinOp(
    HALF,
    "-",
    IRCall(
        HALF,
        "length",
        [IRBinOp(FLOAT2, "-", IRTransformedCoords(FLOAT2, 0), IRName(FLOAT2, "center"))],
    ),
    IRName(HALF, "radius"),
)

coverage = IRCall(
    HALF,
    "clamp",
    [IRBinOp(HALF, "-", half(0.5), IRName(HALF, "d")), half(0.0), half(1.0)],
)

main = IRFunction(
    "main",
    [],
    VOID,
    [
        IRDeclare("d", HALF, distance),
        IRDeclare("coverage", HALF, coverage),
        IRIf(
            IRName(BOOL, "inverse"),
            [
                IRAssign(
                    IRName(HALF, "coverage"),
                    IRBinOp(HALF, "-", half(1.0), IRName(HALF, "coverage")),
                )
            ],
        ),
        IRAssign(
            IRBuiltin(HALF4, Builtin.OUT_COLOR),
            IRBinOp(
                HALF4, "*", IRBuiltin(HALF4, Builtin.IN_COLOR), IRName(HALF, "coverage")
            ),
        ),
    ],
)

program = Program(
    [
        IRVariable(
            "inverse",
            BOOL,
            is_in=True,
            layout=Layout(key=KeyMode.KEY),
            position=Position(0, 1, 1),
        ),
        IRVariable(
            "center", FLOAT2, is_in=True, is_uniform=True, position=Position(25, 2, 1)
        ),
        IRVariable(
            "radius",
            HALF,
            is_in=True,
            is_uniform=True,
            layout=Layout(tracked=True),
            position=Position(57, 3, 1),
        ),
        Section(SectionKind.COORD_TRANSFORM, " SkMatrix::I() ", position=Position(97, 4, 1)),
        main,
    ],
    preamble="/* Circle coverage */",
)
