"""Blend of two child processors.

Samples a required child and an optional one and blends them with a helper
function. Equivalent dialect source:

    in fragmentProcessor src;
    in fragmentProcessor? dst;
    layout(key) in int mode;
    half4 premul(half4 c) { return half4(c.rgb * c.a, c.a); }
    void main() {
        half4 s = sample(src, sk_InColor);
        half4 d = dst != null ? sample(dst, sk_InColor) : sk_InColor;
        if (mode == 1) {
            s = premul(s);
        }
        sk_OutColor = s + d * (1.0 - s.a);
    }

To compile:
    fp2cpp export examples/blend_children.py --name BlendChildren
"""

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
    IRFunction,
    IRIf,
    IRLiteral,
    IRName,
    IRNull,
    IRParameter,
    IRReturn,
    IRSample,
    IRSwizzle,
    IRTernary,
    IRType,
    IRVariable,
    KeyMode,
    Layout,
    Position,
    Program,
)

HALF = IRType("half")
HALF3 = IRType("half3")
HALF4 = IRType("half4")
INT = IRType("int")
BOOL = IRType("bool")


def in_color() -> IRBuiltin:
    return IRBuiltin(HALF4, Builtin.IN_COLOR)


premul = IRFunction(
    "premul",
    [IRParameter("c", HALF4)],
    HALF4,
    [
        IRReturn(
            IRConstruct(
                HALF4,
                [
                    IRBinOp(
                        HALF3,
                        "*",
                        IRSwizzle(HALF3, IRName(HALF4, "c"), "rgb"),
                        IRSwizzle(HALF, IRName(HALF4, "c"), "a"),
                    ),
                    IRSwizzle(HALF, IRName(HALF4, "c"), "a"),
                ],
            )
        )
    ],
    position=Position(80, 4, 1),
)

main = IRFunction(
    "main",
    [],
    IRType("void"),
    [
        IRDeclare(
            "s",
            HALF4,
            IRSample(HALF4, "src", color=in_color(), position=Position(160, 6, 15)),
        ),
        IRDeclare(
            "d",
            HALF4,
            IRTernary(
                HALF4,
                IRBinOp(
                    BOOL, "!=", IRName(NULLABLE_CHILD_PROCESSOR, "dst"), IRNull(HALF4)
                ),
                IRSample(HALF4, "dst", color=in_color(), position=Position(211, 7, 29)),
                in_color(),
            ),
        ),
        IRIf(
            IRBinOp(BOOL, "==", IRName(INT, "mode"), IRLiteral(INT, 1)),
            [IRAssign(IRName(HALF4, "s"), IRCall(HALF4, "premul", [IRName(HALF4, "s")]))],
        ),
        IRAssign(
            IRBuiltin(HALF4, Builtin.OUT_COLOR),
            IRBinOp(
                HALF4,
                "+",
                IRName(HALF4, "s"),
                IRBinOp(
                    HALF4,
                    "*",
                    IRName(HALF4, "d"),
                    IRBinOp(
                        HALF,
                        "-",
                        IRLiteral(HALF, 1.0),
                        IRSwizzle(HALF, IRName(HALF4, "s"), "a"),
                    ),
                ),
            ),
        ),
    ],
    position=Position(137, 5, 1),
)

program = Program(
    [
        IRVariable("src", CHILD_PROCESSOR, is_in=True, position=Position(0, 1, 1)),
        IRVariable(
            "dst", NULLABLE_CHILD_PROCESSOR, is_in=True, position=Position(28, 2, 1)
        ),
        IRVariable(
            "mode",
            INT,
            is_in=True,
            layout=Layout(key=KeyMode.KEY),
            position=Position(56, 3, 1),
        ),
        premul,
        main,
    ]
)
