"""
Constants and fixed text for the fragment processor compiler.

This module contains operator precedences used when lowering expressions,
swizzle remapping tables and the boilerplate text shared by both artifacts.
"""

# Operator precedence for parenthesization (higher binds tighter)
OPERATOR_PRECEDENCE: dict[str, int] = {
    # Ternary has lowest precedence among expressions
    "?": 1,
    # Logical operators
    "||": 2,  # Logical OR
    "^^": 3,  # Logical XOR
    "&&": 4,  # Logical AND
    # Bitwise operators
    "|": 5,
    "^": 6,
    "&": 7,
    # Equality operators
    "==": 8,  # Equal
    "!=": 8,  # Not equal
    # Relational operators
    "<": 9,  # Less than
    ">": 9,  # Greater than
    "<=": 9,  # Less than or equal
    ">=": 9,  # Greater than or equal
    # Shift operators
    "<<": 10,
    ">>": 10,
    # Additive operators
    "+": 11,  # Addition
    "-": 11,  # Subtraction
    # Multiplicative operators
    "*": 12,  # Multiplication
    "/": 12,  # Division
    "%": 12,  # Modulo
    # Unary operators
    "unary": 13,
    # Function calls and member access
    "call": 14,
    "member": 15,
}

# Color and texture swizzle letters rewritten to positional ones
SWIZZLE_MAP: dict[str, str] = {
    "r": "x",
    "g": "y",
    "b": "z",
    "a": "w",
    "s": "x",
    "t": "y",
    "p": "z",
    "q": "w",
}

# Largest format string passed to a single codeAppendf call
MAX_FORMAT_CHUNK = 512

INDENT = "    "

BANNER_RULE = "*" * 98

BANNER = (
    f"\n/{BANNER_RULE}\n"
    " *** This file was autogenerated from {class_name}.fp; do not modify.\n"
    f" {BANNER_RULE}/\n"
)

HEADER_INCLUDES = (
    '#include "src/gpu/GrCoordTransform.h"\n'
    '#include "src/gpu/GrFragmentProcessor.h"\n'
)

SOURCE_INCLUDES = (
    '#include "include/gpu/GrTexture.h"\n'
    '#include "src/gpu/glsl/GrGLSLFragmentProcessor.h"\n'
    '#include "src/gpu/glsl/GrGLSLFragmentShaderBuilder.h"\n'
    '#include "src/gpu/glsl/GrGLSLProgramBuilder.h"\n'
    '#include "src/sksl/SkSLCPP.h"\n'
    '#include "src/sksl/SkSLUtil.h"\n'
)

# Shader-side names of the builder's color slots and coordinate fallback
OUTPUT_COLOR = "args.fOutputColor"
INPUT_COLOR = "args.fInputColor"
COORDS_FALLBACK = '"_coords"'

INVALID_IN_MESSAGE = (
    "'in' variable must be either 'uniform' or 'layout(key)', "
    "or there must be a custom @setData function"
)
