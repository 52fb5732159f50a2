"""Dialect type classification and host-side type mapping.

Types are referenced by their dialect name (``half4``, ``float3x3``,
``fragmentProcessor``). The helpers here answer shape questions about those
names and map them onto the host class's C++ types and the shader builder's
type tags.
"""

import re
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fp2cpp.compiler.ir import IRType

FRAGMENT_PROCESSOR = "fragmentProcessor"

FLOAT_SCALARS = ("half", "float")
INT_SCALARS = ("int", "short", "byte", "uint", "ushort", "ubyte")
SCALARS = FLOAT_SCALARS + INT_SCALARS + ("bool",)

_VECTOR_RE = re.compile(r"^(half|float|int|short|byte|uint|ushort|ubyte|bool)([2-4])$")
_MATRIX_RE = re.compile(r"^(half|float)([2-4])x([2-4])$")

# Host types for dialect types that are not a plain function of shape
_HOST_SCALARS: dict[str, str] = {
    "half": "float",
    "float": "float",
    "int": "int32_t",
    "short": "int32_t",
    "byte": "int32_t",
    "uint": "uint32_t",
    "ushort": "uint32_t",
    "ubyte": "uint32_t",
    "bool": "bool",
}

_FLOAT_VECTOR_HOST: dict[int, str] = {2: "SkPoint", 3: "SkPoint3", 4: "SkRect"}
_INT_VECTOR_HOST: dict[int, str] = {2: "SkIPoint", 4: "SkIRect"}
_MATRIX_HOST: dict[int, str] = {3: "SkMatrix", 4: "SkMatrix44"}

CHILD_HOST_TYPE = "std::unique_ptr<GrFragmentProcessor>"


def is_child_processor_type(base: str) -> bool:
    """Check whether a dialect type names a child processor."""
    return base == FRAGMENT_PROCESSOR


def scalar_of(base: str) -> str:
    """Get the scalar component type of a scalar, vector or matrix type."""
    if base in SCALARS:
        return base
    match = _VECTOR_RE.match(base) or _MATRIX_RE.match(base)
    if match:
        return match.group(1)
    return base


def vector_size(base: str) -> int:
    """Get the component count of a vector type (1 for scalars, 0 otherwise)."""
    if base in SCALARS:
        return 1
    match = _VECTOR_RE.match(base)
    if match:
        return int(match.group(2))
    return 0


def is_float_type(base: str) -> bool:
    return scalar_of(base) in FLOAT_SCALARS and not is_matrix(base)


def is_int_type(base: str) -> bool:
    return scalar_of(base) in INT_SCALARS


def is_bool_type(base: str) -> bool:
    return scalar_of(base) == "bool"


def is_vector(base: str) -> bool:
    return _VECTOR_RE.match(base) is not None


def is_matrix(base: str) -> bool:
    return _MATRIX_RE.match(base) is not None


def matrix_size(base: str) -> tuple[int, int]:
    """Get (columns, rows) of a matrix type."""
    match = _MATRIX_RE.match(base)
    if not match:
        raise ValueError(f"Not a matrix type: {base}")
    return int(match.group(2)), int(match.group(3))


def host_type(type_: "IRType", ctype: str | None = None) -> str:
    """Get the C++ type used for a variable on the host side.

    Args:
        type_: Dialect type of the variable
        ctype: ``layout(ctype=...)`` override, if any

    Returns:
        C++ type name

    Raises:
        ValueError: If the dialect type has no host counterpart
    """
    if ctype:
        return ctype
    base = type_.base
    if is_child_processor_type(base):
        return CHILD_HOST_TYPE
    if base in _HOST_SCALARS:
        return _HOST_SCALARS[base]
    if is_vector(base):
        size = vector_size(base)
        if is_float_type(base) and size in _FLOAT_VECTOR_HOST:
            return _FLOAT_VECTOR_HOST[size]
        if is_int_type(base) and size in _INT_VECTOR_HOST:
            return _INT_VECTOR_HOST[size]
    if is_matrix(base):
        columns, rows = matrix_size(base)
        if columns == rows and columns in _MATRIX_HOST:
            return _MATRIX_HOST[columns]
    raise ValueError(f"Type '{base}' has no host-side equivalent")


def host_default(host: str) -> str:
    """Get the initial value of a host field of the given C++ type."""
    match host:
        case "bool":
            return "false"
        case "float" | "int32_t" | "uint32_t":
            return "0"
        case "SkPoint" | "SkIPoint":
            return f"{host}::Make(0, 0)"
        case "SkPoint3":
            return "SkPoint3::Make(0, 0, 0)"
        case "SkRect" | "SkIRect":
            return f"{host}::MakeEmpty()"
        case "SkPMColor4f":
            return "SkPMColor4f{0, 0, 0, 0}"
        case "SkMatrix":
            return "SkMatrix::I()"
        case "SkMatrix44":
            return "SkMatrix44(SkMatrix44::kIdentity_Constructor)"
    return f"{host}()"


def shader_default(base: str) -> str:
    """Get a neutral value of a dialect type, written in shader syntax."""
    if is_bool_type(base) and not is_vector(base):
        return "false"
    if base in SCALARS:
        return "0"
    if is_matrix(base):
        return f"{base}(1)"
    return f"{base}(0)"


def type_tag(base: str) -> str:
    """Get the shader builder type tag, e.g. ``half4 -> kHalf4_GrSLType``."""
    return f"k{base[0].upper()}{base[1:]}_GrSLType"
