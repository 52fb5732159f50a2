"""Host-side uniform upload rules.

Each mapper describes how a host value of one C++ type is uploaded through the
program data manager and, for ``layout(tracked)`` uniforms, how its previous
value is cached. Templates use ``${name}`` placeholders:

- ``${pdman}``: the program data manager expression
- ``${uniform}``: the uniform handle
- ``${var}``: the value being uploaded
- ``${old}`` / ``${new}``: cached and current value in dirty checks and saves
"""

from dataclasses import dataclass
from string import Template

from fp2cpp.compiler.ir import IRType
from fp2cpp.compiler.type_utils import host_type

_SAVE = "${old} = ${new}"


@dataclass(frozen=True)
class UniformMapper:
    """Upload rule for one host type.

    Attributes:
        ctype: Host C++ type this mapper uploads
        dialect_types: Dialect types the host type may stand for
        set_uniform: Template of the upload call
        default: Sentinel that never compares equal to a real value, or None
            when the type cannot be tracked
        dirty_check: Template deciding whether the cached value is stale
        save_state: Template storing the current value in the cache
    """

    ctype: str
    dialect_types: tuple[str, ...]
    set_uniform: str
    default: str | None = None
    dirty_check: str = "${old} != ${new}"
    save_state: str = _SAVE

    @property
    def supports_tracking(self) -> bool:
        return self.default is not None

    @property
    def can_inline_value(self) -> bool:
        """Whether the upload reads its value exactly once."""
        return self.set_uniform.count("${var}") == 1

    def upload(self, pdman: str, uniform: str, var: str) -> str:
        return Template(self.set_uniform).substitute(
            pdman=pdman, uniform=uniform, var=var
        )

    def dirty(self, old: str, new: str) -> str:
        return Template(self.dirty_check).substitute(old=old, new=new)

    def save(self, old: str, new: str) -> str:
        return Template(self.save_state).substitute(old=old, new=new)


UNIFORM_MAPPERS: tuple[UniformMapper, ...] = (
    UniformMapper(
        "SkRect",
        ("half4", "float4"),
        "${pdman}.set4fv(${uniform}, 1, reinterpret_cast<const float*>(&${var}))",
        "SkRect::MakeEmpty()",
        "${old}.isEmpty() || ${old} != ${new}",
    ),
    UniformMapper(
        "SkIRect",
        ("int4", "short4", "byte4"),
        "${pdman}.set4iv(${uniform}, 1, reinterpret_cast<const int*>(&${var}))",
        "SkIRect::MakeEmpty()",
        "${old}.isEmpty() || ${old} != ${new}",
    ),
    UniformMapper(
        "SkPMColor4f",
        ("half4", "float4", "double4"),
        "${pdman}.set4fv(${uniform}, 1, ${var}.vec())",
        "{SK_FloatNaN, SK_FloatNaN, SK_FloatNaN, SK_FloatNaN}",
    ),
    UniformMapper(
        "SkVector4",
        ("half4", "float4", "double4"),
        "${pdman}.set4fv(${uniform}, 1, ${var}.fData)",
        "SkVector4(SK_MScalarNaN, SK_MScalarNaN, SK_MScalarNaN, SK_MScalarNaN)",
    ),
    UniformMapper(
        "SkPoint",
        ("half2", "float2", "double2"),
        "${pdman}.set2f(${uniform}, ${var}.fX, ${var}.fY)",
        "SkPoint::Make(SK_FloatNaN, SK_FloatNaN)",
    ),
    UniformMapper(
        "SkIPoint",
        ("int2", "short2", "byte2"),
        "${pdman}.set2i(${uniform}, ${var}.fX, ${var}.fY)",
        "SkIPoint::Make(SK_NaN32, SK_NaN32)",
    ),
    UniformMapper(
        "SkPoint3",
        ("half3", "float3", "double3"),
        "${pdman}.set3f(${uniform}, ${var}.fX, ${var}.fY, ${var}.fZ)",
        "SkPoint3::Make(SK_FloatNaN, SK_FloatNaN, SK_FloatNaN)",
    ),
    UniformMapper(
        "SkMatrix",
        ("half3x3", "float3x3", "double3x3"),
        "${pdman}.setSkMatrix(${uniform}, ${var})",
        "SkMatrix::MakeScale(SK_FloatNaN)",
        "!${old}.cheapEqualTo(${new})",
    ),
    UniformMapper(
        "SkMatrix44",
        ("half4x4", "float4x4", "double4x4"),
        "${pdman}.setSkMatrix44(${uniform}, ${var})",
        "SkMatrix44(SkMatrix44::kNaN_Constructor)",
    ),
    UniformMapper(
        "float",
        ("half", "float", "double"),
        "${pdman}.set1f(${uniform}, ${var})",
        "SK_FloatNaN",
    ),
    UniformMapper(
        "int32_t",
        ("int", "short", "byte"),
        "${pdman}.set1i(${uniform}, ${var})",
        "SK_NaN32",
    ),
    UniformMapper(
        "bool",
        ("bool",),
        "${pdman}.set1i(${uniform}, ${var})",
    ),
)


def find_mapper(type_: IRType, ctype: str | None = None) -> UniformMapper | None:
    """Find the upload rule for a uniform.

    Args:
        type_: Dialect type of the uniform
        ctype: ``layout(ctype=...)`` override, if any

    Returns:
        The matching mapper, or None when the pair is not supported
    """
    host = host_type(type_, ctype)
    for mapper in UNIFORM_MAPPERS:
        if mapper.ctype == host and type_.base in mapper.dialect_types:
            return mapper
    return None


def access_type(host: str) -> str:
    """Get the type of a local alias bound to a host value."""
    if host in ("int32_t", "float", "bool", "SkPMColor"):
        return host
    return f"const {host}&"
