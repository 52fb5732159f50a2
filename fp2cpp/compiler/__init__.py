"""
Compilation of fragment processor programs.

This module provides the top-level interface that turns a resolved ``Program``
into the C++ header and implementation of a ``GrFragmentProcessor`` subclass.
"""

from dataclasses import dataclass

from loguru import logger

from fp2cpp.compiler.children import ChildRegistry
from fp2cpp.compiler.config import CompilerSettings, ShaderCaps
from fp2cpp.compiler.errors import CompilerError
from fp2cpp.compiler.header import ClassInfo, HeaderEmitter
from fp2cpp.compiler.ir import Program
from fp2cpp.compiler.qualifiers import resolve_qualifiers
from fp2cpp.compiler.sections import SectionTable
from fp2cpp.compiler.source import SourceEmitter


@dataclass(frozen=True)
class CompileResult:
    """Both artifacts of one compile.

    Attributes:
        class_name: Name of the generated host class (e.g. ``GrTest``)
        header: Declaration artifact (``<class_name>.h``)
        source: Implementation artifact (``<class_name>.cpp``)
    """

    class_name: str
    header: str
    source: str

    @property
    def header_file(self) -> str:
        return f"{self.class_name}.h"

    @property
    def source_file(self) -> str:
        return f"{self.class_name}.cpp"


def analyze(
    program: Program,
    name: str,
    caps: ShaderCaps | None = None,
    settings: CompilerSettings | None = None,
) -> ClassInfo:
    """Resolve qualifiers, sections and children of a program.

    Args:
        program: Program produced by the front end
        name: Processor name; the host class is ``<class_prefix><name>``
        caps: Capability descriptor, defaults to ``ShaderCaps.default()``
        settings: Compiler settings, defaults to ``CompilerSettings()``

    Returns:
        Class description shared by both emitters

    Raises:
        CompilerError: If an ``in`` declaration is invalid
    """
    roles = resolve_qualifiers(program)
    info = ClassInfo(
        program=program,
        name=name,
        roles=roles,
        sections=SectionTable(program),
        children=ChildRegistry(program),
        caps=caps or ShaderCaps.default(),
        settings=settings or CompilerSettings(),
    )
    logger.debug(
        f"Analyzed {info.class_name}: {len(info.parameters)} parameter(s), "
        f"{len(info.uniforms)} uniform(s), {len(info.children)} child(ren)"
    )
    return info


def to_h(
    program: Program,
    name: str,
    caps: ShaderCaps | None = None,
    settings: CompilerSettings | None = None,
) -> str:
    """Generate the header artifact.

    Raises:
        CompilerError: If an ``in`` declaration is invalid
    """
    return HeaderEmitter(analyze(program, name, caps, settings)).emit()


def to_cpp(
    program: Program,
    name: str,
    caps: ShaderCaps | None = None,
    settings: CompilerSettings | None = None,
) -> str:
    """Generate the implementation artifact.

    Raises:
        CompilerError: If an ``in`` declaration is invalid
    """
    return SourceEmitter(analyze(program, name, caps, settings)).emit()


def compile_fp(
    program: Program,
    name: str,
    caps: ShaderCaps | None = None,
    settings: CompilerSettings | None = None,
) -> CompileResult:
    """Compile a program into both artifacts.

    Compilation is a pure function of its arguments; nothing is written to disk
    and no state survives the call.

    Args:
        program: Program produced by the front end
        name: Processor name; the host class is ``<class_prefix><name>``
        caps: Capability descriptor, defaults to ``ShaderCaps.default()``
        settings: Compiler settings, defaults to ``CompilerSettings()``

    Returns:
        The header and implementation text

    Raises:
        CompilerError: If an ``in`` declaration is invalid; no artifact is
            produced in that case
    """
    info = analyze(program, name, caps, settings)
    header = HeaderEmitter(info).emit()
    source = SourceEmitter(info).emit()
    logger.debug(
        f"Generated {info.class_name}: header {len(header)} bytes, "
        f"source {len(source)} bytes"
    )
    return CompileResult(info.class_name, header, source)


__all__ = [
    "CompileResult",
    "CompilerError",
    "CompilerSettings",
    "ShaderCaps",
    "analyze",
    "compile_fp",
    "to_cpp",
    "to_h",
]
