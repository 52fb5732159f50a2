"""Header emitter.

Produces the declaration of the host ``GrFragmentProcessor`` subclass: the
``Make`` factory, overridden hooks, parameter fields and the private
constructor.
"""

import re
from dataclasses import dataclass, field

from fp2cpp.compiler.children import ChildRegistry
from fp2cpp.compiler.config import CompilerSettings, ShaderCaps
from fp2cpp.compiler.constants import BANNER, HEADER_INCLUDES, INDENT
from fp2cpp.compiler.ir import IRVariable, Program, SectionKind
from fp2cpp.compiler.qualifiers import Classification, VariableRole
from fp2cpp.compiler.sections import Artifact, SectionTable
from fp2cpp.compiler.type_utils import host_type


def split_parameter_list(text: str) -> list[str]:
    """Split a C++ parameter list on top-level commas."""
    parts: list[str] = []
    depth = 0
    current = ""
    for c in text:
        if c in "<([":
            depth += 1
        elif c in ">)]":
            depth -= 1
        if c == "," and depth == 0:
            parts.append(current)
            current = ""
        else:
            current += c
    if current.strip():
        parts.append(current)
    return parts


def parameter_name(declaration: str) -> str:
    """Get the declared name from a ``type name [= default]`` declaration."""
    match = re.search(r"(\w+)\s*$", declaration.split("=")[0])
    return match.group(1) if match else declaration.strip()


@dataclass
class ClassInfo:
    """Everything both emitters need to know about the processor class.

    Attributes:
        program: Program being compiled
        name: Processor name, as returned by ``name()``
        roles: Classification of every program-level variable
        sections: Resolved section table
        children: Child-processor registry
        caps: Capability descriptor
        settings: Compiler settings
    """

    program: Program
    name: str
    roles: list[Classification]
    sections: SectionTable
    children: ChildRegistry
    caps: ShaderCaps = field(default_factory=ShaderCaps.default)
    settings: CompilerSettings = field(default_factory=CompilerSettings)

    @property
    def class_name(self) -> str:
        return f"{self.settings.class_prefix}{self.name}"

    @property
    def glsl_class_name(self) -> str:
        return f"{self.settings.class_prefix}GLSL{self.name}"

    @property
    def banner(self) -> str:
        preamble = f"{self.program.preamble}\n"
        return preamble + BANNER.format(class_name=self.class_name)

    def with_role(self, *roles: VariableRole) -> list[IRVariable]:
        return [c.variable for c in self.roles if c.role in roles]

    @property
    def parameters(self) -> list[IRVariable]:
        """Constructor parameters in declaration order."""
        return [c.variable for c in self.roles if c.role.is_parameter]

    @property
    def value_parameters(self) -> list[IRVariable]:
        """Parameters stored as fields of the host class."""
        return [v for v in self.parameters if not v.is_child_processor]

    @property
    def uniforms(self) -> list[IRVariable]:
        return [c.variable for c in self.roles if c.role.is_uniform]

    @property
    def private_globals(self) -> list[IRVariable]:
        return self.with_role(VariableRole.FIELD)

    @property
    def key_variables(self) -> list[IRVariable]:
        return [c.variable for c in self.roles if c.variable.is_key]

    def constructor_params(self) -> str:
        """Parameter list shared by ``Make`` and the private constructor."""
        params = ", ".join(
            f"{host_type(v.type, v.layout.ctype)} {v.name}" for v in self.parameters
        )
        extra = self.sections.text(SectionKind.CONSTRUCTOR_PARAMS)
        if extra:
            return f"{params}, {extra}" if params else extra
        return params

    def constructor_args(self) -> str:
        """Argument list forwarding the ``Make`` parameters to the constructor."""
        args = [
            f"std::move({v.name})" if v.is_child_processor else v.name
            for v in self.parameters
        ]
        extra = self.sections.text(SectionKind.CONSTRUCTOR_PARAMS)
        args.extend(parameter_name(p) for p in split_parameter_list(extra))
        return ", ".join(args)


class HeaderEmitter:
    """Generates the class declaration artifact."""

    def __init__(self, info: ClassInfo):
        self.info = info
        self.sections = info.sections

    def emit(self) -> str:
        info = self.info
        cls = info.class_name
        out = Artifact()

        out.generated(info.banner)
        out.generated(
            f"#ifndef {cls}_DEFINED\n#define {cls}_DEFINED\n"
            '#include "include/core/SkTypes.h"\n'
        )
        self.sections.splice(out, SectionKind.HEADER)
        out.generated(f"\n{HEADER_INCLUDES}")
        out.generated(f"class {cls} : public GrFragmentProcessor {{\npublic:\n")
        self.sections.splice(out, SectionKind.CLASS)

        if SectionKind.MAKE in self.sections:
            self.sections.splice(out, SectionKind.MAKE)
        else:
            out.generated(self._make())

        out.generated(
            f"{INDENT}{cls}(const {cls}& src);\n"
            f"{INDENT}std::unique_ptr<GrFragmentProcessor> clone() const override;\n"
            f'{INDENT}const char* name() const override {{ return "{info.name}"; }}\n'
        )

        self.sections.splice(out, SectionKind.FIELDS)
        out.generated(self._fields())
        out.generated("private:\n")

        if SectionKind.CONSTRUCTOR in self.sections:
            self.sections.splice(out, SectionKind.CONSTRUCTOR)
        else:
            self._constructor(out)

        out.generated(
            f"{INDENT}GrGLSLFragmentProcessor* onCreateGLSLInstance() const override;\n"
            f"{INDENT}void onGetGLSLProcessorKey(const GrShaderCaps&,"
            "GrProcessorKeyBuilder*) const override;\n"
            f"{INDENT}bool onIsEqual(const GrFragmentProcessor&) const override;\n"
            f"{INDENT}GR_DECLARE_FRAGMENT_PROCESSOR_TEST\n"
            f"{INDENT}typedef GrFragmentProcessor INHERITED;\n"
            "};\n"
        )
        self.sections.splice(out, SectionKind.HEADER_END)
        out.generated("#endif\n")
        return out.render()

    def _make(self) -> str:
        info = self.info
        return (
            f"{INDENT}static std::unique_ptr<GrFragmentProcessor> "
            f"Make({info.constructor_params()}) {{\n"
            f"{INDENT * 2}return std::unique_ptr<GrFragmentProcessor>("
            f"new {info.class_name}({info.constructor_args()}));\n"
            f"{INDENT}}}\n"
        )

    def _fields(self) -> str:
        lines = [
            f"GrCoordTransform {t.field_name};" for t in self.sections.coord_transforms()
        ]
        for var in self.info.parameters:
            if var.is_child_processor:
                lines.append(f"int {var.name}_index = -1;")
            else:
                lines.append(f"{host_type(var.type, var.layout.ctype)} {var.name};")
        return "".join(f"{INDENT}{line}\n" for line in lines)

    def _constructor(self, out: Artifact) -> None:
        info = self.info
        flags = self.sections.text(SectionKind.OPTIMIZATION_FLAGS)
        flags = f"(OptimizationFlags) {flags}" if flags else "kNone_OptimizationFlags"
        out.generated(
            f"{INDENT}{info.class_name}({info.constructor_params()})\n"
            f"{INDENT}: INHERITED(k{info.class_name}_ClassID, {flags})"
        )
        if SectionKind.INITIALIZERS in self.sections:
            out.generated(f"\n{INDENT}, ")
            self.sections.splice(out, SectionKind.INITIALIZERS)
        transforms = self.sections.coord_transforms()
        for transform in transforms:
            out.generated(f"\n{INDENT}, {transform.initializer}")
        for var in info.value_parameters:
            out.generated(f"\n{INDENT}, {var.name}({var.name})")
        out.generated(" {\n")
        self.sections.splice(out, SectionKind.CONSTRUCTOR_CODE)
        for transform in transforms:
            out.generated(f"{INDENT * 2}this->addCoordTransform(&{transform.field_name});\n")
        out.generated(info.children.registration_code(indent=2))
        out.generated(f"{INDENT}}}\n")
