"""Implementation emitter.

Produces the implementation artifact: the nested ``GrGLSL<Name>`` class that
appends shader text at draw time, uniform registration and upload, the
processor key, equality, copy construction and the optional test factory.
"""

from loguru import logger

from fp2cpp.compiler.constants import INDENT, SOURCE_INCLUDES
from fp2cpp.compiler.header import ClassInfo
from fp2cpp.compiler.ir import IRVariable, KeyMode, SectionKind
from fp2cpp.compiler.lowering import Lowering
from fp2cpp.compiler.sections import Artifact
from fp2cpp.compiler.type_utils import host_default, host_type, type_tag
from fp2cpp.compiler.uniforms import access_type, find_mapper

_FLOAT_HOSTS = ("float", "SkPoint", "SkPoint3", "SkRect")

_KEY_COMPONENTS: dict[str, tuple[str, ...]] = {
    "SkPoint": (".fX", ".fY"),
    "SkIPoint": (".fX", ".fY"),
    "SkPoint3": (".fX", ".fY", ".fZ"),
    "SkRect": (".top()", ".left()", ".right()", ".bottom()"),
    "SkIRect": (".top()", ".left()", ".right()", ".bottom()"),
}


def _lines(lines: list[str], indent: int) -> str:
    return "".join(f"{INDENT * indent}{line}\n" for line in lines)


class SourceEmitter:
    """Generates the implementation artifact."""

    def __init__(self, info: ClassInfo):
        self.info = info
        self.sections = info.sections
        self.lowering = Lowering(info.program, info.children, info.caps, info.settings)

    def emit(self) -> str:
        info = self.info
        cls = info.class_name
        glsl = info.glsl_class_name
        out = Artifact()

        out.generated(info.banner)
        out.generated(f'#include "{cls}.h"\n\n')
        self.sections.splice(out, SectionKind.CPP)
        out.generated(SOURCE_INCLUDES)
        out.generated(
            f"class {glsl} : public GrGLSLFragmentProcessor {{\n"
            f"public:\n{INDENT}{glsl}() {{}}\n"
        )
        self._emit_code(out)
        out.generated("private:\n")
        self._set_data(out)
        out.generated(self._glsl_fields())
        out.generated("};\n")
        out.generated(
            f"GrGLSLFragmentProcessor* {cls}::onCreateGLSLInstance() const {{\n"
            f"{INDENT}return new {glsl}();\n}}\n"
        )
        out.generated(self._get_key())
        out.generated(self._is_equal())
        if SectionKind.CLONE in self.sections:
            self.sections.splice(out, SectionKind.CLONE)
        else:
            self._clone(out)
        self._test_hook(out)
        self.sections.splice(out, SectionKind.CPP_END)
        return out.render()

    # emitCode

    def _emit_code(self, out: Artifact) -> None:
        info = self.info
        lines = [
            "GrGLSLFPFragmentBuilder* fragBuilder = args.fFragBuilder;",
            f"const {info.class_name}& _outer = args.fFp.cast<{info.class_name}>();",
            "(void) _outer;",
        ]
        lines.extend(self._parameter_aliases())
        for var in info.private_globals:
            if var.init is not None:
                lines.append(f"{var.name} = {self.lowering.host_expr(var.init)};")
        for var in info.uniforms:
            lines.extend(self._register_uniform(var))

        out.generated(f"{INDENT}void emitCode(EmitArgs& args) override {{\n")
        out.generated(_lines(lines, 2))
        self.sections.splice(out, SectionKind.EMIT_CODE, suffix="\n")
        out.generated(self.lowering.lower())
        out.generated(f"{INDENT}}}\n")

    def _parameter_aliases(self) -> list[str]:
        lines: list[str] = []
        for var in self.info.value_parameters:
            lines.append(f"auto {var.name} = _outer.{var.name};")
            lines.append(f"(void) {var.name};")
        return lines

    def _register_uniform(self, var: IRVariable) -> list[str]:
        register = (
            f"{var.name}Var = args.fUniformHandler->addUniform("
            f'kFragment_GrShaderFlag, {type_tag(var.type.base)}, "{var.name}");'
        )
        return self._guarded(var, [register])

    def _guarded(self, var: IRVariable, body: list[str]) -> list[str]:
        """Wrap statements in the variable's ``when`` condition, if it has one."""
        if not var.layout.when:
            return body
        return [f"if ({var.layout.when}) {{", *(INDENT + line for line in body), "}"]

    # onSetData

    def _set_data(self, out: Artifact) -> None:
        info = self.info
        section = self.sections.get(SectionKind.SET_DATA)
        pdman = section.argument if section else "pdman"
        out.generated(
            f"{INDENT}void onSetData(const GrGLSLProgramDataManager& {pdman}, "
            "const GrFragmentProcessor& _proc) override {\n"
        )
        outer = f"const {info.class_name}& _outer = _proc.cast<{info.class_name}>();"

        if section:
            lines = [outer, "(void) _outer;"]
            for var in info.uniforms:
                lines.append(f"UniformHandle& {var.name} = {var.name}Var;")
                lines.append(f"(void) {var.name};")
            for var in info.value_parameters:
                if not var.is_uniform:
                    lines.append(f"auto {var.name} = _outer.{var.name};")
                    lines.append(f"(void) {var.name};")
            out.generated(_lines(lines, 2))
            self.sections.splice(out, SectionKind.SET_DATA, suffix="\n")
        else:
            uploaded = [v for v in info.uniforms if v.is_in]
            if uploaded:
                lines = [outer]
                if any(v.layout.when for v in uploaded):
                    lines.extend(self._parameter_aliases())
                for var in uploaded:
                    lines.extend(self._upload(var, pdman))
                out.generated(_lines(lines, 2))
        out.generated(f"{INDENT}}}\n")

    def _upload(self, var: IRVariable, pdman: str) -> list[str]:
        """Statements uploading one ``in uniform`` value."""
        name = var.name
        mapper = find_mapper(var.type, var.layout.ctype)
        if mapper is None:
            raise ValueError(
                f"Uniform '{name}' of type {var.type} has no upload rule for host "
                f"type {host_type(var.type, var.layout.ctype)}"
            )
        host = host_type(var.type, var.layout.ctype)
        body: list[str] = []
        if var.layout.tracked or not mapper.can_inline_value:
            value = f"{name}Value"
            body.append(f"{access_type(host)} {value} = _outer.{name};")
        else:
            value = f"(_outer.{name})"
        upload = mapper.upload(pdman, f"{name}Var", value) + ";"

        if var.layout.tracked:
            if not mapper.supports_tracking:
                raise ValueError(f"Uniform '{name}' of host type {host} cannot be tracked")
            body.append(f"if ({mapper.dirty(f'{name}Prev', value)}) {{")
            body.append(INDENT + mapper.save(f"{name}Prev", value) + ";")
            body.append(INDENT + upload)
            body.append("}")
        else:
            body.append(upload)

        if var.layout.when:
            return self._guarded(var, body)
        return ["{", *(INDENT + line for line in body), "}"]

    def _glsl_fields(self) -> str:
        info = self.info
        lines: list[str] = []
        for var in info.private_globals:
            host = host_type(var.type, var.layout.ctype)
            lines.append(f"{host} {var.name} = {host_default(host)};")
        for var in info.uniforms:
            if var.is_in and var.layout.tracked:
                mapper = find_mapper(var.type, var.layout.ctype)
                if mapper is not None and mapper.default is not None:
                    host = host_type(var.type, var.layout.ctype)
                    lines.append(f"{host} {var.name}Prev = {mapper.default};")
        for var in info.uniforms:
            lines.append(f"UniformHandle {var.name}Var;")
        return _lines(lines, 1)

    # Key, equality, copy

    def _get_key(self) -> str:
        info = self.info
        lines: list[str] = []
        for var in info.key_variables:
            if var.is_private and var.init is not None:
                host = host_type(var.type, var.layout.ctype)
                init = self.lowering.host_expr(var.init, owner="")
                lines.append(f"{host} {var.name} = {init};")
            lines.extend(self._key_statements(var))
        logger.debug(f"Processor key built from {len(info.key_variables)} variable(s)")
        return (
            f"void {info.class_name}::onGetGLSLProcessorKey(const GrShaderCaps& caps, "
            f"GrProcessorKeyBuilder* b) const {{\n{_lines(lines, 1)}}}\n"
        )

    def _key_statements(self, var: IRVariable) -> list[str]:
        name = var.name
        if var.layout.key is KeyMode.IDENTITY:
            return [f"b->add32({name}.isIdentity() ? 1 : 0);"]
        host = host_type(var.type, var.layout.ctype)
        if host == "SkPMColor4f":
            channels = (("Red", "fR"), ("Green", "fG"), ("Blue", "fB"), ("Alpha", "fA"))
            lines = [
                f"uint16_t {name}{label} = SkFloatToHalf({name}.{field});"
                for label, field in channels
            ]
            lines.append(f"b->add32(((uint32_t) {name}Red << 16) | {name}Green);")
            lines.append(f"b->add32(((uint32_t) {name}Blue << 16) | {name}Alpha);")
            return lines
        components = _KEY_COMPONENTS.get(host, ("",))
        if host in _FLOAT_HOSTS:
            return [f"b->add32(sk_bit_cast<uint32_t>({name}{c}));" for c in components]
        return [f"b->add32((int32_t) {name}{c});" for c in components]

    def _is_equal(self) -> str:
        cls = self.info.class_name
        lines = [f"const {cls}& that = other.cast<{cls}>();", "(void) that;"]
        for var in self.info.value_parameters:
            lines.append(f"if ({var.name} != that.{var.name}) return false;")
        lines.append("return true;")
        return (
            f"bool {cls}::onIsEqual(const GrFragmentProcessor& other) const {{\n"
            f"{_lines(lines, 1)}}}\n"
        )

    def _clone(self, out: Artifact) -> None:
        info = self.info
        cls = info.class_name
        out.generated(
            f"{cls}::{cls}(const {cls}& src)\n"
            f": INHERITED(k{cls}_ClassID, src.optimizationFlags())"
        )
        transforms = self.sections.coord_transforms()
        for transform in transforms:
            out.generated(f"\n, {transform.field_name}(src.{transform.field_name})")
        for var in info.parameters:
            field = f"{var.name}_index" if var.is_child_processor else var.name
            out.generated(f"\n, {field}(src.{field})")
        if SectionKind.INITIALIZERS in self.sections:
            out.generated("\n, ")
            self.sections.splice(out, SectionKind.INITIALIZERS)
        out.generated(" {\n")
        for transform in transforms:
            out.generated(f"{INDENT}this->addCoordTransform(&{transform.field_name});\n")
        out.generated(info.children.clone_code(indent=1))
        out.generated(
            "}\n"
            f"std::unique_ptr<GrFragmentProcessor> {cls}::clone() const {{\n"
            f"{INDENT}return std::unique_ptr<GrFragmentProcessor>(new {cls}(*this));\n"
            "}\n"
        )

    def _test_hook(self, out: Artifact) -> None:
        section = self.sections.get(SectionKind.TEST)
        if section is None or not self.info.settings.test_utils:
            return
        cls = self.info.class_name
        out.generated(
            f"GR_DEFINE_FRAGMENT_PROCESSOR_TEST({cls});\n"
            "#if GR_TEST_UTILS\n"
            f"std::unique_ptr<GrFragmentProcessor> {cls}::TestCreate("
            f"GrProcessorTestData* {section.argument}) {{\n"
        )
        self.sections.splice(out, SectionKind.TEST)
        out.generated("}\n#endif\n")
