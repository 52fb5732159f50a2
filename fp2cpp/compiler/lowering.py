"""Lowering of program functions into shader-builder calls.

Function bodies are transcribed into shader source in printf syntax. Whenever
the text depends on a host value (a parameter, a private global, a capability
or a sampled child) a placeholder is written and the C++ expression that
produces the value at draw time is recorded next to it. The accumulated text
is flushed into ``fragBuilder->codeAppendf`` calls, interleaved with the
statements that sample children, materialize coordinates and emit helper
functions.
"""

from loguru import logger

from fp2cpp.compiler.children import ChildRegistry
from fp2cpp.compiler.code_block import (
    Printf,
    ScopeManager,
    ShaderText,
    count_format_args,
    escape_cpp,
    split_format,
)
from fp2cpp.compiler.config import CompilerSettings, ShaderCaps
from fp2cpp.compiler.constants import (
    COORDS_FALLBACK,
    INDENT,
    INPUT_COLOR,
    MAX_FORMAT_CHUNK,
    OPERATOR_PRECEDENCE,
    OUTPUT_COLOR,
    SWIZZLE_MAP,
)
from fp2cpp.compiler.ir import (
    Builtin,
    IRAssign,
    IRAugmentedAssign,
    IRBinOp,
    IRBlock,
    IRBreak,
    IRBuiltin,
    IRCall,
    IRConstruct,
    IRContinue,
    IRDeclare,
    IRDiscard,
    IRDoWhile,
    IRExpr,
    IRExprStmt,
    IRFieldAccess,
    IRFor,
    IRFunction,
    IRIf,
    IRLiteral,
    IRName,
    IRNull,
    IRReturn,
    IRSample,
    IRSetting,
    IRStmt,
    IRSubscript,
    IRSwizzle,
    IRTernary,
    IRTransformedCoords,
    IRType,
    IRUnaryOp,
    IRVariable,
    IRWhile,
    Program,
)
from fp2cpp.compiler.ir_analysis import topological_sort
from fp2cpp.compiler.type_utils import (
    host_type,
    is_bool_type,
    is_float_type,
    is_matrix,
    is_vector,
    matrix_size,
    shader_default,
    type_tag,
    vector_size,
)

# Component accessors of host vector types, in shader component order
VECTOR_ACCESSORS: dict[str, tuple[str, ...]] = {
    "SkPoint": (".fX", ".fY"),
    "SkIPoint": (".fX", ".fY"),
    "SkPoint3": (".fX", ".fY", ".fZ"),
    "SkRect": (".left()", ".top()", ".right()", ".bottom()"),
    "SkIRect": (".left()", ".top()", ".right()", ".bottom()"),
    "SkPMColor4f": (".fR", ".fG", ".fB", ".fA"),
    "SkVector4": (".fData[0]", ".fData[1]", ".fData[2]", ".fData[3]"),
}

# Column-major element indices of SkMatrix (stored row-major)
_SKMATRIX_COLUMN_MAJOR = (0, 3, 6, 1, 4, 7, 2, 5, 8)


def _get_precedence(expr: IRExpr) -> int:
    """Get the precedence of an expression for parenthesization."""
    match expr:
        case IRBinOp(op=op):
            return OPERATOR_PRECEDENCE.get(op, 0)
        case IRUnaryOp():
            return OPERATOR_PRECEDENCE["unary"]
        case IRTernary():
            return OPERATOR_PRECEDENCE["?"]
        case IRCall() | IRConstruct():
            return OPERATOR_PRECEDENCE["call"]
        case IRFieldAccess() | IRSwizzle() | IRSubscript():
            return OPERATOR_PRECEDENCE["member"]
        case _:
            # Literals, names - highest precedence (no parens needed)
            return 100


def _merges_with_prefix(operand: IRExpr) -> bool:
    """Whether a prefix operator written before ``operand`` would fuse with it.

    ``-(-x)`` must not become ``--x``, nor ``-(-1.0)`` become ``--1.0``.
    """
    match operand:
        case IRUnaryOp(postfix=False):
            return True
        case IRLiteral(result_type, value):
            return format_literal(value, result_type).startswith(("-", "+"))
    return False


def format_float(value: float) -> str:
    """Format a float literal so that it always reads back as a float."""
    text = f"{float(value):.17g}"
    if not any(c in text for c in ".en"):
        text += ".0"
    return text


def format_literal(value: object, type_: IRType) -> str:
    """Format a literal of the given dialect type."""
    if isinstance(value, bool) or is_bool_type(type_.base):
        return "true" if value else "false"
    if is_float_type(type_.base) or isinstance(value, float):
        return format_float(value)  # type: ignore[arg-type]
    return str(value)


def runtime_value(type_: IRType, code: str, ctype: str | None = None) -> Printf:
    """Shader text that prints a host value at draw time.

    Args:
        type_: Dialect type of the value
        code: C++ expression producing the host value
        ctype: Host type override, if any

    Returns:
        Placeholder text with the matching arguments

    Raises:
        ValueError: If the type cannot be formatted into shader text
    """
    base = type_.base
    if is_bool_type(base) and not is_vector(base):
        return Printf("%s", (f'({code} ? "true" : "false")',))
    spec = "%f" if is_float_type(base) or is_matrix(base) else "%d"
    if vector_size(base) == 1:
        return Printf(spec, (code,))
    host = host_type(type_, ctype)
    if is_vector(base) and host in VECTOR_ACCESSORS:
        accessors = VECTOR_ACCESSORS[host]
        placeholders = ", ".join([spec] * len(accessors))
        return Printf(
            f"{base}({placeholders})", tuple(f"{code}{a}" for a in accessors)
        )
    if host == "SkMatrix":
        values = tuple(f"{code}.get({i})" for i in _SKMATRIX_COLUMN_MAJOR)
        return Printf(f"{base}({', '.join([spec] * 9)})", values)
    if host == "SkMatrix44":
        columns, rows = matrix_size(base)
        values = tuple(
            f"{code}.get({r}, {c})" for c in range(columns) for r in range(rows)
        )
        return Printf(f"{base}({', '.join([spec] * len(values))})", values)
    raise ValueError(f"Cannot format a value of type '{base}' ({host}) as shader text")


class Lowering:
    """Lowers the functions of one program into ``emitCode`` statements."""

    def __init__(
        self,
        program: Program,
        children: ChildRegistry,
        caps: ShaderCaps,
        settings: CompilerSettings,
    ):
        self.program = program
        self.children = children
        self.caps = caps
        self.settings = settings
        self.lines: list[str] = []
        self._root = ShaderText()
        self._out = self._root
        self._coords: set[int] = set()
        self._user_functions = {f.name for f in program.functions if not f.is_main}
        self._scopes = ScopeManager()
        self._scope_counter = 0

    # Top level

    def lower(self) -> str:
        """Lower private globals, helper functions and ``main``.

        Returns:
            ``emitCode`` statements, each indented and newline terminated
        """
        for var in self.program.variables:
            if var.is_private and not var.is_child_processor:
                self._root.write_line(self._global_declaration(var))

        helpers = [f for f in self.program.functions if not f.is_main]
        for func in topological_sort(helpers):
            self._lower_function(func)

        with self._scopes.scope("main"):
            for stmt in self.program.main.body:
                self._stmt(stmt)
                self._root.write_line()
        self._emit_format(*self._root.take_all())

        logger.debug(
            f"Lowered {len(helpers)} helper function(s) and main "
            f"into {len(self.lines)} emitCode line(s)"
        )
        return "".join(self.lines)

    def _global_declaration(self, var: IRVariable) -> Printf:
        value = runtime_value(var.type, var.name, var.layout.ctype)
        return f"{var.type.base} {var.name} = " + value + ";"

    def _lower_function(self, func: IRFunction) -> None:
        name = func.name
        self._add_line(f"SkString {name}_name;")
        params = ", ".join(
            f'GrShaderVar("{p.name}", {type_tag(p.type.base)})' for p in func.params
        )
        if func.params:
            self._add_line(f"const GrShaderVar {name}_args[] = {{ {params}}};")
        args_array = f"{name}_args" if func.params else "nullptr"

        body = ShaderText()
        previous, self._out = self._out, body
        try:
            with self._scopes.scope(name):
                for p in func.params:
                    self._scopes.declare(p.name)
                for stmt in func.body:
                    self._stmt(stmt)
                    body.write_line()
        finally:
            self._out = previous
        text, args = body.take_all()

        self._add_line(
            f"fragBuilder->emitFunction({type_tag(func.return_type.base)}, "
            f'"{name}", {len(func.params)}, {args_array}, '
            f"{Printf(text, tuple(args)).as_cpp_string()}, &{name}_name);"
        )
        logger.debug(f"Lowered helper function '{name}'")

    # Output

    def _flush(self) -> None:
        """Emit the shader text completed so far."""
        self._emit_format(*self._root.take_complete())

    def _emit_format(self, text: str, args: list[str]) -> None:
        for chunk in split_format(text, MAX_FORMAT_CHUNK):
            if not chunk:
                continue
            count = count_format_args(chunk)
            chunk_args, args = args[:count], args[count:]
            arg_text = "".join(f", {a}" for a in chunk_args)
            self.lines.append(
                f'{INDENT * 2}fragBuilder->codeAppendf("{escape_cpp(chunk)}"'
                f"{arg_text});\n"
            )

    def _add_line(self, line: str) -> None:
        """Emit one C++ statement, after any shader text that precedes it."""
        self._flush()
        self.lines.append(f"{INDENT * 2}{line}\n")

    # Statements

    def _block(self, body: list[IRStmt]) -> None:
        self._scope_counter += 1
        with self._out.block(), self._scopes.scope(f"block{self._scope_counter}"):
            for stmt in body:
                self._stmt(stmt)
                self._out.write_line()

    def _stmt(self, stmt: IRStmt) -> None:
        out = self._out
        match stmt:
            case IRDeclare() | IRAssign() | IRAugmentedAssign() | IRExprStmt():
                out.write(self._simple_stmt(stmt) + ";")

            case IRReturn(value):
                if value is not None:
                    out.write("return " + self._expr(value) + ";")
                else:
                    out.write("return;")

            case IRIf(condition, then_body, else_body):
                out.write("if (" + self._expr(condition) + ") ")
                self._block(then_body)
                if else_body:
                    out.write(" else ")
                    self._block(else_body)

            case IRFor(init, condition, update, body):
                self._scope_counter += 1
                with self._scopes.scope(f"for{self._scope_counter}"):
                    init_code = self._simple_stmt(init) if init else Printf()
                    cond_code = self._expr(condition) if condition else Printf()
                    update_code = self._simple_stmt(update) if update else Printf()
                    header = (
                        "for (" + init_code + "; " + cond_code + "; " + update_code
                    )
                    out.write(header + ") ")
                    self._block(body)

            case IRWhile(condition, body):
                out.write("while (" + self._expr(condition) + ") ")
                self._block(body)

            case IRDoWhile(condition, body):
                out.write("do ")
                self._block(body)
                out.write(" while (" + self._expr(condition) + ");")

            case IRBlock(body):
                self._block(body)

            case IRBreak():
                out.write("break;")

            case IRContinue():
                out.write("continue;")

            case IRDiscard():
                out.write("discard;")

    def _simple_stmt(self, stmt: IRStmt) -> Printf:
        """Lower a statement that fits on one line, without the semicolon."""
        match stmt:
            case IRDeclare(name, type_, init):
                self._scopes.declare(name)
                decl = Printf(f"{type_.base} {name}")
                if init is not None:
                    return decl + " = " + self._expr(init)
                return decl
            case IRAssign(target, value):
                return self._expr(target) + " = " + self._expr(value)
            case IRAugmentedAssign(target, op, value):
                op_text = "%%" if op == "%" else op
                return self._expr(target) + f" {op_text}= " + self._expr(value)
            case IRExprStmt(expr):
                return self._expr(expr)
        raise ValueError(f"Unsupported statement in this position: {stmt}")

    # Expressions

    def _expr(self, expr: IRExpr, parent_precedence: int = 0) -> Printf:
        """Lower an expression, adding parentheses only when necessary.

        Args:
            expr: The IR expression to lower
            parent_precedence: Precedence of parent operator (0 = top-level)
        """
        result = self._expr_inner(expr)
        if parent_precedence > 0 and _get_precedence(expr) < parent_precedence:
            return "(" + result + ")"
        return result

    def _expr_inner(self, expr: IRExpr) -> Printf:
        match expr:
            case IRLiteral(result_type, value):
                return Printf(format_literal(value, result_type))

            case IRName(_, name):
                return self._name(name)

            case IRBuiltin(_, builtin):
                slot = OUTPUT_COLOR if builtin is Builtin.OUT_COLOR else INPUT_COLOR
                return Printf("%s", (slot,))

            case IRSetting(result_type, name):
                folded = self._folded_setting(name, result_type)
                if folded is not None:
                    return Printf(folded)
                return runtime_value(result_type, f"sk_Caps.{name}")

            case IRTransformedCoords(_, index):
                return Printf("%s", (self._coords_name(index),))

            case IRBinOp(_, op, left, right):
                null_test = self._null_test(op, left, right, "_outer.")
                if null_test is not None:
                    return Printf("%s", (f'{null_test} ? "true" : "false"',))
                my_prec = OPERATOR_PRECEDENCE.get(op, 0)
                left_code = self._expr(left, my_prec)
                right_code = self._expr(right, my_prec + 1)
                op_text = "%%" if op == "%" else op
                return left_code + f" {op_text} " + right_code

            case IRUnaryOp(_, op, operand, postfix):
                operand_code = self._expr(operand, OPERATOR_PRECEDENCE["unary"])
                if postfix:
                    return operand_code + op
                if _merges_with_prefix(operand):
                    operand_code = "(" + operand_code + ")"
                return op + operand_code

            case IRCall(_, func, args):
                arg_code = Printf.join(", ", [self._expr(a) for a in args])
                if func in self._user_functions:
                    return Printf("%s", (f"{func}_name.c_str()",)) + "(" + arg_code + ")"
                return f"{func}(" + arg_code + ")"

            case IRSample():
                return self._sample(expr)

            case IRConstruct(result_type, args):
                arg_code = Printf.join(", ", [self._expr(a) for a in args])
                return f"{result_type.base}(" + arg_code + ")"

            case IRSwizzle(_, base, components):
                base_code = self._expr(base, OPERATOR_PRECEDENCE["member"])
                mapped = "".join(SWIZZLE_MAP.get(c, c) for c in components)
                return base_code + f".{mapped}"

            case IRFieldAccess(result_type, base, field):
                if isinstance(base, IRName) and base.name in self.children:
                    code = self._child_field(base.name, field, "_outer.")
                    return runtime_value(result_type, code)
                base_code = self._expr(base, OPERATOR_PRECEDENCE["member"])
                return base_code + f".{field}"

            case IRSubscript(_, base, index):
                base_code = self._expr(base, OPERATOR_PRECEDENCE["member"])
                return base_code + "[" + self._expr(index) + "]"

            case IRTernary(_, cond, true_e, false_e):
                prec = OPERATOR_PRECEDENCE["?"]
                return (
                    self._expr(cond, prec + 1)
                    + " ? "
                    + self._expr(true_e, prec)
                    + " : "
                    + self._expr(false_e, prec)
                )

            case IRNull():
                raise ValueError("'null' can only be compared to a child processor")

        raise ValueError(f"Unsupported expression: {expr}")

    def _name(self, name: str) -> Printf:
        if self._scopes.is_local(name):
            return Printf(name)
        var = self.program.variable(name)
        if var is None or var.is_private:
            return Printf(name)
        if var.is_child_processor:
            raise ValueError(f"Child processor '{name}' used as a value")
        if var.is_uniform:
            return Printf("%s", (self._uniform_reference(var),))
        return runtime_value(var.type, f"_outer.{name}", var.layout.ctype)

    def _uniform_reference(self, var: IRVariable) -> str:
        code = f"args.fUniformHandler->getUniformCStr({var.name}Var)"
        if var.layout.when:
            default = shader_default(var.type.base)
            return f'({var.layout.when}) ? {code} : "{default}"'
        return code

    def _coords_name(self, index: int) -> str:
        name = f"sk_TransformedCoords2D_{index}"
        if index not in self._coords:
            self._coords.add(index)
            self._add_line(
                f"SkString {name} = fragBuilder->ensureCoords2D("
                f"args.fTransformedCoords[{index}].fVaryingPoint);"
            )
        return (
            f"_outer.computeLocalCoordsInVertexShader() ? {name}.c_str() : "
            f"{COORDS_FALLBACK}"
        )

    def _sample(self, sample: IRSample) -> Printf:
        child = self.children.get(sample.child)
        offset = sample.position.offset
        self._flush()

        input_arg = ""
        if sample.color is not None:
            color = self._expr(sample.color)
            self._add_line(_string_declaration(f"_input{offset}", color))
            input_arg = f"_input{offset}.c_str(), "

        self._add_line(f'SkString _sample{offset}("_sample{offset}");')

        coords_arg = ""
        if sample.coords is not None:
            coords = self._expr(sample.coords)
            self._add_line(_string_declaration(f"_coords{offset}", coords))
            coords_arg = f", _coords{offset}.c_str()"

        invoke = (
            f"this->invokeChild(_outer.{child.index_field}, {input_arg}"
            f"&_sample{offset}, args{coords_arg});"
        )
        if child.nullable:
            self._add_line(f"if ({child.presence_check('_outer.')}) {{")
            self._add_line(INDENT + invoke)
            self._add_line("}")
        else:
            self._add_line(invoke)
        return Printf("%s", (f"_sample{offset}.c_str()",))

    # Helpers shared with host expressions

    def _null_test(self, op: str, left: IRExpr, right: IRExpr, owner: str) -> str | None:
        """C++ presence test for ``child == null`` / ``child != null``."""
        if op not in ("==", "!="):
            return None
        if isinstance(left, IRNull):
            left, right = right, left
        if not isinstance(right, IRNull) or not isinstance(left, IRName):
            return None
        child = self.children.get(left.name)
        if op == "!=":
            return child.presence_check(owner)
        return child.absence_check(owner)

    def _child_field(self, name: str, field: str, owner: str) -> str:
        child = self.children.get(name)
        return f"{owner}childProcessor({owner}{child.index_field}).{field}()"

    def _folded_setting(self, name: str, type_: IRType) -> str | None:
        if not self.settings.replace_settings:
            return None
        value = self.caps.lookup(name)
        if value is None:
            return None
        return format_literal(value, type_)

    # Host expressions

    def host_expr(self, expr: IRExpr, owner: str = "_outer.", parent_precedence: int = 0) -> str:
        """Render an expression as C++ evaluated on the host.

        Args:
            expr: Initializer expression of a private global
            owner: Prefix that reaches the processor's members
            parent_precedence: Precedence of parent operator (0 = top-level)

        Raises:
            ValueError: If the expression only has meaning inside the shader
        """
        result = self._host_inner(expr, owner)
        if parent_precedence > 0 and _get_precedence(expr) < parent_precedence:
            return f"({result})"
        return result

    def _host_inner(self, expr: IRExpr, owner: str) -> str:
        match expr:
            case IRLiteral(result_type, value):
                return format_literal(value, result_type)

            case IRName(_, name):
                var = self.program.variable(name)
                if var is not None and var.is_child_processor:
                    raise ValueError(f"Child processor '{name}' used as a value")
                return name

            case IRSetting(result_type, name):
                folded = self._folded_setting(name, result_type)
                return folded if folded is not None else f"sk_Caps.{name}"

            case IRFieldAccess(_, IRName(name=name), field) if name in self.children:
                return self._child_field(name, field, owner)

            case IRFieldAccess(_, base, field):
                member = OPERATOR_PRECEDENCE["member"]
                return f"{self.host_expr(base, owner, member)}.{field}"

            case IRBinOp(_, op, left, right):
                null_test = self._null_test(op, left, right, owner)
                if null_test is not None:
                    return null_test
                my_prec = OPERATOR_PRECEDENCE.get(op, 0)
                left_code = self.host_expr(left, owner, my_prec)
                right_code = self.host_expr(right, owner, my_prec + 1)
                return f"{left_code} {op} {right_code}"

            case IRUnaryOp(_, op, operand, postfix):
                operand_code = self.host_expr(operand, owner, OPERATOR_PRECEDENCE["unary"])
                if postfix:
                    return f"{operand_code}{op}"
                if _merges_with_prefix(operand):
                    operand_code = f"({operand_code})"
                return f"{op}{operand_code}"

            case IRCall(_, func, args) | IRConstruct(IRType(base=func), args):
                return f"{func}({', '.join(self.host_expr(a, owner) for a in args)})"

            case IRTernary(_, cond, true_e, false_e):
                prec = OPERATOR_PRECEDENCE["?"]
                return (
                    f"{self.host_expr(cond, owner, prec + 1)} ? "
                    f"{self.host_expr(true_e, owner, prec)} : "
                    f"{self.host_expr(false_e, owner, prec)}"
                )

            case IRSubscript(_, base, index):
                member = OPERATOR_PRECEDENCE["member"]
                return f"{self.host_expr(base, owner, member)}[{self.host_expr(index, owner)}]"

        raise ValueError(f"Expression cannot be evaluated on the host: {expr}")


def _string_declaration(name: str, code: Printf) -> str:
    """Declare an ``SkString`` holding shader text built at draw time."""
    if code.args:
        args = ", ".join(code.args)
        return f'SkString {name} = SkStringPrintf("{escape_cpp(code.text)}", {args});'
    return f'SkString {name}("{escape_cpp(code.text.replace("%%", "%"))}");'
