"""IR analysis utilities.

Provides expression walking over function bodies, discovery of ``sample()``
sites and call dependencies, and topological ordering of user functions.
"""

from collections import defaultdict
from collections.abc import Iterator

from fp2cpp.compiler.ir import (
    IRAssign,
    IRAugmentedAssign,
    IRBinOp,
    IRBlock,
    IRCall,
    IRConstruct,
    IRDeclare,
    IRDoWhile,
    IRExpr,
    IRExprStmt,
    IRFieldAccess,
    IRFor,
    IRFunction,
    IRIf,
    IRReturn,
    IRSample,
    IRStmt,
    IRSubscript,
    IRSwizzle,
    IRTernary,
    IRUnaryOp,
    IRWhile,
    Program,
)


def walk_stmts(stmts: list[IRStmt]) -> Iterator[IRExpr]:
    """Yield every expression reachable from a statement list, parents first."""
    for stmt in stmts:
        yield from walk_stmt(stmt)


def walk_stmt(stmt: IRStmt) -> Iterator[IRExpr]:
    """Yield every expression reachable from a statement."""
    match stmt:
        case IRDeclare(init=init):
            if init:
                yield from walk_expr(init)
        case IRAssign(target=target, value=value):
            yield from walk_expr(target)
            yield from walk_expr(value)
        case IRAugmentedAssign(target=target, value=value):
            yield from walk_expr(target)
            yield from walk_expr(value)
        case IRReturn(value=value):
            if value:
                yield from walk_expr(value)
        case IRIf(condition=cond, then_body=then_b, else_body=else_b):
            yield from walk_expr(cond)
            yield from walk_stmts(then_b)
            yield from walk_stmts(else_b)
        case IRFor(init=init, condition=cond, update=update, body=body):
            if init:
                yield from walk_stmt(init)
            if cond:
                yield from walk_expr(cond)
            if update:
                yield from walk_stmt(update)
            yield from walk_stmts(body)
        case IRWhile(condition=cond, body=body) | IRDoWhile(condition=cond, body=body):
            yield from walk_expr(cond)
            yield from walk_stmts(body)
        case IRBlock(body=body):
            yield from walk_stmts(body)
        case IRExprStmt(expr=expr):
            yield from walk_expr(expr)


def walk_expr(expr: IRExpr) -> Iterator[IRExpr]:
    """Yield an expression and all of its subexpressions."""
    yield expr
    match expr:
        case IRBinOp(left=left, right=right):
            yield from walk_expr(left)
            yield from walk_expr(right)
        case IRUnaryOp(operand=operand):
            yield from walk_expr(operand)
        case IRCall(args=args) | IRConstruct(args=args):
            for arg in args:
                yield from walk_expr(arg)
        case IRSample(color=color, coords=coords):
            if color:
                yield from walk_expr(color)
            if coords:
                yield from walk_expr(coords)
        case IRSwizzle(base=base) | IRFieldAccess(base=base):
            yield from walk_expr(base)
        case IRSubscript(base=base, index=index):
            yield from walk_expr(base)
            yield from walk_expr(index)
        case IRTernary(condition=cond, true_expr=true_e, false_expr=false_e):
            yield from walk_expr(cond)
            yield from walk_expr(true_e)
            yield from walk_expr(false_e)


def find_samples(program: Program) -> list[IRSample]:
    """Find every ``sample()`` site in the program's functions, in source order."""
    samples: list[IRSample] = []
    for func in program.functions:
        samples.extend(e for e in walk_stmts(func.body) if isinstance(e, IRSample))
    return sorted(samples, key=lambda s: s.position.offset)


def children_sampled_with_coords(program: Program) -> set[str]:
    """Names of children sampled with explicit coordinates at least once."""
    return {s.child for s in find_samples(program) if s.coords is not None}


def find_called_functions(func: IRFunction, all_func_names: set[str]) -> set[str]:
    """Names of the program functions that ``func`` calls directly.

    Args:
        func: Caller whose body is scanned
        all_func_names: Names defined by the program; built-ins are ignored

    Returns:
        Callee names, including ``func`` itself when it recurses
    """
    return {
        e.func
        for e in walk_stmts(func.body)
        if isinstance(e, IRCall) and e.func in all_func_names
    }


def topological_sort(functions: list[IRFunction]) -> list[IRFunction]:
    """Sort functions so that callees come before callers.

    The shader builder can only call functions that were emitted earlier, so
    helpers must be lowered before the functions that use them. Functions
    without a dependency between them keep their source order.

    Args:
        functions: Program functions in source order

    Returns:
        The same functions, each after every function it calls
    """
    func_names = {f.name for f in functions}
    dependencies: dict[str, set[str]] = defaultdict(set)
    for func in functions:
        dependencies[func.name] = find_called_functions(func, func_names) - {func.name}

    result: list[IRFunction] = []
    visited: set[str] = set()
    func_map = {f.name: f for f in functions}

    def visit(name: str, path: set[str]) -> None:
        if name in visited or name in path:
            return
        path.add(name)
        for dep in sorted(dependencies[name], key=list(func_map).index):
            visit(dep, path)
        path.discard(name)
        visited.add(name)
        result.append(func_map[name])

    for func in functions:
        visit(func.name, set())

    return result
