"""Qualifier resolution.

Classifies every program-level variable into the role that decides how the
emitters treat it, and rejects ``in`` declarations whose value could never
reach the shader.
"""

from dataclasses import dataclass
from enum import Enum

from loguru import logger

from fp2cpp.compiler.constants import INVALID_IN_MESSAGE
from fp2cpp.compiler.errors import CompilerError
from fp2cpp.compiler.ir import IRVariable, Program, SectionKind


class VariableRole(Enum):
    """Role of a program-level variable in the generated classes."""

    PARAM_UNIFORM = "in uniform"
    PARAM_KEY = "in key"
    PARAM_CUSTOM = "in (custom @setData)"
    UNIFORM = "uniform"
    FIELD = "field"
    CHILD = "child"

    @property
    def is_parameter(self) -> bool:
        return self in (
            VariableRole.PARAM_UNIFORM,
            VariableRole.PARAM_KEY,
            VariableRole.PARAM_CUSTOM,
            VariableRole.CHILD,
        )

    @property
    def is_uniform(self) -> bool:
        return self in (VariableRole.PARAM_UNIFORM, VariableRole.UNIFORM)


@dataclass(frozen=True)
class Classification:
    """Role assigned to one variable."""

    variable: IRVariable
    role: VariableRole


def has_set_data(program: Program) -> bool:
    return any(s.kind is SectionKind.SET_DATA for s in program.sections)


def check_in_variable(var: IRVariable, custom_set_data: bool) -> None:
    """Validate one ``in`` declaration.

    Args:
        var: Variable to validate
        custom_set_data: Whether the program has a ``@setData`` section

    Raises:
        CompilerError: If the value has no way to reach the shader
    """
    if not var.is_in or var.is_child_processor:
        return
    if var.is_uniform or var.is_key or custom_set_data:
        return
    raise CompilerError(INVALID_IN_MESSAGE, var.position)


def classify_variable(var: IRVariable) -> VariableRole:
    """Get the role of an already validated variable."""
    if var.is_child_processor:
        return VariableRole.CHILD
    if var.is_in:
        if var.is_uniform:
            return VariableRole.PARAM_UNIFORM
        if var.is_key:
            return VariableRole.PARAM_KEY
        return VariableRole.PARAM_CUSTOM
    if var.is_uniform:
        return VariableRole.UNIFORM
    return VariableRole.FIELD


def resolve_qualifiers(program: Program) -> list[Classification]:
    """Validate and classify every program-level variable.

    Declarations are checked in source order and the first invalid one stops
    the compile.

    Args:
        program: Program to resolve

    Returns:
        One classification per variable, in declaration order

    Raises:
        CompilerError: If an ``in`` variable is neither uniform nor key and no
            ``@setData`` section exists
    """
    custom_set_data = has_set_data(program)
    result: list[Classification] = []
    for var in program.variables:
        check_in_variable(var, custom_set_data)
        role = classify_variable(var)
        logger.debug(f"Variable '{var.name}' ({var.type}) classified as {role.value}")
        result.append(Classification(var, role))
    return result
