"""Child-processor registry.

Children are owned by the generated class as a flat list and referred to by
their index in that list. An absent nullable child keeps the index ``-1``, so
presence checks compare the index against zero.
"""

from collections.abc import Iterator
from dataclasses import dataclass

from loguru import logger

from fp2cpp.compiler.constants import INDENT
from fp2cpp.compiler.ir import IRVariable, Program
from fp2cpp.compiler.ir_analysis import children_sampled_with_coords


@dataclass(frozen=True)
class ChildReference:
    """A child processor and the index it is registered under."""

    variable: IRVariable
    index: int
    sampled_with_coords: bool = False

    @property
    def name(self) -> str:
        return self.variable.name

    @property
    def nullable(self) -> bool:
        return self.variable.nullable

    @property
    def index_field(self) -> str:
        return f"{self.name}_index"

    def presence_check(self, owner: str = "") -> str:
        """C++ condition that holds when the child exists."""
        return f"{owner}{self.index_field} >= 0"

    def absence_check(self, owner: str = "") -> str:
        return f"{owner}{self.index_field} < 0"


class ChildRegistry:
    """Child processors of one program, indexed in declaration order."""

    def __init__(self, program: Program):
        with_coords = children_sampled_with_coords(program)
        self.children: list[ChildReference] = [
            ChildReference(var, index, var.name in with_coords)
            for index, var in enumerate(
                v for v in program.variables if v.is_child_processor
            )
        ]
        self._by_name = {c.name: c for c in self.children}
        for child in self.children:
            logger.debug(
                f"Child '{child.name}' registered at index {child.index}"
                f"{' (nullable)' if child.nullable else ''}"
            )

    def __iter__(self) -> Iterator[ChildReference]:
        return iter(self.children)

    def __len__(self) -> int:
        return len(self.children)

    def __contains__(self, name: object) -> bool:
        return name in self._by_name

    def get(self, name: str) -> ChildReference:
        """Look up a child by variable name.

        Raises:
            KeyError: If no child processor has that name
        """
        try:
            return self._by_name[name]
        except KeyError:
            raise KeyError(f"'{name}' is not a child processor") from None

    def registration_code(self, indent: int = 2) -> str:
        """Constructor statements registering every child in index order."""
        lines: list[str] = []
        for child in self.children:
            body = [
                f"{child.index_field} = this->numChildProcessors();",
            ]
            if child.sampled_with_coords:
                body.append(f"{child.name}->setSampledWithExplicitCoords(true);")
            body.append(f"this->registerChildProcessor(std::move({child.name}));")
            if child.nullable:
                lines.append(f"if ({child.name}) {{")
                lines.extend(INDENT + line for line in body)
                lines.append("}")
            else:
                lines.append(f"SkASSERT({child.name});")
                lines.extend(body)
        return "".join(f"{INDENT * indent}{line}\n" for line in lines)

    def clone_code(self, indent: int = 1) -> str:
        """Copy-constructor statements cloning every child of ``src``."""
        lines: list[str] = []
        for child in self.children:
            register = (
                "this->registerChildProcessor("
                f"src.childProcessor({child.index_field}).clone());"
            )
            if child.nullable:
                lines.append(f"if ({child.presence_check()}) {{")
                lines.append(INDENT + register)
                lines.append("}")
            else:
                lines.append(register)
        return "".join(f"{INDENT * indent}{line}\n" for line in lines)
