"""Section splicing.

User-authored ``@section`` blocks are resolved once into a table keyed by
``SectionKind``; the emitters then ask the table for the text of each kind at
its fixed insertion point. Artifacts are assembled as an ordered list of typed
fragments so that generated code and verbatim user text stay distinguishable
until the final join.
"""

from dataclasses import dataclass, field
from enum import Enum, auto

from loguru import logger

from fp2cpp.compiler.ir import Program, Section, SectionKind


class FragmentKind(Enum):
    GENERATED = auto()
    VERBATIM = auto()


@dataclass(frozen=True)
class Fragment:
    """A piece of artifact text."""

    kind: FragmentKind
    text: str


@dataclass
class Artifact:
    """Ordered fragments of one output file."""

    fragments: list[Fragment] = field(default_factory=list)

    def generated(self, text: str) -> None:
        if text:
            self.fragments.append(Fragment(FragmentKind.GENERATED, text))

    def verbatim(self, text: str) -> None:
        if text:
            self.fragments.append(Fragment(FragmentKind.VERBATIM, text))

    def render(self) -> str:
        return "".join(f.text for f in self.fragments)

    def verbatim_text(self) -> list[str]:
        """Text of the fragments copied from the program unchanged."""
        return [f.text for f in self.fragments if f.kind is FragmentKind.VERBATIM]


@dataclass(frozen=True)
class CoordTransform:
    """A ``GrCoordTransform`` field of the host class.

    Attributes:
        index: Position among the program's transforms
        matrix: Matrix expression from the section body
        argument: Parameter whose proxy the transform applies to, if any
    """

    index: int
    matrix: str
    argument: str = ""

    @property
    def field_name(self) -> str:
        if self.argument:
            return f"{self.argument}CoordTransform"
        return f"fCoordTransform{self.index}"

    @property
    def initializer(self) -> str:
        if self.argument:
            return f"{self.field_name}({self.matrix}, {self.argument}.get())"
        return f"{self.field_name}({self.matrix})"


class SectionTable:
    """Sections of one program, resolved by kind.

    Non-repeatable kinds keep their first occurrence; later duplicates are
    reported and dropped.
    """

    def __init__(self, program: Program):
        self._sections: dict[SectionKind, list[Section]] = {}
        for section in program.sections:
            existing = self._sections.setdefault(section.kind, [])
            if existing and not section.kind.permits_duplicates:
                logger.warning(
                    f"Duplicate @{section.kind.value} section at line "
                    f"{section.position.line} ignored"
                )
                continue
            if section.kind.requires_argument and not section.argument:
                raise ValueError(
                    f"@{section.kind.value} section requires a parameter name"
                )
            if section.argument and not section.kind.accepts_argument:
                raise ValueError(
                    f"@{section.kind.value} section does not accept a parameter"
                )
            existing.append(section)
        logger.debug(
            f"Sections: {', '.join(k.value for k in self._sections) or 'none'}"
        )

    def __contains__(self, kind: SectionKind) -> bool:
        return kind in self._sections

    def get(self, kind: SectionKind) -> Section | None:
        sections = self._sections.get(kind)
        return sections[0] if sections else None

    def all(self, kind: SectionKind) -> list[Section]:
        return list(self._sections.get(kind, []))

    def text(self, kind: SectionKind) -> str:
        """Body of the section of ``kind``, or an empty string."""
        section = self.get(kind)
        return section.body if section else ""

    def coord_transforms(self) -> list["CoordTransform"]:
        """Coordinate transform fields declared by ``@coordTransform`` sections."""
        return [
            CoordTransform(i, s.body.strip(), s.argument)
            for i, s in enumerate(self.all(SectionKind.COORD_TRANSFORM))
        ]

    def splice(self, artifact: Artifact, kind: SectionKind, suffix: str = "") -> None:
        """Append the body of ``kind`` to ``artifact`` verbatim, if present."""
        section = self.get(kind)
        if section:
            artifact.verbatim(section.body)
            artifact.generated(suffix)
