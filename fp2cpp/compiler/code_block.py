"""Shader text buffers and scope management."""

from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field

from fp2cpp.compiler.constants import INDENT

_TERMINATORS = ";{}"


def iter_format_specs(text: str) -> Iterator[tuple[int, str]]:
    """Yield (index, spec) for every printf conversion in ``text``.

    ``%%`` is yielded too so callers can tell escapes apart from
    placeholders.
    """
    i = 0
    while i < len(text):
        if text[i] == "%" and i + 1 < len(text):
            yield i, text[i : i + 2]
            i += 2
        else:
            i += 1


def count_format_args(text: str) -> int:
    """Count the placeholders in ``text`` that consume an argument."""
    return sum(1 for _, spec in iter_format_specs(text) if spec != "%%")


def split_format(text: str, limit: int) -> list[str]:
    """Split a format string into pieces of at most ``limit`` characters.

    A cut never falls inside a conversion specifier.
    """
    specs = {i for i, _ in iter_format_specs(text)}
    chunks: list[str] = []
    start = 0
    while len(text) - start > limit:
        cut = start + limit
        if cut - 1 in specs:
            cut -= 1
        chunks.append(text[start:cut])
        start = cut
    chunks.append(text[start:])
    return chunks


def escape_cpp(text: str) -> str:
    """Escape text for use inside a C++ string literal."""
    return text.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n")


@dataclass(frozen=True)
class Printf:
    """Shader text in printf syntax together with its runtime arguments."""

    text: str = ""
    args: tuple[str, ...] = ()

    def __add__(self, other: "Printf | str") -> "Printf":
        if isinstance(other, str):
            return Printf(self.text + other, self.args)
        return Printf(self.text + other.text, self.args + other.args)

    def __radd__(self, other: str) -> "Printf":
        return Printf(other + self.text, self.args)

    @staticmethod
    def join(separator: str, items: list["Printf"]) -> "Printf":
        result = Printf()
        for i, item in enumerate(items):
            if i:
                result += separator
            result += item
        return result

    def as_cpp_string(self) -> str:
        """C++ expression producing this text at runtime.

        Text without arguments is never run through printf, so its ``%%``
        escapes are collapsed.
        """
        if self.args:
            args = ", ".join(self.args)
            return f'SkStringPrintf("{escape_cpp(self.text)}", {args}).c_str()'
        return f'"{escape_cpp(self.text.replace("%%", "%"))}"'


@dataclass
class ShaderText:
    """Shader source being built, with the runtime arguments of its placeholders.

    Text is written in printf syntax; every placeholder written is paired with
    one C++ expression in ``args``.
    """

    indent_level: int = 0
    text: str = ""
    args: list[str] = field(default_factory=list)
    at_line_start: bool = True

    def write(self, code: Printf | str) -> None:
        """Append text, indenting it when it starts a line."""
        if isinstance(code, str):
            code = Printf(code)
        if not code.text:
            return
        if self.at_line_start:
            self.text += INDENT * self.indent_level
            self.at_line_start = False
        self.text += code.text
        self.args.extend(code.args)

    def write_line(self, code: Printf | str = "") -> None:
        self.write(code)
        self.text += "\n"
        self.at_line_start = True

    @contextmanager
    def block(self) -> Iterator[None]:
        """Context manager for braced blocks; the closing brace ends no line."""
        self.write_line("{")
        self.indent_level += 1
        try:
            yield
        finally:
            self.indent_level -= 1
            self.write("}")

    def take_complete(self) -> tuple[str, list[str]]:
        """Remove and return text up to the last complete statement or brace.

        Returns:
            The removed text and the arguments its placeholders consume; empty
            when nothing is complete yet
        """
        cut = max(self.text.rfind(c) for c in _TERMINATORS) + 1
        return self._take(cut)

    def take_all(self) -> tuple[str, list[str]]:
        return self._take(len(self.text))

    def _take(self, cut: int) -> tuple[str, list[str]]:
        if cut <= 0:
            return "", []
        taken = self.text[:cut]
        count = count_format_args(taken)
        args = self.args[:count]
        self.text = self.text[cut:]
        self.args = self.args[count:]
        return taken, args


@dataclass
class ScopeManager:
    """Tracks local declarations so they shadow program-level variables.

    Open scopes form a stack above the global scope. Names only label the
    entries, so two open scopes may share a name.
    """

    scopes: list[tuple[str, set[str]]] = field(
        default_factory=lambda: [("global", set())]
    )

    @contextmanager
    def scope(self, name: str) -> Iterator[None]:
        """Context manager for scope handling."""
        self.enter(name)
        try:
            yield
        finally:
            self.exit()

    def enter(self, name: str) -> None:
        """Enter a new scope."""
        self.scopes.append((name, set()))

    def exit(self) -> None:
        """Exit current scope; the global scope is never closed."""
        if len(self.scopes) > 1:
            self.scopes.pop()

    def declare(self, name: str) -> None:
        """Declare a variable in current scope."""
        self.scopes[-1][1].add(name)

    def is_local(self, name: str) -> bool:
        """Check if a variable is declared in any open non-global scope."""
        return any(name in declared for _, declared in self.scopes[1:])
