"""
Exceptions raised by the fragment processor compiler.

Only one compile error exists: an ``in`` declaration whose value could never
reach the shader. Everything else the front end is trusted to have rejected.
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fp2cpp.compiler.ir import Position


class CompilerError(Exception):
    """Exception raised when a program cannot be compiled.

    The error carries the source position of the offending declaration so that
    callers can report it in the usual ``line:column: message`` form.

    Examples:
        >>> raise CompilerError("bad declaration", Position(0, 1, 1))
        CompilerError: 1:1: bad declaration
    """

    def __init__(self, message: str, position: "Position"):
        """Initialize the exception with a message and source position.

        Args:
            message: The error message
            position: Position of the declaration that caused the error
        """
        self.message = message
        self.position = position
        super().__init__(f"{self.line}:{self.column}: {message}")

    @property
    def line(self) -> int:
        return self.position.line

    @property
    def column(self) -> int:
        return self.position.column

    @property
    def error_text(self) -> str:
        """Error report in the compiler's batch format."""
        return f"error: {self.line}: {self.message}\n1 error\n"
