from fp2cpp.compiler import (
    CompileResult,
    CompilerError,
    CompilerSettings,
    ShaderCaps,
    compile_fp,
    to_cpp,
    to_h,
)
from fp2cpp.compiler.ir import Program

__version__ = "0.1.0"


__all__ = [
    "CompileResult",
    "CompilerError",
    "CompilerSettings",
    "Program",
    "ShaderCaps",
    "compile_fp",
    "to_cpp",
    "to_h",
]
