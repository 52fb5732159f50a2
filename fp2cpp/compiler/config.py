"""Compiler configuration.

Both objects are immutable and passed explicitly to ``compile_fp`` so that
independent compilations never share mutable state.
"""

import re
from dataclasses import dataclass, fields

from loguru import logger


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


@dataclass(frozen=True)
class ShaderCaps:
    """Read-only feature flags of the target shading language.

    Field names are the snake_case spelling of the ``sk_Caps.<field>`` names used
    in programs (``externalTextureSupport -> external_texture_support``).
    """

    generation: int = 330
    fb_fetch_support: bool = False
    dual_source_blending_support: bool = False
    external_texture_support: bool = False
    integer_support: bool = False
    flat_interpolation_support: bool = False
    no_perspective_interpolation_support: bool = False
    sample_variables_support: bool = False
    shader_derivative_support: bool = False
    texture_buffer_support: bool = False
    can_use_any_function_in_shader: bool = True
    can_use_min_and_abs_together: bool = True
    can_use_fract_for_negative_values: bool = True
    must_force_negated_atan_param_to_float: bool = False
    must_do_op_between_floor_and_abs: bool = False
    must_guard_division_even_after_explicit_zero_check: bool = False
    remove_pow_with_constant_exponent: bool = False
    rewrite_do_while_loops: bool = False
    unfold_short_circuit_as_ternary: bool = False
    emulate_abs_int_function: bool = False
    use_node_pools: bool = True
    version_decl_string: str = "#version 400"

    @classmethod
    def default(cls) -> "ShaderCaps":
        """Capabilities of a desktop GLSL 4.00 target with integer support."""
        return cls(
            generation=400,
            shader_derivative_support=True,
            integer_support=True,
            flat_interpolation_support=True,
            no_perspective_interpolation_support=True,
        )

    def lookup(self, name: str) -> bool | int | str | None:
        """Look up a capability by its program-side camelCase name.

        Args:
            name: Field name as written after ``sk_Caps.``

        Returns:
            The capability value, or None when the field is unknown
        """
        attr = _snake_case(name)
        if attr not in {f.name for f in fields(self)}:
            logger.warning(f"Unknown capability field: {name}")
            return None
        return getattr(self, attr)


@dataclass(frozen=True)
class CompilerSettings:
    """Switches that change what the emitters produce.

    Attributes:
        test_utils: Emit the ``@test`` factory hook
        replace_settings: Fold ``sk_Caps.<field>`` references to literal values
        class_prefix: Prefix of the generated host class name
    """

    test_utils: bool = True
    replace_settings: bool = False
    class_prefix: str = "Gr"
