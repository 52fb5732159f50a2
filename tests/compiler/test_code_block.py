"""Tests for shader text buffers and scope management."""

import pytest

from fp2cpp.compiler.code_block import (
    Printf,
    ScopeManager,
    ShaderText,
    count_format_args,
    escape_cpp,
    split_format,
)


@pytest.mark.parametrize(
    "text, expected",
    [("%s = %s;", 2), ("100%% of %d", 1), ("no args", 0), ("%f%f%%", 2)],
)
def test_count_format_args(text, expected):
    """Test that only argument-consuming placeholders are counted."""
    assert count_format_args(text) == expected


def test_split_format_respects_limit():
    """Test that pieces never exceed the limit."""
    # Act
    chunks = split_format("x" * 1100, 512)

    # Assert
    assert [len(c) for c in chunks] == [512, 512, 76]
    assert "".join(chunks) == "x" * 1100


@pytest.mark.parametrize("spec", ["%s", "%%", "%f"])
def test_split_format_never_cuts_a_specifier(spec):
    """Test that a specifier straddling the limit moves to the next piece."""
    # Arrange
    text = "a" * 511 + spec + "b"

    # Act
    chunks = split_format(text, 512)

    # Assert
    assert chunks == ["a" * 511, spec + "b"]


def test_split_format_short_text():
    assert split_format("abc", 512) == ["abc"]


def test_escape_cpp():
    """Test escaping of quotes, backslashes and newlines."""
    assert escape_cpp('a "b"\\c\n') == 'a \\"b\\"\\\\c\\n'


class TestPrintf:
    """Printf text concatenation."""

    def test_concatenation_keeps_argument_order(self):
        left = Printf("%s + ", ("x",))
        right = Printf("%d", ("y",))

        result = "(" + left + right + ")"

        assert result == Printf("(%s + %d)", ("x", "y"))

    def test_join(self):
        items = [Printf("%s", ("a",)), Printf("1"), Printf("%s", ("b",))]

        assert Printf.join(", ", items) == Printf("%s, 1, %s", ("a", "b"))

    def test_join_empty(self):
        assert Printf.join(", ", []) == Printf()

    def test_as_cpp_string_with_arguments(self):
        text = Printf("return %s;\n", ("x.c_str()",))

        assert text.as_cpp_string() == 'SkStringPrintf("return %s;\\n", x.c_str()).c_str()'

    def test_as_cpp_string_without_arguments_collapses_escapes(self):
        assert Printf("a %% b;\n").as_cpp_string() == '"a % b;\\n"'


class TestShaderText:
    """Shader text buffer."""

    def test_write_indents_at_line_start(self):
        text = ShaderText(indent_level=1)

        text.write("a")
        text.write("b")
        text.write_line()
        text.write("c")

        assert text.text == "    ab\n    c"

    def test_block(self):
        text = ShaderText()

        text.write("if (x) ")
        with text.block():
            text.write_line("y;")
        text.write_line()

        assert text.text == "if (x) {\n    y;\n}\n"

    def test_arguments_follow_text(self):
        text = ShaderText()

        text.write(Printf("%s = %s;", ("a", "b")))

        assert text.args == ["a", "b"]

    def test_take_complete_stops_at_last_terminator(self):
        text = ShaderText()
        text.write_line(Printf("x = %s;", ("a",)))
        text.write(Printf("y = %s", ("b",)))

        taken, args = text.take_complete()

        assert (taken, args) == ("x = %s;", ["a"])
        assert text.text == "\ny = %s"
        assert text.args == ["b"]

    def test_take_complete_without_terminator(self):
        text = ShaderText()
        text.write("x = ")

        assert text.take_complete() == ("", [])
        assert text.text == "x = "

    def test_take_all(self):
        text = ShaderText()
        text.write(Printf("%s", ("a",)))

        assert text.take_all() == ("%s", ["a"])
        assert text.text == ""
        assert text.args == []

    def test_escaped_percent_consumes_no_argument(self):
        text = ShaderText()
        text.write_line(Printf("a %% b = %s;", ("c",)))
        text.write(Printf("%s", ("d",)))

        assert text.take_complete() == ("a %% b = %s;", ["c"])


class TestScopeManager:
    """Local declaration tracking."""

    def test_local_in_nested_scope(self):
        scopes = ScopeManager()

        with scopes.scope("main"):
            scopes.declare("x")
            with scopes.scope("block1"):
                assert scopes.is_local("x")
            assert scopes.is_local("x")

        assert not scopes.is_local("x")

    def test_inner_declaration_is_dropped_on_exit(self):
        scopes = ScopeManager()

        with scopes.scope("main"):
            with scopes.scope("block1"):
                scopes.declare("y")
            assert not scopes.is_local("y")

    def test_global_declarations_are_not_local(self):
        scopes = ScopeManager()

        scopes.declare("g")

        assert not scopes.is_local("g")

    def test_scopes_sharing_a_name_stay_separate(self):
        scopes = ScopeManager()

        with scopes.scope("block1"):
            scopes.declare("c")
            with scopes.scope("block1"):
                scopes.declare("t")
            assert scopes.is_local("c")
            assert not scopes.is_local("t")
