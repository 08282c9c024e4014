"""Unit tests for gherkin_core.expressions."""

import pytest

from gherkin_core.errors import GherkinError
from gherkin_core.expressions import (
    Alternation,
    CucumberExpression,
    ExpressionError,
    ExpressionErrorKind,
    OptionalText,
    Parameter,
    ParameterTypeDescriptor,
    ParameterTypeRegistry,
    Text,
    Whitespace,
    default_registry,
    non_capturing,
    parse_expression,
)


# ── Registry ─────────────────────────────────────────────────────────


class TestParameterTypeRegistry:
    def test_builtin_names(self) -> None:
        registry = default_registry()
        for name in ("int", "float", "string", "word", ""):
            assert name in registry
        assert registry.custom_names == []

    def test_default_registry_cached(self) -> None:
        assert default_registry() is default_registry()

    def test_custom_type(self) -> None:
        registry = ParameterTypeRegistry([ParameterTypeDescriptor.any_of("color", ["red", "blue"])])
        assert registry.custom_names == ["color"]
        assert registry.lookup("color").pattern == "(red|blue)"

    def test_first_registration_wins(self) -> None:
        registry = ParameterTypeRegistry([
            ParameterTypeDescriptor.of("size", "small"),
            ParameterTypeDescriptor.of("size", "large"),
        ])
        assert registry.lookup("size").regexps == ("small",)

    def test_builtin_cannot_be_replaced(self) -> None:
        registry = ParameterTypeRegistry([ParameterTypeDescriptor.of("int", "[a-z]+")])
        assert registry.lookup("int").builtin
        assert registry.lookup("int").regexps == (r"-?\d+",)

    def test_invalid_regex(self) -> None:
        with pytest.raises(ExpressionError) as exc_info:
            ParameterTypeRegistry([ParameterTypeDescriptor.of("bad", "(unclosed")])
        assert exc_info.value.kind == ExpressionErrorKind.INVALID_REGEX

    def test_lookup_missing(self) -> None:
        assert default_registry().lookup("nope") is None


class TestNonCapturing:
    @pytest.mark.parametrize(
        ("regex", "expected"),
        [
            ("(a|b)", "(?:a|b)"),
            ("(?:a)", "(?:a)"),
            ("(?P<x>a)", "(?:a)"),
            (r"\(a\)", r"\(a\)"),
            ("[(]a", "[(]a"),
            ("(?=a)b", "(?=a)b"),
            ("[]()]", "[]()]"),
        ],
    )
    def test_rewrites_capturing_groups(self, regex: str, expected: str) -> None:
        assert non_capturing(regex) == expected


# ── Parsing ──────────────────────────────────────────────────────────


class TestParseExpression:
    def test_nodes(self) -> None:
        nodes = parse_expression("I have {int} cucumber(s)")
        assert nodes == [
            Text("I"),
            Whitespace(" "),
            Text("have"),
            Whitespace(" "),
            Parameter("int"),
            Whitespace(" "),
            Text("cucumber"),
            OptionalText("s"),
        ]

    def test_alternation_is_bounded_by_whitespace(self) -> None:
        nodes = parse_expression("in my belly/stomach now")
        assert nodes[4] == Alternation(((Text("belly"),), (Text("stomach"),)))
        assert nodes[6] == Text("now")

    def test_escaped_characters_are_literal(self) -> None:
        nodes = parse_expression(r"a \{b\} \(c\) d\/e")
        assert nodes == [
            Text("a"),
            Whitespace(" "),
            Text("{b}"),
            Whitespace(" "),
            Text("(c)"),
            Whitespace(" "),
            Text("d/e"),
        ]

    @pytest.mark.parametrize(
        ("expression", "kind"),
        [
            ("I have {int", ExpressionErrorKind.UNTERMINATED_PARAMETER),
            ("cucumber(s", ExpressionErrorKind.UNTERMINATED_OPTIONAL),
            ("a /b", ExpressionErrorKind.EMPTY_ALTERNATIVE),
            ("a/ b", ExpressionErrorKind.EMPTY_ALTERNATIVE),
            ("{int}/x", ExpressionErrorKind.PARAMETER_IN_ALTERNATION),
            ("a({int})", ExpressionErrorKind.PARAMETER_IN_OPTIONAL),
            ("a()", ExpressionErrorKind.EMPTY_OPTIONAL),
            ("a((b)", ExpressionErrorKind.NESTED_OPTIONAL),
        ],
    )
    def test_syntax_errors(self, expression: str, kind: ExpressionErrorKind) -> None:
        with pytest.raises(ExpressionError) as exc_info:
            parse_expression(expression)
        assert exc_info.value.kind == kind
        assert exc_info.value.expression == expression


# ── Compilation and matching ─────────────────────────────────────────


class TestCucumberExpression:
    def test_empty_expression(self) -> None:
        with pytest.raises(ExpressionError) as exc_info:
            CucumberExpression("")
        assert exc_info.value.kind == ExpressionErrorKind.EMPTY_EXPRESSION

    def test_unknown_parameter_type(self) -> None:
        with pytest.raises(ExpressionError) as exc_info:
            CucumberExpression("I have {color}")
        assert exc_info.value.kind == ExpressionErrorKind.UNKNOWN_PARAMETER_TYPE
        assert "{color}" in str(exc_info.value)

    def test_error_is_gherkin_error(self) -> None:
        with pytest.raises(GherkinError):
            CucumberExpression("{nope}")

    def test_anchored_pattern(self) -> None:
        expression = CucumberExpression("I have {int} cukes")
        assert expression.pattern.startswith("^")
        assert expression.pattern.endswith("$")
        assert expression.match("so I have 3 cukes") is None
        assert expression.match("I have 3 cukes today") is None

    def test_int(self) -> None:
        found = CucumberExpression("I have {int} cukes").match("I have -42 cukes")
        assert found.raw_arguments == ["-42"]
        assert found.parameter_type_names == ["int"]

    def test_int_rejects_words(self) -> None:
        assert CucumberExpression("I have {int} cukes").match("I have many cukes") is None

    @pytest.mark.parametrize("value", ["3.5", "-0.25", ".5", "7"])
    def test_float(self, value: str) -> None:
        found = CucumberExpression("price {float}").match(f"price {value}")
        assert found.raw_arguments == [value]

    def test_string_strips_quotes(self) -> None:
        expression = CucumberExpression("I say {string} and {string}")
        found = expression.match("I say \"hello there\" and 'bye'")
        assert found.raw_arguments == ["hello there", "bye"]

    def test_empty_string(self) -> None:
        found = CucumberExpression("I say {string}").match('I say ""')
        assert found.raw_arguments == [""]

    def test_word(self) -> None:
        expression = CucumberExpression("a {word} here")
        assert expression.match("a banana here").raw_arguments == ["banana"]
        assert expression.match("a two words here") is None

    def test_anonymous(self) -> None:
        found = CucumberExpression("anything {} goes").match("anything at all goes")
        assert found.raw_arguments == ["at all"]
        assert found.parameter_type_names == [""]

    def test_optional_text(self) -> None:
        expression = CucumberExpression("I have {int} cucumber(s)")
        assert expression.match("I have 1 cucumber").raw_arguments == ["1"]
        assert expression.match("I have 2 cucumbers").raw_arguments == ["2"]

    def test_alternation(self) -> None:
        expression = CucumberExpression("in my belly/stomach")
        assert expression.match("in my belly") is not None
        assert expression.match("in my stomach") is not None
        assert expression.match("in my bellystomach") is None

    def test_regex_metacharacters_are_literal(self) -> None:
        expression = CucumberExpression("cost is $5.00 [total]")
        assert expression.match("cost is $5.00 [total]") is not None
        assert expression.match("cost is $5x00 [total]") is None

    def test_one_group_per_parameter(self) -> None:
        registry = ParameterTypeRegistry([ParameterTypeDescriptor.of("pair", r"(\d+)-(\d+)")])
        expression = CucumberExpression("range {pair} and {int}", registry)
        assert expression.parameter_count == 2
        assert expression.regex.groups == 2
        assert expression.match("range 1-9 and 4").raw_arguments == ["1-9", "4"]

    def test_custom_type(self) -> None:
        registry = ParameterTypeRegistry([ParameterTypeDescriptor.any_of("color", ["red", "blue"])])
        expression = CucumberExpression("a {color} ball", registry)
        assert expression.match("a blue ball").raw_arguments == ["blue"]
        assert expression.match("a green ball") is None

    def test_no_parameters(self) -> None:
        found = CucumberExpression("plain text").match("plain text")
        assert found.raw_arguments == []
        assert found.parameter_type_names == []
