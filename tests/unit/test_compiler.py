"""Unit tests for gherkin_core.compiler."""

from gherkin_core.compiler import (
    PickleCompiler,
    PickleIterator,
    compile_pickles,
    compile_sequence,
    substitute,
)
from gherkin_core.models import (
    GherkinDocument,
    PickleDocString,
    PickleTable,
    StepKeywordType,
)
from gherkin_core.parser import parse


class TestSubstitute:
    def test_replaces_known_names(self) -> None:
        assert substitute("<a> and <b>", {"a": "1", "b": "2"}) == "1 and 2"

    def test_unknown_left_verbatim(self) -> None:
        assert substitute("x <missing>", {"a": "1"}) == "x <missing>"

    def test_no_placeholder_returns_same_object(self) -> None:
        text = "nothing to do here"
        assert substitute(text, {"a": "1"}) is text

    def test_values_not_rescanned(self) -> None:
        assert substitute("<a>", {"a": "<b>", "b": "boom"}) == "<b>"

    def test_empty_value(self) -> None:
        assert substitute("[<a>]", {"a": ""}) == "[]"


class TestPlainScenarios:
    def test_one_pickle_per_scenario(self, simple_feature: str) -> None:
        pickles = compile_pickles(parse(simple_feature), "basket.feature")
        assert len(pickles) == 1
        pickle = pickles[0]
        assert pickle.name == "Eating cukes"
        assert pickle.uri == "basket.feature"
        assert pickle.language == "en"
        assert pickle.ast_node_ids == ("2:3",)

    def test_ids_are_shared_between_pickles_and_steps(self, simple_feature: str) -> None:
        pickle = compile_pickles(parse(simple_feature))[0]
        assert pickle.id == "1"
        assert [s.id for s in pickle.steps] == ["2", "3", "4"]

    def test_empty_document(self) -> None:
        assert compile_pickles(GherkinDocument()) == []

    def test_feature_without_scenarios(self) -> None:
        assert compile_pickles(parse("Feature: F\n  Background:\n    Given a\n")) == []

    def test_step_ast_node_ids(self, simple_feature: str) -> None:
        steps = compile_pickles(parse(simple_feature))[0].steps
        assert [s.ast_node_ids for s in steps] == [("3:5",), ("4:5",), ("5:5",)]


class TestBackgroundsAndRules:
    def test_backgrounds_prepended(self, full_feature: str) -> None:
        first, second = compile_pickles(parse(full_feature))
        assert [s.text for s in first.steps] == [
            "the shop is open",
            "I check out",
            'I see "nothing to pay"',
        ]
        assert [s.text for s in second.steps][:3] == [
            "the shop is open",
            "a discount of 10 percent",
            "a basket with:",
        ]

    def test_ids_continue_across_pickles(self, full_feature: str) -> None:
        first, second = compile_pickles(parse(full_feature))
        assert first.id == "1"
        assert second.id == "5"
        assert second.steps[-1].id == "12"

    def test_tags_feature_rule_scenario(self, full_feature: str) -> None:
        first, second = compile_pickles(parse(full_feature))
        assert first.tag_names == ["@shop"]
        assert second.tag_names == ["@shop", "@vip", "@fast"]
        assert second.tags[1].ast_node_id == "13:3"

    def test_step_types_resolve_conjunctions(self, full_feature: str) -> None:
        second = compile_pickles(parse(full_feature))[1]
        assert [s.type for s in second.steps] == [
            StepKeywordType.CONTEXT,
            StepKeywordType.CONTEXT,
            StepKeywordType.CONTEXT,
            StepKeywordType.CONTEXT,
            StepKeywordType.ACTION,
            StepKeywordType.ACTION,
            StepKeywordType.OUTCOME,
        ]

    def test_star_step_is_unknown(self) -> None:
        pickle = compile_pickles(parse("Feature: F\n  Scenario: S\n    When a\n    * b\n    And c\n"))[0]
        assert [s.type for s in pickle.steps] == [
            StepKeywordType.ACTION,
            StepKeywordType.UNKNOWN,
            StepKeywordType.ACTION,
        ]

    def test_leading_conjunction_is_unknown(self) -> None:
        pickle = compile_pickles(parse("Feature: F\n  Scenario: S\n    And a\n"))[0]
        assert pickle.steps[0].type == StepKeywordType.UNKNOWN

    def test_arguments_copied(self, full_feature: str) -> None:
        second = compile_pickles(parse(full_feature))[1]
        table = second.steps[2].argument
        doc = second.steps[3].argument
        assert table == PickleTable(rows=(("item", "price"), ("apple", "1")))
        assert doc == PickleDocString(content="Leave at door", media_type="text/plain")

    def test_rule_without_background(self) -> None:
        source = (
            "Feature: F\n"
            "  Background:\n    Given fb\n"
            "  Rule: R\n    Scenario: S\n      Then done\n"
        )
        pickle = compile_pickles(parse(source))[0]
        assert [s.text for s in pickle.steps] == ["fb", "done"]


class TestOutlines:
    def test_one_pickle_per_row(self, outline_feature: str) -> None:
        pickles = compile_pickles(parse(outline_feature))
        assert [p.name for p in pickles] == [
            "Refund 5 to alice",
            "Refund 10 to bob",
            "Refund 500 to carol",
        ]

    def test_row_substitution_in_steps(self, outline_feature: str) -> None:
        pickle = compile_pickles(parse(outline_feature))[1]
        assert [s.text for s in pickle.steps] == [
            "a purchase of 10",
            "bob asks for a refund",
            "the refund is 10",
        ]

    def test_examples_tags(self, outline_feature: str) -> None:
        pickles = compile_pickles(parse(outline_feature))
        assert pickles[0].tag_names == ["@billing", "@outline", "@small"]
        assert pickles[2].tag_names == ["@billing", "@outline", "@large"]

    def test_row_ids(self, outline_feature: str) -> None:
        pickle = compile_pickles(parse(outline_feature))[0]
        assert pickle.ast_node_ids == ("5:3", "13:7")
        assert pickle.steps[0].ast_node_ids == ("6:5", "13:7")

    def test_ids_across_rows(self, outline_feature: str) -> None:
        pickles = compile_pickles(parse(outline_feature))
        assert [p.id for p in pickles] == ["1", "5", "9"]

    def test_no_examples_no_pickles(self) -> None:
        doc = parse("Feature: F\n  Scenario Outline: O\n    Given <x>\n")
        assert compile_pickles(doc) == []

    def test_header_only_examples(self) -> None:
        doc = parse("Feature: F\n  Scenario Outline: O\n    Given <x>\n    Examples:\n      | x |\n")
        assert compile_pickles(doc) == []

    def test_placeholders_in_arguments(self) -> None:
        source = (
            "Feature: F\n"
            "  Scenario Outline: O\n"
            "    Given a table\n"
            "      | <k> | fixed |\n"
            "    And a doc\n"
            '      """<kind>\n'
            "      value is <k>\n"
            '      """\n'
            "    Examples:\n"
            "      | k | kind |\n"
            "      | 7 | text |\n"
        )
        steps = compile_pickles(parse(source))[0].steps
        assert steps[0].argument == PickleTable(rows=(("7", "fixed"),))
        assert steps[1].argument == PickleDocString(content="value is 7", media_type="text")


class TestLazyCompilation:
    def test_sequence_equals_eager(self, full_feature: str, outline_feature: str) -> None:
        for source in (full_feature, outline_feature):
            doc = parse(source)
            assert list(compile_sequence(doc, "u")) == compile_pickles(doc, "u")

    def test_sequence_is_restartable(self, outline_feature: str) -> None:
        sequence = compile_sequence(parse(outline_feature))
        assert list(sequence) == list(sequence)

    def test_iterator_is_single_pass(self, outline_feature: str) -> None:
        iterator = iter(compile_sequence(parse(outline_feature)))
        assert isinstance(iterator, PickleIterator)
        first = next(iterator)
        assert first.name == "Refund 5 to alice"
        assert len(list(iterator)) == 2
        assert list(iterator) == []

    def test_large_outline_is_lazy(self) -> None:
        rows = "".join(f"      | {i} |\n" for i in range(5000))
        doc = parse("Feature: F\n  Scenario Outline: O\n    Given <n>\n    Examples:\n      | n |\n" + rows)
        iterator = iter(compile_sequence(doc))
        assert next(iterator).steps[0].text == "0"
        assert next(iterator).steps[0].text == "1"

    def test_compiler_class(self, simple_feature: str) -> None:
        compiler = PickleCompiler()
        doc = parse(simple_feature)
        assert list(compiler.compile_sequence(doc)) == compiler.compile(doc)
