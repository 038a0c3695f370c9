"""Tests for the extended template processor."""

import pytest

from typeweaver.generator.context import RenderContext, is_truthy, render_value
from typeweaver.generator.functions import FunctionRegistry, default_functions
from typeweaver.generator.processor import TemplateProcessor, evaluate_condition
from typeweaver.generator.templates import TemplateLoader


@pytest.fixture
def render(tmp_path):
    processor = TemplateProcessor(TemplateLoader(roots=[tmp_path], bundle=None))
    return processor.render_text


def describe_variables():
    def substitutes_values(expect, render):
        expect(render("Hello {{name}}!", {"name": "World"})) == "Hello World!"

    def follows_dotted_paths(expect, render):
        context = {"person": {"name": "Ann", "tags": ["a", "b"]}}
        expect(render("{{person.name}} {{person.tags.1}}", context)) == "Ann b"

    def renders_booleans_and_lists(expect, render):
        expect(render("{{flag}} {{items}}", {"flag": True, "items": [1, 2]})) == "true 1, 2"

    def leaves_unknown_variables(expect, render):
        expect(render("{{missing}} {{a.b}}", {})) == "{{missing}} {{a.b}}"

    def is_identity_without_directives(expect, render):
        text = "struct Person {\n    uint32_t id;\n};\n"
        expect(render(text, {})) == text


def describe_comments():
    def strips_comments(expect, render):
        expect(render("a{{! note }}b{{! multi\nline }}c", {})) == "abc"

    def drops_lines_holding_only_a_comment(expect, render):
        expect(render("{{! header }}\nline {{! trailing }}\n", {})) == "line \n"


def describe_includes():
    def includes_processed_templates(expect, render, tmp_path):
        (tmp_path / "part.tmpl").write_text("[{{x}}]", encoding="utf-8")
        expect(render("<{{INCLUDE:part.tmpl}}>", {"x": 1})) == "<[1]>"

    def includes_missing_templates_as_empty(expect, render):
        expect(render("<{{INCLUDE:missing.tmpl}}>", {})) == "<>"

    def stops_recursive_includes(expect, render, tmp_path):
        (tmp_path / "loop.tmpl").write_text("x{{INCLUDE:loop.tmpl}}", encoding="utf-8")
        result = render("{{INCLUDE:loop.tmpl}}", {})
        expect(result.startswith("xxx")) == True
        expect("{{INCLUDE:loop.tmpl}}" in result) == True


def describe_foreach():
    def repeats_body_per_item(expect, render):
        template = "{{#FOREACH items AS item}}{{item}}{{#IF !item_last}},{{/IF}}{{/FOREACH}}"
        expect(render(template, {"items": ["a", "b", "c"]})) == "a,b,c"

    def binds_index_and_first(expect, render):
        template = "{{#FOREACH items AS i}}{{#IF i_first}}*{{/IF}}{{i_index}}{{/FOREACH}}"
        expect(render(template, {"items": ["x", "y"]})) == "*01"

    def iterates_mappings(expect, render):
        template = "{{#FOREACH opts AS o}}{{o_key}}={{o_value}};{{/FOREACH}}"
        expect(render(template, {"opts": {"a": 1, "b": 2}})) == "a=1;b=2;"

    def supports_nested_loops(expect, render):
        template = (
            "{{#FOREACH structs AS s}}{{s.name}}("
            "{{#FOREACH s.fields AS f}}{{f}}{{/FOREACH}}){{/FOREACH}}"
        )
        context = {"structs": [{"name": "A", "fields": ["x", "y"]}, {"name": "B", "fields": []}]}
        expect(render(template, context)) == "A(xy)B()"

    def renders_nothing_for_missing_collections(expect, render):
        expect(render("[{{#FOREACH none AS n}}{{n}}{{/FOREACH}}]", {})) == "[]"

    def leaves_unbalanced_loops(expect, render):
        expect(render("{{#FOREACH items AS i}}{{i}}", {"items": [1]})) == (
            "{{#FOREACH items AS i}}{{i}}"
        )


def describe_conditionals():
    def keeps_then_branch(expect, render):
        expect(render("{{#IF flag}}yes{{#ELSE}}no{{/IF}}", {"flag": True})) == "yes"

    def keeps_else_branch(expect, render):
        expect(render("{{#IF flag}}yes{{#ELSE}}no{{/IF}}", {"flag": False})) == "no"

    def compares_strings_and_numbers(expect, render):
        context = {"kind": "struct", "count": 2}
        expect(render("{{#IF kind == 'struct'}}S{{/IF}}", context)) == "S"
        expect(render('{{#IF kind != "enum"}}E{{/IF}}', context)) == "E"
        expect(render("{{#IF count == 2}}two{{/IF}}", context)) == "two"

    def combines_conditions(expect, render):
        context = {"a": True, "b": False}
        expect(render("{{#IF a && !b}}1{{/IF}}", context)) == "1"
        expect(render("{{#IF a AND b}}1{{#ELSE}}0{{/IF}}", context)) == "0"
        expect(render("{{#IF b or (a and not b)}}1{{/IF}}", context)) == "1"

    def supports_nested_blocks(expect, render):
        template = "{{#IF a}}A{{#IF b}}B{{#ELSE}}-{{/IF}}{{/IF}}"
        expect(render(template, {"a": True, "b": False})) == "A-"

    def leaves_malformed_conditions(expect, render):
        expect(render("{{#IF ==}}x{{/IF}}", {})) == "{{#IF ==}}x{{/IF}}"

    def leaves_unbalanced_blocks(expect, render):
        expect(render("{{#IF flag}}never closed", {"flag": True})) == "{{#IF flag}}never closed"


def describe_calls():
    def calls_functions_with_variables(expect, render):
        expect(render("{{CALL:upper(name)}}", {"name": "abc"})) == "ABC"

    def calls_functions_with_literals(expect, render):
        expect(render("{{CALL:snake_case('myFieldName')}}", {})) == "my_field_name"
        expect(render("{{CALL:add(1, 2)}}", {})) == "3"
        expect(render('{{CALL:replace("a-b", "-", "_")}}', {})) == "a_b"

    def passes_missing_variables_as_empty(expect, render):
        template = "{{CALL:default(title, 'Untitled')}}|{{CALL:coalesce(nick, name)}}"
        expect(render(template, {"name": "Ann"})) == "Untitled|Ann"

    def leaves_unknown_functions(expect, render):
        expect(render("{{CALL:nope(1)}}", {})) == "{{CALL:nope(1)}}"

    def leaves_failing_calls(expect, render):
        expect(render("{{CALL:div(1, 0)}}", {})) == "{{CALL:div(1, 0)}}"

    def uses_custom_registries(expect):
        functions = FunctionRegistry({"twice": lambda s: s + s})
        processor = TemplateProcessor(TemplateLoader(bundle=None), functions)
        expect(processor.render_text("{{CALL:twice(x)}}", {"x": "ab"})) == "abab"
        expect(processor.render_text("{{CALL:upper(x)}}", {"x": "ab"})) == "{{CALL:upper(x)}}"


def describe_functions():
    functions = default_functions()

    def has_string_functions(expect):
        expect(functions.get("capitalize")("person")) == "Person"
        expect(functions.get("camel_case")("my_field")) == "myField"
        expect(functions.get("pascal_case")("my_field")) == "MyField"
        expect(functions.get("trim")("  x ")) == "x"

    def has_arithmetic(expect):
        expect(functions.get("sub")("5", "2")) == "3"
        expect(functions.get("mul")("2", "2.5")) == "5"
        expect(functions.get("div")("1", "4")) == "0.25"
        expect(functions.get("mod")("7", "3")) == "1"

    def has_fallback_helpers(expect):
        expect(functions.get("coalesce")("", " ", "x", "y")) == "x"
        expect(functions.get("default")("", "fallback")) == "fallback"
        expect(functions.get("default")("value", "fallback")) == "value"

    def generates_identifiers(expect):
        expect(len(functions.get("uuid")())) == 36
        expect(functions.get("timestamp")("%Y").isdigit()) == True

    def lists_names(expect):
        expect("upper" in functions) == True
        expect("first_non_empty" in functions.names()) == True


def describe_context():
    def is_immutable_on_child(expect):
        parent = RenderContext.from_mapping(a=1)
        child = parent.child(b=2)
        expect("b" in parent) == False
        expect(child.lookup("a")) == 1

    def rejects_unsupported_values():
        with pytest.raises(TypeError):
            RenderContext.from_mapping(value=object())

    def reports_truthiness(expect):
        expect(is_truthy("")) == False
        expect(is_truthy("false")) == False
        expect(is_truthy("0")) == False
        expect(is_truthy("x")) == True
        expect(is_truthy([])) == False
        expect(is_truthy(0.5)) == True

    def renders_whole_floats_as_integers(expect):
        expect(render_value(2.0)) == "2"
        expect(render_value(None)) == ""

    def evaluates_conditions_directly(expect):
        context = RenderContext.from_mapping(x="1")
        expect(evaluate_condition("x == 1", context)) == True
        expect(evaluate_condition("x ==", context)) == None
