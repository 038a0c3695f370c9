"""Tests for template loading and placeholder substitution."""

from typeweaver.generator.templates import TemplateLoader, substitute


def describe_substitute():
    def replaces_placeholders(expect):
        expect(substitute("struct {{NAME}} {};", {"NAME": "Person"})) == "struct Person {};"

    def replaces_every_occurrence(expect):
        expect(substitute("{{A}}-{{A}}", {"A": 1})) == "1-1"

    def is_identity_without_placeholders(expect):
        text = "message Person {\n  uint32 id = 1;\n}\n"
        expect(substitute(text, {})) == text
        expect(substitute(text, {"UNUSED": "x"})) == text

    def leaves_unbound_placeholders(expect):
        expect(substitute("{{A}} {{B}}", {"A": "a"})) == "a {{B}}"


def describe_template_loader():
    def loads_bundled_templates(expect):
        loader = TemplateLoader()
        expect("struct {{STRUCT_NAME}}" in loader.load("cpp/struct.h.tmpl")) == True
        expect(loader.is_cached("cpp/struct.h.tmpl")) == True

    def loads_from_filesystem_roots(expect, tmp_path):
        (tmp_path / "custom.tmpl").write_text("hello {{NAME}}", encoding="utf-8")
        loader = TemplateLoader(roots=[tmp_path], bundle=None)
        expect(loader.process("custom.tmpl", {"NAME": "world"})) == "hello world"

    def retries_with_base_path(expect, tmp_path):
        (tmp_path / "tpl").mkdir()
        (tmp_path / "tpl" / "part.tmpl").write_text("part", encoding="utf-8")
        loader = TemplateLoader(base_path="tpl", roots=[tmp_path], bundle=None)
        expect(loader.load("part.tmpl")) == "part"

    def searches_roots_in_order(expect, tmp_path):
        first, second = tmp_path / "first", tmp_path / "second"
        first.mkdir()
        second.mkdir()
        (first / "a.tmpl").write_text("first", encoding="utf-8")
        (second / "a.tmpl").write_text("second", encoding="utf-8")
        (second / "b.tmpl").write_text("only second", encoding="utf-8")
        loader = TemplateLoader(roots=[first, second], bundle=None)
        expect(loader.load("a.tmpl")) == "first"
        expect(loader.load("b.tmpl")) == "only second"

    def returns_empty_text_for_missing_templates(expect):
        loader = TemplateLoader(bundle=None)
        expect(loader.load("does/not/exist.tmpl")) == ""
        expect(loader.is_cached("does/not/exist.tmpl")) == False

    def serves_cached_text(expect, tmp_path):
        template = tmp_path / "cached.tmpl"
        template.write_text("v1", encoding="utf-8")
        loader = TemplateLoader(roots=[tmp_path], bundle=None)
        expect(loader.load("cached.tmpl")) == "v1"

        template.write_text("v2", encoding="utf-8")
        expect(loader.load("cached.tmpl")) == "v1"

        loader.clear()
        expect(loader.load("cached.tmpl")) == "v2"

    def clears_cache_when_base_path_changes(expect):
        loader = TemplateLoader()
        loader.load("cpp/struct.h.tmpl")
        loader.base_path = "other"
        expect(loader.base_path) == "other"
        expect(loader.is_cached("cpp/struct.h.tmpl")) == False
