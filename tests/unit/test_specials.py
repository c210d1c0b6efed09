"""Unit tests for special form recognition and ns form synthesis."""

import pytest

from replcore.evaluation.docs import render_doc, repl_special_doc, special_doc
from replcore.evaluation.specials import (
    NS_FORM_META,
    SpecialForm,
    SpecialFormDispatcher,
    canonicalize_specs,
    is_self_require,
    ns_publics,
)
from replcore.forms.reader import read_string
from replcore.forms.types import NS, Keyword, SList, Vector, kw, quote, sym
from replcore.session.config import ReplOptions
from replcore.session.repl import Repl
from tests.fixtures.evaluator import FakeEvaluator


@pytest.fixture
def dispatcher(repl):
    return SpecialFormDispatcher(repl)


class TestRecognition:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "text,expected",
        [
            ("(in-ns 'foo)", SpecialForm.IN_NS),
            ("(require 'foo)", SpecialForm.REQUIRE),
            ("(require-macros 'foo)", SpecialForm.REQUIRE_MACROS),
            ("(import 'goog.Uri)", SpecialForm.IMPORT),
            ("(doc map)", SpecialForm.DOC),
            ("(source map)", SpecialForm.SOURCE),
            ("(pst)", SpecialForm.PST),
            ("(dir foo)", SpecialForm.DIR),
            ("(load-file \"x.cljs\")", SpecialForm.LOAD_FILE),
        ],
    )
    def test_special_forms(self, text, expected):
        assert SpecialForm.of(read_string(text)) is expected

    @pytest.mark.unit
    @pytest.mark.parametrize("text", ["(+ 1 2)", "doc", "[doc map]", "(foo/doc map)", "()"])
    def test_not_special(self, text):
        assert SpecialForm.of(read_string(text)) is None

    @pytest.mark.unit
    def test_every_special_form_has_a_handler(self):
        # Construction fails if a handler is missing
        Repl(FakeEvaluator())


class TestSpecs:
    @pytest.mark.unit
    def test_canonicalize(self):
        specs = [quote(sym("foo.bar")), quote(Vector((sym("foo.baz"), kw("as"), sym("b")))), kw("reload")]
        assert canonicalize_specs(specs) == [
            Vector((sym("foo.bar"),)),
            Vector((sym("foo.baz"), kw("as"), sym("b"))),
            kw("reload"),
        ]

    @pytest.mark.unit
    def test_self_require(self):
        current = sym("foo.bar")
        assert is_self_require([quote(sym("foo.bar"))], current)
        assert is_self_require([quote(Vector((sym("foo.bar"), kw("as"), sym("fb"))))], current)
        assert not is_self_require([quote(sym("foo.baz")), kw("reload")], current)

    @pytest.mark.unit
    def test_ns_publics_skips_private(self):
        info = {
            "defs": {sym("a"): {"name": sym("a")}, sym("hidden"): {"private": True}},
            "macros": {sym("m"): {"macro": True}},
        }
        assert set(ns_publics(info)) == {sym("a"), sym("m")}
        assert ns_publics(None) == {}


class TestMakeNsForm:
    @pytest.mark.unit
    def test_require(self, dispatcher):
        form = dispatcher.make_ns_form(
            ReplOptions(), SpecialForm.REQUIRE, [quote(sym("foo.bar"))], sym("cljs.user")
        )
        assert form == SList((NS, sym("cljs.user"), SList((Keyword("require"), Vector((sym("foo.bar"),))))))
        assert form.meta == NS_FORM_META

    @pytest.mark.unit
    def test_import_specs_are_only_unquoted(self, dispatcher):
        spec = SList((sym("goog"), sym("Uri")))
        form = dispatcher.make_ns_form(ReplOptions(), SpecialForm.IMPORT, [quote(spec)], sym("cljs.user"))
        assert form[2] == SList((Keyword("import"), spec))

    @pytest.mark.unit
    def test_reload_purges_named_namespaces(self, dispatcher, evaluator):
        evaluator.loaded.update({sym("foo.bar"), sym("foo.baz")})

        form = dispatcher.make_ns_form(
            ReplOptions(), SpecialForm.REQUIRE, [quote(sym("foo.bar")), kw("reload")], sym("cljs.user")
        )

        assert not _has_reload_flag(form)
        assert evaluator.purged == [sym("foo.bar")]
        assert evaluator.loaded == {sym("foo.baz")}

    @pytest.mark.unit
    def test_reload_all_purges_everything_loaded(self, dispatcher, evaluator):
        evaluator.loaded.update({sym("foo.bar"), sym("foo.baz")})

        dispatcher.make_ns_form(
            ReplOptions(), SpecialForm.REQUIRE, [quote(sym("foo.bar")), kw("reload-all")], sym("cljs.user")
        )

        assert set(evaluator.purged) == {sym("foo.bar"), sym("foo.baz")}
        assert evaluator.loaded == set()


def _has_reload_flag(form):
    clause = form[2]
    return kw("reload") in clause or kw("reload-all") in clause


class TestDocs:
    @pytest.mark.unit
    def test_special_form_doc(self):
        text = render_doc(special_doc(sym("if")))
        assert text.startswith("-------------------------\nif\n   (if test then else?)\nSpecial Form\n")
        assert "Please see http://clojure.org/special_forms#if" in text
        assert text.endswith("\n")

    @pytest.mark.unit
    def test_special_form_with_url(self):
        assert "Please see http://clojure.org/vars#set" in render_doc(special_doc(sym("set!")))

    @pytest.mark.unit
    def test_repl_special_doc(self):
        text = render_doc(repl_special_doc(sym("dir")))
        assert "([ns])\nREPL Special Function\n  Prints a sorted directory" in text

    @pytest.mark.unit
    def test_macro_doc(self):
        text = render_doc({"ns": "cljs.core", "name": sym("when"), "arglists": "([test & body])",
                           "macro": True, "doc": "Evaluates test."})
        assert text == "-------------------------\ncljs.core/when\n([test & body])\nMacro\n  Evaluates test.\n"

    @pytest.mark.unit
    def test_nothing_found(self):
        assert render_doc(None) == "nil"
        assert special_doc(sym("map")) is None
