"""Unit tests for the module loader and its path search."""

import pytest

from replcore.evaluation.contracts import LoadRequest
from replcore.evaluation.loader import (
    file_paths_to_try,
    file_paths_to_try_from_ns,
    goog_deps_map,
    make_load_fn,
    normalize_path,
    ns_to_path,
    read_files,
)
from replcore.forms.types import Symbol
from tests.fixtures.evaluator import MemoryFiles

DEPS_JS = """// This file was autogenerated
goog.addDependency('string/string.js', ['goog.string', 'goog.string.Unicode'], []);
goog.addDependency('array/array.js', ['goog.array'], ['goog.asserts']);
"""


@pytest.mark.unit
def test_normalize_path():
    assert normalize_path("src") == "src/"
    assert normalize_path("src/") == "src/"
    assert normalize_path("") == ""


@pytest.mark.unit
def test_ns_to_path():
    assert ns_to_path(Symbol("my-app.core-utils")) == "my_app/core_utils"


@pytest.mark.unit
def test_candidate_order_is_source_path_major():
    paths = file_paths_to_try(["a", "b/"], False, "foo/bar")
    assert paths == [
        "a/foo/bar.cljs",
        "a/foo/bar.cljc",
        "a/foo/bar.js",
        "b/foo/bar.cljs",
        "b/foo/bar.cljc",
        "b/foo/bar.js",
    ]


@pytest.mark.unit
def test_macro_candidates():
    assert file_paths_to_try(["src"], True, "foo/macros") == ["src/foo/macros.clj", "src/foo/macros.cljc"]


@pytest.mark.unit
def test_candidates_from_ns_symbol():
    paths = file_paths_to_try_from_ns(["src"], Symbol("clojure.set"))
    assert paths[0] == "src/clojure/set.cljs"
    assert "src/clojure/set.clj" in paths


@pytest.mark.unit
def test_goog_deps_map():
    index = goog_deps_map(DEPS_JS)
    assert index == {
        Symbol("goog.string"): "goog/string/string",
        Symbol("goog.string.Unicode"): "goog/string/string",
        Symbol("goog.array"): "goog/array/array",
    }


class TestReadFiles:
    """First hit wins, and nothing is read after it."""

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_stops_at_first_hit(self):
        files = MemoryFiles({"b.cljc": "second", "c.js": "third"})

        found = await read_files(False, ["a.cljs", "b.cljc", "c.js"], files)

        assert found.source == "second"
        assert found.lang == "clj"
        assert files.reads == ["a.cljs", "b.cljc"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_js_lang(self):
        found = await read_files(False, ["x.js"], MemoryFiles({"x.js": "var x;"}))
        assert found.lang == "js"

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_not_found(self):
        files = MemoryFiles()
        assert await read_files(True, ["a", "b"], files) is None
        assert files.reads == ["a", "b"]


class TestLoadFn:
    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_skip_listed_namespace_is_not_read(self):
        files = MemoryFiles()
        load = make_load_fn(False, ["src"], files, lambda provide: None)

        found = await load(LoadRequest(name=Symbol("cljs.core"), path="cljs/core"))

        assert found.source == ""
        assert found.lang == "js"
        assert files.reads == []

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_macros_use_clj_extensions(self):
        files = MemoryFiles({"src/foo/macros.clj": "(ns foo.macros)"})
        load = make_load_fn(False, ["src"], files, lambda provide: None)

        found = await load(LoadRequest(name=Symbol("foo.macros"), path="foo/macros", macros=True))

        assert found.file == "src/foo/macros.clj"
        assert files.reads == ["src/foo/macros.clj"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_goog_path_uses_module_index(self):
        files = MemoryFiles({"lib/goog/string/string.js": "goog.provide('goog.string');"})
        index = {Symbol("goog.string"): "goog/string/string"}
        load = make_load_fn(False, ["src", "lib"], files, index.get)

        found = await load(LoadRequest(name=Symbol("goog.string"), path="goog/string"))

        assert found.file == "lib/goog/string/string.js"
        assert files.reads == ["src/goog/string/string.js", "lib/goog/string/string.js"]

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_unindexed_goog_path_is_not_found(self):
        files = MemoryFiles()
        load = make_load_fn(False, ["src"], files, lambda provide: None)

        assert await load(LoadRequest(name=Symbol("goog.nope"), path="goog/nope")) is None
        assert files.reads == []
