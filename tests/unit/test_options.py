"""Unit tests for option filtering, validation and normalization."""

import pytest
from pydantic import ValidationError

from replcore.evaluation.contracts import LoadRequest
from replcore.forms.types import Symbol
from replcore.session.config import (
    TARGET_DEFAULTS,
    ReplOptions,
    Target,
    normalize_options,
    valid_options,
)
from tests.fixtures.evaluator import MemoryFiles


def no_index(provide):
    return None


class TestValidOptions:
    @pytest.mark.unit
    def test_unknown_keys_are_dropped(self):
        raw = {"verbose": True, "colour": "red", "no_pr_str_on_value": True}
        assert valid_options(raw) == {"verbose": True}

    @pytest.mark.unit
    def test_internal_flag_cannot_be_set_by_callers(self):
        opts = normalize_options({"no_pr_str_on_value": True}, no_index)
        assert opts.no_pr_str_on_value is False

    @pytest.mark.unit
    def test_none_is_empty(self):
        opts = normalize_options(None, no_index)
        assert opts.verbose is False
        assert opts.warning_as_error is False
        assert opts.target is Target.BROWSER


class TestTarget:
    @pytest.mark.unit
    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("browser", Target.BROWSER),
            ("default", Target.BROWSER),
            (":nodejs", Target.NODEJS),
            ("nodejs", Target.NODEJS),
            (None, Target.BROWSER),
        ],
    )
    def test_target_aliases(self, raw, expected):
        assert ReplOptions(target=raw).target is expected

    @pytest.mark.unit
    def test_unknown_target_rejected(self):
        with pytest.raises(ValidationError):
            ReplOptions(target="jvm")


class TestNormalize:
    @pytest.mark.unit
    def test_user_init_fns_appended_to_target_defaults(self):
        def mine(data):
            pass

        opts = normalize_options({"target": "nodejs", "init_fns": [mine]}, no_index)

        assert opts.init_fns[:-1] == TARGET_DEFAULTS[Target.NODEJS]["init_fns"]
        assert opts.init_fns[-1] is mine

    @pytest.mark.unit
    def test_explicit_load_fn_wins(self):
        async def load(request):
            return None

        opts = normalize_options({"load_fn": load, "read_file_fn": MemoryFiles(), "src_paths": ["src"]}, no_index)
        assert opts.load_fn is load

    @pytest.mark.unit
    def test_no_load_fn_without_src_paths(self):
        opts = normalize_options({"read_file_fn": MemoryFiles()}, no_index)
        assert opts.load_fn is None

    @pytest.mark.unit
    def test_invalid_src_paths_rejected(self):
        with pytest.raises(ValidationError):
            normalize_options({"read_file_fn": MemoryFiles(), "src_paths": 3}, no_index)

    @pytest.mark.unit
    @pytest.mark.asyncio
    async def test_load_fn_built_from_read_file_fn(self):
        files = MemoryFiles({"src/foo/bar.cljs": "(ns foo.bar)"})
        opts = normalize_options({"read_file_fn": files, "src_paths": ["src"]}, no_index)

        found = await opts.load_fn(LoadRequest(name=Symbol("foo.bar"), path="foo/bar"))

        assert found.source == "(ns foo.bar)"
        assert found.file == "src/foo/bar.cljs"

    @pytest.mark.unit
    def test_raw_copy(self):
        opts = ReplOptions(verbose=True)
        raw = opts.raw()
        assert raw.no_pr_str_on_value is True
        assert raw.verbose is True
        assert opts.no_pr_str_on_value is False
