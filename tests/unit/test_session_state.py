"""Unit tests for session state transitions and history variables."""

import pytest

from replcore.forms.types import Symbol
from replcore.session.state import DEFAULT_NS, History, InitPhase, SessionState


class TestInitFlags:
    """The two-flag initialization state machine."""

    @pytest.mark.unit
    def test_fresh_state_needs_init(self):
        state = SessionState()
        assert state.current_ns == DEFAULT_NS
        assert state.init_phase is InitPhase.NEEDS_INIT

    @pytest.mark.unit
    def test_first_claim_wins(self):
        state = SessionState()
        assert state.claim_init() is True
        assert state.init_phase is InitPhase.INITIALIZING
        assert state.needs_init is True

    @pytest.mark.unit
    def test_claim_while_initializing_keeps_invariant(self):
        state = SessionState()
        state.claim_init()

        assert state.claim_init() is False
        # initializing implies needs_init
        assert state.initializing and state.needs_init

    @pytest.mark.unit
    def test_mark_initialized(self):
        state = SessionState()
        state.claim_init()
        state.mark_initialized()
        assert state.init_phase is InitPhase.INITIALIZED
        assert state.claim_init() is False
        assert state.init_phase is InitPhase.INITIALIZED

    @pytest.mark.unit
    def test_mark_initialized_requires_claim(self):
        with pytest.raises(RuntimeError):
            SessionState().mark_initialized()

    @pytest.mark.unit
    def test_reset_init(self):
        state = SessionState()
        state.claim_init()
        state.mark_initialized()
        state.reset_init()
        assert state.init_phase is InitPhase.NEEDS_INIT
        assert state.claim_init() is True

    @pytest.mark.unit
    def test_only_reset_starts_a_new_generation(self):
        state = SessionState()
        state.claim_init()
        state.claim_init()
        state.mark_initialized()
        assert state.init_generation == 0

        state.reset_init()
        state.reset_init()
        assert state.init_generation == 2


class TestHistory:
    @pytest.mark.unit
    def test_rotation(self):
        history = History()
        for value in ("A", "B", "C"):
            history.rotate(value)
        assert (history.star1, history.star2, history.star3) == ("C", "B", "A")

    @pytest.mark.unit
    def test_bindings(self):
        history = History(star1=1, star_e=ValueError("x"))
        bindings = history.bindings()
        assert bindings["*1"] == 1
        assert bindings["*2"] is None
        assert isinstance(bindings["*e"], ValueError)


class TestModuleIndex:
    @pytest.mark.unit
    def test_merge_later_wins(self):
        state = SessionState()
        state.merge_module_index({Symbol("goog.string"): "goog/string/string"})
        state.merge_module_index({Symbol("goog.string"): "goog/other/string"})
        assert state.goog_path(Symbol("goog.string")) == "goog/other/string"
        assert state.goog_path(Symbol("goog.array")) is None
