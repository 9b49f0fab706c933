"""QaStateTracker orchestration tests (no database: stub items + memory gateway)."""

import pytest

from qa_state.core.exceptions import (
    ExecutionKeyNotInitializedError,
    NoAssociatedRulesError,
    StateSaveError,
    UnknownAttributeError,
    UnknownLanguageError,
    UnknownManualFlagError,
    UnknownScenarioError,
    UnknownStatusError,
)
from qa_state.services.language import LanguageContext
from qa_state.services.qa_config import Status
from qa_state.services.qa_state_service import QaStateTracker

DEFAULT_STATUSES = (
    Status.manual("archived", "Archived"),
    Status.automatic("temporary", "Temporary"),
    Status.automatic("draft", "Draft", ("draft",)),
    Status.automatic("reviewable", "Reviewable", ("draft", "reviewable")),
    Status.automatic("publishable", "Publishable", ("draft", "reviewable", "publishable")),
)


@pytest.fixture()
def config(make_stub_config, check_counter):
    return make_stub_config(
        {
            "draft": ("a",),
            "reviewable": ("a", "b"),
            "publishable": ("a", "b", "c", "d", "e"),
        },
        statuses=DEFAULT_STATUSES,
        counter=check_counter,
        manual_flags=("previewing_welcome",),
    )


@pytest.fixture()
def item(make_stub_item):
    # draft 100%, reviewable 100%, publishable 40%
    return make_stub_item(a="x", b="y", c=None, d=None, e=None)


@pytest.fixture()
def tracker(item, config, memory_gateway):
    return QaStateTracker(item, config=config, gateway=memory_gateway)


# ═════════════════════════════════════════════════════════════════
# 1. Refresh
# ═════════════════════════════════════════════════════════════════
class TestRefreshQaState:
    def test_refresh_stores_progress_and_status(self, tracker, memory_gateway):
        state = tracker.refresh_qa_state()

        assert state.progress == {"draft": 100, "reviewable": 100, "publishable": 40}
        assert state.status == "reviewable"
        assert memory_gateway.saved[state.id] == {
            "status": "reviewable",
            "progress": {"draft": 100, "reviewable": 100, "publishable": 40},
        }

    def test_incomplete_draft_yields_first_default_status(
        self, make_stub_config, make_stub_item, memory_gateway,
    ):
        config = make_stub_config(
            {"draft": ("a", "b", "c", "d", "e"), "reviewable": ("a",), "publishable": ("a",)},
        )
        item = make_stub_item(a=1, b=2, c=3, d=4, e=None)
        tracker = QaStateTracker(item, config=config, gateway=memory_gateway)

        state = tracker.refresh_qa_state()

        assert state.progress["draft"] == 80
        assert state.status == "temporary"

    def test_each_attribute_is_validated_once_per_refresh(self, tracker, check_counter):
        tracker.refresh_qa_state()
        # draft 1 + reviewable 2 + publishable 5; status determination reuses them
        assert check_counter.calls == 8

    def test_progress_is_recomputed_on_the_next_refresh(self, tracker, item, check_counter):
        tracker.refresh_qa_state()
        item.c = item.d = item.e = "filled"
        state = tracker.refresh_qa_state()
        assert state.progress["publishable"] == 100
        assert state.status == "publishable"

    def test_refresh_of_selected_scenarios_keeps_others(self, tracker, item):
        tracker.refresh_qa_state()
        item.b = None
        state = tracker.refresh_qa_state(scenarios=["reviewable"])
        assert state.progress == {"draft": 100, "reviewable": 50, "publishable": 40}
        assert state.status == "draft"

    def test_refresh_rejects_unknown_scenario(self, tracker):
        with pytest.raises(UnknownScenarioError):
            tracker.refresh_qa_state(scenarios=["imaginary"])

    def test_failed_save_raises(self, item, config, memory_gateway):
        memory_gateway.fail_saves = True
        tracker = QaStateTracker(item, config=config, gateway=memory_gateway)
        with pytest.raises(StateSaveError):
            tracker.refresh_qa_state()
        assert memory_gateway.saved == {}

    def test_failing_scenario_leaves_state_untouched(
        self, make_stub_config, make_stub_item, memory_gateway,
    ):
        config = make_stub_config(
            {"draft": ("a",), "empty": ()},
            statuses=(Status.automatic("draft", "Draft", ("draft",)),),
        )
        item = make_stub_item(a="x")
        tracker = QaStateTracker(item, config=config, gateway=memory_gateway)

        with pytest.raises(NoAssociatedRulesError):
            tracker.refresh_qa_state()

        assert item.qa_state is None
        assert memory_gateway.save_calls == 0


# ═════════════════════════════════════════════════════════════════
# 2. Language switching
# ═════════════════════════════════════════════════════════════════
class TestLanguage:
    def test_language_is_used_during_refresh_and_restored(
        self, make_stub_item, config, memory_gateway,
    ):
        seen = []

        class RecordingItem(make_stub_item):
            def qa_value(self, attribute, language=None, edited=False):
                seen.append(language)
                return super().qa_value(attribute, language, edited)

        context = LanguageContext("en")
        tracker = QaStateTracker(
            RecordingItem(a="x", b="y"), config=config,
            gateway=memory_gateway, language_context=context,
        )

        tracker.refresh_qa_state(language="es")

        assert "es" in seen
        assert context.current() == "en"

    def test_language_is_restored_when_refresh_fails(
        self, make_stub_config, make_stub_item, memory_gateway,
    ):
        config = make_stub_config(
            {"draft": ("a",), "empty": ()},
            statuses=(Status.automatic("draft", "Draft", ("draft",)),),
        )
        context = LanguageContext("en")
        tracker = QaStateTracker(
            make_stub_item(a="x"), config=config,
            gateway=memory_gateway, language_context=context,
        )

        with pytest.raises(NoAssociatedRulesError):
            tracker.refresh_qa_state(language="de")

        assert context.current() == "en"

    def test_switched_without_language_keeps_current(self):
        context = LanguageContext("sv")
        with context.switched(None) as active:
            assert active == "sv"
        assert context.current() == "sv"


# ═════════════════════════════════════════════════════════════════
# 3. Status handling
# ═════════════════════════════════════════════════════════════════
class TestStatus:
    def test_manual_status_survives_refresh(self, tracker):
        tracker.set_manual_status("archived")
        state = tracker.refresh_qa_state()
        assert state.status == "archived"
        assert state.progress["publishable"] == 40

    def test_set_automatic_status_keeps_manual(self, tracker):
        tracker.set_manual_status("archived")
        assert tracker.set_automatic_status() is False
        assert tracker.qa_state().status == "archived"

    def test_unknown_current_status_is_replaced(self, tracker):
        tracker.qa_state().status = "legacy_status"
        assert tracker.set_automatic_status() is True
        assert tracker.qa_state().status == "reviewable"

    def test_automatic_status_is_replaced(self, tracker, item):
        tracker.refresh_qa_state()
        item.a = None
        assert tracker.refresh_qa_state().status == "temporary"

    def test_manual_status_must_be_known(self, tracker):
        with pytest.raises(UnknownStatusError):
            tracker.set_manual_status("published")

    def test_status_label(self, tracker):
        assert tracker.get_status_label() is None
        tracker.refresh_qa_state()
        assert tracker.get_status_label() == "Reviewable"

    def test_valid_status_and_determination_outside_refresh(self, tracker):
        assert tracker.valid_status("reviewable") is True
        assert tracker.valid_status("publishable") is False
        assert tracker.determine_automatic_status() == "reviewable"

    def test_memoized_count_before_refresh_is_an_error(self, tracker):
        with pytest.raises(ExecutionKeyNotInitializedError):
            tracker.memoized_invalid_fields("draft")
        tracker.reset_execution_key()
        assert tracker.memoized_invalid_fields("publishable") == 3


# ═════════════════════════════════════════════════════════════════
# 4. Attributes, flags and marks
# ═════════════════════════════════════════════════════════════════
class TestManualTracking:
    def test_qa_attributes(self, tracker):
        assert tracker.qa_attributes("reviewable") == {"a", "b"}
        assert tracker.qa_attributes() == {"a", "b", "c", "d", "e"}

    def test_manual_flags(self, tracker):
        state = tracker.set_manual_flag("previewing_welcome", True)
        assert state.manual_flags == {"previewing_welcome": True}
        state = tracker.set_manual_flag("previewing_welcome", None)
        assert state.manual_flags == {"previewing_welcome": None}

    def test_unknown_manual_flag(self, tracker):
        with pytest.raises(UnknownManualFlagError):
            tracker.set_manual_flag("nonexistent", True)

    def test_attribute_marks_drive_approval_and_proofing_progress(self, tracker):
        tracker.mark_attribute("a", approved=True)
        tracker.mark_attribute("b", approved=True, proofed=True)
        state = tracker.mark_attribute("c", approved=False)

        assert state.attribute_approvals == {"a": True, "b": True, "c": False}
        assert state.approval_progress == 40
        assert state.proofing_progress == 20
        assert tracker.calculate_approval_progress() == 40

    def test_unknown_attribute_cannot_be_marked(self, tracker):
        with pytest.raises(UnknownAttributeError):
            tracker.mark_attribute("zzz", approved=True)

    def test_proofing_progress_follows_marks(self, tracker):
        assert tracker.calculate_proofing_progress() == 0
        tracker.mark_attribute("a", proofed=True)
        tracker.mark_attribute("d", proofed=True)
        assert tracker.calculate_proofing_progress() == 40
        assert tracker.qa_state().proofing_progress == 40

    def test_refresh_keeps_mark_progress_current(self, tracker):
        tracker.mark_attribute("a", approved=True, proofed=True)
        state = tracker.refresh_qa_state()
        assert state.approval_progress == 20
        assert state.proofing_progress == 20


# ═════════════════════════════════════════════════════════════════
# 5. Translation progress
# ═════════════════════════════════════════════════════════════════
class TestTranslationProgress:
    def test_unknown_language_is_rejected_before_saving(self, tracker, memory_gateway):
        with pytest.raises(UnknownLanguageError) as exc_info:
            tracker.refresh_translation_progress(languages=["xx"])
        assert exc_info.value.language == "xx"
        assert memory_gateway.save_calls == 0

    def test_source_language_only_config_has_nothing_to_translate(self, tracker):
        state = tracker.refresh_translation_progress()
        assert state.translation_progress == {}
