"""Automatic status determination tests."""

import pytest

from qa_state.core.exceptions import UnknownScenarioError, UnknownStatusError
from qa_state.services.qa_config import QaConfig, Status
from qa_state.services.status_engine import StatusEngine

SCENARIOS = ("draft", "reviewable", "publishable")

STATUSES = (
    Status.automatic("temporary", "Temporary"),
    Status.automatic("draft", "Draft", ("draft",)),
    Status.automatic("reviewable", "Reviewable", ("draft", "reviewable")),
    Status.automatic("publishable", "Publishable", ("draft", "reviewable", "publishable")),
)


def _config(statuses=STATUSES, scenarios=SCENARIOS):
    return QaConfig(item_type="stub_item", scenarios=scenarios, statuses=statuses, rules=())


class _Progress:
    """Fixed progress per scenario that records which scenarios were asked."""

    def __init__(self, **values):
        self.values = values
        self.asked = []

    def __call__(self, scenario):
        self.asked.append(scenario)
        return self.values[scenario]


# ═════════════════════════════════════════════════════════════════
# 1. determine_automatic_status
# ═════════════════════════════════════════════════════════════════
class TestDetermineAutomaticStatus:
    def test_last_reached_status_before_first_failure(self):
        progress = _Progress(draft=100, reviewable=100, publishable=40)
        assert StatusEngine(_config(), progress).determine_automatic_status() == "reviewable"

    def test_vacuous_first_status_when_draft_fails(self):
        progress = _Progress(draft=80, reviewable=100, publishable=100)
        assert StatusEngine(_config(), progress).determine_automatic_status() == "temporary"

    def test_all_statuses_valid_returns_last(self):
        progress = _Progress(draft=100, reviewable=100, publishable=100)
        assert StatusEngine(_config(), progress).determine_automatic_status() == "publishable"

    def test_scan_stops_at_first_failure(self):
        progress = _Progress(draft=99, reviewable=100, publishable=100)
        StatusEngine(_config(), progress).determine_automatic_status()
        assert progress.asked == ["draft"]

    def test_later_valid_status_is_not_picked_after_a_failure(self):
        statuses = (
            Status.automatic("first", "First", ("draft",)),
            Status.automatic("second", "Second", ("reviewable",)),
        )
        progress = _Progress(draft=50, reviewable=100, publishable=100)
        assert StatusEngine(_config(statuses), progress).determine_automatic_status() is None

    def test_manual_statuses_are_passed_over_as_candidates(self):
        statuses = STATUSES[:2] + (Status.manual("approved", "Approved"),) + STATUSES[2:]
        progress = _Progress(draft=100, reviewable=10, publishable=0)
        assert StatusEngine(_config(statuses), progress).determine_automatic_status() == "approved"

    def test_manual_status_with_scenarios_is_not_a_stopping_point(self):
        statuses = (
            Status.automatic("temporary", "Temporary"),
            Status.manual("signed_off", "Signed off", ("publishable",)),
            Status.automatic("draft", "Draft", ("draft",)),
        )
        progress = _Progress(draft=100, reviewable=0, publishable=0)
        assert StatusEngine(_config(statuses), progress).determine_automatic_status() == "draft"
        assert "publishable" not in progress.asked

    def test_no_statuses_returns_none(self):
        engine = StatusEngine(_config(statuses=()), _Progress())
        assert engine.determine_automatic_status() is None


# ═════════════════════════════════════════════════════════════════
# 2. valid_status & protection rules
# ═════════════════════════════════════════════════════════════════
class TestValidStatus:
    def test_valid_when_every_required_scenario_is_complete(self):
        engine = StatusEngine(_config(), _Progress(draft=100, reviewable=100, publishable=99))
        assert engine.valid_status("reviewable") is True
        assert engine.valid_status("publishable") is False
        assert engine.valid_status(STATUSES[0]) is True

    def test_unknown_status_is_an_error(self):
        engine = StatusEngine(_config(), _Progress())
        with pytest.raises(UnknownStatusError):
            engine.valid_status("published")

    def test_config_rejects_status_with_unknown_scenario(self):
        with pytest.raises(UnknownScenarioError):
            _config(statuses=(Status.automatic("x", "X", ("imaginary",)),))

    @pytest.mark.parametrize(
        "current,expected",
        [(None, True), ("legacy", True), ("draft", True), ("archived", False)],
    )
    def test_only_known_manual_status_is_protected(self, current, expected):
        engine = StatusEngine(
            _config(STATUSES + (Status.manual("archived", "Archived"),)), _Progress(),
        )
        assert engine.may_set_automatically(current) is expected

    def test_label_of(self):
        engine = StatusEngine(_config(), _Progress())
        assert engine.label_of("reviewable") == "Reviewable"
        assert engine.label_of("legacy") is None
        assert engine.label_of(None) is None
