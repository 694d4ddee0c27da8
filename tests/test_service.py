# -*- coding: utf-8 -*-
"""
EcoTrack Service Tests

This test suite validates:
- Message analysis end to end (parse -> normalize -> calculate)
- Parse enhancer precedence and failure handling
- Log repository loading and filtering
- Badge checks and summaries through the facade
- Singleton access
"""

from datetime import datetime, timedelta, timezone

import pytest

from ecotrack.exceptions import ConfigurationError
from ecotrack.models import (
    ActivityCategory,
    AnalysisStatus,
    ImpactTier,
    ParsedActivity,
    ParseSource,
)
from ecotrack.service import (
    INVALID_AMOUNT_MESSAGE,
    NO_MATCH_MESSAGE,
    UNKNOWN_ACTIVITY_MESSAGE,
    EcoTrackService,
    InMemoryLogRepository,
    LogRepository,
    ParseEnhancer,
    get_service,
    reset_service,
)


class StaticEnhancer:
    """Enhancer returning a fixed answer."""

    def __init__(self, answer):
        self.answer = answer
        self.calls = []

    def enhance(self, text, parsed):
        self.calls.append((text, parsed))
        return self.answer


class BrokenEnhancer:
    def enhance(self, text, parsed):
        raise RuntimeError("model unavailable")


@pytest.fixture
def service(config, table, catalogue):
    return EcoTrackService(config=config, table=table, catalogue=catalogue)


# =============================================================================
# analyze
# =============================================================================


class TestAnalyze:
    """Message analysis."""

    def test_drive_to_work(self, service):
        result = service.analyze("I drove 10 km to work")

        assert result.status == AnalysisStatus.CALCULATED
        analysis = result.analysis
        assert analysis.category == ActivityCategory.TRANSPORTATION
        assert analysis.activity == "driving"
        assert analysis.total_emission == pytest.approx(2.1)
        assert analysis.impact_tier == ImpactTier.HIGH
        assert analysis.confidence >= 0.7
        assert analysis.original_unit == "km"
        assert analysis.source == ParseSource.RULES
        assert result.message == analysis.formatted_text

    def test_miles_are_normalized(self, service):
        result = service.analyze("I drove 10 miles")

        assert result.analysis.unit == "km"
        assert result.analysis.amount == pytest.approx(16.0934)
        assert result.analysis.original_amount == 10
        assert result.analysis.original_unit == "miles"

    def test_recycling_saving(self, service):
        result = service.analyze("I recycled 5 kg of plastic")

        assert result.analysis.is_saving is True
        assert result.analysis.total_emission == pytest.approx(-1.0)

    def test_no_match(self, service):
        result = service.analyze("hello there")

        assert result.status == AnalysisStatus.NO_MATCH
        assert result.analysis is None
        assert result.message == NO_MATCH_MESSAGE
        assert result.suggestions

    def test_unknown_activity_from_enhancer(self, config, table, catalogue):
        answer = ParsedActivity(
            category=ActivityCategory.TRANSPORTATION, activity="hoverboard",
            amount=3, unit="km", confidence=0.9,
        )
        service = EcoTrackService(config, table, catalogue, enhancer=StaticEnhancer(answer))

        result = service.analyze("I hoverboarded 3 km")

        assert result.status == AnalysisStatus.UNKNOWN_ACTIVITY
        assert result.message == UNKNOWN_ACTIVITY_MESSAGE
        assert result.parsed.activity == "hoverboard"
        assert result.analysis is None

    def test_overflowing_amount_in_text(self, service):
        result = service.analyze("I drove " + "9" * 400 + " km to work")

        assert result.status == AnalysisStatus.NO_MATCH
        assert result.message == NO_MATCH_MESSAGE

    def test_uncalculable_amount_from_enhancer(self, config, table, catalogue):
        answer = ParsedActivity(
            category=ActivityCategory.FOOD, activity="beef",
            amount=1e308, unit="kg", confidence=0.9,
        )
        service = EcoTrackService(config, table, catalogue, enhancer=StaticEnhancer(answer))

        result = service.analyze("I ate a mountain of beef")

        assert result.status == AnalysisStatus.INVALID_AMOUNT
        assert result.message == INVALID_AMOUNT_MESSAGE
        assert result.analysis is None


# =============================================================================
# Enhancer
# =============================================================================


class TestParseEnhancer:
    """Second-opinion parser precedence."""

    def test_enhancer_supersedes_rules(self, config, table, catalogue):
        answer = ParsedActivity(
            category=ActivityCategory.TRANSPORTATION, activity="bus",
            amount=10, unit="km", confidence=0.95,
        )
        enhancer = StaticEnhancer(answer)
        service = EcoTrackService(config, table, catalogue, enhancer=enhancer)

        result = service.analyze("I drove 10 km to work")

        assert result.analysis.activity == "bus"
        assert result.analysis.source == ParseSource.ENHANCER
        # the rule result is handed to the enhancer
        assert enhancer.calls[0][1].activity == "driving"

    def test_none_keeps_rule_result(self, config, table, catalogue):
        service = EcoTrackService(config, table, catalogue, enhancer=StaticEnhancer(None))

        assert service.parse("I drove 10 km").source == ParseSource.RULES

    def test_enhancer_failure_falls_back(self, config, table, catalogue):
        service = EcoTrackService(config, table, catalogue, enhancer=BrokenEnhancer())

        result = service.analyze("I drove 10 km")

        assert result.status == AnalysisStatus.CALCULATED
        assert result.analysis.activity == "driving"

    def test_wrong_type_ignored(self, config, table, catalogue):
        enhancer = StaticEnhancer({"activity": "bus"})
        service = EcoTrackService(config, table, catalogue, enhancer=enhancer)

        assert service.parse("I drove 10 km").activity == "driving"

    def test_protocols(self):
        assert isinstance(StaticEnhancer(None), ParseEnhancer)
        assert isinstance(InMemoryLogRepository(), LogRepository)


# =============================================================================
# Repository
# =============================================================================


class TestInMemoryLogRepository:

    def test_entries_for_user_and_since(self, make_entry):
        repo = InMemoryLogRepository([
            make_entry("bus", days_ago=0),
            make_entry("bus", days_ago=5),
            make_entry("bus", days_ago=0, user_id="user-2"),
        ])
        since = datetime(2025, 3, 10, tzinfo=timezone.utc)

        assert len(repo.entries_for("user-1")) == 2
        assert len(repo.entries_for("user-1", since)) == 1
        assert repo.user_ids() == ["user-1", "user-2"]

    def test_add(self, make_entry):
        repo = InMemoryLogRepository()
        repo.add(make_entry())

        assert len(repo) == 1

    def test_from_yaml_file(self, tmp_path):
        path = tmp_path / "log.yaml"
        path.write_text(
            "- user_id: alice\n"
            "  category: transportation\n"
            "  activity: bus\n"
            "  quantity: 12\n"
            "  signed_emission: 1.068\n"
            "  timestamp: '2025-03-12T08:00:00+00:00'\n",
            encoding="utf-8",
        )

        repo = InMemoryLogRepository.from_file(path)

        entries = repo.entries_for("alice")
        assert len(entries) == 1
        assert entries[0].category == ActivityCategory.TRANSPORTATION

    def test_entries_key_accepted(self, tmp_path):
        path = tmp_path / "log.json"
        path.write_text('{"entries": []}', encoding="utf-8")

        assert len(InMemoryLogRepository.from_file(path)) == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            InMemoryLogRepository.from_file(tmp_path / "missing.yaml")

    def test_invalid_entry(self, tmp_path):
        path = tmp_path / "log.yaml"
        path.write_text("- user_id: alice\n  activity: bus\n", encoding="utf-8")

        with pytest.raises(ConfigurationError):
            InMemoryLogRepository.from_file(path)


# =============================================================================
# Badges, summaries, log entries
# =============================================================================


class TestFacadeOperations:

    def test_to_log_entry(self, service, now):
        analysis = service.analyze("I drove 10 km").analysis

        entry = service.to_log_entry("user-1", analysis)

        assert entry.quantity == 10
        assert entry.signed_emission == pytest.approx(2.1)
        assert entry.timestamp == now

    def test_check_badges(self, service, make_entry, now):
        repo = InMemoryLogRepository([make_entry("bus", days_ago=n) for n in range(5)])

        result = service.check_badges("user-1", repo)

        assert [b.badge_id for b in result.newly_earned] == ["getting_started"]
        assert service.badges.total_points(result.progress) == 10

    def test_summarize_since(self, service, make_entry):
        repo = InMemoryLogRepository([
            make_entry("beef", days_ago=10, quantity=1),
            make_entry("driving", days_ago=1, quantity=10),
        ])
        since = datetime(2025, 3, 12, tzinfo=timezone.utc) - timedelta(days=7)

        summary = service.summarize("user-1", repo, since=since)

        assert summary.entry_count == 1
        assert summary.total_emissions == pytest.approx(2.1)

    def test_get_metrics(self, service):
        info = service.get_metrics()

        assert info["metrics_enabled"] is False
        assert info["badge_count"] == 13
        assert info["rule_count"] > 0
        assert info["enhancer"] is None


class TestSingleton:

    def test_get_service_is_cached(self, config):
        assert get_service() is get_service()

    def test_reset_service(self, config):
        first = get_service()
        reset_service()

        assert get_service() is not first
