"""Tests for scrubber.decision — thresholds, block reasons and sanitize output."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from scrubber.decision import (
    ACTION_INJECTIONS_REMOVED,
    ACTION_SECRETS_REDACTED,
    Decision,
    ThreatSummary,
    block_reason,
    decide,
    should_block,
)
from scrubber.options import BlockThreshold, SanitizeOptions
from scrubber.patterns import DOMAIN_INJECTION
from scrubber.scanner import Finding


def _secret(name: str, start: int, length: int = 4, severity: str = "medium") -> Finding:
    return Finding(name=name, severity=severity, value="x" * length, start=start, length=length)


def _injection(name: str, start: int, length: int = 4, severity: str = "medium") -> Finding:
    return Finding(
        name=name, severity=severity, value="x" * length, start=start, length=length,
        domain=DOMAIN_INJECTION,
    )


TEXT = "0123456789" * 5


class TestThreatSummary:

    def test_from_findings(self):
        summary = ThreatSummary.from_findings(
            [_secret("a", 0, severity="critical"), _secret("a", 10)],
            [_injection("b", 20, severity="high")],
        )
        assert summary.secrets == 2
        assert summary.injections == 1
        assert summary.high_severity == 2
        assert summary.by_name == {"a": 2, "b": 1}
        assert summary.total == 3


class TestShouldBlock:

    @pytest.mark.parametrize(
        "summary, expected",
        [
            (ThreatSummary(secrets=2), False),
            (ThreatSummary(secrets=3), True),
            (ThreatSummary(injections=1), False),
            (ThreatSummary(injections=2), True),
            (ThreatSummary(high_severity=1), True),
            (ThreatSummary(), False),
        ],
    )
    def test_default_thresholds(self, summary: ThreatSummary, expected: bool):
        assert should_block(summary, BlockThreshold()) is expected

    def test_monotonic_in_threshold(self):
        summary = ThreatSummary(secrets=4)
        blocked = [should_block(summary, BlockThreshold(secrets=n, high_severity=99)) for n in range(1, 8)]
        # Once a threshold stops blocking, no larger threshold blocks again
        assert blocked == sorted(blocked, reverse=True)

    def test_reason_format(self):
        summary = ThreatSummary(secrets=3, injections=1, high_severity=2)
        assert block_reason(summary) == "Content blocked: 3 secrets, 1 injections, 2 high-severity threats"


class TestDecide:

    def test_block_mode_blocks(self):
        secrets = [_secret("aws_access_key", i * 10, severity="critical") for i in range(3)]
        decision = decide(TEXT, secrets, [], SanitizeOptions(mode="block"))
        assert decision.blocked is True
        assert decision.safe is False
        assert decision.sanitized_text is None
        assert decision.reason == "Content blocked: 3 secrets, 0 injections, 3 high-severity threats"
        assert decision.actions == ()

    def test_block_mode_below_threshold_sanitizes(self):
        decision = decide(TEXT, [_secret("generic_secret", 0)], [], SanitizeOptions(mode="block"))
        assert decision.blocked is False
        assert decision.sanitized_text.startswith("[REDACTED:generic_secret]")
        assert decision.actions == (ACTION_SECRETS_REDACTED,)

    def test_sanitize_mode_never_blocks(self):
        secrets = [_secret("aws_access_key", i * 10, severity="critical") for i in range(4)]
        injections = [_injection("instruction_override", 45, length=2, severity="high")]
        decision = decide(TEXT, secrets, injections, SanitizeOptions(mode="sanitize"))
        assert decision.blocked is False
        assert decision.reason is None
        assert decision.actions == (ACTION_SECRETS_REDACTED, ACTION_INJECTIONS_REMOVED)
        assert decision.summary.secrets == 4
        assert decision.summary.injections == 1

    def test_clean_text_is_safe(self):
        decision = decide("nothing here", [], [], SanitizeOptions(mode="block"))
        assert decision.safe is True
        assert decision.sanitized_text == "nothing here"
        assert decision.actions == ()

    def test_overlapping_findings_count_once(self):
        secrets = [_secret("generic_api_key", 0, length=8), _secret("stripe_live_key", 0, length=12)]
        decision = decide(TEXT, secrets, [], SanitizeOptions(mode="sanitize"))
        assert decision.summary.secrets == 1
        assert decision.summary.by_name == {"stripe_live_key": 1}

    def test_custom_threshold(self):
        options = SanitizeOptions(mode="block", block_threshold=BlockThreshold(secrets=1, high_severity=10))
        decision = decide(TEXT, [_secret("generic_secret", 0)], [], options)
        assert decision.blocked is True

    def test_clean_factory(self):
        decision = Decision.clean()
        assert decision.safe is True
        assert decision.sanitized_text == ""
        assert decision.summary.total == 0


class TestRescanAfterRemoval:

    def test_rejoined_secret_is_redacted_and_counted(self):
        rescan = MagicMock(return_value=[_secret("joined", 0, length=4)])
        decision = decide("abXXcd", [], [_injection("marker", 2, length=2)],
                          SanitizeOptions(mode="sanitize"), rescan=rescan)
        rescan.assert_called_once_with("abcd")
        assert decision.sanitized_text == "[REDACTED:joined]"
        assert decision.summary.secrets == 1
        assert decision.summary.injections == 1

    def test_no_rescan_without_removed_spans(self):
        rescan = MagicMock(return_value=[])
        decide(TEXT, [_secret("a", 0)], [], SanitizeOptions(mode="sanitize"), rescan=rescan)
        rescan.assert_not_called()

    def test_placeholder_overlap_ignored(self):
        rescan = MagicMock(return_value=[_secret("generic", 0, length=6)])
        decision = decide("abcdXX", [_secret("first", 0)], [_injection("marker", 4, length=2)],
                          SanitizeOptions(mode="sanitize"), rescan=rescan)
        assert decision.sanitized_text == "[REDACTED:first]"
        assert decision.summary.by_name == {"first": 1, "marker": 1}


class TestSummaryImmutability:

    def test_by_name_is_read_only(self):
        summary = ThreatSummary.from_findings([_secret("a", 0)], [])
        with pytest.raises(TypeError):
            summary.by_name["a"] = 5
        assert summary.by_name == {"a": 1}
