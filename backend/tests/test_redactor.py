"""Tests for scrubber.redactor — overlap resolution, placeholders and injection removal."""

from __future__ import annotations

import pytest

from scrubber.patterns import DOMAIN_INJECTION
from scrubber.redactor import (
    normalize_whitespace,
    placeholder,
    placeholder_spans,
    redact_secrets,
    remove_injections,
    resolve_overlaps,
    rewrite,
)
from scrubber.scanner import Finding, Scanner
from samples import AWS_ACCESS_KEY, GITHUB_PAT


def _secret(name: str, start: int, length: int, severity: str = "high") -> Finding:
    return Finding(name=name, severity=severity, value="x" * length, start=start, length=length)


def _injection(name: str, start: int, length: int) -> Finding:
    return Finding(
        name=name, severity="high", value="x" * length, start=start, length=length,
        domain=DOMAIN_INJECTION,
    )


# -----------------------------------------------------------------------
# Overlaps
# -----------------------------------------------------------------------


class TestResolveOverlaps:

    def test_sorted_by_start(self):
        findings = [_secret("b", 10, 3), _secret("a", 0, 3)]
        assert [f.name for f in resolve_overlaps(findings)] == ["a", "b"]

    def test_longer_match_wins_at_same_start(self):
        findings = [_secret("short", 0, 4), _secret("long", 0, 10)]
        assert [f.name for f in resolve_overlaps(findings)] == ["long"]

    def test_name_breaks_ties(self):
        findings = [_secret("zeta", 0, 5), _secret("alpha", 0, 5)]
        assert [f.name for f in resolve_overlaps(findings)] == ["alpha"]

    def test_contained_match_dropped(self):
        findings = [_secret("outer", 0, 20), _secret("inner", 5, 5)]
        assert [f.name for f in resolve_overlaps(findings)] == ["outer"]

    def test_partial_overlap_dropped(self):
        findings = [_secret("first", 0, 10), _secret("second", 8, 10)]
        assert [f.name for f in resolve_overlaps(findings)] == ["first"]

    def test_adjacent_spans_kept(self):
        findings = [_secret("first", 0, 5), _secret("second", 5, 5)]
        assert len(resolve_overlaps(findings)) == 2

    def test_retained_spans_never_overlap(self):
        findings = [_secret(f"p{i}", i * 3, 7) for i in range(10)]
        retained = resolve_overlaps(findings)
        for left, right in zip(retained, retained[1:]):
            assert left.end <= right.start

    def test_empty(self):
        assert resolve_overlaps([]) == []


# -----------------------------------------------------------------------
# Secrets
# -----------------------------------------------------------------------


class TestRedactSecrets:

    def test_placeholder_format(self):
        assert placeholder("aws_access_key") == "[REDACTED:aws_access_key]"

    def test_placeholder_spans(self):
        text = "a [REDACTED:github_pat] b [REDACTED:x1] [redacted]"
        assert placeholder_spans(text) == [(2, 23), (26, 39)]

    def test_aws_key_example(self, scanner: Scanner):
        text = f"AWS_KEY={AWS_ACCESS_KEY}"
        result = redact_secrets(text, scanner.detect_secrets(text))
        assert result == "AWS_KEY=[REDACTED:aws_access_key]"

    def test_multiple_secrets_keep_surrounding_text(self, scanner: Scanner):
        text = f"a={AWS_ACCESS_KEY}\nb={GITHUB_PAT}\n"
        result = redact_secrets(text, scanner.detect_secrets(text))
        assert result == "a=[REDACTED:aws_access_key]\nb=[REDACTED:github_pat]\n"

    def test_no_findings_returns_text_unchanged(self):
        assert redact_secrets("hello", []) == "hello"

    def test_out_of_bounds_span_rejected_without_echoing_value(self):
        finding = Finding(name="x", severity="high", value="SUPERSECRET", start=3, length=10)
        with pytest.raises(ValueError) as excinfo:
            redact_secrets("short", [finding])
        assert "SUPERSECRET" not in str(excinfo.value)

    def test_zero_length_span_is_not_spliced(self):
        finding = Finding(name="ai_detected_secret", severity="high", value="", start=2, length=0, source="ai")
        assert redact_secrets("hello", [finding]) == "hello"


# -----------------------------------------------------------------------
# Injections
# -----------------------------------------------------------------------


class TestRemoveInjections:

    def test_span_removed_and_whitespace_tidied(self):
        text = "Summary:   IGNORE ME   please continue."
        start = text.index("IGNORE ME")
        result = remove_injections(text, [_injection("x", start, len("IGNORE ME"))])
        assert result == "Summary: please continue."

    def test_excess_newlines_collapsed(self):
        assert normalize_whitespace("a\n\n\n\nb") == "a\n\nb"

    def test_no_findings_leaves_whitespace_alone(self):
        text = "  keep   spacing  "
        assert remove_injections(text, []) == text


class TestRewrite:

    def test_combined_pass_uses_original_offsets(self):
        text = "key AKIA then BADPHRASE end"
        secret = _secret("aws_access_key", 4, 4)
        injection = _injection("instruction_override", text.index("BADPHRASE"), len("BADPHRASE"))
        assert rewrite(text, [secret], [injection]) == "key [REDACTED:aws_access_key] then end"

    def test_secret_only_does_not_normalize(self):
        text = "a  b {x}".replace("{x}", "SECRET")
        secret = _secret("s", text.index("SECRET"), 6)
        assert rewrite(text, [secret]) == "a  b [REDACTED:s]"

    def test_redaction_is_idempotent(self, scanner: Scanner):
        text = f"AWS_KEY={AWS_ACCESS_KEY} and {GITHUB_PAT}"
        once = rewrite(text, scanner.detect_secrets(text))
        twice = rewrite(once, scanner.detect_secrets(once))
        assert once == twice
