"""Unit tests for email extraction, validation, and ignored-domain matching."""

from __future__ import annotations

import pytest

from src.crm_bridge.schemas import InboundEvent
from src.crm_bridge.sync.email import extract_email, is_email, is_ignored_domain


def _event(**overrides) -> InboundEvent:
    payload = {"event": "identify", "distinct_id": "anon-123", "$set": {}, "properties": {}}
    payload.update(overrides)
    return InboundEvent.model_validate(payload)


class TestIsEmail:
    @pytest.mark.parametrize(
        "value",
        ["a@b.com", "first.last@sub.example.co.uk", "User@Example.COM", '"john doe"@example.com', "ops@[10.0.0.1]"],
    )
    def test_valid(self, value):
        assert is_email(value)

    @pytest.mark.parametrize(
        "value",
        ["not-an-email", "user@localhost", "user@example.c", "@example.com", "a b@example.com", "", None, 42],
    )
    def test_invalid(self, value):
        assert not is_email(value)


class TestExtractEmail:
    def test_prefers_distinct_id(self):
        event = _event(distinct_id="a@b.com", **{"$set": {"email": "other@b.com"}})
        assert extract_email(event) == "a@b.com"

    def test_falls_back_to_set_properties(self):
        event = _event(**{"$set": {"email": "set@b.com"}}, properties={"email": "prop@b.com"})
        assert extract_email(event) == "set@b.com"

    def test_falls_back_to_event_properties(self):
        event = _event(properties={"email": "prop@b.com"})
        assert extract_email(event) == "prop@b.com"

    def test_skips_invalid_set_email(self):
        event = _event(**{"$set": {"email": "nope"}}, properties={"email": "prop@b.com"})
        assert extract_email(event) == "prop@b.com"

    def test_returns_none_without_valid_candidate(self):
        event = _event(**{"$set": {"email": "missing-at.com"}}, properties={"email": "x@nodot"})
        assert extract_email(event) is None

    def test_numeric_distinct_id(self):
        event = _event(distinct_id=12345)
        assert event.distinct_id == "12345"
        assert extract_email(event) is None

    def test_preserves_original_case(self):
        assert extract_email(_event(distinct_id="Ada@Example.com")) == "Ada@Example.com"


class TestIgnoredDomain:
    def test_exact_domain(self):
        assert is_ignored_domain("a@posthog.com", ["posthog.com"])

    def test_subdomain(self):
        assert is_ignored_domain("a@eu.posthog.com", ["posthog.com"])

    def test_case_insensitive(self):
        assert is_ignored_domain("a@PostHog.com", ["POSTHOG.COM"])

    def test_partial_label_is_not_a_match(self):
        assert not is_ignored_domain("a@notposthog.com", ["posthog.com"])

    def test_empty_list(self):
        assert not is_ignored_domain("a@b.com", [])
