"""Unit tests for credential extraction and denial → HTTP mapping."""

from __future__ import annotations

import pytest

from sports_api.auth.dependencies import ApiError, deny_to_error, extract_api_key
from sports_api.auth.errors import DenyReason
from sports_api.auth.gate import Deny


class TestExtractApiKey:
    @pytest.mark.parametrize(
        "authorization, x_api_key, expected",
        [
            ("Bearer sk_live_a", None, "sk_live_a"),
            ("bearer sk_live_a", None, "sk_live_a"),
            ("Bearer  sk_live_a ", None, "sk_live_a"),
            (None, "sk_live_b", "sk_live_b"),
            ("Bearer sk_live_a", "sk_live_b", "sk_live_a"),
            ("Basic abc", "sk_live_b", "sk_live_b"),
            ("Bearer ", None, None),
            ("Bearer", None, None),
            ("", "  ", None),
            (None, None, None),
        ],
    )
    def test_extraction(self, authorization, x_api_key, expected):
        assert extract_api_key(authorization, x_api_key) == expected


class TestDenyToError:
    @pytest.mark.parametrize(
        "reason, status_code, code",
        [
            (DenyReason.NOT_FOUND, 401, "UNAUTHORIZED"),
            (DenyReason.EXPIRED, 401, "UNAUTHORIZED"),
            (DenyReason.REVOKED, 401, "UNAUTHORIZED"),
            (DenyReason.SCOPE_DENIED, 403, "FORBIDDEN"),
            (DenyReason.RATE_LIMITED, 429, "RATE_LIMIT_EXCEEDED"),
            (DenyReason.UNAVAILABLE, 503, "SERVICE_UNAVAILABLE"),
        ],
    )
    def test_status_and_code(self, reason, status_code, code):
        error = deny_to_error(Deny(reason), "soccer")

        assert isinstance(error, ApiError)
        assert error.status_code == status_code
        assert error.code == code

    def test_retry_after_is_whole_seconds(self):
        error = deny_to_error(Deny(DenyReason.RATE_LIMITED, retry_after=12.3), "soccer")

        assert error.headers == {"Retry-After": "13"}

    def test_retry_after_never_zero(self):
        error = deny_to_error(Deny(DenyReason.RATE_LIMITED, retry_after=0.001), "soccer")

        assert error.headers == {"Retry-After": "1"}

    def test_unauthorized_challenges_bearer(self):
        error = deny_to_error(Deny(DenyReason.REVOKED), "soccer")

        assert error.headers == {"WWW-Authenticate": "Bearer"}

    def test_scope_message_names_sport(self):
        error = deny_to_error(Deny(DenyReason.SCOPE_DENIED), "basketball")

        assert error.detail == "API key does not have access to basketball data."
        assert error.headers is None

    def test_missing_credential_message(self):
        error = deny_to_error(Deny(DenyReason.NOT_FOUND), "soccer", credential_present=False)

        assert "Authorization: Bearer" in error.detail


class TestDenyReason:
    def test_only_throttling_and_outages_are_retryable(self):
        retryable = {reason for reason in DenyReason if reason.retryable}

        assert retryable == {DenyReason.RATE_LIMITED, DenyReason.UNAVAILABLE}
