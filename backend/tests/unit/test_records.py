"""Unit tests for ApiKeyRecord and the sport scope variant."""

from __future__ import annotations

import datetime

import pytest

from sports_api.auth.records import ApiKeyRecord, Tags, Wildcard, scope_from_stored
from tests.fakes import BASE_TIME


def make_record(**overrides) -> ApiKeyRecord:
    fields = dict(
        id=1,
        key_hash="a" * 64,
        key_prefix="sk_live_abcd",
        name="test",
        allowed_sports=Wildcard(),
        rate_limit_per_minute=100,
        is_active=True,
        created_at=BASE_TIME,
    )
    fields.update(overrides)
    return ApiKeyRecord(**fields)


class TestSportScope:
    def test_wildcard_allows_anything(self):
        scope = Wildcard()
        assert scope.allows("soccer")
        assert scope.allows("basketball")
        assert scope.allows("curling")

    def test_tags_allow_only_members(self):
        scope = Tags(frozenset({"soccer"}))
        assert scope.allows("soccer")
        assert not scope.allows("basketball")
        assert not scope.allows("Soccer")

    def test_empty_tags_rejected(self):
        with pytest.raises(ValueError):
            Tags(frozenset())

    def test_star_tag_rejected(self):
        with pytest.raises(ValueError):
            Tags(frozenset({"*", "soccer"}))


class TestScopeFromStored:
    def test_star_is_wildcard(self):
        assert scope_from_stored(["*"]) == Wildcard()

    def test_star_anywhere_is_wildcard(self):
        assert scope_from_stored(["soccer", "*"]) == Wildcard()

    def test_list_becomes_tags(self):
        assert scope_from_stored(["soccer", "basketball"]) == Tags(
            frozenset({"soccer", "basketball"})
        )

    def test_whitespace_and_blanks_dropped(self):
        assert scope_from_stored([" soccer ", ""]) == Tags(frozenset({"soccer"}))

    def test_empty_list_rejected(self):
        with pytest.raises(ValueError):
            scope_from_stored([])

    @pytest.mark.parametrize("stored", ["soccer", 5, {"soccer": True}, ["soccer", 3], None])
    def test_non_list_of_strings_rejected(self, stored):
        with pytest.raises(ValueError):
            scope_from_stored(stored)

    def test_to_stored(self):
        assert Wildcard().to_stored() == ["*"]
        assert Tags(frozenset({"soccer", "basketball"})).to_stored() == ["basketball", "soccer"]


class TestApiKeyRecord:
    @pytest.mark.parametrize("limit", [0, -1])
    def test_non_positive_rate_limit_rejected(self, limit):
        with pytest.raises(ValueError):
            make_record(rate_limit_per_minute=limit)

    def test_scope_must_be_variant(self):
        with pytest.raises(ValueError):
            make_record(allowed_sports=["*"])

    def test_naive_timestamps_become_utc(self):
        record = make_record(
            created_at=datetime.datetime(2026, 1, 1, 12, 0),
            expires_at=datetime.datetime(2026, 2, 1, 12, 0),
        )
        assert record.created_at.tzinfo is datetime.timezone.utc
        assert record.expires_at == datetime.datetime(2026, 2, 1, 12, 0, tzinfo=datetime.timezone.utc)

    def test_expiry(self):
        record = make_record(expires_at=BASE_TIME)
        assert record.is_expired(BASE_TIME)
        assert not record.is_expired(BASE_TIME - datetime.timedelta(seconds=1))

    def test_no_expiry_never_expires(self):
        record = make_record(expires_at=None)
        assert not record.is_expired(BASE_TIME + datetime.timedelta(days=3650))

    def test_repr_hides_hash(self):
        assert "a" * 64 not in repr(make_record())
