from __future__ import annotations

import pytest

from catalog_crawler.engine import CredentialPool, parse_credentials
from catalog_crawler.exceptions import ValidationError


def test_parse_credentials_splits_commas_and_newlines() -> None:
    raw = " key-a ,key-b\n\n  key-c  \n,,"
    assert parse_credentials(raw) == ["key-a", "key-b", "key-c"]
    assert parse_credentials(None) == []
    assert parse_credentials("  \n , ") == []


def test_pool_requires_at_least_one_key() -> None:
    with pytest.raises(ValidationError, match="at least one API key"):
        CredentialPool.from_raw(" , \n")


def test_pool_rotates_round_robin_and_resets_counter() -> None:
    pool = CredentialPool(["a", "b", "c"])
    assert pool.active == "a"
    assert pool.record_failure() == 1
    assert pool.record_failure() == 2

    assert pool.rotate_to_next() == 1
    assert pool.active == "b"
    assert pool.consecutive_rate_limit_count == 0

    pool.rotate_to_next()
    assert pool.rotate_to_next() == 0
    assert pool.active == "a"


def test_single_key_pool_cannot_rotate() -> None:
    pool = CredentialPool(["solo"])
    assert not pool.can_rotate
    with pytest.raises(RuntimeError):
        pool.rotate_to_next()


def test_pool_repr_hides_secrets() -> None:
    pool = CredentialPool(["super-secret"])
    assert "super-secret" not in repr(pool)
    assert "size=1" in repr(pool)
