"""
tests/test_store.py — Key-Value Store Tests
============================================
Covers get/set/delete/list on ``kv_entries`` and transaction rollback.
"""

from __future__ import annotations

import pytest


class TestSingleKey:
    def test_get_missing_returns_none(self, store):
        assert store.get(("users", "nope")) is None

    def test_set_then_get(self, store):
        store.set(("users", "u1"), {"name": "Ana"})
        assert store.get(("users", "u1")) == {"name": "Ana"}

    def test_set_overwrites(self, store):
        store.set(("users", "u1"), {"name": "Ana"})
        store.set(("users", "u1"), {"name": "Ben"})
        assert store.get(("users", "u1")) == {"name": "Ben"}

    def test_delete_reports_whether_row_existed(self, store):
        store.set(("users", "u1"), {"name": "Ana"})
        assert store.delete(("users", "u1")) is True
        assert store.delete(("users", "u1")) is False
        assert store.get(("users", "u1")) is None

    def test_collections_are_separate(self, store):
        store.set(("users", "x"), {"kind": "user"})
        store.set(("suggestions", "x"), {"kind": "suggestion"})
        assert store.get(("users", "x")) == {"kind": "user"}
        assert store.get(("suggestions", "x")) == {"kind": "suggestion"}


class TestList:
    def test_whole_collection(self, store):
        store.set(("votes", "b:1"), {"n": 2})
        store.set(("votes", "a:1"), {"n": 1})
        store.set(("users", "a"), {"n": 3})
        rows = store.list(("votes",))
        assert [key for key, _ in rows] == [("votes", "a:1"), ("votes", "b:1")]

    def test_name_prefix(self, store):
        store.set(("votes", "u1:s1"), {})
        store.set(("votes", "u1:s2"), {})
        store.set(("votes", "u10:s1"), {})
        keys = [key[1] for key, _ in store.list(("votes", "u1:"))]
        assert keys == ["u1:s1", "u1:s2"]

    def test_prefix_wildcards_are_literal(self, store):
        store.set(("votes", "a_b"), {})
        store.set(("votes", "axb"), {})
        keys = [key[1] for key, _ in store.list(("votes", "a_"))]
        assert keys == ["a_b"]

    def test_empty_collection(self, store):
        assert store.list(("suggestions",)) == []


class TestTransaction:
    def test_commits_all_writes(self, store):
        with store.transaction() as tx:
            tx.set(("users", "u1"), {"n": 1})
            tx.set(("users_by_email", "a@b.c"), {"user_id": "u1"})
        assert store.get(("users", "u1")) == {"n": 1}
        assert store.get(("users_by_email", "a@b.c")) == {"user_id": "u1"}

    def test_rolls_back_on_error(self, store):
        store.set(("users", "u1"), {"n": 1})
        with pytest.raises(RuntimeError):
            with store.transaction() as tx:
                tx.set(("users", "u1"), {"n": 2})
                tx.set(("users", "u2"), {"n": 3})
                raise RuntimeError("boom")
        assert store.get(("users", "u1")) == {"n": 1}
        assert store.get(("users", "u2")) is None

    def test_reads_own_writes(self, store):
        with store.transaction() as tx:
            tx.set(("users", "u1"), {"n": 1})
            assert tx.get(("users", "u1")) == {"n": 1}
            assert tx.delete(("users", "u1")) is True
            assert tx.get(("users", "u1")) is None
