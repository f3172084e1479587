from __future__ import annotations

import pytest

from storyreel.credentials import CredentialPool, load_credentials, parse_credentials


def test_pool_rotates_round_robin():
    pool = CredentialPool(["A", "B"])
    assert [pool.next(), pool.next(), pool.next()] == ["A", "B", "A"]


def test_pool_full_cycle_returns_each_once():
    keys = ["k1", "k2", "k3", "k4"]
    pool = CredentialPool(keys)
    assert [pool.next() for _ in keys] == keys
    assert pool.cursor == 0


def test_empty_pool_returns_none():
    pool = CredentialPool()
    assert len(pool) == 0
    assert pool.next() is None
    assert pool.next() is None


def test_replace_resets_cursor():
    pool = CredentialPool(["A", "B", "C"])
    pool.next()
    pool.next()
    pool.replace(["X", "Y"])
    assert pool.cursor == 0
    assert pool.next() == "X"
    pool.clear()
    assert pool.next() is None


def test_parse_credentials_filters_lines():
    good = "AIzaSy" + "x" * 20
    text = "\n".join([good, "  ", "AIzaSyshort", "sk-" + "y" * 30, f"  {good}2  "])
    assert parse_credentials(text) == [good, good + "2"]


def test_load_credentials(tmp_path):
    path = tmp_path / "keys.txt"
    key = "AIzaSy" + "z" * 30
    path.write_text(f"{key}\nnot-a-key\n", encoding="utf-8")
    assert load_credentials(str(path)) == [key]
    with pytest.raises(FileNotFoundError):
        load_credentials(str(tmp_path / "missing.txt"))
