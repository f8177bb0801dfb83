"""Tests for teacher name pseudonyms."""

import hashlib

from src.school_mining.pseudonym import Pseudonymizer, transform

NAMES = ["Miller", "Smith", "Jones", "miller", "Müller", "Mueller", "", "Smith "]


def test_transform_is_sha256_of_secret_and_name() -> None:
    expected = hashlib.sha256(b"pepperMiller").hexdigest()

    assert transform(b"pepper", "Miller") == expected
    assert transform("pepper", "Miller") == expected


def test_token_is_lowercase_hex() -> None:
    token = transform(b"pepper", "Miller")

    assert len(token) == 64
    assert token == token.lower()
    int(token, 16)


def test_transform_is_stable() -> None:
    assert {transform(b"pepper", "Jones") for _ in range(5)} == {
        transform(b"pepper", "Jones")
    }


def test_distinct_names_get_distinct_tokens() -> None:
    tokens = [transform(b"pepper", name) for name in NAMES]

    assert len(set(tokens)) == len(NAMES)


def test_secret_changes_token() -> None:
    for name in NAMES:
        assert transform(b"pepper", name) != transform(b"salt", name)


def test_token_does_not_contain_name() -> None:
    assert "Miller" not in transform(b"pepper", "Miller")


def test_pseudonymizer_keeps_order() -> None:
    pseudonymize = Pseudonymizer("pepper")

    assert pseudonymize.many(["Smith", "Miller"]) == [
        transform(b"pepper", "Smith"),
        transform(b"pepper", "Miller"),
    ]
    assert pseudonymize("Smith") == transform(b"pepper", "Smith")
