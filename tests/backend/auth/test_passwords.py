import pytest

from backend.auth.passwords import hash_password, verify_password


@pytest.mark.parametrize('password', ['bar', 'correct horse battery staple', 'pässwörd', ' '])
def test_hash_round_trip_verifies(password: str) -> None:
    hashed = hash_password(password)

    assert hashed != password
    assert verify_password(password, hashed)


def test_hash_is_salted_per_call() -> None:
    first = hash_password('bar')
    second = hash_password('bar')

    assert first != second
    assert verify_password('bar', first)
    assert verify_password('bar', second)


def test_verify_rejects_wrong_password() -> None:
    assert verify_password('baz', hash_password('bar')) is False


def test_verify_returns_false_for_malformed_hash() -> None:
    assert verify_password('bar', 'not-a-bcrypt-hash') is False
    assert verify_password('bar', '') is False


def test_hash_honours_explicit_cost() -> None:
    hashed = hash_password('bar', rounds=5)

    assert hashed.startswith('$2b$05$')
    assert verify_password('bar', hashed)
