import string

import pytest

from links.identifiers import generate_secret_id, generate_short_id, secret_matches

ALPHANUMERIC = set(string.ascii_letters + string.digits)


@pytest.mark.parametrize(
    "length",
    [1, 6, 8, 12],
)
def test_generate_short_id_length(length):
    short_id = generate_short_id(length)
    assert len(short_id) == length
    assert set(short_id) <= ALPHANUMERIC


def test_generate_short_id_defaults_to_eight():
    assert len(generate_short_id()) == 8


def test_generate_short_id_rejects_non_positive_length():
    with pytest.raises(ValueError):
        generate_short_id(0)


def test_generate_secret_id_is_uuid_shaped_and_unique():
    ids = {generate_secret_id() for _ in range(100)}
    assert len(ids) == 100
    assert all(len(secret) == 36 for secret in ids)


def test_generate_secret_id_without_entropy_source(monkeypatch):
    def no_entropy():
        raise NotImplementedError

    monkeypatch.setattr("links.identifiers.uuid.uuid4", no_entropy)
    secret = generate_secret_id()
    assert len(secret) == 26
    assert set(secret) <= set(string.ascii_lowercase + string.digits)


@pytest.mark.parametrize(
    "supplied, expected",
    [
        ("s3cret", True),
        ("S3CRET", False),
        ("", False),
        (None, False),
    ],
)
def test_secret_matches(supplied, expected):
    assert secret_matches("s3cret", supplied) is expected
