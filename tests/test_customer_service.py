import pytest

from app.services.customer_service import find_missing_letter


@pytest.mark.parametrize(
    ("name", "expected"),
    [
        ("Ana Beatriz", "C"),
        ("abc", "D"),
        ("Zé", "A"),
        ("", "A"),
        ("1234 !!", "A"),
        ("ABCDEFGHIJKLMNOPQRSTUVWXY", "Z"),
        ("The quick brown fox jumps over the lazy dog", "-"),
    ],
)
def test_find_missing_letter(name, expected):
    assert find_missing_letter(name) == expected


def test_find_missing_letter_is_case_insensitive():
    assert find_missing_letter("aBc") == find_missing_letter("ABC") == "D"
