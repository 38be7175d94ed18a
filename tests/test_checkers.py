import pytest

from execbox.services.checkers import check_exact, check_float, check_whitespace, get_checker


def test_exact_ignores_trailing_whitespace_and_crlf():
    assert check_exact("42\r\n", "42")
    assert check_exact("a\nb\n\n", "a\nb")
    assert not check_exact("a  b", "a b")
    assert not check_exact(" 42", "42")


def test_whitespace_compares_tokens():
    assert check_whitespace("1  2\n3\n", "1 2 3")
    assert not check_whitespace("1 2", "1 2 3")


@pytest.mark.parametrize(
    "actual, expected, eps, ok",
    [
        ("0.3333333", "0.3333334", 1e-6, True),
        ("0.33", "0.34", 1e-6, False),
        ("1000000.1", "1000000.0", 1e-6, True),  # relative
        ("1e-3", "0.001", 1e-9, True),
        ("YES 1.0", "YES 1.0000001", 1e-6, True),
        ("NO 1.0", "YES 1.0", 1e-6, False),
        ("1.0 2.0", "1.0", 1e-6, False),
        ("nan", "nan", 1e-6, True),
        ("inf", "1e308", 1e-6, False),
    ],
)
def test_float_checker(actual, expected, eps, ok):
    assert check_float(actual, expected, eps) is ok


def test_get_checker():
    assert get_checker("exact") is check_exact
    assert get_checker(None) is check_exact
    assert get_checker("WHITESPACE") is check_whitespace
    assert get_checker("float", 0.1)("1.05", "1.0")
    with pytest.raises(ValueError, match="unknown checker"):
        get_checker("regex")
