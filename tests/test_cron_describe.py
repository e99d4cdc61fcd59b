import pytest

from pylon.cron_describe import describe_cron


@pytest.mark.parametrize(
    "expr, want",
    [
        ("0 9 * * 1-5", "09:00"),
        ("*/5 * * * *", "5 minutes"),
        ("0 0 * * 0", "Sunday"),
        ("invalid", "invalid"),
    ],
)
def test_describe_cron_contains(expr, want):
    assert want in describe_cron(expr)


@pytest.mark.parametrize(
    "expr, want",
    [
        ("* * * * *", "Every minute"),
        ("*/5 * * * *", "Every 5 minutes"),
        ("0 9 * * 1-5", "At 09:00 AM, Monday through Friday"),
        ("0 0 * * 0", "At 12:00 AM, only on Sunday"),
        ("30 14 1 * *", "At 02:30 PM, on day 1 of the month"),
        ("0 9 * JAN-MAR MON", "At 09:00 AM, only on Monday, January through March"),
        ("0 9,17 * * *", "At 09:00 AM and 05:00 PM"),
    ],
)
def test_describe_cron_exact(expr, want):
    assert describe_cron(expr) == want


def test_describe_cron_seven_means_sunday():
    assert describe_cron("0 0 * * 7") == describe_cron("0 0 * * 0")


@pytest.mark.parametrize(
    "expr",
    [
        "60 * * * *",
        "* 24 * * *",
        "* * 0 * *",
        "* * * 13 *",
        "* * * *",
        "* * * * * * *",
        "5-1 * * * *",
        "*/0 * * * *",
        "* * * FOO *",
        "1,,2 * * * *",
    ],
)
def test_describe_cron_invalid_returns_expression(expr):
    assert describe_cron(expr) == expr