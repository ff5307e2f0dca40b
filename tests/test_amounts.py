import pytest

from wattx_indexer.app.domain.amounts import coins_to_satoshis, format_token_amount


@pytest.mark.parametrize(
    "amount, decimals, expected",
    [
        ("1500000000000000000", 18, "1.5"),
        ("0", 18, "0"),
        ("100", 0, "100"),
        ("1000000000000000000", 18, "1"),
        ("1", 18, "0.000000000000000001"),
        ("123456789", 4, "12345.6789"),
        (-150, 2, "-1.5"),
    ],
)
def test_format_token_amount(amount, decimals, expected):
    assert format_token_amount(amount, decimals) == expected


def test_format_token_amount_rejects_negative_decimals():
    with pytest.raises(ValueError):
        format_token_amount("1", -1)


def test_coins_to_satoshis():
    assert coins_to_satoshis(4.0) == 400_000_000
    assert coins_to_satoshis(0.1) == 10_000_000
    assert coins_to_satoshis("100.5") == 10_050_000_000
    assert coins_to_satoshis(None) == 0
    assert coins_to_satoshis("not a number") == 0
