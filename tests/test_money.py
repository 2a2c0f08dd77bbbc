import logging
from decimal import Decimal

import pytest

from money import InvalidAmount, Money, parse_money_or_zero


def test_parse_keeps_exact_decimal() -> None:
    assert Money.parse("0.1") + Money.parse("0.2") == Money.parse("0.3")
    assert Money.parse(" 42.10 ").amount == Decimal("42.10")


def test_parse_float_goes_through_literal_digits() -> None:
    assert Money.parse(19.99).amount == Decimal("19.99")
    assert Money.parse(5).amount == Decimal("5")


@pytest.mark.parametrize("raw", ["", "   ", "abc", "1,234.00", "1_000", "NaN", "Infinity", True])
def test_parse_rejects_malformed(raw) -> None:
    with pytest.raises(InvalidAmount):
        Money.parse(raw)


def test_to_string_pads_to_two_places() -> None:
    assert Money.parse("1234.5").to_string() == "1234.50"
    assert Money.parse("7").to_string() == "7.00"
    assert str(Money.parse("12.345")) == "12.345"


def test_to_string_never_emits_negative_zero() -> None:
    assert (-Money.zero()).to_string() == "0.00"
    assert (Money.parse("1.00") - Money.parse("1")).to_string() == "0.00"


def test_clamp_and_predicates() -> None:
    assert Money.parse("-3").clamp_zero() == Money.zero()
    assert Money.parse("3").clamp_zero() == Money.parse("3")
    assert Money.parse("-0.01").is_negative()
    assert Money.parse("0.00").is_zero()
    assert abs(Money.parse("-4")) == Money.parse("4")


def test_ratio_is_zero_for_zero_divisor() -> None:
    assert Money.parse("5").ratio(Money.zero()) == 0.0
    assert Money.parse("5").ratio(Money.parse("20")) == pytest.approx(0.25)


def test_rounded_is_half_up() -> None:
    assert Money.parse("0.125").rounded() == Money.parse("0.13")
    assert Money.parse("100").divide(3).rounded().to_string() == "33.33"


def test_parse_money_or_zero_logs_and_substitutes(caplog) -> None:
    with caplog.at_level(logging.WARNING, logger="money"):
        assert parse_money_or_zero("twelve", field="planned") == Money.zero()
    assert "planned" in caplog.text
    assert parse_money_or_zero(None) == Money.zero()
    assert parse_money_or_zero("8.5") == Money.parse("8.50")


def test_large_magnitudes_still_format() -> None:
    huge = parse_money_or_zero("1e30")
    assert huge.to_string() == "1" + "0" * 30 + ".00"
    assert Money.parse("123456789012345678901234567890.125").rounded().to_string() == (
        "123456789012345678901234567890.13"
    )
