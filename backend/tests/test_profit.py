"""
Unit tests for profit calculation and sold-lead validation
"""

import pytest

from services.profit import (
    InvalidPriceError,
    calculate_profit_margin,
    compute_lead_profit_margin,
    parse_price,
    validate_sold_lead,
)


class TestCalculateProfitMargin:

    def test_positive_margin(self):
        assert calculate_profit_margin(1000, 800) == 200

    def test_loss_is_allowed(self):
        """sale < product -> negative margin, not an error"""
        assert calculate_profit_margin(500, 600) == -100

    def test_two_decimal_rounding(self):
        assert calculate_profit_margin(10.1, 3.05) == 7.05
        assert calculate_profit_margin(0.3, 0.1) == 0.2

    def test_zero_price_is_accepted(self):
        assert calculate_profit_margin(0, 100) == -100

    @pytest.mark.parametrize("sale, product", [
        (None, 100),
        (100, None),
        ("invalid", 100),
        (float("nan"), 100),
        (True, 100),
    ])
    def test_missing_or_non_numeric(self, sale, product):
        with pytest.raises(InvalidPriceError):
            calculate_profit_margin(sale, product)

    def test_negative_price(self):
        with pytest.raises(InvalidPriceError, match="cannot be negative"):
            calculate_profit_margin(-1, 100)


class TestParsePrice:

    def test_numbers_and_numeric_strings(self):
        assert parse_price(12) == 12.0
        assert parse_price("12.5") == 12.5
        assert parse_price(" 7 ") == 7.0

    def test_unparsable(self):
        assert parse_price(None) is None
        assert parse_price("") is None
        assert parse_price("abc") is None
        assert parse_price(False) is None


class TestComputeLeadProfitMargin:

    def test_both_prices(self):
        assert compute_lead_profit_margin({"sale_price": 1500, "product_price": 1000}) == 500

    def test_one_price_gives_zero(self):
        assert compute_lead_profit_margin({"sale_price": 1500}) == 0
        assert compute_lead_profit_margin({"product_price": "900"}) == 0

    def test_no_price_keeps_stored_value(self):
        assert compute_lead_profit_margin({"profit_margin": 42}) is None


class TestValidateSoldLead:

    def test_valid(self):
        result = validate_sold_lead({"sale_price": 1000, "product_price": 800})
        assert result.is_valid
        assert result.errors == []

    def test_zero_sale_price(self):
        result = validate_sold_lead({"sale_price": 0, "product_price": 800})
        assert not result.is_valid
        assert result.errors == ["Sale price must be greater than 0 for sold leads"]

    def test_errors_accumulate(self):
        """Every violated rule is reported together"""
        result = validate_sold_lead({"sale_price": None, "product_price": -5})
        assert not result.is_valid
        assert "Sale price must be greater than 0 for sold leads" in result.errors
        assert "Product price must be greater than 0 for sold leads" in result.errors
        assert "Sale price and product price must be valid numbers" in result.errors
        assert len(result.errors) == 3

    def test_non_numeric(self):
        result = validate_sold_lead({"sale_price": "abc", "product_price": 100})
        assert not result.is_valid
        assert "Sale price and product price must be valid numbers" in result.errors

    def test_does_not_mutate_input(self):
        data = {"sale_price": "10", "product_price": "5"}
        validate_sold_lead(data)
        assert data == {"sale_price": "10", "product_price": "5"}
