from datetime import date, datetime

from bananabill.adapters.formatters import (
    format_currency,
    format_date,
    format_datetime,
    format_number,
    format_phone_number,
    format_weight,
)


def test_indian_grouping():
    assert format_number(999) == "999"
    assert format_number(1000) == "1,000"
    assert format_number(125000) == "1,25,000"
    assert format_number(12345678) == "1,23,45,678"
    assert format_number(1234.5, 2) == "1,234.50"


def test_currency():
    assert format_currency(125000) == "₹1,25,000"
    assert format_currency(5000.4) == "₹5,000"
    assert format_currency(-1500) == "-₹1,500"
    assert format_currency(0) == "₹0"


def test_weight():
    assert format_weight(93) == "93 kg"
    assert format_weight(93.456) == "93.46 kg"
    assert format_weight(1075) == "1,075 kg"


def test_dates():
    assert format_date(date(2024, 3, 5)) == "05/03/2024"
    assert format_date("2024-03-05T10:30:00Z") == "05/03/2024"
    assert format_datetime(datetime(2024, 3, 5, 14, 7)) == "05 Mar 2024, 02:07 PM"


def test_phone_number():
    assert format_phone_number("9876543210") == "+91 98765 43210"
    assert format_phone_number("12345") == "12345"
