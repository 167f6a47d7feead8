import pytest

from ingestor.core.categories import CATEGORY_ALIASES, is_valid_category, normalize_category
from models.fund import FUND_CATEGORIES


def test_normalization_is_case_insensitive():
    assert normalize_category("large-cap") == normalize_category("LARGE CAP") == "Large Cap Equity"


@pytest.mark.parametrize("category", FUND_CATEGORIES)
def test_canonical_categories_map_to_themselves(category):
    assert normalize_category(category) == category


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("Hybrid - Conservative", "Hybrid – Conservative"),
        ("aggressive hybrid", "Hybrid – Equity-Oriented"),
        ("  Liquid ", "Debt – Short/Ultra Short"),
        ("g-sec", "Debt – Gilt"),
        ("Banking & PSU", "Debt – Banking / PSU"),
        ("Equity: Flexi Cap", "Flexi-Cap / MultiCap"),
        ("etf", "Index / ETF"),
    ],
)
def test_provider_spellings(raw, expected):
    assert normalize_category(raw) == expected


def test_unknown_category_is_trimmed_not_rewritten():
    assert normalize_category("  Thematic - Infrastructure ") == "Thematic - Infrastructure"
    assert not is_valid_category("Thematic - Infrastructure")


def test_empty_values_pass_through():
    assert normalize_category(None) is None
    assert normalize_category("") == ""
    assert not is_valid_category(None)


def test_non_string_values_pass_through():
    assert normalize_category(1.5) == 1.5
    assert normalize_category(["Large Cap"]) == ["Large Cap"]
    assert not is_valid_category(["Large Cap"])


def test_every_alias_targets_a_canonical_category():
    assert set(CATEGORY_ALIASES.values()) == set(FUND_CATEGORIES)
