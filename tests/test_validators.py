import pytest

from ingestor.core.errors import ValidationError
from ingestor.core.validators import RecordValidator, clean_raw_record
from conftest import make_raw_fund


@pytest.fixture
def validator():
    return RecordValidator()


def test_valid_record_is_normalised(validator):
    outcome = validator.validate(make_raw_fund(fund_category="large-cap"))

    assert outcome.is_valid
    assert outcome.errors == []
    assert outcome.warnings == []
    assert outcome.record.fund_category == "Large Cap Equity"
    assert outcome.record.sharpe_ratio == 1.12


def test_numeric_strings_are_cleaned(validator):
    outcome = validator.validate(make_raw_fund(expense_ratio_equity="1.25%", aum_equity="₹ 25,400", alpha="N/A"))

    assert outcome.is_valid
    assert outcome.record.expense_ratio_equity == 1.25
    assert outcome.record.aum_equity == 25400.0
    assert outcome.record.alpha is None


def test_missing_required_fields_reject(validator):
    outcome = validator.validate(make_raw_fund(fund_id=None, fund_name="   "))

    assert not outcome.is_valid
    assert outcome.errors == ["Missing required fields: fund_id, fund_name"]


def test_unknown_category_rejects(validator):
    outcome = validator.validate(make_raw_fund(fund_category="Sectoral"))

    assert not outcome.is_valid
    assert "Invalid fund_category 'Sectoral'" in outcome.errors[0]


def test_non_numeric_metric_rejects(validator):
    outcome = validator.validate(make_raw_fund(sharpe_ratio="high", beta=True))

    assert not outcome.is_valid
    assert "sharpe_ratio must be a number" in outcome.errors
    assert "beta must be a number" in outcome.errors


def test_non_finite_metric_rejects(validator):
    outcome = validator.validate(make_raw_fund(alpha=float("nan")))

    assert outcome.errors == ["alpha must be a finite number"]


@pytest.mark.parametrize("category", [1.5, True, ["Large Cap"], {"name": "Large Cap"}])
def test_non_string_category_rejects(validator, category):
    outcome = validator.validate(make_raw_fund(fund_category=category))

    assert not outcome.is_valid
    assert outcome.errors == ["fund_category must be a string"]


def test_integer_too_large_for_a_float_rejects(validator):
    outcome = validator.validate(make_raw_fund(alpha=10**400))

    assert outcome.errors == ["alpha must be a finite number"]


def test_type_errors_skip_range_checks(validator):
    outcome = validator.validate(make_raw_fund(beta="x", expense_ratio_equity=9))

    assert outcome.errors == ["beta must be a number"]


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("expense_ratio_equity", 6, "expense_ratio_equity must be between 0 and 5 (got 6)"),
        ("max_drawdown", 5, "max_drawdown must be <= 0 (got 5)"),
        ("beta", -0.2, "beta must be >= 0 (got -0.2)"),
        ("fund_house_reputation", 0, "fund_house_reputation must be between 1 and 5 (got 0)"),
        ("five_year_cagr_equity", 140, "five_year_cagr_equity must be between -50 and 100 (got 140)"),
    ],
)
def test_out_of_bounds_values_reject(validator, field, value, message):
    outcome = validator.validate(make_raw_fund(**{field: value}))

    assert not outcome.is_valid
    assert outcome.errors == [message]


def test_unbounded_ratios_accept_negative_values(validator):
    outcome = validator.validate(make_raw_fund(sharpe_ratio=-0.4, alpha=-3.2))

    assert outcome.is_valid


def test_outlier_is_a_warning_not_an_error(validator):
    outcome = validator.validate(make_raw_fund(expense_ratio_equity=4.5))

    assert outcome.is_valid
    assert outcome.warnings == ["Outliers in Alpha Bluechip Fund 1: expense_ratio_equity=4.5"]


def test_missing_critical_fields_warn(validator):
    outcome = validator.validate(make_raw_fund(sharpe_ratio=None, aum_equity=None))

    assert outcome.is_valid
    assert outcome.warnings == ["Missing critical fields for Alpha Bluechip Fund 1: sharpe_ratio, aum_equity"]


def test_non_mapping_rejects(validator):
    outcome = validator.validate(["not", "a", "fund"])

    assert not outcome.is_valid
    assert outcome.errors == ["Expected an object, got list"]


def test_raise_for_errors(validator):
    with pytest.raises(ValidationError) as excinfo:
        validator.validate(make_raw_fund(fund_category="Sectoral")).raise_for_errors()

    assert excinfo.value.phase == "validate"


def test_clean_raw_record_drops_unknown_fields():
    cleaned = clean_raw_record(make_raw_fund(scheme_code=120503, internal_rank=7, amc="  "))

    assert "internal_rank" not in cleaned
    assert cleaned["scheme_code"] == "120503"
    assert cleaned["amc"] is None
