import math

import pytest

from creditrisk.ml.errors import InvalidValueError, SchemaMismatchError
from creditrisk.ml.features import FeatureVector, TrainingRow

SCHEMA = ("income_k", "debt_to_income", "credit_utilization")


def test_from_mapping_orders_values_by_schema() -> None:
    raw = {"credit_utilization": 0.5, "income_k": 42, "debt_to_income": 0.25}
    fv = FeatureVector.from_mapping(raw, SCHEMA)

    assert fv.names == SCHEMA
    assert fv.values == (42.0, 0.25, 0.5)
    assert fv.as_dict() == {"income_k": 42.0, "debt_to_income": 0.25, "credit_utilization": 0.5}


def test_missing_feature_is_schema_mismatch() -> None:
    with pytest.raises(SchemaMismatchError) as err:
        FeatureVector.from_mapping({"income_k": 1.0, "debt_to_income": 0.2}, SCHEMA)

    assert err.value.missing == ["credit_utilization"]
    assert err.value.unexpected == []
    assert err.value.details["expected"] == list(SCHEMA)


def test_extra_feature_is_schema_mismatch() -> None:
    raw = {"income_k": 1.0, "debt_to_income": 0.2, "credit_utilization": 0.1, "age": 33}
    with pytest.raises(SchemaMismatchError) as err:
        FeatureVector.from_mapping(raw, SCHEMA)

    assert err.value.unexpected == ["age"]


def test_misnamed_feature_reports_both_sides() -> None:
    raw = {"income": 1.0, "debt_to_income": 0.2, "credit_utilization": 0.1}
    with pytest.raises(SchemaMismatchError) as err:
        FeatureVector.from_mapping(raw, SCHEMA)

    assert err.value.missing == ["income_k"]
    assert err.value.unexpected == ["income"]


@pytest.mark.parametrize("bad", [math.nan, math.inf, -math.inf, "12", None, True, [1.0]])
def test_non_finite_or_non_numeric_value_is_rejected(bad) -> None:
    raw = {"income_k": bad, "debt_to_income": 0.2, "credit_utilization": 0.1}
    with pytest.raises(InvalidValueError) as err:
        FeatureVector.from_mapping(raw, SCHEMA)

    assert err.value.feature == "income_k"


def test_schema_is_checked_before_values() -> None:
    raw = {"income_k": math.nan, "debt_to_income": 0.2}
    with pytest.raises(SchemaMismatchError):
        FeatureVector.from_mapping(raw, SCHEMA)


def test_conform_to_reorders() -> None:
    fv = FeatureVector(names=("b", "a"), values=(2.0, 1.0))
    assert fv.conform_to(("a", "b")).values == (1.0, 2.0)


@pytest.mark.parametrize("label", [2, -1, 0.5, True, "1"])
def test_training_row_requires_binary_label(label) -> None:
    with pytest.raises(InvalidValueError):
        TrainingRow.from_mapping({"a": 1.0}, label)


def test_training_row_keeps_key_order_without_schema() -> None:
    row = TrainingRow.from_mapping({"b": 2.0, "a": 1.0}, 1)
    assert row.features.names == ("b", "a")
    assert row.label == 1
