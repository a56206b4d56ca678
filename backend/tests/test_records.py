import math

import pytest

from creditrisk.ml.errors import FormatError
from creditrisk.ml.features import FeatureVector
from creditrisk.ml.model_registry import ModelRegistry
from creditrisk.ml.records import RECORD_FORMAT, export_record, load_record


def test_export_then_load_gives_the_same_model(credit_model) -> None:
    record = export_record(credit_model)
    restored = load_record(record)

    assert record["format"] == RECORD_FORMAT
    assert restored == credit_model

    raw = FeatureVector.from_mapping(
        {"income_k": 38.0, "debt_to_income": 0.42, "credit_utilization": 0.7},
        credit_model.feature_names,
    )
    assert restored.predict_proba(raw) == credit_model.predict_proba(raw)


def test_naive_created_at_is_read_as_utc(credit_model) -> None:
    record = export_record(credit_model)
    record["metadata"]["created_at"] = "2026-01-02T03:04:05"

    restored = load_record(record)
    assert restored.metadata.created_at.tzinfo is not None


def _corrupt(record, path, value):
    target = record
    for key in path[:-1]:
        target = target[key]
    target[path[-1]] = value
    return record


@pytest.mark.parametrize(
    "path, value",
    [
        (("weights",), [1.0]),
        (("scaler", "stds"), [20.0, 0.0, 0.2]),
        (("scaler", "means"), [50.0, math.nan, 0.4]),
        (("bias",), math.inf),
        (("feature_names",), ["income_k", "income_k", "credit_utilization"]),
        (("format",), "other.family/2"),
        (("l2",), -1.0),
    ],
)
def test_invalid_record_is_a_format_error(credit_model, path, value) -> None:
    record = _corrupt(export_record(credit_model), path, value)
    with pytest.raises(FormatError):
        load_record(record)


def test_missing_field_is_a_format_error(credit_model) -> None:
    record = export_record(credit_model)
    del record["scaler"]

    with pytest.raises(FormatError) as err:
        load_record(record)
    assert err.value.details


@pytest.mark.parametrize("record", [None, [], "logreg", 42])
def test_non_dict_record_is_a_format_error(record) -> None:
    with pytest.raises(FormatError):
        load_record(record)


def test_failed_reload_keeps_active_model(credit_model) -> None:
    registry = ModelRegistry(credit_model)
    bad = export_record(credit_model)
    bad["weights"] = [0.1]

    with pytest.raises(FormatError):
        registry.reload(bad)

    assert registry.current() is credit_model
    assert registry.generation == 1
