import math

import pytest

from aquascore.quality.indices import (
    Category,
    IndexEngine,
    IndexResult,
    MeasurementValidationError,
    coerce_number,
    compute_indices,
    compute_legacy_indices,
    round3,
)
from aquascore.quality.thresholds import ThresholdTable


def test_legacy_formula_reference_sample():
    sample = {"metals": {"lead": 0.02, "cadmium": 0.001, "arsenic": 0.005, "chromium": 0.01}}
    result = compute_legacy_indices(sample)
    assert result == IndexResult(hpi=3.6, mi=0.21, cd=0.25, category=Category.SAFE)


@pytest.mark.parametrize(
    "metals, expected",
    [
        ({"lead": 0.6}, Category.MODERATE),  # hpi 60
        ({"lead": 0.3, "arsenic": 0.15}, Category.MODERATE),  # cd 7.5
        ({"arsenic": 0.3}, Category.UNSAFE),  # cd 15
        ({"chromium": 1.5}, Category.UNSAFE),  # hpi 150
        ({"lead": 0.1, "mercury": 50}, Category.SAFE),  # mercury not part of the fixed formula
    ],
)
def test_legacy_categories(metals, expected):
    assert compute_legacy_indices({"metals": metals}).category is expected


def test_single_metal_over_threshold_is_unsafe(lead_only):
    result = compute_indices({"metals": {"lead": 0.02}}, lead_only)
    assert result.hpi == 200.0
    assert result.mi == 0.2
    assert result.cd == 2.0
    assert result.category is Category.UNSAFE


def test_threshold_normalised_mix():
    sample = {"metals": {"lead": 0.004, "iron": 0.15}}
    result = compute_indices(sample)
    assert result.hpi == 90.0
    assert result.mi == 0.77
    assert result.cd == 0.9
    assert result.category is Category.MODERATE


def test_mi_averages_raw_concentrations():
    # 0.2 mg/L is far below the limit, but MI averages raw concentrations
    table = ThresholdTable(metals={"iron": 100.0})
    result = compute_indices({"metals": {"iron": 0.2}}, table)
    assert result.hpi == 0.2
    assert result.cd == 0.002
    assert result.mi == 2.0
    assert result.category is Category.UNSAFE


@pytest.mark.parametrize(
    "metals", [{}, {"zinc": 4.0, "copper": 1.0}, None],
)
def test_no_known_metals_gives_zero_indices(metals):
    result = compute_indices({"metals": metals})
    assert (result.hpi, result.mi, result.cd) == (0.0, 0.0, 0.0)
    assert result.category is Category.SAFE


def test_unknown_metals_do_not_change_result(lead_only):
    base = compute_indices({"metals": {"lead": 0.004}}, lead_only)
    extra = compute_indices({"metals": {"lead": 0.004, "zinc": 9.0}}, lead_only)
    assert base == extra


def test_adding_metal_to_table_activates_it():
    sample = {"metals": {"lead": 0.004, "nickel": 0.01}}
    without = compute_indices(sample, ThresholdTable(metals={"lead": 0.01}))
    with_nickel = compute_indices(sample, ThresholdTable(metals={"lead": 0.01, "nickel": 0.02}))
    assert without.hpi == 40.0
    assert with_nickel.hpi == 90.0


def test_concentration_equal_to_limit_is_not_an_exceedance(lead_only):
    result = compute_indices({"metals": {"lead": 0.01}}, lead_only)
    assert result.hpi == 100.0
    assert result.category is Category.MODERATE


def test_concentration_just_above_limit_is_unsafe(lead_only):
    result = compute_indices({"metals": {"lead": 0.01000001}}, lead_only)
    # rounding hides the excess in the index, the exceedance still counts
    assert result.hpi == 100.0
    assert result.category is Category.UNSAFE


def test_exceedance_outranks_moderate_indices(lead_only):
    sample = {"metals": {"lead": 0.006}, "waterQuality": {"pH": 9.0}}
    result = compute_indices(sample, lead_only)
    assert result.hpi == 60.0
    assert result.category is Category.UNSAFE


def test_ph_out_of_range_without_metals():
    result = compute_indices({"metals": {}, "waterQuality": {"pH": 9.0}})
    assert (result.hpi, result.mi, result.cd) == (0.0, 0.0, 0.0)
    assert result.category is Category.UNSAFE


@pytest.mark.parametrize(
    "water, expected",
    [
        ({"pH": 8.5}, Category.SAFE),
        ({"pH": 6.5}, Category.SAFE),
        ({"pH": 6.4}, Category.UNSAFE),
        ({"pH": "not measured"}, Category.SAFE),
        ({"pH": 0}, Category.SAFE),
        ({}, Category.SAFE),
        ({"fluoride": 1.5}, Category.SAFE),
        ({"fluoride": 1.51}, Category.UNSAFE),
        ({"nitrate": 45}, Category.SAFE),
        ({"nitrate": 45.5}, Category.UNSAFE),
        ({"tds": 1000}, Category.SAFE),
        ({"tds": 1000.5}, Category.UNSAFE),
        ({"hardness": 900}, Category.SAFE),
    ],
)
def test_water_quality_limits(water, expected):
    assert compute_indices({"metals": {}, "waterQuality": water}).category is expected


def test_water_quality_snake_case_and_lower_ph():
    result = compute_indices({"water_quality": {"ph": 5.0}})
    assert result.category is Category.UNSAFE


def test_metal_names_are_case_insensitive(lead_only):
    assert compute_indices({"metals": {"Lead": 0.02}}, lead_only).hpi == 200.0


def test_invalid_values_coerce_to_zero_but_still_count():
    table = ThresholdTable(metals={"lead": 0.01, "cadmium": 0.003})
    result = compute_indices({"metals": {"lead": "n/a", "cadmium": None}}, table)
    assert (result.hpi, result.mi, result.cd) == (0.0, 0.0, 0.0)

    halved = compute_indices({"metals": {"lead": 0.1, "cadmium": "junk"}}, table)
    assert halved.mi == 0.5


def test_numeric_strings_are_parsed(lead_only):
    assert compute_indices({"metals": {"lead": " 0.02 "}}, lead_only).hpi == 200.0


def test_negative_values_are_not_clamped_by_the_engine(lead_only):
    result = compute_indices({"metals": {"lead": -0.01}}, lead_only)
    assert result.hpi == -100.0
    assert result.cd == -1.0


@pytest.mark.parametrize(
    "sample",
    [
        None,
        {},
        [],
        "lead=0.1",
        {"metals": None},
        {"metals": "junk"},
        {"metals": [0.1, 0.2]},
        {"metals": {"lead": float("nan"), "arsenic": float("inf")}},
        {"metals": {"lead": object()}},
        {"metals": {"lead": 10**400}},
        {"waterQuality": [7.0]},
        {"waterQuality": {"pH": None, "tds": "?"}},
    ],
)
def test_compute_is_total(sample):
    result = compute_indices(sample)
    assert isinstance(result, IndexResult)
    assert isinstance(result.category, Category)
    for value in result.indices().values():
        assert isinstance(value, float)
    legacy = compute_legacy_indices(sample)
    assert all(v >= 0 for v in legacy.indices().values())


def test_compute_is_deterministic(sample_payload):
    first = compute_indices(sample_payload)
    second = compute_indices(sample_payload)
    assert first == second
    assert sample_payload["metals"] == {"lead": 0.004, "iron": 0.15}


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.0005, 0.001),
        (2.0005, 2.001),
        (-0.0005, -0.001),
        (1.2344999, 1.234),
        (3.5999999999999996, 3.6),
        (0.21000000000000002, 0.21),
        (-0.0, 0.0),
        (123456.78951, 123456.79),
    ],
)
def test_round3_half_away_from_zero(value, expected):
    assert round3(value) == expected


def test_round3_keeps_non_finite():
    assert math.isinf(round3(float("inf")))


def test_results_have_three_decimals():
    sample = {"metals": {"lead": 0.0012345, "arsenic": 0.0067891}}
    result = compute_indices(sample)
    for value in result.indices().values():
        assert value == round(value, 3)
    legacy = compute_legacy_indices({"metals": {"lead": 0.02, "cadmium": 0.001, "arsenic": 0.005, "chromium": 0.01}})
    assert legacy.formatted() == {"hpi": "3.600", "mi": "0.210", "cd": "0.250"}


def test_as_dict_uses_plain_category():
    result = compute_indices({"metals": {}})
    assert result.as_dict() == {"hpi": 0.0, "mi": 0.0, "cd": 0.0, "category": "safe"}
    assert str(result.category) == "safe"


@pytest.mark.parametrize(
    "value, default, expected",
    [
        ("1.5", 0.0, 1.5),
        (None, 7.0, 7.0),
        ("", 0.0, 0.0),
        ("abc", 7.0, 7.0),
        (float("nan"), 0.0, 0.0),
        ("inf", 0.0, 0.0),
        (-2, 0.0, -2.0),
        (True, 0.0, 1.0),
    ],
)
def test_coerce_number(value, default, expected):
    assert coerce_number(value, default) == expected


def test_strict_mode_lists_every_problem():
    sample = {
        "metals": {"lead": "abc", "arsenic": -0.1, "iron": 0.1},
        "waterQuality": {"pH": 15, "nitrate": "high"},
    }
    with pytest.raises(MeasurementValidationError) as info:
        compute_indices(sample, strict=True)
    issues = info.value.issues
    assert len(issues) == 4
    assert any(i.startswith("metals.lead") for i in issues)
    assert any(i.startswith("metals.arsenic") for i in issues)
    assert any(i.startswith("waterQuality.pH") for i in issues)
    assert any(i.startswith("waterQuality.nitrate") for i in issues)


def test_strict_mode_rejects_non_mapping_sections():
    with pytest.raises(MeasurementValidationError):
        compute_indices({"metals": [0.1]}, strict=True)
    with pytest.raises(MeasurementValidationError):
        compute_legacy_indices("junk", strict=True)


def test_strict_mode_accepts_clean_and_missing_values(sample_payload):
    assert compute_indices(sample_payload, strict=True) == compute_indices(sample_payload)
    assert compute_indices({}, strict=True).category is Category.SAFE


def test_engine_binds_table_and_formula(lead_only):
    engine = IndexEngine(lead_only)
    assert engine({"metals": {"lead": 0.02}}).hpi == 200.0

    legacy = IndexEngine(formula="legacy")
    assert legacy.compute({"metals": {"lead": 0.02}}).hpi == 2.0


def test_engine_rejects_unknown_formula():
    with pytest.raises(ValueError):
        IndexEngine(formula="weighted")


def test_engine_strict_flag():
    engine = IndexEngine(strict=True)
    with pytest.raises(MeasurementValidationError):
        engine.compute({"metals": {"lead": "x"}})
