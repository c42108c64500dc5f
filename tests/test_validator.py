import dataclasses

import pytest

from esg_quality_checks import (
    HIGH,
    MEDIUM,
    SAMPLE_CSV,
    Issue,
    check_table,
    parse_csv,
    validate_row,
)


def _row(**values):
    base = {"company": "Acme Bank", "year": "2023", "total_tco2e": "100"}
    base.update(values)
    return base


def _checks(issues):
    return [i.check for i in issues]


def test_clean_row_has_no_issues():
    assert validate_row(_row(scope1_tco2e="40", scope2_tco2e="30", scope3_tco2e="30")) == []


@pytest.mark.parametrize("missing", ["company", "year", "total_tco2e"])
def test_each_missing_required_field_is_high(missing):
    row = _row()
    row[missing] = ""
    issues = validate_row(row)
    high = [i for i in issues if i.severity == HIGH]
    assert len(high) == 1
    assert high[0].field == missing
    assert high[0].message == f'Missing value in "{missing}"'


def test_empty_row_reports_every_required_field():
    issues = validate_row({})
    assert [i.field for i in issues] == ["company", "year", "total_tco2e"]
    assert all(i.severity == HIGH for i in issues)


@pytest.mark.parametrize("value", ["abc", "-5", "inf", "1_000"])
def test_unexpected_numeric_values(value):
    issues = validate_row(_row(water_m3=value))
    assert _checks(issues) == ["unexpected_value"]
    assert issues[0].severity == MEDIUM
    assert value in issues[0].message


def test_thousands_separators_are_accepted():
    assert validate_row(_row(energy_mwh="120,000")) == []


@pytest.mark.parametrize("scope_sum, flagged", [(114, False), (115, False), (116, True)])
def test_reconciliation_tolerance_boundary(scope_sum, flagged):
    row = _row(scope1_tco2e="100", scope2_tco2e=str(scope_sum - 100))
    assert ("scope_total_mismatch" in _checks(validate_row(row))) is flagged


def test_reconciliation_message_reports_total_and_sum():
    issues = validate_row(_row(scope1_tco2e="50", scope2_tco2e="10", scope3_tco2e="0"))
    assert issues[0].message == "Total emissions (100) do not align with Scopes 1–3 sum (60)."


def test_reconciliation_skipped_without_scopes():
    assert validate_row(_row(scope1_tco2e="0", scope2_tco2e="")) == []


def test_reconciliation_skipped_when_total_is_zero():
    row = _row(total_tco2e="0", scope1_tco2e="500")
    assert "scope_total_mismatch" not in _checks(validate_row(row))


def test_unparseable_component_is_not_reconciled():
    issues = validate_row(_row(scope1_tco2e="n/a", scope2_tco2e="10"))
    assert _checks(issues) == ["unexpected_value"]


def test_custom_tolerance():
    row = _row(scope1_tco2e="110")
    assert validate_row(row) == []
    assert _checks(validate_row(row, tolerance=0.05)) == ["scope_total_mismatch"]


def test_female_pct_out_of_range():
    issues = validate_row(_row(female_pct="120"))
    assert _checks(issues) == ["pct_out_of_range"]
    assert issues[0].severity == MEDIUM
    assert validate_row(_row(female_pct="42")) == []


def test_negative_female_pct_reports_sanity_and_range():
    assert _checks(validate_row(_row(female_pct="-1"))) == ["unexpected_value", "pct_out_of_range"]


def test_unparseable_female_pct_is_not_range_checked():
    assert _checks(validate_row(_row(female_pct="many"))) == ["unexpected_value"]


def test_issue_severity_is_closed():
    with pytest.raises(ValueError):
        Issue("critical", "boom")


def test_issue_is_immutable():
    issue = Issue(HIGH, "Missing value")
    with pytest.raises(dataclasses.FrozenInstanceError):
        issue.severity = MEDIUM


def test_sample_table_is_clean():
    assert check_table(parse_csv(SAMPLE_CSV)) == []


def test_check_table_numbers_rows():
    table = parse_csv("company,year,total_tco2e\nAcme,2023,10\n,2023,10\nBeta,2023,")
    issues = check_table(table)
    assert [(i.row, i.field) for i in issues] == [(2, "company"), (3, "total_tco2e")]
    assert issues[0].label() == 'Row 2: Missing value in "company"'
