import os
import re
import sys
import json
import datetime
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

# CONFIGURATION

INPUT_FILE  = "esg_disclosures.csv"
OUTPUT_FILE = "esg_disclosures_flagged.xlsx"
REPORT_FILE = "esg_quality_report.json"

# Reference only: uploaded headers are never checked against this list.
EXPECTED_COLUMNS = [
    "company", "year",
    "scope1_tco2e", "scope2_tco2e", "scope3_tco2e", "total_tco2e",
    "energy_mwh", "water_m3", "female_pct",
    "employee_count", "source",
]

REQUIRED_FIELDS = ["company", "year", "total_tco2e"]
NUMERIC_FIELDS  = [
    "scope1_tco2e", "scope2_tco2e", "scope3_tco2e", "total_tco2e",
    "energy_mwh", "water_m3", "female_pct",
]
SCOPE_FIELDS    = ["scope1_tco2e", "scope2_tco2e", "scope3_tco2e"]

RECONCILIATION_TOLERANCE = 0.15   # 15% of reported total
PCT_RANGE                = (0.0, 100.0)

HIGH, MEDIUM, LOW = "high", "medium", "low"
SEVERITIES        = (HIGH, MEDIUM, LOW)
SEVERITY_RANK     = {HIGH: 3, MEDIUM: 2, LOW: 1}
SEVERITY_PENALTY  = {HIGH: 12, MEDIUM: 6}
DEFAULT_PENALTY   = 3
SCORE_FLOOR       = 40

# Label window between a metric phrase and its number
LOOKAHEAD = 40

SAMPLE_CSV = """company,year,scope1_tco2e,scope2_tco2e,scope3_tco2e,total_tco2e,energy_mwh,water_m3,female_pct,employee_count,source
Acme Bank,2023,1200,800,5600,7600,120000,34000,42,3200,Annual report 2023
Beta Insurance,2023,900,700,4100,5700,98000,21000,39,1800,Sustainability report 2023
Gamma Asset Mgmt,2023,500,400,2600,3500,64000,12000,51,900,TCFD update 2023
"""

SAMPLE_TEXT = """In 2023 our total greenhouse gas emissions (Scopes 1, 2 and 3) amounted to 7,600 tCO2e.
Scope 1 emissions were 1,200 tCO2e and Scope 2 emissions were 800 tCO2e.
Scope 3 emissions were 5,600 tCO2e. We used 120,000 MWh of energy during the year.
Women represented 42 percent of our workforce in 2023."""


# DATA MODEL

@dataclass(frozen=True)
class Table:
    headers: List[str] = field(default_factory=list)
    rows: List[Dict[str, str]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.rows


@dataclass(frozen=True)
class Issue:
    severity: str
    message: str
    check: str = ""
    field: Optional[str] = None
    row: Optional[int] = None

    def __post_init__(self):
        if self.severity not in SEVERITIES:
            raise ValueError(f"Unknown severity '{self.severity}'. Use one of {SEVERITIES}.")

    def label(self) -> str:
        if self.row is None:
            return self.message
        return f"Row {self.row}: {self.message}"

    def to_dict(self) -> dict:
        return {
            "severity": self.severity,
            "check":    self.check,
            "field":    self.field,
            "row":      self.row,
            "message":  self.label(),
        }


# TABULAR PARSER

def parse_csv(text: str) -> Table:
    """Split comma-delimited text into headers and row mappings.

    Splitting is naive: quoted fields and escaped commas are not supported,
    so a value containing a comma spills into the next column.
    """
    cleaned = (text or "").replace("\r", "").strip()
    if not cleaned:
        return Table()

    lines   = re.split(r"\n+", cleaned)
    headers = [h.strip() for h in lines[0].split(",")]
    rows    = []
    for line in lines[1:]:
        if not line.strip():
            continue
        values = line.split(",")
        rows.append({
            h: (values[idx] if idx < len(values) else "").strip()
            for idx, h in enumerate(headers)
        })
    return Table(headers, rows)


def serialize_csv(table: Table) -> str:
    lines = [",".join(table.headers)]
    for row in table.rows:
        lines.append(",".join(row.get(h, "") for h in table.headers))
    return "\n".join(lines) + "\n"


def load_csv(path: str) -> Table:
    ext = os.path.splitext(path)[1].lower()
    if ext not in (".csv", ".txt"):
        raise ValueError(f"Unsupported file type '{ext}'. Use .csv or .txt.")
    with open(path, encoding="utf-8-sig") as f:
        table = parse_csv(f.read())
    print(f"Loaded {len(table.rows)} rows × {len(table.headers)} columns.")
    return table


# ROW VALIDATOR

def _to_number(raw):
    # None when blank, NaN when present but unparseable
    if raw is None:
        return None
    s = str(raw).strip().replace(",", "")
    if not s:
        return None
    if "_" in s:
        return np.nan
    try:
        return float(s)
    except ValueError:
        return np.nan


def _fmt(n: float) -> str:
    return str(int(n)) if float(n).is_integer() else str(n)


def validate_row(row: dict, tolerance: float = RECONCILIATION_TOLERANCE) -> List[Issue]:
    issues = []

    for col in REQUIRED_FIELDS:
        if not row.get(col):
            issues.append(Issue(HIGH, f'Missing value in "{col}"', "missing_value", col))

    for col in NUMERIC_FIELDS:
        n = _to_number(row.get(col))
        if n is None:
            continue
        if not np.isfinite(n) or n < 0:
            issues.append(Issue(MEDIUM, f'Unexpected value in "{col}" ({row[col]})',
                                "unexpected_value", col))

    # Unparseable components skip reconciliation
    parts = [_to_number(row.get(col)) for col in SCOPE_FIELDS + ["total_tco2e"]]
    if not any(p is not None and not np.isfinite(p) for p in parts):
        s1, s2, s3, total = [0.0 if p is None else p for p in parts]
        if total and (s1 or s2 or s3):
            scope_sum = s1 + s2 + s3
            if abs(scope_sum - total) > total * tolerance:
                issues.append(Issue(
                    MEDIUM,
                    f"Total emissions ({_fmt(total)}) do not align with "
                    f"Scopes 1–3 sum ({_fmt(scope_sum)}).",
                    "scope_total_mismatch", "total_tco2e",
                ))

    pct = _to_number(row.get("female_pct"))
    if pct is not None and not np.isnan(pct):
        lo, hi = PCT_RANGE
        if pct < lo or pct > hi:
            issues.append(Issue(MEDIUM, f"Female percentage outside 0–100 range ({row['female_pct']}).",
                                "pct_out_of_range", "female_pct"))

    return issues


def check_table(table: Table, tolerance: float = RECONCILIATION_TOLERANCE) -> List[Issue]:
    issues = []
    for idx, row in enumerate(table.rows, start=1):
        issues.extend(replace(i, row=idx) for i in validate_row(row, tolerance))

    flagged = len({i.row for i in issues})
    print(f"[Check] Rows: {len(table.rows)} validated, {len(issues)} issue(s) found, "
          f"{flagged} row(s) flagged.")
    return issues


# SCORER

def score_from_issues(issues, weights: Optional[Dict[str, int]] = None) -> int:
    if not issues:
        return 100
    weights = SEVERITY_PENALTY if weights is None else weights
    score = 100
    for iss in issues:
        score -= weights.get(iss.severity, DEFAULT_PENALTY)
    return max(SCORE_FLOOR, score)


def score_label(score: int, issue_count: int) -> str:
    if not issue_count:
        return "Excellent: no issues detected in this sample."
    if score >= 85:
        return "Strong data quality with a few minor issues."
    if score >= 70:
        return "Usable, but several issues should be reviewed."
    return "Needs attention: significant issues detected."


# TEXT EXTRACTOR

NUMBER = r"([0-9][0-9,. ]*)"


def normalize_number(raw: Optional[str]) -> float:
    if not raw:
        return np.nan
    s = re.sub(r"\s", "", str(raw)).replace(",", "")
    try:
        return float(s)
    except ValueError:
        return np.nan


@dataclass(frozen=True)
class ExtractionRule:
    key: str
    pattern: "re.Pattern"
    group: int
    normalize: Callable[[Optional[str]], float] = normalize_number

    def apply(self, text: str) -> Optional[float]:
        m = self.pattern.search(text)
        if not m:
            return None
        value = self.normalize(m.group(self.group))
        return value if np.isfinite(value) else None


def _rule(key, label, tail="", group=2):
    pattern = re.compile(rf"({label})[^\d]{{0,{LOOKAHEAD}}}{NUMBER}{tail}", re.IGNORECASE)
    return ExtractionRule(key, pattern, group)


EXTRACTION_RULES: Tuple[ExtractionRule, ...] = (
    _rule("scope1_tco2e", r"scope\s*1"),
    _rule("scope2_tco2e", r"scope\s*2"),
    _rule("scope3_tco2e", r"scope\s*3"),
    _rule("total_tco2e",  r"total\s*(?:emissions|ghg|co2e)"),
    _rule("energy_mwh",   r"energy", tail=r"\s*(mwh|gwh)?"),
    _rule("water_m3",     r"water",  tail=r"\s*(m3|m³)?"),
    _rule("female_pct",   r"women|female", tail=r"\s*(?:%|percent)"),
)

YEAR_REGEX = re.compile(r"(?<!\d)(20\d{2})(?!\d)")


def extract_from_text(text: str, rules=EXTRACTION_RULES) -> Dict[str, float]:
    cleaned = (text or "").replace("\r", "")
    out = {}
    for rule in rules:
        value = rule.apply(cleaned)
        if value is not None:
            out[rule.key] = value

    year = YEAR_REGEX.search(cleaned)
    if year:
        out["year"] = int(year.group(1))
    return out


def extraction_notes(metrics: dict) -> str:
    if not metrics:
        return "No metrics could be identified in the text."
    return ("These metrics are extracted heuristically from the text. In a real workflow "
            "they would be compared to structured disclosures and flagged where they disagree.")


# FLAGS & REPORT

def _frame_columns(headers):
    # Blank headers become unnamed_N, repeats get a _2, _3... suffix
    columns, seen = [], set()
    for idx, h in enumerate(headers, start=1):
        base = h or f"unnamed_{idx}"
        name, n = base, 1
        while name in seen:
            n += 1
            name = f"{base}_{n}"
        seen.add(name)
        columns.append(name)
    return columns


def table_to_frame(table: Table) -> pd.DataFrame:
    return pd.DataFrame(
        [[row.get(h, "") for h in table.headers] for row in table.rows],
        columns=_frame_columns(table.headers),
        dtype=str,
    )


def issues_to_frame(issues) -> pd.DataFrame:
    columns = ["row", "severity", "check", "field", "message"]
    return pd.DataFrame(
        [{c: getattr(i, c) for c in columns} for i in issues],
        columns=columns,
    )


def apply_flags_to_df(table: Table, issues) -> pd.DataFrame:
    df = table_to_frame(table)
    df["flag_severity"] = ""
    df["flag_issues"]   = ""

    for row_no in sorted({i.row for i in issues if i.row is not None}):
        row_issues = [i for i in issues if i.row == row_no]
        idx = row_no - 1
        if idx >= len(df):
            continue
        worst = max(row_issues, key=lambda i: SEVERITY_RANK[i.severity]).severity
        df.at[idx, "flag_severity"] = worst
        df.at[idx, "flag_issues"]   = " | ".join(f"[{i.severity}] {i.check}" for i in row_issues)

    df["flag_ANY_ISSUE"] = df["flag_severity"].map(lambda x: "YES" if x else "NO")
    return df


def build_report(table: Table, issues, metrics: Optional[dict] = None) -> dict:
    score = score_from_issues(issues)
    report = {
        "run_timestamp":  datetime.datetime.now().isoformat(),
        "dataset_shape":  {"rows": len(table.rows), "columns": len(table.headers)},
        "total_issues":   len(issues),
        "severity_count": {s: sum(1 for i in issues if i.severity == s) for s in SEVERITIES},
        "score":          score,
        "score_label":    score_label(score, len(issues)),
        "issues":         [i.to_dict() for i in issues],
    }
    if metrics is not None:
        report["extracted_metrics"] = metrics
    return report


# SUMMARY REPORT

def print_summary(issues, df: pd.DataFrame):
    score = score_from_issues(issues)

    print("\n" + "═" * 70)
    print("  ESG DATA QUALITY SUMMARY")
    print("═" * 70)
    print(f"  Total issues        : {len(issues)}")
    for sev in SEVERITIES:
        print(f"  {sev:<20}: {sum(1 for i in issues if i.severity == sev)}")

    flagged_rows = df[df["flag_ANY_ISSUE"] == "YES"]
    print(f"\n  Rows flagged (any)  : {len(flagged_rows)} / {len(df)}")
    print(f"  Quality score       : {score}")
    print(f"  {score_label(score, len(issues))}")

    for iss in issues:
        print(f"    [{iss.severity}] {iss.label()}")
    print("═" * 70)


# MAIN

def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    input_file = argv[0] if argv else INPUT_FILE
    text_file  = argv[1] if len(argv) > 1 else None

    for path in filter(None, [input_file, text_file]):
        if not os.path.exists(path):
            print(f"ERROR: File not found: {path}")
            sys.exit(1)

    table = load_csv(input_file)
    if table.empty:
        print("ERROR: No data rows found. Please provide a CSV with a header and at least one row.")
        sys.exit(1)

    issues = check_table(table)

    metrics = None
    if text_file:
        with open(text_file, encoding="utf-8-sig") as f:
            metrics = extract_from_text(f.read())
        print(f"[Check] Text: {len(metrics)} metric(s) extracted. {extraction_notes(metrics)}")

    df_flagged = apply_flags_to_df(table, issues)
    df_flagged.to_excel(OUTPUT_FILE, index=False)
    print(f"\nFlagged Excel saved → {OUTPUT_FILE}")

    with open(REPORT_FILE, "w") as f:
        json.dump(build_report(table, issues, metrics), f, indent=2, default=str)
    print(f"Quality report saved → {REPORT_FILE}")

    print_summary(issues, df_flagged)


if __name__ == "__main__":
    main()
