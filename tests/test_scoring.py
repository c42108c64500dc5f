from esg_quality_checks import HIGH, LOW, MEDIUM, Issue, score_from_issues, score_label


def _issues(*severities):
    return [Issue(s, "x") for s in severities]


def test_no_issues_scores_100():
    assert score_from_issues([]) == 100


def test_penalties_per_severity():
    assert score_from_issues(_issues(HIGH)) == 88
    assert score_from_issues(_issues(MEDIUM)) == 94
    assert score_from_issues(_issues(LOW)) == 97
    assert score_from_issues(_issues(HIGH, MEDIUM, LOW)) == 79


def test_score_is_floored_at_40():
    assert score_from_issues(_issues(*[HIGH] * 10)) == 40


def test_score_never_increases_as_issues_are_added():
    issues, previous = [], 100
    for sev in [LOW, MEDIUM, HIGH, MEDIUM, HIGH, HIGH, LOW, HIGH, HIGH, MEDIUM]:
        issues.append(Issue(sev, "x"))
        current = score_from_issues(issues)
        assert 40 <= current <= previous
        previous = current


def test_custom_weights():
    assert score_from_issues(_issues(HIGH, MEDIUM), weights={HIGH: 20, MEDIUM: 10}) == 70


def test_score_labels():
    assert score_label(100, 0).startswith("Excellent")
    assert score_label(94, 1).startswith("Strong")
    assert score_label(76, 3).startswith("Usable")
    assert score_label(52, 4).startswith("Needs attention")
