from clausecheck.risk_scorer import analyze_risk
from clausecheck.services.history import AnalysisHistory


def test_history_is_capped():
    h = AnalysisHistory(limit=3)
    for i in range(5):
        h.record(f"조건 {i}", analyze_risk(f"조건 {i}"))
    assert len(h) == 3
    assert [e.text for e in h.recent()] == ["조건 2", "조건 3", "조건 4"]


def test_latest_for_matches_trimmed_text():
    h = AnalysisHistory()
    h.record("  협의 후 진행 ", analyze_risk("협의 후 진행"))
    h.record("협의 후 진행", analyze_risk("협의 후 추가 진행"))
    entry = h.latest_for("협의 후 진행")
    assert entry is not None
    assert entry.analysis.score == 10
    assert h.latest_for("다른 문구") is None


def test_entry_to_dict_and_clear():
    h = AnalysisHistory(limit=2)
    entry = h.record("지체상금", analyze_risk("지체상금"))
    d = entry.to_dict()
    assert d["text"] == "지체상금"
    assert d["analysis"]["level"] == "medium"
    assert d["timestamp"]
    h.clear()
    assert h.recent() == []


def test_limit_has_floor_of_one():
    assert AnalysisHistory(limit=0).limit == 1
