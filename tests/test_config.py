import importlib

import pytest

from clausecheck import config
from clausecheck.risk_scorer import RiskAnalysis, get_suggestions
from clausecheck.services.gate import ConditionReview, decide


def _high() -> RiskAnalysis:
    return RiskAnalysis(
        score=40, level="high", category="책임전가", issues=(),
        suggestions=get_suggestions("high"), blocked_keywords=(),
    )


@pytest.mark.parametrize("raw,expected", [("block", "block"), (" Confirm ", "confirm")])
def test_validate_gate_mode(raw, expected):
    assert config.validate_gate_mode(raw) == expected


@pytest.mark.parametrize("raw", ["blok", "", None])
def test_validate_gate_mode_rejects_unknown(raw):
    with pytest.raises(ValueError, match="Unknown gate mode"):
        config.validate_gate_mode(raw)


def test_bad_gate_mode_fails_at_import(monkeypatch):
    monkeypatch.setenv("GATE_MODE", "blok")
    try:
        with pytest.raises(ValueError, match="blok"):
            importlib.reload(config)
    finally:
        monkeypatch.setenv("GATE_MODE", "block")
        importlib.reload(config)
    assert config.GATE_MODE == "block"


def test_gate_mode_resolved_at_call_time(monkeypatch):
    monkeypatch.setattr(config, "GATE_MODE", "confirm")
    assert decide(_high(), confirm_override=True).forced
    review = ConditionReview(mode=None)
    review.set_text("본 공사의 하자는 수급인 책임으로 한다")
    review.review()
    assert review.decision().requires_confirmation

    monkeypatch.setattr(config, "GATE_MODE", "block")
    assert not decide(_high(), confirm_override=True).allowed
    assert not review.decision(confirm_override=True).requires_confirmation
