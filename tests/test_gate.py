import pytest

from clausecheck.risk_scorer import RiskAnalysis, get_suggestions
from clausecheck.services.gate import (
    AnalysisRequiredError,
    ConditionBlockedError,
    ConditionReview,
    EmptyConditionError,
    GateError,
    MSG_MEDIUM_ADVISORY,
    commit_condition,
    decide,
)
from clausecheck.services.history import AnalysisHistory


def _analysis(level: str, score: int = 0) -> RiskAnalysis:
    return RiskAnalysis(
        score=score, level=level, category="일반사항", issues=(),
        suggestions=get_suggestions(level), blocked_keywords=(),
    )


@pytest.mark.parametrize("level", ["critical", "high"])
def test_block_mode_rejects_high_risk(level):
    d = decide(_analysis(level, 60), mode="block", confirm_override=True)
    assert not d.allowed
    assert not d.forced
    assert "추가할 수 없습니다" in d.reason


def test_block_reason_wording():
    assert "매우 높은" in decide(_analysis("critical"), mode="block").reason
    assert "매우 높은" not in decide(_analysis("high"), mode="block").reason


@pytest.mark.parametrize("level", ["critical", "high"])
def test_confirm_mode_requires_override(level):
    d = decide(_analysis(level), mode="confirm")
    assert not d.allowed
    assert d.requires_confirmation

    d = decide(_analysis(level), mode="confirm", confirm_override=True)
    assert d.allowed
    assert d.forced


def test_medium_allowed_with_advisory():
    d = decide(_analysis("medium", 20), mode="block")
    assert d.allowed
    assert d.advisory == MSG_MEDIUM_ADVISORY
    assert not d.forced


@pytest.mark.parametrize("level", ["low", "safe"])
def test_low_and_safe_allowed(level):
    d = decide(_analysis(level), mode="block")
    assert d.allowed
    assert d.advisory is None
    assert not d.requires_confirmation


def test_unknown_mode():
    with pytest.raises(ValueError):
        decide(_analysis("safe"), mode="maybe")


def test_commit_requires_analysis():
    with pytest.raises(AnalysisRequiredError):
        commit_condition("협의 후 진행", None, mode="block")


def test_commit_rejects_blank_text():
    with pytest.raises(EmptyConditionError):
        commit_condition("   ", _analysis("safe"), mode="block")


def test_commit_blocked_carries_decision():
    with pytest.raises(ConditionBlockedError) as exc:
        commit_condition("수급인 책임으로 한다", _analysis("high", 40), mode="block")
    assert exc.value.decision.level == "high"
    assert isinstance(exc.value, GateError)


def test_forced_condition_is_flagged():
    condition, decision = commit_condition(
        " 위약금은 수급인 책임 ", _analysis("high", 45), mode="confirm", confirm_override=True,
    )
    assert decision.forced
    assert condition.is_forced
    assert condition.importance == "중요"
    assert condition.text == "위약금은 수급인 책임"
    assert condition.id.startswith("custom-")
    assert condition.risk_score == 45


def test_review_flow(scorer):
    history = AnalysisHistory(limit=5)
    review = ConditionReview(scorer=scorer, mode="block", history=history)

    with pytest.raises(EmptyConditionError):
        review.review()

    review.set_text("협의 후 추가 진행")
    with pytest.raises(AnalysisRequiredError):
        review.commit()

    analysis = review.review()
    assert analysis.level == "low"
    assert len(history) == 1

    condition = review.commit()
    assert condition.risk_level == "low"
    assert condition.importance == "일반"
    assert not condition.is_forced
    assert review.text == ""
    assert review.analysis is None


def test_changing_text_invalidates_analysis(scorer):
    review = ConditionReview(scorer=scorer, mode="block")
    review.set_text("협의 후 진행")
    review.review()
    review.set_text("협의 후 진행  ")
    assert review.analysis is not None

    review.set_text("지체상금 조항")
    assert review.analysis is None
    with pytest.raises(AnalysisRequiredError):
        review.decision()


def test_review_blocks_high_risk_in_block_mode(scorer):
    review = ConditionReview(scorer=scorer, mode="block")
    review.set_text("본 공사의 하자는 수급인 책임으로 한다")
    review.review()
    with pytest.raises(ConditionBlockedError):
        review.commit(confirm_override=True)
    # 차단되어도 입력과 분석은 유지
    assert review.analysis is not None


def test_review_confirm_mode_force_adds(scorer):
    review = ConditionReview(scorer=scorer, mode="confirm")
    review.set_text("본 공사의 하자는 수급인 책임으로 한다")
    review.review()
    assert review.decision().requires_confirmation
    condition = review.commit(confirm_override=True)
    assert condition.is_forced
    assert condition.risk_level == "high"
