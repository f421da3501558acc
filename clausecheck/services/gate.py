# clausecheck/services/gate.py
from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .. import config
from ..logger_config import setup_logger
from ..risk_scorer import RiskAnalysis, RiskScorer, get_scorer
from .history import AnalysisHistory

logger = setup_logger()

MODE_BLOCK = "block"
MODE_CONFIRM = "confirm"
GATE_MODES = config.GATE_MODES

HIGH_RISK_LEVELS = {"critical", "high"}

MSG_EMPTY_TEXT = "분석할 내용을 먼저 입력해 주세요."
MSG_ANALYSIS_REQUIRED = "위험도 분석을 먼저 진행해 주세요. 위험도 분석 없이는 조건을 추가할 수 없습니다."
MSG_MEDIUM_ADVISORY = "중간 위험도의 조건입니다. 담당자와 협의 후 추가하시기 바랍니다."


class GateError(Exception):
    pass


class EmptyConditionError(GateError):
    def __init__(self, message: str = MSG_EMPTY_TEXT):
        super().__init__(message)


class AnalysisRequiredError(GateError):
    def __init__(self, message: str = MSG_ANALYSIS_REQUIRED):
        super().__init__(message)


class ConditionBlockedError(GateError):
    def __init__(self, decision: "GateDecision"):
        super().__init__(decision.reason)
        self.decision = decision


@dataclass(frozen=True)
class GateDecision:
    level: str
    allowed: bool
    requires_confirmation: bool
    forced: bool
    advisory: Optional[str]
    reason: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "allowed": self.allowed,
            "requires_confirmation": self.requires_confirmation,
            "forced": self.forced,
            "advisory": self.advisory,
            "reason": self.reason,
        }


@dataclass(frozen=True)
class CustomCondition:
    id: str
    text: str
    risk_level: str
    risk_score: int
    importance: str
    is_forced: bool
    created_at: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "text": self.text,
            "risk_level": self.risk_level,
            "risk_score": self.risk_score,
            "importance": self.importance,
            "is_forced": self.is_forced,
            "created_at": self.created_at,
        }


def _blocked_reason(level: str) -> str:
    degree = "매우 높은" if level == "critical" else "높은"
    return f"위험도가 {degree} 조건은 추가할 수 없습니다. 조건을 수정하거나 담당자와 협의하세요."


def decide(analysis: RiskAnalysis, mode: Optional[str] = None, confirm_override: bool = False) -> GateDecision:
    # mode 미지정 시 호출 시점의 설정값
    normalized_mode = config.validate_gate_mode(config.GATE_MODE if mode is None else mode)

    level = analysis.level
    if level in HIGH_RISK_LEVELS:
        if normalized_mode == MODE_BLOCK:
            return GateDecision(
                level=level, allowed=False, requires_confirmation=False, forced=False,
                advisory=None, reason=_blocked_reason(level),
            )
        if not confirm_override:
            return GateDecision(
                level=level, allowed=False, requires_confirmation=True, forced=False,
                advisory=None, reason="위험도가 높은 조건입니다. 강제 추가하려면 확인이 필요합니다.",
            )
        return GateDecision(
            level=level, allowed=True, requires_confirmation=True, forced=True,
            advisory=None, reason="confirmed_override",
        )

    if level == "medium":
        return GateDecision(
            level=level, allowed=True, requires_confirmation=False, forced=False,
            advisory=MSG_MEDIUM_ADVISORY, reason="allowed_with_advisory",
        )

    return GateDecision(
        level=level, allowed=True, requires_confirmation=False, forced=False,
        advisory=None, reason="allowed",
    )


def build_condition(text: str, analysis: RiskAnalysis, decision: GateDecision) -> CustomCondition:
    return CustomCondition(
        id=f"custom-{uuid.uuid4().hex}",
        text=text.strip(),
        risk_level=analysis.level,
        risk_score=analysis.score,
        importance="중요" if analysis.level in HIGH_RISK_LEVELS else "일반",
        is_forced=decision.forced,
        created_at=datetime.now(timezone.utc).isoformat(),
    )


def commit_condition(
    text: str,
    analysis: Optional[RiskAnalysis],
    mode: Optional[str] = None,
    confirm_override: bool = False,
) -> tuple[CustomCondition, GateDecision]:
    """
    분석 결과를 근거로 사용자 정의 조건을 확정한다.

    빈 입력, 분석 미실시, 차단/미확인 고위험 조건은 GateError 계열 예외.
    """
    if not (text or "").strip():
        raise EmptyConditionError("추가할 내용을 먼저 입력해 주세요.")
    if analysis is None:
        raise AnalysisRequiredError()

    decision = decide(analysis, mode=mode, confirm_override=confirm_override)
    if not decision.allowed:
        logger.info("[gate] blocked level=%s score=%d mode=%s", analysis.level, analysis.score, mode or config.GATE_MODE)
        raise ConditionBlockedError(decision)

    condition = build_condition(text, analysis, decision)
    logger.info(
        "[gate] added %s level=%s score=%d forced=%s",
        condition.id, condition.risk_level, condition.risk_score, str(condition.is_forced).lower(),
    )
    return condition, decision


class ConditionReview:
    """
    현장 특수사항 한 건의 입력 → 위험도 분석 → 추가 흐름.

    입력이 바뀌면 이전 분석은 무효가 되므로 다시 분석해야 추가할 수 있다.
    """

    def __init__(
        self,
        scorer: Optional[RiskScorer] = None,
        mode: Optional[str] = None,
        history: Optional[AnalysisHistory] = None,
    ):
        self.scorer = scorer or get_scorer()
        self.mode = mode
        self.history = history
        self._text = ""
        self._analysis: Optional[RiskAnalysis] = None

    @property
    def text(self) -> str:
        return self._text

    @property
    def analysis(self) -> Optional[RiskAnalysis]:
        return self._analysis

    def set_text(self, text: str) -> None:
        text = text or ""
        if text.strip() != self._text.strip():
            self._analysis = None
        self._text = text

    def review(self) -> RiskAnalysis:
        if not self._text.strip():
            raise EmptyConditionError()
        analysis = self.scorer.analyze(self._text)
        self._analysis = analysis
        if self.history is not None:
            self.history.record(self._text, analysis)
        return analysis

    def decision(self, confirm_override: bool = False) -> GateDecision:
        if self._analysis is None:
            raise AnalysisRequiredError()
        return decide(self._analysis, mode=self.mode, confirm_override=confirm_override)

    def commit(self, confirm_override: bool = False) -> CustomCondition:
        condition, _ = commit_condition(
            self._text, self._analysis, mode=self.mode, confirm_override=confirm_override,
        )
        self.reset()
        return condition

    def reset(self) -> None:
        self._text = ""
        self._analysis = None
