# clausecheck/risk_scorer.py
from dataclasses import dataclass
from typing import Dict, Any, Optional, List, Tuple

from .config import RULES_PATH
from .logger_config import setup_logger
from .services.loader import LEVELS, RuleBook, load_rulebook, normalize_text

logger = setup_logger()

SAFE = "safe"


# ----------------------------
# 분석 결과
# ----------------------------
@dataclass(frozen=True)
class RiskAnalysis:
    score: int                       # 0~100 (높을수록 위험)
    level: str                       # safe | low | medium | high | critical
    category: str
    issues: Tuple[str, ...]
    suggestions: Tuple[str, ...]
    blocked_keywords: Tuple[str, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "level": self.level,
            "category": self.category,
            "issues": list(self.issues),
            "suggestions": list(self.suggestions),
            "blocked_keywords": list(self.blocked_keywords),
        }


def _level_rank(level: str) -> int:
    return LEVELS.index(level) if level in LEVELS else 0


# ----------------------------
# 위험도 스코어러
# ----------------------------
class RiskScorer:
    def __init__(self, cfg_path: str = None, rulebook: Optional[RuleBook] = None):
        self.rules: RuleBook = rulebook or load_rulebook(cfg_path or RULES_PATH)

    def level_from_score(self, score: float) -> str:
        for lo, hi, lab in self.rules.level_bins:
            if lo <= score < hi:
                return lab
        return SAFE

    def suggestions_for(self, level: str) -> Tuple[str, ...]:
        return self.rules.suggestions.get(level) or self.rules.suggestions[SAFE]

    def level_info(self, level: str) -> Optional[Dict[str, str]]:
        info = self.rules.level_info.get(level)
        return dict(info) if info is not None else None

    # ---- 키워드 등급 ----
    def _match_tiers(self, t: str) -> List[Tuple[Any, List[str]]]:
        """등급 순서대로 (tier, 매칭된 키워드 목록). 등장 횟수가 아니라 키워드 종류 기준."""
        out = []
        for tier in self.rules.tiers:
            found = [kw for kw in tier.keywords if kw.lower() in t]
            out.append((tier, found))
        return out

    # ---- 최종 ----
    def analyze(self, text: Optional[str]) -> RiskAnalysis:
        t = normalize_text(text)
        total = 0
        issues: List[str] = []
        blocked: List[str] = []
        category = self.rules.default_category

        for tier, found in self._match_tiers(t):
            if not found:
                continue
            total += tier.weight * len(found)
            issues.append(f"{tier.category}: {', '.join(found)}")
            if tier.blocking:
                blocked.extend(found)
                # 평가 순서상 나중 등급(high)이 앞 등급(critical)의 분류를 덮어씀
                category = tier.category

        level = self.level_from_score(total)

        # 위험 패턴: 점수 가산 + 최소 등급 보정 (점수로 레벨 재산정은 하지 않음)
        floor = self.rules.pattern_floor
        for rule in self.rules.patterns:
            if rule.regex.search(t):
                total += rule.points
                issues.append(f"위험 패턴: {rule.description}")
                if _level_rank(level) < _level_rank(floor):
                    level = floor

        score = min(total, self.rules.max_score)
        logger.debug("[scorer] score=%d (raw=%d) level=%s issues=%d", score, total, level, len(issues))

        return RiskAnalysis(
            score=score,
            level=level,
            category=category,
            issues=tuple(issues),
            suggestions=self.suggestions_for(level),
            blocked_keywords=tuple(blocked),
        )

    # ---- 디버그용: 규칙별 히트 상세 ----
    def probe(self, text: Optional[str]) -> Dict[str, Any]:
        t = normalize_text(text)
        tier_hits = [
            {"tier": tier.name, "category": tier.category, "weight": tier.weight, "keywords": found}
            for tier, found in self._match_tiers(t)
            if found
        ]

        pattern_hits = []
        for rule in self.rules.patterns:
            m = rule.regex.search(t)
            if m:
                s, e = m.span()
                pattern_hits.append({
                    "pattern": rule.regex.pattern, "description": rule.description,
                    "points": rule.points, "match": m.group(0),
                    "span": [s, e], "snippet": t[max(0, s-15):min(len(t), e+15)]
                })

        return {
            "normalized": t,
            "compiled_total": len(self.rules.patterns),
            "tiers": tier_hits,
            "patterns": pattern_hits,
        }


# ----------------------------
# 기본 스코어러 (프로세스 전역, 지연 생성)
# ----------------------------
_SCORER: Optional[RiskScorer] = None


def get_scorer() -> RiskScorer:
    global _SCORER
    if _SCORER is None:
        _SCORER = RiskScorer()
    return _SCORER


def analyze_risk(text: Optional[str]) -> RiskAnalysis:
    return get_scorer().analyze(text)


def level_from_score(score: float) -> str:
    return get_scorer().level_from_score(score)


def get_suggestions(level: str) -> Tuple[str, ...]:
    """등급별 권장사항. 알 수 없는 등급은 safe 목록."""
    return get_scorer().suggestions_for(level)


def get_risk_level_info(level: str) -> Optional[Dict[str, str]]:
    return get_scorer().level_info(level)
