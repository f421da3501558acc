# clausecheck/services/loader.py
from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .. import config  # RULES_PATH
from ..logger_config import setup_logger

logger = setup_logger()

# 위험도 등급 (낮음 → 높음 순서)
LEVELS: Tuple[str, ...] = ("safe", "low", "medium", "high", "critical")
TIER_ORDER: Tuple[str, ...] = ("critical", "high", "medium", "low")
LEVEL_INFO_KEYS: Tuple[str, ...] = ("color", "bg_color", "border_color", "text_color", "icon", "label")


class RuleConfigError(ValueError):
    """rules.yaml 구성이 잘못되었을 때"""


# ----------------------------
# 규칙 타입 (모두 불변)
# ----------------------------
@dataclass(frozen=True)
class RuleTier:
    name: str
    keywords: Tuple[str, ...]
    weight: int
    category: str
    blocking: bool


@dataclass(frozen=True)
class PatternRule:
    regex: re.Pattern
    points: int
    description: str


@dataclass(frozen=True)
class RuleBook:
    tiers: Tuple[RuleTier, ...]
    patterns: Tuple[PatternRule, ...]
    level_bins: Tuple[Tuple[float, float, str], ...]
    pattern_floor: str
    default_category: str
    max_score: int
    suggestions: Mapping[str, Tuple[str, ...]]
    level_info: Mapping[str, Mapping[str, str]]
    source: str = ""


# ----------------------------
# 공통 유틸
# ----------------------------
def normalize_text(s: Optional[str]) -> str:
    """매칭용 정규화: 소문자 + 앞뒤 공백 제거 (그 외 변형 없음)"""
    if s is None:
        return ""
    return str(s).lower().strip()


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise RuleConfigError(f"rules file not found: {path}")
    with path.open("r", encoding="utf-8-sig") as f:
        data = yaml.safe_load(f)
    if not isinstance(data, dict):
        raise RuleConfigError(f"rules file must contain a mapping: {path}")
    return data


def _require(data: Dict[str, Any], key: str) -> Any:
    if data.get(key) is None:
        raise RuleConfigError(f"missing section: {key}")
    return data[key]


def _positive_int(value: Any, where: str) -> int:
    try:
        n = int(value)
    except (TypeError, ValueError):
        raise RuleConfigError(f"{where}: not an integer: {value!r}") from None
    if n <= 0:
        raise RuleConfigError(f"{where}: must be positive, got {n}")
    return n


def _check_level(level: Any, where: str) -> str:
    lab = str(level or "").strip()
    if lab not in LEVELS:
        raise RuleConfigError(f"{where}: unknown level {level!r}")
    return lab


# ----------------------------
# 섹션별 파서
# ----------------------------
def _parse_tiers(raw: Any) -> Tuple[RuleTier, ...]:
    if not isinstance(raw, list):
        raise RuleConfigError("tiers: expected a list")

    tiers: List[RuleTier] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise RuleConfigError(f"tiers[{idx}]: expected a mapping")
        name = str(item.get("name") or "").strip()
        keywords = item.get("keywords") or []
        if not isinstance(keywords, list):
            raise RuleConfigError(f"tiers[{idx}] ({name}): keywords must be a list")
        keywords = tuple(str(k) for k in keywords if k is not None and str(k).strip())
        if not keywords:
            raise RuleConfigError(f"tiers[{idx}] ({name}): keywords must be a non-empty list")
        tiers.append(RuleTier(
            name=name,
            keywords=keywords,
            weight=_positive_int(item.get("weight"), f"tiers[{idx}] ({name}).weight"),
            category=str(item.get("category") or "").strip(),
            blocking=bool(item.get("blocking", False)),
        ))

    names = tuple(t.name for t in tiers)
    if names != TIER_ORDER:
        raise RuleConfigError(f"tiers must be ordered {list(TIER_ORDER)}, got {list(names)}")
    return tuple(tiers)


def _parse_patterns(raw: Any) -> Tuple[PatternRule, ...]:
    if not isinstance(raw, list):
        raise RuleConfigError("patterns: expected a list")

    patterns: List[PatternRule] = []
    for idx, item in enumerate(raw):
        if not isinstance(item, dict):
            raise RuleConfigError(f"patterns[{idx}]: expected a mapping")
        rx = str(item.get("regex") or "")
        if not rx:
            raise RuleConfigError(f"patterns[{idx}]: regex is required")
        try:
            compiled = re.compile(rx)
        except re.error as e:
            raise RuleConfigError(f"patterns[{idx}]: invalid regex {rx!r} -> {e}") from e
        patterns.append(PatternRule(
            regex=compiled,
            points=_positive_int(item.get("points"), f"patterns[{idx}].points"),
            description=str(item.get("description") or rx),
        ))
    return tuple(patterns)


def _parse_level_bins(raw: Any) -> Tuple[Tuple[float, float, str], ...]:
    if not isinstance(raw, list) or not raw:
        raise RuleConfigError("level_bins: expected a non-empty list")

    bins: List[Tuple[float, float, str]] = []
    for idx, b in enumerate(raw):
        if not isinstance(b, (list, tuple)) or len(b) != 3:
            raise RuleConfigError(f"level_bins[{idx}]: expected [lo, hi, level]")
        lo, hi, lab = b
        lo = float(lo)
        hi = float("inf") if hi is None else float(hi)
        if hi <= lo:
            raise RuleConfigError(f"level_bins[{idx}]: hi must be greater than lo")
        bins.append((lo, hi, _check_level(lab, f"level_bins[{idx}]")))
    return tuple(bins)


def _parse_suggestions(raw: Any) -> Mapping[str, Tuple[str, ...]]:
    if not isinstance(raw, dict):
        raise RuleConfigError("suggestions: expected a mapping")

    out: Dict[str, Tuple[str, ...]] = {}
    for level in LEVELS:
        items = raw.get(level)
        if not isinstance(items, list) or not items:
            raise RuleConfigError(f"suggestions.{level}: expected a non-empty list")
        out[level] = tuple(str(s) for s in items)
    return MappingProxyType(out)


def _parse_level_info(raw: Any) -> Mapping[str, Mapping[str, str]]:
    if not isinstance(raw, dict):
        raise RuleConfigError("level_info: expected a mapping")

    out: Dict[str, Mapping[str, str]] = {}
    for level in LEVELS:
        info = raw.get(level)
        if not isinstance(info, dict):
            raise RuleConfigError(f"level_info.{level}: expected a mapping")
        missing = [k for k in LEVEL_INFO_KEYS if k not in info]
        if missing:
            raise RuleConfigError(f"level_info.{level}: missing keys {missing}")
        out[level] = MappingProxyType({k: str(info[k]) for k in LEVEL_INFO_KEYS})
    return MappingProxyType(out)


# ----------------------------
# 규칙 로더
# ----------------------------
def parse_rulebook(data: Dict[str, Any], source: str = "") -> RuleBook:
    """이미 읽어 들인 yaml 매핑을 RuleBook 으로 변환 (검증 포함)"""
    return RuleBook(
        tiers=_parse_tiers(_require(data, "tiers")),
        patterns=_parse_patterns(_require(data, "patterns")),
        level_bins=_parse_level_bins(_require(data, "level_bins")),
        pattern_floor=_check_level(_require(data, "pattern_floor"), "pattern_floor"),
        default_category=str(data.get("default_category") or "일반사항"),
        max_score=_positive_int(data.get("max_score", 100), "max_score"),
        suggestions=_parse_suggestions(_require(data, "suggestions")),
        level_info=_parse_level_info(_require(data, "level_info")),
        source=source,
    )


def load_rulebook(path: Optional[str | Path] = None) -> RuleBook:
    """
    rules.yaml 을 읽어 불변 RuleBook 을 만든다.
    - 경로 미지정 시 config.RULES_PATH
    - 잘못된 구성은 RuleConfigError (부분 로드 없음)
    """
    rules_path = Path(path) if path else Path(config.RULES_PATH)
    rulebook = parse_rulebook(_read_yaml(rules_path), source=str(rules_path))

    logger.info(
        "[rules] loaded %s: tiers=%d keywords=%d patterns=%d",
        rules_path.name,
        len(rulebook.tiers),
        sum(len(t.keywords) for t in rulebook.tiers),
        len(rulebook.patterns),
    )
    return rulebook
