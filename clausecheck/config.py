# clausecheck/config.py
import os
from pathlib import Path

# 패키지 기준 경로
BASE_DIR = Path(__file__).resolve().parent
ROOT_DIR = BASE_DIR.parent

# ✅ 키워드 등급/위험 패턴/권장사항 규칙 파일
RULES_PATH = os.getenv(
    "RULES_PATH",
    str(BASE_DIR / "rules.yaml")
)

# 최근 분석 이력 보관 개수 (오래된 항목부터 삭제)
HISTORY_LIMIT = int(os.getenv("HISTORY_LIMIT", "10"))

# 고위험 조건 처리 방식: block(추가 불가) | confirm(확인 후 강제 추가)
GATE_MODES = ("block", "confirm")


def validate_gate_mode(mode: str) -> str:
    normalized = (mode or "").strip().lower()
    if normalized not in GATE_MODES:
        raise ValueError(f"Unknown gate mode: {mode!r} (expected one of {GATE_MODES})")
    return normalized


# 잘못된 값이면 import 시점에 실패
GATE_MODE = validate_gate_mode(os.getenv("GATE_MODE", "block"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE", "")
