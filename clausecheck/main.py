# clausecheck/main.py
from __future__ import annotations

import json
from typing import Any, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel

from . import config
from .logger_config import setup_logger
from .risk_scorer import get_scorer
from .services.gate import AnalysisRequiredError, ConditionBlockedError, EmptyConditionError, commit_condition
from .services.history import AnalysisHistory

logger = setup_logger()

# ──────────────────────────────────────────────────────────────────────
# FastAPI 앱
# ──────────────────────────────────────────────────────────────────────
app = FastAPI(default_response_class=ORJSONResponse)

# 스코어러/최근 분석 이력 (규칙 파일이 잘못되면 여기서 바로 실패)
scorer = get_scorer()
history = AnalysisHistory(limit=config.HISTORY_LIMIT)

logger.info("[app] ready: rules=%s gate_mode=%s history_limit=%d",
            scorer.rules.source, config.GATE_MODE, history.limit)

# ──────────────────────────────────────────────────────────────────────
# 유틸
# ──────────────────────────────────────────────────────────────────────
def ensure_utf8_bytes(b: bytes) -> bytes:
    """요청 바이트를 UTF-8로 강제. CP949/EUC-KR, BOM 있는 UTF-16 폴백 지원."""
    try:
        b.decode("utf-8")
        return b
    except UnicodeDecodeError:
        pass
    # UTF-16 은 짝수 길이 바이트면 거의 항상 디코딩되므로 BOM 이 있을 때만 시도
    encodings = ("utf-16",) if b.startswith((b"\xff\xfe", b"\xfe\xff")) else ()
    for enc in encodings + ("cp949", "euc-kr"):
        try:
            return b.decode(enc).encode("utf-8")
        except UnicodeDecodeError:
            continue
    return b

async def _read_json_body(request: Request) -> Dict[str, Any]:
    raw = ensure_utf8_bytes(await request.body())
    try:
        data = json.loads(raw.decode("utf-8") or "{}")
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise HTTPException(status_code=400, detail=f"invalid JSON body: {e}") from e
    if not isinstance(data, dict):
        raise HTTPException(status_code=400, detail="JSON body must be an object")
    return data

# ──────────────────────────────────────────────────────────────────────
# 입력 모델
# ──────────────────────────────────────────────────────────────────────
class InText(BaseModel):
    text: str

class InCondition(BaseModel):
    text: str
    confirm_override: bool = False

# ──────────────────────────────────────────────────────────────────────
# 엔드포인트
# ──────────────────────────────────────────────────────────────────────
@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}

@app.post("/analyze")
async def analyze(request: Request) -> Dict[str, Any]:
    data = await _read_json_body(request)
    text = data.get("text", "")
    if text is None:
        text = ""
    if not isinstance(text, str):
        raise HTTPException(status_code=400, detail="text must be a string")
    if not text.strip():
        raise HTTPException(status_code=400, detail=EmptyConditionError().args[0])

    analysis = scorer.analyze(text)
    history.record(text, analysis)
    logger.info("[analyze] level=%s score=%d chars=%d", analysis.level, analysis.score, len(text))

    return {
        **analysis.to_dict(),
        "level_info": scorer.level_info(analysis.level),
    }

@app.get("/history")
def recent_history() -> Dict[str, List[Dict[str, Any]]]:
    return {"items": [e.to_dict() for e in history.recent()]}

@app.get("/risk-levels")
def risk_levels() -> Dict[str, Any]:
    return {level: dict(info) for level, info in scorer.rules.level_info.items()}

@app.get("/risk-levels/{level}")
def risk_level(level: str) -> Dict[str, str]:
    info = scorer.level_info(level)
    if info is None:
        raise HTTPException(status_code=404, detail=f"unknown risk level: {level}")
    return info

@app.post("/conditions")
def add_condition(inp: InCondition) -> Dict[str, Any]:
    """최근 분석 결과로 조건 추가 가능 여부를 판정하고, 가능하면 조건을 만든다."""
    entry = history.latest_for(inp.text)
    try:
        condition, decision = commit_condition(
            inp.text,
            entry.analysis if entry else None,
            confirm_override=inp.confirm_override,
        )
    except EmptyConditionError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    except AnalysisRequiredError as e:
        raise HTTPException(status_code=409, detail=str(e)) from e
    except ConditionBlockedError as e:
        return {"decision": e.decision.to_dict(), "condition": None}

    return {"decision": decision.to_dict(), "condition": condition.to_dict()}

@app.get("/debug/paths")
def debug_paths() -> Dict[str, Any]:
    return {
        "rules_path": str(config.RULES_PATH),
        "loaded_from": scorer.rules.source,
        "log_file": config.LOG_FILE or None,
    }

@app.post("/debug/rule_probe")
def rule_probe(inp: InText) -> Dict[str, Any]:
    """입력 문장에 어떤 등급 키워드/위험 패턴이 걸리는지 확인"""
    return scorer.probe(inp.text)
