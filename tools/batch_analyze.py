# tools/batch_analyze.py
# - 공종별 조건 목록 CSV 의 각 조건 문구에 위험도 분석을 일괄 적용
# - 결과 컬럼(risk_*)을 덧붙여 CSV 로 저장하고 등급별 건수를 출력
#
# 사용 예:
#   python tools/batch_analyze.py --csv data/conditions.csv --out data/conditions_risk.csv

import sys, json, argparse
from pathlib import Path

BASE = Path(__file__).resolve().parents[1]
sys.path.append(str(BASE))

import pandas as pd

from clausecheck.risk_scorer import LEVELS, RiskScorer

RESULT_COLUMNS = ["risk_score", "risk_level", "risk_category", "risk_issues", "blocked_keywords"]


def analyze_frame(df: pd.DataFrame, scorer: RiskScorer, column: str = "내용") -> pd.DataFrame:
    if column not in df.columns:
        raise KeyError(f"text column not found: {column!r} (columns: {list(df.columns)})")

    rows = []
    for value in df[column].tolist():
        text = "" if pd.isna(value) else str(value)
        if not text.strip():
            # 빈 문구는 분석하지 않음
            rows.append({"risk_score": None, "risk_level": "", "risk_category": "",
                         "risk_issues": "", "blocked_keywords": ""})
            continue
        a = scorer.analyze(text)
        rows.append({
            "risk_score": a.score,
            "risk_level": a.level,
            "risk_category": a.category,
            "risk_issues": " | ".join(a.issues),
            "blocked_keywords": ", ".join(a.blocked_keywords),
        })

    out = df.copy()
    res = pd.DataFrame(rows, columns=RESULT_COLUMNS, index=df.index)
    for col in RESULT_COLUMNS:
        out[col] = res[col]
    return out


def summarize(df: pd.DataFrame) -> dict:
    counts = df["risk_level"].value_counts().to_dict()
    return {
        "total": int(len(df)),
        "skipped": int(counts.get("", 0)),
        "levels": {lvl: int(counts.get(lvl, 0)) for lvl in LEVELS},
    }


def main(argv=None):
    ap = argparse.ArgumentParser()
    ap.add_argument("--csv", required=True)
    ap.add_argument("--out", default=None)
    ap.add_argument("--column", default="내용")
    ap.add_argument("--rules", default=None)
    args = ap.parse_args(argv)

    df = pd.read_csv(args.csv, encoding="utf-8-sig", dtype=str)
    scorer = RiskScorer(cfg_path=args.rules)

    result = analyze_frame(df, scorer, column=args.column)

    out_path = Path(args.out) if args.out else Path(args.csv).with_name(Path(args.csv).stem + "_risk.csv")
    result.to_csv(out_path, index=False, encoding="utf-8-sig")

    print(json.dumps(summarize(result), ensure_ascii=False, indent=2))
    print(f"\nSaved: {out_path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
