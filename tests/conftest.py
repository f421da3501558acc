import pytest

from clausecheck.risk_scorer import RiskScorer


@pytest.fixture(scope="session")
def scorer() -> RiskScorer:
    return RiskScorer()
