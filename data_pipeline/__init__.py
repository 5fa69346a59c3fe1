"""
데이터 파이프라인 패키지

랭킹 엔진 입력 데이터 처리:
- 스키마 (팀 / 영역 / 평가 / 랭킹 설정)
- 텍스트 정규화 (학년 / 시간대)
- 기술적 검증 (ValidationResult)
- 평가 저장소 (upsert + version)
"""

from .schemas import (
    AggregationMethod,
    Evaluation,
    Mission,
    Penalty,
    PenaltyType,
    RankingConfig,
    RankingFilters,
    RankingMethod,
    RoundsAggregation,
    RubricCriterion,
    ScoringType,
    Team,
    TournamentArea,
    ValidationResult,
    ValidationError,
    ValidationSeverity,
)
from .normalizer import normalize_grade, normalize_shift, normalize_text, normalize_teams_batch
from .validators import EvaluationValidator, AreaConfigValidator
from .store import EvaluationStore

__all__ = [
    # Schemas
    "AggregationMethod",
    "Evaluation",
    "Mission",
    "Penalty",
    "PenaltyType",
    "RankingConfig",
    "RankingFilters",
    "RankingMethod",
    "RoundsAggregation",
    "RubricCriterion",
    "ScoringType",
    "Team",
    "TournamentArea",
    "ValidationResult",
    "ValidationError",
    "ValidationSeverity",
    # Normalizer
    "normalize_grade",
    "normalize_shift",
    "normalize_text",
    "normalize_teams_batch",
    # Validators
    "EvaluationValidator",
    "AreaConfigValidator",
    # Store
    "EvaluationStore",
]
