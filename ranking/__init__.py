"""
토너먼트 랭킹 엔진

팀 × 영역 평가를 점수화/집계하여 가중 랭킹 산출
"""
from .aggregation import (
    AggregateResult,
    ScoredEntry,
    aggregate_evaluations,
    aggregate_rounds,
)
from .calculator import (
    RankingCalculator,
    AreaScore,
    TeamSummary,
    TeamRanking,
    compute_ranking,
    calculate_ranking_stats,
)
from .filters import filter_teams, get_available_filters, resolve_team_attribute
from .scoring import (
    LEGACY_PENALTIES,
    LEGACY_RUBRICS,
    EvaluationScore,
    apply_penalties,
    calculate_percentage,
    calculate_total_score,
    get_max_possible_score,
    get_rubric_for_grade,
    penalty_from_type,
    resolve_scoring_config,
    score_evaluation,
)
from .settings import EngineSettings, get_engine_settings

__all__ = [
    # Calculator
    "RankingCalculator",
    "AreaScore",
    "TeamSummary",
    "TeamRanking",
    "compute_ranking",
    "calculate_ranking_stats",
    # Aggregation
    "AggregateResult",
    "ScoredEntry",
    "aggregate_evaluations",
    "aggregate_rounds",
    # Filters
    "filter_teams",
    "get_available_filters",
    "resolve_team_attribute",
    # Scoring
    "LEGACY_PENALTIES",
    "LEGACY_RUBRICS",
    "EvaluationScore",
    "apply_penalties",
    "calculate_percentage",
    "calculate_total_score",
    "get_max_possible_score",
    "get_rubric_for_grade",
    "penalty_from_type",
    "resolve_scoring_config",
    "score_evaluation",
    # Settings
    "EngineSettings",
    "get_engine_settings",
]
