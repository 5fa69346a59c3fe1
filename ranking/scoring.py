"""
평가 점수 계산 모듈

- 제출된 항목/미션 점수 합산
- 영역 만점 계산 (루브릭 / 퍼포먼스 / 혼합)
- 페널티 적용 (합산 후 0점 하한)
- 레거시 기본 루브릭 (영역 코드 기준)
"""
import math
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional, Union

from loguru import logger

from data_pipeline.normalizer import normalize_grade
from data_pipeline.schemas import (
    Evaluation,
    MixedScoring,
    Penalty,
    PenaltyType,
    PerformanceScoring,
    RubricCriterion,
    RubricScoring,
    ScoreEntry,
    TournamentArea,
)

ScoringConfigType = Union[RubricScoring, PerformanceScoring, MixedScoring]


# =====================================================
# 레거시 기본 루브릭
# =====================================================

_LEVEL_OPTIONS = [0, 3, 5, 7, 10]


def _criterion(criterion_id: str, name: str, max_score: float, options=None) -> RubricCriterion:
    return RubricCriterion(id=criterion_id, name=name, max_score=max_score, options=options or list(_LEVEL_OPTIONS))


# 영역 코드 → 기본 루브릭 (커스텀 설정이 없는 기존 토너먼트용)
LEGACY_RUBRICS: Dict[str, RubricScoring] = {
    "programming": RubricScoring(criteria=[
        _criterion("mission1", "Missão 1 - Lixo", 50, [10, 20, 30, 40, 50]),
        _criterion("mission2", "Missão 2 - Mudas", 45, [15, 30, 45]),
        _criterion("mission3", "Missão 3 - Tartarugas", 60, [20, 40, 60]),
        _criterion("mission4", "Missão 4 - Coral", 30, [30]),
        _criterion("mission5", "Missão 5 - Casinha", 40, [40]),
    ]),
    "research": RubricScoring(criteria=[
        _criterion("poster_development", "Desenvolvimento do Cartaz", 10),
        _criterion("research_depth", "Aprofundamento da Pesquisa", 10),
        _criterion("presentation_clarity", "Clareza na Apresentação", 10),
        _criterion("relevance_practical", "Relevância e Aplicação Prática", 10),
    ]),
    "identity": RubricScoring(criteria=[
        _criterion("mascot_design", "Desenho do Mascote no Cartaz", 10),
        _criterion("battle_cry", "Grito de Garra", 10),
        _criterion("animation", "Animação", 10),
        _criterion("creativity_originality", "Criatividade e Originalidade", 10),
        _criterion("visual_presentation", "Apresentação e Coerência Visual", 10),
    ]),
}

# 영역 코드 → 기본 페널티 유형 (퍼포먼스 설정이 없는 레거시 영역용)
LEGACY_PENALTIES: Dict[str, List[PenaltyType]] = {
    "programming": [
        PenaltyType(id="robot_touch", name="Toque no robô em movimento", points=-5),
    ],
}

# 2º ano research 영역은 스토리텔링 루브릭
STORYTELLING_RUBRIC = RubricScoring(criteria=[
    _criterion("presentation_clarity", "Clareza de Apresentação", 10),
    _criterion("student_participation", "Participação dos Alunos", 10),
    _criterion("creativity", "Criatividade", 10),
    _criterion("scenario", "Cenário", 10),
    _criterion("costume", "Figurino", 10),
])

STORYTELLING_GRADE = "2º ano"


def get_rubric_for_grade(area_code: str, grade: Optional[str] = None) -> Optional[RubricScoring]:
    """영역 코드와 학년으로 레거시 루브릭 선택"""
    if area_code == "research" and normalize_grade(grade) == STORYTELLING_GRADE:
        return STORYTELLING_RUBRIC
    return LEGACY_RUBRICS.get(area_code)


def resolve_scoring_config(
    area: TournamentArea,
    grade: Optional[str] = None,
    use_legacy: bool = True
) -> Optional[ScoringConfigType]:
    """
    영역 채점 설정 결정

    우선순위: 영역 자체 설정 → 레거시 기본 루브릭(영역 코드) → None
    None이면 만점 0 (퍼센트 계산에서 제외, 총점에는 포함)
    """
    if area.scoring is not None:
        return area.scoring
    if use_legacy:
        return get_rubric_for_grade(area.code, grade)
    return None


# =====================================================
# 점수 계산
# =====================================================

def round_half_up(value: float, ndigits: int = 0) -> float:
    """0.5 올림 반올림 (round()의 banker's rounding 대신)"""
    factor = 10 ** ndigits
    return math.floor(value * factor + 0.5) / factor


def calculate_total_score(scores: Iterable[ScoreEntry]) -> float:
    """제출 점수 합계 (선택지/미션 한도 검증은 하지 않음)"""
    return float(sum(entry.score for entry in scores))


def get_max_possible_score(config: Optional[ScoringConfigType]) -> float:
    """
    영역 만점

    - 루브릭: 항목별 max_score 합
    - 퍼포먼스: 활성 미션의 points × quantity 합
    - 혼합: 두 합의 합
    """
    if config is None:
        return 0.0

    total = 0.0
    for criterion in getattr(config, "criteria", []):
        total += criterion.max_score
    for mission in getattr(config, "missions", []):
        if mission.enabled:
            total += mission.max_points
    return total


def calculate_percentage(score: float, max_score: float) -> int:
    """퍼센트 (반올림, 클램프는 랭킹 단계에서)"""
    if max_score <= 0:
        return 0
    return int(round_half_up(score / max_score * 100))


def apply_penalties(raw_total: float, penalties: Iterable[Union[Penalty, float]]) -> float:
    """
    페널티 적용

    공식: max(0, raw_total + Σ points)
    부호 변환 없음, 하한은 전체 합산 후 한 번만 적용
    """
    penalty_total = sum(p.points if isinstance(p, Penalty) else float(p) for p in penalties)
    return max(0.0, raw_total + penalty_total)


@dataclass
class EvaluationScore:
    """평가 1건의 계산 결과"""
    raw_total: float
    penalty_total: float
    final_score: float
    max_score: float
    percentage: int

    def to_dict(self) -> Dict:
        return asdict(self)


def score_evaluation(evaluation: Evaluation, config: Optional[ScoringConfigType]) -> EvaluationScore:
    """평가 1건 점수 계산 (합산 → 페널티 → 퍼센트)"""
    raw_total = calculate_total_score(evaluation.scores)
    final_score = apply_penalties(raw_total, evaluation.penalties)
    max_score = get_max_possible_score(config)

    return EvaluationScore(
        raw_total=raw_total,
        penalty_total=sum(p.points for p in evaluation.penalties),
        final_score=final_score,
        max_score=max_score,
        percentage=calculate_percentage(final_score, max_score),
    )


def penalty_from_type(
    config: Optional[ScoringConfigType],
    penalty_type_id: str,
    description: Optional[str] = None,
    area_code: Optional[str] = None
) -> Optional[Penalty]:
    """
    페널티 유형으로 페널티 레코드 생성

    조회 순서: 채점 설정의 페널티 유형 → 영역 코드의 레거시 기본 페널티
    """
    penalty_types = list(getattr(config, "penalties", []) or [])
    if area_code:
        penalty_types.extend(LEGACY_PENALTIES.get(area_code, []))

    for penalty_type in penalty_types:
        if penalty_type.id == penalty_type_id:
            return Penalty(
                type=penalty_type.id,
                points=penalty_type.points,
                description=description or penalty_type.name,
            )

    logger.warning(f"알 수 없는 페널티 유형: {penalty_type_id}")
    return None
