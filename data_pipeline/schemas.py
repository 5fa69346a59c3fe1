"""
토너먼트 데이터 스키마 정의

Pydantic 모델을 사용하여 랭킹 엔진 입력 데이터의 유효성 검사 및 타입 강제
- 팀 / 평가 영역 / 평가 / 페널티
- 영역별 채점 설정 (rubric / performance / mixed 태그드 유니온)
- 토너먼트 랭킹 설정
"""

from pydantic import BaseModel, Discriminator, Field, Tag, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any, Literal, Union, Annotated
from datetime import datetime, timezone
from enum import Enum


class ValidationSeverity(str, Enum):
    """검증 오류 심각도"""
    CRITICAL = "critical"   # 랭킹 계산에서 제외
    HIGH = "high"           # 랭킹 계산에서 제외, 수동 검토 필요
    MEDIUM = "medium"       # 계산 가능, 경고 표시
    LOW = "low"             # 계산 가능, 로그만
    INFO = "info"           # 정보성


class ValidationError(BaseModel):
    """검증 오류"""
    error_type: str = Field(..., description="오류 유형")
    severity: ValidationSeverity = Field(..., description="심각도")
    message: str = Field(..., description="오류 메시지")
    field: Optional[str] = Field(None, description="관련 필드")
    value: Optional[Any] = Field(None, description="문제가 된 값")
    suggestion: Optional[str] = Field(None, description="해결 제안")


class ValidationResult(BaseModel):
    """검증 결과"""
    is_valid: bool = Field(default=True, description="최종 유효성")
    errors: List[ValidationError] = Field(default_factory=list)
    warnings: List[ValidationError] = Field(default_factory=list)
    validated_at: datetime = Field(default_factory=datetime.now)

    @property
    def has_critical_errors(self) -> bool:
        return any(e.severity in [ValidationSeverity.CRITICAL, ValidationSeverity.HIGH] for e in self.errors)

    @property
    def can_rank(self) -> bool:
        """랭킹 계산에 포함 가능 여부"""
        return not self.has_critical_errors


# ==================== 채점/집계 Enum ====================

class ScoringType(str, Enum):
    """영역 채점 방식"""
    RUBRIC = "rubric"
    PERFORMANCE = "performance"
    MIXED = "mixed"


class AggregationMethod(str, Enum):
    """같은 팀/영역의 복수 평가 집계 방식"""
    LAST = "last"
    AVERAGE = "average"
    MEDIAN = "median"
    BEST = "best"
    WORST = "worst"


class RoundsAggregation(str, Enum):
    """멀티 라운드 영역의 라운드 집계 방식"""
    BEST = "best"
    AVERAGE = "average"
    SUM = "sum"


class RankingMethod(str, Enum):
    """최종 퍼센트 계산 방식"""
    PERCENTAGE = "percentage"   # 영역별 퍼센트의 가중 평균
    RAW = "raw"                 # 가중 총점 / 가중 만점


class SchemaModel(BaseModel):
    """저장소 JSON(camelCase)과 파이썬 필드명(snake_case) 모두 허용"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True


# ==================== 채점 설정 ====================

class RubricCriterion(SchemaModel):
    """루브릭 평가 항목"""
    id: str = Field(..., min_length=1, description="항목 ID")
    name: str = Field(default="", description="표시명")
    description: Optional[str] = Field(None, description="설명")
    max_score: float = Field(..., ge=0, description="최대 점수")
    options: Optional[List[float]] = Field(None, description="선택 가능한 점수 목록")

    @model_validator(mode="after")
    def validate_options(self) -> "RubricCriterion":
        """선택 점수가 최대 점수를 넘지 않는지 검증"""
        if self.options and max(self.options) > self.max_score:
            raise ValueError(
                f"항목 {self.id}의 선택 점수 {max(self.options)}가 최대 점수 {self.max_score}를 초과합니다"
            )
        return self


class Mission(SchemaModel):
    """퍼포먼스 미션"""
    id: str = Field(..., min_length=1, description="미션 ID")
    name: str = Field(default="", description="표시명")
    description: Optional[str] = Field(None, description="설명")
    points: float = Field(..., ge=0, description="단위 포인트")
    quantity: int = Field(default=1, ge=1, description="수량")
    enabled: bool = Field(default=True, description="활성 여부")

    @property
    def max_points(self) -> float:
        return self.points * self.quantity


class PenaltyType(SchemaModel):
    """퍼포먼스 페널티 유형"""
    id: str = Field(..., min_length=1, description="페널티 유형 ID")
    name: str = Field(default="", description="표시명")
    points: float = Field(..., description="점수 변화량 (보통 음수)")


class RubricScoring(SchemaModel):
    """루브릭 채점 설정"""
    scoring_type: Literal["rubric"] = "rubric"
    criteria: List[RubricCriterion] = Field(default_factory=list)


class PerformanceScoring(SchemaModel):
    """퍼포먼스(미션) 채점 설정"""
    scoring_type: Literal["performance"] = "performance"
    missions: List[Mission] = Field(default_factory=list)
    penalties: List[PenaltyType] = Field(default_factory=list)


class MixedScoring(SchemaModel):
    """루브릭 + 퍼포먼스 혼합 채점 설정"""
    scoring_type: Literal["mixed"] = "mixed"
    criteria: List[RubricCriterion] = Field(default_factory=list)
    missions: List[Mission] = Field(default_factory=list)
    penalties: List[PenaltyType] = Field(default_factory=list)


def _scoring_tag(value: Any) -> Optional[str]:
    if isinstance(value, dict):
        tag = value.get("scoring_type") or value.get("scoringType")
    else:
        tag = getattr(value, "scoring_type", None)
    return tag.value if isinstance(tag, ScoringType) else tag


ScoringConfig = Annotated[
    Union[
        Annotated[RubricScoring, Tag("rubric")],
        Annotated[PerformanceScoring, Tag("performance")],
        Annotated[MixedScoring, Tag("mixed")],
    ],
    Discriminator(_scoring_tag),
]


# ==================== 핵심 스키마 ====================

class Team(SchemaModel):
    """팀 스키마"""
    id: str = Field(..., min_length=1, description="팀 ID")
    name: str = Field(..., min_length=1, description="팀명")
    code: Optional[str] = Field(None, description="팀 코드")
    grade: Optional[str] = Field(None, description="학년 (자유 텍스트)")
    shift: Optional[str] = Field(None, description="수업 시간대 (자유 텍스트)")
    school_id: Optional[str] = Field(None, description="소속 학교 ID")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="메타데이터")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        v = " ".join(v.split())
        if not v:
            raise ValueError("팀명은 비어 있을 수 없습니다")
        return v

    @field_validator("metadata", mode="before")
    @classmethod
    def validate_metadata(cls, v: Any) -> Any:
        return v if v is not None else {}


class TournamentArea(SchemaModel):
    """토너먼트 평가 영역 스키마"""
    id: str = Field(..., min_length=1, description="영역 ID")
    tournament_id: Optional[str] = Field(None, description="토너먼트 ID")
    code: str = Field(..., min_length=1, description="영역 코드")
    name: str = Field(default="", description="영역명")
    order: int = Field(default=0, description="표시/계산 순서")
    scoring_type: ScoringType = Field(default=ScoringType.RUBRIC, description="채점 방식")
    weight: float = Field(default=1.0, gt=0, description="가중치")
    aggregation_method: Optional[AggregationMethod] = Field(None, description="복수 평가 집계 방식 (없으면 엔진 기본값)")
    allow_rounds: bool = Field(default=False, description="멀티 라운드 허용")
    max_rounds: int = Field(default=1, ge=1, description="최대 라운드 수")
    rounds_aggregation: Optional[RoundsAggregation] = Field(None, description="라운드 집계 방식")
    scoring: Optional[ScoringConfig] = Field(None, description="채점 설정")

    @model_validator(mode="before")
    @classmethod
    def build_scoring_from_blobs(cls, data: Any) -> Any:
        """저장소의 rubricConfig / performanceConfig JSON을 채점 설정으로 변환"""
        if not isinstance(data, dict) or data.get("scoring") is not None:
            return data

        rubric = data.get("rubric_config") or data.get("rubricConfig")
        performance = data.get("performance_config") or data.get("performanceConfig")
        if rubric is None and performance is None:
            return data

        scoring_type = data.get("scoring_type") or data.get("scoringType") or "rubric"
        if isinstance(scoring_type, ScoringType):
            scoring_type = scoring_type.value

        # rubricConfig는 항목 리스트 또는 {"criteria": [...]} 형태 모두 존재
        criteria = rubric.get("criteria", []) if isinstance(rubric, dict) else (rubric or [])
        performance = performance or {}

        scoring: Dict[str, Any] = {"scoring_type": scoring_type}
        if scoring_type in ("rubric", "mixed"):
            scoring["criteria"] = criteria
        if scoring_type in ("performance", "mixed"):
            scoring["missions"] = performance.get("missions", [])
            scoring["penalties"] = performance.get("penalties", [])

        data = {k: v for k, v in data.items() if k not in ("rubric_config", "rubricConfig", "performance_config", "performanceConfig")}
        data["scoring"] = scoring
        return data

    @model_validator(mode="after")
    def validate_scoring_type(self) -> "TournamentArea":
        """영역 채점 방식과 채점 설정 태그 일치 검증"""
        if self.scoring is not None and self.scoring.scoring_type != self.scoring_type.value:
            raise ValueError(
                f"영역 {self.code}: scoringType={self.scoring_type.value} 이지만 "
                f"채점 설정은 {self.scoring.scoring_type} 입니다"
            )
        return self


class RubricScoreEntry(SchemaModel):
    """루브릭 항목 점수"""
    criterion_id: str = Field(..., min_length=1, description="항목 ID")
    score: float = Field(..., description="점수")


class PerformanceScoreEntry(SchemaModel):
    """미션 점수 (이미 포인트 환산된 값)"""
    mission_id: str = Field(..., min_length=1, description="미션 ID")
    score: float = Field(..., description="점수")


ScoreEntry = Union[RubricScoreEntry, PerformanceScoreEntry]


class Penalty(SchemaModel):
    """평가에 부여된 페널티"""
    type: str = Field(..., min_length=1, description="페널티 유형")
    points: float = Field(..., description="점수 변화량 (감점은 음수)")
    description: Optional[str] = Field(None, description="설명")


class Evaluation(SchemaModel):
    """심사위원 1명의 (토너먼트, 팀, 영역[, 라운드]) 평가"""
    id: str = Field(..., min_length=1, description="평가 ID")
    tournament_id: Optional[str] = Field(None, description="토너먼트 ID")
    team_id: str = Field(..., min_length=1, description="팀 ID")
    area_id: Optional[str] = Field(None, description="영역 ID")
    area_code: Optional[str] = Field(None, description="영역 코드 (레거시)")
    judge_id: str = Field(..., min_length=1, description="심사위원 ID")
    judge_name: Optional[str] = Field(None, description="심사위원 이름")
    round: Optional[int] = Field(None, ge=1, description="라운드 번호")
    scores: List[ScoreEntry] = Field(default_factory=list, description="항목/미션별 점수")
    penalties: List[Penalty] = Field(default_factory=list, description="페널티")
    comments: str = Field(default="", description="코멘트")
    evaluation_time: float = Field(default=0, description="평가 소요 시간 (초)")
    version: int = Field(default=1, ge=1, description="재제출 버전")
    is_active: bool = Field(default=True, description="랭킹 포함 여부")
    evaluated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc), description="평가 시각 (UTC)")

    @field_validator("evaluated_at")
    @classmethod
    def validate_evaluated_at(cls, v: datetime) -> datetime:
        """naive 시각은 UTC로 간주, 모든 시각을 UTC로 통일"""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v.astimezone(timezone.utc)

    @field_validator("comments", mode="before")
    @classmethod
    def validate_comments(cls, v: Any) -> Any:
        return v if v is not None else ""

    @model_validator(mode="after")
    def validate_area_reference(self) -> "Evaluation":
        """영역 ID 또는 영역 코드 중 하나는 필수"""
        if not self.area_id and not self.area_code:
            raise ValueError("평가에는 areaId 또는 areaCode가 필요합니다")
        return self

    @property
    def area_key(self) -> str:
        return self.area_id or self.area_code

    @property
    def upsert_key(self) -> tuple:
        """(토너먼트, 팀, 영역, 심사위원, 라운드) 복합 키"""
        return (self.tournament_id, self.team_id, self.area_key, self.judge_id, self.round)


class RankingConfig(SchemaModel):
    """토너먼트 랭킹 설정"""
    ranking_method: RankingMethod = Field(default=RankingMethod.PERCENTAGE, description="랭킹 방식")
    weights: Dict[str, float] = Field(default_factory=dict, description="영역 ID/코드별 가중치 override")
    tie_break: List[str] = Field(default_factory=list, description="동점 처리 영역 코드 순서")

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: Dict[str, float]) -> Dict[str, float]:
        for key, weight in v.items():
            if not key:
                raise ValueError("가중치 키는 비어 있을 수 없습니다")
            if weight <= 0:
                raise ValueError(f"가중치는 양수여야 합니다: {key}={weight}")
        return v

    @field_validator("tie_break", mode="before")
    @classmethod
    def validate_tie_break(cls, v: Any) -> Any:
        if v is None:
            return []
        for code in v:
            if not isinstance(code, str) or not code.strip():
                raise ValueError(f"동점 처리 영역 코드가 올바르지 않습니다: {code!r}")
        return v


class RankingFilters(SchemaModel):
    """랭킹 필터 (영문 시스템 형식 / 포르투갈어 모두 허용)"""
    shift: Optional[str] = Field(None, description="시간대 필터")
    grade: Optional[str] = Field(None, description="학년 필터")

    @property
    def is_empty(self) -> bool:
        return not self.shift and not self.grade
