"""
입력 데이터 검증

- EvaluationValidator: 저장소에서 읽은 평가 레코드 기술적 검증
- AreaConfigValidator: 영역 채점 설정 / 토너먼트 랭킹 설정 검증

검증 결과는 ValidationResult로 반환하며 예외를 던지지 않음
"""

from typing import List, Dict, Any, Optional, Iterable, Tuple, Union
from pydantic import ValidationError as PydanticValidationError
from datetime import datetime
from loguru import logger

from .schemas import (
    Evaluation,
    RankingConfig,
    RubricScoreEntry,
    PerformanceScoreEntry,
    TournamentArea,
    ValidationResult,
    ValidationError,
    ValidationSeverity,
)


def _schema_errors(e: PydanticValidationError) -> List[ValidationError]:
    return [
        ValidationError(
            error_type="SCHEMA_VALIDATION_FAILED",
            severity=ValidationSeverity.CRITICAL,
            message=error["msg"],
            field=".".join(str(loc) for loc in error["loc"]),
            value=error.get("input") if not isinstance(error.get("input"), dict) else None,
            suggestion="데이터 형식을 확인하세요"
        )
        for error in e.errors()
    ]


class EvaluationValidator:
    """
    평가 레코드 기술적 검증

    - 스키마 (필수 필드, 타입, scores 배열)
    - 선택지에 없는 점수, 만점 초과, 알 수 없는 항목/미션 ID → 경고
    - 양수 페널티 → 경고 (부호 변환은 하지 않음)
    """

    def __init__(self, areas: Optional[Iterable[TournamentArea]] = None):
        self.areas: Dict[str, TournamentArea] = {}
        for area in areas or []:
            self.areas[area.id] = area
            self.areas.setdefault(area.code, area)

    def parse_evaluation(self, data: Union[Evaluation, Dict[str, Any]]) -> Tuple[Optional[Evaluation], ValidationResult]:
        """검증 + 파싱. 실패 시 (None, 결과)"""
        errors = []
        warnings = []
        evaluation = None

        if isinstance(data, Evaluation):
            evaluation = data
        elif not isinstance(data, dict):
            errors.append(ValidationError(
                error_type="INVALID_RECORD",
                severity=ValidationSeverity.CRITICAL,
                message=f"평가 레코드는 객체여야 합니다: {type(data).__name__}",
            ))
        else:
            try:
                evaluation = Evaluation.model_validate(data)
            except PydanticValidationError as e:
                errors.extend(_schema_errors(e))

        if evaluation is not None:
            warnings.extend(self._check_scores(evaluation))
            warnings.extend(self._check_penalties(evaluation))
            warnings.extend(self._check_evaluation_time(evaluation))

        result = ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            validated_at=datetime.now()
        )
        return (evaluation if result.can_rank else None), result

    def validate_evaluation(self, data: Union[Evaluation, Dict[str, Any]]) -> ValidationResult:
        """평가 레코드 검증"""
        _, result = self.parse_evaluation(data)
        return result

    def _check_scores(self, evaluation: Evaluation) -> List[ValidationError]:
        warnings = []

        if not evaluation.scores:
            warnings.append(ValidationError(
                error_type="EMPTY_SCORES",
                severity=ValidationSeverity.MEDIUM,
                message=f"평가 {evaluation.id}에 점수가 없습니다",
                field="scores",
            ))

        area = self.areas.get(evaluation.area_id) or self.areas.get(evaluation.area_code)
        if area is None or area.scoring is None:
            return warnings

        criteria = {c.id: c for c in getattr(area.scoring, "criteria", [])}
        missions = {m.id: m for m in getattr(area.scoring, "missions", [])}

        for entry in evaluation.scores:
            if isinstance(entry, RubricScoreEntry):
                criterion = criteria.get(entry.criterion_id)
                if criterion is None:
                    warnings.append(ValidationError(
                        error_type="UNKNOWN_CRITERION",
                        severity=ValidationSeverity.LOW,
                        message=f"영역 {area.code}에 없는 항목: {entry.criterion_id}",
                        field="scores",
                        value=entry.criterion_id,
                    ))
                    continue
                if entry.score > criterion.max_score:
                    warnings.append(ValidationError(
                        error_type="SCORE_ABOVE_MAX",
                        severity=ValidationSeverity.MEDIUM,
                        message=f"항목 {criterion.id} 점수 {entry.score}가 최대 {criterion.max_score}를 초과합니다",
                        field="scores",
                        value=entry.score,
                    ))
                elif criterion.options and entry.score not in criterion.options:
                    warnings.append(ValidationError(
                        error_type="SCORE_NOT_IN_OPTIONS",
                        severity=ValidationSeverity.LOW,
                        message=f"항목 {criterion.id} 점수 {entry.score}가 선택지 {criterion.options}에 없습니다",
                        field="scores",
                        value=entry.score,
                        suggestion="선택지 검증은 입력 화면에서 수행됩니다"
                    ))
            elif isinstance(entry, PerformanceScoreEntry):
                mission = missions.get(entry.mission_id)
                if mission is None:
                    warnings.append(ValidationError(
                        error_type="UNKNOWN_MISSION",
                        severity=ValidationSeverity.LOW,
                        message=f"영역 {area.code}에 없는 미션: {entry.mission_id}",
                        field="scores",
                        value=entry.mission_id,
                    ))
                elif entry.score > mission.max_points:
                    warnings.append(ValidationError(
                        error_type="SCORE_ABOVE_MAX",
                        severity=ValidationSeverity.MEDIUM,
                        message=f"미션 {mission.id} 점수 {entry.score}가 최대 {mission.max_points}를 초과합니다",
                        field="scores",
                        value=entry.score,
                    ))

        return warnings

    def _check_evaluation_time(self, evaluation: Evaluation) -> List[ValidationError]:
        if evaluation.evaluation_time >= 0:
            return []
        return [ValidationError(
            error_type="NEGATIVE_EVALUATION_TIME",
            severity=ValidationSeverity.LOW,
            message=f"평가 {evaluation.id}의 소요 시간이 음수입니다: {evaluation.evaluation_time}",
            field="evaluationTime",
            value=evaluation.evaluation_time,
        )]

    def _check_penalties(self, evaluation: Evaluation) -> List[ValidationError]:
        return [
            ValidationError(
                error_type="POSITIVE_PENALTY",
                severity=ValidationSeverity.LOW,
                message=f"페널티 {penalty.type}의 점수가 양수입니다: {penalty.points}",
                field="penalties",
                value=penalty.points,
                suggestion="감점은 음수로 저장하세요"
            )
            for penalty in evaluation.penalties
            if penalty.points > 0
        ]


class AreaConfigValidator:
    """
    영역 / 토너먼트 설정 검증

    잘못된 가중치, 알 수 없는 집계 방식은 스키마 단계에서 CRITICAL
    """

    def validate_area(self, data: Union[TournamentArea, Dict[str, Any]]) -> ValidationResult:
        """영역 설정 검증"""
        errors = []
        warnings = []
        area = None

        if isinstance(data, TournamentArea):
            area = data
        else:
            try:
                area = TournamentArea.model_validate(data)
            except PydanticValidationError as e:
                errors.extend(_schema_errors(e))

        if area is not None:
            scoring_type = area.scoring_type.value

            if area.scoring is None:
                warnings.append(ValidationError(
                    error_type="MISSING_SCORING_CONFIG",
                    severity=ValidationSeverity.MEDIUM,
                    message=f"영역 {area.code}에 채점 설정이 없습니다 (레거시 루브릭 또는 만점 0)",
                    field="scoring",
                ))
            else:
                if scoring_type in ("rubric", "mixed") and not area.scoring.criteria:
                    errors.append(ValidationError(
                        error_type="EMPTY_RUBRIC",
                        severity=ValidationSeverity.HIGH,
                        message=f"영역 {area.code}: {scoring_type} 방식에는 루브릭 항목이 필요합니다",
                        field="scoring.criteria",
                    ))
                if scoring_type in ("performance", "mixed") and not area.scoring.missions:
                    errors.append(ValidationError(
                        error_type="EMPTY_MISSIONS",
                        severity=ValidationSeverity.HIGH,
                        message=f"영역 {area.code}: {scoring_type} 방식에는 미션이 필요합니다",
                        field="scoring.missions",
                    ))

            if area.allow_rounds and area.rounds_aggregation is None:
                warnings.append(ValidationError(
                    error_type="MISSING_ROUNDS_AGGREGATION",
                    severity=ValidationSeverity.LOW,
                    message=f"영역 {area.code}: 라운드 집계 방식이 없어 기본값을 사용합니다",
                    field="roundsAggregation",
                ))
            if not area.allow_rounds and area.max_rounds > 1:
                warnings.append(ValidationError(
                    error_type="ROUNDS_DISABLED",
                    severity=ValidationSeverity.LOW,
                    message=f"영역 {area.code}: allowRounds=false 이지만 maxRounds={area.max_rounds}",
                    field="maxRounds",
                    value=area.max_rounds,
                ))

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            validated_at=datetime.now()
        )

    def validate_tournament(
        self,
        areas: Iterable[TournamentArea],
        config: RankingConfig
    ) -> ValidationResult:
        """랭킹 설정이 실제 영역을 참조하는지 검증"""
        errors = []
        warnings = []
        areas = list(areas)

        codes = {a.code for a in areas}
        keys = codes | {a.id for a in areas}

        duplicated = sorted({a.code for a in areas if sum(1 for b in areas if b.code == a.code) > 1})
        for code in duplicated:
            errors.append(ValidationError(
                error_type="DUPLICATE_AREA_CODE",
                severity=ValidationSeverity.HIGH,
                message=f"영역 코드가 중복됩니다: {code}",
                field="code",
                value=code,
            ))

        for code in config.tie_break:
            if code not in codes:
                warnings.append(ValidationError(
                    error_type="UNKNOWN_TIE_BREAK_AREA",
                    severity=ValidationSeverity.MEDIUM,
                    message=f"동점 처리 영역 코드가 토너먼트에 없습니다: {code}",
                    field="tieBreak",
                    value=code,
                    suggestion="해당 기준은 모든 팀에서 0으로 비교됩니다"
                ))

        for key in config.weights:
            if key not in keys:
                warnings.append(ValidationError(
                    error_type="UNKNOWN_WEIGHT_AREA",
                    severity=ValidationSeverity.LOW,
                    message=f"가중치 override 대상 영역이 없습니다: {key}",
                    field="weights",
                    value=key,
                ))

        for area in areas:
            area_result = self.validate_area(area)
            errors.extend(area_result.errors)
            warnings.extend(area_result.warnings)

        if errors:
            logger.warning(f"토너먼트 설정 검증 실패: {len(errors)}개 오류")

        return ValidationResult(
            is_valid=len(errors) == 0,
            errors=errors,
            warnings=warnings,
            validated_at=datetime.now()
        )
