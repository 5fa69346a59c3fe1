"""
토너먼트 랭킹 계산 모듈

팀 × 영역 평가 결과를 가중 합산하여 순위 산출
- 영역별 복수 평가 집계 (심사위원 / 재평가 / 라운드)
- 영역 가중치 (토너먼트 override → 영역 기본값)
- 퍼센트 가중 평균(percentage) 또는 가중 총점 비율(raw) 랭킹
- 퍼센트 → 총점 → 동점 처리 영역 순 정렬, 1부터 연속 순위
"""
import json
import sys
from collections import defaultdict
from dataclasses import dataclass, field, asdict
from datetime import datetime
from typing import List, Dict, Any, Optional, Tuple, Mapping, Sequence, Union

from loguru import logger

from data_pipeline.normalizer import normalize_grade, normalize_shift
from data_pipeline.schemas import (
    AggregationMethod,
    Evaluation,
    RankingConfig,
    RankingMethod,
    Team,
    TournamentArea,
)
from data_pipeline.validators import AreaConfigValidator, EvaluationValidator

from .aggregation import AggregateResult, ScoredEntry, aggregate_evaluations, aggregate_rounds, group_by_round
from .filters import FiltersLike, filter_teams, resolve_team_attribute
from .scoring import get_max_possible_score, resolve_scoring_config, round_half_up, score_evaluation
from .settings import EngineSettings, get_engine_settings


# =====================================================
# 데이터 클래스
# =====================================================

@dataclass
class AreaScore:
    """팀의 영역별 상세 (점수는 집계값, 표시 메타데이터는 최신 평가)"""
    score: float
    percentage: float
    max_score: float
    weight: float
    weighted_score: float
    evaluation_count: int
    aggregation_method: str
    rounds_aggregation: Optional[str] = None
    evaluated_by: Optional[str] = None
    evaluation_time: Optional[float] = None
    round: Optional[int] = None
    detailed_scores: List[Dict[str, Any]] = field(default_factory=list)
    penalties: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class TeamSummary:
    """랭킹 표시용 팀 정보 (학년/시간대는 표준 표기)"""
    id: str
    name: str
    code: Optional[str] = None
    grade: Optional[str] = None
    shift: Optional[str] = None
    school_id: Optional[str] = None
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TeamRanking:
    """팀 랭킹 행"""
    team: TeamSummary
    total_score: float
    max_possible_score: float
    percentage: int
    area_scores: Dict[str, AreaScore] = field(default_factory=dict)
    tie_break_values: Dict[str, float] = field(default_factory=dict)
    position: int = 0

    def area_percentage(self, code: str) -> float:
        area = self.area_scores.get(code)
        return area.percentage if area else 0

    def to_dict(self) -> Dict:
        return asdict(self)


EvaluationsInput = Union[Mapping[Tuple[str, str], Sequence[Any]], Sequence[Any], None]


# =====================================================
# 랭킹 계산기 클래스
# =====================================================

class RankingCalculator:
    """토너먼트 랭킹 계산기

    입력 스냅샷으로부터 매 호출마다 전체 재계산 (캐시 없음, 입력 불변)
    """

    def __init__(self, data_file: str = None, settings: Optional[EngineSettings] = None):
        self.settings = settings or get_engine_settings()
        self.teams: List[Any] = []
        self.areas: List[Any] = []
        self.evaluations: List[Any] = []
        self.config = RankingConfig(ranking_method=self.settings.default_ranking_method)
        self.warnings: List[str] = []

        if data_file:
            self.load_data(data_file)

    def load_data(self, data_file: str):
        """JSON 스냅샷 로드"""
        with open(data_file, "r", encoding="utf-8") as f:
            data = json.load(f)

        self.load_from_data(data)

    def load_from_data(self, data: dict):
        """메모리 스냅샷 로드

        Args:
            data: {"teams": [...], "areas": [...], "evaluations": [...], "config": {...}}
        """
        self.teams = list(data.get("teams", []))
        self.areas = [TournamentArea.model_validate(a) for a in data.get("areas", [])]
        self.evaluations = list(data.get("evaluations", []))
        self.config = self._coerce_config(data.get("config"))
        logger.info(
            f"데이터 로드 완료: 팀 {len(self.teams)}개, 영역 {len(self.areas)}개, 평가 {len(self.evaluations)}개"
        )

    def calculate_rankings(self, shift: str = None, grade: str = None) -> List[TeamRanking]:
        """로드된 스냅샷으로 랭킹 계산"""
        return self.compute(
            self.teams,
            self.areas,
            self.evaluations,
            self.config,
            filters={"shift": shift, "grade": grade},
        )

    def compute(
        self,
        teams: Sequence[Any],
        areas: Sequence[Any],
        evaluations: EvaluationsInput,
        config: Union[RankingConfig, Dict[str, Any], None] = None,
        filters: FiltersLike = None,
    ) -> List[TeamRanking]:
        """
        랭킹 계산

        Args:
            teams: 팀 목록 (Team 또는 dict)
            areas: 토너먼트 영역 (TournamentArea 또는 dict)
            evaluations: {(team_id, 영역 ID/코드): [평가...]} 또는 평가 리스트
            config: 랭킹 설정 (없으면 엔진 기본값)
            filters: 시간대/학년 필터

        Returns:
            position 순으로 정렬된 랭킹 리스트
        """
        self.warnings = []

        config = self._coerce_config(config)
        tournament_areas = sorted(
            (a if isinstance(a, TournamentArea) else TournamentArea.model_validate(a) for a in areas),
            key=lambda a: a.order,
        )

        config_result = AreaConfigValidator().validate_tournament(tournament_areas, config)
        for issue in config_result.errors + config_result.warnings:
            self._warn(issue.message)

        grouped = self._group_evaluations(evaluations, tournament_areas)
        selected = filter_teams(teams, filters, self.settings.shift_similarity_threshold)

        rankings = [
            self._build_team_ranking(team, tournament_areas, grouped, config)
            for team in selected
        ]
        self.sort_rankings(rankings, config.tie_break)

        logger.info(
            f"랭킹 계산 완료: {len(rankings)}팀 / {len(tournament_areas)}영역 "
            f"(method={config.ranking_method.value}, 경고 {len(self.warnings)}건)"
        )
        return rankings

    # ==================== 입력 정리 ====================

    def _coerce_config(self, config: Union[RankingConfig, Dict[str, Any], None]) -> RankingConfig:
        if config is None:
            return RankingConfig(ranking_method=self.settings.default_ranking_method)
        if isinstance(config, RankingConfig):
            return config
        return RankingConfig.model_validate(config)

    def _warn(self, message: str):
        if message not in self.warnings:
            self.warnings.append(message)
            logger.warning(message)

    def _group_evaluations(
        self,
        evaluations: EvaluationsInput,
        areas: List[TournamentArea]
    ) -> Dict[Tuple[str, str], List[Evaluation]]:
        """평가 검증 후 (team_id, 영역 키)별 그룹화. 비활성/무효 평가 제외"""
        validator = EvaluationValidator(areas)
        grouped: Dict[Tuple[str, str], List[Evaluation]] = defaultdict(list)

        if isinstance(evaluations, Mapping):
            records = [
                (tuple(key), record)
                for key, items in evaluations.items()
                for record in (items or [])
            ]
        else:
            records = [(None, record) for record in (evaluations or [])]

        for key, record in records:
            evaluation, result = validator.parse_evaluation(record)

            for issue in result.warnings:
                logger.debug(f"평가 경고 [{issue.error_type}]: {issue.message}")

            if evaluation is None:
                record_id = record.get("id") if isinstance(record, dict) else None
                reasons = "; ".join(f"{e.field}: {e.message}" for e in result.errors)
                self._warn(f"유효하지 않은 평가 제외 (id={record_id}): {reasons}")
                continue

            if not evaluation.is_active:
                continue

            grouped[key or (evaluation.team_id, evaluation.area_key)].append(evaluation)

        return grouped

    @staticmethod
    def _evaluations_for(
        grouped: Dict[Tuple[str, str], List[Evaluation]],
        team: Team,
        area: TournamentArea
    ) -> List[Evaluation]:
        found = list(grouped.get((team.id, area.id), []))
        if area.code != area.id:
            found.extend(grouped.get((team.id, area.code), []))
        return found

    @staticmethod
    def area_weight(area: TournamentArea, config: RankingConfig) -> float:
        """가중치 우선순위: weights[영역 ID] → weights[영역 코드] → 영역 기본값"""
        if area.id in config.weights:
            return config.weights[area.id]
        if area.code in config.weights:
            return config.weights[area.code]
        return area.weight

    # ==================== 팀 랭킹 행 ====================

    def _build_team_ranking(
        self,
        team: Team,
        areas: List[TournamentArea],
        grouped: Dict[Tuple[str, str], List[Evaluation]],
        config: RankingConfig
    ) -> TeamRanking:
        total_score = 0.0
        max_possible_score = 0.0
        area_scores: Dict[str, AreaScore] = {}
        evaluated: List[Tuple[float, float]] = []   # (가중치, 퍼센트)

        grade = resolve_team_attribute(team, "grade")

        for area in areas:
            weight = self.area_weight(area, config)
            scoring = resolve_scoring_config(area, grade, self.settings.use_legacy_rubrics)
            if scoring is None:
                self._warn(f"영역 {area.code}의 채점 설정이 없습니다: 만점 0으로 처리")

            max_area_score = get_max_possible_score(scoring)
            max_possible_score += max_area_score * weight

            evaluations = self._evaluations_for(grouped, team, area)
            if area.allow_rounds:
                evaluations = self._within_max_rounds(evaluations, area)
            if not evaluations:
                continue

            entries = []
            for evaluation in evaluations:
                result = score_evaluation(evaluation, scoring)
                entries.append(ScoredEntry(
                    score=result.final_score,
                    percentage=result.percentage,
                    evaluated_by=evaluation.judge_name or evaluation.judge_id,
                    timestamp=evaluation.evaluated_at.timestamp(),
                    round=evaluation.round,
                ))

            method = area.aggregation_method or self.settings.default_aggregation_method
            aggregated, rounds_method = self._aggregate_area(area, entries, method)
            weighted_score = aggregated.score * weight
            total_score += weighted_score

            # 만점 0 영역은 퍼센트 평균에서 제외 (총점에는 포함)
            if max_area_score > 0:
                evaluated.append((weight, aggregated.percentage))

            latest = max(evaluations, key=lambda e: e.evaluated_at)
            area_scores[area.code] = AreaScore(
                score=aggregated.score,
                percentage=aggregated.percentage,
                max_score=max_area_score,
                weight=weight,
                weighted_score=weighted_score,
                evaluation_count=len(evaluations),
                aggregation_method=method.value,
                rounds_aggregation=rounds_method,
                evaluated_by=latest.judge_name or latest.judge_id,
                evaluation_time=latest.evaluation_time,
                round=latest.round,
                detailed_scores=[s.model_dump() for s in latest.scores],
                penalties=[p.model_dump() for p in latest.penalties],
            )
            logger.debug(
                f"{team.name} / {area.code}: {len(evaluations)}건 → "
                f"{aggregated.score}점 {aggregated.percentage}% (x{weight})"
            )

        percentage = self._final_percentage(config.ranking_method, evaluated, total_score, max_possible_score)

        return TeamRanking(
            team=self._team_summary(team),
            total_score=round(total_score, 2),
            max_possible_score=round(max_possible_score, 2),
            percentage=percentage,
            area_scores=area_scores,
            tie_break_values={code: self._area_percentage(area_scores, code) for code in config.tie_break},
        )

    def _within_max_rounds(self, evaluations: List[Evaluation], area: TournamentArea) -> List[Evaluation]:
        kept = []
        for evaluation in evaluations:
            if evaluation.round and evaluation.round > area.max_rounds:
                self._warn(
                    f"영역 {area.code}: 라운드 {evaluation.round}는 최대 {area.max_rounds}를 초과하여 제외 "
                    f"(평가 {evaluation.id})"
                )
                continue
            kept.append(evaluation)
        return kept

    def _aggregate_area(
        self,
        area: TournamentArea,
        entries: List[ScoredEntry],
        method: AggregationMethod
    ) -> Tuple[AggregateResult, Optional[str]]:
        """라운드 영역은 라운드별 심사위원 집계 후 라운드 집계"""
        if not (area.allow_rounds and any(e.round for e in entries)):
            return aggregate_evaluations(entries, method), None

        rounds_method = area.rounds_aggregation or self.settings.default_rounds_aggregation
        per_round = []
        for round_number, round_entries in group_by_round(entries).items():
            result = aggregate_evaluations(round_entries, method)
            per_round.append(ScoredEntry(score=result.score, percentage=result.percentage, round=round_number))

        return aggregate_rounds(per_round, rounds_method), rounds_method.value

    def _final_percentage(
        self,
        method: RankingMethod,
        evaluated: List[Tuple[float, float]],
        total_score: float,
        max_possible_score: float
    ) -> int:
        """
        최종 퍼센트

        - percentage: 평가된 영역 퍼센트의 가중 평균 (가중치 합 0이면 단순 평균)
        - raw: 가중 총점 / 가중 만점
        """
        if method == RankingMethod.RAW:
            percentage = round_half_up(total_score / max_possible_score * 100) if max_possible_score > 0 else 0
        elif not evaluated:
            percentage = 0
        else:
            total_weight = sum(w for w, _ in evaluated)
            if total_weight > 0:
                percentage = round_half_up(sum(w * p for w, p in evaluated) / total_weight)
            else:
                percentage = round_half_up(sum(p for _, p in evaluated) / len(evaluated))

        clamped = min(max(percentage, self.settings.percentage_min), self.settings.percentage_max)
        return int(clamped)

    @staticmethod
    def _area_percentage(area_scores: Dict[str, AreaScore], code: str) -> float:
        area = area_scores.get(code)
        return area.percentage if area else 0

    @staticmethod
    def _team_summary(team: Team) -> TeamSummary:
        grade = resolve_team_attribute(team, "grade")
        shift = resolve_team_attribute(team, "shift")
        return TeamSummary(
            id=team.id,
            name=team.name,
            code=team.code,
            grade=normalize_grade(grade) or grade,
            shift=normalize_shift(shift) or shift,
            school_id=team.school_id,
            metadata=dict(team.metadata),
        )

    # ==================== 정렬 ====================

    @staticmethod
    def sort_rankings(rankings: List[TeamRanking], tie_break: Sequence[str] = ()) -> List[TeamRanking]:
        """
        퍼센트 → 총점 → 동점 처리 영역 퍼센트 순 내림차순 (안정 정렬)

        모든 기준이 같으면 입력 순서 유지, 순위는 공동 순위 없이 index + 1
        """
        rankings.sort(key=lambda r: (
            -r.percentage,
            -r.total_score,
            *(-r.area_percentage(code) for code in tie_break),
        ))

        for i, r in enumerate(rankings, 1):
            r.position = i

        return rankings

    # ==================== 내보내기 ====================

    def export_rankings(self, output_file: str, rankings: List[TeamRanking] = None):
        """랭킹 결과를 JSON으로 내보내기"""
        if rankings is None:
            rankings = self.calculate_rankings()

        export_data = {
            "meta": {
                "generated_at": datetime.now().isoformat(),
                "ranking_method": self.config.ranking_method.value,
                "tie_break": list(self.config.tie_break),
                "total_teams": len(rankings),
                "warnings": list(self.warnings),
            },
            "stats": calculate_ranking_stats(rankings),
            "rankings": [r.to_dict() for r in rankings],
        }

        with open(output_file, "w", encoding="utf-8") as f:
            json.dump(export_data, f, ensure_ascii=False, indent=2)

        logger.info(f"랭킹 내보내기 완료: {output_file}")

    def print_ranking_summary(self, rankings: List[TeamRanking], title: str = "", top_n: int = 20):
        """랭킹 요약 출력"""
        area_codes = [a.code for a in sorted(self.areas, key=lambda a: a.order)]

        print(f"\n{'='*60}")
        print(f" {title}")
        print(f"{'='*60}")
        header = f"{'Pos':>4} {'Equipe':<20} {'Total':>8} {'%':>5}"
        for code in area_codes:
            header += f" {code[:10]:>10}"
        print(header)
        print(f"{'-'*60}")

        for r in rankings[:top_n]:
            name = r.team.name
            if len(name) > 18:
                name = name[:18] + ".."
            line = f"{r.position:>4} {name:<20} {r.total_score:>8.1f} {r.percentage:>5}"
            for code in area_codes:
                area = r.area_scores.get(code)
                line += f" {(str(area.percentage) + '%') if area else '-':>10}"
            print(line)


def compute_ranking(
    teams: Sequence[Any],
    areas: Sequence[Any],
    evaluations_by_team_area: EvaluationsInput,
    ranking_config: Union[RankingConfig, Dict[str, Any], None] = None,
    filters: FiltersLike = None,
    settings: Optional[EngineSettings] = None,
) -> List[TeamRanking]:
    """랭킹 계산 (함수형 진입점)"""
    return RankingCalculator(settings=settings).compute(
        teams, areas, evaluations_by_team_area, ranking_config, filters
    )


def calculate_ranking_stats(rankings: List[TeamRanking]) -> Dict[str, Any]:
    """랭킹 통계: 평가된 팀(퍼센트 > 0) 기준 평균과 구간 분포"""
    evaluated = [r for r in rankings if r.percentage > 0]
    average = round_half_up(sum(r.percentage for r in evaluated) / len(evaluated)) if evaluated else 0

    distribution = {"90-100": 0, "80-89": 0, "70-79": 0, "60-69": 0, "0-59": 0}
    for r in evaluated:
        if r.percentage >= 90:
            distribution["90-100"] += 1
        elif r.percentage >= 80:
            distribution["80-89"] += 1
        elif r.percentage >= 70:
            distribution["70-79"] += 1
        elif r.percentage >= 60:
            distribution["60-69"] += 1
        else:
            distribution["0-59"] += 1

    return {
        "total_teams": len(rankings),
        "evaluated_teams": len(evaluated),
        "average_percentage": int(average),
        "top_team": rankings[0].team.name if rankings else "",
        "distribution": distribution,
    }


# =====================================================
# CLI
# =====================================================

def main():
    import argparse

    parser = argparse.ArgumentParser(description="토너먼트 랭킹 계산기")
    parser.add_argument("--data", type=str, default="data/tournament.json", help="스냅샷 파일")
    parser.add_argument("--output", type=str, help="JSON 출력 파일")
    parser.add_argument("--shift", type=str, help="시간대 (manha/tarde/morning/afternoon)")
    parser.add_argument("--grade", type=str, help="학년 (예: '2º ano')")
    parser.add_argument("--top", type=int, default=20, help="출력할 상위 N팀")

    args = parser.parse_args()

    settings = get_engine_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
        level=settings.log_level,
    )

    calculator = RankingCalculator(args.data, settings=settings)
    rankings = calculator.calculate_rankings(shift=args.shift, grade=args.grade)

    if args.output:
        calculator.export_rankings(args.output, rankings)

    title_parts = ["Ranking"]
    if args.grade:
        title_parts.append(normalize_grade(args.grade) or args.grade)
    if args.shift:
        title_parts.append(normalize_shift(args.shift) or args.shift)

    calculator.print_ranking_summary(rankings, title=" ".join(title_parts), top_n=args.top)


if __name__ == "__main__":
    main()
