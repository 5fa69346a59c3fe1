"""
복수 평가 집계 모듈

같은 (팀, 영역)에 대한 여러 심사위원/재평가 결과를 대표 점수 하나로 축약
- 평가 집계: last / average / median / best / worst
- 라운드 집계: best / average / sum
"""
from dataclasses import dataclass, asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from data_pipeline.schemas import AggregationMethod, RoundsAggregation
from .scoring import round_half_up


@dataclass
class ScoredEntry:
    """평가 1건의 (점수, 퍼센트) 및 메타데이터"""
    score: float
    percentage: float
    evaluated_by: Optional[str] = None
    timestamp: float = 0.0
    round: Optional[int] = None


@dataclass
class AggregateResult:
    """집계 결과"""
    score: float
    percentage: float

    def to_dict(self) -> Dict:
        return asdict(self)


EntryLike = Union[ScoredEntry, Mapping[str, Any]]


def _to_timestamp(value: Any) -> float:
    if isinstance(value, datetime):
        # naive 시각은 UTC
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.timestamp()
    return float(value or 0)


def _coerce_entry(item: EntryLike) -> ScoredEntry:
    if isinstance(item, ScoredEntry):
        return item

    return ScoredEntry(
        score=float(item.get("score") or 0),
        percentage=float(item.get("percentage") or 0),
        evaluated_by=item.get("evaluated_by") or item.get("evaluatedBy"),
        timestamp=_to_timestamp(item.get("timestamp")),
        round=item.get("round"),
    )


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values)


def aggregate_evaluations(entries: Sequence[EntryLike], method: Union[AggregationMethod, str]) -> AggregateResult:
    """
    복수 평가 집계

    - last: 가장 최근 timestamp (동일 timestamp는 먼저 들어온 항목)
    - average: 점수 평균(소수 1자리)과 퍼센트 평균(정수)을 각각 독립 계산
    - median: 퍼센트 기준 중앙값 항목의 (점수, 퍼센트). 짝수 개면 가운데 두 항목 평균
    - best / worst: 퍼센트 최대/최소 항목 (동률은 먼저 들어온 항목)

    빈 입력은 (0, 0)
    """
    method = AggregationMethod(method)
    items = [_coerce_entry(e) for e in entries]

    if not items:
        return AggregateResult(score=0, percentage=0)

    if method == AggregationMethod.LAST:
        latest = sorted(items, key=lambda e: e.timestamp, reverse=True)[0]
        return AggregateResult(score=latest.score, percentage=latest.percentage)

    if method == AggregationMethod.AVERAGE:
        return AggregateResult(
            score=round_half_up(_mean([e.score for e in items]), 1),
            percentage=round_half_up(_mean([e.percentage for e in items])),
        )

    if method == AggregationMethod.MEDIAN:
        ordered = sorted(items, key=lambda e: e.percentage)
        mid = len(ordered) // 2
        if len(ordered) % 2 == 1:
            middle = ordered[mid]
            return AggregateResult(score=middle.score, percentage=middle.percentage)

        lower, upper = ordered[mid - 1], ordered[mid]
        return AggregateResult(
            score=round_half_up((lower.score + upper.score) / 2, 1),
            percentage=round_half_up((lower.percentage + upper.percentage) / 2),
        )

    if method == AggregationMethod.BEST:
        best = max(items, key=lambda e: e.percentage)
        return AggregateResult(score=best.score, percentage=best.percentage)

    worst = min(items, key=lambda e: e.percentage)
    return AggregateResult(score=worst.score, percentage=worst.percentage)


def aggregate_rounds(entries: Sequence[EntryLike], method: Union[RoundsAggregation, str]) -> AggregateResult:
    """
    라운드 집계

    - best: 퍼센트 최대 라운드
    - average: 점수/퍼센트 평균
    - sum: 점수/퍼센트 합 (퍼센트는 100을 넘을 수 있음, 클램프는 랭킹 단계)
    """
    method = RoundsAggregation(method)
    items = [_coerce_entry(e) for e in entries]

    if not items:
        return AggregateResult(score=0, percentage=0)

    if method == RoundsAggregation.BEST:
        best = max(items, key=lambda e: e.percentage)
        return AggregateResult(score=best.score, percentage=best.percentage)

    if method == RoundsAggregation.AVERAGE:
        return AggregateResult(
            score=round_half_up(_mean([e.score for e in items]), 1),
            percentage=round_half_up(_mean([e.percentage for e in items])),
        )

    return AggregateResult(
        score=sum(e.score for e in items),
        percentage=round_half_up(sum(e.percentage for e in items)),
    )


def group_by_round(entries: List[ScoredEntry], default_round: int = 1) -> Dict[int, List[ScoredEntry]]:
    """라운드 번호별 그룹화 (라운드 없는 평가는 default_round)"""
    grouped: Dict[int, List[ScoredEntry]] = {}
    for entry in entries:
        grouped.setdefault(entry.round or default_round, []).append(entry)
    return dict(sorted(grouped.items()))
