"""
랭킹 전 팀 필터 (시간대 / 학년)

팀 속성 조회 우선순위 (모든 호출부 공통):
1. 전용 필드 (team.shift / team.grade)
2. metadata["shift"] / metadata["grade"]
3. metadata["originalShift"] / metadata["originalGrade"]
"""
from functools import partial
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from loguru import logger

from data_pipeline.normalizer import (
    SHIFT_SIMILARITY_THRESHOLD,
    normalize_grade,
    normalize_shift,
    normalize_text,
    shift_to_system_format,
)
from data_pipeline.schemas import RankingFilters, Team

TeamLike = Union[Team, Mapping[str, Any]]
FiltersLike = Union[RankingFilters, Mapping[str, Any], None]


def coerce_team(team: TeamLike) -> Team:
    return team if isinstance(team, Team) else Team.model_validate(team)


def coerce_filters(filters: FiltersLike) -> RankingFilters:
    if filters is None:
        return RankingFilters()
    return filters if isinstance(filters, RankingFilters) else RankingFilters.model_validate(filters)


def resolve_team_attribute(team: Team, field: str) -> Optional[str]:
    """전용 필드 → metadata[field] → metadata['original' + Field] 순으로 첫 값"""
    metadata = team.metadata or {}
    original_key = "original" + field[:1].upper() + field[1:]

    for value in (getattr(team, field, None), metadata.get(field), metadata.get(original_key)):
        if value is not None and str(value).strip():
            return str(value)

    return None


def _matches(requested: str, actual: Optional[str], normalize) -> bool:
    """요청값과 팀 값을 각각 정규화 후 비교. 요청값이 인식 불가면 정규화 텍스트 비교"""
    expected = normalize(requested)
    if expected is None:
        return actual is not None and normalize_text(actual) == normalize_text(requested)
    return normalize(actual) == expected


def team_matches_filters(
    team: Team,
    filters: RankingFilters,
    threshold: float = SHIFT_SIMILARITY_THRESHOLD
) -> bool:
    """요청된 필터를 모두 통과하는지"""
    if filters.shift:
        if not _matches(filters.shift, resolve_team_attribute(team, "shift"), partial(normalize_shift, threshold=threshold)):
            return False

    if filters.grade:
        if not _matches(filters.grade, resolve_team_attribute(team, "grade"), normalize_grade):
            return False

    return True


def filter_teams(
    teams: Iterable[TeamLike],
    filters: FiltersLike = None,
    threshold: float = SHIFT_SIMILARITY_THRESHOLD
) -> List[Team]:
    """필터 미지정 시 전체 반환"""
    resolved = [coerce_team(t) for t in teams]
    requested = coerce_filters(filters)

    if requested.is_empty:
        return resolved

    filtered = [t for t in resolved if team_matches_filters(t, requested, threshold)]
    logger.debug(f"팀 필터 shift={requested.shift} grade={requested.grade}: {len(resolved)} → {len(filtered)}")
    return filtered


def get_available_filters(teams: Iterable[TeamLike]) -> Dict[str, List[str]]:
    """로스터에 존재하는 시간대(시스템 형식)와 학년 목록"""
    shifts = set()
    grades = set()

    for team in teams:
        team = coerce_team(team)
        shift = shift_to_system_format(normalize_shift(resolve_team_attribute(team, "shift")))
        grade = normalize_grade(resolve_team_attribute(team, "grade"))
        if shift:
            shifts.add(shift)
        if grade:
            grades.add(grade)

    return {"shifts": sorted(shifts), "grades": sorted(grades)}
