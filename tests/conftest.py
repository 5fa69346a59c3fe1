"""
Pytest configuration and fixtures for tournament ranking tests
"""

import pytest
import sys
from datetime import datetime, timedelta
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from data_pipeline.schemas import TournamentArea
from ranking.settings import EngineSettings


BASE_TIME = datetime(2025, 5, 10, 9, 0, 0)


def at(minutes: int) -> str:
    """기준 시각 + N분 (ISO 문자열)"""
    return (BASE_TIME + timedelta(minutes=minutes)).isoformat()


def rubric_evaluation(eval_id, team_id, area_id, judge_id, scores, minutes=0, **extra):
    """루브릭 평가 레코드 (camelCase, 저장소 형식)"""
    record = {
        "id": eval_id,
        "teamId": team_id,
        "areaId": area_id,
        "judgeId": judge_id,
        "judgeName": f"Judge {judge_id}",
        "scores": [{"criterionId": cid, "score": score} for cid, score in scores.items()],
        "penalties": [],
        "evaluatedAt": at(minutes),
    }
    record.update(extra)
    return record


@pytest.fixture(scope="function")
def settings():
    """환경변수와 무관한 기본 설정"""
    return EngineSettings(
        _env_file=None,
        default_ranking_method="percentage",
        default_aggregation_method="last",
        default_rounds_aggregation="best",
        shift_similarity_threshold=0.7,
        percentage_min=0,
        percentage_max=100,
        use_legacy_rubrics=True,
        log_level="INFO",
    )


@pytest.fixture(scope="function")
def rubric_area_data():
    """루브릭 영역 (만점 10)"""
    return {
        "id": "area-a",
        "tournamentId": "t1",
        "code": "A",
        "name": "Area A",
        "order": 1,
        "scoringType": "rubric",
        "weight": 1,
        "aggregationMethod": "last",
        "rubricConfig": {
            "criteria": [
                {"id": "c1", "name": "Criterion 1", "maxScore": 5},
                {"id": "c2", "name": "Criterion 2", "maxScore": 5},
            ]
        },
    }


@pytest.fixture(scope="function")
def second_area_data():
    """루브릭 영역 (만점 10, 가중치 2)"""
    return {
        "id": "area-b",
        "tournamentId": "t1",
        "code": "B",
        "name": "Area B",
        "order": 2,
        "scoringType": "rubric",
        "weight": 2,
        "aggregationMethod": "last",
        "rubricConfig": [
            {"id": "d1", "name": "Criterion D", "maxScore": 10},
        ],
    }


@pytest.fixture(scope="function")
def performance_area_data():
    """퍼포먼스 영역 (만점 50 + 20 = 70, 비활성 미션 제외)"""
    return {
        "id": "area-p",
        "tournamentId": "t1",
        "code": "P",
        "name": "Robot Game",
        "order": 3,
        "scoringType": "performance",
        "weight": 1,
        "aggregationMethod": "best",
        "performanceConfig": {
            "missions": [
                {"id": "m1", "name": "Mission 1", "points": 10, "quantity": 5},
                {"id": "m2", "name": "Mission 2", "points": 20},
                {"id": "m3", "name": "Mission 3", "points": 100, "enabled": False},
            ],
            "penalties": [
                {"id": "touch", "name": "Touch", "points": -5},
            ],
        },
    }


@pytest.fixture(scope="function")
def rubric_area(rubric_area_data):
    return TournamentArea.model_validate(rubric_area_data)


@pytest.fixture(scope="function")
def performance_area(performance_area_data):
    return TournamentArea.model_validate(performance_area_data)


@pytest.fixture(scope="function")
def teams():
    """시간대/학년 표기가 제각각인 로스터"""
    return [
        {"id": "team-1", "name": "Equipe Alfa", "grade": "2º Ano", "shift": "Manhã"},
        {"id": "team-2", "name": "Equipe Beta", "grade": "2 ano", "shift": "afternoon"},
        {"id": "team-3", "name": "Equipe Gama", "grade": None, "shift": None,
         "metadata": {"originalGrade": "3º ano", "originalShift": "Turno da Tarde"}},
        {"id": "team-4", "name": "Equipe Delta", "grade": "1 ano EM", "shift": "morning"},
    ]


@pytest.fixture(scope="function")
def make_evaluation():
    """루브릭 평가 레코드 생성 함수"""
    return rubric_evaluation


@pytest.fixture(scope="function")
def minutes_after():
    """기준 시각 + N분 함수"""
    return at
