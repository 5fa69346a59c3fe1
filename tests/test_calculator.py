"""
랭킹 계산기 테스트
- 가중 퍼센트 / raw 랭킹
- 정렬 / 동점 처리 / 순위
- 복수 평가, 라운드, 레거시 루브릭
- 스냅샷 로드 / 내보내기 / CLI
"""
import copy
import json
import pytest
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from data_pipeline.schemas import RankingConfig
from data_pipeline.store import EvaluationStore
from ranking.calculator import (
    RankingCalculator,
    calculate_ranking_stats,
    compute_ranking,
    main,
)


def rubric_area(area_id, code, order, weight, max_scores, **extra):
    """항목 ID는 {code}{n}"""
    area = {
        "id": area_id,
        "tournamentId": "t1",
        "code": code,
        "name": f"Area {code}",
        "order": order,
        "scoringType": "rubric",
        "weight": weight,
        "rubricConfig": {
            "criteria": [
                {"id": f"{code}{i}", "maxScore": max_score}
                for i, max_score in enumerate(max_scores, 1)
            ]
        },
    }
    area.update(extra)
    return area


def team(team_id, name=None, **extra):
    record = {"id": team_id, "name": name or f"Equipe {team_id}"}
    record.update(extra)
    return record


@pytest.fixture
def two_areas():
    """만점 10 (가중치 1) / 만점 20 (가중치 2)"""
    return [
        rubric_area("area-1", "A", 1, 1.0, [10]),
        rubric_area("area-2", "B", 2, 2.0, [10, 10]),
    ]


@pytest.fixture
def calculator(settings):
    return RankingCalculator(settings=settings)


# =============================================================================
# 가중 퍼센트 / raw
# =============================================================================

class TestWeightedPercentage:
    """최종 퍼센트 계산"""

    def test_end_to_end_percentage(self, calculator, two_areas, make_evaluation):
        """(80×1 + 50×2) / 3 = 60"""
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}),
            make_evaluation("e2", "team-a", "area-2", "j1", {"B1": 5, "B2": 5}),
        ]

        rankings = calculator.compute([team("team-a")], two_areas, evaluations)
        result = rankings[0]

        assert result.percentage == 60
        assert result.total_score == 28
        assert result.max_possible_score == 50
        assert result.position == 1
        assert result.area_scores["A"].percentage == 80
        assert result.area_scores["B"].percentage == 50
        assert result.area_scores["B"].weighted_score == 20

    def test_raw_method(self, calculator, two_areas, make_evaluation):
        """가중 총점 / 가중 만점 = 28 / 50"""
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}),
            make_evaluation("e2", "team-a", "area-2", "j1", {"B1": 5, "B2": 5}),
        ]

        rankings = calculator.compute([team("team-a")], two_areas, evaluations, {"rankingMethod": "raw"})

        assert rankings[0].percentage == 56

    def test_unevaluated_area_excluded(self, calculator, two_areas, make_evaluation):
        """평가 없는 영역은 퍼센트 평균에서 제외, raw에서는 만점에 포함"""
        evaluations = [make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8})]

        percentage = calculator.compute([team("team-a")], two_areas, evaluations)[0]
        raw = calculator.compute([team("team-a")], two_areas, evaluations, {"rankingMethod": "raw"})[0]

        assert percentage.percentage == 80
        assert list(percentage.area_scores) == ["A"]
        assert raw.percentage == 16

    def test_no_evaluations(self, calculator, two_areas):
        """평가 없음 → 0 (예외 없음)"""
        result = calculator.compute([team("team-a")], two_areas, [])[0]

        assert result.percentage == 0
        assert result.total_score == 0
        assert result.max_possible_score == 50
        assert result.area_scores == {}

    def test_weight_override_by_code(self, calculator, two_areas, make_evaluation):
        """토너먼트 가중치 override (영역 코드)"""
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}),
            make_evaluation("e2", "team-a", "area-2", "j1", {"B1": 5, "B2": 5}),
        ]

        result = calculator.compute([team("team-a")], two_areas, evaluations, {"weights": {"A": 3}})[0]

        assert result.percentage == 68
        assert result.area_scores["A"].weight == 3

    def test_weight_override_id_precedence(self, calculator, two_areas, make_evaluation):
        """영역 ID 키가 코드 키보다 우선"""
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}),
            make_evaluation("e2", "team-a", "area-2", "j1", {"B1": 5, "B2": 5}),
        ]
        config = {"weights": {"area-1": 3, "A": 5}}

        result = calculator.compute([team("team-a")], two_areas, evaluations, config)[0]

        assert result.area_scores["A"].weight == 3
        assert result.percentage == 68

    def test_module_entry_point(self, settings, two_areas, make_evaluation):
        """compute_ranking 함수형 진입점"""
        evaluations = {
            ("team-a", "area-1"): [make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8})],
            ("team-a", "B"): [make_evaluation("e2", "team-a", "area-2", "j1", {"B1": 5, "B2": 5})],
        }

        rankings = compute_ranking([team("team-a")], two_areas, evaluations, RankingConfig(), settings=settings)

        assert rankings[0].percentage == 60


# =============================================================================
# 불변 조건
# =============================================================================

class TestInvariants:
    """멱등성 / 퍼센트 범위 / 순위 단조성"""

    @pytest.fixture
    def roster(self):
        return [team(f"team-{i}") for i in range(1, 6)]

    @pytest.fixture
    def evaluations(self, make_evaluation):
        scores = {"team-1": (3, 4), "team-2": (9, 18), "team-3": (9, 10), "team-4": (6, 12), "team-5": (10, 20)}
        records = []
        for team_id, (a, b) in scores.items():
            records.append(make_evaluation(f"{team_id}-a", team_id, "area-1", "j1", {"A1": a}))
            records.append(make_evaluation(f"{team_id}-b", team_id, "area-2", "j1", {"B1": b / 2, "B2": b / 2}))
        return records

    def test_idempotent(self, calculator, roster, two_areas, evaluations):
        """같은 입력 → 같은 출력, 입력 불변"""
        inputs = copy.deepcopy((roster, two_areas, evaluations))

        first = [r.to_dict() for r in calculator.compute(roster, two_areas, evaluations)]
        second = [r.to_dict() for r in calculator.compute(roster, two_areas, evaluations)]

        assert first == second
        assert (roster, two_areas, evaluations) == inputs

    def test_position_monotonic(self, calculator, roster, two_areas, evaluations):
        rankings = calculator.compute(roster, two_areas, evaluations)

        assert [r.position for r in rankings] == [1, 2, 3, 4, 5]
        for current, following in zip(rankings, rankings[1:]):
            assert current.percentage >= following.percentage
            if current.percentage == following.percentage:
                assert current.total_score >= following.total_score

    def test_percentage_floor(self, calculator, two_areas, make_evaluation):
        """페널티로 음수가 되어도 0"""
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 2},
                            penalties=[{"type": "late", "points": -50}]),
        ]

        result = calculator.compute([team("team-a")], two_areas, evaluations)[0]

        assert result.percentage == 0
        assert result.total_score == 0

    def test_percentage_ceiling(self, calculator, two_areas, make_evaluation):
        """만점 초과 점수도 100으로 클램프"""
        evaluations = [make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 15})]

        result = calculator.compute([team("team-a")], two_areas, evaluations)[0]

        assert result.area_scores["A"].percentage == 150
        assert result.percentage == 100

    def test_bounds_for_all_teams(self, calculator, roster, two_areas, evaluations):
        for r in calculator.compute(roster, two_areas, evaluations):
            assert 0 <= r.percentage <= 100


# =============================================================================
# 정렬 / 동점 처리
# =============================================================================

class TestSorting:
    """퍼센트 → 총점 → 동점 처리 영역"""

    @pytest.fixture
    def equal_areas(self):
        return [
            rubric_area("area-1", "A", 1, 1.0, [10]),
            rubric_area("area-2", "B", 2, 1.0, [10]),
        ]

    @pytest.fixture
    def mirrored(self, make_evaluation):
        """X: A 80 / B 60, Y: A 60 / B 80 → 퍼센트/총점 동일"""
        return [
            make_evaluation("x-a", "team-x", "area-1", "j1", {"A1": 8}),
            make_evaluation("x-b", "team-x", "area-2", "j1", {"B1": 6}),
            make_evaluation("y-a", "team-y", "area-1", "j1", {"A1": 6}),
            make_evaluation("y-b", "team-y", "area-2", "j1", {"B1": 8}),
        ]

    def test_total_score_breaks_percentage_tie(self, calculator, two_areas, make_evaluation):
        """같은 퍼센트면 가중 총점이 큰 팀"""
        evaluations = [
            make_evaluation("x-a", "team-x", "area-1", "j1", {"A1": 8}),
            make_evaluation("y-b", "team-y", "area-2", "j1", {"B1": 8, "B2": 8}),
        ]

        rankings = calculator.compute([team("team-x"), team("team-y")], two_areas, evaluations)

        assert [r.team.id for r in rankings] == ["team-y", "team-x"]
        assert rankings[0].percentage == rankings[1].percentage == 80

    def test_tie_break_areas(self, calculator, equal_areas, mirrored):
        teams = [team("team-x"), team("team-y")]

        by_b = calculator.compute(teams, equal_areas, mirrored, {"tieBreak": ["B"]})
        by_a = calculator.compute(teams, equal_areas, mirrored, {"tieBreak": ["A"]})

        assert [r.team.id for r in by_b] == ["team-y", "team-x"]
        assert [r.team.id for r in by_a] == ["team-x", "team-y"]
        assert by_b[0].tie_break_values == {"B": 80}

    def test_complete_tie_keeps_input_order(self, calculator, equal_areas, mirrored):
        """모든 기준 동일 → 입력 순서, 공동 순위 없음"""
        rankings = calculator.compute([team("team-y"), team("team-x")], equal_areas, mirrored)

        assert [r.team.id for r in rankings] == ["team-y", "team-x"]
        assert [r.position for r in rankings] == [1, 2]

    def test_unknown_tie_break_area(self, calculator, equal_areas, mirrored):
        """없는 영역 코드는 0으로 비교 + 경고"""
        rankings = calculator.compute([team("team-x"), team("team-y")], equal_areas, mirrored, {"tieBreak": ["Z"]})

        assert [r.team.id for r in rankings] == ["team-x", "team-y"]
        assert any("Z" in w for w in calculator.warnings)

    def test_areas_processed_in_order(self, calculator, two_areas, make_evaluation):
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}),
            make_evaluation("e2", "team-a", "area-2", "j1", {"B1": 5, "B2": 5}),
        ]

        result = calculator.compute([team("team-a")], list(reversed(two_areas)), evaluations)[0]

        assert list(result.area_scores) == ["A", "B"]


# =============================================================================
# 복수 평가 / 라운드
# =============================================================================

class TestMultipleEvaluations:
    """영역별 복수 평가 집계"""

    def test_average_of_judges(self, calculator, make_evaluation):
        areas = [rubric_area("area-1", "A", 1, 1.0, [10], aggregationMethod="average")]
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}, minutes=5),
            make_evaluation("e2", "team-a", "area-1", "j2", {"A1": 6}, minutes=10),
        ]

        result = calculator.compute([team("team-a")], areas, evaluations)[0]
        area = result.area_scores["A"]

        assert area.score == 7
        assert area.percentage == 70
        assert area.evaluation_count == 2
        assert area.aggregation_method == "average"
        # 상세 표시는 최신 평가
        assert area.evaluated_by == "Judge j2"
        assert area.detailed_scores == [{"criterion_id": "A1", "score": 6}]

    def test_last_uses_latest(self, calculator, make_evaluation):
        areas = [rubric_area("area-1", "A", 1, 1.0, [10])]
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 9}, minutes=10),
            make_evaluation("e2", "team-a", "area-1", "j2", {"A1": 4}, minutes=5),
        ]

        result = calculator.compute([team("team-a")], areas, evaluations)[0]

        assert result.area_scores["A"].score == 9

    def test_last_with_mixed_timestamps(self, calculator, make_evaluation):
        """UTC 표기 / 시간대 없음 / 누락 시각이 섞여도 최신 평가 선택"""
        areas = [rubric_area("area-1", "A", 1, 1.0, [10])]
        utc = make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 2}, evaluatedAt="2024-05-01T10:00:00Z")
        naive = make_evaluation("e2", "team-a", "area-1", "j2", {"A1": 4}, evaluatedAt="2024-05-01T11:00:00")
        missing = make_evaluation("e3", "team-a", "area-1", "j3", {"A1": 7})
        del missing["evaluatedAt"]

        result = calculator.compute([team("team-a")], areas, [utc, naive, missing])[0]
        area = result.area_scores["A"]

        assert area.score == 7
        assert area.evaluated_by == "Judge j3"
        assert area.evaluation_count == 3

    def test_inactive_skipped(self, calculator, make_evaluation):
        areas = [rubric_area("area-1", "A", 1, 1.0, [10], aggregationMethod="best")]
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 10}, isActive=False),
            make_evaluation("e2", "team-a", "area-1", "j2", {"A1": 5}),
        ]

        result = calculator.compute([team("team-a")], areas, evaluations)[0]

        assert result.percentage == 50
        assert result.area_scores["A"].evaluation_count == 1

    def test_invalid_evaluation_excluded(self, calculator, make_evaluation):
        """필수 필드 누락 평가는 제외하고 경고, 계산은 계속"""
        areas = [rubric_area("area-1", "A", 1, 1.0, [10])]
        broken = make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 10})
        del broken["judgeId"]
        evaluations = [broken, "garbage", make_evaluation("e2", "team-a", "area-1", "j2", {"A1": 5})]

        result = calculator.compute([team("team-a")], areas, evaluations)[0]

        assert result.percentage == 50
        assert len([w for w in calculator.warnings if "유효하지 않은 평가" in w]) == 2

    def test_mapping_and_list_equivalent(self, calculator, two_areas, make_evaluation):
        records = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}),
            make_evaluation("e2", "team-a", "area-2", "j1", {"B1": 5, "B2": 5}),
        ]
        mapping = {("team-a", "area-1"): [records[0]], ("team-a", "area-2"): [records[1]]}

        from_list = calculator.compute([team("team-a")], two_areas, records)
        from_mapping = calculator.compute([team("team-a")], two_areas, mapping)

        assert [r.to_dict() for r in from_list] == [r.to_dict() for r in from_mapping]

    def test_store_resubmission(self, calculator, two_areas, make_evaluation):
        """재제출은 한 건으로 유지되어 최신 점수만 반영"""
        store = EvaluationStore()
        store.submit(make_evaluation(None, "team-a", "area-1", "j1", {"A1": 3}, tournamentId="t1"))
        store.submit(make_evaluation(None, "team-a", "area-1", "j1", {"A1": 9}, tournamentId="t1"))

        result = calculator.compute([team("team-a")], two_areas, store.grouped())[0]

        assert result.area_scores["A"].score == 9
        assert result.area_scores["A"].evaluation_count == 1


class TestRounds:
    """멀티 라운드 영역"""

    @pytest.fixture
    def round_evaluations(self, make_evaluation):
        return [
            make_evaluation("r1-j1", "team-a", "area-r", "j1", {"R1": 4}, minutes=1, round=1),
            make_evaluation("r1-j2", "team-a", "area-r", "j2", {"R1": 6}, minutes=2, round=1),
            make_evaluation("r2-j1", "team-a", "area-r", "j1", {"R1": 8}, minutes=3, round=2),
        ]

    def test_rounds_best(self, calculator, round_evaluations):
        """라운드 내 심사위원 평균 → 라운드 best"""
        areas = [rubric_area("area-r", "R", 1, 1.0, [10], aggregationMethod="average",
                             allowRounds=True, maxRounds=2, roundsAggregation="best")]

        area = calculator.compute([team("team-a")], areas, round_evaluations)[0].area_scores["R"]

        assert (area.score, area.percentage) == (8, 80)
        assert area.rounds_aggregation == "best"

    def test_rounds_sum_clamped(self, calculator, round_evaluations):
        """라운드 합산 퍼센트는 영역에서는 유지, 팀 퍼센트는 클램프"""
        areas = [rubric_area("area-r", "R", 1, 1.0, [10], aggregationMethod="average",
                             allowRounds=True, maxRounds=2, roundsAggregation="sum")]

        result = calculator.compute([team("team-a")], areas, round_evaluations)[0]

        assert result.area_scores["R"].score == 13
        assert result.area_scores["R"].percentage == 130
        assert result.percentage == 100

    def test_default_rounds_aggregation(self, calculator, round_evaluations):
        areas = [rubric_area("area-r", "R", 1, 1.0, [10], aggregationMethod="average",
                             allowRounds=True, maxRounds=2)]

        area = calculator.compute([team("team-a")], areas, round_evaluations)[0].area_scores["R"]

        assert area.rounds_aggregation == "best"
        assert area.percentage == 80

    def test_round_above_max_skipped(self, calculator, round_evaluations, make_evaluation):
        areas = [rubric_area("area-r", "R", 1, 1.0, [10], aggregationMethod="average",
                             allowRounds=True, maxRounds=2, roundsAggregation="best")]
        extra = make_evaluation("r3-j1", "team-a", "area-r", "j1", {"R1": 10}, minutes=4, round=3)

        area = calculator.compute([team("team-a")], areas, round_evaluations + [extra])[0].area_scores["R"]

        assert area.percentage == 80
        assert any("라운드 3" in w for w in calculator.warnings)


# =============================================================================
# 채점 설정 누락 / 레거시
# =============================================================================

class TestScoringConfigFallback:
    """채점 설정 누락 및 레거시 루브릭"""

    @staticmethod
    def bare_area(code, area_id=None):
        return {"id": area_id or f"area-{code}", "code": code, "order": 1, "scoringType": "rubric"}

    def test_missing_config_excluded_from_percentage(self, calculator, make_evaluation):
        """만점 0 영역: 총점에는 포함, 퍼센트 평균에서 제외"""
        areas = [rubric_area("area-1", "A", 1, 1.0, [10]), self.bare_area("custom")]
        evaluations = [
            make_evaluation("e1", "team-a", "area-1", "j1", {"A1": 8}),
            make_evaluation("e2", "team-a", "area-custom", "j1", {"x": 7}),
        ]

        result = calculator.compute([team("team-a")], areas, evaluations)[0]

        assert result.percentage == 80
        assert result.total_score == 15
        assert result.max_possible_score == 10
        assert result.area_scores["custom"].max_score == 0
        assert any("custom" in w for w in calculator.warnings)

    def test_legacy_rubric_by_grade(self, calculator, make_evaluation):
        """research: 2º ano는 스토리텔링(만점 50), 그 외 기본(만점 40)"""
        areas = [self.bare_area("research")]
        teams = [team("team-2", grade="2º Ano"), team("team-3", grade="3º ano")]
        evaluations = [
            make_evaluation("e1", "team-2", "area-research", "j1", {"creativity": 10, "scenario": 10}),
            make_evaluation("e2", "team-3", "area-research", "j1", {"research_depth": 10, "poster_development": 10}),
        ]

        rankings = {r.team.id: r for r in calculator.compute(teams, areas, evaluations)}

        assert rankings["team-2"].percentage == 40
        assert rankings["team-3"].percentage == 50
        assert rankings["team-2"].max_possible_score == 50

    def test_legacy_disabled(self, make_evaluation):
        from ranking.settings import EngineSettings

        calculator = RankingCalculator(settings=EngineSettings(use_legacy_rubrics=False))
        areas = [self.bare_area("identity")]
        evaluations = [make_evaluation("e1", "team-a", "area-identity", "j1", {"animation": 10})]

        result = calculator.compute([team("team-a")], areas, evaluations)[0]

        assert result.max_possible_score == 0
        assert result.percentage == 0

    def test_legacy_area_code_evaluations(self, calculator, make_evaluation):
        """areaCode만 있는 레거시 평가"""
        areas = [self.bare_area("identity")]
        record = make_evaluation("e1", "team-a", None, "j1", {"animation": 10, "battle_cry": 10}, areaCode="identity")
        del record["areaId"]

        result = calculator.compute([team("team-a")], areas, [record])[0]

        assert result.area_scores["identity"].percentage == 40


# =============================================================================
# 설정 오류 / 필터
# =============================================================================

class TestConfigurationErrors:
    """API 오용은 설정 단계에서 즉시 실패"""

    def test_negative_weight(self, calculator, two_areas):
        with pytest.raises(ValueError):
            calculator.compute([team("team-a")], two_areas, [], {"weights": {"A": -1}})

    def test_unknown_aggregation_method(self, calculator):
        areas = [rubric_area("area-1", "A", 1, 1.0, [10], aggregationMethod="mode")]
        with pytest.raises(ValueError):
            calculator.compute([team("team-a")], areas, [])

    def test_non_positive_area_weight(self, calculator):
        with pytest.raises(ValueError):
            calculator.compute([team("team-a")], [rubric_area("area-1", "A", 1, 0, [10])], [])


class TestFiltering:
    """랭킹 전 필터"""

    def test_original_shift_metadata(self, calculator, two_areas):
        """metadata.originalShift만 있어도 시스템 형식 필터와 일치"""
        teams = [
            team("team-a", metadata={"originalShift": "Turno da Manhã"}),
            team("team-b", shift="Tarde"),
        ]

        rankings = calculator.compute(teams, two_areas, [], filters={"shift": "morning"})

        assert [r.team.id for r in rankings] == ["team-a"]
        assert rankings[0].team.shift == "manha"

    def test_team_summary_normalized(self, calculator, two_areas, teams):
        rankings = calculator.compute(teams, two_areas, [], filters={"grade": "2 ano"})

        assert [r.team.grade for r in rankings] == ["2º ano", "2º ano"]
        assert [r.team.shift for r in rankings] == ["manha", "tarde"]


# =============================================================================
# 통계 / 로드 / 내보내기 / CLI
# =============================================================================

class TestStats:
    """랭킹 통계"""

    def test_distribution(self, calculator, make_evaluation):
        areas = [rubric_area("area-1", "A", 1, 1.0, [100])]
        evaluations = [
            make_evaluation("e1", "team-1", "area-1", "j1", {"A1": 95}),
            make_evaluation("e2", "team-2", "area-1", "j1", {"A1": 85}),
            make_evaluation("e3", "team-3", "area-1", "j1", {"A1": 40}),
        ]
        teams = [team("team-1"), team("team-2"), team("team-3"), team("team-4")]

        stats = calculate_ranking_stats(calculator.compute(teams, areas, evaluations))

        assert stats["total_teams"] == 4
        assert stats["evaluated_teams"] == 3
        assert stats["average_percentage"] == 73
        assert stats["top_team"] == "Equipe team-1"
        assert stats["distribution"] == {"90-100": 1, "80-89": 1, "70-79": 0, "60-69": 0, "0-59": 1}

    def test_empty(self):
        stats = calculate_ranking_stats([])
        assert stats["average_percentage"] == 0
        assert stats["top_team"] == ""


class TestSnapshot:
    """스냅샷 로드 / 내보내기"""

    @pytest.fixture
    def snapshot(self, teams, two_areas, make_evaluation):
        return {
            "teams": teams,
            "areas": two_areas,
            "evaluations": [
                make_evaluation("e1", "team-1", "area-1", "j1", {"A1": 9}),
                make_evaluation("e2", "team-2", "area-1", "j1", {"A1": 5}),
                make_evaluation("e3", "team-3", "area-2", "j1", {"B1": 7, "B2": 7}),
            ],
            "config": {"rankingMethod": "percentage", "tieBreak": ["A"]},
        }

    @pytest.fixture
    def snapshot_file(self, tmp_path, snapshot):
        path = tmp_path / "tournament.json"
        path.write_text(json.dumps(snapshot, ensure_ascii=False), encoding="utf-8")
        return path

    def test_calculate_rankings_with_filter(self, settings, snapshot):
        calculator = RankingCalculator(settings=settings)
        calculator.load_from_data(snapshot)

        all_teams = calculator.calculate_rankings()
        afternoon = calculator.calculate_rankings(shift="afternoon")

        assert [r.team.id for r in all_teams] == ["team-1", "team-3", "team-2", "team-4"]
        assert [r.team.id for r in afternoon] == ["team-3", "team-2"]

    def test_load_and_export(self, settings, snapshot_file, tmp_path):
        calculator = RankingCalculator(str(snapshot_file), settings=settings)
        output = tmp_path / "rankings.json"

        calculator.export_rankings(str(output))
        exported = json.loads(output.read_text(encoding="utf-8"))

        assert exported["meta"]["total_teams"] == 4
        assert exported["meta"]["tie_break"] == ["A"]
        assert exported["rankings"][0]["position"] == 1
        assert exported["rankings"][0]["team"]["id"] == "team-1"
        assert exported["rankings"][0]["area_scores"]["A"]["percentage"] == 90
        assert exported["stats"]["evaluated_teams"] == 3

    def test_print_summary(self, settings, snapshot, capsys):
        calculator = RankingCalculator(settings=settings)
        calculator.load_from_data(snapshot)

        calculator.print_ranking_summary(calculator.calculate_rankings(), title="Ranking")
        out = capsys.readouterr().out

        assert "Ranking" in out
        assert "Equipe Alfa" in out

    def test_cli(self, snapshot_file, tmp_path, monkeypatch, capsys):
        output = tmp_path / "cli.json"
        monkeypatch.setattr(sys, "argv", [
            "tournament-ranking", "--data", str(snapshot_file), "--output", str(output), "--grade", "2º ano",
        ])

        main()

        exported = json.loads(output.read_text(encoding="utf-8"))
        assert [r["team"]["id"] for r in exported["rankings"]] == ["team-1", "team-2"]
        assert "2º ano" in capsys.readouterr().out
