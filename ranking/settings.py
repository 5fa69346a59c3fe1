"""
랭킹 엔진 설정
"""
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

from data_pipeline.schemas import AggregationMethod, RankingMethod, RoundsAggregation

load_dotenv()


class EngineSettings(BaseSettings):
    """랭킹 엔진 설정 (환경변수 RANKING_*)"""

    # 랭킹 설정이 없는 토너먼트의 기본값
    default_ranking_method: RankingMethod = Field(default=RankingMethod.PERCENTAGE, description="기본 랭킹 방식")
    default_aggregation_method: AggregationMethod = Field(default=AggregationMethod.LAST, description="기본 복수 평가 집계")
    default_rounds_aggregation: RoundsAggregation = Field(default=RoundsAggregation.BEST, description="기본 라운드 집계")

    # 필터
    shift_similarity_threshold: float = Field(default=0.7, ge=0, le=1, description="시간대 유사도 임계값")

    # 퍼센트 클램프
    percentage_min: float = Field(default=0.0, description="최종 퍼센트 하한")
    percentage_max: float = Field(default=100.0, description="최종 퍼센트 상한")

    # 커스텀 설정이 없는 영역에 레거시 기본 루브릭 사용
    use_legacy_rubrics: bool = Field(default=True, description="레거시 루브릭 사용")

    log_level: str = Field(default="INFO", description="CLI 로그 레벨")

    class Config:
        env_prefix = "RANKING_"
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"
        frozen = True


@lru_cache()
def get_engine_settings() -> EngineSettings:
    """프로세스 단위 기본 설정 (불변)"""
    return EngineSettings()
