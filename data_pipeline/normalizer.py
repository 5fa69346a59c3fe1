"""
텍스트 정규화 모듈
- 학년(grade) / 시간대(shift) 자유 텍스트를 비교 가능한 표준 값으로 변환
- 악센트, 서수 표기(º/°/ª), 약어, 레거시 영문 토큰 처리
"""
import re
import unicodedata
from typing import Optional, Dict, Any, Tuple, List


# =============================================================================
# 정규화 매핑 테이블 (Single Source of Truth)
# =============================================================================

# 약어 → 전체 표기 (단어 경계 기준)
ABBREVIATIONS = {
    "ens": "ensino",
    "em": "ensino medio",
    "med": "medio",
    "fund": "fundamental",
    "ef": "ensino fundamental",
}

_ABBREVIATION_RE = re.compile(r"\b(" + "|".join(ABBREVIATIONS) + r")\b")

# 시간대 표준 토큰별 변형 (정규화된 형태). 먼저 매칭되는 쪽이 우선
SHIFT_VARIATIONS = {
    "manha": ["manha", "manha1", "turno manha", "morning"],
    "tarde": ["tarde", "tard", "turno tarde", "afternoon"],
}

# 표준 토큰 ↔ 시스템(레거시 영문) 형식
SHIFT_SYSTEM_FORMAT = {
    "manha": "morning",
    "tarde": "afternoon",
}

SHIFT_SIMILARITY_THRESHOLD = 0.7

# 학년 범위
FUNDAMENTAL_YEARS = range(1, 10)
MEDIO_YEARS = range(1, 4)

# 서수 표기 다음의 o/a는 º/ª 치환 결과
GRADE_PATTERNS = [
    re.compile(r"\b([1-9])\s*[oa]?\s*ano\b"),   # "2o ano", "1 ano ensino medio"
    re.compile(r"\b([1-9])\s*[oa]?\s*serie\b"),  # "3a serie"
    re.compile(r"\b([1-9])\s*[oa]?\b"),          # "2o", 단독 숫자
]


# =============================================================================
# 텍스트 정규화 파이프라인
# =============================================================================

def remove_accents(text: str) -> str:
    """악센트 제거: manhã → manha"""
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if unicodedata.category(ch) != "Mn")


def replace_ordinals(text: str) -> str:
    """서수 표기 치환 (º, ° → o / ª → a) 후 나머지 특수문자는 공백으로"""
    text = re.sub(r"[º°]", "o", text)
    text = text.replace("ª", "a")
    return re.sub(r"[^\w\s]|_", " ", text)


def collapse_spaces(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip()


def expand_abbreviations(text: str) -> str:
    """약어 확장: fund → fundamental, em → ensino medio"""
    return _ABBREVIATION_RE.sub(lambda m: ABBREVIATIONS[m.group(1)], text)


def normalize_text(text: Optional[str]) -> str:
    """
    비교용 전체 정규화

    순서: 소문자 → 악센트 제거 → 서수 치환/특수문자 제거 → 공백 정리 → 약어 확장
    """
    if not text:
        return ""

    result = remove_accents(str(text).lower())
    result = replace_ordinals(result)
    result = collapse_spaces(result)
    return collapse_spaces(expand_abbreviations(result))


# =============================================================================
# 유사도
# =============================================================================

def levenshtein_distance(a: str, b: str) -> int:
    """편집 거리 (삽입/삭제/치환 비용 1)"""
    if len(a) < len(b):
        a, b = b, a

    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, 1):
        current = [i]
        for j, cb in enumerate(b, 1):
            if ca == cb:
                current.append(previous[j - 1])
            else:
                current.append(min(previous[j], current[j - 1], previous[j - 1]) + 1)
        previous = current

    return previous[-1]


def similarity(a: str, b: str) -> float:
    """1 - distance / max(len) (둘 다 빈 문자열이면 1)"""
    max_len = max(len(a), len(b))
    if max_len == 0:
        return 1.0
    return 1 - levenshtein_distance(a, b) / max_len


def matches_value(normalized_input: str, normalized_expected: str, threshold: float) -> bool:
    """정확 일치 → 양방향 포함 → 편집 거리 유사도"""
    if normalized_input == normalized_expected:
        return True

    if normalized_expected in normalized_input or normalized_input in normalized_expected:
        return True

    return similarity(normalized_input, normalized_expected) >= threshold


# =============================================================================
# 시간대 / 학년 정규화
# =============================================================================

def normalize_shift(text: Optional[str], threshold: float = SHIFT_SIMILARITY_THRESHOLD) -> Optional[str]:
    """시간대 정규화: 'Turno da Manhã' → 'manha', 'afternoon' → 'tarde', 인식 불가 → None"""
    normalized = normalize_text(text)
    if not normalized:
        return None

    for canonical, variations in SHIFT_VARIATIONS.items():
        for variation in variations:
            if matches_value(normalized, variation, threshold):
                return canonical

    return None


def normalize_grade(text: Optional[str]) -> Optional[str]:
    """
    학년 정규화 (패턴 기반, 유사도 매칭 없음)

    '2º Ano' → '2º ano'
    '1 ano ensino medio' → '1º ano ensino medio'
    """
    normalized = normalize_text(text)
    if not normalized:
        return None

    is_medio = re.search(r"\bmedio\b", normalized) is not None

    year = None
    for pattern in GRADE_PATTERNS:
        match = pattern.search(normalized)
        if match:
            year = int(match.group(1))
            break

    if year is None:
        return None

    if is_medio:
        return f"{year}º ano ensino medio" if year in MEDIO_YEARS else None

    return f"{year}º ano" if year in FUNDAMENTAL_YEARS else None


def shift_to_system_format(shift: Optional[str]) -> Optional[str]:
    """'manha' → 'morning', 'tarde' → 'afternoon'"""
    return SHIFT_SYSTEM_FORMAT.get(shift) if shift else None


def shift_from_system_format(shift: Optional[str]) -> Optional[str]:
    """'morning' → 'manha', 'afternoon' → 'tarde' (표준 토큰도 그대로 허용)"""
    normalized = normalize_text(shift)
    if normalized in ("morning", "manha"):
        return "manha"
    if normalized in ("afternoon", "tarde"):
        return "tarde"
    return None


# =============================================================================
# 레코드 정규화
# =============================================================================

def normalize_team_record(team: Dict[str, Any]) -> Dict[str, Any]:
    """
    팀 레코드 정규화 (임포트 시)
    - 인식된 학년은 표준 표기, 아니면 원본(공백 정리)
    - 인식된 시간대는 시스템 형식(morning/afternoon), 아니면 원본
    """
    normalized = team.copy()

    raw_grade = team.get("grade")
    raw_shift = team.get("shift")
    normalized_grade = normalize_grade(raw_grade)
    normalized_shift = normalize_shift(raw_shift)

    if team.get("name"):
        normalized["name"] = team["name"].strip()

    code = team.get("code")
    normalized["code"] = code.strip() if code and code.strip() else None

    normalized["grade"] = normalized_grade or (raw_grade.strip() if raw_grade and raw_grade.strip() else None)
    normalized["shift"] = shift_to_system_format(normalized_shift) or (
        raw_shift.strip() if raw_shift and raw_shift.strip() else None
    )
    normalized["normalized_grade"] = normalized_grade
    normalized["normalized_shift"] = normalized_shift

    return normalized


def normalize_teams_batch(teams: List[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], Dict[str, int]]:
    """
    팀 배치 정규화
    Returns: (정규화된 팀 리스트, 통계)
    """
    normalized_teams = []
    stats = {
        "total": len(teams),
        "grade_normalized": 0,
        "shift_normalized": 0,
        "grade_unrecognized": 0,
        "shift_unrecognized": 0,
    }

    for team in teams:
        normalized = normalize_team_record(team)
        normalized_teams.append(normalized)

        if normalized["normalized_grade"]:
            stats["grade_normalized"] += 1
        elif team.get("grade"):
            stats["grade_unrecognized"] += 1

        if normalized["normalized_shift"]:
            stats["shift_normalized"] += 1
        elif team.get("shift"):
            stats["shift_unrecognized"] += 1

    return normalized_teams, stats
