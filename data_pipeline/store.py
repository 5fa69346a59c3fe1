"""
평가 저장소 (인메모리)

(토너먼트, 팀, 영역, 심사위원, 라운드) 당 평가 1건만 유지
- 같은 키로 재제출하면 기존 레코드를 갱신하고 version 증가
- 페널티는 재제출 시 통째로 교체
- 키별 Lock으로 동시 재제출을 직렬화하여 version 단조 증가 보장
"""

import uuid
from collections import defaultdict
from contextlib import contextmanager
from threading import Lock
from typing import Any, Dict, List, Optional, Tuple, Union

from loguru import logger

from .schemas import Evaluation

UpsertKey = Tuple[Optional[str], str, str, str, Optional[int]]


class EvaluationStore:
    """평가 upsert 저장소"""

    def __init__(self):
        self._rows: Dict[str, Evaluation] = {}
        self._index: Dict[UpsertKey, str] = {}
        self._locks: Dict[UpsertKey, Lock] = defaultdict(Lock)
        self._locks_guard = Lock()

    def _lock_for(self, key: UpsertKey) -> Lock:
        with self._locks_guard:
            return self._locks[key]

    @contextmanager
    def _locked(self, key: UpsertKey):
        """키 Lock 획득. delete로 교체된 Lock이면 현재 Lock으로 재시도"""
        while True:
            lock = self._lock_for(key)
            lock.acquire()
            with self._locks_guard:
                if self._locks.get(key) is lock:
                    break
            lock.release()

        try:
            yield
        finally:
            lock.release()

    def submit(self, evaluation: Union[Evaluation, Dict[str, Any]]) -> Evaluation:
        """
        평가 제출 (upsert)

        Returns:
            저장된 평가 (신규 version=1, 갱신 시 이전 version + 1)
        """
        if not isinstance(evaluation, Evaluation):
            data = dict(evaluation)
            if not data.get("id"):
                data["id"] = str(uuid.uuid4())
            evaluation = Evaluation.model_validate(data)

        key = evaluation.upsert_key

        with self._locked(key):
            existing_id = self._index.get(key)
            existing = self._rows.get(existing_id) if existing_id else None

            if existing is None:
                stored = evaluation.model_copy(update={"version": 1})
                logger.info(f"평가 생성: team={stored.team_id} area={stored.area_key} judge={stored.judge_id} round={stored.round}")
            else:
                stored = evaluation.model_copy(update={
                    "id": existing.id,
                    "version": existing.version + 1,
                    "penalties": list(evaluation.penalties),
                })
                logger.info(f"평가 갱신: {existing.id} v{existing.version} → v{stored.version}")

            self._rows[stored.id] = stored
            self._index[key] = stored.id

        return stored

    def get(self, evaluation_id: str) -> Optional[Evaluation]:
        return self._rows.get(evaluation_id)

    def deactivate(self, evaluation_id: str) -> Optional[Evaluation]:
        """랭킹에서 제외 (soft)"""
        existing = self._rows.get(evaluation_id)
        if existing is None:
            return None

        # 같은 id의 재제출은 같은 키이므로 Lock 안에서 최신 행을 다시 읽음
        with self._locked(existing.upsert_key):
            current = self._rows.get(evaluation_id)
            if current is None:
                return None
            updated = current.model_copy(update={"is_active": False})
            self._rows[evaluation_id] = updated

        logger.info(f"평가 비활성화: {evaluation_id}")
        return updated

    def delete(self, evaluation_id: str) -> bool:
        existing = self._rows.get(evaluation_id)
        if existing is None:
            return False

        key = existing.upsert_key
        with self._locked(key):
            if self._rows.pop(evaluation_id, None) is None:
                return False
            if self._index.get(key) == evaluation_id:
                del self._index[key]
            # 삭제된 키의 Lock 제거 (대기 중인 호출은 _locked에서 새 Lock으로 재시도)
            with self._locks_guard:
                self._locks.pop(key, None)

        logger.info(f"평가 삭제: {evaluation_id}")
        return True

    def all(self) -> List[Evaluation]:
        return list(self._rows.values())

    def active_for(self, team_id: str, area_key: str) -> List[Evaluation]:
        """팀/영역(ID 또는 코드)의 활성 평가"""
        return [
            e for e in self._rows.values()
            if e.is_active and e.team_id == team_id and area_key in (e.area_id, e.area_code)
        ]

    def grouped(self) -> Dict[Tuple[str, str], List[Evaluation]]:
        """랭킹 계산 입력 형태: {(team_id, area_key): [평가...]}"""
        grouped: Dict[Tuple[str, str], List[Evaluation]] = defaultdict(list)
        for evaluation in self._rows.values():
            grouped[(evaluation.team_id, evaluation.area_key)].append(evaluation)
        return dict(grouped)

    def __len__(self) -> int:
        return len(self._rows)
