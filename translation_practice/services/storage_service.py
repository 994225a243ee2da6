import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from translation_practice.models.exercise_attempt import ExerciseAttemptModel
from translation_practice.models.review_record import ReviewRecordModel
from translation_practice.practice.errors import StorageError
from translation_practice.practice.records import ExerciseAttempt, ReviewRecord
from translation_practice.repositories.attempt_repository import AttemptRepository
from translation_practice.repositories.progress_repository import ProgressRepository
from translation_practice.repositories.review_record_repository import ReviewRecordRepository
from translation_practice.utils.database import SessionLocal

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PracticeStorage(ABC):
    """按练习ID存取复习记录、练习记录和会话快照"""

    @abstractmethod
    async def load_review_record(self, exercise_id: str) -> Optional[ReviewRecord]:
        ...

    @abstractmethod
    async def save_review_record(self, record: ReviewRecord) -> None:
        ...

    @abstractmethod
    async def load_all_review_records(self) -> List[ReviewRecord]:
        ...

    @abstractmethod
    async def delete_review_record(self, exercise_id: str) -> bool:
        ...

    @abstractmethod
    async def load_latest_attempt(self, exercise_id: str) -> Optional[ExerciseAttempt]:
        ...

    @abstractmethod
    async def save_attempt(self, attempt: ExerciseAttempt) -> None:
        """保存练习记录，同一练习只保留最近一次"""

    @abstractmethod
    async def load_session_state(self, exercise_id: str) -> Optional[Dict[str, Any]]:
        ...

    @abstractmethod
    async def save_session_state(self, exercise_id: str, state: Dict[str, Any]) -> None:
        ...

    @abstractmethod
    async def clear_session_state(self, exercise_id: str) -> None:
        ...


class SqlPracticeStorage(PracticeStorage):
    """
    基于SQLAlchemy的存储实现

    数据库调用是同步的，统一放到线程池中执行，避免阻塞事件循环；
    数据库异常回滚后统一转换为 StorageError。
    """

    def __init__(self, session_factory: sessionmaker = SessionLocal):
        self.session_factory = session_factory
        logger.info("练习存储服务初始化完成")

    def _execute(self, action: str, work: Callable[[Session], T]) -> T:
        db: Session = self.session_factory()
        try:
            return work(db)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"{action}失败: {e}")
            raise StorageError(f"{action}失败: {e}") from e
        finally:
            db.close()

    async def _run(self, action: str, work: Callable[[Session], T]) -> T:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, self._execute, action, work)

    async def load_review_record(self, exercise_id: str) -> Optional[ReviewRecord]:
        def work(db: Session):
            model = ReviewRecordRepository(db).get_by_exercise_id(exercise_id)
            return model.to_record() if model else None
        return await self._run("读取复习记录", work)

    async def save_review_record(self, record: ReviewRecord) -> None:
        def work(db: Session):
            repo = ReviewRecordRepository(db)
            model = repo.get_by_exercise_id(record.exercise_id) or ReviewRecordModel(exercise_id=record.exercise_id)
            model.apply_record(record)
            repo.save(model)
        await self._run("保存复习记录", work)
        logger.debug(f"复习记录已保存: {record.exercise_id}, 下次复习: {record.next_review_date}")

    async def load_all_review_records(self) -> List[ReviewRecord]:
        def work(db: Session):
            return [model.to_record() for model in ReviewRecordRepository(db).get_all_records()]
        return await self._run("读取全部复习记录", work)

    async def delete_review_record(self, exercise_id: str) -> bool:
        return await self._run("删除复习记录", lambda db: ReviewRecordRepository(db).delete_by_exercise_id(exercise_id))

    async def load_latest_attempt(self, exercise_id: str) -> Optional[ExerciseAttempt]:
        def work(db: Session):
            model = AttemptRepository(db).get_by_exercise_id(exercise_id)
            return model.to_attempt() if model else None
        return await self._run("读取练习记录", work)

    async def save_attempt(self, attempt: ExerciseAttempt) -> None:
        def work(db: Session):
            repo = AttemptRepository(db)
            model = repo.get_by_exercise_id(attempt.exercise_id) or ExerciseAttemptModel(exercise_id=attempt.exercise_id)
            model.apply_attempt(attempt)
            repo.save(model)
        await self._run("保存练习记录", work)
        logger.info(f"练习记录已保存: {attempt.exercise_id}, 第{attempt.attempt_number}次, 得分{attempt.accuracy_score}")

    async def load_session_state(self, exercise_id: str) -> Optional[Dict[str, Any]]:
        def work(db: Session):
            progress = ProgressRepository(db).get_by_exercise_id(exercise_id)
            return dict(progress.state) if progress else None
        return await self._run("读取会话快照", work)

    async def save_session_state(self, exercise_id: str, state: Dict[str, Any]) -> None:
        def work(db: Session):
            repo = ProgressRepository(db)
            progress = repo.get_by_exercise_id(exercise_id)
            if progress:
                progress.state = state
                repo.save(progress)
            else:
                repo.create(exercise_id=exercise_id, state=state)
        await self._run("保存会话快照", work)

    async def clear_session_state(self, exercise_id: str) -> None:
        await self._run("清除会话快照", lambda db: ProgressRepository(db).delete_by_exercise_id(exercise_id))
