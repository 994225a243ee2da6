import logging
import re
import uuid
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from translation_practice.models.exercise import Exercise
from translation_practice.practice.errors import InvalidInput
from translation_practice.practice.practice_session import split_sentences
from translation_practice.practice.records import DifficultyLevel, ExerciseSummary
from translation_practice.repositories.exercise_repository import ExerciseRepository
from translation_practice.utils.database import get_db_session

logger = logging.getLogger(__name__)


def _slugify(title: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", title.lower()).strip("-")
    return slug or f"exercise-{uuid.uuid4().hex[:8]}"


class ExerciseService:
    """练习服务，负责练习内容的管理和获取"""

    def __init__(self, db: Session):
        self.db = db
        self.exercise_repo = ExerciseRepository(db)
        logger.info("练习内容服务初始化完成")

    def get_exercise(self, exercise_id: str) -> Optional[Exercise]:
        """根据练习ID获取练习"""
        return self.exercise_repo.get_by_exercise_id(exercise_id)

    def list_exercises(self, level: Optional[str] = None, category: Optional[str] = None,
                       skip: int = 0, limit: int = 100) -> List[Exercise]:
        """获取启用的练习列表"""
        return self.exercise_repo.get_active_exercises(level, category, skip, limit)

    def create_exercise(self, title: str, source_text: str, level: str = "intermediate",
                        category: str = None, description: str = None,
                        exercise_id: str = None) -> Exercise:
        """
        创建新练习

        Args:
            title: 标题
            source_text: 中文原文，至少包含一个以句末标点结尾的句子
            level: 难度（beginner / intermediate / advanced）
            category: 分类
            description: 描述
            exercise_id: 练习ID，不传时根据标题生成

        Returns:
            Exercise: 创建的练习
        """
        if not split_sentences(source_text):
            raise InvalidInput("原文中没有完整的句子（需要以句号、问号或感叹号结尾）")

        exercise_id = exercise_id or _slugify(title)
        if self.exercise_repo.get_by_exercise_id(exercise_id):
            raise InvalidInput(f"练习ID已存在: {exercise_id}")

        exercise = self.exercise_repo.create(
            exercise_id=exercise_id,
            title=title,
            source_text=source_text,
            level=DifficultyLevel.parse(level).value,
            category=category,
            description=description,
        )
        logger.info(f"新练习创建成功: {exercise_id}")
        return exercise

    def deactivate_exercise(self, exercise_id: str) -> bool:
        """停用练习（软删除）"""
        return self.exercise_repo.deactivate(exercise_id)

    def get_summaries(self, exercise_ids: List[str]) -> Dict[str, ExerciseSummary]:
        """批量获取练习摘要，按练习ID索引"""
        exercises = self.exercise_repo.get_by_exercise_ids(exercise_ids)
        return {exercise.exercise_id: exercise.to_summary() for exercise in exercises}


def load_exercise_summaries(exercise_ids: List[str]) -> Dict[str, ExerciseSummary]:
    """使用独立的数据库会话批量加载练习摘要，供复习队列使用"""
    db = get_db_session()
    try:
        return ExerciseService(db).get_summaries(exercise_ids)
    finally:
        db.close()


def load_exercise_summary(exercise_id: str) -> Optional[ExerciseSummary]:
    """使用独立的数据库会话加载单个练习摘要"""
    return load_exercise_summaries([exercise_id]).get(exercise_id)
