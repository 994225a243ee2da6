from typing import Optional, TypeVar, Generic
from sqlalchemy.orm import Session

T = TypeVar('T')

class BaseRepository(Generic[T]):
    """基础Repository类，提供按练习ID的通用CRUD操作"""

    def __init__(self, db: Session, model_class: T):
        self.db = db
        self.model_class = model_class

    def get_by_exercise_id(self, exercise_id: str) -> Optional[T]:
        """根据练习ID获取记录"""
        return self.db.query(self.model_class).filter(self.model_class.exercise_id == exercise_id).first()

    def create(self, **kwargs) -> T:
        """创建新记录"""
        instance = self.model_class(**kwargs)
        self.db.add(instance)
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def save(self, instance: T) -> T:
        """保存已修改的记录"""
        self.db.add(instance)
        self.db.commit()
        self.db.refresh(instance)
        return instance

    def delete_by_exercise_id(self, exercise_id: str) -> bool:
        """根据练习ID删除记录"""
        instance = self.get_by_exercise_id(exercise_id)
        if instance:
            self.db.delete(instance)
            self.db.commit()
            return True
        return False
