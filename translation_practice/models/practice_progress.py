from sqlalchemy import Column, String, JSON
from .base import BaseModel

"""
练习进度模型
保存进行中练习的会话快照（句子进度、当前句子、提示记录），刷新或重启后可以继续作答，练习完成后删除。
"""
class PracticeProgress(BaseModel):
    __tablename__ = "practice_progress"

    exercise_id = Column(String(64), nullable=False, unique=True, index=True)
    state = Column(JSON, nullable=False)
