"""
练习核心的异常定义

InvalidInput       调用方违反约定（负的间隔、越界分数、空提交等），属于编程错误
ScoringError       AI 评分/提示服务暂时失败，可重试
StorageError       存储读写失败，可重试
SchedulingConflict 同一练习的复习调度正在进行中，重复调用会被忽略
NotFound           练习、会话或练习记录不存在
"""


class PracticeError(Exception):
    """练习核心异常基类"""


class InvalidInput(PracticeError, ValueError):
    """参数或调用时机不合法"""


class ScoringError(PracticeError):
    """评分服务调用失败"""


class StorageError(PracticeError):
    """存储服务调用失败"""


class SchedulingConflict(PracticeError):
    """同一练习已有进行中的复习调度"""

    def __init__(self, exercise_id: str):
        super().__init__(f"练习 {exercise_id} 的复习调度正在进行中")
        self.exercise_id = exercise_id


class NotFound(PracticeError, LookupError):
    """练习、会话或练习记录不存在"""
