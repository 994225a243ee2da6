"""
SM-2 间隔重复算法

根据学习者本次练习的得分计算下一次复习的日期、间隔和难易系数（EF）。
间隔增长大致为 1 天 → 3 天 → 7 天 → 14 天 → 30 天。
"""
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Optional

from translation_practice.config.settings import settings
from translation_practice.practice.errors import InvalidInput
from translation_practice.utils.helpers import round_half_up

# 分数到等级的阈值
PERFECT_THRESHOLD = 95  # 5 级
GOOD_THRESHOLD = 85     # 4 级
PASS_THRESHOLD = 75     # 3 级
FAIL_THRESHOLD = 60     # 2 级，低于 60 为 1 级

DEFAULT_EASINESS_FACTOR = 2.5
MIN_EASINESS_FACTOR = 1.3
INITIAL_INTERVAL = 1
SECOND_INTERVAL = 3


@dataclass(frozen=True)
class ReviewSchedule:
    """一次调度计算的结果"""
    next_review_date: date
    interval: int
    easiness_factor: float


def _validate_score(score: float):
    if score is None or score < 0 or score > 100:
        raise InvalidInput(f"无效的分数: {score}，分数必须在 0 到 100 之间")


def _validate_easiness_factor(easiness_factor: float):
    if easiness_factor is None or easiness_factor < MIN_EASINESS_FACTOR:
        raise InvalidInput(f"无效的难易系数: {easiness_factor}，不能小于 {MIN_EASINESS_FACTOR}")


def get_performance_grade(score: float) -> int:
    """
    把百分制分数映射为 1-5 级

    5: >= 95, 4: >= 85, 3: >= 75, 2: >= 60, 1: < 60
    """
    _validate_score(score)

    if score >= PERFECT_THRESHOLD:
        return 5
    if score >= GOOD_THRESHOLD:
        return 4
    if score >= PASS_THRESHOLD:
        return 3
    if score >= FAIL_THRESHOLD:
        return 2
    return 1


def adjust_easiness_factor(current_ef: float, grade: int) -> float:
    """
    按 SM-2 公式调整难易系数

    EF' = EF + (0.1 - (5 - grade) * (0.08 + (5 - grade) * 0.02))，最低 1.3
    """
    if grade < 1 or grade > 5:
        raise InvalidInput(f"无效的等级: {grade}，等级必须在 1 到 5 之间")
    _validate_easiness_factor(current_ef)

    adjustment = 0.1 - (5 - grade) * (0.08 + (5 - grade) * 0.02)
    return max(current_ef + adjustment, MIN_EASINESS_FACTOR)


def _next_interval(current_interval: int, easiness_factor: float, grade: int) -> int:
    # 不及格直接回到第一天
    if grade < 3:
        return INITIAL_INTERVAL

    if current_interval == 0:
        return INITIAL_INTERVAL

    if current_interval == INITIAL_INTERVAL:
        return SECOND_INTERVAL

    return min(round_half_up(current_interval * easiness_factor), settings.MAX_REVIEW_INTERVAL)


def calculate_next_interval(current_interval: int, easiness_factor: float,
                            performance_score: float, today: Optional[date] = None) -> ReviewSchedule:
    """
    计算下一次复习安排

    Args:
        current_interval: 当前间隔天数（首次复习为 0）
        easiness_factor: 当前难易系数
        performance_score: 本次得分（0-100）
        today: 计算基准日期，默认今天

    Returns:
        ReviewSchedule: 下次复习日期、间隔和新的难易系数

    Raises:
        InvalidInput: 间隔为负、难易系数小于 1.3 或分数越界
    """
    if current_interval is None or current_interval < 0:
        raise InvalidInput(f"无效的间隔: {current_interval}，间隔不能为负数")
    _validate_easiness_factor(easiness_factor)
    _validate_score(performance_score)

    grade = get_performance_grade(performance_score)
    new_ef = adjust_easiness_factor(easiness_factor, grade)
    interval = _next_interval(current_interval, new_ef, grade)

    base_date = today or date.today()
    return ReviewSchedule(
        next_review_date=base_date + timedelta(days=interval),
        interval=interval,
        easiness_factor=new_ef,
    )


def create_initial_schedule(performance_score: float, today: Optional[date] = None) -> ReviewSchedule:
    """为第一次完成的练习生成复习安排"""
    return calculate_next_interval(0, DEFAULT_EASINESS_FACTOR, performance_score, today)
