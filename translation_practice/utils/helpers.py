import math
from datetime import datetime, date
from typing import Any, Optional

def extract_json_block(text: str) -> Optional[str]:
    """从模型回复中截取第一个JSON对象（模型偶尔会包裹```json代码块）"""
    if not text:
        return None
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end <= start:
        return None
    return text[start:end + 1]

def round_half_up(value: float) -> int:
    """四舍五入（0.5 向上取整，区别于内置 round 的银行家舍入）"""
    return int(math.floor(value + 0.5))

def days_between(start: date, end: date) -> int:
    """计算两个日期相差的天数，只比较日期部分"""
    if isinstance(start, datetime):
        start = start.date()
    if isinstance(end, datetime):
        end = end.date()
    return (end - start).days

def parse_date(value: Any) -> Optional[date]:
    """把 ISO 字符串 / datetime 统一转换为 date"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value)).date()
    except ValueError:
        return None
