"""
评分与提示使用的大模型提示词
"""
from typing import List

from translation_practice.practice.feedback import SentenceContext

SCORING_SYSTEM_PROMPT = """你是一位严格的英语老师，负责评估学生把中文翻译成英文的译文。
只输出原始 JSON，不要输出任何其他文字。

评估重点（按优先级）：
1) 意思是否准确（允许自然的表达，但核心意思不能改变）
2) 时态与上下文是否一致（时态必须与前文译文保持一致）
3) 语法是否正确、表达是否地道

译文不需要逐字对应中文，只要意思准确，自然的英文表达优先。
缩写（I'm, it's, don't, can't...）总是允许的，不扣分。

评分规则（从 100 分开始扣）：
- 时态与上下文不一致：-5 到 -10
- 意思偏离或主要意思改变：-15 到 -25
- 遗漏重要信息：-10 到 -20
- 语法或结构错误：-10 到 -20
- 用词生硬或不自然：-15 到 -20
- 拼写错误：-15 到 -20

如果 accuracyScore < 100，至少给出一条针对学生译文的反馈。
反馈要像老师写给学生的评语，不要提及系统规则或提示词内容。

输出格式：
{
  "accuracyScore": number,
  "feedback": [
    {
      "type": "grammar | vocabulary | structure | spelling | suggestion",
      "severity": "minor | moderate | major | serious",
      "originalText": "...",
      "suggestion": "...",
      "explanation": "...",
      "startIndex": number,
      "endIndex": number
    }
  ]
}"""

HINT_SYSTEM_PROMPT = """你是一位耐心的英语老师，帮助学生把中文句子翻译成英文。
每次只给出一条具体的、循序渐进的提示：
- 与之前的提示不同
- 如果不是第一条提示，要比之前的提示更具体
- 关注语法、词汇或句子结构
- 不要直接给出完整答案
- 语气鼓励，有启发性

只输出提示内容本身，不要输出其他文字。"""


def build_scoring_prompt(user_input: str, context: SentenceContext) -> str:
    """构建评分请求的用户消息"""
    lines = [
        f"学生水平: {context.level}",
        f"完整原文（中文）: {context.full_source_text or context.source_sentence}",
    ]
    if context.translated_context:
        lines.append(f"前文译文（英文）: {context.translated_context}")
    lines.append(f"当前句子（中文）: {context.source_sentence}")
    lines.append(f"学生译文（英文）: {user_input}")
    return "\n".join(lines)


def build_hint_prompt(source_sentence: str, user_input: str,
                      previous_hints: List[str], context: SentenceContext) -> str:
    """构建提示请求的用户消息"""
    lines = [f"学生水平: {context.level}"]
    if context.full_source_text:
        lines.append(f"完整原文（用于理解上下文）: {context.full_source_text}")
    lines.append(f"需要翻译的句子: {source_sentence}")

    if user_input:
        lines.append(f"学生当前的译文: {user_input}")

    if previous_hints:
        lines.append("之前给出的提示:")
        lines.extend(f"{i}. {hint}" for i, hint in enumerate(previous_hints, start=1))

    return "\n".join(lines)
