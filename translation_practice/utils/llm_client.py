import asyncio
import json
import logging
import time
from typing import Dict, List, Optional

import openai
from tenacity import retry, stop_after_attempt, wait_exponential

from translation_practice.config.settings import settings

logger = logging.getLogger(__name__)


class LLMClient:
    """大模型客户端，封装兼容OpenAI接口的调用"""

    def __init__(self):
        self.api_key = settings.LLM_API_KEY
        self.model = settings.LLM_MODEL
        self.base_url = settings.LLM_API_BASE
        self.max_tokens = settings.LLM_MAX_TOKENS
        self.timeout = settings.LLM_TIMEOUT

        self.client = openai.OpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            timeout=self.timeout
        )

        logger.info(f"LLM客户端初始化完成，模型: {self.model}")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=4, max=10),
        reraise=True
    )
    async def generate_response(self, messages: List[Dict[str, str]],
                                temperature: float = 0.7,
                                max_tokens: Optional[int] = None) -> str:
        """
        调用大模型生成响应

        Args:
            messages: 消息列表，格式为 [{"role": "user", "content": "你好"}]
            temperature: 生成温度
            max_tokens: 最大token数

        Returns:
            str: 模型生成的响应内容
        """
        logger.debug(f"调用LLM，消息数: {len(messages)}, 温度: {temperature}, 最大token数: {max_tokens or self.max_tokens}")

        try:
            start_time = time.time()
            loop = asyncio.get_running_loop()
            response = await loop.run_in_executor(
                None,
                lambda: self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens or self.max_tokens,
                    stream=False
                )
            )

            content = response.choices[0].message.content or ""
            usage = response.usage

            elapsed_time = time.time() - start_time
            logger.debug(f"LLM调用成功: {len(content)}字符, "
                         f"耗时: {elapsed_time:.2f}s, "
                         f"Token使用: {usage.total_tokens if usage else 'N/A'}")
            return content

        except openai.APITimeoutError as e:
            logger.error(f"LLM调用超时: {e}")
            raise
        except openai.APIError as e:
            logger.error(f"LLM API错误: {e}")
            raise

    async def complete(self, system_prompt: str, user_message: str,
                       temperature: float = 0.3, max_tokens: Optional[int] = None) -> str:
        """
        单轮对话：系统提示词 + 一条用户消息

        Args:
            system_prompt: 系统提示词
            user_message: 用户消息
            temperature: 生成温度，评分场景使用较低的温度
            max_tokens: 最大token数

        Returns:
            str: 模型回复
        """
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_message},
        ]
        return await self.generate_response(messages, temperature=temperature, max_tokens=max_tokens)

    async def check_connection(self) -> bool:
        """检查与大模型的连接是否正常"""
        try:
            test_messages = [{"role": "user", "content": "Hello, respond with 'OK'"}]
            response = await self.generate_response(test_messages, max_tokens=10)
            return bool(response and "OK" in response)
        except Exception as e:
            logger.error(f"大模型连接检查失败: {e}")
            return False


class MockLLMClient(LLMClient):
    """模拟LLM客户端，用于测试和开发"""

    def __init__(self, score: int = 95):
        self.model = "mock"
        self.score = score
        self.hint = "注意这句话的时态，想一想动作发生在什么时候。"
        logger.info("使用模拟LLM客户端")

    async def generate_response(self, messages: List[Dict[str, str]],
                                temperature: float = 0.7,
                                max_tokens: Optional[int] = None) -> str:
        """根据系统提示词返回预设的评分JSON或提示"""
        system_message = messages[0]["content"] if messages else ""

        if "accuracyScore" in system_message:
            feedback = []
            if self.score < 100:
                feedback.append({
                    "type": "suggestion",
                    "suggestion": "可以换一种更自然的表达。",
                    "explanation": "这是一个模拟反馈。",
                })
            return json.dumps({"accuracyScore": self.score, "feedback": feedback}, ensure_ascii=False)

        return self.hint

    async def check_connection(self) -> bool:
        return True


def create_llm_client(use_mock: bool = False) -> LLMClient:
    """创建LLM客户端实例"""
    if use_mock or not settings.LLM_API_KEY or settings.LLM_API_KEY == "your_llm_api_key_here":
        logger.info("使用模拟LLM客户端（开发模式）")
        return MockLLMClient()
    return LLMClient()
