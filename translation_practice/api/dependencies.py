from fastapi import Request

from translation_practice.services.practice_service import PracticeService
from translation_practice.services.review_service import ReviewQueueManager


def get_practice_service(request: Request) -> PracticeService:
    """获取应用级的练习服务（在lifespan中创建）"""
    return request.app.state.practice_service


def get_review_manager(request: Request) -> ReviewQueueManager:
    """获取应用级的复习队列服务（在lifespan中创建）"""
    return request.app.state.review_manager
