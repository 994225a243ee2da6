import logging
from fastapi import APIRouter, Depends, HTTPException, status, Query

from translation_practice.api.dependencies import get_review_manager
from translation_practice.api.schemas.review_schemas import (
    DueReviewResponse, ReviewQueueItemResponse, ReviewQueueResponse, ReviewStatsResponse
)
from translation_practice.practice.records import DifficultyLevel, ReviewQueueItem
from translation_practice.services.review_service import QueueSortKey, ReviewQueueManager

logger = logging.getLogger(__name__)
router = APIRouter()


def _to_response(item: ReviewQueueItem) -> ReviewQueueItemResponse:
    return ReviewQueueItemResponse(
        exercise_id=item.exercise_id,
        title=item.exercise.title,
        level=DifficultyLevel.parse(item.exercise.level).value,
        category=item.exercise.category,
        urgency=item.urgency.value,
        next_review_date=item.next_review_date,
        last_score=item.last_score,
        estimated_time=item.estimated_time,
        incorrect_question_count=item.incorrect_question_count,
        repetition_count=item.record.repetition_count,
        interval=item.record.interval,
        easiness_factor=round(item.record.easiness_factor, 2),
    )


@router.get("/queue", response_model=ReviewQueueResponse)
async def get_review_queue(
    sort: QueueSortKey = Query(QueueSortKey.NEXT_REVIEW_DATE, description="同一紧急程度内的排序方式"),
    review_manager: ReviewQueueManager = Depends(get_review_manager)
):
    """
    获取复习队列（按紧急程度排序）
    """
    try:
        queue = await review_manager.get_review_queue(sort)
        items = [_to_response(item) for item in queue]
        return {"items": items, "total": len(items)}
    except Exception as e:
        logger.error(f"获取复习队列失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取复习队列失败"
        )


@router.get("/due", response_model=ReviewQueueResponse)
async def get_due_reviews(review_manager: ReviewQueueManager = Depends(get_review_manager)):
    """
    获取今天及之前到期的复习
    """
    try:
        queue = await review_manager.get_due_reviews()
        items = [_to_response(item) for item in queue]
        return {"items": items, "total": len(items)}
    except Exception as e:
        logger.error(f"获取到期复习失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取到期复习失败"
        )


@router.get("/check", response_model=DueReviewResponse)
async def check_due_reviews(review_manager: ReviewQueueManager = Depends(get_review_manager)):
    """
    统计到期复习数量（用于提醒）
    """
    summary = await review_manager.check_due_reviews()
    return {"count": summary.count, "urgent_count": summary.urgent_count}


@router.get("/stats", response_model=ReviewStatsResponse)
async def get_review_stats(review_manager: ReviewQueueManager = Depends(get_review_manager)):
    """
    获取复习统计
    """
    stats = await review_manager.get_review_stats()
    return stats.__dict__


@router.post("/cache/invalidate")
async def invalidate_review_cache(review_manager: ReviewQueueManager = Depends(get_review_manager)):
    """
    清除复习记录缓存
    """
    review_manager.invalidate_cache()
    return {"message": "复习缓存已清除"}
