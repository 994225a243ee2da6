import logging
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional

from translation_practice.utils.database import get_db
from translation_practice.api.dependencies import get_practice_service, get_review_manager
from translation_practice.api.schemas.exercise_schemas import ExerciseCreate, ExerciseListResponse, ExerciseResponse
from translation_practice.practice.errors import PracticeError
from translation_practice.services.exercise_service import ExerciseService
from translation_practice.services.practice_service import PracticeService
from translation_practice.services.review_service import ReviewQueueManager

logger = logging.getLogger(__name__)
router = APIRouter()

@router.get("", response_model=ExerciseListResponse)
async def list_exercises(
    level: Optional[str] = None,
    category: Optional[str] = None,
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db)
):
    """
    获取练习列表
    """
    try:
        exercise_service = ExerciseService(db)
        exercises = exercise_service.list_exercises(level, category, skip, limit)
        return {
            "exercises": [ExerciseResponse.model_validate(e.to_dict()) for e in exercises],
            "total": len(exercises),
            "skip": skip,
            "limit": limit
        }
    except Exception as e:
        logger.error(f"获取练习列表失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="获取练习列表失败"
        )

@router.get("/{exercise_id}", response_model=ExerciseResponse)
async def get_exercise(exercise_id: str, db: Session = Depends(get_db)):
    """
    根据练习ID获取练习
    """
    exercise_service = ExerciseService(db)
    exercise = exercise_service.get_exercise(exercise_id)
    if not exercise:
        raise HTTPException(status_code=404, detail="练习不存在")
    return ExerciseResponse.model_validate(exercise.to_dict())

@router.post("", response_model=ExerciseResponse, status_code=status.HTTP_201_CREATED)
async def create_exercise(request: ExerciseCreate, db: Session = Depends(get_db)):
    """
    创建新练习
    """
    try:
        exercise_service = ExerciseService(db)
        exercise = exercise_service.create_exercise(
            title=request.title,
            source_text=request.source_text,
            level=request.level,
            category=request.category,
            description=request.description,
            exercise_id=request.exercise_id,
        )
        return ExerciseResponse.model_validate(exercise.to_dict())
    except (HTTPException, PracticeError):
        raise
    except Exception as e:
        logger.error(f"创建练习失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="创建练习失败"
        )

@router.delete("/{exercise_id}")
async def delete_exercise(
    exercise_id: str,
    db: Session = Depends(get_db),
    practice_service: PracticeService = Depends(get_practice_service),
    review_manager: ReviewQueueManager = Depends(get_review_manager)
):
    """
    删除练习（软删除），同时删除复习记录并放弃进行中的会话
    """
    exercise_service = ExerciseService(db)
    if not exercise_service.deactivate_exercise(exercise_id):
        raise HTTPException(status_code=404, detail="练习不存在")

    practice_service.abandon(exercise_id)
    await review_manager.remove_exercise(exercise_id)
    return {"message": "练习已删除", "exercise_id": exercise_id}
