import logging
from fastapi import APIRouter, Depends, HTTPException, status
from typing import Optional

from translation_practice.api.dependencies import get_practice_service
from translation_practice.api.schemas.session_schemas import (
    AdvanceResponse, AttemptResponse, CompletionResponse, HintRequest, HintResponse,
    PenaltyResponse, QuickReviewProgressResponse, QuickReviewResponse, SentenceAttemptResponse,
    SentenceProgressResponse, SessionStateResponse, SubmissionResponse, SubmitRequest
)
from translation_practice.practice.errors import NotFound, PracticeError
from translation_practice.practice.feedback import dump_feedback_items
from translation_practice.practice.practice_session import CompletionResult, PracticeSession
from translation_practice.services.practice_service import PracticeService

logger = logging.getLogger(__name__)
router = APIRouter()


def build_session_state(session: PracticeSession, service: PracticeService) -> SessionStateResponse:
    """会话状态转换为响应对象"""
    penalty = service.penalty_scorer.compute_current_penalty(session.sentences)
    quick_review_progress = None
    if session.is_quick_review:
        progress = service.quick_review.progress(session)
        quick_review_progress = QuickReviewProgressResponse(
            current=progress.current, total=progress.total, percentage=progress.percentage
        )

    return SessionStateResponse(
        exercise_id=session.exercise_id,
        mode=session.mode.value,
        current_index=session.current_index,
        total_sentences=session.total_sentences,
        is_complete=session.is_complete,
        has_more_hints=session.has_more_hints,
        can_skip=session.can_skip,
        hints_shown=session.hints_shown,
        current_hint=session.current_hint,
        total_hints_used=session.total_hints_used,
        sentences=[
            SentenceProgressResponse(
                index=index,
                original=s.original,
                translation=s.translation,
                is_completed=s.is_completed,
                accuracy_score=s.accuracy_score,
                incorrect_attempts=s.incorrect_attempts,
                retry_count=s.retry_count,
                show_translation=s.show_translation,
                suggestion=s.suggestion,
            )
            for index, s in enumerate(session.sentences)
        ],
        current_penalty=PenaltyResponse(**penalty.__dict__) if penalty else None,
        quick_review_progress=quick_review_progress,
    )


def build_completion(completion: Optional[CompletionResult]) -> Optional[CompletionResponse]:
    if completion is None:
        return None

    response = CompletionResponse(graded=completion.graded)
    metrics = completion.metrics
    if metrics is not None:
        response.base_score = metrics.base_score
        response.final_score = metrics.final_score
        response.total_incorrect_attempts = metrics.total_incorrect_attempts
        response.total_retries = metrics.total_retries
        response.total_penalty = metrics.total_penalty
    attempt = completion.outcome
    if attempt is not None:
        response.attempt_number = attempt.attempt_number
        response.points_earned = attempt.points_earned
    return response


@router.post("/{exercise_id}/start", response_model=SessionStateResponse)
async def start_session(exercise_id: str, resume: bool = True,
                        service: PracticeService = Depends(get_practice_service)):
    """
    开始练习（默认从保存的进度继续）
    """
    try:
        session = await service.start_session(exercise_id, resume=resume)
        return build_session_state(session, service)
    except (HTTPException, PracticeError):
        raise
    except Exception as e:
        logger.error(f"开始练习失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="开始练习失败"
        )


@router.get("/{exercise_id}", response_model=SessionStateResponse)
async def get_session_state(exercise_id: str, service: PracticeService = Depends(get_practice_service)):
    """
    获取练习会话状态
    """
    session = service.get_session(exercise_id)
    return build_session_state(session, service)


@router.post("/{exercise_id}/submit", response_model=SubmissionResponse)
async def submit_translation(exercise_id: str, request: SubmitRequest,
                             service: PracticeService = Depends(get_practice_service)):
    """
    提交当前句子的译文
    """
    try:
        session = service.get_session(exercise_id)
        result = await session.submit(request.user_input)
        return SubmissionResponse(
            status=result.status.value,
            sentence_index=result.sentence_index,
            user_input=result.user_input,
            accuracy_score=result.accuracy_score,
            feedback=dump_feedback_items(result.feedback),
            auto_advanced=result.auto_advanced,
            was_last_sentence=result.was_last_sentence,
            can_skip=result.can_skip,
            retryable=result.retryable,
            session_complete=result.session_complete,
            error=result.error,
            completion=build_completion(result.completion),
            session=build_session_state(session, service),
        )
    except (HTTPException, PracticeError):
        raise
    except Exception as e:
        logger.error(f"提交译文失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="提交译文失败"
        )


@router.post("/{exercise_id}/retry", response_model=SessionStateResponse)
async def retry_sentence(exercise_id: str, service: PracticeService = Depends(get_practice_service)):
    """
    重做当前句子
    """
    session = service.retry(exercise_id)
    return build_session_state(session, service)


@router.post("/{exercise_id}/advance", response_model=AdvanceResponse)
async def advance_sentence(exercise_id: str, service: PracticeService = Depends(get_practice_service)):
    """
    进入下一句，越过最后一句时完成练习
    """
    try:
        session = service.get_session(exercise_id)
        completion = await session.advance()
        return AdvanceResponse(
            completion=build_completion(completion),
            session=build_session_state(session, service),
        )
    except (HTTPException, PracticeError):
        raise
    except Exception as e:
        logger.error(f"切换句子失败: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="切换句子失败"
        )


@router.post("/{exercise_id}/hint", response_model=HintResponse)
async def get_hint(exercise_id: str, request: HintRequest,
                   service: PracticeService = Depends(get_practice_service)):
    """
    获取当前句子的提示
    """
    result = await service.hint(exercise_id, request.user_input)
    return HintResponse(
        status=result.status,
        hint=result.hint,
        hints_remaining=result.hints_remaining,
        error=result.error,
    )


@router.post("/{exercise_id}/quick-review", response_model=QuickReviewResponse)
async def start_quick_review(exercise_id: str, service: PracticeService = Depends(get_practice_service)):
    """
    快速复习上一次作答中的难句（不计分）
    """
    session = await service.start_quick_review(exercise_id)
    if session is None:
        return QuickReviewResponse(started=False, message="没有需要复习的句子")
    return QuickReviewResponse(
        started=True,
        message=f"共有 {len(session.quick_review_indices)} 个句子需要复习",
        session=build_session_state(session, service),
    )


@router.get("/{exercise_id}/attempt", response_model=AttemptResponse)
async def get_latest_attempt(exercise_id: str, service: PracticeService = Depends(get_practice_service)):
    """
    获取最近一次练习记录
    """
    attempt = await service.storage.load_latest_attempt(exercise_id)
    if attempt is None:
        raise NotFound(f"练习还没有完成记录: {exercise_id}")

    return AttemptResponse(
        exercise_id=attempt.exercise_id,
        attempt_number=attempt.attempt_number,
        accuracy_score=attempt.accuracy_score,
        base_score=attempt.base_score,
        total_incorrect_attempts=attempt.total_incorrect_attempts,
        total_retries=attempt.total_retries,
        total_penalty=attempt.total_penalty,
        points_earned=attempt.points_earned,
        hints_used=attempt.hints_used,
        user_input=attempt.user_input,
        sentence_attempts=[
            SentenceAttemptResponse(
                sentence_index=sa.sentence_index,
                user_input=sa.user_input,
                accuracy_score=sa.accuracy_score,
                feedback=dump_feedback_items(sa.feedback),
                incorrect_attempts=sa.incorrect_attempts,
                retry_count=sa.retry_count,
            )
            for sa in attempt.sentence_attempts
        ],
        timestamp=attempt.timestamp,
    )


@router.post("/{exercise_id}/attempt/open", response_model=SessionStateResponse)
async def open_latest_attempt(exercise_id: str, service: PracticeService = Depends(get_practice_service)):
    """
    以只读模式打开最近一次练习记录
    """
    session = await service.open_attempt(exercise_id)
    return build_session_state(session, service)


@router.delete("/{exercise_id}")
async def abandon_session(exercise_id: str, service: PracticeService = Depends(get_practice_service)):
    """
    放弃练习会话
    """
    if not service.abandon(exercise_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="练习会话不存在"
        )
    return {"message": "练习会话已放弃", "exercise_id": exercise_id}
