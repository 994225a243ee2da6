import pytest

from translation_practice.practice.penalty import PenaltyScorer, calculate_exercise_points
from translation_practice.practice.records import DifficultyLevel, SentenceProgress


def _sentence(score=None, incorrect=0, retries=0, completed=True):
    return SentenceProgress(original="句子。", translation="Sentence.", is_completed=completed,
                            accuracy_score=score, incorrect_attempts=incorrect, retry_count=retries)


def test_final_score_subtracts_penalties():
    """两次错误提交、一次重做：90 - (2*4 + 1*5) = 77"""
    metrics = PenaltyScorer().compute_final_score([_sentence(90, incorrect=2, retries=1)])
    assert metrics.base_score == 90
    assert metrics.total_incorrect_attempts == 2
    assert metrics.total_retries == 1
    assert metrics.total_penalty == 13
    assert metrics.final_score == 77


def test_final_score_never_negative():
    metrics = PenaltyScorer().compute_final_score([_sentence(10, incorrect=5, retries=3)])
    assert metrics.final_score == 0


def test_no_completed_sentences_gives_no_result():
    scorer = PenaltyScorer()
    assert scorer.compute_final_score([_sentence(completed=False, incorrect=3)]) is None
    assert scorer.compute_final_score([]) is None
    assert scorer.compute_current_penalty([]) is None


def test_base_score_averages_only_completed_sentences():
    sentences = [_sentence(80), _sentence(completed=False, incorrect=1)]
    metrics = PenaltyScorer().compute_final_score(sentences)
    assert metrics.base_score == 80
    assert metrics.final_score == 76


def test_rounding_is_half_up():
    metrics = PenaltyScorer().compute_final_score([_sentence(90), _sentence(91)])
    assert metrics.base_score == 91
    assert metrics.final_score == 91


def test_custom_penalty_constants():
    scorer = PenaltyScorer(incorrect_attempt_penalty=10, retry_penalty=0)
    metrics = scorer.compute_final_score([_sentence(95, incorrect=1, retries=2)])
    assert metrics.total_penalty == 10
    assert metrics.final_score == 85


def test_current_penalty_reports_running_score():
    current = PenaltyScorer().compute_current_penalty([_sentence(100, retries=1), _sentence(90)])
    assert current.current_average == 95
    assert current.total_penalty == 5
    assert current.current_score == 90


@pytest.mark.parametrize("level, attempts, points", [
    (DifficultyLevel.BEGINNER, 0, 50),
    (DifficultyLevel.INTERMEDIATE, 0, 100),
    ("advanced", 0, 150),
    ("intermediate", 1, 80),
    ("advanced", 2, 96),
    ("intermediate", 10, 20),
    ("unknown", 0, 100),
])
def test_exercise_points(level, attempts, points):
    assert calculate_exercise_points(level, attempts) == points


def test_more_mistakes_never_raise_final_score():
    scorer = PenaltyScorer()
    for accuracy in (40, 90, 100):
        for incorrect in range(6):
            for retries in range(6):
                current = scorer.compute_final_score([_sentence(accuracy, incorrect, retries)]).final_score
                more_incorrect = scorer.compute_final_score([_sentence(accuracy, incorrect + 1, retries)]).final_score
                more_retries = scorer.compute_final_score([_sentence(accuracy, incorrect, retries + 1)]).final_score
                assert more_incorrect <= current
                assert more_retries <= current
