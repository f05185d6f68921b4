"""Unit tests for keyword intent scoring and the LLM fallback."""
import pytest

from app.services.intent_classifier import (
    classify_by_keywords,
    classify_intent,
    extract_keywords,
    extract_learning_goals,
)
from app.services.tortoise_llm import LLMServiceError, TortoiseLLMService


class _StubLLM(TortoiseLLMService):
    def __init__(self, reply=None, error=None):
        super().__init__(api_key="test-key")
        self.reply = reply
        self.error = error
        self.calls = 0

    async def classify_intent(self, message):
        self.calls += 1
        if self.error:
            raise self.error
        return self.reply


def test_book_keywords_score_book_request():
    result = classify_by_keywords("Can you recommend a book to read?")
    assert result["intent"] == "book_request"
    # "book", "read", "recommend" out of 8 keywords
    assert result["confidence"] == pytest.approx(3 / 8)


def test_no_keywords_is_general_with_zero_confidence():
    assert classify_by_keywords("hello there") == {"intent": "general", "confidence": 0.0}


def test_earlier_pattern_wins_a_tie():
    # one book keyword and one challenge keyword: both 1/8
    result = classify_by_keywords("novel skill")
    assert result["intent"] == "book_request"


def test_progress_phrase_matches():
    result = classify_by_keywords("How am I doing with my progress?")
    assert result["intent"] == "progress_inquiry"


@pytest.mark.asyncio
async def test_confident_keywords_skip_the_llm():
    llm = _StubLLM(reply={"intent": "general", "confidence": 0.9})
    message = "challenge practice exercise learn skill improve training bootcamp"
    result = await classify_intent(message, llm)
    assert result == {"intent": "challenge_request", "confidence": 1.0}
    assert llm.calls == 0


@pytest.mark.asyncio
async def test_uncertain_keywords_ask_the_llm():
    llm = _StubLLM(reply={"intent": "plan_request", "confidence": 0.92})
    result = await classify_intent("where should I begin?", llm)
    assert result == {"intent": "plan_request", "confidence": 0.92}
    assert llm.calls == 1


@pytest.mark.asyncio
async def test_llm_failure_is_general_with_low_confidence():
    llm = _StubLLM(error=LLMServiceError("boom"))
    # "book" alone is a weak keyword match, so the LLM is consulted
    result = await classify_intent("any good book?", llm)
    assert result == {"intent": "general", "confidence": 0.3}
    assert llm.calls == 1


@pytest.mark.asyncio
async def test_disabled_llm_returns_keyword_result():
    result = await classify_intent("motivation please", TortoiseLLMService(api_key=""))
    assert result["intent"] == "motivation_request"


def test_extract_keywords_drops_short_and_stop_words():
    assert extract_keywords("What are the best Python books, for me?") == [
        "best",
        "python",
        "books",
    ]


def test_extract_learning_goals():
    goals = extract_learning_goals("I want to get better at Python and public speaking")
    assert goals == ["programming", "communication"]
