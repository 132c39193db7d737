"""
Unit tests for comment classification.

The AI backend is always a mock; no request ever reaches Anthropic.
"""

import json
import re
from unittest.mock import AsyncMock, Mock, patch

import pytest

from forumyzer.schemas.comments import Comment, CommentCategory
from forumyzer.services import classifier as classifier_module
from forumyzer.services.classifier import (
    HEURISTIC_REASON,
    MISSING_REASON,
    AnthropicClassificationBackend,
    ClassificationParseError,
    CommentClassifier,
    HeuristicClassifier,
    get_comment_classifier,
    remove_flagged,
)


def _indices_in_prompt(prompt: str):
    return [int(n) for n in re.findall(r"^(\d+)\. Author:", prompt, re.MULTILINE)]


def _answer_all(category: str, remove: bool = False):
    """Backend side effect answering every comment of a prompt with one category."""
    async def _classify(prompt: str) -> str:
        return json.dumps([
            {"index": i, "category": category, "confidence": 0.9, "remove": remove, "reason": "mock"}
            for i in _indices_in_prompt(prompt)
        ])
    return _classify


class TestHeuristicClassifier:
    """Keyword rules."""

    @pytest.fixture
    def heuristic(self):
        return HeuristicClassifier()

    @pytest.mark.parametrize("text, category, remove", [
        ("check out my channel http://x.com", CommentCategory.SPAM, True),
        ("Join us at discord.gg/abc", CommentCategory.SPAM, True),
        ("first", CommentCategory.BOT, False),
        ("Thanks!!", CommentCategory.BOT, False),
        ("I'm a bot and this reply was automated", CommentCategory.BOT, False),
        ("you are an idiot", CommentCategory.TOXIC, True),
        ("How did you set up the lighting in this scene?", CommentCategory.QUESTION, False),
        ("You should improve the audio quality in the next video", CommentCategory.FEEDBACK, False),
        (
            "This is interesting because the historical context explains a lot of the "
            "decisions made by the main character in the final act.",
            CommentCategory.DISCUSSION,
            False,
        ),
        ("Nice explanation, thanks for sharing", CommentCategory.GENUINE, False),
        ("why?", CommentCategory.GENUINE, False),
        ("", CommentCategory.GENUINE, False),
    ])
    def test_rules(self, heuristic, text, category, remove):
        result = heuristic.classify_one(Comment(id="c", text=text))

        assert result.category == category
        assert result.should_remove is remove
        assert result.classification_reason == HEURISTIC_REASON

    @pytest.mark.parametrize("text, category", [
        ("you idiot, subscribe to me", CommentCategory.SPAM),
        ("I hate bots", CommentCategory.BOT),
        ("are you stupid or what?", CommentCategory.TOXIC),
        ("should you improve the audio next time?", CommentCategory.QUESTION),
        (
            "I think you should slow down the intro because new viewers need more "
            "time to follow the setup before the main part starts",
            CommentCategory.FEEDBACK,
        ),
    ])
    def test_earlier_rule_wins(self, heuristic, text, category):
        assert heuristic.classify_one(Comment(id="c", text=text)).category == category

    def test_confidences(self, heuristic):
        texts = {
            "buy now at www.shop.example": 0.85,
            "nice": 0.75,
            "I hate this": 0.9,
            "Is this available in 4k?": 0.8,
            "hello there": 0.7,
        }
        for text, confidence in texts.items():
            assert heuristic.classify_one(Comment(id="c", text=text)).confidence == confidence

    def test_deterministic_and_pure(self, heuristic, sample_comments):
        before = [c.model_copy(deep=True) for c in sample_comments]

        first = heuristic.classify(sample_comments)
        second = heuristic.classify(sample_comments)

        assert first == second
        assert sample_comments == before
        assert all(c.category is None for c in sample_comments)


class TestCommentClassifier:
    """Batching, AI parsing and fallback."""

    @pytest.mark.asyncio
    async def test_empty_input(self):
        backend = AsyncMock()
        classifier = CommentClassifier(backend=backend)

        assert await classifier.classify_comments([]) == []
        backend.classify_batch.assert_not_called()

    @pytest.mark.asyncio
    async def test_without_backend_uses_heuristics(self, sample_comments):
        classifier = CommentClassifier(backend=None)

        result = await classifier.classify_comments(sample_comments)

        assert not classifier.ai_enabled
        assert [c.category for c in result] == [
            CommentCategory.SPAM,
            CommentCategory.BOT,
            CommentCategory.QUESTION,
        ]

    @pytest.mark.asyncio
    async def test_use_fallback_skips_backend(self, sample_comments):
        backend = AsyncMock()
        classifier = CommentClassifier(backend=backend)

        result = await classifier.classify_comments(sample_comments, use_fallback=True)

        backend.classify_batch.assert_not_called()
        assert all(c.classification_reason == HEURISTIC_REASON for c in result)

    @pytest.mark.asyncio
    async def test_batches_preserve_order(self, make_comment):
        comments = [make_comment(f"c{i}", f"comment number {i}") for i in range(5)]
        backend = AsyncMock()
        backend.classify_batch.side_effect = _answer_all("discussion")
        classifier = CommentClassifier(backend=backend, batch_size=2)

        result = await classifier.classify_comments(comments)

        assert backend.classify_batch.await_count == 3
        assert [c.id for c in result] == [f"c{i}" for i in range(5)]
        assert all(c.category == CommentCategory.DISCUSSION for c in result)
        assert all(c.classification_reason == "mock" for c in result)

    @pytest.mark.asyncio
    async def test_backend_error_falls_back_per_batch(self, make_comment):
        comments = [
            make_comment("a", "first"),
            make_comment("b", "nice"),
            make_comment("c", "check out my channel http://x.com"),
        ]
        calls = []

        async def _flaky(prompt: str) -> str:
            calls.append(prompt)
            if len(calls) == 1:
                raise RuntimeError("overloaded")
            return await _answer_all("genuine")(prompt)

        backend = AsyncMock()
        backend.classify_batch.side_effect = _flaky
        classifier = CommentClassifier(backend=backend, batch_size=2)

        result = await classifier.classify_comments(comments)

        assert len(result) == 3
        assert all(c.category is not None for c in result)
        # One batch went to the heuristics, the other kept the AI answer
        reasons = {c.classification_reason for c in result}
        assert reasons == {HEURISTIC_REASON, "mock"}

    @pytest.mark.asyncio
    async def test_unparseable_response_falls_back(self, sample_comments):
        backend = AsyncMock()
        backend.classify_batch.return_value = "Sorry, I can't help with that."
        classifier = CommentClassifier(backend=backend)

        result = await classifier.classify_comments(sample_comments)

        assert len(result) == len(sample_comments)
        assert result[0].category == CommentCategory.SPAM
        assert all(c.classification_reason == HEURISTIC_REASON for c in result)

    @pytest.mark.asyncio
    async def test_classify_tree_keeps_shape(self, make_comment):
        threads = [
            make_comment("t1", "hello", replies=[
                make_comment("t1r1", "you are an idiot"),
                make_comment("t1r2", "Where was this filmed?"),
            ]),
            make_comment("t2", "first"),
        ]

        result = await CommentClassifier().classify_tree(threads)

        assert [t.id for t in result] == ["t1", "t2"]
        assert [r.id for r in result[0].replies] == ["t1r1", "t1r2"]
        assert result[0].replies[0].category == CommentCategory.TOXIC
        assert result[0].replies[1].category == CommentCategory.QUESTION
        assert result[1].category == CommentCategory.BOT
        # Input untouched
        assert threads[0].replies[0].category is None

    @pytest.mark.asyncio
    async def test_classify_tree_sends_replies_in_one_call(self, make_comment):
        threads = [make_comment("t1", "hello", replies=[make_comment("r1", "hi")])]
        backend = AsyncMock()
        backend.classify_batch.side_effect = _answer_all("genuine")

        result = await CommentClassifier(backend=backend).classify_tree(threads)

        backend.classify_batch.assert_awaited_once()
        prompt = backend.classify_batch.await_args.args[0]
        assert _indices_in_prompt(prompt) == [1, 2]
        assert result[0].replies[0].classification_reason == "mock"


class TestParseResponse:
    """AI response parsing."""

    @pytest.fixture
    def comments(self, make_comment):
        return [make_comment("a", "one"), make_comment("b", "two")]

    def test_valid_response(self, comments):
        raw = json.dumps([
            {"index": 1, "category": "spam", "confidence": 0.95, "remove": True, "reason": "link"},
            {"index": 2, "category": "question", "confidence": 0.6, "remove": False, "reason": "asks"},
        ])

        result = CommentClassifier.parse_response(raw, comments)

        assert result[0].category == CommentCategory.SPAM
        assert result[0].should_remove is True
        assert result[0].confidence == 0.95
        assert result[1].category == CommentCategory.QUESTION
        assert result[1].classification_reason == "asks"

    def test_markdown_fences_are_stripped(self, comments):
        raw = '```json\n[{"index": 1, "category": "toxic", "confidence": 0.9, "remove": true, "reason": "x"}]\n```'

        result = CommentClassifier.parse_response(raw, comments)

        assert result[0].category == CommentCategory.TOXIC

    def test_missing_entry_defaults_to_genuine(self, comments):
        raw = json.dumps([{"index": 1, "category": "spam", "confidence": 0.9, "remove": True, "reason": "x"}])

        result = CommentClassifier.parse_response(raw, comments)

        assert result[1].category == CommentCategory.GENUINE
        assert result[1].confidence == 0.5
        assert result[1].should_remove is False
        assert result[1].classification_reason == MISSING_REASON

    def test_first_duplicate_index_wins(self, comments):
        raw = json.dumps([
            {"index": 1, "category": "bot", "confidence": 0.9, "remove": False, "reason": "first"},
            {"index": 1, "category": "spam", "confidence": 0.9, "remove": True, "reason": "second"},
        ])

        result = CommentClassifier.parse_response(raw, comments)

        assert result[0].category == CommentCategory.BOT
        assert result[0].classification_reason == "first"

    def test_confidence_is_clamped_or_defaulted(self, comments):
        raw = json.dumps([
            {"index": 1, "category": "genuine", "confidence": 1.7, "remove": False, "reason": ""},
            {"index": 2, "category": "genuine", "confidence": "high", "remove": False, "reason": ""},
        ])

        result = CommentClassifier.parse_response(raw, comments)

        assert result[0].confidence == 1.0
        assert result[1].confidence == 0.8

    @pytest.mark.parametrize("raw", [
        "not json",
        '{"index": 1, "category": "spam"}',
        '[{"index": "1", "category": "spam"}]',
        '[{"index": true, "category": "spam"}]',
        '[{"index": 1, "category": "advert"}]',
        '["spam"]',
    ])
    def test_invalid_responses_raise(self, comments, raw):
        with pytest.raises(ClassificationParseError):
            CommentClassifier.parse_response(raw, comments)

    def test_prompt_numbers_comments_from_one(self, make_comment):
        prompt = CommentClassifier.build_prompt([
            make_comment("a", "hello", author="Ann"),
            make_comment("b", "bye", author="Bob"),
        ])

        assert "1. Author: Ann\n   Text: hello" in prompt
        assert "2. Author: Bob\n   Text: bye" in prompt


class TestRemoveFlagged:

    def test_removes_at_every_level(self, make_comment):
        threads = [
            make_comment("keep", replies=[
                make_comment("drop-reply", should_remove=True),
                make_comment("keep-reply", should_remove=False),
            ]),
            make_comment("drop", should_remove=True, replies=[make_comment("orphan")]),
        ]

        result = remove_flagged(threads)

        assert [t.id for t in result] == ["keep"]
        assert [r.id for r in result[0].replies] == ["keep-reply"]
        # Input untouched
        assert len(threads[0].replies) == 2


class TestAnthropicBackend:

    def test_requires_api_key(self):
        with pytest.raises(ValueError):
            AnthropicClassificationBackend(api_key=None)

    @pytest.mark.asyncio
    async def test_classify_batch_calls_messages_api(self):
        with patch('forumyzer.services.classifier.AsyncAnthropic') as mock_anthropic:
            mock_client = Mock()
            mock_client.messages.create = AsyncMock(return_value=Mock(content=[Mock(text="[]")]))
            mock_anthropic.return_value = mock_client

            backend = AnthropicClassificationBackend(api_key="test_key", model="test-model")
            raw = await backend.classify_batch("prompt")

        assert raw == "[]"
        kwargs = mock_client.messages.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["system"] == AnthropicClassificationBackend.SYSTEM_PROMPT
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]


def test_get_comment_classifier_without_key_uses_heuristics(monkeypatch):
    monkeypatch.setattr(classifier_module, "_classifier", None)
    monkeypatch.setattr(classifier_module.settings, "ANTHROPIC_API_KEY", None)

    classifier = get_comment_classifier()

    assert not classifier.ai_enabled
    assert get_comment_classifier() is classifier
