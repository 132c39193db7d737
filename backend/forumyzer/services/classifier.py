"""
Comment classification.

Maps comments to a CommentCategory with a confidence score and a removal
decision. Two interchangeable strategies sit behind `CommentClassifier`:

- HeuristicClassifier: keyword rules, pure and deterministic, always available
- AI batches: comments are sent in batches of CLASSIFIER_BATCH_SIZE to a
  ClassificationBackend (Claude by default), all batches concurrently

A batch whose request fails or whose response cannot be parsed is classified
with the heuristics instead, so one bad batch never fails the whole call.

Usage:
------
classifier = get_comment_classifier()

classified = await classifier.classify_comments(comments)
tree = await classifier.classify_tree(threads)      # replies included
visible = remove_flagged(tree)
"""

import asyncio
import json
import re
from typing import Dict, List, Optional, Protocol

from anthropic import AsyncAnthropic

from forumyzer.core.config import settings
from forumyzer.core.logging import get_logger
from forumyzer.schemas.comments import Comment, CommentCategory

logger = get_logger(__name__)


HEURISTIC_REASON = "Keyword-based classification"
MISSING_REASON = "No classification returned for this comment"
DEFAULT_AI_CONFIDENCE = 0.8


class ClassificationParseError(ValueError):
    """Raised when an AI response is not the expected JSON array."""
    pass


# ========================================
# Heuristic Strategy
# ========================================

# Rule order matters: the first matching rule wins.
SPAM_PATTERN = re.compile(
    r"http|www\.|\.com|\.net|t\.me|discord\.gg|subscribe|check.*(channel|out)"
    r"|click.*link|free.*money|make.*\$|buy.*now",
    re.IGNORECASE,
)
BOT_PATTERN = re.compile(
    r"bot|automated|robot|i['’]?m a bot|generated|auto.?reply",
    re.IGNORECASE,
)
SHORT_GENERIC_PATTERN = re.compile(r"^(first|nice|cool|good|thanks)!*$", re.IGNORECASE)
TOXIC_PATTERN = re.compile(
    r"\b(hate|kill|die|kys|stupid|idiot|racist|f[*u]ck|sh[*i]t|b[*i]tch|a[*s]shole|retard|cancer)\b",
    re.IGNORECASE,
)
FEEDBACK_PATTERN = re.compile(
    r"suggest|recommend|improve|better|should|could|feedback|critique",
    re.IGNORECASE,
)
DISCUSSION_PATTERN = re.compile(
    r"because|however|therefore|interesting|analysis|perspective",
    re.IGNORECASE,
)


class HeuristicClassifier:
    """
    Keyword-based classifier.

    Rules, checked in this order on the lower-cased text:

    1. spam        links, shorteners, promotional phrases     0.85  removed
    2. bot         self-identifying or short generic reply    0.75
    3. toxic       insults and profanity (whole words)        0.90  removed
    4. question    contains "?" and longer than 10 chars      0.80
    5. feedback    suggestion vocabulary, longer than 30      0.75
    6. discussion  analytical connective, longer than 100     0.80
    7. genuine     anything else                              0.70
    """

    def classify_one(self, comment: Comment) -> Comment:
        text = (comment.text or "").lower()
        category = CommentCategory.GENUINE
        confidence = 0.7
        should_remove = False

        if SPAM_PATTERN.search(text):
            category = CommentCategory.SPAM
            confidence = 0.85
            should_remove = True
        elif BOT_PATTERN.search(text) or (
            len(text) < 20 and SHORT_GENERIC_PATTERN.match(text.strip())
        ):
            category = CommentCategory.BOT
            confidence = 0.75
        elif TOXIC_PATTERN.search(text):
            category = CommentCategory.TOXIC
            confidence = 0.9
            should_remove = True
        elif "?" in text and len(text) > 10:
            category = CommentCategory.QUESTION
            confidence = 0.8
        elif FEEDBACK_PATTERN.search(text) and len(text) > 30:
            category = CommentCategory.FEEDBACK
            confidence = 0.75
        elif len(text) > 100 and DISCUSSION_PATTERN.search(text):
            category = CommentCategory.DISCUSSION
            confidence = 0.8

        return comment.model_copy(update={
            "category": category,
            "confidence": confidence,
            "should_remove": should_remove,
            "classification_reason": HEURISTIC_REASON,
        })

    def classify(self, comments: List[Comment]) -> List[Comment]:
        return [self.classify_one(comment) for comment in comments]


# ========================================
# AI Backend
# ========================================

class ClassificationBackend(Protocol):
    """Anything that turns a classification prompt into raw response text."""

    async def classify_batch(self, prompt: str) -> str:
        ...


class AnthropicClassificationBackend:
    """
    Classification backend using the Claude API.

    Usage:
    ------
    backend = AnthropicClassificationBackend(api_key=settings.ANTHROPIC_API_KEY)
    raw = await backend.classify_batch(prompt)
    """

    SYSTEM_PROMPT = (
        "You are a YouTube comment moderation assistant. "
        "You reply with raw JSON only, never with markdown or prose."
    )

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None
    ):
        """
        Initialize the backend.

        Args:
            api_key: Anthropic API key (defaults to settings.ANTHROPIC_API_KEY)
            model: Claude model to use (defaults to settings.ANTHROPIC_MODEL)
            max_tokens: Maximum tokens in response
            temperature: Sampling temperature, kept low for stable labels

        Raises:
            ValueError: If no API key is provided or found in settings
        """
        self.api_key = api_key or settings.ANTHROPIC_API_KEY
        self.model = model or settings.ANTHROPIC_MODEL
        self.max_tokens = max_tokens or settings.ANTHROPIC_MAX_TOKENS
        self.temperature = settings.CLASSIFIER_TEMPERATURE if temperature is None else temperature

        if not self.api_key:
            raise ValueError("Anthropic API key is required. Set ANTHROPIC_API_KEY in environment.")

        self.client = AsyncAnthropic(api_key=self.api_key)

        logger.info("classification_backend_initialized", model=self.model)

    async def classify_batch(self, prompt: str) -> str:
        response = await self.client.messages.create(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            system=self.SYSTEM_PROMPT,
            messages=[{"role": "user", "content": prompt}]
        )
        return response.content[0].text


# ========================================
# Classifier
# ========================================

class CommentClassifier:
    """
    Classifies comments with an AI backend, degrading to keyword heuristics.

    Output always has the same length and order as the input, and every
    returned comment has a category. Inputs are never mutated.
    """

    def __init__(
        self,
        backend: Optional[ClassificationBackend] = None,
        batch_size: Optional[int] = None,
        heuristic: Optional[HeuristicClassifier] = None
    ):
        self.backend = backend
        self.batch_size = batch_size or settings.CLASSIFIER_BATCH_SIZE
        self.heuristic = heuristic or HeuristicClassifier()

    @property
    def ai_enabled(self) -> bool:
        return self.backend is not None

    async def classify_comments(
        self,
        comments: List[Comment],
        use_fallback: bool = False
    ) -> List[Comment]:
        """
        Classify a flat list of comments.

        Args:
            comments: Comments to classify (replies are not looked at)
            use_fallback: Force the keyword heuristics even if AI is available

        Returns:
            New Comment objects with category, confidence, should_remove and
            classification_reason set
        """
        if not comments:
            return []

        if use_fallback or not self.ai_enabled:
            logger.debug("classifying_with_heuristics", comments=len(comments))
            return self.heuristic.classify(comments)

        batches = [
            comments[i:i + self.batch_size]
            for i in range(0, len(comments), self.batch_size)
        ]

        logger.info("classifying_with_ai", comments=len(comments), batches=len(batches))

        results = await asyncio.gather(
            *(self._classify_batch(batch) for batch in batches)
        )

        return [comment for batch in results for comment in batch]

    async def classify_tree(
        self,
        threads: List[Comment],
        use_fallback: bool = False
    ) -> List[Comment]:
        """
        Classify every comment in a thread tree (top-level comments and replies).

        The tree is flattened with an explicit stack so that all comments go
        through a single classify_comments call, then rebuilt with the same
        shape and order.
        """
        nodes: List[Comment] = []
        children: List[List[int]] = []
        roots: List[int] = []

        stack = [(thread, None) for thread in reversed(threads)]
        while stack:
            comment, parent = stack.pop()
            index = len(nodes)
            nodes.append(comment)
            children.append([])
            if parent is None:
                roots.append(index)
            else:
                children[parent].append(index)
            for reply in reversed(comment.replies):
                stack.append((reply, index))

        classified = await self.classify_comments(nodes, use_fallback=use_fallback)

        # Pre-order numbering puts every child after its parent, so building
        # from the back always finds the children ready.
        built: List[Optional[Comment]] = [None] * len(nodes)
        for index in range(len(nodes) - 1, -1, -1):
            built[index] = classified[index].model_copy(update={
                "replies": [built[child] for child in children[index]]
            })

        return [built[index] for index in roots]

    async def _classify_batch(self, batch: List[Comment]) -> List[Comment]:
        """Classify one batch with the backend, or heuristically if that fails."""
        prompt = self.build_prompt(batch)

        try:
            raw = await self.backend.classify_batch(prompt)
        except Exception as e:
            logger.warning(
                "ai_batch_request_failed",
                batch_size=len(batch),
                error=str(e),
                error_type=type(e).__name__,
            )
            return self.heuristic.classify(batch)

        try:
            return self.parse_response(raw, batch)
        except ClassificationParseError as e:
            logger.warning("ai_batch_parse_failed", batch_size=len(batch), error=str(e))
            return self.heuristic.classify(batch)

    @staticmethod
    def build_prompt(comments: List[Comment]) -> str:
        """
        Build the classification prompt for one batch.

        Comments are numbered from 1; the model answers with those numbers.
        """
        comment_list = "\n\n".join(
            f"{idx + 1}. Author: {comment.author}\n   Text: {comment.text}"
            for idx, comment in enumerate(comments)
        )

        return f"""You are a YouTube comment analyzer. Classify each comment into ONE of these categories:
- spam: Promotional content, links, "check out my channel", scams
- bot: Automated messages, repetitive generic comments
- toxic: Hate speech, harassment, offensive language, personal attacks
- question: Questions about the video or topic
- feedback: Constructive criticism or suggestions
- discussion: Thoughtful discussion or analysis
- genuine: Positive reactions, appreciation, simple comments

For each comment, also detect if it should be REMOVED (spam, severe toxicity, or clear bot).

Comments to classify:
{comment_list}

Respond ONLY with JSON array format (no markdown):
[
  {{"index": 1, "category": "spam", "confidence": 0.95, "remove": true, "reason": "Contains promotional link"}},
  {{"index": 2, "category": "genuine", "confidence": 0.85, "remove": false, "reason": "Positive reaction"}}
]"""

    @staticmethod
    def parse_response(raw: str, comments: List[Comment]) -> List[Comment]:
        """
        Parse a model response into classified copies of `comments`.

        Raises:
            ClassificationParseError: If the response is not a JSON array of
                objects with an integer index and a known category
        """
        clean = re.sub(r"```json\n?", "", raw or "")
        clean = re.sub(r"```\n?", "", clean).strip()

        try:
            data = json.loads(clean)
        except json.JSONDecodeError as e:
            raise ClassificationParseError(f"Response is not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise ClassificationParseError("Response is not a JSON array")

        by_index: Dict[int, dict] = {}
        for entry in data:
            if not isinstance(entry, dict):
                raise ClassificationParseError("Array entries must be objects")
            index = entry.get("index")
            if isinstance(index, bool) or not isinstance(index, int):
                raise ClassificationParseError(f"Invalid index: {index!r}")
            try:
                CommentCategory(entry.get("category"))
            except ValueError as e:
                raise ClassificationParseError(f"Unknown category: {entry.get('category')!r}") from e
            by_index.setdefault(index, entry)

        classified = []
        for idx, comment in enumerate(comments):
            entry = by_index.get(idx + 1)

            if entry is None:
                classified.append(comment.model_copy(update={
                    "category": CommentCategory.GENUINE,
                    "confidence": 0.5,
                    "should_remove": False,
                    "classification_reason": MISSING_REASON,
                }))
                continue

            confidence = entry.get("confidence")
            if isinstance(confidence, bool) or not isinstance(confidence, (int, float)):
                confidence = DEFAULT_AI_CONFIDENCE

            classified.append(comment.model_copy(update={
                "category": CommentCategory(entry["category"]),
                "confidence": min(max(float(confidence), 0.0), 1.0),
                "should_remove": bool(entry.get("remove", False)),
                "classification_reason": str(entry.get("reason") or ""),
            }))

        return classified


# ========================================
# Filtering
# ========================================

def remove_flagged(comments: List[Comment]) -> List[Comment]:
    """
    Drop every comment marked should_remove, at every level of the tree.

    Returns new lists; the input comments are left untouched.
    """
    kept = []
    for comment in comments:
        if comment.should_remove:
            continue
        if comment.replies:
            comment = comment.model_copy(update={"replies": remove_flagged(comment.replies)})
        kept.append(comment)
    return kept


# ========================================
# Helper Functions
# ========================================

_classifier: Optional[CommentClassifier] = None


def get_comment_classifier() -> CommentClassifier:
    """
    Get or create the global classifier.

    Uses Claude when ANTHROPIC_API_KEY is configured, keyword heuristics otherwise.
    """
    global _classifier

    if _classifier is None:
        backend = None
        if settings.ANTHROPIC_API_KEY:
            backend = AnthropicClassificationBackend()
        else:
            logger.warning("anthropic_api_key_missing", fallback="heuristic")
        _classifier = CommentClassifier(backend=backend)

    return _classifier
