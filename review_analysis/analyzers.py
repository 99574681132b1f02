import json
import logging
import re
from dataclasses import dataclass, field
from typing import List

import openai
import requests
from django.conf import settings

from utils import errors
from utils.fallback import FallbackOrchestrator, Tier
from utils.http_client import request_json

logger = logging.getLogger("rest_framework")

SENTIMENTS = ("positive", "negative", "neutral")

POSITIVE_WORDS = (
    "good", "great", "excellent", "amazing", "love",
    "perfect", "recommend", "awesome", "fantastic", "wonderful",
)
NEGATIVE_WORDS = (
    "bad", "terrible", "awful", "hate", "worst",
    "horrible", "disappointing", "useless", "broken", "waste",
)
STOP_WORDS = frozenset({
    "this", "that", "with", "have", "will", "from", "they", "been", "were",
    "said", "each", "which", "their", "time", "would", "there", "could", "other",
})
MAX_KEYWORDS = 5


@dataclass(frozen=True)
class AnalysisRequest:
    title: str
    content: str
    rating: int
    product_name: str = ""

    @classmethod
    def from_review(cls, review):
        return cls(
            title=review.title,
            content=review.content,
            rating=review.rating,
            product_name=review.product_name,
        )


@dataclass
class AnalysisResult:
    sentiment: str
    score: float
    confidence: float
    summary: str
    keywords: List[str] = field(default_factory=list)
    is_fake: bool = False
    fake_confidence: float = 0.0
    provider: str = "fallback"

    def as_fields(self):
        """Review model fields written back by the enrichment pipeline."""
        return {
            "sentiment": self.sentiment,
            "sentiment_score": self.score,
            "summary": self.summary,
            "keywords": list(self.keywords),
            "is_fake": self.is_fake,
            "fake_confidence": self.fake_confidence,
            "ai_provider": self.provider,
        }


def clamp(value, low=-1.0, high=1.0):
    return max(low, min(high, value))


def extract_keywords(text):
    words = re.sub(r"[^\w\s]", "", text.lower()).split()
    keywords = []
    for word in words:
        if len(word) > 3 and word not in STOP_WORDS and word not in keywords:
            keywords.append(word)
            if len(keywords) == MAX_KEYWORDS:
                break
    return keywords


def build_summary(sentiment, product_name, rating):
    return f"{sentiment.capitalize()} review about {product_name or 'this product'} with {rating}/5 rating."


def detect_fake(content):
    too_short = len(content) < 20
    is_fake = too_short or len(content.split(" ")) < 10
    return is_fake, 0.8 if too_short else 0.2


class HeuristicAnalyzer(Tier):
    """Keyword counting over fixed word lists. Never fails."""

    name = "fallback"
    CONFIDENCE = 0.6

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        text = f"{request.title} {request.content}".lower()
        positive = sum(1 for word in POSITIVE_WORDS if word in text)
        negative = sum(1 for word in NEGATIVE_WORDS if word in text)
        rating = request.rating

        if rating >= 4 or positive > negative:
            sentiment = "positive"
            score = 0.3 + (rating - 3) * 0.2 + positive * 0.1
        elif rating <= 2 or negative > positive:
            sentiment = "negative"
            score = -0.3 - (3 - rating) * 0.2 - negative * 0.1
        else:
            sentiment = "neutral"
            score = (rating - 3) * 0.1

        is_fake, fake_confidence = detect_fake(request.content)
        return AnalysisResult(
            sentiment=sentiment,
            score=round(clamp(score), 4),
            confidence=self.CONFIDENCE,
            summary=build_summary(sentiment, request.product_name, rating),
            keywords=extract_keywords(text),
            is_fake=is_fake,
            fake_confidence=fake_confidence,
            provider="fallback",
        )


def _is_number(value):
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def parse_remote_analysis(text, provider):
    """
    Parses a JSON analysis produced by a remote model. Anything that does not
    match the result shape is treated as an unavailable tier.
    """
    start, end = (text or "").find("{"), (text or "").rfind("}")
    if start == -1 or end <= start:
        raise errors.UpstreamUnavailableError(f"{provider} returned no JSON object.")
    try:
        data = json.loads(text[start:end + 1])
    except ValueError as exc:
        raise errors.UpstreamUnavailableError(f"{provider} returned invalid JSON.") from exc

    valid = (
        isinstance(data, dict)
        and data.get("sentiment") in SENTIMENTS
        and _is_number(data.get("score"))
        and _is_number(data.get("confidence"))
        and isinstance(data.get("summary"), str)
        and isinstance(data.get("keywords"), list)
        and isinstance(data.get("isFake"), bool)
        and _is_number(data.get("fakeConfidence"))
    )
    if not valid:
        raise errors.UpstreamUnavailableError(f"{provider} analysis does not match the expected shape.")

    return AnalysisResult(
        sentiment=data["sentiment"],
        score=clamp(float(data["score"])),
        confidence=clamp(float(data["confidence"]), 0.0, 1.0),
        summary=data["summary"][:500],
        keywords=[str(word) for word in data["keywords"]][:10],
        is_fake=data["isFake"],
        fake_confidence=clamp(float(data["fakeConfidence"]), 0.0, 1.0),
        provider=provider,
    )


class OpenAIAnalyzer(Tier):
    name = "openai"
    SYSTEM_PROMPT = (
        "You are an expert sentiment analysis and fake review detection AI. "
        "Respond only with valid JSON."
    )

    def __init__(self, api_key, model="gpt-3.5-turbo", client=None, timeout=10):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client = client

    @property
    def client(self):
        """Lazy-load the OpenAI client."""
        if self._client is None:
            self._client = openai.OpenAI(api_key=self.api_key, timeout=self.timeout, max_retries=0)
        return self._client

    def build_prompt(self, request):
        return (
            "Analyze this product review for sentiment, authenticity, and provide a summary:\n\n"
            f"Product: {request.product_name}\n"
            f"Title: {request.title}\n"
            f"Rating: {request.rating}/5\n"
            f"Review: {request.content}\n\n"
            "Respond with JSON: {\n"
            '  "sentiment": "positive|negative|neutral",\n'
            '  "score": number between -1 and 1,\n'
            '  "confidence": number between 0 and 1,\n'
            '  "summary": "brief summary",\n'
            '  "keywords": ["array", "of", "keywords"],\n'
            '  "isFake": boolean,\n'
            '  "fakeConfidence": number between 0 and 1\n'
            "}"
        )

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": self.SYSTEM_PROMPT},
                    {"role": "user", "content": self.build_prompt(request)},
                ],
                temperature=0.3,
                max_tokens=500,
            )
        except openai.OpenAIError as exc:
            raise errors.UpstreamUnavailableError(f"OpenAI analysis failed: {exc}") from exc

        if not response.choices:
            raise errors.UpstreamUnavailableError("OpenAI returned no choices.")
        return parse_remote_analysis(response.choices[0].message.content, provider="openai")


class HuggingFaceAnalyzer(Tier):
    """
    Secondary AI tier: a hosted sentiment classifier. It only labels sentiment,
    so keywords, summary and fake detection come from the heuristic.
    """

    name = "huggingface"
    API_URL = "https://api-inference.huggingface.co/models/{model}"
    NEUTRAL_BELOW = 0.6

    def __init__(self, api_key, model="distilbert-base-uncased-finetuned-sst-2-english", session=None, timeout=10):
        self.api_key = api_key
        self.model = model
        self.session = session or requests.Session()
        self.timeout = timeout
        self.heuristic = HeuristicAnalyzer()

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        try:
            payload = request_json(
                "POST",
                self.API_URL.format(model=self.model),
                session=self.session,
                token=self.api_key,
                timeout=self.timeout,
                json={"inputs": f"{request.title}. {request.content}"[:2000]},
            )
        except errors.UpstreamUnavailableError:
            raise
        except errors.FeedbackError as exc:
            raise errors.UpstreamUnavailableError(f"HuggingFace rejected the request: {exc.message}") from exc

        labels = payload[0] if isinstance(payload, list) and payload and isinstance(payload[0], list) else payload
        try:
            best = max(labels, key=lambda item: item["score"])
            label, confidence = str(best["label"]).lower(), float(best["score"])
        except (TypeError, KeyError, ValueError) as exc:
            raise errors.UpstreamUnavailableError("HuggingFace response could not be parsed.") from exc

        if confidence < self.NEUTRAL_BELOW:
            sentiment, score = "neutral", 0.0
        elif label.startswith("pos") or label == "label_1":
            sentiment, score = "positive", confidence
        else:
            sentiment, score = "negative", -confidence

        base = self.heuristic.analyze(request)
        return AnalysisResult(
            sentiment=sentiment,
            score=round(score, 4),
            confidence=round(confidence, 4),
            summary=build_summary(sentiment, request.product_name, request.rating),
            keywords=base.keywords,
            is_fake=base.is_fake,
            fake_confidence=base.fake_confidence,
            provider="huggingface",
        )


class AnalyzerChain:
    """
    Cloud AI -> secondary AI -> heuristic. Remote tiers are not retried; any
    failure falls straight through and the heuristic always answers.
    """

    def __init__(self, analyzers=None):
        analyzers = list(analyzers or [])
        if not any(isinstance(analyzer, HeuristicAnalyzer) for analyzer in analyzers):
            analyzers.append(HeuristicAnalyzer())
        self.analyzers = analyzers
        self.orchestrator = FallbackOrchestrator(analyzers)

    @property
    def mode(self):
        return self.analyzers[0].name

    def analyze(self, request: AnalysisRequest) -> AnalysisResult:
        return self.orchestrator.run("analyze", request=request).value

    @classmethod
    def from_settings(cls):
        analyzers = []
        if settings.ENABLE_AI:
            if settings.OPENAI_API_KEY:
                analyzers.append(OpenAIAnalyzer(settings.OPENAI_API_KEY, model=settings.OPENAI_MODEL))
            if settings.HUGGINGFACE_API_KEY:
                analyzers.append(HuggingFaceAnalyzer(settings.HUGGINGFACE_API_KEY, model=settings.HUGGINGFACE_MODEL))
        return cls(analyzers)
