import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import openai
import pytest

from review_analysis.analyzers import (
    AnalysisRequest,
    AnalyzerChain,
    HeuristicAnalyzer,
    HuggingFaceAnalyzer,
    OpenAIAnalyzer,
    parse_remote_analysis,
)
from utils import errors

from .conftest import http_response


def _request(content, rating=5, title="Great phone"):
    return AnalysisRequest(title=title, content=content, rating=rating, product_name="Pixel 8")


def _chat_response(text):
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


class TestHeuristicAnalyzer:
    def test_positive_long_review(self):
        result = HeuristicAnalyzer().analyze(_request(
            "This phone is excellent, the battery lasts two days and I would recommend it to anyone."
        ))

        assert result.sentiment == "positive"
        assert result.score > 0
        assert result.is_fake is False
        assert result.fake_confidence == 0.2
        assert result.provider == "fallback"
        assert result.confidence == 0.6
        assert result.summary == "Positive review about Pixel 8 with 5/5 rating."

    def test_short_review_is_flagged_fake(self):
        result = HeuristicAnalyzer().analyze(_request("Bad phone.", rating=1, title="Meh"))

        assert result.sentiment == "negative"
        assert result.is_fake is True
        assert result.fake_confidence == 0.8

    def test_few_words_but_long_text_is_fake_with_low_confidence(self):
        result = HeuristicAnalyzer().analyze(_request("Unbelievably disappointing experience overall", rating=2))

        assert result.is_fake is True
        assert result.fake_confidence == 0.2

    def test_neutral_for_middle_rating_without_keywords(self):
        result = HeuristicAnalyzer().analyze(_request(
            "It arrived on a Tuesday in a brown box and works as described by the seller.",
            rating=3,
            title="Arrived",
        ))

        assert result.sentiment == "neutral"
        assert result.score == 0

    def test_score_is_clamped(self):
        result = HeuristicAnalyzer().analyze(_request(
            "good great excellent amazing love perfect recommend awesome fantastic wonderful indeed",
        ))
        assert result.score == 1.0

    def test_keywords_skip_short_and_stop_words(self):
        result = HeuristicAnalyzer().analyze(_request(
            "This screen would have been brighter with better panels, screen aside.",
            title="Okay",
        ))

        assert result.keywords == ["okay", "screen", "brighter", "better", "panels"]

    def test_documented_positive_example(self):
        result = HeuristicAnalyzer().analyze(_request(
            "This product is absolutely great and amazing, I love it so much",
            title="Great",
        ))

        assert result.sentiment == "positive"
        assert result.score == pytest.approx(1.0)
        assert result.is_fake is False
        assert result.fake_confidence == 0.2
        assert result.keywords == ["great", "product", "absolutely", "amazing", "love"]

    def test_documented_short_negative_example(self):
        result = HeuristicAnalyzer().analyze(_request("bad", rating=1, title="x"))

        assert result.sentiment == "negative"
        assert result.score == pytest.approx(-0.8)
        assert result.is_fake is True
        assert result.fake_confidence == 0.8

    @pytest.mark.parametrize("title, content, rating, sentiment, score", [
        # 0.3 + (4 - 3) * 0.2 + 1 * 0.1
        ("Solid", "The good build feels sturdy and the box arrived on time today", 4, "positive", 0.6),
        # -0.3 - (3 - 2) * 0.2 - 1 * 0.1
        ("Cracked", "The hinge came broken out of the box on the first day", 2, "negative", -0.6),
        # more positive than negative words lifts a middle rating
        ("Nice", "The colors look great and the sound is wonderful for such a small speaker", 3, "positive", 0.5),
        # balanced words and a middle rating
        ("Mixed", "Some parts are good and some parts are bad in equal measure", 3, "neutral", 0.0),
    ])
    def test_score_formula(self, title, content, rating, sentiment, score):
        result = HeuristicAnalyzer().analyze(_request(content, rating=rating, title=title))

        assert result.sentiment == sentiment
        assert result.score == pytest.approx(score)


class TestParseRemoteAnalysis:
    def test_valid_payload_inside_prose(self):
        text = 'Sure! {"sentiment": "negative", "score": -2, "confidence": 0.9, "summary": "Bad", ' \
               '"keywords": ["a"], "isFake": false, "fakeConfidence": 0.1} Done.'
        result = parse_remote_analysis(text, provider="openai")

        assert result.sentiment == "negative"
        assert result.score == -1.0
        assert result.provider == "openai"

    @pytest.mark.parametrize("text", [
        "no json here",
        '{"sentiment": "happy"}',
        '{"sentiment": "positive", "score": "high"}',
        "{not json}",
    ])
    def test_invalid_payload_is_unavailable(self, text):
        with pytest.raises(errors.UpstreamUnavailableError):
            parse_remote_analysis(text, provider="openai")


class TestOpenAIAnalyzer:
    def test_uses_model_answer(self):
        client = MagicMock()
        client.chat.completions.create.return_value = _chat_response(json.dumps({
            "sentiment": "positive", "score": 0.7, "confidence": 0.95, "summary": "Loves it",
            "keywords": ["battery"], "isFake": False, "fakeConfidence": 0.05,
        }))

        result = OpenAIAnalyzer("sk-test", client=client).analyze(_request("Battery is great."))

        assert result.provider == "openai"
        assert result.summary == "Loves it"
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo"
        assert "Pixel 8" in kwargs["messages"][1]["content"]

    def test_invalid_json_falls_through_to_heuristic(self):
        client = MagicMock()
        client.chat.completions.create.return_value = _chat_response("I think it is positive")
        chain = AnalyzerChain([OpenAIAnalyzer("sk-test", client=client)])

        result = chain.analyze(_request("The battery is excellent and lasts all day long without issues."))

        assert result.provider == "fallback"
        assert chain.mode == "openai"

    def test_client_error_falls_through(self):
        client = MagicMock()
        client.chat.completions.create.side_effect = openai.OpenAIError("boom")
        chain = AnalyzerChain([OpenAIAnalyzer("sk-test", client=client)])

        assert chain.analyze(_request("Terrible.", rating=1)).provider == "fallback"


class TestHuggingFaceAnalyzer:
    def test_positive_label(self):
        session = MagicMock()
        session.request.return_value = http_response([[
            {"label": "POSITIVE", "score": 0.97},
            {"label": "NEGATIVE", "score": 0.03},
        ]])

        result = HuggingFaceAnalyzer("hf-token", session=session).analyze(
            _request("Excellent sound and the noise cancelling works well on flights.")
        )

        assert result.sentiment == "positive"
        assert result.score == 0.97
        assert result.provider == "huggingface"
        assert session.request.call_args.kwargs["headers"]["Authorization"] == "Bearer hf-token"

    def test_low_confidence_is_neutral(self):
        session = MagicMock()
        session.request.return_value = http_response([{"label": "NEGATIVE", "score": 0.55}])

        result = HuggingFaceAnalyzer("hf-token", session=session).analyze(_request("Fine I guess."))

        assert result.sentiment == "neutral"
        assert result.score == 0.0

    def test_model_loading_falls_through_to_heuristic(self):
        session = MagicMock()
        session.request.return_value = http_response({"error": "Model is loading"}, status_code=503)
        chain = AnalyzerChain([HuggingFaceAnalyzer("hf-token", session=session)])

        assert chain.analyze(_request("Works well.")).provider == "fallback"


def test_chain_without_remote_tiers_is_heuristic(settings):
    settings.OPENAI_API_KEY = ""
    settings.HUGGINGFACE_API_KEY = ""
    chain = AnalyzerChain.from_settings()

    assert chain.mode == "fallback"
    assert len(chain.analyzers) == 1


def test_chain_respects_ai_flag(settings):
    settings.ENABLE_AI = False
    settings.OPENAI_API_KEY = "sk-test"

    assert AnalyzerChain.from_settings().mode == "fallback"


def test_chain_orders_remote_tiers(settings):
    settings.ENABLE_AI = True
    settings.OPENAI_API_KEY = "sk-test"
    settings.HUGGINGFACE_API_KEY = "hf-token"

    names = [analyzer.name for analyzer in AnalyzerChain.from_settings().analyzers]
    assert names == ["openai", "huggingface", "fallback"]
