"""
Sentiment aggregator tests with a mocked Bedrock client.

Run with: pytest tests/unit/test_sentiment_service.py -v
"""

import io
import json
from unittest.mock import MagicMock, patch

import pytest

from config.settings import Settings
from models.prediction import SentimentStatus


def _bedrock_response(text: str) -> dict:
    body = json.dumps({"content": [{"type": "text", "text": text}]}).encode()
    return {"body": io.BytesIO(body)}


@pytest.fixture
def bedrock_client():
    with patch("services.sentiment_service.boto3") as mock_boto3:
        client = MagicMock()
        mock_boto3.client.return_value = client
        yield client


@pytest.fixture
def service(bedrock_client):
    from services.sentiment_service import SentimentService

    return SentimentService(settings=Settings())


class TestSentimentWindow:
    """Short-circuits that never reach Bedrock."""

    def test_no_recent_contact(self, service, bedrock_client, make_bundle, conversation):
        bundle = make_bundle(conversations=[conversation(days_ago=4, sentiment="negative")])

        first = service.aggregate(bundle)
        second = service.aggregate(bundle)

        assert first.score == 0
        assert first.reasoning == "no recent contact."
        assert first.status == SentimentStatus.NO_RECENT_CONTACT
        assert first == second
        bedrock_client.invoke_model.assert_not_called()

    def test_summaries_not_yet_available(self, service, bedrock_client, make_bundle, conversation):
        bundle = make_bundle(conversations=[conversation(days_ago=0.5, summary=None)])

        result = service.aggregate(bundle)

        assert result.score == 0
        assert result.reasoning == "summaries not yet available."
        assert result.status == SentimentStatus.SUMMARIES_PENDING
        bedrock_client.invoke_model.assert_not_called()


class TestSentimentModelCall:
    """Bedrock-backed path."""

    def test_score_and_reasoning_from_model(self, service, bedrock_client, make_bundle, conversation):
        bedrock_client.invoke_model.return_value = _bedrock_response(
            '"score": 72, "reasoning": "Repeated complaints about billing."}'
        )
        bundle = make_bundle(
            conversations=[conversation(days_ago=1, category="billing_inquiry", sentiment="negative")]
        )

        result = service.aggregate(bundle)

        assert result.score == 72
        assert result.reasoning == "Repeated complaints about billing."
        assert result.status == SentimentStatus.ANALYZED
        assert not result.is_degraded

    def test_score_is_clamped(self, service, bedrock_client, make_bundle, conversation):
        bedrock_client.invoke_model.return_value = _bedrock_response(
            '{"score": 140, "reasoning": "Furious."}'
        )
        result = service.aggregate(make_bundle(conversations=[conversation(days_ago=1)]))
        assert result.score == 100

    def test_model_failure_falls_back_to_neutral(self, service, bedrock_client, make_bundle, conversation):
        bedrock_client.invoke_model.side_effect = Exception("Bedrock unavailable")

        result = service.aggregate(make_bundle(conversations=[conversation(days_ago=1)]))

        assert result.score == 50
        assert result.reasoning == "analysis unavailable, neutral default used."
        assert result.is_degraded
        assert "Bedrock unavailable" in result.degraded_reason

    def test_unparseable_output_falls_back_to_neutral(
        self, service, bedrock_client, make_bundle, conversation
    ):
        bedrock_client.invoke_model.return_value = _bedrock_response("I think they are upset")

        result = service.aggregate(make_bundle(conversations=[conversation(days_ago=1)]))

        assert result.score == 50
        assert result.status == SentimentStatus.DEGRADED

    def test_transcript_is_newest_first_and_capped(
        self, service, bedrock_client, make_bundle, conversation
    ):
        bedrock_client.invoke_model.return_value = _bedrock_response(
            '"score": 10, "reasoning": "Calm."}'
        )
        conversations = [
            conversation(days_ago=i * 0.2, category="general_inquiry", summary=f"summary {i}")
            for i in range(12)
        ]

        result = service.aggregate(make_bundle(conversations=conversations))

        body = json.loads(bedrock_client.invoke_model.call_args.kwargs["body"])
        transcript = body["messages"][0]["content"][0]["text"]
        lines = transcript.splitlines()
        assert len(lines) == 10
        assert lines[0].startswith("1. [today]")
        assert lines[0].endswith("summary 0")
        assert result.conversation_count == 10
        assert body["messages"][-1] == {
            "role": "assistant",
            "content": [{"type": "text", "text": "{"}],
        }


def test_recency_labels(as_of):
    from datetime import timedelta

    from services.sentiment_service import recency_label

    assert recency_label(as_of, as_of) == "today"
    assert recency_label(as_of - timedelta(days=1), as_of) == "yesterday"
    assert recency_label(as_of - timedelta(days=2), as_of) == "2 days ago"


def test_client_makes_a_single_attempt():
    """A hung model call is bounded by one read timeout, never retried."""
    from services.sentiment_service import SentimentService

    with patch("services.sentiment_service.boto3") as mock_boto3:
        SentimentService(settings=Settings(sentiment_timeout_seconds=1.5))

    config = mock_boto3.client.call_args.kwargs["config"]
    assert config.retries == {"mode": "standard", "total_max_attempts": 1}
    assert config.read_timeout == 1.5
