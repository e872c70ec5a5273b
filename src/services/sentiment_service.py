"""
Sentiment aggregation service.

Collapses the last few days of summarized conversations into a 0-100
dissatisfaction index using Bedrock (Haiku by default). The model call is the
only non-deterministic, network-bound step of a scoring run, so it is bounded
by a short read timeout and every failure resolves to a neutral fallback.
"""

from __future__ import annotations

import json
import time
from datetime import datetime, timedelta
from typing import List, Optional

import boto3
from botocore.config import Config

from config.settings import Settings
from models.prediction import SentimentAssessment, SentimentModelOutput, SentimentStatus
from models.signals import ConversationSignal, SignalBundle
from utils.error_handling import SentimentAnalysisDegraded
from utils.logging_config import get_logger

logger = get_logger(__name__)

NEUTRAL_FALLBACK_SCORE = 50
NO_RECENT_CONTACT = "no recent contact."
SUMMARIES_PENDING = "summaries not yet available."
ANALYSIS_UNAVAILABLE = "analysis unavailable, neutral default used."

SYSTEM_PROMPT = (
    "You analyse customer support history for a mobile carrier. "
    "Given recent conversation summaries (newest first), rate how dissatisfied "
    "the customer currently is on a 0-100 scale where 0 is very positive and "
    "100 is very negative or angry. Weigh recent conversations more heavily. "
    'Respond with JSON only: {"score": <integer 0-100>, "reasoning": "<one sentence>"}.'
)


def recency_label(occurred_at: datetime, as_of: datetime) -> str:
    days = (as_of.date() - occurred_at.date()).days
    if days <= 0:
        return "today"
    if days == 1:
        return "yesterday"
    return f"{days} days ago"


def build_transcript(conversations: List[ConversationSignal], as_of: datetime) -> str:
    """Numbered transcript, newest first, one line per conversation."""
    lines = []
    for index, conversation in enumerate(conversations, start=1):
        sentiment = conversation.sentiment.value if conversation.sentiment else "unknown"
        lines.append(
            f"{index}. [{recency_label(conversation.occurred_at, as_of)}] "
            f"{conversation.occurred_at.date().isoformat()} "
            f"category={conversation.category or 'unknown'} "
            f"sentiment={sentiment}: {conversation.summary.strip()}"
        )
    return "\n".join(lines)


class SentimentService:
    """Bedrock-backed dissatisfaction index with a deterministic fallback."""

    def __init__(self, settings: Optional[Settings] = None) -> None:
        self.settings = settings or Settings.from_environment()
        self.model_id = self.settings.model_id
        self.client = boto3.client(
            "bedrock-runtime",
            region_name=self.settings.bedrock_region,
            config=Config(
                connect_timeout=2,
                read_timeout=self.settings.sentiment_timeout_seconds,
                retries={"mode": "standard", "total_max_attempts": 1},
            ),
        )

    def recent_conversations(self, bundle: SignalBundle) -> List[ConversationSignal]:
        """Conversations inside the recency window, newest first."""
        cutoff = bundle.as_of - timedelta(days=self.settings.sentiment_window_days)
        recent = [c for c in bundle.conversations if c.occurred_at >= cutoff]
        return sorted(recent, key=lambda c: c.occurred_at, reverse=True)

    def aggregate(self, bundle: SignalBundle) -> SentimentAssessment:
        """Never raises; degraded results carry ``status=degraded``."""
        recent = self.recent_conversations(bundle)
        if not recent:
            return SentimentAssessment(
                score=0, reasoning=NO_RECENT_CONTACT, status=SentimentStatus.NO_RECENT_CONTACT
            )

        summarized = [c for c in recent if c.has_summary][: self.settings.sentiment_max_conversations]
        if not summarized:
            return SentimentAssessment(
                score=0,
                reasoning=SUMMARIES_PENDING,
                status=SentimentStatus.SUMMARIES_PENDING,
                conversation_count=len(recent),
            )

        start = time.perf_counter()
        try:
            output = self._classify(build_transcript(summarized, bundle.as_of))
            score = max(0, min(100, int(round(output.score))))
            return SentimentAssessment(
                score=score,
                reasoning=output.reasoning.strip() or "No justification returned.",
                status=SentimentStatus.ANALYZED,
                conversation_count=len(summarized),
            )
        except SentimentAnalysisDegraded as exc:
            logger.warning(
                "Sentiment analysis degraded; using neutral fallback",
                extra={"customer_id": bundle.customer_id, "error": str(exc)},
            )
            return SentimentAssessment(
                score=NEUTRAL_FALLBACK_SCORE,
                reasoning=ANALYSIS_UNAVAILABLE,
                status=SentimentStatus.DEGRADED,
                conversation_count=len(summarized),
                degraded_reason=str(exc),
            )
        finally:
            logger.info(
                "Sentiment latency captured",
                extra={
                    "customer_id": bundle.customer_id,
                    "duration_ms": int((time.perf_counter() - start) * 1000),
                },
            )

    def _classify(self, transcript: str) -> SentimentModelOutput:
        """Call Bedrock; any failure surfaces as SentimentAnalysisDegraded."""
        try:
            response = self.client.invoke_model(
                modelId=self.model_id,
                contentType="application/json",
                accept="application/json",
                body=json.dumps(
                    {
                        "anthropic_version": "bedrock-2023-05-31",
                        "system": SYSTEM_PROMPT,
                        "messages": [
                            {"role": "user", "content": [{"type": "text", "text": transcript}]},
                            # Prefilled brace keeps the completion a JSON object.
                            {"role": "assistant", "content": [{"type": "text", "text": "{"}]},
                        ],
                        "max_tokens": self.settings.sentiment_max_tokens,
                        "temperature": 0.2,
                    }
                ),
            )
            payload = json.loads(response["body"].read())
            text = payload["content"][0]["text"]
        except Exception as exc:
            raise SentimentAnalysisDegraded(f"Model call failed: {exc}") from exc

        return self._parse_response(text)

    def _parse_response(self, text: str) -> SentimentModelOutput:
        """Strict JSON parse of the (prefilled) completion."""
        candidate = (text or "").strip()
        if not candidate.startswith("{"):
            candidate = "{" + candidate
        try:
            return SentimentModelOutput.model_validate(json.loads(candidate))
        except Exception as exc:
            raise SentimentAnalysisDegraded("Model returned unparseable response") from exc
