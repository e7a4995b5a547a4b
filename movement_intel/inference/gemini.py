"""GeminiInference — an InferenceSubsystem backed by a chat model.

The model sees ONLY the numeric feature vector, never identifiers or
locations.  It must answer with a single number in [0, 1].  Anything
else raises ValueError so the RiskScorer falls back to its heuristic.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Any, Callable

from movement_intel.config import Settings, settings

logger = logging.getLogger(__name__)

LLMFactory = Callable[[], Any]  # Returns a langchain BaseChatModel

FEATURE_NAMES = (
    "total_distance_m",
    "average_speed_kmh",
    "route_variation",
    "anomaly_count",
    "high_severity_anomaly_count",
    "sample_count",
    "seconds_since_last_sample",
    "sighting_confidence",
)

_SCORE_PROMPT = """You are a vehicle movement risk scoring model.

Given the following numeric features describing one vehicle's recent
movement history, estimate the probability (0.0 to 1.0) that the
vehicle is involved in theft, cloning or other high-risk activity.

Features:
{feature_lines}

Reference points: average speeds above 200 km/h are physically implausible
for road vehicles; route_variation above 0.1 indicates an unusually wide
spread of positions.

RESPOND WITH ONLY THE NUMBER. No words, no markdown."""

_NUMBER = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")


def _default_llm_factory(cfg: Settings = settings):
    """Create a Gemini chat model from environment config."""
    from langchain_google_genai import ChatGoogleGenerativeAI

    api_key = os.environ.get("GOOGLE_API_KEY") or os.environ.get("MOVEMENT_GEMINI_API_KEY")
    if not api_key:
        raise RuntimeError(
            "Gemini API key not found. Set GOOGLE_API_KEY or MOVEMENT_GEMINI_API_KEY "
            "in your environment variables."
        )

    return ChatGoogleGenerativeAI(
        model=cfg.gemini_model,
        google_api_key=api_key,
        temperature=cfg.gemini_temperature,
        max_output_tokens=cfg.gemini_max_output_tokens,
    )


def build_prompt(features: list[float]) -> str:
    if len(features) != len(FEATURE_NAMES):
        raise ValueError(f"expected {len(FEATURE_NAMES)} features, got {len(features)}")
    lines = "\n".join(f"- {name}: {value:.4f}" for name, value in zip(FEATURE_NAMES, features))
    return _SCORE_PROMPT.format(feature_lines=lines)


def parse_score(text: str) -> float:
    """Extract the single probability from a model response.

    Raises:
        ValueError: If the response holds no number, or one outside [0, 1].
    """
    text = text.strip()
    if text.startswith("```"):
        text = "\n".join(l for l in text.split("\n") if not l.strip().startswith("```")).strip()

    match = _NUMBER.search(text)
    if match is None:
        raise ValueError(f"no number in model response: {text[:60]!r}")
    value = float(match.group(0))
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"model score {value} outside [0, 1]")
    return value


class GeminiInference:
    """Scores feature vectors by prompting a chat model."""

    def __init__(self, llm_factory: LLMFactory | None = None, cfg: Settings | None = None) -> None:
        if llm_factory is None:
            self._llm = _default_llm_factory(cfg or settings)
        else:
            self._llm = llm_factory()

    def score(self, features: list[float]) -> float:
        response = self._llm.invoke(build_prompt(features))
        text = response.content if hasattr(response, "content") else str(response)
        value = parse_score(text)
        logger.debug("Gemini risk score response %r -> %.4f", text, value)
        return value
