"""Text feature vectors and cosine scoring for template matching.

``FeatureExtractor`` is a hand-tuned stand-in for an embedding model. Anything
implementing ``Embedder`` can replace it without touching the scoring or
threshold logic.
"""

import hashlib
import math
import re
from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from slacksassin.config.models import FeatureWeights
from slacksassin.domain.entities.similarity import ConfidenceTier

DIMENSIONS = 50

TOKEN_PATTERN = re.compile(r"[a-z0-9']+")

STOP_WORDS = frozenset(
    """
    the and to of a in is it you that he was for on are as with his they i at
    be this have from or one had by word but not what all were we when your can
    said there each which she do how their if will way about many then them
    would like so these her long make thing see him two more has go me no my
    than first been call who its now find get may say come use into over think
    also back after very well year work where much before here too any new want
    because does old tell boy follow came show around gov don let put end why
    try good hand school move right student place made high such stay turn ask
    might great change kind off need house picture us again animal point mother
    world near build self earth father
    """.split()
)

ABILITY_WORDS = frozenset(
    ["can", "could", "able", "do", "does", "did", "will", "would", "shall", "may"]
)
PREFERENCE_WORDS = frozenset(
    ["like", "love", "want", "prefer", "enjoy", "hate", "dislike", "wish", "desire"]
)
COMPARISON_WORDS = frozenset(
    ["better", "worse", "more", "less", "compare", "versus", "vs", "different"]
)
TEMPORAL_WORDS = frozenset(
    ["when", "before", "after", "during", "while", "until", "since", "time"]
)
LOCATIONAL_WORDS = frozenset(["where", "here", "there", "location", "place"])
CAUSAL_WORDS = frozenset(["why", "because", "reason", "cause", "purpose", "goal"])
YES_NO_OPENERS = frozenset(["is", "are", "do", "does"])
NEGATION_WORDS = frozenset(["not", "no", "never", "nothing", "none", "cannot"])

PIVOTAL_PHRASES = (
    "like to",
    "want to",
    "able to",
    "have to",
    "going to",
    "used to",
    "supposed to",
    "need to",
)

DOMAIN_VOCABULARIES = (
    ("legal", "law", "crime", "felony", "penalty", "death", "prison", "court"),
    ("business", "marketing", "sms", "email", "advertising", "customer", "privacy"),
    ("woodchuck", "chuck", "wood", "animal", "forest", "nature", "wildlife"),
    ("computer", "software", "program", "code", "data", "system", "technology"),
    ("personal", "family", "friend", "relationship", "home", "life", "feeling"),
)

EMOTION_WORDS = frozenset(
    ["angry", "happy", "sad", "excited", "worried", "confused", "frustrated"]
)
CERTAINTY_WORDS = frozenset(
    ["definitely", "certainly", "probably", "maybe", "possibly", "surely"]
)
INTENSITY_WORDS = frozenset(
    ["very", "extremely", "really", "quite", "somewhat", "little", "much"]
)
FORMAL_PHRASES = ("please", "kindly", "would you", "could you", "may i", "excuse me")
INFORMAL_WORDS = frozenset(["hey", "yo", "sup", "dude", "bro", "gonna", "wanna"])


@runtime_checkable
class Embedder(Protocol):
    """Maps text to a fixed-length vector."""

    @property
    def name(self) -> str:
        """Identifier stored next to cached vectors."""
        ...

    @property
    def dimensions(self) -> int:
        """Length of every vector returned by embed()."""
        ...

    def embed(self, text: str) -> list[float]:
        """Return the vector for ``text``."""
        ...


class FeatureExtractor:
    """Deterministic lexical feature vectors.

    Intent, negation and pivotal-phrase features carry weights above the
    structural features so that e.g. "can you…" and "do you like to…" stay
    apart even when they share most of their words.
    """

    def __init__(self, weights: FeatureWeights | None = None) -> None:
        self._weights = weights or FeatureWeights()

    @property
    def name(self) -> str:
        """Extractor version plus a digest of the weights.

        Vectors cached under other weights no longer match and get recomputed.
        """
        digest = hashlib.sha1(self._weights.model_dump_json().encode()).hexdigest()
        return f"lexical-features-v1-{digest[:8]}"

    @property
    def dimensions(self) -> int:
        return DIMENSIONS

    def embed(self, text: str) -> list[float]:
        w = self._weights
        clean = text.lower().strip()
        words = TOKEN_PATTERN.findall(clean)
        content = [t for t in words if t not in STOP_WORDS and len(t) > 2]

        features: list[float] = [
            min(len(clean) / 100.0, 1.0),
            min(len(words) / 50.0, 1.0),
            min(len(content) / 20.0, 1.0),
            min(len(set(content)) / 20.0, 1.0),
        ]

        quantity = "how" in words and ("many" in words or "much" in words)
        method = "how" in words and not quantity
        yes_no = bool(words) and words[0] in YES_NO_OPENERS

        features += [
            _count(words, ABILITY_WORDS) * w.ability,
            _count(words, PREFERENCE_WORDS) * w.preference,
            w.quantity if quantity else 0.0,
            _count(words, COMPARISON_WORDS) * w.comparison,
            _count(words, TEMPORAL_WORDS) * w.temporal,
            _count(words, LOCATIONAL_WORDS) * w.locational,
            _count(words, CAUSAL_WORDS) * w.causal,
            w.method if method else 0.0,
            w.yes_no if yes_no else 0.0,
        ]

        negated = any(t in NEGATION_WORDS or t.endswith("n't") for t in words)
        features.append(w.negation if negated else 0.0)

        joined = " ".join(words)
        features += [w.phrase if phrase in joined else 0.0 for phrase in PIVOTAL_PHRASES]

        for vocabulary in DOMAIN_VOCABULARIES:
            hits = sum(1 for t in words if any(v in t for v in vocabulary))
            features.append(hits * w.domain)

        features += [
            1.0 if "?" in clean else 0.0,
            1.0 if clean.startswith("@") else 0.0,
            1.0 if len(words) > 10 else 0.0,
            1.0 if len(words) < 5 else 0.0,
            float(_count(words, EMOTION_WORDS)),
            float(_count(words, CERTAINTY_WORDS)),
            float(_count(words, INTENSITY_WORDS)),
            float(sum(1 for phrase in FORMAL_PHRASES if phrase in joined)),
            float(_count(words, INFORMAL_WORDS)),
        ]

        features += [0.0] * (DIMENSIONS - len(features))
        return features[:DIMENSIONS]


def _count(words: Sequence[str], vocabulary: frozenset[str]) -> int:
    return sum(1 for t in words if t in vocabulary)


def cosine_confidence(a: Sequence[float], b: Sequence[float]) -> float:
    """Return the cosine similarity of ``a`` and ``b`` as a 0-100 percentage.

    Mismatched lengths and zero-magnitude vectors score 0.
    """
    if len(a) != len(b) or not a:
        return 0.0
    magnitude_a = math.sqrt(math.fsum(x * x for x in a))
    magnitude_b = math.sqrt(math.fsum(y * y for y in b))
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0
    dot = math.fsum(x * y for x, y in zip(a, b))
    return min(max(dot / (magnitude_a * magnitude_b) * 100.0, 0.0), 100.0)


def confidence_tier(
    confidence: float,
    cut_points: tuple[float, float, float] = (90.0, 75.0, 50.0),
) -> ConfidenceTier:
    """Bucket a confidence using the (very_high, high, medium) lower bounds."""
    very_high, high, medium = cut_points
    if confidence >= very_high:
        return ConfidenceTier.VERY_HIGH
    if confidence >= high:
        return ConfidenceTier.HIGH
    if confidence >= medium:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW
