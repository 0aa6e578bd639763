"""Tests for lexical features and cosine confidence."""

import math

import pytest

from slacksassin.config.models import FeatureWeights
from slacksassin.domain.entities.similarity import ConfidenceTier
from slacksassin.domain.features import (
    DIMENSIONS,
    Embedder,
    FeatureExtractor,
    confidence_tier,
    cosine_confidence,
)

TEXTS = [
    "Can you help with the API docs?",
    "Where can I find the API documentation?",
    "I cannot log in to the dashboard",
    "Do you like to work on weekends?",
    "How many users signed up yesterday?",
    "hey dude",
]


@pytest.fixture
def extractor() -> FeatureExtractor:
    return FeatureExtractor()


class TestFeatureExtractor:
    """Tests for FeatureExtractor class."""

    def test_satisfies_embedder_protocol(self, extractor: FeatureExtractor) -> None:
        assert isinstance(extractor, Embedder)
        assert extractor.name.startswith("lexical-features-v1-")
        assert extractor.dimensions == DIMENSIONS

    def test_name_tracks_weights(self, extractor: FeatureExtractor) -> None:
        tuned = FeatureExtractor(FeatureWeights(ability=20.0))

        assert extractor.name == FeatureExtractor(FeatureWeights()).name
        assert tuned.name != extractor.name
        assert tuned.name == FeatureExtractor(FeatureWeights(ability=20.0)).name

    @pytest.mark.parametrize("text", TEXTS + [""])
    def test_fixed_dimensions(self, extractor: FeatureExtractor, text: str) -> None:
        assert len(extractor.embed(text)) == DIMENSIONS

    def test_deterministic(self, extractor: FeatureExtractor) -> None:
        assert extractor.embed(TEXTS[0]) == extractor.embed(TEXTS[0])

    def test_empty_text(self, extractor: FeatureExtractor) -> None:
        vector = extractor.embed("")

        assert all(math.isfinite(x) for x in vector)
        assert cosine_confidence(vector, extractor.embed(TEXTS[0])) == 0.0

    def test_negation_separates_otherwise_equal_texts(
        self, extractor: FeatureExtractor
    ) -> None:
        plain = extractor.embed("I can log in to the dashboard")
        negated = extractor.embed("I cannot log in to the dashboard")

        assert cosine_confidence(plain, negated) < 100.0

    def test_weights_change_vector(self) -> None:
        text = "I don't want to go"
        default = FeatureExtractor().embed(text)
        heavy = FeatureExtractor(FeatureWeights(negation=10.0)).embed(text)

        assert default != heavy


class TestCosineConfidence:
    """Tests for cosine_confidence function."""

    @pytest.mark.parametrize("text", TEXTS)
    def test_self_similarity_is_100(self, extractor: FeatureExtractor, text: str) -> None:
        vector = extractor.embed(text)

        assert cosine_confidence(vector, vector) == pytest.approx(100.0)

    def test_bounds_and_symmetry(self, extractor: FeatureExtractor) -> None:
        vectors = [extractor.embed(text) for text in TEXTS]
        for a in vectors:
            for b in vectors:
                score = cosine_confidence(a, b)
                assert 0.0 <= score <= 100.0
                assert score == pytest.approx(cosine_confidence(b, a))

    def test_zero_vector(self) -> None:
        assert cosine_confidence([0.0, 0.0], [1.0, 2.0]) == 0.0

    def test_mismatched_lengths(self) -> None:
        assert cosine_confidence([1.0, 2.0], [1.0, 2.0, 3.0]) == 0.0

    def test_empty_vectors(self) -> None:
        assert cosine_confidence([], []) == 0.0

    def test_opposite_vectors_clamped(self) -> None:
        assert cosine_confidence([1.0, 0.0], [-1.0, 0.0]) == 0.0

    def test_orthogonal_vectors(self) -> None:
        assert cosine_confidence([1.0, 0.0], [0.0, 1.0]) == 0.0


class TestConfidenceTier:
    """Tests for confidence_tier function."""

    @pytest.mark.parametrize(
        ("confidence", "tier"),
        [
            (100.0, ConfidenceTier.VERY_HIGH),
            (90.0, ConfidenceTier.VERY_HIGH),
            (89.9, ConfidenceTier.HIGH),
            (75.0, ConfidenceTier.HIGH),
            (60.0, ConfidenceTier.MEDIUM),
            (50.0, ConfidenceTier.MEDIUM),
            (49.9, ConfidenceTier.LOW),
            (0.0, ConfidenceTier.LOW),
        ],
    )
    def test_default_cut_points(self, confidence: float, tier: ConfidenceTier) -> None:
        assert confidence_tier(confidence) == tier

    def test_custom_cut_points(self) -> None:
        assert confidence_tier(80.0, (95.0, 85.0, 80.0)) == ConfidenceTier.MEDIUM
