"""Template matching between incoming messages and approved replies."""

from collections.abc import Iterable

from structlog.stdlib import BoundLogger

from slacksassin.application.services.message_store import MessageStore
from slacksassin.config.models import SimilarityConfig
from slacksassin.domain.entities.message import Message
from slacksassin.domain.entities.similarity import SimilarityResult
from slacksassin.domain.features import Embedder, confidence_tier, cosine_confidence


class SimilarityEngine:
    """Scores messages against the template pool.

    Vectors are computed by the injected ``Embedder`` and cached on the
    message through the store, once per embedder name. A vector cached by a
    different embedder is recomputed.

    Args:
        store: Message store holding the templates.
        embedder: Feature extractor or embedding model.
        config: Thresholds and tier cut points.
        logger: Structured logger.
    """

    def __init__(
        self,
        store: MessageStore,
        embedder: Embedder,
        config: SimilarityConfig,
        logger: BoundLogger,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._config = config
        self._logger = logger

    @property
    def display_threshold(self) -> float:
        return self._config.display_threshold

    @property
    def auto_response_threshold(self) -> float:
        return self._config.auto_response_threshold

    async def vector_for(self, message: Message) -> list[float]:
        """Return the message's vector, computing and caching it if needed."""
        if (
            message.feature_vector is not None
            and message.feature_model == self._embedder.name
        ):
            return message.feature_vector
        vector = self._embedder.embed(message.text)
        cached = await self._store.cache_feature_vector(
            message.id, vector, self._embedder.name
        )
        message.feature_vector = cached.feature_vector
        message.feature_model = cached.feature_model
        return vector

    async def score(
        self, target: Message, candidates: Iterable[Message]
    ) -> list[SimilarityResult]:
        """Score ``target`` against ``candidates``.

        The target itself and candidates not marked as templates are skipped.
        Only confidences strictly above the display threshold are kept.

        Returns:
            Results sorted by descending confidence.
        """
        target_vector = await self.vector_for(target)
        results: list[SimilarityResult] = []
        for candidate in candidates:
            if candidate.id == target.id or not candidate.is_template:
                continue
            confidence = cosine_confidence(
                target_vector, await self.vector_for(candidate)
            )
            if confidence <= self._config.display_threshold:
                continue
            results.append(
                SimilarityResult(
                    target_id=target.id,
                    template=candidate,
                    confidence=confidence,
                    tier=confidence_tier(confidence, self._config.tier_cut_points),
                )
            )
        results.sort(key=lambda r: r.confidence, reverse=True)
        return results

    async def find_similar(self, target: Message) -> list[SimilarityResult]:
        """Score ``target`` against every template in the store."""
        templates = await self._store.list_templates()
        results = await self.score(target, templates)
        self._logger.debug(
            "Similar templates found",
            message_id=target.id,
            templates=len(templates),
            matches=len(results),
        )
        return results

    def auto_response_matches(
        self, results: Iterable[SimilarityResult]
    ) -> list[SimilarityResult]:
        """Keep the results that clear the auto-response threshold, in order."""
        return [
            result
            for result in results
            if result.confidence >= self._config.auto_response_threshold
        ]

    def pick_auto_response(
        self, results: Iterable[SimilarityResult]
    ) -> SimilarityResult | None:
        """Return the highest-confidence match eligible for auto-response."""
        matches = self.auto_response_matches(results)
        return max(matches, key=lambda r: r.confidence) if matches else None

    async def auto_response_candidates(
        self, target: Message
    ) -> list[SimilarityResult]:
        """Return the displayed matches that clear the auto-response threshold."""
        return self.auto_response_matches(await self.find_similar(target))

    async def best_auto_response(self, target: Message) -> SimilarityResult | None:
        return self.pick_auto_response(await self.find_similar(target))

    async def mark_template(self, message_id: str, is_template: bool) -> Message:
        """Toggle template eligibility, caching the vector when enabling."""
        if not is_template:
            return await self._store.set_template(message_id, False)
        message = await self._store.get(message_id)
        if message.feature_model == self._embedder.name:
            return await self._store.set_template(message_id, True)
        vector = self._embedder.embed(message.text)
        return await self._store.set_template(
            message_id,
            True,
            feature_vector=vector,
            feature_model=self._embedder.name,
        )
