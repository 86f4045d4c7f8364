"""Analysis store: runs the classifier for a card and appends a versioned record."""

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from card_analysis.errors import CardNotFoundError
from card_analysis.models import Card, CardAnalysis
from card_analysis.services.classifier import AnalysisResult, CardAnalyzer

logger = logging.getLogger(__name__)

# Concurrent writers for the same card may pick the same next version
MAX_VERSION_ATTEMPTS = 3


class AnalysisService:
    """Analyze cards and read back their versioned analyses."""

    def __init__(self, analyzer: CardAnalyzer | None = None):
        self.analyzer = analyzer or CardAnalyzer()

    async def analyze_card(self, session: AsyncSession, card_id: str) -> CardAnalysis:
        """Analyze a card and store the result as its next version.

        Args:
            session: Database session.
            card_id: Card identifier in the content store.

        Returns:
            The newly written analysis record.

        Raises:
            CardNotFoundError: The card does not exist.
        """
        card = await session.get(Card, card_id)
        if card is None:
            raise CardNotFoundError(card_id)

        result = await self.analyzer.analyze_content(card.front_content, card.back_content)

        attempt = 1
        while True:
            version = await self._next_version(session, card_id)
            record = self._build_record(card_id, version, result)
            try:
                async with session.begin_nested():
                    session.add(record)
                return record
            except IntegrityError:
                if attempt >= MAX_VERSION_ATTEMPTS:
                    raise
                logger.warning(
                    "Version %d of card %s was taken by a concurrent writer, retrying",
                    version,
                    card_id,
                )
                attempt += 1

    async def get_latest(self, session: AsyncSession, card_id: str) -> CardAnalysis | None:
        """Return the current (highest-version) analysis for a card."""
        result = await session.execute(
            select(CardAnalysis)
            .where(CardAnalysis.card_id == card_id)
            .order_by(CardAnalysis.analysis_version.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_history(self, session: AsyncSession, card_id: str) -> list[CardAnalysis]:
        """Return every analysis version for a card, oldest first."""
        result = await session.execute(
            select(CardAnalysis)
            .where(CardAnalysis.card_id == card_id)
            .order_by(CardAnalysis.analysis_version)
        )
        return list(result.scalars().all())

    async def _next_version(self, session: AsyncSession, card_id: str) -> int:
        result = await session.execute(
            select(func.max(CardAnalysis.analysis_version)).where(CardAnalysis.card_id == card_id)
        )
        return (result.scalar() or 0) + 1

    def _build_record(self, card_id: str, version: int, result: AnalysisResult) -> CardAnalysis:
        return CardAnalysis(
            card_id=card_id,
            analysis_version=version,
            detected_domain=result.detected_domain,
            domain_confidence=result.domain_confidence,
            secondary_domains=[domain.value for domain in result.secondary_domains],
            extracted_concepts=result.extracted_concepts,
            complexity_level=result.complexity_level,
            complexity_score=result.complexity_score,
            front_word_count=result.front_word_count,
            back_word_count=result.back_word_count,
            detected_card_type=result.detected_card_type,
            detected_language=result.detected_language,
            analysis_method=result.method,
            status=result.status,
            raw_analysis=result.raw_analysis,
        )


# Global singleton
analysis_service = AnalysisService()
