"""Integration tests for the analysis store."""

import pytest

from card_analysis.db import get_session
from card_analysis.errors import CardNotFoundError
from card_analysis.models import (
    AnalysisMethod,
    AnalysisStatus,
    Card,
    CardType,
    ContentDomain,
)
from card_analysis.services.analysis import AnalysisService
from tests.factories import HtmlCardFactory, html_envelope


class TestAnalysisService:
    """Integration tests for AnalysisService."""

    @pytest.fixture
    def service(self):
        return AnalysisService()

    async def _analyze(self, service, card_id):
        async with get_session() as session:
            return await service.analyze_card(session, card_id)

    async def test_analyze_creates_first_version(self, service, add_rows, math_card, fetch_analyses):
        await add_rows(math_card)

        record = await self._analyze(service, "card_math")

        assert record.analysis_version == 1
        assert record.detected_domain == ContentDomain.MATHEMATICS
        assert record.domain_confidence == 1.0
        assert record.detected_card_type == CardType.QA
        assert record.detected_language == "en"
        assert record.front_word_count == 7
        assert record.back_word_count == 10
        assert record.status == AnalysisStatus.COMPLETED
        assert record.analysis_method == AnalysisMethod.RULE_BASED

        stored = await fetch_analyses("card_math")
        assert len(stored) == 1
        assert stored[0].extracted_concepts[0] == "derivative"
        assert stored[0].raw_analysis["domain_scores"]["mathematics"] > 0

    async def test_versions_append(self, service, add_rows, math_card, fetch_analyses):
        """Test repeated analysis appends versions and never overwrites."""
        await add_rows(math_card)

        versions = [(await self._analyze(service, "card_math")).analysis_version for _ in range(3)]

        assert versions == [1, 2, 3]
        stored = await fetch_analyses("card_math")
        assert [a.analysis_version for a in stored] == [1, 2, 3]
        assert len({a.id for a in stored}) == 3

    async def test_versions_are_per_card(self, service, add_rows, math_card, ambiguous_card):
        await add_rows(math_card, ambiguous_card)

        await self._analyze(service, "card_math")
        await self._analyze(service, "card_math")
        record = await self._analyze(service, "card_greeting")

        assert record.analysis_version == 1

    async def test_low_confidence_card(self, service, add_rows, ambiguous_card):
        await add_rows(ambiguous_card)

        record = await self._analyze(service, "card_greeting")

        assert record.detected_domain == ContentDomain.UNKNOWN
        assert record.status == AnalysisStatus.NEEDS_LLM
        assert record.analysis_method == AnalysisMethod.HYBRID
        assert record.raw_analysis["llm_analysis"]["status"] == "not_implemented"

    async def test_html_envelope_content(self, service, add_rows):
        card = HtmlCardFactory(card_id="card_cell", domain="sciences")
        card.front_content = html_envelope("What is the powerhouse of the <b>cell</b>?")
        await add_rows(card)

        record = await self._analyze(service, "card_cell")

        assert record.detected_domain == ContentDomain.SCIENCES
        assert record.detected_card_type == CardType.QA

    async def test_decoded_envelope_content(self, service, add_rows):
        await add_rows(Card(
            card_id="card_json",
            deck_id="deck_1",
            front_content={"html": "<p>Define <i>entropy</i></p>", "media": []},
            back_content={"html": "<p>Disorder in thermodynamics</p>"},
        ))

        record = await self._analyze(service, "card_json")

        assert record.detected_card_type == CardType.DEFINITION
        assert record.detected_domain == ContentDomain.SCIENCES
        assert record.front_word_count == 2

    async def test_missing_card(self, service, db_engine, fetch_analyses):
        with pytest.raises(CardNotFoundError) as exc_info:
            await self._analyze(service, "card_missing")

        assert exc_info.value.card_id == "card_missing"
        assert await fetch_analyses("card_missing") == []

    async def test_get_latest_and_history(self, service, add_rows, math_card):
        await add_rows(math_card)
        for _ in range(3):
            await self._analyze(service, "card_math")

        async with get_session() as session:
            latest = await service.get_latest(session, "card_math")
            history = await service.get_history(session, "card_math")

        assert latest.analysis_version == 3
        assert [a.analysis_version for a in history] == [1, 2, 3]

    async def test_get_latest_none(self, service, db_engine):
        async with get_session() as session:
            assert await service.get_latest(session, "card_missing") is None
            assert await service.get_history(session, "card_missing") == []
