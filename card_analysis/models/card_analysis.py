"""Versioned card analysis records."""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, UniqueConstraint
from sqlmodel import Column, Field, SQLModel


class ContentDomain(str, Enum):
    """Content domains recognised by keyword matching."""

    LANGUAGES = "languages"
    MATHEMATICS = "mathematics"
    SCIENCES = "sciences"
    HISTORY_SOCIAL = "history_social"
    ARTS_MUSIC = "arts_music"
    TECHNOLOGY = "technology"
    MEDICINE_HEALTH = "medicine_health"
    LAW_GOVERNMENT = "law_government"
    BUSINESS_ECONOMICS = "business_economics"
    TEST_PREP = "test_prep"
    HOBBIES = "hobbies"
    UNKNOWN = "unknown"


class ComplexityLevel(str, Enum):
    """Difficulty bands for card content."""

    ELEMENTARY = "elementary"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class CardType(str, Enum):
    """Card layouts detected from front/back patterns."""

    BASIC = "basic"
    CLOZE = "cloze"
    QA = "qa"
    DEFINITION = "definition"


class AnalysisMethod(str, Enum):
    RULE_BASED = "rule_based"
    HYBRID = "hybrid"


class AnalysisStatus(str, Enum):
    COMPLETED = "completed"
    NEEDS_LLM = "needs_llm"


class CardAnalysis(SQLModel, table=True):
    """One immutable analysis result for a card.

    Rows are never updated. Re-analysis appends a row with the next
    ``analysis_version``; the current analysis is the highest version.
    """

    __tablename__ = "card_analysis"
    __table_args__ = (
        UniqueConstraint("card_id", "analysis_version", name="unique_card_version"),
    )

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    card_id: str = Field(index=True, max_length=64)
    analysis_version: int = Field(default=1, ge=1)

    # Domain detection
    detected_domain: ContentDomain = Field(default=ContentDomain.UNKNOWN, index=True)
    domain_confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    secondary_domains: list[str] = Field(default_factory=list, sa_column=Column(JSON))

    # Concepts and complexity
    extracted_concepts: list[str] = Field(default_factory=list, sa_column=Column(JSON))
    complexity_level: ComplexityLevel = Field(default=ComplexityLevel.ELEMENTARY, index=True)
    complexity_score: float = Field(default=0.0, ge=0.0, le=1.0)

    # Text metrics
    front_word_count: int = Field(default=0)
    back_word_count: int = Field(default=0)

    detected_card_type: CardType = Field(default=CardType.BASIC)
    detected_language: str = Field(default="en", max_length=10)

    analysis_method: AnalysisMethod = Field(default=AnalysisMethod.RULE_BASED)
    status: AnalysisStatus = Field(default=AnalysisStatus.COMPLETED, index=True)
    raw_analysis: dict[str, Any] | None = Field(default=None, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=datetime.utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Convert analysis to dictionary for API responses."""
        return {
            "analysis_id": str(self.id),
            "card_id": self.card_id,
            "version": self.analysis_version,
            "domain": {
                "primary": self.detected_domain.value,
                "confidence": self.domain_confidence,
                "secondary": self.secondary_domains,
            },
            "complexity": {
                "level": self.complexity_level.value,
                "score": self.complexity_score,
            },
            "concepts": self.extracted_concepts,
            "card_type": self.detected_card_type.value,
            "language": self.detected_language,
            "word_count": {
                "front": self.front_word_count,
                "back": self.back_word_count,
            },
            "method": self.analysis_method.value,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
        }
