"""Rule-based classification engine for flashcard content.

Pure functions over card text: domain detection, complexity scoring, card
type and language detection, concept extraction. No I/O happens here; the
analysis service loads cards and persists results.
"""

from __future__ import annotations

import json
import math
import re
from dataclasses import dataclass, field
from typing import Any

from card_analysis.config import settings
from card_analysis.models.card_analysis import (
    AnalysisMethod,
    AnalysisStatus,
    CardType,
    ComplexityLevel,
    ContentDomain,
)
from card_analysis.services.keywords import DOMAIN_KEYWORDS, STOP_WORDS

# Linear: [^>]* cannot match the closing bracket, so no backtracking
TAG_PATTERN = re.compile(r"<[^>]*>")
WHITESPACE_PATTERN = re.compile(r"\s+")
SENTENCE_SPLIT_PATTERN = re.compile(r"[.!?]+")
NON_WORD_PATTERN = re.compile(r"[^\w\s-]")

# &amp; last, so "&amp;lt;" decodes to "&lt;" and not "<"
HTML_ENTITIES = [
    ("&nbsp;", " "),
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&#39;", "'"),
    ("&amp;", "&"),
]

CLOZE_PATTERNS = [
    re.compile(r"\{\{c\d+::.*?\}\}"),
    re.compile(r"\[\.\.\.?\]"),
    re.compile(r"_{3,}"),
]

QUESTION_WORDS = ("what", "who", "where", "when", "why", "how", "which", "whose", "whom")
DEFINITION_ARTICLES = ("a ", "an ", "the ")

# Checked in order; the first script found wins. Kana must precede the CJK
# ideograph range so Japanese text with kanji is not reported as Chinese.
SCRIPT_LANGUAGES = [
    (re.compile(r"[\u3040-\u309f\u30a0-\u30ff]"), "ja"),
    (re.compile(r"[\uac00-\ud7af\u1100-\u11ff]"), "ko"),
    (re.compile(r"[\u4e00-\u9fff]"), "zh"),
    (re.compile(r"[\u0400-\u04ff]"), "ru"),
    (re.compile(r"[\u0600-\u06ff]"), "ar"),
    (re.compile(r"[\u0590-\u05ff]"), "he"),
    (re.compile(r"[\u0370-\u03ff]"), "el"),
    (re.compile(r"[\u0900-\u097f]"), "hi"),
    (re.compile(r"[\u0e00-\u0e7f]"), "th"),
]
DEFAULT_LANGUAGE = "en"

LONG_WORD_LENGTH = 8

_KEYWORD_PATTERNS: dict[ContentDomain, list[tuple[str, re.Pattern]]] = {
    domain: [(keyword, re.compile(rf"\b{re.escape(keyword)}\b", re.IGNORECASE)) for keyword in keywords]
    for domain, keywords in DOMAIN_KEYWORDS.items()
}


@dataclass
class DomainResult:
    """Outcome of keyword-based domain detection."""
    primary: ContentDomain
    confidence: float
    secondary: list[ContentDomain] = field(default_factory=list)
    scores: dict[str, int] = field(default_factory=dict)


@dataclass
class ComplexityResult:
    """Outcome of complexity analysis."""
    level: ComplexityLevel
    score: float
    factors: dict[str, float] = field(default_factory=dict)


@dataclass
class AnalysisResult:
    """Full rule-based analysis of one card."""
    detected_domain: ContentDomain
    domain_confidence: float
    secondary_domains: list[ContentDomain]
    extracted_concepts: list[str]
    complexity_level: ComplexityLevel
    complexity_score: float
    front_word_count: int
    back_word_count: int
    detected_card_type: CardType
    detected_language: str
    status: AnalysisStatus = AnalysisStatus.COMPLETED
    method: AnalysisMethod = AnalysisMethod.RULE_BASED
    raw_analysis: dict[str, Any] = field(default_factory=dict)

    @property
    def needs_llm(self) -> bool:
        return self.status == AnalysisStatus.NEEDS_LLM


def strip_html(html: str) -> str:
    """Remove tags, decode the common entities and collapse whitespace."""
    text = TAG_PATTERN.sub(" ", html)
    for entity, replacement in HTML_ENTITIES:
        text = text.replace(entity, replacement)
    return WHITESPACE_PATTERN.sub(" ", text).strip()


def extract_text(content: Any) -> str:
    """Extract plain text from card content.

    Content may be a JSON envelope (string or decoded) with an ``html``
    field, a JSON-encoded string, an HTML string, or plain text.
    """
    if not content:
        return ""

    if isinstance(content, str):
        try:
            parsed = json.loads(content)
        except ValueError:
            return strip_html(content)
        if isinstance(parsed, dict) and parsed.get("html"):
            return strip_html(parsed["html"])
        if isinstance(parsed, str):
            return strip_html(parsed)
        # Valid JSON without text (numbers, lists, envelopes without html)
        return strip_html(content)

    if isinstance(content, dict):
        if content.get("html"):
            return strip_html(str(content["html"]))
        return strip_html(json.dumps(content))

    if isinstance(content, list):
        return strip_html(json.dumps(content))

    return str(content)


def count_words(text: str) -> int:
    return len(text.split())


def detect_domain(
    text: str,
    secondary_threshold: float = settings.analysis_secondary_domain_threshold,
) -> DomainResult:
    """Detect the content domain by keyword matching.

    Each keyword match scores its length, so longer (more specific) keywords
    weigh more. Confidence is the top score's share of all scores. Secondary
    domains are those scoring above ``secondary_threshold`` of the top score.
    """
    normalized = text.lower()
    scores: dict[ContentDomain, int] = {}
    total_score = 0

    for domain, patterns in _KEYWORD_PATTERNS.items():
        domain_score = 0
        for keyword, pattern in patterns:
            matches = len(pattern.findall(normalized))
            if matches:
                domain_score += len(keyword) * matches
        scores[domain] = domain_score
        total_score += domain_score

    primary = ContentDomain.UNKNOWN
    max_score = 0
    for domain, score in scores.items():
        if score > max_score:
            max_score = score
            primary = domain

    confidence = min(max_score / total_score, 1.0) if total_score > 0 else 0.0

    threshold = max_score * secondary_threshold
    secondary = [
        domain
        for domain, score in sorted(scores.items(), key=lambda item: item[1], reverse=True)
        if domain != primary and score > threshold
    ]

    return DomainResult(
        primary=primary,
        confidence=round(confidence, 3),
        secondary=secondary,
        scores={domain.value: score for domain, score in scores.items()},
    )


def complexity_level(score: float) -> ComplexityLevel:
    """Map a complexity score to its level band."""
    if score < 0.25:
        return ComplexityLevel.ELEMENTARY
    if score < 0.5:
        return ComplexityLevel.INTERMEDIATE
    if score < 0.75:
        return ComplexityLevel.ADVANCED
    return ComplexityLevel.EXPERT


def analyze_complexity(text: str) -> ComplexityResult:
    """Score text complexity from four equally weighted factors.

    Factors: average word length (/10), average sentence length (/30),
    vocabulary diversity, and the share of words with 8+ characters. Each is
    capped at 1.
    """
    words = text.split()
    if not words:
        return ComplexityResult(level=ComplexityLevel.ELEMENTARY, score=0.0)

    sentences = [s for s in SENTENCE_SPLIT_PATTERN.split(text) if s.strip()]

    avg_word_length = sum(len(w) for w in words) / len(words)
    word_length_score = min(avg_word_length / 10, 1.0)

    avg_sentence_length = len(words) / len(sentences) if sentences else float(len(words))
    sentence_length_score = min(avg_sentence_length / 30, 1.0)

    unique_words = {w.lower() for w in words}
    diversity_score = min(len(unique_words) / len(words), 1.0)

    long_words = [w for w in words if len(w) >= LONG_WORD_LENGTH]
    long_word_score = min(len(long_words) / len(words), 1.0)

    score = (
        word_length_score * 0.25
        + sentence_length_score * 0.25
        + diversity_score * 0.25
        + long_word_score * 0.25
    )

    return ComplexityResult(
        level=complexity_level(score),
        score=round(score, 3),
        factors={
            "avg_word_length": round(avg_word_length, 2),
            "avg_sentence_length": round(avg_sentence_length, 2),
            "vocabulary_diversity": round(diversity_score, 2),
            "long_word_ratio": round(long_word_score, 2),
        },
    )


def detect_card_type(front: str, back: str) -> CardType:
    """Detect the card layout. Checks run in priority order: cloze, qa, definition."""
    if any(pattern.search(front) for pattern in CLOZE_PATTERNS):
        return CardType.CLOZE

    front_lower = front.lower()
    back_lower = back.lower()

    if front_lower.strip().startswith(QUESTION_WORDS) or front.strip().endswith("?"):
        return CardType.QA

    if (
        " is " in front_lower
        or front_lower.startswith("define ")
        or ":" in front_lower
        or back_lower.startswith(DEFINITION_ARTICLES)
    ):
        return CardType.DEFINITION

    return CardType.BASIC


def detect_language(text: str) -> str:
    """Detect the language from the first matching Unicode script; default ``en``."""
    for pattern, language in SCRIPT_LANGUAGES:
        if pattern.search(text):
            return language
    return DEFAULT_LANGUAGE


def extract_concepts(text: str, max_concepts: int = settings.analysis_max_concepts) -> list[str]:
    """Extract key terms ranked by ``frequency * ln(len + 1)``.

    Unigrams and bigrams over the stopword-filtered token stream are scored
    together; ties keep first-seen order with unigrams before bigrams.
    """
    words = [
        w
        for w in NON_WORD_PATTERN.sub(" ", text.lower()).split()
        if len(w) >= 3 and w not in STOP_WORDS
    ]

    frequency: dict[str, int] = {}
    for word in words:
        frequency[word] = frequency.get(word, 0) + 1
    for first, second in zip(words, words[1:]):
        bigram = f"{first} {second}"
        frequency[bigram] = frequency.get(bigram, 0) + 1

    ranked = sorted(
        frequency.items(),
        key=lambda item: item[1] * math.log(len(item[0]) + 1),
        reverse=True,
    )
    return [term for term, _ in ranked[:max_concepts]]


async def run_llm_analysis(front_text: str, back_text: str) -> dict[str, Any]:
    """Richer classification for low-confidence cards. Not implemented yet."""
    return {
        "status": "not_implemented",
        "message": "LLM analysis not yet implemented",
    }


def merge_analysis(rule_result: AnalysisResult, llm_result: dict[str, Any]) -> AnalysisResult:
    """Adopt LLM output only when it completed with higher confidence."""
    if (
        llm_result.get("status") != "completed"
        or llm_result.get("confidence", 0.0) <= rule_result.domain_confidence
    ):
        return rule_result

    rule_result.detected_domain = ContentDomain(llm_result["domain"])
    rule_result.domain_confidence = llm_result["confidence"]
    rule_result.extracted_concepts = llm_result.get("concepts") or rule_result.extracted_concepts
    rule_result.raw_analysis = {**rule_result.raw_analysis, "llm_analysis": llm_result}
    return rule_result


class CardAnalyzer:
    """Runs the complete rule-based analysis with configured thresholds."""

    def __init__(
        self,
        min_domain_confidence: float = settings.analysis_min_domain_confidence,
        secondary_domain_threshold: float = settings.analysis_secondary_domain_threshold,
        max_concepts: int = settings.analysis_max_concepts,
    ):
        self.min_domain_confidence = min_domain_confidence
        self.secondary_domain_threshold = secondary_domain_threshold
        self.max_concepts = max_concepts

    def analyze(self, front_text: str, back_text: str) -> AnalysisResult:
        """Classify normalized front/back text."""
        combined = f"{front_text} {back_text}"

        domain = detect_domain(combined, self.secondary_domain_threshold)
        complexity = analyze_complexity(combined)
        needs_llm = domain.confidence < self.min_domain_confidence

        return AnalysisResult(
            detected_domain=domain.primary,
            domain_confidence=domain.confidence,
            secondary_domains=domain.secondary,
            extracted_concepts=extract_concepts(combined, self.max_concepts),
            complexity_level=complexity.level,
            complexity_score=complexity.score,
            front_word_count=count_words(front_text),
            back_word_count=count_words(back_text),
            detected_card_type=detect_card_type(front_text, back_text),
            detected_language=detect_language(combined),
            status=AnalysisStatus.NEEDS_LLM if needs_llm else AnalysisStatus.COMPLETED,
            method=AnalysisMethod.HYBRID if needs_llm else AnalysisMethod.RULE_BASED,
            raw_analysis={
                "domain_scores": domain.scores,
                "complexity_factors": complexity.factors,
            },
        )

    async def analyze_content(self, front_content: Any, back_content: Any) -> AnalysisResult:
        """Extract text from raw card content and classify it.

        Low-confidence results are offered to the LLM stage, which currently
        reports ``not_implemented`` and leaves the rule-based result in place.
        """
        front_text = extract_text(front_content)
        back_text = extract_text(back_content)
        result = self.analyze(front_text, back_text)

        if result.needs_llm:
            llm_result = await run_llm_analysis(front_text, back_text)
            result.raw_analysis["llm_analysis"] = llm_result
            result = merge_analysis(result, llm_result)

        return result
