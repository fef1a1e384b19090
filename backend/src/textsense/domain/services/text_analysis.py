"""Local text heuristics — the fallback of last resort.

A *pure domain service* with zero external dependencies.  Given non-empty
text it always produces a deterministic explanation or extractive summary,
which is what lets the orchestrator promise an answer when every remote
provider is down or unconfigured.
"""

from __future__ import annotations

import re
import string

from textsense.domain.enums import ExplanationLevel, SummaryLength
from textsense.domain.value_objects import TextAnalysis

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_STOPWORDS = frozenset(
    {"the", "and", "but", "for", "are", "have", "this", "that", "with", "they", "been", "their"}
)

MAX_KEYWORDS = 5
MAX_TOPICS = 3
SUMMARY_FALLBACK_CHARS = 200

# Number of leading sentences kept by the extractive summary.
SUMMARY_SENTENCES: dict[SummaryLength, int] = {
    SummaryLength.SHORT: 1,
    SummaryLength.MEDIUM: 3,
    SummaryLength.LONG: 6,
}


def split_sentences(text: str) -> list[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def extract_keywords(words: list[str], limit: int = MAX_KEYWORDS) -> tuple[str, ...]:
    """Naive keyword extraction: first long, non-stopword tokens, de-duplicated."""
    seen: set[str] = set()
    keywords: list[str] = []
    for raw in words:
        word = raw.strip(string.punctuation)
        if len(word) <= 4 or word.lower() in _STOPWORDS:
            continue
        if word.lower() in seen:
            continue
        seen.add(word.lower())
        keywords.append(word)
        if len(keywords) == limit:
            break
    return tuple(keywords)


def classify_text(text: str, word_count: int) -> str:
    if "http" in text or "www" in text:
        return "web content"
    if "@" in text and "." in text:
        return "communication"
    if word_count < 10:
        return "short phrase"
    if word_count < 50:
        return "brief text"
    if word_count < 200:
        return "medium text"
    return "long passage"


def reading_level(avg_words_per_sentence: float) -> str:
    if avg_words_per_sentence > 20:
        return "Advanced"
    if avg_words_per_sentence > 15:
        return "Intermediate"
    return "Elementary"


def analyze_text(text: str) -> TextAnalysis:
    words = text.split()
    sentences = split_sentences(text)
    avg = len(words) / max(len(sentences), 1)
    keywords = extract_keywords(words)

    return TextAnalysis(
        word_count=len(words),
        sentence_count=len(sentences),
        keywords=keywords,
        topics=keywords[:MAX_TOPICS],
        text_type=classify_text(text, len(words)),
        reading_level=reading_level(avg),
        avg_words_per_sentence=int(avg + 0.5),
    )


def local_explanation(text: str, level: ExplanationLevel) -> tuple[str, TextAnalysis]:
    """Synthesize an explanation from text statistics alone."""
    analysis = analyze_text(text)
    topics = ", ".join(analysis.topics) or "general content"
    keywords = ", ".join(analysis.keywords) or "none"

    if level is ExplanationLevel.DETAILED:
        explanation = (
            f"Text analysis: this is {analysis.text_type} with {analysis.word_count} words, "
            f"{analysis.sentence_count} sentences and an estimated reading level of "
            f"{analysis.reading_level}. Key topics include: {topics}. "
            "Configure a provider API key for comprehensive AI explanations."
        )
    elif level is ExplanationLevel.TECHNICAL:
        explanation = (
            f"Technical analysis: {analysis.text_type} | Length: {analysis.word_count} words, "
            f"{analysis.sentence_count} sentences | Reading complexity: {analysis.reading_level} | "
            f"Key terms: {keywords} | Configure a provider API key for in-depth technical analysis."
        )
    else:
        explanation = (
            f"This appears to be {analysis.text_type}. It contains about {analysis.word_count} "
            f"words and discusses {topics}. "
            "Configure a provider API key for detailed AI explanations."
        )
    return explanation, analysis


def local_summary(text: str, length: SummaryLength) -> str:
    """Extractive summary: the first N sentences toward the target length."""
    sentences = split_sentences(text)
    if not sentences:
        return text.strip()[:SUMMARY_FALLBACK_CHARS] + "..."
    keep = SUMMARY_SENTENCES[length]
    return ". ".join(sentences[:keep]) + "."
