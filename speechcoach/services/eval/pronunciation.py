# speechcoach/services/eval/pronunciation.py
"""
Text-level pronunciation evaluation.

Compares a transcribed spoken attempt against the reference sentence and
scores it on four axes (accuracy, pronunciation, fluency, completeness).
Word matching combines three signals:
  - Levenshtein edit distance (50%)
  - simplified Soundex phonetic code (30%)
  - character-set overlap (20%)

Everything here is a pure function of its arguments; no audio is analysed,
only the text the STT step produced.
"""
from __future__ import annotations

import logging
import math
import re
from typing import Dict, List, Sequence, Set

from speechcoach.schemas.eval import PerformanceLevel, PronunciationEvaluation, WordAnalysis, WordStatus

log = logging.getLogger("eval")

# ---- Thresholds (scoring semantics depend on these exact values) ----

MATCH_FLOOR = 30         # best candidate must exceed this to count as a match
CORRECT_MIN = 90
SIMILAR_MIN = 60
EQUIVALENT_MIN = 70      # "same word" for completeness and LCS

EXCELLENT_MIN = 85
GOOD_MIN = 70
FAIR_MIN = 50

# ---- Normalization ----

PUNCT_RE = re.compile(r"[.,!?;:'\"()\[\]{}]")
SPACE_RE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    s = PUNCT_RE.sub("", (text or "").lower())
    return SPACE_RE.sub(" ", s).strip()


def tokenize(text: str) -> List[str]:
    return [w for w in normalize_text(text).split() if w]


# ---- Similarity metrics ----

def levenshtein_distance(s1: str, s2: str) -> int:
    n, m = len(s1), len(s2)
    prev = list(range(m + 1))
    for i in range(1, n + 1):
        cur = [i] + [0] * m
        for j in range(1, m + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            cur[j] = min(prev[j] + 1,          # deletion
                         cur[j - 1] + 1,       # insertion
                         prev[j - 1] + cost)   # substitution
        prev = cur
    return prev[m]


def levenshtein_similarity(s1: str, s2: str) -> float:
    max_len = max(len(s1), len(s2))
    if max_len == 0:
        return 100.0
    return (max_len - levenshtein_distance(s1, s2)) / max_len * 100


PHONETIC_MAP: Dict[str, str] = {
    **dict.fromkeys("bfpv", "1"),
    **dict.fromkeys("cgjkqsxz", "2"),
    **dict.fromkeys("dt", "3"),
    "l": "4",
    **dict.fromkeys("mn", "5"),
    "r": "6",
}
PHONETIC_LEN = 4


def phonetic_code(word: str) -> str:
    """Simplified Soundex: first letter kept, consonant classes as digits, padded to 4."""
    if not word:
        return ""
    w = word.lower()
    code = w[0]
    prev = ""
    for ch in w[1:]:
        if len(code) >= PHONETIC_LEN:
            break
        digit = PHONETIC_MAP.get(ch, "")
        # vowels and h/w/y produce nothing and do not reset `prev`
        if digit and digit != prev:
            code += digit
            prev = digit
    return code.ljust(PHONETIC_LEN, "0")


def phonetic_similarity(s1: str, s2: str) -> float:
    c1, c2 = phonetic_code(s1), phonetic_code(s2)
    if c1 == c2:
        return 100.0
    longest = max(len(c1), len(c2))
    if longest == 0:
        return 0.0
    same = sum(1 for a, b in zip(c1, c2) if a == b)
    return same / longest * 100


def character_overlap(s1: str, s2: str) -> float:
    chars1, chars2 = set(s1), set(s2)
    total = max(len(chars1), len(chars2))
    if total == 0:
        return 0.0
    return len(chars1 & chars2) / total * 100


def word_similarity(spoken: str, expected: str) -> float:
    if spoken == expected:
        return 100.0
    return (levenshtein_similarity(spoken, expected) * 0.5
            + phonetic_similarity(spoken, expected) * 0.3
            + character_overlap(spoken, expected) * 0.2)


def word_status(similarity: float) -> WordStatus:
    if similarity >= CORRECT_MIN:
        return "correct"
    if similarity >= SIMILAR_MIN:
        return "similar"
    return "incorrect"


# ---- Alignment ----

def align_words(spoken_words: Sequence[str], expected_words: Sequence[str]) -> List[WordAnalysis]:
    """
    Greedy best match: each expected word, in order, takes the most similar
    spoken word not yet used. Leftover spoken words are reported as extras.
    """
    analysis: List[WordAnalysis] = []
    used: Set[int] = set()

    for expected in expected_words:
        best_idx, best_sim = -1, -1.0
        for j, spoken in enumerate(spoken_words):
            if j in used:
                continue
            sim = word_similarity(spoken, expected)
            if sim > best_sim:
                best_idx, best_sim = j, sim

        if best_idx >= 0 and best_sim > MATCH_FLOOR:
            used.add(best_idx)
            analysis.append(WordAnalysis(
                expected=expected,
                spoken=spoken_words[best_idx],
                status=word_status(best_sim),
                similarity=best_sim,
            ))
        else:
            analysis.append(WordAnalysis(expected=expected, spoken="", status="missing", similarity=0.0))

    for j, spoken in enumerate(spoken_words):
        if j not in used:
            analysis.append(WordAnalysis(expected="", spoken=spoken, status="extra", similarity=0.0))

    return analysis


def longest_common_subsequence(seq1: Sequence[str], seq2: Sequence[str]) -> int:
    """LCS length where two words count as equal at similarity >= 70."""
    n, m = len(seq1), len(seq2)
    dp = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(1, n + 1):
        for j in range(1, m + 1):
            if word_similarity(seq1[i - 1], seq2[j - 1]) >= EQUIVALENT_MIN:
                dp[i][j] = dp[i - 1][j - 1] + 1
            else:
                dp[i][j] = max(dp[i - 1][j], dp[i][j - 1])
    return dp[n][m]


# ---- Sub-scores ----

def _expected_entries(analysis: Sequence[WordAnalysis]) -> List[WordAnalysis]:
    return [w for w in analysis if w.expected != ""]


def accuracy_score(analysis: Sequence[WordAnalysis]) -> float:
    entries = _expected_entries(analysis)
    if not entries:
        return 0.0
    return sum(w.similarity for w in entries) / len(entries)


def pronunciation_score(analysis: Sequence[WordAnalysis]) -> float:
    entries = _expected_entries(analysis)
    if not entries:
        return 0.0
    total = 0.0
    for w in entries:
        if w.status == "correct":
            total += 100
        elif w.status == "similar":
            total += w.similarity * 0.8
        elif w.status == "incorrect":
            total += w.similarity * 0.5
        # missing contributes 0
    return total / len(entries)


def fluency_score(spoken_words: Sequence[str], expected_words: Sequence[str]) -> float:
    # nothing heard is not "fluent" even though the length formula would give 20
    if not expected_words or not spoken_words:
        return 0.0
    ratio = len(spoken_words) / len(expected_words)
    if 0.8 <= ratio <= 1.2:
        length_score = 100.0
    else:
        length_score = max(0.0, 100 - abs(1 - ratio) * 50)
    order_score = longest_common_subsequence(spoken_words, expected_words) / len(expected_words) * 100
    return length_score * 0.4 + order_score * 0.6


def completeness_score(spoken_words: Sequence[str], expected_words: Sequence[str]) -> float:
    if not expected_words:
        return 0.0
    found = sum(
        1 for expected in expected_words
        if any(word_similarity(spoken, expected) >= EQUIVALENT_MIN for spoken in spoken_words)
    )
    return found / len(expected_words) * 100


def performance_level(overall: float) -> PerformanceLevel:
    if overall >= EXCELLENT_MIN:
        return "excellent"
    if overall >= GOOD_MIN:
        return "good"
    if overall >= FAIR_MIN:
        return "fair"
    return "poor"


# ---- Feedback ----

LEVEL_MESSAGES: Dict[PerformanceLevel, str] = {
    "excellent": "Excellent work! Your pronunciation is very clear.",
    "good": "Good job! Your pronunciation is quite good.",
    "fair": "Fair effort. Keep practicing to improve.",
    "poor": "Keep practicing! Try to speak more clearly.",
}


def generate_feedback(
    overall: float,
    accuracy: float,
    pronunciation: float,
    fluency: float,
    completeness: float,
    analysis: Sequence[WordAnalysis],
) -> str:
    parts = [LEVEL_MESSAGES[performance_level(overall)]]

    issues: List[str] = []
    if accuracy < 70:
        issues.append("Try to pronounce words more accurately")
    if pronunciation < 70:
        issues.append("Focus on correct pronunciation of each word")
    if fluency < 70:
        issues.append("Work on speaking more smoothly")
    if completeness < 80:
        issues.append("Try to include all words from the text")

    shaky = [w for w in analysis if w.status in ("incorrect", "similar")]
    if 1 <= len(shaky) <= 3:
        issues.append("Pay attention to: " + ", ".join(f'"{w.expected}"' for w in shaky))

    if issues:
        parts.append("\n\nSuggestions:\n• " + "\n• ".join(issues))
    return "\n".join(parts)


# ---- Entry points ----

def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def evaluate(spoken_text: str, expected_text: str) -> PronunciationEvaluation:
    """
    Score `spoken_text` (STT output) against `expected_text`.

    Never raises for string input: empty or whitespace-only text yields zero
    scores and a "poor" level.
    """
    spoken_words = tokenize(spoken_text)
    expected_words = tokenize(expected_text)
    log.debug("evaluate: spoken_words=%d expected_words=%d", len(spoken_words), len(expected_words))

    analysis = align_words(spoken_words, expected_words)
    accuracy = accuracy_score(analysis)
    pronunciation = pronunciation_score(analysis)
    fluency = fluency_score(spoken_words, expected_words)
    completeness = completeness_score(spoken_words, expected_words)

    overall = accuracy * 0.4 + pronunciation * 0.3 + fluency * 0.2 + completeness * 0.1
    level = performance_level(overall)
    feedback = generate_feedback(overall, accuracy, pronunciation, fluency, completeness, analysis)

    log.debug("evaluate: overall=%.2f level=%s", overall, level)
    return PronunciationEvaluation(
        accuracy=_round_half_up(accuracy),
        pronunciation=_round_half_up(pronunciation),
        fluency=_round_half_up(fluency),
        completeness=_round_half_up(completeness),
        word_analysis=analysis,
        feedback=feedback,
        level=level,
    )


def calculate_simple_accuracy(spoken_text: str, expected_text: str) -> int:
    return evaluate(spoken_text, expected_text).accuracy
