"""Local, explainable estimate of how much a tailoring pass helps."""

from __future__ import annotations

from career_ai.models.tailoring import Impact

HIGH_MATCH_SCORE = 80
LOW_MATCH_SCORE = 60
SIGNIFICANT_CHANGES = 5
FEW_CHANGES = 3
GOOD_ATS_SCORE = 85
LOW_ATS_SCORE = 70
MANY_KEYWORDS = 10


def estimate_impact(
    match_score: int,
    changes_count: int,
    matched_keywords: int,
    ats_score: int | None = None,
) -> Impact:
    """Classify tailoring impact as high, medium or low.

    high: match >= 80 and (>= 5 changes or ATS >= 85) and >= 10 matched keywords.
    low: match < 60, or fewer than 3 changes with ATS < 70.
    A missing ATS score counts as neither good nor low.
    """
    good_ats = ats_score is not None and ats_score >= GOOD_ATS_SCORE
    low_ats = ats_score is not None and ats_score < LOW_ATS_SCORE

    if (
        match_score >= HIGH_MATCH_SCORE
        and (changes_count >= SIGNIFICANT_CHANGES or good_ats)
        and matched_keywords >= MANY_KEYWORDS
    ):
        return "high"
    if match_score < LOW_MATCH_SCORE or (changes_count < FEW_CHANGES and low_ats):
        return "low"
    return "medium"
