"""Label mapper: match detected fields to caller data keys.

Every (field, key) pair gets an integer score from a fixed set of weighted
signals. Pairs at or above ACCEPTANCE_THRESHOLD are assigned greedily, best
score first, so each field gets at most one key and each key is claimed by
at most one field.
"""

import re
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple

from src.engine.models import DetectedField, FieldMapping, FieldType


ACCEPTANCE_THRESHOLD = 40

EXACT_LABEL_SCORE = 100
EXACT_NAME_SCORE = 100
NAME_PART_SCORE = 50
NAME_PART_CONFLICT_SCORE = -100
CONTAINMENT_SCORE = 20
SHARED_TOKEN_SCORE = 15
MIN_TOKEN_LENGTH = 3

# (keyword, match mode) -> bonus when both label and key hit the keyword.
# 'contains' checks substring on both sides, 'exact' requires both to normalize to it.
KEYWORD_BONUSES: List[Tuple[str, str, int]] = [
    ("mobile", "contains", 200),
    ("gender", "exact", 200),
    ("hobbies", "exact", 200),
]

# Field types that must not take keys implying the opposite cardinality
TYPE_PENALTIES: List[Tuple[FieldType, Tuple[str, ...], int]] = [
    (FieldType.RADIO_GROUP, ("hobbies", "interests", "skills"), -500),
    (FieldType.CHECKBOX_GROUP, ("gender",), -500),
]

Scorer = Callable[[DetectedField, str], int]

NON_ALNUM = re.compile(r"[^a-z0-9]")


def normalize(text: Optional[str]) -> str:
    """Lowercase, trim and strip everything that is not [a-z0-9]"""
    if not text:
        return ""
    return NON_ALNUM.sub("", text.strip().lower())


def tokens(text: Optional[str]) -> Set[str]:
    """Whole-word tokens longer than two characters"""
    if not text:
        return set()
    return {t for t in re.split(r"[^a-z0-9]+", text.lower()) if len(t) >= MIN_TOKEN_LENGTH}


def score_pair(field: DetectedField, key: str) -> int:
    """
    Score one field against one data key

    Args:
        field: Detected field
        key: Caller-supplied data key

    Returns:
        Summed signal score (may be negative)
    """
    label = normalize(field.label)
    name = normalize(field.name)
    norm_key = normalize(key)
    score = 0

    if label and label == norm_key:
        score += EXACT_LABEL_SCORE
    if name and name == norm_key:
        score += EXACT_NAME_SCORE

    if "first" in label and "first" in norm_key:
        score += NAME_PART_SCORE
    if "last" in label and "last" in norm_key:
        score += NAME_PART_SCORE
    if "first" in label and "last" in norm_key:
        score += NAME_PART_CONFLICT_SCORE
    if "last" in label and "first" in norm_key:
        score += NAME_PART_CONFLICT_SCORE

    if label and norm_key and (norm_key in label or label in norm_key):
        score += CONTAINMENT_SCORE

    score += SHARED_TOKEN_SCORE * len(tokens(field.label) & tokens(key))

    for keyword, mode, bonus in KEYWORD_BONUSES:
        if mode == "contains" and keyword in label and keyword in norm_key:
            score += bonus
        elif mode == "exact" and label == keyword and norm_key == keyword:
            score += bonus

    for field_type, keywords, penalty in TYPE_PENALTIES:
        if field.type == field_type and any(k in norm_key for k in keywords):
            score += penalty

    return score


def map_fields(
    fields: Sequence[DetectedField],
    data_keys: Sequence[str],
    scorer: Optional[Scorer] = None,
    threshold: int = ACCEPTANCE_THRESHOLD
) -> FieldMapping:
    """
    Assign data keys to fields

    Candidates at or above the threshold are claimed in descending score
    order; ties fall back to field discovery order, then caller key order.
    Pure and deterministic.

    Args:
        fields: Discovery output
        data_keys: Caller data keys, in caller order
        scorer: Optional replacement for score_pair
        threshold: Minimum accepted score (inclusive)

    Returns:
        FieldMapping keyed by field_key
    """
    scorer = scorer or score_pair
    candidates: List[Tuple[int, int, int]] = []
    for f_idx, field in enumerate(fields):
        for k_idx, key in enumerate(data_keys):
            score = scorer(field, key)
            if score >= threshold:
                candidates.append((-score, f_idx, k_idx))
    candidates.sort()

    assignments: Dict[str, str] = {}
    scores: Dict[str, int] = {}
    claimed_keys: Set[int] = set()
    for neg_score, f_idx, k_idx in candidates:
        field_key = fields[f_idx].field_key
        if field_key in assignments or k_idx in claimed_keys:
            continue
        assignments[field_key] = data_keys[k_idx]
        scores[field_key] = -neg_score
        claimed_keys.add(k_idx)

    return FieldMapping(assignments=assignments, scores=scores)
