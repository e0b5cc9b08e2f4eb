from __future__ import annotations
from dataclasses import replace
from typing import Dict, List, Mapping, Optional, Sequence, Tuple
from .models import FluencyDetailRecord, QuestionAnswer
from .utils import load_json, round_half_up, rules_path

RULES = load_json(rules_path(), {})

DEFAULT_TIER_THRESHOLDS: List[Tuple[int, int]] = [(80, 4), (50, 3), (25, 2)]
NO_TIER = "-"


def _tier_thresholds() -> List[Tuple[int, int]]:
    raw = RULES.get("tier_thresholds", DEFAULT_TIER_THRESHOLDS)
    pairs = [(float(lo), int(t)) for lo, t in raw]
    return sorted(pairs, key=lambda p: p[0], reverse=True)


def language_subject() -> str:
    return RULES.get("default_subject", "Língua Portuguesa")


def percent_to_tier(pct: float, thresholds: Optional[Sequence[Tuple[float, int]]] = None) -> int:
    # >=80 -> 4, >=50 -> 3, >=25 -> 2, else 1
    if thresholds is None:
        thresholds = _tier_thresholds()
    for lo, tier in thresholds:
        if pct >= lo:
            return tier
    return int(RULES.get("tier_floor", 1))



def average_percent(questions: Mapping[int, QuestionAnswer]) -> Optional[int]:
    # correct / answered, None when nothing was answered
    if not questions:
        return None
    correct = sum(1 for q in questions.values() if q.correct)
    return round_half_up(100 * correct / len(questions))


def compute_averages(records: Sequence[FluencyDetailRecord]) -> List[FluencyDetailRecord]:
    # records without answers keep the average they came with (MÉDIA column or None)
    out = []
    for rec in records:
        avg = average_percent(rec.questions)
        out.append(rec if avg is None else replace(rec, average=avg))
    return out


def assign_tiers(records: Sequence[FluencyDetailRecord]) -> List[FluencyDetailRecord]:
    """
    Tier is derived from the Language average only, then copied onto every
    other subject of the same student (name compared case-insensitively).
    Students without a Language tier get "-" on their other subjects.

    Returns new records in the same order.
    """
    lang = language_subject()
    thresholds = _tier_thresholds()
    lang_tiers: Dict[str, int] = {}

    for rec in records:
        if rec.subject == lang and rec.average is not None:
            lang_tiers[rec.name.upper()] = percent_to_tier(rec.average, thresholds)

    out = []
    for rec in records:
        if rec.subject == lang:
            tier = percent_to_tier(rec.average, thresholds) if rec.average is not None else None
            out.append(replace(rec, tier=tier))
        else:
            out.append(replace(rec, tier=lang_tiers.get(rec.name.upper(), NO_TIER)))
    return out


def compute_derived_metrics(records: Sequence[FluencyDetailRecord]) -> List[FluencyDetailRecord]:
    return assign_tiers(compute_averages(records))
