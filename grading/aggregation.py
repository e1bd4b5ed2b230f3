"""
grading/aggregation.py - Derived Fields and Ranking

Convention used throughout the project:
    total   = test1 + test2 + exam            (missing components count as 0,
                                              rounded to 2 decimals)
    average = total / (sum of ceilings) * 100 (rounded to 2 decimals)
    grade   = band of the active grade scale that the average falls in

An entry with no component entered at all is "unscored": its derived
fields stay None and it takes no rank.

Entries are duck-typed: anything with test1/test2/exam/total/average/grade/rank
attributes works (models.ScoreEntry in the application).
"""

from .scales import grade_for
from .validation import COMPONENTS


def max_total(max_scores):
    return sum(max_scores[component] for component in COMPONENTS)


def is_scored(entry):
    return any(getattr(entry, component) is not None for component in COMPONENTS)


def compute_total(entry):
    """Sum of the entered components, None when nothing was entered"""
    if not is_scored(entry):
        return None
    return round(sum(getattr(entry, component) or 0 for component in COMPONENTS), 2)


def compute_average(total, ceiling):
    """Total expressed on a 0-100 scale"""
    if total is None:
        return None
    if not ceiling:
        return 0.0
    return round(total / ceiling * 100, 2)


def compute_derived(entry, max_scores, scale):
    """
    Recompute total, average and grade for one entry

    Writes the three values onto the entry and returns them. Calling it
    again without touching the raw scores yields the same values.

    Returns:
        dict: {'total': ..., 'average': ..., 'grade': ...}
    """
    total = compute_total(entry)
    average = compute_average(total, max_total(max_scores))
    grade = grade_for(average, scale)

    entry.total = total
    entry.average = average
    entry.grade = grade

    return {'total': total, 'average': average, 'grade': grade}


def rank_by(items, key):
    """
    Stable descending ranking by key

    Items whose key is None are left out. Equal keys keep their input order,
    so ranks are always the distinct integers 1..n.

    Returns:
        list: (rank, item) pairs in rank order
    """
    scored = [item for item in items if key(item) is not None]
    ordered = sorted(scored, key=key, reverse=True)
    return [(index, item) for index, item in enumerate(ordered, start=1)]


def compute_ranks(entries):
    """
    Assign 1-based class positions by total, highest first

    Unscored entries get rank None.

    Returns:
        list: ranked entries in rank order
    """
    for entry in entries:
        entry.rank = None

    ranked = []
    for rank, entry in rank_by(entries, key=lambda e: e.total):
        entry.rank = rank
        ranked.append(entry)

    return ranked


def recalculate_cohort(entries, max_scores, scale):
    """Derived fields for every entry, then positions for the whole cohort"""
    for entry in entries:
        compute_derived(entry, max_scores, scale)
    return compute_ranks(entries)
