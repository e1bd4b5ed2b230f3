"""
grading/statistics.py - Class Statistics for one cohort
"""

from .scales import FIVE_BAND

DEFAULT_PASS_MARK = 50


def empty_distribution(scale):
    return {band['grade']: 0 for band in scale}


def compute_statistics(entries, pass_mark=DEFAULT_PASS_MARK, scale=None):
    """
    Summarize a cohort whose derived fields are already computed

    Only entries with a total take part. An empty cohort yields zeros,
    never NaN or a ZeroDivisionError.

    Returns:
        dict: {
            'average': 86.0,
            'highest': 91,
            'lowest': 80,
            'pass_rate': 100.0,
            'count': 3,
            'grade_distribution': {'A': 3, 'B': 0, ...}
        }
    """
    scale = scale or FIVE_BAND
    scored = [entry for entry in entries if entry.total is not None]
    distribution = empty_distribution(scale)

    if not scored:
        return {
            'average': 0,
            'highest': 0,
            'lowest': 0,
            'pass_rate': 0,
            'count': 0,
            'grade_distribution': distribution
        }

    totals = [entry.total for entry in scored]
    passed = sum(1 for entry in scored if (entry.average or 0) >= pass_mark)

    for entry in scored:
        if entry.grade in distribution:
            distribution[entry.grade] += 1

    return {
        'average': round(sum(totals) / len(totals), 2),
        'highest': max(totals),
        'lowest': min(totals),
        'pass_rate': round(100 * passed / len(scored), 2),
        'count': len(scored),
        'grade_distribution': distribution
    }
