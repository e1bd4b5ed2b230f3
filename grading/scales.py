"""
grading/scales.py - Grade Boundary Tables

A scale is an ordered list of bands, highest first. Every band carries the
minimum average (0-100) it starts at, its grade point and a remark.
Only one scale is active per deployment (see Config.GRADE_SCALE).
"""

FIVE_BAND = [
    {'grade': 'A', 'min': 80, 'point': 5, 'remark': 'Excellent'},
    {'grade': 'B', 'min': 70, 'point': 4, 'remark': 'Very Good'},
    {'grade': 'C', 'min': 60, 'point': 3, 'remark': 'Good'},
    {'grade': 'D', 'min': 50, 'point': 2, 'remark': 'Pass'},
    {'grade': 'F', 'min': 0, 'point': 0, 'remark': 'Fail'},
]

SIX_BAND = [
    {'grade': 'A', 'min': 90, 'point': 5, 'remark': 'Excellent'},
    {'grade': 'B', 'min': 80, 'point': 4, 'remark': 'Very Good'},
    {'grade': 'C', 'min': 70, 'point': 3, 'remark': 'Good'},
    {'grade': 'D', 'min': 60, 'point': 2, 'remark': 'Satisfactory'},
    {'grade': 'E', 'min': 40, 'point': 1, 'remark': 'Poor'},
    {'grade': 'F', 'min': 0, 'point': 0, 'remark': 'Fail'},
]

SCALES = {
    'five_band': FIVE_BAND,
    'six_band': SIX_BAND,
}

DEFAULT_SCALE = 'five_band'


def get_scale(name=None):
    """
    Return the band list registered under name

    Raises:
        ValueError: If no scale has that name
    """
    name = name or DEFAULT_SCALE
    try:
        return SCALES[name]
    except KeyError:
        raise ValueError(
            f"Unknown grade scale '{name}'. Choose one of: {', '.join(sorted(SCALES))}"
        ) from None


def find_band(average, scale):
    """Band for an average; anything below every minimum falls into the last band"""
    for band in scale:
        if average >= band['min']:
            return band
    return scale[-1]


def grade_for(average, scale):
    """
    Convert an average (0-100) to a letter grade

    Returns None when there is no average to grade.
    """
    if average is None:
        return None
    return find_band(average, scale)['grade']


def grade_point(grade, scale):
    for band in scale:
        if band['grade'] == grade:
            return band['point']
    return 0


def grade_remark(grade, scale):
    for band in scale:
        if band['grade'] == grade:
            return band['remark']
    return ''


def max_point(scale):
    return max(band['point'] for band in scale)
