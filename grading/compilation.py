"""
grading/compilation.py - Class Result Compilation

Combines each student's subject averages for one class, session and term
into an overall average, a grade point average and a class position,
then summarizes the class as a whole.
"""

from .aggregation import rank_by
from .scales import grade_for, grade_point, grade_remark, max_point
from .statistics import empty_distribution


def performance_level(gpa, scale):
    """
    Describe a GPA, measured on a 5-point maximum

    Scales with a different top point are normalized first.
    """
    if gpa is None:
        return None

    top = max_point(scale) or 5
    normalized = gpa * 5 / top

    if normalized >= 4.5:
        return 'Excellent'
    if normalized >= 3.5:
        return 'Very Good'
    if normalized >= 2.5:
        return 'Good'
    if normalized >= 1.5:
        return 'Fair'
    return 'Poor'


def calculate_gpa(subject_averages, units, scale):
    """
    Unit-weighted grade point average

    Args:
        subject_averages: {subject_code: average (0-100)}
        units: {subject_code: credit units}; missing codes weigh 1
    """
    total_points = 0
    total_units = 0

    for code, average in subject_averages.items():
        if average is None:
            continue
        weight = units.get(code, 1) or 1
        total_points += grade_point(grade_for(average, scale), scale) * weight
        total_units += weight

    return round(total_points / total_units, 2) if total_units > 0 else None


def compile_class_results(students, units, scale):
    """
    Build the class result sheet

    Args:
        students: list of {'student_id', 'student_name', 'subjects': {code: average}}
            in roster order
        units: {subject_code: credit units}
        scale: Active grade scale

    Returns:
        list: one dict per student in roster order, with overall_average,
        grade, remark, gpa, performance, subjects_taken and position
        (None when the student has no score at all)
    """
    results = []

    for student in students:
        averages = {
            code: average for code, average in student['subjects'].items()
            if average is not None
        }
        overall = round(sum(averages.values()) / len(averages), 2) if averages else None
        gpa = calculate_gpa(averages, units, scale)
        grade = grade_for(overall, scale)

        results.append({
            'student_id': student['student_id'],
            'student_name': student['student_name'],
            'subjects': dict(student['subjects']),
            'subjects_taken': len(averages),
            'overall_average': overall,
            'grade': grade,
            'remark': grade_remark(grade, scale) if grade else None,
            'gpa': gpa,
            'performance': performance_level(gpa, scale),
            'position': None
        })

    for position, result in rank_by(results, key=lambda r: r['overall_average']):
        result['position'] = position

    return results


def summarize_class_results(results, subject_codes, scale):
    """
    Class-level summary of a compiled result sheet

    Students without any score are left out of every figure, and a subject
    nobody has a score in averages to 0.

    Returns:
        dict: {
            'class_average': 85.5,
            'grade_distribution': {'A': 2, 'B': 1, ...},
            'subject_averages': {'MTH': 86.0, 'ENG': 85.0}
        }
    """
    distribution = empty_distribution(scale)
    overall = [r['overall_average'] for r in results if r['overall_average'] is not None]

    for result in results:
        if result['grade'] in distribution:
            distribution[result['grade']] += 1

    subject_averages = {}
    for code in subject_codes:
        scores = [r['subjects'].get(code) for r in results if r['subjects'].get(code) is not None]
        subject_averages[code] = round(sum(scores) / len(scores), 2) if scores else 0

    return {
        'class_average': round(sum(overall) / len(overall), 2) if overall else 0,
        'grade_distribution': distribution,
        'subject_averages': subject_averages
    }
