"""
Converts raw answers onto a common 0-10 scale and aggregates them.

Every item records the question type it was answered under:
    yes_no      0 / 1      single rating -> 0 or 10, averages -> avg * 10
    scale_3     1 .. 3     (raw / 3) * 10
    scale_1_10  1 .. 10    unchanged
Items recorded before question types were tracked take the type of the
form's question with the same id; anything still untyped or unknown is
treated as scale_1_10.
"""

from typing import Dict, Iterable, List, Optional

from config import YES_NO, SCALE_3, GOOD_THRESHOLD, MEDIUM_THRESHOLD, RATING_RANGES, DEFAULT_RATING_RANGE


def normalize(raw, question_type=None) -> float:
    """Normalize a single rating."""
    if question_type == YES_NO:
        return 10.0 if raw == 1 else 0.0
    if question_type == SCALE_3:
        return (raw / 3) * 10
    return float(raw)


def normalize_average(avg, question_type=None) -> float:
    """Normalize an average of raw ratings; yes/no averages scale linearly."""
    if question_type == YES_NO:
        return avg * 10
    if question_type == SCALE_3:
        return (avg / 3) * 10
    return float(avg)


def item_type(item: Dict, question_types: Optional[Dict] = None) -> Optional[str]:
    """The type an item was answered under: its own, else the form's question for that id."""
    if item.get('question_type'):
        return item['question_type']
    if question_types:
        return question_types.get(item['parameter_id'])
    return None


def response_average(response: Dict, question_types: Optional[Dict] = None) -> float:
    """
    Mean of the normalized items of one response.

    question_types: optional {parameter_id: question type} used for items
    recorded without a type
    """
    items = response.get('items') or []
    if not items:
        return 0.0
    total = sum(normalize(item['rating'], item_type(item, question_types)) for item in items)
    return total / len(items)


def parameter_average(responses: Iterable[Dict], parameter_id) -> float:
    """Mean of the raw ratings given to one question; not normalized."""
    total = 0
    count = 0
    for response in responses:
        for item in response.get('items') or []:
            if item['parameter_id'] == parameter_id:
                total += item['rating']
                count += 1
    return total / count if count else 0.0


def form_average(responses: List[Dict], question_types: Optional[Dict] = None) -> float:
    """Mean of the per-response averages of one form."""
    if not responses:
        return 0.0
    return sum(response_average(r, question_types) for r in responses) / len(responses)


def faculty_overall(form_stats: Iterable[Dict]) -> float:
    """
    Overall rating across a faculty's forms, weighted by response count.

    form_stats: dicts with 'average' and 'response_count'
    """
    weighted = 0.0
    count = 0
    for stats in form_stats:
        weighted += stats['average'] * stats['response_count']
        count += stats['response_count']
    return weighted / count if count else 0.0


def rating_band(avg) -> str:
    if avg >= GOOD_THRESHOLD:
        return 'good'
    if avg >= MEDIUM_THRESHOLD:
        return 'medium'
    if avg > 0:
        return 'poor'
    return 'none'


def format_rating(avg) -> str:
    """One decimal place, or a dash when there is no data."""
    if not avg:
        return '–'
    return f"{avg:.1f}"


def rating_display(avg, question_type=None) -> str:
    """Display text for a raw-scale average in the unit the question was asked in."""
    if question_type == YES_NO:
        return f"{avg * 100:.0f}% Yes"
    if question_type == SCALE_3:
        return f"{avg:.1f}/3"
    return f"{avg:.1f}/10"


def clamp_rating(rating, question_type=None) -> int:
    """Round a raw answer and pull it into the range its question type allows."""
    low, high = RATING_RANGES.get(question_type, DEFAULT_RATING_RANGE)
    return min(high, max(low, round(rating)))
