"""Input suggestions for the quick-add box."""

from typing import List, Optional

from fuzzywuzzy import fuzz, process


MAX_SUGGESTIONS = 5

# Short inputs match everything.
MIN_FILTER_LENGTH = 3

TASK_TEMPLATES = (
    "Call someone tomorrow 9am",
    "Meeting with team next Monday 2pm",
    "Buy groceries Friday evening",
    "Doctor appointment next Tuesday 10am",
    "Submit report by Friday urgent",
    "Review presentation later",
    "Pay bills tomorrow",
    "Workout session 6pm today",
)


def get_suggestions(partial_input: str, limit: int = MAX_SUGGESTIONS) -> List[str]:
    """Return task templates that contain the partial input.

    Args:
        partial_input: What the user has typed so far
        limit: Maximum number of templates returned (never more than 5)

    Returns:
        Matching templates in their fixed order
    """
    needle = (partial_input or "").lower()
    matches = [
        template for template in TASK_TEMPLATES
        if needle in template.lower() or len(needle) < MIN_FILTER_LENGTH
    ]
    return matches[:min(limit, MAX_SUGGESTIONS)]


def suggest_categories(category: Optional[str], available_categories: List[str],
                       limit: int = 3) -> List[str]:
    """Suggest known categories that look like a mistyped one."""
    if not category or not available_categories or category in available_categories:
        return []

    close_matches = process.extractBests(
        category, available_categories, scorer=fuzz.ratio, score_cutoff=70, limit=limit
    )
    return [match[0] for match in close_matches]
