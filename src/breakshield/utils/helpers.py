"""Utility functions."""


def format_countdown(seconds: int) -> str:
    """Format remaining seconds as m:ss."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60}:{seconds % 60:02d}"


def _plural(count: int, singular: str, plural: str) -> str:
    return f"{count} {singular if count == 1 else plural}"


def selection_summary(selection, status_word: str = "blocked") -> str:
    """Describe a selection, e.g. '2 apps + 1 website blocked'."""
    if selection is None:
        return f"Nothing {status_word}"

    parts = []
    if selection.applications:
        parts.append(_plural(len(selection.applications), "app", "apps"))
    if selection.categories:
        parts.append(_plural(len(selection.categories), "category", "categories"))
    if selection.web_domains:
        parts.append(_plural(len(selection.web_domains), "website", "websites"))

    if not parts:
        return f"Nothing {status_word}"
    return f"{' + '.join(parts)} {status_word}"


def get_motivational_quote() -> str:
    """Get a random motivational quote."""
    quotes = [
        "Focus is the gateway to thinking.",
        "You are in control of your time.",
        "Discipline equals freedom.",
        "Progress, not perfection.",
        "Stay committed to your decisions.",
    ]
    import random
    return random.choice(quotes)
