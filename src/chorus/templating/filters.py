"""Custom Jinja filters for system prompts."""

from jinja2 import Environment


def first_word(value: str, default: str = "participant") -> str:
    """
    First whitespace-separated word of a display name.

    Usage in template: {{ name | first_word }}  ("OpenAI (gpt-4o)" -> "OpenAI")
    """
    words = value.split()
    return words[0] if words else default


def bullet_list(items: list[str], bullet: str = "- ") -> str:
    """
    Format items as a bulleted list.

    Usage in template: {{ names | bullet_list }}
    """
    return "\n".join(f"{bullet}{item}" for item in items)


def join_or(items: list[str], default: str = "") -> str:
    """
    Comma-join items, or return ``default`` when there are none.

    Usage in template: {{ names | join_or("no others") }}
    """
    return ", ".join(items) if items else default


def register_default_filters(env: Environment) -> None:
    """Register the prompt filters with a Jinja environment."""
    env.filters["first_word"] = first_word
    env.filters["bullet_list"] = bullet_list
    env.filters["join_or"] = join_or
