"""Search expressions: "Daft  punk\tLIVE" → ["daft", "punk", "live"]."""


def to_search_expression_parts(expr: str | None) -> list[str]:
    """Lower-cased, non-empty, distinct keywords in their original order."""
    if not expr:
        return []
    text = str(expr).replace("\n", "").replace("\r", "").replace("\t", " ")
    parts = []
    for part in text.lower().split(" "):
        part = part.strip()
        if part and part not in parts:
            parts.append(part)
    return parts


def matches(name: str | None, parts: list[str]) -> bool:
    """True if every keyword is contained in ``name`` (case-insensitive)."""
    if not parts:
        return True
    haystack = (name or "").lower()
    return all(part in haystack for part in parts)


def filter_by_name(items, expr: str | None) -> list:
    parts = to_search_expression_parts(expr)
    return [item for item in items if matches(item.name, parts)]
