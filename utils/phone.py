import re

_LOCAL_REST = re.compile(r"^[1-9]\d{7,8}$")


def normalize_phone(value: str) -> str:
    trimmed = (value or "").strip()
    if not trimmed:
        return ""
    if trimmed.startswith("+"):
        return "+" + re.sub(r"\D", "", trimmed[1:])
    return re.sub(r"\D", "", trimmed)


def is_valid_serbian_phone(value: str) -> bool:
    """Accepts 06x... local numbers and +381 international ones."""
    normalized = normalize_phone(value)
    if not normalized:
        return False
    if normalized.startswith("+"):
        if not normalized.startswith("+381"):
            return False
        return bool(_LOCAL_REST.match(normalized[4:]))
    if not normalized.startswith("0"):
        return False
    return bool(_LOCAL_REST.match(normalized[1:]))
