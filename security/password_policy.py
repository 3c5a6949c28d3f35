import re
from typing import List, Tuple

from flask import current_app

_LETTER = re.compile(r"[A-Za-z]")
_DIGIT = re.compile(r"\d")

_DEFAULTS = {
    "PASSWORD_MIN_LEN": 8,
    "PASSWORD_MAX_LEN": 128,
    "PASSWORD_REQUIRE_DIGIT": True,
}


def _cfg(name: str):
    try:
        return current_app.config.get(name, _DEFAULTS[name])
    except RuntimeError:
        # outside an app context
        return _DEFAULTS[name]

def validate_password(pw: str) -> Tuple[bool, List[str]]:
    errors: List[str] = []

    if not isinstance(pw, str):
        return False, ["Password must be a string"]

    min_len = int(_cfg("PASSWORD_MIN_LEN"))
    max_len = int(_cfg("PASSWORD_MAX_LEN"))

    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw) > max_len:
        errors.append(f"Password must be at most {max_len} characters")
    if not _LETTER.search(pw):
        errors.append("Password must include at least 1 letter")
    if bool(_cfg("PASSWORD_REQUIRE_DIGIT")) and not _DIGIT.search(pw):
        errors.append("Password must include at least 1 number")

    return (len(errors) == 0), errors
