import re
from typing import Any, Iterable, List

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

def is_valid_email(v: str) -> bool:
    return bool(EMAIL_RE.match((v or "").strip()))

def missing_fields(data: Any, fields: Iterable[str]) -> List[str]:
    """Champs absents ou vides (après strip) d'un dict ou d'un objet."""
    missing = []
    for field in fields:
        value = data.get(field) if isinstance(data, dict) else getattr(data, field, None)
        if not str(value or "").strip():
            missing.append(field)
    return missing
