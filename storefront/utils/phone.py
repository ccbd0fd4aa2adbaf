import re
from typing import Optional


def normalize_phone(phone: Optional[str]) -> str:
    """
    Strips every non-digit character from a contact number.

    The delivery form accepts masked input ("010-1234-5678", "010 1234 5678");
    the backend stores digits only.
    """
    if phone is None:
        return ""
    return re.sub(r"[^\d]", "", str(phone))
