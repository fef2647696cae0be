from typing import Iterable, List, Mapping, Optional

from email_validator import EmailNotValidError, validate_email

MIN_PASSWORD_LENGTH = 6


def missing_fields(data: Mapping, required: Iterable[str]) -> Optional[List[str]]:
    """Names of required fields that are absent or blank, or None when all are present."""
    missing = []
    for field in required:
        value = data.get(field)
        if value is None or str(value).strip() == "":
            missing.append(field)
    return missing or None


def is_valid_email(email: str) -> bool:
    try:
        validate_email(email, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def is_valid_password(password: Optional[str]) -> bool:
    return bool(password) and len(password) >= MIN_PASSWORD_LENGTH
