"""CPF (Brazilian national id) normalisation and checksum validation."""
import re

_NON_DIGITS = re.compile(r"\D")


def normalize_cpf(cpf: str) -> str:
    """Strip punctuation, keeping digits only."""
    return _NON_DIGITS.sub("", cpf or "")


def _check_digit(digits: str, weight_start: int) -> int:
    total = sum(int(d) * w for d, w in zip(digits, range(weight_start, 1, -1)))
    remainder = (total * 10) % 11
    return 0 if remainder == 10 else remainder


def validate_cpf(cpf: str) -> bool:
    """Return True for an 11-digit CPF with both mod-11 check digits correct."""
    digits = normalize_cpf(cpf)
    if len(digits) != 11:
        return False
    if digits == digits[0] * 11:
        return False
    if _check_digit(digits[:9], 10) != int(digits[9]):
        return False
    return _check_digit(digits[:10], 11) == int(digits[10])
