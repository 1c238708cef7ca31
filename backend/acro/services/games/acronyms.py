import random
import re
import string
from typing import NamedTuple, Optional

MAX_ANSWER_LENGTH = 200


def available_letters(excluded: str = '') -> list:
    excluded_set = {c.upper() for c in (excluded or '') if c.isalpha()}
    return [c for c in string.ascii_uppercase if c not in excluded_set]


def generate_acronym(settings: dict, rng: Optional[random.Random] = None) -> str:
    """Pick a random acronym within the game's length bounds and letter pool."""
    rng = rng or random.Random()
    low = int(settings.get('acronym_length_min', 3))
    high = int(settings.get('acronym_length_max', 6))
    if high < low:
        low, high = high, low
    letters = available_letters(settings.get('excluded_letters', ''))
    if not letters:
        raise ValueError('No letters left to build an acronym from')
    length = rng.randint(low, high)
    return ''.join(rng.choice(letters) for _ in range(length))


class ValidationResult(NamedTuple):
    is_valid: bool
    error: Optional[str] = None


# Anything that is not a letter or digit in any script
_LEADING_PUNCT = re.compile(r'^[\W_]+')


def validate_answer(text: str, acronym: str) -> ValidationResult:
    """Check that each word of `text` starts with the matching acronym letter."""
    cleaned = (text or '').strip()
    if not cleaned:
        return ValidationResult(False, 'Answer cannot be empty')
    if len(cleaned) > MAX_ANSWER_LENGTH:
        return ValidationResult(False, f'Answer must be at most {MAX_ANSWER_LENGTH} characters')

    # Words made only of punctuation (e.g. a lone dash) do not count
    words = [w for w in cleaned.split() if _LEADING_PUNCT.sub('', w)]
    if len(words) != len(acronym):
        return ValidationResult(False, f'Answer must have exactly {len(acronym)} words')

    for idx, (word, letter) in enumerate(zip(words, acronym.upper()), start=1):
        first = _LEADING_PUNCT.sub('', word)[0].upper()
        if first != letter:
            return ValidationResult(False, f"Word {idx} must start with '{letter}'")
    return ValidationResult(True)
