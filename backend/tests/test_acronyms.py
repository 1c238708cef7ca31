import random

import pytest

from acro.services.games.acronyms import available_letters, generate_acronym, validate_answer


@pytest.mark.parametrize('text, acronym', [
    ('Happy Otters Play', 'HOP'),
    ('  happy otters play  ', 'HOP'),
    ('"Happy" otters, play!', 'HOP'),
    ('Bad - idea', 'BI'),
    ('Happy «otters» play', 'HOP'),
])
def test_valid_answers(text, acronym):
    assert validate_answer(text, acronym).is_valid


@pytest.mark.parametrize('text, acronym, error', [
    ('', 'HOP', 'Answer cannot be empty'),
    ('Happy otters', 'HOP', 'Answer must have exactly 3 words'),
    ('Happy otters play now', 'HOP', 'Answer must have exactly 3 words'),
    ('Happy turtles play', 'HOP', "Word 2 must start with 'O'"),
    ('H' + 'a' * 200 + ' O P', 'HOP', 'Answer must be at most 200 characters'),
    ('Øl otters play', 'LOP', "Word 1 must start with 'L'"),
    ('Happy Ø play', 'HOP', "Word 2 must start with 'O'"),
])
def test_invalid_answers(text, acronym, error):
    result = validate_answer(text, acronym)
    assert not result.is_valid
    assert result.error == error


def test_generated_acronym_stays_in_bounds():
    rng = random.Random(42)
    settings = {'acronym_length_min': 2, 'acronym_length_max': 4, 'excluded_letters': 'QXZ'}
    seen_lengths = set()
    for _ in range(200):
        acronym = generate_acronym(settings, rng)
        seen_lengths.add(len(acronym))
        assert 2 <= len(acronym) <= 4
        assert not set(acronym) & set('QXZ')
    assert seen_lengths == {2, 3, 4}


def test_available_letters_ignores_case_and_junk():
    letters = available_letters('a b-c')
    assert 'A' not in letters and 'B' not in letters and 'C' not in letters
    assert len(letters) == 23
