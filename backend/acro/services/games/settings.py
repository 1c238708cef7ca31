from flask import current_app

from .acronyms import available_letters
from .errors import GameActionError

# (min, max) accepted for each integer setting
SETTING_BOUNDS = {
    'min_players': (2, 16),
    'max_players': (2, 16),
    'rounds': (1, 20),
    'answer_time': (15, 300),
    'vote_time': (10, 120),
    'acronym_length_min': (1, 6),
    'acronym_length_max': (1, 6),
    'time_between_rounds': (0, 30),
}


def default_settings() -> dict:
    cfg = current_app.config
    return {
        'min_players': 2,
        'max_players': int(cfg.get('DEFAULT_MAX_PLAYERS', 8)),
        'rounds': int(cfg.get('DEFAULT_ROUNDS', 5)),
        'answer_time': int(cfg.get('DEFAULT_ANSWER_TIME', 60)),
        'vote_time': int(cfg.get('DEFAULT_VOTE_TIME', 30)),
        'acronym_length_min': 3,
        'acronym_length_max': 6,
        'time_between_rounds': int(cfg.get('DEFAULT_TIME_BETWEEN_ROUNDS', 5)),
        'excluded_letters': '',
    }


def merge_settings(overrides) -> dict:
    """Merge caller overrides onto the defaults, rejecting anything out of bounds."""
    merged = default_settings()
    if overrides is None:
        overrides = {}
    if not isinstance(overrides, dict):
        raise GameActionError('Settings must be an object')

    for key, value in overrides.items():
        if value is None:
            continue
        if key in SETTING_BOUNDS:
            low, high = SETTING_BOUNDS[key]
            try:
                value = int(value)
            except (TypeError, ValueError):
                raise GameActionError(f'Setting {key} must be an integer')
            if not low <= value <= high:
                raise GameActionError(f'Setting {key} must be between {low} and {high}')
            merged[key] = value
        elif key == 'excluded_letters':
            if not isinstance(value, str) or len(value) > 26:
                raise GameActionError('Setting excluded_letters must be a string of at most 26 letters')
            merged[key] = ''.join(sorted({c.upper() for c in value if c.isalpha()}))
        else:
            raise GameActionError(f'Unknown setting: {key}')

    if merged['max_players'] < merged['min_players']:
        raise GameActionError('max_players cannot be lower than min_players')
    if merged['acronym_length_max'] < merged['acronym_length_min']:
        raise GameActionError('acronym_length_max cannot be lower than acronym_length_min')
    if not available_letters(merged['excluded_letters']):
        raise GameActionError('excluded_letters cannot exclude every letter')
    return merged
