"""
Built-in household vocabulary, shared by every scope.

Canonical values are never themselves alias keys, so resolving text that is
already canonical leaves it unchanged.
"""

SEED_ALIASES = {
    'dishes': 'washing-up',
    'dish': 'washing-up',
    'did the dishes': 'washing-up',
    'hoover': 'vacuuming',
    'hoovered': 'vacuuming',
    'hoovering': 'vacuuming',
    'hovering': 'vacuuming',
    'bins': 'taking out the rubbish',
    'trash': 'taking out the rubbish',
    'garbage': 'taking out the rubbish',
    'nap': 'resting',
    'power nap': 'resting',
    'ironed': 'ironing',
    'mopped': 'mopping',
    'groceries': 'grocery shopping',
}
