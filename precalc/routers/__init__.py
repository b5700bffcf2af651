from precalc.routers import extensions, mastery, pacing

__all__ = [
    'extensions',
    'mastery',
    'pacing',
]
