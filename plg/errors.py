class PLGError(Exception):
    pass


class InitError(PLGError):
    """An artifact is missing or malformed; the engine must not start."""


class ClassificationError(PLGError):
    """Scoring failed for one URL. Never turned into a default verdict."""
