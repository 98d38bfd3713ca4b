"""VidLock API - prompt/image to video proxy with character locks."""

__version__ = "0.3.0"
