"""LinguaCraft: translation, correction, word lookup and speech flows backed by generative models."""

__version__ = "1.0.0"
