from .topics import Topics

__all__ = ["Topics"]
