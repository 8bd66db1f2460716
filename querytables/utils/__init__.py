from querytables.utils import hashing, logging

__all__ = ("hashing", "logging")
