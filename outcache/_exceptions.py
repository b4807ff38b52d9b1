__all__ = ("OutputCacheError", "InvalidKeyContext")


class OutputCacheError(Exception): ...


class InvalidKeyContext(OutputCacheError, ValueError): ...
