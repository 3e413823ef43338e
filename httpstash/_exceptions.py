__all__ = ("CacheStoreError", "WriteStreamError")


class CacheStoreError(Exception): ...


class WriteStreamError(CacheStoreError): ...
