"""
Error taxonomy for the Decodey core.

Engine errors are raised synchronously and never leave partial state behind.
Storage and serialization errors come from the persistence layer and are
always propagated to the caller.
"""


class DecodeyError(Exception):
    """Base class for all core errors"""


class NotFoundError(DecodeyError):
    """No quote (or other record) matches the request"""


class InvalidQuoteError(DecodeyError):
    """Quote has no alphabetic content and cannot be encrypted"""


class SerializationError(DecodeyError):
    """A persisted blob could not be decoded (corruption or schema drift)"""


class StorageError(DecodeyError):
    """Underlying storage failure: disk, permissions, lock contention"""
