"""Failures raised while importing a character."""


class ImportFailure(Exception):
    """Base class for everything that can abort an import."""


class TransportFailure(ImportFailure):
    """The profile request failed, returned non-2xx, or could not be decoded."""


class MalformedRunRecord(ImportFailure):
    """A run references an unknown dungeon or lacks a numeric field."""


class ArchivalFailure(ImportFailure):
    """The history archive rejected a snapshot."""
