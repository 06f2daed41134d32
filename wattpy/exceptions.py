from __future__ import annotations


class WattpyException(Exception):
    """Base exception class"""


class InvalidReport(WattpyException):
    """An attribute report carries a value that cannot be used"""


class UnknownDevice(WattpyException):
    """A message refers to a device the application does not know about"""


class CorruptDatabase(WattpyException):
    """The SQLite database is corrupt or otherwise inconsistent"""
