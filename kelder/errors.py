"""Exceptions raised by the tenant aware blob storage."""


class KelderError(Exception):
    pass


class InvalidSignature(KelderError):
    """A token is malformed, tampered with, expired, or was signed for another purpose"""


class MalformedKey(KelderError, ValueError):
    """A storage key is not of the form <tenant slug>-<random token>"""


class TenantSwitchFailure(KelderError):
    """The tenant context could not be switched, e.g. because the tenant does not exist"""
