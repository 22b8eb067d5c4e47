"""
Domain errors shared by the tenancy, listing and review services.

Lookups that find nothing visible for a tenant return ``None`` instead of
raising; only configuration problems and malformed caller input are
exceptions.
"""


class TenantNotResolved(RuntimeError):
    """No usable default tenant is configured for unmatched hosts."""


class InvalidFilter(ValueError):
    """A caller-supplied listing filter could not be parsed."""


class ReviewSyncError(RuntimeError):
    """The external reviews provider returned an unusable response."""
