"""Error taxonomy shared by the stores, the provider client and the API layer."""


class TabsError(Exception):
    status_code = 500
    code = 'server_error'


class InvalidAddress(TabsError):
    """Malformed contract address, rejected before any I/O."""
    status_code = 400
    code = 'invalid_ca'


class InvalidPayload(TabsError):
    status_code = 400
    code = 'invalid_payload'


class NotFound(TabsError):
    """The provider has no record for a well-formed address."""
    status_code = 404
    code = 'not_found'


class Upstream(TabsError):
    """Transport failure or non-success status from the provider."""
    status_code = 502
    code = 'upstream_error'


class PersistFailure(TabsError):
    status_code = 500
    code = 'persist_failed'


__all__ = ['TabsError', 'InvalidAddress', 'InvalidPayload', 'NotFound', 'Upstream', 'PersistFailure']
