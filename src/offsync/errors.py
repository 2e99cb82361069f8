"""
Exception taxonomy shared by the replica, the gateway and the orchestrator.

Gateway errors (GatewayError subclasses) are transient or remote-side and are
folded into the sync result by the orchestrator. Replica errors (NotFound,
InvalidInput raised on a local mutation) are caller bugs and propagate.
"""


class OffsyncError(Exception):
    """Base class for all offsync errors."""


class NotFound(OffsyncError):
    """Raised when a record id does not exist (locally or remotely)."""


class AlreadyInProgress(OffsyncError):
    """A sync was requested while another run was still executing."""


class GatewayError(OffsyncError):
    """Base class for failures reported by the remote gateway."""


class NetworkError(GatewayError):
    """Transport failure, timeout, non-2xx status or `success: false`."""


class Conflict(GatewayError):
    """A single-item create hit an id that already exists remotely."""


class InvalidInput(OffsyncError):
    """Malformed payload: rejected batch, or an illegal local mutation."""
