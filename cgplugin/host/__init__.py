"""Host-side signing and verification."""

from cgplugin.host.signer import (
    HostSigner,
    HostSignerSlot,
    default_host_slot,
    get_instance,
    initialize,
    new_request_id,
)

__all__ = [
    "HostSigner",
    "HostSignerSlot",
    "default_host_slot",
    "get_instance",
    "initialize",
    "new_request_id",
]
