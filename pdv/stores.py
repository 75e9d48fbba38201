"""
pdv/stores.py
-------------
Per-store wiring. Every store channel (loja1, loja2, …) shares the same
cart and finalizer code; what differs is which catalog it reads and
which cash register its sales attach to.
"""
from dataclasses import dataclass

from flask import current_app


@dataclass(frozen=True)
class StoreContext:
    channel:   str
    name:      str
    catalog:   object
    registers: object


class UnknownStore(LookupError):
    pass


def store_context(channel: str = None) -> StoreContext:
    """StoreContext for `channel` (default: POS_DEFAULT_STORE)."""
    stores  = current_app.config['POS_STORES']
    channel = channel or current_app.config['POS_DEFAULT_STORE']
    if channel not in stores:
        raise UnknownStore(channel)

    from pdv.catalog.provider import SqlCatalogProvider
    from pdv.registers.provider import SqlRegisterProvider
    return StoreContext(
        channel=channel,
        name=stores[channel],
        catalog=SqlCatalogProvider(channel),
        registers=SqlRegisterProvider(channel),
    )
