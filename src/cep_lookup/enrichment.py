"""
Address sanitization and enrichment.

Providers return loosely formatted data; before an address leaves the
orchestrator every string field is trimmed, the CEP is reduced to its
8-digit form, and a missing area code (DDD) is filled in from the state.
"""

import dataclasses
from typing import Mapping, Optional

from .models import Address
from .validation import cep_digits

# DDD of each state capital, used as fallback when the provider has none
DDD_BY_STATE: Mapping[str, str] = {
    "AC": "68", "AL": "82", "AM": "92", "AP": "96", "BA": "71",
    "CE": "85", "DF": "61", "ES": "27", "GO": "62", "MA": "98",
    "MG": "31", "MS": "67", "MT": "65", "PA": "91", "PB": "83",
    "PE": "81", "PI": "86", "PR": "41", "RJ": "21", "RN": "84",
    "RO": "69", "RR": "95", "RS": "51", "SC": "48", "SE": "79",
    "SP": "11", "TO": "63",
}


def ddd_for_state(state: Optional[str]) -> Optional[str]:
    """Return the capital DDD for a two-letter state abbreviation."""
    if not state:
        return None
    return DDD_BY_STATE.get(state.strip().upper())


def sanitize_address(address: Address) -> Address:
    """
    Trim whitespace from every string field.

    The CEP additionally keeps only its digits so cached and returned
    addresses always carry the canonical form.
    """
    changes = {}
    for f in dataclasses.fields(address):
        value = getattr(address, f.name)
        if isinstance(value, str):
            changes[f.name] = value.strip()
    changes["cep"] = cep_digits(changes.get("cep", ""))
    return dataclasses.replace(address, **changes)


def enrich_address(address: Address) -> Address:
    """Fill `ddd` from the state table. Provider values are never overwritten."""
    if address.ddd:
        return address
    ddd = ddd_for_state(address.state)
    if ddd is None:
        return address
    return dataclasses.replace(address, ddd=ddd)
