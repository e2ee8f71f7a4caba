"""Point-in-time validity filter for cadastral parcel records."""

from __future__ import annotations

from datetime import date
from typing import Mapping

from datafordeler.common.time_utils import parse_registry_date

VALIDITY_FIELDS = ("virkningFra", "virkningTil", "registreringFra", "registreringTil")


def is_currently_valid(record: Mapping[str, str | None], today: date) -> bool:
    """True when the record is in effect today and has not been superseded.

    Both ``*Fra`` stamps must parse and fall on or before ``today`` (date part
    only); both ``*Til`` stamps must be absent. A ``*Til`` value that does not
    parse as a date counts as absent.
    """
    if parse_registry_date(record.get("virkningTil")) is not None:
        return False
    if parse_registry_date(record.get("registreringTil")) is not None:
        return False

    virkning_fra = parse_registry_date(record.get("virkningFra"))
    registrering_fra = parse_registry_date(record.get("registreringFra"))
    if virkning_fra is None or registrering_fra is None:
        return False
    return virkning_fra <= today and registrering_fra <= today
