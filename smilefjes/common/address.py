"""Organization number checks and address composition."""

from __future__ import annotations

import re

from smilefjes.common.models import InspectionRecord, RegistryAddress, RegistryEntity

ORG_NUMBER_RE = re.compile(r"^\d{9}$")

_APOSTROPHE_RE = re.compile(r"['’`]")
_SEPARATOR_RE = re.compile(r"[(),]")
_WHITESPACE_RE = re.compile(r"\s+")


def normalise_org_number(raw: str | None) -> str | None:
    """Return the trimmed organization number, or None unless it is exactly 9 digits."""
    if raw is None:
        return None
    cleaned = raw.strip()
    if not ORG_NUMBER_RE.match(cleaned):
        return None
    return cleaned


def pick_registry_address(entity: RegistryEntity) -> RegistryAddress | None:
    # The operating location is where a restaurant actually is; the registered
    # office is often an accountant or a head office.
    if entity.beliggenhetsadresse is not None:
        return entity.beliggenhetsadresse
    return entity.forretningsadresse


def format_registry_address(address: RegistryAddress) -> str | None:
    lines = [line for line in address.adresse if line]
    postnummer = (address.postnummer or "").strip()
    poststed = (address.poststed or "").strip()

    main = ", ".join(lines).strip()
    tail = " ".join(part for part in (postnummer, poststed) if part).strip()

    full = ", ".join(part for part in (main, tail) if part).strip()
    return full or None


def registry_display_address(entity: RegistryEntity | None) -> str | None:
    if entity is None:
        return None
    address = pick_registry_address(entity)
    if address is None:
        return None
    return format_registry_address(address)


def build_fallback_address(record: InspectionRecord) -> str | None:
    parts = (record.adrlinje1, record.adrlinje2, record.postnr, record.poststed)
    joined = ", ".join(part.strip() for part in parts if part and part.strip()).strip()
    return joined or None


def normalise_geocode_query(address: str) -> str:
    cleaned = _APOSTROPHE_RE.sub("", address)
    cleaned = _SEPARATOR_RE.sub(" ", cleaned)
    cleaned = _WHITESPACE_RE.sub(" ", cleaned)
    return cleaned.strip()
