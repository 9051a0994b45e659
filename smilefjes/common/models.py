"""Data models used across the pipeline."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from smilefjes.common.constants import CRITERION_FIELDS


@dataclass(frozen=True)
class InspectionRecord:
    tilsynsobjektid: str
    navn: str
    dato: str
    total_karakter: str
    orgnummer: str | None = None
    adrlinje1: str | None = None
    adrlinje2: str | None = None
    postnr: str | None = None
    poststed: str | None = None
    status: str | None = None
    tilsynid: str | None = None
    criteria: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_row(cls, row: dict[str, Any]) -> "InspectionRecord":
        def _text(key: str) -> str:
            value = row.get(key)
            return "" if value is None else str(value).strip()

        def _optional(key: str) -> str | None:
            return _text(key) or None

        criteria = {name: _text(name) for name in CRITERION_FIELDS if _text(name)}
        return cls(
            tilsynsobjektid=_text("tilsynsobjektid"),
            navn=_text("navn"),
            dato=_text("dato"),
            total_karakter=_text("total_karakter"),
            orgnummer=_optional("orgnummer"),
            adrlinje1=_optional("adrlinje1"),
            adrlinje2=_optional("adrlinje2"),
            postnr=_optional("postnr"),
            poststed=_optional("poststed"),
            status=_optional("status"),
            tilsynid=_optional("tilsynid"),
            criteria=criteria,
        )


@dataclass(frozen=True)
class RegistryAddress:
    adresse: tuple[str, ...] = ()
    postnummer: str | None = None
    poststed: str | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RegistryAddress | None":
        if not isinstance(payload, dict):
            return None
        lines = payload.get("adresse") or []
        if not isinstance(lines, list):
            lines = [lines]
        return cls(
            adresse=tuple(str(line) for line in lines if line),
            postnummer=payload.get("postnummer"),
            poststed=payload.get("poststed"),
        )

    def to_payload(self) -> dict[str, Any]:
        return {
            "adresse": list(self.adresse),
            "postnummer": self.postnummer,
            "poststed": self.poststed,
        }


@dataclass(frozen=True)
class RegistryEntity:
    """Subset of an Enhetsregisteret record that the pipeline relies on.

    Serialises back to the registry's own key names so cache files stay
    readable next to raw API responses.
    """

    organisasjonsnummer: str
    navn: str | None = None
    forretningsadresse: RegistryAddress | None = None
    beliggenhetsadresse: RegistryAddress | None = None

    @classmethod
    def from_payload(cls, payload: Any) -> "RegistryEntity | None":
        if not isinstance(payload, dict) or not payload.get("organisasjonsnummer"):
            return None
        return cls(
            organisasjonsnummer=str(payload["organisasjonsnummer"]),
            navn=payload.get("navn"),
            forretningsadresse=RegistryAddress.from_payload(payload.get("forretningsadresse")),
            beliggenhetsadresse=RegistryAddress.from_payload(payload.get("beliggenhetsadresse")),
        )

    def to_payload(self) -> dict[str, Any]:
        out: dict[str, Any] = {"organisasjonsnummer": self.organisasjonsnummer}
        if self.navn is not None:
            out["navn"] = self.navn
        if self.forretningsadresse is not None:
            out["forretningsadresse"] = self.forretningsadresse.to_payload()
        if self.beliggenhetsadresse is not None:
            out["beliggenhetsadresse"] = self.beliggenhetsadresse.to_payload()
        return out


@dataclass(frozen=True)
class GeoCoordinate:
    lon: float
    lat: float

    @classmethod
    def from_payload(cls, payload: Any) -> "GeoCoordinate | None":
        if not isinstance(payload, dict):
            return None
        lon = payload.get("lon")
        lat = payload.get("lat")
        if not _is_number(lon) or not _is_number(lat):
            return None
        return cls(lon=float(lon), lat=float(lat))

    def to_payload(self) -> dict[str, float]:
        return {"lon": self.lon, "lat": self.lat}

    def in_wgs84_range(self) -> bool:
        return (
            math.isfinite(self.lon)
            and math.isfinite(self.lat)
            and -180 <= self.lon <= 180
            and -90 <= self.lat <= 90
        )



@dataclass(frozen=True)
class OutputFeature:
    tilsynsobjektid: str
    orgnummer: str | None
    navn: str
    adresse: str
    dato: str
    karakter: int
    status: str | None
    adressekilde: str
    coordinate: GeoCoordinate
    smilefjes: int
    criteria: dict[str, str] = field(default_factory=dict)

    def to_geojson(self) -> dict[str, Any]:
        properties: dict[str, Any] = {
            "tilsynsobjektid": self.tilsynsobjektid,
            "orgnummer": self.orgnummer,
            "navn": self.navn,
            "adresse": self.adresse,
            "dato": self.dato,
            "karakter": self.karakter,
            "status": self.status,
            "adressekilde": self.adressekilde,
            "smilefjes": self.smilefjes,
        }
        properties.update(self.criteria)
        return {
            "type": "Feature",
            "geometry": {"type": "Point", "coordinates": [self.coordinate.lon, self.coordinate.lat]},
            "properties": properties,
        }


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)
