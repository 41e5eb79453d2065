from __future__ import annotations

import re

_ISO2_RE = re.compile(r"^[A-Z]{2}$")

TERRITORY_NAMES = {
    "ANDORRA": "AD",
    "UNITED ARAB EMIRATES": "AE",
    "AUSTRIA": "AT",
    "AUSTRALIA": "AU",
    "BELGIUM": "BE",
    "BRAZIL": "BR",
    "BAHAMAS": "BS",
    "CANADA": "CA",
    "SWITZERLAND": "CH",
    "CHILE": "CL",
    "COLOMBIA": "CO",
    "COSTA RICA": "CR",
    "CZECH REPUBLIC": "CZ",
    "GERMANY": "DE",
    "DENMARK": "DK",
    "ECUADOR": "EC",
    "ESTONIA": "EE",
    "SPAIN": "ES",
    "FINLAND": "FI",
    "FRANCE": "FR",
    "UNITED KINGDOM": "GB",
    "UK": "GB",
    "GREECE": "GR",
    "GUATEMALA": "GT",
    "GUAM": "GU",
    "HONDURAS": "HN",
    "CROATIA": "HR",
    "HUNGARY": "HU",
    "IRELAND": "IE",
    "ITALY": "IT",
    "JAMAICA": "JM",
    "JAPAN": "JP",
    "SOUTH KOREA": "KR",
    "ST.LUCIA": "LC",
    "LITHUANIA": "LT",
    "LATVIA": "LV",
    "MALTA": "MT",
    "MAURITIUS": "MU",
    "MEXICO": "MX",
    "NETHERLANDS": "NL",
    "NORWAY": "NO",
    "NEW ZEALAND": "NZ",
    "PANAMA": "PA",
    "PERU": "PE",
    "PHILIPPINES": "PH",
    "POLAND": "PL",
    "PUERTO RICO": "PR",
    "PORTUGAL": "PT",
    "ROMANIA": "RO",
    "SERBIA": "RS",
    "RUSSIA": "RU",
    "RUSSIAN FEDERATION": "RU",
    "SAUDI ARABIA": "SA",
    "SWEDEN": "SE",
    "SINGAPORE": "SG",
    "SLOVAK REPUBLIC": "SK",
    "SLOVAKIA": "SK",
    "THAILAND": "TH",
    "TURKEY": "TR",
    "USA": "US",
    "UNITED STATES": "US",
    "URUGUAY": "UY",
    "VIRGIN ISLANDS, BRITISH": "VG",
    "VIRGIN ISLANDS, U.S.": "VI",
    "VIETNAM": "VN",
    "SOUTH AFRICA": "ZA",
}


def normalize_territory(territory: str | None) -> str:
    """Country name or code to ISO 3166-1 alpha-2; unknown values come back unchanged."""
    if not territory:
        return ""
    key = territory.strip().upper()
    code = TERRITORY_NAMES.get(key)
    if code:
        return code
    if _ISO2_RE.match(key):
        return key
    return territory
