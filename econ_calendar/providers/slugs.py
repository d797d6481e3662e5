"""URL slugs for MQL5 per-event pages."""

from __future__ import annotations

import re

COUNTRY_SLUGS: dict[str, str] = {
    "united states": "united-states",
    "united kingdom": "united-kingdom",
    "euro area": "european-union",
    "european union": "european-union",
    "eurozone": "european-union",
    "canada": "canada",
    "australia": "australia",
    "japan": "japan",
    "germany": "germany",
    "france": "france",
    "switzerland": "switzerland",
    "new zealand": "new-zealand",
    "china": "china",
    "spain": "spain",
    "italy": "italy",
    "greece": "greece",
    "netherlands": "netherlands",
    "belgium": "belgium",
    "austria": "austria",
    "portugal": "portugal",
    "ireland": "ireland",
    "finland": "finland",
    "norway": "norway",
    "sweden": "sweden",
    "denmark": "denmark",
    "poland": "poland",
    "russia": "russia",
    "brazil": "brazil",
    "mexico": "mexico",
    "india": "india",
    "south korea": "south-korea",
    "singapore": "singapore",
    "hong kong": "hong-kong",
    "taiwan": "taiwan",
    "south africa": "south-africa",
    "turkey": "turkey",
    "israel": "israel",
}

# Names whose page slug does not follow the generic rules.
EVENT_SLUGS: dict[str, str] = {
    "building permits": "building-approvals",
    "building permits mom": "building-approvals-mm",
    "building permits yoy": "building-approvals-yy",
    "building consents": "building-consents",
    "harmonised inflation rate": "hicp",
    "harmonised inflation rate mom": "hicp-mm",
    "harmonised inflation rate yoy": "hicp-yy",
    "inflation rate": "cpi",
    "inflation rate mom": "cpi-mm",
    "inflation rate yoy": "cpi-yy",
    "core inflation rate": "core-cpi",
    "core inflation rate mom": "consumer-price-index-ex-food-energy-mm",
    "core inflation rate yoy": "consumer-price-index-ex-food-energy-yy",
    "cpi": "consumer-price-index",
    "core cpi": "core-consumer-price-index",
    "jolts job openings": "jolts-job-openings",
    "jolts job quits": "jolts-job-quits",
    "unemployment change": "unemployment-change",
    "unemployment rate": "unemployment-rate",
    "employment change": "employment-change",
    "adp employment change": "adp-nonfarm-employment-change",
    "adp nonfarm employment change": "adp-nonfarm-employment-change",
    "nonfarm payrolls": "nonfarm-payrolls",
    "initial jobless claims": "initial-jobless-claims",
    "continuing jobless claims": "continuing-jobless-claims",
    "rba interest rate decision": "rba-interest-rate-decision",
    "rba press conference": "rba-monetary-policy-statement",
    "rba rate statement": "rba-rate-statement",
    "rba monetary policy statement": "rba-monetary-policy-statement",
    "ecb interest rate decision": "ecb-interest-rate-decision",
    "ecb press conference": "ecb-monetary-policy-press-conference",
    "ecb monetary policy press conference": "ecb-monetary-policy-press-conference",
    "boe interest rate decision": "boe-interest-rate-decision",
    "boe mpc meeting minutes": "boe-mpc-meeting-minutes",
    "boj monetary base": "monetary-base",
    "boj interest rate decision": "boj-interest-rate-decision",
    "fed interest rate decision": "fomc-interest-rate-decision",
    "manufacturing pmi": "manufacturing-pmi",
    "services pmi": "services-pmi",
    "composite pmi": "composite-pmi",
    "ism manufacturing pmi": "ism-manufacturing-pmi",
    "ism non-manufacturing pmi": "ism-non-manufacturing-pmi",
    "ism services pmi": "ism-non-manufacturing-pmi",
    "gdp growth rate": "gdp-growth-rate",
    "gdp growth rate qoq": "gdp-growth-rate-qq",
    "gdp growth rate yoy": "gdp-growth-rate-yy",
    "trade balance": "trade-balance",
    "exports": "exports",
    "imports": "imports",
    "retail sales": "retail-sales",
    "retail sales mom": "retail-sales-mm",
    "retail sales yoy": "retail-sales-yy",
    "industrial production": "industrial-production",
    "industrial production mom": "industrial-production-mm",
    "industrial production yoy": "industrial-production-yy",
    "consumer confidence": "consumer-confidence",
    "michigan consumer sentiment": "michigan-consumer-sentiment",
    "hpi": "hpi",
    "house price index": "house-price-index",
    "nationwide hpi": "nationwide-hpi",
    "halifax hpi": "halifax-house-price-index",
    "10-year jgb auction": "10-year-jgb-auction",
    "30-year jgb auction": "30-year-jgb-auction",
    "10-year bond auction": "10-year-bond-auction",
    "10-year treasury gilt auction": "10-year-treasury-gilt-auction",
    "budget balance": "government-budget-balance",
    "government budget balance": "government-budget-balance",
    "ppi": "producer-price-index",
    "ppi mom": "producer-price-index-mm",
    "ppi yoy": "producer-price-index-yy",
    "tourist arrivals": "tourist-arrivals",
    "tourist arrivals yoy": "tourist-arrivals-yy",
    "redbook": "redbook",
    "redbook yoy": "redbook-yy",
    "lmi logistics managers index": "lmi-logistics-managers-index",
}

# MQL5 spells some abbreviations out and keeps others (ppi, gdp, pmi).
SLUG_EXPANSIONS: dict[str, str] = {"cpi": "consumer-price-index"}

_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*")


def country_slug(country: str | None) -> str | None:
    if not country:
        return None
    return COUNTRY_SLUGS.get(country.strip().lower())


def event_slug(event_name: str) -> str:
    """``"PPI YoY (Dec)"`` -> ``"producer-price-index-yy"``; ``"S&P Global Services PMI"`` -> ``"sp-global-services-pmi"``."""

    name = _PARENTHETICAL_RE.sub(" ", event_name).strip()
    name = re.sub(r"\s+", " ", name)
    mapped = EVENT_SLUGS.get(name.lower())
    if mapped:
        return mapped

    slug = name.lower().replace("&", "")
    slug = re.sub(r"[.']", "", slug)
    slug = re.sub(r"\byoy\b", "yy", slug)
    slug = re.sub(r"\bmom\b", "mm", slug)
    slug = re.sub(r"\bqoq\b", "qq", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug).strip("-")
    if "zew" in slug and "index" in slug:
        slug = slug.replace("index", "indicator", 1)
    for abbreviation, expansion in SLUG_EXPANSIONS.items():
        slug = re.sub(rf"(^|-){abbreviation}(?=-|$)", rf"\g<1>{expansion}", slug)
    return slug


def build_event_page_url(event_name: str, country: str | None, base_url: str = "https://www.mql5.com") -> str | None:
    """Absolute page URL, or ``None`` when the country or name cannot be slugged."""

    country_part = country_slug(country)
    if country_part is None:
        return None
    event_part = event_slug(event_name)
    if not event_part:
        return None
    return f"{base_url.rstrip('/')}/en/economic-calendar/{country_part}/{event_part}"


__all__ = ["COUNTRY_SLUGS", "EVENT_SLUGS", "build_event_page_url", "country_slug", "event_slug"]
