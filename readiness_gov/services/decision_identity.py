"""Deterministic target ids for decision subjects.

Two requests describing the same real-world subject (same scope fields)
must land on the same ledger row, across restarts and runtimes. The id is
derived from a canonical key string:

    <namespace>|<k1>=<v1>|<k2>=<v2>|...      (keys sorted, blanks → "NA")

hashed with SHA-256 (UTF-8). The first 16 digest bytes are formatted as a
hyphenated UUID with the version nibble forced to 5 and the RFC 4122
variant bits set, so the output is also a syntactically valid UUID.

Usage:
    from readiness_gov.services.decision_identity import station_shift_target_id
    target_id = station_shift_target_id(org_id, site_id, "2026-01-05", "Day", station_id, "NO_GO")
"""

from __future__ import annotations

import hashlib
import uuid
from datetime import date

MISSING = "NA"

NS_SHIFT_READINESS = "shift_readiness"
NS_STATION_SHIFT = "station_shift"
NS_LINE_SHIFT = "line_shift"


def _normalize(value) -> str:
    if value is None:
        return MISSING
    if isinstance(value, date):
        return value.isoformat()
    text = str(value).strip()
    return text or MISSING


def build_target_key(namespace: str, **fields) -> str:
    """Return the canonical key string that gets hashed."""
    parts = [namespace]
    for key in sorted(fields):
        parts.append(f"{key}={_normalize(fields[key])}")
    return "|".join(parts)


def derive_target_id(namespace: str, **fields) -> str:
    """Derive a stable UUID-formatted id for a decision subject."""
    digest = bytearray(hashlib.sha256(build_target_key(namespace, **fields).encode("utf-8")).digest()[:16])
    digest[6] = (digest[6] & 0x0F) | 0x50  # version 5
    digest[8] = (digest[8] & 0x3F) | 0x80  # RFC 4122 variant
    return str(uuid.UUID(bytes=bytes(digest)))


# ── Named constructors used by the decision surfaces ────────────────────────


def shift_readiness_target_id(org_id, site_id, shift_id) -> str:
    return derive_target_id(NS_SHIFT_READINESS, org=org_id, site=site_id, shift=shift_id)


def station_shift_target_id(org_id, site_id, shift_date, shift_code, station_id, issue_type) -> str:
    return derive_target_id(
        NS_STATION_SHIFT,
        org=org_id,
        site=site_id,
        date=shift_date,
        shift=shift_code,
        station=station_id,
        issue=issue_type,
    )


def line_shift_target_id(org_id, site_id, shift_date, shift_code, line) -> str:
    return derive_target_id(
        NS_LINE_SHIFT,
        org=org_id,
        site=site_id,
        date=shift_date,
        shift=shift_code,
        line=line,
    )
