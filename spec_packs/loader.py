"""Spec pack loader: discovers and loads versioned diagnostic spec packs.

Usage:
    from spec_packs.loader import load_pack, list_packs
    pack = load_pack("fpa", "v2.9.0")
    pack.spec       # frozen, normalized DiagnosticSpec
    pack.manifest   # raw manifest.json

Spec enforcement:
    Every ``load_pack()`` call runs ``engine.adapter.adapt_spec()`` which
    normalizes the schema variant, validates every entity and builds a
    frozen ``DiagnosticSpec``.  If ANY entity is invalid the loader raises
    ``SpecViolation`` and the diagnostic never starts.

Version locking:
    Released packs are frozen.  A SHA-256 checksum of spec.json is
    verified at load time.  If the file changes without an explicit
    version bump the loader raises ``SpecPackVersionError``.
"""
from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from schemas.taxonomy import DiagnosticSpec
from engine.adapter import adapt_spec

_log = logging.getLogger(__name__)

# ── Version-locked checksums ──────────────────────────────────────
# SHA-256 (first 16 hex chars) of the canonical spec.json per version.
# If a pack is listed here, any content change requires an explicit
# version bump (new directory under spec_packs/<family>/).
_FROZEN_CHECKSUMS: dict[str, str] = {
    "fpa/v2.7.0": "6b81bab791fb0cc5",  # flat schema, 16 questions
    "fpa/v2.9.0": "26668c710d3131b0",  # structured schema, 24 questions, 12 practices
}


class SpecPackNotFound(LookupError):
    """Raised when no pack exists for a family/version pair."""


class SpecPackVersionError(Exception):
    """Raised when a frozen spec pack's checksum does not match."""
    pass


@dataclass
class SpecPack:
    """A loaded spec pack: manifest metadata plus the normalized spec."""
    pack_id: str
    name: str
    version: str
    description: str
    schema: str
    spec: DiagnosticSpec
    manifest: dict[str, Any]
    spec_checksum: str = ""

    @property
    def version_tag(self) -> str:
        """Canonical version identifier for report metadata (e.g. 'fpa-v2.9.0')."""
        return self.pack_id or f"{self.manifest.get('pack_id', 'unknown')}"

    def question_count(self) -> int:
        return len(self.spec.questions)


PACKS_DIR = Path(__file__).parent


def list_packs() -> list[dict[str, str]]:
    """Discover all available spec packs under spec_packs/."""
    packs = []
    for manifest_path in sorted(PACKS_DIR.rglob("manifest.json")):
        try:
            with open(manifest_path, encoding="utf-8") as f:
                m = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            _log.warning("Skipping unreadable manifest %s: %s", manifest_path, exc)
            continue
        packs.append({
            "pack_id": m.get("pack_id", "unknown"),
            "name": m.get("name", ""),
            "version": m.get("version", ""),
            "schema": m.get("schema", ""),
            "path": str(manifest_path.parent),
        })
    return packs


def _checksum(path: Path) -> str:
    with open(path, "rb") as fb:
        return hashlib.sha256(fb.read()).hexdigest()[:16]


def load_pack(family: str = "fpa", version: str = "v2.9.0") -> SpecPack:
    """
    Load a spec pack by family and version.

    Flow:
      1. Read manifest and spec JSON from disk.
      2. Verify the frozen checksum (if the version is locked).
      3. ``adapt_spec()`` normalizes, validates and builds the
         ``DiagnosticSpec``.

    Args:
        family: Pack family directory name (e.g. "fpa")
        version: Version directory name (e.g. "v2.9.0")

    Returns:
        SpecPack with the normalized spec loaded.

    Raises:
        SpecPackNotFound: unknown family/version.
        SpecPackVersionError: frozen pack content changed on disk.
        SpecViolation: pack content is invalid.
    """
    pack_dir = PACKS_DIR / family / version

    manifest_path = pack_dir / "manifest.json"
    if not manifest_path.exists():
        known = sorted(f"{p['pack_id']}" for p in list_packs())
        raise SpecPackNotFound(
            f"Unknown spec version '{family}/{version}' (available: {', '.join(known) or 'none'})"
        )
    with open(manifest_path, encoding="utf-8") as f:
        manifest = json.load(f)

    spec_path = pack_dir / manifest.get("spec_ref", "spec.json")
    with open(spec_path, encoding="utf-8") as f:
        raw_spec = json.load(f)

    # ── Version-lock guardrail ────────────────────────────────────
    # Frozen packs must not change on disk without a version bump.
    spec_checksum = _checksum(spec_path)
    pack_key = f"{family}/{version}"
    expected = _FROZEN_CHECKSUMS.get(pack_key)
    if expected and spec_checksum != expected:
        raise SpecPackVersionError(
            f"Spec pack '{pack_key}' is version-locked (expected checksum "
            f"{expected}, got {spec_checksum}).  If you modified spec.json, "
            f"create a new version directory (e.g. {family}/v2.9.1/) and update "
            f"_FROZEN_CHECKSUMS in spec_packs/loader.py."
        )
    if expected:
        _log.debug("Spec pack %s: checksum verified (%s)", pack_key, spec_checksum)

    # ── Normalize + validate + typed construction ─────────────────
    spec = adapt_spec(raw_spec)

    if spec.version != manifest.get("version", spec.version):
        _log.warning(
            "Spec pack %s: manifest version %s differs from spec version %s",
            pack_key, manifest.get("version"), spec.version,
        )

    return SpecPack(
        pack_id=manifest.get("pack_id", ""),
        name=manifest.get("name", ""),
        version=manifest.get("version", ""),
        description=manifest.get("description", ""),
        schema=spec.schema_variant,
        spec=spec,
        manifest=manifest,
        spec_checksum=spec_checksum,
    )
