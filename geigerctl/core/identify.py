"""Identity-to-profile matching logic."""

from __future__ import annotations

from collections.abc import Iterable

from geigerctl.core.model import DeviceProfile


def signature_matches(identity: str, profile: DeviceProfile) -> bool:
    return profile.signature in identity


def best_profile_for_identity(
    identity: str,
    profiles: Iterable[DeviceProfile],
) -> DeviceProfile | None:
    # "GMC-300E" is a substring of "GMC-300E Plus"; the longer signature wins.
    best: DeviceProfile | None = None
    for profile in profiles:
        if not signature_matches(identity, profile):
            continue
        if best is None or len(profile.signature) > len(best.signature):
            best = profile
    return best
