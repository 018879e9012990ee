"""Serial port discovery by identity handshake."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence

from geigerctl.core.controller import IDENTIFY, DeviceController, exchange
from geigerctl.core.errors import ProtocolDecodeError, TransportError, TransportIOError
from geigerctl.core.identify import best_profile_for_identity, signature_matches
from geigerctl.core.model import (
    AttemptOutcome,
    DeviceIdentity,
    DeviceProfile,
    PortAttempt,
    ProbeResult,
    TransportConfig,
)
from geigerctl.transports.base import Transport
from geigerctl.transports.serial_port import SerialTransport, list_serial_ports

LOGGER = logging.getLogger(__name__)

PortLister = Callable[[], Iterable[str]]
TransportFactory = Callable[[TransportConfig], Transport]


def probe(
    profiles: Sequence[DeviceProfile],
    *,
    port_lister: PortLister = list_serial_ports,
    transport_factory: TransportFactory = SerialTransport,
    ports: Iterable[str] | None = None,
) -> ProbeResult:
    """Find the first port, in enumeration order, answering with a known signature.

    Ports are tried in order; on each port every profile is tried in order.
    The matching transport is returned open and bound to a controller; every
    other transport is closed before moving on.
    """
    candidates = list(ports) if ports is not None else list(port_lister())
    attempts: list[PortAttempt] = []

    for port in candidates:
        for profile in profiles:
            transport = transport_factory(profile.serial.bind(port))
            attempt, version = _try_port(transport, profile)
            attempts.append(attempt)
            if version is not None:
                bound = _most_specific(profile, version, profiles)
                identity = DeviceIdentity(port=port, profile_id=bound.id, version=version)
                LOGGER.info("Found %s on %s: %s", bound.name, port, version)
                return ProbeResult(
                    controller=DeviceController(transport, bound),
                    identity=identity,
                    attempts=tuple(attempts),
                )

    LOGGER.info("No supported device found on %d port(s)", len(candidates))
    return ProbeResult(controller=None, identity=None, attempts=tuple(attempts))


def _try_port(
    transport: Transport,
    profile: DeviceProfile,
) -> tuple[PortAttempt, str | None]:
    port = transport.port
    try:
        transport.open()
    except TransportIOError as exc:
        LOGGER.debug("Skipping %s: %s", port, exc)
        return PortAttempt(port, profile.id, AttemptOutcome.OPEN_FAILED, str(exc)), None

    matched = False
    try:
        version = _identify(transport, profile)
        if signature_matches(version, profile):
            matched = True
            return PortAttempt(port, profile.id, AttemptOutcome.MATCHED, version), version
        LOGGER.debug("Signature mismatch on %s for %s: %r", port, profile.id, version)
        return PortAttempt(port, profile.id, AttemptOutcome.SIGNATURE_MISMATCH, version), None
    except (TransportError, ProtocolDecodeError) as exc:
        LOGGER.debug("Abandoning %s for %s: %s", port, profile.id, exc)
        return PortAttempt(port, profile.id, AttemptOutcome.TRANSPORT_ERROR, str(exc)), None
    finally:
        if not matched:
            transport.close()


def _identify(transport: Transport, profile: DeviceProfile) -> str:
    return str(exchange(transport, profile.commands[IDENTIFY], None))


def _most_specific(
    matched: DeviceProfile,
    version: str,
    profiles: Sequence[DeviceProfile],
) -> DeviceProfile:
    # Only profiles reachable over the same link and handshake are comparable.
    peers = [
        p
        for p in profiles
        if p.serial == matched.serial and p.commands[IDENTIFY] == matched.commands[IDENTIFY]
    ]
    return best_profile_for_identity(version, peers) or matched
