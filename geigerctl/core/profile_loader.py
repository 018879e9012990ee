"""Profile loading and validation for YAML-based device profiles."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from geigerctl.core.controller import IDENTIFY
from geigerctl.core.errors import ProfileLoadError, ProfileValidationError
from geigerctl.core.model import CommandSpec, DeviceProfile, ResponseSpec, SerialSettings

_FIXED_WIDTH_KINDS = {"hex", "uint_be"}
LOGGER = logging.getLogger(__name__)


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ProfileValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class LoadedProfiles:
    profiles: dict[str, DeviceProfile]
    warnings: tuple[str, ...]


def _load_schema_validator() -> Any:
    schema_text = resources.files("geigerctl.schemas").joinpath("profile.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def _profile_dirs() -> tuple[Path, Path]:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    xdg_data = Path(os.environ.get("XDG_DATA_HOME", Path.home() / ".local/share"))
    return xdg_config / "geigerctl/profiles", xdg_data / "geigerctl/profiles"


def _read_yaml(path: Path | Traversable) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ProfileLoadError(f"Could not read profile file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ProfileValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ProfileValidationError(f"Profile file {path} must contain a mapping at root")
    return loaded


def _normalize_token(value: str, *, context: str) -> str:
    token = value.strip()
    if "<" in token or ">" in token:
        raise ProfileValidationError(f"{context} must not contain framing characters")
    return token


def _build_response(doc: dict[str, Any] | None, *, context: str) -> ResponseSpec | None:
    if doc is None:
        return None

    kind = doc["kind"]
    length = doc.get("length")
    max_length = doc.get("max_length")
    divisor = doc.get("divisor")

    if kind in _FIXED_WIDTH_KINDS:
        if length is None or max_length is not None:
            raise ProfileValidationError(f"{context}: '{kind}' responses need 'length' only")
    elif (length is None) == (max_length is None):
        raise ProfileValidationError(f"{context}: text responses need 'length' or 'max_length'")

    if divisor is not None and kind != "uint_be":
        raise ProfileValidationError(f"{context}: 'divisor' only applies to uint_be responses")

    return ResponseSpec(
        kind=kind,
        length=length,
        max_length=max_length,
        divisor=float(divisor) if divisor is not None else None,
    )


def _build_profile(doc: dict[str, Any], source: Path | Traversable) -> DeviceProfile:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ProfileValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    commands: dict[str, CommandSpec] = {}
    for command_name, command_spec in doc["commands"].items():
        context = f"{doc['id']}.commands.{command_name}"
        commands[command_name] = CommandSpec(
            name=command_name,
            token=_normalize_token(command_spec["token"], context=f"{context}.token"),
            response=_build_response(command_spec.get("response"), context=context),
        )

    if commands[IDENTIFY].response is None:
        raise ProfileValidationError(f"{doc['id']}.commands.{IDENTIFY} must define a response")

    serial_doc = doc.get("serial", {})
    serial = SerialSettings(
        baud_rate=int(serial_doc.get("baud_rate", 57600)),
        parity=serial_doc.get("parity", "none"),
        data_bits=int(serial_doc.get("data_bits", 8)),
        stop_bits=serial_doc.get("stop_bits", 1),
        read_timeout_s=float(serial_doc.get("read_timeout_s", 10.0)),
        write_timeout_s=float(serial_doc.get("write_timeout_s", 10.0)),
    )

    return DeviceProfile(
        id=doc["id"],
        name=doc["name"],
        signature=doc["signature"],
        serial=serial,
        commands=commands,
    )


def _iter_packaged_profile_paths() -> list[Traversable]:
    profile_root = resources.files("geigerctl.profiles")
    return [item for item in profile_root.iterdir() if item.name.endswith((".yml", ".yaml"))]


def _iter_user_profile_paths() -> list[Path]:
    paths: list[Path] = []
    for directory in _profile_dirs():
        if not directory.exists() or not directory.is_dir():
            continue
        paths.extend(sorted(p for p in directory.iterdir() if p.suffix in {".yml", ".yaml"}))
    return paths


def load_profiles() -> LoadedProfiles:
    profiles: dict[str, DeviceProfile] = {}
    warnings: list[str] = []

    for path in sorted(_iter_packaged_profile_paths(), key=lambda p: p.name):
        doc = _read_yaml(path)
        profile = _build_profile(doc, path)
        profiles[profile.id] = profile

    for path in _iter_user_profile_paths():
        doc = _read_yaml(path)
        profile = _build_profile(doc, path)
        if profile.id in profiles:
            warning = f"User profile '{profile.id}' overrides packaged profile"
            LOGGER.warning(warning)
            warnings.append(warning)
        profiles[profile.id] = profile

    return LoadedProfiles(profiles=profiles, warnings=tuple(warnings))
