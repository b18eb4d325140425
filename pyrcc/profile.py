"""Remote host profiles stored as JSON or YAML documents."""

import json
import logging
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from .exceptions import ConfigError, ParseError
from .utils import normalize_separators

logger = logging.getLogger(__name__)

REQUIRED_KEYS = ("host", "username", "password", "port", "isKeyAuth")
DEFAULT_WORKING_DIRECTORY = "/"

JSON_SUFFIXES = (".json",)
YAML_SUFFIXES = (".yml", ".yaml")


@dataclass
class Profile:
    """Identity, credential and remembered working directory of a remote host.

    When ``is_key_auth`` is set, ``password`` holds the path of a private
    key file instead of a secret.
    """

    host: str
    username: str
    password: str = field(repr=False)
    port: int = 22
    is_key_auth: bool = False
    working_directory: str = DEFAULT_WORKING_DIRECTORY
    path: Optional[Path] = None
    document: dict[str, Any] = field(default_factory=dict, repr=False)

    @property
    def display_name(self) -> str:
        return f"{self.username}@{self.host}"

    def to_document(self) -> dict[str, Any]:
        """Build the document to write back, preserving unknown keys."""
        document = dict(self.document)
        for key, value in (
            ("host", self.host),
            ("username", self.username),
            ("password", self.password),
            ("port", self.port),
            ("isKeyAuth", self.is_key_auth),
        ):
            if key not in document:
                document[key] = value
        document["workingDirectory"] = self.working_directory
        return document


def _coerce_port(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid port: {value!r}")
    try:
        port = int(str(value).strip())
    except ValueError as e:
        raise ConfigError(f"Invalid port: {value!r}") from e
    if not 1 <= port <= 65535:
        raise ConfigError(f"Port out of range: {port}")
    return port


def _coerce_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text == "true":
        return True
    if text == "false":
        return False
    raise ConfigError(f"Invalid isKeyAuth value: {value!r}")


def _read_document(path: Path) -> dict[str, Any]:
    suffix = path.suffix.lower()
    if suffix not in JSON_SUFFIXES + YAML_SUFFIXES:
        raise ParseError(f"Invalid file type: {path.name}. Supported are .json & .yml!")

    try:
        content = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read profile {path}: {e}") from e

    try:
        if suffix in JSON_SUFFIXES:
            data = json.loads(content)
        else:
            data = yaml.safe_load(content)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ParseError(f"Malformed profile {path}: {e}") from e

    if not isinstance(data, dict):
        raise ParseError(f"Profile {path} is not a key/value document")
    return data


def load_profile(path: Union[str, Path]) -> Profile:
    """Load and validate a profile document.

    Args:
        path: Path to a .json, .yml or .yaml file

    Returns:
        The parsed profile

    Raises:
        ConfigError: If the file is unreadable or a field is missing/invalid
        ParseError: If the content is malformed or the format unsupported
    """
    path = Path(path).expanduser().absolute()
    data = _read_document(path)

    missing = [key for key in REQUIRED_KEYS if key not in data]
    if missing:
        raise ConfigError(f"Invalid config file {path}: missing {', '.join(missing)}")

    working_directory = normalize_separators(
        str(data.get("workingDirectory") or DEFAULT_WORKING_DIRECTORY)
    )
    if not posixpath.isabs(working_directory):
        raise ConfigError(
            f"workingDirectory must be an absolute path: {working_directory}"
        )

    profile = Profile(
        host=str(data["host"]),
        username=str(data["username"]),
        password=str(data["password"]),
        port=_coerce_port(data["port"]),
        is_key_auth=_coerce_bool(data["isKeyAuth"]),
        working_directory=working_directory,
        path=path,
        document=data,
    )
    logger.debug(f"Loaded profile {profile.display_name} from {path}")
    return profile


def persist_profile(profile: Profile) -> None:
    """Write the profile back to its origin document.

    Args:
        profile: Profile loaded with ``load_profile``

    Raises:
        ConfigError: If the profile has no origin document or it is not writable
    """
    if profile.path is None:
        raise ConfigError("Profile has no origin document")

    document = profile.to_document()
    if profile.path.suffix.lower() in JSON_SUFFIXES:
        content = json.dumps(document, indent=2) + "\n"
    else:
        content = yaml.safe_dump(document, default_flow_style=False, sort_keys=False)

    try:
        profile.path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot write profile {profile.path}: {e}") from e
    profile.document = document
    logger.debug(f"Saved profile {profile.display_name} to {profile.path}")
