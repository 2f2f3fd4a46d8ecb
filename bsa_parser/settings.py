"""User settings for decoding, stored as TOML."""
from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

import click

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from bsa_parser.config import DEFAULT_ENCODING


@dataclass
class Settings:
    encoding: str = DEFAULT_ENCODING
    strict_terminators: bool = False   # reject length-prefixed strings without a zero terminator
    verify_file_hashes: bool = True    # warn when a listed file name does not hash to its record


def get_config_path() -> Path:
    """Return the TOML config file path via click.get_app_dir."""
    return Path(click.get_app_dir("bsadump")) / "config.toml"


def load_settings(path: Path | None = None) -> Settings:
    """Read TOML settings. Returns defaults if the file is missing."""
    path = path or get_config_path()
    if not path.exists():
        return Settings()

    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise click.ClickException(f"Malformed config file {path}: {e}")

    decode = data.get("decode", {})
    defaults = Settings()
    settings = Settings(
        encoding=decode.get("encoding", defaults.encoding),
        strict_terminators=bool(decode.get("strict_terminators", defaults.strict_terminators)),
        verify_file_hashes=bool(decode.get("verify_file_hashes", defaults.verify_file_hashes)),
    )
    validate_encoding(settings.encoding)
    return settings


def save_settings(settings: Settings, path: Path | None = None) -> Path:
    """Write settings to TOML."""
    path = path or get_config_path()
    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "[decode]",
        f"encoding = '{settings.encoding}'",
        f"strict_terminators = {'true' if settings.strict_terminators else 'false'}",
        f"verify_file_hashes = {'true' if settings.verify_file_hashes else 'false'}",
        "",
    ]
    path.write_text("\n".join(lines), encoding="utf-8")
    return path


def validate_encoding(encoding: str) -> str:
    """Raise click.BadParameter if Python does not know the codec."""
    try:
        "".encode(encoding)
    except LookupError:
        raise click.BadParameter(f"Unknown encoding: {encoding}", param_hint="encoding")
    return encoding
