"""Assembly display-name parsing for extern alias targets."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

NEUTRAL_CULTURE = "neutral"
PUBLIC_KEY_TOKEN_SIZE = 8
_VERSION_PART_MAX = 0xFFFF


@dataclass(frozen=True)
class AssemblyIdentity:
    name: str
    version: Tuple[int, int, int, int] = (0, 0, 0, 0)
    culture_name: str = ""
    public_key_token: bytes = b""
    public_key: bytes = b""
    is_retargetable: bool = False
    content_type: str = "Default"

    @property
    def display_name(self) -> str:
        parts = [_escape_name(self.name)]
        parts.append("Version=" + ".".join(str(part) for part in self.version))
        parts.append(f"Culture={self.culture_name or NEUTRAL_CULTURE}")
        if self.public_key:
            parts.append(f"PublicKey={self.public_key.hex()}")
        else:
            token = self.public_key_token.hex() if self.public_key_token else "null"
            parts.append(f"PublicKeyToken={token}")
        if self.is_retargetable:
            parts.append("Retargetable=Yes")
        if self.content_type != "Default":
            parts.append(f"ContentType={self.content_type}")
        return ", ".join(parts)

    def __str__(self) -> str:
        return self.display_name


def parse_display_name(display_name: str) -> AssemblyIdentity:
    """Parse ``Name, Version=..., Culture=..., PublicKeyToken=...``.

    Raises ValueError when the display name is malformed.
    """
    if display_name is None or not display_name.strip():
        raise ValueError("empty assembly display name")
    parts = _split_components(display_name)
    name = parts[0].strip()
    if not name:
        raise ValueError(f"missing assembly name in {display_name!r}")
    name = _unquote(name)

    version = (0, 0, 0, 0)
    culture = ""
    token = b""
    public_key = b""
    retargetable = False
    content_type = "Default"
    seen: set[str] = set()
    for raw in parts[1:]:
        key, sep, value = raw.partition("=")
        key = key.strip()
        value = _unquote(value.strip())
        if not sep or not key:
            raise ValueError(f"invalid assembly property {raw.strip()!r}")
        lowered = key.lower()
        if lowered in seen:
            raise ValueError(f"duplicate assembly property {key!r}")
        seen.add(lowered)
        if lowered == "version":
            version = _parse_version(value)
        elif lowered == "culture":
            culture = "" if value.lower() == NEUTRAL_CULTURE else value
        elif lowered == "publickeytoken":
            token = _parse_public_key_token(value)
        elif lowered == "publickey":
            public_key = _parse_hex(value, key)
        elif lowered == "retargetable":
            if value.lower() not in {"yes", "no"}:
                raise ValueError(f"invalid Retargetable value {value!r}")
            retargetable = value.lower() == "yes"
        elif lowered == "contenttype":
            if value not in {"Default", "WindowsRuntime"}:
                raise ValueError(f"invalid ContentType value {value!r}")
            content_type = value
        # other properties (processorArchitecture, ...) carry no identity
    return AssemblyIdentity(
        name=name,
        version=version,
        culture_name=culture,
        public_key_token=token,
        public_key=public_key,
        is_retargetable=retargetable,
        content_type=content_type,
    )


def try_parse_display_name(display_name: str) -> Optional[AssemblyIdentity]:
    try:
        return parse_display_name(display_name)
    except ValueError:
        return None


def _split_components(text: str) -> List[str]:
    parts: List[str] = []
    current: List[str] = []
    quote: Optional[str] = None
    escaped = False
    for ch in text:
        if escaped:
            current.append(ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif quote:
            if ch == quote:
                quote = None
            current.append(ch)
        elif ch in "\"'":
            quote = ch
            current.append(ch)
        elif ch == ",":
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    if escaped or quote:
        raise ValueError(f"unterminated escape or quote in {text!r}")
    parts.append("".join(current))
    return parts


def _is_quoted(value: str) -> bool:
    return len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'"


def _unquote(value: str) -> str:
    return value[1:-1] if _is_quoted(value) else value


def _escape_name(name: str) -> str:
    out = []
    for ch in name:
        if ch in ",=\\\"'":
            out.append("\\")
        out.append(ch)
    return "".join(out)


def _parse_version(value: str) -> Tuple[int, int, int, int]:
    pieces = value.split(".")
    if not 1 <= len(pieces) <= 4:
        raise ValueError(f"invalid version {value!r}")
    numbers: List[int] = []
    for piece in pieces:
        if not piece.isdigit():
            raise ValueError(f"invalid version {value!r}")
        number = int(piece)
        if number > _VERSION_PART_MAX:
            raise ValueError(f"version component out of range in {value!r}")
        numbers.append(number)
    numbers.extend([0] * (4 - len(numbers)))
    return (numbers[0], numbers[1], numbers[2], numbers[3])


def _parse_public_key_token(value: str) -> bytes:
    if value.lower() == "null":
        return b""
    token = _parse_hex(value, "PublicKeyToken")
    if len(token) != PUBLIC_KEY_TOKEN_SIZE:
        raise ValueError(f"PublicKeyToken must be {PUBLIC_KEY_TOKEN_SIZE} bytes")
    return token


def _parse_hex(value: str, label: str) -> bytes:
    try:
        return bytes.fromhex(value)
    except ValueError as exc:
        raise ValueError(f"invalid {label} {value!r}") from exc


__all__ = ["AssemblyIdentity", "parse_display_name", "try_parse_display_name"]
