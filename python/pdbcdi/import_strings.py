"""Parsers for the C# and Visual Basic native import string dialects."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Tuple

from .cdi import (
    CustomDebugInfoError,
    CustomDebugInfoKind,
    decode_forward_record,
    decode_forward_to_module_record,
    decode_using_record,
    iter_custom_debug_info_records,
)
from .records import ImportTargetKind, VBImportScopeKind

logger = logging.getLogger(__name__)

CSHARP_SEPARATOR = " "
VB_ALIAS_SEPARATOR = "="

CustomDebugInfoGetter = Callable[[int], Optional[bytes]]
ImportStringsGetter = Callable[[int], Optional[Sequence[str]]]


class ImportStringError(ValueError):
    """Raised when a single import directive cannot be parsed."""


class Dialect(Enum):
    CSHARP = "csharp"
    VISUAL_BASIC = "vb"


@dataclass(frozen=True)
class ParsedImport:
    kind: ImportTargetKind
    alias: Optional[str] = None
    extern_alias: Optional[str] = None
    target: Optional[str] = None
    scope: VBImportScopeKind = VBImportScopeKind.UNSPECIFIED


def _split(text: str, offset: int, separator: str) -> Tuple[str, str]:
    # "before" may be empty (global namespace), "after" may not
    pos = text.find(separator, offset)
    if pos < offset or pos >= len(text) - 1:
        raise ImportStringError(f"expected '{separator}' separated fields in {text!r}")
    return text[offset:pos], text[pos + 1 :]


# ----------------------------------------------------------------------
# C#
# ----------------------------------------------------------------------
def parse_csharp_import_string(import_string: str) -> ParsedImport:
    if not import_string:
        raise ImportStringError("empty import string")
    tag = import_string[0]
    if tag == "U":
        return ParsedImport(ImportTargetKind.NAMESPACE, target=import_string[1:])
    if tag == "E":
        target, extern_alias = _split(import_string, 1, CSHARP_SEPARATOR)
        return ParsedImport(ImportTargetKind.NAMESPACE, extern_alias=extern_alias, target=target)
    if tag == "T":
        return ParsedImport(ImportTargetKind.TYPE, target=import_string[1:])
    if tag == "A":
        alias, target = _split(import_string, 1, CSHARP_SEPARATOR)
        inner = target[0]
        if inner == "U":
            return ParsedImport(ImportTargetKind.NAMESPACE, alias=alias, target=target[1:])
        if inner == "T":
            return ParsedImport(ImportTargetKind.TYPE, alias=alias, target=target[1:])
        if inner == "E":
            namespace, extern_alias = _split(target, 1, CSHARP_SEPARATOR)
            return ParsedImport(ImportTargetKind.NAMESPACE, alias=alias, extern_alias=extern_alias, target=namespace)
        raise ImportStringError(f"unknown alias target tag {inner!r} in {import_string!r}")
    if tag == "X":
        # extern aliases keep the alias name in ``alias``
        return ParsedImport(ImportTargetKind.ASSEMBLY, alias=import_string[1:])
    if tag == "Z":
        alias, target = _split(import_string, 1, CSHARP_SEPARATOR)
        return ParsedImport(ImportTargetKind.ASSEMBLY, alias=alias, target=target)
    raise ImportStringError(f"unknown C# import tag {tag!r}")


def format_csharp_import_string(parsed: ParsedImport) -> str:
    """Encode a parsed C# import back into its native string form."""
    kind = parsed.kind
    if kind == ImportTargetKind.ASSEMBLY:
        if parsed.alias is None:
            raise ImportStringError("extern alias requires an alias")
        if parsed.target is None:
            return f"X{parsed.alias}"
        return f"Z{parsed.alias}{CSHARP_SEPARATOR}{parsed.target}"
    if parsed.target is None:
        raise ImportStringError(f"{kind.name} import requires a target")
    if kind == ImportTargetKind.NAMESPACE:
        if parsed.extern_alias is not None:
            body = f"E{parsed.target}{CSHARP_SEPARATOR}{parsed.extern_alias}"
        else:
            body = f"U{parsed.target}"
    elif kind == ImportTargetKind.TYPE:
        if parsed.extern_alias is not None:
            raise ImportStringError("type imports cannot name an extern alias")
        body = f"T{parsed.target}"
    else:
        raise ImportStringError(f"{kind.name} imports have no C# encoding")
    if parsed.alias is not None:
        return f"A{parsed.alias}{CSHARP_SEPARATOR}{body}"
    return body


def is_csharp_extern_alias_info(import_string: str) -> bool:
    return import_string.startswith("Z")


# ----------------------------------------------------------------------
# Visual Basic
# ----------------------------------------------------------------------
def parse_visual_basic_import_string(import_string: str) -> ParsedImport:
    if import_string is None:
        raise ImportStringError("missing import string")
    if not import_string:
        return ParsedImport(ImportTargetKind.CURRENT_NAMESPACE, target=import_string)

    first = import_string[0]
    if first in "&$#":
        # embedded PIA and module/extension markers, no longer meaningful
        return ParsedImport(ImportTargetKind.DEFUNCT, target=import_string)
    if first == "*":
        return ParsedImport(ImportTargetKind.DEFAULT_NAMESPACE, target=import_string[1:])
    if first != "@":
        return ParsedImport(ImportTargetKind.CURRENT_NAMESPACE, target=import_string)

    pos = 1
    if pos >= len(import_string):
        raise ImportStringError(f"truncated import string {import_string!r}")
    scope = VBImportScopeKind.UNSPECIFIED
    if import_string[pos] == "F":
        scope = VBImportScopeKind.FILE
        pos += 1
    elif import_string[pos] == "P":
        scope = VBImportScopeKind.PROJECT
        pos += 1
    if pos >= len(import_string):
        raise ImportStringError(f"truncated import string {import_string!r}")

    marker = import_string[pos]
    if marker in "AXT":
        pos += 1
        if pos >= len(import_string) or import_string[pos] != ":":
            raise ImportStringError(f"expected ':' after {marker!r} in {import_string!r}")
        pos += 1
        if marker == "T":
            return ParsedImport(ImportTargetKind.TYPE, target=import_string[pos:], scope=scope)
        alias, target = _split(import_string, pos, VB_ALIAS_SEPARATOR)
        kind = ImportTargetKind.NAMESPACE_OR_TYPE if marker == "A" else ImportTargetKind.XML_NAMESPACE
        return ParsedImport(kind, alias=alias, target=target, scope=scope)
    if marker == ":":
        return ParsedImport(ImportTargetKind.NAMESPACE, target=import_string[pos + 1 :], scope=scope)
    return ParsedImport(ImportTargetKind.METHOD_TOKEN, target=import_string[pos:], scope=scope)


_PARSERS = {
    Dialect.CSHARP: parse_csharp_import_string,
    Dialect.VISUAL_BASIC: parse_visual_basic_import_string,
}


def get_import_string_parser(dialect: Dialect) -> Callable[[str], ParsedImport]:
    return _PARSERS[dialect]


# ----------------------------------------------------------------------
# Import string lookup
# ----------------------------------------------------------------------
def get_csharp_grouped_import_strings(
    method_token: int,
    get_custom_debug_info: CustomDebugInfoGetter,
    get_import_strings: ImportStringsGetter,
) -> Tuple[Optional[List[List[str]]], Optional[List[str]]]:
    """Split a C# method's import strings into nesting groups and extern aliases.

    Returns ``(None, None)`` when the method has no CDI or no using record.
    Raises CustomDebugInfoError when counts and strings disagree.
    """
    group_sizes: Optional[Tuple[int, ...]] = None
    extern_alias_strings: Optional[List[str]] = None
    seen_forward = False

    while True:
        blob = get_custom_debug_info(method_token)
        if not blob:
            return None, None
        forwarded = False
        for record in iter_custom_debug_info_records(blob):
            if record.kind == CustomDebugInfoKind.USING_INFO:
                if group_sizes is not None:
                    raise CustomDebugInfoError(f"expected at most one using record for method 0x{method_token:08X}")
                group_sizes = decode_using_record(record.data)
            elif record.kind == CustomDebugInfoKind.FORWARD_INFO:
                if extern_alias_strings is not None:
                    raise CustomDebugInfoError(
                        f"did not expect both forward and forward-to-module records for method 0x{method_token:08X}"
                    )
                method_token = decode_forward_record(record.data)
                # follow at most one forward link
                if not seen_forward:
                    seen_forward = True
                    forwarded = True
                    break
            elif record.kind == CustomDebugInfoKind.FORWARD_TO_MODULE_INFO:
                if extern_alias_strings is not None:
                    raise CustomDebugInfoError(
                        f"expected at most one forward-to-module record for method 0x{method_token:08X}"
                    )
                module_token = decode_forward_to_module_record(record.data)
                module_strings = get_import_strings(module_token) or ()
                extern_alias_strings = [s for s in module_strings if is_csharp_extern_alias_info(s)]
        if not forwarded:
            break

    if group_sizes is None:
        # malformed PDBs (chains of forwards) end up here
        return None, None

    import_strings = list(get_import_strings(method_token) or ())
    groups: List[List[str]] = []
    pos = 0
    for size in group_sizes:
        group: List[str] = []
        for _ in range(size):
            if pos >= len(import_strings):
                raise CustomDebugInfoError(
                    f"group sizes indicate more imports than there are import strings (method 0x{method_token:08X})"
                )
            import_string = import_strings[pos]
            if is_csharp_extern_alias_info(import_string):
                raise CustomDebugInfoError(
                    f"extern alias info before all import strings were consumed (method 0x{method_token:08X})"
                )
            group.append(import_string)
            pos += 1
        groups.append(group)

    if extern_alias_strings is None:
        # module-level extern aliases trail the grouped strings
        remaining = import_strings[pos:]
        for import_string in remaining:
            if not is_csharp_extern_alias_info(import_string):
                raise CustomDebugInfoError(
                    f"expected only extern alias info after the grouped imports (method 0x{method_token:08X})"
                )
        extern_alias_strings = remaining
    elif pos < len(import_strings):
        raise CustomDebugInfoError(
            f"group sizes indicate fewer imports than there are import strings (method 0x{method_token:08X})"
        )
    return groups, extern_alias_strings


def get_visual_basic_import_strings(method_token: int, get_import_strings: ImportStringsGetter) -> Optional[List[str]]:
    """Return the VB import strings, following one ``@<token>`` forward."""
    import_strings = get_import_strings(method_token)
    if import_strings is None:
        return None
    if not import_strings:
        return []
    first = import_strings[0]
    token_text = first[1:]
    if first.startswith("@") and token_text.isascii() and token_text.isdigit():
        forwarded = get_import_strings(int(token_text))
        return list(forwarded) if forwarded is not None else None
    return list(import_strings)


__all__ = [
    "Dialect",
    "ImportStringError",
    "ParsedImport",
    "parse_csharp_import_string",
    "format_csharp_import_string",
    "parse_visual_basic_import_string",
    "get_import_string_parser",
    "is_csharp_extern_alias_info",
    "get_csharp_grouped_import_strings",
    "get_visual_basic_import_strings",
]
