"""Per-method debug info assembled from a native PDB reader."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple

from .assembly_identity import try_parse_display_name
from .cdi import (
    CustomDebugInfoError,
    CustomDebugInfoKind,
    decode_state_machine_hoisted_local_scopes_record,
    try_get_custom_debug_info_record,
)
from .dynamic_locals import DynamicFlags, read_dynamic_local_maps
from .import_strings import (
    ImportStringError,
    get_csharp_grouped_import_strings,
    get_visual_basic_import_strings,
    parse_csharp_import_string,
    parse_visual_basic_import_string,
)
from .records import (
    ExternAliasRecord,
    HoistedLocalScopeRecord,
    ILSpan,
    ImportRecord,
    ImportTargetKind,
    VBImportScopeKind,
)
from .reuse import get_reuse_span
from .scopes import SymScope, get_all_scopes, get_local_names
from .symbols import BadImageFormatError, SymbolProvider, get_constants

logger = logging.getLogger(__name__)

ImportRecordGroup = Tuple[ImportRecord, ...]
PortableDecoder = Callable[..., "MethodDebugInfo"]


def _empty_mapping() -> Mapping:
    return MappingProxyType({})


@dataclass(frozen=True)
class MethodDebugInfo:
    """Decoded debug info for one (method, version, IL offset) query."""

    hoisted_local_scope_records: Tuple[HoistedLocalScopeRecord, ...] = ()
    import_record_groups: Tuple[ImportRecordGroup, ...] = ()
    extern_alias_records: Tuple[ExternAliasRecord, ...] = ()
    dynamic_local_map: Mapping[int, DynamicFlags] = field(default_factory=_empty_mapping)
    dynamic_local_constant_map: Mapping[str, DynamicFlags] = field(default_factory=_empty_mapping)
    default_namespace_name: str = ""
    local_variable_names: Tuple[Optional[str], ...] = ()
    local_constants: Tuple[Any, ...] = ()
    reuse_span: ILSpan = ILSpan.MAX_VALUE  # type: ignore[attr-defined]


MethodDebugInfo.NONE = MethodDebugInfo()  # type: ignore[attr-defined]


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------
def read_method_debug_info(
    reader: Any,
    provider: Optional[SymbolProvider],
    method_token: int,
    method_version: int,
    il_offset: int,
    is_visual_basic: bool,
    *,
    portable_decoder: Optional[PortableDecoder] = None,
) -> MethodDebugInfo:
    """Read debug info for a method at ``il_offset``.

    ``provider`` may be None when only imports and the default namespace are
    wanted; constants are then not materialized.  Structural corruption of
    the custom debug info yields ``MethodDebugInfo.NONE``.
    """
    if reader is None:
        return MethodDebugInfo.NONE

    get_portable = getattr(reader, "get_portable_debug_metadata", None)
    if callable(get_portable):
        metadata = get_portable()
        if metadata is not None:
            if portable_decoder is None:
                logger.debug("portable metadata present but no portable decoder configured; using native records")
            else:
                try:
                    return portable_decoder(metadata, method_token, il_offset, provider, is_visual_basic)
                except BadImageFormatError as exc:
                    logger.warning("bad portable debug metadata for method 0x%08X: %s", method_token, exc)
                    return MethodDebugInfo.NONE

    try:
        root: Optional[SymScope] = None
        method = reader.get_method_by_version(method_token, method_version)
        if method is not None:
            root = method.root_scope
        all_scopes, containing_scopes = get_all_scopes(root, il_offset, is_end_inclusive=is_visual_basic)

        hoisted: Tuple[HoistedLocalScopeRecord, ...] = ()
        extern_aliases: Tuple[ExternAliasRecord, ...] = ()
        dynamic_map: Mapping[int, DynamicFlags] = MappingProxyType({})
        dynamic_constant_map: Mapping[str, DynamicFlags] = MappingProxyType({})
        if is_visual_basic:
            groups, default_namespace = read_visual_basic_imports(reader, method_token, method_version)
        else:
            groups, extern_aliases = read_csharp_native_imports(reader, provider, method_token, method_version)
            cdi = reader.get_custom_debug_info_bytes(method_token, method_version)
            hoisted = read_hoisted_local_scopes(cdi, is_end_inclusive=True)
            maps = read_dynamic_local_maps(cdi, all_scopes)
            dynamic_map, dynamic_constant_map = maps.by_slot, maps.by_name
            default_namespace = ""

        constants: Tuple[Any, ...] = ()
        if provider is not None:
            constants = tuple(get_constants(provider, containing_scopes, dynamic_constant_map))

        return MethodDebugInfo(
            hoisted_local_scope_records=hoisted,
            import_record_groups=groups,
            extern_alias_records=extern_aliases,
            dynamic_local_map=dynamic_map,
            dynamic_local_constant_map=dynamic_constant_map,
            default_namespace_name=default_namespace,
            local_variable_names=tuple(get_local_names(containing_scopes)),
            local_constants=constants,
            reuse_span=get_reuse_span(all_scopes, il_offset, is_end_inclusive=is_visual_basic),
        )
    except CustomDebugInfoError as exc:
        logger.warning("bad custom debug info for method 0x%08X v%d: %s", method_token, method_version, exc)
        return MethodDebugInfo.NONE


# ----------------------------------------------------------------------
# C#
# ----------------------------------------------------------------------
def read_csharp_native_imports(
    reader: Any,
    provider: Optional[SymbolProvider],
    method_token: int,
    method_version: int,
) -> Tuple[Tuple[ImportRecordGroup, ...], Tuple[ExternAliasRecord, ...]]:
    def get_cdi(token: int) -> Optional[bytes]:
        return reader.get_custom_debug_info_bytes(token, method_version)

    def get_import_strings(token: int) -> Optional[Sequence[str]]:
        method = reader.get_method_by_version(token, method_version)
        return method.get_import_strings() if method is not None else None

    string_groups, extern_alias_strings = get_csharp_grouped_import_strings(method_token, get_cdi, get_import_strings)
    if string_groups is None:
        return (), ()

    groups: List[ImportRecordGroup] = []
    for string_group in string_groups:
        records: List[ImportRecord] = []
        for import_string in string_group:
            record = create_import_record_from_csharp_import_string(provider, import_string)
            if record is None:
                logger.debug("failed to parse import string %r", import_string)
                continue
            records.append(record)
        groups.append(tuple(records))

    extern_aliases: List[ExternAliasRecord] = []
    for alias_string in extern_alias_strings or ():
        try:
            parsed = parse_csharp_import_string(alias_string)
        except ImportStringError:
            logger.debug("unable to parse extern alias %r", alias_string)
            continue
        if parsed.kind != ImportTargetKind.ASSEMBLY or parsed.alias is None or parsed.target is None:
            logger.debug("extern alias %r does not name an assembly", alias_string)
            continue
        identity = try_parse_display_name(parsed.target)
        if identity is None:
            logger.debug("unable to parse target of extern alias %r", alias_string)
            continue
        extern_aliases.append(ExternAliasRecord(alias=parsed.alias, target_assembly=identity))
    return tuple(groups), tuple(extern_aliases)


def create_import_record_from_csharp_import_string(
    provider: Optional[SymbolProvider],
    import_string: str,
) -> Optional[ImportRecord]:
    try:
        parsed = parse_csharp_import_string(import_string)
    except ImportStringError:
        return None
    target_type = None
    target_string = parsed.target
    if parsed.kind == ImportTargetKind.TYPE and provider is not None and target_string is not None:
        target_type = provider.get_type_symbol_for_serialized_type(target_string)
        target_string = None
    return ImportRecord(
        target_kind=parsed.kind,
        alias=parsed.alias,
        target_type=target_type,
        target_string=target_string,
        target_assembly_alias=parsed.extern_alias,
    )


def read_hoisted_local_scopes(custom_debug_info: Optional[bytes], *, is_end_inclusive: bool) -> Tuple[HoistedLocalScopeRecord, ...]:
    record = try_get_custom_debug_info_record(custom_debug_info, CustomDebugInfoKind.STATE_MACHINE_HOISTED_LOCAL_SCOPES)
    if record is None:
        return ()
    bump = 1 if is_end_inclusive else 0
    scopes: List[HoistedLocalScopeRecord] = []
    for index, scope in enumerate(decode_state_machine_hoisted_local_scopes_record(record)):
        length = scope.end_offset - scope.start_offset + bump
        if scope.start_offset < 0 or length < 0:
            logger.debug("dropping hoisted scope %d [%d, %d]", index, scope.start_offset, scope.end_offset)
            continue
        scopes.append(HoistedLocalScopeRecord(scope.start_offset, length))
    return tuple(scopes)


# ----------------------------------------------------------------------
# Visual Basic
# ----------------------------------------------------------------------
def read_visual_basic_imports(
    reader: Any,
    method_token: int,
    method_version: int,
) -> Tuple[Tuple[ImportRecordGroup, ...], str]:
    """Return ``((file_level, project_level), default_namespace)``."""

    def get_import_strings(token: int) -> Optional[Sequence[str]]:
        method = reader.get_method_by_version(token, method_version)
        return method.get_import_strings() if method is not None else None

    import_strings = get_visual_basic_import_strings(method_token, get_import_strings)
    if import_strings is None:
        return (), ""

    default_namespace: Optional[str] = None
    file_level: List[ImportRecord] = []
    project_level: List[ImportRecord] = []
    for import_string in import_strings:
        try:
            parsed = parse_visual_basic_import_string(import_string)
        except ImportStringError:
            logger.debug("failed to parse import string %r", import_string)
            continue
        if parsed.kind == ImportTargetKind.DEFUNCT:
            continue
        if parsed.kind == ImportTargetKind.DEFAULT_NAMESPACE:
            if default_namespace is not None:
                logger.debug("method 0x%08X has more than one default namespace; using the last", method_token)
            # the native evaluator takes the last one
            default_namespace = parsed.target
            continue
        record = ImportRecord(target_kind=parsed.kind, alias=parsed.alias, target_string=parsed.target)
        if parsed.scope == VBImportScopeKind.PROJECT:
            project_level.append(record)
        else:
            file_level.append(record)
    return (tuple(file_level), tuple(project_level)), default_namespace or ""


__all__ = [
    "ImportRecordGroup",
    "MethodDebugInfo",
    "read_method_debug_info",
    "read_csharp_native_imports",
    "create_import_record_from_csharp_import_string",
    "read_hoisted_local_scopes",
    "read_visual_basic_imports",
]
