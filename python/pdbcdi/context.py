"""Inspector context shared by the CLI commands."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

from .cache import MethodDebugInfoCache
from .method_info import MethodDebugInfo
from .reader import JsonSymReader, SymMethod
from .signatures import LocalVariableSymbol, SignatureSymbolProvider
from .symbols import BadImageFormatError, UnsupportedSignatureContent, get_locals

LOGGER = logging.getLogger("pdbcdi.context")


@dataclass
class InspectorContext:
    """Holds the loaded PDB dump and decoding state."""

    json_output: bool = False
    visual_basic: bool = False
    pdb_path: Optional[Path] = None
    aliases: Dict[str, str] = field(default_factory=dict)
    _reader: Optional[JsonSymReader] = field(default=None, init=False, repr=False)
    _provider: Optional[SignatureSymbolProvider] = field(default=None, init=False, repr=False)
    _cache: Optional[MethodDebugInfoCache] = field(default=None, init=False, repr=False)

    def load_pdb(self, path: str | Path) -> JsonSymReader:
        resolved = Path(path).expanduser().resolve()
        if not resolved.exists():
            raise FileNotFoundError(resolved)
        reader = JsonSymReader.from_file(resolved)
        self._reader = reader
        self._provider = SignatureSymbolProvider.from_type_table(reader.type_table)
        self._cache = MethodDebugInfoCache(reader, self._provider)
        self.pdb_path = resolved
        LOGGER.debug("loaded %d methods from %s", len(reader.methods), resolved)
        return reader

    def ensure_reader(self) -> JsonSymReader:
        if self._reader is None:
            raise RuntimeError("no PDB dump loaded (use 'load <path>')")
        return self._reader

    @property
    def provider(self) -> Optional[SignatureSymbolProvider]:
        return self._provider

    @property
    def cache(self) -> Optional[MethodDebugInfoCache]:
        return self._cache

    def resolve_alias(self, name: str) -> str:
        return self.aliases.get(name, name)

    def query(self, token: int, version: int, il_offset: int, *, visual_basic: Optional[bool] = None) -> MethodDebugInfo:
        self.ensure_reader()
        assert self._cache is not None
        vb = self.visual_basic if visual_basic is None else visual_basic
        return self._cache.query(token, version, il_offset, is_visual_basic=vb)

    def method(self, token: int, version: int) -> Optional[SymMethod]:
        return self.ensure_reader().get_method_by_version(token, version)

    def local_symbols(self, token: int, version: int, info: MethodDebugInfo) -> List[LocalVariableSymbol]:
        method = self.method(token, version)
        if method is None or not method.local_signature or self._provider is None:
            return []
        try:
            local_info = self._provider.decode_local_signature(method.local_signature)
        except (BadImageFormatError, UnsupportedSignatureContent) as exc:
            LOGGER.debug("local signature of 0x%08X not decodable: %s", token, exc)
            return []
        return get_locals(self._provider, info.local_variable_names, local_info, info.dynamic_local_map)


__all__ = ["InspectorContext"]
