"""
pdbcdi: method debug info from native PDB custom debug info.

Decodes the compiler-emitted custom debug info blob (using groups,
forwards, dynamic locals, state machine hoisted scopes) together with the
import strings and scope tree of a method, and assembles the per-method
view an expression evaluator needs.  ``read_method_debug_info`` is the
entry point; ``python -m pdbcdi`` launches the interactive inspector.
"""

from __future__ import annotations

from .cdi import CustomDebugInfoError, CustomDebugInfoKind
from .method_info import MethodDebugInfo, read_method_debug_info
from .records import ExternAliasRecord, HoistedLocalScopeRecord, ILSpan, ImportRecord, ImportTargetKind

__all__ = [
    "CustomDebugInfoError",
    "CustomDebugInfoKind",
    "ExternAliasRecord",
    "HoistedLocalScopeRecord",
    "ILSpan",
    "ImportRecord",
    "ImportTargetKind",
    "MethodDebugInfo",
    "read_method_debug_info",
]
__version__ = "0.1.0"
