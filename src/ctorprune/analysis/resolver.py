# ctorprune:decision_protocol_module
"""Class and interface resolution over parsed modules.

The resolver answers, for one class declaration, which interfaces it
implements (transitively) and whether each of them declares ``__init__`` in
its own body. Anything that cannot be resolved makes the whole class
``NotResolvable``; callers skip such classes.
"""

from __future__ import annotations

import builtins
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Protocol

import libcst as cst

from ctorprune.analysis.signature import CONSTRUCTOR_NAME, class_methods, dotted_name
from ctorprune.invariants import require_not_none

INTERFACE_ROOTS = frozenset(
    {
        "Protocol",
        "typing.Protocol",
        "typing_extensions.Protocol",
        "ABC",
        "abc.ABC",
    }
)
ABSTRACT_METACLASSES = frozenset({"ABCMeta", "abc.ABCMeta"})

_BUILTIN_CLASSES = frozenset(
    name for name, value in vars(builtins).items() if isinstance(value, type)
)
OPAQUE_ROOTS = frozenset(
    {
        *_BUILTIN_CLASSES,
        *(f"builtins.{name}" for name in _BUILTIN_CLASSES),
        "typing.Generic",
        "typing.NamedTuple",
        "typing.TypedDict",
        "typing_extensions.Generic",
        "typing_extensions.NamedTuple",
        "typing_extensions.TypedDict",
        "enum.Enum",
        "enum.IntEnum",
        "enum.StrEnum",
        "enum.Flag",
        "enum.IntFlag",
    }
)


@dataclass(frozen=True)
class InterfaceMetadata:
    name: str
    declares_constructor: bool


@dataclass(frozen=True)
class ClassMetadata:
    name: str
    interfaces: tuple[InterfaceMetadata, ...] = ()
    is_interface: bool = False


@dataclass(frozen=True)
class NotResolvable:
    reason: str


class SymbolResolver(Protocol):
    def resolve(self, class_def: cst.ClassDef) -> ClassMetadata | NotResolvable:
        """Resolve a class declaration to its interface metadata."""


@dataclass
class ModuleInfo:
    name: str
    module: cst.Module
    is_package: bool = False
    classes: dict[str, list[cst.ClassDef]] = field(default_factory=dict)
    qualnames: dict[int, str] = field(default_factory=dict)
    imports: dict[str, str] = field(default_factory=dict)


def _package_name(info: ModuleInfo) -> str:
    if info.is_package:
        return info.name
    return info.name.rpartition(".")[0]


def _relative_base(info: ModuleInfo, level: int) -> str:
    parts = _package_name(info).split(".") if _package_name(info) else []
    if level > 1:
        parts = parts[: len(parts) - (level - 1)] if level - 1 <= len(parts) else []
    return ".".join(parts)


class _ModuleCollector(cst.CSTVisitor):
    def __init__(self, info: ModuleInfo) -> None:
        self.info = info
        self._stack: list[str] = []

    def visit_ClassDef(self, node: cst.ClassDef) -> bool:
        name = node.name.value
        self.info.classes.setdefault(name, []).append(node)
        self.info.qualnames[id(node)] = ".".join([*self._stack, name])
        self._stack.append(name)
        return True

    def leave_ClassDef(self, original_node: cst.ClassDef) -> None:
        self._stack.pop()

    def visit_FunctionDef(self, node: cst.FunctionDef) -> bool:
        self._stack.append(node.name.value)
        return True

    def leave_FunctionDef(self, original_node: cst.FunctionDef) -> None:
        self._stack.pop()

    def visit_Import(self, node: cst.Import) -> bool:
        for alias in node.names:
            full = dotted_name(alias.name)
            if not full:
                continue
            if alias.asname is not None and isinstance(alias.asname.name, cst.Name):
                self.info.imports[alias.asname.name.value] = full
            else:
                head = full.split(".")[0]
                self.info.imports[head] = head
        return False

    def visit_ImportFrom(self, node: cst.ImportFrom) -> bool:
        if isinstance(node.names, cst.ImportStar):
            return False
        module = dotted_name(node.module) or ""
        if node.relative:
            base = _relative_base(self.info, len(node.relative))
            module = ".".join(part for part in (base, module) if part)
        for alias in node.names:
            if not isinstance(alias.name, cst.Name):
                continue
            local = (
                alias.asname.name.value
                if alias.asname is not None and isinstance(alias.asname.name, cst.Name)
                else alias.name.value
            )
            self.info.imports[local] = ".".join(part for part in (module, alias.name.value) if part)
        return False


class _ResolutionKind(StrEnum):
    INTERFACE_ROOT = "interface_root"
    OPAQUE = "opaque"
    CLASS = "class"
    UNRESOLVED = "unresolved"


@dataclass(frozen=True)
class _Resolution:
    kind: _ResolutionKind
    qualified: str
    info: ModuleInfo | None = None
    class_def: cst.ClassDef | None = None
    reason: str = ""


class ClassIndex:
    """Classes and imports of a set of parsed modules, keyed by module name."""

    def __init__(
        self,
        modules: Iterable[ModuleInfo] = (),
        *,
        interface_bases: Iterable[str] = (),
        opaque_bases: Iterable[str] = (),
    ) -> None:
        self.modules: dict[str, ModuleInfo] = {info.name: info for info in modules}
        self.interface_roots = INTERFACE_ROOTS | frozenset(interface_bases)
        self.opaque_roots = OPAQUE_ROOTS | frozenset(opaque_bases)
        self._metadata_cache: dict[int, ClassMetadata | NotResolvable] = {}

    @classmethod
    def from_modules(
        cls,
        modules: Mapping[str, cst.Module],
        *,
        packages: Iterable[str] = (),
        interface_bases: Iterable[str] = (),
        opaque_bases: Iterable[str] = (),
    ) -> "ClassIndex":
        package_names = set(packages)
        infos = []
        for name, module in modules.items():
            info = ModuleInfo(name=name, module=module, is_package=name in package_names)
            module.visit(_ModuleCollector(info))
            infos.append(info)
        return cls(infos, interface_bases=interface_bases, opaque_bases=opaque_bases)

    @classmethod
    def from_module(
        cls,
        module: cst.Module,
        *,
        name: str = "__main__",
        interface_bases: Iterable[str] = (),
        opaque_bases: Iterable[str] = (),
    ) -> "ClassIndex":
        return cls.from_modules(
            {name: module},
            interface_bases=interface_bases,
            opaque_bases=opaque_bases,
        )

    def resolver_for(self, module_name: str) -> "ClassIndexResolver":
        return ClassIndexResolver(self, module_name)

    def _locate(
        self, info: ModuleInfo, class_def: cst.ClassDef
    ) -> cst.ClassDef | NotResolvable:
        if id(class_def) in info.qualnames:
            return class_def
        candidates = info.classes.get(class_def.name.value, [])
        if not candidates:
            return NotResolvable(f"class {class_def.name.value} not found in {info.name}")
        if len(candidates) > 1:
            return NotResolvable(f"class {class_def.name.value} is ambiguous in {info.name}")
        return candidates[0]

    def _resolve_qualified(self, qualified: str, seen: frozenset[str]) -> _Resolution:
        if qualified in seen:
            return _Resolution(
                _ResolutionKind.UNRESOLVED, qualified, reason=f"import cycle at {qualified}"
            )
        if qualified in self.interface_roots:
            return _Resolution(_ResolutionKind.INTERFACE_ROOT, qualified)
        if qualified in self.opaque_roots:
            return _Resolution(_ResolutionKind.OPAQUE, qualified)
        parts = qualified.split(".")
        for split in range(len(parts) - 1, 0, -1):
            info = self.modules.get(".".join(parts[:split]))
            if info is None:
                continue
            return self._resolve_in_module(
                info, ".".join(parts[split:]), seen | {qualified}, allow_roots=False
            )
        return _Resolution(
            _ResolutionKind.UNRESOLVED, qualified, reason=f"unresolved base {qualified}"
        )

    def _resolve_in_module(
        self,
        info: ModuleInfo,
        name: str,
        seen: frozenset[str] = frozenset(),
        *,
        allow_roots: bool = True,
    ) -> _Resolution:
        head, _, rest = name.partition(".")
        if not rest:
            candidates = [
                class_def
                for class_def in info.classes.get(head, [])
                if "." not in info.qualnames[id(class_def)]
            ]
            if len(candidates) == 1:
                return _Resolution(
                    _ResolutionKind.CLASS,
                    f"{info.name}.{head}",
                    info=info,
                    class_def=candidates[0],
                )
            if len(candidates) > 1:
                return _Resolution(
                    _ResolutionKind.UNRESOLVED,
                    name,
                    reason=f"class {head} is ambiguous in {info.name}",
                )
        else:
            for class_def in info.classes.get(name.rpartition(".")[2], []):
                if info.qualnames[id(class_def)] == name:
                    return _Resolution(
                        _ResolutionKind.CLASS,
                        f"{info.name}.{name}",
                        info=info,
                        class_def=class_def,
                    )
        if head in info.imports:
            target = info.imports[head]
            qualified = f"{target}.{rest}" if rest else target
            return self._resolve_qualified(qualified, seen)
        if allow_roots and name in self.interface_roots:
            return _Resolution(_ResolutionKind.INTERFACE_ROOT, name)
        if allow_roots and name in self.opaque_roots:
            return _Resolution(_ResolutionKind.OPAQUE, name)
        return _Resolution(
            _ResolutionKind.UNRESOLVED,
            name,
            reason=f"unresolved base {name} in {info.name}",
        )

    def metadata(
        self, info: ModuleInfo, class_def: cst.ClassDef
    ) -> ClassMetadata | NotResolvable:
        return self._metadata(info, class_def, frozenset())

    def _metadata(
        self,
        info: ModuleInfo,
        class_def: cst.ClassDef,
        stack: frozenset[int],
    ) -> ClassMetadata | NotResolvable:
        key = id(class_def)
        cached = self._metadata_cache.get(key)
        if cached is not None:
            return cached
        if key in stack:
            return NotResolvable(f"inheritance cycle at {class_def.name.value}")
        qualname = f"{info.name}.{info.qualnames.get(key, class_def.name.value)}"
        is_interface = False
        interfaces: dict[str, InterfaceMetadata] = {}
        for keyword in class_def.keywords:
            if keyword.keyword is None or keyword.keyword.value != "metaclass":
                continue
            name = dotted_name(keyword.value)
            if name is None:
                return NotResolvable(f"unsupported metaclass expression on {qualname}")
            if name in ABSTRACT_METACLASSES:
                is_interface = True
                continue
            resolution = self._resolve_in_module(info, name)
            if resolution.kind == _ResolutionKind.UNRESOLVED:
                return NotResolvable(resolution.reason)
            if resolution.qualified in ABSTRACT_METACLASSES:
                is_interface = True
        for base in class_def.bases:
            if base.keyword is not None:
                continue
            if base.star:
                return NotResolvable(f"starred base on {qualname}")
            expr = base.value
            if isinstance(expr, cst.Subscript):
                expr = expr.value
            name = dotted_name(expr)
            if name is None:
                return NotResolvable(f"unsupported base expression on {qualname}")
            resolution = self._resolve_in_module(info, name)
            if resolution.kind == _ResolutionKind.UNRESOLVED:
                return NotResolvable(resolution.reason)
            if resolution.kind == _ResolutionKind.INTERFACE_ROOT:
                is_interface = True
                continue
            if resolution.kind == _ResolutionKind.OPAQUE:
                continue
            parent_info = require_not_none(
                resolution.info, reason="class resolution without module", base=name
            )
            parent_def = require_not_none(
                resolution.class_def, reason="class resolution without declaration", base=name
            )
            parent = self._metadata(parent_info, parent_def, stack | {key})
            if isinstance(parent, NotResolvable):
                return parent
            for interface in parent.interfaces:
                interfaces.setdefault(interface.name, interface)
            if parent.is_interface:
                interfaces.setdefault(
                    parent.name,
                    InterfaceMetadata(
                        name=parent.name,
                        declares_constructor=bool(
                            class_methods(parent_def, CONSTRUCTOR_NAME)
                        ),
                    ),
                )
        result = ClassMetadata(
            name=qualname,
            interfaces=tuple(interfaces.values()),
            is_interface=is_interface,
        )
        self._metadata_cache[key] = result
        return result


class ClassIndexResolver:
    """``SymbolResolver`` for classes declared in one module of a ``ClassIndex``."""

    def __init__(self, index: ClassIndex, module_name: str) -> None:
        self.index = index
        self.module_name = module_name

    def resolve(self, class_def: cst.ClassDef) -> ClassMetadata | NotResolvable:
        info = self.index.modules.get(self.module_name)
        if info is None:
            return NotResolvable(f"module {self.module_name} is not indexed")
        located = self.index._locate(info, class_def)
        if isinstance(located, NotResolvable):
            return located
        return self.index.metadata(info, located)
