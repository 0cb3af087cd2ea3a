"""
Declaration source that imports modules and reflects over live classes.

This is the "compiled module" source: it sees exactly what the interpreter
builds, including classes produced by decorators, but it needs the corpus
to be importable. Only annotations and functions declared in a class's own
namespace are recorded, so inherited members never count twice.
"""

import dataclasses
import enum
import importlib
import inspect
import logging
import sys
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Set

from ..core.errors import FileUnreadable
from ..core.types import (
    DeclarationKind,
    MemberKind,
    MemberSignature,
    ParseOutcome,
    SourceLocation,
    TypeDeclaration,
)
from .descriptors import ANY, async_return, describe_runtime
from .rules import attribute_kind, is_public_member, is_public_type, unique_members

logger = logging.getLogger(__name__)


def _annotations(obj: Any) -> dict:
    try:
        return inspect.get_annotations(obj)
    except TypeError:
        return {}


def _module_locations(loaded: Any) -> List[Path]:
    """Files a loaded module came from; search locations for namespace packages."""
    filename = getattr(loaded, "__file__", None)
    if filename:
        return [Path(filename).resolve()]
    return [Path(entry).resolve() for entry in getattr(loaded, "__path__", None) or ()]


def _qualified_base(base: type) -> str:
    if base.__module__ == "builtins":
        return base.__qualname__
    return f"{base.__module__}.{base.__qualname__}"


class ModuleIntrospector:
    """Reflection-based declaration source.

    Corpus modules are imported fresh for every file and dropped from
    ``sys.modules`` afterwards, so one run never sees modules left behind by
    another. A module name already bound to something outside the corpus is
    reported as unreadable instead of being reflected over.

    Args:
        search_path: Directory put on ``sys.path`` while importing (the
            corpus root)
        event_types: Annotation names recorded as events
    """

    name = "introspect"
    needs_text = False
    thread_safe = False

    def __init__(self, search_path: Optional[Path] = None, event_types: Optional[Iterable[str]] = None):
        self.search_path = Path(search_path).resolve() if search_path else None
        self.event_types: Set[str] = set(event_types or ())

    def parse(self, path: Path, module: str, text: str) -> ParseOutcome:
        """Import ``module`` and describe the classes it defines.

        ``text`` is not used; the module is imported by name.

        Raises:
            FileUnreadable: If the module cannot be imported
        """
        before = set(sys.modules)
        try:
            loaded = self._import(module, path)
            outcome = ParseOutcome()
            for cls in self._classes(loaded, module):
                outcome.declarations.append(self._declaration(cls, module, path))
            return outcome
        finally:
            self._unload(set(sys.modules) - before)

    def _owned(self, loaded: Any) -> bool:
        """Whether a loaded module comes from the corpus root."""
        if self.search_path is None:
            return False
        return any(location.is_relative_to(self.search_path) for location in _module_locations(loaded))

    def _evict_stale(self, module: str, path: Path) -> None:
        """Drop corpus modules cached by earlier imports; refuse foreign ones."""
        if self.search_path is None:
            return
        parts = module.split(".")
        for depth in range(1, len(parts) + 1):
            name = ".".join(parts[:depth])
            preloaded = sys.modules.get(name)
            if preloaded is None:
                continue
            if not self._owned(preloaded):
                raise FileUnreadable(
                    f"Cannot import {module}: {name} is already loaded from outside the corpus",
                    file_path=path.as_posix(),
                )
            logger.debug(f"Dropping cached corpus module {name}")
            del sys.modules[name]

    def _unload(self, names: Set[str]) -> None:
        for name in sorted(names):
            loaded = sys.modules.get(name)
            if loaded is not None and self._owned(loaded):
                del sys.modules[name]

    def _import(self, module: str, path: Path) -> Any:
        self._evict_stale(module, path)
        added = False
        if self.search_path is not None and str(self.search_path) not in sys.path:
            sys.path.insert(0, str(self.search_path))
            added = True
        importlib.invalidate_caches()
        try:
            return importlib.import_module(module)
        except Exception as e:
            raise FileUnreadable(
                f"Cannot import {module}: {type(e).__name__}: {e}", file_path=path.as_posix()
            )
        finally:
            if added:
                sys.path.remove(str(self.search_path))

    def _classes(self, loaded: Any, module: str) -> Iterator[type]:
        pending: List[type] = [
            value for _, value in sorted(vars(loaded).items())
            if inspect.isclass(value) and value.__module__ == module
        ]
        seen = set()
        while pending:
            cls = pending.pop(0)
            if id(cls) in seen or "<locals>" in cls.__qualname__:
                continue
            seen.add(id(cls))
            if not all(is_public_type(part) for part in cls.__qualname__.split(".")):
                continue
            yield cls
            pending.extend(
                value for value in vars(cls).values()
                if inspect.isclass(value) and value.__module__ == module
                and value.__qualname__.startswith(cls.__qualname__ + ".")
            )

    def _kind(self, cls: type) -> DeclarationKind:
        if issubclass(cls, enum.Enum):
            return DeclarationKind.ENUM
        if getattr(cls, "_is_protocol", False):
            return DeclarationKind.INTERFACE

        methods = [
            value for name, value in vars(cls).items()
            if is_public_member(name) and (inspect.isfunction(value) or isinstance(value, property))
        ]
        if inspect.isabstract(cls) and methods and all(
            getattr(getattr(m, "fget", m), "__isabstractmethod__", False) for m in methods
        ):
            return DeclarationKind.INTERFACE

        if (
            dataclasses.is_dataclass(cls)
            or hasattr(cls, "__attrs_attrs__")
            or (issubclass(cls, tuple) and hasattr(cls, "_fields"))
            or (issubclass(cls, dict) and hasattr(cls, "__total__"))
            or any(base.__name__ == "BaseModel" for base in cls.__mro__[1:])
        ):
            return DeclarationKind.STRUCT
        return DeclarationKind.CLASS

    def _members(self, cls: type) -> List[MemberSignature]:
        members = []
        for name, annotation in _annotations(cls).items():
            if is_public_member(name):
                descriptor = describe_runtime(annotation)
                members.append(MemberSignature(name, descriptor, attribute_kind(descriptor, self.event_types)))

        for name, value in vars(cls).items():
            if not is_public_member(name):
                continue
            if isinstance(value, (staticmethod, classmethod)):
                value = value.__func__
            if isinstance(value, property):
                returns = _annotations(value.fget).get("return") if value.fget else None
                descriptor = describe_runtime(returns) if returns is not None else ANY
                members.append(MemberSignature(name, descriptor, MemberKind.PROPERTY))
            elif inspect.isfunction(value):
                hints = _annotations(value)
                descriptor = describe_runtime(hints["return"]) if "return" in hints else ANY
                if inspect.iscoroutinefunction(value):
                    descriptor = async_return(descriptor)
                members.append(MemberSignature(name, descriptor, MemberKind.METHOD))
        return members

    def _declaration(self, cls: type, module: str, path: Path) -> TypeDeclaration:
        kind = self._kind(cls)
        if kind is DeclarationKind.ENUM:
            members = [
                MemberSignature(name, cls.__name__, MemberKind.PROPERTY)
                for name in cls.__members__ if not name.startswith("_")
            ]
        else:
            members = self._members(cls)

        try:
            line = inspect.getsourcelines(cls)[1]
        except (OSError, TypeError):
            line = 0

        qualname = cls.__qualname__
        return TypeDeclaration(
            qualified_name=f"{module}.{qualname}",
            module=module,
            namespace=f"{module}.{qualname}".rpartition(".")[0],
            kind=kind,
            members=tuple(unique_members(members)),
            base_types=frozenset(_qualified_base(b) for b in cls.__bases__ if b is not object),
            location=SourceLocation(path.as_posix(), line),
        )
