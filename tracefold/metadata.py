"""Method metadata sources used to resolve continuation carriers.

A metadata source answers one question: which methods named ``method_name``
does ``declaring_type`` declare, and what are their parameters?

``find_methods`` returns

- ``None`` when the source knows nothing about ``declaring_type``,
- an empty tuple when the type is known but declares no such method,
- one :class:`MethodSignature` per candidate (overloads yield several).

Sources may raise :class:`~tracefold.errors.MetadataLookupError`; the resolver
treats that as "unresolved".
"""

from __future__ import annotations

import inspect
import json
import logging
import sys
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol, get_overloads, runtime_checkable

from frozendict import frozendict

from tracefold.errors import MetadataLookupError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Parameter:
    type_name: str | None
    name: str

    def render(self) -> str:
        if not self.type_name:
            return self.name
        return f"{self.type_name} {self.name}"


@dataclass(frozen=True)
class MethodSignature:
    name: str
    parameters: tuple[Parameter, ...] | None


@runtime_checkable
class MetadataSource(Protocol):
    def find_methods(
        self, declaring_type: str, method_name: str
    ) -> tuple[MethodSignature, ...] | None: ...


# ============================================================================
# Static (build-time) metadata
# ============================================================================


def _coerce_parameter(entry: Any) -> Parameter:
    if isinstance(entry, Parameter):
        return entry
    if isinstance(entry, Mapping):
        return Parameter(type_name=entry.get("type"), name=str(entry["name"]))
    if isinstance(entry, str):
        type_name, _, name = entry.strip().rpartition(" ")
        return Parameter(type_name=type_name or None, name=name)
    if isinstance(entry, Sequence) and len(entry) == 2:
        type_name, name = entry
        return Parameter(type_name=type_name, name=str(name))
    raise TypeError(f"Unsupported parameter entry type: {type(entry).__name__}")


def _coerce_signature(method_name: str, entry: Any) -> MethodSignature:
    if isinstance(entry, MethodSignature):
        return entry
    if entry is None:
        return MethodSignature(name=method_name, parameters=None)
    if isinstance(entry, Mapping):
        raw_parameters = entry.get("parameters")
        if raw_parameters is None:
            return MethodSignature(name=method_name, parameters=None)
        return MethodSignature(
            name=method_name,
            parameters=tuple(_coerce_parameter(p) for p in raw_parameters),
        )
    if isinstance(entry, Sequence) and not isinstance(entry, str):
        return MethodSignature(
            name=method_name,
            parameters=tuple(_coerce_parameter(p) for p in entry),
        )
    raise TypeError(f"Unsupported signature entry type: {type(entry).__name__}")


class StaticMetadata:
    """Explicit map from declaring type to method overloads.

    Example::

        StaticMetadata({
            "App.Worker": {
                "RunAsync": [[("String", "arg")]],
                "RetryAsync": [[], [("Int32", "count")]],
            },
        })

    Each method maps to a list of overloads; an overload is a list of
    parameters, or ``None`` when its parameters are unknown.
    """

    def __init__(self, types: Mapping[str, Mapping[str, Iterable[Any]]] | None = None) -> None:
        self._types: frozendict[str, frozendict[str, tuple[MethodSignature, ...]]] = frozendict(
            {
                type_name: frozendict(
                    {
                        method_name: tuple(
                            _coerce_signature(method_name, overload) for overload in overloads
                        )
                        for method_name, overloads in methods.items()
                    }
                )
                for type_name, methods in (types or {}).items()
            }
        )

    @classmethod
    def load(cls, path: str | Path) -> StaticMetadata:
        with Path(path).open(encoding="utf-8") as handle:
            payload = json.load(handle)
        if not isinstance(payload, dict):
            raise TypeError(f"Metadata file must contain an object, got {type(payload).__name__}")
        return cls(payload)

    @property
    def types(self) -> Mapping[str, Mapping[str, tuple[MethodSignature, ...]]]:
        return self._types

    def find_methods(
        self, declaring_type: str, method_name: str
    ) -> tuple[MethodSignature, ...] | None:
        methods = self._types.get(declaring_type)
        if methods is None:
            return None
        return methods.get(method_name, ())


# ============================================================================
# Python introspection
# ============================================================================


def _annotation_name(annotation: Any) -> str | None:
    if annotation is inspect.Parameter.empty:
        return None
    if isinstance(annotation, str):
        return annotation
    if isinstance(annotation, type):
        return annotation.__name__
    return str(annotation).replace("typing.", "")


def _parameter_label(parameter: inspect.Parameter) -> str:
    if parameter.kind is inspect.Parameter.VAR_POSITIONAL:
        return f"*{parameter.name}"
    if parameter.kind is inspect.Parameter.VAR_KEYWORD:
        return f"**{parameter.name}"
    return parameter.name


def _signature_of(func: Any, method_name: str, bound: bool) -> MethodSignature:
    try:
        signature = inspect.signature(func)
    except (TypeError, ValueError):
        return MethodSignature(name=method_name, parameters=None)

    parameters = list(signature.parameters.values())
    if bound and parameters:
        parameters = parameters[1:]
    return MethodSignature(
        name=method_name,
        parameters=tuple(
            Parameter(type_name=_annotation_name(p.annotation), name=_parameter_label(p))
            for p in parameters
        ),
    )


def _overloads_of(func: Any) -> list[Any]:
    try:
        return list(get_overloads(func))
    except Exception:
        return []


class ImportMetadata:
    """Introspects Python classes and modules by dotted name.

    Only modules already present in ``sys.modules`` are consulted unless
    ``import_modules`` is set, so lookups never trigger import side effects
    by default. Attributes are read statically; no property or descriptor runs.
    """

    def __init__(self, *, import_modules: bool = False) -> None:
        self.import_modules = import_modules

    def _module(self, name: str) -> Any:
        module = sys.modules.get(name)
        if module is not None or not self.import_modules:
            return module
        import importlib

        try:
            return importlib.import_module(name)
        except ImportError:
            return None

    def locate(self, dotted: str) -> Any:
        parts = dotted.split(".")
        for index in range(len(parts), 0, -1):
            owner = self._module(".".join(parts[:index]))
            if owner is None:
                continue
            for attribute in parts[index:]:
                owner = inspect.getattr_static(owner, attribute, None)
                if owner is None:
                    return None
            return owner
        return None

    def find_methods(
        self, declaring_type: str, method_name: str
    ) -> tuple[MethodSignature, ...] | None:
        try:
            owner = self.locate(declaring_type)
        except Exception as exc:
            raise MetadataLookupError(declaring_type, method_name, exc) from exc
        if owner is None:
            return None

        try:
            attribute = inspect.getattr_static(owner, method_name)
        except AttributeError:
            return ()

        bound = inspect.isclass(owner)
        if isinstance(attribute, staticmethod):
            func, bound = attribute.__func__, False
        elif isinstance(attribute, classmethod):
            func = attribute.__func__
        else:
            func = attribute
        if not callable(func):
            return ()

        candidates = _overloads_of(func) or [func]
        return tuple(_signature_of(candidate, method_name, bound) for candidate in candidates)


# ============================================================================
# Composition
# ============================================================================


class MetadataChain:
    """Consults several sources in order; the first one that knows the type wins."""

    def __init__(self, *sources: MetadataSource) -> None:
        self.sources = sources

    def find_methods(
        self, declaring_type: str, method_name: str
    ) -> tuple[MethodSignature, ...] | None:
        for source in self.sources:
            try:
                found = source.find_methods(declaring_type, method_name)
            except MetadataLookupError as exc:
                logger.debug("Metadata source %r failed: %s", source, exc)
                continue
            if found is not None:
                return found
        return None


__all__ = [
    "ImportMetadata",
    "MetadataChain",
    "MetadataSource",
    "MethodSignature",
    "Parameter",
    "StaticMetadata",
]
