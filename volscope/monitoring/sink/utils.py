# Copyright (c) Meta Platforms, Inc. and affiliates.
# All rights reserved.
"""Registration, documentation and construction helpers for sinks."""

from __future__ import annotations

import importlib
import inspect
import logging
import pkgutil
import traceback
from dataclasses import dataclass
from types import ModuleType
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    MutableMapping,
    Optional,
    Type,
    TYPE_CHECKING,
    TypeVar,
)

import click
from volscope.monitoring.sink.protocol import SinkAdditionalParams, SinkWrite

from volscope.schemas.log import Log

if TYPE_CHECKING:
    from _typeshed import DataclassInstance


logger = logging.getLogger(__name__)


def discover(package: ModuleType) -> Dict[str, ModuleType]:
    """Import every direct submodule of `package`, so that sinks defined there
    register themselves.
    """
    search_path = getattr(package, "__path__", None)
    if search_path is None:
        raise RuntimeError(f"Cannot discover sinks in {package.__name__}, not a package")

    found = {}
    for module_info in pkgutil.iter_modules(search_path, package.__name__ + "."):
        logger.debug("Importing sink module %s", module_info.name)
        found[module_info.name] = importlib.import_module(module_info.name)
    return found


T = TypeVar("T")
Factory = Callable[..., T]
ClassDecorator = Callable[[Type[T]], Type[T]]
Register = Callable[[str], ClassDecorator[T]]

T_co = TypeVar("T_co", covariant=True)


def make_register(registry: MutableMapping[str, Factory[T_co]]) -> Register[T_co]:
    """Make a `register(name)` class decorator which stores classes in `registry`.

    >>> sinks = {}
    >>> register = make_register(sinks)
    >>> @register("null")
    ... class Null:
    ...   def write(self, data, additional_params): ...
    ...
    >>> sinks["null"] is Null
    True
    """

    def register(name: str) -> ClassDecorator[T_co]:
        def add(cls: Type[T_co]) -> Type[T_co]:
            existing = registry.get(name)
            if existing is not None:
                raise RuntimeError(f"'{name}' is already registered to {existing}")
            registry[name] = cls
            logger.debug("Sink '%s' is %s", name, cls.__qualname__)
            return cls

        return add

    return register


def factory_signature(factory: Factory) -> inspect.Signature:
    """The signature callers see when constructing `factory`."""
    if isinstance(factory, type) and factory.__init__ is object.__init__:
        return inspect.Signature()
    return inspect.signature(factory)


@dataclass(frozen=True)
class SinkDoc:
    name: str
    module: str
    signature: inspect.Signature
    docstring: Optional[str] = None

    @classmethod
    def of(cls, name: str, factory: Factory) -> SinkDoc:
        return cls(
            name=name,
            module=factory.__module__,
            signature=factory_signature(factory),
            docstring=inspect.getdoc(factory),
        )

    def render(self, indent: str = "  ") -> str:
        body = [
            f"Signature: {self.signature}",
            *(self.docstring or "No documentation found.").splitlines(),
        ]
        return "\n".join(
            [f"{self.name} - (from module: '{self.module}')"]
            + [indent + line for line in body]
        )


def describe_sinks(registry: Mapping[str, Factory]) -> str:
    """Documentation of every registered sink, sorted by name."""
    docs = [SinkDoc.of(name, registry[name]) for name in sorted(registry)]
    return "\n\n".join(doc.render() for doc in docs) + "\n"


def keyword_parameters(factory: Factory, *, required_only: bool = False) -> List[str]:
    return sorted(
        name
        for name, param in factory_signature(factory).parameters.items()
        if param.kind is param.KEYWORD_ONLY
        and not (required_only and param.default is not param.empty)
    )


@dataclass(frozen=True)
class SinkOptionsError:
    """Explains which `-o` options do not fit the constructor of a sink."""

    sink_name: str
    accepted: List[str]
    required: List[str]
    given: List[str]

    @classmethod
    def of(
        cls, sink_name: str, factory: Factory, sink_kwargs: Mapping[str, Any]
    ) -> SinkOptionsError:
        return cls(
            sink_name=sink_name,
            accepted=keyword_parameters(factory),
            required=keyword_parameters(factory, required_only=True),
            given=sorted(sink_kwargs),
        )

    @property
    def unrecognized(self) -> List[str]:
        return sorted(set(self.given) - set(self.accepted))

    @property
    def missing(self) -> List[str]:
        return sorted(set(self.required) - set(self.given))

    def __str__(self) -> str:
        lines = []
        if self.unrecognized:
            lines.append(
                f"Sink '{self.sink_name}' got unrecognized options. "
                "It accepts these keyword-only parameters:"
            )
            lines.extend(f"\t{name}" for name in self.accepted)
            lines.append("But it was also given:")
            lines.extend(f"\t{name}" for name in self.unrecognized)
        if self.missing:
            lines.append(f"Sink '{self.sink_name}' is missing required parameters:")
            lines.extend(f"\t{name}" for name in self.missing)
        return "\n".join(lines)


def explain_sink_init_error(
    exc: TypeError,
    sink_name: str,
    factory: Factory,
    sink_kwargs: Mapping[str, Any],
) -> Optional[SinkOptionsError]:
    """Turn the `TypeError` of a sink constructor into an explanation of the
    options, or `None` if the error is not about its parameters.
    """
    explanation = SinkOptionsError.of(sink_name, factory, sink_kwargs)
    message = str(exc)
    about_parameters = (
        "unexpected keyword argument" in message
        or "required keyword-only argument" in message
    )
    if not about_parameters or not (explanation.unrecognized or explanation.missing):
        return None
    return explanation


def write_to_sink(
    write: SinkWrite,
    sink: str,
    records: Iterable[DataclassInstance],
    verbose: bool,
    log_time: int,
    additional_params: SinkAdditionalParams,
) -> None:
    try:
        write(Log(ts=log_time, message=list(records)), additional_params)
    except Exception as e:
        if verbose:
            traceback.print_exc()
        raise click.ClickException(f"Writing to sink '{sink}' failed: {e}") from e
