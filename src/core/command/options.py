"""Option registry backed by a single pydantic options model.

Fields of the model that carry an `Option` marker in their `Annotated`
metadata become settable options. Reads and writes go through the registry;
values arrive as raw strings and are converted with the command converters.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Iterator, Mapping

from pydantic import BaseModel

from core.command import converters
from core.command.decorators import Option
from core.errors import OptionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OptionDescriptor:
    name: str
    description: str
    target_type: Any
    attribute: str
    instance: BaseModel = field(repr=False)
    converter: converters.Converter = field(repr=False)

    def get(self) -> Any:
        return getattr(self.instance, self.attribute)

    def set(self, raw: str) -> None:
        setattr(self.instance, self.attribute, self.converter(raw))


class OptionRegistry:
    def __init__(self) -> None:
        self._options: dict[str, OptionDescriptor] = {}

    def register(self, instance: BaseModel) -> list[OptionDescriptor]:
        descriptors: list[OptionDescriptor] = []
        for attribute, info in type(instance).model_fields.items():
            marker = next((item for item in info.metadata if isinstance(item, Option)), None)
            if marker is None:
                continue
            descriptor = OptionDescriptor(
                name=marker.name or attribute,
                description=info.description or "",
                target_type=info.annotation,
                attribute=attribute,
                instance=instance,
                converter=converters.resolve(info.annotation),
            )
            self._options[descriptor.name.casefold()] = descriptor
            descriptors.append(descriptor)
            logger.debug("Registered option %s (%s)", descriptor.name, converters.type_label(info.annotation))
        return descriptors

    def descriptor(self, name: str) -> OptionDescriptor:
        try:
            return self._options[name.casefold()]
        except KeyError:
            raise OptionError(name) from None

    def get(self, name: str) -> Any:
        return self.descriptor(name).get()

    def set(self, name: str, raw: str) -> None:
        descriptor = self.descriptor(name)
        descriptor.set(raw)
        logger.debug("Option %s set to %r", descriptor.name, descriptor.get())

    def items(self) -> list[tuple[str, Any]]:
        return sorted(((d.name, d.get()) for d in self._options.values()), key=lambda kv: kv[0].casefold())

    def snapshot(self) -> Mapping[str, Any]:
        """Read-only copy of the current values, keyed by option name."""

        return MappingProxyType(dict(self.items()))

    def __iter__(self) -> Iterator[OptionDescriptor]:
        return iter(sorted(self._options.values(), key=lambda d: d.name.casefold()))

    def __len__(self) -> int:
        return len(self._options)
