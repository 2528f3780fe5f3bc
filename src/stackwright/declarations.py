"""
Stack declarations.

A declaration document is a mapping with an optional ``config.defaults``
mapping and a ``stacks`` mapping of stack name to its template, parameters,
policy, tags and ``dependsOn`` list. Declarations are parsed once per run
and never mutated afterwards.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping

from stackwright.core.errors import ConfigurationError


def flatten_parameters(values: Mapping[str, Any] | None) -> dict[str, str]:
    """Join list-valued parameters with commas; stringify everything else.

    Keys with a null value are left out.
    """
    flattened: dict[str, str] = {}
    for key, value in (values or {}).items():
        if value is None:
            continue
        if isinstance(value, (list, tuple)):
            flattened[str(key)] = ",".join(str(v) for v in value)
        elif isinstance(value, bool):
            flattened[str(key)] = "true" if value else "false"
        else:
            flattened[str(key)] = str(value)
    return flattened


@dataclass(frozen=True)
class StackDeclaration:
    """A single declared stack."""

    name: str
    template: Mapping[str, Any] = field(default_factory=dict)
    parameters: Mapping[str, str] = field(default_factory=dict)
    policy: Mapping[str, Any] | None = None
    tags: Mapping[str, str] = field(default_factory=dict)
    depends_on: tuple[str, ...] = ()

    @property
    def template_parameters(self) -> frozenset[str]:
        """Names of the parameters the template declares."""
        return frozenset((self.template or {}).get("Parameters") or {})

    @classmethod
    def from_dict(cls, name: str, data: Mapping[str, Any] | None) -> StackDeclaration:
        data = data or {}
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Stack {name} must be a mapping", details={"stack": name})

        template = data.get("template") or {}
        if not isinstance(template, Mapping):
            raise ConfigurationError(
                f"Stack {name} template must be a mapping", details={"stack": name}
            )

        parameters = data.get("parameters") or {}
        if not isinstance(parameters, Mapping):
            raise ConfigurationError(
                f"Stack {name} parameters must be a mapping", details={"stack": name}
            )

        depends_on = data.get("dependsOn") or ()
        if isinstance(depends_on, str):
            depends_on = (depends_on,)
        if not isinstance(depends_on, (list, tuple, set, frozenset)):
            raise ConfigurationError(
                f"Stack {name} dependsOn must be a name or list of names",
                details={"stack": name},
            )

        tags = data.get("tags") or {}
        if not isinstance(tags, Mapping):
            raise ConfigurationError(f"Stack {name} tags must be a mapping", details={"stack": name})

        return cls(
            name=name,
            template=dict(template),
            parameters=flatten_parameters(parameters),
            policy=data.get("policy"),
            tags={str(k): str(v) for k, v in tags.items()},
            # keep declaration order, drop duplicates
            depends_on=tuple(dict.fromkeys(str(d) for d in depends_on)),
        )


@dataclass(frozen=True)
class Declarations:
    """The full set of declared stacks plus global parameter defaults."""

    stacks: Mapping[str, StackDeclaration]
    defaults: Mapping[str, str] = field(default_factory=dict)

    def __contains__(self, name: object) -> bool:
        return name in self.stacks

    def __getitem__(self, name: str) -> StackDeclaration:
        return self.stacks[name]

    def names(self) -> list[str]:
        return list(self.stacks)

    @classmethod
    def from_document(cls, document: Mapping[str, Any] | None) -> Declarations:
        """Build declarations from a loaded declaration document."""
        if not isinstance(document, Mapping):
            raise ConfigurationError("Expected declaration document to be a mapping")

        stacks = document.get("stacks")
        if not stacks or not isinstance(stacks, Mapping):
            raise ConfigurationError("Expected declaration document to have `stacks` object")

        config = document.get("config") or {}
        defaults = config.get("defaults") if isinstance(config, Mapping) else None
        if defaults is not None and not isinstance(defaults, Mapping):
            raise ConfigurationError("Expected `config.defaults` to be a mapping")

        return cls(
            stacks={
                str(name): StackDeclaration.from_dict(str(name), data)
                for name, data in stacks.items()
            },
            defaults=flatten_parameters(defaults),
        )
