"""Base entity class and the field role markers understood by the mapper.

Every mapped model subclasses :class:`Entity`, names its table through a
``__tablename__`` class attribute and tags each persisted field with exactly
one role marker via :data:`typing.Annotated`::

    class Assignee(Entity):
        __tablename__ = "assignees"

        name: Annotated[str, Column()] = ""


    class Task(Entity):
        __tablename__ = "tasks"

        title: Annotated[str, Column()] = ""
        done: Annotated[bool, Column()] = False
        owner: Annotated[Optional[Assignee], ForeignKey(Assignee)] = None

Fields carrying no marker are left out of the table.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated, Any, ClassVar, Optional, Union

from pydantic import BaseModel

from litemap.errors import MappingError

__all__ = [
    "Entity",
    "PrimaryKey",
    "Column",
    "ForeignKey",
    "IDENTITY_COLUMN",
    "qualified_name",
    "resolve_entity",
]

IDENTITY_COLUMN = "id"

# Entity subclasses by class name and by "module.qualname", so ForeignKey
# targets can be given as strings.
_ENTITY_TYPES: dict[str, type["Entity"]] = {}
# Short names declared under more than one qualified name.
_AMBIGUOUS_NAMES: set[str] = set()


@dataclass(frozen=True)
class PrimaryKey:
    """Marks the identity field. Only :class:`Entity` declares one."""


@dataclass(frozen=True)
class Column:
    """Marks a plain column.

    ``name`` defaults to the field name; ``type_name`` overrides the host type
    name introspected from the annotation (e.g. ``"long"`` for a ``bigint``).
    """

    name: Optional[str] = None
    type_name: Optional[str] = None


@dataclass(frozen=True)
class ForeignKey:
    """Marks a field holding another entity, stored as that entity's id."""

    target: Union[type, str]
    name: Optional[str] = None


class Entity(BaseModel):
    """Common base for mapped models; carries the integer identity field."""

    __tablename__: ClassVar[str] = ""

    id: Annotated[int, PrimaryKey()] = 0

    @classmethod
    def __pydantic_init_subclass__(cls, **kwargs: Any) -> None:
        super().__pydantic_init_subclass__(**kwargs)
        existing = _ENTITY_TYPES.get(cls.__name__)
        if existing is not None and qualified_name(existing) != qualified_name(cls):
            _AMBIGUOUS_NAMES.add(cls.__name__)
        _ENTITY_TYPES[cls.__name__] = cls
        # Re-running a class statement replaces the earlier definition.
        _ENTITY_TYPES[qualified_name(cls)] = cls


def qualified_name(cls: type) -> str:
    return f"{cls.__module__}.{cls.__qualname__}"


def resolve_entity(
    target: Union[type, str], declaring: Optional[type[Entity]] = None
) -> type[Entity]:
    """Return the :class:`Entity` subclass a ForeignKey ``target`` names.

    A string naming ``declaring`` itself always resolves to it.  A short name
    shared by several classes is ambiguous; use ``"module.QualName"`` instead.
    """
    if isinstance(target, str):
        if declaring is not None and target in (declaring.__name__, qualified_name(declaring)):
            return declaring
        if target in _AMBIGUOUS_NAMES:
            raise MappingError(
                f"Entity name {target!r} is declared by several classes; "
                "use the module-qualified name"
            )
        try:
            return _ENTITY_TYPES[target]
        except KeyError:
            raise MappingError(f"Unknown entity type {target!r}") from None
    if not (isinstance(target, type) and issubclass(target, Entity)):
        raise MappingError(f"{target!r} is not an Entity subclass")
    return target
