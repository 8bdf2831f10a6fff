# SPDX-License-Identifier: BSD-3-Clause
# Part of the pyxdmf project – https://github.com/pyxdmf/pyxdmf
"""
String-keyed registry used to select pluggable components (e.g. storage backends).
"""
from __future__ import annotations

from abc import ABC
from typing import Any, Callable, ClassVar, Dict, List, Type, TypeVar, cast
from inspect import signature

# TypeVars for type-preserving decorators & methods
RootT = TypeVar("RootT", bound="Factory")
SubT = TypeVar("SubT", bound="Factory")


class Factory(ABC):
    """
    Base class for pluggable components. Subclasses are registered under a
    string key and instantiated from that key.

    Notes
    -----
    Each direct subclass of `Factory` gets its own private registry. Keys are
    strings and not case sensitive.

    Example
    -------
    Use Factory as a base class for a component family (e.g., `Storage`):

    >>> class Storage(Factory, ABC):
    >>>   ...

    Register a concrete implementation:

    >>> @Storage.register("memory")
    >>> class MemoryStorage(Storage):
    >>>     ...

    Instantiate it from its key:

    >>> Storage.create("memory", **kw)
    """

    _registry: ClassVar[Dict[str, Type["Factory"]]] = {}
    """Registered subclasses of this component family, by lowercase key."""

    def __init_subclass__(cls, **kw: Any) -> None:
        super().__init_subclass__(**kw)
        # only the family root gets a fresh registry; implementations share it
        if Factory in cls.__bases__:
            cls._registry = {}

        if "create" in cls.__dict__:
            raise TypeError(
                f"{cls.__name__} is not allowed to override the `create` method. "
                "Use `Create` instead for custom instantiation logic."
            )

    @classmethod
    def register(
        cls: Type[RootT], key: str | None = None
    ) -> Callable[[Type[SubT]], Type[SubT]]:
        """
        Register a subclass under `key`.

        Parameters
        ----------
        key : str or None, optional
            The key under which to register the subclass. If `None`, the
            lowercase class name is used.

        Returns
        -------
        Callable[[Type[T]], Type[T]]
            Class decorator returning the class unchanged.

        Raises
        ------
        ValueError
            If the key is already taken in this family's registry, or the
            class was stamped with a different key before.
        """

        def decorator(sub_cls: Type[SubT]) -> Type[SubT]:
            k = (key or sub_cls.__name__).lower()
            if k in cls._registry:
                raise ValueError(
                    f"{cls.__name__}: key '{k}' already registered for {cls._registry[k].__name__}"
                )

            existing = sub_cls.__dict__.get("__registry_name__")
            if existing is not None and existing != k:
                raise ValueError(
                    f"{sub_cls.__name__} has __registry_name__={existing!r}, "
                    f"but is being registered as {k!r}."
                )
            cls._registry[k] = sub_cls
            sub_cls.__registry_name__ = k
            return sub_cls

        return decorator

    @classmethod
    def registry_name(cls) -> str:
        """Key under which this class was registered."""
        name = cls.__dict__.get("__registry_name__")
        if name is None:
            raise KeyError(f"{cls.__name__} is not registered.")
        return name

    @property
    def type_name(self) -> str:
        return type(self).registry_name()

    @classmethod
    def available(cls) -> List[str]:
        """Registered keys of this family, in registration order."""
        return list(cls._registry)

    @classmethod
    def create(cls: Type[RootT], key: str, /, **kw: Any) -> RootT:
        """
        Create an instance of the subclass registered under `key`.

        If the subclass defines a `Create` classmethod it is called instead of
        the constructor, so implementations can preprocess arguments.

        Parameters
        ----------
        key : str
            Registration key (case insensitive).
        **kw : Any
            Keyword arguments forwarded to the constructor (or `Create`).

        Raises
        ------
        KeyError
            If `key` is not registered.
        TypeError
            If `**kw` does not match the constructor signature.
        """
        try:
            sub_cls = cls._registry[key.lower()]
        except KeyError as err:
            raise KeyError(
                f"Unknown {cls.__name__} '{key}'. " f"Available: {list(cls._registry)}"
            ) from err

        create_or_ctor = getattr(sub_cls, "Create", None) or sub_cls
        factory_callable = cast(Callable[..., RootT], create_or_ctor)

        sig = signature(create_or_ctor)
        try:
            sig.bind_partial(**kw)
        except TypeError as err:
            raise TypeError(
                f"Invalid keyword(s) for {sub_cls.__name__}: {err}. "
                f"Expected signature: {sub_cls.__name__}.{create_or_ctor.__name__}{sig}"
            ) from None

        return factory_callable(**kw)


__all__ = ["Factory"]
