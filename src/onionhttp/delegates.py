"""
=============================================================================
DELEGATION LAYER
=============================================================================

Exposes members of a held object on its holder, so handlers can write
``ctx.body = ...`` instead of ``ctx.response.body = ...``.

Declarations are made once, at class definition time, and install plain
Python descriptors and methods on the holder CLASS. Nothing is looked up
dynamically through ``__getattr__``; ``dir(Context)`` and IDEs see every
delegated name.

=============================================================================
DELEGATION MODES
=============================================================================

    ┌──────────┬──────────────────────────┬──────────────────────────────┐
    │  Mode    │ On the holder            │ Equivalent to                │
    ├──────────┼──────────────────────────┼──────────────────────────────┤
    │ method   │ ctx.set("X-A", "1")      │ ctx.response.set("X-A", "1") │
    │ access   │ ctx.body = v / ctx.body  │ ctx.response.body (r/w)      │
    │ getter   │ ctx.headers              │ ctx.request.headers (read)   │
    │ setter   │ ctx.x = v                │ ctx.target.x = v (write)     │
    │ fluent   │ ctx.x() / ctx.x(v)       │ read / write, returns ctx    │
    └──────────┴──────────────────────────┴──────────────────────────────┘

A getter-only name is still a data descriptor, so assigning to it raises
AttributeError instead of silently creating an instance attribute that
would shadow the delegate.

=============================================================================
USAGE
=============================================================================

    class Context:
        ...

    delegate(Context, "response").method("set").access("status").access("body")
    delegate(Context, "request").access("query").getter("headers")

=============================================================================
"""

from typing import Any, List


class DelegatedAttribute:
    """
    Data descriptor forwarding attribute reads/writes to ``holder.<target>``.
    """

    def __init__(self, target: str, name: str, readable: bool = True, writable: bool = False):
        self.target = target
        self.name = name
        self.readable = readable
        self.writable = writable

    def __get__(self, holder: Any, owner: type = None) -> Any:
        if holder is None:
            return self
        if not self.readable:
            raise AttributeError(f"{self.name!r} is write-only on {type(holder).__name__}")
        return getattr(getattr(holder, self.target), self.name)

    def __set__(self, holder: Any, value: Any) -> None:
        if not self.writable:
            raise AttributeError(f"{self.name!r} is read-only on {type(holder).__name__}")
        setattr(getattr(holder, self.target), self.name, value)

    def __delete__(self, holder: Any) -> None:
        raise AttributeError(f"Cannot delete delegated attribute {self.name!r}")

    def __repr__(self) -> str:
        mode = {(True, True): "access", (True, False): "getter", (False, True): "setter"}
        return f"<delegated {mode.get((self.readable, self.writable), 'none')} {self.target}.{self.name}>"


class Delegator:
    """
    Fluent builder that installs delegates for one (holder, target) pair.

    Every declaration method returns the builder so calls can be chained.
    The declared names are recorded in ``methods``, ``getters``,
    ``setters`` and ``fluents``.
    """

    def __init__(self, holder: type, target: str):
        if not isinstance(holder, type):
            raise TypeError("delegate() expects a class as the holder")
        self.holder = holder
        self.target = target
        self.methods: List[str] = []
        self.getters: List[str] = []
        self.setters: List[str] = []
        self.fluents: List[str] = []

    def method(self, name: str) -> "Delegator":
        """``holder.name(*args)`` calls ``holder.<target>.name(*args)``."""
        target = self.target

        def delegated(holder, *args, **kwargs):
            return getattr(getattr(holder, target), name)(*args, **kwargs)

        delegated.__name__ = name
        delegated.__qualname__ = f"{self.holder.__name__}.{name}"
        delegated.__doc__ = f"Delegates to ``self.{target}.{name}()``."

        setattr(self.holder, name, delegated)
        self.methods.append(name)
        return self

    def access(self, name: str) -> "Delegator":
        """Read and write forwarding."""
        return self.getter(name).setter(name)

    def getter(self, name: str) -> "Delegator":
        """Read forwarding; assignment raises AttributeError."""
        existing = self._own_descriptor(name)
        if existing is not None:
            existing.readable = True
        else:
            setattr(self.holder, name, DelegatedAttribute(self.target, name, readable=True))
        self.getters.append(name)
        return self

    def setter(self, name: str) -> "Delegator":
        """Write forwarding. Together with getter() this is access()."""
        existing = self._own_descriptor(name)
        if existing is not None:
            existing.writable = True
        else:
            setattr(
                self.holder,
                name,
                DelegatedAttribute(self.target, name, readable=False, writable=True),
            )
        self.setters.append(name)
        return self

    def fluent(self, name: str) -> "Delegator":
        """
        ``holder.name()`` reads, ``holder.name(value)`` writes and returns
        the holder so calls can be chained.
        """
        target = self.target
        missing = object()

        def delegated(holder, value=missing):
            if value is missing:
                return getattr(getattr(holder, target), name)
            setattr(getattr(holder, target), name, value)
            return holder

        delegated.__name__ = name
        delegated.__qualname__ = f"{self.holder.__name__}.{name}"

        setattr(self.holder, name, delegated)
        self.fluents.append(name)
        return self

    def _own_descriptor(self, name: str):
        # Only merge with a descriptor this same target installed
        existing = self.holder.__dict__.get(name)
        if isinstance(existing, DelegatedAttribute) and existing.target == self.target:
            return existing
        return None


def delegate(holder: type, target: str) -> Delegator:
    """Start delegation declarations from ``holder`` to ``holder.<target>``."""
    return Delegator(holder, target)
