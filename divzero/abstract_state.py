# divzero/abstract_state.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, Tuple

from divzero.abstract_domain import Sign


@dataclass
class SignStore:
    """
    Abstract store at one program point:

      * values:    mapping from local variable name -> Sign
      * reachable: False once the path is known to be dead

    Names the store knows nothing about are ⊤. Every name in an unreachable
    store is ⊥.
    """

    values: Dict[str, Sign] = field(default_factory=dict)
    reachable: bool = True

    @classmethod
    def unreachable(cls) -> "SignStore":
        return cls({}, reachable=False)

    def current_state(self, name: str) -> Sign:
        if not self.reachable:
            return Sign.BOTTOM
        return self.values.get(name, Sign.TOP)

    def set_state(self, name: str, state: Sign) -> None:
        if not self.reachable:
            return
        if state is Sign.TOP:
            self.values.pop(name, None)
        else:
            self.values[name] = state

    def forget(self, name: str) -> None:
        self.values.pop(name, None)

    def kill(self) -> None:
        """Mark the current path as dead."""
        self.values.clear()
        self.reachable = False

    def assign(self, other: "SignStore") -> None:
        """Overwrite this store in place with the contents of other."""
        self.values = dict(other.values)
        self.reachable = other.reachable

    # Lattice order: pointwise ≤ over bindings.
    def __le__(self, other: "SignStore") -> bool:
        if not self.reachable:
            return True
        if not other.reachable:
            return False
        for name, v in other.values.items():
            if not (self.current_state(name) <= v):
                return False
        return True

    # Pointwise join ----------------------------------------------------------

    def join(self, other: "SignStore") -> "SignStore":
        if not self.reachable:
            return other.copy()
        if not other.reachable:
            return self.copy()
        new_values: Dict[str, Sign] = {}
        for name in self.values.keys() & other.values.keys():
            v = self.values[name] | other.values[name]
            if v is not Sign.TOP:
                new_values[name] = v
        return SignStore(new_values)

    def __or__(self, other: "SignStore") -> "SignStore":
        return self.join(other)

    # Utilities ---------------------------------------------------------------

    def copy(self) -> "SignStore":
        # shallow copy is enough; Sign values are immutable
        return SignStore(dict(self.values), self.reachable)

    def items(self) -> Iterator[Tuple[str, Sign]]:
        return iter(sorted(self.values.items()))

    def __repr__(self) -> str:  # cosmetic only
        if not self.reachable:
            return "⊥"
        if not self.values:
            return "{}"
        return "{" + ", ".join(f"{k}: {v!r}" for k, v in self.items()) + "}"
