"""Operation identifiers."""

from dataclasses import dataclass

from .exceptions import InvalidArgumentError
from .hashing import hash_value


@dataclass(frozen=True)
class OpKind:
    """
    Stable identifier of an operation: a namespace plus an op name.

    Equality is structural and ``hash_value()`` is a pure function of the two
    fields, so two OpKinds built independently for ``aten::add`` always agree.
    """
    namespace: str
    op_name: str

    def __post_init__(self):
        if not self.namespace or not self.op_name:
            raise InvalidArgumentError(
                "OpKind requires a namespace and an op name",
                context={'namespace': self.namespace, 'op_name': self.op_name},
            )
        if '::' in self.namespace or '::' in self.op_name:
            raise InvalidArgumentError(
                "OpKind fields must not contain '::'",
                context={'namespace': self.namespace, 'op_name': self.op_name},
            )

    @classmethod
    def from_qualified(cls, qualified_name: str) -> 'OpKind':
        """Parse ``"aten::add"`` into ``OpKind("aten", "add")``."""
        namespace, sep, op_name = qualified_name.partition('::')
        if not sep:
            raise InvalidArgumentError(
                "Qualified op name must look like 'namespace::name'",
                context={'qualified_name': qualified_name},
            )
        return cls(namespace, op_name)

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}::{self.op_name}"

    def hash_value(self) -> int:
        """Deterministic 64-bit hash of this op kind."""
        return hash_value(('OpKind', self.namespace, self.op_name))

    def __str__(self):
        return self.qualified_name
