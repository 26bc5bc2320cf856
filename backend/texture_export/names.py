"""
Resolution of namespace and multiname references into class names.
"""

from dataclasses import dataclass

from texture_export.bytecode import ConstantPool, QName
from texture_export.errors import UnsupportedNameKindError


@dataclass(frozen=True)
class ResolvedClassName:
    namespace: str
    name: str

    @property
    def qualified_name(self) -> str:
        return f"{self.namespace}.{self.name}"

    def __str__(self) -> str:
        return self.qualified_name


def resolve_namespace(ref: int, pool: ConstantPool) -> str:
    # The kind does not matter for lookups, only the wrapped string does.
    return pool.string(pool.namespace(ref).name)


def resolve_multiname(ref: int, pool: ConstantPool) -> ResolvedClassName:
    """
    Resolve a multiname reference to a (namespace, name) pair.

    Raises:
        ConstantPoolIndexError: If any index along the way is out of range
        UnsupportedNameKindError: If the multiname is not a QName
    """
    multiname = pool.multiname(ref)
    if not isinstance(multiname, QName):
        raise UnsupportedNameKindError(multiname.kind, ref)
    return ResolvedClassName(
        namespace=resolve_namespace(multiname.namespace, pool),
        name=pool.string(multiname.name),
    )
