"""
ABC (ActionScript Byte Code) constant pool and instance reader.

Only the structural part of a DoABC blob is decoded: the constant pool, enough
of the method and metadata tables to skip over them, and the instance records
that declare each class and its supertype. Method bodies are never read.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Tuple, Union

from texture_export.errors import AbcFormatError, ConstantPoolIndexError
from texture_export.stream import ByteReader


class NamespaceKind(IntEnum):
    NAMESPACE = 0x08
    PACKAGE_NAMESPACE = 0x16
    PACKAGE_INTERNAL_NS = 0x17
    PROTECTED_NAMESPACE = 0x18
    EXPLICIT_NAMESPACE = 0x19
    STATIC_PROTECTED_NS = 0x1A
    PRIVATE_NS = 0x05


class MultinameKind(IntEnum):
    QNAME = 0x07
    QNAME_A = 0x0D
    RTQNAME = 0x0F
    RTQNAME_A = 0x10
    RTQNAME_L = 0x11
    RTQNAME_LA = 0x12
    MULTINAME = 0x09
    MULTINAME_A = 0x0E
    MULTINAME_L = 0x1B
    MULTINAME_LA = 0x1C
    TYPE_NAME = 0x1D


class TraitKind(IntEnum):
    SLOT = 0
    METHOD = 1
    GETTER = 2
    SETTER = 3
    CLASS = 4
    FUNCTION = 5
    CONST = 6


METHOD_HAS_OPTIONAL = 0x08
METHOD_HAS_PARAM_NAMES = 0x80
INSTANCE_PROTECTED_NS = 0x08
TRAIT_ATTR_METADATA = 0x04


@dataclass(frozen=True)
class Namespace:
    kind: NamespaceKind
    name: int


@dataclass(frozen=True)
class QName:
    namespace: int
    name: int
    kind: MultinameKind = MultinameKind.QNAME


@dataclass(frozen=True)
class RTQName:
    name: int
    kind: MultinameKind = MultinameKind.RTQNAME


@dataclass(frozen=True)
class RTQNameL:
    kind: MultinameKind = MultinameKind.RTQNAME_L


@dataclass(frozen=True)
class Multiname:
    name: int
    namespace_set: int
    kind: MultinameKind = MultinameKind.MULTINAME


@dataclass(frozen=True)
class MultinameL:
    namespace_set: int
    kind: MultinameKind = MultinameKind.MULTINAME_L


@dataclass(frozen=True)
class TypeName:
    base: int
    parameters: Tuple[int, ...]
    kind: MultinameKind = MultinameKind.TYPE_NAME


MultinameEntry = Union[QName, RTQName, RTQNameL, Multiname, MultinameL, TypeName]


@dataclass(frozen=True)
class ConstantPool:
    """
    Shared constant tables of one ABC blob.

    Every table is 1-indexed: entry ``i`` lives at position ``i - 1`` and
    index 0 is reserved. Use the accessors, which are bounds-checked.
    """
    ints: Tuple[int, ...] = ()
    uints: Tuple[int, ...] = ()
    doubles: Tuple[float, ...] = ()
    strings: Tuple[str, ...] = ()
    namespaces: Tuple[Namespace, ...] = ()
    namespace_sets: Tuple[Tuple[int, ...], ...] = ()
    multinames: Tuple[MultinameEntry, ...] = ()

    @staticmethod
    def _lookup(table: str, entries: tuple, index: int):
        if index < 1 or index > len(entries):
            raise ConstantPoolIndexError(table, index, len(entries))
        return entries[index - 1]

    def string(self, index: int) -> str:
        return self._lookup("string", self.strings, index)

    def namespace(self, index: int) -> Namespace:
        return self._lookup("namespace", self.namespaces, index)

    def multiname(self, index: int) -> MultinameEntry:
        return self._lookup("multiname", self.multinames, index)


@dataclass(frozen=True)
class ClassInstance:
    name: int
    super_name: int
    flags: int = 0


@dataclass(frozen=True)
class AbcFile:
    minor_version: int
    major_version: int
    constant_pool: ConstantPool
    instances: Tuple[ClassInstance, ...]


def _count(reader: ByteReader) -> int:
    """Pool tables store ``count`` but hold ``count - 1`` entries."""
    count = reader.read_u30()
    return count - 1 if count > 0 else 0


def _read_namespace(reader: ByteReader) -> Namespace:
    kind = reader.read_u8()
    try:
        namespace_kind = NamespaceKind(kind)
    except ValueError:
        raise AbcFormatError(f"Unknown namespace kind 0x{kind:02x}") from None
    return Namespace(namespace_kind, reader.read_u30())


def _read_multiname(reader: ByteReader) -> MultinameEntry:
    kind = reader.read_u8()
    try:
        multiname_kind = MultinameKind(kind)
    except ValueError:
        raise AbcFormatError(f"Unknown multiname kind 0x{kind:02x}") from None

    if multiname_kind in (MultinameKind.QNAME, MultinameKind.QNAME_A):
        namespace = reader.read_u30()
        return QName(namespace, reader.read_u30(), multiname_kind)
    if multiname_kind in (MultinameKind.RTQNAME, MultinameKind.RTQNAME_A):
        return RTQName(reader.read_u30(), multiname_kind)
    if multiname_kind in (MultinameKind.RTQNAME_L, MultinameKind.RTQNAME_LA):
        return RTQNameL(multiname_kind)
    if multiname_kind in (MultinameKind.MULTINAME, MultinameKind.MULTINAME_A):
        name = reader.read_u30()
        return Multiname(name, reader.read_u30(), multiname_kind)
    if multiname_kind in (MultinameKind.MULTINAME_L, MultinameKind.MULTINAME_LA):
        return MultinameL(reader.read_u30(), multiname_kind)
    base = reader.read_u30()
    parameters = tuple(reader.read_u30() for _ in range(reader.read_u30()))
    return TypeName(base, parameters)


def read_constant_pool(reader: ByteReader) -> ConstantPool:
    ints = tuple(reader.read_s32() for _ in range(_count(reader)))
    uints = tuple(reader.read_u30() for _ in range(_count(reader)))
    doubles = tuple(reader.read_f64() for _ in range(_count(reader)))

    strings = []
    for _ in range(_count(reader)):
        size = reader.read_u30()
        strings.append(reader.read_bytes(size).decode("utf-8", errors="replace"))

    namespaces = tuple(_read_namespace(reader) for _ in range(_count(reader)))

    namespace_sets = []
    for _ in range(_count(reader)):
        namespace_sets.append(tuple(reader.read_u30() for _ in range(reader.read_u30())))

    multinames = tuple(_read_multiname(reader) for _ in range(_count(reader)))

    return ConstantPool(
        ints=ints,
        uints=uints,
        doubles=doubles,
        strings=tuple(strings),
        namespaces=namespaces,
        namespace_sets=tuple(namespace_sets),
        multinames=multinames,
    )


def _skip_methods(reader: ByteReader) -> None:
    for _ in range(reader.read_u30()):
        param_count = reader.read_u30()
        reader.read_u30()  # return type
        for _ in range(param_count):
            reader.read_u30()
        reader.read_u30()  # name
        flags = reader.read_u8()
        if flags & METHOD_HAS_OPTIONAL:
            for _ in range(reader.read_u30()):
                reader.read_u30()
                reader.read_u8()
        if flags & METHOD_HAS_PARAM_NAMES:
            for _ in range(param_count):
                reader.read_u30()


def _skip_metadata(reader: ByteReader) -> None:
    for _ in range(reader.read_u30()):
        reader.read_u30()  # name
        item_count = reader.read_u30()
        for _ in range(item_count * 2):
            reader.read_u30()


def _skip_traits(reader: ByteReader) -> None:
    for _ in range(reader.read_u30()):
        reader.read_u30()  # name
        kind_byte = reader.read_u8()
        kind = kind_byte & 0x0F
        attributes = kind_byte >> 4

        if kind in (TraitKind.SLOT, TraitKind.CONST):
            reader.read_u30()  # slot id
            reader.read_u30()  # type name
            if reader.read_u30():  # value index
                reader.read_u8()
        elif kind in (TraitKind.METHOD, TraitKind.GETTER, TraitKind.SETTER,
                      TraitKind.CLASS, TraitKind.FUNCTION):
            reader.read_u30()
            reader.read_u30()
        else:
            raise AbcFormatError(f"Unknown trait kind {kind} at offset {reader.pos}")

        if attributes & TRAIT_ATTR_METADATA:
            for _ in range(reader.read_u30()):
                reader.read_u30()


def _read_instance(reader: ByteReader) -> ClassInstance:
    name = reader.read_u30()
    super_name = reader.read_u30()
    flags = reader.read_u8()
    if flags & INSTANCE_PROTECTED_NS:
        reader.read_u30()
    for _ in range(reader.read_u30()):
        reader.read_u30()  # interface
    reader.read_u30()  # iinit
    _skip_traits(reader)
    return ClassInstance(name, super_name, flags)


def parse_abc(blob: bytes) -> AbcFile:
    """
    Parse the constant pool and class instances of one DoABC blob.

    Raises:
        AbcFormatError: If the blob is truncated or uses unknown record kinds
    """
    reader = ByteReader(blob, error=AbcFormatError)
    minor_version = reader.read_u16()
    major_version = reader.read_u16()
    constant_pool = read_constant_pool(reader)
    _skip_methods(reader)
    _skip_metadata(reader)
    instances = tuple(_read_instance(reader) for _ in range(reader.read_u30()))
    return AbcFile(minor_version, major_version, constant_pool, instances)


def collect_instances(blobs: List[bytes]) -> List[Tuple[ConstantPool, ClassInstance]]:
    """Parse every blob and pair each instance with the pool its indices refer to."""
    pairs = []
    for blob in blobs:
        abc = parse_abc(blob)
        pairs.extend((abc.constant_pool, instance) for instance in abc.instances)
    return pairs
