"""
Selects texture classes from the decoded bytecode and links them to symbol ids.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from texture_export import config
from texture_export.bytecode import ClassInstance, ConstantPool, collect_instances
from texture_export.names import ResolvedClassName, resolve_multiname
from texture_export.swf import SwfDocument, SymbolLink

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TextureConvention:
    """Package and base class that mark a class as an exported texture."""
    texture_namespace: str = config.TEXTURE_NAMESPACE
    base_namespace: str = config.TEXTURE_BASE_NAMESPACE
    base_name: str = config.TEXTURE_BASE_CLASS

    @property
    def base_class(self) -> ResolvedClassName:
        return ResolvedClassName(self.base_namespace, self.base_name)

    def matches(self, class_name: ResolvedClassName, super_class_name: Optional[ResolvedClassName]) -> bool:
        return (
            class_name.namespace == self.texture_namespace
            and super_class_name == self.base_class
        )


@dataclass(frozen=True)
class ExportedTexture:
    class_name: ResolvedClassName
    super_class_name: ResolvedClassName
    symbol_id: Optional[int] = None

    @property
    def is_resolved(self) -> bool:
        return self.symbol_id is not None

    def to_dict(self) -> Dict:
        return {
            "class_name": self.class_name.qualified_name,
            "super_class_name": self.super_class_name.qualified_name,
            "symbol_id": self.symbol_id,
        }


def resolve_instance(
    instance: ClassInstance, pool: ConstantPool
) -> Tuple[ResolvedClassName, Optional[ResolvedClassName]]:
    """Resolve a class and its supertype. A zero super name means no supertype."""
    class_name = resolve_multiname(instance.name, pool)
    super_class_name = None
    if instance.super_name:
        super_class_name = resolve_multiname(instance.super_name, pool)
    return class_name, super_class_name


def select_link_table(tables: Sequence[Sequence[SymbolLink]]) -> List[SymbolLink]:
    """Only the last SymbolClass table is used; earlier ones are discarded."""
    if not tables:
        return []
    if len(tables) > 1:
        logger.warning(
            f"Found {len(tables)} SymbolClass tags; using only the last one "
            f"({len(tables[-1])} links), {sum(len(t) for t in tables[:-1])} earlier links discarded"
        )
    return list(tables[-1])


def match_textures(
    instances: Iterable[Tuple[ConstantPool, ClassInstance]],
    links: Iterable[SymbolLink],
    convention: Optional[TextureConvention] = None,
) -> List[ExportedTexture]:
    """
    Select texture classes and join them against the symbol link table.

    Args:
        instances: (pool, instance) pairs from every DoABC blob
        links: The symbol link table to join against
        convention: Package and base class identifying textures

    Returns:
        Textures in declaration order; unlinked ones keep ``symbol_id=None``
    """
    convention = convention or TextureConvention()

    candidates: List[ExportedTexture] = []
    for pool, instance in instances:
        class_name, super_class_name = resolve_instance(instance, pool)
        if convention.matches(class_name, super_class_name):
            candidates.append(ExportedTexture(class_name, super_class_name))

    for link in links:
        for index, candidate in enumerate(candidates):
            if candidate.class_name.qualified_name == link.class_name:
                candidates[index] = replace(candidate, symbol_id=link.symbol_id)

    unresolved = [c for c in candidates if not c.is_resolved]
    if unresolved:
        logger.warning(
            f"{len(unresolved)} texture class(es) have no symbol link: "
            + ", ".join(str(c.class_name) for c in unresolved)
        )
    return candidates


def find_textures(document: SwfDocument, convention: Optional[TextureConvention] = None) -> List[ExportedTexture]:
    """Run the bytecode reader and the matcher over a decoded document."""
    instances = collect_instances([tag.data for tag in document.abc_tags])
    links = select_link_table([tag.links for tag in document.symbol_class_tags])
    return match_textures(instances, links, convention)
