"""
Signature Builder.

Three order-independent views of a declaration:

- structural signature: canonical ``name:type`` string over data members,
  used for exact-shape equality between classes and structs
- member-set signature: ``ReturnType_Name`` method descriptors and
  ``Event_Name`` event descriptors, used for interface overlap
- value-set signature: case-folded enum member names

Every function is pure and memoised per declaration.
"""

from functools import lru_cache
from typing import FrozenSet

from ..core.types import DeclarationKind, MemberKind, TypeDeclaration

STRUCTURAL_KINDS = frozenset({DeclarationKind.CLASS, DeclarationKind.STRUCT})


@lru_cache(maxsize=None)
def structural_signature(declaration: TypeDeclaration) -> str:
    """Canonical shape string; members sorted by name using ordinal comparison."""
    pairs = sorted(
        (m.name, m.type_descriptor) for m in declaration.members_of(MemberKind.PROPERTY)
    )
    return ";".join(f"{name}:{descriptor}" for name, descriptor in pairs)


def structural_member_count(declaration: TypeDeclaration) -> int:
    return len(declaration.members_of(MemberKind.PROPERTY))


@lru_cache(maxsize=None)
def member_set_signature(declaration: TypeDeclaration) -> FrozenSet[str]:
    """Method and event descriptors, compared case-insensitively.

    Properties are left out so accessor methods are not counted twice.
    """
    descriptors = set()
    for member in declaration.members:
        if member.kind is MemberKind.METHOD:
            descriptors.add(f"{member.type_descriptor}_{member.name}".lower())
        elif member.kind is MemberKind.EVENT:
            descriptors.add(f"Event_{member.name}".lower())
    return frozenset(descriptors)


@lru_cache(maxsize=None)
def value_set_signature(declaration: TypeDeclaration) -> FrozenSet[str]:
    """Enum member names, case-folded."""
    return frozenset(m.name.lower() for m in declaration.members_of(MemberKind.PROPERTY))



def clear_signature_cache() -> None:
    """Drop memoised signatures (between runs in a long-lived process)."""
    structural_signature.cache_clear()
    member_set_signature.cache_clear()
    value_set_signature.cache_clear()
