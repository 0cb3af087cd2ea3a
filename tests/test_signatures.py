"""Tests for declaration signatures."""

from shadowtypes.analyzers.signatures import (
    member_set_signature,
    structural_member_count,
    structural_signature,
    value_set_signature,
)
from shadowtypes.core.types import DeclarationKind


class TestStructuralSignature:
    """Structural signature over data members."""

    def test_member_order_does_not_matter(self, declaration):
        a = declaration("a.Point", properties=[("x", "int"), ("y", "int")])
        b = declaration("b.Coordinate", properties=[("y", "int"), ("x", "int")])

        assert structural_signature(a) == structural_signature(b)
        assert structural_signature(a) == "x:int;y:int"

    def test_type_difference_changes_signature(self, declaration):
        a = declaration("a.Point", properties=[("x", "int")])
        b = declaration("b.Point", properties=[("x", "float")])

        assert structural_signature(a) != structural_signature(b)

    def test_methods_are_not_part_of_the_shape(self, declaration):
        a = declaration("a.Point", properties=[("x", "int")], methods=[("norm", "float")])
        b = declaration("b.Point", properties=[("x", "int")])

        assert structural_signature(a) == structural_signature(b)
        assert structural_member_count(a) == 1

    def test_ordinal_sort(self, declaration):
        """Upper-case names sort before lower-case ones."""
        decl = declaration("a.Mixed", properties=[("beta", "int"), ("Alpha", "int")])

        assert structural_signature(decl) == "Alpha:int;beta:int"


class TestMemberSetSignature:
    """Method and event descriptors."""

    def test_descriptors_are_case_folded(self, declaration):
        decl = declaration(
            "a.IStore",
            kind=DeclarationKind.INTERFACE,
            methods=[("Save", "void"), ("Load", "Task<string>")],
            events=["Changed"],
        )

        assert member_set_signature(decl) == frozenset({"void_save", "task<string>_load", "event_changed"})

    def test_properties_are_ignored(self, declaration):
        decl = declaration(
            "a.IStore",
            kind=DeclarationKind.INTERFACE,
            properties=[("name", "string")],
            methods=[("save", "void")],
        )

        assert member_set_signature(decl) == frozenset({"void_save"})


class TestValueSetSignature:
    """Enum value names."""

    def test_values_are_case_folded(self, declaration):
        decl = declaration("a.Color", kind=DeclarationKind.ENUM, values=["RED", "Green"])

        assert value_set_signature(decl) == frozenset({"red", "green"})
