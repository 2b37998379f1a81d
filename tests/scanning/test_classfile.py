"""Tests for the class file reader."""

import struct

import pytest

from socomo.scanning.classfile import (
    MAX_ARRAY_DIMENSIONS,
    MAX_NESTING,
    ClassFormatError,
    class_constant_types,
    descriptor_types,
    is_valid_class_name,
    parse_class,
    signature_types,
)
from socomo.scanning.models import ReferenceKind


def targets(parsed, kind):
    return sorted(r.target for r in parsed.references if r.kind == kind)


class TestDescriptorTypes:
    """Test plain field/method descriptor parsing."""

    def test_field_descriptor(self):
        assert descriptor_types("Lapp/data/Repo;") == ["app.data.Repo"]

    def test_primitives_are_ignored(self):
        assert descriptor_types("(IJZ[D)V") == []

    def test_method_descriptor_with_arrays(self):
        assert descriptor_types("(I[Lapp/Query;)[[Lapp/Item;") == ["app.Query", "app.Item"]

    def test_unterminated_class_type(self):
        with pytest.raises(ClassFormatError):
            descriptor_types("Lapp/Repo")

    def test_unexpected_character(self):
        with pytest.raises(ClassFormatError):
            descriptor_types("(Q)V")


class TestSignatureTypes:
    """Test generic signature parsing."""

    def test_type_arguments_are_collected(self):
        assert signature_types("Ljava/util/List<Lapp/Item;>;") == ["app.Item", "java.util.List"]

    def test_type_variables_are_not_classes(self):
        # A type parameter named L must not be mistaken for a class type
        sig = "<L:Ljava/lang/Object;>(TL;Lapp/X;)TL;"
        assert signature_types(sig) == ["java.lang.Object", "app.X"]

    def test_empty_class_bound(self):
        sig = "<T::Ljava/lang/Comparable<TT;>;>Ljava/lang/Object;"
        assert signature_types(sig) == ["java.lang.Comparable", "java.lang.Object"]

    def test_nested_type_resolves_to_binary_name(self):
        sig = "Lapp/Outer<Lapp/A;>.Inner<Lapp/B;>;"
        assert signature_types(sig) == ["app.A", "app.B", "app.Outer$Inner"]

    def test_wildcards(self):
        sig = "Ljava/util/Map<*+Lapp/A;>;"
        assert signature_types(sig) == ["app.A", "java.util.Map"]

    def test_method_signature_with_throws(self):
        sig = "<E:Ljava/lang/Exception;>(Lapp/In;)Lapp/Out;^TE;"
        assert signature_types(sig) == ["java.lang.Exception", "app.In", "app.Out"]

    def test_truncated_signature(self):
        with pytest.raises(ClassFormatError):
            signature_types("Lapp/X<Lapp/Y;")

    def test_array_dimensions_up_to_limit(self):
        assert signature_types("[" * MAX_ARRAY_DIMENSIONS + "Lapp/X;") == ["app.X"]

    def test_too_many_array_dimensions(self):
        with pytest.raises(ClassFormatError, match="array dimensions"):
            signature_types("[" * 5000 + "Lapp/X;")

    def test_nested_type_arguments(self):
        sig = "Lapp/Box<" * 10 + "Lapp/Item;" + ">;" * 10
        assert signature_types(sig) == ["app.Item"] + ["app.Box"] * 10

    def test_type_arguments_nested_too_deep(self):
        depth = MAX_NESTING + 1
        sig = "Lapp/Box<" * depth + "Lapp/Item;" + ">;" * depth
        with pytest.raises(ClassFormatError, match="nested deeper"):
            signature_types(sig)


class TestClassConstantTypes:
    def test_plain_name(self):
        assert class_constant_types("app/web/Controller") == ["app.web.Controller"]

    def test_array_is_unwrapped(self):
        assert class_constant_types("[[Lapp/Item;") == ["app.Item"]

    def test_primitive_array(self):
        assert class_constant_types("[I") == []


class TestParseClass:
    """Test reference extraction from synthesized class files."""

    def test_name_and_supertypes(self, make_class):
        writer = make_class("app.web.Controller", "app.core.Base", ["app.core.Handler"])
        parsed = parse_class(writer.to_bytes())

        assert parsed.name == "app.web.Controller"
        assert parsed.super_name == "app.core.Base"
        assert parsed.interfaces == ["app.core.Handler"]
        assert targets(parsed, ReferenceKind.SUPERTYPE) == ["app.core.Base", "app.core.Handler"]
        # this/super/interfaces are not repeated as plain class constants
        assert targets(parsed, ReferenceKind.CLASS_CONSTANT) == []

    def test_class_signature_replaces_plain_supertypes(self, make_class):
        writer = make_class("app.data.Repo", "app.core.Base")
        writer.signature = "Lapp/core/Base<Lapp/data/Item;>;"
        parsed = parse_class(writer.to_bytes())
        assert targets(parsed, ReferenceKind.SUPERTYPE) == ["app.core.Base", "app.data.Item"]

    def test_field_types_prefer_generic_signature(self, make_class):
        writer = make_class("app.data.Repo")
        writer.add_field("items", "Ljava/util/List;", signature="Ljava/util/List<Lapp/data/Item;>;")
        writer.add_field("key", "Lapp/data/Key;")
        parsed = parse_class(writer.to_bytes())
        assert targets(parsed, ReferenceKind.FIELD_TYPE) == [
            "app.data.Item",
            "app.data.Key",
            "java.util.List",
        ]

    def test_method_signature_and_throws(self, make_class):
        writer = make_class("app.data.Repo")
        writer.add_method(
            "find",
            "(Lapp/data/Query;[I)[Lapp/data/Item;",
            exceptions=["app.data.NotFound"],
        )
        parsed = parse_class(writer.to_bytes())
        assert targets(parsed, ReferenceKind.METHOD_SIGNATURE) == ["app.data.Item", "app.data.Query"]
        assert targets(parsed, ReferenceKind.THROWS) == ["app.data.NotFound"]
        assert "app.data.NotFound" not in targets(parsed, ReferenceKind.CLASS_CONSTANT)

    def test_annotations(self, make_class):
        writer = make_class("app.web.Controller")
        writer.annotate("Lapp/meta/Service;", enum=("Lapp/meta/Scope;", "SINGLETON"))
        writer.add_field("repo", "I", annotations=["Lapp/meta/Inject;"])
        writer.add_method("handle", "(I)V", parameter_annotations=[["Lapp/meta/Valid;"]])
        parsed = parse_class(writer.to_bytes())
        assert targets(parsed, ReferenceKind.ANNOTATION) == [
            "app.meta.Inject",
            "app.meta.Scope",
            "app.meta.Service",
            "app.meta.Valid",
        ]

    def test_constant_pool_references(self, make_class):
        writer = make_class("app.web.Controller")
        writer.long_constant(42)  # two-slot entry shifts every later index
        writer.methodref("app.data.Repo", "find", "(Lapp/data/Query;)Lapp/data/Item;")
        writer.fieldref("app.data.Config", "DEFAULT", "Lapp/data/Mode;")
        writer.klass("[Lapp/data/Item;")
        writer.method_type("(Lapp/data/Key;)V")
        writer.string("app.data.NotAReference")
        parsed = parse_class(writer.to_bytes())

        assert targets(parsed, ReferenceKind.CLASS_CONSTANT) == [
            "app.data.Config",
            "app.data.Item",
            "app.data.Repo",
        ]
        assert targets(parsed, ReferenceKind.MEMBER_REFERENCE) == [
            "app.data.Item",
            "app.data.Key",
            "app.data.Mode",
            "app.data.Query",
        ]

    def test_code_length_is_summed(self, make_class):
        writer = make_class("app.Main")
        writer.add_method("a", "()V", code_length=12)
        writer.add_method("b", "()V", code_length=8)
        writer.add_method("c", "()V")  # abstract, no Code attribute
        parsed = parse_class(writer.to_bytes())
        assert parsed.code_length == 20

    def test_size_is_byte_length(self, make_class):
        data = make_class("app.Main").to_bytes()
        assert parse_class(data).size == len(data)

    def test_object_has_no_superclass(self, make_class):
        parsed = parse_class(make_class("java.lang.Object", super_name=None).to_bytes())
        assert parsed.super_name is None
        assert targets(parsed, ReferenceKind.SUPERTYPE) == []

    def test_module_descriptor_flag(self, make_class):
        parsed = parse_class(make_class("module-info", super_name=None, access=0x8000).to_bytes())
        assert parsed.is_module

    def test_interface_flag(self, make_class):
        parsed = parse_class(make_class("app.Api", access=0x0601).to_bytes())
        assert parsed.is_interface


class TestMalformedInput:
    """Malformed bytes raise ClassFormatError, nothing else."""

    def test_bad_magic(self):
        with pytest.raises(ClassFormatError, match="bad magic"):
            parse_class(b"PK\x03\x04 not a class file at all")

    def test_empty(self):
        with pytest.raises(ClassFormatError):
            parse_class(b"")

    def test_truncated(self, make_class):
        data = make_class("app.web.Controller").add_field("x", "Lapp/X;").to_bytes()
        with pytest.raises(ClassFormatError, match="truncated"):
            parse_class(data[:-7])

    def test_unknown_constant_tag(self):
        data = bytes.fromhex("cafebabe00000034") + b"\x00\x02" + b"\x63"
        with pytest.raises(ClassFormatError, match="unknown constant pool tag"):
            parse_class(data + b"\x00" * 16)

    def test_pool_index_out_of_range(self, make_class):
        writer = make_class("app.Main", super_name=None)
        data = bytearray(writer.to_bytes())
        # this_class index follows the pool and the access flags
        pool_end = 10 + sum(len(p) for p in writer._pool)
        data[pool_end + 2 : pool_end + 4] = b"\xff\xff"
        with pytest.raises(ClassFormatError, match="out of range"):
            parse_class(bytes(data))

    @pytest.mark.parametrize("name", ["", "app..Main", ".app.Main", "app.Main."])
    def test_invalid_class_name(self, make_class, name):
        data = make_class(name).to_bytes()
        with pytest.raises(ClassFormatError, match="invalid class name"):
            parse_class(data)

    def test_nested_array_field_signature(self, make_class):
        data = make_class("app.web.Bad").add_field("f", "I", signature="[" * 5000 + "Lapp/X;").to_bytes()
        with pytest.raises(ClassFormatError):
            parse_class(data)

    def test_annotation_values_nested_too_deep(self, make_class):
        writer = make_class("app.Main")
        value = b"s" + struct.pack(">H", writer.utf8("x"))
        for _ in range(MAX_NESTING + 5):
            value = b"[" + struct.pack(">H", 1) + value
        body = struct.pack(">HHHH", 1, writer.utf8("Lapp/Ann;"), 1, writer.utf8("value")) + value
        writer.add_class_attribute("RuntimeVisibleAnnotations", body)
        with pytest.raises(ClassFormatError, match="nested deeper"):
            parse_class(writer.to_bytes())


class TestClassNames:
    def test_valid(self):
        assert is_valid_class_name("app.web.Controller")
        assert is_valid_class_name("Main")
        assert is_valid_class_name("app.Outer$Inner")

    def test_invalid(self):
        assert not is_valid_class_name("")
        assert not is_valid_class_name("app..Main")
        assert not is_valid_class_name("[Lapp.Main;")
