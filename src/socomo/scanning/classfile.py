"""Reader for the JVM class file format.

Extracts the references a compiled class makes to other classes. Only the
parts of the format that can name another class are interpreted:

    - this/super class and interfaces
    - field and method descriptors, and their generic ``Signature``
    - ``Exceptions`` attributes (declared thrown types)
    - runtime annotations on the class, fields, methods and parameters
    - ``CONSTANT_Class`` entries (instantiation, casts, member owners, ...)
    - descriptors of referenced fields/methods and ``MethodType`` constants

Every other attribute is skipped by its declared length. Array types are
unwrapped to their element type and primitives are dropped.

Reference: The Java Virtual Machine Specification, chapter 4.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import Optional

from .models import Reference, ReferenceKind

MAGIC = 0xCAFEBABE
ACC_INTERFACE = 0x0200
ACC_ANNOTATION = 0x2000
ACC_MODULE = 0x8000

# Constant pool tags
UTF8 = 1
INTEGER = 3
FLOAT = 4
LONG = 5
DOUBLE = 6
CLASS = 7
STRING = 8
FIELDREF = 9
METHODREF = 10
INTERFACE_METHODREF = 11
NAME_AND_TYPE = 12
METHOD_HANDLE = 15
METHOD_TYPE = 16
DYNAMIC = 17
INVOKE_DYNAMIC = 18
MODULE = 19
PACKAGE = 20

_MEMBER_REFS = (FIELDREF, METHODREF, INTERFACE_METHODREF)
_PRIMITIVES = frozenset("BCDFIJSZ")

# The JVM rejects more array dimensions than this
MAX_ARRAY_DIMENSIONS = 255
# Type-argument and annotation nesting beyond this is treated as corrupt
MAX_NESTING = 64

_ANNOTATION_ATTRIBUTES = ("RuntimeVisibleAnnotations", "RuntimeInvisibleAnnotations")
_PARAMETER_ANNOTATION_ATTRIBUTES = (
    "RuntimeVisibleParameterAnnotations",
    "RuntimeInvisibleParameterAnnotations",
)


class ClassFormatError(ValueError):
    """The bytes are not a well-formed class file."""


@dataclass
class ClassFile:
    """The parts of a parsed class file that matter for dependency analysis."""

    name: str
    access_flags: int
    super_name: Optional[str]
    interfaces: list[str] = field(default_factory=list)
    references: list[Reference] = field(default_factory=list)
    code_length: int = 0
    size: int = 0

    @property
    def is_module(self) -> bool:
        return bool(self.access_flags & ACC_MODULE)

    @property
    def is_interface(self) -> bool:
        return bool(self.access_flags & ACC_INTERFACE)


class _Reader:
    """Big-endian cursor over a byte buffer with bounds checking."""

    __slots__ = ("_data", "_pos")

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._pos = 0

    def _take(self, n: int) -> bytes:
        end = self._pos + n
        if end > len(self._data):
            raise ClassFormatError(f"truncated at offset {self._pos}, wanted {n} bytes")
        chunk = self._data[self._pos : end]
        self._pos = end
        return chunk

    def u1(self) -> int:
        return self._take(1)[0]

    def u2(self) -> int:
        return struct.unpack(">H", self._take(2))[0]

    def u4(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def raw(self, n: int) -> bytes:
        return self._take(n)

    def skip(self, n: int) -> None:
        self._take(n)

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos


def internal_to_binary(name: str) -> str:
    """Convert an internal name (``a/b/C``) to a dotted binary name (``a.b.C``)."""
    return name.replace("/", ".")


def is_valid_class_name(name: str) -> bool:
    """Whether a dotted binary name can name a class: no empty segments, not an array."""
    return not name.startswith("[") and all(name.split("."))


def descriptor_types(descriptor: str) -> list[str]:
    """Class names in a field or method descriptor, in order of appearance.

    >>> descriptor_types("(I[Ljava/lang/String;)Lapp/Foo;")
    ['java.lang.String', 'app.Foo']
    """
    names: list[str] = []
    pos = 0
    n = len(descriptor)
    while pos < n:
        c = descriptor[pos]
        if c == "L":
            end = descriptor.find(";", pos)
            if end < 0:
                raise ClassFormatError(f"unterminated class type in descriptor {descriptor!r}")
            names.append(internal_to_binary(descriptor[pos + 1 : end]))
            pos = end + 1
        elif c in _PRIMITIVES or c in "[()V":
            pos += 1
        else:
            raise ClassFormatError(f"unexpected {c!r} in descriptor {descriptor!r}")
    return names


def signature_types(signature: str) -> list[str]:
    """Class names in a generic class, method or field signature.

    Type variables are not classes and are skipped; nested types written as
    ``Outer<T>.Inner`` resolve to ``Outer$Inner``.

    >>> signature_types("<K:Ljava/lang/Object;>Lapp/Base<TK;Lapp/Key;>;")
    ['java.lang.Object', 'app.Key', 'app.Base']
    """
    try:
        return _SignatureParser(signature).parse()
    except ClassFormatError:
        raise
    except (IndexError, ValueError):
        raise ClassFormatError(f"malformed signature {signature!r}")


class _SignatureParser:
    def __init__(self, signature: str) -> None:
        self.sig = signature
        self.pos = 0
        self.depth = 0
        self.names: list[str] = []

    def parse(self) -> list[str]:
        sig = self.sig
        if sig.startswith("<"):
            self._type_parameters()
        while self.pos < len(sig):
            c = sig[self.pos]
            if c in "()^V" or c in _PRIMITIVES:
                self.pos += 1
            else:
                self._type()
        return self.names

    def _type_parameters(self) -> None:
        sig = self.sig
        self.pos += 1
        while sig[self.pos] != ">":
            colon = sig.index(":", self.pos)
            self.pos = colon
            while sig[self.pos] == ":":
                self.pos += 1
                if sig[self.pos] in "LT[":
                    self._type()
        self.pos += 1

    def _type(self) -> None:
        sig = self.sig
        dimensions = 0
        while sig[self.pos] == "[":
            dimensions += 1
            self.pos += 1
        if dimensions > MAX_ARRAY_DIMENSIONS:
            raise ClassFormatError(f"{dimensions} array dimensions in signature, limit {MAX_ARRAY_DIMENSIONS}")
        c = sig[self.pos]
        if c == "L":
            self._class_type()
        elif c == "T":
            self.pos = sig.index(";", self.pos) + 1
        elif c in _PRIMITIVES:
            self.pos += 1
        else:
            raise ClassFormatError(f"unexpected {c!r} in signature {sig!r}")

    def _identifier(self) -> str:
        sig = self.sig
        start = self.pos
        while sig[self.pos] not in "<;.":
            self.pos += 1
        return sig[start : self.pos]

    def _class_type(self) -> None:
        sig = self.sig
        self.pos += 1
        name = self._identifier()
        if sig[self.pos] == "<":
            self._type_arguments()
        while sig[self.pos] == ".":
            self.pos += 1
            name = f"{name}${self._identifier()}"
            if sig[self.pos] == "<":
                self._type_arguments()
        if sig[self.pos] != ";":
            raise ClassFormatError(f"unterminated class type in signature {sig!r}")
        self.pos += 1
        self.names.append(internal_to_binary(name))

    def _type_arguments(self) -> None:
        sig = self.sig
        self.depth += 1
        if self.depth > MAX_NESTING:
            raise ClassFormatError(f"type arguments nested deeper than {MAX_NESTING}")
        self.pos += 1
        while sig[self.pos] != ">":
            c = sig[self.pos]
            if c == "*":
                self.pos += 1
                continue
            if c in "+-":
                self.pos += 1
            self._type()
        self.pos += 1
        self.depth -= 1


class _ConstantPool:
    """Parsed constant pool. Index 0 and the slot after long/double are None."""

    def __init__(self, reader: _Reader) -> None:
        count = reader.u2()
        if count == 0:
            raise ClassFormatError("constant pool count must be at least 1")
        self.entries: list[Optional[tuple]] = [None] * count
        index = 1
        while index < count:
            tag = reader.u1()
            if tag == UTF8:
                length = reader.u2()
                self.entries[index] = (tag, reader.raw(length).decode("utf-8", errors="replace"))
            elif tag in (INTEGER, FLOAT):
                reader.skip(4)
                self.entries[index] = (tag,)
            elif tag in (LONG, DOUBLE):
                reader.skip(8)
                self.entries[index] = (tag,)
                index += 1
            elif tag in (CLASS, STRING, METHOD_TYPE, MODULE, PACKAGE):
                self.entries[index] = (tag, reader.u2())
            elif tag in _MEMBER_REFS or tag in (NAME_AND_TYPE, DYNAMIC, INVOKE_DYNAMIC):
                self.entries[index] = (tag, reader.u2(), reader.u2())
            elif tag == METHOD_HANDLE:
                self.entries[index] = (tag, reader.u1(), reader.u2())
            else:
                raise ClassFormatError(f"unknown constant pool tag {tag} at index {index}")
            index += 1

    def _entry(self, index: int, expected: int) -> tuple:
        if not 0 < index < len(self.entries):
            raise ClassFormatError(f"constant pool index {index} out of range")
        entry = self.entries[index]
        if entry is None or entry[0] != expected:
            raise ClassFormatError(f"constant pool index {index} is not tag {expected}")
        return entry

    def utf8(self, index: int) -> str:
        return self._entry(index, UTF8)[1]

    def class_name(self, index: int) -> str:
        """Internal name (or array descriptor) of a CONSTANT_Class entry."""
        return self.utf8(self._entry(index, CLASS)[1])

    def name_and_type_descriptor(self, index: int) -> str:
        return self.utf8(self._entry(index, NAME_AND_TYPE)[2])

    def indexed(self, *tags: int):
        for index, entry in enumerate(self.entries):
            if entry is not None and entry[0] in tags:
                yield index, entry


def class_constant_types(name: str) -> list[str]:
    """Class names behind a CONSTANT_Class name, unwrapping arrays."""
    if name.startswith("["):
        return descriptor_types(name)
    return [internal_to_binary(name)]


def parse_class(data: bytes) -> ClassFile:
    """Parse class file bytes and collect every reference site.

    Raises:
        ClassFormatError: If the bytes are not a well-formed class file
    """
    reader = _Reader(data)
    if reader.remaining < 10 or reader.u4() != MAGIC:
        raise ClassFormatError("not a class file (bad magic)")
    reader.skip(4)  # minor, major version

    pool = _ConstantPool(reader)
    access_flags = reader.u2()
    this_index = reader.u2()
    super_index = reader.u2()
    interface_indices = [reader.u2() for _ in range(reader.u2())]

    name = internal_to_binary(pool.class_name(this_index))
    if not is_valid_class_name(name):
        raise ClassFormatError(f"invalid class name {name!r}")
    super_name = internal_to_binary(pool.class_name(super_index)) if super_index else None
    interfaces = [internal_to_binary(pool.class_name(i)) for i in interface_indices]

    refs: list[Reference] = []
    claimed = {this_index, super_index, *interface_indices}
    code_length = 0

    # Fields
    for _ in range(reader.u2()):
        reader.skip(4)  # access flags, name
        descriptor = pool.utf8(reader.u2())
        attrs = _read_attributes(reader, pool)
        types = _typed_or_plain(attrs, pool, descriptor)
        refs.extend(Reference(t, ReferenceKind.FIELD_TYPE) for t in types)
        refs.extend(_annotation_refs(attrs, pool))

    # Methods
    for _ in range(reader.u2()):
        reader.skip(4)
        descriptor = pool.utf8(reader.u2())
        attrs = _read_attributes(reader, pool)
        types = _typed_or_plain(attrs, pool, descriptor)
        refs.extend(Reference(t, ReferenceKind.METHOD_SIGNATURE) for t in types)
        for body in attrs.get("Exceptions", ()):
            sub = _Reader(body)
            for _ in range(sub.u2()):
                index = sub.u2()
                claimed.add(index)
                refs.extend(
                    Reference(t, ReferenceKind.THROWS)
                    for t in class_constant_types(pool.class_name(index))
                )
        for body in attrs.get("Code", ()):
            sub = _Reader(body)
            sub.skip(4)  # max_stack, max_locals
            code_length += sub.u4()
        refs.extend(_annotation_refs(attrs, pool))

    class_attrs = _read_attributes(reader, pool)

    # Supertypes: the generic signature, when present, also names type arguments
    if "Signature" in class_attrs:
        supertypes = _signature_of(class_attrs, pool)
    else:
        supertypes = ([super_name] if super_name else []) + interfaces
    refs.extend(Reference(t, ReferenceKind.SUPERTYPE) for t in supertypes)
    refs.extend(_annotation_refs(class_attrs, pool))

    # Class constants not already claimed by a more specific site
    for index, entry in pool.indexed(CLASS):
        if index in claimed:
            continue
        refs.extend(
            Reference(t, ReferenceKind.CLASS_CONSTANT)
            for t in class_constant_types(pool.utf8(entry[1]))
        )

    # Descriptors of used members and method types
    for _, entry in pool.indexed(*_MEMBER_REFS):
        for t in descriptor_types(pool.name_and_type_descriptor(entry[2])):
            refs.append(Reference(t, ReferenceKind.MEMBER_REFERENCE))
    for _, entry in pool.indexed(METHOD_TYPE):
        for t in descriptor_types(pool.utf8(entry[1])):
            refs.append(Reference(t, ReferenceKind.MEMBER_REFERENCE))

    return ClassFile(
        name=name,
        access_flags=access_flags,
        super_name=super_name,
        interfaces=interfaces,
        references=refs,
        code_length=code_length,
        size=len(data),
    )


def _read_attributes(reader: _Reader, pool: _ConstantPool) -> dict[str, list[bytes]]:
    """Read an attribute table into ``name -> [body, ...]``."""
    attrs: dict[str, list[bytes]] = {}
    for _ in range(reader.u2()):
        attr_name = pool.utf8(reader.u2())
        length = reader.u4()
        attrs.setdefault(attr_name, []).append(reader.raw(length))
    return attrs


def _signature_of(attrs: dict[str, list[bytes]], pool: _ConstantPool) -> list[str]:
    body = attrs["Signature"][0]
    return signature_types(pool.utf8(_Reader(body).u2()))


def _typed_or_plain(attrs: dict[str, list[bytes]], pool: _ConstantPool, descriptor: str) -> list[str]:
    if "Signature" in attrs:
        return _signature_of(attrs, pool)
    return descriptor_types(descriptor)


def _annotation_refs(attrs: dict[str, list[bytes]], pool: _ConstantPool) -> list[Reference]:
    names: list[str] = []
    for attr_name in _ANNOTATION_ATTRIBUTES:
        for body in attrs.get(attr_name, ()):
            sub = _Reader(body)
            for _ in range(sub.u2()):
                _annotation(sub, pool, names)
    for attr_name in _PARAMETER_ANNOTATION_ATTRIBUTES:
        for body in attrs.get(attr_name, ()):
            sub = _Reader(body)
            for _ in range(sub.u1()):
                for _ in range(sub.u2()):
                    _annotation(sub, pool, names)
    return [Reference(n, ReferenceKind.ANNOTATION) for n in names]


def _annotation(reader: _Reader, pool: _ConstantPool, names: list[str], depth: int = 0) -> None:
    names.extend(descriptor_types(pool.utf8(reader.u2())))
    for _ in range(reader.u2()):
        reader.skip(2)  # element name
        _element_value(reader, pool, names, depth + 1)


def _element_value(reader: _Reader, pool: _ConstantPool, names: list[str], depth: int) -> None:
    if depth > MAX_NESTING:
        raise ClassFormatError(f"annotation values nested deeper than {MAX_NESTING}")
    tag = chr(reader.u1())
    if tag in "BCDFIJSZs":
        reader.skip(2)
    elif tag == "e":
        names.extend(descriptor_types(pool.utf8(reader.u2())))
        reader.skip(2)
    elif tag == "c":
        names.extend(descriptor_types(pool.utf8(reader.u2())))
    elif tag == "@":
        _annotation(reader, pool, names, depth)
    elif tag == "[":
        for _ in range(reader.u2()):
            _element_value(reader, pool, names, depth + 1)
    else:
        raise ClassFormatError(f"unknown annotation element tag {tag!r}")
