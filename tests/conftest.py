"""Shared test fixtures for Socomo tests.

Class files are synthesized in-process by ``ClassWriter``; the bytes follow
the JVM class file format closely enough for the reader under test.
"""

import struct

import pytest

from socomo.graph.models import ClassGraph, UnitEdge
from socomo.scanning.artifacts import artifacts_from_bytes
from socomo.scanning.models import Unit


def pytest_addoption(parser):
    """Add --run-slow option for slow tests."""
    parser.addoption(
        "--run-slow",
        action="store_true",
        default=False,
        help="run slow tests",
    )


def pytest_configure(config):
    """Configure slow marker."""
    config.addinivalue_line("markers", "slow: mark test as slow to run")


def pytest_collection_modifyitems(config, items):
    """Skip slow tests unless --run-slow is given."""
    if config.getoption("--run-slow"):
        return
    skip_slow = pytest.mark.skip(reason="need --run-slow option to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)


def _u2(value):
    return struct.pack(">H", value)


def _u4(value):
    return struct.pack(">I", value)


class ClassWriter:
    """Minimal class file writer. Names are given dotted (``app.web.Foo``)."""

    def __init__(self, name, super_name="java.lang.Object", interfaces=(), access=0x0021):
        self.name = name
        self.super_name = super_name
        self.interfaces = list(interfaces)
        self.access = access
        self.fields = []
        self.methods = []
        self.class_annotations = []
        self.signature = None
        self.raw_attributes = []
        self._pool = []
        self._index = {}
        self._next = 1

    # ── constant pool ───────────────────────────────────────────
    def _add(self, key, payload, slots=1):
        if key not in self._index:
            self._index[key] = self._next
            self._pool.append(payload)
            self._next += slots
        return self._index[key]

    def utf8(self, text):
        data = text.encode("utf-8")
        return self._add(("utf8", text), b"\x01" + _u2(len(data)) + data)

    def klass(self, name):
        internal = name if name.startswith("[") else name.replace(".", "/")
        return self._add(("class", internal), b"\x07" + _u2(self.utf8(internal)))

    def name_and_type(self, name, descriptor):
        payload = b"\x0c" + _u2(self.utf8(name)) + _u2(self.utf8(descriptor))
        return self._add(("nat", name, descriptor), payload)

    def methodref(self, owner, name, descriptor):
        payload = b"\x0a" + _u2(self.klass(owner)) + _u2(self.name_and_type(name, descriptor))
        return self._add(("methodref", owner, name, descriptor), payload)

    def fieldref(self, owner, name, descriptor):
        payload = b"\x09" + _u2(self.klass(owner)) + _u2(self.name_and_type(name, descriptor))
        return self._add(("fieldref", owner, name, descriptor), payload)

    def method_type(self, descriptor):
        return self._add(("methodtype", descriptor), b"\x10" + _u2(self.utf8(descriptor)))

    def long_constant(self, value):
        return self._add(("long", value), b"\x05" + struct.pack(">q", value), slots=2)

    def string(self, text):
        return self._add(("string", text), b"\x08" + _u2(self.utf8(text)))

    # ── members ─────────────────────────────────────────────────
    def add_field(self, name, descriptor, signature=None, annotations=()):
        self.fields.append((name, descriptor, signature, list(annotations)))
        return self

    def add_method(
        self,
        name,
        descriptor,
        signature=None,
        exceptions=(),
        annotations=(),
        parameter_annotations=(),
        code_length=None,
    ):
        self.methods.append(
            (name, descriptor, signature, list(exceptions), list(annotations),
             list(parameter_annotations), code_length)
        )
        return self

    def add_class_attribute(self, name, body):
        """Class-level attribute with a hand-built body (pool indices via utf8/klass)."""
        self.raw_attributes.append((name, body))
        return self

    def annotate(self, descriptor, enum=None):
        self.class_annotations.append((descriptor, enum))
        return self

    # ── serialization ───────────────────────────────────────────
    def _attribute(self, name, body):
        return _u2(self.utf8(name)) + _u4(len(body)) + body

    def _annotation(self, descriptor, enum=None):
        body = _u2(self.utf8(descriptor))
        if enum is None:
            return body + _u2(0)
        enum_type, const = enum
        return (
            body
            + _u2(1)
            + _u2(self.utf8("value"))
            + b"e"
            + _u2(self.utf8(enum_type))
            + _u2(self.utf8(const))
        )

    def _annotations_attribute(self, annotations):
        items = [a if isinstance(a, tuple) else (a, None) for a in annotations]
        body = _u2(len(items)) + b"".join(self._annotation(d, e) for d, e in items)
        return self._attribute("RuntimeVisibleAnnotations", body)

    def _member(self, name, descriptor, attributes):
        return (
            _u2(0x0001)
            + _u2(self.utf8(name))
            + _u2(self.utf8(descriptor))
            + _u2(len(attributes))
            + b"".join(attributes)
        )

    def to_bytes(self):
        this_index = self.klass(self.name)
        super_index = self.klass(self.super_name) if self.super_name else 0
        interface_indices = [self.klass(i) for i in self.interfaces]

        fields = []
        for name, descriptor, signature, annotations in self.fields:
            attrs = []
            if signature:
                attrs.append(self._attribute("Signature", _u2(self.utf8(signature))))
            if annotations:
                attrs.append(self._annotations_attribute(annotations))
            fields.append(self._member(name, descriptor, attrs))

        methods = []
        for (name, descriptor, signature, exceptions, annotations,
             parameter_annotations, code_length) in self.methods:
            attrs = []
            if code_length is not None:
                code = _u2(2) + _u2(2) + _u4(code_length) + b"\x00" * code_length + _u2(0) + _u2(0)
                attrs.append(self._attribute("Code", code))
            if signature:
                attrs.append(self._attribute("Signature", _u2(self.utf8(signature))))
            if exceptions:
                body = _u2(len(exceptions)) + b"".join(_u2(self.klass(e)) for e in exceptions)
                attrs.append(self._attribute("Exceptions", body))
            if annotations:
                attrs.append(self._annotations_attribute(annotations))
            if parameter_annotations:
                body = bytes([len(parameter_annotations)])
                for per_param in parameter_annotations:
                    body += _u2(len(per_param)) + b"".join(self._annotation(d) for d in per_param)
                attrs.append(self._attribute("RuntimeVisibleParameterAnnotations", body))
            methods.append(self._member(name, descriptor, attrs))

        class_attrs = [self._attribute("SourceFile", _u2(self.utf8("Synthetic.java")))]
        if self.signature:
            class_attrs.append(self._attribute("Signature", _u2(self.utf8(self.signature))))
        if self.class_annotations:
            class_attrs.append(self._annotations_attribute(self.class_annotations))
        class_attrs.extend(self._attribute(name, body) for name, body in self.raw_attributes)

        out = _u4(0xCAFEBABE) + _u2(0) + _u2(52)
        out += _u2(self._next) + b"".join(self._pool)
        out += _u2(self.access) + _u2(this_index) + _u2(super_index)
        out += _u2(len(interface_indices)) + b"".join(_u2(i) for i in interface_indices)
        out += _u2(len(fields)) + b"".join(fields)
        out += _u2(len(methods)) + b"".join(methods)
        out += _u2(len(class_attrs)) + b"".join(class_attrs)
        return out


def field_holder(name, *field_types):
    """Class with one field per given type (dotted names)."""
    writer = ClassWriter(name)
    for i, type_name in enumerate(field_types):
        writer.add_field(f"f{i}", "L" + type_name.replace(".", "/") + ";")
    return writer.to_bytes()


SCENARIO_UNITS = [
    "app.web.Controller",
    "app.web.Filter",
    "app.service.UserService",
    "app.service.OrderService",
]


@pytest.fixture
def make_class():
    """The ClassWriter type, for tests that synthesize their own classes."""
    return ClassWriter


@pytest.fixture
def scenario_classes():
    """Class file bytes for the web/service scenario, keyed by artifact name."""
    return {
        "app/web/Controller.class": field_holder(
            "app.web.Controller", "app.service.UserService", "app.service.OrderService"
        ),
        "app/web/Filter.class": field_holder("app.web.Filter", "app.service.UserService"),
        "app/service/UserService.class": field_holder(
            "app.service.UserService", "app.service.OrderService", "app.service.OrderService"
        ),
        "app/service/OrderService.class": field_holder("app.service.OrderService"),
    }


@pytest.fixture
def scenario_artifacts(scenario_classes):
    return artifacts_from_bytes(scenario_classes)


@pytest.fixture
def scenario_graph():
    """The web/service scenario as a ready ClassGraph, unit weight 1."""
    units = [Unit(name, 1) for name in SCENARIO_UNITS]
    edges = [
        UnitEdge("app.web.Controller", "app.service.UserService", 1),
        UnitEdge("app.web.Controller", "app.service.OrderService", 1),
        UnitEdge("app.web.Filter", "app.service.UserService", 1),
        UnitEdge("app.service.UserService", "app.service.OrderService", 2),
    ]
    return ClassGraph.from_edges(units, edges)


@pytest.fixture
def single_unit_graph():
    return ClassGraph.from_edges([Unit("app.web.Controller", 7)], [])


@pytest.fixture
def field_class():
    """Builder for a class holding one field per given type."""
    return field_holder
