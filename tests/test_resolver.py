from __future__ import annotations

import libcst as cst

from ctorprune.analysis.resolver import ClassIndex, ClassMetadata, NotResolvable
from tests.cst_helpers import first_class, parse


def _resolve(source: str, name: str, **kwargs) -> ClassMetadata | NotResolvable:
    module = parse(source)
    index = ClassIndex.from_module(module, **kwargs)
    return index.resolver_for("__main__").resolve(first_class(module, name))


def test_plain_class_has_no_interfaces() -> None:
    result = _resolve("class Plain:\n    pass\n", "Plain")
    assert isinstance(result, ClassMetadata)
    assert result.name == "__main__.Plain"
    assert result.interfaces == ()
    assert result.is_interface is False


def test_protocol_base_marks_class_as_interface() -> None:
    source = """
        from typing import Protocol

        class Creator(Protocol):
            def create(self) -> None: ...
        """
    result = _resolve(source, "Creator")
    assert isinstance(result, ClassMetadata)
    assert result.is_interface is True


def test_interfaces_are_collected_transitively() -> None:
    source = """
        import abc

        class Base(abc.ABC):
            def __init__(self, name):
                self.name = name

        class Middle(Base):
            pass

        class Leaf(Middle):
            pass
        """
    result = _resolve(source, "Leaf")
    assert isinstance(result, ClassMetadata)
    assert [(item.name, item.declares_constructor) for item in result.interfaces] == [
        ("__main__.Base", True)
    ]
    assert result.is_interface is False


def test_interface_without_own_constructor() -> None:
    source = """
        from abc import ABCMeta

        class Shape(metaclass=ABCMeta):
            def area(self): ...

        class Square(Shape):
            def __init__(self, side):
                self.side = side
        """
    result = _resolve(source, "Square")
    assert isinstance(result, ClassMetadata)
    assert [(item.name, item.declares_constructor) for item in result.interfaces] == [
        ("__main__.Shape", False)
    ]


def test_generic_subscripted_and_builtin_bases_are_opaque() -> None:
    source = """
        from typing import Generic, TypeVar

        T = TypeVar("T")

        class Box(Generic[T], dict):
            pass
        """
    result = _resolve(source, "Box")
    assert isinstance(result, ClassMetadata)
    assert result.interfaces == ()


def test_unknown_base_is_not_resolvable() -> None:
    result = _resolve("from vendor import Thing\n\nclass Local(Thing):\n    pass\n", "Local")
    assert isinstance(result, NotResolvable)
    assert "vendor.Thing" in result.reason


def test_configured_opaque_base_resolves() -> None:
    source = "from vendor import Thing\n\nclass Local(Thing):\n    pass\n"
    result = _resolve(source, "Local", opaque_bases=("vendor.Thing",))
    assert isinstance(result, ClassMetadata)
    assert result.interfaces == ()


def test_configured_interface_base_counts_as_interface_root() -> None:
    source = """
        from zope.interface import Interface

        class IService(Interface):
            def __init__(self, registry): ...

        class Service(IService):
            def __init__(self, registry):
                pass
        """
    result = _resolve(source, "Service", interface_bases=("zope.interface.Interface",))
    assert isinstance(result, ClassMetadata)
    assert [(item.name, item.declares_constructor) for item in result.interfaces] == [
        ("__main__.IService", True)
    ]


def test_dynamic_base_expression_is_not_resolvable() -> None:
    result = _resolve("class Local(make_base()):\n    pass\n", "Local")
    assert isinstance(result, NotResolvable)


def test_starred_base_is_not_resolvable() -> None:
    result = _resolve("class Local(*bases):\n    pass\n", "Local")
    assert isinstance(result, NotResolvable)


def test_inheritance_cycle_is_not_resolvable() -> None:
    source = """
        class A(B):
            pass

        class B(A):
            pass
        """
    assert isinstance(_resolve(source, "A"), NotResolvable)


def test_duplicate_top_level_names_are_ambiguous() -> None:
    source = """
        class Base:
            pass

        class Base:
            pass

        class Child(Base):
            pass
        """
    result = _resolve(source, "Child")
    assert isinstance(result, NotResolvable)
    assert "ambiguous" in result.reason


def test_cross_module_resolution_follows_imports() -> None:
    modules = {
        "pkg": cst.parse_module("from .base import Creator\n"),
        "pkg.base": cst.parse_module(
            "from typing import Protocol\n\n"
            "class Creator(Protocol):\n"
            "    def __init__(self, name): ...\n"
        ),
        "pkg.impl": cst.parse_module(
            "from pkg import Creator\n\n"
            "class Widget(Creator):\n"
            "    def __init__(self, name, size):\n"
            "        self.name = name\n"
        ),
    }
    index = ClassIndex.from_modules(modules, packages=["pkg"])
    widget = first_class(modules["pkg.impl"], "Widget")
    result = index.resolver_for("pkg.impl").resolve(widget)
    assert isinstance(result, ClassMetadata)
    assert result.name == "pkg.impl.Widget"
    assert [(item.name, item.declares_constructor) for item in result.interfaces] == [
        ("pkg.base.Creator", True)
    ]


def test_relative_import_from_sibling_module() -> None:
    modules = {
        "pkg.base": cst.parse_module("import abc\n\nclass Port(abc.ABC):\n    pass\n"),
        "pkg.impl": cst.parse_module("from .base import Port\n\nclass Adapter(Port):\n    pass\n"),
    }
    index = ClassIndex.from_modules(modules)
    result = index.resolver_for("pkg.impl").resolve(first_class(modules["pkg.impl"], "Adapter"))
    assert isinstance(result, ClassMetadata)
    assert [item.name for item in result.interfaces] == ["pkg.base.Port"]


def test_nested_class_base_resolves_by_dotted_name() -> None:
    source = """
        from typing import Protocol

        class Outer:
            class Inner(Protocol):
                pass

        class User(Outer.Inner):
            pass
        """
    result = _resolve(source, "User")
    assert isinstance(result, ClassMetadata)
    assert [item.name for item in result.interfaces] == ["__main__.Outer.Inner"]


def test_unindexed_module_is_not_resolvable() -> None:
    module = parse("class Plain:\n    pass\n")
    index = ClassIndex.from_module(module)
    result = index.resolver_for("elsewhere").resolve(first_class(module))
    assert isinstance(result, NotResolvable)


def test_interface_constructor_flag_comes_from_the_resolved_base() -> None:
    source = """
        from typing import Protocol

        class Quiet(Protocol):
            def run(self): ...

        class Loud(Protocol):
            def __init__(self, name): ...

        class Both(Quiet, Loud):
            pass
        """
    result = _resolve(source, "Both")
    assert isinstance(result, ClassMetadata)
    assert [(item.name, item.declares_constructor) for item in result.interfaces] == [
        ("__main__.Quiet", False),
        ("__main__.Loud", True),
    ]
