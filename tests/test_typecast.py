import re
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any, Optional, Union

import pytest

from runny.errors import ConfigError
from runny.typecast import typecast

AnyFunc = Callable[[], Any]


@dataclass
class EmptyClass:
    pass


@dataclass
class MultipleFields:
    a: str
    b: str


@dataclass
class UnionFields:
    c: Union[EmptyClass, MultipleFields]  # noqa: FA100


@dataclass
class OptionalField:
    x: Optional[float]  # noqa: FA100


@dataclass
class TupleField:
    items: tuple[str, ...] = ()


@dataclass
class MappingField:
    env: Mapping[str, Optional[str]]  # noqa: FA100


@pytest.mark.parametrize(
    ("typ", "val", "result"),
    [
        (str, "hello", "hello"),
        (float, 3, 3.0),
        (float, 2.5, 2.5),
        (EmptyClass, {}, EmptyClass()),
        (MultipleFields, {"a": "A", "b": "B"}, MultipleFields("A", "B")),
        (UnionFields, {"c": {}}, UnionFields(EmptyClass())),
        (
            UnionFields,
            {"c": {"a": "A", "b": "B"}},
            UnionFields(MultipleFields("A", "B")),
        ),
        (OptionalField, {"x": 1}, OptionalField(1.0)),
        (OptionalField, {"x": None}, OptionalField(None)),
        (TupleField, {}, TupleField()),
        (TupleField, {"items": ["a", "b"]}, TupleField(("a", "b"))),
        (MappingField, {"env": {"A": "1", "B": None}}, MappingField({"A": "1", "B": None})),
    ],
)
def test_typecast(typ: type, val: Any, result: Any) -> None:
    assert typecast(typ, val) == result


def test_typecast_generic_error() -> None:
    with pytest.raises(ConfigError, match="Value was str, but expected float"):
        typecast(list[float], ["3"])


def test_bool_is_not_a_number() -> None:
    with pytest.raises(ConfigError, match="Value was bool, but expected float"):
        typecast(float, True)


def test_nested_key_path() -> None:
    with pytest.raises(ConfigError, match=re.escape("'items[1]'")):
        typecast(TupleField, {"items": ["a", 2]})


def test_unsupported_error() -> None:
    typ = re.escape(str(AnyFunc))
    with pytest.raises(NotImplementedError, match=f"{typ} is not supported yet"):
        typecast(AnyFunc, "")


@dataclass
class ClassWithPostInit:
    a: str

    def __post_init__(self) -> None:
        if not self.a:
            msg = "a cannot be empty string"
            raise TypeError(msg)


def test_some_other_error() -> None:
    with pytest.raises(TypeError, match="a cannot be empty string"):
        typecast(ClassWithPostInit, {"a": ""})


def test_union_error() -> None:
    with pytest.raises(
        ConfigError,
        match=r"""
Unable to parse config key 'c':\s
Possible issues:
- unknown keys: \['x'\]
- missing keys: \['a', 'b'\], unknown keys: \['x'\]
""".strip(),
    ):
        typecast(UnionFields, {"c": {"x": "y"}})
