from __future__ import annotations

from collections.abc import Mapping
from dataclasses import MISSING, fields, is_dataclass
from types import NoneType, UnionType
from typing import TYPE_CHECKING, Any, Protocol, TypeVar, Union

from typing_extensions import TypeAlias, get_args, get_origin, get_type_hints, overload

from .errors import ConfigError

if TYPE_CHECKING:
    from _typeshed import DataclassInstance

    T_Data = TypeVar("T_Data", bound=DataclassInstance)


T = TypeVar("T")

Primitive: TypeAlias = (
    "str | float | int | bool | None | list[Primitive] | dict[str, Primitive]"
)


def _build_obj_key(key: str, next_key: str) -> str:
    return f"{key}{'.' if key else ''}{next_key}"


def _coerce_dataclass(typ: type[T_Data], val: Primitive, *, key: str) -> T_Data:
    val = _coerce_type(dict, val, key=key)
    hints = get_type_hints(typ)
    known = {f.name for f in fields(typ) if f.init}
    kwargs = {
        k: typecast(hints.get(k, Any) if k in known else Any, v, key=_build_obj_key(key, k))
        for k, v in val.items()
    }

    required_keys = {
        f.name
        for f in fields(typ)
        if f.init and f.default is MISSING and f.default_factory is MISSING
    }
    missing = sorted(required_keys.difference(kwargs))
    unknown = sorted(set(kwargs).difference(known))

    msg_parts = []
    if missing:
        msg_parts.append(f"missing keys: {missing}")
    if unknown:
        msg_parts.append(f"unknown keys: {unknown}")
    if msg_parts:
        raise ConfigError(key, ", ".join(msg_parts))

    return typ(**kwargs)


@overload
def _coerce_type(typ: type[T], val: Primitive, *, key: str) -> T: ...
@overload
def _coerce_type(typ: type[Any], val: Primitive, *, key: str) -> Any: ...
def _coerce_type(typ: type[Any], val: Primitive, *, key: str) -> Any:
    if typ is Any:
        return val

    if is_dataclass(typ):
        return _coerce_dataclass(typ, val, key=key)

    # TOML writes "timeout = 3" as an integer
    if typ is float and isinstance(val, int) and not isinstance(val, bool):
        return float(val)

    if not isinstance(val, typ) or (typ is not bool and isinstance(val, bool)):
        msg = f"Value was {type(val).__name__}, but expected {typ.__name__}"
        raise ConfigError(key, msg)
    return val


def _coerce_mapping(
    typ: type[Mapping[str, T]], val: Primitive, *, key: str
) -> dict[str, T]:
    val = _coerce_type(dict, val, key=key)

    kt, vt = get_args(typ)
    assert kt is str, "non-string mapping keys are not supported"
    return {k: typecast(vt, v, key=_build_obj_key(key, k)) for k, v in val.items()}


def _coerce_list(typ: type[list[T]], val: Primitive, *, key: str) -> list[T]:
    val = _coerce_type(list, val, key=key)
    (it,) = get_args(typ)
    return [typecast(it, item, key=f"{key}[{index}]") for index, item in enumerate(val)]


def _coerce_tuple(typ: type[tuple[T, ...]], val: Primitive, *, key: str) -> tuple[T, ...]:
    val = _coerce_type(list, val, key=key)
    it, *rest = get_args(typ)
    assert rest == [Ellipsis], "only homogeneous tuples are supported"
    return tuple(
        typecast(it, item, key=f"{key}[{index}]") for index, item in enumerate(val)
    )


def _coerce_union(typ: type[T], val: Primitive, *, key: str) -> T:
    args = get_args(typ)
    if val is None and NoneType in args:
        return None  # type: ignore[return-value]

    errors = []
    for ut in args:
        if ut is NoneType:
            continue
        try:
            return typecast(ut, val, key=key)
        except ConfigError as e:
            errors.append(f"- {e.message}")
    raise ConfigError(key, "\nPossible issues:\n" + "\n".join(errors))


_origin_mapper = {
    dict: _coerce_mapping,
    Mapping: _coerce_mapping,
    list: _coerce_list,
    tuple: _coerce_tuple,
    Union: _coerce_union,
    UnionType: _coerce_union,
}


class Coercable(Protocol):
    def __call__(self, typ: Any, val: Primitive, *, key: str) -> Any: ...


@overload
def typecast(typ: type[T], val: Primitive, *, key: str = ...) -> T: ...
@overload
def typecast(typ: Any, val: Primitive, *, key: str = ...) -> Any: ...
def typecast(typ: Any, val: Primitive, *, key: str = "") -> Any:
    """Coerce a parsed TOML value into ``typ``, reporting failures by key path."""
    coerce: Coercable
    if typ is Any or isinstance(typ, type):
        coerce = _coerce_type
    elif (origin := get_origin(typ)) in _origin_mapper:
        coerce = _origin_mapper[origin]
    else:
        raise NotImplementedError(f"{typ} is not supported yet")

    return coerce(typ, val, key=key)
