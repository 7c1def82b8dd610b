'''Snapshot serialization of governance records and components.

Records and components are turned into JSON-ready dictionaries by
:func:`to_dict` and restored by :func:`from_dict`. Every dictionary that
represents an object carries a ``class`` key with the scoped name of its
class; values of types that JSON cannot hold (bytes, enumerations) are
wrapped in a dictionary with a ``type`` key.

Only names inside the :mod:`votechain` package are ever resolved when
restoring, so a snapshot cannot make the loader import or call anything
else.
'''

import enum
import sys
import inspect
import importlib
from typing import Any, List, Dict, Callable


ZERO_PARAMS: List[str] = ['args', 'kwargs']

PACKAGE = 'votechain'


def simple_serialization(class_: type) -> type:
    '''A decorator to provide a simple to_dict() serialization method.

    The resulting method will serialize all object attributes corresponding
    to the class's constructor parameter names. Therefore, this decorator
    is only useful when the class stores all its original parameters
    unchanged (or in any other form acceptable to its constructor), which
    is the case for dataclasses.

    :param class_: The class to add the method to.
    '''
    if hasattr(class_, 'serialize_params'):
        param_names = class_.serialize_params
    else:
        param_names = list(inspect.signature(
            class_.__init__
        ).parameters.keys())
        if 'self' in param_names:
            param_names.remove('self')
        if param_names == ZERO_PARAMS and class_.__init__ == object.__init__:
            param_names = []

    def to_dict(self) -> Dict[str, Any]:
        out_dict = {'class': scoped_class_name(self)}
        for attr in param_names:
            out_dict[attr] = serialize_value(getattr(self, attr))
        return out_dict

    class_.to_dict = to_dict
    return class_


def serialize_value(value: Any) -> Any:
    if hasattr(value, 'to_dict') and not isinstance(value, type):
        return value.to_dict()
    elif isinstance(value, enum.Enum):
        return enum_to_json(value)
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif type(value) in CONVERTIBLE_TYPES:
        return CONVERTIBLE_TYPES[type(value)](value)
    elif hasattr(value, 'items') and hasattr(value, 'keys'):
        if not all(isinstance(key, str) for key in value.keys()):
            raise ValueError(f'cannot serialize {value!r}: non-string keys')
        return {key: serialize_value(val) for key, val in value.items()}
    elif isinstance(value, (list, tuple)):
        return [serialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot serialize {value!r} to dict format')


def deserialize_value(value: Any) -> Any:
    if isinstance(value, dict):
        if 'type' in value and is_scoped_identifier(value['type']):
            return deserialize_typed(value)
        elif 'class' in value and is_scoped_identifier(value['class']):
            return deserialize_class(value)
        else:
            return {key: deserialize_value(val) for key, val in value.items()}
    elif isinstance(value, tuple(ATOMIC_TYPES)):
        return value
    elif isinstance(value, list):
        return [deserialize_value(val) for val in value]
    else:
        raise ValueError(f'cannot deserialize {value!r}, type unknown')


def deserialize_typed(typedef: Dict[str, Any]) -> Any:
    typeobj = get_object(typedef['type'])
    if 'value' not in typedef:
        raise ValueError(f'invalid typed value contents: {typedef!r}')
    if not (typeobj in TYPED_CONSTRUCTORS
            or (isinstance(typeobj, type) and issubclass(typeobj, enum.Enum))):
        raise ValueError(f'{typedef["type"]} cannot restore a typed value')
    return typeobj(deserialize_value(typedef['value']))


def deserialize_class(clsdef: Dict[str, Any]) -> Any:
    cls = get_object(clsdef['class'])
    if not isinstance(cls, type):
        raise ValueError(f'{clsdef["class"]} is not a class')
    params = clsdef.copy()
    del params['class']
    if hasattr(cls, 'from_dict'):
        return cls.from_dict(params)
    else:
        for key, inner_val in params.items():
            params[key] = deserialize_value(inner_val)
        return cls(**params)


def get_object(identifier: str) -> Any:
    '''Resolve a scoped name inside the votechain package.

    :raises ValueError: If the name lies outside the package or does not
        exist.
    '''
    if not is_scoped_identifier(identifier) or not (
        identifier.startswith(PACKAGE + '.')
    ):
        raise ValueError(f'refusing to resolve {identifier!r}: '
                         f'not a {PACKAGE} name')
    module, name = identifier.rsplit('.', 1)
    if module not in sys.modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            raise ValueError(f'unknown module in {identifier!r}') from e
    try:
        return getattr(sys.modules[module], name)
    except AttributeError as e:
        raise ValueError(f'unknown name {identifier!r}') from e


def from_dict(value: Dict[str, Any]) -> Any:
    """Restore a governance record or component from a dictionary.

    :param value: A dictionary created by :func:`to_dict`.
    """
    if not isinstance(value, dict):
        raise ValueError('invalid votechain object def: dict expected,'
                         f'got {value!r}')
    elif 'class' not in value:
        raise ValueError('invalid votechain object def: must have a class key')
    elif not is_scoped_identifier(value['class']):
        inval_cls = value['class']
        raise ValueError(f"invalid votechain class def: {inval_cls}")
    else:
        return deserialize_value(value)


def to_dict(obj: Any) -> Dict[str, Any]:
    """Serialize a governance record or component to a JSON-ready dictionary.

    :param obj: A record, authority, round or ledger. It should provide
        a `to_dict()` method (the records get one courtesy of the
        simple_serialization decorator).
    """
    return serialize_value(obj)


def is_scoped_identifier(value: Any):
    return (
        isinstance(value, str)
        and not value.startswith('.')
        and all(chunk.isidentifier() for chunk in value.split('.'))
    )


def scoped_class_name(value: Any):
    cls = value.__class__
    return '.'.join((cls.__module__, cls.__name__))


def bytes_from_hex(value: str) -> bytes:
    return bytes.fromhex(value)


def bytes_to_json(b: bytes) -> Dict[str, Any]:
    return {'type': 'votechain.persist.bytes_from_hex', 'value': b.hex()}


def enum_to_json(e: enum.Enum) -> Dict[str, Any]:
    return {'type': scoped_class_name(e), 'value': e.value}


ATOMIC_TYPES: List[type] = [
    str, int, bool, type(None),
]

CONVERTIBLE_TYPES: Dict[type, Callable] = {
    bytes: bytes_to_json,
    bytearray: bytes_to_json,
}

TYPED_CONSTRUCTORS: List[Callable] = [bytes_from_hex]
