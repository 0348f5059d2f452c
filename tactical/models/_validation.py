"""Payload validation for records loaded from the datastore."""

from __future__ import annotations

from dataclasses import dataclass
from numbers import Real
from typing import Any, ClassVar, Mapping, MutableMapping, Sequence, TypeVar

T = TypeVar("T")


class ModelValidationError(ValueError):
    """Raised when a stored payload cannot be turned into a model."""

    def __init__(self, model: type[Any], errors: Sequence[str]) -> None:
        self.model = model
        self.errors = list(errors)
        message = "; ".join(self.errors) if self.errors else "invalid payload"
        super().__init__(f"{model.__name__} validation failed: {message}")


@dataclass(frozen=True)
class FieldSpec:
    expected: Any
    description: str
    required: bool = True
    allow_none: bool = False


@dataclass(frozen=True)
class SequenceSpec:
    item: Any
    allow_empty: bool = True


@dataclass(frozen=True)
class MappingSpec:
    key: Any
    value: Any
    allow_empty: bool = True


def is_non_empty_str(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ""


def is_score(value: Any) -> bool:
    """Accept plain integers and ``{"value": int}`` tables used for ratings."""

    if isinstance(value, Mapping):
        value = value.get("value", 0)
    if value is None:
        return True
    return isinstance(value, Real) and not isinstance(value, bool)


def _matches(value: Any, expected: Any) -> bool:
    if expected is Any:
        return True
    if isinstance(expected, FieldSpec):
        return _matches(value, expected.expected)
    if isinstance(expected, SequenceSpec):
        if not isinstance(value, Sequence) or isinstance(value, (str, bytes)):
            return False
        if not expected.allow_empty and not value:
            return False
        return all(_matches(item, expected.item) for item in value)
    if isinstance(expected, MappingSpec):
        if not isinstance(value, Mapping):
            return False
        if not expected.allow_empty and not value:
            return False
        return all(
            _matches(key, expected.key) and _matches(item, expected.value)
            for key, item in value.items()
        )
    if isinstance(expected, tuple):
        return any(_matches(value, option) for option in expected)
    if isinstance(expected, type):
        if expected is int:
            return isinstance(value, int) and not isinstance(value, bool)
        if expected is float:
            return isinstance(value, Real) and not isinstance(value, bool)
        return isinstance(value, expected)
    if callable(expected):
        try:
            return bool(expected(value))
        except (TypeError, ValueError):
            return False
    return True


class ModelValidator:
    """Declarative validator attached to a model through ``validator``."""

    model: ClassVar[type[Any]]
    fields: ClassVar[Mapping[str, FieldSpec]]

    @classmethod
    def validate(cls, data: Mapping[str, Any]) -> dict[str, Any]:
        if not isinstance(data, Mapping):
            raise ModelValidationError(
                cls.model, ["Payload must be a mapping of field names to values"]
            )

        errors: list[str] = []
        normalized: dict[str, Any] = {}
        for name, spec in cls.fields.items():
            if name not in data:
                if spec.required:
                    errors.append(f"Missing required field '{name}' ({spec.description})")
                continue
            value = data[name]
            if value is None:
                if spec.allow_none:
                    normalized[name] = None
                else:
                    errors.append(f"Field '{name}' cannot be null")
                continue
            if not _matches(value, spec.expected):
                errors.append(
                    f"Field '{name}' expected {spec.description}, "
                    f"received {type(value).__name__}"
                )
                continue
            normalized[name] = value

        if errors:
            raise ModelValidationError(cls.model, errors)

        for key, value in data.items():
            normalized.setdefault(key, value)
        return normalized


def validate_dataclass_payload(cls: type[Any], data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate ``data`` for ``cls`` when the model declares a validator."""

    validator: type[ModelValidator] | None = getattr(cls, "validator", None)
    if validator is None:
        if isinstance(data, MutableMapping):
            return dict(data)
        return {key: data[key] for key in data}
    return validator.validate(data)


def load_dataclass(cls: type[T], data: Mapping[str, Any]) -> T:
    """Validate ``data`` and build ``cls`` through its ``from_dict`` when present."""

    payload = validate_dataclass_payload(cls, dict(data))
    factory = getattr(cls, "from_dict", None)
    if callable(factory):
        return factory(payload)
    return cls(**payload)


__all__ = [
    "FieldSpec",
    "MappingSpec",
    "ModelValidationError",
    "ModelValidator",
    "SequenceSpec",
    "is_non_empty_str",
    "is_score",
    "load_dataclass",
    "validate_dataclass_payload",
]
