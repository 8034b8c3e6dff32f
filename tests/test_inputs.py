from types import MappingProxyType

import pytest

from atomic_actions.core.Exceptions import (
    ActionError,
    InputReadOnly,
    InputRequired,
    InputShapeError,
    NotAVector,
    NotParsable,
    ValidationError,
)
from atomic_actions.inputs import Input, Numeric, Text


# ---- required / optional ---- #
@pytest.mark.asyncio
async def test_required_empty_scalar_is_rejected():
    input_obj = Numeric("a")
    with pytest.raises(InputRequired) as info:
        await input_obj.validate()
    assert info.value.input_name == "a"
    assert info.value.code == Input.ERROR_CODES["required"]
    assert str(info.value).startswith("a: ")


@pytest.mark.asyncio
@pytest.mark.parametrize("value", [None, []])
async def test_optional_empty_input_is_valid(value):
    input_obj = Numeric("a", {"required": False, "vector": True})
    input_obj.value = value
    assert await input_obj.validate() is True


@pytest.mark.asyncio
async def test_empty_vector_counts_as_empty():
    input_obj = Numeric("a", {"vector": True})
    input_obj.value = []
    assert input_obj.is_empty
    with pytest.raises(InputRequired):
        await input_obj.validate()


# ---- vectors ---- #
@pytest.mark.asyncio
@pytest.mark.parametrize("value", [5, "1,2,3"])
async def test_vector_rejects_non_sequences(value):
    input_obj = Numeric("a", {"vector": True, "immutable": False})
    input_obj.value = value
    with pytest.raises(NotAVector) as info:
        await input_obj.validate()
    assert info.value.code == Input.ERROR_CODES["vector"]


@pytest.mark.asyncio
async def test_vector_validation_is_ordered_and_fail_fast():
    visited = []

    def track(input_obj, at):
        visited.append(at)
        if input_obj.value_at(at) % 2:
            raise ValidationError("odd value", "odd")

    input_obj = Numeric("values", {"vector": True}, track)
    input_obj.value = [2, 3, 4, 5]
    with pytest.raises(ValidationError) as info:
        await input_obj.validate()
    assert visited == [0, 1]
    assert info.value.input_name == "values"
    assert info.value.code == "odd"


@pytest.mark.asyncio
async def test_builtin_checks_run_before_extended_validation():
    calls = []

    async def never(input_obj, at):
        calls.append(at)

    input_obj = Numeric("values", {"vector": True, "max": 10}, never)
    input_obj.value = [1, 20, 3]
    with pytest.raises(ValidationError) as info:
        await input_obj.validate()
    assert calls == [0]
    assert info.value.code == Numeric.ERROR_CODES["max"]


@pytest.mark.asyncio
async def test_extended_validation_receives_none_for_scalars():
    seen = []
    input_obj = Numeric("a", extended_validation=lambda i, at: seen.append((i.name, at)))
    input_obj.value = 1
    await input_obj.validate()
    assert seen == [("a", None)]


def test_value_at_requires_index_for_vectors():
    input_obj = Numeric("a", {"vector": True})
    input_obj.value = [1, 2]
    assert input_obj.value_at(1) == 2
    with pytest.raises(ValueError):
        input_obj.value_at()


def test_vector_property_is_fixed():
    input_obj = Numeric("a")
    with pytest.raises(ActionError):
        input_obj.assign_property("vector", True)


# ---- immutability / read-only ---- #
def test_immutable_values_are_read_only_views():
    input_obj = Input("payload")
    input_obj.value = {"k": [1]}
    assert isinstance(input_obj.value, MappingProxyType)
    with pytest.raises(TypeError):
        input_obj.value["k"] = 2

    vector = Numeric("a", {"vector": True})
    source = [1, 2]
    vector.value = source
    source.append(3)
    assert vector.value == (1, 2)


def test_mutable_inputs_keep_the_value():
    input_obj = Input("payload", {"immutable": False})
    value = {"k": 1}
    input_obj.value = value
    assert input_obj.value is value


def test_read_only_blocks_changes():
    input_obj = Numeric("a")
    input_obj.read_only = True
    with pytest.raises(InputReadOnly):
        input_obj.value = 1
    with pytest.raises(InputReadOnly):
        input_obj.assign_property("min", 1)
    input_obj.read_only = False
    input_obj.value = 1
    assert input_obj.value == 1


def test_default_value_and_properties():
    input_obj = Numeric("a", {"default_value": 3, "custom": "kept"})
    assert input_obj.value == 3
    assert input_obj.get_property("custom") == "kept"
    assert input_obj.has_property("immutable")
    assert input_obj.get_property("missing", "fallback") == "fallback"
    assert set(["required", "immutable", "vector", "default_value", "custom"]) <= set(input_obj.property_names)


# ---- memo cache ---- #
def test_cache_is_cleared_by_value_and_property_changes():
    input_obj = Numeric("a")
    input_obj.value = 1
    input_obj._set_to_cache("fact", 42)
    assert input_obj._is_cached("fact")
    assert dict(input_obj.cache) == {("fact", None): 42}

    input_obj.assign_property("min", 0)
    assert not input_obj._is_cached("fact")

    input_obj._set_to_cache("fact", 42)
    input_obj.value = 2
    assert not input_obj._is_cached("fact")


def test_vector_cache_needs_an_index():
    input_obj = Numeric("a", {"vector": True})
    input_obj.value = [1, 2]
    input_obj._set_to_cache("fact", "one", at=1)
    assert input_obj._get_from_cache("fact", 1) == "one"
    with pytest.raises(ValueError):
        input_obj._is_cached("fact")


# ---- setup_from ---- #
def test_setup_from_copies_value_and_cache():
    source = Numeric("src")
    source.value = 7
    source._set_to_cache("fact", "seven")
    target = Numeric("dst")
    target.setup_from(source)
    assert target.value == 7
    assert target._get_from_cache("fact") == "seven"


def test_setup_from_element_of_vector():
    source = Numeric("src", {"vector": True})
    source.value = [1, 2]
    source._set_to_cache("fact", "two", at=1)
    source._set_to_cache("fact", "one", at=0)
    target = Numeric("dst")
    target.setup_from(source, at=1)
    assert target.value == 2
    assert dict(target.cache) == {("fact", None): "two"}


def test_setup_from_without_cache():
    source = Numeric("src")
    source.value = 7
    source._set_to_cache("fact", "seven")
    target = Numeric("dst")
    target.setup_from(source, with_cache=False)
    assert target.value == 7
    assert not target._is_cached("fact")


def test_setup_from_requires_same_type():
    with pytest.raises(TypeError):
        Numeric("dst").setup_from(Text("src"))


def test_setup_from_vector_source_to_scalar_without_at():
    source = Numeric("src", {"vector": True})
    source.value = [1]
    with pytest.raises(InputShapeError):
        Numeric("dst").setup_from(source)


def test_setup_from_scalar_source_to_vector_target():
    source = Numeric("src")
    source.value = 1
    with pytest.raises(InputShapeError):
        Numeric("dst", {"vector": True}).setup_from(source)


def test_setup_from_at_with_scalar_source():
    source = Numeric("src")
    source.value = 1
    with pytest.raises(InputShapeError):
        Numeric("dst").setup_from(source, at=0)


def test_setup_from_at_between_vectors():
    source = Numeric("src", {"vector": True})
    source.value = [1]
    with pytest.raises(InputShapeError):
        Numeric("dst", {"vector": True}).setup_from(source, at=0)


def test_setup_from_read_only_target():
    source = Numeric("src")
    source.value = 1
    target = Numeric("dst")
    target.read_only = True
    with pytest.raises(InputReadOnly):
        target.setup_from(source)


# ---- codec ---- #
@pytest.mark.asyncio
async def test_serialize_validates_first():
    input_obj = Numeric("a", {"max": 1})
    input_obj.value = 5
    with pytest.raises(ValidationError):
        await input_obj.serialize_value()


@pytest.mark.asyncio
async def test_vector_codec():
    input_obj = Numeric("a", {"vector": True})
    input_obj.value = [1, 2.5]
    text = await input_obj.serialize_value()
    assert text == '["1", "2.5"]'

    other = Numeric("a", {"vector": True})
    other.parse_value(text)
    assert other.value == (1, 2.5)


@pytest.mark.asyncio
async def test_empty_value_codec():
    input_obj = Numeric("a", {"required": False})
    assert await input_obj.serialize_value() == ""
    input_obj.value = 3
    input_obj.parse_value("")
    assert input_obj.value is None


@pytest.mark.parametrize("text", ['{"a": 1}', "[1, 2", 5])
def test_parse_value_errors(text):
    with pytest.raises(NotParsable):
        Numeric("a", {"vector": True}).parse_value(text)


def test_parse_value_rejects_bad_scalars():
    with pytest.raises(NotParsable):
        Numeric("a").parse_value("abc")
