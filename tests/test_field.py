"""Tests for field accessors, path resolution and typed inference."""

from dataclasses import dataclass
from datetime import date, datetime
from typing import Annotated, Optional, TypedDict

import pytest
from pydantic import BaseModel

from verdict import FieldPathError, field, resolve_path
from verdict.conditions import (
    AnyField,
    BooleanField,
    FieldFactory,
    NumberField,
    SequenceField,
    StringField,
    TemporalField,
    infer_path_type,
)


class Address(BaseModel):
    city: str
    zip_code: Optional[str] = None


class User(BaseModel):
    age: int
    name: str
    active: bool
    joined: date
    tags: list[str]
    address: Address
    nickname: Optional[str] = None
    score: Annotated[float, "points"] = 0.0


class Facts(BaseModel):
    user: User
    scores: dict[str, int] = {}
    metadata: object = None


@dataclass
class Order:
    total: float
    items: list[str]


@dataclass
class OrderFacts:
    order: Order


class Profile(TypedDict):
    level: int
    handle: str


class Customer:
    def __init__(self, age):
        self.age = age


# =============================================================================
# Path Resolution
# =============================================================================


class TestResolvePath:
    def test_nested_mapping(self):
        assert resolve_path({"user": {"age": 20}}, "user.age") == 20

    def test_sequence_index(self):
        facts = {"items": [{"sku": "a"}, {"sku": "b"}]}
        assert resolve_path(facts, "items.1.sku") == "b"
        assert resolve_path(facts, "items.5.sku") is None
        assert resolve_path(facts, "items.first") is None

    def test_missing_path_is_none(self):
        assert resolve_path({"user": {}}, "user.age") is None
        assert resolve_path({"user": None}, "user.age") is None
        assert resolve_path({}, "a.b.c") is None

    def test_scalar_cannot_be_descended(self):
        assert resolve_path({"user": "bob"}, "user.upper") is None
        assert resolve_path({"age": 3}, "age.real") is None

    def test_object_attributes(self):
        assert resolve_path({"customer": Customer(40)}, "customer.age") == 40
        assert resolve_path({"customer": Customer(40)}, "customer.missing") is None


# =============================================================================
# Untyped Accessors
# =============================================================================


class TestUntypedField:
    def test_untyped_field_has_every_operator(self):
        accessor = field("user.age")
        assert isinstance(accessor, AnyField)
        for name in ("eq", "in_", "gt", "between", "contains", "matches", "is_true", "before", "any"):
            assert hasattr(accessor, name)

    def test_comparison_trace(self):
        trace = field("user.age").gte(18)({"user": {"age": 20}})
        assert trace.label == "user.age >= 18"
        assert trace.result is True
        assert (trace.left, trace.op, trace.right) == (20, ">=", 18)

    def test_missing_value_does_not_raise(self):
        trace = field("user.age").gt(18)({"user": {}})
        assert trace.result is False
        assert trace.left is None

    def test_incomparable_types_are_false(self):
        assert field("age").lt(5)({"age": "young"}).result is False

    def test_eq_and_in(self):
        facts = {"user": {"country": "DE"}}
        assert field("user.country").eq("DE")(facts).result is True
        cond = field("user.country").in_(["DE", "FR"])
        assert cond.label == "user.country in [2]"
        assert cond(facts).result is True
        assert cond(facts).right == ["DE", "FR"]

    def test_between_is_inclusive(self):
        cond = field("n").between(1, 3)
        assert cond({"n": 1}).result is True
        assert cond({"n": 3}).result is True
        assert cond({"n": 4}).result is False
        assert cond({"n": 2}).right == [1, 3]

    def test_contains(self):
        cond = field("value").contains("vip")
        assert cond({"value": "a vip user"}).result is True
        assert cond({"value": ["vip", "beta"]}).result is True
        assert cond({"value": ["beta"]}).result is False
        assert cond({"value": 42}).result is False

    def test_string_operators(self):
        facts = {"email": "ada@example.com"}
        assert field("email").starts_with("ada")(facts).result is True

        cond = field("email").matches(r"@example\.com$")
        assert cond.label == r"email matches /@example\.com$/"
        assert cond(facts).result is True
        assert cond({"email": None}).result is False

    def test_boolean_operators(self):
        assert field("active").is_true()({"active": True}).result is True
        assert field("active").is_true()({"active": 1}).result is False
        trace = field("active").is_false()({"active": False})
        assert trace.result is True
        assert trace.op == "is"

    def test_temporal_operators(self):
        cond = field("joined").before(date(2024, 1, 1))
        assert cond.label == "joined before 2024-01-01"
        assert cond({"joined": date(2023, 6, 1)}).result is True
        assert cond({"joined": datetime(2023, 6, 1, 12, 0)}).result is True
        assert cond({"joined": "2023-06-01"}).result is False
        assert field("joined").after(datetime(2020, 1, 1))({"joined": date(2021, 1, 1)}).result is True

    def test_sequence_predicates(self):
        facts = {"items": [1, 2, 3]}
        assert field("items").any(lambda item: item > 2)(facts).result is True
        assert field("items").all(lambda item: item > 2)(facts).result is False
        assert field("items").all(lambda item: item > 2)({"items": []}).result is True
        assert field("items").any(lambda item: True)({"items": None}).result is False
        assert field("items").any(lambda item: True, label="has items").label == "has items"


# =============================================================================
# Typed Accessors
# =============================================================================


class TestTypedField:
    @pytest.mark.parametrize(
        "path,expected",
        [
            ("user.age", NumberField),
            ("user.score", NumberField),
            ("user.name", StringField),
            ("user.nickname", StringField),
            ("user.active", BooleanField),
            ("user.joined", TemporalField),
            ("user.tags", SequenceField),
            ("user.address.city", StringField),
            ("scores.math", NumberField),
            ("metadata", AnyField),
        ],
    )
    def test_inferred_accessor(self, path, expected):
        assert type(field(Facts, path)) is expected

    def test_typed_accessor_limits_operators(self):
        age = field(Facts, "user.age")
        assert hasattr(age, "between")
        assert not hasattr(age, "matches")
        assert not hasattr(field(Facts, "user.name"), "gt")

    def test_unknown_path_raises(self):
        with pytest.raises(FieldPathError):
            field(Facts, "user.height")
        with pytest.raises(FieldPathError):
            field(Facts, "user.age.value")

    def test_dataclass_model(self):
        assert type(field(OrderFacts, "order.total")) is NumberField
        assert type(field(OrderFacts, "order.items")) is SequenceField
        assert infer_path_type(OrderFacts, "order.total") is float

    def test_typed_dict_model(self):
        assert type(field(Profile, "level")) is NumberField
        assert type(field(Profile, "handle")) is StringField
        with pytest.raises(FieldPathError):
            field(Profile, "missing")

    def test_factory(self):
        facts_field = field(Facts)
        assert isinstance(facts_field, FieldFactory)
        assert type(facts_field("user.age")) is NumberField

    def test_model_instance_facts(self):
        facts = Facts(
            user=User(
                age=30,
                name="Ada",
                active=True,
                joined=date(2020, 1, 1),
                tags=["vip"],
                address=Address(city="Berlin"),
            )
        )
        assert field(Facts, "user.age").gte(18)(facts).result is True
        assert field(Facts, "user.address.city").eq("Berlin")(facts).result is True
        assert field(Facts, "user.tags").contains("vip")(facts).result is True
