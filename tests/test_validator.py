"""
Tests for the recursive validator using real shapes and registries.
"""

from decimal import Decimal

import pytest

from paramknobs import (
    IssueCode,
    MessageCatalog,
    Scope,
    ShapeBuilder,
    TypeRegistryBuilder,
    UnionBuilder,
    Validator,
    validate,
)


class TestScenarios:
    """End-to-end scenarios for the core checks."""

    def test_valid_input_keeps_declared_fields(self, person_shape):
        result = Validator().validate(person_shape, {"name": "Ada"})

        assert result.issues == []
        assert result.params == {"name": "Ada"}

    def test_missing_required_field(self, person_shape):
        result = Validator().validate(person_shape, {})

        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.code is IssueCode.FIELD_MISSING
        assert issue.path == ("name",)
        assert issue.meta == {"field": "name", "type": "string"}
        assert issue.detail == "Required"

    def test_unknown_discriminator_value(self, resolver):
        union = (
            UnionBuilder(discriminator="kind")
            .variant(ShapeBuilder().string("x", optional=True), tag="a")
            .variant(ShapeBuilder(), tag="b")
            .build()
        )
        result = Validator(resolver).validate_union(union, {"kind": "c"})

        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.code is IssueCode.VALUE_INVALID
        assert issue.path == ("kind",)
        assert issue.meta["expected"] == ["a", "b"]

    def test_array_too_large_drops_field(self):
        shape = ShapeBuilder().array("tags", of="string", max=2).string("name").build()
        result = Validator().validate(shape, {"tags": ["a", "b", "c"], "name": "x"})

        assert [issue.code for issue in result.issues] == [IssueCode.ARRAY_TOO_LARGE]
        assert result.issues[0].path == ("tags",)
        assert result.issues[0].meta == {"max": 2, "actual": 3}
        assert "tags" not in result.params
        assert result.params == {"name": "x"}

    def test_depth_exceeded(self, resolver, node_shape, nest):
        result = Validator(resolver).validate(node_shape, nest(11), max_depth=10)

        assert [issue.code for issue in result.issues] == [IssueCode.DEPTH_EXCEEDED]
        assert result.issues[0].path == ("child",) * 11
        assert result.issues[0].meta == {"max": 10, "depth": 11}

    def test_depth_at_limit_is_valid(self, resolver, node_shape, nest):
        result = Validator(resolver).validate(node_shape, nest(10), max_depth=10)
        assert result.valid

    def test_array_items_count_as_a_level(self):
        shape = ShapeBuilder().array("ids", of="integer").build()

        result = Validator().validate(shape, {"ids": [1]}, max_depth=0)
        assert result.codes() == [IssueCode.DEPTH_EXCEEDED]
        assert result.issues[0].path == ("ids",)
        assert Validator().validate(shape, {"ids": [1]}, max_depth=1).valid

    def test_recursive_union_is_bounded(self, tree_resolver):
        shape = ShapeBuilder().reference("root", "tree").build()
        data = 1
        for _ in range(3000):
            data = [data]

        result = Validator(tree_resolver).validate(shape, {"root": data}, max_depth=10)
        assert result.codes() == [IssueCode.DEPTH_EXCEEDED]

    def test_recursive_union_within_bound(self, tree_resolver):
        shape = ShapeBuilder().reference("root", "tree").build()
        result = Validator(tree_resolver).validate(shape, {"root": [[1], 2]}, max_depth=10)

        assert result.valid
        assert result.params == {"root": [[1], 2]}

    def test_branching_structure_reports_one_depth_issue(self):
        fork = ShapeBuilder().reference("a", "fork", optional=True).reference("b", "fork", optional=True).build()
        resolver = TypeRegistryBuilder().register_type("fork", fork).build().resolver()

        def full(levels):
            return {} if levels == 0 else {"a": full(levels - 1), "b": full(levels - 1)}

        result = Validator(resolver).validate(fork, full(12), max_depth=10)
        assert result.codes() == [IssueCode.DEPTH_EXCEEDED]
        assert Validator(resolver).validate(fork, full(9), max_depth=10).valid


class TestShapeLevel:
    """Whole-shape behavior: input kinds and closed shapes."""

    def test_none_is_treated_as_empty(self, person_shape):
        result = Validator().validate(person_shape, None)
        assert result.codes() == [IssueCode.FIELD_MISSING]

    def test_non_mapping_is_type_invalid(self, person_shape):
        result = Validator().validate(person_shape, "Ada")

        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.code is IssueCode.TYPE_INVALID
        assert issue.path == ()
        assert issue.meta["expected"] == "object"
        assert issue.meta["actual"] == "string"

    def test_unknown_field(self, person_shape):
        result = Validator().validate(person_shape, {"name": "Ada", "nick": "ada"})

        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.code is IssueCode.FIELD_UNKNOWN
        assert issue.path == ("nick",)
        assert issue.meta == {"allowed": ["name", "age"], "field": "nick"}
        assert result.params == {"name": "Ada"}

    def test_unknown_field_in_nested_object(self, address_shape):
        shape = ShapeBuilder().object("address", address_shape).build()
        result = Validator().validate(
            shape, {"address": {"street": "Main", "city": "Oslo", "floor": 3}}
        )

        assert result.codes() == [IssueCode.FIELD_UNKNOWN]
        assert result.issues[0].path == ("address", "floor")

    def test_integer_keys_are_normalized(self):
        shape = ShapeBuilder().string("1").build()
        result = Validator().validate(shape, {1: "one"})
        assert result.params == {"1": "one"}

    def test_siblings_validate_independently(self, person_shape):
        result = Validator().validate(person_shape, {"name": "Ada", "age": -1})

        assert result.codes() == [IssueCode.NUMBER_TOO_SMALL]
        assert result.params == {"name": "Ada"}

    def test_path_prefix(self, person_shape):
        result = Validator().validate(person_shape, {}, path=("body", "person"))
        assert result.issues[0].path == ("body", "person", "name")

    def test_module_level_validate(self, person_shape):
        assert validate(person_shape, {"name": "Ada"}).valid


class TestRequiredAndNull:
    """Required, default and nullable handling."""

    @pytest.mark.parametrize("value", [None, "", "   ", [], {}])
    def test_blank_values_are_missing(self, value):
        shape = ShapeBuilder().param("value", "string").build()
        result = Validator().validate(shape, {"value": value})
        assert result.codes() == [IssueCode.FIELD_MISSING]

    def test_false_is_present_for_booleans(self):
        shape = ShapeBuilder().boolean("active").build()
        result = Validator().validate(shape, {"active": False})

        assert result.valid
        assert result.params == {"active": False}

    def test_missing_boolean(self):
        shape = ShapeBuilder().boolean("active").build()
        assert Validator().validate(shape, {}).codes() == [IssueCode.FIELD_MISSING]

    def test_missing_enum_field_lists_values(self):
        shape = ShapeBuilder().string("status", enum=["draft", "sent"]).build()
        result = Validator().validate(shape, {})

        issue = result.issues[0]
        assert issue.code is IssueCode.VALUE_INVALID
        assert issue.meta["expected"] == ["draft", "sent"]

    def test_default_used_when_absent(self):
        shape = ShapeBuilder().string("status", optional=True, default="draft").build()
        assert Validator().validate(shape, {}).params == {"status": "draft"}

    def test_default_not_used_for_explicit_null(self):
        shape = (
            ShapeBuilder()
            .string("status", optional=True, nullable=True, default="draft")
            .build()
        )
        assert Validator().validate(shape, {"status": None}).params == {"status": None}

    def test_default_is_copied(self):
        default = ["a"]
        shape = ShapeBuilder().array("tags", of="string", optional=True, default=default).build()

        params = Validator().validate(shape, {}).params
        params["tags"].append("b")
        assert default == ["a"]

    def test_absent_optional_has_no_entry(self, person_shape):
        result = Validator().validate(person_shape, {"name": "Ada"})
        assert "age" not in result.params

    def test_null_on_non_nullable(self):
        shape = ShapeBuilder().string("note", optional=True).build()
        result = Validator().validate(shape, {"note": None})

        assert result.codes() == [IssueCode.VALUE_NULL]
        assert result.issues[0].path == ("note",)

    def test_null_on_nullable(self):
        shape = ShapeBuilder().string("note", optional=True, nullable=True).build()
        result = Validator().validate(shape, {"note": None})

        assert result.valid
        assert result.params == {"note": None}


class TestValueChecks:
    """Enum, literal, type and bound checks."""

    def test_inline_enum(self):
        shape = ShapeBuilder().string("status", enum=["draft", "sent"]).build()

        assert Validator().validate(shape, {"status": "sent"}).valid

        result = Validator().validate(shape, {"status": "paid"})
        issue = result.issues[0]
        assert issue.code is IssueCode.VALUE_INVALID
        assert issue.meta["expected"] == ["draft", "sent"]
        assert issue.meta["actual"] == "paid"

    def test_enum_matches_string_form(self):
        shape = ShapeBuilder().boolean("flag", enum=["true", "false"]).build()
        assert Validator().validate(shape, {"flag": True}).valid

    def test_enum_never_matches_bool_to_int(self):
        shape = ShapeBuilder().integer("level", enum=[0, 1]).build()
        result = Validator().validate(shape, {"level": True})
        assert result.codes() == [IssueCode.VALUE_INVALID]

    def test_named_enum(self, resolver):
        shape = ShapeBuilder().string("status", enum="status").build()
        validator = Validator(resolver)

        assert validator.validate(shape, {"status": "paid"}).valid

        result = validator.validate(shape, {"status": "void"})
        assert result.codes() == [IssueCode.VALUE_INVALID]
        assert result.issues[0].meta["expected"] == ["draft", "sent", "paid"]

    def test_unresolved_enum_skips_check(self):
        shape = ShapeBuilder().string("status", enum="unknown_enum").build()
        assert Validator().validate(shape, {"status": "anything"}).valid

    def test_literal(self):
        shape = ShapeBuilder().literal("kind", "card").build()

        assert Validator().validate(shape, {"kind": "card"}).params == {"kind": "card"}

        result = Validator().validate(shape, {"kind": "bank"})
        assert result.codes() == [IssueCode.VALUE_INVALID]
        assert result.issues[0].meta["expected"] == "card"

    def test_literal_bool_is_not_int(self):
        shape = ShapeBuilder().literal("one", 1).build()
        assert Validator().validate(shape, {"one": True}).codes() == [IssueCode.VALUE_INVALID]

    @pytest.mark.parametrize(
        "method,value,actual",
        [
            ("integer", "5", "string"),
            ("integer", True, "boolean"),
            ("integer", 1.5, "number"),
            ("string", 5, "integer"),
            ("boolean", "true", "string"),
            ("date", "2024-01-01", "string"),
        ],
    )
    def test_type_invalid(self, method, value, actual):
        shape = getattr(ShapeBuilder(), method)("value").build()
        result = Validator().validate(shape, {"value": value})

        assert result.codes() == [IssueCode.TYPE_INVALID]
        assert result.issues[0].meta["expected"] == method
        assert result.issues[0].meta["actual"] == actual

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), Decimal("NaN")])
    def test_non_finite_numbers_are_type_invalid(self, value):
        shape = ShapeBuilder().number("ratio", min=0, max=1).build()
        assert Validator().validate(shape, {"ratio": value}).codes() == [IssueCode.TYPE_INVALID]

    def test_numbers_accept_ints_and_decimals(self):
        shape = ShapeBuilder().number("ratio").decimal("price").build()
        result = Validator().validate(shape, {"ratio": 1, "price": Decimal("9.99")})
        assert result.valid

    def test_uuid_string(self):
        shape = ShapeBuilder().uuid("id").build()

        assert Validator().validate(shape, {"id": "123e4567-e89b-12d3-a456-426614174000"}).valid
        assert Validator().validate(shape, {"id": "not-a-uuid"}).codes() == [IssueCode.TYPE_INVALID]

    def test_string_length(self):
        shape = ShapeBuilder().string("code", min=3, max=5).build()

        short = Validator().validate(shape, {"code": "ab"})
        assert short.codes() == [IssueCode.STRING_TOO_SHORT]
        assert short.issues[0].meta["min"] == 3
        assert short.issues[0].meta["actual"] == 2

        long = Validator().validate(shape, {"code": "abcdef"})
        assert long.codes() == [IssueCode.STRING_TOO_LONG]
        assert long.issues[0].meta["max"] == 5

    def test_empty_optional_string_skips_length(self):
        shape = ShapeBuilder().string("code", optional=True, min=3).build()
        assert Validator().validate(shape, {"code": ""}).params == {"code": ""}

    def test_numeric_range(self):
        shape = ShapeBuilder().integer("qty", min=1, max=10).build()

        assert Validator().validate(shape, {"qty": 0}).codes() == [IssueCode.NUMBER_TOO_SMALL]
        assert Validator().validate(shape, {"qty": 11}).codes() == [IssueCode.NUMBER_TOO_LARGE]
        assert Validator().validate(shape, {"qty": 10}).valid

    def test_catalog_details(self, person_shape):
        catalog = MessageCatalog({"de": {"field_missing": "Pflichtfeld"}})
        result = Validator(catalog=catalog, locale="de").validate(person_shape, {})
        assert result.issues[0].detail == "Pflichtfeld"


class TestNestedStructures:
    """Objects, arrays and named types."""

    def test_nested_object_paths(self, address_shape):
        shape = ShapeBuilder().object("address", address_shape).build()
        result = Validator().validate(shape, {"address": {"city": "Oslo"}})

        assert result.codes() == [IssueCode.FIELD_MISSING]
        assert result.issues[0].path == ("address", "street")
        assert result.params == {}

    def test_nested_object_wrong_type(self, address_shape):
        shape = ShapeBuilder().object("address", address_shape).build()
        result = Validator().validate(shape, {"address": "Main St"})

        assert result.codes() == [IssueCode.TYPE_INVALID]
        assert result.issues[0].meta["expected"] == "object"

    def test_array_items_report_every_issue(self):
        shape = ShapeBuilder().array("nums", of="integer").build()
        result = Validator().validate(shape, {"nums": [1, "x", 3, "y"]})

        assert result.codes() == [IssueCode.TYPE_INVALID, IssueCode.TYPE_INVALID]
        assert [issue.path for issue in result.issues] == [("nums", 1), ("nums", 3)]

    def test_array_null_item(self):
        shape = ShapeBuilder().array("nums", of="integer").build()
        result = Validator().validate(shape, {"nums": [1, None]})

        assert result.codes() == [IssueCode.VALUE_NULL]
        assert result.issues[0].path == ("nums", 1)

    def test_array_too_small_skips_items(self):
        shape = ShapeBuilder().array("nums", of="integer", min=3).build()
        result = Validator().validate(shape, {"nums": ["x"]})

        assert result.codes() == [IssueCode.ARRAY_TOO_SMALL]
        assert result.issues[0].meta == {"min": 3, "actual": 1}

    def test_array_wrong_type(self):
        shape = ShapeBuilder().array("nums", of="integer").build()
        result = Validator().validate(shape, {"nums": "1,2"})

        assert result.codes() == [IssueCode.TYPE_INVALID]
        assert result.issues[0].meta["expected"] == "array"

    def test_array_without_element_spec(self):
        shape = ShapeBuilder().array("anything").build()
        result = Validator().validate(shape, {"anything": (1, "a", None)})
        assert result.params == {"anything": [1, "a", None]}

    def test_array_of_objects(self, address_shape):
        shape = ShapeBuilder().array("addresses", of=address_shape).build()
        result = Validator().validate(
            shape, {"addresses": [{"street": "Main", "city": "Oslo"}, {"street": "Side"}]}
        )

        assert result.codes() == [IssueCode.FIELD_MISSING]
        assert result.issues[0].path == ("addresses", 1, "city")

    def test_reference(self, resolver):
        shape = ShapeBuilder().reference("home", "address").build()
        validator = Validator(resolver)

        valid = validator.validate(shape, {"home": {"street": "Main", "city": "Oslo"}})
        assert valid.params == {"home": {"street": "Main", "city": "Oslo"}}

        invalid = validator.validate(shape, {"home": "Main"})
        assert invalid.codes() == [IssueCode.TYPE_INVALID]
        assert invalid.issues[0].meta["expected"] == "address"

    def test_unresolved_reference_accepts_value(self):
        shape = ShapeBuilder().reference("home", "address").build()
        result = Validator().validate(shape, {"home": "anything"})
        assert result.params == {"home": "anything"}


class TestUnions:
    """Discriminated and undiscriminated unions."""

    def test_discriminated_match_keeps_discriminator(self, payment_union):
        shape = ShapeBuilder().union("payment", payment_union).build()
        result = Validator().validate(shape, {"payment": {"kind": "card", "number": "4111"}})

        assert result.valid
        assert result.params == {"payment": {"number": "4111", "kind": "card"}}

    def test_discriminated_reports_all_variant_issues(self):
        union = (
            UnionBuilder(discriminator="kind")
            .variant(ShapeBuilder().string("number").string("exp"), tag="card")
            .build()
        )
        shape = ShapeBuilder().union("payment", union).build()
        result = Validator().validate(shape, {"payment": {"kind": "card"}})

        assert result.codes() == [IssueCode.FIELD_MISSING, IssueCode.FIELD_MISSING]
        assert [issue.path for issue in result.issues] == [
            ("payment", "number"),
            ("payment", "exp"),
        ]

    def test_missing_discriminator(self, payment_union):
        shape = ShapeBuilder().union("payment", payment_union).build()
        result = Validator().validate(shape, {"payment": {"number": "4111"}})

        assert result.codes() == [IssueCode.FIELD_MISSING]
        assert result.issues[0].path == ("payment", "kind")

    def test_discriminated_requires_mapping(self, payment_union):
        shape = ShapeBuilder().union("payment", payment_union).build()
        result = Validator().validate(shape, {"payment": "card"})

        assert result.codes() == [IssueCode.TYPE_INVALID]
        assert result.issues[0].meta["expected"] == "object"

    def test_optional_discriminator_falls_back_to_variant_order(self):
        union = (
            UnionBuilder(discriminator="kind")
            .variant(ShapeBuilder().string("kind", optional=True).string("x"), tag="a")
            .variant(ShapeBuilder().string("kind", optional=True).string("y"), tag="b")
            .build()
        )
        result = Validator().validate_union(union, {"y": "1"})

        assert result.valid
        assert result.params == {"y": "1"}

    def test_boolean_tag_matches_string_form(self):
        union = (
            UnionBuilder(discriminator="enabled")
            .variant(ShapeBuilder().string("reason"), tag="true")
            .variant(ShapeBuilder(), tag="false")
            .build()
        )
        result = Validator().validate_union(union, {"enabled": True, "reason": "x"})

        assert result.valid
        assert result.params == {"reason": "x", "enabled": True}

    def test_discriminated_reference_variants(self, resolver, address_shape):
        union = (
            UnionBuilder(discriminator="type")
            .variant("address", tag="postal")
            .variant(ShapeBuilder().string("email"), tag="email")
            .build()
        )
        result = Validator(resolver).validate_union(
            union, {"type": "postal", "street": "Main", "city": "Oslo"}
        )
        assert result.params == {"street": "Main", "city": "Oslo", "type": "postal"}

    def test_first_matching_variant_wins(self):
        union = UnionBuilder().variant("integer").variant("string").build()
        shape = ShapeBuilder().union("value", union).build()

        assert Validator().validate(shape, {"value": 5}).params == {"value": 5}
        assert Validator().validate(shape, {"value": "x"}).params == {"value": "x"}

    def test_no_variant_matches(self):
        union = UnionBuilder().variant("integer").variant("string").build()
        shape = ShapeBuilder().union("value", union).build()
        result = Validator().validate(shape, {"value": [1]})

        assert result.codes() == [IssueCode.TYPE_INVALID]
        assert result.issues[0].meta["expected"] == "integer | string"
        assert result.issues[0].meta["actual"] == "array"

    def test_boolean_wins_over_earlier_string(self):
        union = UnionBuilder().variant("string").variant("boolean").build()
        result = Validator().validate_union(union, "true")
        assert result.params == {"value": True}

    def test_field_unknown_is_most_specific(self):
        union = (
            UnionBuilder()
            .variant(ShapeBuilder().string("a", optional=True))
            .variant("integer")
            .build()
        )
        shape = ShapeBuilder().union("value", union).build()
        result = Validator().validate(shape, {"value": {"c": "1"}})

        assert result.codes() == [IssueCode.FIELD_UNKNOWN]
        assert result.issues[0].path == ("value", "c")

    def test_value_invalid_beats_type_invalid(self):
        union = UnionBuilder().variant("string", enum=["a", "b"]).variant("integer").build()
        result = Validator().validate_union(union, "z")

        assert result.codes() == [IssueCode.VALUE_INVALID]
        assert result.issues[0].meta["expected"] == ["a", "b"]

    def test_named_union(self, resolver):
        shape = ShapeBuilder().reference("payment", "payment").build()
        result = Validator(resolver).validate(shape, {"payment": {"kind": "bank", "iban": "NO93"}})
        assert result.params == {"payment": {"iban": "NO93", "kind": "bank"}}


class TestProperties:
    """Invariants that hold for any shape."""

    def test_idempotence(self, resolver, address_shape, payment_union):
        shape = (
            ShapeBuilder()
            .string("name")
            .integer("age", optional=True)
            .object("address", address_shape)
            .union("payment", payment_union)
            .array("tags", of="string", optional=True)
            .build()
        )
        data = {
            "name": "Ada",
            "address": {"street": "Main", "city": "Oslo"},
            "payment": {"kind": "card", "number": "4111"},
            "tags": ["a"],
        }
        validator = Validator(resolver)

        first = validator.validate(shape, data)
        second = validator.validate(shape, first.params)

        assert first.valid
        assert second.valid
        assert second.params == first.params

    @pytest.mark.parametrize("omitted", ["name", "city", "zip"])
    def test_required_totality(self, omitted):
        shape = ShapeBuilder().string("name").string("city").string("zip").build()
        data = {"name": "Ada", "city": "Oslo", "zip": "0150"}
        del data[omitted]

        result = Validator().validate(shape, data)
        assert result.codes() == [IssueCode.FIELD_MISSING]
        assert result.issues[0].path == (omitted,)

    def test_enum_round_trip(self):
        values = ["draft", "sent", "paid"]
        shape = ShapeBuilder().string("status", enum=values).build()
        for value in values:
            assert Validator().validate(shape, {"status": value}).params == {"status": value}

    def test_scoped_resolution_changes_meaning(self, address_shape):
        strict_address = ShapeBuilder().string("street").string("city").string("zip").build()
        registry = (
            TypeRegistryBuilder()
            .register_type("address", address_shape)
            .register_type("address", strict_address, scope=Scope.for_action("invoice", "create"))
            .build()
        )
        shape = ShapeBuilder().reference("home", "address").build()
        data = {"home": {"street": "Main", "city": "Oslo"}}

        assert Validator(registry.resolver()).validate(shape, data).valid
        inner = Validator(registry.resolver(Scope.request("invoice", "create"))).validate(shape, data)
        assert inner.codes() == [IssueCode.FIELD_MISSING]
