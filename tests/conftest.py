"""Shared fixtures for paramknobs tests."""

import pytest

from paramknobs import ShapeBuilder, TypeRegistryBuilder, UnionBuilder


@pytest.fixture
def person_shape():
    """name: required string; age: optional integer >= 0."""
    return ShapeBuilder().string("name").integer("age", optional=True, min=0).build()


@pytest.fixture
def payment_union():
    """Payments discriminated by ``kind``, with storage names for each tag."""
    return (
        UnionBuilder(discriminator="kind")
        .variant(
            ShapeBuilder().string("number").string("holder", optional=True),
            tag="card",
            store="CardPayment",
        )
        .variant(ShapeBuilder().string("iban"), tag="bank", store="BankPayment")
        .build()
    )


@pytest.fixture
def address_shape():
    return ShapeBuilder().string("street").string("city").string("zip", optional=True).build()


@pytest.fixture
def node_shape():
    """A self-referential node, linked through the registered ``node`` type."""
    return ShapeBuilder().string("label", optional=True).reference("child", "node", optional=True).build()


@pytest.fixture
def registry(address_shape, node_shape, payment_union):
    return (
        TypeRegistryBuilder()
        .register_type("address", address_shape)
        .register_type("node", node_shape)
        .register_union("payment", payment_union)
        .register_enum("status", ["draft", "sent", "paid"])
        .build()
    )


@pytest.fixture
def resolver(registry):
    return registry.resolver()


def _nest(levels, key="child"):
    data = {}
    for _ in range(levels):
        data = {key: data}
    return data


@pytest.fixture
def nest():
    """Build ``{key: {key: ... {}}}`` with the given number of wrappers."""
    return _nest


@pytest.fixture
def tree_resolver():
    """Resolver for ``tree``, a named union of an integer or an array of trees."""
    tree = UnionBuilder().variant("integer").variant("array", of="tree").build()
    return TypeRegistryBuilder().register_union("tree", tree).build().resolver()
