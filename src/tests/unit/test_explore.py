"""Tests for explore generation."""

from dbt2lookml.generators.columns import ColumnClassifier
from dbt2lookml.generators.explore import ExploreGenerator, nested_view_name
from dbt2lookml.schemas.dbt import DbtModel, DbtModelColumn
from dbt2lookml.types import JoinType, RelationshipType


def _model(**kwargs: object) -> DbtModel:
    return DbtModel(
        name="customer_orders",
        unique_id="model.shop.customer_orders",
        columns={
            "Sales": DbtModelColumn(name="Sales", data_type="ARRAY<STRUCT<sku STRING>>"),
            "Sales.sku": DbtModelColumn(name="Sales.sku", data_type="STRING"),
            "LineItems": DbtModelColumn(name="LineItems", data_type="ARRAY<STRING>"),
        },
        **kwargs,
    ).process()


class TestExploreGenerator:
    """Test cases for ExploreGenerator."""

    def test_nested_view_name(self) -> None:
        """Test nested view names join the base name and the array name."""
        assert nested_view_name("orders", "Classification.ItemGroups") == (
            "orders__classification__item_groups"
        )

    def test_unnest_joins(self) -> None:
        """Test one UNNEST join per kept array, in path order."""
        model = _model()
        collection = ColumnClassifier().classify(model)
        explore = ExploreGenerator().generate_explore(model, "customer_orders", collection)

        assert explore.name == "customer_orders"
        assert explore.view_name == "customer_orders"
        assert explore.hidden is True
        assert [j.name for j in explore.joins] == [
            "customer_orders__line_items",
            "customer_orders__sales",
        ]

        line_items = explore.joins[0]
        assert line_items.sql == (
            "LEFT JOIN UNNEST(${customer_orders.line_items}) as customer_orders__line_items"
        )
        assert line_items.view_label == "Customer Orders: Line Items"
        assert line_items.relationship == RelationshipType.ONE_TO_MANY

    def test_view_label_uses_base_name(self) -> None:
        """Test the join label follows the base view name, not the model name."""
        model = _model()
        collection = ColumnClassifier().classify(model)
        explore = ExploreGenerator().generate_explore(model, "orders_tbl", collection)
        assert explore.joins[0].view_label == "Orders Tbl: Line Items"

    def test_renamed_reference_dimension(self) -> None:
        """Test the UNNEST join follows a renamed reference dimension."""
        model = _model()
        collection = ColumnClassifier().classify(model)
        explore = ExploreGenerator().generate_explore(
            model,
            "customer_orders",
            collection,
            {"customer_orders__line_items": "line_items_conflict_dimension"},
        )
        assert explore.joins[0].sql == (
            "LEFT JOIN UNNEST(${customer_orders.line_items_conflict_dimension}) "
            "as customer_orders__line_items"
        )
        assert explore.joins[1].sql == (
            "LEFT JOIN UNNEST(${customer_orders.sales}) as customer_orders__sales"
        )

    def test_meta_joins_follow_unnest_joins(self) -> None:
        """Test join hints from model metadata are appended."""
        model = _model(
            meta={
                "looker": {
                    "joins": [
                        {
                            "join_model": "Customers",
                            "sql_on": "${customer_orders.customer_id} = ${customers.id}",
                            "type": "left_outer",
                            "relationship": "many_to_one",
                        },
                        {"sql_on": "1 = 1"},
                    ]
                }
            }
        )
        collection = ColumnClassifier().classify(model)
        explore = ExploreGenerator().generate_explore(model, "customer_orders", collection)

        join = explore.joins[-1]
        assert len(explore.joins) == 3
        assert join.name == "customers"
        assert join.type == JoinType.LEFT_OUTER
        assert join.relationship == RelationshipType.MANY_TO_ONE
        assert join.sql_on == "${customer_orders.customer_id} = ${customers.id}"

    def test_no_meta(self) -> None:
        """Test models without metadata have no extra joins."""
        model = _model()
        assert ExploreGenerator().generate_meta_joins(model) == []
