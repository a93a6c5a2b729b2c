"""End-to-end tests from dbt artifacts to LookML files."""

import json
from pathlib import Path
from typing import Any

import lkml
import pytest

from dbt2lookml.config import GenerationOptions, GeneratorOptions
from dbt2lookml.exceptions import GenerationCancelledError
from dbt2lookml.generators.lookml import CancellationToken, GenerationResult, LookMLGenerator
from dbt2lookml.parsers.dbt import DbtParser
from dbt2lookml.plugins import MetricsPlugin, PluginRegistry

pytestmark = pytest.mark.integration


def _pipeline(
    manifest_path: Path,
    catalog_path: Path,
    output_dir: Path,
    use_semantic_models: bool = False,
    token: CancellationToken | None = None,
    **options: Any,
) -> GenerationResult:
    parser = DbtParser()
    models = parser.parse(manifest_path, catalog_path)
    registry = PluginRegistry([MetricsPlugin(use_semantic_models)])
    registry.fire_manifest_loaded(parser.manifest)
    generator = LookMLGenerator(
        GenerationOptions(output_dir=output_dir, **options),
        GeneratorOptions(),
        registry,
    )
    return generator.generate(models, token)


def _artifacts(tmp_path: Path, models: dict[str, dict[str, str]]) -> tuple[Path, Path]:
    """Write a manifest and catalog for ``{model: {column: type}}``."""
    manifest = {
        "metadata": {"adapter_type": "bigquery"},
        "nodes": {
            f"model.shop.{name}": {
                "name": name,
                "unique_id": f"model.shop.{name}",
                "resource_type": "model",
                "schema": "analytics",
                "path": f"{name}.sql",
                "columns": {},
            }
            for name in models
        },
    }
    catalog = {
        "nodes": {
            f"model.shop.{name}": {
                "metadata": {"type": "table", "schema": "analytics", "name": name},
                "columns": {
                    column: {"type": data_type, "name": column, "index": i}
                    for i, (column, data_type) in enumerate(columns.items())
                },
            }
            for name, columns in models.items()
        }
    }
    manifest_path = tmp_path / "manifest.json"
    catalog_path = tmp_path / "catalog.json"
    manifest_path.write_text(json.dumps(manifest))
    catalog_path.write_text(json.dumps(catalog))
    return manifest_path, catalog_path


def _load_views(path: Path) -> dict[str, dict[str, Any]]:
    return {view["name"]: view for view in lkml.load(path.read_text())["views"]}


def _by_name(fields: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    return {field["name"]: field for field in fields}


class TestScenarios:
    """Generation scenarios from single-model projects."""

    def test_simple_model(self, tmp_path: Path) -> None:
        """Test a flat model becomes a view with dimensions, group and count."""
        paths = _artifacts(
            tmp_path,
            {"orders": {"id": "INT64", "name": "STRING", "created_date": "DATE"}},
        )
        _pipeline(*paths, tmp_path / "out")

        view = _load_views(tmp_path / "out" / "orders.view.lkml")["orders"]
        assert view["sql_table_name"] == "`analytics.orders`"

        dimensions = _by_name(view["dimensions"])
        assert set(dimensions) == {"id", "name"}
        assert dimensions["id"]["type"] == "number"
        assert dimensions["name"]["type"] == "string"

        (group,) = view["dimension_groups"]
        assert group["name"] == "created"
        assert group["type"] == "time"
        assert group["timeframes"] == ["raw", "date", "week", "month", "quarter", "year"]

        assert view["measures"] == [{"name": "count", "type": "count"}]

    def test_pascal_case_and_structs(self, tmp_path: Path) -> None:
        """Test casing is kept in SQL and struct fields are flattened."""
        paths = _artifacts(
            tmp_path,
            {
                "products": {
                    "BuyingItem_GTIN": "STRING",
                    "Classification": "STRUCT<ItemGroup STRUCT<Code STRING>>",
                    "Classification.ItemGroup": "STRUCT<Code STRING>",
                    "Classification.ItemGroup.Code": "STRING",
                }
            },
        )
        _pipeline(*paths, tmp_path / "out")

        view = _load_views(tmp_path / "out" / "products.view.lkml")["products"]
        dimensions = _by_name(view["dimensions"])
        assert set(dimensions) == {"buying_item_gtin", "classification__item_group__code"}
        assert dimensions["buying_item_gtin"]["sql"] == "${TABLE}.BuyingItem_GTIN"

        code = dimensions["classification__item_group__code"]
        assert code["sql"] == "${TABLE}.Classification.ItemGroup.Code"
        assert code["group_label"] == "Classification Item Group"
        assert code["group_item_label"] == "Code"

    def test_array_of_struct(self, tmp_path: Path) -> None:
        """Test an array becomes a nested view joined through UNNEST."""
        paths = _artifacts(
            tmp_path,
            {
                "orders": {
                    "sales": "ARRAY<STRUCT<amount NUMERIC, day DATE>>",
                    "sales.amount": "NUMERIC",
                    "sales.day": "DATE",
                }
            },
        )
        _pipeline(*paths, tmp_path / "out")

        parsed = lkml.load((tmp_path / "out" / "orders.view.lkml").read_text())
        views = {view["name"]: view for view in parsed["views"]}

        reference = _by_name(views["orders"]["dimensions"])["sales"]
        assert reference["sql"] == "orders__sales"
        assert reference["hidden"] == "yes"

        nested = views["orders__sales"]
        assert "sql_table_name" not in nested
        amount = _by_name(nested["dimensions"])["amount"]
        assert amount["type"] == "number"
        assert amount["sql"] == "${TABLE}.amount"
        assert [g["name"] for g in nested["dimension_groups"]] == ["day"]

        (explore,) = parsed["explores"]
        (join,) = explore["joins"]
        assert join["name"] == "orders__sales"
        assert join["sql"] == "LEFT JOIN UNNEST(${orders.sales}) as orders__sales"
        assert join["relationship"] == "one_to_many"

    def test_conflict(self, tmp_path: Path) -> None:
        """Test the dimension group keeps the shared name."""
        paths = _artifacts(
            tmp_path, {"events": {"created_date": "DATE", "created": "STRING"}}
        )
        _pipeline(*paths, tmp_path / "out")

        view = _load_views(tmp_path / "out" / "events.view.lkml")["events"]
        assert [g["name"] for g in view["dimension_groups"]] == ["created"]
        assert [d["name"] for d in view["dimensions"]] == ["created_conflict_dimension"]

    def test_cancellation(self, tmp_path: Path) -> None:
        """Test a cancelled token stops generation before any file."""
        paths = _artifacts(tmp_path, {"a": {"id": "INT64"}, "b": {"id": "INT64"}})
        token = CancellationToken()
        token.cancel()

        with pytest.raises(GenerationCancelledError) as exc_info:
            _pipeline(*paths, tmp_path / "out", token=token)
        assert exc_info.value.files_generated == 0
        assert not list((tmp_path / "out").glob("*.lkml"))


class TestProjectFixture:
    """Generation over the sample project in the fixtures directory."""

    @pytest.fixture
    def artifacts(self, fixtures_dir: Path) -> tuple[Path, Path]:
        """Return the sample manifest and catalog."""
        return fixtures_dir / "manifest.json", fixtures_dir / "catalog.json"

    def test_layout(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test files mirror the dbt project directories."""
        result = _pipeline(*artifacts, tmp_path)

        assert result.models_processed == 4
        assert [p.relative_to(tmp_path).as_posix() for p in result.files] == [
            "marts/customers.view.lkml",
            "finance/invoices.view.lkml",
            "marts/orders.view.lkml",
            "marts/catalog/products.view.lkml",
        ]
        for path in result.files:
            assert path.exists()

    def test_flatten(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test flatten writes every file into the output directory."""
        result = _pipeline(*artifacts, tmp_path, flatten=True)
        assert sorted(p.name for p in tmp_path.iterdir()) == [
            "customers.view.lkml",
            "invoices.view.lkml",
            "orders.view.lkml",
            "products.view.lkml",
        ]
        assert result.files_generated == 4

    def test_orders(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test metadata, catalog-only columns and metadata measures."""
        _pipeline(*artifacts, tmp_path)
        view = _load_views(tmp_path / "marts" / "orders.view.lkml")["orders"]

        assert view["label"] == "Orders"
        assert view["description"] == "One row per order"
        dimensions = _by_name(view["dimensions"])
        assert set(dimensions) == {"amount", "id", "status"}
        assert dimensions["id"]["primary_key"] == "yes"
        assert dimensions["amount"]["value_format_name"] == "usd"
        assert dimensions["status"]["description"] == "Fulfilment status"
        assert [m["name"] for m in view["measures"]] == ["avg_amount", "count"]
        assert view["measures"][0]["sql"] == "${TABLE}.amount"

    def test_invoices(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test arrays of struct and of scalars in one model."""
        _pipeline(*artifacts, tmp_path)
        content = (tmp_path / "finance" / "invoices.view.lkml").read_text()
        parsed = lkml.load(content)
        views = {view["name"]: view for view in parsed["views"]}

        assert list(views) == ["invoices", "invoices__sales", "invoices__tags"]
        assert views["invoices"]["sql_table_name"] == "`finance.invoices`"
        base_dimensions = _by_name(views["invoices"]["dimensions"])
        assert set(base_dimensions) == {"invoice_id", "sales", "tags"}
        assert base_dimensions["tags"]["sql"] == "invoices__tags"

        tags = _by_name(views["invoices__tags"]["dimensions"])
        assert tags["invoices__tags"]["sql"] == "invoices__tags"
        assert tags["invoices__tags"]["hidden"] == "yes"

        joins = parsed["explores"][0]["joins"]
        assert [j["sql"] for j in joins] == [
            "LEFT JOIN UNNEST(${invoices.sales}) as invoices__sales",
            "LEFT JOIN UNNEST(${invoices.tags}) as invoices__tags",
        ]
        assert parsed["explores"][0]["hidden"] == "yes"

    def test_products(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test casing, struct flattening and timestamp groups."""
        _pipeline(*artifacts, tmp_path)
        view = _load_views(tmp_path / "marts" / "catalog" / "products.view.lkml")["products"]

        dimensions = _by_name(view["dimensions"])
        assert dimensions["buying_item_gtin"]["sql"] == "${TABLE}.BuyingItem_GTIN"
        assert dimensions["buying_item_gtin"]["description"] == "Global trade item number"
        assert "classification" not in dimensions

        (group,) = view["dimension_groups"]
        assert group["name"] == "updated"
        assert group["sql"] == "${TABLE}.UpdatedTimestamp"
        assert group["timeframes"][:3] == ["raw", "time", "date"]

    def test_missing_catalog_entry(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test a model absent from the catalog keeps its manifest columns."""
        _pipeline(*artifacts, tmp_path)
        view = _load_views(tmp_path / "marts" / "customers.view.lkml")["customers"]
        assert view["dimensions"][0]["name"] == "customer_id"
        assert view["dimensions"][0]["type"] == "number"

    def test_semantic_layer(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test semantic measures, metrics and sidecar views."""
        result = _pipeline(*artifacts, tmp_path, use_semantic_models=True)

        marts = tmp_path / "marts"
        assert [p.name for p in result.files if p.parent == marts] == [
            "customers.view.lkml",
            "orders.view.lkml",
            "orders__metrics.view.lkml",
            "orders__cumulative.view.lkml",
        ]

        parsed = lkml.load((marts / "orders.view.lkml").read_text())
        orders = {view["name"]: view for view in parsed["views"]}["orders"]
        assert [m["name"] for m in orders["measures"]] == [
            "total_amount",
            "order_count",
            "avg_amount",
            "count",
        ]
        cumulative_join = parsed["explores"][0]["joins"][0]
        assert cumulative_join["sql_on"] == "${orders.id} = ${orders__cumulative.id}"
        assert cumulative_join["relationship"] == "one_to_one"

        metrics = lkml.load((marts / "orders__metrics.view.lkml").read_text())
        assert metrics["includes"] == ["orders.view.lkml"]
        measures = _by_name(metrics["views"][0]["measures"])
        assert measures["revenue"]["sql"] == "${total_amount}"
        assert measures["average_order_value"]["sql"] == (
            "${revenue} / NULLIF(${order_count}, 0)"
        )

        cumulative = _load_views(marts / "orders__cumulative.view.lkml")["orders__cumulative"]
        assert "SUM(amount) OVER (ORDER BY created_date) AS running_revenue" in (
            cumulative["derived_table"]["sql"]
        )


class TestProperties:
    """Whole-run invariants."""

    @pytest.fixture
    def artifacts(self, fixtures_dir: Path) -> tuple[Path, Path]:
        """Return the sample manifest and catalog."""
        return fixtures_dir / "manifest.json", fixtures_dir / "catalog.json"

    def test_idempotent(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test two runs produce byte-identical files."""
        first = _pipeline(*artifacts, tmp_path / "first", use_semantic_models=True)
        second = _pipeline(*artifacts, tmp_path / "second", use_semantic_models=True)

        assert len(first.files) == len(second.files)
        for a, b in zip(first.files, second.files):
            assert a.relative_to(tmp_path / "first") == b.relative_to(tmp_path / "second")
            assert a.read_bytes() == b.read_bytes()

    def test_field_names_disjoint(self, artifacts: tuple[Path, Path], tmp_path: Path) -> None:
        """Test every view keeps dimension and group names apart and has a count."""
        result = _pipeline(*artifacts, tmp_path)
        for path in result.files:
            parsed = lkml.load(path.read_text())
            for view in parsed["views"]:
                dimensions = {d["name"] for d in view.get("dimensions", [])}
                groups = {g["name"] for g in view.get("dimension_groups", [])}
                assert not dimensions & groups
                if "sql_table_name" in view:
                    assert {"name": "count", "type": "count"} in view["measures"]

    def test_time_columns_only_groups(
        self, artifacts: tuple[Path, Path], tmp_path: Path
    ) -> None:
        """Test time columns never produce plain dimensions."""
        result = _pipeline(*artifacts, tmp_path)
        for path in result.files:
            for view in lkml.load(path.read_text())["views"]:
                names = {d["name"] for d in view.get("dimensions", [])}
                assert not names & {"created_date", "updated_timestamp", "day"}
