"""
Tests for CLI Commands

Runs the typer application against an item file written to a temporary
directory.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from facetfilter.cli import __version__
from facetfilter.cli.main import app, load_items, parse_range_option



@pytest.fixture
def items_file(tmp_path, monkeypatch, items):
    """Item list as JSON, with the working directory moved away from any config file."""
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "items.json"
    path.write_text(json.dumps([{"id": item_id, **record} for item_id, record in items.items()]))
    return path


@pytest.mark.cli
class TestQueryCommand:
    """Test the query command."""

    def setup_method(self):
        self.runner = CliRunner()

    def query_json(self, items_file, *args):
        result = self.runner.invoke(app, ["query", str(items_file), "--json", *args])
        assert result.exit_code == 0, result.output
        return json.loads(result.stdout)

    def test_no_options_shows_everything(self, items_file):
        data = self.query_json(items_file)
        assert data["page_ids"] == ["1", "2", "3", "4", "5", "6"]
        assert data["counts"] == {"total": 6, "visible": 6}
        assert data["params"] == {}

    def test_filters(self, items_file):
        data = self.query_json(items_file, "-f", "category:tech")
        assert data["page_ids"] == ["1", "3", "5"]
        assert data["params"] == {"category": "tech"}

    def test_and_mode(self, items_file):
        data = self.query_json(items_file, "-f", "category:tech", "-f", "price:low", "--mode", "and")
        assert data["page_ids"] == ["5"]

    def test_params(self, items_file):
        data = self.query_json(items_file, "--params", "category=tech,food&sort=price,desc")
        assert data["ordered_ids"] == ["3", "1", "2", "4", "5"]

    def test_range_and_sort(self, items_file):
        data = self.query_json(items_file, "--range", "price=25,1200", "--sort", "price,desc")
        assert data["ordered_ids"] == ["1", "2", "4"]
        assert data["params"] == {"range_price": "25,1200", "sort": "price,desc"}

    def test_search(self, items_file):
        assert self.query_json(items_file, "-s", "oven")["page_ids"] == ["2"]

    def test_pagination(self, items_file):
        data = self.query_json(items_file, "--per-page", "4", "--page", "2")
        assert data["page_ids"] == ["5", "6"]
        assert data["pagination"]["total_pages"] == 2

    def test_table_output(self, items_file):
        result = self.runner.invoke(app, ["query", str(items_file), "-f", "category:tech"])
        assert result.exit_code == 0
        assert "Laptop Pro" in result.output
        assert "Pizza Oven" not in result.output
        assert "Showing 3 of 6 items" in result.output
        assert "Query: category=tech" in result.output

    def test_yaml_items(self, tmp_path, monkeypatch, items):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "items.yaml"
        path.write_text(yaml.dump(items))
        result = self.runner.invoke(app, ["query", str(path), "--json", "-f", "price:low"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["page_ids"] == ["4", "5"]

    def test_invalid_items_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "items.json"
        path.write_text("[1, 2, 3]")
        result = self.runner.invoke(app, ["query", str(path)])
        assert result.exit_code == 1
        assert "Could not load items" in result.output

    def test_invalid_range_option(self, items_file):
        result = self.runner.invoke(app, ["query", str(items_file), "--range", "price"])
        assert result.exit_code == 2

    def test_missing_config_file(self, items_file):
        result = self.runner.invoke(app, ["query", str(items_file), "-c", "missing.yaml"])
        assert result.exit_code == 2
        assert "Configuration file not found" in result.output

    def test_config_file(self, items_file, tmp_path):
        config = tmp_path / "custom.yaml"
        config.write_text(yaml.dump({"pagination": {"items_per_page": 2}}))
        data = self.query_json(items_file, "-c", str(config))
        assert data["page_ids"] == ["1", "2"]
        assert data["params"] == {}


@pytest.mark.cli
class TestOtherCommands:
    """Test normalize, schema, init-config and --version."""

    def setup_method(self):
        self.runner = CliRunner()

    def test_version(self):
        result = self.runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_normalize(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = self.runner.invoke(app, ["normalize", "?page=1&category=tech,food&sort=price"])
        assert result.exit_code == 0
        assert result.stdout.strip() == "category=food,tech&sort=price,asc"

    def test_normalize_malformed(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        """The skipped entry is logged; only the canonical string goes to stdout."""
        result = self.runner.invoke(app, ["normalize", "page=abc&search=Pizza"])
        assert result.exit_code == 0
        assert result.stdout.strip().splitlines()[-1] == "search=pizza"
        assert "Skipping parameter page='abc'" in result.output

    def test_schema(self):
        result = self.runner.invoke(app, ["schema"])
        assert result.exit_code == 0
        assert json.loads(result.stdout)["title"] == "EngineConfig"

    def test_init_config(self, tmp_path):
        output = tmp_path / "facetfilter.yaml"
        result = self.runner.invoke(app, ["init-config", str(output)])
        assert result.exit_code == 0
        assert yaml.safe_load(output.read_text())["pagination"]["items_per_page"] == 10

        result = self.runner.invoke(app, ["init-config", str(output)])
        assert result.exit_code == 1

        result = self.runner.invoke(app, ["init-config", str(output), "--force"])
        assert result.exit_code == 0


class TestHelpers:
    def test_load_items_mapping(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text(json.dumps({"a": {"title": "x"}}))
        assert load_items(path) == [{"title": "x", "id": "a"}]

    def test_load_items_rejects_scalars(self, tmp_path):
        path = tmp_path / "items.json"
        path.write_text('"just a string"')
        with pytest.raises(ValueError):
            load_items(path)

    def test_parse_range_option(self):
        assert parse_range_option("price= 10 , 50") == ("price", "10", "50")
