import pytest
from typer.testing import CliRunner

from cli import app

runner = CliRunner()


@pytest.mark.unit
class TestCli:

    def test_list_field_types(self):
        """Test field types are printed per category."""
        result = runner.invoke(app, ["list-field-types"])

        assert result.exit_code == 0
        assert "basic:" in result.output
        assert "repeater" in result.output
        assert "(sub fields)" in result.output

    def test_list_location_types(self):
        """Test location types are printed with their options."""
        result = runner.invoke(app, ["list-location-types"])

        assert result.exit_code == 0
        assert "post_type" in result.output
        assert "page_template" in result.output

    def test_match_context_invalid_json(self):
        """Test a malformed context exits with code 1."""
        result = runner.invoke(app, ["match-context", "--context", "{not json"])

        assert result.exit_code == 1

    def test_import_missing_file(self, tmp_path):
        """Test a missing import file is rejected by option validation."""
        result = runner.invoke(app, ["import-fieldset", "--file", str(tmp_path / "missing.json")])

        assert result.exit_code != 0
