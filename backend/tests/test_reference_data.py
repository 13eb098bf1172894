"""Tests for the reference data loader and its lookups."""
import pytest

from berthboard.modules.reference_data import load_reference_data


def _write(tmp_path, text):
    path = tmp_path / "reference.yaml"
    path.write_text(text)
    return path


class TestShippedReferenceData:
    def test_loads(self, reference):
        assert {t.id for t in reference.tenants} == {"tenant1", "tenant2", "tenant3", "tenant4"}
        assert len(reference.users) == 4
        assert len(reference.terminals) == 4
        assert len(reference.berths) == 9

    def test_every_berth_points_at_a_terminal(self, reference):
        terminal_ids = {t.id for t in reference.terminals}
        assert all(b.terminal_id in terminal_ids for b in reference.berths)

    def test_lookups(self, reference):
        assert reference.get_berth("berth3").max_draft == 14.0
        assert reference.get_terminal("terminal4").tenant_id == "tenant2"
        assert reference.get_tenant("nope") is None

    def test_terminals_for_tenant(self, reference):
        assert [t.id for t in reference.terminals_for_tenant("tenant2")] == ["terminal4"]
        assert len(reference.terminals_for_tenant(None)) == 4

    def test_berths_for_terminal_ordered_by_position(self, reference):
        assert [b.id for b in reference.berths_for_terminal("terminal1")] == ["berth1", "berth2", "berth3"]

    def test_active_only(self, reference):
        assert [b.id for b in reference.berths_for_terminal("terminal4", active_only=True)] == ["berth8"]

    def test_berths_for_tenant(self, reference):
        assert {b.id for b in reference.berths_for_tenant("tenant2")} == {"berth8", "berth9"}


class TestLoaderErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_reference_data(tmp_path / "missing.yaml")

    def test_dangling_berth(self, tmp_path):
        path = _write(tmp_path, """
terminals:
  - {id: T1, name: One, tenant_id: x}
berths:
  - {id: B1, name: Lost, terminal_id: T9, length_m: 100}
""")
        with pytest.raises(ValueError, match="unknown terminals"):
            load_reference_data(path)

    def test_invalid_berth_length(self, tmp_path):
        path = _write(tmp_path, """
terminals:
  - {id: T1, name: One, tenant_id: x}
berths:
  - {id: B1, name: Zero, terminal_id: T1, length_m: 0}
""")
        with pytest.raises(ValueError, match="Invalid berths entry 'B1'"):
            load_reference_data(path)

    def test_empty_file(self, tmp_path):
        data = load_reference_data(_write(tmp_path, ""))
        assert data.berths == []
        assert data.users == []
