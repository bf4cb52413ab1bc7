"""
Unit tests for the capability table.
"""

import pytest

from pitwall.capabilities import CapabilityTable

pytestmark = pytest.mark.unit


class TestCapabilityTable:
    def test_declaration_order(self):
        table = CapabilityTable()

        assert table.ids() == [
            "circuit",
            "driver",
            "constructor",
            "race_results",
            "championship",
            "historical",
        ]
        assert table.order("race_results") == 3

    def test_unknown_capability_lists_available(self):
        with pytest.raises(KeyError, match="Available: circuit, driver"):
            CapabilityTable().get("weather")

    def test_timeout_overrides(self):
        table = CapabilityTable(timeouts={"driver": 5.0})

        assert table.get("driver").timeout_seconds == 5.0
        assert table.get("circuit").timeout_seconds == 30.0

    def test_alternatives_skip_unregistered(self):
        table = CapabilityTable(
            descriptors=[d for d in CapabilityTable() if d.id != "historical"]
        )

        assert table.alternatives_for("driver") == ("championship",)
        assert "historical" not in table

    def test_describe(self):
        described = CapabilityTable().describe()

        assert len(described) == 6
        assert described[1]["id"] == "driver"
        assert described[1]["name"] == "Driver Performance Agent"
        assert len(described[1]["keywords"]) == 5
