"""Integration tests that chart a replica simulation.

Run:
    pytest tests/integration/test_simulation_visualization.py -v

Output:
    test_output/test_simulation_visualization/<test_name>/
"""

from __future__ import annotations

import pytest

from lwwcrdt.simulation import Executive, assess_simulation
from lwwcrdt.simulation.plotting import plot_delivery_accounting, plot_invalid_operations


class TestSimulationVisualization:
    """Charts of a converged run."""

    def test_delivery_accounting_chart(self, small_config, test_output_dir):
        pytest.importorskip("matplotlib")
        executive = Executive(small_config)
        summary = executive.run()
        assess_simulation(executive)

        path = plot_delivery_accounting(summary, test_output_dir)
        assert path.exists()
        assert path.name == "delivery_accounting.png"
        assert path.stat().st_size > 0

    def test_invalid_operations_chart(self, small_config, test_output_dir):
        pytest.importorskip("matplotlib")
        summary = Executive(small_config).run()

        path = plot_invalid_operations(summary, test_output_dir / "charts")
        assert path.exists()
        assert path.parent.name == "charts"
