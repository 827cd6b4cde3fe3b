import matplotlib.pyplot as plt
import numpy as np
import pytest

from thyrosim_model.integrator import integrate
from thyrosim_model.odes import DerivativeModel, ModelVariant
from thyrosim_model.plotting import (
    NORMAL_RANGES,
    PlotSink,
    plot_delay_chain,
    plot_free_hormones,
    plot_hormones,
    within_range,
)
from thyrosim_model.sampling import (
    CHANNELS,
    FREE_CHANNELS,
    Sample,
    SampleSink,
    channel_values,
    free_hormone_values,
)
from thyrosim_model.simulation import simulate


@pytest.fixture(autouse=True)
def close_figures():
    yield
    plt.close("all")


class TestRanges:
    def test_flavours(self):
        assert set(NORMAL_RANGES) == {"Thyrosim", "ThyrosimJr"}
        assert NORMAL_RANGES["Thyrosim"]["TSH"] == (0.3, 4.0)
        assert NORMAL_RANGES["ThyrosimJr"]["T4"] == (59.0, 119.0)

    def test_within_range(self):
        assert within_range("FT4", 12.0)
        assert not within_range("TSH", 5.0)
        assert within_range("T3", 2.0, flavour="ThyrosimJr")

    def test_euthyroid_state_is_in_range(self, params, euthyroid_state):
        values = channel_values(euthyroid_state, params)
        for channel in CHANNELS:
            assert within_range(channel, values[channel])

    def test_euthyroid_free_hormones_are_in_range(self, params, euthyroid_state):
        s = Sample.from_state(0.0, euthyroid_state, params)
        values = free_hormone_values(s.ft4, s.ft3, params)
        for channel in FREE_CHANNELS:
            assert within_range(channel, values[channel])


class TestPlotSink:
    def test_is_a_sample_sink(self):
        assert isinstance(PlotSink(), SampleSink)

    def test_plot_from_integration(self, params, euthyroid_state):
        sink = PlotSink()
        _, samples = integrate(
            DerivativeModel(params, ModelVariant.HILL_RATIO), 0.0, euthyroid_state, 2.0, sink=sink
        )
        axes = sink.plot()
        assert len(axes) == len(CHANNELS)
        for ax, channel in zip(axes, CHANNELS):
            assert ax.get_title() == channel
            x, y = ax.lines[0].get_data()
            assert len(x) == len(samples)
            t, v = sink.series(channel)
            np.testing.assert_array_equal(y, v)

    def test_plot_on_given_axes(self):
        sink = PlotSink(time_unit="days")
        sink.add_sample("T4", 0.0, 80.0)
        fig, axes = plt.subplots(3, 1)
        out = sink.plot(axes)
        assert out[0] is axes[0]
        assert out[0].get_xlabel() == "Time [days]"


class TestResultPlots:
    @pytest.fixture
    def result(self, params):
        return simulate(params, ModelVariant.HILL_RATIO, t_span=(0.0, 2.0))

    def test_plot_hormones(self, result):
        axes = plot_hormones(result, in_days=False, label="euthyroid")
        assert [ax.get_title() for ax in axes] == list(CHANNELS)
        x, _ = axes[0].lines[0].get_data()
        np.testing.assert_array_equal(x, result.t)

    def test_plot_hormones_in_days(self, result):
        axes = plot_hormones(result)
        x, _ = axes[0].lines[0].get_data()
        np.testing.assert_allclose(x, result.t / 24.0)

    def test_free_hormones(self, result):
        axes = plot_free_hormones(result)
        assert [ax.get_title() for ax in axes] == list(FREE_CHANNELS)
        assert axes[0].get_ylabel() == "FT4 [ng/L]"
        _, ft4 = axes[0].lines[0].get_data()
        first = free_hormone_values(result.samples[0].ft4, result.samples[0].ft3, result.params)
        assert ft4[0] == pytest.approx(first["FT4"])
        for ax, channel in zip(axes, FREE_CHANNELS):
            # one trace plus the shaded normal range
            assert len(ax.lines) == 1
            assert len(ax.patches) == 1
            _, values = ax.lines[0].get_data()
            assert all(within_range(channel, v) for v in values)

    def test_free_hormones_without_ranges(self, result):
        axes = plot_free_hormones(result, flavour=None, in_days=True)
        assert not axes[1].patches
        assert axes[1].get_xlabel() == "Time [days]"

    def test_delay_chain(self, result):
        ax = plot_delay_chain(result)
        assert len(ax.lines) == 7
