import io

import numpy as np
import pytest

from thyrosim_model.free_hormones import free_hormones
from thyrosim_model.integrator import integrate
from thyrosim_model.odes import DerivativeModel, ModelVariant
from thyrosim_model.output import N_FIELDS, format_line, format_sample, write_samples
from thyrosim_model.sampling import Sample


class TestFormatSample:
    def test_field_count(self, params, euthyroid_state):
        line = format_sample(Sample.from_state(1.25, euthyroid_state, params))
        assert N_FIELDS == 22
        assert line.endswith("\n")
        assert len(line.split()) == 22

    def test_fields(self, params, euthyroid_state):
        line = format_sample(Sample.from_state(1.25, euthyroid_state, params))
        fields = [float(f) for f in line.split()]
        assert fields[0] == 1.25
        assert fields[1:20] == euthyroid_state.tolist()
        ft4, ft3 = free_hormones(euthyroid_state[0], euthyroid_state[3], params)
        assert fields[20] == ft4
        assert fields[21] == ft3

    def test_round_trip_precision(self, params):
        state = np.full(19, 0.1 + 0.2)
        line = format_sample(Sample.from_state(1 / 3, state, params))
        fields = line.split()
        assert float(fields[0]) == 1 / 3
        assert float(fields[1]) == 0.1 + 0.2

    def test_format_line_matches_sample(self, params, euthyroid_state):
        sample = Sample.from_state(2.0, euthyroid_state, params)
        assert format_line(2.0, euthyroid_state, params) == format_sample(sample)

    def test_format_line_rejects_short_state(self, params):
        with pytest.raises(ValueError):
            format_line(0.0, [0.0] * 18, params)


class TestWriteSamples:
    def test_one_line_per_sample(self, params, euthyroid_state):
        model = DerivativeModel(params, ModelVariant.HILL_PRODUCT)
        _, samples = integrate(model, 0.0, euthyroid_state, 1.0)
        buf = io.StringIO()
        n = write_samples(samples, buf)
        lines = buf.getvalue().splitlines()
        assert n == len(samples) == len(lines)
        assert all(len(line.split()) == N_FIELDS for line in lines)
