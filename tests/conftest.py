import matplotlib

matplotlib.use("Agg")

import dataclasses

import pytest

from thyrosim_model.parameters import get_default_parameters
from thyrosim_model.state_vector import StateIx, get_initial_state, zero_state


@pytest.fixture
def params():
    return get_default_parameters()


@pytest.fixture
def euthyroid_state():
    return get_initial_state()


@pytest.fixture
def quiescent_params(params):
    """No secretion and no infusion: every flux out of the zero state vanishes."""
    return dataclasses.replace(
        params, p30=0.0, dial1=0.0, dial2=0.0, dial3=0.0, dial4=0.0, inf1=0.0, inf4=0.0
    )


@pytest.fixture
def loaded_delay_state():
    """Zero hormone pools and plasma TSH, with every delay stage at the same level."""
    q = zero_state()
    for ix in range(StateIx.DELAY_1, StateIx.DELAY_6 + 1):
        q[ix] = 3.0
    return q


@pytest.fixture
def params_file(tmp_path, params):
    """A properties file holding the default parameter set."""
    lines = ["# default euthyroid parameters", f"kdelay = {params.kdelay!r}"]
    for i in range(1, 49):
        lines.append(f"p{i}={getattr(params, f'p{i}')!r}")
    path = tmp_path / "euthyroid.params"
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
