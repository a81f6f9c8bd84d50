import numpy as np
import pytest

from breastsim.errors import BreastSimError, PreconditionError
from breastsim.utils.geometry import Frame, closed_polyline_length, normalize


class TestFrame:
    def test_default_axes(self):
        frame = Frame.default()
        np.testing.assert_allclose(frame.up, [0.0, 1.0, 0.0])
        np.testing.assert_allclose(frame.forward, [0.0, 0.0, 1.0])
        np.testing.assert_allclose(frame.lateral, [1.0, 0.0, 0.0])

    def test_forward_is_orthogonalised(self):
        frame = Frame.from_axes([0.0, 2.0, 0.0], [0.0, 1.0, 1.0])
        assert float(frame.up @ frame.forward) == pytest.approx(0.0)
        np.testing.assert_allclose(frame.to_local([[0.3, 0.2, 0.1]]), [[0.3, 0.2, 0.1]])

    @pytest.mark.parametrize("forward", [[0.0, 1.0, 0.0], [0.0, -3.0, 0.0], [0.0, 0.0, 0.0]])
    def test_parallel_axes_are_rejected(self, forward):
        with pytest.raises(PreconditionError) as info:
            Frame.from_axes([0.0, 1.0, 0.0], forward)
        assert isinstance(info.value, BreastSimError)


def test_normalize_keeps_zero_vectors():
    out = normalize(np.array([[3.0, 4.0, 0.0], [0.0, 0.0, 0.0]]))
    np.testing.assert_allclose(out, [[0.6, 0.8, 0.0], [0.0, 0.0, 0.0]])


def test_closed_polyline_length():
    square = np.array([[0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0]], dtype=float)
    assert closed_polyline_length(square) == pytest.approx(4.0)
