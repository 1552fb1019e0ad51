import sys
import os
src_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), "..", "..")
sys.path.append(src_path)
import numpy as np
import logging
from nmfkit.model.multdist import MultDistNMF
from nmfkit.model.multdiv import MultDivNMF
from nmfkit.model.als import ALSNMF
from nmfkit.metrics import relative_residue, kl_divergence

logger = logging.getLogger(__name__)


class TestUpdateRules:

    V = None
    W = None
    H = None

    @classmethod
    def setup_class(self):
        logger.info("Running Update Rules Test Setup")
        rng = np.random.default_rng(42)
        self.V = rng.random(size=(20, 15))
        self.W = rng.random(size=(20, 4))
        self.H = rng.random(size=(4, 15))

    def test_shapes(self):
        for rule in (MultDistNMF, MultDivNMF, ALSNMF):
            _W, _H = rule.update(V=self.V, W=self.W, H=self.H)
            assert _W.shape == (20, 4)
            assert _H.shape == (4, 15)

    def test_inputs_not_modified(self):
        _W = self.W.copy()
        _H = self.H.copy()
        for rule in (MultDistNMF, MultDivNMF, ALSNMF):
            rule.update(V=self.V, W=self.W, H=self.H)
        assert np.array_equal(_W, self.W)
        assert np.array_equal(_H, self.H)

    def test_decreasing_residue(self):
        initial = relative_residue(V=self.V, W=self.W, H=self.H)
        for rule in (MultDistNMF, MultDivNMF, ALSNMF):
            _W, _H = self.W, self.H
            residues = []
            for i in range(50):
                _W, _H = rule.update(V=self.V, W=_W, H=_H)
                residues.append(relative_residue(V=self.V, W=_W, H=_H))
            assert residues[-1] < initial
            assert residues[-1] < 0.6

    def test_decreasing_divergence(self):
        _W, _H = self.W, self.H
        d_list = []
        for i in range(100):
            _W, _H = MultDivNMF.update(V=self.V, W=_W, H=_H)
            d_list.append(kl_divergence(V=self.V, W=_W, H=_H))
        assert (d_list[0] - d_list[-1]) > 0
        assert np.all(np.diff(d_list) <= 1e-9)

    def test_zero_rows_and_columns(self):
        V = self.V.copy()
        V[3, :] = 0.0
        V[:, 7] = 0.0
        for rule in (MultDistNMF, MultDivNMF, ALSNMF):
            _W, _H = self.W, self.H
            for i in range(30):
                _W, _H = rule.update(V=V, W=_W, H=_H)
            assert np.all(np.isfinite(_W))
            assert np.all(np.isfinite(_H))
            assert _W.min() >= 0.0
            assert _H.min() >= 0.0

    def test_zero_matrix(self):
        V = np.zeros(shape=(6, 5))
        for rule in (MultDistNMF, MultDivNMF, ALSNMF):
            _W, _H = rule.update(V=V, W=self.W[:6], H=self.H[:, :5])
            assert np.all(np.isfinite(_W))
            assert np.all(np.isfinite(_H))
            assert _W.min() >= 0.0
            assert _H.min() >= 0.0

    def test_als_clamps_negative(self):
        rng = np.random.default_rng(3)
        V = rng.random(size=(12, 9))
        W = rng.random(size=(12, 6))
        H = rng.random(size=(6, 9))
        _W, _H = ALSNMF.update(V=V, W=W, H=H)
        assert _W.min() >= 0.0
        assert _H.min() >= 0.0

    def test_als_exact_factorization(self):
        rng = np.random.default_rng(8)
        W_true = rng.random(size=(12, 3))
        H_true = rng.random(size=(3, 9))
        V = np.matmul(W_true, H_true)
        _W, _H = ALSNMF.update(V=V, W=W_true, H=H_true)
        assert relative_residue(V=V, W=_W, H=_H) < 1e-8
