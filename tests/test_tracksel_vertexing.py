"""Unit tests for single-track flags and the straight-line vertex fitter."""

from __future__ import annotations

import unittest

from prongsel import (
    CandidateType,
    ConfigurationError,
    CutTable,
    PtBinTable,
    SingleTrackCuts,
    StraightLineVertexFitter,
    Track,
    TrackSelector,
)
from prongsel.tracksel import TrackCut, rejection_key


class TestTrackSelector(unittest.TestCase):

    @staticmethod
    def _dca_cuts(dca_min: float = 0.01, dca_max: float = 1.0) -> SingleTrackCuts:
        return SingleTrackCuts(
            pt_bins=PtBinTable([0.0, 100.0]),
            dca_cuts=CutTable(["min_dcaxytoprimary", "max_dcaxytoprimary"], [[dca_min, dca_max]]),
        )

    def test_default_cuts_accept_central_tracks(self) -> None:
        result = TrackSelector().evaluate(Track("t", 1.0, 0.0, 0.5, sign=1))
        self.assertEqual(result.flags, 0b11)
        self.assertTrue(result.usable_for(CandidateType.TWO_PRONG))
        self.assertTrue(result.usable_for(CandidateType.THREE_PRONG))
        self.assertEqual(result.failed, ())

    def test_pt_cut_clears_one_candidate_type(self) -> None:
        selector = TrackSelector(cuts_2prong=SingleTrackCuts(pt_min=1.0))
        result = selector.evaluate(Track("t", 0.5, 0.0, 0.0, sign=-1))
        self.assertEqual(result.flags, 0b10)
        self.assertEqual(result.failed, ((CandidateType.TWO_PRONG, TrackCut.PT),))

    def test_eta_cut_on_absolute_value(self) -> None:
        for pz in (100.0, -100.0):
            with self.subTest(pz=pz):
                result = TrackSelector().evaluate(Track("t", 1.0, 0.0, pz, sign=1))
                self.assertEqual(result.flags, 0)

    def test_debug_reports_cuts_after_first_failure(self) -> None:
        track = Track("t", 0.5, 0.0, 100.0, sign=1)
        cuts = SingleTrackCuts(pt_min=1.0)
        quiet = TrackSelector(cuts_2prong=cuts).evaluate(track)
        self.assertEqual(
            quiet.failed,
            ((CandidateType.TWO_PRONG, TrackCut.PT), (CandidateType.THREE_PRONG, TrackCut.ETA)),
        )
        verbose = TrackSelector(cuts_2prong=cuts, debug=True).evaluate(track)
        self.assertEqual(verbose.flags, quiet.flags)
        self.assertIn((CandidateType.TWO_PRONG, TrackCut.ETA), verbose.failed)

    def test_dca_window_uses_absolute_impact_parameter(self) -> None:
        selector = TrackSelector(cuts_2prong=self._dca_cuts())
        self.assertEqual(selector.evaluate(Track("t", 1.0, 0.0, 0.0, sign=1, dca_xy=0.005)).flags, 0b10)
        self.assertEqual(selector.evaluate(Track("t", 1.0, 0.0, 0.0, sign=1, dca_xy=0.05)).flags, 0b11)
        self.assertEqual(selector.evaluate(Track("t", 1.0, 0.0, 0.0, sign=1, dca_xy=-0.05)).flags, 0b11)
        self.assertEqual(selector.evaluate(Track("t", 1.0, 0.0, 0.0, sign=1, dca_xy=1.5)).flags, 0b10)

    def test_dca_rejects_tracks_outside_its_bins(self) -> None:
        selector = TrackSelector(cuts_3prong=self._dca_cuts())
        result = selector.evaluate(Track("t", 200.0, 0.0, 0.0, sign=1, dca_xy=0.05))
        self.assertEqual(result.flags, 0b01)
        self.assertEqual(result.failed, ((CandidateType.THREE_PRONG, TrackCut.DCA),))

    def test_invalid_dca_configuration(self) -> None:
        with self.assertRaises(ConfigurationError):
            SingleTrackCuts(pt_bins=PtBinTable([0.0, 1.0]))
        with self.assertRaises(ConfigurationError):
            SingleTrackCuts(
                pt_bins=PtBinTable([0.0, 1.0]),
                dca_cuts=CutTable(["min_dcaxytoprimary"], [[0.01]]),
            )
        with self.assertRaises(ConfigurationError):
            SingleTrackCuts(
                pt_bins=PtBinTable([0.0, 1.0, 2.0]),
                dca_cuts=CutTable(["min_dcaxytoprimary", "max_dcaxytoprimary"], [[0.01, 1.0]]),
            )

    def test_rejection_key(self) -> None:
        self.assertEqual(rejection_key(CandidateType.TWO_PRONG, TrackCut.PT), "2prong:pt")
        self.assertEqual(rejection_key(CandidateType.THREE_PRONG, TrackCut.DCA), "3prong:dca")


class TestStraightLineVertexFitter(unittest.TestCase):

    def test_crossing_lines_meet_at_vertex(self) -> None:
        tracks = [
            Track("a", 2.0, 0.0, 0.0, sign=1, x=0.0, y=2.0, z=3.0),
            Track("b", 0.0, 5.0, 0.0, sign=-1, x=1.0, y=0.0, z=3.0),
        ]
        fit = StraightLineVertexFitter().fit(tracks)
        self.assertIsNotNone(fit)
        assert fit is not None
        for got, want in zip(fit.position, (1.0, 2.0, 3.0)):
            self.assertAlmostEqual(got, want, places=9)
        self.assertAlmostEqual(fit.chi2, 0.0, places=12)
        self.assertEqual(fit.momenta, ((2.0, 0.0, 0.0), (0.0, 5.0, 0.0)))

    def test_skew_lines_give_midpoint(self) -> None:
        tracks = [
            Track("a", 1.0, 0.0, 0.0, sign=1, x=0.0, y=0.0, z=0.0),
            Track("b", 0.0, 1.0, 0.0, sign=-1, x=0.0, y=0.0, z=2.0),
        ]
        fit = StraightLineVertexFitter().fit(tracks)
        assert fit is not None
        for got, want in zip(fit.position, (0.0, 0.0, 1.0)):
            self.assertAlmostEqual(got, want, places=9)
        self.assertAlmostEqual(fit.chi2, 2.0, places=9)

    def test_failures_return_none(self) -> None:
        fitter = StraightLineVertexFitter()
        parallel = [
            Track("a", 1.0, 0.0, 0.0, sign=1, y=0.0),
            Track("b", 2.0, 0.0, 0.0, sign=-1, y=1.0),
        ]
        self.assertIsNone(fitter.fit(parallel))
        self.assertIsNone(fitter.fit(parallel[:1]))
        zero = [Track("a", 0.0, 0.0, 0.0, sign=1), Track("b", 0.0, 1.0, 0.0, sign=-1)]
        self.assertIsNone(fitter.fit(zero))

    def test_vertex_beyond_max_radius_fails(self) -> None:
        tracks = [
            Track("a", 2.0, 0.0, 0.0, sign=1, x=0.0, y=2.0, z=3.0),
            Track("b", 0.0, 5.0, 0.0, sign=-1, x=1.0, y=0.0, z=3.0),
        ]
        self.assertIsNone(StraightLineVertexFitter(max_radius=1.0).fit(tracks))


if __name__ == "__main__":
    unittest.main()
