"""DrowsinessTracker 单元测试"""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from conftest import CLOSED_EAR, OPEN_EAR, build_landmarks
from evaluators.drowsiness_tracker import DrowsinessTracker, determine_status
from models.data_models import DrowsinessStatus, FrameDecision, TrackingState

OPEN = build_landmarks(OPEN_EAR)
CLOSED = build_landmarks(CLOSED_EAR)


def _feed(tracker, frames, n):
    decision = None
    for _ in range(n):
        decision = tracker.process_frame(frames)
    return decision


@pytest.fixture
def tracker():
    return DrowsinessTracker(ear_threshold=0.25, drowsy_frame_threshold=15)


class TestDetermineStatus:
    def test_below_threshold_is_awake(self):
        assert determine_status(0, 15) is DrowsinessStatus.AWAKE
        assert determine_status(14, 15) is DrowsinessStatus.AWAKE

    def test_at_threshold_is_drowsy(self):
        assert determine_status(15, 15) is DrowsinessStatus.DROWSY
        assert determine_status(29, 15) is DrowsinessStatus.DROWSY

    def test_double_threshold_is_sleeping(self):
        assert determine_status(30, 15) is DrowsinessStatus.SLEEPING
        assert determine_status(500, 15) is DrowsinessStatus.SLEEPING

    @given(
        frames=st.integers(min_value=0, max_value=1000),
        threshold=st.integers(min_value=1, max_value=100),
    )
    def test_status_is_monotonic_in_frames(self, frames, threshold):
        order = [DrowsinessStatus.AWAKE, DrowsinessStatus.DROWSY, DrowsinessStatus.SLEEPING]
        now = order.index(determine_status(frames, threshold))
        later = order.index(determine_status(frames + 1, threshold))
        assert later >= now


class TestProcessFrame:
    def test_returns_frame_decision(self, tracker):
        decision = tracker.process_frame(OPEN)
        assert isinstance(decision, FrameDecision)
        assert decision.ear == pytest.approx(OPEN_EAR)
        assert decision.left_ear == pytest.approx(OPEN_EAR)
        assert decision.right_ear == pytest.approx(OPEN_EAR)
        assert decision.status is DrowsinessStatus.AWAKE
        assert decision.is_drowsy is False
        assert decision.blink_count == 0
        assert decision.consecutive_frames == 0

    def test_status_transitions(self, tracker):
        statuses = [tracker.process_frame(CLOSED).status for _ in range(30)]
        assert all(s is DrowsinessStatus.AWAKE for s in statuses[:14])
        assert statuses[14] is DrowsinessStatus.DROWSY
        assert all(s is DrowsinessStatus.DROWSY for s in statuses[14:29])
        assert statuses[29] is DrowsinessStatus.SLEEPING

    def test_drowsy_flag_follows_status(self, tracker):
        decision = _feed(tracker, CLOSED, 14)
        assert decision.is_drowsy is False
        assert tracker.process_frame(CLOSED).is_drowsy is True
        decision = _feed(tracker, CLOSED, 15)
        assert decision.status is DrowsinessStatus.SLEEPING
        assert decision.is_drowsy is True

    def test_open_frame_resets_counter_and_status(self, tracker):
        _feed(tracker, CLOSED, 35)
        decision = tracker.process_frame(OPEN)
        assert decision.consecutive_frames == 0
        assert decision.status is DrowsinessStatus.AWAKE
        assert decision.is_drowsy is False

    def test_open_frame_before_threshold_restarts_count(self, tracker):
        _feed(tracker, CLOSED, 10)
        assert tracker.process_frame(OPEN).status is DrowsinessStatus.AWAKE
        decision = tracker.process_frame(CLOSED)
        assert decision.consecutive_frames == 1
        decision = _feed(tracker, CLOSED, 13)
        assert decision.consecutive_frames == 14
        assert decision.status is DrowsinessStatus.AWAKE

    def test_ear_equal_to_threshold_is_open(self):
        tracker = DrowsinessTracker(ear_threshold=0.0)
        # 完全闭合的眼睛 EAR 为 0，等于阈值时不算闭眼
        decision = tracker.process_frame(build_landmarks(0.0))
        assert decision.ear == 0.0
        assert decision.consecutive_frames == 0
        assert decision.blink_count == 0

    def test_custom_threshold(self):
        tracker = DrowsinessTracker(ear_threshold=0.35, drowsy_frame_threshold=3)
        decision = _feed(tracker, OPEN, 3)
        # 0.30 < 0.35，睁眼也被当作闭眼
        assert decision.status is DrowsinessStatus.DROWSY
        assert _feed(tracker, OPEN, 3).status is DrowsinessStatus.SLEEPING


class TestBlinkCount:
    def test_one_blink_per_closed_run(self, tracker):
        _feed(tracker, CLOSED, 3)
        tracker.process_frame(OPEN)
        decision = _feed(tracker, CLOSED, 20)
        assert decision.blink_count == 2
        decision = tracker.process_frame(OPEN)
        assert decision.blink_count == 2

    def test_counted_on_first_closed_frame(self, tracker):
        tracker.process_frame(OPEN)
        assert tracker.process_frame(CLOSED).blink_count == 1

    @given(runs=st.lists(st.integers(min_value=1, max_value=40), min_size=1, max_size=10))
    def test_blinks_equal_number_of_closed_runs(self, runs):
        tracker = DrowsinessTracker()
        decision = None
        for run in runs:
            _feed(tracker, CLOSED, run)
            decision = tracker.process_frame(OPEN)
        assert decision.blink_count == len(runs)

    def test_reset_blink_count_only_clears_blinks(self, tracker):
        decision = _feed(tracker, CLOSED, 20)
        assert decision.status is DrowsinessStatus.DROWSY

        tracker.reset_blink_count()
        decision = tracker.process_frame(CLOSED)

        assert decision.blink_count == 0
        assert decision.consecutive_frames == 21
        assert decision.status is DrowsinessStatus.DROWSY

    def test_reset_mid_episode_does_not_recount(self, tracker):
        _feed(tracker, CLOSED, 5)
        tracker.reset_blink_count()
        _feed(tracker, CLOSED, 5)
        assert tracker.process_frame(OPEN).blink_count == 0
        assert tracker.process_frame(CLOSED).blink_count == 1


class TestSkippedFrames:
    @pytest.mark.parametrize("landmarks", [None, [], build_landmarks(CLOSED_EAR, count=467)])
    def test_returns_none(self, tracker, landmarks):
        assert tracker.process_frame(landmarks) is None

    def test_state_unchanged(self, tracker):
        _feed(tracker, CLOSED, 20)
        before = tracker.state

        assert tracker.process_frame(None) is None
        assert tracker.process_frame(build_landmarks(OPEN_EAR, count=100)) is None

        assert tracker.state == before

    def test_skip_does_not_break_closed_run(self, tracker):
        _feed(tracker, CLOSED, 10)
        tracker.process_frame(None)
        decision = _feed(tracker, CLOSED, 5)
        assert decision.consecutive_frames == 15
        assert decision.blink_count == 1
        assert decision.status is DrowsinessStatus.DROWSY


class TestLifecycle:
    def test_initial_state(self, tracker):
        assert tracker.state == TrackingState()

    def test_state_is_a_copy(self, tracker):
        state = tracker.state
        state.blink_count = 99
        assert tracker.state.blink_count == 0

    def test_reset(self, tracker):
        _feed(tracker, CLOSED, 40)
        tracker.reset()
        assert tracker.state == TrackingState()
        assert tracker.process_frame(OPEN).status is DrowsinessStatus.AWAKE

    @pytest.mark.parametrize("kwargs", [
        {"drowsy_frame_threshold": 0},
        {"drowsy_frame_threshold": -5},
        {"ear_threshold": -0.1},
        {"ear_threshold": float("nan")},
        {"ear_threshold": float("inf")},
        {"ear_threshold": True},
        {"drowsy_frame_threshold": 2.7},
        {"drowsy_frame_threshold": True},
    ])
    def test_invalid_config(self, kwargs):
        with pytest.raises(ValueError):
            DrowsinessTracker(**kwargs)

    def test_defaults(self):
        tracker = DrowsinessTracker()
        assert tracker.ear_threshold == 0.25
        assert tracker.drowsy_frame_threshold == 15
