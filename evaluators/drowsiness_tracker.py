"""困倦跟踪模块，维护眨眼计数与连续闭眼帧计数，输出每帧困倦等级"""

import logging
import math
from dataclasses import replace
from typing import Optional

from detectors.eye_analyzer import calculate_frame_metrics, has_enough_landmarks
from models.data_models import (
    DrowsinessStatus,
    FrameDecision,
    LandmarkSnapshot,
    TrackingState,
)

logger = logging.getLogger(__name__)

# 连续闭眼帧数达到困倦阈值的该倍数时判定为睡着
SLEEPING_MULTIPLIER = 2


def determine_status(consecutive_frames: int, drowsy_frame_threshold: int) -> DrowsinessStatus:
    """根据连续闭眼帧数确定困倦等级，先判断睡着再判断困倦。"""
    if consecutive_frames >= drowsy_frame_threshold * SLEEPING_MULTIPLIER:
        return DrowsinessStatus.SLEEPING
    if consecutive_frames >= drowsy_frame_threshold:
        return DrowsinessStatus.DROWSY
    return DrowsinessStatus.AWAKE


class DrowsinessTracker:
    """
    单会话的困倦跟踪引擎。

    每帧输入一组人脸关键点，更新眨眼计数和连续闭眼帧计数，输出 FrameDecision。
    非线程安全，调用方需保证 process_frame / reset_blink_count 串行执行。
    """

    def __init__(self, ear_threshold: float = 0.25, drowsy_frame_threshold: int = 15):
        """初始化阈值和会话状态"""
        if (isinstance(ear_threshold, bool) or not isinstance(ear_threshold, (int, float))
                or not math.isfinite(ear_threshold) or ear_threshold < 0):
            raise ValueError(f"ear_threshold 必须为非负有限数: {ear_threshold!r}")
        if (isinstance(drowsy_frame_threshold, bool) or not isinstance(drowsy_frame_threshold, int)
                or drowsy_frame_threshold < 1):
            raise ValueError(f"drowsy_frame_threshold 必须为正整数: {drowsy_frame_threshold!r}")

        self.ear_threshold = ear_threshold
        self.drowsy_frame_threshold = drowsy_frame_threshold
        self._state = TrackingState()

    @property
    def state(self) -> TrackingState:
        """当前会话状态的副本"""
        return replace(self._state)

    def process_frame(self, landmarks: Optional[LandmarkSnapshot]) -> Optional[FrameDecision]:
        """
        处理一帧关键点。

        Args:
            landmarks: 第一张人脸的关键点序列，未检测到人脸时为 None

        Returns:
            FrameDecision；关键点缺失或不足 468 个时返回 None，且不修改任何状态
        """
        if not has_enough_landmarks(landmarks):
            logger.debug("跳过无效帧: 关键点数量不足")
            return None

        metrics = calculate_frame_metrics(landmarks)
        state = self._state

        is_closed = metrics.average_ear < self.ear_threshold

        # 只在睁眼 -> 闭眼的上升沿计一次眨眼
        if is_closed and not state.was_blinking:
            state.blink_count += 1
        state.was_blinking = is_closed

        if is_closed:
            state.consecutive_closed_frames += 1
        else:
            state.consecutive_closed_frames = 0

        status = determine_status(state.consecutive_closed_frames, self.drowsy_frame_threshold)

        return FrameDecision(
            left_ear=metrics.left_ear,
            right_ear=metrics.right_ear,
            ear=metrics.average_ear,
            blink_count=state.blink_count,
            status=status,
            is_drowsy=status is not DrowsinessStatus.AWAKE,
            consecutive_frames=state.consecutive_closed_frames,
        )

    def reset_blink_count(self):
        """只清零眨眼计数，不影响闭眼帧计数和困倦等级"""
        self._state.blink_count = 0

    def reset(self):
        """重置整个会话状态"""
        self._state = TrackingState()
