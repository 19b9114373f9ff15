"""眼睛几何计算模块，负责由关键点计算 EAR 值（无状态）"""

import math
from typing import Optional

from models.data_models import (
    LEFT_EYE,
    MIN_LANDMARKS,
    RIGHT_EYE,
    EyeLandmarkSet,
    FrameMetrics,
    LandmarkSnapshot,
)


def _planar_distance(a, b) -> float:
    """只使用 x/y 的欧氏距离，忽略 z"""
    return math.dist(a[:2], b[:2])


def calculate_ear(landmarks: LandmarkSnapshot, eye: EyeLandmarkSet) -> float:
    """
    计算单只眼睛的 EAR 值。

    公式: EAR = (|p2-p6| + |p3-p5|) / (2 * |p1-p4|)

    Args:
        landmarks: 整张脸的关键点序列 [(x, y, z), ...]
        eye: 眼睛关键点索引集合

    Returns:
        EAR 值，分母为零时返回 0.0
    """
    p1, p2, p3, p4, p5, p6 = (landmarks[i] for i in eye.indices)

    vertical_1 = _planar_distance(p2, p6)
    vertical_2 = _planar_distance(p3, p5)
    horizontal = _planar_distance(p1, p4)

    if horizontal == 0.0:
        return 0.0

    return (vertical_1 + vertical_2) / (2.0 * horizontal)


def calculate_frame_metrics(landmarks: LandmarkSnapshot) -> FrameMetrics:
    """计算左右眼 EAR 及其平均值"""
    left_ear = calculate_ear(landmarks, LEFT_EYE)
    right_ear = calculate_ear(landmarks, RIGHT_EYE)
    return FrameMetrics(
        left_ear=left_ear,
        right_ear=right_ear,
        average_ear=(left_ear + right_ear) / 2.0,
    )


def has_enough_landmarks(landmarks: Optional[LandmarkSnapshot]) -> bool:
    """关键点为空或少于 FaceMesh 的 468 个时视为不可靠数据"""
    return landmarks is not None and len(landmarks) >= MIN_LANDMARKS
