"""核心数据模型定义"""

from dataclasses import dataclass
from enum import Enum
from typing import Sequence, Tuple

# 单个关键点 (x, y, z)，x/y 为相对帧尺寸的归一化坐标
Landmark = Tuple[float, float, float]

# 一帧人脸的全部关键点
LandmarkSnapshot = Sequence[Landmark]

# FaceMesh 输出的最少关键点数
MIN_LANDMARKS = 468


@dataclass(frozen=True)
class EyeLandmarkSet:
    """
    单只眼睛的 6 个关键点索引。

    顺序固定为: 外眼角, 上眼睑外侧, 上眼睑内侧, 内眼角, 下眼睑内侧, 下眼睑外侧
    """
    name: str
    indices: Tuple[int, ...]

    def __post_init__(self):
        if len(self.indices) != 6:
            raise ValueError(f"{self.name} 眼需要 6 个关键点索引，实际为 {len(self.indices)}")


LEFT_EYE = EyeLandmarkSet("left", (33, 160, 158, 133, 153, 144))
RIGHT_EYE = EyeLandmarkSet("right", (362, 385, 387, 263, 373, 380))


class DrowsinessStatus(str, Enum):
    """困倦等级"""
    AWAKE = "awake"
    DROWSY = "drowsy"
    SLEEPING = "sleeping"


@dataclass
class FrameMetrics:
    """单帧 EAR 计算结果"""
    left_ear: float
    right_ear: float
    average_ear: float


@dataclass
class TrackingState:
    """跟踪引擎的会话状态，status 不单独存储，每帧由闭眼帧数推导"""
    consecutive_closed_frames: int = 0
    was_blinking: bool = False
    blink_count: int = 0


@dataclass
class FrameDecision:
    """每帧对外输出的判断结果"""
    left_ear: float
    right_ear: float
    ear: float
    blink_count: int
    status: DrowsinessStatus
    is_drowsy: bool
    consecutive_frames: int

    def to_dict(self) -> dict:
        """转换为 JSON 友好的字典"""
        return {
            "ear": round(self.ear, 4),
            "left_ear": round(self.left_ear, 4),
            "right_ear": round(self.right_ear, 4),
            "blink_count": self.blink_count,
            "status": self.status.value,
            "is_drowsy": self.is_drowsy,
            "consecutive_frames": self.consecutive_frames,
        }
