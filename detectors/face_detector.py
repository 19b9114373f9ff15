"""人脸关键点检测模块，基于 MediaPipe FaceMesh"""

from typing import List, Optional

import cv2
import mediapipe as mp
import numpy as np

from models.data_models import Landmark


class FaceDetector:
    """使用 MediaPipe FaceMesh 检测人脸关键点，只取第一张人脸"""

    def __init__(
        self,
        max_num_faces: int = 1,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
        refine_landmarks: bool = True,
    ):
        """初始化 MediaPipe FaceMesh"""
        self._face_mesh = mp.solutions.face_mesh.FaceMesh(
            max_num_faces=max_num_faces,
            min_detection_confidence=min_detection_confidence,
            min_tracking_confidence=min_tracking_confidence,
            refine_landmarks=refine_landmarks,
        )

    def detect(self, frame: np.ndarray) -> Optional[List[Landmark]]:
        """
        检测单帧图像中的人脸关键点。

        Args:
            frame: BGR 格式的 OpenCV 图像帧

        Returns:
            归一化坐标的关键点列表 [(x, y, z), ...]；未检测到人脸时返回 None
        """
        # BGR -> RGB
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False

        results = self._face_mesh.process(rgb_frame)

        if not results.multi_face_landmarks:
            return None

        face = results.multi_face_landmarks[0]
        return [(lm.x, lm.y, lm.z) for lm in face.landmark]

    def close(self):
        """释放 MediaPipe 资源"""
        self._face_mesh.close()
