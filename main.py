"""困倦监测系统命令行入口（本地 OpenCV 窗口）"""

import argparse
import json
import logging
import sys

import cv2

from alerts.tone_alert import ToneAlertSink
from detectors.face_detector import FaceDetector
from display.renderer import DisplayRenderer
from evaluators.alert_policy import AlertLatch
from evaluators.drowsiness_tracker import DrowsinessTracker

logger = logging.getLogger(__name__)

# 默认配置
_DEFAULTS = {
    "ear_threshold": 0.25,
    "drowsy_frame_threshold": 15,
    "camera_index": 0,
}


class DetectionSystem:
    """困倦监测主程序，串联人脸检测、跟踪引擎、报警和渲染，管理视频流主循环。"""

    def __init__(self, config_path=None):
        self._cap = None

        config = self._load_config(config_path)
        self.camera_index = config["camera_index"]

        self.face_detector = FaceDetector()
        self.tracker = DrowsinessTracker(
            ear_threshold=config["ear_threshold"],
            drowsy_frame_threshold=config["drowsy_frame_threshold"],
        )
        self.alert_latch = AlertLatch()
        self.alert_sink = ToneAlertSink()
        self.renderer = DisplayRenderer()

    @staticmethod
    def _load_config(config_path):
        """从 JSON 配置文件加载参数，缺失字段使用默认值。"""
        config = dict(_DEFAULTS)

        if config_path is None:
            return config

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            print(f"警告: 配置文件不存在 {config_path}，使用默认配置")
            return config
        except json.JSONDecodeError:
            print(f"警告: 配置文件格式错误 {config_path}，使用默认配置")
            return config

        for key in _DEFAULTS:
            if key in data and data[key] is not None:
                config[key] = data[key]

        return config

    def run(self):
        """启动主检测循环。"""
        self._cap = cv2.VideoCapture(self.camera_index)

        if not self._cap.isOpened():
            print("无法打开摄像头，请检查摄像头权限后重试")
            sys.exit(1)

        try:
            self._main_loop()
        finally:
            self.stop()

    def process(self, frame):
        """处理单帧：检测关键点、更新跟踪状态、按边沿触发报警，返回渲染后的帧。"""
        landmarks = self.face_detector.detect(frame)
        decision = self.tracker.process_frame(landmarks)

        # 跳过的帧不参与报警边沿判断
        if decision is not None and self.alert_latch.update(decision.is_drowsy):
            logger.warning("检测到困倦: %s (连续闭眼 %d 帧)",
                           decision.status.value, decision.consecutive_frames)
            self.alert_sink.emit()

        return self.renderer.render(frame, landmarks, decision)

    def _main_loop(self):
        """视频流处理主循环。"""
        while True:
            ret, frame = self._cap.read()
            if not ret:
                continue

            rendered = self.process(frame)
            cv2.imshow("困倦监测系统", rendered)

            # q 退出，r 清零眨眼计数
            key = cv2.waitKey(1) & 0xFF
            if key == ord("q"):
                break
            if key == ord("r"):
                self.tracker.reset_blink_count()

    def stop(self):
        """释放摄像头、窗口、人脸检测器和音频资源。"""
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        cv2.destroyAllWindows()
        self.face_detector.close()
        self.alert_sink.close()
        self.tracker.reset()
        self.alert_latch.reset()


def main():
    parser = argparse.ArgumentParser(description="基于眼部纵横比的困倦监测系统")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="JSON 配置文件路径",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    system = DetectionSystem(config_path=args.config)
    system.run()


if __name__ == "__main__":
    main()
