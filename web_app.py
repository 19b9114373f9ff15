"""Flask Web 前端 - 困倦监测系统"""

import datetime
import logging
import threading
import time

import cv2
from flask import Flask, Response, jsonify, render_template, request

from detectors.face_detector import FaceDetector
from display.renderer import DisplayRenderer
from evaluators.alert_policy import AlertLatch
from evaluators.drowsiness_tracker import DrowsinessTracker
from models.data_models import DrowsinessStatus

logger = logging.getLogger(__name__)

app = Flask(__name__, template_folder="web/templates")

# 默认阈值
_DEFAULTS = {
    "ear_threshold": 0.25,
    "drowsy_frame_threshold": 15,
}

_EMPTY_DATA = {
    "ear": 0.0, "left_ear": 0.0, "right_ear": 0.0,
    "blink_count": 0, "status": DrowsinessStatus.AWAKE.value,
    "is_drowsy": False, "consecutive_frames": 0,
}


class WebDetectionSystem:
    """Web 版检测系统，支持 MJPEG 视频流推送和实时数据 API。"""

    MAX_LOG_ENTRIES = 200

    def __init__(self, camera_index=0):
        self.camera_index = camera_index
        self._cap = None
        self._running = False
        self._thread = None
        self._lock = threading.Lock()
        # 跟踪引擎非线程安全，所有调用都经由此锁串行
        self._tracker_lock = threading.Lock()
        self._latest_frame = None
        self._latest_data = dict(_EMPTY_DATA, face_detected=False)
        self._alert_seq = 0
        self._logs = []
        self._log_lock = threading.Lock()
        self._prev_state = {"face_detected": True, "status": DrowsinessStatus.AWAKE.value}
        self.face_detector = None
        self.tracker = DrowsinessTracker(**_DEFAULTS)
        self.alert_latch = AlertLatch()
        self.renderer = DisplayRenderer()

    @property
    def running(self):
        return self._running

    def start(self):
        """启动摄像头和处理线程；失败时返回 False，可重试。"""
        if self._running:
            return True
        self._cap = cv2.VideoCapture(self.camera_index)
        if not self._cap.isOpened():
            self._cap.release()
            self._cap = None
            self._add_log("danger", "无法打开摄像头，请检查权限后重试")
            return False
        if self.face_detector is None:
            self.face_detector = FaceDetector()
        self._running = True
        self._add_log("info", "系统启动，摄像头已开启")
        self._thread = threading.Thread(target=self._process_loop, daemon=True)
        self._thread.start()
        return True

    def stop(self):
        """停止检测并重置会话状态。"""
        self._running = False
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if self._cap is not None and self._cap.isOpened():
            self._cap.release()
        self._cap = None
        if self.face_detector is not None:
            self.face_detector.close()
            self.face_detector = None
        with self._tracker_lock:
            self.tracker.reset()
            self.alert_latch.reset()
        with self._lock:
            self._latest_frame = None
            self._latest_data = dict(_EMPTY_DATA, face_detected=False)
        self._add_log("info", "系统已停止")

    def _process_loop(self):
        """后台处理循环。"""
        while self._running:
            if not self._cap or not self._cap.isOpened():
                break
            ret, frame = self._cap.read()
            if not ret:
                continue
            self.process(frame)

    def process(self, frame):
        """处理单帧并更新最新数据、视频帧和日志。"""
        detector = self.face_detector
        if detector is None:
            return
        landmarks = detector.detect(frame)

        with self._tracker_lock:
            decision = self.tracker.process_frame(landmarks)
            fire = decision is not None and self.alert_latch.update(decision.is_drowsy)

        rendered = self.renderer.render(frame, landmarks, decision)
        _, jpeg = cv2.imencode(".jpg", rendered, [cv2.IMWRITE_JPEG_QUALITY, 80])

        with self._lock:
            if fire:
                self._alert_seq += 1
            if decision is not None:
                data = dict(decision.to_dict(), face_detected=True)
            else:
                # 跳过的帧保留上一帧的跟踪数据
                data = dict(self._latest_data, face_detected=False)
            self._latest_data = data
            self._latest_frame = jpeg.tobytes()

        self._check_state_changes(data)

    def _add_log(self, level, message):
        """添加一条系统日志。level: info / warning / danger"""
        entry = {
            "time": datetime.datetime.now().strftime("%H:%M:%S"),
            "level": level,
            "message": message,
        }
        log_level = logging.INFO if level == "info" else logging.WARNING
        logger.log(log_level, message)
        with self._log_lock:
            self._logs.append(entry)
            if len(self._logs) > self.MAX_LOG_ENTRIES:
                self._logs = self._logs[-self.MAX_LOG_ENTRIES:]

    def _check_state_changes(self, data):
        """检测状态变化并记录日志。"""
        prev = self._prev_state

        if data.get("face_detected") and not prev.get("face_detected"):
            self._add_log("info", "检测到人脸")
        elif not data.get("face_detected") and prev.get("face_detected"):
            self._add_log("warning", "人脸丢失")

        status = data.get("status")
        if status != prev.get("status"):
            if status == DrowsinessStatus.SLEEPING.value:
                self._add_log("danger", f"⚠️ 持续闭眼 {data.get('consecutive_frames')} 帧，疑似睡着！")
            elif status == DrowsinessStatus.DROWSY.value:
                self._add_log("danger", f"⚠️ 困倦警告！(EAR={data.get('ear', 0):.2f})")
            elif status == DrowsinessStatus.AWAKE.value:
                self._add_log("info", "睁眼恢复")

        self._prev_state = {
            "face_detected": data.get("face_detected", True),
            "status": status,
        }

    def reset_blink_count(self):
        with self._tracker_lock:
            self.tracker.reset_blink_count()
        with self._lock:
            self._latest_data = dict(self._latest_data, blink_count=0)
        self._add_log("info", "眨眼计数已清零")

    def get_logs(self, since=0):
        """获取日志，since 为起始索引。"""
        with self._log_lock:
            return self._logs[since:], len(self._logs)

    def get_frame(self):
        with self._lock:
            return self._latest_frame

    def get_data(self):
        with self._lock:
            return dict(self._latest_data, alert_seq=self._alert_seq, running=self._running)

    def update_config(self, config):
        """按新阈值重建跟踪引擎（阈值在构造时固定）；参数非法时抛出 ValueError。"""
        if not isinstance(config, dict):
            raise ValueError(f"配置必须为 JSON 对象: {config!r}")
        tracker = DrowsinessTracker(
            ear_threshold=config.get("ear_threshold", self.tracker.ear_threshold),
            drowsy_frame_threshold=config.get("drowsy_frame_threshold", self.tracker.drowsy_frame_threshold),
        )
        with self._tracker_lock:
            self.tracker = tracker
            self.alert_latch.reset()
        self._add_log(
            "info",
            f"配置已更新: EAR 阈值={tracker.ear_threshold}, 困倦帧数={tracker.drowsy_frame_threshold}",
        )


# 全局检测系统实例
system = WebDetectionSystem()


# ---- Flask 路由 ----

@app.route("/")
def index():
    return render_template("index.html")


@app.route("/api/start", methods=["POST"])
def api_start():
    ok = system.start()
    return jsonify({"success": ok, "message": "摄像头启动成功" if ok else "无法打开摄像头，请检查权限后重试"})


@app.route("/api/stop", methods=["POST"])
def api_stop():
    system.stop()
    return jsonify({"success": True, "message": "检测已停止"})


@app.route("/api/data")
def api_data():
    return jsonify(system.get_data())


@app.route("/api/reset_blinks", methods=["POST"])
def api_reset_blinks():
    system.reset_blink_count()
    return jsonify({"success": True, "message": "眨眼计数已清零"})


@app.route("/api/config", methods=["POST"])
def api_config():
    data = request.get_json(force=True)
    try:
        system.update_config(data)
    except ValueError as e:
        return jsonify({"success": False, "message": str(e)}), 400
    return jsonify({"success": True, "message": "配置已更新"})


@app.route("/api/logs")
def api_logs():
    since = request.args.get("since", 0, type=int)
    logs, total = system.get_logs(since)
    return jsonify({"logs": logs, "total": total})


@app.route("/video_feed")
def video_feed():
    def generate():
        while True:
            frame = system.get_frame()
            if frame is not None:
                yield (b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + frame + b"\r\n")
            time.sleep(0.03)
    return Response(generate(), mimetype="multipart/x-mixed-replace; boundary=frame")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    app.run(host="0.0.0.0", port=5000, debug=False, threaded=True)
