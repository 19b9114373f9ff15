"""界面渲染模块 - 在视频帧上绘制眼部关键点、EAR 数值、状态信息和困倦警告。"""

from typing import Optional

import cv2
import numpy as np

from models.data_models import (
    LEFT_EYE,
    RIGHT_EYE,
    DrowsinessStatus,
    FrameDecision,
    LandmarkSnapshot,
)

# BGR
_GREEN = (0, 255, 0)
_RED = (0, 0, 255)


def format_value(v: float) -> str:
    """格式化浮点数为两位小数字符串。"""
    return f"{v:.2f}"


class DisplayRenderer:
    """在视频帧上绘制眼部关键点、跟踪结果和困倦警告。"""

    # 状态文字映射
    _STATUS_TEXT = {
        DrowsinessStatus.AWAKE: "清醒",
        DrowsinessStatus.DROWSY: "困倦",
        DrowsinessStatus.SLEEPING: "睡着",
    }

    _STATUS_TEXT_EN = {
        DrowsinessStatus.AWAKE: "Awake",
        DrowsinessStatus.DROWSY: "Drowsy",
        DrowsinessStatus.SLEEPING: "Sleeping",
    }

    def __init__(self, font_path: str = "SimHei"):
        """初始化中文字体，字体不存在时回退到 OpenCV 默认英文字体。"""
        self._pil_font = None
        self._pil_font_large = None
        self._use_pil = False

        try:
            from PIL import ImageFont

            font = self._try_load_font(font_path)
            if font is not None:
                self._pil_font = font
                self._pil_font_large = ImageFont.truetype(font.path, 48)
                self._use_pil = True
        except (ImportError, OSError):
            self._use_pil = False

    @staticmethod
    def _try_load_font(font_path: str):
        """尝试加载字体文件，返回 PIL ImageFont 或 None。"""
        from PIL import ImageFont

        try:
            return ImageFont.truetype(font_path, 20)
        except (OSError, IOError):
            pass

        # 常见系统路径
        common_paths = [
            "/usr/share/fonts/truetype/simhei/SimHei.ttf",
            "/usr/share/fonts/SimHei.ttf",
            "C:\\Windows\\Fonts\\simhei.ttf",
            "/System/Library/Fonts/STHeiti Medium.ttc",
        ]
        for path in common_paths:
            try:
                return ImageFont.truetype(path, 20)
            except (OSError, IOError):
                continue

        return None

    def render(
        self,
        frame: np.ndarray,
        landmarks: Optional[LandmarkSnapshot],
        decision: Optional[FrameDecision],
    ) -> np.ndarray:
        """渲染跟踪结果到视频帧，返回渲染后的帧图像；decision 为 None 表示本帧被跳过。"""
        output = frame.copy()

        is_drowsy = decision is not None and decision.is_drowsy

        if landmarks is not None and decision is not None:
            color = _RED if is_drowsy else _GREEN
            self._draw_eye(output, landmarks, LEFT_EYE.indices, color)
            self._draw_eye(output, landmarks, RIGHT_EYE.indices, color)

        self._draw_info(output, decision)

        if is_drowsy:
            self._draw_drowsy_warning(output)

        return output

    @staticmethod
    def _draw_eye(frame: np.ndarray, landmarks: LandmarkSnapshot, indices, color: tuple) -> None:
        """绘制单只眼睛的 6 个关键点及轮廓（归一化坐标 -> 像素坐标）。"""
        h, w = frame.shape[:2]
        points = np.array(
            [(int(landmarks[i][0] * w), int(landmarks[i][1] * h)) for i in indices],
            dtype=np.int32,
        )
        for x, y in points:
            cv2.circle(frame, (int(x), int(y)), 3, color, -1)
        cv2.polylines(frame, [points], True, color, 2)

    def _draw_info(self, frame: np.ndarray, decision: Optional[FrameDecision]) -> None:
        """在左上角绘制 EAR、眨眼次数和状态文字。"""
        if decision is None:
            lines_cn = ["状态: 未检测到人脸"]
            lines_en = ["Status: No Face"]
        else:
            ear_text = f"EAR: {format_value(decision.ear)}"
            lines_cn = [
                ear_text,
                f"眨眼: {decision.blink_count}",
                f"状态: {self._STATUS_TEXT[decision.status]}",
            ]
            lines_en = [
                ear_text,
                f"Blinks: {decision.blink_count}",
                f"Status: {self._STATUS_TEXT_EN[decision.status]}",
            ]

        if self._use_pil:
            self._draw_pil_lines(frame, lines_cn, x=10, y_start=30, color=_GREEN)
        else:
            y = 30
            for text in lines_en:
                cv2.putText(
                    frame, text, (10, y),
                    cv2.FONT_HERSHEY_SIMPLEX, 0.7, _GREEN, 2,
                )
                y += 30

    def _draw_drowsy_warning(self, frame: np.ndarray) -> None:
        """在画面中央显示红色大字体困倦警告。"""
        h, w = frame.shape[:2]
        warning = "检测到困倦！请休息！"

        if self._use_pil:
            from PIL import Image, ImageDraw

            img_pil = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
            draw = ImageDraw.Draw(img_pil)
            bbox = draw.textbbox((0, 0), warning, font=self._pil_font_large)
            text_w = bbox[2] - bbox[0]
            text_h = bbox[3] - bbox[1]
            x = (w - text_w) // 2
            y = (h - text_h) // 2
            draw.text((x, y), warning, font=self._pil_font_large, fill=(255, 0, 0))
            result = cv2.cvtColor(np.array(img_pil), cv2.COLOR_RGB2BGR)
            frame[:] = result
        else:
            warning_en = "DROWSY! PLEASE REST!"
            font_scale = 1.5
            thickness = 3
            (text_w, text_h), _ = cv2.getTextSize(
                warning_en, cv2.FONT_HERSHEY_SIMPLEX, font_scale, thickness
            )
            x = (w - text_w) // 2
            y = (h + text_h) // 2
            cv2.putText(
                frame, warning_en, (x, y),
                cv2.FONT_HERSHEY_SIMPLEX, font_scale, _RED, thickness,
            )

    def _draw_pil_lines(
        self,
        frame: np.ndarray,
        lines: list,
        x: int,
        y_start: int,
        color: tuple,
    ) -> None:
        """使用 PIL 在帧上绘制多行文字（BGR color -> RGB fill）。"""
        from PIL import Image, ImageDraw

        img_pil = Image.fromarray(cv2.cvtColor(frame, cv2.COLOR_BGR2RGB))
        draw = ImageDraw.Draw(img_pil)
        fill = (color[2], color[1], color[0])
        y = y_start
        for line in lines:
            draw.text((x, y), line, font=self._pil_font, fill=fill)
            y += 28
        result = cv2.cvtColor(np.array(img_pil), cv2.COLOR_RGB2BGR)
        frame[:] = result
